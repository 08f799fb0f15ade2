"""
Utility functions for the Crust storage-order SDK.
"""
import urllib.parse
import os
from typing import Iterable

import base58

from .exceptions import AdapterInputError

# sha2-256 multihash header carried by every CIDv0
_CIDV0_MULTIHASH_PREFIX = b"\x12\x20"
_BASE32_ALPHABET = set("abcdefghijklmnopqrstuvwxyz234567")

LOCAL_HOSTS = ("localhost", "127.0.0.1", "::1")


def validate_cid(cid: str) -> str:
    """
    Check that a string looks like an IPFS content identifier.

    Accepts base58btc CIDv0 ("Qm...") and base32 CIDv1 ("b...").

    Args:
        cid: Content identifier to validate

    Returns:
        The CID with surrounding whitespace removed

    Raises:
        AdapterInputError: If the CID is not a string or is malformed
    """
    if not isinstance(cid, str):
        raise AdapterInputError(f"CID must be a string, got {type(cid).__name__}")

    cid = cid.strip()
    if not cid:
        raise AdapterInputError("CID must not be empty")

    if cid.startswith("Qm"):
        try:
            raw = base58.b58decode(cid)
        except ValueError as e:
            raise AdapterInputError(f"Invalid base58 CID {cid}: {str(e)}") from e
        if len(raw) != 34 or not raw.startswith(_CIDV0_MULTIHASH_PREFIX):
            raise AdapterInputError(f"Invalid CIDv0 {cid}: expected a 34-byte sha2-256 multihash")
        return cid

    if cid.startswith("b") and len(cid) > 1:
        if not set(cid[1:]) <= _BASE32_ALPHABET:
            raise AdapterInputError(f"Invalid CIDv1 {cid}: not lowercase base32")
        return cid

    raise AdapterInputError(f"Unsupported CID encoding: {cid}")


def validate_url(url: str, name: str, secure_schemes: Iterable[str]) -> str:
    """
    Validate that a service URL uses a secure scheme.

    Plain schemes are accepted for local hosts, or anywhere when
    CRUST_ALLOW_INSECURE=1 is set.

    Args:
        url: URL to validate
        name: Parameter name used in error messages
        secure_schemes: Schemes that are always accepted

    Returns:
        The URL with any trailing slash removed

    Raises:
        ValueError: If the URL is empty or insecure
    """
    if not url:
        raise ValueError(f"{name} must be provided")

    parsed = urllib.parse.urlparse(url)
    host = parsed.hostname or ""
    is_local = host in LOCAL_HOSTS
    if parsed.scheme not in secure_schemes and not is_local:
        if os.environ.get("CRUST_ALLOW_INSECURE") != "1":
            raise ValueError(
                f"{name} must use {'/'.join(secure_schemes)} for security (got: {parsed.scheme}://). "
                "Set CRUST_ALLOW_INSECURE=1 to allow plain connections for development."
            )
    return url.rstrip("/")

