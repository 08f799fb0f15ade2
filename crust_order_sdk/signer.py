"""
Credential derivation for signing Crust transactions.
"""
import logging
from dataclasses import dataclass, field

from substrateinterface import Keypair, KeypairType

from .exceptions import InvalidSeedError

logger = logging.getLogger(__name__)

# Every order is signed with sr25519 keys; this is not configurable per call
SIGNATURE_SCHEME = KeypairType.SR25519

# SS58 address prefix registered for the Crust network
CRUST_SS58_FORMAT = 66


@dataclass(frozen=True)
class Credential:
    """
    Signing credential derived from a seed.

    Attributes:
        address: SS58 address of the signing account
        public_key: Raw public key bytes
        keypair: Key pair used by the chain node to sign extrinsics
    """
    address: str
    public_key: bytes
    keypair: Keypair = field(repr=False, compare=False)
    scheme: int = SIGNATURE_SCHEME


def derive_credential(seed: str, ss58_format: int = CRUST_SS58_FORMAT) -> Credential:
    """
    Derive a signing credential from a seed phrase or secret URI.

    Accepts anything the sr25519 keyring understands: a BIP39 mnemonic,
    a hex seed, or a derivation URI such as "//Alice". The network is
    never contacted and nothing is cached.

    Args:
        seed: Mnemonic, hex seed or secret URI
        ss58_format: Address prefix used to render the account address

    Returns:
        Credential for the derived account

    Raises:
        InvalidSeedError: If the seed cannot be parsed into a key pair
    """
    if not isinstance(seed, str) or not seed.strip():
        raise InvalidSeedError("Seed must be a non-empty string")

    try:
        keypair = Keypair.create_from_uri(
            seed.strip(),
            ss58_format=ss58_format,
            crypto_type=SIGNATURE_SCHEME
        )
    except Exception as e:
        # Never include the seed itself in the message
        raise InvalidSeedError(f"Failed to derive key pair from seed: {type(e).__name__}") from e

    logger.debug(f"Derived credential for account {keypair.ss58_address[:8]}...")
    return Credential(
        address=keypair.ss58_address,
        public_key=keypair.public_key,
        keypair=keypair
    )
