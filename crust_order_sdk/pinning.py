"""
IPFS pinning client.

Talks to the HTTP RPC API of an IPFS node: pins a CID, reads its
cumulative size and optionally connects to peers that already hold it.
"""
import json
import logging
from typing import Any, Dict, Iterable, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .exceptions import PinningError
from .utils import validate_url

logger = logging.getLogger(__name__)


class IpfsPinningClient:
    """
    Client for the IPFS HTTP RPC API.

    Transient failures (connection errors and 5xx responses) are retried by
    the session's urllib3 Retry policy; everything else surfaces as
    PinningError.

    Args:
        pin_host: Base URL of the IPFS API (e.g. "https://ipfs.example.com:5001")
        auth_token: Optional bearer token sent with every request
        retry_count: Number of retries for HTTP requests
        timeout: Timeout for HTTP requests in seconds
    """

    def __init__(
        self,
        pin_host: str,
        auth_token: Optional[str] = None,
        retry_count: int = 3,
        timeout: int = 60
    ):
        self.pin_host = validate_url(pin_host, "pin_host", ("https",))
        self.timeout = timeout

        self.session = requests.Session()
        retries = Retry(
            total=retry_count,
            backoff_factor=0.5,
            status_forcelist=[500, 502, 503, 504],
            allowed_methods=["POST"],
            raise_on_status=False,
            connect=retry_count,
            read=retry_count,
            other=retry_count
        )
        self.session.mount("http://", HTTPAdapter(max_retries=retries))
        self.session.mount("https://", HTTPAdapter(max_retries=retries))
        if auth_token:
            self.session.headers["Authorization"] = f"Bearer {auth_token}"

    def _post(self, endpoint: str, params: Any) -> requests.Response:
        url = f"{self.pin_host}/api/v0/{endpoint}"
        try:
            response = self.session.post(url, params=params, timeout=self.timeout)
            response.raise_for_status()
        except requests.RequestException as e:
            logger.error(f"IPFS request to {endpoint} failed: {e}")
            raise PinningError(f"IPFS {endpoint} failed: {str(e)}") from e
        return response

    def ensure_pinned(self, cid: str) -> List[str]:
        """
        Pin a CID recursively on the IPFS node.

        The API streams newline-delimited progress records and finishes with
        the list of pinned CIDs.

        Args:
            cid: Content identifier to pin

        Returns:
            CIDs reported as pinned

        Raises:
            PinningError: If the request fails or the CID is not reported as pinned
        """
        logger.info(f"Pinning {cid} to {self.pin_host}")
        response = self._post("pin/add", {"arg": cid, "recursive": "true", "progress": "true"})

        records = self._parse_records(response.text, "pin/add")
        pins: List[str] = []
        for record in records:
            if "Pins" in record:
                pins = record["Pins"] or []
            elif "Progress" in record:
                logger.debug(f"Pin progress for {cid}: {record['Progress']} blocks")

        if cid not in pins:
            raise PinningError(f"IPFS node did not report {cid} as pinned: {pins}")
        return pins

    def stat_size(self, cid: str) -> int:
        """
        Get the cumulative size of a pinned CID.

        Args:
            cid: Content identifier

        Returns:
            Cumulative size in bytes

        Raises:
            PinningError: If the request fails or the size is missing
        """
        response = self._post("files/stat", {"arg": f"/ipfs/{cid}", "size": "true"})
        try:
            result = response.json()
        except ValueError as e:
            raise PinningError(f"Invalid JSON response from files/stat: {str(e)}") from e

        size = result.get("CumulativeSize") if isinstance(result, dict) else None
        if not isinstance(size, int) or size < 0:
            raise PinningError(f"Missing CumulativeSize in files/stat response: {result}")
        logger.debug(f"Cumulative size of {cid}: {size} bytes")
        return size

    def connect_peers(self, addresses: Iterable[str]) -> Dict[str, Any]:
        """
        Connect the IPFS node to peers that already hold the content.

        Args:
            addresses: Multiaddresses of the peers

        Returns:
            The node's response
        """
        addresses = list(addresses)
        if not addresses:
            return {"Strings": []}
        response = self._post("swarm/connect", [("arg", address) for address in addresses])
        try:
            return response.json()
        except ValueError as e:
            raise PinningError(f"Invalid JSON response from swarm/connect: {str(e)}") from e

    @staticmethod
    def _parse_records(body: str, endpoint: str) -> List[Dict[str, Any]]:
        records = []
        for line in body.splitlines():
            line = line.strip()
            if not line:
                continue
            try:
                records.append(json.loads(line))
            except ValueError as e:
                raise PinningError(f"Invalid JSON record from {endpoint}: {str(e)}") from e
        return records

    def close(self) -> None:
        self.session.close()
