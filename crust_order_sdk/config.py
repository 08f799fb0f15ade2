"""
Configuration for the Crust storage-order SDK.

Network endpoints come from the packaged networks.json and can be
overridden per network with ``<NETWORK>_NODE_URL``. Adapter defaults are
read from the environment.
"""
import importlib.resources
import json
import logging
import os
from typing import Any, Dict, Mapping, Optional

from pydantic import BaseModel, Field

from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_NETWORK = "crust-mainnet"
DEFAULT_OBSERVE_TIMEOUT = 600.0


class NetworkConfig:
    """Lookup of known Crust networks"""

    _networks_cache: Optional[Dict[str, Dict[str, Any]]] = None

    @classmethod
    def load_networks(cls) -> Dict[str, Dict[str, Any]]:
        """
        Load the network table, caching it after the first read.

        Returns:
            Mapping of network name to its configuration
        """
        if cls._networks_cache is None:
            resource = importlib.resources.files("crust_order_sdk") / "networks.json"
            with resource.open("r", encoding="utf-8") as f:
                cls._networks_cache = json.load(f)
        return cls._networks_cache

    @classmethod
    def get_network(cls, network: str) -> Dict[str, Any]:
        """
        Get the configuration of one network.

        Raises:
            ValueError: If the network is unknown
        """
        networks = cls.load_networks()
        if network not in networks:
            available = ", ".join(sorted(networks))
            raise ValueError(f"Unknown network '{network}'. Available networks: {available}")
        return networks[network]

    @classmethod
    def get_node_url(cls, network: str, override: Optional[str] = None) -> str:
        """
        Resolve the node URL of a network.

        Priority: explicit override, then ``<NETWORK>_NODE_URL``, then the table.
        """
        if override:
            return override
        env_var = f"{network.upper().replace('-', '_')}_NODE_URL"
        env_url = os.environ.get(env_var)
        if env_url:
            logger.debug(f"Using node URL from {env_var}")
            return env_url
        return cls.get_network(network)["nodeUrl"]

    @classmethod
    def get_ss58_format(cls, network: str) -> int:
        return int(cls.get_network(network)["ss58Format"])


class AdapterSettings(BaseModel):
    """
    Defaults used when an adapter request leaves parameters out.

    Attributes:
        ipfs_pin_host: IPFS API base URL (DEFAULT_IPFS_PIN_HOST)
        crust_node_url: Chain node websocket URL (DEFAULT_CRUST_NODE_URL)
        crust_order_seeds: Seed of the paying account (DEFAULT_CRUST_ORDER_SEEDS)
        ipfs_auth_token: Bearer token for the IPFS API (CRUST_IPFS_AUTH_TOKEN)
        network: Network used when no node URL is configured (CRUST_NETWORK)
        observe_timeout: Seconds to wait for a terminal status, None to wait forever
            (CRUST_OBSERVE_TIMEOUT, "none" disables the deadline)
        serialize_nonces: Serialize nonce selection per account (CRUST_SERIALIZE_NONCES=1)
    """
    ipfs_pin_host: Optional[str] = None
    crust_node_url: Optional[str] = None
    crust_order_seeds: Optional[str] = Field(None, repr=False)
    ipfs_auth_token: Optional[str] = Field(None, repr=False)
    network: str = DEFAULT_NETWORK
    observe_timeout: Optional[float] = DEFAULT_OBSERVE_TIMEOUT
    serialize_nonces: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "AdapterSettings":
        """
        Read settings from the environment.

        Raises:
            ConfigurationError: If CRUST_OBSERVE_TIMEOUT is not a positive number or "none"
        """
        env = os.environ if environ is None else environ

        timeout_raw = env.get("CRUST_OBSERVE_TIMEOUT")
        if timeout_raw is None or timeout_raw == "":
            observe_timeout: Optional[float] = DEFAULT_OBSERVE_TIMEOUT
        elif timeout_raw.lower() == "none":
            observe_timeout = None
        else:
            try:
                observe_timeout = float(timeout_raw)
            except ValueError as e:
                raise ConfigurationError(
                    f"CRUST_OBSERVE_TIMEOUT must be a number of seconds or 'none', got '{timeout_raw}'"
                ) from e
            if observe_timeout <= 0:
                raise ConfigurationError(f"CRUST_OBSERVE_TIMEOUT must be positive, got {timeout_raw}")

        return cls(
            ipfs_pin_host=env.get("DEFAULT_IPFS_PIN_HOST") or None,
            crust_node_url=env.get("DEFAULT_CRUST_NODE_URL") or None,
            crust_order_seeds=env.get("DEFAULT_CRUST_ORDER_SEEDS") or None,
            ipfs_auth_token=env.get("CRUST_IPFS_AUTH_TOKEN") or None,
            network=env.get("CRUST_NETWORK") or DEFAULT_NETWORK,
            observe_timeout=observe_timeout,
            serialize_nonces=env.get("CRUST_SERIALIZE_NONCES") == "1"
        )

    def resolve_node_url(self, override: Optional[str] = None) -> str:
        return NetworkConfig.get_node_url(self.network, override or self.crust_node_url)
