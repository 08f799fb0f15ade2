"""
Tests for network configuration and adapter settings.
"""
import pytest

from crust_order_sdk.config import (
    AdapterSettings, NetworkConfig, DEFAULT_NETWORK, DEFAULT_OBSERVE_TIMEOUT
)
from crust_order_sdk.exceptions import ConfigurationError


class TestNetworkConfig:

    def test_load_networks(self):
        networks = NetworkConfig.load_networks()

        assert {"crust-mainnet", "crust-rocky", "local"} <= set(networks)
        assert NetworkConfig.load_networks() is networks

    def test_get_network(self):
        network = NetworkConfig.get_network("crust-mainnet")
        assert network["nodeUrl"] == "wss://rpc.crust.network"
        assert NetworkConfig.get_ss58_format("crust-mainnet") == 66

    def test_unknown_network(self):
        with pytest.raises(ValueError) as excinfo:
            NetworkConfig.get_network("ethereum")

        assert "Unknown network 'ethereum'" in str(excinfo.value)
        assert "crust-mainnet" in str(excinfo.value)

    def test_node_url_priority(self, monkeypatch):
        assert NetworkConfig.get_node_url("crust-rocky") == "wss://rpc-rocky.crust.network"

        monkeypatch.setenv("CRUST_ROCKY_NODE_URL", "wss://rocky.example.com")
        assert NetworkConfig.get_node_url("crust-rocky") == "wss://rocky.example.com"

        assert NetworkConfig.get_node_url("crust-rocky", "wss://explicit.example.com") == "wss://explicit.example.com"


class TestAdapterSettings:

    def test_defaults(self):
        settings = AdapterSettings.from_env({})

        assert settings.ipfs_pin_host is None
        assert settings.crust_order_seeds is None
        assert settings.network == DEFAULT_NETWORK
        assert settings.observe_timeout == DEFAULT_OBSERVE_TIMEOUT
        assert settings.serialize_nonces is False

    def test_from_env(self):
        settings = AdapterSettings.from_env({
            "DEFAULT_IPFS_PIN_HOST": "https://ipfs.example.com:5001",
            "DEFAULT_CRUST_NODE_URL": "wss://rpc.example.com",
            "DEFAULT_CRUST_ORDER_SEEDS": "//Alice",
            "CRUST_IPFS_AUTH_TOKEN": "token",
            "CRUST_NETWORK": "crust-rocky",
            "CRUST_OBSERVE_TIMEOUT": "120",
            "CRUST_SERIALIZE_NONCES": "1",
        })

        assert settings.ipfs_pin_host == "https://ipfs.example.com:5001"
        assert settings.resolve_node_url() == "wss://rpc.example.com"
        assert settings.crust_order_seeds == "//Alice"
        assert settings.ipfs_auth_token == "token"
        assert settings.network == "crust-rocky"
        assert settings.observe_timeout == 120.0
        assert settings.serialize_nonces is True

    def test_reads_process_environment(self, monkeypatch):
        monkeypatch.setenv("DEFAULT_IPFS_PIN_HOST", "https://ipfs.example.com")
        assert AdapterSettings.from_env().ipfs_pin_host == "https://ipfs.example.com"

    def test_observe_timeout_disabled(self):
        assert AdapterSettings.from_env({"CRUST_OBSERVE_TIMEOUT": "none"}).observe_timeout is None

    @pytest.mark.parametrize("raw", ["10m", "soon", "0", "-5"])
    def test_invalid_observe_timeout(self, raw):
        with pytest.raises(ConfigurationError, match="CRUST_OBSERVE_TIMEOUT"):
            AdapterSettings.from_env({"CRUST_OBSERVE_TIMEOUT": raw})

    def test_secrets_hidden_from_repr(self):
        settings = AdapterSettings(crust_order_seeds="//Alice", ipfs_auth_token="token")
        assert "//Alice" not in repr(settings)
        assert "token" not in repr(settings)

    def test_resolve_node_url_falls_back_to_network(self):
        settings = AdapterSettings(network="local")
        assert settings.resolve_node_url() == "ws://127.0.0.1:9944"
        assert settings.resolve_node_url("wss://override.example.com") == "wss://override.example.com"
