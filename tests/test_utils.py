"""
Tests for utility functions.
"""
import pytest

from crust_order_sdk.exceptions import AdapterInputError
from crust_order_sdk.utils import validate_cid, validate_url

CIDV0 = "QmYwAPJzv5CZsnA625s3Xf2nemtYgPpHdWEz79ojWnPbdG"
CIDV1 = "bafybeigdyrzt5sfp7udm7hu76uh7y26nf3efuylqabf3oclgtqy55fbzdi"


class TestValidateCid:

    def test_cid_v0(self):
        assert validate_cid(CIDV0) == CIDV0

    def test_cid_v1(self):
        assert validate_cid(CIDV1) == CIDV1

    def test_whitespace_stripped(self):
        assert validate_cid(f" {CIDV0}\n") == CIDV0

    @pytest.mark.parametrize("cid,message", [
        (None, "must be a string"),
        (42, "must be a string"),
        ("", "must not be empty"),
        ("QmTest1", "Invalid"),
        ("Qm0OIl", "Invalid base58 CID"),
        ("bAFYBEI", "not lowercase base32"),
        ("zb2rhe5P4gXftAwvA4eXQ5HJwsER2owDyS9sKaQRRVQPn93bA", "Unsupported CID encoding"),
    ])
    def test_invalid(self, cid, message):
        with pytest.raises(AdapterInputError, match=message):
            validate_cid(cid)


class TestValidateUrl:

    def test_secure_scheme(self):
        assert validate_url("wss://rpc.crust.network/", "node_url", ("wss",)) == "wss://rpc.crust.network"

    @pytest.mark.parametrize("url", ["ws://localhost:9944", "ws://127.0.0.1:9944", "ws://[::1]:9944"])
    def test_local_plain_scheme(self, url):
        assert validate_url(url, "node_url", ("wss",)) == url

    def test_insecure_rejected(self):
        with pytest.raises(ValueError, match="node_url must use wss"):
            validate_url("ws://rpc.example.com", "node_url", ("wss",))

    def test_insecure_override(self, monkeypatch):
        monkeypatch.setenv("CRUST_ALLOW_INSECURE", "1")
        assert validate_url("ws://rpc.example.com", "node_url", ("wss",)) == "ws://rpc.example.com"

    def test_empty(self):
        with pytest.raises(ValueError, match="must be provided"):
            validate_url("", "pin_host", ("https",))

