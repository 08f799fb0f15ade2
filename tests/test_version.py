"""
Tests for version resolution.
"""
import importlib.metadata
from unittest.mock import patch

import crust_order_sdk
from crust_order_sdk import version


def test_version_exported():
    assert crust_order_sdk.__version__ == version.__version__
    assert isinstance(version.__version__, str)


def test_installed_metadata_preferred():
    with patch("importlib.metadata.version", return_value="2.3.4") as metadata_version:
        assert version.resolve_version() == "2.3.4"
    metadata_version.assert_called_once_with(version.DISTRIBUTION)


def test_source_tree_when_not_installed(monkeypatch, tmp_path):
    pyproject = tmp_path / "pyproject.toml"
    pyproject.write_text('[project]\nname = "crust-order-sdk"\nversion = "9.9.9"\n')
    monkeypatch.setattr(version, "_PYPROJECT", pyproject)

    with patch("importlib.metadata.version", side_effect=importlib.metadata.PackageNotFoundError):
        assert version.resolve_version() == "9.9.9"


def test_fallback_without_pyproject(monkeypatch, tmp_path):
    monkeypatch.setattr(version, "_PYPROJECT", tmp_path / "missing.toml")
    assert version._source_tree_version() == version.FALLBACK_VERSION


def test_fallback_without_version_key(monkeypatch, tmp_path):
    pyproject = tmp_path / "pyproject.toml"
    pyproject.write_text('[project]\nname = "crust-order-sdk"\n')
    monkeypatch.setattr(version, "_PYPROJECT", pyproject)
    assert version._source_tree_version() == version.FALLBACK_VERSION
