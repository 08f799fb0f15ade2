"""Package version, from installed metadata or the source tree's pyproject.toml."""
import importlib.metadata
from pathlib import Path

import tomli

DISTRIBUTION = "crust-order-sdk"
FALLBACK_VERSION = "0.1.0"

_PYPROJECT = Path(__file__).resolve().parent.parent / "pyproject.toml"


def _source_tree_version() -> str:
    try:
        with _PYPROJECT.open("rb") as f:
            return tomli.load(f)["project"]["version"]
    except (OSError, KeyError, tomli.TOMLDecodeError):
        return FALLBACK_VERSION


def resolve_version() -> str:
    """Version of the installed distribution; a checkout that was never installed reads pyproject.toml."""
    try:
        return importlib.metadata.version(DISTRIBUTION)
    except importlib.metadata.PackageNotFoundError:
        return _source_tree_version()


__version__ = resolve_version()
