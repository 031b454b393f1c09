"""ba — ownership-based issue tracker with convention-based project discovery."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("ba")
except PackageNotFoundError:
    __version__ = "0.0.0-dev"

from ba.core import BaDB, Issue

__all__ = ["BaDB", "Issue", "__version__"]
