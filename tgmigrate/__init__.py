"""tgmigrate: versioned schema migrations for TigerGraph, tracked in TigerGraph."""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("tgmigrate")
except PackageNotFoundError:
    __version__ = "0.1.0"  # fallback for development
