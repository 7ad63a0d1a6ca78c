"""HTTP client for the TigerGraph REST++ and GSQL servers."""

from tgmigrate.client.auth import Token, TokenCache
from tgmigrate.client.tigergraph import TigerGraphClient

__all__ = ["TigerGraphClient", "Token", "TokenCache"]
