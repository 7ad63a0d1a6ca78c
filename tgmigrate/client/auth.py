"""Per-graph REST++ token cache.

Tokens are owned by one client instance and checked for expiry every
time they are used.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone


@dataclass(frozen=True)
class Token:
    value: str
    expires: datetime

    def is_valid(self, now: datetime | None = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return self.expires > now


@dataclass
class TokenCache:
    _tokens: dict[str, Token] = field(default_factory=dict)

    def get_valid(self, graph: str, now: datetime | None = None) -> Token | None:
        """Return the cached token for `graph` if it has not expired."""
        token = self._tokens.get(graph)
        if token is not None and token.is_valid(now):
            return token
        return None

    def store(self, graph: str, token: Token) -> None:
        self._tokens[graph] = token

    def clear(self) -> None:
        self._tokens.clear()

    def __contains__(self, graph: str) -> bool:
        return graph in self._tokens
