"""FIFO pool of unspent tokens for the active bundle."""

from __future__ import annotations

import logging
from typing import Iterable, Optional, Sequence

from ..core.interfaces import TokenStorage
from ..core.models import Token
from ..core.registry import ConfigRegistry

logger = logging.getLogger(__name__)


class TokenStore:
    """Data access only: callers decide when popping is appropriate.

    Pools are namespaced by the active bundle, so switching bundles never
    mixes incompatible tokens.
    """

    def __init__(self, storage: TokenStorage, registry: ConfigRegistry) -> None:
        self._storage = storage
        self._registry = registry

    def _keys(self) -> tuple[str, str]:
        bundle = self._registry.active
        return bundle.storage_key_tokens, bundle.storage_key_count

    def load(self) -> list[Token]:
        key, _ = self._keys()
        return list(self._storage.load(key) or [])

    def count(self) -> int:
        return len(self.load())

    def pop_one(self) -> Optional[Token]:
        """Remove and return the earliest token, or ``None`` if empty."""

        tokens = self.load()
        if not tokens:
            return None
        token, remaining = tokens[0], tokens[1:]
        self.persist(remaining)
        logger.debug("Popped token, %d remaining", len(remaining))
        return token

    def persist(self, tokens: Sequence[Token]) -> None:
        key, count_key = self._keys()
        self._storage.save(key, count_key, list(tokens))

    def extend(self, tokens: Iterable[Token]) -> int:
        current = self.load()
        seen = set(current)
        for token in tokens:
            if token not in seen:
                current.append(token)
                seen.add(token)
        self.persist(current)
        return len(current)

    def clear_all(self) -> None:
        self._storage.clear()
