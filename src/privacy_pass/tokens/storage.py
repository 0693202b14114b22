"""Persistence backends for token pools."""

from __future__ import annotations

import binascii
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from ..core.models import Token

logger = logging.getLogger(__name__)


def decode_pool(key: str, raw: Any) -> Optional[list[Token]]:
    """Rebuild a stored pool. Malformed entries drop the whole pool."""

    if raw is None:
        return None
    try:
        return [Token.from_dict(item) for item in raw]
    except (KeyError, TypeError, ValueError, binascii.Error) as exc:
        logger.warning("Ignoring malformed token pool %s: %s", key, exc)
        return None


@dataclass
class MemoryTokenStorage:
    """Keeps pools in a dictionary. Used by tests and short-lived sessions."""

    data: Dict[str, Any] = field(default_factory=dict)

    def load(self, key: str) -> Optional[list[Token]]:
        return decode_pool(key, self.data.get(key))

    def save(self, key: str, count_key: str, tokens: Sequence[Token]) -> None:
        self.data[key] = [token.to_dict() for token in tokens]
        self.data[count_key] = len(tokens)

    def clear(self) -> None:
        self.data.clear()


@dataclass
class JsonFileTokenStorage:
    """Stores every namespaced pool in a single JSON document."""

    path: Path

    def _read(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning("Ignoring unreadable token file %s", self.path)
            return {}
        return raw if isinstance(raw, dict) else {}

    def _write(self, data: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, indent=4), encoding="utf-8")

    def load(self, key: str) -> Optional[list[Token]]:
        return decode_pool(key, self._read().get(key))

    def save(self, key: str, count_key: str, tokens: Sequence[Token]) -> None:
        data = self._read()
        data[key] = [token.to_dict() for token in tokens]
        data[count_key] = len(tokens)
        self._write(data)

    def clear(self) -> None:
        if self.path.exists():
            self.path.unlink()
