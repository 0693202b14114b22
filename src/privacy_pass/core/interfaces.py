"""Contracts for the collaborators the protocol engine depends on."""

from __future__ import annotations

from typing import Any, Optional, Protocol, Sequence, Tuple, Union, runtime_checkable

from .models import Token

IconValue = Union[int, str]


@runtime_checkable
class HostRuntime(Protocol):
    """Browser-side effects the engine asks the host to apply."""

    def update_icon(self, value: IconValue) -> None:
        ...

    def reload_tab(self, tab_id: int) -> None:
        ...

    def update_tab(self, tab_id: int, url: str) -> None:
        ...


@runtime_checkable
class TokenCrypto(Protocol):
    """Blind-signature primitives. None of the maths lives in this package."""

    def build_redemption_evidence(self, token: Token, hostname: str, method_and_path: str) -> str:
        ...

    def build_issue_payload(self, count: int) -> Tuple[Any, str]:
        """Generate ``count`` blinded tokens.

        Returns the pending material needed to unblind later and the encoded
        issue request.
        """
        ...

    def unblind_tokens(self, pending: Any, signatures: Any) -> Sequence[Token]:
        ...

    def invalidate_cached_commitments(self, commitments: str) -> None:
        """Drop cached issuer commitments so the next round reloads ``commitments``."""
        ...


@runtime_checkable
class TokenStorage(Protocol):
    """Durable storage for token pools, namespaced by key."""

    def load(self, key: str) -> Optional[list[Token]]:
        ...

    def save(self, key: str, count_key: str, tokens: Sequence[Token]) -> None:
        ...

    def clear(self) -> None:
        ...
