"""Shared data structures exchanged with the host runtime."""

from __future__ import annotations

import base64
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, TypedDict


class Header(TypedDict):
    """A single HTTP header as delivered by the host runtime."""

    name: str
    value: str


@dataclass(frozen=True)
class Token:
    """An unspent token produced by the cryptography collaborator."""

    data: bytes
    point: bytes
    blind: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "data": base64.b64encode(self.data).decode("ascii"),
            "point": base64.b64encode(self.point).decode("ascii"),
        }
        if self.blind is not None:
            payload["blind"] = self.blind
        return payload

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "Token":
        return cls(
            data=base64.b64decode(raw["data"]),
            point=base64.b64decode(raw["point"]),
            blind=raw.get("blind"),
        )


@dataclass(frozen=True)
class ResponseEvent:
    request_id: str
    status_code: int
    headers: Sequence[Header] = ()
    tab_id: int = -1


@dataclass
class RequestEvent:
    """Outbound request as seen before its headers are sent."""

    request_id: str
    method: str = "GET"
    tab_id: int = -1
    request_headers: List[Header] = field(default_factory=list)


@dataclass(frozen=True)
class CompletionEvent:
    request_id: str
    tab_id: int = -1


@dataclass(frozen=True)
class NavigationEvent:
    tab_id: int
    transition_type: str
    transition_qualifiers: Sequence[str] = ()

    @property
    def qualifier(self) -> Optional[str]:
        return self.transition_qualifiers[0] if self.transition_qualifiers else None


@dataclass(frozen=True)
class SendDecision:
    """Result of the before-send-headers handler.

    ``request_headers`` is ``None`` when the request must proceed unmodified.
    """

    request_headers: Optional[List[Header]] = None

    @property
    def modified(self) -> bool:
        return self.request_headers is not None

    def as_host_response(self) -> dict[str, Any]:
        if self.request_headers is None:
            return {"cancel": False}
        return {"requestHeaders": self.request_headers}


@dataclass(frozen=True)
class IssuanceRequest:
    """Descriptor of a token issuance round built for a specific bundle."""

    url: str
    body: str
    config_id: int
    pending: Any = None
    tab_id: int = -1


def header_lookup(headers: Sequence[Header], name: str) -> Optional[str]:
    """Case-insensitive lookup of the first header called ``name``."""

    lowered = name.lower()
    for header in headers:
        if header["name"].lower() == lowered:
            return header["value"]
    return None
