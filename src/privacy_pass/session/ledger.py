"""Per-session bookkeeping for spends, redirects and navigation targets."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Set, Tuple

logger = logging.getLogger(__name__)

SpendKey = Tuple[str, int]


class SpendState(Enum):
    MARKED = "marked"
    SETTLED = "settled"


@dataclass(slots=True)
class SessionState:
    """Mutable tables owned by one client session.

    Tables are keyed by request id, host, URL or tab id, so events for
    different keys never touch the same entry.
    """

    redirect_count: Dict[str, int] = field(default_factory=dict)
    spend_id: Dict[SpendKey, SpendState] = field(default_factory=dict)
    spent_hosts: Dict[str, int] = field(default_factory=dict)
    spent_url: Set[str] = field(default_factory=set)
    spend_intent: Set[str] = field(default_factory=set)
    https_redirect: Dict[str, bool] = field(default_factory=dict)
    sent_tokens: Set[str] = field(default_factory=set)
    target: Dict[int, str] = field(default_factory=dict)
    future_reload: Dict[int, str] = field(default_factory=dict)
    spent_tab: Dict[int, List[str]] = field(default_factory=dict)
    ready_sign: bool = False
    time_since_last_resp: float = 0.0


class SpendLedger:
    """Idempotent state transitions over a :class:`SessionState`."""

    def __init__(self, state: Optional[SessionState] = None) -> None:
        self.state = state or SessionState()

    # ------------------------------------------------------------------
    # Spend intent (per host)
    # ------------------------------------------------------------------
    def set_intent(self, host: str) -> None:
        self.state.spend_intent.add(host)

    def clear_intent(self, host: str) -> None:
        self.state.spend_intent.discard(host)

    def has_intent(self, host: str) -> bool:
        return host in self.state.spend_intent

    def clear_intents(self) -> None:
        self.state.spend_intent.clear()

    # ------------------------------------------------------------------
    # Host ceilings
    # ------------------------------------------------------------------
    def host_spends(self, host: str) -> int:
        return self.state.spent_hosts.get(host, 0)

    def at_ceiling(self, host: str, max_spends: Optional[int]) -> bool:
        if not max_spends:
            return False
        return self.host_spends(host) >= max_spends

    def increment_host(self, host: str) -> int:
        self.state.spent_hosts[host] = self.host_spends(host) + 1
        return self.state.spent_hosts[host]

    # ------------------------------------------------------------------
    # Per-request and per-URL spends
    # ------------------------------------------------------------------
    def _spend_key(self, request_id: str) -> SpendKey:
        return (request_id, self.state.redirect_count.get(request_id, 0))

    def is_url_spent(self, url: str) -> bool:
        return url in self.state.spent_url

    def spend_state(self, request_id: str) -> Optional[SpendState]:
        return self.state.spend_id.get(self._spend_key(request_id))

    def mark_spent(self, request_id: str, url: str, tab_id: int) -> bool:
        """Record a spend for the current hop of ``request_id``.

        Returns ``False`` without touching anything if this hop already
        carried a spend.
        """

        key = self._spend_key(request_id)
        if key in self.state.spend_id:
            return False
        self.state.spend_id[key] = SpendState.MARKED
        self.state.spent_url.add(url)
        self.record_tab_spend(tab_id, url)
        logger.debug("Spend recorded for request %s at %s", request_id, url)
        return True

    def settle(self, request_id: str) -> bool:
        """Close the current hop. ``True`` only for a hop that had spent."""

        key = self._spend_key(request_id)
        if self.state.spend_id.get(key) is not SpendState.MARKED:
            return False
        self.state.spend_id[key] = SpendState.SETTLED
        return True

    def record_tab_spend(self, tab_id: int, url: str) -> None:
        self.state.spent_tab.setdefault(tab_id, []).append(url)

    def spent_urls_for_tab(self, tab_id: int) -> list[str]:
        return list(self.state.spent_tab.get(tab_id, []))

    # ------------------------------------------------------------------
    # Redirect hops
    # ------------------------------------------------------------------
    def redirects(self, request_id: str) -> int:
        return self.state.redirect_count.get(request_id, 0)

    def next_hop(self, request_id: str) -> int:
        self.state.redirect_count[request_id] = self.redirects(request_id) + 1
        return self.state.redirect_count[request_id]

    # ------------------------------------------------------------------
    # Resets
    # ------------------------------------------------------------------
    def reset_volatile(self) -> None:
        state = self.state
        state.redirect_count = {}
        state.sent_tokens = set()
        state.target = {}
        state.spend_id = {}
        state.future_reload = {}
        state.spent_hosts = {}
        logger.debug("Volatile session state reset")

    def reset_spend_restrictions(self) -> None:
        self.state.spent_tab = {}
        self.state.spent_url = set()
        logger.debug("Spend restrictions reset")
