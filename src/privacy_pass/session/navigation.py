"""Redirect and navigation validation.

Spend intent must not be smuggled across redirects or tab opens that the
active bundle does not trust.
"""

from __future__ import annotations

import logging
from typing import Optional

from ..core.interfaces import HostRuntime
from ..core.patterns import contains_any, url_host
from ..core.registry import ConfigRegistry
from .ledger import SpendLedger, SpendState

logger = logging.getLogger(__name__)

PLAIN_SCHEME = "http://"


class NavigationGuard:
    def __init__(self, registry: ConfigRegistry, ledger: SpendLedger, host: HostRuntime) -> None:
        self._registry = registry
        self._ledger = ledger
        self._host = host

    def valid_redirect(self, old_url: str, new_url: str) -> bool:
        """``True`` if ``new_url`` is a scheme upgrade of ``old_url``."""

        if not old_url.startswith(PLAIN_SCHEME):
            return False
        remainder = old_url[len(PLAIN_SCHEME):]
        return any(prefix + remainder == new_url for prefix in self._registry.active.valid_redirects)

    def on_redirect(self, request_id: str, old_url: str, new_url: str) -> bool:
        """Record the redirect and carry spend intent over at most ``max_redirects`` hops.

        Returns ``True`` when intent was re-armed for the new host.
        """

        state = self._ledger.state
        state.https_redirect[new_url] = self.valid_redirect(old_url, new_url)

        config = self._registry.active
        if (
            self._ledger.spend_state(request_id) is SpendState.MARKED
            and self._ledger.redirects(request_id) < config.max_redirects
        ):
            self._ledger.settle(request_id)
            self._ledger.set_intent(url_host(new_url))
            hops = self._ledger.next_hop(request_id)
            logger.debug("Spend intent follows redirect %s -> %s (hop %d)", old_url, new_url, hops)
            return True
        return False

    def bad_transition(self, url: str, qualifier: Optional[str], transition_type: str) -> bool:
        https_redirect = self._ledger.state.https_redirect
        if https_redirect.get(url):
            # whitelisted exactly once
            https_redirect[url] = False
            return False
        config = self._registry.active
        maybe_good = transition_type in config.valid_transitions
        if not qualifier and not maybe_good:
            return True
        return qualifier in config.bad_transition

    def is_new_tab(self, url: str) -> bool:
        return contains_any(url, self._registry.active.new_tabs)

    def on_navigation_committed(
        self,
        tab_id: int,
        url: str,
        transition_type: str,
        qualifier: Optional[str] = None,
    ) -> bool:
        """Update the tab target if the navigation is trusted.

        Returns ``True`` when the target was updated.
        """

        config = self._registry.active
        if (
            transition_type in config.bad_navigation
            or self.bad_transition(url, qualifier, transition_type)
            or self.is_new_tab(url)
        ):
            logger.debug("Rejected navigation to %s (%s, %s)", url, transition_type, qualifier)
            return False

        state = self._ledger.state
        state.target[tab_id] = url
        if state.future_reload.get(tab_id) == url:
            del state.future_reload[tab_id]
            self._host.update_tab(tab_id, url)
        return True
