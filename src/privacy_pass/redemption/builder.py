"""Spend decisions and construction of redemption headers."""

from __future__ import annotations

import logging

from ..core.bundles import ProtocolConfig, RedeemMethod
from ..core.interfaces import HostRuntime, TokenCrypto
from ..core.models import Header, RequestEvent, SendDecision
from ..core.patterns import matches_any, url_host, url_hostname, url_path
from ..core.registry import ConfigRegistry
from ..session.ledger import SpendLedger
from ..tokens.store import TokenStore

logger = logging.getLogger(__name__)

LOW_TOKENS_ICON = "!"


def is_excluded_resource(config: ProtocolConfig, url: str) -> bool:
    return matches_any(url, config.excluded_resource_patterns)


def is_error_page(config: ProtocolConfig, url: str) -> bool:
    return matches_any(url, config.error_page_patterns)


class RedemptionBuilder:
    """Decides when to spend and attaches the evidence to outbound requests."""

    def __init__(
        self,
        registry: ConfigRegistry,
        store: TokenStore,
        ledger: SpendLedger,
        host: HostRuntime,
        crypto: TokenCrypto,
    ) -> None:
        self._registry = registry
        self._store = store
        self._ledger = ledger
        self._host = host
        self._crypto = crypto

    # ------------------------------------------------------------------
    # Response side
    # ------------------------------------------------------------------
    def decide_redeem(self, url: str, tab_id: int = -1) -> bool:
        """Mark spend intent for ``url`` if a token can be spent there.

        Returns ``True`` when intent was marked. When nothing was marked and
        signing is enabled, the next eligible request triggers issuance.
        """

        if self._ledger.is_url_spent(url):
            return False

        config = self._registry.active
        count = self._store.count()
        attempted = False
        if config.redeem:
            if count > 0 and not self._is_captcha_host(config, url):
                self.attempt_redeem(url, tab_id)
                attempted = True
            elif count == 0:
                self._host.update_icon(LOW_TOKENS_ICON)

        if not attempted and config.sign:
            self._ledger.state.ready_sign = True
        return attempted

    def attempt_redeem(self, url: str, tab_id: int) -> None:
        self._ledger.set_intent(url_host(url))
        state = self._ledger.state
        target = state.target.get(tab_id)
        if target and target == url:
            self._host.update_tab(tab_id, target)
        elif not target or not is_excluded_resource(self._registry.active, target):
            # the target is not known yet, reload once navigation commits
            state.future_reload[tab_id] = url
        logger.debug("Spend intent set for %s", url)

    @staticmethod
    def _is_captcha_host(config: ProtocolConfig, url: str) -> bool:
        return bool(config.captcha_domain) and config.captcha_domain in url_host(url)

    # ------------------------------------------------------------------
    # Request side
    # ------------------------------------------------------------------
    def can_spend(self, config: ProtocolConfig, request: RequestEvent, url: str) -> bool:
        host = url_host(url)
        return (
            config.redeem
            and not is_error_page(config, url)
            and not is_excluded_resource(config, url)
            and not self._ledger.at_ceiling(host, config.max_spends)
            and self._ledger.has_intent(host)
            and self._ledger.spend_state(request.request_id) is None
        )

    def on_before_send(self, request: RequestEvent, url: str) -> SendDecision:
        config = self._registry.active
        if not self.can_spend(config, request, url):
            return SendDecision()

        if config.redeem_method is RedeemMethod.NO_RELOAD:
            return self._inline_headers(config, request, url)
        if config.redeem_method is RedeemMethod.RELOAD and not self._ledger.is_url_spent(url):
            return self._reload_headers(config, request, url)
        return SendDecision()

    def _inline_headers(self, config: ProtocolConfig, request: RequestEvent, url: str) -> SendDecision:
        host = url_host(url)
        is_redeem_url = matches_any(url, config.spend_urls)
        self._ledger.clear_intent(host)
        if not is_redeem_url:
            return SendDecision()

        token = self._store.pop_one()
        if token is None:
            self._no_token()
            return SendDecision()
        self._ledger.increment_host(host)

        hostname = url_hostname(url)
        http_path = f"{request.method} {url_path(url)}"
        evidence = self._crypto.build_redemption_evidence(token, hostname, http_path)
        headers: list[Header] = list(request.request_headers)
        headers.append({"name": config.header_name, "value": evidence})
        headers.append({"name": config.header_host_name, "value": hostname})
        headers.append({"name": config.header_path_name, "value": http_path})
        self._ledger.mark_spent(request.request_id, url, request.tab_id)
        return SendDecision(request_headers=headers)

    def _reload_headers(self, config: ProtocolConfig, request: RequestEvent, url: str) -> SendDecision:
        host = url_host(url)
        self._ledger.clear_intent(host)
        self._ledger.increment_host(host)
        self._ledger.state.target[request.tab_id] = ""

        token = self._store.pop_one()
        if token is None:
            self._no_token()
            return SendDecision()

        http_path = f"{request.method} {url_path(url)}"
        evidence = self._crypto.build_redemption_evidence(token, url_hostname(url), http_path)
        headers: list[Header] = list(request.request_headers)
        headers.append({"name": config.header_name, "value": evidence})
        self._ledger.mark_spent(request.request_id, url, request.tab_id)
        return SendDecision(request_headers=headers)

    def _no_token(self) -> None:
        logger.debug("No token available for spend")
        if self._registry.active.sign:
            self._ledger.state.ready_sign = True

    # ------------------------------------------------------------------
    # Completion
    # ------------------------------------------------------------------
    def on_completed(self, request_id: str, tab_id: int) -> bool:
        """Reload the tab once for a request that spent under the reload method."""

        spent = self._ledger.settle(request_id)
        if spent and self._registry.active.redeem_method is RedeemMethod.RELOAD:
            self._host.reload_tab(tab_id)
            return True
        return False
