"""Decides when to request fresh tokens and handles the issuance round trip."""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable, Optional

from ..core.bundles import CHL_BYPASS_SUPPORT
from ..core.interfaces import HostRuntime, TokenCrypto
from ..core.models import IssuanceRequest, RequestEvent
from ..core.registry import ConfigRegistry
from ..detection.tasks import BackgroundTask, RemoteResponse, TaskRunner
from ..session.ledger import SpendLedger
from ..tokens.store import TokenStore
from .requests import IssuanceContext, builder_for, parse_signatures

logger = logging.getLogger(__name__)


class IssuanceTrigger:
    def __init__(
        self,
        registry: ConfigRegistry,
        ledger: SpendLedger,
        store: TokenStore,
        crypto: TokenCrypto,
        runner: TaskRunner,
        host: HostRuntime,
        *,
        clock: Callable[[], float] = time.monotonic,
        lock: Optional[threading.RLock] = None,
        session_active: Callable[[], bool] = lambda: True,
    ) -> None:
        self._registry = registry
        self._ledger = ledger
        self._store = store
        self._crypto = crypto
        self._runner = runner
        self._host = host
        self._clock = clock
        self._lock = lock or threading.RLock()
        self._session_active = session_active

    def touch(self) -> None:
        """Note that a response has just completed."""

        self._ledger.state.time_since_last_resp = self._clock()

    def maybe_reset(self) -> bool:
        config = self._registry.active
        idle_since = self._ledger.state.time_since_last_resp
        if config.var_reset and self._clock() - config.var_reset_seconds > idle_since:
            self._ledger.reset_volatile()
            return True
        return False

    def on_before_request(self, request: RequestEvent, url: str) -> Optional[BackgroundTask]:
        self.maybe_reset()

        config = self._registry.active
        state = self._ledger.state
        if not config.sign or not state.ready_sign:
            return None

        build = builder_for(config.variant)
        ctx = IssuanceContext(config=config, ledger=self._ledger, store=self._store, crypto=self._crypto)
        info = build(ctx, url, request.tab_id)
        if info is None:
            return None
        state.ready_sign = False
        logger.debug("Dispatching issuance request for %d tokens to %s", config.tokens_per_request, url)

        def job(cancelled: threading.Event) -> int:
            response = self._runner.post_form(
                info.url, info.body, {CHL_BYPASS_SUPPORT: str(info.config_id)}
            )
            if response is None or cancelled.is_set():
                return 0
            return self.on_issuance_response(info, response)

        return self._runner.submit("issuance", job)

    def on_issuance_response(self, info: IssuanceRequest, response: RemoteResponse) -> int:
        """Store the newly signed tokens. Returns how many were added."""

        with self._lock:
            if not self._session_active():
                return 0
            config = self._registry.active
            if config.id != info.config_id:
                logger.warning(
                    "Dropping issuance response for configuration %s, %s is now active",
                    info.config_id,
                    config.id,
                )
                return 0
            if response.status_code != 200:
                logger.warning("Issuance request to %s returned %s", info.url, response.status_code)
                return 0
            try:
                signatures = parse_signatures(response.text, config.sign_resp_format)
            except ValueError as exc:
                logger.warning("Malformed issuance response from %s: %s", info.url, exc)
                return 0

            try:
                tokens = list(self._crypto.unblind_tokens(info.pending, signatures))
            except ValueError as exc:
                logger.warning("Rejected signatures from %s: %s", info.url, exc)
                return 0
            total = self._store.extend(tokens)
            self._host.update_icon(total)
            if config.sign_reload:
                self._host.reload_tab(info.tab_id)
            logger.debug("Stored %d new tokens (%d total)", len(tokens), total)
            return len(tokens)
