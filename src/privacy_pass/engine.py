"""Event-handling facade the host runtime talks to."""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Mapping, Optional, TypeVar

from .core.config import ClientSettings
from .core.errors import ConfigurationError
from .core.interfaces import HostRuntime, TokenCrypto, TokenStorage
from .core.models import CompletionEvent, NavigationEvent, RequestEvent, ResponseEvent, SendDecision
from .core.registry import ConfigRegistry
from .detection.challenge import ChallengeClassification, ChallengeDetector
from .detection.tasks import BackgroundTask, TaskRunner
from .issuance.trigger import IssuanceTrigger
from .redemption.builder import RedemptionBuilder
from .session.ledger import SessionState, SpendLedger
from .session.navigation import NavigationGuard
from .tokens.storage import JsonFileTokenStorage, MemoryTokenStorage
from .tokens.store import TokenStore

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BypassEngine:
    """Owns one session: its state tables, token pool and active bundle.

    Every handler returns a decision record for the host to apply. Fatal
    configuration errors halt the engine; afterwards events pass through
    untouched.
    """

    def __init__(
        self,
        host: HostRuntime,
        crypto: TokenCrypto,
        storage: Optional[TokenStorage] = None,
        *,
        registry: Optional[ConfigRegistry] = None,
        runner: Optional[TaskRunner] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.host = host
        self.crypto = crypto
        self.registry = registry or ConfigRegistry()
        self.store = TokenStore(storage if storage is not None else MemoryTokenStorage(), self.registry)
        self.ledger = SpendLedger(SessionState())
        self.runner = runner or TaskRunner()
        self._lock = threading.RLock()
        self._halted: Optional[ConfigurationError] = None
        self._update_callback: Callable[[], None] = lambda: None

        self.registry.subscribe(self._on_activate)
        self.builder = RedemptionBuilder(self.registry, self.store, self.ledger, host, crypto)
        self.navigation = NavigationGuard(self.registry, self.ledger, host)
        self.detector = ChallengeDetector(
            self.registry,
            self.builder,
            self.runner,
            self.clear_all,
            lock=self._lock,
            session_active=self.is_active,
        )
        self.issuance = IssuanceTrigger(
            self.registry,
            self.ledger,
            self.store,
            crypto,
            self.runner,
            host,
            clock=clock,
            lock=self._lock,
            session_active=self.is_active,
        )

    @classmethod
    def from_settings(cls, settings: ClientSettings, host: HostRuntime, crypto: TokenCrypto) -> "BypassEngine":
        return cls(
            host,
            crypto,
            JsonFileTokenStorage(settings.token_file),
            registry=ConfigRegistry(initial_id=settings.config_id),
            runner=TaskRunner(timeout=settings.http_timeout, max_workers=settings.max_workers),
        )

    # ------------------------------------------------------------------
    # Session control
    # ------------------------------------------------------------------
    @property
    def state(self) -> SessionState:
        return self.ledger.state

    @property
    def halted(self) -> Optional[ConfigurationError]:
        return self._halted

    def is_active(self) -> bool:
        return self._halted is None

    def _on_activate(self, previous, current) -> None:
        self.crypto.invalidate_cached_commitments(current.commitments)
        self.host.update_icon(self.store.count())

    def _dispatch(self, name: str, default: T, handler: Callable[..., T], *args: Any) -> T:
        with self._lock:
            if self._halted is not None:
                logger.warning("Ignoring %s: session halted (%s)", name, self._halted)
                return default
            try:
                return handler(*args)
            except ConfigurationError as exc:
                self._halted = exc
                logger.error("Fatal configuration error in %s: %s", name, exc)
                raise

    # ------------------------------------------------------------------
    # Host events
    # ------------------------------------------------------------------
    def on_headers_received(self, event: ResponseEvent, url: str) -> ChallengeClassification:
        return self._dispatch("headers-received", ChallengeClassification(), self.detector.inspect, event, url)

    def on_before_send_headers(self, request: RequestEvent, url: str) -> SendDecision:
        return self._dispatch("before-send-headers", SendDecision(), self.builder.on_before_send, request, url)

    def on_before_request(self, request: RequestEvent, url: str) -> Optional[BackgroundTask]:
        return self._dispatch("before-request", None, self.issuance.on_before_request, request, url)

    def on_completed(self, event: CompletionEvent) -> bool:
        def complete() -> bool:
            self.issuance.touch()
            return self.builder.on_completed(event.request_id, event.tab_id)

        return self._dispatch("completed", False, complete)

    def on_redirect(self, request_id: str, old_url: str, new_url: str) -> bool:
        return self._dispatch("redirect", False, self.navigation.on_redirect, request_id, old_url, new_url)

    def on_navigation_committed(self, event: NavigationEvent, url: str) -> bool:
        return self._dispatch(
            "navigation-committed",
            False,
            self.navigation.on_navigation_committed,
            event.tab_id,
            url,
            event.transition_type,
            event.qualifier,
        )

    # ------------------------------------------------------------------
    # Messaging surface
    # ------------------------------------------------------------------
    def get_token_count(self) -> int:
        with self._lock:
            return self.store.count()

    def clear_all(self) -> None:
        """Drop the token pool and every piece of session bookkeeping."""

        with self._lock:
            self.store.clear_all()
            self.ledger.reset_volatile()
            self.ledger.reset_spend_restrictions()
            self.ledger.clear_intents()
            self.host.update_icon(0)
            self._update_callback()

    def register_update_callback(self, callback: Callable[[], None]) -> None:
        self._update_callback = callback

    def handle_message(self, message: Mapping[str, Any]) -> Optional[int]:
        if message.get("callback"):
            self.register_update_callback(message["callback"])
        elif message.get("tokLen"):
            return self.get_token_count()
        elif message.get("clear"):
            self.clear_all()
        return None

    def close(self) -> None:
        self.runner.shutdown()
