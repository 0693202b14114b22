"""Response inspection: errors, bypassable challenges and the fallback probe."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Optional

from ..core.bundles import CHL_BYPASS_RESPONSE, CHL_BYPASS_SUPPORT
from ..core.errors import ProtocolConnectivityFailure, ProtocolVerificationFailure
from ..core.models import Header, ResponseEvent, header_lookup
from ..core.patterns import url_origin
from ..core.registry import ConfigRegistry
from ..redemption.builder import RedemptionBuilder, is_excluded_resource
from .tasks import BackgroundTask, RemoteResponse, TaskRunner

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ChallengeClassification:
    was_challenge: bool = False
    used_fallback_probe: bool = False
    is_excluded_resource: bool = False
    attempted: bool = False
    probe: Optional[BackgroundTask] = None

    def as_host_response(self) -> dict:
        return {
            "attempted": self.attempted,
            "xhr": self.probe if self.probe is not None else False,
            "favicon": self.is_excluded_resource,
        }


def parse_config_id(value: str) -> Optional[int]:
    try:
        return int(value.strip())
    except (AttributeError, ValueError):
        return None


class ChallengeDetector:
    def __init__(
        self,
        registry: ConfigRegistry,
        builder: RedemptionBuilder,
        runner: TaskRunner,
        clear_storage: Callable[[], None],
        *,
        lock: Optional[threading.RLock] = None,
        session_active: Callable[[], bool] = lambda: True,
    ) -> None:
        self._registry = registry
        self._builder = builder
        self._runner = runner
        self._clear_storage = clear_storage
        self._lock = lock or threading.RLock()
        self._session_active = session_active

    def is_bypass_header(self, header: Header) -> bool:
        """Checks for the support header and switches bundle if it names another one."""

        if header["name"].lower() != CHL_BYPASS_SUPPORT:
            return False
        config_id = parse_config_id(header["value"])
        if not config_id:
            return False
        if config_id != self._registry.active_id:
            self._registry.activate(config_id)
        return True

    def _check_error(self, header: Header, url: str) -> None:
        if header["name"].lower() != CHL_BYPASS_RESPONSE:
            return
        config = self._registry.active
        code = header["value"]
        if code == config.verify_error:
            logger.warning("Verification failure reported for %s, clearing tokens", url)
            self._clear_storage()
            raise ProtocolVerificationFailure(url, code)
        if code == config.connection_error:
            logger.warning("Connectivity failure reported for %s", url)
            raise ProtocolConnectivityFailure(url, code)

    def inspect(self, event: ResponseEvent, url: str) -> ChallengeClassification:
        if is_excluded_resource(self._registry.active, url):
            return ChallengeClassification(is_excluded_resource=True)

        activated = False
        for header in event.headers:
            self._check_error(header, url)
            # correct status code with the support header marks a bypassable challenge
            if self.is_bypass_header(header) and self._registry.active.is_challenge_status(event.status_code):
                activated = True

        probe = None
        if self._registry.active.uses_direct_request:
            probe = self.try_direct_request(event, url)

        attempted = self._builder.decide_redeem(url, event.tab_id) if activated else False
        return ChallengeClassification(
            was_challenge=activated,
            used_fallback_probe=probe is not None,
            attempted=attempted,
            probe=probe,
        )

    # ------------------------------------------------------------------
    # Fallback probe for responses delivered without headers
    # ------------------------------------------------------------------
    def try_direct_request(self, event: ResponseEvent, url: str) -> Optional[BackgroundTask]:
        config = self._registry.active
        endpoint = config.challenge_endpoint
        if event.headers or not config.is_challenge_status(event.status_code) or not endpoint:
            return None

        probe_url = url_origin(url) + endpoint
        logger.debug("Empty headers for %s, probing %s", url, probe_url)

        def job(cancelled: threading.Event) -> bool:
            response = self._runner.fetch_headers(probe_url)
            if response is None or cancelled.is_set():
                return False
            return self.on_probe_response(event, url, response)

        return self._runner.submit("challenge-probe", job)

    def on_probe_response(self, event: ResponseEvent, url: str, response: RemoteResponse) -> bool:
        """Re-enter with the probe answer. Guards are re-read, not captured."""

        with self._lock:
            if not self._session_active():
                return False
            config = self._registry.active
            support = header_lookup(response.headers, CHL_BYPASS_SUPPORT)
            if not config.is_challenge_status(response.status_code):
                return False
            if support is None or parse_config_id(support) != config.id:
                return False
            return self._builder.decide_redeem(url, event.tab_id)
