"""Side-channel HTTP work run off the event-handling path."""

from __future__ import annotations

import concurrent.futures
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, List, Mapping, Optional

import requests

from ..core.models import Header

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0
FORM_CONTENT_TYPE = "application/x-www-form-urlencoded"


@dataclass(frozen=True)
class RemoteResponse:
    status_code: int
    headers: List[Header] = field(default_factory=list)
    text: str = ""


@dataclass
class BackgroundTask:
    """Handle for a fire-and-forget request. ``result`` is the completion outcome."""

    name: str
    future: concurrent.futures.Future
    cancelled: threading.Event

    def cancel(self) -> None:
        self.cancelled.set()
        self.future.cancel()

    def done(self) -> bool:
        return self.future.done()

    def result(self, timeout: Optional[float] = None) -> Any:
        return self.future.result(timeout=timeout)


def _to_headers(raw: Mapping[str, str]) -> List[Header]:
    return [{"name": name, "value": value} for name, value in raw.items()]


class TaskRunner:
    """Owns the HTTP session and worker pool used by background tasks."""

    def __init__(
        self,
        session: Optional[requests.Session] = None,
        executor: Optional[concurrent.futures.Executor] = None,
        *,
        timeout: float = DEFAULT_TIMEOUT,
        max_workers: int = 4,
    ) -> None:
        self.session = session or requests.Session()
        self._executor = executor or concurrent.futures.ThreadPoolExecutor(
            max_workers=max_workers, thread_name_prefix="privacy-pass"
        )
        self.timeout = timeout

    def submit(self, name: str, job: Callable[[threading.Event], Any]) -> BackgroundTask:
        cancelled = threading.Event()
        future = self._executor.submit(job, cancelled)
        return BackgroundTask(name=name, future=future, cancelled=cancelled)

    def fetch_headers(self, url: str) -> Optional[RemoteResponse]:
        """GET ``url`` and stop once the headers are in."""

        try:
            response = self.session.get(url, timeout=self.timeout, allow_redirects=False, stream=True)
        except requests.RequestException as exc:
            logger.warning("Challenge probe to %s failed: %s", url, exc)
            return None
        try:
            return RemoteResponse(status_code=response.status_code, headers=_to_headers(response.headers))
        finally:
            response.close()

    def post_form(self, url: str, body: str, headers: Mapping[str, str]) -> Optional[RemoteResponse]:
        request_headers = {"Content-Type": FORM_CONTENT_TYPE, **headers}
        try:
            response = self.session.post(url, data=body, headers=request_headers, timeout=self.timeout)
        except requests.RequestException as exc:
            logger.warning("Issuance request to %s failed: %s", url, exc)
            return None
        return RemoteResponse(
            status_code=response.status_code,
            headers=_to_headers(response.headers),
            text=response.text,
        )

    def shutdown(self, wait: bool = False) -> None:
        self._executor.shutdown(wait=wait)
        self.session.close()
