"""Holds the single active protocol bundle and swaps it atomically."""

from __future__ import annotations

import logging
from typing import Callable, List, Mapping, Optional

from .bundles import BUILTIN_BUNDLES, ProtocolConfig
from .errors import UnknownConfigVariant

logger = logging.getLogger(__name__)

ActivationListener = Callable[[ProtocolConfig, ProtocolConfig], None]


class ConfigRegistry:
    """Exposes the active :class:`ProtocolConfig` behind one accessor.

    ``activate`` rebinds a single reference, so an observer sees either the
    previous bundle or the new one and never a mix of the two. Listeners run
    after the swap with ``(previous, current)``.
    """

    def __init__(
        self,
        bundles: Optional[Mapping[int, ProtocolConfig]] = None,
        initial_id: int = 1,
    ) -> None:
        self._bundles = dict(bundles if bundles is not None else BUILTIN_BUNDLES)
        if initial_id not in self._bundles:
            raise UnknownConfigVariant(initial_id)
        self._active = self._bundles[initial_id]
        self._listeners: List[ActivationListener] = []

    @property
    def active(self) -> ProtocolConfig:
        return self._active

    @property
    def active_id(self) -> int:
        return self._active.id

    def known_ids(self) -> list[int]:
        return sorted(self._bundles)

    def get(self, config_id: int) -> ProtocolConfig:
        try:
            return self._bundles[config_id]
        except KeyError:
            raise UnknownConfigVariant(config_id) from None

    def subscribe(self, listener: ActivationListener) -> None:
        self._listeners.append(listener)

    def activate(self, config_id: int) -> ProtocolConfig:
        bundle = self.get(config_id)
        previous = self._active
        self._active = bundle
        logger.debug("Activated configuration %s (was %s)", bundle.id, previous.id)
        for listener in self._listeners:
            listener(previous, bundle)
        return bundle
