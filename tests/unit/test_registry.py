from dataclasses import fields

import pytest

from tests.helpers.fakes import make_engine, make_tokens
from tests.helpers.privacy_pass_imports import (
    CLOUDFLARE_CONFIG,
    HCAPTCHA_CONFIG,
    ConfigRegistry,
    ProtocolVariant,
    UnknownConfigVariant,
)


def test_activate_swaps_every_field_together():
    registry = ConfigRegistry(initial_id=1)
    observed = []
    registry.subscribe(lambda previous, current: observed.append(registry.active))

    registry.activate(2)

    active = registry.active
    for item in fields(HCAPTCHA_CONFIG):
        assert getattr(active, item.name) == getattr(HCAPTCHA_CONFIG, item.name)
    assert active.storage_key_tokens == "bypass-tokens-2"
    assert active.storage_key_count == "bypass-tokens-count-2"
    assert observed == [HCAPTCHA_CONFIG]


def test_listeners_receive_previous_and_current():
    registry = ConfigRegistry(initial_id=1)
    calls = []
    registry.subscribe(lambda previous, current: calls.append((previous.id, current.id)))

    registry.activate(2)
    registry.activate(1)

    assert calls == [(1, 2), (2, 1)]


def test_unknown_bundle_is_fatal_and_keeps_active():
    registry = ConfigRegistry(initial_id=1)

    with pytest.raises(UnknownConfigVariant):
        registry.activate(99)

    assert registry.active is CLOUDFLARE_CONFIG


def test_unknown_initial_bundle():
    with pytest.raises(UnknownConfigVariant):
        ConfigRegistry(initial_id=7)


def test_known_ids_and_variants():
    registry = ConfigRegistry()

    assert registry.known_ids() == [0, 1, 2]
    assert registry.get(0).variant is ProtocolVariant.EXAMPLE
    assert registry.get(0).sign is False


def test_engine_activation_invalidates_commitments_and_refreshes_icon():
    engine, host, crypto = make_engine(tokens=0, config_id=1)
    engine.registry.activate(2)
    engine.store.persist(make_tokens(4))

    engine.registry.activate(1)
    engine.registry.activate(2)

    assert crypto.invalidations == ["HC", "CF", "HC"]
    assert host.icons == [0, 0, 4]
