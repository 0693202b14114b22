from privacy_pass.core.config import ClientSettings  # type: ignore[import]
from privacy_pass.engine import BypassEngine  # type: ignore[import]
from privacy_pass.tokens.storage import JsonFileTokenStorage  # type: ignore[import]

from tests.helpers.fakes import FakeCrypto, RecordingHost, make_engine
from tests.helpers.privacy_pass_imports import (
    CHL_BYPASS_SUPPORT,
    CompletionEvent,
    NavigationEvent,
    RequestEvent,
    ResponseEvent,
)


def test_handle_message_surface():
    engine, host, _ = make_engine(tokens=4)
    updates = []

    engine.handle_message({"callback": lambda: updates.append("refresh")})
    assert engine.handle_message({"tokLen": True}) == 4

    engine.handle_message({"clear": True})

    assert engine.get_token_count() == 0
    assert updates == ["refresh"]
    assert host.icons == [0]


def test_clear_all_forgets_spends_and_intents():
    engine, _, _ = make_engine(tokens=2)
    engine.ledger.set_intent("www.example.com")
    engine.ledger.mark_spent("r", "https://www.example.com/", 1)
    engine.state.ready_sign = True

    engine.clear_all()

    assert not engine.ledger.has_intent("www.example.com")
    assert not engine.ledger.is_url_spent("https://www.example.com/")
    assert engine.ledger.spend_state("r") is None


def test_reload_flow_through_navigation():
    """Challenge, deferred reload on commit, spend, then reload on completion."""

    engine, host, _ = make_engine(tokens=2)
    url = "https://www.example.com/"
    challenge = ResponseEvent(
        request_id="first",
        status_code=403,
        headers=[{"name": CHL_BYPASS_SUPPORT, "value": "1"}],
        tab_id=7,
    )

    assert engine.on_headers_received(challenge, url).attempted is True
    assert engine.state.future_reload[7] == url

    engine.on_navigation_committed(NavigationEvent(tab_id=7, transition_type="typed"), url)
    assert host.updates == [(7, url)]

    decision = engine.on_before_send_headers(RequestEvent(request_id="second", tab_id=7), url)
    assert decision.modified is True
    assert engine.state.target[7] == ""

    engine.on_completed(CompletionEvent(request_id="second", tab_id=7))
    engine.on_completed(CompletionEvent(request_id="second", tab_id=7))
    assert host.reloads == [7]
    assert engine.get_token_count() == 1


def test_from_settings_uses_file_storage(tmp_path):
    settings = ClientSettings(config_id=2, token_file=tmp_path / "pool.json", max_workers=1)

    engine = BypassEngine.from_settings(settings, RecordingHost(), FakeCrypto())
    try:
        assert engine.registry.active_id == 2
        assert isinstance(engine.store._storage, JsonFileTokenStorage)
        assert engine.get_token_count() == 0
    finally:
        engine.close()
