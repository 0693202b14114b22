from tests.helpers.fakes import make_engine
from tests.helpers.privacy_pass_imports import NavigationEvent, RequestEvent


def _spend(engine, request_id="req", url="http://www.example.com/"):
    engine.ledger.set_intent("www.example.com")
    return engine.on_before_send_headers(
        RequestEvent(request_id=request_id, tab_id=1),
        url,
    )


def test_upgrade_redirect_whitelists_next_navigation_once():
    engine, _, _ = make_engine()
    old_url = "http://www.example.com/"
    new_url = "https://www.example.com/"

    engine.on_redirect("req", old_url, new_url)
    event = NavigationEvent(tab_id=4, transition_type="form_submit")

    assert engine.on_navigation_committed(event, new_url) is True
    assert engine.state.target[4] == new_url
    # the whitelist entry is consumed
    assert engine.on_navigation_committed(event, new_url) is False


def test_non_upgrade_redirect_is_not_whitelisted():
    engine, _, _ = make_engine()

    engine.on_redirect("req", "http://www.example.com/", "https://evil.example/")

    assert engine.state.https_redirect["https://evil.example/"] is False
    event = NavigationEvent(tab_id=4, transition_type="form_submit")
    assert engine.on_navigation_committed(event, "https://evil.example/") is False


def test_valid_redirect_templates():
    engine, _, _ = make_engine()
    guard = engine.navigation

    assert guard.valid_redirect("http://example.com/a", "https://www.example.com/a") is True
    assert guard.valid_redirect("http://example.com/a", "http://www.example.com/a") is True
    assert guard.valid_redirect("https://example.com/a", "https://www.example.com/a") is False
    assert guard.valid_redirect("http://example.com/a", "https://example.com/b") is False


def test_navigation_rejected_for_denied_transition_type():
    engine, _, _ = make_engine()
    event = NavigationEvent(tab_id=1, transition_type="auto_subframe", transition_qualifiers=["from_address_bar"])

    assert engine.on_navigation_committed(event, "https://www.example.com/") is False
    assert 1 not in engine.state.target


def test_navigation_rejected_for_bad_qualifier():
    engine, _, _ = make_engine()
    event = NavigationEvent(tab_id=1, transition_type="link", transition_qualifiers=["server_redirect"])

    assert engine.on_navigation_committed(event, "https://www.example.com/") is False


def test_navigation_accepted_for_allowed_type_without_qualifier():
    engine, _, _ = make_engine()
    event = NavigationEvent(tab_id=1, transition_type="typed")

    assert engine.on_navigation_committed(event, "https://www.example.com/") is True


def test_navigation_accepted_for_good_qualifier():
    engine, _, _ = make_engine()
    event = NavigationEvent(tab_id=1, transition_type="form_submit", transition_qualifiers=["from_address_bar"])

    assert engine.on_navigation_committed(event, "https://www.example.com/") is True


def test_new_tab_pages_are_ignored():
    engine, _, _ = make_engine()
    event = NavigationEvent(tab_id=1, transition_type="typed")

    assert engine.on_navigation_committed(event, "about:blank") is False


def test_deferred_reload_runs_when_target_commits():
    engine, host, _ = make_engine()
    url = "https://www.example.com/"
    engine.state.future_reload[2] = url

    engine.on_navigation_committed(NavigationEvent(tab_id=2, transition_type="link"), url)

    assert host.updates == [(2, url)]
    assert 2 not in engine.state.future_reload


def test_redirect_carries_spend_intent_to_new_host():
    engine, _, _ = make_engine(tokens=3)
    _spend(engine)

    assert engine.on_redirect("req", "http://www.example.com/", "https://secure.example.com/") is True

    assert engine.ledger.has_intent("secure.example.com")
    assert engine.ledger.redirects("req") == 1


def test_redirect_chain_is_bounded():
    engine, _, _ = make_engine(tokens=10)
    max_redirects = engine.registry.active.max_redirects
    hosts = [f"hop{index}.example.com" for index in range(max_redirects + 2)]

    rearmed = []
    current = "www.example.com"
    for index, host in enumerate(hosts):
        engine.ledger.set_intent(current)
        engine.on_before_send_headers(
            RequestEvent(request_id="chain", tab_id=1),
            f"http://{current}/step{index}",
        )
        rearmed.append(engine.on_redirect("chain", f"http://{current}/", f"http://{host}/"))
        current = host

    assert rearmed.count(True) == max_redirects
    assert engine.ledger.redirects("chain") == max_redirects


def test_redirect_without_spend_does_not_arm():
    engine, _, _ = make_engine()

    assert engine.on_redirect("req", "http://a.example/", "http://b.example/") is False
    assert not engine.ledger.has_intent("b.example")
