import pytest

from privacy_pass.core.patterns import (  # type: ignore[import]
    matches_any,
    pattern_to_regex,
    url_host,
    url_hostname,
    url_origin,
)


@pytest.mark.parametrize(
    "pattern, url, expected",
    [
        ("<all_urls>", "http://www.example.com", True),
        ("<all_urls>", "chrome://extensions", False),
        ("*://*/*favicon*", "https://captcha.website/favicon.ico", True),
        ("*://*/*favicon*", "https://captcha.website/", False),
        ("https://*.hcaptcha.com/getcaptcha", "https://assets.hcaptcha.com/getcaptcha", True),
        ("https://*.hcaptcha.com/getcaptcha", "https://hcaptcha.com/getcaptcha", True),
        ("https://*.hcaptcha.com/getcaptcha", "https://nothcaptcha.com.evil/getcaptcha", False),
        ("*://*/*?__cf_chl_captcha_tk__=*", "http://a.example/page?__cf_chl_captcha_tk__=x", True),
        ("*://*/cdn-cgi/styles/*", "ftp://a.example/cdn-cgi/styles/x.css", False),
    ],
)
def test_match_patterns(pattern, url, expected):
    assert matches_any(url, [pattern]) is expected


def test_invalid_pattern():
    with pytest.raises(ValueError):
        pattern_to_regex("example.com")


def test_url_helpers():
    url = "https://user@Shop.Example.com:8443/cart?id=1"

    assert url_host(url) == "shop.example.com:8443"
    assert url_hostname(url) == "shop.example.com"
    assert url_origin(url) == "https://Shop.Example.com:8443"
