"""Protocol configuration bundles.

A bundle is an immutable value. Everything derived from it is a property,
so replacing the active bundle replaces every derived field in one step.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping, Optional

# Header names are protocol-wide; the bundle selected by the support header
# cannot define the header itself.
CHL_BYPASS_SUPPORT = "cf-chl-bypass"
CHL_BYPASS_RESPONSE = "cf-chl-bypass-resp"

STORAGE_STR = "bypass-tokens-"
COUNT_STR = STORAGE_STR + "count-"

DIRECT_REQUEST = "direct-request"


class ProtocolVariant(Enum):
    EXAMPLE = "example"
    CLOUDFLARE = "cloudflare"
    HCAPTCHA = "hcaptcha"


class RedeemMethod(Enum):
    RELOAD = "reload"
    NO_RELOAD = "no-reload"


class SignResponseFormat(Enum):
    STRING = "string"
    JSON = "json"


@dataclass(frozen=True)
class ProtocolConfig:
    """Holds every protocol parameter of a single bundle."""

    id: int
    variant: ProtocolVariant
    sign: bool = False
    redeem: bool = False
    clearance_cookie: str = ""
    captcha_domain: str = ""
    verify_error: str = "-1"
    connection_error: str = "-1"
    commitments: str = ""
    max_spends: Optional[int] = None
    max_tokens: int = 0
    var_reset: bool = True
    var_reset_ms: int = 100
    spend_status_codes: frozenset[int] = frozenset()
    max_redirects: int = 0
    new_tabs: tuple[str, ...] = ()
    bad_navigation: tuple[str, ...] = ()
    bad_transition: tuple[str, ...] = ()
    valid_redirects: tuple[str, ...] = ()
    valid_transitions: tuple[str, ...] = ()
    redeem_method: RedeemMethod = RedeemMethod.NO_RELOAD
    header_name: str = ""
    header_host_name: str = ""
    header_path_name: str = ""
    spend_urls: tuple[str, ...] = ()
    empty_resp_headers: tuple[str, ...] = ()
    issue_urls: tuple[str, ...] = ()
    sign_reload: bool = False
    sign_resp_format: SignResponseFormat = SignResponseFormat.STRING
    tokens_per_request: int = 0
    opt_endpoints: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    excluded_resource_patterns: tuple[str, ...] = ("*://*/*favicon*",)
    error_page_patterns: tuple[str, ...] = ()

    @property
    def storage_key_tokens(self) -> str:
        return f"{STORAGE_STR}{self.id}"

    @property
    def storage_key_count(self) -> str:
        return f"{COUNT_STR}{self.id}"

    @property
    def uses_direct_request(self) -> bool:
        return DIRECT_REQUEST in self.empty_resp_headers

    @property
    def challenge_endpoint(self) -> Optional[str]:
        return self.opt_endpoints.get("challenge")

    @property
    def var_reset_seconds(self) -> float:
        return self.var_reset_ms / 1000.0

    def is_challenge_status(self, status_code: int) -> bool:
        return status_code in self.spend_status_codes


EXAMPLE_CONFIG = ProtocolConfig(id=0, variant=ProtocolVariant.EXAMPLE)

CLOUDFLARE_CONFIG = ProtocolConfig(
    id=1,
    variant=ProtocolVariant.CLOUDFLARE,
    sign=True,
    redeem=True,
    clearance_cookie="cf_clearance",
    captcha_domain="captcha.website",
    verify_error="6",
    connection_error="5",
    commitments="CF",
    max_spends=2,
    max_tokens=300,
    var_reset=True,
    var_reset_ms=2000,
    spend_status_codes=frozenset({403}),
    max_redirects=3,
    new_tabs=("about:privatebrowsing", "chrome://", "about:blank"),
    bad_navigation=("auto_subframe",),
    bad_transition=("server_redirect",),
    valid_redirects=("https://", "https://www.", "http://www."),
    valid_transitions=("link", "typed", "auto_bookmark", "reload"),
    redeem_method=RedeemMethod.RELOAD,
    header_name="challenge-bypass-token",
    header_host_name="challenge-bypass-host",
    header_path_name="challenge-bypass-path",
    spend_urls=("<all_urls>",),
    empty_resp_headers=(DIRECT_REQUEST,),
    issue_urls=("*://*/*?__cf_chl_captcha_tk__=*", "*://*/*?__cf_chl_jschl_tk__=*"),
    sign_reload=True,
    sign_resp_format=SignResponseFormat.STRING,
    tokens_per_request=30,
    opt_endpoints=MappingProxyType({"challenge": "/cdn-cgi/challenge"}),
    error_page_patterns=("*://*/cdn-cgi/styles/*", "*://*/cdn-cgi/scripts/*"),
)

HCAPTCHA_CONFIG = ProtocolConfig(
    id=2,
    variant=ProtocolVariant.HCAPTCHA,
    sign=True,
    redeem=True,
    clearance_cookie="hc_clearance",
    captcha_domain="hcaptcha.com",
    verify_error="6",
    connection_error="5",
    commitments="HC",
    max_spends=None,
    max_tokens=300,
    var_reset=True,
    var_reset_ms=2000,
    spend_status_codes=frozenset({200}),
    max_redirects=3,
    new_tabs=("about:privatebrowsing", "chrome://", "about:blank"),
    bad_navigation=("auto_subframe",),
    bad_transition=("server_redirect",),
    valid_redirects=("https://", "https://www.", "http://www."),
    valid_transitions=("link", "typed", "auto_bookmark", "reload"),
    redeem_method=RedeemMethod.NO_RELOAD,
    header_name="challenge-bypass-token",
    header_host_name="challenge-bypass-host",
    header_path_name="challenge-bypass-path",
    spend_urls=("https://hcaptcha.com/getcaptcha", "https://*.hcaptcha.com/getcaptcha"),
    issue_urls=("https://hcaptcha.com/checkcaptcha/*", "https://*.hcaptcha.com/checkcaptcha/*"),
    sign_reload=False,
    sign_resp_format=SignResponseFormat.JSON,
    tokens_per_request=5,
)

BUILTIN_BUNDLES: Mapping[int, ProtocolConfig] = MappingProxyType(
    {bundle.id: bundle for bundle in (EXAMPLE_CONFIG, CLOUDFLARE_CONFIG, HCAPTCHA_CONFIG)}
)
