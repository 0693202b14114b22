"""Variant-specific construction of token issuance requests."""

from __future__ import annotations

import base64
import binascii
import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

from ..core.bundles import ProtocolConfig, ProtocolVariant, SignResponseFormat
from ..core.errors import UnsupportedIssuanceVariant
from ..core.interfaces import TokenCrypto
from ..core.models import IssuanceRequest
from ..core.patterns import matches_any
from ..session.ledger import SpendLedger
from ..tokens.store import TokenStore

logger = logging.getLogger(__name__)

BLINDED_TOKENS_FIELD = "blinded-tokens="
CAPTCHA_BYPASS_FLAG = "&captcha-bypass=true"
SIGNATURES_FIELD = "signatures="


@dataclass(frozen=True)
class IssuanceContext:
    config: ProtocolConfig
    ledger: SpendLedger
    store: TokenStore
    crypto: TokenCrypto


IssueBuilder = Callable[[IssuanceContext, str, int], Optional[IssuanceRequest]]


def _prepare(ctx: IssuanceContext, url: str) -> Optional[tuple[Any, str]]:
    config = ctx.config
    if not matches_any(url, config.issue_urls):
        return None
    if url in ctx.ledger.state.sent_tokens:
        return None
    if ctx.store.count() + config.tokens_per_request > config.max_tokens:
        logger.debug("Pool would exceed %d tokens, not signing", config.max_tokens)
        return None
    ctx.ledger.state.sent_tokens.add(url)
    return ctx.crypto.build_issue_payload(config.tokens_per_request)


def build_cloudflare_request(ctx: IssuanceContext, url: str, tab_id: int) -> Optional[IssuanceRequest]:
    prepared = _prepare(ctx, url)
    if prepared is None:
        return None
    pending, payload = prepared
    return IssuanceRequest(
        url=url,
        body=BLINDED_TOKENS_FIELD + payload,
        config_id=ctx.config.id,
        pending=pending,
        tab_id=tab_id,
    )


def build_hcaptcha_request(ctx: IssuanceContext, url: str, tab_id: int) -> Optional[IssuanceRequest]:
    prepared = _prepare(ctx, url)
    if prepared is None:
        return None
    pending, payload = prepared
    return IssuanceRequest(
        url=url,
        body=BLINDED_TOKENS_FIELD + payload + CAPTCHA_BYPASS_FLAG,
        config_id=ctx.config.id,
        pending=pending,
        tab_id=tab_id,
    )


ISSUE_BUILDERS: Mapping[ProtocolVariant, IssueBuilder] = {
    ProtocolVariant.CLOUDFLARE: build_cloudflare_request,
    ProtocolVariant.HCAPTCHA: build_hcaptcha_request,
}


def builder_for(variant: ProtocolVariant) -> IssueBuilder:
    try:
        return ISSUE_BUILDERS[variant]
    except KeyError:
        raise UnsupportedIssuanceVariant(variant) from None


def parse_signatures(body: str, fmt: SignResponseFormat) -> Any:
    """Extract the signed points from an issuance response body.

    Raises ``ValueError`` on a malformed body.
    """

    if fmt is SignResponseFormat.STRING:
        encoded = body.strip()
        if encoded.startswith(SIGNATURES_FIELD):
            encoded = encoded[len(SIGNATURES_FIELD):]
        try:
            decoded = base64.b64decode(encoded, validate=True)
        except binascii.Error as exc:
            raise ValueError("Signatures are not valid base64") from exc
        return json.loads(decoded)

    data = json.loads(body)
    if isinstance(data, dict) and "signatures" in data:
        return data["signatures"]
    return data
