"""Exception hierarchy shared by every protocol component."""

from __future__ import annotations

from typing import Optional


class PrivacyPassError(Exception):
    """Base class for all errors raised by the client."""


class ProtocolError(PrivacyPassError):
    """The server reported a problem with a redemption for ``url``."""

    def __init__(self, url: str, code: str, message: Optional[str] = None) -> None:
        self.url = url
        self.code = code
        super().__init__(
            message
            or f"There may be a problem with the stored tokens. Redemption failed for: {url} with error code: {code}"
        )

    @property
    def numeric_code(self) -> Optional[int]:
        """``code`` is the raw header value; this is its integer form, if any."""

        try:
            return int(self.code)
        except ValueError:
            return None


class ProtocolVerificationFailure(ProtocolError):
    """Redemption evidence was rejected; the token pool has been destroyed."""


class ProtocolConnectivityFailure(ProtocolError):
    """The server could not reach its validator; stored tokens are kept."""


class ConfigurationError(PrivacyPassError):
    """Fatal misconfiguration. The session cannot continue safely."""


class UnknownConfigVariant(ConfigurationError):
    def __init__(self, config_id: object) -> None:
        self.config_id = config_id
        super().__init__(f"Unknown configuration id: {config_id!r}")


class UnsupportedIssuanceVariant(ConfigurationError):
    def __init__(self, variant: object) -> None:
        self.variant = variant
        super().__init__(f"Incorrect config ID specified: no issuance flow for {variant!r}")
