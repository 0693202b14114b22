"""Runtime settings loaded from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

DEFAULT_TOKEN_FILE = "privacy_pass_tokens.json"


@dataclass(slots=True)
class ClientSettings:
    """Holds runtime options for a client session."""

    config_id: int
    token_file: Path
    http_timeout: float = 10.0
    max_workers: int = 4
    log_level: str = "WARNING"


def load_settings(
    config_id: Optional[int] = None,
    token_file: Optional[str] = None,
) -> ClientSettings:
    """Builds ``ClientSettings`` from arguments and environment variables."""

    load_dotenv()  # Loads .env values if present

    if config_id is None:
        config_id = int(os.getenv("PRIVACY_PASS_CONFIG_ID", "1"))
    token_path = Path(token_file or os.getenv("PRIVACY_PASS_TOKEN_FILE", DEFAULT_TOKEN_FILE)).resolve()

    return ClientSettings(
        config_id=config_id,
        token_file=token_path,
        http_timeout=float(os.getenv("PRIVACY_PASS_HTTP_TIMEOUT", "10")),
        max_workers=int(os.getenv("PRIVACY_PASS_MAX_WORKERS", "4")),
        log_level=os.getenv("PRIVACY_PASS_LOG_LEVEL", "WARNING").upper(),
    )
