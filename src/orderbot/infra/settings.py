"""Runtime configuration from environment variables.

Loaded once per process via get_settings(); tests call reset_settings()
to pick up a patched environment.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field

# Used when AUTHORIZED_PHONE_NUMBERS is not set (local testing only)
DEFAULT_AUTHORIZED_PHONE_NUMBERS = ("60123456789", "60126675705")
DEFAULT_SHEET_NAMES = ("Orders",)


@dataclass(frozen=True)
class Settings:
    """Process-wide configuration.

    Attributes:
        authorized_phone_numbers: Raw allow-list entries (normalized later).
        google_sheet_id: Target spreadsheet; empty disables the sheet writer.
        sheet_names: Tabs each order is appended to.
        google_credentials_json: Service-account key JSON (secret).
        meta_verify_token: Token expected on Meta webhook verification.
        meta_app_secret: HMAC secret; empty disables signature checks.
        database_url: Postgres DSN; empty disables repeat lookup and the order sink.
        log_level: Standard logging level name.
    """

    authorized_phone_numbers: tuple[str, ...] = DEFAULT_AUTHORIZED_PHONE_NUMBERS
    google_sheet_id: str = ""
    sheet_names: tuple[str, ...] = DEFAULT_SHEET_NAMES
    google_credentials_json: str = field(default="", repr=False)
    meta_verify_token: str = field(default="", repr=False)
    meta_app_secret: str = field(default="", repr=False)
    database_url: str = field(default="", repr=False)
    log_level: str = "INFO"

    @property
    def sheets_enabled(self) -> bool:
        return bool(self.google_sheet_id and self.google_credentials_json)

    @property
    def database_enabled(self) -> bool:
        return bool(self.database_url)


def _parse_csv(value: str) -> tuple[str, ...]:
    return tuple(part.strip() for part in value.split(",") if part.strip())


def _parse_sheet_names(value: str | None) -> tuple[str, ...]:
    if not value:
        return DEFAULT_SHEET_NAMES
    try:
        names = json.loads(value)
    except json.JSONDecodeError as e:
        raise ValueError("SHEET_NAMES must be a JSON list of strings") from e

    if not isinstance(names, list) or not all(isinstance(n, str) for n in names):
        raise ValueError("SHEET_NAMES must be a JSON list of strings")
    return tuple(names) or DEFAULT_SHEET_NAMES


def load_settings() -> Settings:
    """Read settings from the environment.

    Raises:
        ValueError: If SHEET_NAMES is not a JSON list of strings.
    """
    authorized = os.environ.get("AUTHORIZED_PHONE_NUMBERS")
    return Settings(
        authorized_phone_numbers=_parse_csv(authorized) if authorized else DEFAULT_AUTHORIZED_PHONE_NUMBERS,
        google_sheet_id=os.environ.get("GOOGLE_SHEET_ID", ""),
        sheet_names=_parse_sheet_names(os.environ.get("SHEET_NAMES")),
        google_credentials_json=os.environ.get("GOOGLE_CREDENTIALS_JSON", ""),
        meta_verify_token=os.environ.get("META_VERIFY_TOKEN", ""),
        meta_app_secret=os.environ.get("META_APP_SECRET", ""),
        database_url=os.environ.get("DATABASE_URL", ""),
        log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
    )


_settings: Settings | None = None


def get_settings() -> Settings:
    """Cached settings for the running process."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    global _settings
    _settings = None
