"""Shared pytest fixtures for order bot tests."""
import sys
sys.dont_write_bytecode = True

import pytest  # noqa: E402


@pytest.fixture(autouse=True)
def _reset_settings():
    """Reset cached settings so each test sees its own (monkeypatched) env.

    Settings are a module-level cache filled on first use. Without this
    reset, a META_APP_SECRET or AUTHORIZED_PHONE_NUMBERS set by one test
    would leak into the next.
    """
    from orderbot.infra.settings import reset_settings

    reset_settings()
    yield
    reset_settings()
