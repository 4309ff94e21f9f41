from __future__ import annotations

import shutil
import sys
from pathlib import Path

import pytest


PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"

# Force this tree's src to the front of sys.path so imports use it,
# not an installed copy.
SRC_STR = str(SRC_PATH)
sys.path = [SRC_STR] + [p for p in sys.path if p != SRC_STR]

PROVIDER_ENV_VARS = (
    "ANTHROPIC_AUTH_TOKEN",
    "ANTHROPIC_API_KEY",
    "OPENAI_API_KEY",
    "ANTHROPIC_BASE_URL",
    "OPENAI_BASE_URL",
    "ANTHROPIC_MODEL",
    "OPENAI_MODEL",
    "TERMRELAY_PROVIDER",
    "AI_PROVIDER",
    "AI_API_KEY",
    "AI_BASE_URL",
    "AI_MODEL",
)


def has_real_pty() -> bool:
    """Whether this host can run the real-shell tests."""
    try:
        import pty  # noqa: F401
    except ImportError:
        return False
    return shutil.which("bash") is not None


@pytest.fixture(autouse=True)
def _isolate_state(monkeypatch):
    """Keep provider env vars and server singletons isolated per test."""
    for name in PROVIDER_ENV_VARS:
        monkeypatch.delenv(name, raising=False)

    from termrelay.server.state import reset_state

    reset_state()
    yield
    reset_state()
