"""Runtime provider configuration for the chat relay."""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass, replace
from typing import Mapping

from termrelay.util.providers import ProviderFamily

DEFAULT_MODEL = "claude-sonnet-4-20250514"

# Mirrors of the active configuration exported for processes spawned later
ENV_MIRRORS = {
    "provider": "AI_PROVIDER",
    "api_key": "AI_API_KEY",
    "base_url": "AI_BASE_URL",
    "model": "AI_MODEL",
}


def _first_env(env: Mapping[str, str], *names: str, default: str = "") -> str:
    for name in names:
        value = env.get(name)
        if value:
            return value
    return default


@dataclass(frozen=True)
class ProviderConfig:
    """Settings for one provider: family, credential, endpoint and model."""

    provider: ProviderFamily = ProviderFamily.OPENAI
    api_key: str = ""
    base_url: str = ""
    model: str = ""

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "ProviderConfig":
        """Build the initial configuration from well-known provider env vars."""
        if env is None:
            env = os.environ
        return cls(
            provider=ProviderFamily.parse(env.get("TERMRELAY_PROVIDER", "openai")),
            api_key=_first_env(env, "ANTHROPIC_AUTH_TOKEN", "ANTHROPIC_API_KEY", "OPENAI_API_KEY"),
            base_url=_first_env(env, "ANTHROPIC_BASE_URL", "OPENAI_BASE_URL"),
            model=_first_env(env, "ANTHROPIC_MODEL", "OPENAI_MODEL", default=DEFAULT_MODEL),
        )

    def with_updates(self, **changes) -> "ProviderConfig":
        if "provider" in changes and not isinstance(changes["provider"], ProviderFamily):
            changes["provider"] = ProviderFamily.parse(changes["provider"])
        return replace(self, **changes)

    def masked_key(self) -> str:
        """Return the API key with everything but the last four characters hidden."""
        if not self.api_key:
            return ""
        if len(self.api_key) <= 4:
            return "*" * len(self.api_key)
        return "*" * (len(self.api_key) - 4) + self.api_key[-4:]


class ConfigCell:
    """Holds the current ProviderConfig.

    Last writer wins: ``get`` always returns the most recently ``set`` value.
    Values are immutable, so callers that keep a snapshot are unaffected by
    later updates.
    """

    def __init__(self, initial: ProviderConfig | None = None, mirror_env: bool = True):
        self._value = initial if initial is not None else ProviderConfig.from_env()
        self._mirror_env = mirror_env
        self._lock = threading.Lock()

    def get(self) -> ProviderConfig:
        return self._value

    def set(self, config: ProviderConfig) -> None:
        with self._lock:
            self._value = config
            if self._mirror_env:
                self._export(config)

    @staticmethod
    def _export(config: ProviderConfig) -> None:
        os.environ[ENV_MIRRORS["provider"]] = config.provider.value
        os.environ[ENV_MIRRORS["api_key"]] = config.api_key
        os.environ[ENV_MIRRORS["base_url"]] = config.base_url
        os.environ[ENV_MIRRORS["model"]] = config.model
