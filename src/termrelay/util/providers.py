"""Provider families and their request/response shapes.

Each supported family gets one request builder and one delta extractor.
``build_request`` and ``extract_delta`` are the only dispatch points; adding a
family means adding an enum member and an entry in ``_FAMILIES``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable

if TYPE_CHECKING:
    from termrelay.util.provider_config import ProviderConfig

ANTHROPIC_DEFAULT_BASE = "https://api.anthropic.com/v1"
ANTHROPIC_DEFAULT_MODEL = "claude-3-sonnet-20240229"
ANTHROPIC_VERSION = "2023-06-01"
ANTHROPIC_MAX_TOKENS = 4096

OPENAI_DEFAULT_BASE = "https://api.openai.com/v1"
OPENAI_DEFAULT_MODEL = "gpt-3.5-turbo"
OPENAI_VERSION_SEGMENT = "/v1"
OPENAI_COMPLETIONS_PATH = "/chat/completions"


class ProviderFamily(str, Enum):
    """Wire-protocol shapes understood by the chat relay."""

    ANTHROPIC = "anthropic"
    OPENAI = "openai"

    @classmethod
    def parse(cls, label: "str | ProviderFamily | None") -> "ProviderFamily":
        """Map a user-facing provider label onto a family.

        ``claude`` is an alias for Anthropic. Every other label (openai,
        deepseek, ollama, ...) is treated as OpenAI-compatible.
        """
        if isinstance(label, ProviderFamily):
            return label
        normalized = (label or "").strip().lower()
        if normalized in ("anthropic", "claude"):
            return cls.ANTHROPIC
        return cls.OPENAI


@dataclass
class ProviderRequest:
    """Everything needed to issue one streaming chat request."""

    url: str
    headers: dict[str, str] = field(default_factory=dict)
    body: dict[str, Any] = field(default_factory=dict)


Message = dict[str, str]


def _strip_base(base_url: str, default: str) -> str:
    return (base_url or default).rstrip("/")


def anthropic_endpoint(base_url: str) -> str:
    base = _strip_base(base_url, ANTHROPIC_DEFAULT_BASE)
    if base.endswith("/messages"):
        return base
    return f"{base}/messages"


def openai_endpoint(base_url: str) -> str:
    """Resolve the chat completions URL for an OpenAI-compatible base.

    ``https://x/v1/chat/completions`` is used as-is, ``https://x/v1`` gets the
    completions path, anything else (``https://x/api``) gets both.
    """
    base = _strip_base(base_url, OPENAI_DEFAULT_BASE)
    if base.endswith(OPENAI_COMPLETIONS_PATH):
        return base
    if base.endswith(OPENAI_VERSION_SEGMENT):
        return f"{base}{OPENAI_COMPLETIONS_PATH}"
    return f"{base}{OPENAI_VERSION_SEGMENT}{OPENAI_COMPLETIONS_PATH}"


def build_anthropic_request(config: "ProviderConfig", messages: list[Message]) -> ProviderRequest:
    return ProviderRequest(
        url=anthropic_endpoint(config.base_url),
        headers={
            "Content-Type": "application/json",
            "x-api-key": config.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
        },
        body={
            "model": config.model or ANTHROPIC_DEFAULT_MODEL,
            "max_tokens": ANTHROPIC_MAX_TOKENS,
            "stream": True,
            "messages": [
                {
                    "role": "assistant" if m.get("role") == "assistant" else "user",
                    "content": m.get("content", ""),
                }
                for m in messages
            ],
        },
    )


def build_openai_request(config: "ProviderConfig", messages: list[Message]) -> ProviderRequest:
    return ProviderRequest(
        url=openai_endpoint(config.base_url),
        headers={
            "Content-Type": "application/json",
            "Authorization": f"Bearer {config.api_key}",
        },
        body={
            "model": config.model or OPENAI_DEFAULT_MODEL,
            "stream": True,
            "messages": messages,
        },
    )


def extract_anthropic_delta(frame: Any) -> str:
    # Only content_block_delta frames carry text; message_start, ping, etc. don't
    if not isinstance(frame, dict) or frame.get("type") != "content_block_delta":
        return ""
    delta = frame.get("delta")
    if not isinstance(delta, dict):
        return ""
    text = delta.get("text")
    return text if isinstance(text, str) else ""


def extract_openai_delta(frame: Any) -> str:
    if not isinstance(frame, dict):
        return ""
    choices = frame.get("choices")
    if not isinstance(choices, list) or not choices:
        return ""
    first = choices[0]
    if not isinstance(first, dict):
        return ""
    delta = first.get("delta")
    if not isinstance(delta, dict):
        return ""
    content = delta.get("content")
    return content if isinstance(content, str) else ""


@dataclass(frozen=True)
class _FamilyHandlers:
    build: Callable[["ProviderConfig", list[Message]], ProviderRequest]
    extract: Callable[[Any], str]


_FAMILIES: dict[ProviderFamily, _FamilyHandlers] = {
    ProviderFamily.ANTHROPIC: _FamilyHandlers(build_anthropic_request, extract_anthropic_delta),
    ProviderFamily.OPENAI: _FamilyHandlers(build_openai_request, extract_openai_delta),
}


def build_request(config: "ProviderConfig", messages: list[Message]) -> ProviderRequest:
    """Build the provider-specific HTTP request. Performs no I/O."""
    return _FAMILIES[ProviderFamily.parse(config.provider)].build(config, messages)


def extract_delta(family: ProviderFamily, frame: Any) -> str:
    """Pull the incremental text out of one decoded stream frame ('' if none)."""
    return _FAMILIES[ProviderFamily.parse(family)].extract(frame)


def supported_families() -> list[ProviderFamily]:
    return list(_FAMILIES)
