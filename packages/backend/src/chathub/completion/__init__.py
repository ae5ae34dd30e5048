"""Completion provider registry — pluggable assistant backends.

Learn: The chat flow asks for "a provider" and never names a vendor:
    provider = get_provider("openai")
    reply = await provider.complete(turns)

The active provider comes from CHATHUB_COMPLETION_PROVIDER. Routes get
it through get_completion_provider, which tests override with a fake.
"""

from functools import lru_cache

from chathub.completion.base import CompletionProvider, Turn
from chathub.completion.echo import EchoProvider
from chathub.completion.openai_chat import OpenAIChatProvider
from chathub.config import settings

__all__ = [
    "CompletionProvider",
    "Turn",
    "get_completion_provider",
    "get_provider",
    "list_providers",
    "register_provider",
]

# ─── Registry ──────────────────────────────────────────────

_PROVIDERS: dict[str, type[CompletionProvider]] = {
    "openai": OpenAIChatProvider,
    "echo": EchoProvider,
}


def get_provider(name: str) -> CompletionProvider:
    """Get a provider instance by name.

    Raises ValueError if the provider is not registered.
    """
    cls = _PROVIDERS.get(name)
    if not cls:
        available = ", ".join(sorted(_PROVIDERS.keys()))
        raise ValueError(f"Unknown completion provider '{name}'. Available: {available}")
    return cls()


def list_providers() -> list[str]:
    """List registered provider names."""
    return sorted(_PROVIDERS.keys())


def register_provider(name: str, provider_cls: type[CompletionProvider]) -> None:
    """Register a custom provider."""
    _PROVIDERS[name] = provider_cls
    get_completion_provider.cache_clear()


@lru_cache(maxsize=1)
def get_completion_provider() -> CompletionProvider:
    """FastAPI dependency — the configured provider (one per process)."""
    return get_provider(settings.completion_provider)
