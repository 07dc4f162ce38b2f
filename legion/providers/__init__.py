"""Upstream AI providers."""

from legion.providers.base import ChatTurn, ProviderConfig, ProviderReply
from legion.providers.catalog import BUILTIN_PROVIDERS, ProviderTable
from legion.providers.openai_compat import OpenAICompatClient

__all__ = [
    "BUILTIN_PROVIDERS",
    "ChatTurn",
    "OpenAICompatClient",
    "ProviderConfig",
    "ProviderReply",
    "ProviderTable",
]
