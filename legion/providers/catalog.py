"""Provider catalog: the immutable, ordered table of upstream providers."""

from types import MappingProxyType
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from legion.config import Settings
from legion.core.logging import get_logger
from legion.providers.base import ProviderConfig

logger = get_logger(__name__)

# key -> (display name, base URL, models). The first model is the default.
BUILTIN_PROVIDERS: Mapping[str, Tuple[str, str, Tuple[str, ...]]] = MappingProxyType({
    "megallm": (
        "MegaLLM",
        "https://ai.megallm.io/v1",
        ("gpt-4o-mini", "gpt-3.5-turbo", "claude-3-haiku", "deepseek-chat"),
    ),
    "openrouter": (
        "OpenRouter",
        "https://openrouter.ai/api/v1",
        ("meta-llama/llama-3.1-8b-instruct:free", "microsoft/phi-3-mini-128k-instruct:free"),
    ),
    "agentrouter": (
        "AgentRouter",
        "https://agentrouter.org/v1",
        ("gpt-4o-mini", "claude-3-haiku"),
    ),
    "routeway": (
        "Routeway",
        "https://api.routeway.ai/v1",
        ("gpt-4o-mini", "claude-3-haiku"),
    ),
})


class ProviderTable:
    """Read-only, ordered collection of providers.

    Iteration order is the fixed static try-order. Built once at startup
    and handed to the dispatcher; nothing mutates it afterwards.
    """

    __slots__ = ("_providers",)

    def __init__(self, providers: Iterable[ProviderConfig]):
        table: Dict[str, ProviderConfig] = {}
        for provider in providers:
            if provider.key in table:
                raise ValueError(f"Duplicate provider key: {provider.key}")
            table[provider.key] = provider
        if not table:
            raise ValueError("At least one provider must be configured")
        self._providers = MappingProxyType(table)

    def __iter__(self) -> Iterator[ProviderConfig]:
        return iter(self._providers.values())

    def __len__(self) -> int:
        return len(self._providers)

    def __contains__(self, key: object) -> bool:
        return key in self._providers

    def get(self, key: Optional[str]) -> Optional[ProviderConfig]:
        if not key:
            return None
        return self._providers.get(key)

    def keys(self) -> List[str]:
        return list(self._providers.keys())

    def try_order(self, preferred: Optional[str] = None) -> List[ProviderConfig]:
        """Providers in attempt order.

        A known ``preferred`` key moves to the front; the rest keep their
        static order. Unknown keys are ignored.
        """
        ordered = list(self._providers.values())
        if preferred and preferred in self._providers:
            first = self._providers[preferred]
            return [first] + [p for p in ordered if p.key != preferred]
        return ordered

    @classmethod
    def from_settings(cls, settings: Settings) -> "ProviderTable":
        """Build the table from ``PROVIDERS_ENABLED`` and per-provider env vars.

        Only built-in keys are accepted; the env vars may override their
        credential and base URL.
        """
        providers = []
        for key in settings.providers_enabled_list:
            builtin = BUILTIN_PROVIDERS.get(key)
            if builtin is None:
                logger.warning(f"Unknown provider, skipping: {key}")
                continue
            name, default_url, models = builtin
            base_url = settings.provider_base_url(key)
            credential = settings.provider_credential(key)
            if not credential:
                logger.warning(f"No credential configured for provider: {key}")
            providers.append(ProviderConfig(
                key=key,
                name=name,
                base_url=base_url or default_url,
                credential=credential,
                models=models,
            ))
        table = cls(providers)
        logger.info("Provider table loaded", data={"providers": table.keys()})
        return table
