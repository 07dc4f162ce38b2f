"""Completion dispatcher.

Tries each configured provider in a fixed order and returns the first
successful completion. Attempts run strictly one after another; each gets
its own timeout and is never retried. When all of them fail the result
carries ``outcome="all-failed"`` and the last error so the HTTP layer can
choose between a 503 and canned local text.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Awaitable, Callable, List, Optional, Protocol, Sequence

import httpx

from legion.core.exceptions import AllProvidersExhausted, InvalidRequest, ProviderAttemptFailed
from legion.core.logging import get_logger
from legion.providers.base import ROLE_SYSTEM, ROLE_USER, ChatTurn, ProviderConfig, ProviderReply, clean_text
from legion.providers.catalog import ProviderTable

logger = get_logger(__name__)

OUTCOME_SUCCESS = "success"
OUTCOME_ALL_FAILED = "all-failed"

DEFAULT_TEMPERATURE = 0.7
TEMPERATURE_MIN = 0.0
TEMPERATURE_MAX = 2.0


class CompletionClient(Protocol):
    async def complete(
        self,
        provider: ProviderConfig,
        turns: Sequence[ChatTurn],
        model: Optional[str],
        temperature: float,
    ) -> ProviderReply: ...


@dataclass
class ChatRequest:
    """One inbound chat request."""
    messages: List[ChatTurn] = field(default_factory=list)
    message: Optional[str] = None
    model: Optional[str] = None
    provider: Optional[str] = None
    temperature: Optional[float] = None
    system_prompt: Optional[str] = None

    def has_input(self) -> bool:
        return bool(self.message) or bool(self.messages)


@dataclass
class ChatResult:
    """Outcome of one dispatch."""
    outcome: str
    response: Optional[str] = None
    provider: Optional[str] = None
    model: Optional[str] = None
    error: Optional[str] = None
    attempted: List[str] = field(default_factory=list)
    providers: List[str] = field(default_factory=list)
    timestamp: str = field(default_factory=lambda: datetime.now(UTC).isoformat())

    @property
    def ok(self) -> bool:
        return self.outcome == OUTCOME_SUCCESS

    def raise_for_outcome(self) -> "ChatResult":
        """Raise AllProvidersExhausted unless the dispatch succeeded."""
        if not self.ok:
            raise AllProvidersExhausted(self.error, self.providers)
        return self


Attempt = Callable[[], Awaitable[ProviderReply]]


def clamp_temperature(value: Optional[float], default: float = DEFAULT_TEMPERATURE) -> float:
    if value is None:
        return default
    return max(TEMPERATURE_MIN, min(TEMPERATURE_MAX, float(value)))


def assemble_turns(request: ChatRequest, default_system_prompt: str) -> List[ChatTurn]:
    """Build the outbound turn sequence.

    An explicit system prompt replaces a leading system turn; otherwise the
    default persona is added only when no system turn leads. The single
    ``message`` is appended last as a user turn. Lone surrogates in any
    turn are replaced so the body always encodes as UTF-8.
    """
    turns = [ChatTurn(t.role, clean_text(t.content)) for t in request.messages]
    leads_with_system = bool(turns) and turns[0].role == ROLE_SYSTEM

    if request.system_prompt:
        if leads_with_system:
            turns = turns[1:]
        turns.insert(0, ChatTurn(ROLE_SYSTEM, clean_text(request.system_prompt)))
    elif not leads_with_system:
        turns.insert(0, ChatTurn(ROLE_SYSTEM, default_system_prompt))

    if request.message:
        turns.append(ChatTurn(ROLE_USER, clean_text(request.message)))
    return turns


class CompletionDispatcher:
    """Sequential fallback across the provider table."""

    def __init__(
        self,
        providers: ProviderTable,
        client: CompletionClient,
        system_prompt: str,
        timeout: float = 15.0,
        default_temperature: float = DEFAULT_TEMPERATURE,
    ):
        self.providers = providers
        self.client = client
        self.system_prompt = system_prompt
        self.timeout = timeout
        self.default_temperature = default_temperature

    def _attempt(
        self,
        provider: ProviderConfig,
        turns: Sequence[ChatTurn],
        model: Optional[str],
        temperature: float,
    ) -> Attempt:
        async def call() -> ProviderReply:
            return await self.client.complete(provider, turns, model, temperature)
        return call

    async def _run_attempt(self, provider: ProviderConfig, attempt: Attempt) -> ProviderReply:
        """Run one attempt under the per-attempt timeout.

        Timeouts and transport errors surface as ProviderAttemptFailed. Any
        other exception is a local fault and propagates unchanged.
        """
        try:
            return await asyncio.wait_for(attempt(), timeout=self.timeout)
        except ProviderAttemptFailed:
            raise
        except asyncio.TimeoutError as e:
            raise ProviderAttemptFailed(
                f"{provider.name} timed out after {self.timeout:g}s", provider.key
            ) from e
        except httpx.HTTPError as e:
            raise ProviderAttemptFailed(
                f"{provider.name} request failed: {type(e).__name__}: {e}", provider.key
            ) from e

    async def dispatch(self, request: ChatRequest) -> ChatResult:
        """Return the first successful completion, or an all-failed result.

        Raises:
            InvalidRequest: when neither ``message`` nor ``messages`` is given.
        """
        if not request.has_input():
            raise InvalidRequest()

        turns = assemble_turns(request, self.system_prompt)
        model = clean_text(request.model) if request.model else None
        temperature = clamp_temperature(request.temperature, self.default_temperature)
        order = self.providers.try_order(request.provider)
        if request.provider and request.provider not in self.providers:
            logger.info(f"Ignoring unknown preferred provider: {request.provider}")

        strategies = [
            (provider, self._attempt(provider, turns, model, temperature))
            for provider in order
        ]

        attempted: List[str] = []
        last_error: Optional[str] = None
        for provider, attempt in strategies:
            attempted.append(provider.key)
            try:
                reply = await self._run_attempt(provider, attempt)
            except ProviderAttemptFailed as e:
                last_error = e.message
                logger.warning(
                    f"Provider {provider.key} failed",
                    data={"provider": provider.key, "reason": e.message},
                )
                continue

            logger.info(
                f"Provider {provider.key} answered",
                data={"provider": provider.key, "model": reply.model, "attempts": len(attempted)},
            )
            return ChatResult(
                outcome=OUTCOME_SUCCESS,
                response=reply.content,
                provider=provider.name,
                model=reply.model,
                attempted=attempted,
                providers=self.providers.keys(),
            )

        logger.error(
            "All providers failed",
            data={"attempted": attempted, "last_error": last_error},
        )
        return ChatResult(
            outcome=OUTCOME_ALL_FAILED,
            error=last_error,
            attempted=attempted,
            providers=self.providers.keys(),
        )
