"""OpenAI-compatible chat completion client."""

from typing import Any, Dict, Optional, Sequence

import httpx

from legion.core.exceptions import ProviderAttemptFailed
from legion.providers.base import ChatTurn, ProviderConfig, ProviderReply, clean_text

ERROR_BODY_LIMIT = 200


def extract_content(data: Any) -> Optional[str]:
    """Pull ``choices[0].message.content`` out of a completion body."""
    if not isinstance(data, dict):
        return None
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return None
    first = choices[0] or {}
    if not isinstance(first, dict):
        return None
    message = first.get("message") or {}
    content = message.get("content") if isinstance(message, dict) else None
    if not isinstance(content, str) or not content:
        return None
    return content


class OpenAICompatClient:
    """One-shot ``/chat/completions`` calls against any configured provider."""

    def __init__(
        self,
        timeout: float = 15.0,
        max_tokens: int = 2048,
        referer: str = "",
        title: str = "",
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """Initialize client.

        Args:
            timeout: Transport-level timeout in seconds
            max_tokens: ``max_tokens`` sent upstream
            referer: ``HTTP-Referer`` attribution header (OpenRouter convention)
            title: ``X-Title`` attribution header
            transport: Optional httpx transport, used by tests
        """
        self.timeout = timeout
        self.max_tokens = max_tokens
        self.referer = referer
        self.title = title
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                timeout=self.timeout,
                transport=self._transport,
            )
        return self._client

    async def aclose(self) -> None:
        """Close HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    def _headers(self, provider: ProviderConfig) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if provider.credential:
            headers["Authorization"] = f"Bearer {provider.credential}"
        if self.referer:
            headers["HTTP-Referer"] = self.referer
        if self.title:
            headers["X-Title"] = self.title
        return headers

    async def complete(
        self,
        provider: ProviderConfig,
        turns: Sequence[ChatTurn],
        model: Optional[str],
        temperature: float,
    ) -> ProviderReply:
        """Send one non-streaming completion request.

        Raises:
            ProviderAttemptFailed: on transport errors, non-2xx status,
                unparseable bodies, or a body without message content.
        """
        resolved_model = model or provider.default_model
        if not resolved_model:
            raise ProviderAttemptFailed(f"{provider.name} has no model configured", provider.key)

        payload: Dict[str, Any] = {
            "model": resolved_model,
            "messages": [t.as_dict() for t in turns],
            "temperature": temperature,
            "max_tokens": self.max_tokens,
        }

        try:
            response = await self.client.post(
                provider.completions_url,
                json=payload,
                headers=self._headers(provider),
            )
        except httpx.HTTPError as e:
            raise ProviderAttemptFailed(
                f"{provider.name} request failed: {type(e).__name__}: {e}", provider.key
            ) from e

        if not response.is_success:
            body = response.text[:ERROR_BODY_LIMIT]
            raise ProviderAttemptFailed(
                f"{provider.name} {response.status_code}: {body}", provider.key
            )

        try:
            data = response.json()
        except ValueError as e:
            raise ProviderAttemptFailed(f"{provider.name} returned invalid JSON", provider.key) from e

        content = extract_content(data)
        if content is None:
            raise ProviderAttemptFailed(f"{provider.name} returned empty response", provider.key)

        upstream_model = data.get("model") if isinstance(data.get("model"), str) else None
        return ProviderReply(content=clean_text(content), model=clean_text(upstream_model or resolved_model))
