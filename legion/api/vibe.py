"""Multi-provider chat endpoints.

``POST /api/vibe/chat`` runs the completion dispatcher; when every
provider fails it answers 503 rather than inventing text.
"""

from datetime import UTC, datetime

from fastapi import APIRouter, Depends

from legion.api.deps import get_dispatcher, get_provider_table
from legion.api.models import (
    ProviderSummary,
    ProvidersResponse,
    VibeChatBody,
    VibeChatResponse,
)
from legion.providers.catalog import ProviderTable
from legion.services.dispatcher import ChatRequest, CompletionDispatcher

SOURCE = "vibe-8.0.0"

router = APIRouter(prefix="/api/vibe", tags=["vibe"])


@router.post("/chat", response_model=VibeChatResponse)
async def vibe_chat(
    body: VibeChatBody,
    dispatcher: CompletionDispatcher = Depends(get_dispatcher),
) -> VibeChatResponse:
    """Relay a chat to the first provider that answers.

    400 when neither ``message`` nor ``messages`` is present, 503 when all
    providers fail.
    """
    request = ChatRequest(
        messages=[t.to_turn() for t in body.messages or []],
        message=body.message,
        model=body.model,
        provider=body.provider,
        temperature=body.temperature,
        system_prompt=body.system_prompt,
    )
    result = (await dispatcher.dispatch(request)).raise_for_outcome()
    return VibeChatResponse(
        response=result.response,
        provider=result.provider,
        model=result.model,
        source=SOURCE,
        timestamp=result.timestamp,
    )


@router.get("/providers", response_model=ProvidersResponse)
async def list_providers(
    table: ProviderTable = Depends(get_provider_table),
) -> ProvidersResponse:
    """Configured providers in try-order. Credentials are never returned."""
    return ProvidersResponse(
        source=SOURCE,
        providers={
            p.key: ProviderSummary(
                name=p.name,
                status="active" if p.credential else "unconfigured",
                models=list(p.models),
            )
            for p in table
        },
        timestamp=datetime.now(UTC).isoformat(),
    )
