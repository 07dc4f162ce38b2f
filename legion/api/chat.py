"""Single-message chat and code tool endpoints.

Unlike ``/api/vibe/chat`` these always answer: an exhausted provider chain
is papered over with canned local text.
"""

from datetime import UTC, datetime

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from legion.api.deps import get_dispatcher
from legion.api.models import (
    AnalyzeFileBody,
    GenerateCodeBody,
    LegacyChatBody,
    LegacyChatResponse,
)
from legion.core.exceptions import InvalidRequest
from legion.core.logging import get_logger
from legion.services.dispatcher import ChatRequest, CompletionDispatcher
from legion.services.fallback import analysis_fallback, code_fallback, local_response
from legion.services.prompts import code_generation_prompt, file_analysis_prompt

logger = get_logger(__name__)
router = APIRouter(prefix="/api", tags=["chat"])

LOCAL_SERVICE = "local"
AUTO_MODEL = "auto"


def _now() -> str:
    return datetime.now(UTC).isoformat()


@router.post("/chat", response_model=LegacyChatResponse)
async def chat(
    body: LegacyChatBody,
    dispatcher: CompletionDispatcher = Depends(get_dispatcher),
) -> LegacyChatResponse:
    if not body.message:
        raise InvalidRequest("Message is required")

    model = None if body.model == AUTO_MODEL else body.model
    result = await dispatcher.dispatch(
        ChatRequest(message=body.message, model=model, temperature=body.temperature)
    )
    if result.ok:
        return LegacyChatResponse(
            response=result.response,
            service=result.provider,
            model=result.model or body.model,
            timestamp=result.timestamp,
        )

    logger.info("Serving local fallback response", data={"last_error": result.error})
    return LegacyChatResponse(
        response=local_response(body.message),
        service=LOCAL_SERVICE,
        model=body.model,
        timestamp=_now(),
    )


@router.post("/generate-code")
async def generate_code(
    body: GenerateCodeBody,
    dispatcher: CompletionDispatcher = Depends(get_dispatcher),
):
    prompt = code_generation_prompt(body.description, body.language, body.framework)
    result = await dispatcher.dispatch(ChatRequest(message=prompt))
    if not result.ok:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "Code generation failed",
                "fallback": code_fallback(body.description, body.language),
            },
        )
    return {
        "success": True,
        "code": result.response,
        "language": body.language,
        "framework": body.framework,
        "timestamp": result.timestamp,
    }


@router.post("/analyze-file")
async def analyze_file(
    body: AnalyzeFileBody,
    dispatcher: CompletionDispatcher = Depends(get_dispatcher),
):
    prompt = file_analysis_prompt(body.content, body.filename, body.file_type)
    result = await dispatcher.dispatch(ChatRequest(message=prompt))
    if not result.ok:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": "File analysis failed",
                "fallback": analysis_fallback(body.filename, body.file_type),
            },
        )
    return {
        "success": True,
        "analysis": result.response,
        "filename": body.filename,
        "type": body.file_type,
        "timestamp": result.timestamp,
    }
