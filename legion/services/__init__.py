"""Gateway services."""

from legion.services.dispatcher import (
    OUTCOME_ALL_FAILED,
    OUTCOME_SUCCESS,
    ChatRequest,
    ChatResult,
    CompletionDispatcher,
    assemble_turns,
)

__all__ = [
    "OUTCOME_ALL_FAILED",
    "OUTCOME_SUCCESS",
    "ChatRequest",
    "ChatResult",
    "CompletionDispatcher",
    "assemble_turns",
]
