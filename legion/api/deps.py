"""FastAPI dependencies resolving per-process singletons from app state."""

from fastapi import Request

from legion.providers.catalog import ProviderTable
from legion.services.dispatcher import CompletionDispatcher


def get_dispatcher(request: Request) -> CompletionDispatcher:
    return request.app.state.dispatcher


def get_provider_table(request: Request) -> ProviderTable:
    return request.app.state.provider_table
