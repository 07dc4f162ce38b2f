"""
Health and status endpoints.

Static descriptions of the gateway; none of them contact upstream providers.
"""

from datetime import UTC, datetime
from typing import Any

from fastapi import APIRouter, Depends, Request

from legion.api.deps import get_provider_table
from legion.config import get_settings
from legion.providers.catalog import ProviderTable

router = APIRouter(tags=["health"])


def _uptime_ms(request: Request) -> int:
    started = getattr(request.app.state, "start_time", None)
    if started is None:
        return 0
    return int((datetime.now(UTC) - started).total_seconds() * 1000)


def _services(table: ProviderTable) -> dict[str, Any]:
    return {
        p.key: {
            "name": p.name,
            "enabled": True,
            "url": p.base_url,
            "models": list(p.models),
            "status": "ready" if p.credential else "unconfigured",
        }
        for p in table
    }


def _system(request: Request, table: ProviderTable) -> dict[str, Any]:
    return {
        "server": "running",
        "ai": "ready" if any(p.credential for p in table) else "degraded",
        "network": "connected",
        "storage": "ready",
        "uptime": _uptime_ms(request),
    }


@router.get("/health")
@router.get("/api/health")
async def healthcheck(
    request: Request,
    table: ProviderTable = Depends(get_provider_table),
) -> dict[str, Any]:
    """Liveness check used by the health-check script and load balancers."""
    return {
        "status": "healthy",
        "uptime": _uptime_ms(request),
        "services": _services(table),
        "system": _system(request, table),
        "timestamp": datetime.now(UTC).isoformat(),
    }


@router.get("/api/status")
async def api_status(
    request: Request,
    table: ProviderTable = Depends(get_provider_table),
) -> dict[str, Any]:
    return {
        "success": True,
        "system": _system(request, table),
        "ai": _services(table),
        "timestamp": datetime.now(UTC).isoformat(),
    }


@router.get("/api/network/discover")
async def network_discover(request: Request) -> dict[str, Any]:
    settings = get_settings()
    endpoint = settings.public_base_url or str(request.base_url).rstrip("/")
    return {
        "success": True,
        "nodes": [
            {
                "id": "local",
                "name": "Local Node",
                "status": "active",
                "services": ["ai", "storage", "compute"],
                "endpoint": endpoint,
            }
        ],
        "timestamp": datetime.now(UTC).isoformat(),
    }
