"""Exception taxonomy and FastAPI exception handlers."""

from datetime import UTC, datetime

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from legion.core.logging import get_logger, request_context

logger = get_logger(__name__)


def build_error_envelope(
    *,
    code: str,
    message: str,
    request_id: str | None,
    details: str | None = None,
    extra: dict | None = None,
) -> dict:
    """Build the ``{"error", "code", "request_id"}`` payload.

    ``error`` stays a plain message string so existing browser clients can
    show it as-is.
    """
    payload: dict = {
        "error": message,
        "code": code,
        "request_id": request_id,
    }
    if details is not None:
        payload["details"] = details
    if extra:
        payload.update(extra)
    return payload


class LegionException(Exception):
    """Base exception for the gateway."""

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        code: str = "E5000",
        details: dict = None,
    ):
        self.message = message
        self.status_code = status_code
        self.code = code
        self.details = details or {}
        super().__init__(message)


class InvalidRequest(LegionException):
    """No usable message content was supplied."""

    def __init__(self, message: str = "message or messages required"):
        super().__init__(message, status_code=status.HTTP_400_BAD_REQUEST, code="E4000")


class ProviderAttemptFailed(LegionException):
    """A single upstream provider attempt failed.

    Recoverable: the dispatcher logs it and moves on to the next provider.
    """

    def __init__(self, message: str, provider: str = None):
        self.provider = provider
        super().__init__(
            message,
            status_code=status.HTTP_502_BAD_GATEWAY,
            code="E3000",
            details={"provider": provider} if provider else {},
        )


class AllProvidersExhausted(LegionException):
    """Every configured provider failed for one dispatch."""

    def __init__(self, last_error: str | None, providers: list[str]):
        self.last_error = last_error
        self.providers = list(providers)
        super().__init__(
            "All AI providers temporarily unavailable",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            code="E5030",
            details={
                "details": last_error,
                "providers": self.providers,
                "timestamp": datetime.now(UTC).isoformat(),
            },
        )


def _current_request_id() -> str | None:
    ctx = request_context.get()
    return ctx.get("request_id") if ctx else None


def setup_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers with FastAPI app."""

    @app.exception_handler(LegionException)
    async def legion_exception_handler(
        request: Request, exc: LegionException
    ) -> JSONResponse:
        """Handle gateway-specific exceptions."""
        log = logger.warning if exc.status_code < 500 else logger.error
        log(
            f"Gateway error: {exc.message}",
            data={"status_code": exc.status_code, "details": exc.details},
        )
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.message,
                **build_error_envelope(
                    code=exc.code,
                    message=exc.message,
                    request_id=_current_request_id(),
                    extra=exc.details,
                ),
            },
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Handle request body validation errors."""
        errors = exc.errors()
        logger.warning(
            "Validation error",
            data={"errors": [{"loc": e.get("loc"), "msg": e.get("msg")} for e in errors]},
        )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "detail": "Validation error",
                "errors": [{"loc": list(e.get("loc", ())), "msg": e.get("msg"), "type": e.get("type")} for e in errors],
                **build_error_envelope(
                    code="E4220",
                    message="Validation error",
                    request_id=_current_request_id(),
                ),
            },
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(
        request: Request, exc: HTTPException
    ) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "detail": exc.detail,
                **build_error_envelope(
                    code=f"E{exc.status_code}0",
                    message=str(exc.detail),
                    request_id=_current_request_id(),
                ),
            },
            headers=exc.headers,
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(
        request: Request, exc: Exception
    ) -> JSONResponse:
        """Handle unexpected exceptions."""
        logger.error(
            f"Unhandled exception: {type(exc).__name__}: {exc}",
            exc_info=True,
        )
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "detail": "Internal server error",
                **build_error_envelope(
                    code="E5000",
                    message="Internal server error",
                    request_id=_current_request_id(),
                    details=str(exc),
                ),
            },
        )
