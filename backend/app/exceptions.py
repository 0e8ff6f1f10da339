from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel


class ErrorResponse(BaseModel):
    """Standard error response schema."""

    error: str
    detail: str | None = None
    status_code: int


class AppError(Exception):
    """Base application exception."""

    def __init__(self, message: str, status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR) -> None:
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class InvalidRange(AppError):
    """The requested date range starts after it ends."""

    def __init__(self, message: str = "start_date must be before or equal to end_date") -> None:
        super().__init__(message, status_code=status.HTTP_400_BAD_REQUEST)


class PersistenceFailure(AppError):
    """Leave or holiday data could not be read or written."""

    def __init__(self, message: str = "Leave data is temporarily unavailable") -> None:
        super().__init__(message, status_code=status.HTTP_503_SERVICE_UNAVAILABLE)


class UpstreamLookupFailure(AppError):
    """An external collaborator (identity, Slack, event bus) failed."""

    def __init__(self, message: str) -> None:
        super().__init__(message, status_code=status.HTTP_502_BAD_GATEWAY)


class NotificationNotConfigured(AppError):
    """Slack credentials are missing."""

    def __init__(self, message: str = "Slack is not configured: SLACK_BOT_KEY or SLACK_CHANNEL_ID is missing") -> None:
        super().__init__(message, status_code=status.HTTP_503_SERVICE_UNAVAILABLE)


class LockUnavailable(AppError):
    """A distributed lock is held elsewhere or the lock store could not be reached."""

    def __init__(self, key: int) -> None:
        self.key = key
        super().__init__(f"Lock {key} is not available", status_code=status.HTTP_409_CONFLICT)


async def _app_exception_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content=ErrorResponse(
            error=type(exc).__name__,
            detail=exc.message,
            status_code=exc.status_code,
        ).model_dump(),
    )


async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ErrorResponse(
            error="ValidationError",
            detail=str(exc.errors()),
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        ).model_dump(),
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers on the application."""
    app.add_exception_handler(AppError, _app_exception_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)  # type: ignore[arg-type]
