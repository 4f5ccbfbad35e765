import logging
from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppError(Exception):
    status_code = 500
    error_code = "AppError"

    def __init__(self, message: str, headers: Optional[Dict[str, str]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.headers = headers


class Unauthorized(AppError):
    status_code = 401
    error_code = "Unauthorized"

    def __init__(self, message: str = "Could not validate credentials") -> None:
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class Forbidden(AppError):
    status_code = 403
    error_code = "Forbidden"


class NotFound(AppError):
    status_code = 404
    error_code = "NotFound"

    def __init__(self, entity: str, identifier: Any) -> None:
        super().__init__(f"{entity} {identifier} not found")
        self.entity = entity
        self.identifier = identifier


class MalformedSnapshot(AppError):
    status_code = 400
    error_code = "MalformedSnapshot"

    def __init__(self, message: str, errors: Optional[list] = None) -> None:
        super().__init__(message)
        self.errors = errors or []


class TransactionFailure(AppError):
    status_code = 500
    error_code = "TransactionFailure"


class WhatsAppError(AppError):
    status_code = 502
    error_code = "WhatsAppError"


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:  # type: ignore[override]
        payload: Dict[str, Any] = {
            "detail": exc.message,
            "error": exc.error_code,
            "path": str(request.url),
        }
        errors = getattr(exc, "errors", None)
        if errors:
            payload["errors"] = errors
        return JSONResponse(status_code=exc.status_code, content=payload, headers=exc.headers)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:  # type: ignore[override]
        return JSONResponse(
            status_code=422,
            content={
                "detail": "Validation failed.",
                "error": "ValidationError",
                "errors": _jsonable_errors(exc.errors()),
                "path": str(request.url),
            },
        )

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:  # type: ignore[override]
        payload: Dict[str, Any] = {"detail": exc.detail or "HTTP error.", "error": "HTTPError", "path": str(request.url)}
        return JSONResponse(status_code=exc.status_code, content=payload, headers=exc.headers)

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:  # type: ignore[override]
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={
                "detail": "Internal server error.",
                "error": "InternalError",
                "path": str(request.url),
            },
        )


def _jsonable_errors(errors: Any) -> list:
    cleaned = []
    for error in errors:
        item = dict(error)
        # ctx may hold exception instances
        if "ctx" in item:
            item["ctx"] = {key: str(value) for key, value in item["ctx"].items()}
        item.pop("url", None)
        cleaned.append(item)
    return cleaned
