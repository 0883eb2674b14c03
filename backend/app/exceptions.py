from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import traceback
from .logger import logger


class RenderRelayBaseException(Exception):
    """Base exception for the query relay and render worker"""
    def __init__(self, message: str, code: str = "INTERNAL_ERROR", status_code: int = 500):
        self.message = message
        self.code = code
        self.status_code = status_code
        super().__init__(self.message)


class InvalidRelayRequestError(RenderRelayBaseException):
    """Raised when a relay request is missing fields or names an unknown action"""
    def __init__(self, message: str):
        super().__init__(message, "INVALID_REQUEST", 400)


class QueryExecutionError(RenderRelayBaseException):
    """Raised when the database rejects a relayed statement"""
    def __init__(self, message: str):
        super().__init__(message, "QUERY_FAILED", 500)


class IntegrationNotFoundError(RenderRelayBaseException):
    """Raised when no credentials are stored for the render service"""
    def __init__(self, service: str):
        super().__init__(f"No {service} integration found", "INTEGRATION_NOT_FOUND", 500)


class RenderProviderError(RenderRelayBaseException):
    """Raised when the render provider rejects or cannot start a render"""
    def __init__(self, message: str = "Render provider request failed"):
        super().__init__(message, "RENDER_PROVIDER_ERROR", 502)


class RenderFailedError(RenderProviderError):
    """Raised when the provider reports a render as failed"""


class RenderTimeoutError(RenderProviderError):
    """Raised when a render does not finish within the poll budget"""


def _error_response(status_code: int, code: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": message,
            "code": code,
        }
    )


async def render_relay_exception_handler(request: Request, exc: RenderRelayBaseException):
    """Handle custom application exceptions"""
    log = logger.warning if exc.status_code < 500 else logger.error
    log(
        f"Application exception: {exc.code} - {exc.message}",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "request_path": request.url.path,
        }
    )
    return _error_response(exc.status_code, exc.code, exc.message)


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    """Handle HTTP exceptions, including 404/405 raised by routing"""
    logger.warning(
        f"HTTP {exc.status_code}: {exc.detail}",
        extra={
            "http_status_code": exc.status_code,
            "http_detail": exc.detail,
            "request_path": request.url.path,
        }
    )
    return _error_response(exc.status_code, "HTTP_ERROR", str(exc.detail))


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Malformed bodies are client errors like any other bad relay input"""
    message = "; ".join(
        f"{'.'.join(str(p) for p in err.get('loc', ()))}: {err.get('msg')}" for err in exc.errors()
    ) or "Invalid request body"
    logger.warning(
        f"Request validation failed: {message}",
        extra={"request_path": request.url.path}
    )
    return _error_response(400, "INVALID_REQUEST", message)


async def generic_exception_handler(request: Request, exc: Exception):
    """Handle all other exceptions"""
    logger.error(
        f"Unhandled exception: {type(exc).__name__} - {str(exc)}",
        extra={
            "exc_type": type(exc).__name__,
            "exc_message": str(exc),
            "request_path": request.url.path,
            "exc_traceback": traceback.format_exc(),
        }
    )
    return _error_response(500, "INTERNAL_SERVER_ERROR", str(exc) or type(exc).__name__)
