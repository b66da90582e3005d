from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from starlette.exceptions import HTTPException as StarletteHTTPException

from shopshap.core.exceptions import ShopShapError
from shopshap.schemas.response import ErrorResponse
from shopshap.core.config import settings
from shopshap.core.logging import get_logger
from utils.constants import INTERNAL_ERROR_MESSAGE

logger = get_logger(__name__)


def error_response(status_code: int, message: str, code: str, details: Optional[Any] = None) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorResponse(error=message, code=code, details=details).model_dump(),
    )


def add_exception_handlers(app: FastAPI):
    """
    Registers the app-level handlers.

    The verification endpoints render their own outcomes; these handlers
    cover what escapes them: unknown routes, malformed bodies, errors raised
    from dependencies or from the debug endpoint.
    """
    @app.exception_handler(ShopShapError)
    async def shopshap_exception_handler(request: Request, exc: ShopShapError):
        level = logger.error if exc.status_code >= 500 else logger.info
        level(f"{exc.code} on {request.method} {request.url.path}: {exc.message}")
        return error_response(exc.status_code, exc.message, exc.code, exc.details)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return error_response(exc.status_code, str(exc.detail), "HTTP_ERROR")

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Body is not JSON or a field has the wrong type."""
        logger.info(f"Rejected request body on {request.url.path}: {len(exc.errors())} error(s)")
        return error_response(
            422,
            "Input validation failed",
            "VALIDATION_ERROR",
            jsonable_encoder(exc.errors()),
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        logger.error(
            f"Unhandled exception on {request.method} {request.url.path}: {exc}",
            exc_info=True
        )
        # Internals stay hidden from production clients
        message = INTERNAL_ERROR_MESSAGE if settings.is_production else str(exc)
        return error_response(500, message, "INTERNAL_ERROR")
