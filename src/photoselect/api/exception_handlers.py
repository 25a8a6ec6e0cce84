"""Maps domain exceptions that escape a route to JSON responses.

Routes handle the failures they expect; these handlers are the fallback and
never expose internal detail.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..errors import PhotoSelectError, ValidationError
from ..logging_config import get_logger

logger = get_logger(__name__)


def _validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"error": str(exc)})


def _domain_error_handler(request: Request, exc: PhotoSelectError) -> JSONResponse:
    logger.error("request_failed", path=request.url.path, code=exc.code)
    return JSONResponse(status_code=500, content={"error": "Failed"})


def _generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("unhandled_exception", path=request.url.path, error=str(exc), exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "Internal server error"})


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ValidationError, _validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(PhotoSelectError, _domain_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _generic_exception_handler)
