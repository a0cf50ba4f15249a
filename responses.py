"""
Uniform JSON envelope: {"statusCode", "data", "message", "success"}.

Handlers return `ApiResponse(...)`; anything that fails raises `ApiError`
and the exception handlers registered by `register_error_handlers` render
the same envelope with `success: false`.
"""
import logging
from typing import Any, List

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.exceptions import HTTPException

from errors import ApiError
from utils import serialize_doc

logger = logging.getLogger(__name__)


def envelope(status_code: int, data: Any, message: str) -> dict:
    return {
        "statusCode": status_code,
        "data": data,
        "message": message,
        "success": status_code < 400,
    }


def ApiResponse(status_code: int, data: Any = None, message: str = "Success") -> JSONResponse:
    payload = envelope(status_code, serialize_doc(data), message)
    return JSONResponse(status_code=status_code, content=jsonable_encoder(payload))


def _error_response(status_code: int, message: str, errors: List[Any]) -> JSONResponse:
    payload = envelope(status_code, None, message)
    payload["errors"] = errors
    return JSONResponse(status_code=status_code, content=jsonable_encoder(payload))


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(ApiError)
    async def api_error_handler(request: Request, exc: ApiError):
        logger.info("%s %s -> %s %s", request.method, request.url.path, exc.status_code, exc.message)
        return _error_response(exc.status_code, exc.message, exc.errors)

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return _error_response(exc.status_code, str(exc.detail), [])

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return _error_response(400, "Invalid request", exc.errors())

    @app.exception_handler(ValidationError)
    async def document_validation_handler(request: Request, exc: ValidationError):
        return _error_response(400, "Invalid data", exc.errors(include_url=False, include_context=False))

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        return _error_response(500, "Something went wrong", [])
