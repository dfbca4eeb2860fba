"""
Request middleware: error rendering and request timing
"""
import time
import traceback
import uuid
from datetime import datetime
from typing import Any

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.middleware.base import BaseHTTPMiddleware

from match_engine.utils.exceptions import MatchEngineError, map_to_http_exception
from match_engine.utils.logging_config import get_logger

logger = get_logger(__name__)


def error_response(request_id: str, status_code: int, detail: Any) -> JSONResponse:
    if isinstance(detail, str):
        detail = {"message": detail}
    elif not isinstance(detail, dict):
        detail = {"message": str(detail)}
    body = {
        "success": False,
        "timestamp": datetime.utcnow().isoformat(),
        "request_id": request_id,
        "status_code": status_code,
        **detail,
    }
    return JSONResponse(status_code=status_code, content=body, headers={"X-Request-ID": request_id})


class ExceptionHandlerMiddleware(BaseHTTPMiddleware):
    """Turns engine errors into the standard JSON error body"""

    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        where = f"{request.method} {request.url.path}"

        try:
            response = await call_next(request)
            response.headers["X-Request-ID"] = request_id
            return response

        except MatchEngineError as exc:
            logger.error(
                f"Engine error in {where}: {exc.message}",
                extra={"request_id": request_id, "error_code": exc.error_code, "details": exc.details},
            )
            http_exc = map_to_http_exception(exc)
            return error_response(request_id, http_exc.status_code, http_exc.detail)

        except RequestValidationError as exc:
            logger.error(f"Validation error in {where}: {exc}", extra={"request_id": request_id})
            return error_response(request_id, 422, {
                "error": "Validation failed",
                "message": "Request data validation failed",
                "validation_errors": exc.errors(),
            })

        except ValidationError as exc:
            logger.error(f"Data validation error in {where}: {exc}", extra={"request_id": request_id})
            return error_response(request_id, 400, {
                "error": "Data validation failed",
                "message": "Invalid data format or values",
                "validation_errors": exc.errors(include_url=False),
            })

        except HTTPException as exc:
            logger.warning(f"HTTP exception in {where}: {exc.detail}", extra={"request_id": request_id})
            return error_response(request_id, exc.status_code, exc.detail)

        except Exception as exc:
            logger.error(
                f"Unhandled exception in {where}: {exc}",
                extra={"request_id": request_id, "traceback": traceback.format_exc()},
                exc_info=True,
            )
            return error_response(request_id, 500, {
                "error": "Internal server error",
                "message": "An unexpected error occurred. Please try again later.",
            })


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs each request with its status and processing time"""

    def __init__(self, app, slow_request_threshold: float = 5.0):
        super().__init__(app)
        self.slow_request_threshold = slow_request_threshold

    async def dispatch(self, request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        processing_time = time.time() - start_time
        request_id = response.headers.get("X-Request-ID")

        message = f"{request.method} {request.url.path} - {response.status_code} in {processing_time:.3f}s"
        extra = {"request_id": request_id, "processing_time": processing_time}
        if processing_time > self.slow_request_threshold:
            logger.warning(f"Slow request: {message}", extra=extra)
        else:
            logger.info(message, extra=extra)

        response.headers["X-Processing-Time"] = f"{processing_time:.3f}"
        return response
