"""
Global error handling middleware.

Any exception that escapes a route becomes a JSON body of the form
{"error": ..., "detail": ...}. Upstream Water Requirement Engine failures
map to 502, bad geometry or options to 400, and everything else to a
generic 500 whose detail never leaks internals.
"""
import logging
from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from typing import Callable

from greenhouse_irrigation.infrastructure.water_engine_client import WaterEngineError


logger = logging.getLogger(__name__)

GENERIC_DETAIL = "An unexpected error occurred"


def _error_response(status_code: int, error: str, detail: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"error": error, "detail": detail},
    )


class ErrorHandlerMiddleware(BaseHTTPMiddleware):
    """Turns exceptions raised during analysis into consistent error responses."""

    async def dispatch(self, request: Request, call_next: Callable):
        request_info = {"path": request.url.path, "method": request.method}
        try:
            return await call_next(request)

        except WaterEngineError as e:
            logger.error(f"Water engine error on {request.url.path}: {e}", extra=request_info)
            return _error_response(
                status.HTTP_502_BAD_GATEWAY,
                "Water Requirement Engine error",
                str(e),
            )

        except ValueError as e:
            # Geometry or option values the analysis cannot work with
            logger.warning(f"Rejected analysis input on {request.url.path}: {e}", extra=request_info)
            return _error_response(status.HTTP_400_BAD_REQUEST, "Invalid request", str(e))

        except Exception as e:
            logger.exception(f"Unhandled {type(e).__name__} on {request.url.path}", extra=request_info)
            return _error_response(
                status.HTTP_500_INTERNAL_SERVER_ERROR,
                "Internal server error",
                GENERIC_DETAIL,
            )
