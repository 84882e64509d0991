import json
import logging
from typing import Callable
from starlette.middleware.base import BaseHTTPMiddleware
from fastapi.responses import JSONResponse
from fastapi import Request
from shared.core.schemas import JsonOutResult
from shared.utils.app_status_code import AppStatusCode

logger = logging.getLogger(__name__)

ENVELOPE_KEYS = {"status", "status_code", "message"}


def _is_wrapped(data) -> bool:
    return isinstance(data, dict) and ENVELOPE_KEYS.issubset(data.keys())


class JsonResponseMiddleware(BaseHTTPMiddleware):
    """Wraps every JSON response in the JsonOutResult envelope."""

    async def dispatch(self, request: Request, call_next: Callable):
        # Skip docs/openapi endpoints
        if request.url.path.startswith(("/openapi", "/docs", "/redoc")):
            return await call_next(request)

        try:
            response = await call_next(request)
        except Exception as e:
            logger.exception("Unhandled error on %s %s",
                             request.method, request.url.path)
            wrapped_error = JsonOutResult(
                data=None,
                status="Failure",
                status_code=AppStatusCode.OPERATION_FAILED,
                message=f"Internal Server Error: {e}",
            ).model_dump()
            return JSONResponse(content=wrapped_error, status_code=500)

        if "application/json" not in response.headers.get("content-type", ""):
            return response

        body_bytes = b""
        async for chunk in response.body_iterator:
            body_bytes += chunk

        try:
            data = json.loads(body_bytes.decode("utf-8")) if body_bytes else None
        except ValueError:
            data = None

        headers = {k: v for k, v in response.headers.items()
                   if k.lower() != "content-length"}

        if _is_wrapped(data):
            return JSONResponse(content=data, status_code=response.status_code,
                                headers=headers)

        # Error responses (4xx/5xx) not produced by our handlers
        if not (200 <= response.status_code < 400):
            message = "An unexpected error occurred"
            if isinstance(data, dict):
                message = str(data.get("detail") or data.get("message") or message)
            elif isinstance(data, str):
                message = data

            wrapped_error = JsonOutResult(
                data=None,
                status="Failure",
                status_code=str(response.status_code),
                message=message,
            ).model_dump()
            return JSONResponse(content=wrapped_error,
                                status_code=response.status_code, headers=headers)

        wrapped = JsonOutResult(
            data=data,
            status="Success",
            status_code=AppStatusCode.DATA_RETRIEVED_SUCCESSFULLY,
            message="Data retrieved successfully"
        ).model_dump()
        return JSONResponse(content=wrapped, status_code=response.status_code,
                            headers=headers)
