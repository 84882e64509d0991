import logging
from fastapi import FastAPI, Request, HTTPException
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from sqlalchemy.exc import DataError, DBAPIError, IntegrityError, InterfaceError, OperationalError

from shared.core.schemas import JsonOutResult
from shared.helpers.app_errors import WorkflowError
from shared.utils.app_status_code import AppStatusCode

logger = logging.getLogger(__name__)


def _failure(message: str, status_code: str, http_status: int, data=None) -> JSONResponse:
    wrapped = JsonOutResult(
        data=data,
        status="Failure",
        status_code=status_code,
        message=message
    ).model_dump()
    return JSONResponse(content=wrapped, status_code=http_status)


def setup_exception_handlers(app: FastAPI):

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        # error_response() already builds the envelope
        if isinstance(exc.detail, dict) and "status_code" in exc.detail:
            return JSONResponse(content=exc.detail, status_code=exc.status_code)
        return _failure(
            message=str(exc.detail),
            status_code=str(exc.status_code or AppStatusCode.OPERATION_FAILED),
            http_status=exc.status_code or 400,
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        message = "; ".join(
            f"{'.'.join(str(p) for p in err.get('loc', []))}: {err.get('msg')}"
            for err in exc.errors()
        )
        return _failure(message, AppStatusCode.INVALID_INPUT, 422)

    @app.exception_handler(WorkflowError)
    async def workflow_exception_handler(request: Request, exc: WorkflowError):
        logger.warning("%s %s refused: %s", request.method,
                       request.url.path, exc.message)
        return _failure(
            message=exc.message,
            status_code=exc.status_code,
            http_status=exc.http_status,
            data={"error": exc.error, "retryable": exc.retryable},
        )

    @app.exception_handler(IntegrityError)
    async def integrity_exception_handler(request: Request, exc: IntegrityError):
        logger.warning("Constraint violation on %s %s: %s",
                       request.method, request.url.path, exc.orig)
        return _failure(
            message="Request conflicts with stored data",
            status_code=AppStatusCode.DATA_CONFLICT,
            http_status=409,
            data={"error": "DataConflict", "retryable": False},
        )

    @app.exception_handler(DataError)
    async def data_exception_handler(request: Request, exc: DataError):
        logger.warning("Rejected value on %s %s: %s",
                       request.method, request.url.path, exc.orig)
        return _failure(
            message="Request contains a value the data store cannot accept",
            status_code=AppStatusCode.INVALID_INPUT,
            http_status=400,
            data={"error": "InvalidInput", "retryable": False},
        )

    @app.exception_handler(DBAPIError)
    async def database_exception_handler(request: Request, exc: DBAPIError):
        logger.exception("Data store failure on %s %s",
                         request.method, request.url.path)
        # only connection level failures are worth retrying
        if isinstance(exc, (OperationalError, InterfaceError)) or exc.connection_invalidated:
            return _failure(
                message="Data store unavailable, retry later",
                status_code=AppStatusCode.SERVICE_UNAVAILABLE,
                http_status=503,
                data={"error": "ServiceUnavailable", "retryable": True},
            )
        return _failure(
            message="Data store rejected the request",
            status_code=AppStatusCode.OPERATION_FAILED,
            http_status=500,
            data={"error": "OperationFailed", "retryable": False},
        )

    # Catch all unhandled exceptions
    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception on %s %s",
                         request.method, request.url.path)
        return _failure(str(exc), AppStatusCode.OPERATION_FAILED, 500)
