import logging

from fastapi import FastAPI, Request, HTTPException
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from shared.core.schemas import JsonOutResult
from shared.utils.app_status_code import AppStatusCode

logger = logging.getLogger(__name__)


def setup_exception_handlers(app: FastAPI):

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        # error_response() already built the envelope
        if isinstance(exc.detail, dict) and "status_code" in exc.detail:
            return JSONResponse(content=exc.detail, status_code=exc.status_code)

        wrapped = JsonOutResult(
            data=None,
            status="Failure",
            status_code=str(exc.status_code or AppStatusCode.OPERATION_FAILED),
            message=str(exc.detail)
        ).model_dump()
        return JSONResponse(content=wrapped, status_code=exc.status_code or 400)

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = [
            f"{'.'.join(str(part) for part in err.get('loc', ()))}: {err.get('msg')}"
            for err in exc.errors()
        ]
        wrapped = JsonOutResult(
            data=None,
            status="Failure",
            status_code=AppStatusCode.INVALID_INPUT,
            message="; ".join(errors) or "Invalid request"
        ).model_dump()
        return JSONResponse(content=wrapped, status_code=422)

    # Catch all unhandled exceptions
    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        logger.exception("Unhandled exception on %s %s", request.method, request.url.path)

        wrapped = JsonOutResult(
            data=None,
            status="Failure",
            status_code=AppStatusCode.OPERATION_FAILED,
            message="Internal server error"
        ).model_dump()
        return JSONResponse(content=wrapped, status_code=500)
