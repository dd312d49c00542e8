import logging
import traceback

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from common.config import Settings

logger = logging.getLogger(__name__)


def install_error_handlers(app: FastAPI, settings: Settings) -> None:
    """Turn unexpected exceptions into a JSON 500 instead of a bare crash.

    In development the response also carries the formatted traceback.
    """

    @app.exception_handler(Exception)
    async def unhandled_exception(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path)
        body = {"error": "Internal server error"}
        if settings.is_development:
            body["traceback"] = traceback.format_exception(type(exc), exc, exc.__traceback__)
        return JSONResponse(status_code=500, content=body)
