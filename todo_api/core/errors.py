import logging

from aio_pika.exceptions import AMQPError
from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

# Store, cache and broker faults: fatal for the request, never retried here.
INFRASTRUCTURE_ERRORS = (SQLAlchemyError, RedisError, AMQPError)


async def infrastructure_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"{type(exc).__name__} while handling {request.method} {request.url.path}",
        exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal server error"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    for exc_class in INFRASTRUCTURE_ERRORS:
        app.add_exception_handler(exc_class, infrastructure_error_handler)
