"""
Failure taxonomy for connection operations and the FastAPI error handlers.

Service operations never let a failure escape as an exception: they raise
`ConnectionFailure` internally and `rpc_operation` turns it into the tagged
`RpcFailure` envelope. Storage errors become `INTERNAL_ERROR` without any
diagnostic detail in the message.
"""
from __future__ import annotations

import functools
import logging
from typing import Any, Callable, TypeVar

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from starlette import status

from ..schemas.rpc import RpcFailure
from .enums import ErrorCode

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "An unexpected error occurred. Please try again."

F = TypeVar("F", bound=Callable[..., Any])


class ConnectionFailure(Exception):
    """A rejected connection operation carrying a machine-readable code."""

    def __init__(self, code: ErrorCode, message: str):
        self.code = code
        self.message = message
        super().__init__(message)

    def to_result(self) -> RpcFailure:
        return RpcFailure(error=self.code, message=self.message)


def not_authenticated(message: str = "You must be logged in") -> RpcFailure:
    return RpcFailure(error=ErrorCode.NOT_AUTHENTICATED, message=message)


def rpc_operation(func: F) -> F:
    """Run a service operation and always hand back a tagged result.

    The wrapped function takes the database session as its first argument.
    """

    @functools.wraps(func)
    def wrapper(db: Session, *args: Any, **kwargs: Any):
        try:
            return func(db, *args, **kwargs)
        except ConnectionFailure as exc:
            return exc.to_result()
        except SQLAlchemyError:
            db.rollback()
            logger.exception("Storage failure in %s", func.__name__)
            return RpcFailure(error=ErrorCode.INTERNAL_ERROR, message=INTERNAL_ERROR_MESSAGE)

    return wrapper  # type: ignore[return-value]


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    field_errors = [
        {
            "field": ".".join(str(loc) for loc in error["loc"] if loc != "body"),
            "message": error["msg"],
        }
        for error in exc.errors()
    ]
    return JSONResponse(
        status_code=422,
        content={
            "success": False,
            "error": "VALIDATION_ERROR",
            "message": "Request validation failed.",
            "details": {"errors": field_errors},
        },
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "success": False,
            "error": ErrorCode.INTERNAL_ERROR.value,
            "message": INTERNAL_ERROR_MESSAGE,
        },
    )
