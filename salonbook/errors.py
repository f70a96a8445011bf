# salonbook/errors.py

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class BookingError(Exception):
    """Business rule violation with a reason string shown to the caller."""

    status_code = 400

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class NotFoundError(BookingError):
    status_code = 404


class BadRequestError(BookingError):
    status_code = 400


class ConflictError(BookingError):
    status_code = 409


async def booking_error_handler(request: Request, exc: BookingError) -> JSONResponse:
    logger.warning(f"{request.method} {request.url.path} rejected ({exc.status_code}): {exc.reason}")
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.reason})


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(BookingError, booking_error_handler)
