import uuid
import logging
from fastapi import FastAPI, Request
from starlette.exceptions import HTTPException
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder

from pizzacraft.core.config import ENVIRONMENT
from pizzacraft.core.exceptions import PizzaCraftError, PaymentGatewayError

log = logging.getLogger(__name__)


# Generate a clean request id for every response
def _rid():
    """Generates a unique request ID for tracing."""
    return uuid.uuid4().hex


def _error_body(message, **extra):
    body = {"success": False, "message": message, "request_id": _rid()}
    body.update(extra)
    return body


# ----------- Exception Handlers (called by FastAPI) -----------

def domain_exception_handler(request: Request, exc: PizzaCraftError):
    """Handles business rule violations raised by the service layer."""
    if isinstance(exc, PaymentGatewayError):
        log.error(f"Payment gateway failure on {request.url.path}: {exc.message}")
        return JSONResponse(status_code=exc.status_code, content=_error_body(exc.public_message))

    log.info(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc.message))


def http_exception_handler(request: Request, exc: HTTPException):
    """Handles exceptions raised by HTTPException (e.g., 404, 401)."""
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.detail),
        headers=getattr(exc, "headers", None),
    )


def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Handles Pydantic validation errors as 400 Bad Request."""
    body = _error_body("Invalid input data", details=jsonable_encoder(exc.errors()))
    return JSONResponse(status_code=400, content=body)


def generic_exception_handler(request: Request, exc: Exception):
    """Handles all unhandled exceptions (500 Internal Server Error)."""
    log.exception(f"Unhandled exception on path: {request.url.path}", exc_info=exc)

    extra = {}
    if ENVIRONMENT != "production":
        extra["error"] = str(exc)
    return JSONResponse(status_code=500, content=_error_body("Internal server error", **extra))


# ----------- Registration Function -----------

def setup_exception_handlers(app: FastAPI):
    """Registers all custom exception handlers with the FastAPI application."""

    app.add_exception_handler(PizzaCraftError, domain_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    return app
