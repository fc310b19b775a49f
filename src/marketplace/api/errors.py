"""HTTP error mapping for marketplace failures.

Protean's own handlers are registered first; the handlers below then pin the
status codes of the marketplace taxonomy:

    ObjectNotFoundError   404
    ValidationError       400
    InvalidStateError     409
    PaymentFailedError    502
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.integrations.fastapi import register_exception_handlers

from marketplace.exceptions import InvalidStateError, PaymentFailedError


def _messages(exc):
    return getattr(exc, "messages", None) or {"error": [str(exc)]}


async def _not_found(request: Request, exc: ObjectNotFoundError):  # noqa: ARG001
    return JSONResponse(status_code=404, content={"error": _messages(exc)})


async def _invalid_input(request: Request, exc: ValidationError):  # noqa: ARG001
    return JSONResponse(status_code=400, content={"error": _messages(exc)})


async def _invalid_state(request: Request, exc: InvalidStateError):  # noqa: ARG001
    return JSONResponse(status_code=409, content={"error": _messages(exc)})


async def _payment_failed(request: Request, exc: PaymentFailedError):  # noqa: ARG001
    return JSONResponse(
        status_code=502,
        content={"error": _messages(exc), "order_id": exc.order_id},
    )


def register_marketplace_error_handlers(app: FastAPI) -> None:
    register_exception_handlers(app)
    app.add_exception_handler(ObjectNotFoundError, _not_found)
    app.add_exception_handler(ValidationError, _invalid_input)
    app.add_exception_handler(InvalidStateError, _invalid_state)
    app.add_exception_handler(PaymentFailedError, _payment_failed)
