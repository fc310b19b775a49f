"""Typed failures raised by the marketplace engine.

The taxonomy is layered on Protean's own exceptions so that command
processing, unit-of-work rollback and the FastAPI integration keep treating
them as domain errors:

- NotFound        → ``protean.exceptions.ObjectNotFoundError`` (raised by repositories)
- InvalidInput    → ``ValidationError`` and its subclasses below
- InvalidState    → ``InvalidStateError``
- ExternalFailure → ``PaymentFailedError``
"""

from protean.exceptions import InvalidOperationError, ProteanException, ValidationError


class InvalidQuantityError(ValidationError):
    """Requested quantity is below one or exceeds available stock."""


class InvalidVariantError(ValidationError):
    """No variant of the catalog item matches the selection."""


class InvalidPriceError(ValidationError):
    """The resolved unit price is missing or not positive."""


class InvalidStateError(InvalidOperationError):
    """The aggregate's current state does not allow the requested transition."""

    def __init__(self, messages):
        super().__init__(messages)
        self.messages = messages


class PaymentFailedError(ProteanException):
    """The payment gateway declined, failed, or timed out.

    The order that was being placed is persisted with status ``payment_failed``;
    its identifier travels with the exception so callers can surface it.
    """

    def __init__(self, messages, order_id=None):
        super().__init__(messages)
        self.messages = messages
        self.order_id = order_id
