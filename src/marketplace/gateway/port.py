"""Payment gateway port (abstract interface).

Defines the contract that payment gateway adapters implement. Order placement
only ever talks to this interface, so the fake used in development and tests
can be swapped for a real processor without touching domain code.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class ChargeResult:
    """Result of a payment charge attempt."""

    success: bool
    gateway_transaction_id: str | None = None
    gateway_status: str | None = None
    failure_reason: str | None = None


class PaymentGateway(ABC):
    """Abstract payment gateway interface."""

    @abstractmethod
    def create_charge(
        self,
        amount: float,
        currency: str,
        order_id: str,
        idempotency_key: str,
    ) -> ChargeResult:
        """Charge the buyer for an order."""
        ...
