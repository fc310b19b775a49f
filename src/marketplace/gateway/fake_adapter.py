"""Configurable fake payment gateway for development and testing.

Simulates a payment processor without any external calls. It can be
configured at runtime to succeed or fail, and to take a while to answer so
the payment timeout boundary can be exercised.
"""

import time
from uuid import uuid4

from marketplace.gateway.port import ChargeResult, PaymentGateway


class FakeGateway(PaymentGateway):
    """Configurable fake payment gateway."""

    def __init__(self) -> None:
        self.should_succeed: bool = True
        self.failure_reason: str = "Card declined"
        self.delay: float = 0.0
        self.calls: list[dict] = []

    def configure(self, should_succeed: bool, failure_reason: str = "Card declined", delay: float = 0.0) -> None:
        """Configure gateway behavior at runtime."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.delay = delay

    def create_charge(
        self,
        amount: float,
        currency: str,
        order_id: str,
        idempotency_key: str,
    ) -> ChargeResult:
        self.calls.append(
            {
                "method": "create_charge",
                "amount": amount,
                "currency": currency,
                "order_id": order_id,
                "idempotency_key": idempotency_key,
            }
        )

        if self.delay:
            time.sleep(self.delay)

        if self.should_succeed:
            return ChargeResult(
                success=True,
                gateway_transaction_id=f"fake_txn_{uuid4().hex[:12]}",
                gateway_status="succeeded",
            )
        return ChargeResult(
            success=False,
            gateway_status="failed",
            failure_reason=self.failure_reason,
        )
