"""Payment gateway factory.

Provides get_gateway() / set_gateway() / reset_gateway() to swap
implementations, and charge_with_timeout() which bounds how long order
placement waits for the gateway.
"""

from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError

import structlog

from marketplace.gateway.fake_adapter import FakeGateway
from marketplace.gateway.port import ChargeResult, PaymentGateway

logger = structlog.get_logger(__name__)

_current_gateway: PaymentGateway | None = None


def get_gateway() -> PaymentGateway:
    """Return the current payment gateway. Defaults to FakeGateway."""
    global _current_gateway
    if _current_gateway is None:
        _current_gateway = FakeGateway()
    return _current_gateway


def set_gateway(gateway: PaymentGateway) -> None:
    """Override the active payment gateway (useful for tests)."""
    global _current_gateway
    _current_gateway = gateway


def reset_gateway() -> None:
    """Reset to default gateway."""
    global _current_gateway
    _current_gateway = None


def idempotency_key_for(order_id: str) -> str:
    return f"order-{order_id}"


def charge_with_timeout(
    amount: float,
    currency: str,
    order_id: str,
    timeout: float,
    gateway: PaymentGateway | None = None,
) -> ChargeResult:
    """Charge through the gateway, turning every failure into a failed ChargeResult.

    A gateway that does not answer within ``timeout`` seconds yields
    ``gateway_status="timeout"``; the call may still complete in the
    background, so the charge is reconciled later by its idempotency key.
    A gateway that raises yields ``gateway_status="error"``.
    """
    gateway = gateway or get_gateway()
    idempotency_key = idempotency_key_for(order_id)
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="payment-gateway")
    future = executor.submit(
        gateway.create_charge,
        amount=amount,
        currency=currency,
        order_id=order_id,
        idempotency_key=idempotency_key,
    )
    try:
        return future.result(timeout=timeout)
    except FutureTimeoutError:
        logger.warning(
            "Payment gateway timed out",
            order_id=order_id,
            timeout=timeout,
            idempotency_key=idempotency_key,
        )
        return ChargeResult(
            success=False,
            gateway_status="timeout",
            failure_reason=f"Payment gateway did not respond within {timeout} seconds",
        )
    except Exception as exc:
        logger.exception("Payment gateway error", order_id=order_id, idempotency_key=idempotency_key)
        return ChargeResult(
            success=False,
            gateway_status="error",
            failure_reason=str(exc) or exc.__class__.__name__,
        )
    finally:
        executor.shutdown(wait=False, cancel_futures=True)
