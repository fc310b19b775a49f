"""Marketplace bounded context — Cart Pricing and Order Lifecycle.

Handles multi-vendor shopping carts priced per item kind (room, food,
product), the order lifecycle with its append-only transaction ledger, and
the refund and return/exchange negotiations layered on top of an order.
"""

import structlog
from protean.domain import Domain

marketplace = Domain(name="marketplace")

logger = structlog.get_logger(__name__)
