"""Marketplace settings.

Provides get_settings() / set_settings() / reset_settings() so the global
commission rate and payment timeout are read once per request and passed
explicitly into the pricing engine, instead of being looked up inside it.

Values come from the environment:

    MARKETPLACE_COMMISSION_RATE   percentage applied to every line (default 0)
    MARKETPLACE_PAYMENT_TIMEOUT   seconds to wait for the payment gateway (default 30)
    MARKETPLACE_CURRENCY          ISO currency code stamped on orders (default USD)
"""

import os
from dataclasses import dataclass

from protean.exceptions import ValidationError


@dataclass(frozen=True)
class MarketplaceSettings:
    commission_rate: float = 0.0
    payment_timeout: float = 30.0
    currency: str = "USD"

    def __post_init__(self):
        if not 0.0 <= self.commission_rate <= 100.0:
            raise ValidationError({"commission_rate": ["Commission rate must be between 0 and 100"]})
        if self.payment_timeout <= 0:
            raise ValidationError({"payment_timeout": ["Payment timeout must be positive"]})

    @classmethod
    def from_env(cls) -> "MarketplaceSettings":
        return cls(
            commission_rate=float(os.environ.get("MARKETPLACE_COMMISSION_RATE", "0")),
            payment_timeout=float(os.environ.get("MARKETPLACE_PAYMENT_TIMEOUT", "30")),
            currency=os.environ.get("MARKETPLACE_CURRENCY", "USD"),
        )


_current_settings: MarketplaceSettings | None = None


def get_settings() -> MarketplaceSettings:
    """Return the active settings, loading them from the environment on first use."""
    global _current_settings
    if _current_settings is None:
        _current_settings = MarketplaceSettings.from_env()
    return _current_settings


def set_settings(settings: MarketplaceSettings) -> None:
    """Override the active settings (useful for tests)."""
    global _current_settings
    _current_settings = settings


def reset_settings() -> None:
    """Drop overrides; the next get_settings() re-reads the environment."""
    global _current_settings
    _current_settings = None
