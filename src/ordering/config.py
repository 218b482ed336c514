"""Runtime settings for the Ordering context, read from the environment."""

import os
from dataclasses import dataclass, field
from decimal import Decimal

from ordering.pricing import PricingPolicy

CUSTOMER_CHECK_MODES = ("off", "fail_open", "fail_closed")


def _decimal_env(name: str, default: str) -> Decimal:
    return Decimal(os.getenv(name, default))


@dataclass(frozen=True)
class OrderingSettings:
    pricing: PricingPolicy = field(default_factory=PricingPolicy)
    max_items: int = 50
    max_quantity: int = 1000
    max_notes_length: int = 500
    product_timeout: float = 5.0
    product_service_url: str | None = None
    customer_service_url: str | None = None
    customer_check: str = "off"

    def __post_init__(self):
        if self.customer_check not in CUSTOMER_CHECK_MODES:
            raise ValueError(f"customer_check must be one of {CUSTOMER_CHECK_MODES}, got {self.customer_check!r}")

    @classmethod
    def from_env(cls) -> "OrderingSettings":
        customer_url = os.getenv("CUSTOMER_SERVICE_URL") or None
        return cls(
            pricing=PricingPolicy(
                tax_rate=_decimal_env("ORDERING_TAX_RATE", "0.10"),
                free_shipping_threshold=_decimal_env("ORDERING_FREE_SHIPPING_THRESHOLD", "100.00"),
                flat_shipping_fee=_decimal_env("ORDERING_FLAT_SHIPPING_FEE", "10.00"),
            ),
            max_items=int(os.getenv("ORDERING_MAX_ITEMS", "50")),
            max_quantity=int(os.getenv("ORDERING_MAX_QUANTITY", "1000")),
            max_notes_length=int(os.getenv("ORDERING_MAX_NOTES_LENGTH", "500")),
            product_timeout=float(os.getenv("ORDERING_PRODUCT_TIMEOUT", "5.0")),
            product_service_url=os.getenv("PRODUCT_SERVICE_URL") or None,
            customer_service_url=customer_url,
            # Fail closed by default once a customer service is wired in
            customer_check=os.getenv("ORDERING_CUSTOMER_CHECK", "fail_closed" if customer_url else "off"),
        )


_current_settings: OrderingSettings | None = None


def get_settings() -> OrderingSettings:
    global _current_settings
    if _current_settings is None:
        _current_settings = OrderingSettings.from_env()
    return _current_settings


def set_settings(settings: OrderingSettings) -> None:
    """Override the active settings (useful for tests)."""
    global _current_settings
    _current_settings = settings


def reset_settings() -> None:
    global _current_settings
    _current_settings = None
