"""Error taxonomy shared by the Ordering and Catalogue contexts.

Malformed input is reported with ``protean.exceptions.ValidationError``
(raised before any I/O). Everything else a caller can act upon derives
from ``OrderflowError`` and carries a stable ``code`` plus structured
details, so the HTTP boundary can render it without string parsing.
"""


class OrderflowError(Exception):
    """Base class for expected, business-level failures."""

    code = "error"

    def __init__(self, message: str, **details):
        super().__init__(message)
        self.message = message
        self.details = details

    def to_dict(self) -> dict:
        return {"error": self.message, "code": self.code, **self.details}


class NotFoundError(OrderflowError):
    """An order, product or customer does not exist."""

    code = "not_found"

    def __init__(self, entity: str, key, message: str | None = None):
        super().__init__(message or f"{entity} {key} not found", entity=entity, key=key)
        self.entity = entity
        self.key = key


class InsufficientStockError(OrderflowError):
    """Requested quantity exceeds the available stock of a product."""

    code = "insufficient_stock"

    def __init__(self, product_id: str, available: int, requested: int):
        super().__init__(
            f"Insufficient stock for product {product_id}: available {available}, requested {requested}",
            product_id=product_id,
            available=available,
            requested=requested,
        )
        self.product_id = product_id
        self.available = available
        self.requested = requested


class BusinessRuleError(OrderflowError):
    """The operation is well-formed but violates a business rule."""

    code = "business_rule_violation"


class InvalidStateError(BusinessRuleError):
    """The order's current status does not permit the requested change."""

    code = "invalid_state"

    def __init__(self, current: str, target: str | None = None, message: str | None = None):
        if message is None:
            if target is None:
                message = f"Operation not allowed for an order in status {current}"
            else:
                message = f"Cannot transition order from {current} to {target}"
        super().__init__(message, current=current, target=target)
        self.current = current
        self.target = target


class ConflictError(OrderflowError):
    """A concurrent modification won, or a unique value could not be allocated."""

    code = "conflict"


class UnavailableError(OrderflowError):
    """A downstream collaborator timed out or could not be reached."""

    code = "unavailable"

    def __init__(self, collaborator: str, reason: str | None = None):
        message = f"{collaborator} is unavailable"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, collaborator=collaborator)
        self.collaborator = collaborator
        self.reason = reason
