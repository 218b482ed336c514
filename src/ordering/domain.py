"""Ordering bounded context: order placement, modification and lifecycle.

Owns the Order aggregate (a standard CQRS aggregate with a status-driven
state machine), the totals calculator, the workflow that validates
orders against the product catalogue, and the outbox that feeds the
Event Relay.
"""

import structlog
from protean.domain import Domain

ordering = Domain(name="ordering")

logger = structlog.get_logger(__name__)
