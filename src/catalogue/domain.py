"""Catalogue bounded context: products and their stock ledger.

Authoritative source of product name, sku, price and stock. Stock only
changes through ``Product.adjust_stock``, either from the stock API or
from order events delivered by the Event Relay.
"""

import structlog
from protean.domain import Domain

catalogue = Domain(name="catalogue")

logger = structlog.get_logger(__name__)
