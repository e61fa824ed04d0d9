"""Marketplace bounded context — checkout pricing and shipment reconciliation.

Handles the conversion of a shopping cart into a price-locked order and keeps
each order line's customer-visible status in step with the carrier's
tracking feed.
"""

from protean.domain import Domain

from marketplace.utils.logging import configure_logging, get_logger

# Configure logging for the application
configure_logging()

logger = get_logger(__name__)

# Domain Composition Root
marketplace = Domain(name="marketplace")
