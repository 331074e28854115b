"""Depot bounded context: warehouse inventory and the transaction ledger.

Tracks stock per warehouse (items keyed by category and attribute specs) and
records every inbound, outbound, adjustment and transfer as an append-only
transaction that can be reverted exactly once.
"""

from protean.domain import Domain

from depot.utils.logging import configure_logging, get_logger

# Configure logging for the application
configure_logging()

# Get logger for this module
logger = get_logger(__name__)

# Domain Composition Root
depot = Domain(name="depot")
