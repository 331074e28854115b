"""Stock movement log: append-only audit trail of all stock changes."""

import uuid

from protean.core.projector import on
from protean.fields import DateTime, Identifier, Integer, String
from protean.utils.globals import current_domain

from depot.domain import depot
from depot.stock.events import InventoryItemRegistered, StockLevelChanged
from depot.stock.item import InventoryItem

# Upper bound for one item's trail; the default query page is much smaller.
QUERY_LIMIT = 10_000


@depot.projection
class StockMovementLog:
    entry_id = Identifier(identifier=True, required=True)
    item_id = Identifier(required=True)
    warehouse_id = Identifier()
    transaction_id = Identifier()
    event_type = String(required=True)
    description = String(required=True)
    quantity_change = Integer(default=0)
    previous_level = Integer(default=0)
    new_level = Integer(default=0)
    occurred_at = DateTime(required=True)


def _add_entry(item_id, event_type, description, occurred_at, **values):
    current_domain.repository_for(StockMovementLog).add(
        StockMovementLog(
            entry_id=str(uuid.uuid4()),
            item_id=item_id,
            event_type=event_type,
            description=description,
            occurred_at=occurred_at,
            **values,
        )
    )


def movements_for(item_id):
    """Log entries of one item, oldest first."""
    query = current_domain.repository_for(StockMovementLog)._dao.query
    entries = query.filter(item_id=str(item_id)).limit(QUERY_LIMIT).all().items
    return sorted(entries, key=lambda entry: entry.occurred_at)


@depot.projector(projector_for=StockMovementLog, aggregates=[InventoryItem])
class StockMovementLogProjector:
    @on(InventoryItemRegistered)
    def on_item_registered(self, event):
        _add_entry(
            event.item_id,
            "InventoryItemRegistered",
            f"Registered SKU {event.specs} in category {event.category_id}",
            event.registered_at,
            warehouse_id=event.warehouse_id,
        )

    @on(StockLevelChanged)
    def on_stock_level_changed(self, event):
        _add_entry(
            event.item_id,
            "StockLevelChanged",
            f"Quantity changed by {event.quantity_change}",
            event.changed_at,
            warehouse_id=event.warehouse_id,
            transaction_id=event.transaction_id,
            quantity_change=event.quantity_change,
            previous_level=event.previous_quantity,
            new_level=event.new_quantity,
        )
