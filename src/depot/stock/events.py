"""Domain events for the InventoryItem aggregate."""

from protean.fields import DateTime, Identifier, Integer, Text

from depot.domain import depot


@depot.event(part_of="InventoryItem")
class InventoryItemRegistered:
    """A new SKU was registered in a warehouse."""

    __version__ = 1

    item_id = Identifier(required=True)
    warehouse_id = Identifier(required=True)
    category_id = Identifier(required=True)
    specs = Text()  # JSON object
    registered_at = DateTime(required=True)


@depot.event(part_of="InventoryItem")
class StockLevelChanged:
    """An item's quantity changed as part of a ledger transaction."""

    __version__ = 1

    item_id = Identifier(required=True)
    warehouse_id = Identifier(required=True)
    transaction_id = Identifier()
    previous_quantity = Integer()
    new_quantity = Integer()
    quantity_change = Integer()  # Can be negative
    changed_at = DateTime(required=True)
