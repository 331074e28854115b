"""InventoryItem aggregate: the stock of one SKU in one warehouse.

An item is identified by (warehouse, category, specs). Its quantity is never
negative and is changed only through the ledger, which records a transaction
for every change.
"""

from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, Integer, Text

from depot.domain import depot
from depot.stock.events import InventoryItemRegistered, StockLevelChanged
from depot.stock.specs import decode_specs, encode_specs


@depot.aggregate
class InventoryItem:
    """Stock of a single SKU at a single warehouse."""

    warehouse_id = Identifier(required=True)
    category_id = Identifier(required=True)
    specs = Text()  # JSON object, keys sorted
    quantity = Integer(default=0, min_value=0)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def create(cls, warehouse_id, category_id, specs=None, quantity=0):
        """Register a new SKU. The item is not persisted here."""
        if quantity is None or quantity < 0:
            raise ValidationError({"quantity": ["Quantity cannot be negative"]})

        now = datetime.now(UTC)
        item = cls(
            warehouse_id=str(warehouse_id),
            category_id=str(category_id),
            specs=encode_specs(specs),
            quantity=quantity,
            created_at=now,
            updated_at=now,
        )
        item.raise_(
            InventoryItemRegistered(
                item_id=str(item.id),
                warehouse_id=item.warehouse_id,
                category_id=item.category_id,
                specs=item.specs,
                registered_at=now,
            )
        )
        return item

    @property
    def spec_map(self):
        return decode_specs(self.specs)

    def set_quantity(self, new_quantity, transaction_id=None):
        """Replace the on-hand quantity."""
        if new_quantity < 0:
            raise ValidationError({"quantity": [f"Quantity cannot be negative (got {new_quantity})"]})

        previous = self.quantity or 0
        self.quantity = new_quantity
        self.updated_at = datetime.now(UTC)
        self.raise_(
            StockLevelChanged(
                item_id=str(self.id),
                warehouse_id=str(self.warehouse_id),
                transaction_id=transaction_id,
                previous_quantity=previous,
                new_quantity=new_quantity,
                quantity_change=new_quantity - previous,
                changed_at=self.updated_at,
            )
        )
