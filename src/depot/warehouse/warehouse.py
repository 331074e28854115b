"""Warehouse aggregate: a physical location where inventory is stored.

Identity is the id; the name can change at any time. A warehouse cannot be
removed while inventory items still reference it.
"""

from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import DateTime, String

from depot.domain import depot
from depot.warehouse.events import WarehouseCreated, WarehouseRenamed


@depot.aggregate
class Warehouse:
    """A physical location where inventory is stored."""

    name = String(required=True, max_length=255)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def create(cls, name):
        """Create a new warehouse."""
        name = (name or "").strip()
        if not name:
            raise ValidationError({"name": ["Warehouse name is required"]})

        now = datetime.now(UTC)
        warehouse = cls(name=name, created_at=now, updated_at=now)
        warehouse.raise_(
            WarehouseCreated(
                warehouse_id=str(warehouse.id),
                name=name,
                created_at=now,
            )
        )
        return warehouse

    def rename(self, name):
        """Give the warehouse a new name."""
        name = (name or "").strip()
        if not name:
            raise ValidationError({"name": ["Warehouse name is required"]})

        previous_name = self.name
        self.name = name
        self.updated_at = datetime.now(UTC)
        self.raise_(
            WarehouseRenamed(
                warehouse_id=str(self.id),
                previous_name=previous_name,
                name=name,
                renamed_at=self.updated_at,
            )
        )
