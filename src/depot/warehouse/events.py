"""Domain events for the Warehouse aggregate."""

from protean.fields import DateTime, Identifier, String

from depot.domain import depot


@depot.event(part_of="Warehouse")
class WarehouseCreated:
    """A new warehouse was created."""

    __version__ = 1

    warehouse_id = Identifier(required=True)
    name = String(required=True)
    created_at = DateTime(required=True)


@depot.event(part_of="Warehouse")
class WarehouseRenamed:
    """A warehouse was given a new name."""

    __version__ = 1

    warehouse_id = Identifier(required=True)
    previous_name = String(required=True)
    name = String(required=True)
    renamed_at = DateTime(required=True)
