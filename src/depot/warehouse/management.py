"""Warehouse management: commands and handler."""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from depot.domain import depot
from depot.warehouse.warehouse import Warehouse

logger = structlog.get_logger(__name__)


@depot.command(part_of="Warehouse")
class CreateWarehouse:
    """Create a new warehouse."""

    name = String(required=True, max_length=255)


@depot.command(part_of="Warehouse")
class RenameWarehouse:
    """Rename an existing warehouse."""

    warehouse_id = Identifier(required=True)
    name = String(required=True, max_length=255)


@depot.command(part_of="Warehouse")
class DeleteWarehouse:
    """Remove a warehouse that no longer holds any items."""

    warehouse_id = Identifier(required=True)


@depot.command_handler(part_of=Warehouse)
class WarehouseManagementHandler:
    @handle(CreateWarehouse)
    def create_warehouse(self, command):
        warehouse = Warehouse.create(name=command.name)
        current_domain.repository_for(Warehouse).add(warehouse)
        return str(warehouse.id)

    @handle(RenameWarehouse)
    def rename_warehouse(self, command):
        repo = current_domain.repository_for(Warehouse)
        warehouse = repo.get(command.warehouse_id)
        warehouse.rename(command.name)
        repo.add(warehouse)

    @handle(DeleteWarehouse)
    def delete_warehouse(self, command):
        from depot.stock.item import InventoryItem

        repo = current_domain.repository_for(Warehouse)
        warehouse = repo.get(command.warehouse_id)

        items = current_domain.repository_for(InventoryItem).for_warehouse(str(warehouse.id))
        if items:
            raise ValidationError(
                {"warehouse_id": [f"Warehouse still holds {len(items)} item(s) and cannot be deleted"]}
            )

        repo._dao.delete(warehouse)
        logger.info("Warehouse deleted", warehouse_id=str(warehouse.id), name=warehouse.name)
