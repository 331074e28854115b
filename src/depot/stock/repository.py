"""Inventory store: persistence and lookup of InventoryItem aggregates."""

import structlog
from protean.exceptions import ValidationError

from depot.domain import depot
from depot.stock.item import InventoryItem
from depot.stock.specs import same_spec

logger = structlog.get_logger(__name__)

# Upper bound for listing queries; the default query page is much smaller.
QUERY_LIMIT = 10_000


@depot.repository(part_of=InventoryItem)
class InventoryItemRepository:
    """Item lookups by warehouse/category/specs plus quantity writes.

    ``get`` and ``add`` come from the base repository; ``get`` raises
    ObjectNotFoundError for unknown ids.
    """

    def for_warehouse(self, warehouse_id: str, category_id: str | None = None) -> list[InventoryItem]:
        criteria = {"warehouse_id": str(warehouse_id)}
        if category_id:
            criteria["category_id"] = str(category_id)
        items = self._dao.query.filter(**criteria).limit(QUERY_LIMIT).all().items
        return sorted(items, key=lambda item: item.updated_at, reverse=True)

    def for_category(self, category_id: str) -> list[InventoryItem]:
        return self._dao.query.filter(category_id=str(category_id)).limit(QUERY_LIMIT).all().items

    def find_by_spec(self, warehouse_id: str, category_id: str, specs: dict) -> InventoryItem | None:
        """Find the existing SKU with identical specs, if any."""
        candidates = self._dao.query.filter(
            warehouse_id=str(warehouse_id),
            category_id=str(category_id),
        ).limit(QUERY_LIMIT).all().items
        for candidate in candidates:
            if same_spec(candidate.spec_map, specs):
                return candidate
        return None

    def create(self, warehouse_id: str, category_id: str, specs: dict, quantity: int = 0) -> InventoryItem:
        item = InventoryItem.create(
            warehouse_id=warehouse_id,
            category_id=category_id,
            specs=specs,
            quantity=quantity,
        )
        self.add(item)
        return item

    def save_quantity(self, item: InventoryItem, new_quantity: int, transaction_id: str | None = None):
        item.set_quantity(new_quantity, transaction_id=transaction_id)
        self.add(item)
        return item

    def set_quantity(self, item_id: str, new_quantity: int, transaction_id: str | None = None):
        return self.save_quantity(self.get(item_id), new_quantity, transaction_id=transaction_id)

    def delete_item(self, item_id: str):
        """Remove an item whose stock has already been adjusted to zero."""
        item = self.get(item_id)
        if item.quantity:
            raise ValidationError(
                {"quantity": [f"Item still holds {item.quantity} unit(s); adjust it to zero before removal"]}
            )
        self._dao.delete(item)
        logger.info("Inventory item removed", item_id=str(item.id), warehouse_id=str(item.warehouse_id))
