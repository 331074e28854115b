"""Inbound: stock received into a warehouse."""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.fields import DateTime, Identifier, String, Text
from protean.utils.globals import current_domain

from depot.category.category import Category
from depot.domain import depot
from depot.ledger.engine import CommitMeta, ItemMutation, Ledger
from depot.ledger.snapshot import TransactionType
from depot.ledger.transaction import Transaction
from depot.operations.payload import category_by_id, checked_specs, line_quantity, load_lines

logger = structlog.get_logger(__name__)


@depot.command(part_of="Transaction")
class ReceiveInbound:
    """Receive stock into a warehouse.

    ``items`` is a JSON array whose lines either name an existing item,
    ``{"item_id": ..., "quantity": n}``, or describe a SKU by category,
    ``{"category_id": ..., "specs": {...}, "quantity": n}``. SKU lines merge
    into an existing item with identical specs or register a new one.
    """

    warehouse_id = Identifier(required=True)
    items = Text(required=True)
    user = String(required=True, max_length=100)
    notes = Text()
    date = DateTime()


@depot.command(part_of="Transaction")
class ImportInbound:
    """Receive parsed spreadsheet rows ``{category_name, specs, quantity}``."""

    warehouse_id = Identifier(required=True)
    rows = Text(required=True)
    user = String(required=True, max_length=100)
    notes = Text()
    date = DateTime()


def inbound_mutations(warehouse_id, lines):
    mutations = []
    for line in lines:
        quantity = line_quantity(line)
        if line.get("item_id"):
            mutations.append(ItemMutation.for_item(line["item_id"], quantity))
        elif line.get("category_id"):
            category = category_by_id(line["category_id"])
            specs = checked_specs(category, line.get("specs"))
            mutations.append(ItemMutation.for_sku(warehouse_id, category.id, specs, quantity))
        else:
            raise ValidationError({"items": ["Each line needs an item_id or a category_id"]})
    return mutations


@depot.command_handler(part_of=Transaction)
class InboundHandler:
    @handle(ReceiveInbound)
    def receive_inbound(self, command):
        mutations = inbound_mutations(command.warehouse_id, load_lines(command.items))
        transaction = Ledger().commit(
            mutations,
            CommitMeta(
                transaction_type=TransactionType.IN.value,
                warehouse_id=command.warehouse_id,
                user=command.user,
                notes=command.notes or "",
                date=command.date,
            ),
        )
        return str(transaction.id)

    @handle(ImportInbound)
    def import_inbound(self, command):
        rows = load_lines(command.rows, "rows")
        repo = current_domain.repository_for(Category)

        lines = []
        for index, row in enumerate(rows, start=1):
            name = str(row.get("category_name") or "").strip()
            category = repo.find_by_name(name)
            if category is None:
                raise ObjectNotFoundError(f"Row {index}: category '{name}' does not exist")
            lines.append({"category_id": str(category.id), "specs": row.get("specs"), "quantity": row.get("quantity")})

        mutations = inbound_mutations(command.warehouse_id, lines)
        transaction = Ledger().commit(
            mutations,
            CommitMeta(
                transaction_type=TransactionType.IN.value,
                warehouse_id=command.warehouse_id,
                user=command.user,
                notes=command.notes or "",
                date=command.date,
            ),
        )
        logger.info("Inbound rows imported", transaction_id=str(transaction.id), rows=len(rows))
        return str(transaction.id)
