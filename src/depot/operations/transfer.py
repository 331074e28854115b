"""Transfer: move stock between two warehouses."""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, String, Text
from protean.utils.globals import current_domain

from depot.domain import depot
from depot.ledger.engine import CommitMeta, ItemMutation, Ledger
from depot.ledger.snapshot import TransactionType
from depot.ledger.transaction import Transaction
from depot.operations.payload import line_quantity, load_lines
from depot.stock.item import InventoryItem


@depot.command(part_of="Transaction")
class TransferStock:
    """Move stock; ``items`` is a JSON array of ``{item_id, quantity}``.

    Each source item lands on the target's item with identical category and
    specs, which is registered if the target has none.
    """

    source_warehouse_id = Identifier(required=True)
    target_warehouse_id = Identifier(required=True)
    items = Text(required=True)
    user = String(required=True, max_length=100)
    notes = Text()
    date = DateTime()


@depot.command_handler(part_of=Transaction)
class TransferHandler:
    @handle(TransferStock)
    def transfer_stock(self, command):
        repo = current_domain.repository_for(InventoryItem)

        outgoing, incoming = [], []
        for line in load_lines(command.items):
            if not line.get("item_id"):
                raise ValidationError({"items": ["Transfer lines must reference an existing item"]})
            quantity = line_quantity(line)
            if quantity <= 0:
                raise ValidationError({"quantity": ["Transfer quantities must be positive"]})

            item = repo.get(line["item_id"])
            outgoing.append(ItemMutation.for_item(item.id, -quantity))
            incoming.append(
                ItemMutation.for_sku(command.target_warehouse_id, item.category_id, item.spec_map, quantity)
            )

        transaction = Ledger().commit(
            outgoing + incoming,
            CommitMeta(
                transaction_type=TransactionType.TRANSFER.value,
                warehouse_id=command.source_warehouse_id,
                related_warehouse_id=command.target_warehouse_id,
                user=command.user,
                notes=command.notes or "",
                date=command.date,
            ),
        )
        return str(transaction.id)
