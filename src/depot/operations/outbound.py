"""Outbound: stock issued from existing items."""

from protean import handle
from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, String, Text

from depot.domain import depot
from depot.ledger.engine import CommitMeta, ItemMutation, Ledger
from depot.ledger.snapshot import TransactionType
from depot.ledger.transaction import Transaction
from depot.operations.payload import line_quantity, load_lines


@depot.command(part_of="Transaction")
class IssueOutbound:
    """Issue stock; ``items`` is a JSON array of ``{item_id, quantity}``."""

    warehouse_id = Identifier(required=True)
    items = Text(required=True)
    user = String(required=True, max_length=100)
    notes = Text()
    date = DateTime()


@depot.command_handler(part_of=Transaction)
class OutboundHandler:
    @handle(IssueOutbound)
    def issue_outbound(self, command):
        mutations = []
        for line in load_lines(command.items):
            if not line.get("item_id"):
                raise ValidationError({"items": ["Outbound lines must reference an existing item"]})
            quantity = line_quantity(line)
            if quantity <= 0:
                raise ValidationError({"quantity": ["Outbound quantities must be positive"]})
            mutations.append(ItemMutation.for_item(line["item_id"], -quantity))

        transaction = Ledger().commit(
            mutations,
            CommitMeta(
                transaction_type=TransactionType.OUT.value,
                warehouse_id=command.warehouse_id,
                user=command.user,
                notes=command.notes or "",
                date=command.date,
            ),
        )
        return str(transaction.id)
