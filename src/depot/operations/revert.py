"""Revert: undo an earlier transaction by recording its inverse."""

from protean import handle
from protean.fields import Identifier, String, Text

from depot.domain import depot
from depot.ledger.engine import Ledger
from depot.ledger.transaction import Transaction


@depot.command(part_of="Transaction")
class RevertTransaction:
    transaction_id = Identifier(required=True)
    user = String(required=True, max_length=100)
    notes = Text()


@depot.command_handler(part_of=Transaction)
class RevertHandler:
    @handle(RevertTransaction)
    def revert_transaction(self, command):
        revert = Ledger().revert(command.transaction_id, user=command.user, notes=command.notes)
        return str(revert.id)
