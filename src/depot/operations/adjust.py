"""Adjustment: set item quantities to counted values and remove items.

Edits carry the new absolute quantity; the recorded change is the
difference from the current quantity. A deletion adjusts the item to zero
in the same ADJUST transaction and removes it once the transaction is
recorded.
"""

import json

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import DateTime, Identifier, String, Text
from protean.utils.globals import current_domain

from depot.domain import depot
from depot.ledger.engine import CommitMeta, ItemMutation, Ledger
from depot.ledger.snapshot import TransactionType
from depot.ledger.transaction import Transaction
from depot.operations.payload import line_quantity
from depot.stock.item import InventoryItem

logger = structlog.get_logger(__name__)


@depot.command(part_of="Transaction")
class AdjustInventory:
    warehouse_id = Identifier(required=True)
    edits = Text()  # JSON array of {item_id, quantity}, quantity is the new on-hand value
    deletions = Text()  # JSON array of item ids
    user = String(required=True, max_length=100)
    notes = Text()
    date = DateTime()


@depot.command(part_of="Transaction")
class DeleteInventoryItem:
    """Adjust a single item to zero and remove it."""

    item_id = Identifier(required=True)
    user = String(required=True, max_length=100)
    notes = Text()


def _load_list(raw, field_name):
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except ValueError:
        raise ValidationError({field_name: ["Must be a JSON array"]})
    if not isinstance(value, list):
        raise ValidationError({field_name: ["Must be a JSON array"]})
    return value


def _adjust(warehouse_id, edits, deletions, user, notes, date=None):
    items = current_domain.repository_for(InventoryItem)

    deleted_ids = [str(item_id) for item_id in deletions]
    if len(set(deleted_ids)) != len(deleted_ids):
        raise ValidationError({"deletions": ["An item can only be deleted once"]})

    mutations = []
    edited_ids = set()
    for edit in edits:
        if not isinstance(edit, dict) or not edit.get("item_id"):
            raise ValidationError({"edits": ["Each edit needs an item_id and a quantity"]})
        item_id = str(edit["item_id"])
        if item_id in edited_ids:
            raise ValidationError({"edits": [f"Item {item_id} is edited more than once"]})
        if item_id in deleted_ids:
            raise ValidationError({"edits": [f"Item {item_id} is both edited and deleted"]})
        edited_ids.add(item_id)

        new_quantity = line_quantity(edit)
        if new_quantity < 0:
            raise ValidationError({"quantity": ["Quantity cannot be negative"]})
        current = items.get(item_id).quantity or 0
        if new_quantity != current:
            mutations.append(ItemMutation.for_item(item_id, new_quantity - current))

    for item_id in deleted_ids:
        mutations.append(ItemMutation.for_item(item_id, -(items.get(item_id).quantity or 0)))

    if not mutations:
        raise ValidationError({"edits": ["No quantity changes to record"]})

    transaction = Ledger().commit(
        mutations,
        CommitMeta(
            transaction_type=TransactionType.ADJUST.value,
            warehouse_id=warehouse_id,
            user=user,
            notes=notes or "",
            date=date,
        ),
    )

    for item_id in deleted_ids:
        items.delete_item(item_id)

    return transaction


@depot.command_handler(part_of=Transaction)
class AdjustmentHandler:
    @handle(AdjustInventory)
    def adjust_inventory(self, command):
        transaction = _adjust(
            command.warehouse_id,
            _load_list(command.edits, "edits"),
            _load_list(command.deletions, "deletions"),
            command.user,
            command.notes,
            command.date,
        )
        return str(transaction.id)

    @handle(DeleteInventoryItem)
    def delete_inventory_item(self, command):
        item = current_domain.repository_for(InventoryItem).get(command.item_id)
        transaction = _adjust(str(item.warehouse_id), [], [str(item.id)], command.user, command.notes)
        logger.info("Inventory item deleted", item_id=str(item.id), transaction_id=str(transaction.id))
        return str(transaction.id)
