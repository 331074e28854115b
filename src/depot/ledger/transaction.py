"""Transaction aggregate: one append-only entry of the inventory ledger.

Records are never edited after creation. A revert is a new record that
points at the record it undoes through ``reverts_transaction_id``; the two
records of a transfer point at each other through ``counterpart_id``.
"""

import json
from datetime import UTC, datetime

from protean.fields import DateTime, Identifier, Integer, String, Text

from depot.domain import depot
from depot.ledger.events import TransactionRecorded, TransactionReverted
from depot.ledger.snapshot import TransactionType, decode


@depot.aggregate
class Transaction:
    warehouse_id = Identifier(required=True)
    related_warehouse_id = Identifier()
    item_id = Identifier()  # Primary affected item
    item_name_snapshot = Text(required=True)
    affected_item_ids = Text()  # JSON array aligned with the snapshot's items
    quantity = Integer(default=0)
    date = DateTime(required=True)
    user = String(required=True, max_length=100)
    notes = Text()
    transaction_type = String(required=True, choices=TransactionType)
    reverts_transaction_id = Identifier()
    counterpart_id = Identifier()
    recorded_at = DateTime()

    @classmethod
    def record(
        cls,
        transaction_type,
        warehouse_id,
        snapshot,
        quantity,
        affected_item_ids,
        date,
        user,
        notes=None,
        related_warehouse_id=None,
        reverts_transaction_id=None,
        counterpart_id=None,
        id=None,
    ):
        now = datetime.now(UTC)
        kwargs = {"id": id} if id else {}
        transaction = cls(
            transaction_type=transaction_type,
            warehouse_id=str(warehouse_id),
            related_warehouse_id=str(related_warehouse_id) if related_warehouse_id else None,
            item_id=affected_item_ids[0] if affected_item_ids else None,
            item_name_snapshot=snapshot,
            affected_item_ids=json.dumps(list(affected_item_ids)),
            quantity=quantity,
            date=date or now,
            user=user,
            notes=notes or "",
            reverts_transaction_id=reverts_transaction_id,
            counterpart_id=counterpart_id,
            recorded_at=now,
            **kwargs,
        )

        if reverts_transaction_id:
            transaction.raise_(
                TransactionReverted(
                    transaction_id=str(transaction.id),
                    reverted_transaction_id=str(reverts_transaction_id),
                    transaction_type=transaction_type,
                    warehouse_id=transaction.warehouse_id,
                    quantity=quantity,
                    user=user,
                    recorded_at=now,
                )
            )
        else:
            transaction.raise_(
                TransactionRecorded(
                    transaction_id=str(transaction.id),
                    transaction_type=transaction_type,
                    warehouse_id=transaction.warehouse_id,
                    related_warehouse_id=transaction.related_warehouse_id,
                    quantity=quantity,
                    user=user,
                    recorded_at=now,
                )
            )
        return transaction

    @property
    def snapshot(self):
        return decode(self.item_name_snapshot, quantity=self.quantity)

    @property
    def item_ids(self):
        if self.affected_item_ids:
            return json.loads(self.affected_item_ids)
        return [str(self.item_id)] if self.item_id else []

    @property
    def is_revert(self):
        return bool(self.reverts_transaction_id) or self.snapshot.is_revert
