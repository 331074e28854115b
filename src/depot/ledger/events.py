"""Domain events for the Transaction aggregate."""

from protean.fields import DateTime, Identifier, Integer, String

from depot.domain import depot


@depot.event(part_of="Transaction")
class TransactionRecorded:
    """A transaction was appended to the ledger."""

    __version__ = 1

    transaction_id = Identifier(required=True)
    transaction_type = String(required=True)
    warehouse_id = Identifier(required=True)
    related_warehouse_id = Identifier()
    quantity = Integer()  # Signed, from warehouse_id's perspective
    user = String(required=True)
    recorded_at = DateTime(required=True)


@depot.event(part_of="Transaction")
class TransactionReverted:
    """A revert transaction was appended for an earlier transaction."""

    __version__ = 1

    transaction_id = Identifier(required=True)
    reverted_transaction_id = Identifier(required=True)
    transaction_type = String(required=True)
    warehouse_id = Identifier(required=True)
    quantity = Integer()
    user = String(required=True)
    recorded_at = DateTime(required=True)
