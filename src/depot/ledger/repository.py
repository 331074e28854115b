"""Repository for the Transaction aggregate."""

from depot.domain import depot
from depot.ledger.transaction import Transaction

# Upper bound for listing queries; the default query page is much smaller.
QUERY_LIMIT = 10_000


@depot.repository(part_of=Transaction)
class TransactionRepository:
    def for_warehouse(self, warehouse_id: str) -> list[Transaction]:
        """All records written from the given warehouse's point of view."""
        return self._dao.query.filter(warehouse_id=str(warehouse_id)).limit(QUERY_LIMIT).all().items

    def reverts_of(self, transaction_id: str) -> list[Transaction]:
        return self._dao.query.filter(reverts_transaction_id=str(transaction_id)).all().items

    def revert_of(self, transaction_id: str) -> Transaction | None:
        """The record that reverted ``transaction_id``, if any."""
        reverts = self.reverts_of(transaction_id)
        return reverts[0] if reverts else None
