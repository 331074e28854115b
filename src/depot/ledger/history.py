"""Transaction history: filtered, ordered reads over the ledger."""

from datetime import date as date_type
from datetime import datetime

from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from depot.ledger.snapshot import TransactionType
from depot.ledger.transaction import Transaction

TRANSFER_IN = "TRANSFER_IN"
TRANSFER_OUT = "TRANSFER_OUT"

KINDS = [t.value for t in TransactionType] + [TRANSFER_IN, TRANSFER_OUT]


def _matches_kind(transaction, kind):
    if kind == TRANSFER_IN:
        return transaction.transaction_type == TransactionType.TRANSFER.value and transaction.quantity > 0
    if kind == TRANSFER_OUT:
        return transaction.transaction_type == TransactionType.TRANSFER.value and transaction.quantity < 0
    return transaction.transaction_type == kind


def _as_date(value):
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date_type):
        return value
    try:
        return date_type.fromisoformat(str(value))
    except ValueError:
        raise ValidationError({"on_date": [f"Not a calendar date: {value!r}"]})


def _search_fields(transaction):
    snapshot = transaction.snapshot
    parts = [transaction.user or "", transaction.notes or ""]
    if snapshot.is_legacy or snapshot.is_opaque:
        parts.append(transaction.item_name_snapshot or "")
    else:
        for line in snapshot.lines + snapshot.original_lines:
            parts.append(line.category_name)
            parts.extend(str(value) for value in line.specs.values())
    return [part.lower() for part in parts if part]


def list_transactions(warehouse_id, kind=None, on_date=None, search=None) -> list[Transaction]:
    """Transactions recorded at ``warehouse_id``.

    Newest day first; records of the same calendar day keep the order in
    which they were written.
    """
    if kind and kind not in KINDS:
        raise ValidationError({"kind": [f"Unknown transaction kind: {kind}"]})

    records = current_domain.repository_for(Transaction).for_warehouse(warehouse_id)

    if kind:
        records = [record for record in records if _matches_kind(record, kind)]
    if on_date:
        wanted = _as_date(on_date)
        records = [record for record in records if record.date.date() == wanted]
    if search and search.strip():
        needle = search.strip().lower()
        records = [record for record in records if any(needle in field for field in _search_fields(record))]

    # Two stable passes: within-day order first, then day descending
    records = sorted(records, key=lambda record: record.recorded_at or record.date)
    return sorted(records, key=lambda record: record.date.date(), reverse=True)


def is_reverted(transaction) -> bool:
    return current_domain.repository_for(Transaction).revert_of(str(transaction.id)) is not None
