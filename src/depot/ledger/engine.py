"""Ledger engine: applies stock mutations and records them as transactions.

Every stock change in the system goes through ``Ledger.commit``: inbound,
outbound, adjustment and transfer all describe their change as a list of
``ItemMutation`` and let the engine resolve, validate, apply and record it.
``Ledger.revert`` appends the arithmetic inverse of an earlier transaction.

Order of work for both operations:

    1. resolve every target item (existing id, matching SKU, or a new SKU)
    2. validate directions and that no item ends below zero
    3. write item quantities
    4. append the transaction record(s)

Transaction records are built, and so validated, before step 3. Both
operations run inside a unit of work: the calling handler's when there is
one, their own otherwise. A failure at any step leaves the store untouched.
"""

from collections import OrderedDict
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from uuid import uuid4

import structlog
from protean.exceptions import InvalidOperationError, ObjectNotFoundError, ValidationError
from protean.core.unit_of_work import UnitOfWork
from protean.utils.globals import current_domain, current_uow

from depot.category.category import Category
from depot.errors import InsufficientStockError, InvalidRevertError
from depot.ledger.snapshot import (
    SnapshotLine,
    TransactionType,
    encode,
    encode_movement,
    encode_revert,
    raw_items,
)
from depot.ledger.transaction import Transaction
from depot.stock.item import InventoryItem
from depot.stock.specs import clean_specs, same_spec, sku_key
from depot.warehouse.warehouse import Warehouse

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class NewItem:
    """A SKU that may not exist yet: created on first use, merged otherwise."""

    warehouse_id: str
    category_id: str
    specs: dict = field(default_factory=dict)


@dataclass(frozen=True)
class ItemMutation:
    """A signed quantity change for one item."""

    quantity_delta: int
    resolved_item_id: str | None = None
    item: NewItem | None = None

    @classmethod
    def for_item(cls, item_id, quantity_delta):
        return cls(quantity_delta=quantity_delta, resolved_item_id=str(item_id))

    @classmethod
    def for_sku(cls, warehouse_id, category_id, specs, quantity_delta):
        return cls(
            quantity_delta=quantity_delta,
            item=NewItem(warehouse_id=str(warehouse_id), category_id=str(category_id), specs=clean_specs(specs)),
        )


@dataclass(frozen=True)
class CommitMeta:
    transaction_type: str
    warehouse_id: str
    user: str
    notes: str = ""
    date: datetime | None = None
    related_warehouse_id: str | None = None


@dataclass
class _Line:
    item: InventoryItem
    delta: int
    category_name: str
    specs: dict
    is_new: bool = False


def as_quantity(value, field_name="quantity"):
    """Return ``value`` as an int, rejecting fractional and non-numeric input."""
    if isinstance(value, bool):
        raise ValidationError({field_name: [f"Quantity must be an integer, got {value!r}"]})
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    raise ValidationError({field_name: [f"Quantity must be an integer, got {value!r}"]})


@contextmanager
def _atomic():
    """Join the unit of work in progress, or run in a new one."""
    if current_uow and current_uow.in_progress:
        yield
    else:
        with UnitOfWork():
            yield


class Ledger:
    """Single entry point for every quantity change and its ledger record."""

    def __init__(self):
        self._categories = {}

    @property
    def items(self):
        return current_domain.repository_for(InventoryItem)

    @property
    def transactions(self):
        return current_domain.repository_for(Transaction)

    # -------------------------------------------------------------------
    # Commit
    # -------------------------------------------------------------------
    def commit(self, mutations, meta: CommitMeta) -> Transaction:
        """Apply ``mutations`` and append the transaction describing them.

        Returns the record written at ``meta.warehouse_id``. A TRANSFER also
        writes the mirror record at the target warehouse, reachable through
        ``counterpart_id``.
        """
        try:
            with _atomic():
                self._check_meta(meta)
                mutations = [self._check_mutation(mutation) for mutation in mutations]
                if not mutations:
                    raise ValidationError({"items": ["At least one item is required"]})

                lines = self._resolve(mutations)
                if meta.transaction_type == TransactionType.TRANSFER.value:
                    source, target = self._split_transfer(lines, meta)
                    self._ensure_stock(lines)
                    return self._write_transfer(source, target, meta)

                self._check_directions(lines, meta)
                self._ensure_stock(lines)
                return self._write(lines, meta)
        except (ValidationError, ObjectNotFoundError) as exc:
            logger.warning(
                "Ledger commit rejected",
                transaction_type=meta.transaction_type,
                warehouse_id=str(meta.warehouse_id),
                error=str(exc),
            )
            raise

    def _check_meta(self, meta):
        valid_types = [t.value for t in TransactionType]
        if meta.transaction_type not in valid_types:
            raise ValidationError({"type": [f"Unknown transaction type: {meta.transaction_type}"]})
        if not (meta.user or "").strip():
            raise ValidationError({"user": ["Operator is required"]})

        current_domain.repository_for(Warehouse).get(meta.warehouse_id)

        if meta.transaction_type == TransactionType.TRANSFER.value:
            if not meta.related_warehouse_id:
                raise ValidationError({"related_warehouse_id": ["Transfers need a target warehouse"]})
            if str(meta.related_warehouse_id) == str(meta.warehouse_id):
                raise ValidationError({"related_warehouse_id": ["Cannot transfer into the source warehouse"]})
            current_domain.repository_for(Warehouse).get(meta.related_warehouse_id)

    def _check_mutation(self, mutation):
        if not mutation.resolved_item_id and mutation.item is None:
            raise ValidationError({"items": ["Each mutation needs an item id or a SKU to create"]})
        delta = as_quantity(mutation.quantity_delta, "quantity_delta")
        if type(mutation.quantity_delta) is not int:
            return ItemMutation(quantity_delta=delta, resolved_item_id=mutation.resolved_item_id, item=mutation.item)
        return mutation

    def _category(self, category_id):
        category_id = str(category_id)
        if category_id not in self._categories:
            self._categories[category_id] = current_domain.repository_for(Category).get(category_id)
        return self._categories[category_id]

    def _resolve(self, mutations):
        """Map each mutation onto an item aggregate.

        The same item is represented by one object however many mutations
        target it, so deltas accumulate. New SKUs are built in memory and
        only persisted when quantities are written.
        """
        by_id = {}
        by_sku = {}
        new_ids = set()
        lines = []

        for mutation in mutations:
            is_new = False
            if mutation.resolved_item_id:
                item_id = str(mutation.resolved_item_id)
                if item_id not in by_id:
                    by_id[item_id] = self.items.get(item_id)
                item = by_id[item_id]
            else:
                wanted = mutation.item
                self._category(wanted.category_id)
                key = sku_key(wanted.warehouse_id, wanted.category_id, wanted.specs)
                if key not in by_sku:
                    existing = self.items.find_by_spec(wanted.warehouse_id, wanted.category_id, wanted.specs)
                    if existing is not None:
                        by_sku[key] = by_id.setdefault(str(existing.id), existing)
                    else:
                        by_sku[key] = InventoryItem.create(
                            warehouse_id=wanted.warehouse_id,
                            category_id=wanted.category_id,
                            specs=wanted.specs,
                            quantity=0,
                        )
                        by_id[str(by_sku[key].id)] = by_sku[key]
                        new_ids.add(str(by_sku[key].id))
                item = by_sku[key]
                is_new = str(item.id) in new_ids

            lines.append(
                _Line(
                    item=item,
                    delta=mutation.quantity_delta,
                    category_name=self._category(item.category_id).name,
                    specs=item.spec_map,
                    is_new=is_new,
                )
            )
        return lines

    def _check_directions(self, lines, meta):
        transaction_type = meta.transaction_type
        for line in lines:
            if str(line.item.warehouse_id) != str(meta.warehouse_id):
                raise ValidationError({"items": [f"Item {line.item.id} does not belong to warehouse {meta.warehouse_id}"]})
            if transaction_type == TransactionType.IN.value and line.delta <= 0:
                raise ValidationError({"quantity": ["Inbound quantities must be positive"]})
            if transaction_type == TransactionType.OUT.value:
                if line.delta >= 0:
                    raise ValidationError({"quantity": ["Outbound quantities must be positive"]})
                if line.is_new:
                    raise ValidationError({"items": ["Outbound requires existing items"]})
            if transaction_type == TransactionType.ADJUST.value and line.is_new:
                raise ValidationError({"items": ["Adjustments apply to existing items only"]})

    def _split_transfer(self, lines, meta):
        """Pair source decrements with target increments, position by position."""
        source = [line for line in lines if line.delta < 0]
        target = [line for line in lines if line.delta > 0]

        if len(source) + len(target) != len(lines):
            raise ValidationError({"quantity": ["Transfer quantities cannot be zero"]})
        if not source or len(source) != len(target):
            raise ValidationError({"items": ["Each transferred item needs one source and one target entry"]})

        for out_line, in_line in zip(source, target, strict=True):
            if str(out_line.item.warehouse_id) != str(meta.warehouse_id) or out_line.is_new:
                raise ValidationError({"items": ["Transfer source items must exist in the source warehouse"]})
            if str(in_line.item.warehouse_id) != str(meta.related_warehouse_id):
                raise ValidationError({"items": ["Transfer target items must be in the target warehouse"]})
            if -out_line.delta != in_line.delta:
                raise ValidationError({"quantity": ["Source and target quantities of a transfer must match"]})
            if str(out_line.item.category_id) != str(in_line.item.category_id) or not same_spec(
                out_line.specs, in_line.specs
            ):
                raise ValidationError({"items": ["Transfer target must be the same SKU as the source"]})

        return source, target

    def _ensure_stock(self, lines):
        """Reject the whole request if any item would end below zero."""
        net = OrderedDict()
        for line in lines:
            item_id = str(line.item.id)
            current, delta = net.get(item_id, (line.item.quantity or 0, 0))
            net[item_id] = (current, delta + line.delta)

        shortfalls = [
            f"Item {item_id} has {current} unit(s); change of {delta} would leave {current + delta}"
            for item_id, (current, delta) in net.items()
            if current + delta < 0
        ]
        if shortfalls:
            raise InsufficientStockError({"quantity": shortfalls})

    def _apply(self, lines, transaction_id):
        net = OrderedDict()
        for line in lines:
            item = line.item
            previous_item, delta = net.get(str(item.id), (item, 0))
            net[str(item.id)] = (previous_item, delta + line.delta)

        for item, delta in net.values():
            self.items.save_quantity(item, (item.quantity or 0) + delta, transaction_id=transaction_id)

    def _snapshot_lines(self, lines, transaction_type):
        if transaction_type == TransactionType.ADJUST.value:
            return [SnapshotLine(line.category_name, line.specs, line.delta) for line in lines]
        return [SnapshotLine(line.category_name, line.specs, abs(line.delta)) for line in lines]

    def _write(self, lines, meta):
        transaction_id = str(uuid4())
        transaction = Transaction.record(
            id=transaction_id,
            transaction_type=meta.transaction_type,
            warehouse_id=meta.warehouse_id,
            snapshot=encode(meta.transaction_type, self._snapshot_lines(lines, meta.transaction_type)),
            quantity=sum(line.delta for line in lines),
            affected_item_ids=[str(line.item.id) for line in lines],
            date=meta.date,
            user=meta.user,
            notes=meta.notes,
        )
        self._apply(lines, transaction_id)
        self.transactions.add(transaction)

        logger.info(
            "Transaction committed",
            transaction_id=transaction_id,
            transaction_type=meta.transaction_type,
            warehouse_id=str(meta.warehouse_id),
            quantity=transaction.quantity,
            items=len(lines),
        )
        return transaction

    def _write_transfer(self, source, target, meta):
        source_id, target_id = str(uuid4()), str(uuid4())

        snapshot = encode_movement(
            TransactionType.TRANSFER.value,
            self._snapshot_lines(source, TransactionType.TRANSFER.value),
        )
        shared = {
            "transaction_type": TransactionType.TRANSFER.value,
            "snapshot": snapshot,
            "date": meta.date,
            "user": meta.user,
            "notes": meta.notes,
        }
        outgoing = Transaction.record(
            id=source_id,
            warehouse_id=meta.warehouse_id,
            related_warehouse_id=meta.related_warehouse_id,
            quantity=sum(line.delta for line in source),
            affected_item_ids=[str(line.item.id) for line in source],
            counterpart_id=target_id,
            **shared,
        )
        # Both sides carry the same timestamp
        shared["date"] = outgoing.date
        incoming = Transaction.record(
            id=target_id,
            warehouse_id=meta.related_warehouse_id,
            related_warehouse_id=meta.warehouse_id,
            quantity=sum(line.delta for line in target),
            affected_item_ids=[str(line.item.id) for line in target],
            counterpart_id=source_id,
            **shared,
        )
        self._apply(source, source_id)
        self._apply(target, target_id)
        self.transactions.add(outgoing)
        self.transactions.add(incoming)

        logger.info(
            "Transfer committed",
            transaction_id=source_id,
            counterpart_id=target_id,
            source_warehouse_id=str(meta.warehouse_id),
            target_warehouse_id=str(meta.related_warehouse_id),
            quantity=-outgoing.quantity,
        )
        return outgoing

    # -------------------------------------------------------------------
    # Revert
    # -------------------------------------------------------------------
    def revert(self, transaction_id, user, notes=None, date=None) -> Transaction:
        """Append the inverse of ``transaction_id``.

        A transfer is reverted on both sides at once. Returns the revert
        record written for the requested side.
        """
        try:
            with _atomic():
                if not (user or "").strip():
                    raise ValidationError({"user": ["Operator is required"]})

                original = self._revertible(transaction_id)
                sides = [original]
                if original.transaction_type == TransactionType.TRANSFER.value:
                    sides.append(self._counterpart(original))

                plans = []
                for side in sides:
                    lines = self._resolve_recorded(side)
                    plans.append((side, lines))

                self._ensure_stock([line for _, lines in plans for line in lines])
                return self._write_reverts(plans, user, notes, date)
        except (ValidationError, ObjectNotFoundError, InvalidOperationError) as exc:
            logger.warning("Revert rejected", transaction_id=str(transaction_id), error=str(exc))
            raise

    def _revertible(self, transaction_id):
        try:
            transaction = self.transactions.get(transaction_id)
        except ObjectNotFoundError:
            raise InvalidRevertError(f"Transaction {transaction_id} does not exist")
        self._ensure_revertible(transaction)
        return transaction

    def _ensure_revertible(self, transaction):
        if transaction.is_revert:
            raise InvalidRevertError(f"Transaction {transaction.id} is itself a revert")
        if self.transactions.revert_of(str(transaction.id)) is not None:
            raise InvalidRevertError(f"Transaction {transaction.id} has already been reverted")
        if transaction.snapshot.is_opaque:
            raise InvalidRevertError(f"Transaction {transaction.id} has no item breakdown to revert")

    def _counterpart(self, transaction):
        if not transaction.counterpart_id:
            raise InvalidRevertError(f"Transfer {transaction.id} was recorded on one side only")
        try:
            counterpart = self.transactions.get(transaction.counterpart_id)
        except ObjectNotFoundError:
            raise InvalidRevertError(f"Counterpart of transfer {transaction.id} is missing")
        self._ensure_revertible(counterpart)
        return counterpart

    def _recorded_deltas(self, transaction):
        """Signed per-item deltas a transaction applied, in snapshot order."""
        snapshot = transaction.snapshot
        if snapshot.is_legacy:
            return [(snapshot.lines[0], transaction.quantity)]

        if snapshot.signed_lines:
            deltas = [(line, line.quantity) for line in snapshot.lines]
        else:
            negative = transaction.transaction_type == TransactionType.OUT.value or (
                transaction.transaction_type == TransactionType.TRANSFER.value and transaction.quantity < 0
            )
            deltas = [(line, -line.quantity if negative else line.quantity) for line in snapshot.lines]

        if sum(delta for _, delta in deltas) != transaction.quantity:
            raise InvalidRevertError(f"Transaction {transaction.id} snapshot does not add up to its quantity")
        return deltas

    def _resolve_recorded(self, transaction):
        deltas = self._recorded_deltas(transaction)
        item_ids = transaction.item_ids
        if len(item_ids) != len(deltas):
            item_ids = [self._locate(transaction.warehouse_id, line) for line, _ in deltas]

        lines = []
        by_id = {}
        for item_id, (line, delta) in zip(item_ids, deltas, strict=True):
            if item_id not in by_id:
                by_id[item_id] = self.items.get(item_id)
            lines.append(_Line(item=by_id[item_id], delta=-delta, category_name=line.category_name, specs=line.specs))
        return lines

    def _locate(self, warehouse_id, line):
        """Find an item from a snapshot line when the record lacks item ids."""
        category = current_domain.repository_for(Category).find_by_name(line.category_name)
        if category is None:
            raise ObjectNotFoundError(f"Category {line.category_name} not found")
        item = self.items.find_by_spec(warehouse_id, str(category.id), line.specs)
        if item is None:
            raise ObjectNotFoundError(f"No item {line.category_name} {line.specs} in warehouse {warehouse_id}")
        return str(item.id)

    def _original_items(self, transaction):
        snapshot = transaction.snapshot
        if snapshot.is_legacy:
            line = snapshot.lines[0]
            return [{"category_name": line.category_name, "specs": line.specs, "quantity": abs(line.quantity)}]
        return raw_items(transaction.item_name_snapshot)

    def _write_reverts(self, plans, user, notes, date):
        revert_ids = [str(uuid4()) for _ in plans]

        # A transfer revert writes one payload for both sides, from the source side
        payload_side, payload_lines = next(
            ((side, lines) for side, lines in plans if side.quantity < 0),
            plans[0],
        )
        snapshot = encode_revert(
            payload_side.transaction_type,
            self._original_items(payload_side),
            [SnapshotLine(line.category_name, line.specs, line.delta) for line in payload_lines],
        )

        records = []
        for index, ((side, lines), revert_id) in enumerate(zip(plans, revert_ids, strict=True)):
            counterpart_id = revert_ids[1 - index] if len(plans) == 2 else None
            record = Transaction.record(
                id=revert_id,
                transaction_type=side.transaction_type,
                warehouse_id=side.warehouse_id,
                related_warehouse_id=side.related_warehouse_id,
                snapshot=snapshot,
                quantity=-side.quantity,
                affected_item_ids=[str(line.item.id) for line in lines],
                date=date if date else (records[0].date if records else None),
                user=user,
                notes=notes,
                reverts_transaction_id=str(side.id),
                counterpart_id=counterpart_id,
            )
            records.append(record)

        for (side, lines), record in zip(plans, records, strict=True):
            self._apply(lines, str(record.id))
            self.transactions.add(record)

            logger.info(
                "Transaction reverted",
                transaction_id=str(record.id),
                reverted_transaction_id=str(side.id),
                transaction_type=side.transaction_type,
                warehouse_id=str(side.warehouse_id),
                quantity=record.quantity,
            )

        return records[0]
