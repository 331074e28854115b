"""Snapshot codec for the ``item_name_snapshot`` column of a transaction.

A snapshot is JSON text describing every item a transaction touched, kept even
after the items themselves change or disappear. Shapes:

    Movement (IN / OUT / TRANSFER)
        {"type": "MULTI_ITEM_INBOUND", "items": [{category_name, specs, quantity}],
         "total_quantity": n}
        ``quantity`` is a magnitude; the sign lives on the transaction record.

    Adjustment
        {"type": "MULTI_ITEM_ADJUST", "items": [{category_name, specs, quantity_diff}],
         "total_quantity_diff": n}

    Revert
        {"type": "MULTI_ITEM_REVERT_<OUT|IN|ADJUST|TRANSFER>", "original_items": [...],
         "items": [{category_name, specs, quantity_diff}], "reverted": true}

Older records hold a single-item string ``"<category_name> - <json specs>"``.
Anything that is neither decodes to an opaque line for display only.
"""

import json
from dataclasses import dataclass, field
from enum import Enum

MULTI_ITEM_PREFIX = "MULTI_ITEM_"
REVERT_PREFIX = "MULTI_ITEM_REVERT_"

LEGACY = "LEGACY"
OPAQUE = "OPAQUE"


class TransactionType(Enum):
    IN = "IN"
    OUT = "OUT"
    ADJUST = "ADJUST"
    TRANSFER = "TRANSFER"


SNAPSHOT_KINDS = {
    TransactionType.IN.value: "MULTI_ITEM_INBOUND",
    TransactionType.OUT.value: "MULTI_ITEM_OUTBOUND",
    TransactionType.TRANSFER.value: "MULTI_ITEM_TRANSFER",
    TransactionType.ADJUST.value: "MULTI_ITEM_ADJUST",
}

_DIFF_KINDS = {SNAPSHOT_KINDS[TransactionType.ADJUST.value]}


class SnapshotDecodeError(ValueError):
    pass


@dataclass(frozen=True)
class SnapshotLine:
    """One affected item.

    ``quantity`` is the number stored in the payload: a magnitude for
    movements, a signed difference for adjustments and reverts.
    """

    category_name: str
    specs: dict = field(default_factory=dict)
    quantity: int = 0


@dataclass
class Snapshot:
    kind: str
    lines: list[SnapshotLine]
    total: int | None = None
    original_lines: list[SnapshotLine] = field(default_factory=list)
    reverted: bool = False

    @property
    def is_revert(self):
        return self.reverted or self.kind.startswith(REVERT_PREFIX)

    @property
    def is_legacy(self):
        return self.kind == LEGACY

    @property
    def is_opaque(self):
        return self.kind == OPAQUE

    @property
    def signed_lines(self):
        """True when line quantities carry their own sign."""
        return self.kind in _DIFF_KINDS or self.is_revert


def _line_payload(line, key):
    return {"category_name": line.category_name, "specs": dict(line.specs), key: line.quantity}


def encode_movement(transaction_type, lines):
    """Encode an inbound, outbound or transfer snapshot.

    ``lines`` carry non-negative magnitudes.
    """
    if transaction_type not in (TransactionType.IN.value, TransactionType.OUT.value, TransactionType.TRANSFER.value):
        raise ValueError(f"Not a movement type: {transaction_type}")
    if any(line.quantity < 0 for line in lines):
        raise ValueError("Movement snapshot quantities must be non-negative")

    return json.dumps(
        {
            "type": SNAPSHOT_KINDS[transaction_type],
            "items": [_line_payload(line, "quantity") for line in lines],
            "total_quantity": sum(line.quantity for line in lines),
        },
        ensure_ascii=False,
    )


def encode_adjustment(lines):
    return json.dumps(
        {
            "type": SNAPSHOT_KINDS[TransactionType.ADJUST.value],
            "items": [_line_payload(line, "quantity_diff") for line in lines],
            "total_quantity_diff": sum(line.quantity for line in lines),
        },
        ensure_ascii=False,
    )


def encode(transaction_type, lines):
    if transaction_type == TransactionType.ADJUST.value:
        return encode_adjustment(lines)
    return encode_movement(transaction_type, lines)


def encode_revert(transaction_type, original_items, inverse_lines):
    """Encode the snapshot of a revert.

    ``original_items`` is copied verbatim from the reverted snapshot;
    ``inverse_lines`` carry signed differences.
    """
    return json.dumps(
        {
            "type": f"{REVERT_PREFIX}{transaction_type}",
            "original_items": list(original_items),
            "items": [_line_payload(line, "quantity_diff") for line in inverse_lines],
            "reverted": True,
        },
        ensure_ascii=False,
    )


def _parse_lines(items, key):
    if not isinstance(items, list):
        raise SnapshotDecodeError("items must be a list")

    lines = []
    for entry in items:
        if not isinstance(entry, dict):
            raise SnapshotDecodeError("item entries must be objects")
        quantity = entry.get(key)
        if quantity is None:
            # Older adjust rows were written with either key
            quantity = entry.get("quantity_diff", entry.get("quantity", 0))
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise SnapshotDecodeError(f"item quantity must be an integer, got {quantity!r}")
        specs = entry.get("specs") or {}
        if not isinstance(specs, dict):
            raise SnapshotDecodeError("item specs must be an object")
        lines.append(
            SnapshotLine(
                category_name=str(entry.get("category_name") or ""),
                specs={str(k): str(v) for k, v in specs.items()},
                quantity=quantity,
            )
        )
    return lines


def _decode_multi_item(payload):
    kind = payload.get("type")
    if not isinstance(kind, str) or not kind.startswith(MULTI_ITEM_PREFIX):
        raise SnapshotDecodeError("not a multi-item snapshot")

    if kind.startswith(REVERT_PREFIX):
        return Snapshot(
            kind=kind,
            lines=_parse_lines(payload.get("items", []), "quantity_diff"),
            original_lines=_parse_lines(payload.get("original_items", []), "quantity"),
            reverted=bool(payload.get("reverted", True)),
        )

    if kind in _DIFF_KINDS:
        lines = _parse_lines(payload.get("items"), "quantity_diff")
        total = payload.get("total_quantity_diff")
    else:
        lines = _parse_lines(payload.get("items"), "quantity")
        total = payload.get("total_quantity")

    if total is None:
        total = sum(line.quantity for line in lines)

    return Snapshot(kind=kind, lines=lines, total=total, reverted=bool(payload.get("reverted", False)))


def _decode_legacy(raw, quantity):
    category_name, separator, specs_text = raw.partition(" - ")
    if not separator:
        raise SnapshotDecodeError("no legacy separator")
    specs = json.loads(specs_text)
    if not isinstance(specs, dict):
        raise SnapshotDecodeError("legacy specs must be an object")
    line = SnapshotLine(
        category_name=category_name,
        specs={str(k): str(v) for k, v in specs.items()},
        quantity=quantity or 0,
    )
    return Snapshot(kind=LEGACY, lines=[line], total=quantity)


def decode(raw, quantity=None):
    """Decode a stored snapshot.

    ``quantity`` is the transaction's own quantity, used to fill the single
    line of a legacy record. Never raises for malformed input: the last
    resort is an opaque line named after the raw text.
    """
    raw = raw or ""
    try:
        payload = json.loads(raw)
        if isinstance(payload, dict):
            return _decode_multi_item(payload)
    except (ValueError, SnapshotDecodeError):
        pass

    try:
        return _decode_legacy(raw, quantity)
    except ValueError:
        pass

    return Snapshot(
        kind=OPAQUE,
        lines=[SnapshotLine(category_name=raw, specs={}, quantity=quantity or 0)],
        total=quantity,
    )


def raw_items(raw):
    """Return the ``items`` list of a multi-item snapshot exactly as stored."""
    payload = json.loads(raw)
    return payload.get("items", [])
