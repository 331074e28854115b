"""Tests for encoding and decoding transaction snapshots."""

import json

import pytest
from depot.ledger.snapshot import (
    LEGACY,
    OPAQUE,
    SnapshotLine,
    decode,
    encode,
    encode_adjustment,
    encode_movement,
    encode_revert,
    raw_items,
)

FIBER = SnapshotLine("Fiber", {"length": "3m"}, 4)
CABLE = SnapshotLine("Cable", {"gauge": "12"}, 6)


class TestMovementSnapshot:
    def test_outbound_payload_shape(self):
        payload = json.loads(encode_movement("OUT", [FIBER]))
        assert payload == {
            "type": "MULTI_ITEM_OUTBOUND",
            "items": [{"category_name": "Fiber", "specs": {"length": "3m"}, "quantity": 4}],
            "total_quantity": 4,
        }

    def test_inbound_and_transfer_kinds(self):
        assert json.loads(encode("IN", [FIBER]))["type"] == "MULTI_ITEM_INBOUND"
        assert json.loads(encode("TRANSFER", [FIBER]))["type"] == "MULTI_ITEM_TRANSFER"

    def test_total_is_sum_of_items(self):
        payload = json.loads(encode_movement("IN", [FIBER, CABLE]))
        assert payload["total_quantity"] == 10

    def test_negative_magnitude_rejected(self):
        with pytest.raises(ValueError):
            encode_movement("OUT", [SnapshotLine("Fiber", {}, -1)])

    def test_adjust_is_not_a_movement(self):
        with pytest.raises(ValueError):
            encode_movement("ADJUST", [FIBER])

    @pytest.mark.parametrize(
        "transaction_type, kind, lines, total",
        [
            ("IN", "MULTI_ITEM_INBOUND", [FIBER, CABLE], 10),
            ("OUT", "MULTI_ITEM_OUTBOUND", [FIBER, CABLE], 10),
            ("TRANSFER", "MULTI_ITEM_TRANSFER", [FIBER, CABLE], 10),
            ("ADJUST", "MULTI_ITEM_ADJUST", [FIBER, SnapshotLine("Cable", {"gauge": "12"}, -6)], -2),
        ],
    )
    def test_decode_restores_encoded_lines(self, transaction_type, kind, lines, total):
        snapshot = decode(encode(transaction_type, lines))
        assert snapshot.kind == kind
        assert snapshot.lines == lines
        assert snapshot.total == total
        assert snapshot.signed_lines == (transaction_type == "ADJUST")
        assert not snapshot.is_revert


class TestAdjustmentSnapshot:
    def test_payload_uses_quantity_diff(self):
        lines = [SnapshotLine("Fiber", {"length": "3m"}, -2), SnapshotLine("Cable", {}, 5)]
        payload = json.loads(encode_adjustment(lines))
        assert payload["type"] == "MULTI_ITEM_ADJUST"
        assert [item["quantity_diff"] for item in payload["items"]] == [-2, 5]
        assert payload["total_quantity_diff"] == 3

    def test_decoded_lines_are_signed(self):
        snapshot = decode(encode("ADJUST", [SnapshotLine("Fiber", {}, -2)]))
        assert snapshot.signed_lines
        assert snapshot.lines[0].quantity == -2
        assert snapshot.total == -2


class TestRevertSnapshot:
    def test_payload_shape(self):
        original = raw_items(encode_movement("OUT", [FIBER]))
        payload = json.loads(encode_revert("OUT", original, [SnapshotLine("Fiber", {"length": "3m"}, 4)]))
        assert payload["type"] == "MULTI_ITEM_REVERT_OUT"
        assert payload["reverted"] is True
        assert payload["original_items"] == original
        assert payload["items"] == [{"category_name": "Fiber", "specs": {"length": "3m"}, "quantity_diff": 4}]

    def test_decoded_revert(self):
        original = raw_items(encode_movement("IN", [FIBER]))
        snapshot = decode(encode_revert("IN", original, [SnapshotLine("Fiber", {"length": "3m"}, -4)]))
        assert snapshot.is_revert
        assert snapshot.lines[0].quantity == -4
        assert snapshot.original_lines == [FIBER]

    def test_reverted_flag_alone_marks_revert(self):
        raw = json.dumps({"type": "MULTI_ITEM_OUTBOUND", "items": [], "total_quantity": 0, "reverted": True})
        assert decode(raw).is_revert


class TestLegacyDecoding:
    def test_legacy_single_item_string(self):
        snapshot = decode('Fiber - {"length": "3m"}', quantity=-4)
        assert snapshot.kind == LEGACY
        assert snapshot.lines == [SnapshotLine("Fiber", {"length": "3m"}, -4)]

    def test_legacy_name_containing_separator(self):
        snapshot = decode('Patch - Cord - {"length": "1m"}', quantity=1)
        assert snapshot.kind == OPAQUE

    def test_plain_text_is_opaque(self):
        snapshot = decode("Old cable stock", quantity=3)
        assert snapshot.is_opaque
        assert snapshot.lines[0].category_name == "Old cable stock"

    def test_malformed_json_is_opaque(self):
        assert decode('{"type": "MULTI_ITEM_INBOUND", "items": ').is_opaque

    def test_multi_item_with_bad_items_is_opaque(self):
        raw = json.dumps({"type": "MULTI_ITEM_INBOUND", "items": [{"category_name": "Fiber", "quantity": 1.5}]})
        assert decode(raw).is_opaque

    def test_empty_value_is_opaque(self):
        assert decode(None).is_opaque
