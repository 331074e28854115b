"""Application tests for reverting transactions."""

import json
from datetime import UTC, datetime

import pytest
from depot.errors import InsufficientStockError, InvalidRevertError
from depot.ledger.engine import Ledger
from depot.ledger.history import is_reverted
from depot.ledger.transaction import Transaction
from depot.operations.adjust import AdjustInventory
from depot.operations.outbound import IssueOutbound
from depot.operations.revert import RevertTransaction
from depot.operations.transfer import TransferStock
from depot.stock.item import InventoryItem
from protean import current_domain
from protean.exceptions import ValidationError


def _revert(transaction_id, user="bob", notes=None):
    return current_domain.process(
        RevertTransaction(transaction_id=transaction_id, user=user, notes=notes),
        asynchronous=False,
    )


def _issue(warehouse_id, item_id, quantity):
    command = IssueOutbound(
        warehouse_id=warehouse_id,
        items=json.dumps([{"item_id": item_id, "quantity": quantity}]),
        user="alice",
    )
    return current_domain.process(command, asynchronous=False)


def _quantity(item_id):
    return current_domain.repository_for(InventoryItem).get(item_id).quantity


def _get(transaction_id):
    return current_domain.repository_for(Transaction).get(transaction_id)


class TestRevertOutbound:
    def test_example_scenario(self, stocked):
        tx_id = _issue(stocked["warehouse_id"], stocked["item_id"], 4)
        assert _quantity(stocked["item_id"]) == 6

        revert_id = _revert(tx_id)

        assert _quantity(stocked["item_id"]) == 10
        revert = _get(revert_id)
        payload = json.loads(revert.item_name_snapshot)
        assert payload["type"] == "MULTI_ITEM_REVERT_OUT"
        assert payload["reverted"] is True
        assert revert.quantity == 4
        assert revert.reverts_transaction_id == tx_id
        assert revert.transaction_type == "OUT"

    def test_revert_keeps_original_items(self, stocked):
        tx_id = _issue(stocked["warehouse_id"], stocked["item_id"], 4)
        payload = json.loads(_get(_revert(tx_id)).item_name_snapshot)

        assert payload["original_items"] == [{"category_name": "Fiber", "specs": {"length": "3m"}, "quantity": 4}]
        assert payload["items"] == [{"category_name": "Fiber", "specs": {"length": "3m"}, "quantity_diff": 4}]

    def test_original_left_untouched(self, stocked):
        tx_id = _issue(stocked["warehouse_id"], stocked["item_id"], 4)
        before = _get(tx_id).item_name_snapshot

        _revert(tx_id)

        original = _get(tx_id)
        assert original.item_name_snapshot == before
        assert original.quantity == -4
        assert is_reverted(original)

    def test_revert_records_operator_and_notes(self, stocked):
        tx_id = _issue(stocked["warehouse_id"], stocked["item_id"], 4)
        revert = _get(_revert(tx_id, user="carol", notes="entered twice"))
        assert revert.user == "carol"
        assert revert.notes == "entered twice"


class TestRevertRefusals:
    def test_second_revert_refused(self, stocked):
        tx_id = _issue(stocked["warehouse_id"], stocked["item_id"], 4)
        _revert(tx_id)

        with pytest.raises(InvalidRevertError):
            _revert(tx_id)
        assert _quantity(stocked["item_id"]) == 10

    def test_revert_of_revert_refused(self, stocked):
        tx_id = _issue(stocked["warehouse_id"], stocked["item_id"], 4)
        revert_id = _revert(tx_id)

        with pytest.raises(InvalidRevertError):
            _revert(revert_id)

    def test_unknown_transaction_refused(self, stocked):
        with pytest.raises(InvalidRevertError):
            _revert("missing")

    def test_user_required(self, stocked):
        tx_id = _issue(stocked["warehouse_id"], stocked["item_id"], 4)
        with pytest.raises(ValidationError):
            _revert(tx_id, user=None)

    def test_rejected_revert_record_leaves_stock_unchanged(self, stocked):
        tx_id = _issue(stocked["warehouse_id"], stocked["item_id"], 4)
        with pytest.raises(ValidationError):
            Ledger().revert(tx_id, user="y" * 101)

        assert _quantity(stocked["item_id"]) == 6
        assert not is_reverted(_get(tx_id))

        _revert(tx_id)
        assert _quantity(stocked["item_id"]) == 10

    def test_opaque_record_refused(self, stocked):
        legacy = Transaction(
            transaction_type="OUT",
            warehouse_id=stocked["warehouse_id"],
            item_id=stocked["item_id"],
            item_name_snapshot="Fiber cable",
            quantity=-1,
            date=datetime(2023, 5, 1, tzinfo=UTC),
            user="legacy",
        )
        current_domain.repository_for(Transaction).add(legacy)

        with pytest.raises(InvalidRevertError):
            _revert(legacy.id)

    def test_inbound_revert_after_consumption_refused(self, stocked, receive):
        tx_id = receive(stocked["warehouse_id"], (stocked["category_id"], {"length": "3m"}, 5))
        _issue(stocked["warehouse_id"], stocked["item_id"], 12)

        with pytest.raises(InsufficientStockError):
            _revert(tx_id)
        assert _quantity(stocked["item_id"]) == 3
        assert not is_reverted(_get(tx_id))


class TestRevertOtherKinds:
    def test_revert_inbound_of_new_sku(self, stocked, receive):
        tx_id = receive(stocked["warehouse_id"], (stocked["category_id"], {"length": "8m"}, 3))
        new_id = _get(tx_id).item_id

        revert = _get(_revert(tx_id))

        assert _quantity(new_id) == 0
        assert revert.quantity == -3
        assert json.loads(revert.item_name_snapshot)["type"] == "MULTI_ITEM_REVERT_IN"

    def test_revert_adjustment(self, stocked):
        tx_id = current_domain.process(
            AdjustInventory(
                warehouse_id=stocked["warehouse_id"],
                edits=json.dumps([{"item_id": stocked["item_id"], "quantity": 13}]),
                user="alice",
            ),
            asynchronous=False,
        )
        revert = _get(_revert(tx_id))

        assert _quantity(stocked["item_id"]) == 10
        assert revert.quantity == -3
        assert json.loads(revert.item_name_snapshot)["items"][0]["quantity_diff"] == -3

    def test_revert_legacy_single_item_record(self, stocked):
        legacy = Transaction(
            transaction_type="OUT",
            warehouse_id=stocked["warehouse_id"],
            item_id=stocked["item_id"],
            item_name_snapshot='Fiber - {"length": "3m"}',
            quantity=-2,
            date=datetime(2023, 5, 1, tzinfo=UTC),
            user="legacy",
        )
        current_domain.repository_for(Transaction).add(legacy)

        revert = _get(_revert(legacy.id))

        assert _quantity(stocked["item_id"]) == 12
        assert revert.quantity == 2
        assert json.loads(revert.item_name_snapshot)["original_items"] == [
            {"category_name": "Fiber", "specs": {"length": "3m"}, "quantity": 2}
        ]


class TestRevertTransfer:
    def _transfer(self, stocked, target_id, quantity=4):
        command = TransferStock(
            source_warehouse_id=stocked["warehouse_id"],
            target_warehouse_id=target_id,
            items=json.dumps([{"item_id": stocked["item_id"], "quantity": quantity}]),
            user="alice",
        )
        return current_domain.process(command, asynchronous=False)

    def test_rejected_revert_record_leaves_both_sides_unchanged(self, stocked, make_warehouse):
        target_id = make_warehouse("W2")
        tx_id = self._transfer(stocked, target_id)
        target_item = current_domain.repository_for(InventoryItem).for_warehouse(target_id)[0]

        with pytest.raises(ValidationError):
            Ledger().revert(tx_id, user="y" * 101)

        assert _quantity(stocked["item_id"]) == 6
        assert _quantity(str(target_item.id)) == 4

    def test_both_sides_restored(self, stocked, make_warehouse):
        target_id = make_warehouse("W2")
        tx_id = self._transfer(stocked, target_id)
        target_item = current_domain.repository_for(InventoryItem).for_warehouse(target_id)[0]

        _revert(tx_id)

        assert _quantity(stocked["item_id"]) == 10
        assert _quantity(str(target_item.id)) == 0

    def test_two_linked_revert_records(self, stocked, make_warehouse):
        target_id = make_warehouse("W2")
        tx_id = self._transfer(stocked, target_id)
        outgoing = _get(tx_id)

        revert = _get(_revert(tx_id))
        mirror = _get(revert.counterpart_id)

        assert revert.warehouse_id == stocked["warehouse_id"]
        assert revert.quantity == 4
        assert mirror.warehouse_id == target_id
        assert mirror.quantity == -4
        assert mirror.reverts_transaction_id == outgoing.counterpart_id
        assert mirror.item_name_snapshot == revert.item_name_snapshot
        assert json.loads(revert.item_name_snapshot)["type"] == "MULTI_ITEM_REVERT_TRANSFER"

    def test_reverting_target_side_reverts_both(self, stocked, make_warehouse):
        target_id = make_warehouse("W2")
        tx_id = self._transfer(stocked, target_id)
        incoming_id = _get(tx_id).counterpart_id

        revert = _get(_revert(incoming_id))

        assert revert.warehouse_id == target_id
        assert _quantity(stocked["item_id"]) == 10
        with pytest.raises(InvalidRevertError):
            _revert(tx_id)

    def test_transfer_revert_refused_when_target_consumed(self, stocked, make_warehouse):
        target_id = make_warehouse("W2")
        tx_id = self._transfer(stocked, target_id)
        target_item = current_domain.repository_for(InventoryItem).for_warehouse(target_id)[0]
        _issue(target_id, str(target_item.id), 3)

        with pytest.raises(InsufficientStockError):
            _revert(tx_id)
        assert _quantity(stocked["item_id"]) == 6
        assert _quantity(str(target_item.id)) == 1
