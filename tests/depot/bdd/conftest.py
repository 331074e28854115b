"""Shared BDD fixtures and step definitions for the ledger."""

import json

import pytest
from depot.category.category import Category
from depot.category.management import CreateCategory
from depot.stock.item import InventoryItem
from depot.warehouse.management import CreateWarehouse
from protean import current_domain
from pytest_bdd import given, parsers, then


@pytest.fixture()
def ledger():
    """Scenario state: warehouse ids by name and the transactions written."""
    return {"warehouses": {}, "transactions": [], "error": None}


def _category_id(name):
    repo = current_domain.repository_for(Category)
    category = repo.find_by_name(name)
    if category is None:
        command = CreateCategory(name=name, attributes=json.dumps(["length"]))
        return current_domain.process(command, asynchronous=False)
    return str(category.id)


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('warehouse "{name}" exists'))
def warehouse_exists(ledger, name):
    ledger["warehouses"][name] = current_domain.process(CreateWarehouse(name=name), asynchronous=False)


@given(parsers.cfparse('warehouse "{name}" holds {quantity:d} units of "{category}" with length "{length}"'))
def warehouse_holds(ledger, receive, name, quantity, category, length):
    warehouse_exists(ledger, name)
    receive(ledger["warehouses"][name], (_category_id(category), {"length": length}, quantity))


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('"{name}" holds {quantity:d} units of "{category}" with length "{length}"'))
def holds(ledger, name, quantity, category, length):
    item = current_domain.repository_for(InventoryItem).find_by_spec(
        ledger["warehouses"][name], _category_id(category), {"length": length}
    )
    assert item is not None
    assert item.quantity == quantity
