import json

import pytest
from protean import current_domain
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def depot_bed():
    from depot.domain import depot

    bed = DomainFixture(depot)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(depot_bed):
    with depot_bed.domain_context():
        yield

        for _, provider in current_domain.providers.items():
            provider._data_reset()
        current_domain.event_store.store._data_reset()


@pytest.fixture()
def make_warehouse():
    from depot.warehouse.management import CreateWarehouse

    def _make(name="Main"):
        return current_domain.process(CreateWarehouse(name=name), asynchronous=False)

    return _make


@pytest.fixture()
def make_category():
    from depot.category.management import CreateCategory

    def _make(name="Fiber", attributes=None):
        if attributes is None:
            attributes = [{"name": "length", "options": []}, {"name": "color", "options": ["red", "blue"]}]
        command = CreateCategory(name=name, attributes=json.dumps(attributes))
        return current_domain.process(command, asynchronous=False)

    return _make


@pytest.fixture()
def receive():
    """Receive SKU lines ``(category_id, specs, quantity)`` into a warehouse."""
    from depot.operations.inbound import ReceiveInbound

    def _receive(warehouse_id, *lines, user="alice", notes=None, date=None):
        items = [{"category_id": c, "specs": s, "quantity": q} for c, s, q in lines]
        command = ReceiveInbound(
            warehouse_id=warehouse_id,
            items=json.dumps(items),
            user=user,
            notes=notes,
            date=date,
        )
        return current_domain.process(command, asynchronous=False)

    return _receive


@pytest.fixture()
def stocked(make_warehouse, make_category, receive):
    """Warehouse W1 holding Fiber {length: 3m} x 10."""
    from depot.stock.item import InventoryItem

    warehouse_id = make_warehouse("W1")
    category_id = make_category()
    receive(warehouse_id, (category_id, {"length": "3m"}, 10))
    item = current_domain.repository_for(InventoryItem).for_warehouse(warehouse_id)[0]
    return {"warehouse_id": warehouse_id, "category_id": category_id, "item_id": str(item.id)}
