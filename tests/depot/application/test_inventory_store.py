"""Application tests for the inventory item repository."""

import pytest
from depot.stock.item import InventoryItem
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError


@pytest.fixture()
def repo():
    return current_domain.repository_for(InventoryItem)


class TestInventoryStore:
    def test_create_and_get(self, repo):
        item = repo.create("wh-1", "cat-1", {"length": "3m"}, quantity=5)
        assert repo.get(item.id).quantity == 5

    def test_create_with_negative_quantity_rejected(self, repo):
        with pytest.raises(ValidationError):
            repo.create("wh-1", "cat-1", {}, quantity=-1)

    def test_find_by_spec(self, repo):
        item = repo.create("wh-1", "cat-1", {"length": "3m", "color": "red"})
        repo.create("wh-1", "cat-1", {"length": "3m"})

        found = repo.find_by_spec("wh-1", "cat-1", {"color": "red", "length": "3m"})
        assert found.id == item.id

    def test_find_by_spec_scoped_to_warehouse_and_category(self, repo):
        repo.create("wh-1", "cat-1", {"length": "3m"})
        assert repo.find_by_spec("wh-2", "cat-1", {"length": "3m"}) is None
        assert repo.find_by_spec("wh-1", "cat-2", {"length": "3m"}) is None

    def test_set_quantity(self, repo):
        item = repo.create("wh-1", "cat-1", {})
        repo.set_quantity(item.id, 7)
        assert repo.get(item.id).quantity == 7

    def test_set_quantity_negative_rejected(self, repo):
        item = repo.create("wh-1", "cat-1", {}, quantity=2)
        with pytest.raises(ValidationError):
            repo.set_quantity(item.id, -1)
        assert repo.get(item.id).quantity == 2

    def test_set_quantity_unknown_item(self, repo):
        with pytest.raises(ObjectNotFoundError):
            repo.set_quantity("missing", 1)

    def test_for_warehouse_filters_by_category(self, repo):
        repo.create("wh-1", "cat-1", {"a": "1"})
        repo.create("wh-1", "cat-2", {"a": "1"})
        repo.create("wh-2", "cat-1", {"a": "1"})

        assert len(repo.for_warehouse("wh-1")) == 2
        assert len(repo.for_warehouse("wh-1", category_id="cat-2")) == 1

    def test_delete_requires_zero_stock(self, repo):
        item = repo.create("wh-1", "cat-1", {}, quantity=3)
        with pytest.raises(ValidationError):
            repo.delete_item(item.id)

        repo.set_quantity(item.id, 0)
        repo.delete_item(item.id)
        with pytest.raises(ObjectNotFoundError):
            repo.get(item.id)
