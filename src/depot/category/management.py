"""Category management: commands and handler."""

import json

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from depot.category.category import Category
from depot.domain import depot

logger = structlog.get_logger(__name__)


def _load_attributes(raw):
    if not raw:
        return None
    try:
        value = json.loads(raw)
    except ValueError:
        raise ValidationError({"attributes": ["Must be a JSON array"]})
    if not isinstance(value, list):
        raise ValidationError({"attributes": ["Must be a JSON array"]})
    return value


@depot.command(part_of="Category")
class CreateCategory:
    name = String(required=True, max_length=100)
    attributes = Text()  # JSON array of {name, options}


@depot.command(part_of="Category")
class UpdateCategory:
    category_id = Identifier(required=True)
    name = String(max_length=100)
    attributes = Text()


@depot.command(part_of="Category")
class DeleteCategory:
    category_id = Identifier(required=True)


@depot.command_handler(part_of=Category)
class ManageCategoryHandler:
    @handle(CreateCategory)
    def create_category(self, command):
        attrs = _load_attributes(command.attributes)
        category = Category.create(name=command.name, attributes=attrs)
        current_domain.repository_for(Category).add(category)
        return str(category.id)

    @handle(UpdateCategory)
    def update_category(self, command):
        repo = current_domain.repository_for(Category)
        category = repo.get(command.category_id)

        attrs = _load_attributes(command.attributes)
        category.update_details(name=command.name, attributes=attrs)
        repo.add(category)

    @handle(DeleteCategory)
    def delete_category(self, command):
        from depot.stock.item import InventoryItem

        repo = current_domain.repository_for(Category)
        category = repo.get(command.category_id)

        items = current_domain.repository_for(InventoryItem).for_category(str(category.id))
        if items:
            raise ValidationError(
                {"category_id": [f"Category is used by {len(items)} item(s) and cannot be deleted"]}
            )

        repo._dao.delete(category)
        logger.info("Category deleted", category_id=str(category.id), name=category.name)
