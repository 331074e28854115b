"""Domain events for the Category aggregate."""

from protean.fields import DateTime, Identifier, String, Text

from depot.domain import depot


@depot.event(part_of="Category")
class CategoryCreated:
    """A new category with its attribute schema was created."""

    __version__ = 1

    category_id = Identifier(required=True)
    name = String(required=True)
    attributes = Text()  # JSON array of {name, options}
    created_at = DateTime(required=True)


@depot.event(part_of="Category")
class CategoryUpdated:
    """A category's name or attribute schema changed."""

    __version__ = 1

    category_id = Identifier(required=True)
    name = String(required=True)
    attributes = Text()
    updated_at = DateTime(required=True)
