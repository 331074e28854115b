"""Repository for the Category aggregate."""

from depot.category.category import Category
from depot.domain import depot


@depot.repository(part_of=Category)
class CategoryRepository:
    def find_by_name(self, name: str) -> Category | None:
        """Find a category by its exact name."""
        results = self._dao.query.filter(name=name).all().items
        return results[0] if results else None
