"""Category aggregate: groups items and defines their attribute schema.

Each category carries a list of attribute definitions ``{name, options}``.
An empty option list accepts free text; otherwise a value must be one of the
options. Item specs are validated against this schema before any stock
operation touches them.
"""

import json
from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import DateTime, String, Text

from depot.category.events import CategoryCreated, CategoryUpdated
from depot.domain import depot
from depot.errors import AttributeMismatchError


def normalize_attributes(attributes):
    """Return a clean list of ``{name, options}`` dicts.

    Names are stripped and must be unique; options are stripped, blank
    entries dropped and duplicates removed keeping the first occurrence.
    """
    normalized = []
    seen = set()
    for definition in attributes or []:
        if isinstance(definition, str):
            definition = {"name": definition, "options": []}
        elif not isinstance(definition, dict):
            raise ValidationError({"attributes": ["Each attribute must be a name or an object"]})

        name = str(definition.get("name") or "").strip()
        if not name:
            raise ValidationError({"attributes": ["Attribute name is required"]})
        if name in seen:
            raise ValidationError({"attributes": [f"Duplicate attribute name: {name}"]})
        seen.add(name)

        options = []
        for option in definition.get("options") or []:
            option = str(option).strip()
            if option and option not in options:
                options.append(option)

        normalized.append({"name": name, "options": options})
    return normalized


@depot.aggregate
class Category:
    """A named grouping of items sharing one attribute schema."""

    name = String(required=True, max_length=100)
    attributes = Text()  # JSON array of {name, options}
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def create(cls, name, attributes=None):
        name = (name or "").strip()
        if not name:
            raise ValidationError({"name": ["Category name is required"]})

        now = datetime.now(UTC)
        attrs_json = json.dumps(normalize_attributes(attributes))

        category = cls(
            name=name,
            attributes=attrs_json,
            created_at=now,
            updated_at=now,
        )
        category.raise_(
            CategoryCreated(
                category_id=str(category.id),
                name=name,
                attributes=attrs_json,
                created_at=now,
            )
        )
        return category

    def update_details(self, name=None, attributes=None):
        if name is not None:
            name = name.strip()
            if not name:
                raise ValidationError({"name": ["Category name is required"]})
            self.name = name

        if attributes is not None:
            self.attributes = json.dumps(normalize_attributes(attributes))

        self.updated_at = datetime.now(UTC)

        self.raise_(
            CategoryUpdated(
                category_id=str(self.id),
                name=self.name,
                attributes=self.attributes,
                updated_at=self.updated_at,
            )
        )

    @property
    def attribute_definitions(self):
        return json.loads(self.attributes) if self.attributes else []

    @property
    def attribute_names(self):
        return [definition["name"] for definition in self.attribute_definitions]

    def validate_specs(self, specs):
        """Check that ``specs`` fit this category's schema.

        Raises AttributeMismatchError listing every offending attribute.
        """
        definitions = {d["name"]: d["options"] for d in self.attribute_definitions}
        errors = []
        for key, value in (specs or {}).items():
            if key not in definitions:
                errors.append(f"Unknown attribute '{key}' for category {self.name}")
                continue
            options = definitions[key]
            if options and value not in options:
                errors.append(f"Value '{value}' is not allowed for attribute '{key}'")

        if errors:
            raise AttributeMismatchError({"specs": errors})
