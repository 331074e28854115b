"""Helpers for the JSON line lists carried by operation commands."""

import json

from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from depot.category.category import Category
from depot.ledger.engine import as_quantity
from depot.stock.specs import clean_specs


def load_lines(raw, field_name="items"):
    """Decode a JSON array of objects, failing with a field-keyed error."""
    if not raw:
        raise ValidationError({field_name: ["At least one line is required"]})
    try:
        lines = json.loads(raw)
    except ValueError:
        raise ValidationError({field_name: ["Must be a JSON array"]})
    if not isinstance(lines, list) or not lines:
        raise ValidationError({field_name: ["Must be a non-empty JSON array"]})
    if not all(isinstance(line, dict) for line in lines):
        raise ValidationError({field_name: ["Every line must be an object"]})
    return lines


def line_quantity(line, field_name="quantity"):
    if line.get(field_name) is None:
        raise ValidationError({field_name: ["Quantity is required"]})
    return as_quantity(line[field_name], field_name)


def checked_specs(category: Category, specs):
    """Clean ``specs`` and validate them against the category schema."""
    if specs is not None and not isinstance(specs, dict):
        raise ValidationError({"specs": ["Specs must be an object"]})
    specs = clean_specs(specs)
    category.validate_specs(specs)
    return specs


def category_by_id(category_id):
    return current_domain.repository_for(Category).get(category_id)
