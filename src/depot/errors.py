"""Error taxonomy for inventory and ledger operations.

``ValidationError`` and ``ObjectNotFoundError`` come straight from Protean;
the classes here narrow them for the cases callers need to tell apart.
"""

from protean.exceptions import InvalidOperationError, ObjectNotFoundError, ValidationError

NotFound = ObjectNotFoundError


class InsufficientStockError(ValidationError):
    """A quantity delta would take an item's stock below zero."""


class AttributeMismatchError(ValidationError):
    """Specs reference attribute names or values outside the category schema."""


class InvalidRevertError(InvalidOperationError):
    """The transaction does not exist, is itself a revert, or was already reverted."""


__all__ = [
    "AttributeMismatchError",
    "InsufficientStockError",
    "InvalidRevertError",
    "NotFound",
    "ValidationError",
]
