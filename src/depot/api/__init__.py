from depot.api.errors import register_error_handlers
from depot.api.routes import (
    category_router,
    item_router,
    operations_router,
    transaction_router,
    warehouse_router,
)

__all__ = [
    "category_router",
    "item_router",
    "operations_router",
    "register_error_handlers",
    "transaction_router",
    "warehouse_router",
]
