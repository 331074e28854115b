"""Depot FastAPI application.

Web server for warehouse inventory and the transaction ledger. Commands are
processed synchronously within each request.

Usage:
    uvicorn src.app:app --host 0.0.0.0 --port 8000 --reload
"""

# ---------------------------------------------------------------------------
# Domain initialization
# ---------------------------------------------------------------------------
# The domain is initialized at module level so uvicorn workers share it.
# PROTEAN_ENV controls which config overlay is applied:
#   - "test"       → in-memory database
#   - "production" → PostgreSQL
from depot.domain import depot  # noqa: E402
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from depot.utils.logging import add_context, clear_context

depot.init()

_DOMAIN_PREFIXES = ("/warehouses", "/categories", "/items", "/operations", "/transactions")


# ---------------------------------------------------------------------------
# FastAPI app
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Depot API",
    description="Warehouse inventory and transaction ledger",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def domain_context_middleware(request: Request, call_next):
    """Push the depot domain context for domain routes."""
    if request.url.path.startswith(_DOMAIN_PREFIXES):
        add_context(method=request.method, path=request.url.path)
        try:
            with depot.domain_context():
                response = await call_next(request)
        finally:
            clear_context()
        return response
    # Health check, docs, etc.
    return await call_next(request)


# ---------------------------------------------------------------------------
# Routers
# ---------------------------------------------------------------------------
from depot.api import (  # noqa: E402
    category_router,
    item_router,
    operations_router,
    register_error_handlers,
    transaction_router,
    warehouse_router,
)

app.include_router(warehouse_router)
app.include_router(category_router)
app.include_router(item_router)
app.include_router(operations_router)
app.include_router(transaction_router)
register_error_handlers(app)


# ---------------------------------------------------------------------------
# Health / root
# ---------------------------------------------------------------------------
@app.get("/health")
async def health():
    return JSONResponse(content={"status": "ok", "domain": depot.name})
