"""FastAPI routes for the depot domain: registries, operations and the ledger."""

import json
from datetime import date

from fastapi import APIRouter
from protean.utils.globals import current_domain

from depot.api.schemas import (
    AdjustRequest,
    CategoryIdResponse,
    CategoryResponse,
    CreateCategoryRequest,
    ImportRequest,
    InboundRequest,
    ItemResponse,
    MovementResponse,
    OutboundRequest,
    RevertRequest,
    SnapshotLineResponse,
    StatusResponse,
    TransactionIdResponse,
    TransactionResponse,
    TransferRequest,
    UpdateCategoryRequest,
    WarehouseIdResponse,
    WarehouseRequest,
    WarehouseResponse,
)
from depot.category.category import Category
from depot.category.management import CreateCategory, DeleteCategory, UpdateCategory
from depot.ledger.history import is_reverted, list_transactions
from depot.ledger.transaction import Transaction
from depot.operations.adjust import AdjustInventory, DeleteInventoryItem
from depot.operations.inbound import ImportInbound, ReceiveInbound
from depot.operations.outbound import IssueOutbound
from depot.operations.revert import RevertTransaction
from depot.operations.transfer import TransferStock
from depot.projections.stock_movement_log import movements_for
from depot.stock.item import InventoryItem
from depot.warehouse.management import CreateWarehouse, DeleteWarehouse, RenameWarehouse
from depot.warehouse.warehouse import Warehouse

QUERY_LIMIT = 10_000


def _item_response(item, category_names):
    return ItemResponse(
        id=str(item.id),
        warehouse_id=str(item.warehouse_id),
        category_id=str(item.category_id),
        category_name=category_names.get(str(item.category_id)),
        specs=item.spec_map,
        quantity=item.quantity or 0,
        updated_at=item.updated_at,
    )


def _category_names():
    categories = current_domain.repository_for(Category)._dao.query.limit(QUERY_LIMIT).all().items
    return {str(category.id): category.name for category in categories}


def _transaction_response(transaction):
    snapshot = transaction.snapshot
    return TransactionResponse(
        id=str(transaction.id),
        type=transaction.transaction_type,
        warehouse_id=str(transaction.warehouse_id),
        related_warehouse_id=transaction.related_warehouse_id,
        item_id=transaction.item_id,
        item_ids=transaction.item_ids,
        item_name_snapshot=transaction.item_name_snapshot,
        snapshot_type=snapshot.kind,
        items=[
            SnapshotLineResponse(category_name=line.category_name, specs=line.specs, quantity=line.quantity)
            for line in snapshot.lines
        ],
        quantity=transaction.quantity,
        date=transaction.date,
        user=transaction.user,
        notes=transaction.notes,
        reverts_transaction_id=transaction.reverts_transaction_id,
        counterpart_id=transaction.counterpart_id,
        reverted=is_reverted(transaction),
    )


# ---------------------------------------------------------------------------
# Warehouse Router
# ---------------------------------------------------------------------------
warehouse_router = APIRouter(prefix="/warehouses", tags=["warehouses"])


@warehouse_router.post("", status_code=201, response_model=WarehouseIdResponse)
async def create_warehouse(body: WarehouseRequest) -> WarehouseIdResponse:
    result = current_domain.process(CreateWarehouse(name=body.name), asynchronous=False)
    return WarehouseIdResponse(warehouse_id=result)


@warehouse_router.get("", response_model=list[WarehouseResponse])
async def list_warehouses() -> list[WarehouseResponse]:
    warehouses = current_domain.repository_for(Warehouse)._dao.query.limit(QUERY_LIMIT).all().items
    return [WarehouseResponse(id=str(w.id), name=w.name) for w in sorted(warehouses, key=lambda w: w.name)]


@warehouse_router.put("/{warehouse_id}", response_model=StatusResponse)
async def rename_warehouse(warehouse_id: str, body: WarehouseRequest) -> StatusResponse:
    current_domain.process(RenameWarehouse(warehouse_id=warehouse_id, name=body.name), asynchronous=False)
    return StatusResponse()


@warehouse_router.delete("/{warehouse_id}", response_model=StatusResponse)
async def delete_warehouse(warehouse_id: str) -> StatusResponse:
    current_domain.process(DeleteWarehouse(warehouse_id=warehouse_id), asynchronous=False)
    return StatusResponse()


@warehouse_router.get("/{warehouse_id}/items", response_model=list[ItemResponse])
async def list_items(warehouse_id: str, category_id: str | None = None) -> list[ItemResponse]:
    current_domain.repository_for(Warehouse).get(warehouse_id)
    items = current_domain.repository_for(InventoryItem).for_warehouse(warehouse_id, category_id)
    names = _category_names()
    return [_item_response(item, names) for item in items]


# ---------------------------------------------------------------------------
# Category Router
# ---------------------------------------------------------------------------
category_router = APIRouter(prefix="/categories", tags=["categories"])


@category_router.post("", status_code=201, response_model=CategoryIdResponse)
async def create_category(body: CreateCategoryRequest) -> CategoryIdResponse:
    command = CreateCategory(
        name=body.name,
        attributes=json.dumps([a.model_dump() for a in body.attributes]),
    )
    result = current_domain.process(command, asynchronous=False)
    return CategoryIdResponse(category_id=result)


@category_router.get("", response_model=list[CategoryResponse])
async def list_categories() -> list[CategoryResponse]:
    categories = current_domain.repository_for(Category)._dao.query.limit(QUERY_LIMIT).all().items
    return [
        CategoryResponse(id=str(c.id), name=c.name, attributes=c.attribute_definitions)
        for c in sorted(categories, key=lambda c: c.name)
    ]


@category_router.put("/{category_id}", response_model=StatusResponse)
async def update_category(category_id: str, body: UpdateCategoryRequest) -> StatusResponse:
    attributes = None
    if body.attributes is not None:
        attributes = json.dumps([a.model_dump() for a in body.attributes])
    command = UpdateCategory(category_id=category_id, name=body.name, attributes=attributes)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@category_router.delete("/{category_id}", response_model=StatusResponse)
async def delete_category(category_id: str) -> StatusResponse:
    current_domain.process(DeleteCategory(category_id=category_id), asynchronous=False)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Item Router
# ---------------------------------------------------------------------------
item_router = APIRouter(prefix="/items", tags=["items"])


@item_router.get("/{item_id}", response_model=ItemResponse)
async def get_item(item_id: str) -> ItemResponse:
    item = current_domain.repository_for(InventoryItem).get(item_id)
    return _item_response(item, _category_names())


@item_router.get("/{item_id}/movements", response_model=list[MovementResponse])
async def item_movements(item_id: str) -> list[MovementResponse]:
    return [
        MovementResponse(
            event_type=entry.event_type,
            description=entry.description,
            transaction_id=entry.transaction_id,
            quantity_change=entry.quantity_change or 0,
            previous_level=entry.previous_level or 0,
            new_level=entry.new_level or 0,
            occurred_at=entry.occurred_at,
        )
        for entry in movements_for(item_id)
    ]


@item_router.delete("/{item_id}", response_model=TransactionIdResponse)
async def delete_item(item_id: str, user: str, notes: str | None = None) -> TransactionIdResponse:
    command = DeleteInventoryItem(item_id=item_id, user=user, notes=notes)
    result = current_domain.process(command, asynchronous=False)
    return TransactionIdResponse(transaction_id=result)


# ---------------------------------------------------------------------------
# Operations Router
# ---------------------------------------------------------------------------
operations_router = APIRouter(prefix="/operations", tags=["operations"])


@operations_router.post("/inbound", status_code=201, response_model=TransactionIdResponse)
async def receive_inbound(body: InboundRequest) -> TransactionIdResponse:
    command = ReceiveInbound(
        warehouse_id=body.warehouse_id,
        items=json.dumps([line.model_dump(exclude_none=True) for line in body.items]),
        user=body.user,
        notes=body.notes,
        date=body.date,
    )
    result = current_domain.process(command, asynchronous=False)
    return TransactionIdResponse(transaction_id=result)


@operations_router.post("/import", status_code=201, response_model=TransactionIdResponse)
async def import_inbound(body: ImportRequest) -> TransactionIdResponse:
    command = ImportInbound(
        warehouse_id=body.warehouse_id,
        rows=json.dumps([row.model_dump() for row in body.rows]),
        user=body.user,
        notes=body.notes,
        date=body.date,
    )
    result = current_domain.process(command, asynchronous=False)
    return TransactionIdResponse(transaction_id=result)


@operations_router.post("/outbound", status_code=201, response_model=TransactionIdResponse)
async def issue_outbound(body: OutboundRequest) -> TransactionIdResponse:
    command = IssueOutbound(
        warehouse_id=body.warehouse_id,
        items=json.dumps([line.model_dump() for line in body.items]),
        user=body.user,
        notes=body.notes,
        date=body.date,
    )
    result = current_domain.process(command, asynchronous=False)
    return TransactionIdResponse(transaction_id=result)


@operations_router.post("/adjust", status_code=201, response_model=TransactionIdResponse)
async def adjust_inventory(body: AdjustRequest) -> TransactionIdResponse:
    command = AdjustInventory(
        warehouse_id=body.warehouse_id,
        edits=json.dumps([edit.model_dump() for edit in body.edits]),
        deletions=json.dumps(body.deletions),
        user=body.user,
        notes=body.notes,
        date=body.date,
    )
    result = current_domain.process(command, asynchronous=False)
    return TransactionIdResponse(transaction_id=result)


@operations_router.post("/transfer", status_code=201, response_model=TransactionIdResponse)
async def transfer_stock(body: TransferRequest) -> TransactionIdResponse:
    command = TransferStock(
        source_warehouse_id=body.source_warehouse_id,
        target_warehouse_id=body.target_warehouse_id,
        items=json.dumps([line.model_dump() for line in body.items]),
        user=body.user,
        notes=body.notes,
        date=body.date,
    )
    result = current_domain.process(command, asynchronous=False)
    return TransactionIdResponse(transaction_id=result)


# ---------------------------------------------------------------------------
# Transaction Router
# ---------------------------------------------------------------------------
transaction_router = APIRouter(prefix="/transactions", tags=["transactions"])


@transaction_router.get("", response_model=list[TransactionResponse])
async def get_transactions(
    warehouse_id: str,
    kind: str | None = None,
    on_date: date | None = None,
    search: str | None = None,
) -> list[TransactionResponse]:
    records = list_transactions(warehouse_id, kind=kind, on_date=on_date, search=search)
    return [_transaction_response(record) for record in records]


@transaction_router.get("/{transaction_id}", response_model=TransactionResponse)
async def get_transaction(transaction_id: str) -> TransactionResponse:
    return _transaction_response(current_domain.repository_for(Transaction).get(transaction_id))


@transaction_router.post("/{transaction_id}/revert", status_code=201, response_model=TransactionIdResponse)
async def revert_transaction(transaction_id: str, body: RevertRequest) -> TransactionIdResponse:
    command = RevertTransaction(transaction_id=transaction_id, user=body.user, notes=body.notes)
    result = current_domain.process(command, asynchronous=False)
    return TransactionIdResponse(transaction_id=result)
