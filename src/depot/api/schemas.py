"""Pydantic request/response schemas for the depot API.

These are external contracts, kept separate from the Protean commands they
are translated into.
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Registries
# ---------------------------------------------------------------------------
class WarehouseRequest(BaseModel):
    name: str = Field(min_length=1, max_length=255)


class WarehouseIdResponse(BaseModel):
    warehouse_id: str


class WarehouseResponse(BaseModel):
    id: str
    name: str


class AttributeSchema(BaseModel):
    name: str
    options: list[str] = Field(default_factory=list)


class CreateCategoryRequest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    attributes: list[AttributeSchema] = Field(default_factory=list)


class UpdateCategoryRequest(BaseModel):
    name: str | None = Field(default=None, max_length=100)
    attributes: list[AttributeSchema] | None = None


class CategoryIdResponse(BaseModel):
    category_id: str


class CategoryResponse(BaseModel):
    id: str
    name: str
    attributes: list[AttributeSchema]


class ItemResponse(BaseModel):
    id: str
    warehouse_id: str
    category_id: str
    category_name: str | None = None
    specs: dict[str, str]
    quantity: int
    updated_at: datetime | None = None


class MovementResponse(BaseModel):
    event_type: str
    description: str
    transaction_id: str | None = None
    quantity_change: int
    previous_level: int
    new_level: int
    occurred_at: datetime


class StatusResponse(BaseModel):
    status: str = "ok"


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------
class InboundLine(BaseModel):
    item_id: str | None = None
    category_id: str | None = None
    specs: dict[str, str] = Field(default_factory=dict)
    quantity: int = Field(ge=1)


class ItemQuantity(BaseModel):
    item_id: str
    quantity: int = Field(ge=1)


class ItemCount(BaseModel):
    item_id: str
    quantity: int = Field(ge=0)


class ImportRow(BaseModel):
    category_name: str
    specs: dict[str, str] = Field(default_factory=dict)
    quantity: int = Field(ge=1)


class OperationMeta(BaseModel):
    user: str = Field(min_length=1, max_length=100)
    notes: str | None = None
    date: datetime | None = None


class InboundRequest(OperationMeta):
    warehouse_id: str
    items: list[InboundLine] = Field(min_length=1)


class ImportRequest(OperationMeta):
    warehouse_id: str
    rows: list[ImportRow] = Field(min_length=1)


class OutboundRequest(OperationMeta):
    warehouse_id: str
    items: list[ItemQuantity] = Field(min_length=1)


class AdjustRequest(OperationMeta):
    warehouse_id: str
    edits: list[ItemCount] = Field(default_factory=list)
    deletions: list[str] = Field(default_factory=list)


class TransferRequest(OperationMeta):
    source_warehouse_id: str
    target_warehouse_id: str
    items: list[ItemQuantity] = Field(min_length=1)


class RevertRequest(BaseModel):
    user: str = Field(min_length=1, max_length=100)
    notes: str | None = None


class TransactionIdResponse(BaseModel):
    transaction_id: str


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------
class SnapshotLineResponse(BaseModel):
    category_name: str
    specs: dict[str, str]
    quantity: int


class TransactionResponse(BaseModel):
    id: str
    type: str
    warehouse_id: str
    related_warehouse_id: str | None = None
    item_id: str | None = None
    item_ids: list[str]
    item_name_snapshot: str
    snapshot_type: str
    items: list[SnapshotLineResponse]
    quantity: int
    date: datetime
    user: str
    notes: str | None = None
    reverts_transaction_id: str | None = None
    counterpart_id: str | None = None
    reverted: bool = False
