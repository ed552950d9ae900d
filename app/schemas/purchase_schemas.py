from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import Field

from app.schemas.sale_schemas import BaseSchema


class SupplierDTO(BaseSchema):
    name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None


class SupplierUpdateDTO(BaseSchema):
    name: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    notes: Optional[str] = None
    is_active: Optional[bool] = None


class PurchaseLineDTO(BaseSchema):
    category_id: int
    quantity: int = Field(gt=0)
    unit_cost: Decimal = Field(ge=0)


class PurchaseBatchCreateDTO(BaseSchema):
    supplier_id: int
    branch_id: Optional[int] = None
    purchase_date: Optional[datetime] = None
    payment_method: Optional[str] = None
    notes: str = ""
    lines: list[PurchaseLineDTO] = Field(default_factory=list)


class QuickPurchaseDTO(BaseSchema):
    supplier_id: int
    category_id: int
    quantity: int = Field(gt=0)
    unit_cost: Decimal = Field(ge=0)
    branch_id: Optional[int] = None
    payment_method: Optional[str] = None


class AssignItemsDTO(BaseSchema):
    item_ids: list[int] = Field(default_factory=list)
