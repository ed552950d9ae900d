from __future__ import annotations

from decimal import Decimal
from typing import Optional

from pydantic import Field

from app.constants import DEFAULT_LIST_LIMIT, MAX_LIST_LIMIT
from app.enums import ItemStatus
from app.schemas.sale_schemas import BaseSchema


class ItemCreateDTO(BaseSchema):
    title: str
    description: Optional[str] = None
    price: Optional[Decimal] = None
    stock: int = Field(default=1, gt=0)
    photo_url: str = ""
    category_id: Optional[int] = None
    branch_id: Optional[int] = None
    variant: Optional[str] = None


class ItemUpdateDTO(BaseSchema):
    title: Optional[str] = None
    description: Optional[str] = None
    photo_url: Optional[str] = None
    category_id: Optional[int] = None
    variant: Optional[str] = None
    is_hidden: Optional[bool] = None


class ItemFilterDTO(BaseSchema):
    status: Optional[ItemStatus] = None
    category_id: Optional[int] = None
    branch_id: Optional[int] = None
    search: Optional[str] = None
    include_hidden: bool = False
    skip: int = Field(default=0, ge=0)
    limit: int = Field(default=DEFAULT_LIST_LIMIT, gt=0, le=MAX_LIST_LIMIT)
