from __future__ import annotations

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from app.constants import DEFAULT_LIST_LIMIT, MAX_LIST_LIMIT


class BaseSchema(BaseModel):
    model_config = ConfigDict(extra="ignore")

    def to_dict(self) -> dict:
        return self.model_dump()


class SaleLineDTO(BaseSchema):
    item_id: int
    quantity: int = Field(default=1, gt=0)


class PaymentDTO(BaseSchema):
    amount: Decimal
    method: str = ""


class LeadInfoDTO(BaseSchema):
    first_name: str
    last_name: str = ""
    second_last_name: Optional[str] = None
    phone: str


class SaleCreateDTO(BaseSchema):
    branch_id: Optional[int] = None
    lead_id: Optional[int] = None
    lead: Optional[LeadInfoDTO] = None
    lines: list[SaleLineDTO] = Field(default_factory=list)
    initial_payment: Optional[PaymentDTO] = None
    payment_method: Optional[str] = None
    notes: str = ""


class SaleFilterDTO(BaseSchema):
    search: Optional[str] = None
    lead_id: Optional[int] = None
    branch_id: Optional[int] = None
    category_id: Optional[int] = None
    skip: int = Field(default=0, ge=0)
    limit: int = Field(default=DEFAULT_LIST_LIMIT, gt=0, le=MAX_LIST_LIMIT)
