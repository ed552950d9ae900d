from __future__ import annotations

from datetime import date, time
from typing import Optional

from app.enums import DeliveryKind, DeliveryStatus
from app.schemas.sale_schemas import BaseSchema


class DeliveryCreateDTO(BaseSchema):
    sale_id: Optional[int] = None
    lead_id: Optional[int] = None
    branch_id: Optional[int] = None
    kind: DeliveryKind
    scheduled_date: date
    scheduled_time: Optional[time] = None
    address: Optional[str] = None
    region: Optional[str] = None
    carrier_name: Optional[str] = None
    tracking_code: Optional[str] = None
    logistics_notes: Optional[str] = None


class DeliveryFilterDTO(BaseSchema):
    scheduled_date: Optional[date] = None
    kind: Optional[DeliveryKind] = None
    status: Optional[DeliveryStatus] = None
    branch_id: Optional[int] = None
