from __future__ import annotations

from typing import Optional

from app.enums import LeadStatus
from app.schemas.sale_schemas import BaseSchema, LeadInfoDTO


class LeadCreateDTO(LeadInfoDTO):
    pass


class LeadConvertDTO(BaseSchema):
    sale_id: int


class LeadFilterDTO(BaseSchema):
    search: Optional[str] = None
    status: Optional[LeadStatus] = None
