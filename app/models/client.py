from typing import List, Optional, TYPE_CHECKING
from datetime import datetime

import reflex as rx
from sqlmodel import Field, Relationship
import sqlalchemy

from app.enums import LeadStatus

if TYPE_CHECKING:
    from .sales import Sale


class Lead(rx.Model, table=True):
    """Cliente potencial; pasa a convertido con su primera venta."""

    __table_args__ = (
        sqlalchemy.Index("ix_lead_company_created", "company_id", "created_at"),
    )

    first_name: str = Field(index=True, nullable=False)
    last_name: str = Field(default="", nullable=False)
    second_last_name: Optional[str] = Field(default=None)
    phone: str = Field(index=True, nullable=False)
    status: LeadStatus = Field(default=LeadStatus.pending, index=True)
    company_id: int = Field(
        foreign_key="company.id",
        index=True,
        nullable=False,
    )
    # Venta que convirtio al lead; una sola vez.
    converted_sale_id: Optional[int] = Field(default=None, index=True)
    converted_at: Optional[datetime] = Field(
        default=None,
        sa_column=sqlalchemy.Column(sqlalchemy.DateTime(timezone=False)),
    )
    created_at: datetime = Field(
        default_factory=datetime.now,
        sa_column=sqlalchemy.Column(sqlalchemy.DateTime(timezone=False)),
    )

    sales: List["Sale"] = Relationship(back_populates="lead")

    @property
    def full_name(self) -> str:
        parts = [self.first_name, self.last_name, self.second_last_name or ""]
        return " ".join(part.strip() for part in parts if part and part.strip())
