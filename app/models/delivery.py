from typing import Optional
from datetime import date, datetime, time

import reflex as rx
from sqlmodel import Field
import sqlalchemy

from app.enums import DeliveryKind, DeliveryStatus


class Delivery(rx.Model, table=True):
    """Agenda de entrega/recoleccion.

    Ligada a una venta pagada, o solo a un lead para entregas externas.
    """

    __table_args__ = (
        sqlalchemy.Index("ix_delivery_company_date", "company_id", "scheduled_date"),
    )

    kind: DeliveryKind = Field(nullable=False, index=True)
    status: DeliveryStatus = Field(default=DeliveryStatus.scheduled, index=True)
    scheduled_date: date = Field(nullable=False)
    scheduled_time: Optional[time] = Field(default=None)
    address: Optional[str] = Field(default=None)
    region: Optional[str] = Field(default=None)
    carrier_name: Optional[str] = Field(default=None)
    tracking_code: Optional[str] = Field(default=None)
    logistics_notes: Optional[str] = Field(default=None)

    company_id: int = Field(
        foreign_key="company.id",
        index=True,
        nullable=False,
    )
    branch_id: int = Field(
        foreign_key="branch.id",
        index=True,
        nullable=False,
    )
    sale_id: Optional[int] = Field(
        default=None, foreign_key="sale.id", index=True
    )
    lead_id: Optional[int] = Field(
        default=None, foreign_key="lead.id", index=True
    )

    created_at: datetime = Field(
        default_factory=datetime.now,
        sa_column=sqlalchemy.Column(sqlalchemy.DateTime(timezone=False)),
    )
    delivered_at: Optional[datetime] = Field(
        default=None,
        sa_column=sqlalchemy.Column(sqlalchemy.DateTime(timezone=False)),
    )
