from typing import List, Optional, TYPE_CHECKING
from datetime import datetime
from decimal import Decimal

import reflex as rx
from sqlmodel import Field, Relationship
import sqlalchemy
from sqlalchemy import Numeric

from app.enums import PaymentMethodType

if TYPE_CHECKING:
    from .client import Lead
    from .inventory import Item


class Sale(rx.Model, table=True):
    """Cabecera de venta.

    El estado de pago no se persiste: se deriva de la suma de pagos.
    """

    __table_args__ = (
        sqlalchemy.CheckConstraint(
            "total_amount >= 0", name="ck_sale_total_non_negative"
        ),
    )

    timestamp: datetime = Field(
        default_factory=datetime.now,
        sa_column=sqlalchemy.Column(
            sqlalchemy.DateTime(timezone=False),
            server_default=sqlalchemy.func.now(),
            index=True,
        ),
    )
    total_amount: Decimal = Field(
        default=Decimal("0.00"),
        sa_column=sqlalchemy.Column(Numeric(10, 2), nullable=False),
    )
    payment_method: Optional[str] = Field(default=None)
    notes: str = Field(default="")

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
    lead_id: Optional[int] = Field(
        default=None, foreign_key="lead.id", index=True
    )

    lead: Optional["Lead"] = Relationship(back_populates="sales")
    lines: List["SaleLine"] = Relationship(back_populates="sale")
    payments: List["SalePayment"] = Relationship(back_populates="sale")


class SaleLine(rx.Model, table=True):
    """Detalle de venta; el precio unitario es una foto inmutable."""

    __table_args__ = (
        sqlalchemy.CheckConstraint("quantity > 0", name="ck_saleline_quantity_positive"),
        sqlalchemy.CheckConstraint(
            "returned_quantity >= 0 AND returned_quantity <= quantity",
            name="ck_saleline_returned_quantity",
        ),
    )

    quantity: int = Field(default=1, nullable=False)
    # Unidades devueltas al inventario con una liberacion manual.
    returned_quantity: int = Field(default=0, nullable=False)
    unit_price: Decimal = Field(
        default=Decimal("0.00"),
        sa_column=sqlalchemy.Column(Numeric(10, 2), nullable=False),
    )
    subtotal: Decimal = Field(
        default=Decimal("0.00"),
        sa_column=sqlalchemy.Column(Numeric(10, 2), nullable=False),
    )
    title_snapshot: str = Field(default="")

    sale_id: int = Field(foreign_key="sale.id", index=True)
    item_id: int = Field(foreign_key="item.id", index=True)
    company_id: int = Field(
        foreign_key="company.id",
        index=True,
        nullable=False,
    )

    sale: Optional["Sale"] = Relationship(back_populates="lines")
    item: Optional["Item"] = Relationship()


class SalePayment(rx.Model, table=True):
    """Abono (pago parcial o total) asociado a una venta."""

    __table_args__ = (
        sqlalchemy.CheckConstraint("amount > 0", name="ck_salepayment_amount_positive"),
    )

    sale_id: int = Field(foreign_key="sale.id", index=True)
    amount: Decimal = Field(
        default=Decimal("0.00"),
        sa_column=sqlalchemy.Column(Numeric(10, 2), nullable=False),
    )
    method_type: PaymentMethodType = Field(default=PaymentMethodType.other)
    method_label: str = Field(default="")
    created_at: datetime = Field(
        default_factory=datetime.now,
        sa_column=sqlalchemy.Column(sqlalchemy.DateTime(timezone=False)),
    )
    company_id: int = Field(
        foreign_key="company.id",
        index=True,
        nullable=False,
    )

    sale: Optional["Sale"] = Relationship(back_populates="payments")
