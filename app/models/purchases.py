from typing import List, Optional, TYPE_CHECKING
from datetime import datetime
from decimal import Decimal

import reflex as rx
from sqlmodel import Field, Relationship
import sqlalchemy
from sqlalchemy import Numeric

from app.enums import PurchaseStatus

if TYPE_CHECKING:
    from .inventory import Item


class Supplier(rx.Model, table=True):
    """Proveedor de compras."""

    __table_args__ = (
        sqlalchemy.UniqueConstraint(
            "company_id",
            "name",
            name="uq_supplier_company_name",
        ),
    )

    company_id: int = Field(
        foreign_key="company.id",
        index=True,
        nullable=False,
    )
    name: str = Field(nullable=False, index=True)
    phone: Optional[str] = Field(default=None)
    email: Optional[str] = Field(default=None)
    address: Optional[str] = Field(default=None)
    notes: Optional[str] = Field(default=None)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(
        default_factory=datetime.now,
        sa_column=sqlalchemy.Column(sqlalchemy.DateTime(timezone=False)),
    )

    batches: List["PurchaseBatch"] = Relationship(back_populates="supplier")


class PurchaseBatch(rx.Model, table=True):
    """Lote de compra a proveedor con el desglose esperado por categoria."""

    __table_args__ = (
        sqlalchemy.UniqueConstraint(
            "company_id",
            "code",
            name="uq_purchasebatch_company_code",
        ),
    )

    code: str = Field(nullable=False, index=True)
    purchase_date: datetime = Field(
        default_factory=datetime.now,
        sa_column=sqlalchemy.Column(
            sqlalchemy.DateTime(timezone=False),
            nullable=False,
        ),
    )
    payment_method: Optional[str] = Field(default=None)
    total_amount: Decimal = Field(
        default=Decimal("0.00"),
        sa_column=sqlalchemy.Column(Numeric(10, 2), nullable=False),
    )
    status: PurchaseStatus = Field(default=PurchaseStatus.pending, index=True)
    notes: str = Field(default="", nullable=False)

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
    supplier_id: int = Field(foreign_key="supplier.id", index=True)
    created_at: datetime = Field(
        default_factory=datetime.now,
        sa_column=sqlalchemy.Column(sqlalchemy.DateTime(timezone=False)),
    )

    supplier: "Supplier" = Relationship(back_populates="batches")
    lines: List["PurchaseLine"] = Relationship(back_populates="batch")


class PurchaseLine(rx.Model, table=True):
    """Linea de compra: categoria, cantidad esperada y avance de items creados."""

    __table_args__ = (
        sqlalchemy.CheckConstraint("quantity > 0", name="ck_purchaseline_quantity_positive"),
        sqlalchemy.CheckConstraint(
            "items_created >= 0 AND items_created <= quantity",
            name="ck_purchaseline_items_created_bounds",
        ),
    )

    batch_id: int = Field(foreign_key="purchasebatch.id", index=True)
    category_id: int = Field(foreign_key="category.id", index=True)
    company_id: int = Field(
        foreign_key="company.id",
        index=True,
        nullable=False,
    )
    quantity: int = Field(nullable=False)
    items_created: int = Field(default=0, nullable=False)
    unit_cost: Decimal = Field(
        default=Decimal("0.00"),
        sa_column=sqlalchemy.Column(Numeric(10, 2), nullable=False),
    )
    subtotal: Decimal = Field(
        default=Decimal("0.00"),
        sa_column=sqlalchemy.Column(Numeric(10, 2), nullable=False),
    )

    batch: "PurchaseBatch" = Relationship(back_populates="lines")
    items: List["Item"] = Relationship(back_populates="purchase_line")
