from typing import List, Optional, TYPE_CHECKING
from datetime import datetime
from decimal import Decimal

import reflex as rx
from sqlmodel import Field, Relationship
import sqlalchemy
from sqlalchemy import Numeric

from app.enums import ItemStatus

if TYPE_CHECKING:
    from .company import Branch
    from .purchases import PurchaseLine


class Category(rx.Model, table=True):
    """Categoria de items por empresa."""

    __table_args__ = (
        sqlalchemy.UniqueConstraint(
            "company_id",
            "name",
            name="uq_category_company_name",
        ),
    )

    name: str = Field(nullable=False, index=True)
    company_id: int = Field(
        foreign_key="company.id",
        index=True,
        nullable=False,
    )

    items: List["Item"] = Relationship(back_populates="category")


class Item(rx.Model, table=True):
    """Item de inventario con su estado de disponibilidad.

    ``sold`` implica ``stock == 0`` y ``available`` implica ``stock > 0``;
    ``pending`` marca un item con todo su stock reservado.
    """

    __table_args__ = (
        sqlalchemy.CheckConstraint("stock >= 0", name="ck_item_stock_non_negative"),
        sqlalchemy.Index("ix_item_company_status", "company_id", "status"),
    )

    title: str = Field(nullable=False, index=True)
    description: Optional[str] = Field(default=None)
    sale_price: Optional[Decimal] = Field(
        default=None,
        sa_column=sqlalchemy.Column(Numeric(10, 2), nullable=True),
    )
    stock: int = Field(default=1, nullable=False)
    status: ItemStatus = Field(default=ItemStatus.available, index=True)
    variant: Optional[str] = Field(default=None)
    photo_url: str = Field(default="")
    is_hidden: bool = Field(default=False, index=True)
    created_at: datetime = Field(
        default_factory=datetime.now,
        sa_column=sqlalchemy.Column(
            sqlalchemy.DateTime(timezone=False), index=True
        ),
    )

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
    category_id: Optional[int] = Field(
        default=None, foreign_key="category.id", index=True
    )
    purchase_line_id: Optional[int] = Field(
        default=None, foreign_key="purchaseline.id", index=True
    )

    branch: Optional["Branch"] = Relationship(back_populates="items")
    category: Optional["Category"] = Relationship(back_populates="items")
    purchase_line: Optional["PurchaseLine"] = Relationship(back_populates="items")
