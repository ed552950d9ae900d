from typing import List, Optional, TYPE_CHECKING
from datetime import datetime

import reflex as rx
from sqlmodel import Field, Relationship
import sqlalchemy

if TYPE_CHECKING:
    from .inventory import Item


class Company(rx.Model, table=True):
    """Empresa (tenant)."""

    name: str = Field(nullable=False, index=True)
    slug: str = Field(nullable=False, index=True, unique=True)
    whatsapp_number: Optional[str] = Field(default=None)
    is_active: bool = Field(default=True)
    created_at: datetime = Field(
        default_factory=datetime.now,
        sa_column=sqlalchemy.Column(sqlalchemy.DateTime(timezone=False)),
    )

    # Branding de la tienda publica
    navbar_title: Optional[str] = Field(default=None)
    navbar_icon_url: Optional[str] = Field(default=None)
    store_title_1: Optional[str] = Field(default=None)
    store_title_2: Optional[str] = Field(default=None)
    store_subtitle: Optional[str] = Field(default=None)

    branches: List["Branch"] = Relationship(back_populates="company")


class Branch(rx.Model, table=True):
    """Almacen (sub-ubicacion de la empresa)."""

    __table_args__ = (
        sqlalchemy.UniqueConstraint(
            "company_id",
            "name",
            name="uq_branch_company_name",
        ),
    )

    company_id: int = Field(
        foreign_key="company.id",
        index=True,
        nullable=False,
    )
    name: str = Field(nullable=False, index=True)
    address: str = Field(default="", nullable=False)
    is_active: bool = Field(default=True)

    company: "Company" = Relationship(back_populates="branches")
    items: List["Item"] = Relationship(back_populates="branch")
