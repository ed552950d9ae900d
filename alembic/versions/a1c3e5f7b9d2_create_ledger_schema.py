"""create ledger schema

ID de revision: a1c3e5f7b9d2
Revisa:
Fecha de creacion: 2026-10-19 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
import sqlmodel


# identificadores de revision, usados por Alembic.
revision: str = "a1c3e5f7b9d2"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ITEM_STATUS = sa.Enum("available", "pending", "sold", name="itemstatus")
LEAD_STATUS = sa.Enum("pending", "converted", name="leadstatus")
PURCHASE_STATUS = sa.Enum("pending", "processing", "completed", name="purchasestatus")
PAYMENT_METHOD = sa.Enum(
    "cash", "card", "transfer", "wallet", "other", name="paymentmethodtype"
)
DELIVERY_KIND = sa.Enum(
    "home_delivery", "store_pickup", "carrier_shipment", name="deliverykind"
)
DELIVERY_STATUS = sa.Enum(
    "scheduled", "in_transit", "delivered", "cancelled", name="deliverystatus"
)


def upgrade() -> None:
    """Actualizar esquema."""
    op.create_table(
        "company",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("slug", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("whatsapp_number", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("navbar_title", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("navbar_icon_url", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("store_title_1", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("store_title_2", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("store_subtitle", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_company_name"), "company", ["name"], unique=False)
    op.create_index(op.f("ix_company_slug"), "company", ["slug"], unique=True)

    op.create_table(
        "branch",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("name", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("address", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.ForeignKeyConstraint(["company_id"], ["company.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("company_id", "name", name="uq_branch_company_name"),
    )
    op.create_index(op.f("ix_branch_company_id"), "branch", ["company_id"], unique=False)
    op.create_index(op.f("ix_branch_name"), "branch", ["name"], unique=False)

    op.create_table(
        "category",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(["company_id"], ["company.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("company_id", "name", name="uq_category_company_name"),
    )
    op.create_index(op.f("ix_category_company_id"), "category", ["company_id"], unique=False)
    op.create_index(op.f("ix_category_name"), "category", ["name"], unique=False)

    op.create_table(
        "supplier",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("name", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("phone", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("email", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("address", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("notes", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["company_id"], ["company.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("company_id", "name", name="uq_supplier_company_name"),
    )
    op.create_index(op.f("ix_supplier_company_id"), "supplier", ["company_id"], unique=False)
    op.create_index(op.f("ix_supplier_name"), "supplier", ["name"], unique=False)

    op.create_table(
        "purchasebatch",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("code", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("purchase_date", sa.DateTime(), nullable=False),
        sa.Column("payment_method", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("total_amount", sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column("status", PURCHASE_STATUS, nullable=False),
        sa.Column("notes", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("branch_id", sa.Integer(), nullable=False),
        sa.Column("supplier_id", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["branch_id"], ["branch.id"]),
        sa.ForeignKeyConstraint(["company_id"], ["company.id"]),
        sa.ForeignKeyConstraint(["supplier_id"], ["supplier.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("company_id", "code", name="uq_purchasebatch_company_code"),
    )
    for column in ("code", "status", "company_id", "branch_id", "supplier_id"):
        op.create_index(
            op.f(f"ix_purchasebatch_{column}"), "purchasebatch", [column], unique=False
        )

    op.create_table(
        "purchaseline",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("batch_id", sa.Integer(), nullable=False),
        sa.Column("category_id", sa.Integer(), nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("items_created", sa.Integer(), nullable=False),
        sa.Column("unit_cost", sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column("subtotal", sa.Numeric(precision=10, scale=2), nullable=False),
        sa.CheckConstraint("quantity > 0", name="ck_purchaseline_quantity_positive"),
        sa.CheckConstraint(
            "items_created >= 0 AND items_created <= quantity",
            name="ck_purchaseline_items_created_bounds",
        ),
        sa.ForeignKeyConstraint(["batch_id"], ["purchasebatch.id"]),
        sa.ForeignKeyConstraint(["category_id"], ["category.id"]),
        sa.ForeignKeyConstraint(["company_id"], ["company.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    for column in ("batch_id", "category_id", "company_id"):
        op.create_index(
            op.f(f"ix_purchaseline_{column}"), "purchaseline", [column], unique=False
        )

    op.create_table(
        "item",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("title", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("description", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("sale_price", sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column("stock", sa.Integer(), nullable=False),
        sa.Column("status", ITEM_STATUS, nullable=False),
        sa.Column("variant", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("photo_url", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("is_hidden", sa.Boolean(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("branch_id", sa.Integer(), nullable=False),
        sa.Column("category_id", sa.Integer(), nullable=True),
        sa.Column("purchase_line_id", sa.Integer(), nullable=True),
        sa.CheckConstraint("stock >= 0", name="ck_item_stock_non_negative"),
        sa.ForeignKeyConstraint(["branch_id"], ["branch.id"]),
        sa.ForeignKeyConstraint(["category_id"], ["category.id"]),
        sa.ForeignKeyConstraint(["company_id"], ["company.id"]),
        sa.ForeignKeyConstraint(["purchase_line_id"], ["purchaseline.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    for column in (
        "title",
        "status",
        "is_hidden",
        "created_at",
        "company_id",
        "branch_id",
        "category_id",
        "purchase_line_id",
    ):
        op.create_index(op.f(f"ix_item_{column}"), "item", [column], unique=False)
    op.create_index("ix_item_company_status", "item", ["company_id", "status"], unique=False)

    op.create_table(
        "lead",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("first_name", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("last_name", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("second_last_name", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("phone", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("status", LEAD_STATUS, nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("converted_sale_id", sa.Integer(), nullable=True),
        sa.Column("converted_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["company_id"], ["company.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    for column in ("first_name", "phone", "status", "company_id", "converted_sale_id"):
        op.create_index(op.f(f"ix_lead_{column}"), "lead", [column], unique=False)
    op.create_index(
        "ix_lead_company_created", "lead", ["company_id", "created_at"], unique=False
    )

    op.create_table(
        "sale",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column(
            "timestamp", sa.DateTime(), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=True
        ),
        sa.Column("total_amount", sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column("payment_method", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("notes", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("branch_id", sa.Integer(), nullable=False),
        sa.Column("lead_id", sa.Integer(), nullable=True),
        sa.CheckConstraint("total_amount >= 0", name="ck_sale_total_non_negative"),
        sa.ForeignKeyConstraint(["branch_id"], ["branch.id"]),
        sa.ForeignKeyConstraint(["company_id"], ["company.id"]),
        sa.ForeignKeyConstraint(["lead_id"], ["lead.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    for column in ("timestamp", "company_id", "branch_id", "lead_id"):
        op.create_index(op.f(f"ix_sale_{column}"), "sale", [column], unique=False)

    op.create_table(
        "saleline",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("returned_quantity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("unit_price", sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column("subtotal", sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column("title_snapshot", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("sale_id", sa.Integer(), nullable=False),
        sa.Column("item_id", sa.Integer(), nullable=False),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.CheckConstraint("quantity > 0", name="ck_saleline_quantity_positive"),
        sa.CheckConstraint(
            "returned_quantity >= 0 AND returned_quantity <= quantity",
            name="ck_saleline_returned_quantity",
        ),
        sa.ForeignKeyConstraint(["company_id"], ["company.id"]),
        sa.ForeignKeyConstraint(["item_id"], ["item.id"]),
        sa.ForeignKeyConstraint(["sale_id"], ["sale.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    for column in ("sale_id", "item_id", "company_id"):
        op.create_index(op.f(f"ix_saleline_{column}"), "saleline", [column], unique=False)

    op.create_table(
        "salepayment",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("sale_id", sa.Integer(), nullable=False),
        sa.Column("amount", sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column("method_type", PAYMENT_METHOD, nullable=False),
        sa.Column("method_label", sqlmodel.sql.sqltypes.AutoString(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.CheckConstraint("amount > 0", name="ck_salepayment_amount_positive"),
        sa.ForeignKeyConstraint(["company_id"], ["company.id"]),
        sa.ForeignKeyConstraint(["sale_id"], ["sale.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    for column in ("sale_id", "company_id"):
        op.create_index(
            op.f(f"ix_salepayment_{column}"), "salepayment", [column], unique=False
        )

    op.create_table(
        "delivery",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("kind", DELIVERY_KIND, nullable=False),
        sa.Column("status", DELIVERY_STATUS, nullable=False),
        sa.Column("scheduled_date", sa.Date(), nullable=False),
        sa.Column("scheduled_time", sa.Time(), nullable=True),
        sa.Column("address", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("region", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("carrier_name", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("tracking_code", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("logistics_notes", sqlmodel.sql.sqltypes.AutoString(), nullable=True),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("branch_id", sa.Integer(), nullable=False),
        sa.Column("sale_id", sa.Integer(), nullable=True),
        sa.Column("lead_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=True),
        sa.Column("delivered_at", sa.DateTime(), nullable=True),
        sa.ForeignKeyConstraint(["branch_id"], ["branch.id"]),
        sa.ForeignKeyConstraint(["company_id"], ["company.id"]),
        sa.ForeignKeyConstraint(["lead_id"], ["lead.id"]),
        sa.ForeignKeyConstraint(["sale_id"], ["sale.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    for column in ("kind", "status", "company_id", "branch_id", "sale_id", "lead_id"):
        op.create_index(op.f(f"ix_delivery_{column}"), "delivery", [column], unique=False)
    op.create_index(
        "ix_delivery_company_date", "delivery", ["company_id", "scheduled_date"], unique=False
    )


def downgrade() -> None:
    """Revertir esquema."""
    for table in (
        "delivery",
        "salepayment",
        "saleline",
        "sale",
        "lead",
        "item",
        "purchaseline",
        "purchasebatch",
        "supplier",
        "category",
        "branch",
        "company",
    ):
        op.drop_table(table)
    for enum_type in (
        DELIVERY_STATUS,
        DELIVERY_KIND,
        PAYMENT_METHOD,
        PURCHASE_STATUS,
        LEAD_STATUS,
        ITEM_STATUS,
    ):
        enum_type.drop(op.get_bind(), checkfirst=True)
