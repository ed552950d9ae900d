"""Compras a proveedores y avance de ingreso de items.

Cada linea de compra declara cuantos items se esperan por categoria; el
contador ``items_created`` avanza con un UPDATE condicional y nunca supera
la cantidad esperada. El estado del lote se recalcula y persiste en la
misma transaccion que mueve un contador.
"""
from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from sqlalchemy import func, update
from sqlmodel import Session, select

from app.constants import PURCHASE_CODE_DIGITS, PURCHASE_CODE_PREFIX
from app.enums import PurchaseStatus
from app.exceptions import InvalidState, LineFull, ValidationError
from app.models import Item, PurchaseBatch, PurchaseLine, Supplier
from app.schemas.inventory_schemas import ItemCreateDTO
from app.schemas.purchase_schemas import (
    PurchaseBatchCreateDTO,
    PurchaseLineDTO,
    QuickPurchaseDTO,
    SupplierDTO,
    SupplierUpdateDTO,
)
from app.services.company_service import CompanyService
from app.services.inventory_service import InventoryService
from app.utils.calculations import (
    calculate_subtotal,
    calculate_total,
    progress_percentage,
    round_money,
)
from app.utils.logger import get_logger
from app.utils.sanitization import (
    sanitize_address,
    sanitize_name,
    sanitize_notes,
    sanitize_optional_text,
    sanitize_phone,
    sanitize_text,
)
from app.utils.tenant import Identity, fetch_in_scope

logger = get_logger("PurchaseService")


def derive_batch_status(lines: Iterable[PurchaseLine]) -> PurchaseStatus:
    """``completed`` si todas las lineas estan llenas, ``processing`` con
    cualquier avance parcial y ``pending`` sin avance."""
    lines = list(lines)
    if lines and all(line.items_created == line.quantity for line in lines):
        return PurchaseStatus.completed
    if any(line.items_created > 0 for line in lines):
        return PurchaseStatus.processing
    return PurchaseStatus.pending


@dataclass
class LineProgress:
    line_id: int
    category_id: int
    quantity: int
    items_created: int
    complete: bool


@dataclass
class BatchProgress:
    batch: PurchaseBatch
    status: PurchaseStatus
    expected: int
    created: int
    percentage: float
    lines: List[LineProgress] = field(default_factory=list)


class SupplierService:
    @staticmethod
    def create_supplier(session: Session, identity: Identity, data: SupplierDTO) -> Supplier:
        name = sanitize_name(data.name)
        if not name:
            raise ValidationError("El nombre del proveedor es obligatorio.")
        existing = session.exec(
            select(Supplier)
            .where(Supplier.company_id == identity.company_id)
            .where(func.lower(Supplier.name) == name.lower())
        ).first()
        if existing is not None:
            raise ValidationError(f"El proveedor {name} ya existe.")
        supplier = Supplier(
            company_id=identity.company_id,
            name=name,
            phone=sanitize_phone(data.phone) or None,
            email=sanitize_optional_text(data.email, 120),
            address=sanitize_address(data.address),
            notes=sanitize_optional_text(data.notes, 250),
        )
        session.add(supplier)
        session.flush()
        logger.info("Proveedor %s creado", supplier.id)
        return supplier

    @staticmethod
    def list_suppliers(
        session: Session, identity: Identity, only_active: bool = True
    ) -> list[Supplier]:
        query = select(Supplier).where(Supplier.company_id == identity.company_id)
        if only_active:
            query = query.where(Supplier.is_active == True)  # noqa: E712
        return list(session.exec(query.order_by(Supplier.name)).all())

    @staticmethod
    def update_supplier(
        session: Session, identity: Identity, supplier_id: int, data: SupplierUpdateDTO
    ) -> Supplier:
        supplier = fetch_in_scope(session, identity, Supplier, supplier_id)
        changes = data.model_dump(exclude_unset=True)
        if "name" in changes:
            name = sanitize_name(changes["name"])
            if not name:
                raise ValidationError("El nombre del proveedor es obligatorio.")
            supplier.name = name
        if "phone" in changes:
            supplier.phone = sanitize_phone(changes["phone"]) or None
        if "email" in changes:
            supplier.email = sanitize_optional_text(changes["email"], 120)
        if "address" in changes:
            supplier.address = sanitize_address(changes["address"])
        if "notes" in changes:
            supplier.notes = sanitize_optional_text(changes["notes"], 250)
        if changes.get("is_active") is not None:
            supplier.is_active = bool(changes["is_active"])
        session.add(supplier)
        return supplier

    @staticmethod
    def deactivate_supplier(session: Session, identity: Identity, supplier_id: int) -> Supplier:
        supplier = fetch_in_scope(session, identity, Supplier, supplier_id)
        supplier.is_active = False
        session.add(supplier)
        return supplier


class PurchaseService:
    @staticmethod
    def _next_code(session: Session, identity: Identity) -> str:
        count = session.exec(
            select(func.count(PurchaseBatch.id)).where(
                PurchaseBatch.company_id == identity.company_id
            )
        ).one()
        seq = int(count or 0) + 1
        while True:
            code = f"{PURCHASE_CODE_PREFIX}-{identity.company_id}-{seq:0{PURCHASE_CODE_DIGITS}d}"
            taken = session.exec(
                select(PurchaseBatch.id)
                .where(PurchaseBatch.company_id == identity.company_id)
                .where(PurchaseBatch.code == code)
            ).first()
            if taken is None:
                return code
            seq += 1

    @staticmethod
    def create_batch(
        session: Session, identity: Identity, data: PurchaseBatchCreateDTO
    ) -> PurchaseBatch:
        if not data.lines:
            raise ValidationError("La compra debe tener al menos una linea.")
        supplier = fetch_in_scope(session, identity, Supplier, data.supplier_id)
        if not supplier.is_active:
            raise InvalidState(f"El proveedor {supplier.name} esta inactivo.")
        branch = CompanyService.resolve_branch(session, identity, data.branch_id)

        rows = []
        for line in data.lines:
            InventoryService.check_category(session, identity, line.category_id)
            unit_cost = round_money(line.unit_cost)
            rows.append(
                {
                    "line": line,
                    "unit_cost": unit_cost,
                    "subtotal": calculate_subtotal(line.quantity, unit_cost),
                }
            )

        batch = PurchaseBatch(
            code=PurchaseService._next_code(session, identity),
            purchase_date=data.purchase_date or datetime.datetime.now(),
            payment_method=sanitize_text(data.payment_method, 50) or None,
            total_amount=calculate_total(rows),
            status=PurchaseStatus.pending,
            notes=sanitize_notes(data.notes),
            company_id=identity.company_id,
            branch_id=branch.id,
            supplier_id=supplier.id,
        )
        session.add(batch)
        session.flush()

        for row in rows:
            session.add(
                PurchaseLine(
                    batch_id=batch.id,
                    category_id=row["line"].category_id,
                    company_id=identity.company_id,
                    quantity=row["line"].quantity,
                    items_created=0,
                    unit_cost=row["unit_cost"],
                    subtotal=row["subtotal"],
                )
            )
        session.flush()
        logger.info(
            "Compra %s (%s) registrada: %s lineas, total %s",
            batch.id,
            batch.code,
            len(rows),
            batch.total_amount,
        )
        return batch

    @staticmethod
    def create_quick_batch(
        session: Session, identity: Identity, data: QuickPurchaseDTO
    ) -> PurchaseBatch:
        """Compra rapida de una sola categoria."""
        return PurchaseService.create_batch(
            session,
            identity,
            PurchaseBatchCreateDTO(
                supplier_id=data.supplier_id,
                branch_id=data.branch_id,
                payment_method=data.payment_method,
                notes="Compra rapida",
                lines=[
                    PurchaseLineDTO(
                        category_id=data.category_id,
                        quantity=data.quantity,
                        unit_cost=data.unit_cost,
                    )
                ],
            ),
        )

    @staticmethod
    def get_batch(session: Session, identity: Identity, batch_id: int) -> PurchaseBatch:
        return fetch_in_scope(session, identity, PurchaseBatch, batch_id)

    @staticmethod
    def _lines(session: Session, batch_id: int) -> list[PurchaseLine]:
        return list(
            session.exec(
                select(PurchaseLine)
                .where(PurchaseLine.batch_id == batch_id)
                .order_by(PurchaseLine.id)
            ).all()
        )

    @staticmethod
    def _refresh_status(session: Session, batch: PurchaseBatch) -> PurchaseStatus:
        lines = PurchaseService._lines(session, batch.id)
        for line in lines:
            session.refresh(line)
        status = derive_batch_status(lines)
        if batch.status != status:
            logger.info(
                "Compra %s: %s -> %s", batch.id, batch.status.value, status.value
            )
            batch.status = status
            session.add(batch)
        return status

    @staticmethod
    def _increment_line(session: Session, line: PurchaseLine) -> None:
        result = session.execute(
            update(PurchaseLine)
            .where(PurchaseLine.id == line.id)
            .where(PurchaseLine.items_created < PurchaseLine.quantity)
            .values(items_created=PurchaseLine.items_created + 1)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            logger.warning(
                "Linea de compra %s llena (%s items)", line.id, line.quantity
            )
            raise LineFull(
                f"La linea de compra ya tiene sus {line.quantity} items registrados."
            )
        session.refresh(line)

    @staticmethod
    def record_item_created(
        session: Session,
        identity: Identity,
        batch_id: int,
        line_id: int,
        data: ItemCreateDTO,
    ) -> Item:
        """Crea un item desde una linea de compra y avanza su contador."""
        batch = fetch_in_scope(session, identity, PurchaseBatch, batch_id, for_update=True)
        line = fetch_in_scope(session, identity, PurchaseLine, line_id)
        if line.batch_id != batch.id:
            raise ValidationError("La linea no pertenece a esta compra.")

        PurchaseService._increment_line(session, line)
        item = InventoryService.create_item(
            session,
            identity,
            data,
            purchase_line_id=line.id,
            category_id=line.category_id,
            branch_id=batch.branch_id,
        )
        PurchaseService._refresh_status(session, batch)
        return item

    @staticmethod
    def assign_items(
        session: Session, identity: Identity, batch_id: int, item_ids: list[int]
    ) -> list[Item]:
        """Vincula items creados sin compra a la primera linea libre de su categoria."""
        if not item_ids:
            raise ValidationError("Seleccione al menos un item.")
        batch = fetch_in_scope(session, identity, PurchaseBatch, batch_id, for_update=True)
        lines = PurchaseService._lines(session, batch.id)

        assigned = []
        for item_id in sorted(set(item_ids)):
            item = InventoryService.get_item(session, identity, item_id, for_update=True)
            if item.purchase_line_id is not None:
                raise ValidationError(f"El item {item.title} ya pertenece a una compra.")
            candidates = [line for line in lines if line.category_id == item.category_id]
            if not candidates:
                raise ValidationError(
                    f"La compra no tiene lineas para la categoria del item {item.title}."
                )
            target: Optional[PurchaseLine] = None
            for line in candidates:
                session.refresh(line)
                if line.items_created < line.quantity:
                    target = line
                    break
            if target is None:
                target = candidates[0]
            PurchaseService._increment_line(session, target)
            item.purchase_line_id = target.id
            session.add(item)
            assigned.append(item)

        session.flush()
        PurchaseService._refresh_status(session, batch)
        logger.info("Compra %s: %s items vinculados", batch.id, len(assigned))
        return assigned

    @staticmethod
    def batch_progress(session: Session, identity: Identity, batch_id: int) -> BatchProgress:
        batch = PurchaseService.get_batch(session, identity, batch_id)
        lines = PurchaseService._lines(session, batch.id)
        expected = sum(line.quantity for line in lines)
        created = sum(line.items_created for line in lines)
        return BatchProgress(
            batch=batch,
            status=derive_batch_status(lines),
            expected=expected,
            created=created,
            percentage=progress_percentage(created, expected),
            lines=[
                LineProgress(
                    line_id=line.id,
                    category_id=line.category_id,
                    quantity=line.quantity,
                    items_created=line.items_created,
                    complete=line.items_created == line.quantity,
                )
                for line in lines
            ],
        )

    @staticmethod
    def list_batches(
        session: Session,
        identity: Identity,
        status: Optional[PurchaseStatus] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> list[PurchaseBatch]:
        query = select(PurchaseBatch).where(PurchaseBatch.company_id == identity.company_id)
        if not identity.sees_all_branches:
            query = query.where(PurchaseBatch.branch_id.in_(identity.branch_ids or [0]))
        if status is not None:
            query = query.where(PurchaseBatch.status == status)
        query = query.order_by(PurchaseBatch.purchase_date.desc(), PurchaseBatch.id.desc())
        return list(session.exec(query.offset(skip).limit(limit)).all())

    @staticmethod
    def delete_batch(session: Session, identity: Identity, batch_id: int) -> None:
        batch = fetch_in_scope(session, identity, PurchaseBatch, batch_id, for_update=True)
        lines = PurchaseService._lines(session, batch.id)
        line_ids = [line.id for line in lines]
        linked = 0
        if line_ids:
            linked = session.exec(
                select(func.count(Item.id)).where(Item.purchase_line_id.in_(line_ids))
            ).one()
        if linked or any(line.items_created for line in lines):
            raise InvalidState(f"La compra {batch.code} ya tiene items registrados.")
        for line in lines:
            session.delete(line)
        session.flush()
        session.delete(batch)
        logger.info("Compra %s eliminada", batch.code)

