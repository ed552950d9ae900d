"""Servicio de inventario: ciclo de vida de disponibilidad de items.

Estados::

    available --reserve (stock llega a 0)--> pending --venta--> sold
    pending / sold --release (devolucion manual)--> available

El stock es la unidad de verdad; el estado es un indicador grueso de
"totalmente reservado". La reserva es un UPDATE condicional
(decrementar-si-alcanza), nunca un leer-y-escribir.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional

from sqlalchemy import func, or_, update
from sqlmodel import Session, select

from app.constants import DESCRIPTION_MAX_LENGTH, TITLE_MAX_LENGTH
from app.enums import ItemStatus
from app.exceptions import (
    InsufficientStock,
    InvalidAmount,
    InvalidState,
    ValidationError,
)
from app.models import Category, Item, SaleLine
from app.schemas.inventory_schemas import ItemCreateDTO, ItemFilterDTO, ItemUpdateDTO
from app.services.company_service import CompanyService
from app.utils.calculations import round_money
from app.utils.logger import get_logger
from app.utils.sanitization import sanitize_optional_text, sanitize_text
from app.utils.tenant import Identity, fetch_in_scope

logger = get_logger("InventoryService")


def derive_item_status(stock: int, current: ItemStatus) -> ItemStatus:
    """Estado coherente con el stock tras una devolucion o reposicion."""
    if stock > 0:
        return ItemStatus.available
    if current == ItemStatus.sold:
        return ItemStatus.sold
    return ItemStatus.pending


def _validate_quantity(quantity: Any) -> int:
    """Entero positivo; acepta texto numerico ("2") y rechaza booleanos."""
    if isinstance(quantity, bool):
        raise ValidationError(f"Cantidad invalida: {quantity!r}.")
    try:
        value = int(quantity.strip()) if isinstance(quantity, str) else int(quantity)
    except (TypeError, ValueError):
        raise ValidationError(f"Cantidad invalida: {quantity!r}.")
    if value <= 0 or (not isinstance(quantity, str) and value != quantity):
        raise ValidationError(f"Cantidad invalida: {quantity!r}.")
    return value


class InventoryService:
    @staticmethod
    def get_item(
        session: Session,
        identity: Identity,
        item_id: int,
        for_update: bool = False,
    ) -> Item:
        return fetch_in_scope(session, identity, Item, item_id, for_update=for_update)

    @staticmethod
    def check_category(
        session: Session, identity: Identity, category_id: Optional[int]
    ) -> Optional[int]:
        if category_id is None:
            return None
        return fetch_in_scope(session, identity, Category, category_id).id

    @staticmethod
    def create_item(
        session: Session,
        identity: Identity,
        data: ItemCreateDTO,
        purchase_line_id: Optional[int] = None,
        category_id: Optional[int] = None,
        branch_id: Optional[int] = None,
    ) -> Item:
        """Crea un item nuevo en estado ``available``.

        ``category_id`` y ``branch_id`` explicitos (desde una linea de
        compra) tienen prioridad sobre los del payload.
        """
        title = sanitize_text(data.title, TITLE_MAX_LENGTH)
        if not title:
            raise ValidationError("El titulo del item es obligatorio.")
        stock = _validate_quantity(data.stock)
        price = None
        if data.price is not None:
            price = round_money(data.price)
            if price <= 0:
                raise InvalidAmount("El precio debe ser mayor a cero.")

        branch = CompanyService.resolve_branch(
            session, identity, branch_id if branch_id is not None else data.branch_id
        )
        resolved_category = InventoryService.check_category(
            session,
            identity,
            category_id if category_id is not None else data.category_id,
        )

        item = Item(
            title=title,
            description=sanitize_optional_text(data.description, DESCRIPTION_MAX_LENGTH),
            sale_price=price,
            stock=stock,
            status=ItemStatus.available,
            variant=sanitize_optional_text(data.variant, 50),
            photo_url=sanitize_text(data.photo_url, 500),
            company_id=identity.company_id,
            branch_id=branch.id,
            category_id=resolved_category,
            purchase_line_id=purchase_line_id,
        )
        session.add(item)
        session.flush()
        logger.info("Item %s creado en almacen %s (stock %s)", item.id, branch.id, stock)
        return item

    @staticmethod
    def update_item(
        session: Session, identity: Identity, item_id: int, data: ItemUpdateDTO
    ) -> Item:
        item = InventoryService.get_item(session, identity, item_id)
        changes = data.model_dump(exclude_unset=True)
        if "title" in changes:
            title = sanitize_text(changes["title"], TITLE_MAX_LENGTH)
            if not title:
                raise ValidationError("El titulo del item es obligatorio.")
            item.title = title
        if "description" in changes:
            item.description = sanitize_optional_text(
                changes["description"], DESCRIPTION_MAX_LENGTH
            )
        if "photo_url" in changes:
            item.photo_url = sanitize_text(changes["photo_url"], 500)
        if "variant" in changes:
            item.variant = sanitize_optional_text(changes["variant"], 50)
        if "category_id" in changes:
            item.category_id = InventoryService.check_category(
                session, identity, changes["category_id"]
            )
        if changes.get("is_hidden") is not None:
            item.is_hidden = bool(changes["is_hidden"])
        session.add(item)
        return item

    @staticmethod
    def update_price(
        session: Session, identity: Identity, item_id: int, price: Any
    ) -> Item:
        item = InventoryService.get_item(session, identity, item_id, for_update=True)
        if item.status == ItemStatus.sold:
            raise InvalidState("El precio de un item vendido no se puede modificar.")
        new_price = round_money(price)
        if new_price <= 0:
            raise InvalidAmount("El precio debe ser mayor a cero.")
        item.sale_price = new_price
        session.add(item)
        return item

    @staticmethod
    def update_stock(
        session: Session, identity: Identity, item_id: int, stock: Any
    ) -> Item:
        """Ajuste manual de stock; reabre un item ``pending`` si repone unidades."""
        item = InventoryService.get_item(session, identity, item_id, for_update=True)
        if item.status == ItemStatus.sold:
            raise InvalidState("El stock de un item vendido no se puede modificar.")
        new_stock = _validate_quantity(stock)
        item.stock = new_stock
        item.status = derive_item_status(new_stock, item.status)
        session.add(item)
        return item

    @staticmethod
    def reserve(
        session: Session, identity: Identity, item_id: int, quantity: Any
    ) -> Item:
        """Reserva ``quantity`` unidades con un decremento condicional."""
        qty = _validate_quantity(quantity)
        item = InventoryService.get_item(session, identity, item_id)

        result = session.execute(
            update(Item)
            .where(Item.id == item.id)
            .where(Item.company_id == identity.company_id)
            .where(Item.status != ItemStatus.sold)
            .where(Item.stock >= qty)
            .values(stock=Item.stock - qty)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            session.refresh(item)
            logger.warning(
                "Reserva rechazada item %s: pedido %s, stock %s",
                item.id,
                qty,
                item.stock,
            )
            raise InsufficientStock(
                f"Stock insuficiente para {item.title} (pedido {qty})."
            )

        # Fila ya bloqueada por el UPDATE anterior dentro de la transaccion.
        session.execute(
            update(Item)
            .where(Item.id == item.id)
            .where(Item.stock == 0)
            .where(Item.status == ItemStatus.available)
            .values(status=ItemStatus.pending)
            .execution_options(synchronize_session=False)
        )
        session.refresh(item)
        logger.info(
            "Item %s reservado x%s (stock %s, estado %s)",
            item.id,
            qty,
            item.stock,
            item.status.value,
        )
        return item

    @staticmethod
    def mark_sold(session: Session, item: Item) -> Item:
        """``pending -> sold`` para un item totalmente reservado."""
        if item.status == ItemStatus.sold:
            return item
        if item.status != ItemStatus.pending or item.stock != 0:
            raise InvalidState(f"El item {item.title} no esta totalmente reservado.")
        item.status = ItemStatus.sold
        session.add(item)
        return item

    @staticmethod
    def restore_stock(session: Session, item: Item, quantity: int) -> Item:
        """Devuelve unidades al item y recalcula el estado."""
        qty = _validate_quantity(quantity)
        session.execute(
            update(Item)
            .where(Item.id == item.id)
            .values(stock=Item.stock + qty, status=ItemStatus.available)
            .execution_options(synchronize_session=False)
        )
        session.refresh(item)
        return item

    @staticmethod
    def release(
        session: Session, identity: Identity, item_id: int, quantity: Any
    ) -> Item:
        """Reversion manual ``pending/sold -> available`` (devoluciones parciales).

        En un item vendido las unidades se descuentan de sus lineas de venta,
        empezando por la mas reciente; al eliminar esas ventas solo vuelve
        al stock lo que sigue pendiente de devolver.
        """
        qty = _validate_quantity(quantity)
        item = InventoryService.get_item(session, identity, item_id, for_update=True)
        if item.status == ItemStatus.available:
            raise InvalidState(f"El item {item.title} ya esta disponible.")
        if item.status == ItemStatus.sold:
            InventoryService._return_sold_units(session, item, qty)
        InventoryService.restore_stock(session, item, qty)
        logger.info("Item %s liberado x%s (stock %s)", item.id, qty, item.stock)
        return item

    @staticmethod
    def _return_sold_units(session: Session, item: Item, qty: int) -> None:
        lines = session.exec(
            select(SaleLine)
            .where(SaleLine.item_id == item.id)
            .where(SaleLine.returned_quantity < SaleLine.quantity)
            .order_by(SaleLine.id.desc())
            .with_for_update()
        ).all()
        outstanding = sum(line.quantity - line.returned_quantity for line in lines)
        if qty > outstanding:
            raise InvalidState(
                f"No se pueden devolver {qty} unidades de {item.title} "
                f"(vendidas sin devolver: {outstanding})."
            )
        remaining = qty
        for line in lines:
            if remaining == 0:
                break
            taken = min(remaining, line.quantity - line.returned_quantity)
            line.returned_quantity += taken
            session.add(line)
            remaining -= taken

    @staticmethod
    def list_items(
        session: Session, identity: Identity, filters: ItemFilterDTO | None = None
    ) -> list[Item]:
        filters = filters or ItemFilterDTO()
        query = select(Item).where(Item.company_id == identity.company_id)
        if not identity.sees_all_branches:
            query = query.where(Item.branch_id.in_(identity.branch_ids or [0]))
        if filters.branch_id is not None:
            query = query.where(Item.branch_id == filters.branch_id)
        if filters.status is not None:
            query = query.where(Item.status == filters.status)
        if filters.category_id is not None:
            query = query.where(Item.category_id == filters.category_id)
        if not filters.include_hidden:
            query = query.where(Item.is_hidden == False)  # noqa: E712
        term = sanitize_text(filters.search, 100).lower()
        if term:
            like = f"%{term}%"
            query = query.where(
                or_(
                    func.lower(Item.title).like(like),
                    func.lower(func.coalesce(Item.description, "")).like(like),
                )
            )
        query = query.order_by(Item.created_at.desc(), Item.id.desc())
        return list(session.exec(query.offset(filters.skip).limit(filters.limit)).all())

    @staticmethod
    def list_unlinked_items(session: Session, identity: Identity) -> list[Item]:
        """Items creados fuera de una compra (aun sin linea de compra)."""
        query = (
            select(Item)
            .where(Item.company_id == identity.company_id)
            .where(Item.purchase_line_id == None)  # noqa: E711
            .where(Item.is_hidden == False)  # noqa: E712
        )
        if not identity.sees_all_branches:
            query = query.where(Item.branch_id.in_(identity.branch_ids or [0]))
        return list(session.exec(query.order_by(Item.id)).all())

    @staticmethod
    def price_of(item: Item) -> Decimal:
        if item.sale_price is None:
            raise ValidationError(f"El item {item.title} no tiene precio asignado.")
        return round_money(item.sale_price)
