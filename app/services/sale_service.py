"""Libro de ventas: ventas, lineas y abonos.

El estado de pago nunca se guarda: ``payment_status`` y el saldo se
recalculan desde la suma de abonos en cada lectura. Una venta se crea en
una sola transaccion; si cualquier linea falla, el llamador hace rollback
y ningun item queda reservado a medias.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Any, List, Optional

from sqlalchemy import func, or_
from sqlmodel import Session, select

from app.enums import DeliveryStatus, ItemStatus, LeadStatus, PaymentStatus
from app.exceptions import (
    HasPayments,
    InvalidAmount,
    Overpayment,
    ValidationError,
)
from app.models import Delivery, Item, Lead, Sale, SaleLine, SalePayment
from app.schemas.sale_schemas import PaymentDTO, SaleCreateDTO, SaleFilterDTO
from app.services.company_service import CompanyService
from app.services.inventory_service import InventoryService
from app.services.lead_service import LeadService
from app.utils.calculations import (
    calculate_outstanding,
    calculate_subtotal,
    calculate_total,
    round_money,
    sum_amounts,
)
from app.utils.logger import get_logger
from app.utils.payment import normalize_payment_method_kind, payment_method_label
from app.utils.sanitization import sanitize_notes, sanitize_text
from app.utils.tenant import Identity, fetch_in_scope

logger = get_logger("SaleService")


@dataclass
class SaleSummary:
    sale: Sale
    lines: List[SaleLine]
    payments: List[SalePayment]
    delivery: Optional[Delivery]
    total: Decimal
    paid: Decimal
    outstanding: Decimal
    payment_status: PaymentStatus


def derive_payment_status(total: Any, paid: Any) -> PaymentStatus:
    if round_money(paid) >= round_money(total):
        return PaymentStatus.paid
    return PaymentStatus.pending


class SaleService:
    @staticmethod
    def paid_total(session: Session, sale_id: int) -> Decimal:
        paid = session.exec(
            select(func.coalesce(func.sum(SalePayment.amount), 0)).where(
                SalePayment.sale_id == sale_id
            )
        ).one()
        return round_money(paid)

    @staticmethod
    def payment_status(session: Session, sale: Sale) -> PaymentStatus:
        return derive_payment_status(
            sale.total_amount, SaleService.paid_total(session, sale.id)
        )

    @staticmethod
    def active_delivery(session: Session, sale_id: int) -> Optional[Delivery]:
        return session.exec(
            select(Delivery)
            .where(Delivery.sale_id == sale_id)
            .where(Delivery.status != DeliveryStatus.cancelled)
            .order_by(Delivery.id.desc())
        ).first()

    @staticmethod
    def summarize(session: Session, sale: Sale) -> SaleSummary:
        lines = list(
            session.exec(
                select(SaleLine)
                .where(SaleLine.sale_id == sale.id)
                .order_by(SaleLine.item_id)
            ).all()
        )
        payments = list(
            session.exec(
                select(SalePayment)
                .where(SalePayment.sale_id == sale.id)
                .order_by(SalePayment.created_at, SalePayment.id)
            ).all()
        )
        total = round_money(sale.total_amount)
        paid = sum_amounts(payment.amount for payment in payments)
        return SaleSummary(
            sale=sale,
            lines=lines,
            payments=payments,
            delivery=SaleService.active_delivery(session, sale.id),
            total=total,
            paid=paid,
            outstanding=calculate_outstanding(total, paid),
            payment_status=derive_payment_status(total, paid),
        )

    @staticmethod
    def _resolve_lead(
        session: Session, identity: Identity, data: SaleCreateDTO
    ) -> Optional[Lead]:
        if data.lead_id is not None:
            return fetch_in_scope(session, identity, Lead, data.lead_id)
        if data.lead is not None:
            return LeadService.get_or_create(session, identity, data.lead)
        return None

    @staticmethod
    def _claim_item(
        session: Session,
        identity: Identity,
        branch_id: int,
        item_id: int,
        quantity: int,
    ) -> Item:
        item = InventoryService.get_item(session, identity, item_id)
        if item.branch_id != branch_id:
            raise ValidationError(
                f"El item {item.title} pertenece a otro almacen."
            )
        # Sin precio no hay venta; se valida antes de tocar el stock.
        InventoryService.price_of(item)

        # La linea reserva exactamente su cantidad dentro de esta transaccion.
        item = InventoryService.reserve(session, identity, item.id, quantity)

        if item.status == ItemStatus.pending and item.stock == 0:
            InventoryService.mark_sold(session, item)
        return item

    @staticmethod
    def _apply_payment(
        session: Session, identity: Identity, sale: Sale, payment: PaymentDTO
    ) -> SalePayment:
        try:
            amount = round_money(payment.amount)
        except ValueError:
            raise InvalidAmount(f"Monto invalido: {payment.amount!r}.")
        if amount <= 0:
            raise InvalidAmount("El monto del abono debe ser mayor a cero.")

        paid = SaleService.paid_total(session, sale.id)
        total = round_money(sale.total_amount)
        if paid + amount > total:
            logger.warning(
                "Sobrepago rechazado venta %s: pagado %s + %s > total %s",
                sale.id,
                paid,
                amount,
                total,
            )
            raise Overpayment(
                f"El abono excede el saldo pendiente ({calculate_outstanding(total, paid)})."
            )

        method = sanitize_text(payment.method, 50)
        record = SalePayment(
            sale_id=sale.id,
            amount=amount,
            method_type=normalize_payment_method_kind(method),
            method_label=method or payment_method_label(method),
            company_id=identity.company_id,
        )
        session.add(record)
        session.flush()
        logger.info("Abono %s registrado en venta %s por %s", record.id, sale.id, amount)
        return record

    @staticmethod
    def create_sale(
        session: Session, identity: Identity, data: SaleCreateDTO
    ) -> SaleSummary:
        branch = CompanyService.resolve_branch(session, identity, data.branch_id)
        lead = SaleService._resolve_lead(session, identity, data)

        if not data.lines:
            raise ValidationError("No hay items en la venta.")
        item_ids = [line.item_id for line in data.lines]
        if len(set(item_ids)) != len(item_ids):
            raise ValidationError("Un item aparece repetido en la venta.")

        # Orden estable por item para no cruzar bloqueos con otra venta.
        ordered = sorted(data.lines, key=lambda line: line.item_id)
        line_rows: list[dict[str, Any]] = []
        for line in ordered:
            item = SaleService._claim_item(
                session, identity, branch.id, line.item_id, line.quantity
            )
            unit_price = InventoryService.price_of(item)
            line_rows.append(
                {
                    "item": item,
                    "quantity": line.quantity,
                    "unit_price": unit_price,
                    "subtotal": calculate_subtotal(line.quantity, unit_price),
                }
            )

        total = calculate_total(line_rows)
        sale = Sale(
            total_amount=total,
            payment_method=sanitize_text(data.payment_method, 50) or None,
            notes=sanitize_notes(data.notes),
            company_id=identity.company_id,
            branch_id=branch.id,
            lead_id=lead.id if lead is not None else None,
        )
        session.add(sale)
        session.flush()

        for row in line_rows:
            session.add(
                SaleLine(
                    sale_id=sale.id,
                    item_id=row["item"].id,
                    quantity=row["quantity"],
                    unit_price=row["unit_price"],
                    subtotal=row["subtotal"],
                    title_snapshot=row["item"].title,
                    company_id=identity.company_id,
                )
            )
        session.flush()

        if data.initial_payment is not None:
            SaleService._apply_payment(session, identity, sale, data.initial_payment)

        if lead is not None and lead.status == LeadStatus.pending:
            LeadService.convert(session, identity, lead.id, sale.id)

        logger.info(
            "Venta %s creada en almacen %s: %s lineas, total %s",
            sale.id,
            branch.id,
            len(line_rows),
            total,
        )
        return SaleService.summarize(session, sale)

    @staticmethod
    def add_payment(
        session: Session, identity: Identity, sale_id: int, payment: PaymentDTO
    ) -> SaleSummary:
        sale = fetch_in_scope(session, identity, Sale, sale_id, for_update=True)
        SaleService._apply_payment(session, identity, sale, payment)
        return SaleService.summarize(session, sale)

    @staticmethod
    def delete_payment(
        session: Session, identity: Identity, payment_id: int
    ) -> SaleSummary:
        """Correccion de caja: elimina un abono sin condiciones."""
        payment = fetch_in_scope(session, identity, SalePayment, payment_id)
        sale = fetch_in_scope(session, identity, Sale, payment.sale_id, for_update=True)
        session.delete(payment)
        session.flush()
        logger.info("Abono %s eliminado de venta %s", payment_id, sale.id)
        return SaleService.summarize(session, sale)

    @staticmethod
    def delete_sale(session: Session, identity: Identity, sale_id: int) -> None:
        """Elimina una venta sin abonos y devuelve su stock a los items.

        Las entregas asociadas se eliminan con la venta y, si la venta
        convirtio al lead, el lead vuelve a ``pending``.
        """
        sale = fetch_in_scope(session, identity, Sale, sale_id, for_update=True)
        payments = session.exec(
            select(func.count(SalePayment.id)).where(SalePayment.sale_id == sale.id)
        ).one()
        if payments:
            logger.warning("Venta %s con %s abonos no se puede eliminar", sale.id, payments)
            raise HasPayments("La venta tiene abonos registrados y no se puede eliminar.")

        lines = session.exec(
            select(SaleLine).where(SaleLine.sale_id == sale.id).order_by(SaleLine.item_id)
        ).all()
        for line in lines:
            # Lo ya liberado manualmente no vuelve a sumarse al stock.
            outstanding = line.quantity - line.returned_quantity
            if outstanding <= 0:
                continue
            item = InventoryService.get_item(session, identity, line.item_id, for_update=True)
            InventoryService.restore_stock(session, item, outstanding)

        deliveries = session.exec(select(Delivery).where(Delivery.sale_id == sale.id)).all()
        for delivery in deliveries:
            session.delete(delivery)
        for line in lines:
            session.delete(line)
        LeadService.revert_conversion(session, sale)
        session.flush()
        session.delete(sale)
        session.flush()
        logger.info("Venta %s eliminada; %s items devueltos a stock", sale_id, len(lines))

    @staticmethod
    def get_sale_detail(session: Session, identity: Identity, sale_id: int) -> SaleSummary:
        sale = fetch_in_scope(session, identity, Sale, sale_id)
        return SaleService.summarize(session, sale)

    @staticmethod
    def list_sales(
        session: Session, identity: Identity, filters: SaleFilterDTO | None = None
    ) -> list[SaleSummary]:
        filters = filters or SaleFilterDTO()
        query = select(Sale).where(Sale.company_id == identity.company_id)
        if not identity.sees_all_branches:
            query = query.where(Sale.branch_id.in_(identity.branch_ids or [0]))
        if filters.branch_id is not None:
            query = query.where(Sale.branch_id == filters.branch_id)
        if filters.lead_id is not None:
            query = query.where(Sale.lead_id == filters.lead_id)
        if filters.category_id is not None:
            query = query.where(
                Sale.id.in_(
                    select(SaleLine.sale_id)
                    .join(Item, Item.id == SaleLine.item_id)
                    .where(Item.category_id == filters.category_id)
                )
            )
        term = sanitize_text(filters.search, 100).lower()
        if term:
            like = f"%{term}%"
            query = query.where(
                or_(
                    func.lower(Sale.notes).like(like),
                    Sale.id.in_(
                        select(SaleLine.sale_id).where(
                            func.lower(SaleLine.title_snapshot).like(like)
                        )
                    ),
                )
            )
        query = query.order_by(Sale.timestamp.desc(), Sale.id.desc())
        sales = session.exec(query.offset(filters.skip).limit(filters.limit)).all()
        return [SaleService.summarize(session, sale) for sale in sales]

    @staticmethod
    def reserve_and_checkout(
        session: Session, identity: Identity, data: SaleCreateDTO
    ) -> SaleSummary:
        """Checkout de la tienda: reserva, registra al cliente y crea la venta.

        Requiere ``lead_id`` o los datos del cliente.
        """
        if data.lead_id is None and data.lead is None:
            raise ValidationError("El checkout requiere los datos del cliente.")
        return SaleService.create_sale(session, identity, data)
