"""Agenda de entregas.

Estados::

    scheduled -> in_transit -> delivered
    scheduled / in_transit -> cancelled

Una venta solo se agenda cuando esta pagada y admite una sola entrega
activa (no cancelada) a la vez.
"""
from __future__ import annotations

import datetime
from typing import Optional

from sqlmodel import Session, select

from app.enums import DeliveryKind, DeliveryStatus, PaymentStatus
from app.exceptions import AlreadyScheduled, InvalidState, NotFound, ValidationError
from app.models import Delivery, Lead, Sale
from app.schemas.delivery_schemas import DeliveryCreateDTO, DeliveryFilterDTO
from app.services.company_service import CompanyService
from app.services.sale_service import SaleService
from app.utils.logger import get_logger
from app.utils.sanitization import sanitize_address, sanitize_optional_text
from app.utils.tenant import Identity, fetch_in_scope

logger = get_logger("DeliveryService")


def _validate_fields(data: DeliveryCreateDTO) -> dict:
    fields = {
        "address": sanitize_address(data.address),
        "region": sanitize_optional_text(data.region, 100),
        "carrier_name": sanitize_optional_text(data.carrier_name, 100),
        "tracking_code": sanitize_optional_text(data.tracking_code, 100),
        "logistics_notes": sanitize_optional_text(data.logistics_notes, 250),
    }
    if data.kind == DeliveryKind.home_delivery and not fields["address"]:
        raise ValidationError("La entrega a domicilio requiere direccion.")
    if data.kind == DeliveryKind.carrier_shipment:
        if not fields["region"]:
            raise ValidationError("El envio por agencia requiere region de destino.")
        if not fields["carrier_name"]:
            raise ValidationError("El envio por agencia requiere el nombre de la agencia.")
    return fields


class DeliveryService:
    @staticmethod
    def get_delivery(
        session: Session, identity: Identity, delivery_id: int, for_update: bool = False
    ) -> Delivery:
        return fetch_in_scope(session, identity, Delivery, delivery_id, for_update=for_update)

    @staticmethod
    def schedule(session: Session, identity: Identity, data: DeliveryCreateDTO) -> Delivery:
        if data.sale_id is None and data.lead_id is None:
            raise ValidationError("La entrega requiere una venta o un cliente.")
        fields = _validate_fields(data)

        sale: Optional[Sale] = None
        lead_id = data.lead_id
        if data.sale_id is not None:
            sale = fetch_in_scope(session, identity, Sale, data.sale_id, for_update=True)
            if SaleService.payment_status(session, sale) != PaymentStatus.paid:
                logger.warning("Venta %s sin pagar: entrega rechazada", sale.id)
                raise InvalidState("La venta debe estar pagada para agendar la entrega.")
            active = SaleService.active_delivery(session, sale.id)
            if active is not None:
                raise AlreadyScheduled(
                    f"La venta #{sale.id} ya tiene la entrega #{active.id} agendada."
                )
            if lead_id is None:
                lead_id = sale.lead_id
            elif sale.lead_id is not None and sale.lead_id != lead_id:
                raise ValidationError("El cliente no corresponde a la venta.")
            branch_id = sale.branch_id
        else:
            branch_id = CompanyService.resolve_branch(session, identity, data.branch_id).id

        if lead_id is not None:
            fetch_in_scope(session, identity, Lead, lead_id)

        delivery = Delivery(
            kind=data.kind,
            status=DeliveryStatus.scheduled,
            scheduled_date=data.scheduled_date,
            scheduled_time=data.scheduled_time,
            company_id=identity.company_id,
            branch_id=branch_id,
            sale_id=sale.id if sale is not None else None,
            lead_id=lead_id,
            **fields,
        )
        session.add(delivery)
        session.flush()
        logger.info(
            "Entrega %s agendada (%s) para %s",
            delivery.id,
            delivery.kind.value,
            delivery.scheduled_date,
        )
        return delivery

    @staticmethod
    def dispatch(session: Session, identity: Identity, delivery_id: int) -> Delivery:
        delivery = DeliveryService.get_delivery(session, identity, delivery_id, for_update=True)
        if delivery.status == DeliveryStatus.in_transit:
            return delivery
        if delivery.status != DeliveryStatus.scheduled:
            raise InvalidState(
                f"La entrega #{delivery.id} esta {delivery.status.value} y no puede despacharse."
            )
        delivery.status = DeliveryStatus.in_transit
        session.add(delivery)
        logger.info("Entrega %s en transito", delivery.id)
        return delivery

    @staticmethod
    def complete(session: Session, identity: Identity, delivery_id: int) -> Delivery:
        """Marca la entrega como ``delivered``; repetir no cambia nada."""
        try:
            delivery = DeliveryService.get_delivery(
                session, identity, delivery_id, for_update=True
            )
        except NotFound:
            raise InvalidState(f"No existe la entrega #{delivery_id}.")
        if delivery.status == DeliveryStatus.delivered:
            return delivery
        if delivery.status == DeliveryStatus.cancelled:
            raise InvalidState(f"La entrega #{delivery.id} fue cancelada.")
        delivery.status = DeliveryStatus.delivered
        delivery.delivered_at = datetime.datetime.now()
        session.add(delivery)
        logger.info("Entrega %s completada", delivery.id)
        return delivery

    @staticmethod
    def cancel(session: Session, identity: Identity, delivery_id: int) -> Delivery:
        delivery = DeliveryService.get_delivery(session, identity, delivery_id, for_update=True)
        if delivery.status == DeliveryStatus.cancelled:
            return delivery
        if delivery.status == DeliveryStatus.delivered:
            raise InvalidState(f"La entrega #{delivery.id} ya fue entregada.")
        delivery.status = DeliveryStatus.cancelled
        session.add(delivery)
        logger.info("Entrega %s cancelada", delivery.id)
        return delivery

    @staticmethod
    def list_deliveries(
        session: Session, identity: Identity, filters: DeliveryFilterDTO | None = None
    ) -> list[Delivery]:
        filters = filters or DeliveryFilterDTO()
        query = select(Delivery).where(Delivery.company_id == identity.company_id)
        if not identity.sees_all_branches:
            query = query.where(Delivery.branch_id.in_(identity.branch_ids or [0]))
        if filters.branch_id is not None:
            query = query.where(Delivery.branch_id == filters.branch_id)
        if filters.scheduled_date is not None:
            query = query.where(Delivery.scheduled_date == filters.scheduled_date)
        if filters.kind is not None:
            query = query.where(Delivery.kind == filters.kind)
        if filters.status is not None:
            query = query.where(Delivery.status == filters.status)
        query = query.order_by(
            Delivery.scheduled_date, Delivery.scheduled_time, Delivery.id
        )
        return list(session.exec(query).all())
