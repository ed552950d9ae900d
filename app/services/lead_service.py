from __future__ import annotations

import datetime
from typing import Optional

from sqlalchemy import func
from sqlmodel import Session, select

from app.enums import LeadStatus
from app.exceptions import AlreadyConverted, ValidationError
from app.models import Lead, Sale
from app.schemas.sale_schemas import LeadInfoDTO
from app.utils.logger import get_logger
from app.utils.sanitization import digits_only, sanitize_name, sanitize_phone, sanitize_text
from app.utils.tenant import Identity, fetch_in_scope

logger = get_logger("LeadService")


class LeadService:
    @staticmethod
    def create_lead(session: Session, identity: Identity, data: LeadInfoDTO) -> Lead:
        first_name = sanitize_name(data.first_name)
        phone = sanitize_phone(data.phone)
        if not first_name:
            raise ValidationError("El nombre del cliente es obligatorio.")
        if not digits_only(phone):
            raise ValidationError("El celular del cliente es obligatorio.")
        lead = Lead(
            first_name=first_name,
            last_name=sanitize_name(data.last_name),
            second_last_name=sanitize_name(data.second_last_name) or None,
            phone=phone,
            status=LeadStatus.pending,
            company_id=identity.company_id,
        )
        session.add(lead)
        session.flush()
        logger.info("Lead %s registrado para empresa %s", lead.id, identity.company_id)
        return lead

    @staticmethod
    def find_by_phone(session: Session, identity: Identity, phone: str) -> Optional[Lead]:
        digits = digits_only(phone)
        if not digits:
            return None
        candidates = session.exec(
            select(Lead)
            .where(Lead.company_id == identity.company_id)
            .order_by(Lead.created_at, Lead.id)
        ).all()
        for lead in candidates:
            if digits_only(lead.phone) == digits:
                return lead
        return None

    @staticmethod
    def get_or_create(session: Session, identity: Identity, data: LeadInfoDTO) -> Lead:
        """Un cliente recurrente se reutiliza por su celular."""
        existing = LeadService.find_by_phone(session, identity, data.phone)
        if existing is not None:
            return existing
        return LeadService.create_lead(session, identity, data)

    @staticmethod
    def list_leads(
        session: Session,
        identity: Identity,
        search: Optional[str] = None,
        status: Optional[LeadStatus] = None,
    ) -> list[Lead]:
        """Leads de la empresa, los mas recientes primero.

        Con ``search`` filtra sin distinguir mayusculas por nombre, apellidos
        y los digitos del celular.
        """
        query = select(Lead).where(Lead.company_id == identity.company_id)
        if status is not None:
            query = query.where(Lead.status == status)
        query = query.order_by(Lead.created_at.desc(), Lead.id.desc())
        leads = list(session.exec(query).all())

        term = sanitize_text(search, 100).lower()
        if not term:
            return leads
        term_digits = digits_only(term)
        matches = []
        for lead in leads:
            name_parts = " ".join(
                part for part in (lead.first_name, lead.last_name, lead.second_last_name) if part
            ).lower()
            if term in name_parts:
                matches.append(lead)
            elif term_digits and term_digits in digits_only(lead.phone):
                matches.append(lead)
        return matches

    @staticmethod
    def list_pending(session: Session, identity: Identity) -> list[Lead]:
        return LeadService.list_leads(session, identity, status=LeadStatus.pending)

    @staticmethod
    def count_pending(session: Session, identity: Identity) -> int:
        return session.exec(
            select(func.count(Lead.id))
            .where(Lead.company_id == identity.company_id)
            .where(Lead.status == LeadStatus.pending)
        ).one()

    @staticmethod
    def convert(
        session: Session, identity: Identity, lead_id: int, sale_id: int
    ) -> Lead:
        """Marca el lead como convertido por ``sale_id`` (una sola vez).

        Repetir con la misma venta no hace nada; con otra venta falla.
        """
        lead = fetch_in_scope(session, identity, Lead, lead_id, for_update=True)
        sale = fetch_in_scope(session, identity, Sale, sale_id)
        if sale.lead_id is not None and sale.lead_id != lead.id:
            raise ValidationError("La venta pertenece a otro cliente.")

        if lead.status == LeadStatus.converted:
            if lead.converted_sale_id == sale.id:
                return lead
            logger.warning(
                "Lead %s ya convertido por venta %s; rechazada venta %s",
                lead.id,
                lead.converted_sale_id,
                sale.id,
            )
            raise AlreadyConverted(
                f"El cliente ya fue convertido con la venta #{lead.converted_sale_id}."
            )

        lead.status = LeadStatus.converted
        lead.converted_sale_id = sale.id
        lead.converted_at = datetime.datetime.now()
        session.add(lead)
        if sale.lead_id is None:
            sale.lead_id = lead.id
            session.add(sale)
        logger.info("Lead %s convertido con venta %s", lead.id, sale.id)
        return lead

    @staticmethod
    def revert_conversion(session: Session, sale: Sale) -> None:
        """Vuelve a ``pending`` el lead convertido por una venta eliminada."""
        if sale.lead_id is None:
            return
        lead = session.get(Lead, sale.lead_id)
        if lead is None or lead.converted_sale_id != sale.id:
            return
        lead.status = LeadStatus.pending
        lead.converted_sale_id = None
        lead.converted_at = None
        session.add(lead)
