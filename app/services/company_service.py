"""Servicio de empresas (tenants), almacenes y categorias.

La empresa se crea una sola vez en el onboarding junto con su almacen
inicial; nunca se elimina fisicamente (flag ``is_active``). Los almacenes
tambien se desactivan en lugar de borrarse.
"""
from __future__ import annotations

import re
import uuid
from typing import Any

from sqlalchemy import func
from sqlmodel import Session, select

from app.constants import DEFAULT_BRANCH_NAME
from app.exceptions import InvalidState, NotFound, ScopeViolation, ValidationError
from app.models import Branch, Category, Company, Item, PurchaseLine
from app.schemas.company_schemas import (
    BranchDTO,
    BranchUpdateDTO,
    CategoryDTO,
    CompanySetupDTO,
    CompanyUpdateDTO,
)
from app.utils.logger import get_logger
from app.utils.sanitization import (
    sanitize_name,
    sanitize_optional_text,
    sanitize_phone,
    sanitize_text,
)
from app.utils.tenant import Identity, fetch_in_scope

logger = get_logger("CompanyService")


def _slugify(name: str) -> str:
    slug = re.sub(r"[^a-z0-9]+", "-", name.strip().lower()).strip("-")
    return slug or "tienda"


class CompanyService:
    @staticmethod
    def setup_company(session: Session, data: CompanySetupDTO) -> tuple[Company, Branch]:
        name = sanitize_name(data.name)
        if not name:
            raise ValidationError("El nombre de la empresa es obligatorio.")

        slug = _slugify(name)
        taken = session.exec(select(Company).where(Company.slug == slug)).first()
        if taken is not None:
            slug = f"{slug}-{uuid.uuid4().hex[:6]}"

        company = Company(
            name=name,
            slug=slug,
            whatsapp_number=sanitize_phone(data.whatsapp_number) or None,
            navbar_title=sanitize_optional_text(data.navbar_title, 100),
            navbar_icon_url=sanitize_optional_text(data.navbar_icon_url, 500),
            store_title_1=sanitize_optional_text(data.store_title_1, 100),
            store_title_2=sanitize_optional_text(data.store_title_2, 100),
            store_subtitle=sanitize_optional_text(data.store_subtitle, 200),
        )
        session.add(company)
        session.flush()

        branch = Branch(
            company_id=company.id,
            name=sanitize_name(data.initial_branch_name) or DEFAULT_BRANCH_NAME,
        )
        session.add(branch)
        session.flush()
        logger.info("Empresa %s creada con almacen %s", company.id, branch.id)
        return company, branch

    @staticmethod
    def get_company(session: Session, identity: Identity) -> Company:
        company = session.get(Company, identity.company_id)
        if company is None:
            raise NotFound("Empresa no encontrada.")
        return company

    @staticmethod
    def update_company(
        session: Session, identity: Identity, data: CompanyUpdateDTO
    ) -> Company:
        company = CompanyService.get_company(session, identity)
        changes = data.model_dump(exclude_unset=True)
        if "name" in changes:
            name = sanitize_name(changes["name"])
            if not name:
                raise ValidationError("El nombre de la empresa es obligatorio.")
            company.name = name
        if "whatsapp_number" in changes:
            company.whatsapp_number = sanitize_phone(changes["whatsapp_number"]) or None
        for key in (
            "navbar_title",
            "navbar_icon_url",
            "store_title_1",
            "store_title_2",
            "store_subtitle",
        ):
            if key in changes:
                setattr(company, key, sanitize_optional_text(changes[key], 500))
        session.add(company)
        return company

    # ------------------------------------------------------------------
    # Almacenes
    # ------------------------------------------------------------------

    @staticmethod
    def list_branches(
        session: Session, identity: Identity, include_inactive: bool = False
    ) -> list[Branch]:
        query = select(Branch).where(Branch.company_id == identity.company_id)
        if not include_inactive:
            query = query.where(Branch.is_active == True)  # noqa: E712
        if not identity.sees_all_branches:
            query = query.where(Branch.id.in_(identity.branch_ids or [0]))
        return list(session.exec(query.order_by(Branch.id)).all())

    @staticmethod
    def create_branch(session: Session, identity: Identity, data: BranchDTO) -> Branch:
        if not identity.sees_all_branches:
            raise ScopeViolation("Solo el administrador puede crear almacenes.")
        name = sanitize_name(data.name)
        if not name:
            raise ValidationError("El nombre del almacen es obligatorio.")
        branch = Branch(
            company_id=identity.company_id,
            name=name,
            address=sanitize_text(data.address, 300),
        )
        session.add(branch)
        session.flush()
        return branch

    @staticmethod
    def update_branch(
        session: Session, identity: Identity, branch_id: int, data: BranchUpdateDTO
    ) -> Branch:
        branch = fetch_in_scope(session, identity, Branch, branch_id)
        changes = data.model_dump(exclude_unset=True)
        if "name" in changes:
            name = sanitize_name(changes["name"])
            if not name:
                raise ValidationError("El nombre del almacen es obligatorio.")
            branch.name = name
        if "address" in changes:
            branch.address = sanitize_text(changes["address"], 300)
        if "is_active" in changes and changes["is_active"] is not None:
            branch.is_active = bool(changes["is_active"])
        session.add(branch)
        return branch

    @staticmethod
    def resolve_branch(
        session: Session, identity: Identity, branch_id: Any = None
    ) -> Branch:
        """Almacen destino de una operacion: el indicado o el primero visible."""
        if branch_id is not None:
            branch = fetch_in_scope(session, identity, Branch, branch_id)
        else:
            branches = CompanyService.list_branches(session, identity)
            if not branches:
                raise ValidationError("La empresa no tiene almacenes activos.")
            branch = branches[0]
        if not identity.can_access_branch(branch.id):
            raise ScopeViolation(f"Almacen {branch.id} fuera del alcance.")
        if not branch.is_active:
            raise InvalidState(f"El almacen {branch.name} esta inactivo.")
        return branch

    # ------------------------------------------------------------------
    # Categorias
    # ------------------------------------------------------------------

    @staticmethod
    def list_categories(session: Session, identity: Identity) -> list[Category]:
        return list(
            session.exec(
                select(Category)
                .where(Category.company_id == identity.company_id)
                .order_by(Category.name)
            ).all()
        )

    @staticmethod
    def create_category(
        session: Session, identity: Identity, data: CategoryDTO
    ) -> Category:
        name = sanitize_name(data.name)
        if not name:
            raise ValidationError("El nombre de la categoria es obligatorio.")
        existing = session.exec(
            select(Category)
            .where(Category.company_id == identity.company_id)
            .where(func.lower(Category.name) == name.lower())
        ).first()
        if existing is not None:
            raise ValidationError(f"La categoria {name} ya existe.")
        category = Category(name=name, company_id=identity.company_id)
        session.add(category)
        session.flush()
        return category

    @staticmethod
    def delete_category(session: Session, identity: Identity, category_id: int) -> None:
        category = fetch_in_scope(session, identity, Category, category_id)
        in_items = session.exec(
            select(func.count(Item.id)).where(Item.category_id == category.id)
        ).one()
        in_purchases = session.exec(
            select(func.count(PurchaseLine.id)).where(
                PurchaseLine.category_id == category.id
            )
        ).one()
        if in_items or in_purchases:
            raise InvalidState(
                f"La categoria {category.name} tiene items o compras asociadas."
            )
        session.delete(category)
