"""Onboarding de empresa, almacenes y categorias."""
import pytest
from sqlmodel import Session

from app.constants import DEFAULT_BRANCH_NAME
from app.exceptions import InvalidState, ScopeViolation, ValidationError
from app.schemas.company_schemas import (
    BranchDTO,
    BranchUpdateDTO,
    CategoryDTO,
    CompanySetupDTO,
    CompanyUpdateDTO,
)
from app.services.company_service import CompanyService


class TestSetupCompany:
    def test_creates_default_branch(self, engine):
        with Session(engine) as session:
            company, branch = CompanyService.setup_company(
                session, CompanySetupDTO(name="Moda Lima")
            )
            assert company.slug == "moda-lima"
            assert branch.company_id == company.id
            assert branch.name == DEFAULT_BRANCH_NAME

    def test_slug_collision_gets_suffix(self, engine):
        with Session(engine) as session:
            first, _ = CompanyService.setup_company(session, CompanySetupDTO(name="Moda Lima"))
            second, _ = CompanyService.setup_company(session, CompanySetupDTO(name="Moda  Lima"))
            assert first.slug != second.slug
            assert second.slug.startswith("moda-lima-")

    def test_name_is_required(self, engine):
        with Session(engine) as session:
            with pytest.raises(ValidationError):
                CompanyService.setup_company(session, CompanySetupDTO(name="   "))


def test_update_company_branding(session, identity):
    company = CompanyService.update_company(
        session, identity, CompanyUpdateDTO(navbar_title="Norte Store", store_subtitle="Ropa")
    )
    assert company.navbar_title == "Norte Store"
    assert company.name == "Tienda Norte"
    with pytest.raises(ValidationError):
        CompanyService.update_company(session, identity, CompanyUpdateDTO(name=""))


def test_get_company_uses_identity(session_for, identity, other_identity, tenants):
    own = CompanyService.get_company(session_for(identity), identity)
    other = CompanyService.get_company(session_for(other_identity), other_identity)
    assert own.id == tenants.company.id
    assert other.id == tenants.other_company.id


def test_seller_sees_only_assigned_branches(session_for, identity, seller_identity, tenants):
    owner_branches = CompanyService.list_branches(session_for(identity), identity)
    assert [b.id for b in owner_branches] == [tenants.branch.id, tenants.second_branch.id]

    seller_branches = CompanyService.list_branches(session_for(seller_identity), seller_identity)
    assert [b.id for b in seller_branches] == [tenants.branch.id]


def test_seller_cannot_create_branch(session_for, seller_identity):
    with pytest.raises(ScopeViolation):
        CompanyService.create_branch(
            session_for(seller_identity), seller_identity, BranchDTO(name="Otro")
        )


def test_resolve_branch_rules(session, identity, tenants):
    assert CompanyService.resolve_branch(session, identity).id == tenants.branch.id

    CompanyService.update_branch(
        session, identity, tenants.second_branch.id, BranchUpdateDTO(is_active=False)
    )
    session.commit()
    with pytest.raises(InvalidState):
        CompanyService.resolve_branch(session, identity, tenants.second_branch.id)
    with pytest.raises(ScopeViolation):
        CompanyService.resolve_branch(session, identity, tenants.other_branch.id)


def test_resolve_branch_for_seller(session_for, seller_identity, tenants):
    session = session_for(seller_identity)
    with pytest.raises(ScopeViolation):
        CompanyService.resolve_branch(session, seller_identity, tenants.second_branch.id)


def test_category_names_are_unique_per_company(session_for, identity, other_identity):
    session = session_for(identity)
    with pytest.raises(ValidationError):
        CompanyService.create_category(session, identity, CategoryDTO(name="polos"))

    other = CompanyService.create_category(
        session_for(other_identity), other_identity, CategoryDTO(name="Polos")
    )
    assert other.id is not None


def test_delete_category_in_use(session, identity, tenants, make_item):
    make_item(session, identity, category_id=tenants.category.id)
    with pytest.raises(InvalidState):
        CompanyService.delete_category(session, identity, tenants.category.id)


def test_delete_unused_category(session, identity):
    category = CompanyService.create_category(session, identity, CategoryDTO(name="Gorras"))
    session.commit()

    CompanyService.delete_category(session, identity, category.id)
    session.commit()

    assert [c.name for c in CompanyService.list_categories(session, identity)] == ["Polos"]
