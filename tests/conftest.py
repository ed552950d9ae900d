from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine

import app.models  # noqa: F401
from app.schemas.company_schemas import BranchDTO, CategoryDTO, CompanySetupDTO
from app.schemas.inventory_schemas import ItemCreateDTO
from app.schemas.sale_schemas import LeadInfoDTO
from app.services.company_service import CompanyService
from app.services.inventory_service import InventoryService
from app.services.lead_service import LeadService
from app.utils.db import prepare_engine
from app.utils.tenant import Identity, bind_session_tenant


def _build_engine(url: str, **kwargs):
    engine = create_engine(url, **kwargs)
    prepare_engine(engine)
    SQLModel.metadata.create_all(engine)
    return engine


@pytest.fixture
def engine():
    engine = _build_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    yield engine
    engine.dispose()


@pytest.fixture
def file_engine(tmp_path):
    """Base en archivo: varias conexiones reales contra la misma fila."""
    engine = _build_engine(f"sqlite:///{tmp_path / 'ledger.db'}")
    yield engine
    engine.dispose()


def _seed(engine) -> SimpleNamespace:
    with Session(engine, expire_on_commit=False) as session:
        company, branch = CompanyService.setup_company(
            session, CompanySetupDTO(name="Tienda Norte", whatsapp_number="+51 999 111 222")
        )
        other_company, other_branch = CompanyService.setup_company(
            session, CompanySetupDTO(name="Tienda Sur")
        )
        owner = Identity.build(company.id)
        bind_session_tenant(session, owner)
        second_branch = CompanyService.create_branch(
            session, owner, BranchDTO(name="Almacen Centro")
        )
        category = CompanyService.create_category(session, owner, CategoryDTO(name="Polos"))
        session.commit()
    return SimpleNamespace(
        company=company,
        branch=branch,
        second_branch=second_branch,
        category=category,
        other_company=other_company,
        other_branch=other_branch,
    )


@pytest.fixture
def tenants(engine):
    return _seed(engine)


@pytest.fixture
def identity(tenants):
    return Identity.build(tenants.company.id, "owner")


@pytest.fixture
def other_identity(tenants):
    return Identity.build(tenants.other_company.id, "owner")


@pytest.fixture
def seller_identity(tenants):
    return Identity.build(tenants.company.id, "vendedor", [tenants.branch.id])


@pytest.fixture
def session_for(engine):
    opened = []

    def _factory(identity: Identity) -> Session:
        session = Session(engine, expire_on_commit=False)
        bind_session_tenant(session, identity)
        opened.append(session)
        return session

    yield _factory
    for session in opened:
        session.close()


@pytest.fixture
def session(session_for, identity):
    return session_for(identity)


@pytest.fixture
def make_item(tenants):
    def _factory(
        session: Session,
        identity: Identity,
        title: str = "Polo basico",
        price=Decimal("50.00"),
        stock: int = 1,
        branch_id=None,
        category_id=None,
    ):
        item = InventoryService.create_item(
            session,
            identity,
            ItemCreateDTO(
                title=title,
                price=price,
                stock=stock,
                branch_id=branch_id,
                category_id=category_id,
            ),
        )
        session.commit()
        return item

    return _factory


@pytest.fixture
def make_lead():
    def _factory(session: Session, identity: Identity, phone: str = "999 888 777", name="Ana"):
        lead = LeadService.create_lead(
            session,
            identity,
            LeadInfoDTO(first_name=name, last_name="Torres", phone=phone),
        )
        session.commit()
        return lead

    return _factory


@pytest.fixture
def file_tenants(file_engine):
    return _seed(file_engine)
