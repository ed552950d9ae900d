"""Pruebas de compras: codigos, contadores por linea y estado del lote."""
from decimal import Decimal

import pytest

from app.enums import PurchaseStatus
from app.exceptions import InvalidState, LineFull, ScopeViolation, ValidationError
from app.models import PurchaseLine
from app.schemas.company_schemas import CategoryDTO
from app.schemas.inventory_schemas import ItemCreateDTO
from app.schemas.purchase_schemas import (
    PurchaseBatchCreateDTO,
    PurchaseLineDTO,
    QuickPurchaseDTO,
    SupplierDTO,
    SupplierUpdateDTO,
)
from app.services.company_service import CompanyService
from app.services.purchase_service import (
    PurchaseService,
    SupplierService,
    derive_batch_status,
)


@pytest.fixture
def supplier(session, identity):
    supplier = SupplierService.create_supplier(session, identity, SupplierDTO(name="Textil Lima"))
    session.commit()
    return supplier


@pytest.fixture
def second_category(session, identity):
    category = CompanyService.create_category(session, identity, CategoryDTO(name="Casacas"))
    session.commit()
    return category


def _batch(session, identity, supplier, lines):
    batch = PurchaseService.create_batch(
        session,
        identity,
        PurchaseBatchCreateDTO(
            supplier_id=supplier.id,
            lines=[
                PurchaseLineDTO(category_id=category_id, quantity=quantity, unit_cost=cost)
                for category_id, quantity, cost in lines
            ],
        ),
    )
    session.commit()
    return batch


def _line_for(session, batch, category_id):
    return next(
        line for line in PurchaseService._lines(session, batch.id) if line.category_id == category_id
    )


class TestDeriveBatchStatus:
    def test_without_progress_is_pending(self):
        lines = [PurchaseLine(quantity=2, items_created=0)]
        assert derive_batch_status(lines) == PurchaseStatus.pending

    def test_partial_is_processing(self):
        lines = [
            PurchaseLine(quantity=2, items_created=2),
            PurchaseLine(quantity=3, items_created=0),
        ]
        assert derive_batch_status(lines) == PurchaseStatus.processing

    def test_all_full_is_completed(self):
        lines = [
            PurchaseLine(quantity=2, items_created=2),
            PurchaseLine(quantity=1, items_created=1),
        ]
        assert derive_batch_status(lines) == PurchaseStatus.completed

    def test_empty_batch_is_pending(self):
        assert derive_batch_status([]) == PurchaseStatus.pending


class TestSuppliers:
    def test_duplicate_name_is_rejected(self, session, identity, supplier):
        with pytest.raises(ValidationError):
            SupplierService.create_supplier(session, identity, SupplierDTO(name="TEXTIL lima"))

    def test_same_name_allowed_in_other_company(
        self, session_for, other_identity, supplier
    ):
        other_session = session_for(other_identity)
        created = SupplierService.create_supplier(
            other_session, other_identity, SupplierDTO(name="Textil Lima")
        )
        assert created.id != supplier.id

    def test_deactivate_hides_from_active_list(self, session, identity, supplier):
        SupplierService.deactivate_supplier(session, identity, supplier.id)
        session.commit()

        assert SupplierService.list_suppliers(session, identity) == []
        assert [s.id for s in SupplierService.list_suppliers(session, identity, False)] == [
            supplier.id
        ]

    def test_update_supplier(self, session, identity, supplier):
        updated = SupplierService.update_supplier(
            session, identity, supplier.id, SupplierUpdateDTO(phone="01 444 5555")
        )
        assert updated.name == "Textil Lima"
        assert updated.phone is not None

    def test_inactive_supplier_blocks_purchase(self, session, identity, tenants, supplier):
        SupplierService.deactivate_supplier(session, identity, supplier.id)
        session.commit()
        with pytest.raises(InvalidState):
            _batch(session, identity, supplier, [(tenants.category.id, 1, "10")])


def test_create_batch_totals_and_code(session, identity, tenants, supplier, second_category):
    batch = _batch(
        session,
        identity,
        supplier,
        [(tenants.category.id, 3, "12.50"), (second_category.id, 2, "40")],
    )

    assert batch.total_amount == Decimal("117.50")
    assert batch.code == f"COMP-{tenants.company.id}-00001"
    assert batch.status == PurchaseStatus.pending
    assert batch.branch_id == tenants.branch.id

    second = _batch(session, identity, supplier, [(tenants.category.id, 1, "5")])
    assert second.code == f"COMP-{tenants.company.id}-00002"


def test_create_batch_requires_lines(session, identity, supplier):
    with pytest.raises(ValidationError):
        _batch(session, identity, supplier, [])


def test_create_batch_with_foreign_category(
    session_for, identity, other_identity, tenants
):
    other_session = session_for(other_identity)
    supplier = SupplierService.create_supplier(
        other_session, other_identity, SupplierDTO(name="Ajeno")
    )
    other_session.commit()
    with pytest.raises(ScopeViolation):
        _batch(other_session, other_identity, supplier, [(tenants.category.id, 1, "5")])


def test_record_item_created_advances_line(session, identity, tenants, supplier):
    batch = _batch(session, identity, supplier, [(tenants.category.id, 2, "10")])
    line = _line_for(session, batch, tenants.category.id)

    item = PurchaseService.record_item_created(
        session, identity, batch.id, line.id, ItemCreateDTO(title="Polo 1", price="30")
    )
    session.commit()

    assert item.purchase_line_id == line.id
    assert item.category_id == tenants.category.id
    assert item.branch_id == batch.branch_id
    session.refresh(line)
    assert line.items_created == 1
    assert PurchaseService.get_batch(session, identity, batch.id).status == PurchaseStatus.processing


def test_line_never_exceeds_quantity(session, identity, tenants, supplier):
    batch = _batch(session, identity, supplier, [(tenants.category.id, 1, "10")])
    line = _line_for(session, batch, tenants.category.id)

    PurchaseService.record_item_created(
        session, identity, batch.id, line.id, ItemCreateDTO(title="Polo 1")
    )
    session.commit()
    assert PurchaseService.get_batch(session, identity, batch.id).status == PurchaseStatus.completed

    with pytest.raises(LineFull):
        PurchaseService.record_item_created(
            session, identity, batch.id, line.id, ItemCreateDTO(title="Polo 2")
        )
    session.rollback()
    session.refresh(line)
    assert line.items_created == 1


def test_line_from_other_batch_is_rejected(session, identity, tenants, supplier):
    first = _batch(session, identity, supplier, [(tenants.category.id, 1, "10")])
    second = _batch(session, identity, supplier, [(tenants.category.id, 1, "10")])
    line = _line_for(session, second, tenants.category.id)

    with pytest.raises(ValidationError):
        PurchaseService.record_item_created(
            session, identity, first.id, line.id, ItemCreateDTO(title="Polo")
        )


def test_quick_batch_has_single_line(session, identity, tenants, supplier):
    batch = PurchaseService.create_quick_batch(
        session,
        identity,
        QuickPurchaseDTO(
            supplier_id=supplier.id, category_id=tenants.category.id, quantity=4, unit_cost="5"
        ),
    )
    session.commit()

    progress = PurchaseService.batch_progress(session, identity, batch.id)
    assert len(progress.lines) == 1
    assert progress.expected == 4
    assert batch.total_amount == Decimal("20.00")


def test_assign_items_links_by_category(
    session, identity, tenants, supplier, second_category, make_item
):
    batch = _batch(
        session,
        identity,
        supplier,
        [(tenants.category.id, 1, "10"), (second_category.id, 1, "10")],
    )
    polo = make_item(session, identity, title="Polo", category_id=tenants.category.id)
    casaca = make_item(session, identity, title="Casaca", category_id=second_category.id)

    assigned = PurchaseService.assign_items(session, identity, batch.id, [casaca.id, polo.id])
    session.commit()

    assert {item.id for item in assigned} == {polo.id, casaca.id}
    assert polo.purchase_line_id == _line_for(session, batch, tenants.category.id).id
    assert casaca.purchase_line_id == _line_for(session, batch, second_category.id).id
    progress = PurchaseService.batch_progress(session, identity, batch.id)
    assert progress.status == PurchaseStatus.completed
    assert progress.percentage == 100.0


def test_assign_items_without_matching_line(
    session, identity, tenants, supplier, second_category, make_item
):
    batch = _batch(session, identity, supplier, [(tenants.category.id, 1, "10")])
    casaca = make_item(session, identity, title="Casaca", category_id=second_category.id)

    with pytest.raises(ValidationError):
        PurchaseService.assign_items(session, identity, batch.id, [casaca.id])


def test_assign_items_to_full_line(session, identity, tenants, supplier, make_item):
    batch = _batch(session, identity, supplier, [(tenants.category.id, 1, "10")])
    first = make_item(session, identity, title="Polo 1", category_id=tenants.category.id)
    second = make_item(session, identity, title="Polo 2", category_id=tenants.category.id)

    with pytest.raises(LineFull):
        PurchaseService.assign_items(session, identity, batch.id, [first.id, second.id])


def test_batch_progress_partial(session, identity, tenants, supplier):
    batch = _batch(session, identity, supplier, [(tenants.category.id, 4, "10")])
    line = _line_for(session, batch, tenants.category.id)
    PurchaseService.record_item_created(
        session, identity, batch.id, line.id, ItemCreateDTO(title="Polo")
    )
    session.commit()

    progress = PurchaseService.batch_progress(session, identity, batch.id)
    assert progress.created == 1
    assert progress.percentage == 25.0
    assert progress.lines[0].complete is False


def test_list_batches_by_status(session, identity, tenants, supplier):
    pending = _batch(session, identity, supplier, [(tenants.category.id, 2, "10")])
    active = _batch(session, identity, supplier, [(tenants.category.id, 2, "10")])
    line = _line_for(session, active, tenants.category.id)
    PurchaseService.record_item_created(
        session, identity, active.id, line.id, ItemCreateDTO(title="Polo")
    )
    session.commit()

    listed = PurchaseService.list_batches(session, identity, status=PurchaseStatus.pending)
    assert [batch.id for batch in listed] == [pending.id]


def test_delete_batch_only_without_items(session, identity, tenants, supplier):
    empty = _batch(session, identity, supplier, [(tenants.category.id, 1, "10")])
    used = _batch(session, identity, supplier, [(tenants.category.id, 1, "10")])
    line = _line_for(session, used, tenants.category.id)
    PurchaseService.record_item_created(
        session, identity, used.id, line.id, ItemCreateDTO(title="Polo")
    )
    session.commit()

    with pytest.raises(InvalidState):
        PurchaseService.delete_batch(session, identity, used.id)
    session.rollback()

    PurchaseService.delete_batch(session, identity, empty.id)
    session.commit()
    assert [batch.id for batch in PurchaseService.list_batches(session, identity)] == [used.id]
