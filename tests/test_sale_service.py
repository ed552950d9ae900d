from decimal import Decimal

import pytest
from sqlalchemy import func
from sqlmodel import select

from app.enums import DeliveryKind, ItemStatus, LeadStatus, PaymentMethodType, PaymentStatus
from app.exceptions import (
    AlreadyConverted,
    HasPayments,
    InsufficientStock,
    InvalidAmount,
    InvalidState,
    Overpayment,
    ScopeViolation,
    ValidationError,
)
from app.models import Delivery, Lead, Sale, SaleLine
from app.schemas.delivery_schemas import DeliveryCreateDTO
from app.schemas.sale_schemas import (
    LeadInfoDTO,
    PaymentDTO,
    SaleCreateDTO,
    SaleFilterDTO,
    SaleLineDTO,
)
from app.services.delivery_service import DeliveryService
from app.services.inventory_service import InventoryService
from app.services.lead_service import LeadService
from app.services.sale_service import SaleService, derive_payment_status


def _count(session, model) -> int:
    return session.exec(select(func.count(model.id))).one()


def _sale(session, identity, lines, **kwargs):
    summary = SaleService.create_sale(
        session,
        identity,
        SaleCreateDTO(lines=[SaleLineDTO(item_id=i, quantity=q) for i, q in lines], **kwargs),
    )
    session.commit()
    return summary


@pytest.fixture
def two_items(session, identity, make_item):
    item_a = make_item(session, identity, title="Polo A", price=Decimal("50"), stock=1)
    item_b = make_item(session, identity, title="Polo B", price=Decimal("20"), stock=2)
    return item_a, item_b


class TestDerivePaymentStatus:
    def test_paid_when_equal(self):
        assert derive_payment_status(Decimal("90"), Decimal("90.00")) == PaymentStatus.paid

    def test_pending_when_short(self):
        assert derive_payment_status(Decimal("90"), Decimal("89.99")) == PaymentStatus.pending


def test_round_trip_total_and_payments(session, identity, two_items):
    item_a, item_b = two_items

    summary = _sale(session, identity, [(item_a.id, 1), (item_b.id, 2)])
    assert summary.total == Decimal("90.00")
    assert summary.payment_status == PaymentStatus.pending
    assert [line.unit_price for line in summary.lines] == [Decimal("50.00"), Decimal("20.00")]

    sale_id = summary.sale.id
    SaleService.add_payment(session, identity, sale_id, PaymentDTO(amount="30", method="efectivo"))
    summary = SaleService.add_payment(
        session, identity, sale_id, PaymentDTO(amount="60", method="Yape")
    )
    session.commit()
    assert summary.paid == Decimal("90.00")
    assert summary.outstanding == Decimal("0.00")
    assert summary.payment_status == PaymentStatus.paid
    assert [p.method_type for p in summary.payments] == [
        PaymentMethodType.cash,
        PaymentMethodType.wallet,
    ]

    with pytest.raises(Overpayment):
        SaleService.add_payment(session, identity, sale_id, PaymentDTO(amount="0.01"))


def test_items_become_sold(session, identity, two_items):
    item_a, item_b = two_items
    _sale(session, identity, [(item_a.id, 1), (item_b.id, 2)])

    for item in two_items:
        session.refresh(item)
        assert item.stock == 0
        assert item.status == ItemStatus.sold


def test_partial_quantity_leaves_item_available(session, identity, make_item):
    item = make_item(session, identity, price=Decimal("15"), stock=3)

    summary = _sale(session, identity, [(item.id, 1)])

    session.refresh(item)
    assert summary.total == Decimal("15.00")
    assert item.stock == 2
    assert item.status == ItemStatus.available


@pytest.mark.parametrize("amount", ["0", "-5"])
def test_add_payment_rejects_non_positive(session, identity, two_items, amount):
    summary = _sale(session, identity, [(two_items[0].id, 1)])
    with pytest.raises(InvalidAmount):
        SaleService.add_payment(session, identity, summary.sale.id, PaymentDTO(amount=amount))


def test_initial_payment_is_validated(session, identity, two_items):
    item_a, _ = two_items
    with pytest.raises(Overpayment):
        SaleService.create_sale(
            session,
            identity,
            SaleCreateDTO(
                lines=[SaleLineDTO(item_id=item_a.id)],
                initial_payment=PaymentDTO(amount="51"),
            ),
        )


def test_initial_payment_applied(session, identity, two_items):
    item_a, _ = two_items
    summary = _sale(
        session,
        identity,
        [(item_a.id, 1)],
        initial_payment=PaymentDTO(amount="50", method="cash"),
    )
    assert summary.payment_status == PaymentStatus.paid


def test_failed_line_rolls_back_previous_reservations(session, identity, make_item):
    item_a = make_item(session, identity, title="A", stock=1)
    item_b = make_item(session, identity, title="B", stock=1)

    with pytest.raises(InsufficientStock):
        SaleService.create_sale(
            session,
            identity,
            SaleCreateDTO(
                lines=[
                    SaleLineDTO(item_id=item_a.id, quantity=1),
                    SaleLineDTO(item_id=item_b.id, quantity=5),
                ]
            ),
        )
    session.rollback()

    session.refresh(item_a)
    assert item_a.stock == 1
    assert item_a.status == ItemStatus.available
    assert _count(session, Sale) == 0


def test_null_price_blocks_sale(session, identity, make_item):
    item = make_item(session, identity, price=None)
    with pytest.raises(ValidationError):
        SaleService.create_sale(
            session, identity, SaleCreateDTO(lines=[SaleLineDTO(item_id=item.id)])
        )
    session.refresh(item)
    assert item.stock == 1


def test_empty_and_duplicate_lines_rejected(session, identity, two_items):
    with pytest.raises(ValidationError):
        SaleService.create_sale(session, identity, SaleCreateDTO(lines=[]))
    with pytest.raises(ValidationError):
        SaleService.create_sale(
            session,
            identity,
            SaleCreateDTO(
                lines=[SaleLineDTO(item_id=two_items[0].id), SaleLineDTO(item_id=two_items[0].id)]
            ),
        )


def test_item_from_other_branch_rejected(session, identity, tenants, make_item):
    item = make_item(session, identity, branch_id=tenants.second_branch.id)
    with pytest.raises(ValidationError):
        SaleService.create_sale(
            session,
            identity,
            SaleCreateDTO(branch_id=tenants.branch.id, lines=[SaleLineDTO(item_id=item.id)]),
        )


def test_line_cannot_bill_more_than_its_stock(session, identity, make_item):
    item = make_item(session, identity, stock=1)
    data = SaleCreateDTO.model_validate(
        {"lines": [{"item_id": item.id, "quantity": 5, "reserved": True}]}
    )

    with pytest.raises(InsufficientStock):
        SaleService.create_sale(session, identity, data)
    session.rollback()

    summary = _sale(session, identity, [(item.id, 1)])
    SaleService.delete_sale(session, identity, summary.sale.id)
    session.commit()

    session.refresh(item)
    assert (item.stock, item.status) == (1, ItemStatus.available)


def test_release_then_resale_then_delete_first_sale(session, identity, make_item):
    item = make_item(session, identity, stock=1)
    first = _sale(session, identity, [(item.id, 1)])
    InventoryService.release(session, identity, item.id, 1)
    session.commit()
    second = _sale(session, identity, [(item.id, 1)])

    SaleService.delete_sale(session, identity, first.sale.id)
    session.commit()

    session.refresh(item)
    assert (item.stock, item.status) == (0, ItemStatus.sold)
    assert session.get(Sale, second.sale.id) is not None

    SaleService.delete_sale(session, identity, second.sale.id)
    session.commit()
    session.refresh(item)
    assert (item.stock, item.status) == (1, ItemStatus.available)


def test_partial_release_then_delete_restores_remainder(session, identity, make_item):
    item = make_item(session, identity, stock=3)
    summary = _sale(session, identity, [(item.id, 3)])

    InventoryService.release(session, identity, item.id, 1)
    session.commit()
    line = session.exec(select(SaleLine).where(SaleLine.sale_id == summary.sale.id)).one()
    assert line.returned_quantity == 1

    SaleService.delete_sale(session, identity, summary.sale.id)
    session.commit()

    session.refresh(item)
    assert (item.stock, item.status) == (3, ItemStatus.available)


def test_release_more_than_sold_fails(session, identity, make_item):
    item = make_item(session, identity, stock=2)
    _sale(session, identity, [(item.id, 2)])

    with pytest.raises(InvalidState):
        InventoryService.release(session, identity, item.id, 3)
    session.rollback()

    session.refresh(item)
    assert (item.stock, item.status) == (0, ItemStatus.sold)



def test_delete_sale_without_payments_restores_items(session, identity, two_items):
    item_a, item_b = two_items
    summary = _sale(session, identity, [(item_a.id, 1), (item_b.id, 2)])

    SaleService.delete_sale(session, identity, summary.sale.id)
    session.commit()

    session.refresh(item_a)
    session.refresh(item_b)
    assert (item_a.stock, item_a.status) == (1, ItemStatus.available)
    assert (item_b.stock, item_b.status) == (2, ItemStatus.available)
    assert session.get(Sale, summary.sale.id) is None
    assert _count(session, SaleLine) == 0


def test_delete_sale_with_payment_fails(session, identity, two_items):
    summary = _sale(
        session,
        identity,
        [(two_items[0].id, 1)],
        initial_payment=PaymentDTO(amount="1"),
    )
    with pytest.raises(HasPayments):
        SaleService.delete_sale(session, identity, summary.sale.id)


def test_delete_payment_then_sale(session, identity, two_items):
    summary = _sale(
        session,
        identity,
        [(two_items[0].id, 1)],
        initial_payment=PaymentDTO(amount="50"),
    )
    payment_id = summary.payments[0].id

    after = SaleService.delete_payment(session, identity, payment_id)
    session.commit()
    assert after.paid == Decimal("0.00")
    assert after.payment_status == PaymentStatus.pending

    SaleService.delete_sale(session, identity, summary.sale.id)
    session.commit()


def test_delete_sale_cascades_delivery(session, identity, two_items):
    summary = _sale(
        session,
        identity,
        [(two_items[0].id, 1)],
        initial_payment=PaymentDTO(amount="50"),
    )
    DeliveryService.schedule(
        session,
        identity,
        DeliveryCreateDTO(
            sale_id=summary.sale.id,
            kind=DeliveryKind.store_pickup,
            scheduled_date="2026-11-02",
        ),
    )
    SaleService.delete_payment(session, identity, summary.payments[0].id)
    session.commit()

    SaleService.delete_sale(session, identity, summary.sale.id)
    session.commit()
    assert _count(session, Delivery) == 0


def test_sale_converts_pending_lead(session, identity, two_items, make_lead):
    lead = make_lead(session, identity)
    summary = _sale(session, identity, [(two_items[0].id, 1)], lead_id=lead.id)

    session.refresh(lead)
    assert lead.status == LeadStatus.converted
    assert lead.converted_sale_id == summary.sale.id


def test_second_conversion_fails_but_second_sale_succeeds(
    session, identity, two_items, make_lead
):
    item_a, item_b = two_items
    lead = make_lead(session, identity)
    first = _sale(session, identity, [(item_a.id, 1)], lead_id=lead.id)

    second = _sale(session, identity, [(item_b.id, 1)], lead_id=lead.id)
    assert second.sale.id != first.sale.id
    assert second.sale.lead_id == lead.id

    with pytest.raises(AlreadyConverted):
        LeadService.convert(session, identity, lead.id, second.sale.id)
    session.rollback()

    session.refresh(lead)
    assert lead.converted_sale_id == first.sale.id


def test_delete_sale_reverts_lead_conversion(session, identity, two_items, make_lead):
    lead = make_lead(session, identity)
    summary = _sale(session, identity, [(two_items[0].id, 1)], lead_id=lead.id)

    SaleService.delete_sale(session, identity, summary.sale.id)
    session.commit()

    session.refresh(lead)
    assert lead.status == LeadStatus.pending
    assert lead.converted_sale_id is None


def test_checkout_registers_lead_by_phone(session, identity, two_items, make_lead):
    existing = make_lead(session, identity, phone="999-888-777")

    summary = SaleService.reserve_and_checkout(
        session,
        identity,
        SaleCreateDTO(
            lines=[SaleLineDTO(item_id=two_items[0].id)],
            lead=LeadInfoDTO(first_name="Ana", phone="999888777"),
        ),
    )
    session.commit()
    assert summary.sale.lead_id == existing.id
    assert _count(session, Lead) == 1


def test_checkout_requires_client(session, identity, two_items):
    with pytest.raises(ValidationError):
        SaleService.reserve_and_checkout(
            session, identity, SaleCreateDTO(lines=[SaleLineDTO(item_id=two_items[0].id)])
        )


def test_list_sales_filters(session, identity, tenants, make_item, make_lead):
    lead = make_lead(session, identity)
    polo = make_item(session, identity, title="Polo verde", category_id=tenants.category.id)
    gorra = make_item(session, identity, title="Gorra negra")
    with_lead = _sale(session, identity, [(polo.id, 1)], lead_id=lead.id)
    plain = _sale(session, identity, [(gorra.id, 1)])

    listed = SaleService.list_sales(session, identity)
    assert {s.sale.id for s in listed} == {plain.sale.id, with_lead.sale.id}
    by_lead = SaleService.list_sales(session, identity, SaleFilterDTO(lead_id=lead.id))
    assert [s.sale.id for s in by_lead] == [with_lead.sale.id]
    by_category = SaleService.list_sales(
        session, identity, SaleFilterDTO(category_id=tenants.category.id)
    )
    assert [s.sale.id for s in by_category] == [with_lead.sale.id]
    by_search = SaleService.list_sales(session, identity, SaleFilterDTO(search="gorra"))
    assert [s.sale.id for s in by_search] == [plain.sale.id]


def test_other_company_cannot_touch_sale(session_for, identity, other_identity, make_item):
    owner_session = session_for(identity)
    item = make_item(owner_session, identity)
    summary = _sale(owner_session, identity, [(item.id, 1)])

    intruder = session_for(other_identity)
    with pytest.raises(ScopeViolation):
        SaleService.add_payment(intruder, other_identity, summary.sale.id, PaymentDTO(amount="1"))
    with pytest.raises(ScopeViolation):
        SaleService.delete_sale(intruder, other_identity, summary.sale.id)
