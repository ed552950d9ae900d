"""API HTTP del ledger (FastAPI).

La identidad llega ya resuelta por el gateway en los headers
``X-Company-Id``, ``X-User-Role`` y ``X-Branch-Ids`` (lista separada por
comas). Los errores del dominio responden ``{"error": code, "detail": msg}``.
"""
from __future__ import annotations

from dataclasses import asdict
from datetime import date
from decimal import Decimal
from typing import Optional

from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from app.api.operations import LedgerOperations
from app.enums import DeliveryKind, DeliveryStatus, ItemStatus, LeadStatus, PurchaseStatus
from app.exceptions import (
    AlreadyConverted,
    AlreadyScheduled,
    HasPayments,
    InsufficientStock,
    InternalError,
    InvalidAmount,
    InvalidState,
    LedgerError,
    LineFull,
    NotFound,
    Overpayment,
    ScopeViolation,
    ValidationError,
)
from app.schemas.company_schemas import (
    BranchDTO,
    BranchUpdateDTO,
    CategoryDTO,
    CompanySetupDTO,
    CompanyUpdateDTO,
)
from app.schemas.delivery_schemas import DeliveryCreateDTO, DeliveryFilterDTO
from app.schemas.inventory_schemas import ItemCreateDTO, ItemFilterDTO, ItemUpdateDTO
from app.schemas.lead_schemas import LeadConvertDTO, LeadCreateDTO, LeadFilterDTO
from app.schemas.purchase_schemas import (
    AssignItemsDTO,
    PurchaseBatchCreateDTO,
    QuickPurchaseDTO,
    SupplierDTO,
    SupplierUpdateDTO,
)
from app.schemas.sale_schemas import BaseSchema, PaymentDTO, SaleCreateDTO, SaleFilterDTO
from app.services.purchase_service import BatchProgress
from app.services.sale_service import SaleSummary
from app.utils.logger import get_logger
from app.utils.tenant import Identity

logger = get_logger("LedgerAPI")

ERROR_STATUS = {
    ScopeViolation: 404,
    NotFound: 404,
    ValidationError: 422,
    InvalidAmount: 422,
    InsufficientStock: 409,
    Overpayment: 409,
    HasPayments: 409,
    AlreadyConverted: 409,
    AlreadyScheduled: 409,
    LineFull: 409,
    InvalidState: 409,
    InternalError: 500,
}


class PaymentCreateDTO(PaymentDTO):
    sale_id: int


class PriceDTO(BaseSchema):
    price: Decimal


class StockDTO(BaseSchema):
    stock: int


class ItemFromPurchaseDTO(ItemCreateDTO):
    line_id: int


def status_for(exc: LedgerError) -> int:
    for error_type in type(exc).__mro__:
        if error_type in ERROR_STATUS:
            return ERROR_STATUS[error_type]
    return 400


def _row(model: Optional[BaseModel]) -> Optional[dict]:
    if model is None:
        return None
    return model.model_dump()


def _sale(summary: SaleSummary) -> dict:
    data = _row(summary.sale)
    data.update(
        {
            "lines": [_row(line) for line in summary.lines],
            "payments": [_row(payment) for payment in summary.payments],
            "delivery": _row(summary.delivery),
            "total": summary.total,
            "paid": summary.paid,
            "outstanding": summary.outstanding,
            "payment_status": summary.payment_status.value,
        }
    )
    return data


def _progress(progress: BatchProgress) -> dict:
    data = _row(progress.batch)
    data.update(
        {
            "status": progress.status.value,
            "expected": progress.expected,
            "created": progress.created,
            "percentage": progress.percentage,
            "lines": [asdict(line) for line in progress.lines],
        }
    )
    return data


def resolve_identity(
    x_company_id: Optional[str] = Header(default=None),
    x_user_role: Optional[str] = Header(default="owner"),
    x_branch_ids: Optional[str] = Header(default=None),
) -> Identity:
    if not x_company_id:
        raise HTTPException(status_code=401, detail="Empresa no resuelta.")
    branch_ids = [part for part in (x_branch_ids or "").split(",") if part.strip()]
    try:
        return Identity.build(x_company_id, x_user_role, branch_ids)
    except ScopeViolation as exc:
        raise HTTPException(status_code=403, detail=exc.message)


def create_api(operations: Optional[LedgerOperations] = None) -> FastAPI:
    ops = operations or LedgerOperations()
    api = FastAPI(title="Ledger de Inventario y Ventas")

    @api.exception_handler(LedgerError)
    async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
        status = status_for(exc)
        if status >= 500:
            logger.error("%s %s -> %s", request.method, request.url.path, exc.code)
        return JSONResponse(
            status_code=status,
            content={"error": exc.code, "detail": exc.message},
        )

    # --- Empresa -------------------------------------------------------

    @api.post("/companies/setup", status_code=201)
    def setup_company(payload: CompanySetupDTO) -> dict:
        company, branch = ops.setup_company(payload)
        return {"company": _row(company), "branch": _row(branch)}

    @api.get("/companies/empresa")
    def get_company(identity: Identity = Depends(resolve_identity)) -> dict:
        return _row(ops.get_company(identity))

    @api.put("/companies/empresa")
    def update_company(
        payload: CompanyUpdateDTO, identity: Identity = Depends(resolve_identity)
    ) -> dict:
        return _row(ops.update_company(identity, payload))

    @api.get("/companies/almacenes")
    def list_branches(
        include_inactive: bool = False, identity: Identity = Depends(resolve_identity)
    ) -> list[dict]:
        return [_row(b) for b in ops.list_branches(identity, include_inactive)]

    @api.post("/companies/almacenes", status_code=201)
    def create_branch(payload: BranchDTO, identity: Identity = Depends(resolve_identity)) -> dict:
        return _row(ops.create_branch(identity, payload))

    @api.put("/companies/almacenes/{branch_id}")
    def update_branch(
        branch_id: int, payload: BranchUpdateDTO, identity: Identity = Depends(resolve_identity)
    ) -> dict:
        return _row(ops.update_branch(identity, branch_id, payload))

    @api.get("/categories")
    def list_categories(identity: Identity = Depends(resolve_identity)) -> list[dict]:
        return [_row(c) for c in ops.list_categories(identity)]

    @api.post("/categories", status_code=201)
    def create_category(payload: CategoryDTO, identity: Identity = Depends(resolve_identity)) -> dict:
        return _row(ops.create_category(identity, payload))

    @api.delete("/categories/{category_id}", status_code=204)
    def delete_category(category_id: int, identity: Identity = Depends(resolve_identity)) -> None:
        ops.delete_category(identity, category_id)

    # --- Items ---------------------------------------------------------

    @api.get("/items")
    def list_items(
        status: Optional[ItemStatus] = None,
        category_id: Optional[int] = None,
        branch_id: Optional[int] = None,
        search: Optional[str] = None,
        include_hidden: bool = False,
        skip: int = Query(default=0, ge=0),
        limit: int = Query(default=100, gt=0, le=500),
        identity: Identity = Depends(resolve_identity),
    ) -> list[dict]:
        filters = ItemFilterDTO(
            status=status,
            category_id=category_id,
            branch_id=branch_id,
            search=search,
            include_hidden=include_hidden,
            skip=skip,
            limit=limit,
        )
        return [_row(item) for item in ops.list_items(identity, filters)]

    @api.get("/items/sin-compra")
    def list_unlinked_items(identity: Identity = Depends(resolve_identity)) -> list[dict]:
        return [_row(item) for item in ops.list_unlinked_items(identity)]

    @api.post("/items", status_code=201)
    def create_item(payload: ItemCreateDTO, identity: Identity = Depends(resolve_identity)) -> dict:
        return _row(ops.create_item(identity, payload))

    @api.get("/items/{item_id}")
    def get_item(item_id: int, identity: Identity = Depends(resolve_identity)) -> dict:
        return _row(ops.get_item(identity, item_id))

    @api.put("/items/{item_id}")
    def update_item(
        item_id: int, payload: ItemUpdateDTO, identity: Identity = Depends(resolve_identity)
    ) -> dict:
        return _row(ops.update_item(identity, item_id, payload))

    @api.put("/items/{item_id}/price")
    def update_price(
        item_id: int, payload: PriceDTO, identity: Identity = Depends(resolve_identity)
    ) -> dict:
        return _row(ops.update_price(identity, item_id, payload.price))

    @api.put("/items/{item_id}/stock")
    def update_stock(
        item_id: int, payload: StockDTO, identity: Identity = Depends(resolve_identity)
    ) -> dict:
        return _row(ops.update_stock(identity, item_id, payload.stock))

    @api.post("/items/{item_id}/liberar")
    def release_item(
        item_id: int, payload: StockDTO, identity: Identity = Depends(resolve_identity)
    ) -> dict:
        return _row(ops.release_item(identity, item_id, payload.stock))

    # --- Clientes ------------------------------------------------------

    @api.post("/clientes/potencial", status_code=201)
    def create_lead(payload: LeadCreateDTO, identity: Identity = Depends(resolve_identity)) -> dict:
        return _row(ops.create_lead(identity, payload))

    @api.get("/clientes/potencial/dashboard")
    def pending_leads(identity: Identity = Depends(resolve_identity)) -> dict:
        total, leads = ops.pending_leads_dashboard(identity)
        return {"pending": total, "leads": [_row(lead) for lead in leads]}

    @api.get("/clientes/todos")
    def list_leads(
        search: Optional[str] = None,
        status: Optional[LeadStatus] = None,
        identity: Identity = Depends(resolve_identity),
    ) -> list[dict]:
        leads = ops.list_leads(identity, LeadFilterDTO(search=search, status=status))
        return [_row(lead) for lead in leads]

    @api.post("/clientes/potencial/{lead_id}/convertir")
    def convert_lead(
        lead_id: int, payload: LeadConvertDTO, identity: Identity = Depends(resolve_identity)
    ) -> dict:
        return _row(ops.convert_lead(identity, lead_id, payload.sale_id))

    # --- Ventas --------------------------------------------------------

    @api.post("/checkout", status_code=201)
    def checkout(payload: SaleCreateDTO, identity: Identity = Depends(resolve_identity)) -> dict:
        return _sale(ops.reserve_and_checkout(identity, payload))

    @api.post("/ventas", status_code=201)
    def create_sale(payload: SaleCreateDTO, identity: Identity = Depends(resolve_identity)) -> dict:
        return _sale(ops.create_sale(identity, payload))

    @api.get("/ventas")
    def list_sales(
        search: Optional[str] = None,
        lead_id: Optional[int] = None,
        branch_id: Optional[int] = None,
        category_id: Optional[int] = None,
        skip: int = Query(default=0, ge=0),
        limit: int = Query(default=100, gt=0, le=500),
        identity: Identity = Depends(resolve_identity),
    ) -> list[dict]:
        filters = SaleFilterDTO(
            search=search,
            lead_id=lead_id,
            branch_id=branch_id,
            category_id=category_id,
            skip=skip,
            limit=limit,
        )
        return [_sale(summary) for summary in ops.list_sales(identity, filters)]

    @api.get("/ventas/{sale_id}")
    def get_sale(sale_id: int, identity: Identity = Depends(resolve_identity)) -> dict:
        return _sale(ops.get_sale(identity, sale_id))

    @api.delete("/ventas/{sale_id}", status_code=204)
    def delete_sale(sale_id: int, identity: Identity = Depends(resolve_identity)) -> None:
        ops.delete_sale(identity, sale_id)

    @api.post("/abonos", status_code=201)
    def add_payment(
        payload: PaymentCreateDTO, identity: Identity = Depends(resolve_identity)
    ) -> dict:
        payment = PaymentDTO(amount=payload.amount, method=payload.method)
        return _sale(ops.add_payment(identity, payload.sale_id, payment))

    @api.delete("/abonos/{payment_id}")
    def delete_payment(payment_id: int, identity: Identity = Depends(resolve_identity)) -> dict:
        return _sale(ops.delete_payment(identity, payment_id))

    # --- Compras -------------------------------------------------------

    @api.get("/compras/proveedores")
    def list_suppliers(
        only_active: bool = True, identity: Identity = Depends(resolve_identity)
    ) -> list[dict]:
        return [_row(s) for s in ops.list_suppliers(identity, only_active)]

    @api.post("/compras/proveedores", status_code=201)
    def create_supplier(payload: SupplierDTO, identity: Identity = Depends(resolve_identity)) -> dict:
        return _row(ops.create_supplier(identity, payload))

    @api.put("/compras/proveedores/{supplier_id}")
    def update_supplier(
        supplier_id: int, payload: SupplierUpdateDTO, identity: Identity = Depends(resolve_identity)
    ) -> dict:
        return _row(ops.update_supplier(identity, supplier_id, payload))

    @api.delete("/compras/proveedores/{supplier_id}")
    def deactivate_supplier(
        supplier_id: int, identity: Identity = Depends(resolve_identity)
    ) -> dict:
        return _row(ops.deactivate_supplier(identity, supplier_id))

    @api.get("/compras")
    def list_batches(
        status: Optional[PurchaseStatus] = None,
        skip: int = Query(default=0, ge=0),
        limit: int = Query(default=100, gt=0, le=500),
        identity: Identity = Depends(resolve_identity),
    ) -> list[dict]:
        return [_row(b) for b in ops.list_batches(identity, status, skip, limit)]

    @api.post("/compras", status_code=201)
    def create_batch(
        payload: PurchaseBatchCreateDTO, identity: Identity = Depends(resolve_identity)
    ) -> dict:
        return _progress(ops.create_purchase_batch(identity, payload))

    @api.post("/compras/rapida", status_code=201)
    def create_quick_batch(
        payload: QuickPurchaseDTO, identity: Identity = Depends(resolve_identity)
    ) -> dict:
        return _progress(ops.create_quick_purchase(identity, payload))

    @api.get("/compras/{batch_id}/estado")
    def batch_progress(batch_id: int, identity: Identity = Depends(resolve_identity)) -> dict:
        return _progress(ops.batch_progress(identity, batch_id))

    @api.post("/compras/{batch_id}/items", status_code=201)
    def record_item_created(
        batch_id: int,
        payload: ItemFromPurchaseDTO,
        identity: Identity = Depends(resolve_identity),
    ) -> dict:
        return _row(ops.record_item_created(identity, batch_id, payload.line_id, payload))

    @api.post("/compras/{batch_id}/asignar-items")
    def assign_items(
        batch_id: int, payload: AssignItemsDTO, identity: Identity = Depends(resolve_identity)
    ) -> dict:
        return _progress(ops.assign_items(identity, batch_id, payload.item_ids))

    @api.delete("/compras/{batch_id}", status_code=204)
    def delete_batch(batch_id: int, identity: Identity = Depends(resolve_identity)) -> None:
        ops.delete_batch(identity, batch_id)

    # --- Agenda --------------------------------------------------------

    @api.get("/agenda")
    def list_deliveries(
        scheduled_date: Optional[date] = None,
        kind: Optional[DeliveryKind] = None,
        status: Optional[DeliveryStatus] = None,
        branch_id: Optional[int] = None,
        identity: Identity = Depends(resolve_identity),
    ) -> list[dict]:
        filters = DeliveryFilterDTO(
            scheduled_date=scheduled_date, kind=kind, status=status, branch_id=branch_id
        )
        return [_row(d) for d in ops.list_deliveries(identity, filters)]

    @api.post("/agenda", status_code=201)
    def schedule_delivery(
        payload: DeliveryCreateDTO, identity: Identity = Depends(resolve_identity)
    ) -> dict:
        return _row(ops.schedule_delivery(identity, payload))

    @api.post("/agenda/{delivery_id}/despachar")
    def dispatch_delivery(delivery_id: int, identity: Identity = Depends(resolve_identity)) -> dict:
        return _row(ops.dispatch_delivery(identity, delivery_id))

    @api.post("/agenda/{delivery_id}/completar")
    def complete_delivery(delivery_id: int, identity: Identity = Depends(resolve_identity)) -> dict:
        return _row(ops.complete_delivery(identity, delivery_id))

    @api.post("/agenda/{delivery_id}/cancelar")
    def cancel_delivery(delivery_id: int, identity: Identity = Depends(resolve_identity)) -> dict:
        return _row(ops.cancel_delivery(identity, delivery_id))

    return api