"""Operaciones del ledger: una transaccion por llamada externa.

Cada metodo recibe la identidad ya resuelta del actor, abre su propia
sesion ligada a esa empresa y confirma al final. Cualquier error deja la
base como estaba: los errores del dominio se propagan tal cual y los fallos
inesperados de almacenamiento se convierten en ``InternalError`` despues
del rollback.
"""
from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from app.enums import PurchaseStatus
from app.exceptions import InternalError, LedgerError
from app.models import (
    Branch,
    Category,
    Company,
    Delivery,
    Item,
    Lead,
    PurchaseBatch,
    Supplier,
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
from app.schemas.lead_schemas import LeadFilterDTO
from app.schemas.purchase_schemas import (
    PurchaseBatchCreateDTO,
    QuickPurchaseDTO,
    SupplierDTO,
    SupplierUpdateDTO,
)
from app.schemas.sale_schemas import LeadInfoDTO, PaymentDTO, SaleCreateDTO, SaleFilterDTO
from app.services.company_service import CompanyService
from app.services.delivery_service import DeliveryService
from app.services.inventory_service import InventoryService
from app.services.lead_service import LeadService
from app.services.purchase_service import BatchProgress, PurchaseService, SupplierService
from app.services.sale_service import SaleService, SaleSummary
from app.utils.db import get_engine, prepare_engine
from app.utils.logger import get_logger
from app.utils.tenant import Identity, bind_session_tenant

logger = get_logger("LedgerOperations")


class LedgerOperations:
    def __init__(self, engine: Optional[Engine] = None) -> None:
        self._engine = prepare_engine(engine) if engine is not None else None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            self._engine = get_engine()
        return self._engine

    @contextmanager
    def _transaction(self, identity: Optional[Identity] = None) -> Iterator[Session]:
        with Session(self.engine, expire_on_commit=False) as session:
            if identity is not None:
                bind_session_tenant(session, identity)
            try:
                yield session
                session.commit()
            except LedgerError:
                session.rollback()
                raise
            except SQLAlchemyError as exc:
                session.rollback()
                logger.error("Error de almacenamiento; transaccion revertida", exc_info=True)
                raise InternalError(
                    "Error interno de almacenamiento. Intente nuevamente."
                ) from exc

    # ------------------------------------------------------------------
    # Empresa, almacenes y categorias
    # ------------------------------------------------------------------

    def setup_company(self, data: CompanySetupDTO) -> tuple[Company, Branch]:
        with self._transaction() as session:
            return CompanyService.setup_company(session, data)

    def get_company(self, identity: Identity) -> Company:
        with self._transaction(identity) as session:
            return CompanyService.get_company(session, identity)

    def update_company(self, identity: Identity, data: CompanyUpdateDTO) -> Company:
        with self._transaction(identity) as session:
            return CompanyService.update_company(session, identity, data)

    def list_branches(self, identity: Identity, include_inactive: bool = False) -> list[Branch]:
        with self._transaction(identity) as session:
            return CompanyService.list_branches(session, identity, include_inactive)

    def create_branch(self, identity: Identity, data: BranchDTO) -> Branch:
        with self._transaction(identity) as session:
            return CompanyService.create_branch(session, identity, data)

    def update_branch(self, identity: Identity, branch_id: int, data: BranchUpdateDTO) -> Branch:
        with self._transaction(identity) as session:
            return CompanyService.update_branch(session, identity, branch_id, data)

    def list_categories(self, identity: Identity) -> list[Category]:
        with self._transaction(identity) as session:
            return CompanyService.list_categories(session, identity)

    def create_category(self, identity: Identity, data: CategoryDTO) -> Category:
        with self._transaction(identity) as session:
            return CompanyService.create_category(session, identity, data)

    def delete_category(self, identity: Identity, category_id: int) -> None:
        with self._transaction(identity) as session:
            CompanyService.delete_category(session, identity, category_id)

    # ------------------------------------------------------------------
    # Inventario
    # ------------------------------------------------------------------

    def create_item(self, identity: Identity, data: ItemCreateDTO) -> Item:
        with self._transaction(identity) as session:
            return InventoryService.create_item(session, identity, data)

    def get_item(self, identity: Identity, item_id: int) -> Item:
        with self._transaction(identity) as session:
            return InventoryService.get_item(session, identity, item_id)

    def update_item(self, identity: Identity, item_id: int, data: ItemUpdateDTO) -> Item:
        with self._transaction(identity) as session:
            return InventoryService.update_item(session, identity, item_id, data)

    def update_price(self, identity: Identity, item_id: int, price) -> Item:
        with self._transaction(identity) as session:
            return InventoryService.update_price(session, identity, item_id, price)

    def update_stock(self, identity: Identity, item_id: int, stock) -> Item:
        with self._transaction(identity) as session:
            return InventoryService.update_stock(session, identity, item_id, stock)

    def release_item(self, identity: Identity, item_id: int, quantity) -> Item:
        with self._transaction(identity) as session:
            return InventoryService.release(session, identity, item_id, quantity)

    def list_items(self, identity: Identity, filters: ItemFilterDTO | None = None) -> list[Item]:
        with self._transaction(identity) as session:
            return InventoryService.list_items(session, identity, filters)

    def list_unlinked_items(self, identity: Identity) -> list[Item]:
        with self._transaction(identity) as session:
            return InventoryService.list_unlinked_items(session, identity)

    # ------------------------------------------------------------------
    # Clientes potenciales
    # ------------------------------------------------------------------

    def create_lead(self, identity: Identity, data: LeadInfoDTO) -> Lead:
        with self._transaction(identity) as session:
            return LeadService.create_lead(session, identity, data)

    def list_leads(self, identity: Identity, filters: LeadFilterDTO | None = None) -> list[Lead]:
        filters = filters or LeadFilterDTO()
        with self._transaction(identity) as session:
            return LeadService.list_leads(
                session, identity, search=filters.search, status=filters.status
            )

    def pending_leads_dashboard(self, identity: Identity) -> tuple[int, list[Lead]]:
        with self._transaction(identity) as session:
            return (
                LeadService.count_pending(session, identity),
                LeadService.list_pending(session, identity),
            )

    def convert_lead(self, identity: Identity, lead_id: int, sale_id: int) -> Lead:
        with self._transaction(identity) as session:
            return LeadService.convert(session, identity, lead_id, sale_id)

    # ------------------------------------------------------------------
    # Ventas y abonos
    # ------------------------------------------------------------------

    def reserve_and_checkout(self, identity: Identity, data: SaleCreateDTO) -> SaleSummary:
        with self._transaction(identity) as session:
            return SaleService.reserve_and_checkout(session, identity, data)

    def create_sale(self, identity: Identity, data: SaleCreateDTO) -> SaleSummary:
        with self._transaction(identity) as session:
            return SaleService.create_sale(session, identity, data)

    def add_payment(self, identity: Identity, sale_id: int, payment: PaymentDTO) -> SaleSummary:
        with self._transaction(identity) as session:
            return SaleService.add_payment(session, identity, sale_id, payment)

    def delete_payment(self, identity: Identity, payment_id: int) -> SaleSummary:
        with self._transaction(identity) as session:
            return SaleService.delete_payment(session, identity, payment_id)

    def delete_sale(self, identity: Identity, sale_id: int) -> None:
        with self._transaction(identity) as session:
            SaleService.delete_sale(session, identity, sale_id)

    def get_sale(self, identity: Identity, sale_id: int) -> SaleSummary:
        with self._transaction(identity) as session:
            return SaleService.get_sale_detail(session, identity, sale_id)

    def list_sales(
        self, identity: Identity, filters: SaleFilterDTO | None = None
    ) -> list[SaleSummary]:
        with self._transaction(identity) as session:
            return SaleService.list_sales(session, identity, filters)

    # ------------------------------------------------------------------
    # Compras
    # ------------------------------------------------------------------

    def create_supplier(self, identity: Identity, data: SupplierDTO) -> Supplier:
        with self._transaction(identity) as session:
            return SupplierService.create_supplier(session, identity, data)

    def list_suppliers(self, identity: Identity, only_active: bool = True) -> list[Supplier]:
        with self._transaction(identity) as session:
            return SupplierService.list_suppliers(session, identity, only_active)

    def update_supplier(
        self, identity: Identity, supplier_id: int, data: SupplierUpdateDTO
    ) -> Supplier:
        with self._transaction(identity) as session:
            return SupplierService.update_supplier(session, identity, supplier_id, data)

    def deactivate_supplier(self, identity: Identity, supplier_id: int) -> Supplier:
        with self._transaction(identity) as session:
            return SupplierService.deactivate_supplier(session, identity, supplier_id)

    def create_purchase_batch(
        self, identity: Identity, data: PurchaseBatchCreateDTO
    ) -> BatchProgress:
        with self._transaction(identity) as session:
            batch = PurchaseService.create_batch(session, identity, data)
            return PurchaseService.batch_progress(session, identity, batch.id)

    def create_quick_purchase(self, identity: Identity, data: QuickPurchaseDTO) -> BatchProgress:
        with self._transaction(identity) as session:
            batch = PurchaseService.create_quick_batch(session, identity, data)
            return PurchaseService.batch_progress(session, identity, batch.id)

    def record_item_created(
        self, identity: Identity, batch_id: int, line_id: int, data: ItemCreateDTO
    ) -> Item:
        with self._transaction(identity) as session:
            return PurchaseService.record_item_created(
                session, identity, batch_id, line_id, data
            )

    def assign_items(self, identity: Identity, batch_id: int, item_ids: list[int]) -> BatchProgress:
        with self._transaction(identity) as session:
            PurchaseService.assign_items(session, identity, batch_id, item_ids)
            return PurchaseService.batch_progress(session, identity, batch_id)

    def batch_progress(self, identity: Identity, batch_id: int) -> BatchProgress:
        with self._transaction(identity) as session:
            return PurchaseService.batch_progress(session, identity, batch_id)

    def list_batches(
        self,
        identity: Identity,
        status: Optional[PurchaseStatus] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> list[PurchaseBatch]:
        with self._transaction(identity) as session:
            return PurchaseService.list_batches(session, identity, status, skip, limit)

    def delete_batch(self, identity: Identity, batch_id: int) -> None:
        with self._transaction(identity) as session:
            PurchaseService.delete_batch(session, identity, batch_id)

    # ------------------------------------------------------------------
    # Entregas
    # ------------------------------------------------------------------

    def schedule_delivery(self, identity: Identity, data: DeliveryCreateDTO) -> Delivery:
        with self._transaction(identity) as session:
            return DeliveryService.schedule(session, identity, data)

    def dispatch_delivery(self, identity: Identity, delivery_id: int) -> Delivery:
        with self._transaction(identity) as session:
            return DeliveryService.dispatch(session, identity, delivery_id)

    def complete_delivery(self, identity: Identity, delivery_id: int) -> Delivery:
        with self._transaction(identity) as session:
            return DeliveryService.complete(session, identity, delivery_id)

    def cancel_delivery(self, identity: Identity, delivery_id: int) -> Delivery:
        with self._transaction(identity) as session:
            return DeliveryService.cancel(session, identity, delivery_id)

    def list_deliveries(
        self, identity: Identity, filters: DeliveryFilterDTO | None = None
    ) -> list[Delivery]:
        with self._transaction(identity) as session:
            return DeliveryService.list_deliveries(session, identity, filters)
