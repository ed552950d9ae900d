from .company import Branch, Company
from .inventory import Category, Item
from .client import Lead
from .purchases import PurchaseBatch, PurchaseLine, Supplier
from .sales import Sale, SaleLine, SalePayment
from .delivery import Delivery

__all__ = [
    "Company",
    "Branch",
    "Category",
    "Item",
    "Lead",
    "Supplier",
    "PurchaseBatch",
    "PurchaseLine",
    "Sale",
    "SaleLine",
    "SalePayment",
    "Delivery",
]
