"""
Utility modules for the inventory and sales ledger.

This package contains pure helpers shared by the services and the API.
"""
from app.utils.calculations import (
    calculate_outstanding,
    calculate_subtotal,
    calculate_total,
    round_money,
)
from app.utils.sanitization import (
    sanitize_name,
    sanitize_notes,
    sanitize_phone,
    sanitize_text,
)

__all__ = [
    # calculations
    "calculate_outstanding",
    "calculate_subtotal",
    "calculate_total",
    "round_money",
    # sanitization
    "sanitize_name",
    "sanitize_notes",
    "sanitize_phone",
    "sanitize_text",
]
