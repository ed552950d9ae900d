"""
Calculation utilities for sales, payments and purchases.
"""
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List

MONEY_QUANT = Decimal("0.01")


def _to_decimal(value: Decimal | str | int | float | None) -> Decimal:
    try:
        return Decimal(str(value or 0))
    except InvalidOperation:
        raise ValueError(f"Monto invalido: {value!r}")


def round_money(value: Any) -> Decimal:
    return _to_decimal(value).quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


def calculate_subtotal(quantity: Decimal | int, price: Decimal) -> Decimal:
    """
    Calculate subtotal for a line item.
    """
    return (_to_decimal(quantity) * _to_decimal(price)).quantize(
        MONEY_QUANT, rounding=ROUND_HALF_UP
    )


def calculate_total(items: List[Dict[str, Any]], key: str = "subtotal") -> Decimal:
    """
    Calculate total from a list of items.
    """
    total = Decimal("0.00")
    for item in items:
        total += _to_decimal(item.get(key, 0))

    return total.quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


def sum_amounts(amounts: Iterable[Any]) -> Decimal:
    total = Decimal("0.00")
    for amount in amounts:
        total += _to_decimal(amount)
    return total.quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)


def calculate_outstanding(total: Any, paid: Any) -> Decimal:
    """
    Saldo pendiente de una venta. Nunca negativo si los pagos se validaron.
    """
    return (_to_decimal(total) - _to_decimal(paid)).quantize(
        MONEY_QUANT, rounding=ROUND_HALF_UP
    )


def progress_percentage(done: int, expected: int) -> float:
    if expected <= 0:
        return 0.0
    return round(done * 100.0 / expected, 2)
