"""
Utilidades centralizadas para manejo de métodos de pago.

Los abonos y las compras reciben el método como texto libre desde el front
end ("Efectivo", "Yape", "transferencia"...); aquí se normaliza al enum.
"""
from __future__ import annotations

from app.enums import PaymentMethodType


def normalize_payment_method_kind(kind: str | None) -> PaymentMethodType:
    """
    Normaliza un string de método de pago al enum correspondiente.

    Parámetros:
        kind: String que representa el tipo de método de pago

    Retorna:
        PaymentMethodType correspondiente
    """
    normalized = (kind or "").strip().lower()

    mapping = {
        "cash": PaymentMethodType.cash,
        "efectivo": PaymentMethodType.cash,
        "card": PaymentMethodType.card,
        "tarjeta": PaymentMethodType.card,
        "debit": PaymentMethodType.card,
        "debito": PaymentMethodType.card,
        "credit": PaymentMethodType.card,
        "credito": PaymentMethodType.card,
        "transfer": PaymentMethodType.transfer,
        "transferencia": PaymentMethodType.transfer,
        "deposito": PaymentMethodType.transfer,
        "wallet": PaymentMethodType.wallet,
        "billetera": PaymentMethodType.wallet,
        "yape": PaymentMethodType.wallet,
        "plin": PaymentMethodType.wallet,
        "nequi": PaymentMethodType.wallet,
    }

    return mapping.get(normalized, PaymentMethodType.other)


def payment_method_label(kind: str | None) -> str:
    """
    Obtiene la etiqueta legible para un tipo de método de pago.
    """
    labels = {
        PaymentMethodType.cash: "Efectivo",
        PaymentMethodType.card: "Tarjeta",
        PaymentMethodType.transfer: "Transferencia",
        PaymentMethodType.wallet: "Billetera Digital",
        PaymentMethodType.other: "Otro",
    }
    return labels[normalize_payment_method_kind(kind)]
