"""
Errores tipados del ledger de inventario y ventas.

Cada error corresponde a una accion correctiva concreta del usuario. Todos
heredan de ``LedgerError`` (a su vez ``ValueError``, igual que los errores de
validacion historicos de los servicios) y exponen un ``code`` estable que la
capa HTTP usa para elegir el status y que el front end usa para el mensaje.
"""
from __future__ import annotations


class LedgerError(ValueError):
    code: str = "ledger_error"

    def __init__(self, message: str = "") -> None:
        super().__init__(message or self.__class__.__name__)
        self.message = message or self.__class__.__name__


class ScopeViolation(LedgerError):
    """La entidad existe pero pertenece a otra empresa o almacen."""

    code = "scope_violation"


class NotFound(LedgerError):
    code = "not_found"


class InsufficientStock(LedgerError):
    code = "insufficient_stock"


class InvalidAmount(LedgerError):
    code = "invalid_amount"


class Overpayment(LedgerError):
    code = "overpayment"


class HasPayments(LedgerError):
    code = "has_payments"


class AlreadyConverted(LedgerError):
    code = "already_converted"


class AlreadyScheduled(LedgerError):
    code = "already_scheduled"


class LineFull(LedgerError):
    code = "line_full"


class InvalidState(LedgerError):
    code = "invalid_state"


class ValidationError(LedgerError):
    code = "validation_error"


class InternalError(LedgerError):
    """Fallo inesperado de almacenamiento, emitido tras el rollback."""

    code = "internal_error"


__all__ = [
    "LedgerError",
    "ScopeViolation",
    "NotFound",
    "InsufficientStock",
    "InvalidAmount",
    "Overpayment",
    "HasPayments",
    "AlreadyConverted",
    "AlreadyScheduled",
    "LineFull",
    "InvalidState",
    "ValidationError",
    "InternalError",
]
