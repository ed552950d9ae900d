"""
Utilidades de sanitización para prevenir XSS y validar entrada de datos.

Este módulo proporciona funciones para limpiar y validar datos de entrada
antes de almacenarlos en la base de datos.
"""
from __future__ import annotations

import re
from typing import Any

from app.constants import (
    ADDRESS_MAX_LENGTH,
    NAME_MAX_LENGTH,
    NOTES_MAX_LENGTH,
    PHONE_MAX_LENGTH,
)


def sanitize_text(value: Any, max_length: int = 500) -> str:
    """
    Sanitiza texto de entrada para prevenir XSS y limitar longitud.

    Parámetros:
        value: Valor a sanitizar (se convierte a string)
        max_length: Longitud máxima permitida

    Retorna:
        String sanitizado y truncado
    """
    if value is None:
        return ""

    cleaned = str(value).strip()

    # Removemos tags HTML en lugar de escaparlos para no duplicar codificación.
    if "<" in cleaned and ">" in cleaned:
        cleaned = re.sub(r"<[^>]*>", "", cleaned)

    if len(cleaned) > max_length:
        cleaned = cleaned[:max_length]

    return cleaned


def sanitize_optional_text(value: Any, max_length: int = 500) -> str | None:
    """Como ``sanitize_text`` pero devuelve None para valores vacíos."""
    cleaned = sanitize_text(value, max_length=max_length)
    return cleaned or None


def sanitize_notes(value: Any) -> str:
    """
    Sanitiza campos de notas/observaciones.

    Parámetros:
        value: Texto de notas a sanitizar

    Retorna:
        String sanitizado
    """
    return sanitize_text(value, max_length=NOTES_MAX_LENGTH)


def sanitize_name(value: Any) -> str:
    """
    Sanitiza nombres (leads, proveedores, almacenes, etc).

    Parámetros:
        value: Nombre a sanitizar

    Retorna:
        String sanitizado
    """
    return sanitize_text(value, max_length=NAME_MAX_LENGTH)


def sanitize_address(value: Any) -> str | None:
    return sanitize_optional_text(value, max_length=ADDRESS_MAX_LENGTH)


def sanitize_phone(value: Any) -> str:
    """
    Sanitiza números de teléfono.

    Solo permite dígitos, espacios, guiones y el símbolo +.

    Parámetros:
        value: Teléfono a sanitizar

    Retorna:
        String sanitizado con solo caracteres válidos
    """
    if value is None:
        return ""

    cleaned = str(value).strip()
    cleaned = re.sub(r"[^\d\s\-+]", "", cleaned)

    return cleaned[:PHONE_MAX_LENGTH]


def digits_only(value: Any) -> str:
    """Extrae solo los dígitos (búsqueda por celular)."""
    return re.sub(r"\D", "", str(value or ""))
