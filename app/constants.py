"""
Constantes centralizadas del sistema.

Este módulo contiene todas las constantes mágicas del sistema
para facilitar su mantenimiento y configuración.
"""
from __future__ import annotations

# =============================================================================
# LÍMITES DE BÚSQUEDA Y PAGINACIÓN
# =============================================================================

# Límite por defecto en listados
DEFAULT_LIST_LIMIT: int = 100

# Límite máximo aceptado en listados
MAX_LIST_LIMIT: int = 500


# =============================================================================
# LÍMITES DE TEXTO
# =============================================================================

# Longitud máxima de notas/observaciones
NOTES_MAX_LENGTH: int = 250

# Longitud máxima de descripciones
DESCRIPTION_MAX_LENGTH: int = 500

# Longitud máxima de títulos de item
TITLE_MAX_LENGTH: int = 150

# Longitud máxima de nombres
NAME_MAX_LENGTH: int = 100

# Longitud máxima de direcciones
ADDRESS_MAX_LENGTH: int = 300

# Longitud máxima de un número de contacto (celular/WhatsApp)
PHONE_MAX_LENGTH: int = 20


# =============================================================================
# COMPRAS
# =============================================================================

# Prefijo de codigo de compra: COMP-<empresa>-<correlativo>
PURCHASE_CODE_PREFIX: str = "COMP"

# Ancho del correlativo de compra
PURCHASE_CODE_DIGITS: int = 5


# =============================================================================
# ALMACENES
# =============================================================================

DEFAULT_BRANCH_NAME: str = "Almacen Principal"
