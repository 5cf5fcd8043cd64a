# ==============================================================================
# CAPA DE MODELOS - Estructuras de datos del sistema
# ==============================================================================
# Este módulo define todas las entidades del dominio usando dataclasses.
# Beneficios:
#   - Type hints para mejor documentación y autocompletado
#   - Fácil serialización/deserialización para JSON
#   - Independiente del mecanismo de persistencia
# ==============================================================================

from .entities import (
    # Identidad
    Identity,

    # Inventario y clientes
    Product,
    Customer,

    # Ventas
    CartLine,
    Sale,
    SaleItem,
    PaymentStatus,
    PAYMENT_STATUSES,

    # Deudas
    Debtor,
    DueStatus,

    # Notas
    Note,
    NoteCategory,
    NOTE_CATEGORIES,

    # Auditoría
    AuditType,
)
from .dates import utc_now, parse_datetime, to_iso

__all__ = [
    'Identity',
    'Product',
    'Customer',
    'CartLine',
    'Sale',
    'SaleItem',
    'PaymentStatus',
    'PAYMENT_STATUSES',
    'Debtor',
    'DueStatus',
    'Note',
    'NoteCategory',
    'NOTE_CATEGORIES',
    'AuditType',
    'utc_now',
    'parse_datetime',
    'to_iso',
]
