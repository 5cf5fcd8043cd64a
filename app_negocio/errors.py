# ==============================================================================
# ERRORES DEL NEGOCIO
# ==============================================================================
# Excepciones que los servicios lanzan y las rutas convierten en
# respuestas JSON {"ok": False, "error": "..."}.
# El mensaje siempre es legible por el usuario final.
# ==============================================================================

from typing import List


class BusinessError(Exception):
    """Base de todos los errores que se muestran al usuario."""

    http_status = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(BusinessError):
    """Datos inválidos. Se rechaza antes de escribir nada."""
    pass


class InsufficientStock(ValidationError):
    """La cantidad solicitada supera el stock de uno o más productos."""

    http_status = 409

    def __init__(self, product_names: List[str], details: List[str] = None):
        self.product_names = list(product_names)
        message = 'Stock insuficiente para: ' + ', '.join(self.product_names)
        if details:
            message += ' (' + '; '.join(details) + ')'
        super().__init__(message)


class NotAuthenticated(BusinessError):
    """Operación que requiere un usuario y no hay sesión activa."""

    http_status = 401

    def __init__(self, message: str = 'Debes iniciar sesión.'):
        super().__init__(message)


class NotFound(BusinessError):
    """El registro solicitado no existe."""

    http_status = 404


class StoreError(BusinessError):
    """Fallo de lectura/escritura del almacén de datos. No se reintenta."""

    http_status = 500


class ConsistencyWarning(UserWarning):
    """Deudor y venta en estados contradictorios."""
    pass
