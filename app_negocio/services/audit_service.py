# ==============================================================================
# SERVICIO DE AUDITORÍA
# ==============================================================================
# Centraliza toda la lógica de registro de auditoría.
# Formatea mensajes humanizados y categoriza eventos.
# Los servicios registran eventos DESPUÉS de confirmar la transacción:
# nunca queda en la auditoría algo que se revirtió.
# ==============================================================================

from typing import Any, Dict, List

from app_negocio.models.entities import AuditType
from app_negocio.repositories.audit_repository import AuditRepository


class AuditService:
    """
    Servicio para registro y consulta de auditoría.

    Centraliza:
    - Registro de eventos con mensajes humanizados
    - Categorización de eventos (VENTA, PAGO, STOCK, PRODUCTO, NOTA, SISTEMA, CONSISTENCIA)
    - Búsqueda y filtrado de logs

    La regla de oro: Si entra dinero → siempre log de PAGO
    """

    TYPE_VENTA = AuditType.VENTA.value
    TYPE_PAGO = AuditType.PAGO.value
    TYPE_STOCK = AuditType.STOCK.value
    TYPE_PRODUCTO = AuditType.PRODUCTO.value
    TYPE_NOTA = AuditType.NOTA.value
    TYPE_SISTEMA = AuditType.SISTEMA.value
    TYPE_CONSISTENCIA = AuditType.CONSISTENCIA.value

    def __init__(self, audit_repo: AuditRepository):
        """
        Inicializa el servicio de auditoría.

        Args:
            audit_repo: Repositorio de auditoría
        """
        self.audit_repo = audit_repo

    # =========================================================================
    # REGISTRO DE EVENTOS
    # =========================================================================

    def log(
        self,
        log_type: str,
        user: str,
        message: str,
        related_id: str = '',
        details: Dict[str, Any] = None
    ) -> None:
        """
        Registra un evento de auditoría genérico.

        Args:
            log_type: Tipo de evento (VENTA, PAGO, STOCK, etc.)
            user: Usuario que realizó la acción
            message: Mensaje descriptivo humanizado
            related_id: ID relacionado (venta, deudor, producto...)
            details: Detalles adicionales
        """
        self.audit_repo.log(log_type, user, message, related_id, details)

    def log_sale_created(
        self,
        user: str,
        sale_id: str,
        customer_name: str,
        total: float,
        status: str,
        items_count: int
    ) -> None:
        """
        Registra la creación de una venta.

        Args:
            user: Usuario que creó la venta
            sale_id: ID de la venta
            customer_name: Cliente
            total: Total de la venta
            status: Estado de pago inicial
            items_count: Cantidad de líneas
        """
        message = (
            f"Venta {sale_id} registrada por {user} - Cliente: {customer_name} - "
            f"Total: $ {total:.2f} - {items_count} items - Estado: {status}"
        )
        self.log(
            self.TYPE_VENTA,
            user,
            message,
            sale_id,
            {'customer': customer_name, 'total': total, 'status': status, 'items_count': items_count}
        )

    def log_sale_deleted(self, user: str, sale_id: str, total: float, debtors_removed: int = 0) -> None:
        """Registra la eliminación de una venta (y de sus deudores)."""
        message = f"Venta {sale_id} eliminada por {user} - Total: $ {total:.2f}"
        if debtors_removed:
            message += f" - {debtors_removed} deuda(s) eliminada(s)"
        self.log(
            self.TYPE_VENTA,
            user,
            message,
            sale_id,
            {'total': total, 'debtors_removed': debtors_removed}
        )

    def log_payment(self, user: str, debtor_id: str, sale_id: str, amount: float) -> None:
        """
        Registra un pago recibido.
        REGLA DE ORO: Si entra dinero, siempre se debe llamar esta función.

        Args:
            user: Usuario que registró el pago
            debtor_id: Deudor resuelto
            sale_id: Venta que pasa a pagada
            amount: Monto cobrado
        """
        message = f"Pago recibido de venta {sale_id}: $ {amount:.2f} - PAGADO COMPLETO - Registrado por {user}"
        self.log(
            self.TYPE_PAGO,
            user,
            message,
            debtor_id,
            {'sale_id': sale_id, 'amount': amount}
        )

    def log_stock_reserved(self, user: str, sale_id: str, items: List[Dict[str, Any]]) -> None:
        """
        Registra la salida de stock por una venta.

        Args:
            user: Usuario
            sale_id: ID de la venta
            items: Líneas descontadas [{name, quantity, new_stock}]
        """
        items_desc = ", ".join([f"{i.get('quantity')}x {i.get('name', '')}" for i in items[:3]])
        if len(items) > 3:
            items_desc += f" (+{len(items) - 3} más)"

        message = f"Stock descontado por venta {sale_id}: {items_desc}"
        self.log(self.TYPE_STOCK, user, message, sale_id, {'items': items})

    def log_stock_released(
        self,
        user: str,
        sale_id: str,
        items: List[Dict[str, Any]],
        skipped: List[str] = None
    ) -> None:
        """
        Registra la devolución de stock al eliminar una venta.

        Args:
            user: Usuario
            sale_id: ID de la venta
            items: Líneas devueltas [{name, quantity, new_stock}]
            skipped: IDs de productos que ya no existen (no se devolvió nada)
        """
        message = f"Stock devuelto de venta {sale_id}: {len(items)} producto(s)"
        if skipped:
            message += f" - {len(skipped)} producto(s) ya no existen"
        self.log(
            self.TYPE_STOCK,
            user,
            message,
            sale_id,
            {'items': items, 'skipped': list(skipped or [])}
        )

    def log_product_created(self, user: str, product_id: str, name: str) -> None:
        """Registra la creación de un producto."""
        message = f"Producto creado: {name} por {user}"
        self.log(self.TYPE_PRODUCTO, user, message, product_id, {'name': name})

    def log_product_updated(
        self,
        user: str,
        product_id: str,
        name: str,
        changes: Dict[str, Any] = None
    ) -> None:
        """Registra actualización de un producto."""
        message = f"Producto actualizado: {name} por {user}"
        self.log(self.TYPE_PRODUCTO, user, message, product_id, {'changes': changes})

    def log_note_created(self, user: str, note_id: str, title: str) -> None:
        message = f"Nota creada: {title} por {user}"
        self.log(self.TYPE_NOTA, user, message, note_id)

    def log_note_deleted(self, user: str, note_id: str, title: str) -> None:
        message = f"Nota eliminada: {title} por {user}"
        self.log(self.TYPE_NOTA, user, message, note_id)

    def log_user_login(self, user: str) -> None:
        """Registra un inicio de sesión."""
        message = f"Inicio de sesión: {user}"
        self.log(self.TYPE_SISTEMA, user, message)

    def log_user_logout(self, user: str) -> None:
        """Registra un cierre de sesión."""
        message = f"Cierre de sesión: {user}"
        self.log(self.TYPE_SISTEMA, user, message)

    def log_user_registered(self, user: str) -> None:
        message = f"Usuario registrado: {user}"
        self.log(self.TYPE_SISTEMA, user, message)

    def log_consistency_issue(
        self,
        user: str,
        message: str,
        related_id: str = '',
        details: Dict[str, Any] = None
    ) -> None:
        """Registra una inconsistencia entre deudores y ventas."""
        self.log(self.TYPE_CONSISTENCIA, user, message, related_id, details)

    # =========================================================================
    # CONSULTAS
    # =========================================================================

    def get_recent_logs(self, limit: int = 100) -> List[Dict[str, Any]]:
        return self.audit_repo.get_recent_logs(limit)

    def get_logs_by_type(self, log_type: str) -> List[Dict[str, Any]]:
        return self.audit_repo.get_logs_by_type(log_type)
