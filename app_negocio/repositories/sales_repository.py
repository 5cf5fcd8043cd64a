# ==============================================================================
# REPOSITORIO DE VENTAS
# ==============================================================================
# Encapsula el acceso a las tablas "sales" (cabecera) y "sale_items" (líneas).
# Una venta es dueña de sus líneas: se crean y se eliminan juntas.
# ==============================================================================

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from app_negocio.models.dates import parse_datetime
from app_negocio.repositories.base import TableRepository


class SalesRepository(TableRepository):
    """
    Repositorio para gestión de ventas.

    Formato de cabecera en "sales":
    {
        "id": "3f2a...",
        "customer_id": "...",
        "user_id": "...",
        "total_amount": 30.0,
        "total_cost": 20.0,
        "payment_status": "pending",
        "sale_date": "2024-01-01T10:00:00+00:00",
        "due_date": "2024-01-15T00:00:00+00:00",
        "notes": null
    }

    Formato de línea en "sale_items":
    {"id": "...", "sale_id": "3f2a...", "product_id": "...",
     "quantity": 2, "unit_price": 15.0, "unit_cost": 10.0}
    """

    table = 'sales'
    items_table = 'sale_items'

    # =========================================================================
    # ESCRITURA
    # =========================================================================

    def create_sale(self, header: Dict[str, Any]) -> Dict[str, Any]:
        """
        Inserta la cabecera de una venta.

        Returns:
            Fila insertada (con id)
        """
        return self.insert(header)

    def create_items(self, sale_id: str, items: Iterable[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Inserta las líneas de una venta."""
        created = []
        for item in items:
            row = dict(item)
            row['sale_id'] = sale_id
            created.append(self.store.insert(self.items_table, row))
        return created

    def set_payment_status(self, sale_id: str, payment_status: str) -> bool:
        """Cambia el estado de pago. True si la venta existía."""
        return self.update_by_id(sale_id, {'payment_status': payment_status})

    def delete_sale(self, sale_id: str) -> bool:
        """
        Elimina la venta y sus líneas.

        Returns:
            True si la cabecera existía
        """
        with self.store.transaction():
            self.store.delete(self.items_table, {'sale_id': sale_id})
            return self.delete_by_id(sale_id)

    # =========================================================================
    # LECTURA
    # =========================================================================

    def get_items(self, sale_id: str) -> List[Dict[str, Any]]:
        """Líneas de una venta."""
        return self.store.select(self.items_table, {'sale_id': sale_id}, order=[('created_at', 'asc')])

    def get_items_for_sales(self, sale_ids: Iterable[str]) -> List[Dict[str, Any]]:
        """Líneas de varias ventas en una sola lectura."""
        ids = list(set(sale_ids))
        if not ids:
            return []
        return self.store.select(self.items_table, {'sale_id': ids})

    def list_sales(self) -> List[Dict[str, Any]]:
        """Todas las ventas, más recientes primero."""
        return self.get_all(order=[('created_at', 'desc')])

    def get_sales_by_date_range(
        self,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None
    ) -> List[Dict[str, Any]]:
        """
        Ventas con sale_date dentro de [from_date, to_date] (ambos inclusive).

        Args:
            from_date: Fecha inicio (None = sin límite)
            to_date: Fecha fin (None = sin límite)

        Returns:
            Lista de ventas en el rango
        """
        sales = self.get_all(order=[('sale_date', 'asc')])

        if from_date is None and to_date is None:
            return sales

        filtered = []
        for sale in sales:
            dt = parse_datetime(sale.get('sale_date'))
            if dt is None:
                continue
            if from_date and dt < from_date:
                continue
            if to_date and dt > to_date:
                continue
            filtered.append(sale)

        return filtered
