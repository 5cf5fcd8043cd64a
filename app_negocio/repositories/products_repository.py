# ==============================================================================
# REPOSITORIO DE PRODUCTOS
# ==============================================================================
# Tabla "products": nombre, categoría, costo, precio sugerido, stock, activo.
# ==============================================================================

from typing import Any, Dict, Iterable, List, Optional

from app_negocio.repositories.base import TableRepository


class ProductsRepository(TableRepository):
    """
    Repositorio para gestión de productos.

    Formato de fila:
    {
        "id": "9c1d...",
        "name": "Arroz 5kg",
        "category": "Abarrotes",
        "cost": 10.0,
        "selling_price": 15.0,
        "stock_quantity": 20,
        "is_active": true
    }
    """

    table = 'products'

    def list_active(self) -> List[Dict[str, Any]]:
        """Productos disponibles para la venta, ordenados por nombre."""
        return self.store.select(self.table, {'is_active': True}, order=[('name', 'asc')])

    def get_many(self, product_ids: Iterable[str]) -> Dict[str, Dict[str, Any]]:
        """
        Obtiene varios productos de una sola lectura.

        Returns:
            Diccionario {product_id: fila}
        """
        ids = list(set(product_ids))
        if not ids:
            return {}
        rows = self.store.select(self.table, {'id': ids})
        return {row['id']: row for row in rows}

    def set_stock(self, product_id: str, stock_quantity: int) -> bool:
        """Fija el stock de un producto. True si existía."""
        return self.update_by_id(product_id, {'stock_quantity': stock_quantity})

    def get_stock(self, product_id: str) -> Optional[int]:
        product = self.get_by_id(product_id)
        if product is None:
            return None
        return int(product.get('stock_quantity', 0) or 0)
