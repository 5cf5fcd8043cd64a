# ==============================================================================
# REPOSITORIO DE CLIENTES
# ==============================================================================

from typing import Any, Dict, Optional

from app_negocio.models.entities import Customer
from app_negocio.repositories.base import TableRepository


class CustomersRepository(TableRepository):
    """
    Repositorio de clientes.

    El nombre es la clave de búsqueda: la coincidencia es exacta
    (sensible a mayúsculas, sin normalizar espacios internos).
    """

    table = 'customers'

    def find_by_name(self, name: str) -> Optional[Dict[str, Any]]:
        """Primer cliente con exactamente ese nombre, o None."""
        rows = self.store.select(self.table, {'name': name}, order=[('created_at', 'asc')], limit=1)
        return rows[0] if rows else None

    def create(self, name: str, email: str = None, phone: str = None) -> Dict[str, Any]:
        return self.insert(Customer(id=None, name=name, email=email, phone=phone).to_dict())
