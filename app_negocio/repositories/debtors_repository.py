# ==============================================================================
# REPOSITORIO DE DEUDORES
# ==============================================================================
# Tabla "debtors": una fila por venta no pagada.
# ==============================================================================

from typing import Any, Dict, List, Optional

from app_negocio.models.entities import Debtor
from app_negocio.repositories.base import TableRepository


class DebtorsRepository(TableRepository):
    """
    Repositorio de deudores.

    Formato de fila:
    {
        "id": "...",
        "sale_id": "...",
        "customer_id": "...",
        "amount_owed": 30.0,
        "due_date": "2024-01-15T00:00:00+00:00",
        "is_resolved": false,
        "created_at": "...",
        "updated_at": "..."
    }
    """

    table = 'debtors'

    def create_debtor(
        self,
        sale_id: str,
        customer_id: str,
        amount_owed: float,
        due_date: str
    ) -> Dict[str, Any]:
        debtor = Debtor(
            id=None,
            sale_id=sale_id,
            customer_id=customer_id,
            amount_owed=amount_owed,
            due_date=due_date,
        )
        return self.insert(debtor.to_dict())

    def get_open(self) -> List[Dict[str, Any]]:
        """Deudores sin resolver, el vencimiento más cercano primero."""
        return self.store.select(self.table, {'is_resolved': False}, order=[('due_date', 'asc')])

    def get_by_sale(self, sale_id: str) -> Optional[Dict[str, Any]]:
        return self.find_by('sale_id', sale_id)

    def resolve(self, debtor_id: str) -> bool:
        """Marca el deudor como resuelto (refresca updated_at)."""
        return self.update_by_id(debtor_id, {'is_resolved': True})

    def delete_by_sale(self, sale_id: str) -> int:
        """Elimina los deudores de una venta. Retorna cuántos."""
        return self.store.delete(self.table, {'sale_id': sale_id})
