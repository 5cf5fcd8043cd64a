# ==============================================================================
# INTERFACES DE REPOSITORIOS
# ==============================================================================
#
# Contratos que deben cumplir el almacén de datos y los repositorios.
# Los servicios dependen de estas interfaces, no de JsonDataStore:
# un cliente de base de datos hospedada puede reemplazarlo implementando
# IDataStore (select / insert / update / delete / transaction).
#
# ==============================================================================

from datetime import datetime
from typing import Any, ContextManager, Dict, List, Optional, Protocol, Sequence, Tuple, runtime_checkable


# ==============================================================================
# ALMACÉN DE DATOS
# ==============================================================================

@runtime_checkable
class IDataStore(Protocol):
    """
    Interfaz del almacén de tablas.

    supports_transactions indica si transaction() agrupa las escrituras
    de forma atómica o solo las ejecuta en secuencia.
    """

    supports_transactions: bool

    def select(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        order: Optional[Sequence[Tuple[str, str]]] = None,
        limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """Lee filas por igualdad de campos."""
        ...

    def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        """Inserta una fila y la retorna con id."""
        ...

    def update(self, table: str, patch: Dict[str, Any], filters: Dict[str, Any]) -> int:
        """Actualiza filas; retorna cuántas."""
        ...

    def delete(self, table: str, filters: Dict[str, Any]) -> int:
        """Elimina filas; retorna cuántas."""
        ...

    def transaction(self) -> ContextManager[None]:
        """Agrupa operaciones en una unidad atómica."""
        ...


# ==============================================================================
# INTERFACES ESPECÍFICAS POR DOMINIO
# ==============================================================================

@runtime_checkable
class IProductsRepository(Protocol):

    def get_by_id(self, record_id: str) -> Optional[Dict[str, Any]]:
        ...

    def get_many(self, product_ids: Sequence[str]) -> Dict[str, Dict[str, Any]]:
        ...

    def list_active(self) -> List[Dict[str, Any]]:
        ...

    def set_stock(self, product_id: str, quantity: int) -> bool:
        ...


@runtime_checkable
class ISalesRepository(Protocol):

    def create_sale(self, header: Dict[str, Any]) -> Dict[str, Any]:
        ...

    def create_items(self, sale_id: str, items: Sequence[Dict[str, Any]]) -> List[Dict[str, Any]]:
        ...

    def get_items(self, sale_id: str) -> List[Dict[str, Any]]:
        ...

    def delete_sale(self, sale_id: str) -> bool:
        ...

    def get_sales_by_date_range(
        self,
        from_date: Optional[datetime] = None,
        to_date: Optional[datetime] = None
    ) -> List[Dict[str, Any]]:
        ...


@runtime_checkable
class IDebtorsRepository(Protocol):

    def get_open(self) -> List[Dict[str, Any]]:
        ...

    def get_by_sale(self, sale_id: str) -> Optional[Dict[str, Any]]:
        ...

    def resolve(self, debtor_id: str) -> bool:
        ...


@runtime_checkable
class IAuditRepository(Protocol):
    """Interfaz para el repositorio de auditoría."""

    def log(
        self,
        log_type: str,
        user: str,
        message: str,
        related_id: str = '',
        details: Optional[Dict[str, Any]] = None
    ) -> None:
        ...

    def get_recent_logs(self, limit: int = 100) -> List[Dict[str, Any]]:
        ...
