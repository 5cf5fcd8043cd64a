# ==============================================================================
# REPOSITORIO BASE - Funcionalidad común para acceso a archivos JSON
# ==============================================================================
# - BaseRepository: lectura/escritura atómica de un archivo JSON con lock
# - ListRepository: archivo con una lista de registros (auditoría)
# - JsonDataStore: almacén de tablas con transacciones (todas las entidades)
# - TableRepository: acceso a UNA tabla del almacén
# ==============================================================================

import json
import os
import threading
import uuid
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from app_negocio.errors import StoreError
from app_negocio.models.dates import utc_now


class BaseRepository(ABC):
    """
    Clase base abstracta para todos los repositorios.
    Proporciona funcionalidad común para lectura/escritura de archivos JSON
    con manejo de concurrencia básico mediante locks.

    Al migrar a una base de datos hospedada:
    - Esta clase se reemplazará por una conexión a base de datos
    - Los métodos de lectura/escritura se convertirán en queries
    - Los locks se reemplazarán por transacciones de BD
    """

    # Lock global para evitar escrituras concurrentes a archivos
    _file_lock = threading.RLock()

    def __init__(self, file_path: str):
        """
        Inicializa el repositorio con la ruta al archivo JSON.

        Args:
            file_path: Ruta absoluta al archivo JSON de datos
        """
        self.file_path = file_path
        self._ensure_file_exists()

    def _ensure_file_exists(self) -> None:
        """Crea el archivo con datos vacíos si no existe."""
        if not os.path.exists(self.file_path):
            os.makedirs(os.path.dirname(self.file_path) or '.', exist_ok=True)
            self._write_raw(self._empty_data())

    @abstractmethod
    def _empty_data(self) -> Any:
        """
        Retorna la estructura de datos vacía para este repositorio.
        Debe ser implementado por cada repositorio concreto.
        """
        pass

    def _read_raw(self) -> Any:
        """
        Lee los datos crudos del archivo JSON.

        Returns:
            Datos parseados del JSON

        Raises:
            StoreError: Si el archivo tiene JSON inválido o no se puede leer
        """
        with self._file_lock:
            try:
                with open(self.file_path, 'r', encoding='utf-8') as f:
                    return json.load(f)
            except FileNotFoundError:
                return self._empty_data()
            except json.JSONDecodeError as e:
                raise StoreError(f"Archivo de datos corrupto ({os.path.basename(self.file_path)}): {e}")
            except OSError as e:
                raise StoreError(f"No se pudo leer {os.path.basename(self.file_path)}: {e}")

    def _write_raw(self, data: Any) -> None:
        """
        Escribe datos al archivo JSON.

        Args:
            data: Datos a serializar y escribir

        Raises:
            StoreError: Si hay error de escritura o serialización
        """
        with self._file_lock:
            # Escribir a archivo temporal primero para atomicidad
            temp_path = self.file_path + '.tmp'
            try:
                with open(temp_path, 'w', encoding='utf-8') as f:
                    json.dump(data, f, indent=2, ensure_ascii=False)
                # Reemplazar archivo original (operación atómica en la mayoría de sistemas)
                os.replace(temp_path, self.file_path)
            except (OSError, TypeError, ValueError) as e:
                # Limpiar archivo temporal si algo falla
                if os.path.exists(temp_path):
                    os.remove(temp_path)
                raise StoreError(f"No se pudo guardar {os.path.basename(self.file_path)}: {e}")


class ListRepository(BaseRepository):
    """
    Repositorio base para datos almacenados como lista.

    Ejemplo: audit.json -> [{...}, {...}]
    """

    def _empty_data(self) -> List:
        """Retorna lista vacía."""
        return []

    def get_all(self) -> List[Dict[str, Any]]:
        """
        Obtiene todos los registros.

        Returns:
            Lista con todos los datos
        """
        data = self._read_raw()
        return data if isinstance(data, list) else []

    def save_all(self, data: List[Dict[str, Any]]) -> None:
        """
        Guarda todos los registros (reemplazo completo).

        Args:
            data: Lista completa de datos
        """
        self._write_raw(data)


# ==============================================================================
# ALMACÉN DE TABLAS
# ==============================================================================

def _matches(row: Dict[str, Any], filters: Optional[Dict[str, Any]]) -> bool:
    """Igualdad por cada campo; una lista/tupla/set significa 'IN'."""
    if not filters:
        return True
    for key, expected in filters.items():
        value = row.get(key)
        if isinstance(expected, (list, tuple, set, frozenset)):
            if value not in expected:
                return False
        elif value != expected:
            return False
    return True


def _sort_key(value: Any) -> Tuple[bool, Any]:
    # None ordena primero en ascendente
    return (value is not None, value if value is not None else 0)


class JsonDataStore(BaseRepository):
    """
    Almacén de datos con tablas, guardado en un único archivo JSON.

    Formato de negocio.json:
    {
        "products": [{"id": "...", "name": "...", ...}],
        "sales": [...],
        ...
    }

    Operaciones: select / insert / update / delete (mismo contrato que un
    cliente de base de datos hospedada) y transaction() para agrupar varias
    escrituras en una sola operación atómica.

    Dentro de una transacción todas las operaciones trabajan sobre una copia
    en memoria; el archivo se escribe una sola vez al salir sin errores.
    Si algo falla se descarta la copia y el archivo queda intacto.
    """

    TABLES = (
        'products',
        'customers',
        'sales',
        'sale_items',
        'debtors',
        'notes',
        'profiles',
    )

    supports_transactions = True

    def __init__(self, base_path: str, file_name: str = 'negocio.json'):
        """
        Inicializa el almacén.

        Args:
            base_path: Directorio de datos
            file_name: Nombre del archivo JSON
        """
        self._local = threading.local()
        super().__init__(os.path.join(base_path, file_name))

    def _empty_data(self) -> Dict[str, List]:
        """Retorna todas las tablas vacías."""
        return {table: [] for table in self.TABLES}

    def _load(self) -> Dict[str, List[Dict[str, Any]]]:
        data = self._read_raw()
        if not isinstance(data, dict):
            raise StoreError(f"Formato inválido en {os.path.basename(self.file_path)}")
        for table in self.TABLES:
            data.setdefault(table, [])
        return data

    def _table(self, data: Dict[str, List], table: str) -> List[Dict[str, Any]]:
        if table not in self.TABLES:
            raise StoreError(f"Tabla desconocida: {table}")
        return data[table]

    @property
    def in_transaction(self) -> bool:
        return getattr(self._local, 'data', None) is not None

    # =========================================================================
    # TRANSACCIONES
    # =========================================================================

    @contextmanager
    def transaction(self) -> Iterator[None]:
        """
        Agrupa varias operaciones en una unidad atómica.

        Uso:
            with store.transaction():
                store.insert('sales', {...})
                store.update('products', {...}, {'id': pid})

        Las transacciones anidadas se unen a la exterior.
        Si nada cambió (solo lecturas) el archivo no se reescribe.
        """
        with self._file_lock:
            if self.in_transaction:
                yield
                return
            self._local.data = self._load()
            self._local.dirty = False
            try:
                yield
                if self._local.dirty:
                    self._write_raw(self._local.data)
            finally:
                self._local.data = None

    # =========================================================================
    # LECTURA
    # =========================================================================

    def select(
        self,
        table: str,
        filters: Optional[Dict[str, Any]] = None,
        order: Optional[Sequence[Tuple[str, str]]] = None,
        limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        """
        Lee filas de una tabla.

        Args:
            table: Nombre de la tabla
            filters: {campo: valor} por igualdad (lista = IN)
            order: [(campo, 'asc'|'desc'), ...] en orden de prioridad
            limit: Máximo de filas

        Returns:
            Copias de las filas que coinciden
        """
        with self._file_lock:
            data = self._local.data if self.in_transaction else self._load()
            rows = [dict(r) for r in self._table(data, table) if _matches(r, filters)]

        # Orden estable: aplicar claves de menor a mayor prioridad
        for field, direction in reversed(list(order or [])):
            rows.sort(key=lambda r: _sort_key(r.get(field)), reverse=(direction == 'desc'))

        if limit is not None:
            rows = rows[:limit]
        return rows

    # =========================================================================
    # ESCRITURA
    # =========================================================================

    def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        """
        Inserta una fila y retorna la fila con id y timestamps.
        """
        with self.transaction():
            rows = self._table(self._local.data, table)
            now = utc_now().isoformat()
            new_row = dict(row)
            new_row.setdefault('id', uuid.uuid4().hex)
            new_row.setdefault('created_at', now)
            new_row.setdefault('updated_at', now)
            rows.append(new_row)
            self._local.dirty = True
            return dict(new_row)

    def update(self, table: str, patch: Dict[str, Any], filters: Dict[str, Any]) -> int:
        """
        Actualiza las filas que coinciden con el filtro.

        Returns:
            Cantidad de filas actualizadas
        """
        if not filters:
            raise StoreError(f"update en {table} requiere un filtro")
        with self.transaction():
            now = utc_now().isoformat()
            count = 0
            for row in self._table(self._local.data, table):
                if _matches(row, filters):
                    row.update(patch)
                    if 'updated_at' not in patch:
                        row['updated_at'] = now
                    count += 1
            if count:
                self._local.dirty = True
            return count

    def delete(self, table: str, filters: Dict[str, Any]) -> int:
        """
        Elimina las filas que coinciden con el filtro.

        Returns:
            Cantidad de filas eliminadas
        """
        if not filters:
            raise StoreError(f"delete en {table} requiere un filtro")
        with self.transaction():
            rows = self._table(self._local.data, table)
            kept = [r for r in rows if not _matches(r, filters)]
            removed = len(rows) - len(kept)
            rows[:] = kept
            if removed:
                self._local.dirty = True
            return removed


class TableRepository:
    """
    Repositorio base para UNA tabla del almacén.

    Las subclases definen `table` y agregan consultas del dominio.
    """

    table = ''

    def __init__(self, store: JsonDataStore):
        self.store = store

    def get_all(self, order: Optional[Sequence[Tuple[str, str]]] = None) -> List[Dict[str, Any]]:
        """Obtiene todas las filas de la tabla."""
        return self.store.select(self.table, order=order)

    def get_by_id(self, record_id: str) -> Optional[Dict[str, Any]]:
        """Obtiene una fila por su ID o None."""
        rows = self.store.select(self.table, {'id': record_id}, limit=1)
        return rows[0] if rows else None

    def find_by(self, field: str, value: Any) -> Optional[Dict[str, Any]]:
        """Primera fila cuyo campo coincide, o None."""
        rows = self.store.select(self.table, {field: value}, limit=1)
        return rows[0] if rows else None

    def insert(self, row: Dict[str, Any]) -> Dict[str, Any]:
        return self.store.insert(self.table, row)

    def update_by_id(self, record_id: str, updates: Dict[str, Any]) -> bool:
        """True si se actualizó la fila."""
        return self.store.update(self.table, updates, {'id': record_id}) > 0

    def delete_by_id(self, record_id: str) -> bool:
        """True si se eliminó la fila."""
        return self.store.delete(self.table, {'id': record_id}) > 0
