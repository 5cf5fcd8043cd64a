# ==============================================================================
# CAPA DE REPOSITORIOS - Acceso a datos
# ==============================================================================
# Esta capa encapsula todo el acceso a la persistencia (actualmente JSON).
# Para migrar a una base de datos hospedada solo hay que reemplazar
# JsonDataStore por un cliente que implemente IDataStore.
#
# ESTRUCTURA:
# ├── interfaces.py            → Protocolos (contratos)
# ├── base.py                  → JsonDataStore, TableRepository, ListRepository
# ├── products_repository.py   → Tabla products
# ├── customers_repository.py  → Tabla customers
# ├── sales_repository.py      → Tablas sales + sale_items
# ├── debtors_repository.py    → Tabla debtors
# ├── notes_repository.py      → Tabla notes
# ├── profiles_repository.py   → Tabla profiles
# └── audit_repository.py      → Acceso a audit.json
# ==============================================================================

# Interfaces
from .interfaces import (
    IDataStore,
    IProductsRepository,
    ISalesRepository,
    IDebtorsRepository,
    IAuditRepository,
)

# Implementaciones concretas (JSON)
from .base import BaseRepository, ListRepository, JsonDataStore, TableRepository
from .products_repository import ProductsRepository
from .customers_repository import CustomersRepository
from .sales_repository import SalesRepository
from .debtors_repository import DebtorsRepository
from .notes_repository import NotesRepository
from .profiles_repository import ProfilesRepository
from .audit_repository import AuditRepository

__all__ = [
    # Interfaces
    'IDataStore',
    'IProductsRepository',
    'ISalesRepository',
    'IDebtorsRepository',
    'IAuditRepository',

    # Clases base
    'BaseRepository',
    'ListRepository',
    'JsonDataStore',
    'TableRepository',

    # Implementaciones JSON
    'ProductsRepository',
    'CustomersRepository',
    'SalesRepository',
    'DebtorsRepository',
    'NotesRepository',
    'ProfilesRepository',
    'AuditRepository',
]
