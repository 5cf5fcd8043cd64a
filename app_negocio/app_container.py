# ==============================================================================
# CONTENEDOR DE DEPENDENCIAS - Inyección de servicios
# ==============================================================================
# Este módulo proporciona una forma centralizada de obtener instancias
# de repositorios y servicios. Facilita:
#   - Inyección de dependencias
#   - Testing (cada test usa su propio directorio de datos)
#   - Migración gradual (cambiar el almacén sin tocar servicios)
#
# ═══════════════════════════════════════════════════════════════════════════════
# MIGRACIÓN A BASE DE DATOS HOSPEDADA
# ═══════════════════════════════════════════════════════════════════════════════
#
# Todos los repositorios de tablas comparten UN JsonDataStore. Para migrar
# basta con reemplazar la propiedad `store` por un cliente que implemente
# IDataStore; los repositorios y servicios no cambian.
# ==============================================================================

import os
from typing import Optional

# ═══════════════════════════════════════════════════════════════════════════════
# REPOSITORIOS - Capa de persistencia
# ═══════════════════════════════════════════════════════════════════════════════
from app_negocio.repositories import (
    JsonDataStore,
    ProductsRepository,
    CustomersRepository,
    SalesRepository,
    DebtorsRepository,
    NotesRepository,
    ProfilesRepository,
    AuditRepository,
)

# ═══════════════════════════════════════════════════════════════════════════════
# SERVICIOS - Capa de lógica de negocio
# ═══════════════════════════════════════════════════════════════════════════════
from app_negocio.services import (
    AuditService,
    InventoryService,
    SalesService,
    DebtService,
    StatsService,
    CartService,
    NoteService,
    UserService,
)


class AppContainer:
    """
    Contenedor de dependencias de la aplicación.

    Implementa el patrón Singleton para asegurar una única instancia
    de cada repositorio y servicio.

    Uso:
        container = AppContainer(base_path='/path/to/data')
        sales_service = container.sales_service
        debt_service = container.debt_service
    """

    _instance: Optional['AppContainer'] = None

    def __new__(cls, base_path: str = None):
        """Singleton pattern."""
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self, base_path: str = None):
        """
        Inicializa el contenedor.

        Args:
            base_path: Directorio de datos (negocio.json, audit.json)
        """
        if self._initialized:
            return

        self._base_path = base_path or os.path.dirname(os.path.abspath(__file__))
        self.reset()
        self._initialized = True

    @property
    def base_path(self) -> str:
        return self._base_path

    # =========================================================================
    # REPOSITORIOS
    # =========================================================================

    @property
    def store(self) -> JsonDataStore:
        """Almacén de tablas compartido (singleton)."""
        if self._store is None:
            self._store = JsonDataStore(self._base_path)
        return self._store

    @property
    def products_repo(self) -> ProductsRepository:
        if self._products_repo is None:
            self._products_repo = ProductsRepository(self.store)
        return self._products_repo

    @property
    def customers_repo(self) -> CustomersRepository:
        if self._customers_repo is None:
            self._customers_repo = CustomersRepository(self.store)
        return self._customers_repo

    @property
    def sales_repo(self) -> SalesRepository:
        if self._sales_repo is None:
            self._sales_repo = SalesRepository(self.store)
        return self._sales_repo

    @property
    def debtors_repo(self) -> DebtorsRepository:
        if self._debtors_repo is None:
            self._debtors_repo = DebtorsRepository(self.store)
        return self._debtors_repo

    @property
    def notes_repo(self) -> NotesRepository:
        if self._notes_repo is None:
            self._notes_repo = NotesRepository(self.store)
        return self._notes_repo

    @property
    def profiles_repo(self) -> ProfilesRepository:
        if self._profiles_repo is None:
            self._profiles_repo = ProfilesRepository(self.store)
        return self._profiles_repo

    @property
    def audit_repo(self) -> AuditRepository:
        """Repositorio de auditoría (singleton)."""
        if self._audit_repo is None:
            self._audit_repo = AuditRepository(self._base_path)
        return self._audit_repo

    # =========================================================================
    # SERVICIOS
    # =========================================================================

    @property
    def audit_service(self) -> AuditService:
        """Servicio de auditoría (singleton)."""
        if self._audit_service is None:
            self._audit_service = AuditService(self.audit_repo)
        return self._audit_service

    @property
    def inventory_service(self) -> InventoryService:
        """Servicio de inventario (singleton)."""
        if self._inventory_service is None:
            self._inventory_service = InventoryService(self.products_repo, self.audit_service)
        return self._inventory_service

    @property
    def sales_service(self) -> SalesService:
        """Servicio de ventas (singleton)."""
        if self._sales_service is None:
            self._sales_service = SalesService(
                self.sales_repo,
                self.customers_repo,
                self.debtors_repo,
                self.inventory_service,
                self.audit_service
            )
        return self._sales_service

    @property
    def debt_service(self) -> DebtService:
        """Servicio de deudas (singleton)."""
        if self._debt_service is None:
            self._debt_service = DebtService(
                self.debtors_repo,
                self.sales_repo,
                self.customers_repo,
                self.audit_service
            )
        return self._debt_service

    @property
    def stats_service(self) -> StatsService:
        """Servicio de reportes (singleton)."""
        if self._stats_service is None:
            self._stats_service = StatsService(
                self.sales_repo,
                self.products_repo,
                self.debtors_repo,
                self.customers_repo
            )
        return self._stats_service

    @property
    def cart_service(self) -> CartService:
        """Servicio de carrito (singleton)."""
        if self._cart_service is None:
            self._cart_service = CartService(self.inventory_service, self.sales_service)
        return self._cart_service

    @property
    def note_service(self) -> NoteService:
        if self._note_service is None:
            self._note_service = NoteService(self.notes_repo, self.audit_service)
        return self._note_service

    @property
    def user_service(self) -> UserService:
        """Servicio de usuarios (singleton)."""
        if self._user_service is None:
            self._user_service = UserService(self.profiles_repo, self.audit_service)
        return self._user_service

    # =========================================================================
    # UTILIDADES
    # =========================================================================

    def reset(self) -> None:
        """
        Reinicia todas las instancias.
        Útil para testing o para recargar datos.
        """
        self._store = None
        self._products_repo = None
        self._customers_repo = None
        self._sales_repo = None
        self._debtors_repo = None
        self._notes_repo = None
        self._profiles_repo = None
        self._audit_repo = None

        self._audit_service = None
        self._inventory_service = None
        self._sales_service = None
        self._debt_service = None
        self._stats_service = None
        self._cart_service = None
        self._note_service = None
        self._user_service = None

    @classmethod
    def get_instance(cls, base_path: str = None) -> 'AppContainer':
        """
        Obtiene la instancia singleton del contenedor.

        Args:
            base_path: Directorio de datos (solo se usa en primera llamada)

        Returns:
            Instancia del contenedor
        """
        if cls._instance is None:
            return cls(base_path)
        return cls._instance

    @classmethod
    def reset_instance(cls) -> None:
        """Elimina la instancia singleton (útil para tests)."""
        if cls._instance is not None:
            cls._instance.reset()
            cls._instance = None


def get_container(base_path: str = None) -> AppContainer:
    """
    Obtiene el contenedor de dependencias global.

    Args:
        base_path: Directorio de datos

    Returns:
        Instancia del contenedor
    """
    return AppContainer.get_instance(base_path)
