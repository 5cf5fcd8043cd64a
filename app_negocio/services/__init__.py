# ==============================================================================
# CAPA DE SERVICIOS - Lógica de negocio
# ==============================================================================
# Esta capa contiene TODA la lógica de negocio de la aplicación.
#
# PRINCIPIOS:
# 1. Los servicios orquestan operaciones entre repositorios
# 2. Aplican reglas de negocio y validaciones (lanzan errors.BusinessError)
# 3. Las rutas (controllers) solo llaman a servicios
# 4. El usuario llega como parámetro (Identity), nunca desde la sesión
#
# ESTRUCTURA:
# ├── inventory_service.py → Productos y libro de stock (reserve/release)
# ├── sales_service.py     → Registrar / eliminar / listar ventas
# ├── debt_service.py      → Deudores, cobros, clasificación de vencimientos
# ├── stats_service.py     → Agregaciones puras + panel y análisis
# ├── cart_service.py      → Carrito en sesión
# ├── note_service.py      → Notas por usuario
# ├── user_service.py      → Registro y autenticación
# └── audit_service.py     → Logs de actividad
# ==============================================================================

from app_negocio.services.audit_service import AuditService
from app_negocio.services.inventory_service import InventoryService
from app_negocio.services.sales_service import SalesService
from app_negocio.services.debt_service import DebtService, classify
from app_negocio.services.stats_service import StatsService
from app_negocio.services.cart_service import CartService
from app_negocio.services.note_service import NoteService
from app_negocio.services.user_service import UserService

__all__ = [
    'AuditService',
    'InventoryService',
    'SalesService',
    'DebtService',
    'classify',
    'StatsService',
    'CartService',
    'NoteService',
    'UserService',
]
