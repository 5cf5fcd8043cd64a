# ==============================================================================
# app_negocio - Inventario, ventas, deudores, notas y reportes
# ==============================================================================
# Uso:
#   from app_negocio.main import create_app
#   from app_negocio.app_container import get_container
# ==============================================================================

__version__ = '1.0.0'
