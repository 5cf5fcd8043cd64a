# ==============================================================================
# REPOSITORIO DE AUDITORÍA
# ==============================================================================
# Encapsula todo el acceso a audit.json
# La auditoría se almacena como lista: [{log1}, {log2}, ...]
# Vive en su propio archivo, fuera de las transacciones del almacén:
# un evento registrado no se pierde si la operación que lo sigue falla.
# ==============================================================================

import os
from typing import Any, Dict, List
from .base import ListRepository
from app_negocio.models.dates import utc_now


class AuditRepository(ListRepository):
    """
    Repositorio para gestión del log de auditoría.

    Formato de datos en audit.json:
    [
        {
            "type": "VENTA",
            "user": "ana@tienda.com",
            "message": "Venta 3f2a... registrada ...",
            "timestamp": "2024-01-01T10:00:00+00:00",
            "related_id": "3f2a...",
            "details": {...}
        }
    ]
    """

    # Límite de registros para evitar archivos muy grandes
    MAX_LOGS = 10000

    def __init__(self, base_path: str):
        """
        Inicializa el repositorio de auditoría.

        Args:
            base_path: Directorio de datos
        """
        file_path = os.path.join(base_path, 'audit.json')
        super().__init__(file_path)

    def load(self) -> List[Dict[str, Any]]:
        """
        Carga todos los logs de auditoría.

        Returns:
            Lista de logs (más recientes primero)
        """
        logs = self.get_all()
        return sorted(logs, key=lambda x: x.get('timestamp', ''), reverse=True)

    def save(self, logs: List[Dict[str, Any]]) -> None:
        """
        Guarda todos los logs.
        Aplica límite de registros para evitar archivos muy grandes.
        """
        if len(logs) > self.MAX_LOGS:
            logs = logs[:self.MAX_LOGS]
        self.save_all(logs)

    def log(
        self,
        log_type: str,
        user: str,
        message: str,
        related_id: str = '',
        details: Dict[str, Any] = None
    ) -> None:
        """
        Registra un nuevo evento de auditoría.

        Args:
            log_type: Tipo de evento (VENTA, PAGO, STOCK, PRODUCTO, NOTA, SISTEMA, CONSISTENCIA)
            user: Usuario que realizó la acción
            message: Mensaje descriptivo humanizado
            related_id: ID relacionado (venta, deudor, producto...)
            details: Detalles adicionales
        """
        log_entry = {
            'type': log_type,
            'user': user or 'sistema',
            'message': message,
            'timestamp': utc_now().isoformat(),
            'related_id': related_id,
            'details': details or {}
        }

        with self._file_lock:
            logs = self.get_all()  # Sin ordenar para append eficiente
            logs.insert(0, log_entry)  # Insertar al inicio (más reciente primero)
            self.save(logs)

    def get_logs_by_type(self, log_type: str) -> List[Dict[str, Any]]:
        """Filtra logs por tipo (VENTA, PAGO, etc.)."""
        return [log for log in self.load() if log.get('type') == log_type]

    def get_recent_logs(self, limit: int = 100) -> List[Dict[str, Any]]:
        """Obtiene los logs más recientes."""
        return self.load()[:limit]
