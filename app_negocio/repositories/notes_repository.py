# ==============================================================================
# REPOSITORIO DE NOTAS
# ==============================================================================

from typing import Any, Dict, List

from app_negocio.repositories.base import TableRepository


class NotesRepository(TableRepository):
    """Notas por usuario: fijadas primero, luego las más recientes."""

    table = 'notes'

    def list_for_user(self, user_id: str) -> List[Dict[str, Any]]:
        return self.store.select(
            self.table,
            {'user_id': user_id},
            order=[('is_pinned', 'desc'), ('created_at', 'desc')]
        )
