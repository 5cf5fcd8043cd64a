# ==============================================================================
# SERVICIO DE NOTAS
# ==============================================================================
# Notas libres por usuario. Cada nota pertenece a quien la crea y solo
# su dueño la ve, modifica o elimina.
# ==============================================================================

from typing import Any, Dict, List, Optional

from app_negocio.errors import NotAuthenticated, NotFound, ValidationError
from app_negocio.models.entities import Identity, NOTE_CATEGORIES, Note, NoteCategory
from app_negocio.repositories.notes_repository import NotesRepository
from app_negocio.services.audit_service import AuditService
from app_negocio.services.inventory_service import parse_text


class NoteService:
    """Servicio de notas (crear, editar, fijar, eliminar, listar)."""

    UPDATABLE_FIELDS = ('title', 'content', 'category', 'is_pinned')

    def __init__(self, notes_repo: NotesRepository, audit_service: AuditService = None):
        self.notes_repo = notes_repo
        self.audit_service = audit_service

    @staticmethod
    def _require_identity(identity: Optional[Identity]) -> Identity:
        if identity is None or not identity.id:
            raise NotAuthenticated()
        return identity

    @staticmethod
    def _parse_category(category: Any) -> str:
        value = parse_text(category, 'Categoría').lower() or NoteCategory.GENERAL.value
        if value not in NOTE_CATEGORIES:
            raise ValidationError(
                f"Categoría inválida: {category!r}. Válidas: {', '.join(sorted(NOTE_CATEGORIES))}"
            )
        return value

    def _get_owned(self, identity: Identity, note_id: str) -> Dict[str, Any]:
        note = self.notes_repo.get_by_id(note_id) if note_id else None
        # Una nota ajena se reporta igual que una inexistente
        if note is None or note.get('user_id') != identity.id:
            raise NotFound('Nota no encontrada')
        return note

    def list_notes(self, identity: Identity) -> List[Dict[str, Any]]:
        """Notas del usuario: fijadas primero, luego las más recientes."""
        identity = self._require_identity(identity)
        return self.notes_repo.list_for_user(identity.id)

    def create_note(
        self,
        identity: Identity,
        title: str,
        content: str = None,
        category: str = None,
        is_pinned: bool = False
    ) -> Dict[str, Any]:
        """
        Crea una nota a nombre del usuario.

        Raises:
            NotAuthenticated: Sin usuario
            ValidationError: Sin título o categoría inválida
        """
        identity = self._require_identity(identity)
        title = parse_text(title, 'Título')
        if not title:
            raise ValidationError('El título es obligatorio')

        note = Note(
            id=None,
            title=title,
            user_id=identity.id,
            content=parse_text(content, 'Contenido') or None,
            category=self._parse_category(category),
            is_pinned=bool(is_pinned),
        )
        created = self.notes_repo.insert(note.to_dict())

        if self.audit_service:
            self.audit_service.log_note_created(identity.email or identity.id, created['id'], title)
        return created

    def update_note(self, identity: Identity, note_id: str, updates: Dict[str, Any]) -> Dict[str, Any]:
        identity = self._require_identity(identity)
        self._get_owned(identity, note_id)

        filtered = {k: v for k, v in (updates or {}).items() if k in self.UPDATABLE_FIELDS}
        if 'title' in filtered:
            filtered['title'] = parse_text(filtered['title'], 'Título')
            if not filtered['title']:
                raise ValidationError('El título es obligatorio')
        if 'content' in filtered:
            filtered['content'] = parse_text(filtered['content'], 'Contenido') or None
        if 'category' in filtered:
            filtered['category'] = self._parse_category(filtered['category'])
        if 'is_pinned' in filtered:
            filtered['is_pinned'] = bool(filtered['is_pinned'])

        if filtered:
            self.notes_repo.update_by_id(note_id, filtered)
        return self.notes_repo.get_by_id(note_id)

    def toggle_pin(self, identity: Identity, note_id: str) -> Dict[str, Any]:
        """Fija o desfija una nota."""
        identity = self._require_identity(identity)
        note = self._get_owned(identity, note_id)
        self.notes_repo.update_by_id(note_id, {'is_pinned': not note.get('is_pinned', False)})
        return self.notes_repo.get_by_id(note_id)

    def delete_note(self, identity: Identity, note_id: str) -> None:
        identity = self._require_identity(identity)
        note = self._get_owned(identity, note_id)
        self.notes_repo.delete_by_id(note_id)

        if self.audit_service:
            self.audit_service.log_note_deleted(identity.email or identity.id, note_id, note.get('title', ''))

    def get_stats(self, identity: Identity) -> Dict[str, int]:
        """Total de notas, fijadas y categorías distintas."""
        notes = self.list_notes(identity)
        return {
            'total': len(notes),
            'pinned': sum(1 for n in notes if n.get('is_pinned')),
            'categories': len({n.get('category') for n in notes}),
        }
