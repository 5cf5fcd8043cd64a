# ==============================================================================
# SERVICIO DE USUARIOS
# ==============================================================================
# Registro y autenticación de perfiles.
# Las contraseñas se guardan como hash (werkzeug.security).
# Las rutas convierten el perfil autenticado en un Identity que se pasa
# explícitamente a los demás servicios.
# ==============================================================================

from typing import Any, Dict, Optional

from werkzeug.security import check_password_hash, generate_password_hash

from app_negocio.errors import NotAuthenticated, ValidationError
from app_negocio.models.entities import Identity
from app_negocio.repositories.profiles_repository import ProfilesRepository
from app_negocio.services.audit_service import AuditService
from app_negocio.services.inventory_service import parse_text


class UserService:
    """
    Servicio para gestión de usuarios.

    Responsabilidades:
    - Registro (email único, contraseña mínima)
    - Autenticación
    - Construir el Identity de un perfil
    """

    MIN_PASSWORD_LENGTH = 6

    def __init__(self, profiles_repo: ProfilesRepository, audit_service: AuditService = None):
        """
        Args:
            profiles_repo: Repositorio de perfiles
            audit_service: Servicio de auditoría (opcional)
        """
        self.profiles_repo = profiles_repo
        self.audit_service = audit_service

    @staticmethod
    def _normalize_email(email: str) -> str:
        return parse_text(email, 'Email').lower()

    @staticmethod
    def to_identity(profile: Dict[str, Any]) -> Identity:
        return Identity(id=profile['id'], email=profile.get('email'))

    @staticmethod
    def public_profile(profile: Dict[str, Any]) -> Dict[str, Any]:
        """Perfil sin el hash de contraseña."""
        return {k: v for k, v in profile.items() if k != 'password'}

    def register(self, email: str, password: str, full_name: str = '') -> Dict[str, Any]:
        """
        Crea un perfil.

        Raises:
            ValidationError: Email vacío/duplicado o contraseña corta
        """
        email = self._normalize_email(email)
        if not email or '@' not in email:
            raise ValidationError('Email inválido')
        if not isinstance(password, str) or len(password) < self.MIN_PASSWORD_LENGTH:
            raise ValidationError(
                f'La contraseña debe tener al menos {self.MIN_PASSWORD_LENGTH} caracteres'
            )
        full_name = parse_text(full_name, 'Nombre')
        password_hash = generate_password_hash(password)

        with self.profiles_repo.store.transaction():
            if self.profiles_repo.user_exists(email):
                raise ValidationError('Ya existe un usuario con ese email')
            profile = self.profiles_repo.create_profile(email, password_hash, full_name)

        if self.audit_service:
            self.audit_service.log_user_registered(email)
        return self.public_profile(profile)

    def authenticate(self, email: str, password: str) -> Identity:
        """
        Verifica credenciales.

        Raises:
            NotAuthenticated: Si el email o la contraseña no coinciden
        """
        profile = self.profiles_repo.get_by_email(self._normalize_email(email))
        if profile is None or not check_password_hash(profile.get('password', ''), password if isinstance(password, str) else ''):
            raise NotAuthenticated('Email o contraseña incorrectos')

        identity = self.to_identity(profile)
        if self.audit_service:
            self.audit_service.log_user_login(identity.email)
        return identity

    def get_identity(self, user_id: str) -> Optional[Identity]:
        """Identity de un perfil existente o None."""
        if not user_id:
            return None
        profile = self.profiles_repo.get_by_id(user_id)
        return self.to_identity(profile) if profile else None
