# ==============================================================================
# REPOSITORIO DE PERFILES (usuarios)
# ==============================================================================
# Tabla "profiles": {"id", "email", "password", "full_name"}
# La contraseña se guarda SIEMPRE como hash (werkzeug).
# ==============================================================================

from typing import Any, Dict, Optional

from app_negocio.repositories.base import TableRepository


class ProfilesRepository(TableRepository):
    """Repositorio de perfiles de usuario."""

    table = 'profiles'

    def get_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        return self.find_by('email', email)

    def user_exists(self, email: str) -> bool:
        return self.get_by_email(email) is not None

    def create_profile(self, email: str, password_hash: str, full_name: str = '') -> Dict[str, Any]:
        return self.insert({
            'email': email,
            'password': password_hash,
            'full_name': full_name,
        })
