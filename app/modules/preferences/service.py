"""
Servicio de preferencias

Reemplaza el estado global en localStorage (token y filtros guardados) por
un servicio con almacenamiento inyectado.
"""

import logging
from typing import List, Optional

from pydantic import ValidationError

from app.core.exceptions import ValidacionError
from app.modules.preferences.schemas import FiltroGuardado
from app.modules.preferences.storage import PreferenceStorage
from app.modules.tipos_cambio.schemas import HistorialFiltros

logger = logging.getLogger(__name__)

AUTH_TOKEN_KEY = "auth_token"
AUTH_USER_KEY = "auth_user"
FILTROS_KEY = "filtros-tipos-cambio"


class PreferencesService:
    """Preferencias de una sesión/usuario sobre un PreferenceStorage"""

    def __init__(self, storage: PreferenceStorage, scope: str = "default"):
        self.storage = storage
        self.scope = scope

    def _key(self, name: str) -> str:
        return f"{self.scope}:{name}"

    # ===== TOKEN =====

    def get_token(self) -> Optional[str]:
        return self.storage.get(self._key(AUTH_TOKEN_KEY))

    def set_token(self, token: Optional[str], usuario: Optional[dict] = None) -> None:
        if not token:
            self.clear_token()
            return
        self.storage.set(self._key(AUTH_TOKEN_KEY), token)
        if usuario is not None:
            self.storage.set(self._key(AUTH_USER_KEY), usuario)

    def get_usuario(self) -> Optional[dict]:
        return self.storage.get(self._key(AUTH_USER_KEY))

    def clear_token(self) -> None:
        self.storage.delete(self._key(AUTH_TOKEN_KEY))
        self.storage.delete(self._key(AUTH_USER_KEY))

    # ===== FILTROS GUARDADOS =====

    def list_filtros(self) -> List[FiltroGuardado]:
        guardados = self.storage.get(self._key(FILTROS_KEY)) or []
        filtros = []
        for item in guardados:
            try:
                filtros.append(FiltroGuardado.model_validate(item))
            except ValidationError as e:
                # Un preset corrupto no debe ocultar el resto
                logger.error(f"Filtro guardado inválido descartado: {e}")
        return filtros

    def save_filtro(self, name: str, filtros: HistorialFiltros) -> List[FiltroGuardado]:
        actuales = self.list_filtros()
        actuales.append(FiltroGuardado(name=name, filtros=filtros))
        self._store(actuales)
        logger.info(f"Filtro '{name}' guardado ({len(actuales)} en total)")
        return actuales

    def delete_filtro(self, index: int) -> List[FiltroGuardado]:
        actuales = self.list_filtros()
        if index < 0 or index >= len(actuales):
            raise ValidacionError(f"No existe un filtro guardado en la posición {index}")
        eliminado = actuales.pop(index)
        self._store(actuales)
        logger.info(f"Filtro '{eliminado.name}' eliminado")
        return actuales

    def _store(self, filtros: List[FiltroGuardado]) -> None:
        self.storage.set(self._key(FILTROS_KEY), [f.model_dump(mode="json") for f in filtros])
