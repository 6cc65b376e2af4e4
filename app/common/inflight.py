"""
Guardia explícita contra envíos duplicados.

Reemplaza el "botón deshabilitado" de la interfaz: una acción con la misma
clave no puede entrar mientras otra sigue en vuelo.
"""
import logging
from contextlib import asynccontextmanager
from typing import Hashable, Set

from app.core.exceptions import SolicitudEnCursoError

logger = logging.getLogger(__name__)


class InFlightGuard:
    """Registro de claves de acciones en curso."""

    def __init__(self):
        self._en_curso: Set[Hashable] = set()

    def is_running(self, key: Hashable) -> bool:
        return key in self._en_curso

    @asynccontextmanager
    async def hold(self, key: Hashable):
        # El chequeo y el alta ocurren sin await intermedio: atómico en el event loop
        if key in self._en_curso:
            logger.warning(f"Solicitud duplicada rechazada: {key}")
            raise SolicitudEnCursoError(str(key))
        self._en_curso.add(key)
        try:
            yield
        finally:
            self._en_curso.discard(key)
