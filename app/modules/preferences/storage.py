"""
Almacenamiento de preferencias

Interfaz mínima get/set/delete con dos implementaciones:
- InMemoryStorage: tests y despliegues sin disco
- SqlPreferenceStorage: tabla ``preferencias`` vía SQLAlchemy
"""

import copy
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional

from sqlalchemy.orm import Session

from app.database.database import SessionLocal
from app.modules.preferences.models import Preferencia

logger = logging.getLogger(__name__)


class PreferenceStorage(ABC):
    """Contrato de almacenamiento clave/valor (valores serializables a JSON)"""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        ...

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        ...


class InMemoryStorage(PreferenceStorage):

    def __init__(self):
        self._data: Dict[str, Any] = {}

    def get(self, key: str) -> Optional[Any]:
        return copy.deepcopy(self._data.get(key))

    def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    def delete(self, key: str) -> None:
        self._data.pop(key, None)


class SqlPreferenceStorage(PreferenceStorage):

    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self.session_factory = session_factory

    def get(self, key: str) -> Optional[Any]:
        with self.session_factory() as db:
            preferencia = db.get(Preferencia, key)
            return preferencia.valor if preferencia else None

    def set(self, key: str, value: Any) -> None:
        with self.session_factory() as db:
            try:
                preferencia = db.get(Preferencia, key)
                if preferencia is None:
                    db.add(Preferencia(clave=key, valor=value))
                else:
                    preferencia.valor = value
                db.commit()
            except Exception as e:
                db.rollback()
                logger.error(f"Error guardando preferencia '{key}': {e}")
                raise

    def delete(self, key: str) -> None:
        with self.session_factory() as db:
            preferencia = db.get(Preferencia, key)
            if preferencia is not None:
                db.delete(preferencia)
                db.commit()


def build_storage(backend: str, session_factory: Optional[Callable[[], Session]] = None) -> PreferenceStorage:
    if backend == "memory":
        return InMemoryStorage()
    return SqlPreferenceStorage(session_factory or SessionLocal)
