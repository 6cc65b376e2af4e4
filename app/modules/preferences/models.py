from app.database.database import Base
from sqlalchemy import Column, String, JSON

from app.common.mixins import TimestampMixin


class Preferencia(Base, TimestampMixin):
    """Par clave/valor persistido (token, filtros guardados)"""
    __tablename__ = "preferencias"

    clave = Column(String(200), primary_key=True)
    valor = Column(JSON, nullable=True)
