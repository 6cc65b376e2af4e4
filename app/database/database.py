from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from app.core.config import settings
import logging

logger = logging.getLogger(__name__)


def build_engine(url: str):
    """Engine síncrono para el almacén de preferencias."""
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(
        url,
        pool_pre_ping=True,
        connect_args=connect_args,
        echo=settings.DEBUG and settings.ENVIRONMENT != "test"
    )


sync_engine = build_engine(settings.PREFERENCES_DATABASE_URL)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=sync_engine)

Base = declarative_base()


def init_db(engine=None) -> None:
    """Crea las tablas que falten (sin migraciones)."""
    # Registrar los modelos antes de create_all
    import app.modules.preferences.models  # noqa: F401

    target = engine or sync_engine
    Base.metadata.create_all(bind=target)
    logger.info(f"Tablas de preferencias verificadas en {target.url.render_as_string(hide_password=True)}")
