from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
from decimal import Decimal
from pydantic import field_validator

LOCAL_API_URL = "http://localhost:3000/api"


class Settings(BaseSettings):
    # Remote exchange API
    CAMBIO_API_URL: Optional[str] = None
    API_HOSTNAME: str = 'localhost'
    DEFAULT_REMOTE_API_URL: str = 'https://your-railway-app.up.railway.app/api'
    HTTP_TIMEOUT_SECONDS: Optional[float] = None  # None = sin timeout

    # Preferences storage
    PREFERENCES_BACKEND: str = 'sql'
    PREFERENCES_DATABASE_URL: str = 'sqlite:///./preferences.db'

    # Casa de cambio por defecto para pantallas sin contexto
    DEFAULT_CASA_DE_CAMBIO_ID: int = 1

    # Reglas de negocio
    VARIANCE_EPSILON: Decimal = Decimal("0.01")
    VARIANCE_WARNING_PERCENT: Decimal = Decimal("5")
    DRASTIC_CHANGE_PERCENT: Decimal = Decimal("5")
    MAX_SPREAD_PERCENT: Decimal = Decimal("50")

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: Optional[str] = None

    @property
    def api_base_url(self) -> str:
        if self.CAMBIO_API_URL:
            return self.CAMBIO_API_URL.rstrip("/")
        if self.API_HOSTNAME == "localhost":
            return LOCAL_API_URL
        return self.DEFAULT_REMOTE_API_URL.rstrip("/")

    @property
    def log_level(self) -> str:
        if self.LOG_LEVEL:
            return self.LOG_LEVEL.upper()
        return "INFO" if self.ENVIRONMENT == "production" else "DEBUG"

    model_config = SettingsConfigDict(
        extra="allow",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )

    @field_validator("DEBUG", mode="before")
    @classmethod
    def parse_debug(cls, v):
        if isinstance(v, str):
            return v.lower().strip('"').strip("'") in ("true", "1", "yes", "on")
        return bool(v)

    @field_validator("PREFERENCES_BACKEND", mode="before")
    @classmethod
    def parse_preferences_backend(cls, v):
        cleaned = str(v).lower().strip('"').strip("'")
        if cleaned not in ("sql", "memory"):
            raise ValueError("PREFERENCES_BACKEND debe ser 'sql' o 'memory'")
        return cleaned


settings = Settings()
