"""
Configuracion central de la aplicacion.
Gestiona variables de entorno y configuraciones globales.

No existe una instancia global: `get_settings()` se invoca solo en la raiz
de composicion (bootstrap, main, scripts). Los componentes reciben valores
explicitos (EngineSettings, RetryPolicy, TransferSpec).
"""
from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Clase de configuracion de la aplicacion.
    Lee variables de entorno (y `.env`) y proporciona valores por defecto.

    Backends:
    - TABLE_BACKEND: 'memory' (tablas en memoria) o 'sql' (SQLAlchemy sobre DATABASE_URL)
    - LOCK_BACKEND: 'memory' (threading.Lock por nombre) o 'postgres' (advisory lock)
    """

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # Configuracion de la aplicacion
    APP_NAME: str = Field(default="Record Sync")
    APP_VERSION: str = Field(default="1.0.0")
    DEBUG: bool = Field(default=False)
    ENVIRONMENT: str = Field(default="production")

    # Configuracion del servidor
    HOST: str = Field(default="0.0.0.0")
    PORT: int = Field(default=8000)

    # Transferencias
    TRANSFER_SPECS_FILE: str = Field(default="config/transfers.json")
    TABLE_BACKEND: Literal["memory", "sql"] = Field(default="memory")
    DATABASE_URL: str = Field(default="sqlite:///./record_sync.db")
    DB_ECHO: bool = Field(default=False)

    # Lock
    LOCK_BACKEND: Literal["memory", "postgres"] = Field(default="memory")
    LOCK_TIMEOUT_S: float = Field(default=2.5, gt=0)
    LOCK_RETRIES: int = Field(default=3, ge=1)
    LOCK_RETRY_PAUSE_S: float = Field(default=0.5, ge=0)

    # Reintentos de I/O
    RETRY_MAX_ATTEMPTS: int = Field(default=3, ge=1)
    RETRY_INITIAL_DELAY_S: float = Field(default=0.5, ge=0)

    # Notificaciones
    TELEGRAM_BOT_TOKEN: Optional[str] = Field(default=None)
    TELEGRAM_CHAT_ID: Optional[str] = Field(default=None)

    # Logging
    LOG_LEVEL: str = Field(default="INFO")
    LOG_FILE: str = Field(default="logs/app.log")
    AUDIT_LOG_DIR: Optional[str] = Field(default="logs/audit_logs")

    @computed_field
    @property
    def telegram_enabled(self) -> bool:
        return bool(self.TELEGRAM_BOT_TOKEN and self.TELEGRAM_CHAT_ID)


@lru_cache
def get_settings() -> Settings:
    """Settings cacheadas (una lectura de entorno por proceso)."""
    return Settings()
