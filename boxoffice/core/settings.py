"""
Configuration & Environment Management for Boxoffice
"""

import json
import logging
import secrets
from functools import lru_cache
from typing import Annotated, Any, Dict, List, Union

from pydantic import field_validator
from pydantic_settings import BaseSettings as PydanticBaseSettings
from pydantic_settings import NoDecode

logger = logging.getLogger(__name__)

# Component settings read the same .env file as the main settings
_ENV_FILE: Dict[str, Any] = {"env_file": ".env", "extra": "ignore"}


class DatabaseSettings(PydanticBaseSettings):
    """Database configuration settings"""

    URL: str = "sqlite+aiosqlite:///./boxoffice.db"
    ECHO: bool = False
    CREATE_TABLES: bool = True

    # Connection Pool Settings (PostgreSQL only)
    POOL_SIZE: int = 20
    MAX_OVERFLOW: int = 30
    POOL_TIMEOUT: int = 30
    POOL_RECYCLE: int = 3600
    POOL_PRE_PING: bool = True

    # Connection Timeouts
    COMMAND_TIMEOUT: int = 60
    STATEMENT_TIMEOUT: str = "60s"
    LOCK_TIMEOUT: str = "30s"

    @property
    def database_url(self) -> str:
        """Database URL with the async driver for PostgreSQL"""
        if self.URL.startswith("postgresql://"):
            return self.URL.replace("postgresql://", "postgresql+asyncpg://", 1)
        return self.URL

    model_config = {"env_prefix": "DB_", "case_sensitive": True, **_ENV_FILE}


class SecuritySettings(PydanticBaseSettings):
    """Caller identity token settings"""

    SECRET_KEY: str = secrets.token_urlsafe(32)
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    model_config = {"env_prefix": "SECURITY_", "case_sensitive": True, **_ENV_FILE}


class RegistrySettings(PydanticBaseSettings):
    """Event registry settings"""

    # Identity allowed to create events and withdraw funds
    OWNER: str = "owner"
    PAYMENTS_PROVIDER: str = "local"

    @field_validator("OWNER")  # type: ignore[misc]
    @classmethod
    def owner_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("REGISTRY_OWNER must not be blank")
        return v

    model_config = {"env_prefix": "REGISTRY_", "case_sensitive": True, **_ENV_FILE}


class MonitoringSettings(PydanticBaseSettings):
    """Monitoring and observability settings"""

    LOG_LEVEL: str = "INFO"
    LOG_FORMAT: str = "json"
    ENABLE_PROMETHEUS: bool = True

    model_config = {"env_prefix": "MONITORING_", "case_sensitive": True, **_ENV_FILE}


class Settings(PydanticBaseSettings):
    """Main application settings"""

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = False
    TESTING: bool = False
    VERSION: str = "1.0.0"

    # API Configuration
    API_V1_PREFIX: str = "/api/v1"
    PROJECT_NAME: str = "Boxoffice"
    PROJECT_DESCRIPTION: str = "Ticket-sales ledger"

    # CORS Configuration
    BACKEND_CORS_ORIGINS: Annotated[List[str], NoDecode] = []

    @field_validator("BACKEND_CORS_ORIGINS", mode="before")  # type: ignore[misc]
    @classmethod
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> List[str]:
        if isinstance(v, str) and not v.startswith("["):
            return [i.strip() for i in v.split(",") if i.strip()]
        elif isinstance(v, str):
            return list(json.loads(v))
        elif isinstance(v, list):
            return v
        return []

    # Component Settings
    database: DatabaseSettings = DatabaseSettings()
    security: SecuritySettings = SecuritySettings()
    registry: RegistrySettings = RegistrySettings()
    monitoring: MonitoringSettings = MonitoringSettings()

    model_config = {
        "env_file": ".env",
        "case_sensitive": True,
        "validate_assignment": True,
        "extra": "ignore",
    }


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
