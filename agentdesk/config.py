"""
Configuration Management for AgentDesk
Uses Pydantic Settings for type-safe configuration
"""

from typing import List
from functools import lru_cache

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application Settings loaded from environment variables
    """

    # ==================== Application ====================
    app_name: str = Field(default="AgentDesk", description="Application name")
    app_version: str = Field(default="1.0.0")
    environment: str = Field(default="development")
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=5000)

    # ==================== Registry Database (shared) ====================
    # Holds users, audit logs, alerts and system settings for every tenant
    registry_database_url: str = Field(
        default="mysql+aiomysql://root:@localhost:3306/ai_agents_saas",
        description="Async SQLAlchemy URL of the shared registry database",
    )
    registry_pool_size: int = Field(default=10, ge=1, le=100)
    registry_max_overflow: int = Field(default=10, ge=0, le=100)
    registry_pool_timeout: int = Field(default=30, ge=1)

    # ==================== Tenant Stores ====================
    # Server that hosts one database per client user. For MySQL/PostgreSQL
    # this URL has no database component; for SQLite it names a directory.
    tenant_server_url: str = Field(
        default="mysql+aiomysql://root:@localhost:3306",
        description="Async SQLAlchemy URL of the server hosting tenant stores",
    )
    tenant_store_prefix: str = Field(default="tenant_store_", pattern=r"^[a-z][a-z0-9_]{0,14}$")
    tenant_pool_size: int = Field(default=5, ge=1, le=100)
    tenant_max_overflow: int = Field(default=2, ge=0, le=100)
    tenant_pool_timeout: int = Field(default=30, ge=1)
    tenant_pool_recycle: int = Field(default=1800, ge=-1)
    tenant_query_timeout: float = Field(default=60.0, gt=0)
    tenant_idle_timeout: int = Field(default=1800, ge=1)

    # Parallel fan-out width for cross-tenant admin queries
    aggregation_concurrency: int = Field(default=8, ge=1, le=64)

    # Drop a tenant's store when its user is deleted (otherwise only evict)
    drop_store_on_delete: bool = Field(default=False)

    # ==================== JWT & Security ====================
    jwt_secret_key: str = Field(default="your-super-secret-jwt-key-change-in-production")
    jwt_algorithm: str = Field(default="HS256")
    jwt_access_token_expire_minutes: int = Field(default=60 * 24)
    admin_api_key: str = Field(default="agentdesk-admin-key-change-in-production")

    # CORS
    cors_origins: List[str] = Field(
        default=["http://localhost:3000", "http://localhost:5173"]
    )

    # ==================== Logging ====================
    log_dir: str = Field(default="./logs")
    log_file: str = Field(default="agentdesk.log")
    log_rotation: str = Field(default="10 MB")
    log_retention: str = Field(default="30 days")

    # Audit Logging
    enable_audit_log: bool = Field(default=True)
    audit_log_file: str = Field(default="audit.log")

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_ignore_empty=True,
        extra="ignore"
    )

    @model_validator(mode="after")
    def validate_pool_settings(self) -> "Settings":
        """Tenant pools must be able to hand out at least one connection."""
        if self.tenant_pool_size + self.tenant_max_overflow < 1:
            raise ValueError("tenant_pool_size + tenant_max_overflow must be >= 1")
        return self


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance

    Returns:
        Settings instance loaded from environment variables
    """
    return Settings()


# Global settings instance
settings = get_settings()
