"""
Tenant Store Dialects
Per-engine naming, URL building and create/drop of tenant stores

Each client user owns one database on the tenant server. The dialect knows
how to address that database and how to create or drop it idempotently.
Store names are derived from the tenant id and never taken from user input.
"""

import re
from pathlib import Path
from typing import Any, Dict, Optional, Union

from sqlalchemy import event, text
from sqlalchemy.engine import URL, make_url
from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool
from loguru import logger

from agentdesk.database.exceptions import InvalidTenantIdError


# Tenant ids are used in identifier position (database names), so they are
# restricted to a strict allow-list. 48 chars keeps prefix + id under 64.
TENANT_ID_PATTERN = re.compile(r"^[A-Za-z0-9_]{1,48}$")
STORE_PREFIX_PATTERN = re.compile(r"^[a-z][a-z0-9_]{0,14}$")

DEFAULT_STORE_PREFIX = "tenant_store_"


def normalize_tenant_id(tenant_id: Union[str, int]) -> str:
    """
    Validate a tenant id and return its canonical string form.

    Args:
        tenant_id: Registry user id (int or str)

    Returns:
        Tenant id as a string

    Raises:
        InvalidTenantIdError: If the id is not an allowed identifier
    """
    if isinstance(tenant_id, bool):
        raise InvalidTenantIdError(tenant_id)

    if isinstance(tenant_id, int):
        if tenant_id < 0:
            raise InvalidTenantIdError(tenant_id)
        value = str(tenant_id)
    elif isinstance(tenant_id, str):
        value = tenant_id
    else:
        raise InvalidTenantIdError(tenant_id)

    if not TENANT_ID_PATTERN.fullmatch(value):
        raise InvalidTenantIdError(tenant_id)

    return value


def build_store_name(tenant_id: Union[str, int], prefix: str = DEFAULT_STORE_PREFIX) -> str:
    """
    Build the deterministic store name for a tenant.

    Example:
        >>> build_store_name(42)
        'tenant_store_42'
    """
    if not STORE_PREFIX_PATTERN.fullmatch(prefix):
        raise ValueError(f"Invalid tenant store prefix: {prefix!r}")
    return f"{prefix}{normalize_tenant_id(tenant_id)}"


def pool_options(
    url: Union[str, URL],
    pool_size: int,
    max_overflow: int,
    pool_timeout: int,
    pool_recycle: int = -1,
) -> Dict[str, Any]:
    """
    Engine keyword arguments for a bounded connection pool.

    SQLite drivers pick their own pool class, which does not accept sizing
    arguments, so only pre-ping is passed for them.
    """
    if make_url(url).get_backend_name() == "sqlite":
        return {"pool_pre_ping": True}

    return {
        "pool_size": pool_size,
        "max_overflow": max_overflow,
        "pool_timeout": pool_timeout,
        "pool_recycle": pool_recycle,
        "pool_pre_ping": True,
    }


def enable_sqlite_foreign_keys(engine: AsyncEngine) -> None:
    """Turn on FK enforcement for every new SQLite connection"""

    @event.listens_for(engine.sync_engine, "connect")
    def _set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


class StoreDialect:
    """
    Base class for tenant store dialects.

    Subclasses implement store addressing and idempotent create/drop
    against the server named by ``server_url``.
    """

    name = "base"

    def __init__(self, server_url: Union[str, URL]):
        self.server_url = make_url(server_url)
        self._admin_engine: Optional[AsyncEngine] = None

    def store_url(self, store_name: str) -> URL:
        """URL of the database backing one tenant store"""
        return self.server_url.set(database=store_name)

    def configure_engine(self, engine: AsyncEngine) -> None:
        """Hook for per-connection setup on a freshly created tenant engine"""

    def _admin_url(self) -> URL:
        return self.server_url

    def _get_admin_engine(self) -> AsyncEngine:
        """Server-level engine used only for CREATE/DROP DATABASE"""
        if self._admin_engine is None:
            self._admin_engine = create_async_engine(
                self._admin_url(),
                isolation_level="AUTOCOMMIT",
                poolclass=NullPool,
            )
        return self._admin_engine

    def quote(self, store_name: str) -> str:
        return self._get_admin_engine().dialect.identifier_preparer.quote_identifier(store_name)

    async def create_store(self, store_name: str) -> None:
        raise NotImplementedError

    async def drop_store(self, store_name: str) -> None:
        raise NotImplementedError

    async def dispose(self) -> None:
        """Release the server-level engine"""
        if self._admin_engine is not None:
            await self._admin_engine.dispose()
            self._admin_engine = None

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__}({self.server_url.render_as_string(hide_password=True)})>"


class MySQLStoreDialect(StoreDialect):
    """One MySQL/MariaDB database per tenant"""

    name = "mysql"

    def store_url(self, store_name: str) -> URL:
        return self.server_url.set(database=store_name).update_query_dict({"charset": "utf8mb4"})

    def _admin_url(self) -> URL:
        # URL.set() ignores None, so rebuild without the database
        url = self.server_url
        return URL.create(
            url.drivername,
            username=url.username,
            password=url.password,
            host=url.host,
            port=url.port,
            query=url.query,
        )

    async def create_store(self, store_name: str) -> None:
        engine = self._get_admin_engine()
        async with engine.connect() as conn:
            await conn.execute(text(
                f"CREATE DATABASE IF NOT EXISTS {self.quote(store_name)} "
                "CHARACTER SET utf8mb4 COLLATE utf8mb4_unicode_ci"
            ))
        logger.debug(f"MySQL store ensured: {store_name}")

    async def drop_store(self, store_name: str) -> None:
        engine = self._get_admin_engine()
        async with engine.connect() as conn:
            await conn.execute(text(f"DROP DATABASE IF EXISTS {self.quote(store_name)}"))
        logger.info(f"MySQL store dropped: {store_name}")


class PostgreSQLStoreDialect(StoreDialect):
    """One PostgreSQL database per tenant"""

    name = "postgresql"

    def _admin_url(self) -> URL:
        # CREATE DATABASE must run while connected to some other database
        return self.server_url.set(database=self.server_url.database or "postgres")

    async def _store_exists(self, conn, store_name: str) -> bool:
        result = await conn.execute(
            text("SELECT 1 FROM pg_database WHERE datname = :name"),
            {"name": store_name},
        )
        return result.scalar() is not None

    async def create_store(self, store_name: str) -> None:
        engine = self._get_admin_engine()
        async with engine.connect() as conn:
            if await self._store_exists(conn, store_name):
                return
            try:
                await conn.execute(text(f"CREATE DATABASE {self.quote(store_name)}"))
            except DBAPIError:
                # Another process may have created it between the check and here
                if not await self._store_exists(conn, store_name):
                    raise
        logger.debug(f"PostgreSQL store ensured: {store_name}")

    async def drop_store(self, store_name: str) -> None:
        engine = self._get_admin_engine()
        async with engine.connect() as conn:
            await conn.execute(text(f"DROP DATABASE IF EXISTS {self.quote(store_name)}"))
        logger.info(f"PostgreSQL store dropped: {store_name}")


class SQLiteStoreDialect(StoreDialect):
    """
    One SQLite file per tenant under a directory.

    ``sqlite+aiosqlite:///./data/tenants`` stores tenant 42 in
    ``./data/tenants/tenant_store_42.db``.
    """

    name = "sqlite"

    @property
    def directory(self) -> Path:
        return Path(self.server_url.database or ".")

    def store_path(self, store_name: str) -> Path:
        return self.directory / f"{store_name}.db"

    def store_url(self, store_name: str) -> URL:
        return self.server_url.set(database=str(self.store_path(store_name)))

    def configure_engine(self, engine: AsyncEngine) -> None:
        enable_sqlite_foreign_keys(engine)

    def quote(self, store_name: str) -> str:
        return f'"{store_name}"'

    async def create_store(self, store_name: str) -> None:
        # The file itself is created on first connect
        self.directory.mkdir(parents=True, exist_ok=True)

    async def drop_store(self, store_name: str) -> None:
        path = self.store_path(store_name)
        for suffix in ("", "-wal", "-shm", "-journal"):
            Path(f"{path}{suffix}").unlink(missing_ok=True)
        logger.info(f"SQLite store dropped: {path}")

    async def dispose(self) -> None:
        return None


_DIALECTS = {
    "mysql": MySQLStoreDialect,
    "mariadb": MySQLStoreDialect,
    "postgresql": PostgreSQLStoreDialect,
    "sqlite": SQLiteStoreDialect,
}


def get_store_dialect(server_url: Union[str, URL]) -> StoreDialect:
    """
    Pick the store dialect for a tenant server URL.

    Raises:
        ValueError: If the backend is not supported
    """
    backend = make_url(server_url).get_backend_name()
    dialect_cls = _DIALECTS.get(backend)
    if dialect_cls is None:
        raise ValueError(f"Unsupported tenant store backend: {backend}")
    return dialect_cls(server_url)
