"""
Registry Database Connection Management
Handles the shared database holding users, audit logs, alerts and settings
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Dict, List, Optional

from sqlalchemy import select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from loguru import logger

from agentdesk.config import Settings, settings as default_settings
from agentdesk.database.exceptions import RegistryError
from agentdesk.database.store_dialects import enable_sqlite_foreign_keys, pool_options
from agentdesk.models.registry import RegistryBase, User, UserRole, TenantStatus


REGISTRY_TABLES = ["users", "audit_logs", "alerts", "system_settings"]


def rows_to_dicts(result) -> List[Dict[str, Any]]:
    """Convert a SQLAlchemy result to a list of plain dicts"""
    if not result.returns_rows:
        return []
    return [dict(row) for row in result.mappings().all()]


class RegistryDatabaseManager:
    """
    Registry Database Connection Manager

    One async engine on the shared store. Used for tenant identity lookups,
    tenant enumeration for admin aggregation, and audit bookkeeping.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self._settings = settings or default_settings
        self.engine: Optional[AsyncEngine] = None
        self.SessionLocal: Optional[async_sessionmaker] = None
        self._initialized = False

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    async def initialize(self, create_tables: bool = True) -> None:
        """
        Initialize registry database connection pool

        Args:
            create_tables: Create registry tables if they don't exist

        Raises:
            RegistryError: If connection fails
        """
        if self._initialized:
            logger.warning("Registry database already initialized")
            return

        url = self._settings.registry_database_url

        try:
            logger.info("Initializing registry database connection...")

            self.engine = create_async_engine(
                url,
                echo=self._settings.debug,
                **pool_options(
                    url,
                    pool_size=self._settings.registry_pool_size,
                    max_overflow=self._settings.registry_max_overflow,
                    pool_timeout=self._settings.registry_pool_timeout,
                ),
            )
            if self.engine.dialect.name == "sqlite":
                enable_sqlite_foreign_keys(self.engine)

            self.SessionLocal = async_sessionmaker(
                self.engine,
                expire_on_commit=False,
                class_=AsyncSession,
            )

            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))

            self._initialized = True

            if create_tables:
                await self.create_tables()

            logger.info("[OK] Registry database connection initialized successfully")

        except SQLAlchemyError as e:
            logger.error(f"[FAIL] Registry database connection failed: {str(e)}")
            if self.engine is not None:
                await self.engine.dispose()
            self.engine = None
            self.SessionLocal = None
            self._initialized = False
            raise RegistryError(f"Registry database connection failed: {e}") from e

    def _require_initialized(self) -> None:
        if not self._initialized:
            raise RegistryError("Registry database not initialized. Call initialize() first")

    async def create_tables(self) -> None:
        """Create all registry tables if they don't exist"""
        self._require_initialized()

        async with self.engine.begin() as conn:
            await conn.run_sync(RegistryBase.metadata.create_all, checkfirst=True)
        logger.info("[OK] Registry tables created/verified")

    @asynccontextmanager
    async def session_scope(self) -> AsyncGenerator[AsyncSession, None]:
        """
        Context manager for registry database sessions
        Automatically commits or rolls back transactions

        Example:
            async with registry_db.session_scope() as session:
                user = await session.get(User, 42)
        """
        self._require_initialized()

        async with self.SessionLocal() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def execute_query(self, query: str, params: Optional[dict] = None) -> List[Dict[str, Any]]:
        """
        Execute raw SQL against the registry and return rows as dicts

        Args:
            query: SQL query string with :named parameters
            params: Query parameters

        Returns:
            List of result rows as dictionaries
        """
        self._require_initialized()

        async with self.engine.begin() as conn:
            result = await conn.execute(text(query), params or {})
            return rows_to_dicts(result)

    async def list_tenant_ids(self, status: Optional[str] = TenantStatus.ACTIVE.value) -> List[str]:
        """
        Ids of client users that own a tenant store

        Args:
            status: Registry status to filter on, or None for all

        Returns:
            Tenant ids as strings, ordered by id
        """
        self._require_initialized()

        stmt = select(User.id).where(User.role == UserRole.CLIENT.value).order_by(User.id)
        if status is not None:
            stmt = stmt.where(User.status == status)

        async with self.SessionLocal() as session:
            result = await session.execute(stmt)
            return [str(user_id) for user_id in result.scalars().all()]

    async def test_connection(self) -> bool:
        """
        Test registry database connection

        Returns:
            True if connection successful
        """
        if not self._initialized:
            return False
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.error(f"[FAIL] Registry database connection test failed: {str(e)}")
            return False

    async def check_tables_exist(self) -> Dict[str, bool]:
        """
        Check if registry tables exist

        Returns:
            Dict with table existence status
        """
        self._require_initialized()

        def _inspect(sync_conn) -> List[str]:
            from sqlalchemy import inspect
            return inspect(sync_conn).get_table_names()

        async with self.engine.connect() as conn:
            existing = set(await conn.run_sync(_inspect))

        return {table: table in existing for table in REGISTRY_TABLES}

    async def close(self) -> None:
        """Close all registry database connections"""
        if self.engine is not None:
            await self.engine.dispose()
            self.engine = None
            self.SessionLocal = None
            self._initialized = False
            logger.info("[OK] Registry database connections closed")
