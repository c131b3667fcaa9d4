"""
Tenant Database Router
Creates, caches and routes queries to one isolated store per tenant

Every client user owns a separate database. The first access for a tenant
creates the database (if missing), opens a bounded pool against it and
bootstraps the tenant schema. Later accesses reuse the cached handle.
Concurrent first accesses share a single in-flight provisioning task, so
at most one handle per tenant ever exists.
"""

import asyncio
import time
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, AsyncGenerator, Dict, Iterable, List, Optional, Tuple, Union

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from loguru import logger

from agentdesk.config import Settings, settings as default_settings
from agentdesk.database.exceptions import (
    ProvisioningError,
    QueryError,
    QueryTimeoutError,
    RegistryError,
    RouterClosedError,
)
from agentdesk.database.registry_connection import RegistryDatabaseManager, rows_to_dicts
from agentdesk.database.store_dialects import (
    StoreDialect,
    build_store_name,
    get_store_dialect,
    normalize_tenant_id,
    pool_options,
)
from agentdesk.models.tenant import TenantBase, TENANT_TABLES


TenantId = Union[str, int]


@dataclass
class TenantStoreHandle:
    """Live pool on one tenant's store"""

    tenant_id: str
    store_name: str
    engine: AsyncEngine
    created_at: datetime = field(default_factory=datetime.utcnow)
    last_used: datetime = field(default_factory=datetime.utcnow)

    def __post_init__(self):
        self.session_factory = async_sessionmaker(
            self.engine,
            expire_on_commit=False,
            class_=AsyncSession,
        )

    @property
    def pool(self):
        return self.engine.pool

    def touch(self) -> None:
        self.last_used = datetime.utcnow()

    def info(self) -> Dict[str, Any]:
        return {
            "tenant_id": self.tenant_id,
            "store_name": self.store_name,
            "created_at": self.created_at.isoformat(),
            "last_used": self.last_used.isoformat(),
            "pool_status": self.pool.status(),
        }


@dataclass
class ExecutionResult:
    """Outcome of a DML statement"""

    rowcount: int
    last_insert_id: Optional[int] = None


@dataclass
class AggregateResult:
    """Rows merged from many tenant stores"""

    rows: List[Dict[str, Any]]
    tenant_count: int
    # tenant id -> error message for stores that were skipped
    skipped: Dict[str, str] = field(default_factory=dict)

    @property
    def succeeded_count(self) -> int:
        return self.tenant_count - len(self.skipped)


def _last_insert_id(result) -> Optional[int]:
    try:
        return result.lastrowid
    except (AttributeError, SQLAlchemyError):
        return None


class TenantDatabaseRouter:
    """
    Router from tenant id to that tenant's isolated store.

    Holds the process-wide handle cache. Instances are independent, so
    tests can build one router per case.

    Example:
        router = TenantDatabaseRouter(settings, registry)
        rows = await router.route_query("42", "SELECT COUNT(*) AS total FROM agents")
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        registry: Optional[RegistryDatabaseManager] = None,
        dialect: Optional[StoreDialect] = None,
    ):
        """
        Initialize the tenant database router

        Args:
            settings: Application settings (tenant server URL, pool sizes, timeouts)
            registry: Shared registry, used for tenant enumeration and main queries
            dialect: Store dialect override (defaults to the one for tenant_server_url)
        """
        self._settings = settings or default_settings
        self._registry = registry
        self.dialect = dialect or get_store_dialect(self._settings.tenant_server_url)

        self._stores: Dict[str, TenantStoreHandle] = {}
        self._inflight: Dict[str, asyncio.Task] = {}
        # tenant id -> set once its store has been dropped
        self._dropping: Dict[str, asyncio.Event] = {}
        self._closed = False

        logger.info(f"TenantDatabaseRouter initialized ({self.dialect.name})")

    # ==================== Naming ====================

    def store_name_for(self, tenant_id: TenantId) -> str:
        """Deterministic, validated store name for a tenant"""
        return build_store_name(tenant_id, self._settings.tenant_store_prefix)

    # ==================== Handle cache ====================

    def is_cached(self, tenant_id: TenantId) -> bool:
        return normalize_tenant_id(tenant_id) in self._stores

    def cached_tenant_ids(self) -> List[str]:
        return list(self._stores)

    async def get_store_for(self, tenant_id: TenantId) -> TenantStoreHandle:
        """
        Return the handle for a tenant, provisioning the store on first use.

        Args:
            tenant_id: Registry user id of a client tenant

        Returns:
            The cached TenantStoreHandle for this tenant

        Raises:
            InvalidTenantIdError: If the id fails the allow-list
            ProvisioningError: If store creation or schema bootstrap fails
            RouterClosedError: If the router has been closed
        """
        key = normalize_tenant_id(tenant_id)

        while True:
            if self._closed:
                raise RouterClosedError(key)

            handle = self._stores.get(key)
            if handle is not None:
                logger.debug(f"Tenant store cache hit: {key}")
                handle.touch()
                return handle

            dropped = self._dropping.get(key)
            if dropped is None:
                break
            logger.debug(f"Tenant {key} store is being dropped, waiting")
            await dropped.wait()

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._provision(key))
            self._inflight[key] = task
            task.add_done_callback(lambda done, k=key: self._provisioning_done(k, done))

        # A cancelled caller must not abort provisioning for the others
        handle = await asyncio.shield(task)
        handle.touch()
        return handle

    def _provisioning_done(self, tenant_id: str, task: asyncio.Task) -> None:
        if self._inflight.get(tenant_id) is task:
            del self._inflight[tenant_id]
        if not task.cancelled():
            # Marks the exception retrieved when every waiter was cancelled
            task.exception()

    async def _provision(self, tenant_id: str) -> TenantStoreHandle:
        store_name = self.store_name_for(tenant_id)
        engine: Optional[AsyncEngine] = None
        started = time.perf_counter()

        try:
            await self.dialect.create_store(store_name)
            engine = self._create_engine(store_name)
            await self._bootstrap_schema(engine)
        except asyncio.CancelledError:
            if engine is not None:
                await engine.dispose()
            raise
        except Exception as e:
            logger.error(f"Failed to provision store {store_name} for tenant {tenant_id}: {e}")
            if engine is not None:
                await engine.dispose()
            raise ProvisioningError(tenant_id, e, details={"store_name": store_name}) from e

        if self._closed:
            await engine.dispose()
            raise RouterClosedError(tenant_id)

        handle = TenantStoreHandle(tenant_id=tenant_id, store_name=store_name, engine=engine)
        self._stores[tenant_id] = handle

        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(f"Provisioned tenant store {store_name} in {elapsed_ms:.0f}ms")
        return handle

    def _create_engine(self, store_name: str) -> AsyncEngine:
        url = self.dialect.store_url(store_name)
        engine = create_async_engine(
            url,
            echo=False,
            **pool_options(
                url,
                pool_size=self._settings.tenant_pool_size,
                max_overflow=self._settings.tenant_max_overflow,
                pool_timeout=self._settings.tenant_pool_timeout,
                pool_recycle=self._settings.tenant_pool_recycle,
            ),
        )
        self.dialect.configure_engine(engine)
        return engine

    async def _bootstrap_schema(self, engine: AsyncEngine) -> None:
        """Create every tenant table that does not exist yet"""
        async with engine.begin() as conn:
            await conn.run_sync(TenantBase.metadata.create_all, tables=TENANT_TABLES, checkfirst=True)

    # ==================== Query routing ====================

    async def route_query(
        self,
        tenant_id: TenantId,
        query: str,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> List[Dict[str, Any]]:
        """
        Execute a SQL statement against one tenant's store

        Args:
            tenant_id: Tenant to route to
            query: SQL with :named parameters
            params: Parameter values
            timeout: Deadline in seconds (default: tenant_query_timeout)

        Returns:
            Result rows as dictionaries (empty for statements without rows)

        Raises:
            ProvisioningError: If the tenant store could not be provisioned
            QueryTimeoutError: If the deadline passes
            QueryError: If the statement fails
        """
        rows, _, _ = await self._run(tenant_id, query, params, timeout)
        return rows

    async def route_execute(
        self,
        tenant_id: TenantId,
        query: str,
        params: Optional[Dict[str, Any]] = None,
        timeout: Optional[float] = None,
    ) -> ExecutionResult:
        """Execute a DML statement and report affected rows and the new id"""
        _, rowcount, last_id = await self._run(tenant_id, query, params, timeout)
        return ExecutionResult(rowcount=rowcount, last_insert_id=last_id)

    async def route_main_query(
        self,
        query: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """Execute a SQL statement against the shared registry"""
        if self._registry is None:
            raise RegistryError("No registry configured for this router")
        return await self._registry.execute_query(query, params)

    async def _run(
        self,
        tenant_id: TenantId,
        query: str,
        params: Optional[Dict[str, Any]],
        timeout: Optional[float],
    ) -> Tuple[List[Dict[str, Any]], int, Optional[int]]:
        """Resolve the store and execute under one deadline"""
        key = normalize_tenant_id(tenant_id)
        deadline = timeout if timeout is not None else self._settings.tenant_query_timeout

        async def _routed():
            # get_store_for shields the shared provisioning task from this timeout
            handle = await self.get_store_for(key)
            return await self._execute(handle, query, params)

        try:
            return await asyncio.wait_for(_routed(), timeout=deadline)
        except asyncio.TimeoutError:
            logger.warning(f"Query on tenant {key} timed out after {deadline}s")
            raise QueryTimeoutError(key, deadline) from None
        except SQLAlchemyError as e:
            logger.error(f"Tenant {key} query failed: {e}")
            raise QueryError(key, e, query=query) from e

    async def _execute(
        self,
        handle: TenantStoreHandle,
        query: str,
        params: Optional[Dict[str, Any]],
    ) -> Tuple[List[Dict[str, Any]], int, Optional[int]]:
        async with handle.engine.begin() as conn:
            result = await conn.execute(text(query), params or {})
            rows = rows_to_dicts(result)
            return rows, result.rowcount, _last_insert_id(result)

    @asynccontextmanager
    async def session(self, tenant_id: TenantId) -> AsyncGenerator[AsyncSession, None]:
        """
        ORM session bound to a tenant store. Commits on success.

        Example:
            async with router.session(42) as session:
                session.add(Agent(name="Bot", ai_provider="chatgpt", model="gpt-4"))
        """
        handle = await self.get_store_for(tenant_id)

        async with handle.session_factory() as session:
            try:
                yield session
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                raise QueryError(handle.tenant_id, e) from e
            except Exception:
                await session.rollback()
                raise

    # ==================== Cross-tenant aggregation ====================

    async def aggregate(
        self,
        query: str,
        params: Optional[Dict[str, Any]] = None,
        tenant_ids: Optional[Iterable[TenantId]] = None,
        concurrency: Optional[int] = None,
        timeout: Optional[float] = None,
    ) -> AggregateResult:
        """
        Run one query against many tenant stores and merge the rows

        Tenants are queried with bounded concurrency. A tenant whose store
        fails is logged and skipped; the others are still returned.

        Args:
            query: SQL run unchanged in each store
            params: Parameter values
            tenant_ids: Tenants to query (default: active tenants in the registry)
            concurrency: Fan-out width (default: aggregation_concurrency)
            timeout: Per-tenant deadline in seconds

        Returns:
            AggregateResult with rows tagged by ``tenant_id``
        """
        if tenant_ids is None:
            if self._registry is None:
                raise RegistryError("No registry configured for tenant enumeration")
            tenant_ids = await self._registry.list_tenant_ids()

        tenant_ids = [str(t) for t in tenant_ids]
        semaphore = asyncio.Semaphore(concurrency or self._settings.aggregation_concurrency)

        async def _query_one(tid: str):
            async with semaphore:
                try:
                    return tid, await self.route_query(tid, query, params, timeout=timeout), None
                except Exception as e:
                    logger.warning(f"Skipping tenant {tid} in aggregate query: {e}")
                    return tid, None, str(e)

        outcomes = await asyncio.gather(*(_query_one(tid) for tid in tenant_ids))

        merged: List[Dict[str, Any]] = []
        skipped: Dict[str, str] = {}
        for tid, rows, error in outcomes:
            if error is not None:
                skipped[tid] = error
                continue
            merged.extend({"tenant_id": tid, **row} for row in rows)

        if skipped:
            logger.warning(f"Aggregate query skipped {len(skipped)}/{len(tenant_ids)} tenants")

        return AggregateResult(rows=merged, tenant_count=len(tenant_ids), skipped=skipped)

    # ==================== Lifecycle ====================

    async def evict(self, tenant_id: TenantId) -> bool:
        """
        Close a tenant's pool and forget its handle. The store is kept.

        A first access that is still provisioning is waited for, so the
        handle it produces is evicted as well.

        Returns:
            True if a handle was cached
        """
        key = normalize_tenant_id(tenant_id)

        task = self._inflight.get(key)
        if task is not None:
            await asyncio.wait({task})

        handle = self._stores.pop(key, None)
        if handle is None:
            return False

        await handle.engine.dispose()
        logger.info(f"Evicted tenant store handle: {handle.store_name}")
        return True

    async def cleanup_idle(self, max_idle_seconds: Optional[int] = None) -> List[str]:
        """
        Evict handles that have not been used recently

        Returns:
            Tenant ids that were evicted
        """
        if max_idle_seconds is None:
            max_idle_seconds = self._settings.tenant_idle_timeout
        threshold = timedelta(seconds=max_idle_seconds)
        now = datetime.utcnow()
        idle = [tid for tid, handle in self._stores.items() if now - handle.last_used > threshold]

        for tid in idle:
            await self.evict(tid)

        if idle:
            logger.info(f"Cleaned up {len(idle)} idle tenant store handles")
        return idle

    async def drop_store(self, tenant_id: TenantId) -> None:
        """
        Deprovision a tenant: evict its handle and drop its store

        Accesses that arrive while the drop runs wait for it to finish and
        then provision a fresh store.

        Raises:
            ProvisioningError: If the store cannot be dropped
        """
        key = normalize_tenant_id(tenant_id)
        store_name = self.store_name_for(key)

        while key in self._dropping:
            await self._dropping[key].wait()

        dropped = asyncio.Event()
        self._dropping[key] = dropped
        try:
            await self.evict(key)
            try:
                await self.dialect.drop_store(store_name)
            except Exception as e:
                logger.error(f"Failed to drop store {store_name}: {e}")
                raise ProvisioningError(key, e, details={"store_name": store_name, "operation": "drop"}) from e
            await self.evict(key)
        finally:
            del self._dropping[key]
            dropped.set()

    def stats(self) -> Dict[str, Any]:
        """Snapshot of the handle cache for the admin dashboard"""
        return {
            "backend": self.dialect.name,
            "closed": self._closed,
            "cached_stores": len(self._stores),
            "provisioning": sorted(self._inflight),
            "stores": [handle.info() for handle in self._stores.values()],
        }

    async def close(self) -> None:
        """Dispose every tenant pool. Called during application shutdown."""
        self._closed = True

        pending = list(self._inflight.values())
        if pending:
            await asyncio.wait(pending)

        for tid in list(self._stores):
            await self.evict(tid)

        await self.dialect.dispose()
        logger.info("All tenant store pools closed")
