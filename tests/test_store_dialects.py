"""
Tests for tenant store naming and dialect selection
"""

import pytest

from agentdesk.database import InvalidTenantIdError, build_store_name, get_store_dialect, normalize_tenant_id
from agentdesk.database.store_dialects import (
    MySQLStoreDialect,
    PostgreSQLStoreDialect,
    SQLiteStoreDialect,
    pool_options,
)


class TestStoreNaming:
    """Test suite for the tenant id allow-list and store names"""

    def test_int_and_str_ids_normalize_equal(self):
        assert normalize_tenant_id(42) == "42"
        assert normalize_tenant_id("42") == "42"
        assert normalize_tenant_id("acme_01") == "acme_01"

    @pytest.mark.parametrize("bad_id", ["", " 42", "42`", "a.b", "tenant-1", "x" * 49, -5, False, 1.0, None])
    def test_rejects_ids_outside_the_allow_list(self, bad_id):
        with pytest.raises(InvalidTenantIdError) as exc_info:
            normalize_tenant_id(bad_id)
        assert exc_info.value.rejected_id == bad_id

    def test_store_name_uses_prefix(self):
        assert build_store_name(42) == "tenant_store_42"
        assert build_store_name("7", prefix="acme_") == "acme_7"

    @pytest.mark.parametrize("prefix", ["", "Bad", "a-b_", "1abc"])
    def test_rejects_bad_prefix(self, prefix):
        with pytest.raises(ValueError):
            build_store_name(1, prefix=prefix)


class TestDialectSelection:
    """Test suite for get_store_dialect"""

    @pytest.mark.parametrize("url, expected", [
        ("mysql+aiomysql://root:secret@db:3306", MySQLStoreDialect),
        ("mariadb+aiomysql://root@db", MySQLStoreDialect),
        ("postgresql+asyncpg://postgres@db:5432", PostgreSQLStoreDialect),
        ("sqlite+aiosqlite:///./data/tenants", SQLiteStoreDialect),
    ])
    def test_backend_picks_dialect(self, url, expected):
        assert isinstance(get_store_dialect(url), expected)

    def test_unsupported_backend(self):
        with pytest.raises(ValueError, match="Unsupported"):
            get_store_dialect("oracle+oracledb://scott@db")

    def test_repr_hides_password(self):
        dialect = get_store_dialect("mysql+aiomysql://root:secret@db:3306")
        assert "secret" not in repr(dialect)


class TestStoreUrls:
    """Test suite for per-tenant URLs"""

    def test_mysql_url_targets_store_with_utf8mb4(self):
        dialect = MySQLStoreDialect("mysql+aiomysql://root:secret@db:3306")
        url = dialect.store_url("tenant_store_42")

        assert url.database == "tenant_store_42"
        assert url.query["charset"] == "utf8mb4"
        assert url.host == "db"

    def test_mysql_admin_url_has_no_database(self):
        dialect = MySQLStoreDialect("mysql+aiomysql://root:secret@db:3306/ai_agents_saas")
        admin_url = dialect._admin_url()

        assert admin_url.database is None
        assert admin_url.host == "db"
        assert admin_url.port == 3306
        assert admin_url.password == "secret"

    def test_postgresql_admin_url_defaults_to_postgres(self):
        dialect = PostgreSQLStoreDialect("postgresql+asyncpg://postgres@db:5432")

        assert dialect._admin_url().database == "postgres"
        assert dialect.store_url("tenant_store_7").database == "tenant_store_7"

    def test_sqlite_store_is_a_file_in_the_directory(self, tmp_path):
        dialect = SQLiteStoreDialect(f"sqlite+aiosqlite:///{tmp_path}")

        assert dialect.store_path("tenant_store_1") == tmp_path / "tenant_store_1.db"
        assert dialect.store_url("tenant_store_1").database == str(tmp_path / "tenant_store_1.db")


class TestSQLiteStoreLifecycle:
    """Test suite for SQLite create/drop"""

    @pytest.mark.asyncio
    async def test_create_makes_directory_and_drop_is_idempotent(self, tmp_path):
        directory = tmp_path / "nested" / "tenants"
        dialect = SQLiteStoreDialect(f"sqlite+aiosqlite:///{directory}")

        await dialect.create_store("tenant_store_1")
        assert directory.is_dir()

        dialect.store_path("tenant_store_1").write_bytes(b"")
        await dialect.drop_store("tenant_store_1")
        await dialect.drop_store("tenant_store_1")

        assert not dialect.store_path("tenant_store_1").exists()


class TestPoolOptions:
    """Test suite for pool_options"""

    def test_server_backends_get_bounded_pool(self):
        options = pool_options("mysql+aiomysql://root@db", pool_size=5, max_overflow=2, pool_timeout=30, pool_recycle=1800)

        assert options == {
            "pool_size": 5,
            "max_overflow": 2,
            "pool_timeout": 30,
            "pool_recycle": 1800,
            "pool_pre_ping": True,
        }

    def test_sqlite_gets_no_sizing(self):
        assert pool_options("sqlite+aiosqlite:///x.db", pool_size=5, max_overflow=2, pool_timeout=30) == {
            "pool_pre_ping": True
        }
