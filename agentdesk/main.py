"""
AgentDesk - Main Application
FastAPI entry point for the multi-tenant agent backend
"""

import os
import sys
import traceback
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from loguru import logger

from agentdesk.config import settings
from agentdesk.database import (
    InvalidTenantIdError,
    ProvisioningError,
    QueryTimeoutError,
    RegistryDatabaseManager,
    RouterClosedError,
    TenantDatabaseRouter,
)
from agentdesk.api import admin_router, agents_router, auth_router, conversations_router
from agentdesk.middleware import AuditLogger
from agentdesk.services import AdminService


def setup_logging() -> None:
    """Configure loguru sinks: console, rotating file and audit file"""
    logger.remove()
    logger.add(
        sys.stdout,
        colorize=True,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan> - <level>{message}</level>",
        level=settings.log_level
    )

    os.makedirs(settings.log_dir, exist_ok=True)
    logger.add(
        f"{settings.log_dir}/{settings.log_file}",
        rotation=settings.log_rotation,
        retention=settings.log_retention,
        level=settings.log_level
    )

    if settings.enable_audit_log:
        logger.add(
            f"{settings.log_dir}/{settings.audit_log_file}",
            rotation=settings.log_rotation,
            retention=settings.log_retention,
            level="INFO",
            filter=lambda record: "AUDIT" in record["extra"]
        )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application Lifespan Manager
    Opens the registry and the tenant router, closes every pool on shutdown
    """
    logger.info("=" * 80)
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")
    logger.info("=" * 80)

    registry = RegistryDatabaseManager(settings)
    tenant_router = TenantDatabaseRouter(settings, registry)
    audit = AuditLogger(registry)

    try:
        logger.info("Initializing registry database...")
        await registry.initialize()
    except Exception as e:
        logger.error(f"Failed to initialize services: {str(e)}")
        raise

    app.state.registry = registry
    app.state.tenant_router = tenant_router
    app.state.audit = audit
    app.state.admin_service = AdminService(tenant_router, registry, audit)

    logger.info("All services initialized successfully")
    logger.info("=" * 80)

    yield

    logger.info("=" * 80)
    logger.info("Shutting down application...")
    try:
        await tenant_router.close()
        await registry.close()
        logger.info("Database connections closed")
    except Exception as e:
        logger.error(f"Error during shutdown: {str(e)}")

    logger.info("=" * 80)


# ==================== Exception Handlers ====================

async def provisioning_error_handler(request: Request, exc: ProvisioningError):
    logger.error(f"Tenant store unavailable: {exc}")
    return JSONResponse(
        status_code=503,
        content={"error": "Tenant store unavailable", "detail": str(exc), "tenant_id": exc.tenant_id},
    )


async def query_timeout_handler(request: Request, exc: QueryTimeoutError):
    return JSONResponse(
        status_code=504,
        content={"error": "Tenant query timed out", "detail": str(exc), "tenant_id": exc.tenant_id},
    )


async def invalid_tenant_handler(request: Request, exc: InvalidTenantIdError):
    return JSONResponse(status_code=400, content={"error": "Invalid tenant id", "detail": str(exc)})


async def router_closed_handler(request: Request, exc: RouterClosedError):
    return JSONResponse(status_code=503, content={"error": "Service shutting down", "detail": str(exc)})


async def global_exception_handler(request: Request, exc: Exception):
    """
    Global exception handler for unhandled errors
    """
    error_detail = str(exc)
    error_traceback = traceback.format_exc()
    logger.error(f"Unhandled exception: {error_detail}\n{error_traceback}")
    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal server error",
            "detail": error_detail,
            "traceback": error_traceback if settings.debug else None
        }
    )


def create_app() -> FastAPI:
    """Build the FastAPI application with routers and handlers"""
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Multi-tenant AI support agents with one isolated database per client",
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ProvisioningError, provisioning_error_handler)
    app.add_exception_handler(QueryTimeoutError, query_timeout_handler)
    app.add_exception_handler(InvalidTenantIdError, invalid_tenant_handler)
    app.add_exception_handler(RouterClosedError, router_closed_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    @app.get("/health")
    async def health_check(request: Request):
        """
        Health check endpoint
        Returns application status and registry connectivity
        """
        registry = getattr(request.app.state, "registry", None)
        tenant_router = getattr(request.app.state, "tenant_router", None)
        return {
            "status": "healthy",
            "app": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
            "registry_connected": await registry.test_connection() if registry else False,
            "cached_tenant_stores": len(tenant_router.cached_tenant_ids()) if tenant_router else 0,
        }

    app.include_router(auth_router, prefix="/api/auth", tags=["Authentication"])
    app.include_router(agents_router, prefix="/api/agents", tags=["Agents"])
    app.include_router(conversations_router, prefix="/api/conversations", tags=["Conversations"])
    app.include_router(admin_router, prefix="/api/admin", tags=["Admin Dashboard"])

    return app


setup_logging()
app = create_app()


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting server on {settings.host}:{settings.port}")

    uvicorn.run(
        "agentdesk.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
        log_level=settings.log_level.lower()
    )
