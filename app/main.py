from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
import logging

from app.core.config import settings
from app.core.logging import setup_logging

# Import middleware and handlers
from app.common.handlers import register_exception_handlers
from app.common.inflight import InFlightGuard
from app.common.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware

# Import database components
from app.database.database import init_db
from app.modules.preferences.storage import build_storage

# Import routers
from app.modules.auth.router import auth_router
from app.modules.ventanillas.router import router as ventanillas_router
from app.modules.tipos_cambio.router import router as tipos_cambio_router
from app.modules.transacciones.router import router as transacciones_router
from app.modules.clientes.router import router as clientes_router
from app.modules.monedas.router import router as monedas_router
from app.modules.preferences.router import router as preferences_router
from app.modules.reports.routers import ganancias_router

# Configure logging
setup_logging(settings.log_level)
logger = logging.getLogger(__name__)

# FastAPI app
app = FastAPI(
    title="Casa de Cambio Back-Office",
    description="Back-office de casa de cambio: ventanillas, tipos de cambio, transacciones y clientes",
    version="1.0.0",
    docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None
)

# Estado compartido por todas las solicitudes
app.state.inflight_guard = InFlightGuard()
app.state.preference_storage = build_storage(settings.PREFERENCES_BACKEND)

# Add middleware (order matters!)
app.add_middleware(GZipMiddleware, minimum_size=1000)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(RequestLoggingMiddleware)

# CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Add your frontend URLs
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

# Include routers
app.include_router(auth_router, prefix="/auth", tags=["Auth"])
app.include_router(ventanillas_router)
app.include_router(tipos_cambio_router)
app.include_router(transacciones_router)
app.include_router(clientes_router)
app.include_router(monedas_router)
app.include_router(preferences_router)
app.include_router(ganancias_router)


@app.get("/")
async def read_root():
    return {
        "message": "Casa de Cambio Back-Office is running",
        "version": "1.0.0",
        "environment": settings.ENVIRONMENT
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy", "environment": settings.ENVIRONMENT}


@app.on_event("startup")
async def startup_event():
    logger.info("Casa de Cambio Back-Office starting up...")
    logger.info(f"Environment: {settings.ENVIRONMENT}")
    logger.info(f"Remote API: {settings.api_base_url}")

    # Tablas de preferencias (sin migraciones)
    if settings.PREFERENCES_BACKEND == "sql":
        init_db()


@app.on_event("shutdown")
async def shutdown_event():
    logger.info("Casa de Cambio Back-Office shutting down...")
