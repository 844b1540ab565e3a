"""
main.py — FastAPI Application Factory
======================================
Word Arena: real-time multiplayer vocabulary rooms (Battle & Survival).

Usage:
    # Development (hot reload)
    uvicorn wordarena.main:app --reload

    # Or directly
    python -m wordarena.main

    # Production (single worker: rooms live in process memory)
    uvicorn wordarena.main:app --host 0.0.0.0 --port 8000
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from wordarena.core.config import get_settings
from wordarena.core.errors import register_error_handlers

logger = logging.getLogger(__name__)


async def reap_idle_rooms_forever(interval: float, max_idle: float):
    """Background loop: drop rooms nobody has written to for max_idle seconds."""
    from wordarena.apps.rooms.service import reap_idle_rooms

    while True:
        await asyncio.sleep(interval)
        try:
            await reap_idle_rooms(max_idle)
        except Exception as e:
            logger.error(f"❌ Idle room reaper failed: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifecycle: startup and shutdown.
    """
    # ═══════════════════════════════════════════════════
    # STARTUP
    # ═══════════════════════════════════════════════════
    settings = get_settings()
    logging.basicConfig(
        level=settings.LOG_LEVEL.upper(),
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
    )
    print(f"🚀 Starting {settings.APP_NAME} v{settings.VERSION}")
    print(f"📍 Environment: {settings.ENV}")
    print(f"🗄️  Room store: {'In-Memory' if settings.USE_IN_MEMORY_DB else 'External'}")
    print(f"📚 Catalog: {'In-Memory' if settings.USE_IN_MEMORY_CATALOG else settings.CATALOG_API_URL}")

    if settings.USE_IN_MEMORY_DB:
        from wordarena.core.database import init_memory_db
        init_memory_db(settings.SUBSCRIPTION_QUEUE_SIZE)
        print("✅ In-memory room store initialized")

    reaper = asyncio.create_task(
        reap_idle_rooms_forever(settings.ROOM_REAP_INTERVAL_SECONDS, settings.ROOM_IDLE_TIMEOUT_SECONDS)
    )
    print(f"🧹 Idle room reaper every {settings.ROOM_REAP_INTERVAL_SECONDS}s")

    yield

    # ═══════════════════════════════════════════════════
    # SHUTDOWN
    # ═══════════════════════════════════════════════════
    print("👋 Shutting down gracefully...")
    reaper.cancel()
    from wordarena.apps.battle.service import turn_clock
    turn_clock.cancel_all()


def create_app() -> FastAPI:
    """
    FastAPI application factory.

    Returns:
        FastAPI: configured instance
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.VERSION,
        description="Word Arena — real-time multiplayer vocabulary rooms",
        debug=settings.DEBUG,
        lifespan=lifespan,
        docs_url="/docs" if settings.DEBUG else None,
        redoc_url="/redoc" if settings.DEBUG else None,
    )

    # ═══════════════════════════════════════════════════
    # CORS Middleware
    # ═══════════════════════════════════════════════════
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=settings.CORS_CREDENTIALS,
        allow_methods=settings.CORS_METHODS,
        allow_headers=settings.CORS_HEADERS,
    )

    # ═══════════════════════════════════════════════════
    # Request Timing Middleware
    # ═══════════════════════════════════════════════════
    @app.middleware("http")
    async def add_process_time_header(request: Request, call_next):
        start_time = time.time()
        response = await call_next(request)
        response.headers["X-Process-Time"] = f"{time.time() - start_time:.4f}s"
        return response

    # ═══════════════════════════════════════════════════
    # Error envelope
    # ═══════════════════════════════════════════════════
    register_error_handlers(app)

    # ═══════════════════════════════════════════════════
    # System endpoints
    # ═══════════════════════════════════════════════════
    @app.get("/health", tags=["system"])
    def health_check():
        """Liveness probe for load balancers and monitoring."""
        return {
            "status": "ok",
            "app": settings.APP_NAME,
            "version": settings.VERSION,
            "environment": settings.ENV,
            "db_mode": "in-memory" if settings.USE_IN_MEMORY_DB else "external",
        }

    @app.get("/", tags=["system"])
    def root():
        return {
            "message": f"{settings.APP_NAME} API",
            "version": settings.VERSION,
            "docs": "/docs" if settings.DEBUG else "disabled",
        }

    # ═══════════════════════════════════════════════════
    # Routers
    # ═══════════════════════════════════════════════════
    from wordarena.apps.battle.router import router as battle_router
    from wordarena.apps.rooms.router import router as rooms_router
    from wordarena.apps.survival.router import router as survival_router
    from wordarena.apps.ws.router import router as ws_router

    app.include_router(rooms_router)
    app.include_router(battle_router)
    app.include_router(survival_router)
    app.include_router(ws_router)

    return app


# ═══════════════════════════════════════════════════
# Application Instance (for uvicorn)
# ═══════════════════════════════════════════════════
app = create_app()


# ═══════════════════════════════════════════════════
# CLI Entry Point (python -m wordarena.main)
# ═══════════════════════════════════════════════════
if __name__ == "__main__":
    import uvicorn
    settings = get_settings()

    print("=" * 60)
    print(f"🎮 {settings.APP_NAME}")
    print("=" * 60)
    print(f"📡 Starting server at http://{settings.HOST}:{settings.PORT}")
    print(f"📚 API Docs: http://{settings.HOST}:{settings.PORT}/docs")
    print("=" * 60)

    uvicorn.run(
        "wordarena.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="info" if settings.DEBUG else "warning",
    )
