from contextlib import asynccontextmanager

from fastapi import FastAPI
from sqlalchemy import text

from render_worker.api.routes_render import router as render_router
from render_worker.core.config import settings
from render_worker.core.logging import get_logger
from render_worker.db.session import get_engine, init_db


@asynccontextmanager
async def lifespan(app: FastAPI):
    log = get_logger("render_worker.api")
    try:
        with get_engine().connect() as conn:
            conn.execute(text("SELECT 1"))
        log.info("[DB] Database connection OK")
        init_db()
        log.info("[DB] ✅ Table book_render_jobs ready")
    except Exception as e:
        log.exception(f"[DB] Database initialisation failed: {e}")
        raise
    if settings.s3_endpoint:
        from render_worker.services.storage_service import ObjectStorage
        ObjectStorage().ensure_bucket()
    if not settings.celery_broker_url:
        log.warning("[REDIS] CELERY_BROKER_URL is not configured; render tasks cannot be dispatched.")
    yield
    get_engine().dispose()


def create_app(use_lifespan: bool = True) -> FastAPI:
    app = FastAPI(title="Book Page Render API", lifespan=lifespan if use_lifespan else None)
    app.include_router(render_router)

    @app.get("/health")
    def health():
        return {"ok": True}

    return app


app = create_app()
