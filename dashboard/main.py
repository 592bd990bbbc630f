from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from dashboard.utils.env import ensure_env_loaded
from dashboard.routes.sprints import router as sprints_router
from dashboard.routes.kpis import router as kpis_router
from dashboard.routes.cache import router as cache_router
from dashboard.routes.observability import router as observability_router
from dashboard.db import create_db_and_tables, engine
from dashboard.services.cache_service import cache_service
from contextlib import asynccontextmanager
import os
import logging

logger = logging.getLogger("server")


@asynccontextmanager
async def lifespan(app: FastAPI):
    ensure_env_loaded()
    create_db_and_tables()
    yield


app = FastAPI(
    title="Delivery Dashboard API",
    description="Delivery and KPI reporting backend with an in-process TTL cache. See `/docs` for OpenAPI UI.",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS
allowed_origins = os.getenv("CORS_ORIGINS", "*").split(",")
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in allowed_origins],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error"},
    )


app.include_router(sprints_router)
app.include_router(kpis_router)
app.include_router(cache_router)
app.include_router(observability_router)


@app.get("/health")
def health_check():
    checks: dict[str, object] = {"status": "ok"}
    try:
        from sqlalchemy import text
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        checks["db"] = "ok"
    except Exception as e:
        checks["db"] = f"error: {e}"
        checks["status"] = "degraded"
    checks["cache_entries"] = cache_service.get_stats()["total_entries"]
    return checks
