"""
JobSwipe backend: FastAPI Application Entry Point

Registers all routers, applies middleware, and serves the API.
"""

import logging
import contextlib
import traceback
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from fastapi.middleware.cors import CORSMiddleware

from app.config import settings
from app.routers import jobs, queue, resume

# ── Logging ───────────────────────────────────────────────────
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
)
logger = logging.getLogger(__name__)


@contextlib.asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("%s is starting up", settings.app_name)
    from app.scheduler import start_scheduler, shutdown_scheduler
    start_scheduler()
    yield
    # Shutdown
    shutdown_scheduler()
    logger.info("%s is shutting down", settings.app_name)


# ── App factory ───────────────────────────────────────────────
app = FastAPI(
    title=settings.app_name,
    description=(
        "Job interaction pipeline: catalog queries, the per-user swipe queue, "
        "and resume intake over Supabase."
    ),
    version="0.1.0",
    lifespan=lifespan,
)

# ── CORS ──────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["*"],
)


# ── Global Exception Handler ─────────────────────────────────
# Unhandled errors still return JSON with CORS headers
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(
        "Unhandled exception on %s %s: %s: %s\n%s",
        request.method,
        request.url.path,
        type(exc).__name__,
        exc,
        traceback.format_exc(),
    )
    return JSONResponse(
        status_code=500,
        content={"detail": f"Internal server error: {type(exc).__name__}"},
    )


# ── Routers ───────────────────────────────────────────────────
app.include_router(jobs.router)
app.include_router(queue.router)
app.include_router(resume.router)


# ── Health Check ──────────────────────────────────────────────
@app.get("/", tags=["Health"])
async def health_check():
    return {"status": "ok", "service": settings.app_name}
