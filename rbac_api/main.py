"""FastAPI application entrypoint."""

import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse
from fastapi.staticfiles import StaticFiles

from rbac_api.api.v1 import v1_router
from rbac_api.core.config import get_settings
from rbac_api.core.database import get_engine, init_db
from rbac_api.core.errors import register_exception_handlers
from rbac_api.core.logging_config import configure_logging

_settings = get_settings()
configure_logging(_settings.log_level)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    # Startup: ensure tables exist (use Alembic in production)
    if not _settings.is_production:
        await init_db()
    yield
    await get_engine().dispose()


app = FastAPI(
    title="RBAC API",
    version="0.1.0",
    description="Multi-tenant users, roles and permissions",
    lifespan=lifespan,
)
register_exception_handlers(app)

# ── CORS ─────────────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in _settings.allowed_origins.split(",")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── API routes ───────────────────────────────────────────────
app.include_router(v1_router)


@app.get("/health", tags=["system"])
async def health_check() -> dict:
    return {"status": "ok"}


# ── Front-end static build ───────────────────────────────────
FRONTEND_DIR = os.path.realpath(_settings.frontend_dir)
BASE_PATH = "/" + _settings.frontend_base_path.strip("/")

if os.path.isdir(FRONTEND_DIR) and BASE_PATH != "/":
    assets_dir = os.path.join(FRONTEND_DIR, "assets")
    if os.path.isdir(assets_dir):
        app.mount(
            f"{BASE_PATH}/assets",
            StaticFiles(directory=assets_dir),
            name="frontend-assets",
        )

    @app.get(BASE_PATH + "/{path:path}", include_in_schema=False)
    async def frontend_spa(path: str = "") -> FileResponse:
        """Serve the SPA index.html for all client-side routes."""
        file_path = os.path.realpath(os.path.join(FRONTEND_DIR, path))
        if path and os.path.isfile(file_path) and file_path.startswith(FRONTEND_DIR):
            return FileResponse(file_path)
        return FileResponse(os.path.join(FRONTEND_DIR, "index.html"))

    @app.get(BASE_PATH, include_in_schema=False)
    async def frontend_root() -> FileResponse:
        return FileResponse(os.path.join(FRONTEND_DIR, "index.html"))
