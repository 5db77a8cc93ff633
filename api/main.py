from __future__ import annotations

import logging
from pathlib import Path

from dotenv import load_dotenv

# Explicitly load the project-root .env before settings are read
project_root = Path(__file__).parent.parent
env_path = project_root / ".env"
if env_path.exists():
    load_dotenv(env_path)

from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from ingestion.settings import get_settings

from .routes import router

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    app = FastAPI(title="AI News Web API", version="0.1.0")
    app.include_router(router)

    @app.get("/healthz", tags=["system"])
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    public_root = Path(get_settings().public_root)
    if public_root.is_dir():
        app.mount("/", StaticFiles(directory=public_root, html=True), name="public")
    else:
        logger.warning("api.public_root_missing", extra={"path": str(public_root)})
    return app


app = create_app()
