from __future__ import annotations

from pathlib import Path

from dotenv import load_dotenv

# load the project root .env before any settings are read
project_root = Path(__file__).parent.parent
env_path = project_root / ".env"
if env_path.exists():
    load_dotenv(env_path)

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ingestion.settings import get_settings
from ingestion.utils.logging import configure_logging, get_logger

from .routes import router

_settings = get_settings()
configure_logging(_settings.structlog_level, json_enabled=_settings.log_json)
get_logger(__name__).info("api.start", extra={"env_file": str(env_path) if env_path.exists() else None})

app = FastAPI(title="AGI Signal Scanner API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_methods=["GET"],
    allow_headers=["*"],
)

app.include_router(router)


@app.get("/healthz", tags=["system"])
async def healthcheck() -> dict[str, str]:
    return {"status": "ok"}
