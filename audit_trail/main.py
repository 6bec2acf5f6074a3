"""FastAPI entrypoint exposing the audit trail."""

from __future__ import annotations

import logging

from fastapi import FastAPI

from audit_trail.api.v1.api import api_router
from audit_trail.core.config import settings
from audit_trail.db.base import Base
from audit_trail.db.migrations import ensure_sqlite_schema
from audit_trail.db.session import engine
from audit_trail.services.registry import registry

logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name)
app.include_router(api_router, prefix="/api/v1")


@app.on_event("startup")
def startup() -> None:
    logging.basicConfig(level=settings.log_level)
    Base.metadata.create_all(bind=engine)
    ensure_sqlite_schema(engine)
    logger.info("[BOOTSTRAP] audited types: %s", ", ".join(sorted(registry.audited_types())) or "none")


@app.get("/")
def root() -> dict[str, str]:
    return {"service": settings.app_name, "status": "ok"}
