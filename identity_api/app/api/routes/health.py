"""Health check endpoints.

- /health: liveness, always 200 while the app runs
- /healthz: readiness, checks DB, Redis (image cache) and the upload root
"""

import json
import os
from pathlib import Path
from typing import Annotated, Any

import redis
from fastapi import APIRouter, Depends, Response
from sqlalchemy import text

from identity_api.app.config import Settings, get_settings
from identity_api.app.db.engine import create_engine_from_settings, create_session_factory

router = APIRouter()


async def check_db(settings: Settings) -> tuple[bool, str]:
    """Check database connectivity.

    Returns:
        (is_ok, status_message)
    """
    try:
        engine = create_engine_from_settings(settings)
        session_factory = create_session_factory(engine)

        with session_factory() as session:
            session.execute(text("SELECT 1"))

        engine.dispose()
        return (True, "ok")
    except Exception as e:
        return (False, f"error: {type(e).__name__}")


async def check_redis(settings: Settings) -> tuple[bool, str]:
    """Check Redis connectivity.

    Returns:
        (is_ok, status_message)
    """
    if not settings.redis_url:
        return (True, "not_configured")

    try:
        client = redis.from_url(settings.redis_url, decode_responses=True)  # type: ignore[no-untyped-call]
        client.ping()
        return (True, "ok")
    except Exception as e:
        return (False, f"error: {type(e).__name__}")


async def check_storage(settings: Settings) -> tuple[bool, str]:
    """Check the upload root is a writable directory.

    Returns:
        (is_ok, status_message)
    """
    root = Path(settings.upload_root)
    if not root.exists():
        return (True, "not_created")
    if not root.is_dir() or not os.access(root, os.W_OK):
        return (False, "error: not_writable")
    return (True, "ok")


@router.get("/health")
async def health() -> dict[str, str]:
    """Simple health check for Docker/k8s.

    Returns:
        200 OK always (application is running)
    """
    return {"status": "ok"}


@router.get("/healthz", response_model=None)
async def healthz(
    settings: Annotated[Settings, Depends(get_settings)],
) -> dict[str, Any] | Response:
    """Health check endpoint.

    Checks:
    - Database connectivity
    - Redis connectivity
    - Upload root

    Returns:
        200 with component status if core systems ok
        503 if critical components fail
    """
    db_ok, db_status = await check_db(settings)
    redis_ok, redis_status = await check_redis(settings)
    storage_ok, storage_status = await check_storage(settings)

    core_ok = db_ok and redis_ok and storage_ok

    response_body = {
        "status": "ok" if core_ok else "degraded",
        "components": {
            "db": db_status,
            "redis": redis_status,
            "storage": storage_status,
        },
    }

    if not core_ok:
        return Response(
            content=json.dumps(response_body),
            status_code=503,
            media_type="application/json",
        )

    return response_body
