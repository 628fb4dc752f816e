"""FastAPI application."""

from fastapi import FastAPI

from identity_api.app.api.error_handlers import register_error_handlers
from identity_api.app.api.routes.connected_users import router as connected_users_router
from identity_api.app.api.routes.health import router as health_router
from identity_api.app.api.routes.metrics import router as metrics_router
from identity_api.app.api.routes.organization import router as organization_router
from identity_api.app.api.routes.organization_users import router as organization_users_router
from identity_api.app.api.routes.profile import router as profile_router
from identity_api.app.api.routes.public_users import router as public_users_router
from identity_api.app.api.routes.user import router as user_router
from identity_api.app.config import get_settings
from identity_api.app.utils.logging import configure_logging

configure_logging(get_settings().log_level)

app = FastAPI(title="Identity API", version="0.1.0")

register_error_handlers(app)

# Register routes
app.include_router(health_router, tags=["health"])
app.include_router(metrics_router, tags=["metrics"])
app.include_router(user_router)
app.include_router(profile_router)
app.include_router(organization_router)
app.include_router(organization_users_router)
app.include_router(connected_users_router)
app.include_router(public_users_router)


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"message": "Identity API", "version": "0.1.0"}
