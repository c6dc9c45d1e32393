from __future__ import annotations

from app.api.routes.health import router as health_router
from app.api.routes.waitlist import router as waitlist_router
from app.api.routes.webhook import router as webhook_router

__all__ = ["health_router", "waitlist_router", "webhook_router"]
