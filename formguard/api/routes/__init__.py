from __future__ import annotations

from formguard.api.routes.health import router as health_router
from formguard.api.routes.submissions import router as submissions_router

__all__ = ["health_router", "submissions_router"]
