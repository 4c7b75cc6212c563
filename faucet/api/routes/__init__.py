from __future__ import annotations

from faucet.api.routes.admin import router as admin_router
from faucet.api.routes.faucet import router as faucet_router
from faucet.api.routes.health import router as health_router

__all__ = ["admin_router", "faucet_router", "health_router"]
