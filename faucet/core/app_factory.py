"""Application factory for the FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers,
adapter wiring) so tests can build an app around fake adapters.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from faucet.adapters.captcha import create_captcha_verifier
from faucet.adapters.chain import create_chain_client
from faucet.adapters.counter_store import create_counter_store
from faucet.api.routes import admin_router, faucet_router, health_router
from faucet.core.config import settings
from faucet.core.exception_handlers import setup_exception_handlers
from faucet.core.logging import configure_logging
from faucet.core.middleware import request_id_middleware
from faucet.core.openapi import apply_openapi_customizations
from faucet.services.faucet_service import FaucetService

logger = logging.getLogger(__name__)


def build_faucet_service() -> FaucetService:
    """Wire the admission pipeline to the configured adapters.

    No network connection is opened here; adapters connect lazily.
    """
    return FaucetService(
        chain=create_chain_client(),
        captcha=create_captcha_verifier(),
        store=create_counter_store(),
    )


def _cors_origins() -> list[str]:
    return [origin.strip() for origin in settings.app.cors_origins.split(",") if origin.strip()]


def create_app(faucet_service: FaucetService | None = None) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        faucet_service: Prebuilt service (tests); built from settings if omitted.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    service = faucet_service or build_faucet_service()

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            "app.startup",
            extra={
                "environment": settings.app_env,
                "chain_id": settings.chain.chain_id,
                "faucet_address": service.chain.get_address(),
                "store_backend": settings.store.backend,
                "captcha_enabled": service.captcha.is_enabled(),
            },
        )
        yield
        await service.close()
        logger.info("app.shutdown")

    app = FastAPI(
        title="Token Faucet API",
        description=(
            "Distributes a fixed amount of native chain currency to wallet addresses "
            "after captcha verification, per-IP and per-address rate limits and a "
            "treasury balance check. Includes a bearer-token protected admin API and "
            "Prometheus metrics."
        ),
        version="0.1.0",
        debug=settings.app.debug,
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
        lifespan=lifespan,
    )
    app.state.faucet_service = service

    # Middleware
    app.middleware("http")(request_id_middleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cors_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=[settings.log.request_id_header, "Retry-After"],
    )

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(faucet_router)
    app.include_router(admin_router)
    app.include_router(health_router)

    # OpenAPI customizations (security scheme, tags)
    apply_openapi_customizations(app)

    return app
