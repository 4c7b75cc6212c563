from __future__ import annotations

from fastapi import APIRouter

router = APIRouter(tags=["Health"])

SERVICE_DESCRIPTOR = {
    "name": "Token Faucet API",
    "version": "0.1.0",
    "endpoints": {
        "faucet": "/api/faucet",
        "admin": "/api/admin",
        "health": "/health",
        "docs": "/docs",
    },
}


@router.get("/health")
def health_check() -> dict:
    """Liveness probe.

    Does not touch the chain or the counter store; use
    ``/api/faucet/health`` for dependency health.
    """

    return {"status": "ok"}


@router.get("/")
def root() -> dict:
    """Service descriptor."""

    return SERVICE_DESCRIPTOR
