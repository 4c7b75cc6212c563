"""Administrative endpoints (bearer token required)."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, Query, Response

from faucet.core.auth import verify_admin_token
from faucet.core.dependencies import get_faucet_service
from faucet.core.logging import get_request_id
from faucet.schemas.admin import (
    BalanceInfo,
    ConfigSnapshot,
    Dashboard,
    ManualSendBody,
    ResetRateLimitBody,
    ResetRateLimitResult,
)
from faucet.schemas.faucet import ApiResponse, FaucetRequestData, TransactionRecord
from faucet.services.faucet_service import FaucetService, format_amount
from faucet.services.metrics_service import METRICS_CONTENT_TYPE, render_metrics

router = APIRouter(
    prefix="/api/admin",
    tags=["Admin"],
    dependencies=[Depends(verify_admin_token)],
)

FaucetServiceDep = Annotated[FaucetService, Depends(get_faucet_service)]


@router.get("/dashboard", response_model=ApiResponse[Dashboard])
async def dashboard(service: FaucetServiceDep) -> ApiResponse[Dashboard]:
    return ApiResponse(data=await service.get_dashboard())


@router.get("/balance", response_model=ApiResponse[BalanceInfo])
async def balance(service: FaucetServiceDep) -> ApiResponse[BalanceInfo]:
    return ApiResponse(data=await service.get_balance_info())


@router.get("/recent-requests", response_model=ApiResponse[list[TransactionRecord]])
async def recent_requests(
    service: FaucetServiceDep,
    limit: Annotated[int, Query(ge=1, le=500)] = 50,
) -> ApiResponse[list[TransactionRecord]]:
    return ApiResponse(data=await service.get_recent_requests(limit))


@router.post("/reset-rate-limit", response_model=ApiResponse[ResetRateLimitResult])
async def reset_rate_limit(
    body: ResetRateLimitBody,
    service: FaucetServiceDep,
) -> ApiResponse[ResetRateLimitResult]:
    deleted = await service.reset_rate_limit(body.type, body.value)
    return ApiResponse(data=ResetRateLimitResult(type=body.type, value=body.value, reset=deleted))


@router.get("/config", response_model=ApiResponse[ConfigSnapshot])
async def config_snapshot(service: FaucetServiceDep) -> ApiResponse[ConfigSnapshot]:
    return ApiResponse(data=service.get_config_snapshot())


@router.post("/manual-send", response_model=ApiResponse[FaucetRequestData])
async def manual_send(
    body: ManualSendBody,
    service: FaucetServiceDep,
) -> ApiResponse[FaucetRequestData]:
    """Send the fixed amount without captcha or rate limits (balance check still applies)."""
    result = await service.manual_send(body.address, get_request_id())
    return ApiResponse(
        data=FaucetRequestData(
            tx_hash=result.hash,
            address=result.to_address,
            amount=format_amount(result.amount),
            timestamp=datetime.now(timezone.utc),
        )
    )


@router.get("/metrics", response_class=Response)
async def metrics(service: FaucetServiceDep) -> Response:
    stats = await service.get_stats()
    health = await service.health_check()
    return Response(content=render_metrics(stats, health), media_type=METRICS_CONTENT_TYPE)
