"""Public faucet endpoints."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Annotated

from fastapi import APIRouter, Depends, Request, Response, status

from faucet.core.dependencies import get_client_ip, get_faucet_service
from faucet.core.logging import get_request_id
from faucet.core.rate_limit import enforce_burst_limit
from faucet.schemas.faucet import (
    ApiResponse,
    CooldownStatus,
    FaucetInfo,
    FaucetRequestBody,
    FaucetRequestData,
    FaucetStats,
    HealthStatus,
)
from faucet.services.faucet_service import FaucetService, format_amount

router = APIRouter(prefix="/api/faucet", tags=["Faucet"])

FaucetServiceDep = Annotated[FaucetService, Depends(get_faucet_service)]


@router.post(
    "/request",
    response_model=ApiResponse[FaucetRequestData],
    dependencies=[Depends(enforce_burst_limit)],
)
async def request_tokens(
    body: FaucetRequestBody,
    request: Request,
    service: FaucetServiceDep,
) -> ApiResponse[FaucetRequestData]:
    """Send the fixed amount to ``address`` after captcha and rate-limit checks.

    Errors use the standard error envelope: 400 for invalid input or captcha,
    429 with ``Retry-After`` when rate limited, 503 when the treasury is low
    or a dependency is down, 500 when the transfer fails.
    """
    result = await service.process_request(
        body.address,
        body.proof_token,
        get_client_ip(request),
        get_request_id(),
    )
    return ApiResponse(
        data=FaucetRequestData(
            tx_hash=result.hash,
            address=result.to_address,
            amount=format_amount(result.amount),
            timestamp=datetime.now(timezone.utc),
        )
    )


@router.get("/info", response_model=ApiResponse[FaucetInfo])
async def faucet_info(service: FaucetServiceDep) -> ApiResponse[FaucetInfo]:
    return ApiResponse(data=await service.get_faucet_info())


@router.get("/stats", response_model=ApiResponse[FaucetStats])
async def faucet_stats(service: FaucetServiceDep) -> ApiResponse[FaucetStats]:
    return ApiResponse(data=await service.get_stats())


@router.get("/cooldown/{address}", response_model=ApiResponse[CooldownStatus])
async def cooldown(address: str, service: FaucetServiceDep) -> ApiResponse[CooldownStatus]:
    """Whether ``address`` may request now. Does not consume a request."""
    return ApiResponse(data=await service.check_cooldown(address))


@router.get("/health", response_model=ApiResponse[HealthStatus])
async def faucet_health(response: Response, service: FaucetServiceDep) -> ApiResponse[HealthStatus]:
    health = await service.health_check()
    if not health.healthy:
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    return ApiResponse(success=health.healthy, data=health)
