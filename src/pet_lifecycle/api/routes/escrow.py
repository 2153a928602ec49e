"""Escrow REST API routes.

Escrows are created by the adoption funding and custody endpoints; these
routes settle them. Release and refund are administrative actions.

Routes:
    GET    /api/v1/escrow/{id}         — Get escrow details
    POST   /api/v1/escrow/{id}/release — Release funds and run the cascades
    POST   /api/v1/escrow/{id}/refund  — Refund funds and run the cascades
"""

from __future__ import annotations

import uuid  # noqa: TC003 - needed at runtime by FastAPI

from fastapi import APIRouter, Depends

from pet_lifecycle.api.deps import get_coordinator, get_principal
from pet_lifecycle.domain.policies import Principal, is_admin, require
from pet_lifecycle.logging_config import get_logger
from pet_lifecycle.schemas.lifecycle import EscrowResponse
from pet_lifecycle.services.coordinator import LifecycleCoordinator

router = APIRouter(prefix="/api/v1/escrow", tags=["Escrow"])
logger = get_logger(__name__)


@router.get(
    "/{escrow_id}",
    response_model=EscrowResponse,
    summary="Get escrow details",
)
async def get_escrow(
    escrow_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    coordinator: LifecycleCoordinator = Depends(get_coordinator),
) -> EscrowResponse:
    escrow = await coordinator.get_escrow(escrow_id)
    return EscrowResponse.model_validate(escrow)


@router.post(
    "/{escrow_id}/release",
    response_model=EscrowResponse,
    summary="Release escrowed funds",
)
async def release_escrow(
    escrow_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    coordinator: LifecycleCoordinator = Depends(get_coordinator),
) -> EscrowResponse:
    """CREATED -> RELEASED. Completes a funded adoption and transfers ownership."""
    require(principal, is_admin, f"release escrow {escrow_id}")
    logger.info("api.escrow_release", escrow_id=str(escrow_id), admin_id=str(principal.user_id))
    escrow = await coordinator.release_escrow(escrow_id, actor_id=principal.user_id)
    return EscrowResponse.model_validate(escrow)


@router.post(
    "/{escrow_id}/refund",
    response_model=EscrowResponse,
    summary="Refund escrowed funds",
)
async def refund_escrow(
    escrow_id: uuid.UUID,
    principal: Principal = Depends(get_principal),
    coordinator: LifecycleCoordinator = Depends(get_coordinator),
) -> EscrowResponse:
    """CREATED -> REFUNDED. Refunds a funded adoption or a custody deposit."""
    require(principal, is_admin, f"refund escrow {escrow_id}")
    logger.info("api.escrow_refund", escrow_id=str(escrow_id), admin_id=str(principal.user_id))
    escrow = await coordinator.refund_escrow(escrow_id, actor_id=principal.user_id)
    return EscrowResponse.model_validate(escrow)
