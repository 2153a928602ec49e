"""Custody REST API routes.

Routes:
    POST   /api/v1/custody              — Open a temporary custody
    PATCH  /api/v1/custody/{id}/status  — Return, cancel or report a violation
"""

from __future__ import annotations

import uuid  # noqa: TC003 - needed at runtime by FastAPI

from fastapi import APIRouter, Depends

from pet_lifecycle.api.deps import get_coordinator, get_principal
from pet_lifecycle.domain.policies import Principal
from pet_lifecycle.schemas.lifecycle import (
    CreateCustodyRequest,
    CustodyResponse,
    UpdateCustodyStatusRequest,
)
from pet_lifecycle.services.coordinator import LifecycleCoordinator

router = APIRouter(prefix="/api/v1/custody", tags=["Custody"])


@router.post(
    "",
    response_model=CustodyResponse,
    status_code=201,
    summary="Open a temporary custody",
)
async def create_custody(
    request: CreateCustodyRequest,
    principal: Principal = Depends(get_principal),
    coordinator: LifecycleCoordinator = Depends(get_coordinator),
) -> CustodyResponse:
    """Create an ACTIVE custody with the caller as holder."""
    custody = await coordinator.create_custody(
        principal,
        request.pet_id,
        request.start_date,
        request.duration_days,
        request.deposit_amount,
    )
    return CustodyResponse.model_validate(custody)


@router.patch(
    "/{custody_id}/status",
    response_model=CustodyResponse,
    summary="End a custody",
)
async def update_custody_status(
    custody_id: uuid.UUID,
    request: UpdateCustodyStatusRequest,
    principal: Principal = Depends(get_principal),
    coordinator: LifecycleCoordinator = Depends(get_coordinator),
) -> CustodyResponse:
    custody = await coordinator.transition_custody_status(custody_id, request.status, principal)
    return CustodyResponse.model_validate(custody)
