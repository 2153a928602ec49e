"""Adoption REST API routes.

Routes:
    POST   /api/v1/adoptions                       — Request an adoption
    PATCH  /api/v1/adoptions/{id}/status           — Review, decide or cancel
    POST   /api/v1/adoptions/{id}/escrow           — Fund an approved adoption
    GET    /api/v1/adoptions/transitions/{status}  — Legal next states
"""

from __future__ import annotations

import uuid  # noqa: TC003 - needed at runtime by FastAPI

from fastapi import APIRouter, Depends

from pet_lifecycle.api.deps import get_coordinator, get_principal
from pet_lifecycle.domain.enums import AdoptionStatus  # noqa: TC001 - needed at runtime
from pet_lifecycle.domain.policies import Principal
from pet_lifecycle.schemas.lifecycle import (
    AdoptionResponse,
    CreateAdoptionRequest,
    FundAdoptionRequest,
    TransitionInfoResponse,
    UpdateAdoptionStatusRequest,
)
from pet_lifecycle.services.coordinator import LifecycleCoordinator

router = APIRouter(prefix="/api/v1/adoptions", tags=["Adoptions"])


@router.post(
    "",
    response_model=AdoptionResponse,
    status_code=201,
    summary="Request an adoption",
)
async def request_adoption(
    request: CreateAdoptionRequest,
    principal: Principal = Depends(get_principal),
    coordinator: LifecycleCoordinator = Depends(get_coordinator),
) -> AdoptionResponse:
    """Create a REQUESTED adoption with the caller as adopter."""
    adoption = await coordinator.request_adoption(principal, request.pet_id, request.notes)
    return AdoptionResponse.model_validate(adoption)


@router.patch(
    "/{adoption_id}/status",
    response_model=AdoptionResponse,
    summary="Change an adoption's status",
)
async def update_adoption_status(
    adoption_id: uuid.UUID,
    request: UpdateAdoptionStatusRequest,
    principal: Principal = Depends(get_principal),
    coordinator: LifecycleCoordinator = Depends(get_coordinator),
) -> AdoptionResponse:
    adoption = await coordinator.transition_adoption_status(
        adoption_id,
        request.status,
        principal,
        is_admin=request.is_admin,
        reason=request.reason,
    )
    return AdoptionResponse.model_validate(adoption)


@router.post(
    "/{adoption_id}/escrow",
    response_model=AdoptionResponse,
    summary="Fund an approved adoption",
)
async def fund_adoption(
    adoption_id: uuid.UUID,
    request: FundAdoptionRequest,
    principal: Principal = Depends(get_principal),
    coordinator: LifecycleCoordinator = Depends(get_coordinator),
) -> AdoptionResponse:
    """APPROVED -> ESCROW_FUNDED backed by a new escrow."""
    adoption = await coordinator.fund_adoption_escrow(adoption_id, request.amount, principal)
    return AdoptionResponse.model_validate(adoption)


@router.get(
    "/transitions/{status}",
    response_model=TransitionInfoResponse,
    summary="List legal next states",
)
async def get_transitions(
    status: AdoptionStatus,
    coordinator: LifecycleCoordinator = Depends(get_coordinator),
) -> TransitionInfoResponse:
    info = coordinator.describe_adoption_status(status)
    return TransitionInfoResponse(
        current_status=info.current_status,
        allowed_transitions=info.allowed_transitions,
        is_terminal=info.is_terminal,
    )
