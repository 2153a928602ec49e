"""Pet REST API routes.

Routes:
    GET    /api/v1/pets/availability?ids=...  — Batch availability (two queries)
    GET    /api/v1/pets/{id}                  — Pet with computed availability
"""

from __future__ import annotations

import uuid  # noqa: TC003 - needed at runtime by FastAPI

from fastapi import APIRouter, Depends, Query

from pet_lifecycle.api.deps import get_coordinator
from pet_lifecycle.schemas.lifecycle import PetAvailabilityBatchResponse, PetResponse
from pet_lifecycle.services.coordinator import LifecycleCoordinator

router = APIRouter(prefix="/api/v1/pets", tags=["Pets"])


@router.get(
    "/availability",
    response_model=PetAvailabilityBatchResponse,
    summary="Resolve availability for many pets",
)
async def get_availability_batch(
    ids: list[uuid.UUID] = Query(default=[]),
    coordinator: LifecycleCoordinator = Depends(get_coordinator),
) -> PetAvailabilityBatchResponse:
    availability = await coordinator.resolve_pet_availability_batch(ids)
    return PetAvailabilityBatchResponse(availability=availability)


@router.get(
    "/{pet_id}",
    response_model=PetResponse,
    summary="Get a pet with its computed availability",
)
async def get_pet(
    pet_id: uuid.UUID,
    coordinator: LifecycleCoordinator = Depends(get_coordinator),
) -> PetResponse:
    result = await coordinator.get_pet(pet_id)
    pet = result.pet
    return PetResponse(
        id=pet.id,
        name=pet.name,
        species=pet.species,
        breed=pet.breed,
        age=pet.age,
        current_owner_id=pet.current_owner_id,
        availability=result.availability,
    )
