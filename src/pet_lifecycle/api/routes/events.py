"""Audit trail REST API routes.

Routes:
    GET    /api/v1/events/{entity_type}/{entity_id}  — Chronological event log
"""

from __future__ import annotations

import uuid  # noqa: TC003 - needed at runtime by FastAPI

from fastapi import APIRouter, Depends

from pet_lifecycle.api.deps import get_coordinator
from pet_lifecycle.domain.enums import EntityType  # noqa: TC001 - needed at runtime
from pet_lifecycle.schemas.lifecycle import EventLogResponse
from pet_lifecycle.services.coordinator import LifecycleCoordinator

router = APIRouter(prefix="/api/v1/events", tags=["Events"])


@router.get(
    "/{entity_type}/{entity_id}",
    response_model=list[EventLogResponse],
    summary="Get audit trail",
)
async def get_events(
    entity_type: EntityType,
    entity_id: uuid.UUID,
    coordinator: LifecycleCoordinator = Depends(get_coordinator),
) -> list[EventLogResponse]:
    """Return the full audit trail for an entity."""
    events = await coordinator.get_events(entity_type, entity_id)
    return [EventLogResponse.model_validate(e) for e in events]
