"""Pet Availability Resolver.

Computes pet availability on demand from adoption and custody rows. Nothing
here writes a status onto the pet; the only write is the PET_STATUS_CHANGED
audit row when a transition moved the derived value.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TYPE_CHECKING

from pet_lifecycle.domain.availability import resolve_from_records
from pet_lifecycle.domain.enums import EntityType, EventType, PetAvailability
from pet_lifecycle.domain.exceptions import NotFoundError
from pet_lifecycle.infrastructure.database.repositories import (
    AdoptionRepository,
    CustodyRepository,
    PetRepository,
)
from pet_lifecycle.logging_config import get_logger

if TYPE_CHECKING:
    import uuid
    from collections.abc import Iterable

    from sqlalchemy.ext.asyncio import AsyncSession

    from pet_lifecycle.infrastructure.database.orm_models import Adoption, Custody, Pet
    from pet_lifecycle.services.event_log import EventLogService

logger = get_logger(__name__)


@dataclass(frozen=True)
class PetWithAvailability:
    pet: Pet
    availability: PetAvailability


class PetAvailabilityService:
    """Derives a pet's computed status from its latest adoption and active custody."""

    def __init__(self, session: AsyncSession, events: EventLogService) -> None:
        self._pets = PetRepository(session)
        self._adoptions = AdoptionRepository(session)
        self._custodies = CustodyRepository(session)
        self._events = events

    async def resolve(self, pet_id: uuid.UUID) -> PetAvailability:
        latest_adoption = await self._adoptions.find_latest_for_pet(pet_id)
        active_custody = await self._custodies.find_active_for_pet(pet_id)
        return resolve_from_records(latest_adoption, active_custody)

    async def resolve_batch(
        self, pet_ids: Iterable[uuid.UUID]
    ) -> dict[uuid.UUID, PetAvailability]:
        """Resolve many pets with exactly two queries."""
        ids = list(dict.fromkeys(pet_ids))
        if not ids:
            return {}

        adoptions = await self._adoptions.find_for_pets(ids)
        custodies = await self._custodies.find_active_for_pets(ids)

        # Rows arrive newest first, so the first adoption seen per pet is the latest.
        latest: dict[uuid.UUID, Adoption] = {}
        for adoption in adoptions:
            latest.setdefault(adoption.pet_id, adoption)
        active: dict[uuid.UUID, Custody] = {}
        for custody in custodies:
            active.setdefault(custody.pet_id, custody)

        return {
            pet_id: resolve_from_records(latest.get(pet_id), active.get(pet_id))
            for pet_id in ids
        }

    async def get_pet_with_availability(self, pet_id: uuid.UUID) -> PetWithAvailability:
        pet = await self._pets.get_by_id(pet_id)
        if pet is None:
            raise NotFoundError("Pet", pet_id)
        return PetWithAvailability(pet=pet, availability=await self.resolve(pet_id))

    async def log_availability_change(
        self,
        pet_id: uuid.UUID,
        old_status: PetAvailability,
        new_status: PetAvailability,
        trigger_event: str,
        actor_id: uuid.UUID | None = None,
    ) -> bool:
        """Record a PET_STATUS_CHANGED row when the value moved.

        Returns True when a row was written. Same-value calls are no-ops.
        """
        if old_status == new_status:
            return False

        await self._events.log_event(
            entity_type=EntityType.PET,
            entity_id=pet_id,
            event_type=EventType.PET_STATUS_CHANGED,
            actor_id=actor_id,
            payload={
                "oldStatus": old_status.value,
                "newStatus": new_status.value,
                "triggerEvent": trigger_event,
                "timestamp": datetime.now(UTC).isoformat(),
            },
        )
        logger.info(
            "pet.availability_changed",
            pet_id=str(pet_id),
            old=old_status.value,
            new=new_status.value,
            trigger=trigger_event,
        )
        return True
