"""Tests for the Pet Availability Resolver against a real database."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta
from decimal import Decimal

import pytest
from conftest import count_events, create_pet, create_user, principal_for
from sqlalchemy import event

from pet_lifecycle.domain.enums import AdoptionStatus, PetAvailability
from pet_lifecycle.domain.exceptions import NotFoundError
from pet_lifecycle.services.unit import LifecycleUnit

pytestmark = pytest.mark.asyncio


class QueryCounter:
    """Counts statements issued against an engine while attached."""

    def __init__(self, engine) -> None:
        self._engine = engine.sync_engine
        self.count = 0

    def _on_execute(self, conn, cursor, statement, parameters, context, executemany) -> None:  # noqa: ANN001
        self.count += 1

    def __enter__(self) -> QueryCounter:
        event.listen(self._engine, "before_cursor_execute", self._on_execute)
        return self

    def __exit__(self, *exc: object) -> None:
        event.remove(self._engine, "before_cursor_execute", self._on_execute)


async def _pets_in_every_state(coordinator, session_factory, owner, admin) -> dict[str, uuid.UUID]:
    pets = {
        name: (await create_pet(session_factory, owner.id, name=name)).id
        for name in ("free", "pending", "custody", "rejected", "adopted", "rehomed", "retried")
    }
    adopter = await create_user(session_factory)
    newcomer = await create_user(session_factory)
    await coordinator.request_adoption(principal_for(adopter), pets["pending"])
    await coordinator.create_custody(
        principal_for(adopter), pets["custody"], datetime.now(UTC) + timedelta(days=1), 3
    )
    rejected = await coordinator.request_adoption(principal_for(adopter), pets["rejected"])
    await coordinator.transition_adoption_status(
        rejected.id, AdoptionStatus.REJECTED, principal_for(admin)
    )

    # Completed adoptions; "rehomed" then gets a newer open request.
    for name in ("adopted", "rehomed"):
        adoption = await coordinator.request_adoption(principal_for(adopter), pets[name])
        await coordinator.transition_adoption_status(
            adoption.id, AdoptionStatus.APPROVED, principal_for(admin), is_admin=True
        )
        adoption = await coordinator.fund_adoption_escrow(
            adoption.id, Decimal("80.00"), principal_for(adopter)
        )
        await coordinator.release_escrow(adoption.escrow_id, actor_id=admin.id)
    await coordinator.request_adoption(principal_for(newcomer), pets["rehomed"])

    # Older rejection followed by a newer open request.
    first = await coordinator.request_adoption(principal_for(newcomer), pets["retried"])
    await coordinator.transition_adoption_status(
        first.id, AdoptionStatus.REJECTED, principal_for(owner)
    )
    await coordinator.request_adoption(principal_for(newcomer), pets["retried"])
    return pets


class TestResolve:
    async def test_states(self, coordinator, session_factory, owner, admin) -> None:
        pets = await _pets_in_every_state(coordinator, session_factory, owner, admin)
        assert await coordinator.resolve_pet_availability(pets["free"]) == PetAvailability.AVAILABLE
        assert await coordinator.resolve_pet_availability(pets["pending"]) == PetAvailability.PENDING
        assert (
            await coordinator.resolve_pet_availability(pets["custody"]) == PetAvailability.IN_CUSTODY
        )
        assert (
            await coordinator.resolve_pet_availability(pets["rejected"]) == PetAvailability.AVAILABLE
        )
        assert await coordinator.resolve_pet_availability(pets["adopted"]) == PetAvailability.ADOPTED
        # The latest adoption wins over older closed ones.
        assert await coordinator.resolve_pet_availability(pets["rehomed"]) == PetAvailability.PENDING
        assert await coordinator.resolve_pet_availability(pets["retried"]) == PetAvailability.PENDING

    async def test_unknown_pet(self, coordinator) -> None:
        with pytest.raises(NotFoundError):
            await coordinator.resolve_pet_availability(uuid.uuid4())

    async def test_get_pet_includes_availability(self, coordinator, pet, adopter) -> None:
        await coordinator.request_adoption(principal_for(adopter), pet.id)
        result = await coordinator.get_pet(pet.id)
        assert result.pet.id == pet.id
        assert result.availability == PetAvailability.PENDING


class TestResolveBatch:
    async def test_matches_single_resolution(
        self, coordinator, session_factory, owner, admin
    ) -> None:
        pets = await _pets_in_every_state(coordinator, session_factory, owner, admin)
        ids = list(pets.values())

        batch = await coordinator.resolve_pet_availability_batch(ids)

        assert set(batch) == set(ids)
        for pet_id in ids:
            assert batch[pet_id] == await coordinator.resolve_pet_availability(pet_id)

    async def test_uses_two_queries(self, coordinator, engine, session_factory, owner, admin) -> None:
        pets = await _pets_in_every_state(coordinator, session_factory, owner, admin)
        ids = list(pets.values()) * 2

        with QueryCounter(engine) as counter:
            batch = await coordinator.resolve_pet_availability_batch(ids)

        assert counter.count == 2
        assert len(batch) == len(pets)

    async def test_empty_input_issues_no_queries(self, coordinator, engine) -> None:
        with QueryCounter(engine) as counter:
            assert await coordinator.resolve_pet_availability_batch([]) == {}
        assert counter.count == 0

    async def test_unknown_ids_are_available(self, coordinator) -> None:
        missing = uuid.uuid4()
        assert await coordinator.resolve_pet_availability_batch([missing]) == {
            missing: PetAvailability.AVAILABLE
        }


class TestLogAvailabilityChange:
    async def test_same_value_is_noop(self, session_factory, settings, pet) -> None:
        async with session_factory() as session, session.begin():
            unit = LifecycleUnit("test", session, settings)
            written = await unit.availability.log_availability_change(
                pet.id, PetAvailability.PENDING, PetAvailability.PENDING, "ADOPTION_PENDING_REVIEW"
            )
        assert written is False
        assert await count_events(session_factory, "PET_STATUS_CHANGED") == 0

    async def test_change_writes_payload(self, coordinator, session_factory, pet, adopter) -> None:
        await coordinator.request_adoption(principal_for(adopter), pet.id)

        events = await coordinator.get_events("PET", pet.id)
        assert len(events) == 1
        payload = events[0].payload
        assert payload["oldStatus"] == "AVAILABLE"
        assert payload["newStatus"] == "PENDING"
        assert payload["triggerEvent"] == "ADOPTION_REQUESTED"
        assert "timestamp" in payload
        assert events[0].actor_id == adopter.id

    async def test_review_step_logs_nothing(
        self, coordinator, session_factory, pet, owner, adopter
    ) -> None:
        adoption = await coordinator.request_adoption(principal_for(adopter), pet.id)
        await coordinator.transition_adoption_status(
            adoption.id, AdoptionStatus.PENDING_REVIEW, principal_for(owner)
        )
        assert await count_events(session_factory, "PET_STATUS_CHANGED", pet.id) == 1
