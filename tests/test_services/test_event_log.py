"""Tests for the two logging paths and the append-only audit log."""

from __future__ import annotations

import uuid
from decimal import Decimal

import pytest
from conftest import count_events, get_pet, get_user, principal_for
from sqlalchemy import func, select
from sqlalchemy.exc import OperationalError

from pet_lifecycle.domain.enums import (
    AdoptionStatus,
    AppLogLevel,
    EntityType,
    EscrowStatus,
    EventType,
)
from pet_lifecycle.domain.exceptions import AuditLogImmutableError, EventLogWriteError
from pet_lifecycle.infrastructure.database.orm_models import Adoption, AppLog, EventLog
from pet_lifecycle.infrastructure.database.repositories import EventRepository
from pet_lifecycle.services.event_log import DiagnosticLogService, EventLogService

pytestmark = pytest.mark.asyncio


def _broken_factory():
    raise OperationalError("SELECT 1", {}, Exception("database is unavailable"))


class TestEventLogService:
    async def test_appends_within_transaction(self, session_factory) -> None:
        entity_id = uuid.uuid4()
        async with session_factory() as session, session.begin():
            entry = await EventLogService(session).log_event(
                entity_type=EntityType.PET,
                entity_id=entity_id,
                event_type=EventType.PET_STATUS_CHANGED,
                payload={"oldStatus": "AVAILABLE", "newStatus": "PENDING"},
                metadata={"source": "test"},
            )
        assert entry.id is not None
        assert await count_events(session_factory, "PET_STATUS_CHANGED", entity_id) == 1

    async def test_write_failure_raises(self, session_factory, monkeypatch) -> None:
        async def fail(self, entry):
            raise OperationalError("INSERT", {}, Exception("disk full"))

        monkeypatch.setattr(EventRepository, "append", fail)
        async with session_factory() as session:
            with pytest.raises(EventLogWriteError, match="PET_STATUS_CHANGED"):
                await EventLogService(session).log_event(
                    entity_type=EntityType.PET,
                    entity_id=uuid.uuid4(),
                    event_type=EventType.PET_STATUS_CHANGED,
                    payload={},
                )

    async def test_failure_mid_cascade_rolls_back_everything(
        self, coordinator, session_factory, pet, owner, adopter, admin, monkeypatch
    ) -> None:
        adoption = await coordinator.request_adoption(principal_for(adopter), pet.id)
        await coordinator.transition_adoption_status(
            adoption.id, AdoptionStatus.APPROVED, principal_for(admin), is_admin=True
        )
        adoption = await coordinator.fund_adoption_escrow(
            adoption.id, Decimal("60.00"), principal_for(adopter)
        )
        events_before = await count_events(session_factory)

        original_append = EventRepository.append

        async def fail_on_trust(self, entry):
            if entry.event_type == EventType.TRUST_SCORE_UPDATED:
                raise OperationalError("INSERT", {}, Exception("disk full"))
            return await original_append(self, entry)

        monkeypatch.setattr(EventRepository, "append", fail_on_trust)

        with pytest.raises(EventLogWriteError):
            await coordinator.release_escrow(adoption.escrow_id, actor_id=admin.id)

        escrow = await coordinator.get_escrow(adoption.escrow_id)
        assert escrow.status == EscrowStatus.CREATED
        assert escrow.release_tx_hash is None
        async with session_factory() as session:
            stored = await session.get(Adoption, adoption.id)
            assert stored is not None
            assert stored.status == AdoptionStatus.ESCROW_FUNDED
        assert (await get_pet(session_factory, pet.id)).current_owner_id == owner.id
        assert (await get_user(session_factory, adopter.id)).trust_score == 50
        assert await count_events(session_factory) == events_before


class TestAuditLogImmutability:
    async def _stored_event(self, session_factory) -> uuid.UUID:
        async with session_factory() as session, session.begin():
            entry = await EventLogService(session).log_event(
                entity_type=EntityType.USER,
                entity_id=uuid.uuid4(),
                event_type=EventType.TRUST_SCORE_UPDATED,
                payload={"oldScore": 50, "newScore": 55},
            )
        return entry.id

    async def test_update_is_rejected(self, session_factory) -> None:
        event_id = await self._stored_event(session_factory)
        with pytest.raises(AuditLogImmutableError):
            async with session_factory() as session, session.begin():
                entry = await session.get(EventLog, event_id)
                assert entry is not None
                entry.event_type = EventType.ADOPTION_COMPLETED.value

    async def test_delete_is_rejected(self, session_factory) -> None:
        event_id = await self._stored_event(session_factory)
        with pytest.raises(AuditLogImmutableError):
            async with session_factory() as session, session.begin():
                entry = await session.get(EventLog, event_id)
                await session.delete(entry)
        assert await count_events(session_factory) == 1


class TestDiagnosticLogService:
    async def test_writes_row(self, session_factory) -> None:
        entry = await DiagnosticLogService(session_factory).log(
            AppLogLevel.WARN,
            "PATCH /api/v1/adoptions/x/status",
            "Invalid transition",
            metadata={"status": 409},
        )
        assert entry is not None
        async with session_factory() as session:
            total = (await session.execute(select(func.count()).select_from(AppLog))).scalar_one()
        assert total == 1

    async def test_failure_is_swallowed(self) -> None:
        service = DiagnosticLogService(_broken_factory)  # type: ignore[arg-type]
        assert await service.log(AppLogLevel.ERROR, "GET /boom", "boom") is None
