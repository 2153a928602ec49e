"""Tests for the EscrowLedger: single settlement, immutability and timeouts."""

from __future__ import annotations

import asyncio
import uuid
from decimal import Decimal

import pytest
from conftest import count_events, principal_for
from sqlalchemy import select

from pet_lifecycle.domain.enums import AdoptionStatus, EscrowStatus
from pet_lifecycle.domain.exceptions import (
    ConflictError,
    EscrowAmountImmutableError,
    EscrowNotPendingError,
    InvalidAmountError,
    NotFoundError,
    SettlementError,
)
from pet_lifecycle.infrastructure.database.orm_models import Adoption, Escrow
from pet_lifecycle.services.coordinator import LifecycleCoordinator
from pet_lifecycle.services.payment_service import SettlementProvider
from pet_lifecycle.services.unit import LifecycleUnit

pytestmark = pytest.mark.asyncio


class SlowSettlementProvider(SettlementProvider):
    """Simulated provider whose transfers never finish in time."""

    async def _transfer(self, operation: str, reference: str, amount: Decimal) -> str:
        await asyncio.sleep(5)
        return "0xlate"


async def _funded(coordinator, pet, adopter, admin) -> Adoption:
    adoption = await coordinator.request_adoption(principal_for(adopter), pet.id)
    await coordinator.transition_adoption_status(
        adoption.id, AdoptionStatus.APPROVED, principal_for(admin), is_admin=True
    )
    return await coordinator.fund_adoption_escrow(
        adoption.id, Decimal("80.00"), principal_for(adopter)
    )


class TestCreateEscrow:
    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5.00")])
    async def test_rejects_non_positive_amount(self, session_factory, settings, amount) -> None:
        async with session_factory() as session, session.begin():
            unit = LifecycleUnit("test", session, settings)
            with pytest.raises(InvalidAmountError):
                await unit.ledger.create_escrow(amount)

    async def test_funding_with_zero_amount_changes_nothing(
        self, coordinator, session_factory, pet, adopter, admin
    ) -> None:
        adoption = await coordinator.request_adoption(principal_for(adopter), pet.id)
        await coordinator.transition_adoption_status(
            adoption.id, AdoptionStatus.APPROVED, principal_for(admin), is_admin=True
        )
        with pytest.raises(InvalidAmountError):
            await coordinator.fund_adoption_escrow(adoption.id, Decimal("0"), principal_for(adopter))

        async with session_factory() as session:
            stored = await session.get(Adoption, adoption.id)
            assert stored is not None
            assert stored.status == AdoptionStatus.APPROVED
            assert stored.escrow_id is None
        assert await count_events(session_factory, "ESCROW_CREATED") == 0

    async def test_reference_is_recorded(self, session_factory, settings) -> None:
        async with session_factory() as session, session.begin():
            unit = LifecycleUnit("test", session, settings)
            escrow = await unit.ledger.create_escrow(Decimal("12.50"))
        assert escrow.status == EscrowStatus.CREATED
        assert escrow.settlement_reference.startswith("ESCROW_")
        assert escrow.release_tx_hash is None
        assert escrow.refund_tx_hash is None


class TestSettlement:
    async def test_release_stamps_tx_hash(self, coordinator, session_factory, pet, adopter, admin) -> None:
        adoption = await _funded(coordinator, pet, adopter, admin)
        escrow = await coordinator.release_escrow(adoption.escrow_id, actor_id=admin.id)

        assert escrow.status == EscrowStatus.RELEASED
        assert escrow.release_tx_hash is not None
        assert escrow.release_tx_hash.startswith("0x")
        assert escrow.refund_tx_hash is None

        events = await coordinator.get_events("ESCROW", escrow.id)
        assert [e.event_type for e in events] == ["ESCROW_CREATED", "ESCROW_RELEASED"]
        assert events[-1].tx_hash == escrow.release_tx_hash
        assert events[-1].payload["adoptionId"] == str(adoption.id)

    async def test_second_release_conflicts(
        self, coordinator, session_factory, pet, adopter, admin
    ) -> None:
        adoption = await _funded(coordinator, pet, adopter, admin)
        await coordinator.release_escrow(adoption.escrow_id, actor_id=admin.id)
        before = await count_events(session_factory)

        with pytest.raises(EscrowNotPendingError, match="RELEASED"):
            await coordinator.release_escrow(adoption.escrow_id, actor_id=admin.id)
        with pytest.raises(ConflictError):
            await coordinator.refund_escrow(adoption.escrow_id, actor_id=admin.id)

        assert await count_events(session_factory) == before

    async def test_refund_after_refund_conflicts(
        self, coordinator, session_factory, pet, adopter, admin
    ) -> None:
        adoption = await _funded(coordinator, pet, adopter, admin)
        await coordinator.refund_escrow(adoption.escrow_id, actor_id=admin.id)

        with pytest.raises(EscrowNotPendingError, match="REFUNDED"):
            await coordinator.refund_escrow(adoption.escrow_id, actor_id=admin.id)

    async def test_missing_escrow(self, coordinator) -> None:
        with pytest.raises(NotFoundError):
            await coordinator.release_escrow(uuid.uuid4())
        with pytest.raises(NotFoundError):
            await coordinator.get_escrow(uuid.uuid4())

    async def test_unlinked_escrow_settles_without_cascade(self, coordinator, session_factory, settings) -> None:
        async with session_factory() as session, session.begin():
            escrow = await LifecycleUnit("test", session, settings).ledger.create_escrow(
                Decimal("5.00")
            )
        settled = await coordinator.refund_escrow(escrow.id)
        assert settled.status == EscrowStatus.REFUNDED
        assert await count_events(session_factory, "PET_STATUS_CHANGED") == 0


class TestSettlementTimeout:
    async def test_timeout_rolls_back(
        self, session_factory, settings, pet, adopter, admin
    ) -> None:
        slow_settings = settings.model_copy(update={"settlement_timeout_seconds": 0.05})
        coordinator = LifecycleCoordinator(
            session_factory,
            slow_settings,
            SlowSettlementProvider(simulate=True, settings=slow_settings),
        )
        adoption = await _funded(coordinator, pet, adopter, admin)
        events_before = await count_events(session_factory)

        with pytest.raises(SettlementError, match="timed out"):
            await coordinator.release_escrow(adoption.escrow_id, actor_id=admin.id)

        escrow = await coordinator.get_escrow(adoption.escrow_id)
        assert escrow.status == EscrowStatus.CREATED
        assert await count_events(session_factory) == events_before
        async with session_factory() as session:
            stored = await session.get(Adoption, adoption.id)
            assert stored is not None
            assert stored.status == AdoptionStatus.ESCROW_FUNDED


class TestAmountImmutable:
    async def test_amount_cannot_change(self, session_factory, settings) -> None:
        async with session_factory() as session, session.begin():
            escrow = await LifecycleUnit("test", session, settings).ledger.create_escrow(
                Decimal("30.00")
            )

        with pytest.raises(EscrowAmountImmutableError):
            async with session_factory() as session, session.begin():
                stored = (
                    await session.execute(select(Escrow).where(Escrow.id == escrow.id))
                ).scalar_one()
                stored.amount = Decimal("1.00")

        async with session_factory() as session:
            stored = await session.get(Escrow, escrow.id)
            assert stored is not None
            assert stored.amount == Decimal("30.00")
