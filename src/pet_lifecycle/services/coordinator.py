"""Lifecycle Coordinator — the single entry point for lifecycle operations.

Each operation runs as one unit of work:

    1. Open a session and begin a transaction.
    2. Resolve the affected pet's availability before the mutation.
    3. Validate, persist and apply cascades (adoption / custody / escrow services).
    4. Resolve availability again; log PET_STATUS_CHANGED only if it moved.
    5. Commit. Any exception rolls the whole unit back and is re-raised
       unchanged after a ``lifecycle.aborted`` log line naming the stage reached.

Both the REST routes and the test suite call into this class.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

import structlog

from pet_lifecycle.config import Settings, get_settings
from pet_lifecycle.domain.enums import AdoptionStatus, CustodyStatus, EntityType
from pet_lifecycle.domain.exceptions import InvalidTransitionError
from pet_lifecycle.domain.transitions import adoption_validator, custody_validator
from pet_lifecycle.logging_config import get_logger
from pet_lifecycle.services.adoption_service import AdoptionService
from pet_lifecycle.services.custody_service import CustodyService
from pet_lifecycle.services.unit import LifecycleStage, LifecycleUnit

if TYPE_CHECKING:
    import uuid
    from collections.abc import AsyncIterator, Iterable
    from datetime import datetime
    from decimal import Decimal

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from pet_lifecycle.domain.enums import PetAvailability
    from pet_lifecycle.domain.policies import Principal
    from pet_lifecycle.domain.transitions import TransitionInfo, TransitionValidator
    from pet_lifecycle.infrastructure.database.orm_models import (
        Adoption,
        Custody,
        Escrow,
        EventLog,
    )
    from pet_lifecycle.services.availability_service import PetWithAvailability
    from pet_lifecycle.services.payment_service import SettlementProvider

logger = get_logger(__name__)


class LifecycleCoordinator:
    """Runs every lifecycle operation atomically."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        settings: Settings | None = None,
        settlement: SettlementProvider | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._settings = settings or get_settings()
        self._settlement = settlement

    # ------------------------------------------------------------------
    # Adoptions
    # ------------------------------------------------------------------

    async def request_adoption(
        self,
        principal: Principal,
        pet_id: uuid.UUID,
        notes: str | None = None,
    ) -> Adoption:
        async with self._unit("request_adoption") as unit:
            before = await unit.availability.resolve(pet_id)
            adoption = await AdoptionService(unit).request(principal, pet_id, notes)
            await self._recompute(unit, pet_id, before, "ADOPTION_REQUESTED", principal.user_id)
            return adoption

    async def transition_adoption_status(
        self,
        adoption_id: uuid.UUID,
        target: AdoptionStatus | str,
        principal: Principal,
        is_admin: bool = False,
        reason: str | None = None,
    ) -> Adoption:
        async with self._unit("transition_adoption_status") as unit:
            service = AdoptionService(unit)
            adoption = await service.get_for_update(adoption_id)
            new_status = _coerce(adoption_validator, adoption.status, target)
            before = await unit.availability.resolve(adoption.pet_id)
            await service.transition(adoption, new_status, principal, is_admin, reason)
            await self._recompute(
                unit, adoption.pet_id, before, f"ADOPTION_{new_status}", principal.user_id
            )
            return adoption

    async def fund_adoption_escrow(
        self,
        adoption_id: uuid.UUID,
        amount: Decimal,
        principal: Principal,
    ) -> Adoption:
        async with self._unit("fund_adoption_escrow") as unit:
            service = AdoptionService(unit)
            adoption = await service.get_for_update(adoption_id)
            before = await unit.availability.resolve(adoption.pet_id)
            await service.fund_escrow(adoption, amount, principal)
            await self._recompute(
                unit, adoption.pet_id, before, "ADOPTION_ESCROW_FUNDED", principal.user_id
            )
            return adoption

    def describe_adoption_status(self, status: AdoptionStatus | str) -> TransitionInfo:
        return adoption_validator.describe(status)

    # ------------------------------------------------------------------
    # Custody
    # ------------------------------------------------------------------

    async def create_custody(
        self,
        principal: Principal,
        pet_id: uuid.UUID,
        start_date: datetime,
        duration_days: int,
        deposit_amount: Decimal | None = None,
    ) -> Custody:
        async with self._unit("create_custody") as unit:
            before = await unit.availability.resolve(pet_id)
            custody = await CustodyService(unit).create(
                principal, pet_id, start_date, duration_days, deposit_amount
            )
            await self._recompute(unit, pet_id, before, "CUSTODY_STARTED", principal.user_id)
            return custody

    async def transition_custody_status(
        self,
        custody_id: uuid.UUID,
        target: CustodyStatus | str,
        principal: Principal,
    ) -> Custody:
        async with self._unit("transition_custody_status") as unit:
            service = CustodyService(unit)
            custody = await service.get_for_update(custody_id)
            new_status = _coerce(custody_validator, custody.status, target)
            before = await unit.availability.resolve(custody.pet_id)
            await service.transition(custody, new_status, principal)
            await self._recompute(
                unit, custody.pet_id, before, f"CUSTODY_{new_status}", principal.user_id
            )
            return custody

    # ------------------------------------------------------------------
    # Escrow
    # ------------------------------------------------------------------

    async def release_escrow(
        self, escrow_id: uuid.UUID, actor_id: uuid.UUID | None = None
    ) -> Escrow:
        async with self._unit("release_escrow") as unit:
            return await self._settle(unit, escrow_id, actor_id, release=True)

    async def refund_escrow(
        self, escrow_id: uuid.UUID, actor_id: uuid.UUID | None = None
    ) -> Escrow:
        async with self._unit("refund_escrow") as unit:
            return await self._settle(unit, escrow_id, actor_id, release=False)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def resolve_pet_availability(self, pet_id: uuid.UUID) -> PetAvailability:
        async with self._read() as unit:
            return (await unit.availability.get_pet_with_availability(pet_id)).availability

    async def resolve_pet_availability_batch(
        self, pet_ids: Iterable[uuid.UUID]
    ) -> dict[uuid.UUID, PetAvailability]:
        async with self._read() as unit:
            return await unit.availability.resolve_batch(pet_ids)

    async def get_pet(self, pet_id: uuid.UUID) -> PetWithAvailability:
        async with self._read() as unit:
            return await unit.availability.get_pet_with_availability(pet_id)

    async def get_escrow(self, escrow_id: uuid.UUID) -> Escrow:
        async with self._read() as unit:
            return await unit.ledger.get_escrow(escrow_id)

    async def get_events(self, entity_type: EntityType | str, entity_id: uuid.UUID) -> list[EventLog]:
        async with self._read() as unit:
            return await unit.events.get_events(EntityType(entity_type), entity_id)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @asynccontextmanager
    async def _unit(self, operation: str) -> AsyncIterator[LifecycleUnit]:
        """One transaction per operation; abort logs the stage reached."""
        unit: LifecycleUnit | None = None
        with structlog.contextvars.bound_contextvars(operation=operation):
            try:
                async with self._session_factory() as session, session.begin():
                    unit = LifecycleUnit(operation, session, self._settings, self._settlement)
                    yield unit
                unit.advance(LifecycleStage.ACKNOWLEDGED)
            except Exception as exc:
                logger.warning(
                    "lifecycle.aborted",
                    stage=unit.stage.name if unit else LifecycleStage.RECEIVED.name,
                    error_type=type(exc).__name__,
                    error=str(exc),
                )
                raise

    @asynccontextmanager
    async def _read(self) -> AsyncIterator[LifecycleUnit]:
        async with self._session_factory() as session:
            yield LifecycleUnit("read", session, self._settings, self._settlement)

    async def _recompute(
        self,
        unit: LifecycleUnit,
        pet_id: uuid.UUID,
        before: PetAvailability,
        trigger: str,
        actor_id: uuid.UUID | None,
    ) -> None:
        after = await unit.availability.resolve(pet_id)
        unit.advance(LifecycleStage.AVAILABILITY_RECOMPUTED)
        await unit.availability.log_availability_change(pet_id, before, after, trigger, actor_id)
        unit.advance(LifecycleStage.LOGGED)

    async def _settle(
        self,
        unit: LifecycleUnit,
        escrow_id: uuid.UUID,
        actor_id: uuid.UUID | None,
        *,
        release: bool,
    ) -> Escrow:
        escrow = await unit.ledger.get_escrow(escrow_id, for_update=True)
        pet_id = (await unit.ledger.find_link(escrow)).pet_id
        before = await unit.availability.resolve(pet_id) if pet_id else None
        unit.advance(LifecycleStage.VALIDATED)

        if release:
            escrow = await unit.ledger.release_escrow(escrow_id, actor_id)
        else:
            escrow = await unit.ledger.refund_escrow(escrow_id, actor_id)
        unit.advance(LifecycleStage.CASCADES_APPLIED)

        if pet_id is not None and before is not None:
            trigger = "ESCROW_RELEASED" if release else "ESCROW_REFUNDED"
            await self._recompute(unit, pet_id, before, trigger, actor_id)
        return escrow


def _coerce(validator: TransitionValidator[Any], current: str, target: object) -> Any:
    """Parse ``target`` into the validator's state enum or raise InvalidTransitionError."""
    try:
        return validator.coerce(target)
    except ValueError:
        raise InvalidTransitionError(
            validator.entity,
            current,
            str(target),
            [s.value for s in validator.allowed_transitions(current)],
            reason="Unknown target status.",
        ) from None
