"""Custody rules: opening a temporary custody and ending it.

Ending a custody settles its deposit in the same unit of work:

    RETURNED   holder rewarded, pending deposit released
    CANCELLED  pending deposit refunded, no trust change
    VIOLATION  pending deposit refunded through the ledger, which applies the
               penalty; without a deposit the holder is penalized directly
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from pet_lifecycle.domain.enums import (
    CUSTODY_EVENT_FOR_STATUS,
    CustodyStatus,
    CustodyType,
    EntityType,
    EscrowStatus,
    EventType,
)
from pet_lifecycle.domain.exceptions import (
    ConflictError,
    InvalidCustodyPeriodError,
    NotFoundError,
)
from pet_lifecycle.domain.policies import any_of, is_admin, is_user, require
from pet_lifecycle.domain.transitions import custody_validator
from pet_lifecycle.infrastructure.database.orm_models import Custody
from pet_lifecycle.infrastructure.database.repositories import (
    AdoptionRepository,
    CustodyRepository,
    PetRepository,
)
from pet_lifecycle.logging_config import get_logger
from pet_lifecycle.services.unit import LifecycleStage

if TYPE_CHECKING:
    import uuid
    from decimal import Decimal

    from pet_lifecycle.domain.policies import Principal
    from pet_lifecycle.infrastructure.database.orm_models import Pet
    from pet_lifecycle.services.unit import LifecycleUnit

logger = get_logger(__name__)


def _as_utc(value: datetime) -> datetime:
    return value.replace(tzinfo=UTC) if value.tzinfo is None else value.astimezone(UTC)


class CustodyService:
    """Custody operations inside one lifecycle unit."""

    def __init__(self, unit: LifecycleUnit) -> None:
        self._unit = unit
        self._custodies = CustodyRepository(unit.session)
        self._adoptions = AdoptionRepository(unit.session)
        self._pets = PetRepository(unit.session)

    async def create(
        self,
        principal: Principal,
        pet_id: uuid.UUID,
        start_date: datetime,
        duration_days: int,
        deposit_amount: Decimal | None = None,
    ) -> Custody:
        """Open an ACTIVE temporary custody with ``principal`` as holder."""
        settings = self._unit.settings
        pet = await self._pets.get_by_id(pet_id, for_update=True)
        if pet is None:
            raise NotFoundError("Pet", pet_id)
        if await self._adoptions.find_completed_for_pet(pet_id) is not None:
            raise ConflictError(f"Pet {pet_id} is already adopted")
        if await self._adoptions.find_open_for_pet(pet_id) is not None:
            raise ConflictError(f"Pet {pet_id} has an active adoption in progress")
        if await self._custodies.find_active_for_pet(pet_id) is not None:
            raise ConflictError(f"Pet {pet_id} already has an active custody agreement")

        start = _as_utc(start_date)
        if start.date() < datetime.now(UTC).date():
            raise InvalidCustodyPeriodError("Start date cannot be in the past")
        if not settings.custody_min_days <= duration_days <= settings.custody_max_days:
            raise InvalidCustodyPeriodError(
                f"Duration must be between {settings.custody_min_days} and "
                f"{settings.custody_max_days} days"
            )
        self._unit.advance(LifecycleStage.VALIDATED)

        escrow_id = None
        if deposit_amount is not None:
            escrow = await self._unit.ledger.create_escrow(
                deposit_amount, actor_id=principal.user_id
            )
            escrow_id = escrow.id

        custody = await self._custodies.create(
            Custody(
                pet_id=pet_id,
                holder_id=principal.user_id,
                status=CustodyStatus.ACTIVE.value,
                type=CustodyType.TEMPORARY.value,
                start_date=start,
                due_date=start + timedelta(days=duration_days),
                end_date=None,
                deposit_amount=deposit_amount,
                escrow_id=escrow_id,
            )
        )
        await self._unit.events.log_event(
            entity_type=EntityType.CUSTODY,
            entity_id=custody.id,
            event_type=EventType.CUSTODY_STARTED,
            actor_id=principal.user_id,
            payload={
                "petId": str(pet_id),
                "holderId": str(principal.user_id),
                "startDate": start.isoformat(),
                "dueDate": custody.due_date.isoformat(),
                "durationDays": duration_days,
                "depositAmount": str(deposit_amount) if deposit_amount is not None else None,
                "escrowId": str(escrow_id) if escrow_id else None,
            },
        )
        self._unit.advance(LifecycleStage.PERSISTED)

        logger.info(
            "custody.started",
            custody_id=str(custody.id),
            pet_id=str(pet_id),
            holder_id=str(principal.user_id),
            duration_days=duration_days,
        )
        return custody

    async def get_for_update(self, custody_id: uuid.UUID) -> Custody:
        custody = await self._custodies.get_by_id(custody_id, for_update=True)
        if custody is None:
            raise NotFoundError("Custody", custody_id)
        return custody

    async def transition(
        self,
        custody: Custody,
        target: CustodyStatus,
        principal: Principal,
    ) -> Custody:
        """End an ACTIVE custody and settle its deposit."""
        pet = await self._get_pet(custody.pet_id)
        if target == CustodyStatus.VIOLATION:
            require(
                principal,
                any_of(is_admin, is_user(pet.current_owner_id)),
                f"report a violation on custody {custody.id}",
            )
        else:
            require(
                principal,
                any_of(is_admin, is_user(pet.current_owner_id), is_user(custody.holder_id)),
                f"move custody {custody.id} to {target}",
            )

        current = CustodyStatus(custody.status)
        custody_validator.validate_transition(current, target)
        self._unit.advance(LifecycleStage.VALIDATED)

        await self._custodies.transition(
            custody, current, target, end_date=datetime.now(UTC)
        )
        await self._unit.events.log_event(
            entity_type=EntityType.CUSTODY,
            entity_id=custody.id,
            event_type=CUSTODY_EVENT_FOR_STATUS[target],
            actor_id=principal.user_id,
            payload={
                "oldStatus": current.value,
                "newStatus": target.value,
                "petId": str(custody.pet_id),
                "holderId": str(custody.holder_id),
            },
        )
        self._unit.advance(LifecycleStage.PERSISTED)

        await self._apply_cascades(custody, target, principal)
        self._unit.advance(LifecycleStage.CASCADES_APPLIED)

        logger.info(
            "custody.status_changed",
            custody_id=str(custody.id),
            old=current.value,
            new=target.value,
        )
        return custody

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _apply_cascades(
        self, custody: Custody, target: CustodyStatus, principal: Principal
    ) -> None:
        pending_deposit = await self._pending_deposit_id(custody)

        if target == CustodyStatus.RETURNED:
            await self._unit.trust.reward_successful_custody(custody.holder_id, custody.id)
            if pending_deposit is not None:
                await self._unit.ledger.release_escrow(pending_deposit, principal.user_id)
        elif target == CustodyStatus.CANCELLED:
            if pending_deposit is not None:
                await self._unit.ledger.refund_escrow(pending_deposit, principal.user_id)
        elif target == CustodyStatus.VIOLATION:
            if pending_deposit is not None:
                await self._unit.ledger.refund_escrow(pending_deposit, principal.user_id)
            else:
                await self._unit.trust.penalize_violation(custody.holder_id, custody.id)

    async def _pending_deposit_id(self, custody: Custody) -> uuid.UUID | None:
        if custody.escrow_id is None:
            return None
        escrow = await self._unit.ledger.get_escrow(custody.escrow_id)
        return escrow.id if escrow.status == EscrowStatus.CREATED else None

    async def _get_pet(self, pet_id: uuid.UUID) -> Pet:
        pet = await self._pets.get_by_id(pet_id, for_update=True)
        if pet is None:
            raise NotFoundError("Pet", pet_id)
        return pet
