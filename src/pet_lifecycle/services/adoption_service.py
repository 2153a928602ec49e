"""Adoption rules: who may request, review, cancel and fund an adoption."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pet_lifecycle.domain.enums import (
    ADOPTION_EVENT_FOR_STATUS,
    AdoptionStatus,
    EntityType,
    EventType,
)
from pet_lifecycle.domain.exceptions import ConflictError, ForbiddenError, NotFoundError
from pet_lifecycle.domain.policies import any_of, is_admin, is_user, require
from pet_lifecycle.domain.transitions import adoption_validator
from pet_lifecycle.infrastructure.database.orm_models import Adoption
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
    from pet_lifecycle.services.unit import LifecycleUnit

logger = get_logger(__name__)

# Targets reached only through the escrow ledger.
ESCROW_DRIVEN_TARGETS: dict[AdoptionStatus, str] = {
    AdoptionStatus.ESCROW_FUNDED: "fund_adoption_escrow",
    AdoptionStatus.COMPLETED: "release_escrow",
    AdoptionStatus.REFUNDED: "refund_escrow",
}

_OWNER_DECISIONS = frozenset({
    AdoptionStatus.PENDING_REVIEW,
    AdoptionStatus.PENDING,
    AdoptionStatus.APPROVED,
    AdoptionStatus.REJECTED,
})


class AdoptionService:
    """Adoption operations inside one lifecycle unit."""

    def __init__(self, unit: LifecycleUnit) -> None:
        self._unit = unit
        self._adoptions = AdoptionRepository(unit.session)
        self._custodies = CustodyRepository(unit.session)
        self._pets = PetRepository(unit.session)

    async def request(
        self,
        principal: Principal,
        pet_id: uuid.UUID,
        notes: str | None = None,
    ) -> Adoption:
        """Create a REQUESTED adoption for ``pet_id`` on behalf of ``principal``."""
        pet = await self._pets.get_by_id(pet_id, for_update=True)
        if pet is None:
            raise NotFoundError("Pet", pet_id)
        if pet.current_owner_id is None:
            raise ConflictError(f"Pet {pet_id} has no owner assigned")
        if principal.user_id == pet.current_owner_id:
            raise ForbiddenError("You cannot adopt your own pet")
        if await self._adoptions.find_open_for_pet(pet_id) is not None:
            raise ConflictError(f"Pet {pet_id} is not available for adoption")
        if await self._custodies.find_active_for_pet(pet_id) is not None:
            raise ConflictError(f"Pet {pet_id} is currently in custody")
        self._unit.advance(LifecycleStage.VALIDATED)

        adoption = await self._adoptions.create(
            Adoption(
                pet_id=pet_id,
                adopter_id=principal.user_id,
                owner_id=pet.current_owner_id,
                status=AdoptionStatus.REQUESTED.value,
                notes=notes,
                rejection_reason=None,
                escrow_id=None,
            )
        )
        await self._unit.events.log_event(
            entity_type=EntityType.ADOPTION,
            entity_id=adoption.id,
            event_type=EventType.ADOPTION_REQUESTED,
            actor_id=principal.user_id,
            payload={
                "petId": str(pet_id),
                "adopterId": str(principal.user_id),
                "ownerId": str(pet.current_owner_id),
            },
        )
        self._unit.advance(LifecycleStage.PERSISTED)

        logger.info(
            "adoption.requested",
            adoption_id=str(adoption.id),
            pet_id=str(pet_id),
            adopter_id=str(principal.user_id),
        )
        return adoption

    async def get_for_update(self, adoption_id: uuid.UUID) -> Adoption:
        adoption = await self._adoptions.get_by_id(adoption_id, for_update=True)
        if adoption is None:
            raise NotFoundError("Adoption", adoption_id)
        return adoption

    async def transition(
        self,
        adoption: Adoption,
        target: AdoptionStatus,
        principal: Principal,
        is_admin_override: bool = False,
        reason: str | None = None,
    ) -> Adoption:
        """Move ``adoption`` to a review/decision/cancellation status."""
        if target in ESCROW_DRIVEN_TARGETS:
            raise ConflictError(
                f"Adoption status {target} is set by the escrow ledger; "
                f"use {ESCROW_DRIVEN_TARGETS[target]} instead"
            )
        if is_admin_override:
            require(principal, is_admin, "override adoption transitions")
        elif target in _OWNER_DECISIONS:
            require(
                principal,
                any_of(is_admin, is_user(adoption.owner_id)),
                f"move adoption {adoption.id} to {target}",
            )
        elif target == AdoptionStatus.CANCELLED:
            require(
                principal,
                any_of(is_admin, is_user(adoption.owner_id), is_user(adoption.adopter_id)),
                f"cancel adoption {adoption.id}",
            )

        current = AdoptionStatus(adoption.status)
        if current == AdoptionStatus.ESCROW_FUNDED:
            raise ConflictError(
                f"Adoption {adoption.id} is backed by escrow {adoption.escrow_id}; "
                "use release_escrow or refund_escrow to settle it"
            )
        adoption_validator.validate_transition(
            current, target, admin_override=is_admin_override
        )
        self._unit.advance(LifecycleStage.VALIDATED)

        fields = {"rejection_reason": reason} if target == AdoptionStatus.REJECTED else {}
        await self._adoptions.transition(adoption, current, target, **fields)
        await self._unit.events.log_event(
            entity_type=EntityType.ADOPTION,
            entity_id=adoption.id,
            event_type=ADOPTION_EVENT_FOR_STATUS[target],
            actor_id=principal.user_id,
            payload={
                "oldStatus": current.value,
                "newStatus": target.value,
                "petId": str(adoption.pet_id),
                "reason": reason,
                "adminOverride": is_admin_override,
            },
        )
        self._unit.advance(LifecycleStage.PERSISTED)

        logger.info(
            "adoption.status_changed",
            adoption_id=str(adoption.id),
            old=current.value,
            new=target.value,
            admin_override=is_admin_override,
        )
        return adoption

    async def fund_escrow(
        self,
        adoption: Adoption,
        amount: Decimal,
        principal: Principal,
    ) -> Adoption:
        """APPROVED -> ESCROW_FUNDED, backed by a freshly created escrow."""
        require(
            principal,
            any_of(is_admin, is_user(adoption.adopter_id)),
            f"fund adoption {adoption.id}",
        )
        adoption_validator.validate_transition(adoption.status, AdoptionStatus.ESCROW_FUNDED)
        self._unit.advance(LifecycleStage.VALIDATED)

        escrow = await self._unit.ledger.create_escrow(amount, actor_id=principal.user_id)
        await self._adoptions.transition(
            adoption,
            AdoptionStatus.APPROVED,
            AdoptionStatus.ESCROW_FUNDED,
            escrow_id=escrow.id,
        )
        await self._unit.events.log_event(
            entity_type=EntityType.ADOPTION,
            entity_id=adoption.id,
            event_type=EventType.ADOPTION_ESCROW_FUNDED,
            actor_id=principal.user_id,
            payload={
                "oldStatus": AdoptionStatus.APPROVED.value,
                "newStatus": AdoptionStatus.ESCROW_FUNDED.value,
                "escrowId": str(escrow.id),
                "amount": str(amount),
            },
        )
        self._unit.advance(LifecycleStage.PERSISTED)

        logger.info(
            "adoption.escrow_funded",
            adoption_id=str(adoption.id),
            escrow_id=str(escrow.id),
            amount=str(amount),
        )
        return adoption
