"""Escrow Ledger — escrowed funds and the cascades their settlement triggers.

This is the application layer that coordinates between:
    - Domain state machine (escrow transition guard)
    - Adoption transition validator (cascade pre-check)
    - Settlement provider (placeholder fund custody)
    - Repositories (data access)
    - Event log and trust score adjuster (audit trail, reputation)

Release and refund run inside the caller's transaction. Every cascading
write of a single settlement lands together or not at all.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from statemachine.exceptions import TransitionNotAllowed

from pet_lifecycle.domain.enums import (
    AdoptionStatus,
    CustodyStatus,
    EntityType,
    EscrowStatus,
    EventType,
)
from pet_lifecycle.domain.exceptions import (
    ConflictError,
    EscrowNotPendingError,
    InvalidAmountError,
    NotFoundError,
)
from pet_lifecycle.domain.state_machine import EscrowStateMachine
from pet_lifecycle.domain.transitions import adoption_validator
from pet_lifecycle.infrastructure.database.orm_models import Escrow
from pet_lifecycle.infrastructure.database.repositories import (
    AdoptionRepository,
    CustodyRepository,
    EscrowRepository,
    PetRepository,
)
from pet_lifecycle.logging_config import get_logger
from pet_lifecycle.services.payment_service import SettlementProvider

if TYPE_CHECKING:
    import uuid
    from decimal import Decimal

    from sqlalchemy.ext.asyncio import AsyncSession

    from pet_lifecycle.infrastructure.database.orm_models import Adoption, Custody
    from pet_lifecycle.services.event_log import EventLogService
    from pet_lifecycle.services.trust_score import TrustScoreService

logger = get_logger(__name__)

_REFUNDABLE_CUSTODY_STATUSES = frozenset({CustodyStatus.CANCELLED, CustodyStatus.VIOLATION})


@dataclass(frozen=True)
class EscrowLink:
    """The single adoption or custody an escrow backs (either may be None)."""

    adoption: Adoption | None
    custody: Custody | None

    @property
    def pet_id(self) -> uuid.UUID | None:
        if self.adoption is not None:
            return self.adoption.pet_id
        if self.custody is not None:
            return self.custody.pet_id
        return None


class EscrowLedger:
    """Creates, releases and refunds escrows."""

    def __init__(
        self,
        session: AsyncSession,
        events: EventLogService,
        trust: TrustScoreService,
        settlement: SettlementProvider | None = None,
    ) -> None:
        self._escrows = EscrowRepository(session)
        self._adoptions = AdoptionRepository(session)
        self._custodies = CustodyRepository(session)
        self._pets = PetRepository(session)
        self._events = events
        self._trust = trust
        self._settlement = settlement or SettlementProvider()

    # ------------------------------------------------------------------
    # Creation
    # ------------------------------------------------------------------

    async def create_escrow(
        self, amount: Decimal, actor_id: uuid.UUID | None = None
    ) -> Escrow:
        """Create a new escrow in CREATED state."""
        if amount <= 0:
            raise InvalidAmountError(amount)

        reference = await self._settlement.create_reference(amount)
        escrow = await self._escrows.create(
            Escrow(
                amount=amount,
                status=EscrowStatus.CREATED.value,
                settlement_reference=reference,
                release_tx_hash=None,
                refund_tx_hash=None,
            )
        )

        await self._events.log_event(
            entity_type=EntityType.ESCROW,
            entity_id=escrow.id,
            event_type=EventType.ESCROW_CREATED,
            actor_id=actor_id,
            payload={"amount": str(amount), "settlementReference": reference},
        )

        logger.info("escrow.created", escrow_id=str(escrow.id), amount=str(amount))
        return escrow

    # ------------------------------------------------------------------
    # Settlement
    # ------------------------------------------------------------------

    async def release_escrow(
        self, escrow_id: uuid.UUID, actor_id: uuid.UUID | None = None
    ) -> Escrow:
        """Pay the escrow out and complete whatever it backs.

        Adoption: ESCROW_FUNDED -> COMPLETED, ownership moves to the adopter
        and both parties get the adoption-completion bonus.
        Custody: the deposit goes back once the pet has been RETURNED.
        """
        escrow = await self.get_escrow(escrow_id, for_update=True)
        self._fire_transition(escrow, "release")
        link = await self.find_link(escrow)

        if link.adoption is not None:
            adoption_validator.validate_transition(
                link.adoption.status, AdoptionStatus.COMPLETED
            )
        elif link.custody is not None and link.custody.status != CustodyStatus.RETURNED:
            raise ConflictError(
                f"Custody deposit {escrow.id} can only be released after the pet is "
                f"returned (custody is {link.custody.status})"
            )

        tx_hash = await self._settlement.release(escrow.settlement_reference, escrow.amount)
        await self._escrows.settle(escrow, EscrowStatus.RELEASED, tx_hash)
        await self._log_settlement(escrow, EventType.ESCROW_RELEASED, link, actor_id, tx_hash)

        if link.adoption is not None:
            await self._complete_adoption(link.adoption, actor_id, tx_hash)

        logger.info("escrow.released", escrow_id=str(escrow.id), tx_hash=tx_hash)
        return escrow

    async def refund_escrow(
        self, escrow_id: uuid.UUID, actor_id: uuid.UUID | None = None
    ) -> Escrow:
        """Return the escrowed funds.

        Adoption: ESCROW_FUNDED -> REFUNDED, ownership unchanged.
        Custody: the deposit goes back after CANCELLED or VIOLATION; a
        violation penalizes the holder here, exactly once.
        """
        escrow = await self.get_escrow(escrow_id, for_update=True)
        self._fire_transition(escrow, "refund")
        link = await self.find_link(escrow)

        if link.adoption is not None:
            adoption_validator.validate_transition(
                link.adoption.status, AdoptionStatus.REFUNDED
            )
        elif (
            link.custody is not None
            and link.custody.status not in _REFUNDABLE_CUSTODY_STATUSES
        ):
            raise ConflictError(
                f"Custody deposit {escrow.id} can only be refunded after the custody is "
                f"cancelled or in violation (custody is {link.custody.status})"
            )

        tx_hash = await self._settlement.refund(escrow.settlement_reference, escrow.amount)
        await self._escrows.settle(escrow, EscrowStatus.REFUNDED, tx_hash)
        await self._log_settlement(escrow, EventType.ESCROW_REFUNDED, link, actor_id, tx_hash)

        if link.adoption is not None:
            await self._refund_adoption(link.adoption, actor_id, tx_hash)
        elif link.custody is not None and link.custody.status == CustodyStatus.VIOLATION:
            await self._trust.penalize_violation(link.custody.holder_id, link.custody.id)

        logger.info("escrow.refunded", escrow_id=str(escrow.id), tx_hash=tx_hash)
        return escrow

    # ------------------------------------------------------------------
    # Read helpers
    # ------------------------------------------------------------------

    async def get_escrow(self, escrow_id: uuid.UUID, *, for_update: bool = False) -> Escrow:
        escrow = await self._escrows.get_by_id(escrow_id, for_update=for_update)
        if escrow is None:
            raise NotFoundError("Escrow", escrow_id)
        return escrow

    async def find_link(self, escrow: Escrow) -> EscrowLink:
        adoption = await self._adoptions.get_by_escrow_id(escrow.id)
        if adoption is not None:
            return EscrowLink(adoption=adoption, custody=None)
        return EscrowLink(adoption=None, custody=await self._custodies.get_by_escrow_id(escrow.id))

    # ------------------------------------------------------------------
    # Cascades
    # ------------------------------------------------------------------

    async def _complete_adoption(
        self, adoption: Adoption, actor_id: uuid.UUID | None, tx_hash: str
    ) -> None:
        pet = await self._pets.get_by_id(adoption.pet_id, for_update=True)
        if pet is None:
            raise NotFoundError("Pet", adoption.pet_id)
        previous_owner_id = pet.current_owner_id

        await self._adoptions.transition(
            adoption, AdoptionStatus.ESCROW_FUNDED, AdoptionStatus.COMPLETED
        )
        await self._pets.transfer_ownership(pet, adoption.adopter_id)

        await self._events.log_event(
            entity_type=EntityType.ADOPTION,
            entity_id=adoption.id,
            event_type=EventType.ADOPTION_COMPLETED,
            actor_id=actor_id,
            payload={
                "oldStatus": AdoptionStatus.ESCROW_FUNDED.value,
                "newStatus": AdoptionStatus.COMPLETED.value,
                "petId": str(pet.id),
                "previousOwnerId": str(previous_owner_id) if previous_owner_id else None,
                "newOwnerId": str(adoption.adopter_id),
            },
            tx_hash=tx_hash,
        )

        await self._trust.reward_completed_adoption(adoption.adopter_id, adoption.id)
        if previous_owner_id is not None and previous_owner_id != adoption.adopter_id:
            await self._trust.reward_completed_adoption(previous_owner_id, adoption.id)

        logger.info(
            "adoption.completed",
            adoption_id=str(adoption.id),
            pet_id=str(pet.id),
            new_owner=str(adoption.adopter_id),
        )

    async def _refund_adoption(
        self, adoption: Adoption, actor_id: uuid.UUID | None, tx_hash: str
    ) -> None:
        await self._adoptions.transition(
            adoption, AdoptionStatus.ESCROW_FUNDED, AdoptionStatus.REFUNDED
        )
        await self._events.log_event(
            entity_type=EntityType.ADOPTION,
            entity_id=adoption.id,
            event_type=EventType.ADOPTION_REFUNDED,
            actor_id=actor_id,
            payload={
                "oldStatus": AdoptionStatus.ESCROW_FUNDED.value,
                "newStatus": AdoptionStatus.REFUNDED.value,
                "petId": str(adoption.pet_id),
            },
            tx_hash=tx_hash,
        )
        logger.info("adoption.refunded", adoption_id=str(adoption.id))

    async def _log_settlement(
        self,
        escrow: Escrow,
        event_type: EventType,
        link: EscrowLink,
        actor_id: uuid.UUID | None,
        tx_hash: str,
    ) -> None:
        payload: dict[str, str | None] = {"amount": str(escrow.amount), "txHash": tx_hash}
        if link.adoption is not None:
            payload["adoptionId"] = str(link.adoption.id)
        if link.custody is not None:
            payload["custodyId"] = str(link.custody.id)
        await self._events.log_event(
            entity_type=EntityType.ESCROW,
            entity_id=escrow.id,
            event_type=event_type,
            actor_id=actor_id,
            payload=payload,
            tx_hash=tx_hash,
        )

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _fire_transition(self, escrow: Escrow, event_name: str) -> None:
        """Validate and fire a state machine transition.

        Raises EscrowNotPendingError if the escrow already settled.
        """
        sm = EscrowStateMachine(current_status=escrow.status)
        try:
            getattr(sm, event_name)()
        except TransitionNotAllowed as err:
            raise EscrowNotPendingError(escrow.id, escrow.status) from err
