"""Repository classes for database access.

Repositories encapsulate all SQL queries and expose exactly the operations
the lifecycle core needs: find-by-id, find-active-for-pet, create and
conditional status updates. They accept an AsyncSession and never manage
their own transactions (that's the unit of work's responsibility).
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from pet_lifecycle.domain.enums import AdoptionStatus, CustodyStatus, EscrowStatus
from pet_lifecycle.domain.exceptions import ConflictError
from pet_lifecycle.domain.transitions import OPEN_ADOPTION_STATUSES
from pet_lifecycle.infrastructure.database.orm_models import (
    Adoption,
    AppLog,
    Custody,
    Escrow,
    EventLog,
    Pet,
    User,
)

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from pet_lifecycle.infrastructure.database.orm_models import Base


async def _insert(session: AsyncSession, record: Base, conflict_message: str) -> None:
    session.add(record)
    try:
        await session.flush()
    except IntegrityError as err:
        raise ConflictError(conflict_message) from err


async def _conditional_update(
    session: AsyncSession,
    record: Any,
    expected_status: str,
    values: dict[str, Any],
) -> None:
    """UPDATE ... WHERE id = :id AND status = :expected, or raise ConflictError.

    A concurrent writer that already moved the row makes rowcount 0. The
    "evaluate" strategy copies the new values onto ``record`` in the identity map.
    """
    model = type(record)
    values = {**values, "updated_at": datetime.now(UTC)}
    try:
        result = await session.execute(
            update(model)
            .where(model.id == record.id, model.status == expected_status)
            .values(**values)
            .execution_options(synchronize_session="evaluate")
        )
    except IntegrityError as err:
        raise ConflictError(
            f"{model.__name__} {record.id} conflicts with another active record"
        ) from err
    if result.rowcount != 1:
        raise ConflictError(
            f"{model.__name__} {record.id} is no longer {expected_status}; "
            "it was modified concurrently"
        )


class UserRepository:
    """Data access for users."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, user: User) -> User:
        await _insert(self._session, user, f"User already exists: {user.email}")
        return user

    async def get_by_id(self, user_id: uuid.UUID, *, for_update: bool = False) -> User | None:
        stmt = select(User).where(User.id == user_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def set_trust_score(self, user: User, score: int) -> User:
        """Persist an already-clamped trust score."""
        user.trust_score = score
        await self._session.flush()
        return user


class PetRepository:
    """Data access for pets."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, pet: Pet) -> Pet:
        await _insert(self._session, pet, f"Pet already exists: {pet.id}")
        return pet

    async def get_by_id(self, pet_id: uuid.UUID, *, for_update: bool = False) -> Pet | None:
        """Fetch a pet. ``for_update`` serializes writers on the same pet."""
        stmt = select(Pet).where(Pet.id == pet_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def transfer_ownership(self, pet: Pet, new_owner_id: uuid.UUID) -> Pet:
        pet.current_owner_id = new_owner_id
        await self._session.flush()
        return pet


class AdoptionRepository:
    """Data access for adoption requests."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, adoption: Adoption) -> Adoption:
        await _insert(
            self._session,
            adoption,
            f"Pet {adoption.pet_id} already has an open adoption",
        )
        return adoption

    async def get_by_id(
        self, adoption_id: uuid.UUID, *, for_update: bool = False
    ) -> Adoption | None:
        stmt = select(Adoption).where(Adoption.id == adoption_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_escrow_id(self, escrow_id: uuid.UUID) -> Adoption | None:
        result = await self._session.execute(
            select(Adoption).where(Adoption.escrow_id == escrow_id).with_for_update()
        )
        return result.scalar_one_or_none()

    async def find_open_for_pet(self, pet_id: uuid.UUID) -> Adoption | None:
        """Return the pet's non-terminal adoption, if any."""
        result = await self._session.execute(
            select(Adoption)
            .where(
                Adoption.pet_id == pet_id,
                Adoption.status.in_([s.value for s in OPEN_ADOPTION_STATUSES]),
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def find_completed_for_pet(self, pet_id: uuid.UUID) -> Adoption | None:
        result = await self._session.execute(
            select(Adoption)
            .where(
                Adoption.pet_id == pet_id,
                Adoption.status == AdoptionStatus.COMPLETED.value,
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def find_latest_for_pet(self, pet_id: uuid.UUID) -> Adoption | None:
        result = await self._session.execute(
            select(Adoption)
            .where(Adoption.pet_id == pet_id)
            .order_by(Adoption.created_at.desc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def find_for_pets(self, pet_ids: Sequence[uuid.UUID]) -> list[Adoption]:
        """All adoptions for the given pets, newest first (one query)."""
        result = await self._session.execute(
            select(Adoption)
            .where(Adoption.pet_id.in_(pet_ids))
            .order_by(Adoption.created_at.desc())
        )
        return list(result.scalars().all())

    async def transition(
        self,
        adoption: Adoption,
        expected: AdoptionStatus,
        new_status: AdoptionStatus,
        **fields: Any,
    ) -> Adoption:
        """Move ``adoption`` to ``new_status`` (call AFTER transition validation)."""
        await _conditional_update(
            self._session, adoption, expected.value, {"status": new_status.value, **fields}
        )
        return adoption


class CustodyRepository:
    """Data access for custody agreements."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, custody: Custody) -> Custody:
        await _insert(
            self._session,
            custody,
            f"Pet {custody.pet_id} already has an active custody agreement",
        )
        return custody

    async def get_by_id(
        self, custody_id: uuid.UUID, *, for_update: bool = False
    ) -> Custody | None:
        stmt = select(Custody).where(Custody.id == custody_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_escrow_id(self, escrow_id: uuid.UUID) -> Custody | None:
        result = await self._session.execute(
            select(Custody).where(Custody.escrow_id == escrow_id).with_for_update()
        )
        return result.scalar_one_or_none()

    async def find_active_for_pet(self, pet_id: uuid.UUID) -> Custody | None:
        result = await self._session.execute(
            select(Custody)
            .where(Custody.pet_id == pet_id, Custody.status == CustodyStatus.ACTIVE.value)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def find_active_for_pets(self, pet_ids: Sequence[uuid.UUID]) -> list[Custody]:
        """Active custodies for the given pets (one query)."""
        result = await self._session.execute(
            select(Custody).where(
                Custody.pet_id.in_(pet_ids),
                Custody.status == CustodyStatus.ACTIVE.value,
            )
        )
        return list(result.scalars().all())

    async def transition(
        self,
        custody: Custody,
        expected: CustodyStatus,
        new_status: CustodyStatus,
        **fields: Any,
    ) -> Custody:
        await _conditional_update(
            self._session, custody, expected.value, {"status": new_status.value, **fields}
        )
        return custody


class EscrowRepository:
    """Data access for escrow fund records."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def create(self, escrow: Escrow) -> Escrow:
        await _insert(self._session, escrow, f"Escrow already exists: {escrow.id}")
        return escrow

    async def get_by_id(self, escrow_id: uuid.UUID, *, for_update: bool = False) -> Escrow | None:
        stmt = select(Escrow).where(Escrow.id == escrow_id)
        if for_update:
            stmt = stmt.with_for_update()
        result = await self._session.execute(stmt)
        return result.scalar_one_or_none()

    async def settle(
        self,
        escrow: Escrow,
        new_status: EscrowStatus,
        tx_hash: str,
    ) -> Escrow:
        """CREATED -> RELEASED/REFUNDED, stamping the matching tx hash once."""
        column = "release_tx_hash" if new_status == EscrowStatus.RELEASED else "refund_tx_hash"
        await _conditional_update(
            self._session,
            escrow,
            EscrowStatus.CREATED.value,
            {"status": new_status.value, column: tx_hash},
        )
        return escrow


class EventRepository:
    """Data access for the append-only audit event log."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def append(self, entry: EventLog) -> EventLog:
        """Append a new audit event. This is the ONLY write operation allowed."""
        self._session.add(entry)
        await self._session.flush()
        return entry

    async def get_for_entity(self, entity_type: str, entity_id: uuid.UUID) -> list[EventLog]:
        """Fetch all events for an entity in chronological order."""
        result = await self._session.execute(
            select(EventLog)
            .where(EventLog.entity_type == entity_type, EventLog.entity_id == entity_id)
            .order_by(EventLog.created_at.asc())
        )
        return list(result.scalars().all())


class AppLogRepository:
    """Data access for the diagnostic application log."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def record(self, entry: AppLog) -> AppLog:
        self._session.add(entry)
        await self._session.flush()
        return entry
