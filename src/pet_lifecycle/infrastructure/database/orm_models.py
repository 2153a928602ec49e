"""SQLAlchemy 2.0 ORM models for the pet lifecycle core.

Tables:
    1. users        — platform users and their bounded trust score.
    2. pets         — pets and their current owner. No stored status column.
    3. escrows      — escrowed funds backing an adoption or a custody deposit.
    4. adoptions    — adoption requests, mutated only through validated transitions.
    5. custodies    — temporary custody agreements.
    6. event_logs   — append-only audit trail of every domain transition.
    7. app_logs     — diagnostic application log (request / error logging).

Design decisions:
    - UUIDs as primary keys.
    - Decimal for escrow and deposit amounts.
    - JSON columns, rendered as JSONB on PostgreSQL.
    - CHECK constraints on statuses and on the trust score range.
    - Partial unique indexes for one open adoption / one active custody per pet.
    - event_logs is append-only: ORM-level UPDATE or DELETE raises.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from decimal import Decimal  # noqa: TC003 - needed at runtime by SQLAlchemy Mapped[]

from sqlalchemy import (
    JSON,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    Uuid,
    event,
    inspect,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from pet_lifecycle.config import get_settings
from pet_lifecycle.domain.exceptions import AuditLogImmutableError, EscrowAmountImmutableError
from pet_lifecycle.domain.transitions import OPEN_ADOPTION_STATUSES

JsonType = JSON().with_variant(JSONB(), "postgresql")

_OPEN_ADOPTION_SQL = "status IN ({})".format(
    ", ".join(f"'{s.value}'" for s in sorted(OPEN_ADOPTION_STATUSES))
)


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _default_trust_score() -> int:
    return get_settings().trust_score_default


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def _set_updated_at(mapper, connection, target):  # noqa: ANN001
    """SQLAlchemy event listener that updates `updated_at` before flush."""
    if hasattr(target, "updated_at"):
        target.updated_at = _utcnow()


# ---------------------------------------------------------------------------
# 1. users
# ---------------------------------------------------------------------------
class User(Base):
    """A platform user. trust_score is only mutated by the trust score adjuster."""

    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    display_name: Mapped[str | None] = mapped_column(String(120), nullable=True)
    role: Mapped[str] = mapped_column(String(10), nullable=False, default="USER")
    trust_score: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=_default_trust_score,
        comment="Bounded reputation metric in [0, 100]",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (
        CheckConstraint("trust_score >= 0 AND trust_score <= 100", name="ck_user_trust_range"),
        CheckConstraint("role IN ('USER', 'ADMIN')", name="ck_user_valid_role"),
    )

    def __repr__(self) -> str:
        return f"<User id={self.id} role={self.role} trust={self.trust_score}>"


# ---------------------------------------------------------------------------
# 2. pets
# ---------------------------------------------------------------------------
class Pet(Base):
    """A pet. Availability is computed by the resolver, never stored here."""

    __tablename__ = "pets"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    species: Mapped[str] = mapped_column(String(40), nullable=False)
    breed: Mapped[str | None] = mapped_column(String(100), nullable=True)
    age: Mapped[int | None] = mapped_column(Integer, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    current_owner_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("users.id"),
        nullable=True,
        comment="Reassigned to the adopter when an adoption escrow is released",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    current_owner: Mapped[User | None] = relationship("User", lazy="selectin")

    __table_args__ = (Index("idx_pet_owner", "current_owner_id"),)

    def __repr__(self) -> str:
        return f"<Pet id={self.id} name={self.name} owner={self.current_owner_id}>"


# ---------------------------------------------------------------------------
# 3. escrows
# ---------------------------------------------------------------------------
class Escrow(Base):
    """Escrowed funds. amount is immutable; status only leaves CREATED once."""

    __tablename__ = "escrows"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    amount: Mapped[Decimal] = mapped_column(Numeric(18, 2), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="CREATED",
        comment="Guarded by EscrowStateMachine",
    )
    settlement_reference: Mapped[str] = mapped_column(
        String(80),
        nullable=False,
        comment="Placeholder reference handed out by the settlement provider",
    )
    release_tx_hash: Mapped[str | None] = mapped_column(String(80), nullable=True)
    refund_tx_hash: Mapped[str | None] = mapped_column(String(80), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('CREATED', 'RELEASED', 'REFUNDED')",
            name="ck_escrow_valid_status",
        ),
        CheckConstraint("amount > 0", name="ck_escrow_positive_amount"),
        CheckConstraint(
            "release_tx_hash IS NULL OR refund_tx_hash IS NULL",
            name="ck_escrow_single_settlement",
        ),
        Index("idx_escrow_status", "status"),
    )

    def __repr__(self) -> str:
        return f"<Escrow id={self.id} status={self.status} amount={self.amount}>"


# ---------------------------------------------------------------------------
# 4. adoptions
# ---------------------------------------------------------------------------
class Adoption(Base):
    """An adoption request. Never physically deleted."""

    __tablename__ = "adoptions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    pet_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("pets.id"), nullable=False)
    adopter_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    owner_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="REQUESTED")
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    rejection_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    escrow_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("escrows.id"), nullable=True, unique=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    escrow: Mapped[Escrow | None] = relationship("Escrow", lazy="raise")

    __table_args__ = (
        CheckConstraint(
            "status IN ('REQUESTED', 'PENDING_REVIEW', 'PENDING', 'APPROVED', "
            "'ESCROW_FUNDED', 'COMPLETED', 'REJECTED', 'CANCELLED', 'REFUNDED')",
            name="ck_adoption_valid_status",
        ),
        Index("idx_adoption_pet_created", "pet_id", "created_at"),
        Index("idx_adoption_adopter", "adopter_id"),
        Index(
            "uq_adoption_open_per_pet",
            "pet_id",
            unique=True,
            postgresql_where=text(_OPEN_ADOPTION_SQL),
            sqlite_where=text(_OPEN_ADOPTION_SQL),
        ),
    )

    def __repr__(self) -> str:
        return f"<Adoption id={self.id} pet={self.pet_id} status={self.status}>"


# ---------------------------------------------------------------------------
# 5. custodies
# ---------------------------------------------------------------------------
class Custody(Base):
    """A temporary custody agreement for a pet."""

    __tablename__ = "custodies"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    pet_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("pets.id"), nullable=False)
    holder_id: Mapped[uuid.UUID] = mapped_column(Uuid, ForeignKey("users.id"), nullable=False)
    status: Mapped[str] = mapped_column(String(20), nullable=False, default="ACTIVE")
    type: Mapped[str] = mapped_column(String(20), nullable=False, default="TEMPORARY")
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    due_date: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        comment="start_date plus the agreed duration",
    )
    end_date: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Set when the custody reaches a terminal status",
    )
    deposit_amount: Mapped[Decimal | None] = mapped_column(Numeric(18, 2), nullable=True)
    escrow_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("escrows.id"), nullable=True, unique=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    escrow: Mapped[Escrow | None] = relationship("Escrow", lazy="raise")

    __table_args__ = (
        CheckConstraint(
            "status IN ('ACTIVE', 'RETURNED', 'CANCELLED', 'VIOLATION')",
            name="ck_custody_valid_status",
        ),
        Index("idx_custody_pet", "pet_id"),
        Index("idx_custody_holder", "holder_id"),
        Index(
            "uq_custody_active_per_pet",
            "pet_id",
            unique=True,
            postgresql_where=text("status = 'ACTIVE'"),
            sqlite_where=text("status = 'ACTIVE'"),
        ),
    )

    def __repr__(self) -> str:
        return f"<Custody id={self.id} pet={self.pet_id} status={self.status}>"


# ---------------------------------------------------------------------------
# 6. event_logs (Append-Only Audit Log)
# ---------------------------------------------------------------------------
class EventLog(Base):
    """Immutable audit record of a domain transition or derived side effect.

    This table is APPEND-ONLY. UPDATE and DELETE raise at the ORM level.
    """

    __tablename__ = "event_logs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    entity_type: Mapped[str] = mapped_column(String(20), nullable=False)
    entity_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    event_type: Mapped[str] = mapped_column(String(40), nullable=False)
    actor_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    payload: Mapped[dict] = mapped_column(JsonType, nullable=False, default=dict)
    metadata_json: Mapped[dict | None] = mapped_column(
        "metadata",
        JsonType,
        nullable=True,
        default=None,
    )
    tx_hash: Mapped[str | None] = mapped_column(String(80), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    __table_args__ = (
        Index("idx_event_entity", "entity_type", "entity_id"),
        Index("idx_event_type", "event_type"),
        Index("idx_event_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<EventLog id={self.id} {self.entity_type}:{self.entity_id} "
            f"type={self.event_type}>"
        )


# ---------------------------------------------------------------------------
# 7. app_logs (Diagnostic Log)
# ---------------------------------------------------------------------------
class AppLog(Base):
    """Operational log entry. Failures writing it never reach the caller."""

    __tablename__ = "app_logs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    level: Mapped[str] = mapped_column(String(10), nullable=False)
    action: Mapped[str] = mapped_column(String(80), nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    user_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True)
    metadata_json: Mapped[dict | None] = mapped_column("metadata", JsonType, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    __table_args__ = (Index("idx_app_log_created_at", "created_at"),)


# ---------------------------------------------------------------------------
# Listeners
# ---------------------------------------------------------------------------
def _guard_escrow_amount(mapper, connection, target: Escrow):  # noqa: ANN001
    history = inspect(target).attrs.amount.history
    if history.deleted and history.added and history.deleted[0] != history.added[0]:
        raise EscrowAmountImmutableError(target.id)


def _reject_event_log_mutation(mapper, connection, target: EventLog):  # noqa: ANN001
    raise AuditLogImmutableError(target.id)


for _model in (User, Pet, Escrow, Adoption, Custody):
    event.listen(_model, "before_update", _set_updated_at)

event.listen(Escrow, "before_update", _guard_escrow_amount)
event.listen(EventLog, "before_update", _reject_event_log_mutation)
event.listen(EventLog, "before_delete", _reject_event_log_mutation)
