"""Domain enumerations for the pet lifecycle core.

These enums define the canonical states and types used throughout the system.
They are framework-agnostic (no SQLAlchemy, no FastAPI imports).
"""

import enum


class AdoptionStatus(enum.StrEnum):
    """Lifecycle states of an adoption request.

    Legal transitions live in domain/transitions.py.
    PENDING is a legacy entry point kept as an alias of PENDING_REVIEW.
    """

    REQUESTED = "REQUESTED"
    PENDING_REVIEW = "PENDING_REVIEW"
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    ESCROW_FUNDED = "ESCROW_FUNDED"
    COMPLETED = "COMPLETED"
    REJECTED = "REJECTED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


class CustodyStatus(enum.StrEnum):
    """Lifecycle states of a temporary custody agreement."""

    ACTIVE = "ACTIVE"
    RETURNED = "RETURNED"
    CANCELLED = "CANCELLED"
    VIOLATION = "VIOLATION"


class CustodyType(enum.StrEnum):
    TEMPORARY = "TEMPORARY"


class EscrowStatus(enum.StrEnum):
    """Lifecycle states of an escrow fund record.

    Guarded by EscrowStateMachine (domain/state_machine.py).
    """

    CREATED = "CREATED"
    RELEASED = "RELEASED"
    REFUNDED = "REFUNDED"


class PetAvailability(enum.StrEnum):
    """Computed pet status. Never persisted."""

    AVAILABLE = "AVAILABLE"
    PENDING = "PENDING"
    IN_CUSTODY = "IN_CUSTODY"
    ADOPTED = "ADOPTED"


class UserRole(enum.StrEnum):
    USER = "USER"
    ADMIN = "ADMIN"


class EntityType(enum.StrEnum):
    """Entity kinds referenced by event_logs.entity_type."""

    ADOPTION = "ADOPTION"
    CUSTODY = "CUSTODY"
    ESCROW = "ESCROW"
    PET = "PET"
    USER = "USER"


class EventType(enum.StrEnum):
    """Types of audit events recorded in the event_logs table.

    Every consequential transition MUST produce exactly one event.
    """

    # Adoption events
    ADOPTION_REQUESTED = "ADOPTION_REQUESTED"
    ADOPTION_REVIEW_STARTED = "ADOPTION_REVIEW_STARTED"
    ADOPTION_APPROVED = "ADOPTION_APPROVED"
    ADOPTION_REJECTED = "ADOPTION_REJECTED"
    ADOPTION_CANCELLED = "ADOPTION_CANCELLED"
    ADOPTION_ESCROW_FUNDED = "ADOPTION_ESCROW_FUNDED"
    ADOPTION_COMPLETED = "ADOPTION_COMPLETED"
    ADOPTION_REFUNDED = "ADOPTION_REFUNDED"

    # Custody events
    CUSTODY_STARTED = "CUSTODY_STARTED"
    CUSTODY_RETURNED = "CUSTODY_RETURNED"
    CUSTODY_CANCELLED = "CUSTODY_CANCELLED"
    CUSTODY_VIOLATION = "CUSTODY_VIOLATION"

    # Escrow events
    ESCROW_CREATED = "ESCROW_CREATED"
    ESCROW_RELEASED = "ESCROW_RELEASED"
    ESCROW_REFUNDED = "ESCROW_REFUNDED"

    # Derived / side-effect events
    PET_STATUS_CHANGED = "PET_STATUS_CHANGED"
    TRUST_SCORE_UPDATED = "TRUST_SCORE_UPDATED"


class AppLogLevel(enum.StrEnum):
    """Levels of the diagnostic application log."""

    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"


ADOPTION_EVENT_FOR_STATUS: dict[AdoptionStatus, EventType] = {
    AdoptionStatus.PENDING_REVIEW: EventType.ADOPTION_REVIEW_STARTED,
    AdoptionStatus.PENDING: EventType.ADOPTION_REVIEW_STARTED,
    AdoptionStatus.APPROVED: EventType.ADOPTION_APPROVED,
    AdoptionStatus.REJECTED: EventType.ADOPTION_REJECTED,
    AdoptionStatus.CANCELLED: EventType.ADOPTION_CANCELLED,
    AdoptionStatus.ESCROW_FUNDED: EventType.ADOPTION_ESCROW_FUNDED,
    AdoptionStatus.COMPLETED: EventType.ADOPTION_COMPLETED,
    AdoptionStatus.REFUNDED: EventType.ADOPTION_REFUNDED,
}

CUSTODY_EVENT_FOR_STATUS: dict[CustodyStatus, EventType] = {
    CustodyStatus.RETURNED: EventType.CUSTODY_RETURNED,
    CustodyStatus.CANCELLED: EventType.CUSTODY_CANCELLED,
    CustodyStatus.VIOLATION: EventType.CUSTODY_VIOLATION,
}
