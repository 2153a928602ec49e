"""Domain exceptions for the pet lifecycle core.

These exceptions are framework-agnostic and represent business rule violations.
They are caught and translated to HTTP responses by the API layer's middleware.

Kinds:
    NotFoundError          referenced entity absent
    ConflictError          invariant violation (duplicate active record, terminal escrow)
    InvalidTransitionError illegal status change, carries the allowed next states
    ForbiddenError         actor lacks role or ownership
    InternalError          downstream failure on the domain path (event log, settlement)
"""

from __future__ import annotations

from collections.abc import Sequence


class LifecycleError(Exception):
    """Base exception for all domain errors."""

    def __init__(self, message: str, code: str = "LIFECYCLE_ERROR") -> None:
        self.message = message
        self.code = code
        super().__init__(self.message)


# --- Lookup Errors ---


class NotFoundError(LifecycleError):
    """Raised when a referenced entity does not exist."""

    def __init__(self, entity: str, entity_id: object) -> None:
        super().__init__(
            message=f"{entity} not found: {entity_id}",
            code="NOT_FOUND",
        )
        self.entity = entity
        self.entity_id = str(entity_id)


# --- Invariant Errors ---


class ConflictError(LifecycleError):
    """Raised when a request would violate a cross-entity invariant."""

    def __init__(self, message: str) -> None:
        super().__init__(message=message, code="CONFLICT")


class EscrowNotPendingError(ConflictError):
    """Raised when releasing or refunding an escrow that is already settled."""

    def __init__(self, escrow_id: object, status: str) -> None:
        super().__init__(f"Escrow {escrow_id} is already {status}")
        self.code = "ESCROW_NOT_PENDING"
        self.status = status


class EscrowAmountImmutableError(ConflictError):
    """Raised when something tries to change an escrow amount after creation."""

    def __init__(self, escrow_id: object) -> None:
        super().__init__(f"Escrow {escrow_id} amount cannot change after creation")
        self.code = "ESCROW_AMOUNT_IMMUTABLE"


# --- State Machine Errors ---


class InvalidTransitionError(LifecycleError):
    """Raised when an attempted status change is not allowed.

    Always carries the states reachable from the current one so the caller
    can self-correct.
    """

    def __init__(
        self,
        entity: str,
        current_state: str,
        attempted_state: str,
        allowed: Sequence[str] = (),
        reason: str | None = None,
    ) -> None:
        self.entity = entity
        self.current_state = str(current_state)
        self.attempted_state = str(attempted_state)
        self.allowed = [str(s) for s in allowed]
        options = ", ".join(self.allowed) if self.allowed else "none"
        detail = reason or "This transition is not allowed."
        super().__init__(
            message=(
                f"Invalid {entity.lower()} status transition: "
                f"{self.current_state} -> {self.attempted_state}. {detail} "
                f"Valid transitions from {self.current_state}: {options}"
            ),
            code="INVALID_STATE_TRANSITION",
        )


# --- Authorization Errors ---


class ForbiddenError(LifecycleError):
    """Raised when the principal may not perform the requested action."""

    def __init__(self, message: str) -> None:
        super().__init__(message=message, code="FORBIDDEN")


# --- Request Errors ---


class InvalidAmountError(LifecycleError):
    """Raised when an escrow or deposit amount is not strictly positive."""

    def __init__(self, amount: object) -> None:
        super().__init__(
            message=f"Amount must be greater than zero, got {amount}",
            code="INVALID_AMOUNT",
        )


class InvalidCustodyPeriodError(LifecycleError):
    """Raised when a custody start date or duration is out of bounds."""

    def __init__(self, message: str) -> None:
        super().__init__(message=message, code="INVALID_CUSTODY_PERIOD")


# --- Internal Errors ---


class InternalError(LifecycleError):
    """Base for downstream failures that must abort the unit of work."""

    def __init__(self, message: str, code: str = "INTERNAL_ERROR") -> None:
        super().__init__(message=message, code=code)


class EventLogWriteError(InternalError):
    """Raised when a domain event could not be appended to the audit log."""

    def __init__(self, event_type: str, detail: str) -> None:
        super().__init__(
            message=f"Failed to record event {event_type}: {detail}",
            code="EVENT_LOG_WRITE_FAILED",
        )
        self.event_type = event_type


class SettlementError(InternalError):
    """Raised when the settlement provider fails or times out."""

    def __init__(self, operation: str, detail: str) -> None:
        super().__init__(
            message=f"Settlement {operation} failed: {detail}",
            code="SETTLEMENT_FAILED",
        )
        self.operation = operation


class AuditLogImmutableError(InternalError):
    """Raised when application code tries to UPDATE or DELETE an event log row."""

    def __init__(self, event_id: object) -> None:
        super().__init__(
            message=f"Event log rows are append-only: {event_id}",
            code="AUDIT_LOG_IMMUTABLE",
        )
