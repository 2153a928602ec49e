"""Domain layer — pure business logic with zero framework dependencies."""

from pet_lifecycle.domain.availability import resolve_from_records
from pet_lifecycle.domain.enums import (
    AdoptionStatus,
    CustodyStatus,
    EntityType,
    EscrowStatus,
    EventType,
    PetAvailability,
    UserRole,
)
from pet_lifecycle.domain.exceptions import (
    ConflictError,
    ForbiddenError,
    InternalError,
    InvalidTransitionError,
    LifecycleError,
    NotFoundError,
)
from pet_lifecycle.domain.policies import Principal
from pet_lifecycle.domain.state_machine import EscrowStateMachine
from pet_lifecycle.domain.transitions import (
    TransitionValidator,
    adoption_validator,
    custody_validator,
)

__all__ = [
    "AdoptionStatus",
    "CustodyStatus",
    "EntityType",
    "EscrowStatus",
    "EventType",
    "PetAvailability",
    "UserRole",
    "ConflictError",
    "ForbiddenError",
    "InternalError",
    "InvalidTransitionError",
    "LifecycleError",
    "NotFoundError",
    "Principal",
    "EscrowStateMachine",
    "TransitionValidator",
    "adoption_validator",
    "custody_validator",
    "resolve_from_records",
]
