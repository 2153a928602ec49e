"""Database infrastructure — engine, ORM models, and repositories."""

from pet_lifecycle.infrastructure.database.engine import (
    build_session_factory,
    close_db,
    get_session_factory,
    init_db,
)
from pet_lifecycle.infrastructure.database.orm_models import (
    Adoption,
    AppLog,
    Base,
    Custody,
    Escrow,
    EventLog,
    Pet,
    User,
)
from pet_lifecycle.infrastructure.database.repositories import (
    AdoptionRepository,
    AppLogRepository,
    CustodyRepository,
    EscrowRepository,
    EventRepository,
    PetRepository,
    UserRepository,
)

__all__ = [
    "Base",
    "Adoption",
    "AppLog",
    "Custody",
    "Escrow",
    "EventLog",
    "Pet",
    "User",
    "AdoptionRepository",
    "AppLogRepository",
    "CustodyRepository",
    "EscrowRepository",
    "EventRepository",
    "PetRepository",
    "UserRepository",
    "build_session_factory",
    "get_session_factory",
    "init_db",
    "close_db",
]
