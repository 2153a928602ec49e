"""Pure pet availability rule.

Availability is never stored. It is derived from the latest adoption and the
active custody of a pet, first match wins:

    1. ADOPTED     latest adoption is COMPLETED
    2. IN_CUSTODY  a custody record is ACTIVE
    3. PENDING     latest adoption is still open
    4. AVAILABLE   otherwise
"""

from __future__ import annotations

from typing import Protocol

from pet_lifecycle.domain.enums import AdoptionStatus, CustodyStatus, PetAvailability
from pet_lifecycle.domain.transitions import OPEN_ADOPTION_STATUSES


class HasStatus(Protocol):
    status: str


def is_pending_adoption_status(status: str) -> bool:
    return status in OPEN_ADOPTION_STATUSES


def resolve_from_records(
    latest_adoption: HasStatus | None,
    active_custody: HasStatus | None,
) -> PetAvailability:
    """Apply the availability precedence to already-loaded records."""
    if latest_adoption is not None and latest_adoption.status == AdoptionStatus.COMPLETED:
        return PetAvailability.ADOPTED

    if active_custody is not None and active_custody.status == CustodyStatus.ACTIVE:
        return PetAvailability.IN_CUSTODY

    if latest_adoption is not None and is_pending_adoption_status(latest_adoption.status):
        return PetAvailability.PENDING

    return PetAvailability.AVAILABLE
