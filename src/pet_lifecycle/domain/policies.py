"""Access policies as plain composable predicates.

A Principal is the authenticated caller, already resolved by the outer layer.
Handlers combine predicates and call ``require`` before touching any state:

    require(principal, any_of(has_role(UserRole.ADMIN), is_user(adoption.owner_id)),
            "approve this adoption")
"""

from __future__ import annotations

import uuid
from collections.abc import Callable
from dataclasses import dataclass

from pet_lifecycle.domain.enums import UserRole
from pet_lifecycle.domain.exceptions import ForbiddenError


@dataclass(frozen=True)
class Principal:
    user_id: uuid.UUID
    role: UserRole = UserRole.USER

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN


Predicate = Callable[[Principal], bool]


def has_role(*roles: UserRole) -> Predicate:
    return lambda principal: principal.role in roles


def is_user(user_id: uuid.UUID | None) -> Predicate:
    return lambda principal: user_id is not None and principal.user_id == user_id


def any_of(*predicates: Predicate) -> Predicate:
    return lambda principal: any(p(principal) for p in predicates)


is_admin: Predicate = has_role(UserRole.ADMIN)


def require(principal: Principal, predicate: Predicate, action: str) -> None:
    """Raise ForbiddenError unless ``predicate`` holds for ``principal``."""
    if not predicate(principal):
        raise ForbiddenError(f"User {principal.user_id} is not allowed to {action}")
