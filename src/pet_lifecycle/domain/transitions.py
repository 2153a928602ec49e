"""Transition validators for Adoption and Custody statuses.

One generic validator, instantiated once per entity over an immutable
transition table built at import time.

Adoption:
    REQUESTED       -> PENDING_REVIEW, REJECTED
    PENDING_REVIEW  -> APPROVED, REJECTED
    PENDING         -> APPROVED, REJECTED      (legacy alias of PENDING_REVIEW)
    APPROVED        -> ESCROW_FUNDED, CANCELLED
    ESCROW_FUNDED   -> COMPLETED, REFUNDED
    COMPLETED, REJECTED, CANCELLED, REFUNDED   terminal

Custody:
    ACTIVE          -> RETURNED, CANCELLED, VIOLATION
    RETURNED, CANCELLED, VIOLATION             terminal

Check order in validate_transition:
    1. unknown states
    2. self-transition (always rejected, admin or not)
    3. terminal source / missing edge (skipped under admin override)
    4. absolute constraints (never skipped)
"""

from __future__ import annotations

import enum
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType
from typing import Generic, NamedTuple, TypeVar

from pet_lifecycle.domain.enums import AdoptionStatus, CustodyStatus
from pet_lifecycle.domain.exceptions import InvalidTransitionError

S = TypeVar("S", bound=enum.StrEnum)


class AbsoluteConstraint(NamedTuple):
    """A transition forbidden even to administrators.

    A ``target`` of None forbids every move out of ``source``.
    """

    source: enum.StrEnum
    target: enum.StrEnum | None
    reason: str

    def forbids(self, from_state: enum.StrEnum, to_state: enum.StrEnum) -> bool:
        if from_state != self.source:
            return False
        return self.target is None or to_state == self.target


@dataclass(frozen=True)
class TransitionInfo:
    current_status: str
    allowed_transitions: list[str]
    is_terminal: bool


def _freeze(table: Mapping[S, Iterable[S]]) -> Mapping[S, tuple[S, ...]]:
    return MappingProxyType({state: tuple(targets) for state, targets in table.items()})


class TransitionValidator(Generic[S]):
    """Validate status changes against a directed state graph."""

    def __init__(
        self,
        entity: str,
        state_type: type[S],
        table: Mapping[S, Iterable[S]],
        absolute_constraints: Iterable[AbsoluteConstraint] = (),
    ) -> None:
        missing = set(state_type) - set(table)
        if missing:
            raise ValueError(f"{entity} transition table is missing states: {sorted(missing)}")
        self._entity = entity
        self._state_type = state_type
        self._table = _freeze(table)
        self._absolute = tuple(absolute_constraints)

    @property
    def entity(self) -> str:
        return self._entity

    def coerce(self, value: str | S) -> S:
        """Return ``value`` as a member of the state enum or raise ValueError."""
        return self._state_type(value)

    def allowed_transitions(self, state: str | S) -> list[S]:
        return list(self._table[self.coerce(state)])

    def is_terminal(self, state: str | S) -> bool:
        return not self._table[self.coerce(state)]

    @property
    def non_terminal_states(self) -> frozenset[S]:
        return frozenset(s for s, targets in self._table.items() if targets)

    def can_transition(self, from_state: str | S, to_state: str | S) -> bool:
        try:
            self.validate_transition(from_state, to_state)
        except InvalidTransitionError:
            return False
        return True

    def validate_transition(
        self,
        from_state: str | S,
        to_state: str | S,
        *,
        admin_override: bool = False,
    ) -> None:
        """Raise InvalidTransitionError unless ``from_state -> to_state`` is legal.

        ``admin_override`` bypasses the graph edges and the terminal check but
        never the self-transition guard or the absolute constraints.
        """
        try:
            source = self.coerce(from_state)
        except ValueError:
            raise InvalidTransitionError(
                self._entity, str(from_state), str(to_state), reason="Unknown current status."
            ) from None
        allowed = self._table[source]
        try:
            target = self.coerce(to_state)
        except ValueError:
            raise InvalidTransitionError(
                self._entity, source, str(to_state), allowed, reason="Unknown target status."
            ) from None

        if source == target:
            raise InvalidTransitionError(
                self._entity,
                source,
                target,
                allowed,
                reason=f"Status is already {source}. No transition needed.",
            )

        if not admin_override:
            if not allowed:
                raise InvalidTransitionError(
                    self._entity,
                    source,
                    target,
                    (),
                    reason=f"{source} is a terminal state and cannot be modified.",
                )
            if target not in allowed:
                raise InvalidTransitionError(self._entity, source, target, allowed)

        for constraint in self._absolute:
            if constraint.forbids(source, target):
                raise InvalidTransitionError(
                    self._entity, source, target, allowed, reason=constraint.reason
                )

    def describe(self, state: str | S) -> TransitionInfo:
        current = self.coerce(state)
        return TransitionInfo(
            current_status=current.value,
            allowed_transitions=[s.value for s in self._table[current]],
            is_terminal=self.is_terminal(current),
        )


ADOPTION_TRANSITIONS: Mapping[AdoptionStatus, tuple[AdoptionStatus, ...]] = MappingProxyType({
    AdoptionStatus.REQUESTED: (AdoptionStatus.PENDING_REVIEW, AdoptionStatus.REJECTED),
    AdoptionStatus.PENDING_REVIEW: (AdoptionStatus.APPROVED, AdoptionStatus.REJECTED),
    AdoptionStatus.PENDING: (AdoptionStatus.APPROVED, AdoptionStatus.REJECTED),
    AdoptionStatus.APPROVED: (AdoptionStatus.ESCROW_FUNDED, AdoptionStatus.CANCELLED),
    AdoptionStatus.ESCROW_FUNDED: (AdoptionStatus.COMPLETED, AdoptionStatus.REFUNDED),
    AdoptionStatus.COMPLETED: (),
    AdoptionStatus.REJECTED: (),
    AdoptionStatus.CANCELLED: (),
    AdoptionStatus.REFUNDED: (),
})

CUSTODY_TRANSITIONS: Mapping[CustodyStatus, tuple[CustodyStatus, ...]] = MappingProxyType({
    CustodyStatus.ACTIVE: (
        CustodyStatus.RETURNED,
        CustodyStatus.CANCELLED,
        CustodyStatus.VIOLATION,
    ),
    CustodyStatus.RETURNED: (),
    CustodyStatus.CANCELLED: (),
    CustodyStatus.VIOLATION: (),
})

ADOPTION_ABSOLUTE_CONSTRAINTS = (
    AbsoluteConstraint(
        AdoptionStatus.COMPLETED,
        None,
        "Completed adoptions can never be reopened.",
    ),
    AbsoluteConstraint(
        AdoptionStatus.REJECTED,
        AdoptionStatus.APPROVED,
        "Rejected adoptions cannot be approved without a new review.",
    ),
)

adoption_validator: TransitionValidator[AdoptionStatus] = TransitionValidator(
    "ADOPTION",
    AdoptionStatus,
    ADOPTION_TRANSITIONS,
    ADOPTION_ABSOLUTE_CONSTRAINTS,
)

custody_validator: TransitionValidator[CustodyStatus] = TransitionValidator(
    "CUSTODY",
    CustodyStatus,
    CUSTODY_TRANSITIONS,
)

OPEN_ADOPTION_STATUSES: frozenset[AdoptionStatus] = adoption_validator.non_terminal_states
