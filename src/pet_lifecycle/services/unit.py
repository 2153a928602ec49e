"""Unit of work for one lifecycle operation.

A LifecycleUnit wraps the transaction-scoped session together with the
services that share it, and records how far the operation got. Stages only
move forward:

    RECEIVED -> VALIDATED -> PERSISTED -> CASCADES_APPLIED
             -> AVAILABILITY_RECOMPUTED -> LOGGED -> ACKNOWLEDGED

Stages may be skipped (an operation without cascades goes straight from
PERSISTED to AVAILABILITY_RECOMPUTED) but never revisited.
"""

from __future__ import annotations

import enum
from typing import TYPE_CHECKING

from pet_lifecycle.config import Settings, get_settings
from pet_lifecycle.services.availability_service import PetAvailabilityService
from pet_lifecycle.services.escrow_service import EscrowLedger
from pet_lifecycle.services.event_log import EventLogService
from pet_lifecycle.services.trust_score import TrustScoreService

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from pet_lifecycle.services.payment_service import SettlementProvider


class LifecycleStage(enum.IntEnum):
    RECEIVED = 0
    VALIDATED = 1
    PERSISTED = 2
    CASCADES_APPLIED = 3
    AVAILABILITY_RECOMPUTED = 4
    LOGGED = 5
    ACKNOWLEDGED = 6


class LifecycleUnit:
    """Session plus per-transaction services for a single operation."""

    def __init__(
        self,
        operation: str,
        session: AsyncSession,
        settings: Settings | None = None,
        settlement: SettlementProvider | None = None,
    ) -> None:
        self.operation = operation
        self.session = session
        self.settings = settings or get_settings()
        self.events = EventLogService(session)
        self.trust = TrustScoreService(session, self.events, self.settings)
        self.availability = PetAvailabilityService(session, self.events)
        self.ledger = EscrowLedger(session, self.events, self.trust, settlement)
        self._stage = LifecycleStage.RECEIVED

    @property
    def stage(self) -> LifecycleStage:
        return self._stage

    def advance(self, stage: LifecycleStage) -> None:
        if stage < self._stage:
            raise ValueError(
                f"{self.operation}: cannot move back from {self._stage.name} to {stage.name}"
            )
        self._stage = stage
