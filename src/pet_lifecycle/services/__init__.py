"""Application services — use case orchestration."""

from pet_lifecycle.services.availability_service import PetAvailabilityService
from pet_lifecycle.services.coordinator import LifecycleCoordinator
from pet_lifecycle.services.escrow_service import EscrowLedger
from pet_lifecycle.services.event_log import DiagnosticLogService, EventLogService
from pet_lifecycle.services.payment_service import SettlementProvider
from pet_lifecycle.services.trust_score import TrustScoreService
from pet_lifecycle.services.unit import LifecycleStage, LifecycleUnit

__all__ = [
    "DiagnosticLogService",
    "EscrowLedger",
    "EventLogService",
    "LifecycleCoordinator",
    "LifecycleStage",
    "LifecycleUnit",
    "PetAvailabilityService",
    "SettlementProvider",
    "TrustScoreService",
]
