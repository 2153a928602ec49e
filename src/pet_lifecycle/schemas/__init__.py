"""Pydantic API schemas."""

from pet_lifecycle.schemas.lifecycle import (
    AdoptionResponse,
    CreateAdoptionRequest,
    CreateCustodyRequest,
    CustodyResponse,
    EscrowResponse,
    EventLogResponse,
    FundAdoptionRequest,
    HealthResponse,
    PetAvailabilityBatchResponse,
    PetResponse,
    TransitionInfoResponse,
    UpdateAdoptionStatusRequest,
    UpdateCustodyStatusRequest,
)

__all__ = [
    "AdoptionResponse",
    "CreateAdoptionRequest",
    "CreateCustodyRequest",
    "CustodyResponse",
    "EscrowResponse",
    "EventLogResponse",
    "FundAdoptionRequest",
    "HealthResponse",
    "PetAvailabilityBatchResponse",
    "PetResponse",
    "TransitionInfoResponse",
    "UpdateAdoptionStatusRequest",
    "UpdateCustodyStatusRequest",
]
