"""Pydantic schemas for the lifecycle API.

These schemas define the request/response shapes for the REST API. They are
separate from the ORM models to keep the API and database layers apart.
"""

from __future__ import annotations

import uuid  # noqa: TC003 - needed at runtime by pydantic
from datetime import datetime  # noqa: TC003 - needed at runtime by pydantic
from decimal import Decimal  # noqa: TC003 - needed at runtime by pydantic
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from pet_lifecycle.domain.enums import (  # noqa: TC001 - needed at runtime by pydantic
    AdoptionStatus,
    CustodyStatus,
    PetAvailability,
)

# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------


class CreateAdoptionRequest(BaseModel):
    """Request body for requesting an adoption."""

    pet_id: uuid.UUID = Field(..., description="Pet to adopt")
    notes: str | None = Field(
        default=None,
        max_length=2000,
        description="Free-text message to the current owner",
    )


class UpdateAdoptionStatusRequest(BaseModel):
    """Request body for a review, decision or cancellation."""

    status: AdoptionStatus
    is_admin: bool = Field(
        default=False,
        description="Bypass the transition graph (ADMIN only, absolute rules still apply)",
    )
    reason: str | None = Field(default=None, max_length=2000)


class FundAdoptionRequest(BaseModel):
    """Request body for funding an approved adoption."""

    amount: Decimal = Field(..., gt=0, decimal_places=2, examples=["250.00"])


class CreateCustodyRequest(BaseModel):
    """Request body for opening a temporary custody."""

    pet_id: uuid.UUID
    start_date: datetime
    duration_days: int = Field(..., description="Between 1 and 90 days")
    deposit_amount: Decimal | None = Field(default=None, gt=0, decimal_places=2)


class UpdateCustodyStatusRequest(BaseModel):
    """Request body for ending a custody."""

    status: CustodyStatus


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------


class AdoptionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    pet_id: uuid.UUID
    adopter_id: uuid.UUID
    owner_id: uuid.UUID
    status: str
    notes: str | None
    rejection_reason: str | None
    escrow_id: uuid.UUID | None
    created_at: datetime
    updated_at: datetime


class CustodyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    pet_id: uuid.UUID
    holder_id: uuid.UUID
    status: str
    type: str
    start_date: datetime
    due_date: datetime
    end_date: datetime | None
    deposit_amount: Decimal | None
    escrow_id: uuid.UUID | None
    created_at: datetime
    updated_at: datetime


class EscrowResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    amount: Decimal
    status: str
    settlement_reference: str
    release_tx_hash: str | None
    refund_tx_hash: str | None
    created_at: datetime
    updated_at: datetime


class PetResponse(BaseModel):
    """A pet with its computed availability."""

    id: uuid.UUID
    name: str
    species: str
    breed: str | None
    age: int | None
    current_owner_id: uuid.UUID | None
    availability: PetAvailability


class PetAvailabilityBatchResponse(BaseModel):
    availability: dict[uuid.UUID, PetAvailability]


class TransitionInfoResponse(BaseModel):
    """Legal next states for a status."""

    current_status: str
    allowed_transitions: list[str]
    is_terminal: bool


class EventLogResponse(BaseModel):
    """Response schema for an audit event."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    entity_type: str
    entity_id: uuid.UUID
    event_type: str
    actor_id: uuid.UUID | None
    payload: dict[str, Any]
    metadata: dict[str, Any] | None = Field(default=None, validation_alias="metadata_json")
    tx_hash: str | None
    created_at: datetime


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str = "0.1.0"
    database: str = "unknown"
