"""FastAPI dependency injection providers.

These are used with Depends() in route handlers to inject the authenticated
principal and the lifecycle coordinator.
"""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from fastapi import Header, HTTPException, Request

from pet_lifecycle.config import get_settings
from pet_lifecycle.domain.enums import UserRole
from pet_lifecycle.domain.policies import Principal
from pet_lifecycle.infrastructure.database.engine import get_session_factory
from pet_lifecycle.services.coordinator import LifecycleCoordinator

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker


def resolve_session_factory(request: Request) -> async_sessionmaker[AsyncSession]:
    """Session factory injected into create_app, else the settings-driven default."""
    factory = getattr(request.app.state, "session_factory", None)
    return factory if factory is not None else get_session_factory()


def get_principal(
    x_user_id: str | None = Header(default=None),
    x_user_role: str | None = Header(default=None),
) -> Principal:
    """Build the caller from the X-User-Id / X-User-Role headers."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    try:
        user_id = uuid.UUID(x_user_id)
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid X-User-Id header") from None
    try:
        role = UserRole((x_user_role or UserRole.USER.value).upper())
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid X-User-Role header") from None
    return Principal(user_id=user_id, role=role)


def get_coordinator(request: Request) -> LifecycleCoordinator:
    """Provide a coordinator bound to the app's session factory."""
    return LifecycleCoordinator(resolve_session_factory(request), get_settings())

