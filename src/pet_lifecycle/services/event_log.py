"""Event logging on the two paths the platform needs.

EventLogService (domain path):
    Appends to event_logs inside the caller's transaction. A failure is
    re-raised as EventLogWriteError so the whole unit of work rolls back;
    an unrecorded business event is never an acceptable outcome.

DiagnosticLogService (operational path):
    Writes app_logs rows in its own short transaction for request and error
    logging. Any failure is reported through structlog and swallowed; it must
    never fail the caller's request.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy.exc import SQLAlchemyError

from pet_lifecycle.domain.enums import AppLogLevel, EntityType, EventType
from pet_lifecycle.domain.exceptions import EventLogWriteError
from pet_lifecycle.infrastructure.database.orm_models import AppLog, EventLog
from pet_lifecycle.infrastructure.database.repositories import (
    AppLogRepository,
    EventRepository,
)
from pet_lifecycle.logging_config import get_logger

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = get_logger(__name__)


class EventLogService:
    """Append-only audit sink for domain transitions."""

    def __init__(self, session: AsyncSession) -> None:
        self._repo = EventRepository(session)

    async def log_event(
        self,
        entity_type: EntityType,
        entity_id: uuid.UUID,
        event_type: EventType,
        payload: dict[str, Any],
        actor_id: uuid.UUID | None = None,
        metadata: dict[str, Any] | None = None,
        tx_hash: str | None = None,
    ) -> EventLog:
        """Record one event or raise EventLogWriteError."""
        entry = EventLog(
            entity_type=entity_type.value,
            entity_id=entity_id,
            event_type=event_type.value,
            actor_id=actor_id,
            payload=payload,
            metadata_json=metadata,
            tx_hash=tx_hash,
        )
        try:
            await self._repo.append(entry)
        except SQLAlchemyError as exc:
            logger.error(
                "event_log.write_failed",
                event_type=event_type.value,
                entity_type=entity_type.value,
                entity_id=str(entity_id),
                error=str(exc),
            )
            raise EventLogWriteError(event_type.value, str(exc)) from exc

        logger.debug(
            "event_log.recorded",
            event_type=entry.event_type,
            entity_type=entry.entity_type,
            entity_id=str(entry.entity_id),
        )
        return entry

    async def get_events(self, entity_type: EntityType, entity_id: uuid.UUID) -> list[EventLog]:
        return await self._repo.get_for_entity(entity_type.value, entity_id)


class DiagnosticLogService:
    """Best-effort application log. Never raises."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def log(
        self,
        level: AppLogLevel,
        action: str,
        message: str,
        user_id: uuid.UUID | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> AppLog | None:
        """Record an app_logs row; return None when the write fails."""
        try:
            async with self._session_factory() as session, session.begin():
                return await AppLogRepository(session).record(
                    AppLog(
                        level=level.value,
                        action=action,
                        message=message,
                        user_id=user_id,
                        metadata_json=metadata,
                    )
                )
        except Exception as exc:
            logger.error(
                "app_log.write_failed",
                action=action,
                level=level.value,
                error=str(exc),
                exc_info=True,
            )
            return None
