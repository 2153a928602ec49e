"""Trust Score Adjuster — bounded reputation changes with an audit row each."""

from __future__ import annotations

from typing import TYPE_CHECKING

from pet_lifecycle.config import Settings, get_settings
from pet_lifecycle.domain.enums import EntityType, EventType
from pet_lifecycle.domain.exceptions import NotFoundError
from pet_lifecycle.infrastructure.database.repositories import UserRepository
from pet_lifecycle.logging_config import get_logger

if TYPE_CHECKING:
    import uuid

    from sqlalchemy.ext.asyncio import AsyncSession

    from pet_lifecycle.services.event_log import EventLogService

logger = get_logger(__name__)

MIN_TRUST_SCORE = 0
MAX_TRUST_SCORE = 100


def clamp_trust_score(score: int) -> int:
    return max(MIN_TRUST_SCORE, min(MAX_TRUST_SCORE, score))


class TrustScoreService:
    """Reads, clamps, persists and audits trust score changes."""

    def __init__(
        self,
        session: AsyncSession,
        events: EventLogService,
        settings: Settings | None = None,
    ) -> None:
        self._users = UserRepository(session)
        self._events = events
        self._settings = settings or get_settings()

    async def adjust(
        self,
        user_id: uuid.UUID,
        delta: int,
        reason: str,
        actor_id: uuid.UUID | None = None,
    ) -> int:
        """Apply a signed delta, clamped to [0, 100]. Returns the new score."""
        user = await self._users.get_by_id(user_id, for_update=True)
        if user is None:
            raise NotFoundError("User", user_id)

        old_score = user.trust_score
        new_score = clamp_trust_score(old_score + delta)
        await self._users.set_trust_score(user, new_score)

        await self._events.log_event(
            entity_type=EntityType.USER,
            entity_id=user_id,
            event_type=EventType.TRUST_SCORE_UPDATED,
            actor_id=actor_id,
            payload={
                "oldScore": old_score,
                "newScore": new_score,
                "change": delta,
                "applied": new_score - old_score,
                "reason": reason,
            },
        )

        logger.info(
            "trust_score.adjusted",
            user_id=str(user_id),
            old=old_score,
            new=new_score,
            delta=delta,
            reason=reason,
        )
        return new_score

    async def increase(self, user_id: uuid.UUID, amount: int, reason: str) -> int:
        return await self.adjust(user_id, amount, reason)

    async def decrease(self, user_id: uuid.UUID, amount: int, reason: str) -> int:
        return await self.adjust(user_id, -amount, reason)

    # ------------------------------------------------------------------
    # Policy wrappers
    # ------------------------------------------------------------------

    async def reward_successful_custody(self, user_id: uuid.UUID, custody_id: uuid.UUID) -> int:
        return await self.increase(
            user_id,
            self._settings.trust_custody_return_bonus,
            f"Successful custody return: {custody_id}",
        )

    async def penalize_violation(self, user_id: uuid.UUID, custody_id: uuid.UUID) -> int:
        return await self.decrease(
            user_id,
            self._settings.trust_custody_violation_penalty,
            f"Custody violation: {custody_id}",
        )

    async def reward_completed_adoption(
        self, user_id: uuid.UUID, adoption_id: uuid.UUID
    ) -> int:
        return await self.increase(
            user_id,
            self._settings.trust_adoption_completed_bonus,
            f"Completed adoption: {adoption_id}",
        )
