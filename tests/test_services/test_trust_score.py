"""Tests for the Trust Score Adjuster."""

from __future__ import annotations

import uuid

import pytest
from conftest import create_user, get_user

from pet_lifecycle.domain.enums import EntityType
from pet_lifecycle.domain.exceptions import NotFoundError
from pet_lifecycle.infrastructure.database import orm_models
from pet_lifecycle.infrastructure.database.orm_models import EventLog, User
from pet_lifecycle.services.trust_score import clamp_trust_score
from pet_lifecycle.services.unit import LifecycleUnit


@pytest.mark.parametrize(
    ("score", "expected"), [(-20, 0), (0, 0), (42, 42), (100, 100), (130, 100)]
)
def test_clamp(score: int, expected: int) -> None:
    assert clamp_trust_score(score) == expected


@pytest.mark.asyncio
class TestAdjust:
    async def _adjust(self, session_factory, settings, user_id, delta, reason="test"):
        async with session_factory() as session, session.begin():
            unit = LifecycleUnit("test", session, settings)
            return await unit.trust.adjust(user_id, delta, reason)

    async def test_increase_and_audit(self, session_factory, settings) -> None:
        user = await create_user(session_factory)
        assert await self._adjust(session_factory, settings, user.id, 5, "good") == 55

        async with session_factory() as session:
            unit = LifecycleUnit("read", session, settings)
            events = await unit.events.get_events(EntityType.USER, user.id)
        assert len(events) == 1
        entry: EventLog = events[0]
        assert entry.event_type == "TRUST_SCORE_UPDATED"
        assert entry.payload == {
            "oldScore": 50,
            "newScore": 55,
            "change": 5,
            "applied": 5,
            "reason": "good",
        }

    async def test_clamps_upper_bound(self, session_factory, settings) -> None:
        user = await create_user(session_factory, trust_score=98)
        assert await self._adjust(session_factory, settings, user.id, 5) == 100
        assert (await get_user(session_factory, user.id)).trust_score == 100

    async def test_clamps_lower_bound(self, session_factory, settings) -> None:
        user = await create_user(session_factory, trust_score=10)
        assert await self._adjust(session_factory, settings, user.id, -15) == 0
        assert (await get_user(session_factory, user.id)).trust_score == 0

    async def test_unknown_user(self, session_factory, settings) -> None:
        with pytest.raises(NotFoundError):
            await self._adjust(session_factory, settings, uuid.uuid4(), 5)

    async def test_policy_amounts_follow_settings(self, session_factory, settings) -> None:
        user = await create_user(session_factory)
        harsher = settings.model_copy(update={"trust_custody_violation_penalty": 30})
        async with session_factory() as session, session.begin():
            unit = LifecycleUnit("test", session, harsher)
            assert await unit.trust.penalize_violation(user.id, uuid.uuid4()) == 20
            assert await unit.trust.reward_successful_custody(user.id, uuid.uuid4()) == 25

    async def test_new_users_start_at_configured_default(
        self, session_factory, settings, monkeypatch
    ) -> None:
        generous = settings.model_copy(update={"trust_score_default": 70})
        monkeypatch.setattr(orm_models, "get_settings", lambda: generous)

        user = User(email="newcomer@example.com", display_name=None, role="USER")
        async with session_factory() as session, session.begin():
            session.add(user)

        assert (await get_user(session_factory, user.id)).trust_score == 70
