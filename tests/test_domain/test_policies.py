"""Tests for the composable access predicates."""

from __future__ import annotations

import uuid

import pytest

from pet_lifecycle.domain.enums import UserRole
from pet_lifecycle.domain.exceptions import ForbiddenError
from pet_lifecycle.domain.policies import (
    Principal,
    any_of,
    has_role,
    is_admin,
    is_user,
    require,
)

OWNER = uuid.UUID("11111111-1111-1111-1111-111111111111")
OTHER = uuid.UUID("22222222-2222-2222-2222-222222222222")


class TestPredicates:
    def test_is_user(self) -> None:
        assert is_user(OWNER)(Principal(OWNER))
        assert not is_user(OWNER)(Principal(OTHER))
        assert not is_user(None)(Principal(OWNER))

    def test_has_role(self) -> None:
        admin = Principal(OTHER, UserRole.ADMIN)
        assert has_role(UserRole.ADMIN)(admin)
        assert is_admin(admin)
        assert admin.is_admin
        assert not is_admin(Principal(OWNER))

    def test_combinators(self) -> None:
        owner_or_admin = any_of(is_admin, is_user(OWNER))
        assert owner_or_admin(Principal(OWNER))
        assert owner_or_admin(Principal(OTHER, UserRole.ADMIN))
        assert not owner_or_admin(Principal(OTHER))


class TestRequire:
    def test_passes(self) -> None:
        require(Principal(OWNER), is_user(OWNER), "do it")

    def test_raises_forbidden(self) -> None:
        with pytest.raises(ForbiddenError, match="not allowed to approve"):
            require(Principal(OTHER), is_user(OWNER), "approve this adoption")
