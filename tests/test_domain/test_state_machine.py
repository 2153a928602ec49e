"""Tests for the EscrowStateMachine domain guard.

These tests verify that:
    1. CREATED can be released or refunded.
    2. RELEASED and REFUNDED are final.
"""

from __future__ import annotations

import pytest
from statemachine.exceptions import TransitionNotAllowed

from pet_lifecycle.domain.state_machine import EscrowStateMachine


class TestHappyPath:
    def test_release(self) -> None:
        sm = EscrowStateMachine("CREATED")
        assert sm.status == "CREATED"

        sm.release()
        assert sm.status == "RELEASED"

    def test_refund(self) -> None:
        sm = EscrowStateMachine("CREATED")
        sm.refund()
        assert sm.status == "REFUNDED"


class TestIllegalTransitions:
    """Verify that a settled escrow can never settle again."""

    def test_release_twice(self) -> None:
        sm = EscrowStateMachine("RELEASED")
        with pytest.raises(TransitionNotAllowed):
            sm.release()

    def test_refund_after_release(self) -> None:
        sm = EscrowStateMachine("RELEASED")
        with pytest.raises(TransitionNotAllowed):
            sm.refund()

    def test_release_after_refund(self) -> None:
        sm = EscrowStateMachine("REFUNDED")
        with pytest.raises(TransitionNotAllowed):
            sm.release()

    @pytest.mark.parametrize("status", ["RELEASED", "REFUNDED"])
    def test_settled_states_are_final(self, status: str) -> None:
        assert EscrowStateMachine(status).current_state.final

    def test_created_is_not_final(self) -> None:
        assert not EscrowStateMachine("CREATED").current_state.final

    def test_invalid_status(self) -> None:
        with pytest.raises(ValueError, match="Unknown escrow status"):
            EscrowStateMachine("INVALID_STATUS")
