"""Escrow Fund State Machine Guard.

Uses python-statemachine to enforce the escrow record's own lifecycle at the
domain level. No matter what the ledger or the API does, an escrow that has
already settled cannot be released or refunded a second time.

Transition table:
    CREATED -> RELEASED   (release)
    CREATED -> REFUNDED   (refund)
"""

from __future__ import annotations

from statemachine import State, StateMachine


class EscrowStateMachine(StateMachine):
    """State machine that guards escrow fund transitions.

    Usage:
        sm = EscrowStateMachine(current_status="CREATED")
        sm.release()        # transitions to RELEASED
        sm.status           # "RELEASED"
    """

    # --- States ---
    CREATED = State("CREATED", initial=True)
    RELEASED = State("RELEASED", final=True)
    REFUNDED = State("REFUNDED", final=True)

    # --- Events / Transitions ---
    release = CREATED.to(RELEASED)
    refund = CREATED.to(REFUNDED)

    def __init__(self, current_status: str = "CREATED") -> None:
        """Initialize the state machine at a given status.

        Args:
            current_status: The current EscrowStatus value (e.g., "CREATED").
        """
        valid_values = {s.value for s in self.states}
        if current_status not in valid_values:
            valid = ", ".join(sorted(valid_values))
            raise ValueError(
                f"Unknown escrow status '{current_status}'. Valid states: {valid}"
            )
        super().__init__(start_value=current_status)

    @property
    def status(self) -> str:
        """Return the current state value as a string (matches EscrowStatus enum)."""
        return str(self.current_state.value)

