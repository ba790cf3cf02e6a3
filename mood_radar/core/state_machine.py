"""Generic State Machine for status transitions.

This module provides a reusable state machine pattern for managing
status transitions. The analysis pipeline uses it to walk its stages.

Example:
    # Define transitions
    TRANSITIONS: TransitionMap[PipelineStatus] = {
        PipelineStatus.IDLE: [PipelineStatus.RUNNING_A],
        PipelineStatus.RUNNING_A: [PipelineStatus.RUNNING_B, PipelineStatus.FAILED],
        ...
        PipelineStatus.COMPLETE: [],
        PipelineStatus.FAILED: [],
    }

    # Create state machine
    sm = StateMachine(PipelineStatus.IDLE, TRANSITIONS)

    # Check and perform transitions
    if sm.can_transition(PipelineStatus.RUNNING_A):
        sm.transition(PipelineStatus.RUNNING_A)

"""

from enum import Enum
from typing import Generic, TypeVar

from mood_radar.core.exceptions import MoodRadarError

T = TypeVar("T", bound=str | Enum)

# Type alias for transition maps
TransitionMap = dict[T, list[T]]


class InvalidTransitionError(MoodRadarError):
    """Raised when an invalid state transition is attempted."""

    def __init__(self, current: T, target: T, allowed: list[T] | None = None):
        self.current = current
        self.target = target
        self.allowed = allowed or []
        self.error_code = "INVALID_TRANSITION"
        allowed_str = ", ".join(str(s) for s in self.allowed) if self.allowed else "none"
        super().__init__(
            message=f"Invalid transition from '{current}' to '{target}'. "
            f"Allowed transitions: {allowed_str}",
            context={
                "current": str(current),
                "target": str(target),
                "allowed": [str(s) for s in self.allowed],
            },
        )


class StateMachine(Generic[T]):
    """Generic state machine for status transitions.

    Provides a type-safe way to manage status transitions with
    explicit allowed transitions defined upfront.

    Attributes:
        current: Current state
        transitions: Map of allowed transitions from each state
    """

    def __init__(self, initial: T, transitions: TransitionMap[T]):
        """Initialize state machine.

        Args:
            initial: Initial state
            transitions: Map of state -> list of allowed target states
        """
        self._current = initial
        self._transitions = transitions

    @property
    def current(self) -> T:
        """Get current state."""
        return self._current

    @property
    def allowed_transitions(self) -> list[T]:
        """Get list of states we can transition to from current state."""
        return self._transitions.get(self._current, [])

    @property
    def is_terminal(self) -> bool:
        """Whether no further transitions are possible."""
        return not self.allowed_transitions

    def can_transition(self, target: T) -> bool:
        """Check if transition to target state is allowed.

        Args:
            target: Target state to check

        Returns:
            True if transition is allowed, False otherwise
        """
        return target in self.allowed_transitions

    def transition(self, target: T) -> None:
        """Perform transition to target state.

        Args:
            target: Target state

        Raises:
            InvalidTransitionError: If transition is not allowed
        """
        if not self.can_transition(target):
            raise InvalidTransitionError(
                current=self._current,
                target=target,
                allowed=self.allowed_transitions,
            )
        self._current = target

    def __str__(self) -> str:
        return f"StateMachine(current={self._current})"

    def __repr__(self) -> str:
        return f"StateMachine(current={self._current!r}, allowed={self.allowed_transitions!r})"


# ============================================
# Predefined Transition Maps
# ============================================


def get_pipeline_transitions() -> TransitionMap:
    """Get transition map for PipelineStatus.

    Stages run strictly in order; any running stage may fail.
    COMPLETE and FAILED are terminal (no automatic retry).
    """
    from mood_radar.services.pipeline.events import PipelineStatus

    return {
        PipelineStatus.IDLE: [PipelineStatus.RUNNING_A],
        PipelineStatus.RUNNING_A: [PipelineStatus.RUNNING_B, PipelineStatus.FAILED],
        PipelineStatus.RUNNING_B: [PipelineStatus.RUNNING_C, PipelineStatus.FAILED],
        PipelineStatus.RUNNING_C: [PipelineStatus.RUNNING_D, PipelineStatus.FAILED],
        PipelineStatus.RUNNING_D: [PipelineStatus.RUNNING_E, PipelineStatus.FAILED],
        PipelineStatus.RUNNING_E: [PipelineStatus.COMPLETE, PipelineStatus.FAILED],
        PipelineStatus.COMPLETE: [],  # Terminal state
        PipelineStatus.FAILED: [],  # Terminal state
    }


# ============================================
# Factory Functions
# ============================================


def create_pipeline_state_machine(initial_status: str | None = None) -> StateMachine:
    """Create a state machine for a pipeline run.

    Args:
        initial_status: Initial status (default: IDLE)

    Returns:
        Configured StateMachine for a pipeline run
    """
    from mood_radar.services.pipeline.events import PipelineStatus

    initial = PipelineStatus(initial_status) if initial_status else PipelineStatus.IDLE
    return StateMachine(initial, get_pipeline_transitions())
