"""Unit tests for StateMachine."""

import pytest

from mood_radar.core.state_machine import (
    InvalidTransitionError,
    StateMachine,
    create_pipeline_state_machine,
)
from mood_radar.services.pipeline.events import STAGE_ORDER, PipelineStatus


class TestStateMachine:
    """Tests for generic StateMachine."""

    @pytest.fixture
    def simple_transitions(self):
        """Create simple transition map for testing."""
        return {
            "start": ["middle", "end"],
            "middle": ["end"],
            "end": [],
        }

    @pytest.fixture
    def state_machine(self, simple_transitions):
        """Create state machine with simple transitions."""
        return StateMachine("start", simple_transitions)

    def test_initial_state(self, state_machine):
        """Test that initial state is set correctly."""
        assert state_machine.current == "start"

    def test_can_transition_valid(self, state_machine):
        """Test can_transition returns True for valid transitions."""
        assert state_machine.can_transition("middle") is True
        assert state_machine.can_transition("end") is True

    def test_can_transition_invalid(self, state_machine):
        """Test can_transition returns False for invalid transitions."""
        assert state_machine.can_transition("nonexistent") is False

    def test_transition_invalid_raises(self, state_machine):
        """Test invalid transition raises error."""
        state_machine.transition("middle")

        with pytest.raises(InvalidTransitionError) as exc_info:
            state_machine.transition("start")

        assert exc_info.value.current == "middle"
        assert exc_info.value.target == "start"
        assert "end" in exc_info.value.allowed
        assert exc_info.value.context["target"] == "start"

    def test_terminal_state(self, state_machine):
        """Test is_terminal once no transitions remain."""
        assert state_machine.is_terminal is False
        state_machine.transition("end")
        assert state_machine.is_terminal is True
        assert state_machine.allowed_transitions == []


class TestPipelineStateMachine:
    """Tests for the pipeline run state machine."""

    def test_starts_idle(self):
        """Test default initial state."""
        assert create_pipeline_state_machine().current == PipelineStatus.IDLE

    def test_custom_initial_status(self):
        """Test initial status from a string value."""
        sm = create_pipeline_state_machine("running_c")
        assert sm.current == PipelineStatus.RUNNING_C

    def test_full_run_in_order(self):
        """Test walking all stages in order to COMPLETE."""
        sm = create_pipeline_state_machine()

        for stage in STAGE_ORDER:
            sm.transition(PipelineStatus.running(stage))
        sm.transition(PipelineStatus.COMPLETE)

        assert sm.current == PipelineStatus.COMPLETE
        assert sm.is_terminal

    def test_cannot_skip_stage(self):
        """Test stages cannot be skipped."""
        sm = create_pipeline_state_machine()
        sm.transition(PipelineStatus.RUNNING_A)

        with pytest.raises(InvalidTransitionError):
            sm.transition(PipelineStatus.RUNNING_C)

    def test_any_running_stage_can_fail(self):
        """Test FAILED is reachable from every running stage."""
        for stage in STAGE_ORDER:
            sm = create_pipeline_state_machine(PipelineStatus.running(stage).value)
            assert sm.can_transition(PipelineStatus.FAILED)

    def test_idle_cannot_fail(self):
        """Test a run that never started cannot fail."""
        assert not create_pipeline_state_machine().can_transition(PipelineStatus.FAILED)

    def test_failed_is_terminal(self):
        """Test no retry from FAILED."""
        sm = create_pipeline_state_machine("running_b")
        sm.transition(PipelineStatus.FAILED)

        assert sm.is_terminal
        assert not sm.can_transition(PipelineStatus.RUNNING_A)
