"""Tests for core type definitions."""

from __future__ import annotations

from datetime import timedelta

import pytest

from crm_workflows.core.models import ExecutionResult, StepData, StepOutcome
from crm_workflows.core.types import ActionType, Channel, EntityType, StepStatus


@pytest.mark.unit
class TestEntityType:
    """Tests for EntityType enum."""

    def test_values(self) -> None:
        """Test the stored values."""
        assert EntityType.LEAD == "Lead"
        assert EntityType.CONTACT == "Contact"
        assert EntityType.TRANSACTION == "Transaction"

    def test_from_string(self) -> None:
        """Test creating members from stored strings."""
        assert EntityType("Contact") is EntityType.CONTACT

    def test_rejects_unknown(self) -> None:
        """Test lowercase and unknown names are not accepted."""
        with pytest.raises(ValueError):
            EntityType("lead")


@pytest.mark.unit
class TestActionType:
    """Tests for ActionType enum."""

    def test_display_values(self) -> None:
        """Test the stored display values."""
        assert [member.value for member in ActionType] == [
            "Create Task",
            "Send Email",
            "Send SMS",
            "Update Field",
            "Add Tag",
        ]

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("Create Task", ActionType.CREATE_TASK),
            ("CreateTask", ActionType.CREATE_TASK),
            ("SendEmail", ActionType.SEND_EMAIL),
            ("send_sms", ActionType.SEND_SMS),
            ("UPDATE FIELD", ActionType.UPDATE_FIELD),
            ("AddTag", ActionType.ADD_TAG),
        ],
    )
    def test_parse(self, raw: str, expected: ActionType) -> None:
        """Test parse accepts display and compact spellings."""
        assert ActionType.parse(raw) is expected

    @pytest.mark.parametrize("raw", ["Send Fax", "", None, "Task"])
    def test_parse_unknown(self, raw: str | None) -> None:
        """Test parse returns None for unknown values."""
        assert ActionType.parse(raw) is None


@pytest.mark.unit
class TestChannelAndStatus:
    """Tests for Channel and StepStatus enums."""

    def test_channel_values(self) -> None:
        """Test communication types as stored."""
        assert Channel.EMAIL == "Email"
        assert Channel.SMS == "SMS"

    def test_step_status_values(self) -> None:
        """Test step statuses use lowercase names."""
        assert StepStatus.SUCCEEDED == "succeeded"
        assert StepStatus.SCHEDULED == "scheduled"
        assert StepStatus.SKIPPED == "skipped"
        assert StepStatus.FAILED == "failed"


@pytest.mark.unit
class TestStepData:
    """Tests for StepData delay handling."""

    def test_delay(self) -> None:
        """Test days and hours combine into one delay."""
        step = StepData(id=1, workflow_id=1, step_order=1, action_type="Create Task", delay_days=2, delay_hours=3)

        assert step.delay == timedelta(hours=51)
        assert not step.is_immediate

    def test_null_delay(self) -> None:
        """Test null delays count as zero."""
        step = StepData(id=1, workflow_id=1, step_order=1, action_type="Create Task", delay_days=None, delay_hours=None)

        assert step.delay == timedelta(0)
        assert step.is_immediate

    def test_hours_only(self) -> None:
        """Test an hours-only delay is not immediate."""
        step = StepData(id=1, workflow_id=1, step_order=1, action_type="Create Task", delay_hours=1)

        assert not step.is_immediate


@pytest.mark.unit
class TestExecutionResult:
    """Tests for ExecutionResult helpers."""

    def test_failed_and_skipped(self) -> None:
        """Test outcomes are filtered by status."""
        result = ExecutionResult(
            workflow_id=1,
            entity_type=EntityType.LEAD,
            entity_id=1,
            outcomes=[
                StepOutcome(step_id=1, status=StepStatus.SUCCEEDED),
                StepOutcome(step_id=2, status=StepStatus.FAILED, error="boom"),
                StepOutcome(step_id=3, status=StepStatus.SKIPPED),
                StepOutcome(step_id=4, status=StepStatus.SCHEDULED),
            ],
        )

        assert [o.step_id for o in result.failed] == [2]
        assert [o.step_id for o in result.skipped] == [3]
        assert result.outcomes[0].succeeded
        assert not result.outcomes[3].succeeded
