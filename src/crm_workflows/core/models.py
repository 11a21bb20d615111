"""Concrete data models for crm-workflows.

This module provides the dataclasses the executor works with. Stores convert
their rows into these so the engine never touches ORM objects.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any

from crm_workflows.core.types import EntityType, StepStatus

__all__ = [
    "ExecutionResult",
    "SchedulingIntent",
    "StepData",
    "StepOutcome",
    "TagData",
    "TemplateData",
    "WorkflowData",
]


@dataclass
class WorkflowData:
    """A workflow definition as the executor sees it.

    Attributes:
        id: Workflow id.
        workflow_name: Display name.
        trigger_entity: Entity kind the workflow runs against, as stored.
        trigger_condition: Opaque condition text, evaluated by the caller.
        description: Free-form description.
        is_active: Whether automatic triggers should consider this workflow.
        created_by_user_id: Author of the workflow.
    """

    id: int
    workflow_name: str
    trigger_entity: str
    trigger_condition: str | None = None
    description: str | None = None
    is_active: bool = True
    created_by_user_id: int | None = None


@dataclass
class StepData:
    """One step of a workflow.

    Attributes:
        id: Step id.
        workflow_id: Owning workflow id.
        step_order: 1-based position within the workflow.
        action_type: Raw action type as stored.
        action_details: Action parameters.
        delay_days: Days to wait before running the step.
        delay_hours: Hours to wait before running the step.
        step_name: Optional display name.
    """

    id: int
    workflow_id: int
    step_order: int
    action_type: str
    action_details: dict[str, Any] | None = None
    delay_days: int | None = 0
    delay_hours: int | None = 0
    step_name: str | None = None

    @property
    def delay(self) -> timedelta:
        """Total delay; null delay columns count as zero."""
        return timedelta(days=self.delay_days or 0, hours=self.delay_hours or 0)

    @property
    def is_immediate(self) -> bool:
        """Whether the step runs inline instead of being scheduled."""
        return not self.delay_days and not self.delay_hours


@dataclass
class TemplateData:
    """A communication template."""

    id: int
    template_name: str
    template_type: str
    subject: str | None = None
    body_content: str | None = None


@dataclass
class TagData:
    """A tag that can be attached to leads and contacts."""

    id: int
    tag_name: str
    tag_color: str | None = None


@dataclass
class SchedulingIntent:
    """Request to run a delayed step later.

    Produced by the executor and handed to a scheduler; never persisted here.
    The re-entry coordinates let the scheduler call
    :meth:`~crm_workflows.engine.executor.WorkflowExecutor.run_scheduled` without
    any other state.

    Attributes:
        step_id: The step to run.
        due_time: Earliest time the step should run.
        workflow_id: Owning workflow.
        entity_type: Target entity kind.
        entity_id: Target entity id.
        acting_user_id: User the original execution ran on behalf of.
    """

    step_id: int
    due_time: datetime
    workflow_id: int
    entity_type: EntityType
    entity_id: int
    acting_user_id: int


@dataclass
class StepOutcome:
    """Result of one step within an execution.

    Attributes:
        step_id: The step this outcome belongs to.
        status: What happened to the step.
        action_type: Raw action type of the step.
        result: Handler return value describing the writes, when it succeeded.
        error: Error message, when the step failed or was skipped.
        exception: The wrapped handler exception, when the step failed.
    """

    step_id: int
    status: StepStatus
    action_type: str | None = None
    result: dict[str, Any] | None = None
    error: str | None = None
    exception: Exception | None = field(default=None, repr=False)

    @property
    def succeeded(self) -> bool:
        return self.status == StepStatus.SUCCEEDED


@dataclass
class ExecutionResult:
    """Result of executing a workflow against one entity.

    Attributes:
        workflow_id: The workflow that ran.
        entity_type: Target entity kind.
        entity_id: Target entity id.
        executed_step_ids: Ids of zero-delay steps whose handler succeeded, in order.
        scheduled: Intents for the delayed steps, in order.
        outcomes: One outcome per step, in order.
    """

    workflow_id: int
    entity_type: EntityType
    entity_id: int
    executed_step_ids: list[int] = field(default_factory=list)
    scheduled: list[SchedulingIntent] = field(default_factory=list)
    outcomes: list[StepOutcome] = field(default_factory=list)

    @property
    def failed(self) -> list[StepOutcome]:
        """Outcomes of the steps whose handler raised."""
        return [outcome for outcome in self.outcomes if outcome.status == StepStatus.FAILED]

    @property
    def skipped(self) -> list[StepOutcome]:
        """Outcomes of the steps with an unsupported action type."""
        return [outcome for outcome in self.outcomes if outcome.status == StepStatus.SKIPPED]
