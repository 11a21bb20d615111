"""Data Transfer Objects for the workflow web API.

This module defines DTOs for serializing and deserializing workflow data
in REST API requests and responses.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

__all__ = [
    "CreateStepDTO",
    "CreateWorkflowDTO",
    "ExecuteWorkflowDTO",
    "ExecutionResultDTO",
    "ReorderStepsDTO",
    "ScheduledStepDTO",
    "StepOrderDTO",
    "StepOutcomeDTO",
    "UpdateStepDTO",
    "UpdateWorkflowDTO",
    "WorkflowDetailDTO",
    "WorkflowListDTO",
    "WorkflowStepDTO",
    "WorkflowSummaryDTO",
]


@dataclass
class WorkflowStepDTO:
    """DTO for a workflow step.

    Attributes:
        id: Step id.
        workflow_id: Owning workflow id.
        step_order: 1-based position.
        action_type: Action display string.
        action_details: Action parameters.
        delay_days: Days to wait before running.
        delay_hours: Hours to wait before running.
        step_name: Optional display name.
    """

    id: int
    workflow_id: int
    step_order: int
    action_type: str
    action_details: dict[str, Any] | None
    delay_days: int
    delay_hours: int
    step_name: str | None = None


@dataclass
class WorkflowSummaryDTO:
    """DTO for a workflow in list responses.

    Attributes:
        id: Workflow id.
        workflow_name: Display name.
        trigger_entity: Lead, Contact or Transaction.
        trigger_condition: Opaque condition text.
        description: Free-form description.
        is_active: Whether automatic triggers consider the workflow.
        created_by_user_id: Author.
        step_count: Number of steps.
        created_at: Creation time.
        updated_at: Last modification time.
    """

    id: int
    workflow_name: str
    trigger_entity: str
    trigger_condition: str | None
    description: str | None
    is_active: bool
    created_by_user_id: int | None
    step_count: int
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class WorkflowDetailDTO(WorkflowSummaryDTO):
    """DTO for a single workflow including its ordered steps."""

    steps: list[WorkflowStepDTO] = field(default_factory=list)


@dataclass
class WorkflowListDTO:
    """DTO for a page of workflows."""

    items: list[WorkflowSummaryDTO]
    total: int
    page: int
    limit: int
    total_pages: int


@dataclass
class CreateStepDTO:
    """DTO for adding a step.

    Attributes:
        action_type: One of Create Task, Send Email, Send SMS, Update Field, Add Tag.
        action_details: Action parameters.
        delay_days: Days to wait before running.
        delay_hours: Hours to wait before running.
        step_name: Optional display name.
        step_order: Position to insert at; appends when omitted.
    """

    action_type: str
    action_details: dict[str, Any] | None = None
    delay_days: int = 0
    delay_hours: int = 0
    step_name: str | None = None
    step_order: int | None = None


@dataclass
class UpdateStepDTO:
    """DTO for a partial step update; omitted fields are left unchanged."""

    action_type: str | None = None
    action_details: dict[str, Any] | None = None
    delay_days: int | None = None
    delay_hours: int | None = None
    step_name: str | None = None
    step_order: int | None = None


@dataclass
class CreateWorkflowDTO:
    """DTO for creating a workflow with optional initial steps."""

    workflow_name: str
    trigger_entity: str
    trigger_condition: str | None = None
    description: str | None = None
    is_active: bool = True
    steps: list[CreateStepDTO] = field(default_factory=list)


@dataclass
class UpdateWorkflowDTO:
    """DTO for a partial workflow update; omitted fields are left unchanged."""

    workflow_name: str | None = None
    trigger_entity: str | None = None
    trigger_condition: str | None = None
    description: str | None = None
    is_active: bool | None = None


@dataclass
class StepOrderDTO:
    """New position for one step."""

    id: int
    step_order: int


@dataclass
class ReorderStepsDTO:
    """DTO for reordering every step of a workflow at once."""

    steps: list[StepOrderDTO]


@dataclass
class ExecuteWorkflowDTO:
    """DTO for running a workflow against an entity.

    Attributes:
        entity_type: Lead, Contact or Transaction.
        entity_id: Id of the target entity.
    """

    entity_type: str
    entity_id: int


@dataclass
class ScheduledStepDTO:
    """A delayed step and when it falls due."""

    step_id: int
    scheduled_time: datetime


@dataclass
class StepOutcomeDTO:
    """What happened to one step during an execution."""

    step_id: int
    status: str
    action_type: str | None = None
    error: str | None = None


@dataclass
class ExecutionResultDTO:
    """DTO for the result of a workflow execution.

    Attributes:
        workflow_id: The workflow that ran.
        entity_type: Target entity kind.
        entity_id: Target entity id.
        processed_steps: Ids of the steps executed inline.
        scheduled_steps: Delayed steps and their due times.
        outcomes: One entry per step.
    """

    workflow_id: int
    entity_type: str
    entity_id: int
    processed_steps: list[int]
    scheduled_steps: list[ScheduledStepDTO]
    outcomes: list[StepOutcomeDTO]
