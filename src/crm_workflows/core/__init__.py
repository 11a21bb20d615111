"""Core types, data models and protocols for crm-workflows."""

from __future__ import annotations

from crm_workflows.core.context import StepContext, Stores
from crm_workflows.core.models import (
    ExecutionResult,
    SchedulingIntent,
    StepData,
    StepOutcome,
    TagData,
    TemplateData,
    WorkflowData,
)
from crm_workflows.core.protocols import (
    ActionHandler,
    CommunicationStore,
    EntityStore,
    Scheduler,
    TagStore,
    TaskStore,
    TemplateStore,
    WorkflowStore,
)
from crm_workflows.core.types import ActionType, Channel, EntityType, StepStatus

__all__ = [
    "ActionHandler",
    "ActionType",
    "Channel",
    "CommunicationStore",
    "EntityStore",
    "EntityType",
    "ExecutionResult",
    "Scheduler",
    "SchedulingIntent",
    "StepContext",
    "StepData",
    "StepOutcome",
    "StepStatus",
    "Stores",
    "TagData",
    "TagStore",
    "TaskStore",
    "TemplateData",
    "TemplateStore",
    "WorkflowData",
    "WorkflowStore",
]
