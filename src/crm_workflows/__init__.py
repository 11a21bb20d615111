"""CRM Workflows - workflow automation for a real-estate CRM.

This package runs operator-defined workflows against leads, contacts and
transactions. Each workflow is an ordered list of steps; steps without a delay
run immediately, delayed steps are handed to a scheduler.

Key Features:
    - Built-in actions: create task, send email, send SMS, update field, add tag
    - Per-step failure isolation with explicit step outcomes
    - Pluggable scheduler boundary for delayed steps
    - SQLAlchemy persistence through advanced-alchemy repositories
    - Litestar plugin with a REST API for workflow management

Example:
    >>> from crm_workflows import WorkflowExecutor
    >>> from crm_workflows.db import SQLAlchemyWorkflowStores
    >>>
    >>> executor = WorkflowExecutor(SQLAlchemyWorkflowStores(session).as_stores())
    >>> result = await executor.execute(7, "Lead", 42, acting_user_id=1)
    >>> result.executed_step_ids
    [101, 103]
"""

from __future__ import annotations

from crm_workflows.__metadata__ import __project__, __version__
from crm_workflows.actions.registry import ActionRegistry, default_registry
from crm_workflows.core.context import StepContext, Stores
from crm_workflows.core.models import ExecutionResult, SchedulingIntent, StepData, StepOutcome, WorkflowData
from crm_workflows.core.types import ActionType, EntityType, StepStatus
from crm_workflows.engine.executor import WorkflowExecutor
from crm_workflows.engine.scheduler import InMemoryScheduler, LoggingScheduler
from crm_workflows.exceptions import (
    EntityNotFoundError,
    HandlerError,
    NotFoundError,
    StepNotFoundError,
    TagNotFoundError,
    WorkflowNotFoundError,
    WorkflowsError,
    WorkflowValidationError,
)
from crm_workflows.log import configure_logging
from crm_workflows.plugin import WorkflowPlugin, WorkflowPluginConfig

__all__ = (
    "ActionRegistry",
    "ActionType",
    "EntityNotFoundError",
    "EntityType",
    "ExecutionResult",
    "HandlerError",
    "InMemoryScheduler",
    "LoggingScheduler",
    "NotFoundError",
    "SchedulingIntent",
    "StepContext",
    "StepData",
    "StepNotFoundError",
    "StepOutcome",
    "StepStatus",
    "Stores",
    "TagNotFoundError",
    "WorkflowData",
    "WorkflowExecutor",
    "WorkflowNotFoundError",
    "WorkflowPlugin",
    "WorkflowPluginConfig",
    "WorkflowValidationError",
    "WorkflowsError",
    "__project__",
    "__version__",
    "configure_logging",
    "default_registry",
)
