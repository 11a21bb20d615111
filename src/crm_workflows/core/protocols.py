"""Core protocols for crm-workflows.

This module defines the Protocol-based interfaces of the collaborators the
executor consumes. The SQLAlchemy implementation lives in
:mod:`crm_workflows.db.stores`; tests use in-memory fakes. Using Protocol allows
duck typing while maintaining type safety.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import datetime

    from crm_workflows.core.context import StepContext
    from crm_workflows.core.models import SchedulingIntent, StepData, TagData, TemplateData, WorkflowData
    from crm_workflows.core.types import EntityType


__all__ = [
    "ActionHandler",
    "CommunicationStore",
    "EntityStore",
    "Scheduler",
    "TagStore",
    "TaskStore",
    "TemplateStore",
    "WorkflowStore",
]


@runtime_checkable
class WorkflowStore(Protocol):
    """Read access to workflow definitions and their steps."""

    async def get_workflow(self, workflow_id: int) -> WorkflowData | None:
        """Load a workflow by id.

        Args:
            workflow_id: The workflow id.

        Returns:
            The workflow, or None when it does not exist.
        """
        ...

    async def get_steps(self, workflow_id: int) -> list[StepData]:
        """Load the steps of a workflow ordered by ``step_order`` ascending.

        Args:
            workflow_id: The workflow id.

        Returns:
            The steps; empty when the workflow has none.
        """
        ...

    async def get_step(self, step_id: int) -> StepData | None:
        """Load a single step by id, used when a scheduler re-enters."""
        ...

    async def list_active(self, trigger_entity: EntityType) -> list[WorkflowData]:
        """List the active workflows bound to an entity kind."""
        ...


@runtime_checkable
class EntityStore(Protocol):
    """Access to the Lead, Contact and Transaction records."""

    async def get_entity(self, entity_type: EntityType, entity_id: int) -> dict[str, Any] | None:
        """Load an entity as a column mapping.

        Args:
            entity_type: The entity kind.
            entity_id: The entity id.

        Returns:
            The entity's columns, or None when it does not exist.
        """
        ...

    async def update_field(
        self,
        entity_type: EntityType,
        entity_id: int,
        field_name: str,
        value: Any,
        now: datetime,
    ) -> None:
        """Write one column on an entity and bump its ``updated_at``.

        Args:
            entity_type: The entity kind.
            entity_id: The entity id.
            field_name: Column to write.
            value: New value; None is a valid value.
            now: Timestamp written to ``updated_at``.
        """
        ...


@runtime_checkable
class TaskStore(Protocol):
    """Write access to tasks."""

    async def create_task(self, fields: dict[str, Any]) -> int:
        """Insert a task and return its id."""
        ...


@runtime_checkable
class CommunicationStore(Protocol):
    """Write access to communications."""

    async def create_communication(self, fields: dict[str, Any]) -> int:
        """Insert a communication and return its id."""
        ...


@runtime_checkable
class TemplateStore(Protocol):
    """Read access to communication templates."""

    async def get_template(self, template_id: int) -> TemplateData | None:
        """Load a template, or None when it does not exist."""
        ...


@runtime_checkable
class TagStore(Protocol):
    """Access to tags and their entity associations."""

    async def get_tag(self, tag_id: int) -> TagData | None:
        """Load a tag, or None when it does not exist."""
        ...

    async def has_association(self, entity_type: EntityType, entity_id: int, tag_id: int) -> bool:
        """Whether the tag is already attached to the entity."""
        ...

    async def add_association(self, entity_type: EntityType, entity_id: int, tag_id: int) -> None:
        """Attach the tag to the entity."""
        ...


@runtime_checkable
class Scheduler(Protocol):
    """Receives the intents for delayed steps.

    Implementations decide when to call back into
    :meth:`~crm_workflows.engine.executor.WorkflowExecutor.run_scheduled`.

    Example:
        >>> class QueueScheduler:
        ...     async def schedule(self, intent: SchedulingIntent) -> None:
        ...         await queue.enqueue("run_step", intent, eta=intent.due_time)
    """

    async def schedule(self, intent: SchedulingIntent) -> None:
        """Accept an intent for later execution.

        Args:
            intent: The step and due time to run it at.
        """
        ...


@runtime_checkable
class ActionHandler(Protocol):
    """A step action.

    Handlers are plain async callables: they read everything they need from
    the :class:`~crm_workflows.core.context.StepContext` and hold no state.
    """

    async def __call__(self, context: StepContext) -> dict[str, Any]:
        """Perform the action.

        Args:
            context: The step being run and the stores to write through.

        Returns:
            A mapping describing the writes, such as the created record id.

        Raises:
            Exception: Any exception marks the step as failed; the executor
                records it and moves on to the next step.
        """
        ...
