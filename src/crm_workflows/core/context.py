"""Step execution context.

This module provides the :class:`Stores` bundle handed to the executor and the
:class:`StepContext` each action handler receives.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Callable
    from contextlib import AbstractAsyncContextManager

    from crm_workflows.core.models import StepData
    from crm_workflows.core.protocols import (
        CommunicationStore,
        EntityStore,
        TagStore,
        TaskStore,
        TemplateStore,
        WorkflowStore,
    )
    from crm_workflows.core.types import EntityType

__all__ = ["StepContext", "Stores"]


@dataclass
class Stores:
    """The collaborators the executor and the handlers talk to.

    Attributes:
        workflows: Workflow definitions and steps.
        entities: Leads, contacts and transactions.
        tasks: Task writes.
        communications: Communication writes.
        templates: Communication template reads.
        tags: Tags and tag associations.
        step_scope: Optional factory for a context entered around each step.
            A backend that shares one transaction across steps uses it to
            roll back only the writes of a failed step.
    """

    workflows: WorkflowStore
    entities: EntityStore
    tasks: TaskStore
    communications: CommunicationStore
    templates: TemplateStore
    tags: TagStore
    step_scope: Callable[[], AbstractAsyncContextManager[Any]] | None = None

    @classmethod
    def single(
        cls,
        backend: Any,
        step_scope: Callable[[], AbstractAsyncContextManager[Any]] | None = None,
    ) -> Stores:
        """Build a bundle where one object implements every store protocol.

        Args:
            backend: An object implementing all the store protocols.
            step_scope: Optional per-step context factory.

        Returns:
            A bundle pointing every slot at ``backend``.

        Example:
            >>> stores = Stores.single(SQLAlchemyWorkflowStores(session))
        """
        return cls(
            workflows=backend,
            entities=backend,
            tasks=backend,
            communications=backend,
            templates=backend,
            tags=backend,
            step_scope=step_scope,
        )


@dataclass
class StepContext:
    """Everything an action handler may read.

    Attributes:
        step: The step being run.
        entity_type: Target entity kind.
        entity_id: Target entity id.
        acting_user_id: User the execution runs on behalf of.
        now: Execution timestamp for the step.
        stores: The stores to read from and write through.
    """

    step: StepData
    entity_type: EntityType
    entity_id: int
    acting_user_id: int
    now: datetime
    stores: Stores

    @property
    def details(self) -> dict[str, Any]:
        """The step's action parameters; empty when the step has none."""
        return self.step.action_details or {}
