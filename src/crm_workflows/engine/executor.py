"""Workflow executor.

This module runs a workflow's steps against one Lead, Contact or Transaction.
Zero-delay steps are dispatched inline to their action handler; delayed steps
become scheduling intents for a :class:`~crm_workflows.core.protocols.Scheduler`.
"""

from __future__ import annotations

from collections.abc import Callable
from contextlib import nullcontext
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import structlog

from crm_workflows.actions.registry import ActionRegistry, default_registry
from crm_workflows.core.context import StepContext
from crm_workflows.core.models import ExecutionResult, SchedulingIntent, StepOutcome
from crm_workflows.core.types import ActionType, EntityType, StepStatus
from crm_workflows.engine.scheduler import LoggingScheduler
from crm_workflows.exceptions import (
    EntityNotFoundError,
    HandlerError,
    StepNotFoundError,
    WorkflowNotFoundError,
    WorkflowsError,
    WorkflowValidationError,
)

if TYPE_CHECKING:
    from crm_workflows.core.context import Stores
    from crm_workflows.core.models import StepData
    from crm_workflows.core.protocols import Scheduler

__all__ = ["TriggerMatcher", "WorkflowExecutor"]

logger = structlog.get_logger(__name__)

TriggerMatcher = Callable[[str | None, dict[str, Any]], bool]
"""Predicate deciding whether a workflow's trigger condition holds for an entity."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WorkflowExecutor:
    """Executes workflows against CRM entities.

    The executor holds no per-run state; one instance may serve many
    concurrent requests as long as each has its own stores.

    Attributes:
        stores: The collaborators steps read from and write through.
        registry: Maps action types to handlers.
        scheduler: Receives the intents for delayed steps.

    Example:
        >>> executor = WorkflowExecutor(Stores.single(SQLAlchemyWorkflowStores(session)))
        >>> result = await executor.execute(7, "Lead", 42, acting_user_id=1)
        >>> result.executed_step_ids
        [101, 103]
    """

    def __init__(
        self,
        stores: Stores,
        registry: ActionRegistry | None = None,
        scheduler: Scheduler | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        """Initialize the executor.

        Args:
            stores: The store bundle.
            registry: Action handlers; defaults to :func:`default_registry`.
            scheduler: Receives delayed steps; defaults to :class:`LoggingScheduler`.
            clock: Returns the current time; defaults to UTC wall-clock time.
        """
        self.stores = stores
        self.registry = registry or default_registry()
        self.scheduler = scheduler or LoggingScheduler()
        self._clock = clock or _utcnow

    def now(self) -> datetime:
        """Return the current time according to the executor's clock."""
        return self._clock()

    async def execute(
        self,
        workflow_id: int,
        entity_type: EntityType | str,
        entity_id: int,
        acting_user_id: int,
    ) -> ExecutionResult:
        """Run a workflow against one entity.

        Steps run in ascending ``step_order``. A step with no delay is handed
        to its action handler immediately; a failing handler is recorded on the
        step's outcome and the remaining steps still run. A delayed step is
        turned into a scheduling intent due at ``now + delay``.

        Args:
            workflow_id: The workflow to run.
            entity_type: Kind of the target entity.
            entity_id: Id of the target entity.
            acting_user_id: User the execution runs on behalf of.

        Returns:
            The executed step ids, the scheduling intents and one outcome per step.

        Raises:
            WorkflowNotFoundError: If the workflow does not exist.
            WorkflowValidationError: If the entity type does not match the
                workflow's trigger entity or is unsupported, or the workflow has no steps.
            EntityNotFoundError: If the target entity does not exist.
        """
        workflow = await self.stores.workflows.get_workflow(workflow_id)
        if workflow is None:
            raise WorkflowNotFoundError(workflow_id)

        if str(entity_type) != workflow.trigger_entity:
            msg = f"This workflow is designed for {workflow.trigger_entity} entities, not {entity_type}"
            raise WorkflowValidationError(msg)

        kind = self._entity_type(entity_type)
        if await self.stores.entities.get_entity(kind, entity_id) is None:
            raise EntityNotFoundError(kind, entity_id)

        steps = await self.stores.workflows.get_steps(workflow_id)
        if not steps:
            raise WorkflowValidationError("Workflow has no steps to execute")

        log = logger.bind(workflow_id=workflow_id, entity_type=str(kind), entity_id=entity_id)
        log.info("workflow_execution_started", step_count=len(steps), acting_user_id=acting_user_id)

        result = ExecutionResult(workflow_id=workflow_id, entity_type=kind, entity_id=entity_id)
        for step in sorted(steps, key=lambda s: s.step_order):
            if step.is_immediate:
                outcome = await self.execute_step(step, kind, entity_id, acting_user_id)
                if outcome.succeeded:
                    result.executed_step_ids.append(step.id)
            else:
                intent = SchedulingIntent(
                    step_id=step.id,
                    due_time=self.now() + step.delay,
                    workflow_id=workflow_id,
                    entity_type=kind,
                    entity_id=entity_id,
                    acting_user_id=acting_user_id,
                )
                outcome = await self._schedule(step, intent)
                if outcome.status == StepStatus.SCHEDULED:
                    result.scheduled.append(intent)
            result.outcomes.append(outcome)

        log.info(
            "workflow_execution_finished",
            executed=len(result.executed_step_ids),
            scheduled=len(result.scheduled),
            failed=len(result.failed),
            skipped=len(result.skipped),
        )
        return result

    async def execute_step(
        self,
        step: StepData,
        entity_type: EntityType | str,
        entity_id: int,
        acting_user_id: int,
    ) -> StepOutcome:
        """Dispatch one step to its handler now, ignoring its delay.

        When the stores provide a step scope the handler runs inside it, so a
        failing step leaves no partial writes behind.

        Args:
            step: The step to run.
            entity_type: Kind of the target entity.
            entity_id: Id of the target entity.
            acting_user_id: User the step runs on behalf of.

        Returns:
            ``SUCCEEDED`` with the handler result, ``FAILED`` with the wrapped
            error, or ``SKIPPED`` when the action type has no handler.
        """
        kind = self._entity_type(entity_type)
        action_type = ActionType.parse(step.action_type)
        if action_type is None or not self.registry.has(action_type):
            logger.warning("unsupported_action_type", step_id=step.id, action_type=step.action_type)
            return StepOutcome(
                step_id=step.id,
                status=StepStatus.SKIPPED,
                action_type=step.action_type,
                error=f"Unsupported action type: {step.action_type}",
            )

        handler = self.registry.get(action_type)
        context = StepContext(
            step=step,
            entity_type=kind,
            entity_id=entity_id,
            acting_user_id=acting_user_id,
            now=self.now(),
            stores=self.stores,
        )
        scope = self.stores.step_scope() if self.stores.step_scope is not None else nullcontext()
        try:
            async with scope:
                written = await handler(context)
        except Exception as e:
            error = HandlerError(step.id, e)
            logger.error(
                "workflow_step_failed",
                step_id=step.id,
                action_type=str(action_type),
                entity_type=str(kind),
                entity_id=entity_id,
                error=str(e),
            )
            return StepOutcome(
                step_id=step.id,
                status=StepStatus.FAILED,
                action_type=step.action_type,
                error=str(error),
                exception=error,
            )

        logger.info("workflow_step_executed", step_id=step.id, action_type=str(action_type), result=written)
        return StepOutcome(
            step_id=step.id,
            status=StepStatus.SUCCEEDED,
            action_type=step.action_type,
            result=written or {},
        )

    async def run_scheduled(self, intent: SchedulingIntent) -> StepOutcome:
        """Run a delayed step whose due time has been reached.

        This is the entry point schedulers call back into.

        Args:
            intent: The intent produced by :meth:`execute`.

        Returns:
            The step outcome.

        Raises:
            StepNotFoundError: If the step was deleted in the meantime.
        """
        step = await self.stores.workflows.get_step(intent.step_id)
        if step is None:
            raise StepNotFoundError(intent.step_id, intent.workflow_id)
        return await self.execute_step(step, intent.entity_type, intent.entity_id, intent.acting_user_id)

    async def execute_triggered(
        self,
        entity_type: EntityType | str,
        entity_id: int,
        acting_user_id: int,
        matches: TriggerMatcher | None = None,
    ) -> list[ExecutionResult]:
        """Run every active workflow bound to an entity kind.

        Trigger conditions are opaque here; ``matches`` receives each
        workflow's condition and the entity's columns and decides whether it
        applies. Without a predicate every active workflow runs. A workflow
        that fails pre-flight is logged and skipped.

        Args:
            entity_type: Kind of the entity that changed.
            entity_id: Id of the entity.
            acting_user_id: User the executions run on behalf of.
            matches: Optional trigger-condition predicate.

        Returns:
            One result per workflow that ran.

        Raises:
            EntityNotFoundError: If the entity does not exist.
        """
        kind = self._entity_type(entity_type)
        entity = await self.stores.entities.get_entity(kind, entity_id)
        if entity is None:
            raise EntityNotFoundError(kind, entity_id)

        results = []
        for workflow in await self.stores.workflows.list_active(kind):
            if matches is not None and not matches(workflow.trigger_condition, entity):
                continue
            try:
                results.append(await self.execute(workflow.id, kind, entity_id, acting_user_id))
            except WorkflowsError as e:
                logger.warning("triggered_workflow_skipped", workflow_id=workflow.id, error=str(e))
        return results

    async def _schedule(self, step: StepData, intent: SchedulingIntent) -> StepOutcome:
        try:
            await self.scheduler.schedule(intent)
        except Exception as e:
            error = HandlerError(step.id, e)
            logger.error("workflow_step_schedule_failed", step_id=step.id, error=str(e))
            return StepOutcome(
                step_id=step.id,
                status=StepStatus.FAILED,
                action_type=step.action_type,
                error=str(error),
                exception=error,
            )
        logger.info("workflow_step_deferred", step_id=step.id, due_time=intent.due_time.isoformat())
        return StepOutcome(
            step_id=step.id,
            status=StepStatus.SCHEDULED,
            action_type=step.action_type,
            result={"scheduled_time": intent.due_time.isoformat()},
        )

    @staticmethod
    def _entity_type(entity_type: EntityType | str) -> EntityType:
        try:
            return EntityType(entity_type)
        except ValueError as e:
            msg = f"Unsupported entity type: {entity_type}"
            raise WorkflowValidationError(msg) from e
