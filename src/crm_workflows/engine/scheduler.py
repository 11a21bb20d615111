"""Schedulers for delayed workflow steps.

The executor never waits for a delay itself; it hands a
:class:`~crm_workflows.core.models.SchedulingIntent` to a scheduler. Production
deployments plug in a job queue; the two implementations here cover the
default behaviour and in-process use.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog

from crm_workflows.core.models import StepOutcome
from crm_workflows.core.types import StepStatus
from crm_workflows.exceptions import WorkflowsError

if TYPE_CHECKING:
    from datetime import datetime

    from crm_workflows.core.models import SchedulingIntent
    from crm_workflows.engine.executor import WorkflowExecutor

__all__ = ["InMemoryScheduler", "LoggingScheduler"]

logger = structlog.get_logger(__name__)


class LoggingScheduler:
    """Scheduler that only records intents in the log.

    Nothing re-enters the executor, so delayed steps never run unless an
    external process picks them up from the returned execution result.
    """

    async def schedule(self, intent: SchedulingIntent) -> None:
        logger.info(
            "workflow_step_scheduled",
            step_id=intent.step_id,
            workflow_id=intent.workflow_id,
            entity_type=str(intent.entity_type),
            entity_id=intent.entity_id,
            due_time=intent.due_time.isoformat(),
        )


class InMemoryScheduler:
    """Scheduler that keeps intents in process until they fall due.

    Intended for tests, scripts and single-process deployments that poll
    :meth:`run_due` from a periodic task. Intents are lost on restart.

    Example:
        >>> scheduler = InMemoryScheduler()
        >>> executor = WorkflowExecutor(stores, scheduler=scheduler)
        >>> await executor.execute(7, "Lead", 42, acting_user_id=1)
        >>> await scheduler.run_due(executor, now=datetime.now(timezone.utc))
    """

    def __init__(self) -> None:
        self._intents: list[SchedulingIntent] = []

    @property
    def pending(self) -> list[SchedulingIntent]:
        """Intents not yet released, ordered by due time."""
        return sorted(self._intents, key=lambda intent: intent.due_time)

    async def schedule(self, intent: SchedulingIntent) -> None:
        self._intents.append(intent)
        logger.debug("workflow_step_queued", step_id=intent.step_id, due_time=intent.due_time.isoformat())

    def due(self, now: datetime) -> list[SchedulingIntent]:
        """Release the intents whose due time has been reached.

        Args:
            now: The current time.

        Returns:
            The released intents ordered by due time; they are removed from the queue.
        """
        released = [intent for intent in self._intents if intent.due_time <= now]
        self._intents = [intent for intent in self._intents if intent.due_time > now]
        return sorted(released, key=lambda intent: intent.due_time)

    async def run_due(self, executor: WorkflowExecutor, now: datetime) -> list[StepOutcome]:
        """Run every released intent through the executor.

        An intent whose step can no longer run, for example because it was
        deleted after scheduling, yields a ``FAILED`` outcome and the
        remaining intents still run.

        Args:
            executor: The executor to re-enter.
            now: The current time.

        Returns:
            One outcome per released intent.
        """
        outcomes: list[StepOutcome] = []
        for intent in self.due(now):
            try:
                outcomes.append(await executor.run_scheduled(intent))
            except WorkflowsError as e:
                logger.warning("scheduled_step_failed", step_id=intent.step_id, error=str(e))
                outcomes.append(
                    StepOutcome(step_id=intent.step_id, status=StepStatus.FAILED, error=str(e), exception=e)
                )
        return outcomes
