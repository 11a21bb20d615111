"""Workflow definition management.

This module provides :class:`WorkflowService`, the write path behind the
workflow management API. Every step insert, move and delete renumbers the
workflow's steps so their orders stay exactly ``1..n``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import delete

from crm_workflows.core.types import ActionType, EntityType
from crm_workflows.db.models import WorkflowModel, WorkflowStepModel
from crm_workflows.db.repositories import WorkflowRepository, WorkflowStepRepository
from crm_workflows.exceptions import StepNotFoundError, WorkflowNotFoundError, WorkflowValidationError

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

    from sqlalchemy.ext.asyncio import AsyncSession

__all__ = ["WorkflowService"]

logger = structlog.get_logger(__name__)

WORKFLOW_FIELDS = ("workflow_name", "trigger_entity", "trigger_condition", "description", "is_active")
STEP_FIELDS = ("step_name", "action_type", "action_details", "delay_days", "delay_hours")


def parse_entity_type(value: Any) -> EntityType:
    try:
        return EntityType(value)
    except ValueError as e:
        msg = f"Unsupported entity type: {value}"
        raise WorkflowValidationError(msg) from e


def _step_values(data: Mapping[str, Any]) -> dict[str, Any]:
    """Validate and normalise the step columns present in ``data``."""
    values: dict[str, Any] = {}
    for key in STEP_FIELDS:
        if key not in data:
            continue
        value = data[key]
        if key == "action_type":
            action_type = ActionType.parse(value)
            if action_type is None:
                msg = f"Invalid action type: {value}"
                raise WorkflowValidationError(msg)
            value = action_type.value
        elif key == "action_details":
            if value is not None and not isinstance(value, dict):
                raise WorkflowValidationError("action_details must be an object")
        elif key in {"delay_days", "delay_hours"}:
            if value is None:
                value = 0
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                msg = f"{key} must be a non-negative integer"
                raise WorkflowValidationError(msg)
        values[key] = value
    return values


def _position(value: Any, upper: int) -> int:
    """Validate a requested 1-based position and clamp it to ``upper``."""
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise WorkflowValidationError("step_order must be a positive integer")
    return min(value, upper)


def _renumber(steps: Iterable[WorkflowStepModel]) -> None:
    for order, step in enumerate(steps, start=1):
        if step.step_order != order:
            step.step_order = order


class WorkflowService:
    """CRUD for workflows and their steps.

    Methods flush but do not commit; call :meth:`commit` once the request's
    work is done.

    Attributes:
        session: The session all repositories share.
        workflows: Workflow repository.
        steps: Step repository.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self.workflows = WorkflowRepository(session=session)
        self.steps = WorkflowStepRepository(session=session)

    async def commit(self) -> None:
        await self.session.commit()

    async def list_workflows(
        self,
        *,
        search: str | None = None,
        trigger_entity: str | None = None,
        is_active: bool | None = None,
        created_by_user_id: int | None = None,
        page: int = 1,
        limit: int = 10,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> tuple[list[tuple[WorkflowModel, int]], int]:
        """List workflows with their step counts.

        Args:
            search: Substring matched against name and description.
            trigger_entity: Optional entity kind filter.
            is_active: Optional active flag filter.
            created_by_user_id: Optional author filter.
            page: 1-based page number.
            limit: Page size.
            sort_by: Column to sort by.
            sort_order: ``"asc"`` or ``"desc"``.

        Returns:
            Tuple of ((workflow, step_count) pairs, total_count).
        """
        page = max(page, 1)
        limit = max(limit, 1)
        workflows, total = await self.workflows.find(
            search=search,
            trigger_entity=parse_entity_type(trigger_entity) if trigger_entity else None,
            is_active=is_active,
            created_by_user_id=created_by_user_id,
            limit=limit,
            offset=(page - 1) * limit,
            sort_by=sort_by,
            sort_order=sort_order,
        )
        counts = await self.workflows.step_counts([workflow.id for workflow in workflows])
        return [(workflow, counts.get(workflow.id, 0)) for workflow in workflows], total

    async def get_workflow(self, workflow_id: int) -> tuple[WorkflowModel, list[WorkflowStepModel]]:
        """Get a workflow and its ordered steps.

        Raises:
            WorkflowNotFoundError: If the workflow does not exist.
        """
        workflow = await self._require_workflow(workflow_id)
        return workflow, await self.steps.list_for_workflow(workflow_id)

    async def create_workflow(
        self,
        data: Mapping[str, Any],
        created_by_user_id: int,
        steps: Sequence[Mapping[str, Any]] = (),
    ) -> WorkflowModel:
        """Create a workflow, optionally with its initial steps.

        Initial steps are numbered in list order starting at 1; any
        ``step_order`` they carry is ignored.

        Args:
            data: Workflow columns; ``workflow_name`` and ``trigger_entity`` are required.
            created_by_user_id: Author of the workflow.
            steps: Initial steps; each requires ``action_type``.

        Returns:
            The new workflow.

        Raises:
            WorkflowValidationError: If a column is missing or invalid.
        """
        if not data.get("workflow_name"):
            raise WorkflowValidationError("workflow_name is required")
        step_values = [self._new_step_values(step) for step in steps]

        workflow = WorkflowModel(
            workflow_name=data["workflow_name"],
            trigger_entity=parse_entity_type(data.get("trigger_entity")),
            trigger_condition=data.get("trigger_condition"),
            description=data.get("description"),
            is_active=data.get("is_active") if data.get("is_active") is not None else True,
            created_by_user_id=created_by_user_id,
        )
        workflow = await self.workflows.add(workflow)

        for order, values in enumerate(step_values, start=1):
            self.session.add(WorkflowStepModel(workflow_id=workflow.id, step_order=order, **values))
        await self.session.flush()

        logger.info("workflow_created", workflow_id=workflow.id, step_count=len(step_values))
        return workflow

    async def update_workflow(self, workflow_id: int, changes: Mapping[str, Any]) -> WorkflowModel:
        """Apply a partial update to a workflow's own columns.

        Raises:
            WorkflowNotFoundError: If the workflow does not exist.
            WorkflowValidationError: If a changed column is invalid.
        """
        workflow = await self._require_workflow(workflow_id)
        for key in WORKFLOW_FIELDS:
            if key not in changes:
                continue
            value = changes[key]
            if key == "workflow_name" and not value:
                raise WorkflowValidationError("workflow_name cannot be empty")
            if key == "trigger_entity":
                value = parse_entity_type(value)
            setattr(workflow, key, value)
        await self.session.flush()
        return workflow

    async def delete_workflow(self, workflow_id: int) -> None:
        """Delete a workflow and all of its steps.

        Raises:
            WorkflowNotFoundError: If the workflow does not exist.
        """
        workflow = await self._require_workflow(workflow_id)
        await self.session.execute(delete(WorkflowStepModel).where(WorkflowStepModel.workflow_id == workflow.id))
        await self.workflows.delete(workflow.id)
        logger.info("workflow_deleted", workflow_id=workflow_id)

    async def add_step(self, workflow_id: int, data: Mapping[str, Any]) -> WorkflowStepModel:
        """Add a step, appending it or inserting it at ``data["step_order"]``.

        Inserting at position ``k`` moves the steps previously at ``k..n`` down
        by one. Positions past the end append.

        Raises:
            WorkflowNotFoundError: If the workflow does not exist.
            WorkflowValidationError: If the step is invalid.
        """
        await self._require_workflow(workflow_id)
        values = self._new_step_values(data)
        steps = await self.steps.list_for_workflow(workflow_id)

        step = WorkflowStepModel(workflow_id=workflow_id, step_order=0, **values)
        if data.get("step_order") is None:
            steps.append(step)
        else:
            steps.insert(_position(data["step_order"], len(steps) + 1) - 1, step)
        _renumber(steps)

        return await self.steps.add(step)

    async def update_step(self, workflow_id: int, step_id: int, changes: Mapping[str, Any]) -> WorkflowStepModel:
        """Apply a partial update to a step, moving it when ``step_order`` changes.

        Moving a step down shifts the steps in between up by one, and moving it
        up shifts them down.

        Raises:
            StepNotFoundError: If the step does not belong to the workflow.
            WorkflowValidationError: If a changed column is invalid.
        """
        step = await self._require_step(workflow_id, step_id)
        values = _step_values(changes)
        position = None
        if changes.get("step_order") is not None:
            others = [other for other in await self.steps.list_for_workflow(workflow_id) if other.id != step.id]
            position = _position(changes["step_order"], len(others) + 1)

        for key, value in values.items():
            setattr(step, key, value)
        if position is not None and position != step.step_order:
            others.insert(position - 1, step)
            _renumber(others)

        await self.session.flush()
        return step

    async def delete_step(self, workflow_id: int, step_id: int) -> None:
        """Delete a step and close the gap it leaves.

        Raises:
            StepNotFoundError: If the step does not belong to the workflow.
        """
        step = await self._require_step(workflow_id, step_id)
        remaining = [other for other in await self.steps.list_for_workflow(workflow_id) if other.id != step.id]
        await self.session.delete(step)
        _renumber(remaining)
        await self.session.flush()

    async def reorder_steps(self, workflow_id: int, orders: Mapping[int, int]) -> list[WorkflowStepModel]:
        """Assign new orders to all steps of a workflow at once.

        Args:
            workflow_id: The workflow.
            orders: Mapping of step id to new order; must cover every step of
                the workflow and use each of ``1..n`` exactly once.

        Returns:
            The steps in their new order.

        Raises:
            WorkflowNotFoundError: If the workflow does not exist.
            WorkflowValidationError: If the mapping is not a permutation of the steps.
        """
        await self._require_workflow(workflow_id)
        steps = await self.steps.list_for_workflow(workflow_id)

        if set(orders) != {step.id for step in steps}:
            raise WorkflowValidationError("Reorder must list every step of the workflow exactly once")
        if sorted(orders.values()) != list(range(1, len(steps) + 1)):
            raise WorkflowValidationError(f"Step orders must be exactly 1..{len(steps)}")

        for step in steps:
            step.step_order = orders[step.id]
        await self.session.flush()
        return sorted(steps, key=lambda s: s.step_order)

    @staticmethod
    def _new_step_values(data: Mapping[str, Any]) -> dict[str, Any]:
        if not data.get("action_type"):
            raise WorkflowValidationError("action_type is required")
        values = {"delay_days": 0, "delay_hours": 0}
        values.update(_step_values(data))
        return values

    async def _require_workflow(self, workflow_id: int) -> WorkflowModel:
        workflow = await self.workflows.get_one_or_none(id=workflow_id)
        if workflow is None:
            raise WorkflowNotFoundError(workflow_id)
        return workflow

    async def _require_step(self, workflow_id: int, step_id: int) -> WorkflowStepModel:
        await self._require_workflow(workflow_id)
        step = await self.steps.get_in_workflow(workflow_id, step_id)
        if step is None:
            raise StepNotFoundError(step_id, workflow_id)
        return step
