"""Repository implementations for workflow persistence.

This module provides async repositories for CRUD operations on the workflow
and CRM models using advanced-alchemy's repository pattern.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from advanced_alchemy.filters import LimitOffset, OrderBy
from advanced_alchemy.repository import SQLAlchemyAsyncRepository
from sqlalchemy import func, or_, select

from crm_workflows.db.models import (
    CommunicationModel,
    CommunicationTemplateModel,
    TagModel,
    TaskModel,
    WorkflowModel,
    WorkflowStepModel,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from crm_workflows.core.types import EntityType

__all__ = [
    "WORKFLOW_SORT_FIELDS",
    "CommunicationRepository",
    "CommunicationTemplateRepository",
    "TagRepository",
    "TaskRepository",
    "WorkflowRepository",
    "WorkflowStepRepository",
]

WORKFLOW_SORT_FIELDS = frozenset({"workflow_name", "trigger_entity", "is_active", "created_at", "updated_at"})


class WorkflowRepository(SQLAlchemyAsyncRepository[WorkflowModel]):
    """Repository for workflow definition CRUD operations.

    Provides filtered listing for the management API and the active-workflow
    lookup used by automatic triggers.
    """

    model_type = WorkflowModel

    async def find(
        self,
        search: str | None = None,
        trigger_entity: EntityType | None = None,
        is_active: bool | None = None,
        created_by_user_id: int | None = None,
        limit: int = 10,
        offset: int = 0,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> tuple[Sequence[WorkflowModel], int]:
        """Find workflows with optional filters.

        Args:
            search: Case-insensitive substring matched against name and description.
            trigger_entity: Optional entity kind filter.
            is_active: Optional active flag filter.
            created_by_user_id: Optional author filter.
            limit: Maximum number of results.
            offset: Number of results to skip.
            sort_by: Column to sort by; unknown columns fall back to ``created_at``.
            sort_order: ``"asc"`` or ``"desc"``.

        Returns:
            Tuple of (workflows, total_count).
        """
        conditions = []

        if search:
            pattern = f"%{search}%"
            conditions.append(
                or_(WorkflowModel.workflow_name.ilike(pattern), WorkflowModel.description.ilike(pattern)),
            )
        if trigger_entity is not None:
            conditions.append(WorkflowModel.trigger_entity == trigger_entity)
        if is_active is not None:
            conditions.append(WorkflowModel.is_active == is_active)
        if created_by_user_id is not None:
            conditions.append(WorkflowModel.created_by_user_id == created_by_user_id)

        if sort_by not in WORKFLOW_SORT_FIELDS:
            sort_by = "created_at"

        return await self.list_and_count(
            *conditions,
            LimitOffset(limit=limit, offset=offset),
            OrderBy(field_name=sort_by, sort_order="asc" if sort_order.lower() == "asc" else "desc"),
        )

    async def list_active(self, trigger_entity: EntityType) -> Sequence[WorkflowModel]:
        """List the active workflows for an entity kind, oldest first.

        Args:
            trigger_entity: The entity kind.

        Returns:
            List of active workflows.
        """
        stmt = (
            select(WorkflowModel)
            .where(WorkflowModel.trigger_entity == trigger_entity, WorkflowModel.is_active == True)  # noqa: E712
            .order_by(WorkflowModel.id)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def step_counts(self, workflow_ids: Sequence[int]) -> dict[int, int]:
        """Count the steps of several workflows in one query.

        Args:
            workflow_ids: The workflows to count.

        Returns:
            Mapping of workflow id to step count; workflows without steps are absent.
        """
        if not workflow_ids:
            return {}
        stmt = (
            select(WorkflowStepModel.workflow_id, func.count(WorkflowStepModel.id))
            .where(WorkflowStepModel.workflow_id.in_(workflow_ids))
            .group_by(WorkflowStepModel.workflow_id)
        )
        result = await self.session.execute(stmt)
        return {workflow_id: count for workflow_id, count in result.all()}


class WorkflowStepRepository(SQLAlchemyAsyncRepository[WorkflowStepModel]):
    """Repository for workflow step operations."""

    model_type = WorkflowStepModel

    async def list_for_workflow(self, workflow_id: int) -> list[WorkflowStepModel]:
        """List a workflow's steps ordered by ``step_order``.

        Args:
            workflow_id: The workflow id.

        Returns:
            The steps; ties on ``step_order`` are broken by id.
        """
        stmt = (
            select(WorkflowStepModel)
            .where(WorkflowStepModel.workflow_id == workflow_id)
            .order_by(WorkflowStepModel.step_order, WorkflowStepModel.id)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_in_workflow(self, workflow_id: int, step_id: int) -> WorkflowStepModel | None:
        """Get a step only if it belongs to the given workflow."""
        return await self.get_one_or_none(id=step_id, workflow_id=workflow_id)


class TaskRepository(SQLAlchemyAsyncRepository[TaskModel]):
    """Repository for tasks."""

    model_type = TaskModel

    async def list_for_step(self, workflow_step_id: int) -> Sequence[TaskModel]:
        """List the tasks created by a workflow step, oldest first."""
        stmt = select(TaskModel).where(TaskModel.workflow_step_id == workflow_step_id).order_by(TaskModel.id)
        result = await self.session.execute(stmt)
        return result.scalars().all()


class CommunicationRepository(SQLAlchemyAsyncRepository[CommunicationModel]):
    """Repository for communications."""

    model_type = CommunicationModel


class CommunicationTemplateRepository(SQLAlchemyAsyncRepository[CommunicationTemplateModel]):
    """Repository for communication templates."""

    model_type = CommunicationTemplateModel


class TagRepository(SQLAlchemyAsyncRepository[TagModel]):
    """Repository for tags."""

    model_type = TagModel
