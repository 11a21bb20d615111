"""REST API controllers for workflow management.

This module provides two controller classes:
- WorkflowController: Manage workflows and run them against CRM entities
- WorkflowStepController: Manage the ordered steps of a workflow
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING, Any, ClassVar

from litestar import Controller, Request, delete, get, post, put
from litestar.exceptions import NotAuthorizedException
from litestar.params import Parameter
from litestar.status_codes import HTTP_200_OK

from crm_workflows.db.service import WorkflowService  # noqa: TC001 - needed for DI
from crm_workflows.engine.executor import WorkflowExecutor  # noqa: TC001 - needed for DI
from crm_workflows.exceptions import WorkflowValidationError
from crm_workflows.web.dto import (
    CreateStepDTO,
    CreateWorkflowDTO,
    ExecuteWorkflowDTO,
    ExecutionResultDTO,
    ReorderStepsDTO,
    ScheduledStepDTO,
    StepOutcomeDTO,
    UpdateStepDTO,
    UpdateWorkflowDTO,
    WorkflowDetailDTO,
    WorkflowListDTO,
    WorkflowStepDTO,
    WorkflowSummaryDTO,
)

if TYPE_CHECKING:
    from crm_workflows.core.models import ExecutionResult
    from crm_workflows.db.models import WorkflowModel, WorkflowStepModel

__all__ = [
    "WorkflowController",
    "WorkflowStepController",
    "acting_user_id",
]


def acting_user_id(request: Request) -> int:
    """Resolve the id of the authenticated user.

    Accepts either a bare id or a user object with an ``id`` attribute in the
    connection's ``user`` slot, as set by authentication middleware.

    Raises:
        NotAuthorizedException: If the request carries no user.
    """
    user = request.scope.get("user")
    user_id = getattr(user, "id", user)
    if user_id is None:
        raise NotAuthorizedException(detail="Authentication required")
    return int(user_id)


def _step_dto(step: WorkflowStepModel) -> WorkflowStepDTO:
    return WorkflowStepDTO(
        id=step.id,
        workflow_id=step.workflow_id,
        step_order=step.step_order,
        action_type=step.action_type,
        action_details=step.action_details,
        delay_days=step.delay_days,
        delay_hours=step.delay_hours,
        step_name=step.step_name,
    )


def _workflow_fields(workflow: WorkflowModel) -> dict[str, Any]:
    return {
        "id": workflow.id,
        "workflow_name": workflow.workflow_name,
        "trigger_entity": str(workflow.trigger_entity),
        "trigger_condition": workflow.trigger_condition,
        "description": workflow.description,
        "is_active": workflow.is_active,
        "created_by_user_id": workflow.created_by_user_id,
        "created_at": workflow.created_at,
        "updated_at": workflow.updated_at,
    }


def _detail_dto(workflow: WorkflowModel, steps: list[WorkflowStepModel]) -> WorkflowDetailDTO:
    return WorkflowDetailDTO(
        **_workflow_fields(workflow),
        step_count=len(steps),
        steps=[_step_dto(step) for step in steps],
    )


def _execution_dto(result: ExecutionResult) -> ExecutionResultDTO:
    return ExecutionResultDTO(
        workflow_id=result.workflow_id,
        entity_type=str(result.entity_type),
        entity_id=result.entity_id,
        processed_steps=list(result.executed_step_ids),
        scheduled_steps=[
            ScheduledStepDTO(step_id=intent.step_id, scheduled_time=intent.due_time) for intent in result.scheduled
        ],
        outcomes=[
            StepOutcomeDTO(
                step_id=outcome.step_id,
                status=str(outcome.status),
                action_type=outcome.action_type,
                error=outcome.error,
            )
            for outcome in result.outcomes
        ],
    )


def _changes(data: Any) -> dict[str, Any]:
    """Fields of a partial-update DTO that were actually sent."""
    return {key: value for key, value in vars(data).items() if value is not None}


class WorkflowController(Controller):
    """API controller for workflows.

    Provides endpoints for listing, creating, updating and deleting
    workflows, and for running a workflow against a Lead, Contact or
    Transaction.

    Tags: Workflows
    """

    path = "/"
    tags: ClassVar[list[str]] = ["Workflows"]

    @get("/")
    async def list_workflows(
        self,
        workflow_service: WorkflowService,
        search: str | None = Parameter(default=None, description="Match against name and description"),
        trigger_entity: str | None = Parameter(default=None, description="Lead, Contact or Transaction"),
        is_active: bool | None = Parameter(default=None, description="Filter by active flag"),
        created_by_user_id: int | None = Parameter(default=None, description="Filter by author"),
        page: int = Parameter(default=1, ge=1),
        limit: int = Parameter(default=10, ge=1, le=100),
        sort_by: str = Parameter(default="created_at"),
        sort_order: str = Parameter(default="desc"),
    ) -> WorkflowListDTO:
        """List workflows with filtering, sorting and pagination.

        Args:
            workflow_service: Injected workflow service.
            search: Substring matched against name and description.
            trigger_entity: Optional entity kind filter.
            is_active: Optional active flag filter.
            created_by_user_id: Optional author filter.
            page: 1-based page number.
            limit: Page size.
            sort_by: Column to sort by.
            sort_order: ``asc`` or ``desc``.

        Returns:
            A page of workflow summaries.
        """
        rows, total = await workflow_service.list_workflows(
            search=search,
            trigger_entity=trigger_entity,
            is_active=is_active,
            created_by_user_id=created_by_user_id,
            page=page,
            limit=limit,
            sort_by=sort_by,
            sort_order=sort_order,
        )
        return WorkflowListDTO(
            items=[WorkflowSummaryDTO(**_workflow_fields(workflow), step_count=count) for workflow, count in rows],
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit),
        )

    @get("/{workflow_id:int}")
    async def get_workflow(self, workflow_id: int, workflow_service: WorkflowService) -> WorkflowDetailDTO:
        """Get a workflow with its steps in order.

        Raises:
            WorkflowNotFoundError: If the workflow does not exist.
        """
        workflow, steps = await workflow_service.get_workflow(workflow_id)
        return _detail_dto(workflow, steps)

    @post("/")
    async def create_workflow(
        self,
        request: Request,
        data: CreateWorkflowDTO,
        workflow_service: WorkflowService,
    ) -> WorkflowDetailDTO:
        """Create a workflow, optionally with its initial steps.

        The authenticated user becomes the workflow's author.
        """
        workflow = await workflow_service.create_workflow(
            {
                "workflow_name": data.workflow_name,
                "trigger_entity": data.trigger_entity,
                "trigger_condition": data.trigger_condition,
                "description": data.description,
                "is_active": data.is_active,
            },
            created_by_user_id=acting_user_id(request),
            steps=[vars(step) for step in data.steps],
        )
        await workflow_service.commit()
        workflow, steps = await workflow_service.get_workflow(workflow.id)
        return _detail_dto(workflow, steps)

    @put("/{workflow_id:int}")
    async def update_workflow(
        self,
        workflow_id: int,
        data: UpdateWorkflowDTO,
        workflow_service: WorkflowService,
    ) -> WorkflowDetailDTO:
        """Update the workflow's own fields; steps are managed separately."""
        await workflow_service.update_workflow(workflow_id, _changes(data))
        await workflow_service.commit()
        workflow, steps = await workflow_service.get_workflow(workflow_id)
        return _detail_dto(workflow, steps)

    @delete("/{workflow_id:int}")
    async def delete_workflow(self, workflow_id: int, workflow_service: WorkflowService) -> None:
        """Delete a workflow and its steps."""
        await workflow_service.delete_workflow(workflow_id)
        await workflow_service.commit()

    @post("/{workflow_id:int}/execute", status_code=HTTP_200_OK)
    async def execute_workflow(
        self,
        request: Request,
        workflow_id: int,
        data: ExecuteWorkflowDTO,
        workflow_executor: WorkflowExecutor,
        workflow_service: WorkflowService,
    ) -> ExecutionResultDTO:
        """Run a workflow against one entity on behalf of the authenticated user.

        Zero-delay steps run before the response is sent; delayed steps are
        handed to the configured scheduler and listed with their due time.

        Args:
            request: The request, used to resolve the acting user.
            workflow_id: The workflow to run.
            data: Target entity.
            workflow_executor: Injected executor.
            workflow_service: Injected workflow service, used to commit.

        Returns:
            Processed step ids, scheduled steps and per-step outcomes.

        Raises:
            WorkflowNotFoundError: If the workflow does not exist.
            EntityNotFoundError: If the entity does not exist.
            WorkflowValidationError: If the entity type does not match or the workflow has no steps.
        """
        user_id = acting_user_id(request)
        if data.entity_id < 1:
            raise WorkflowValidationError("entity_id must be a positive integer")

        result = await workflow_executor.execute(workflow_id, data.entity_type, data.entity_id, user_id)
        await workflow_service.commit()
        return _execution_dto(result)


class WorkflowStepController(Controller):
    """API controller for the steps of a workflow.

    Every change keeps the workflow's step orders dense.

    Tags: Workflow Steps
    """

    path = "/{workflow_id:int}/steps"
    tags: ClassVar[list[str]] = ["Workflow Steps"]

    @get("/")
    async def list_steps(self, workflow_id: int, workflow_service: WorkflowService) -> list[WorkflowStepDTO]:
        """List a workflow's steps in order."""
        _, steps = await workflow_service.get_workflow(workflow_id)
        return [_step_dto(step) for step in steps]

    @post("/")
    async def add_step(
        self,
        workflow_id: int,
        data: CreateStepDTO,
        workflow_service: WorkflowService,
    ) -> WorkflowStepDTO:
        """Append a step, or insert it at ``step_order`` and shift the rest down."""
        step = await workflow_service.add_step(workflow_id, vars(data))
        await workflow_service.commit()
        return _step_dto(step)

    @put("/reorder")
    async def reorder_steps(
        self,
        workflow_id: int,
        data: ReorderStepsDTO,
        workflow_service: WorkflowService,
    ) -> list[WorkflowStepDTO]:
        """Assign new positions to every step of the workflow at once."""
        orders: dict[int, int] = {}
        for item in data.steps:
            if item.id in orders:
                msg = f"Step {item.id} is listed more than once"
                raise WorkflowValidationError(msg)
            orders[item.id] = item.step_order
        steps = await workflow_service.reorder_steps(workflow_id, orders)
        await workflow_service.commit()
        return [_step_dto(step) for step in steps]

    @put("/{step_id:int}")
    async def update_step(
        self,
        workflow_id: int,
        step_id: int,
        data: UpdateStepDTO,
        workflow_service: WorkflowService,
    ) -> WorkflowStepDTO:
        """Update a step; a new ``step_order`` moves it and shifts the steps in between."""
        step = await workflow_service.update_step(workflow_id, step_id, _changes(data))
        await workflow_service.commit()
        return _step_dto(step)

    @delete("/{step_id:int}")
    async def delete_step(self, workflow_id: int, step_id: int, workflow_service: WorkflowService) -> None:
        """Delete a step and renumber the steps after it."""
        await workflow_service.delete_step(workflow_id, step_id)
        await workflow_service.commit()
