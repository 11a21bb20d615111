"""SQLAlchemy implementation of the executor's store protocols.

One :class:`SQLAlchemyWorkflowStores` wraps an ``AsyncSession`` and implements
every store protocol, converting ORM rows into the core dataclasses. Writes are
flushed but never committed; the caller owns the transaction. Each step runs
inside a SAVEPOINT so a write rejected by the database undoes only that step.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import exists, insert, inspect, select

from crm_workflows.core.context import Stores
from crm_workflows.core.models import StepData, TagData, TemplateData, WorkflowData
from crm_workflows.db.models import ENTITY_MODELS, TAG_ASSOCIATIONS, CommunicationModel, TaskModel
from crm_workflows.db.repositories import (
    CommunicationRepository,
    CommunicationTemplateRepository,
    TagRepository,
    TaskRepository,
    WorkflowRepository,
    WorkflowStepRepository,
)
from crm_workflows.exceptions import EntityNotFoundError, WorkflowValidationError

if TYPE_CHECKING:
    from datetime import datetime

    from sqlalchemy.ext.asyncio import AsyncSession, AsyncSessionTransaction

    from crm_workflows.core.types import EntityType
    from crm_workflows.db.models import WorkflowModel, WorkflowStepModel

__all__ = ["IMMUTABLE_ENTITY_FIELDS", "SQLAlchemyWorkflowStores", "step_to_data", "workflow_to_data"]

IMMUTABLE_ENTITY_FIELDS = frozenset({"id", "created_at"})


def workflow_to_data(model: WorkflowModel) -> WorkflowData:
    """Convert a workflow row into a :class:`WorkflowData`."""
    return WorkflowData(
        id=model.id,
        workflow_name=model.workflow_name,
        trigger_entity=str(model.trigger_entity),
        trigger_condition=model.trigger_condition,
        description=model.description,
        is_active=model.is_active,
        created_by_user_id=model.created_by_user_id,
    )


def step_to_data(model: WorkflowStepModel) -> StepData:
    """Convert a step row into a :class:`StepData`."""
    return StepData(
        id=model.id,
        workflow_id=model.workflow_id,
        step_order=model.step_order,
        action_type=model.action_type,
        action_details=model.action_details,
        delay_days=model.delay_days,
        delay_hours=model.delay_hours,
        step_name=model.step_name,
    )


class SQLAlchemyWorkflowStores:
    """Every store protocol over a single async session.

    Example:
        >>> async with session_maker() as session:
        ...     executor = WorkflowExecutor(SQLAlchemyWorkflowStores(session).as_stores())
        ...     result = await executor.execute(7, "Lead", 42, acting_user_id=1)
        ...     await session.commit()
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session
        self._workflows = WorkflowRepository(session=session)
        self._steps = WorkflowStepRepository(session=session)
        self._tasks = TaskRepository(session=session)
        self._communications = CommunicationRepository(session=session)
        self._templates = CommunicationTemplateRepository(session=session)
        self._tags = TagRepository(session=session)

    def as_stores(self) -> Stores:
        """Bundle this object into every slot of a :class:`Stores`."""
        return Stores.single(self, step_scope=self.savepoint)

    def savepoint(self) -> AsyncSessionTransaction:
        """Open a nested transaction for one step's writes."""
        return self.session.begin_nested()

    # Workflows

    async def get_workflow(self, workflow_id: int) -> WorkflowData | None:
        model = await self._workflows.get_one_or_none(id=workflow_id)
        return workflow_to_data(model) if model is not None else None

    async def get_steps(self, workflow_id: int) -> list[StepData]:
        return [step_to_data(step) for step in await self._steps.list_for_workflow(workflow_id)]

    async def get_step(self, step_id: int) -> StepData | None:
        model = await self._steps.get_one_or_none(id=step_id)
        return step_to_data(model) if model is not None else None

    async def list_active(self, trigger_entity: EntityType) -> list[WorkflowData]:
        return [workflow_to_data(model) for model in await self._workflows.list_active(trigger_entity)]

    # Entities

    async def get_entity(self, entity_type: EntityType, entity_id: int) -> dict[str, Any] | None:
        model = ENTITY_MODELS[entity_type]
        instance = await self.session.get(model, entity_id)
        if instance is None:
            return None
        return {attr.key: getattr(instance, attr.key) for attr in inspect(model).column_attrs}

    async def update_field(
        self,
        entity_type: EntityType,
        entity_id: int,
        field_name: str,
        value: Any,
        now: datetime,
    ) -> None:
        """Write one column on an entity.

        Raises:
            WorkflowValidationError: If the column does not exist or may not be changed.
            EntityNotFoundError: If the entity no longer exists.
        """
        model = ENTITY_MODELS[entity_type]
        columns = {attr.key for attr in inspect(model).column_attrs}
        if field_name not in columns or field_name in IMMUTABLE_ENTITY_FIELDS:
            msg = f"{entity_type} has no updatable field '{field_name}'"
            raise WorkflowValidationError(msg)

        instance = await self.session.get(model, entity_id)
        if instance is None:
            raise EntityNotFoundError(entity_type, entity_id)

        setattr(instance, field_name, value)
        if field_name != "updated_at":
            instance.updated_at = now
        await self.session.flush()

    # Tasks and communications

    async def create_task(self, fields: dict[str, Any]) -> int:
        task = await self._tasks.add(TaskModel(**fields))
        return task.id

    async def create_communication(self, fields: dict[str, Any]) -> int:
        communication = await self._communications.add(CommunicationModel(**fields))
        return communication.id

    async def get_template(self, template_id: int) -> TemplateData | None:
        model = await self._templates.get_one_or_none(id=template_id)
        if model is None:
            return None
        return TemplateData(
            id=model.id,
            template_name=model.template_name,
            template_type=model.template_type,
            subject=model.subject,
            body_content=model.body_content,
        )

    # Tags

    async def get_tag(self, tag_id: int) -> TagData | None:
        model = await self._tags.get_one_or_none(id=tag_id)
        if model is None:
            return None
        return TagData(id=model.id, tag_name=model.tag_name, tag_color=model.tag_color)

    async def has_association(self, entity_type: EntityType, entity_id: int, tag_id: int) -> bool:
        table, key = TAG_ASSOCIATIONS[entity_type]
        stmt = select(exists().where(table.c[key] == entity_id, table.c.tag_id == tag_id))
        return bool(await self.session.scalar(stmt))

    async def add_association(self, entity_type: EntityType, entity_id: int, tag_id: int) -> None:
        table, key = TAG_ASSOCIATIONS[entity_type]
        await self.session.execute(insert(table).values({key: entity_id, "tag_id": tag_id}))
