"""Shared test fixtures for crm-workflows test suite."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from crm_workflows.core.context import Stores
from crm_workflows.core.models import StepData, TagData, TemplateData, WorkflowData
from crm_workflows.core.types import EntityType
from crm_workflows.db.models import WorkflowModel

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from crm_workflows.core.models import SchedulingIntent

FIXED_NOW = datetime(2024, 3, 1, 9, 30, tzinfo=timezone.utc)


class InMemoryCRM:
    """In-memory implementation of every store protocol.

    ``get_steps`` returns steps in insertion order rather than sorted, so
    tests can check that the executor does its own ordering.
    """

    def __init__(self) -> None:
        self.workflows: dict[int, WorkflowData] = {}
        self.steps: dict[int, StepData] = {}
        self.entities: dict[EntityType, dict[int, dict[str, Any]]] = {kind: {} for kind in EntityType}
        self.templates: dict[int, TemplateData] = {}
        self.tags: dict[int, TagData] = {}
        self.tasks: list[dict[str, Any]] = []
        self.communications: list[dict[str, Any]] = []
        self.field_updates: list[tuple[EntityType, int, str, Any]] = []
        self.associations: set[tuple[EntityType, int, int]] = set()
        self.association_writes = 0

    # Seeding helpers

    def add_workflow(self, workflow_id: int, trigger_entity: str = "Lead", **kwargs: Any) -> WorkflowData:
        workflow = WorkflowData(
            id=workflow_id,
            workflow_name=kwargs.pop("workflow_name", f"Workflow {workflow_id}"),
            trigger_entity=trigger_entity,
            **kwargs,
        )
        self.workflows[workflow_id] = workflow
        return workflow

    def add_step(
        self,
        step_id: int,
        workflow_id: int,
        step_order: int,
        action_type: str,
        action_details: dict[str, Any] | None = None,
        delay_days: int | None = 0,
        delay_hours: int | None = 0,
    ) -> StepData:
        step = StepData(
            id=step_id,
            workflow_id=workflow_id,
            step_order=step_order,
            action_type=action_type,
            action_details=action_details,
            delay_days=delay_days,
            delay_hours=delay_hours,
        )
        self.steps[step_id] = step
        return step

    def add_entity(self, entity_type: EntityType, entity_id: int, **columns: Any) -> dict[str, Any]:
        entity = {"id": entity_id, **columns}
        self.entities[entity_type][entity_id] = entity
        return entity

    @property
    def write_count(self) -> int:
        return len(self.tasks) + len(self.communications) + len(self.field_updates) + self.association_writes

    def as_stores(self) -> Stores:
        return Stores.single(self)

    # WorkflowStore

    async def get_workflow(self, workflow_id: int) -> WorkflowData | None:
        return self.workflows.get(workflow_id)

    async def get_steps(self, workflow_id: int) -> list[StepData]:
        return [step for step in self.steps.values() if step.workflow_id == workflow_id]

    async def get_step(self, step_id: int) -> StepData | None:
        return self.steps.get(step_id)

    async def list_active(self, trigger_entity: EntityType) -> list[WorkflowData]:
        return [wf for wf in self.workflows.values() if wf.trigger_entity == trigger_entity and wf.is_active]

    # EntityStore

    async def get_entity(self, entity_type: EntityType, entity_id: int) -> dict[str, Any] | None:
        return self.entities[entity_type].get(entity_id)

    async def update_field(
        self,
        entity_type: EntityType,
        entity_id: int,
        field_name: str,
        value: Any,
        now: datetime,
    ) -> None:
        entity = self.entities[entity_type][entity_id]
        entity[field_name] = value
        entity["updated_at"] = now
        self.field_updates.append((entity_type, entity_id, field_name, value))

    # TaskStore / CommunicationStore / TemplateStore

    async def create_task(self, fields: dict[str, Any]) -> int:
        task_id = len(self.tasks) + 1
        self.tasks.append({"id": task_id, **fields})
        return task_id

    async def create_communication(self, fields: dict[str, Any]) -> int:
        communication_id = len(self.communications) + 1
        self.communications.append({"id": communication_id, **fields})
        return communication_id

    async def get_template(self, template_id: int) -> TemplateData | None:
        return self.templates.get(template_id)

    # TagStore

    async def get_tag(self, tag_id: int) -> TagData | None:
        return self.tags.get(tag_id)

    async def has_association(self, entity_type: EntityType, entity_id: int, tag_id: int) -> bool:
        return (entity_type, entity_id, tag_id) in self.associations

    async def add_association(self, entity_type: EntityType, entity_id: int, tag_id: int) -> None:
        self.associations.add((entity_type, entity_id, tag_id))
        self.association_writes += 1


class RecordingScheduler:
    """Scheduler that records every intent it receives."""

    def __init__(self) -> None:
        self.intents: list[SchedulingIntent] = []

    async def schedule(self, intent: SchedulingIntent) -> None:
        self.intents.append(intent)


@pytest.fixture
def fixed_now() -> datetime:
    """The time every executor built by these fixtures sees."""
    return FIXED_NOW


@pytest.fixture
def crm() -> InMemoryCRM:
    """Empty in-memory CRM."""
    return InMemoryCRM()


@pytest.fixture
def scheduler() -> RecordingScheduler:
    """Scheduler that records intents."""
    return RecordingScheduler()


@pytest.fixture
def executor(crm: InMemoryCRM, scheduler: RecordingScheduler, fixed_now: datetime):
    """Executor over the in-memory CRM with a frozen clock."""
    from crm_workflows.engine.executor import WorkflowExecutor

    return WorkflowExecutor(crm.as_stores(), scheduler=scheduler, clock=lambda: fixed_now)


@pytest.fixture
async def db_engine():
    """Create async SQLite in-memory engine with all tables."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()
        # let SQLAlchemy emit BEGIN so per-step SAVEPOINTs nest inside it
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(WorkflowModel.metadata.create_all)

    yield engine
    await engine.dispose()


@pytest.fixture
async def session_maker(db_engine) -> async_sessionmaker[AsyncSession]:
    """Create session factory."""
    return async_sessionmaker(
        bind=db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest.fixture
async def session(session_maker) -> AsyncIterator[AsyncSession]:
    """A session for a single test."""
    async with session_maker() as session:
        yield session
