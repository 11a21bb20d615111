"""Tests for the SQLAlchemy stores and repositories."""

from __future__ import annotations

from datetime import timedelta
from typing import Any

import pytest
from sqlalchemy import func, select

from crm_workflows.core.protocols import (
    CommunicationStore,
    EntityStore,
    TagStore,
    TaskStore,
    TemplateStore,
    WorkflowStore,
)
from crm_workflows.core.types import EntityType, StepStatus
from crm_workflows.db.models import (
    CommunicationModel,
    CommunicationTemplateModel,
    ContactModel,
    LeadModel,
    TagModel,
    TaskModel,
    TransactionModel,
    WorkflowModel,
    WorkflowStepModel,
    contact_tags,
    lead_tags,
)
from crm_workflows.db.repositories import TaskRepository, WorkflowRepository
from crm_workflows.db.stores import SQLAlchemyWorkflowStores
from crm_workflows.engine.executor import WorkflowExecutor
from crm_workflows.exceptions import EntityNotFoundError, WorkflowValidationError


async def seed_workflow(
    session, trigger_entity: EntityType, steps: list[dict[str, Any]], **kwargs: Any
) -> WorkflowModel:
    """Insert a workflow and its steps, numbered in list order."""
    workflow = WorkflowModel(
        workflow_name=kwargs.pop("workflow_name", "Welcome"),
        trigger_entity=trigger_entity,
        created_by_user_id=1,
        **kwargs,
    )
    session.add(workflow)
    await session.flush()
    for order, step in enumerate(steps, start=1):
        session.add(WorkflowStepModel(workflow_id=workflow.id, step_order=order, **step))
    await session.flush()
    return workflow


@pytest.mark.integration
@pytest.mark.asyncio
class TestEntityStore:
    """Entity reads and field updates."""

    async def test_get_entity_returns_columns(self, session) -> None:
        """Entities come back as plain column dicts."""
        lead = LeadModel(first_name="Ada", lead_score=40)
        session.add(lead)
        await session.flush()
        stores = SQLAlchemyWorkflowStores(session)

        entity = await stores.get_entity(EntityType.LEAD, lead.id)

        assert entity is not None
        assert entity["id"] == lead.id
        assert entity["first_name"] == "Ada"
        assert entity["lead_score"] == 40
        assert await stores.get_entity(EntityType.LEAD, lead.id + 100) is None

    async def test_update_field(self, session, fixed_now) -> None:
        """A column is written and the row's updated_at moves."""
        contact = ContactModel(first_name="Grace", relationship_notes="old")
        session.add(contact)
        await session.flush()
        stores = SQLAlchemyWorkflowStores(session)

        await stores.update_field(EntityType.CONTACT, contact.id, "relationship_notes", None, fixed_now)

        refreshed = await session.get(ContactModel, contact.id)
        assert refreshed.relationship_notes is None
        assert refreshed.updated_at is not None

    @pytest.mark.parametrize("field_name", ["id", "created_at", "no_such_column"])
    async def test_update_field_rejects_protected_and_unknown(self, session, fixed_now, field_name) -> None:
        """Primary key, creation time and unknown names cannot be written."""
        lead = LeadModel(first_name="Ada")
        session.add(lead)
        await session.flush()
        stores = SQLAlchemyWorkflowStores(session)

        with pytest.raises(WorkflowValidationError, match="has no updatable field"):
            await stores.update_field(EntityType.LEAD, lead.id, field_name, 1, fixed_now)

    async def test_update_field_missing_entity(self, session, fixed_now) -> None:
        """Updating a vanished entity raises EntityNotFoundError."""
        stores = SQLAlchemyWorkflowStores(session)

        with pytest.raises(EntityNotFoundError):
            await stores.update_field(EntityType.TRANSACTION, 999, "notes", "x", fixed_now)


@pytest.mark.integration
@pytest.mark.asyncio
class TestTagStore:
    """Tag lookups and associations."""

    async def test_association_roundtrip(self, session) -> None:
        """Associations are detected after being written."""
        lead = LeadModel(first_name="Ada")
        tag = TagModel(tag_name="hot", tag_color="#ff0000")
        session.add_all([lead, tag])
        await session.flush()
        stores = SQLAlchemyWorkflowStores(session)

        assert (await stores.get_tag(tag.id)).tag_name == "hot"
        assert not await stores.has_association(EntityType.LEAD, lead.id, tag.id)

        await stores.add_association(EntityType.LEAD, lead.id, tag.id)

        assert await stores.has_association(EntityType.LEAD, lead.id, tag.id)
        assert not await stores.has_association(EntityType.CONTACT, lead.id, tag.id)

    async def test_missing_tag(self, session) -> None:
        """Unknown tags resolve to None."""
        stores = SQLAlchemyWorkflowStores(session)

        assert await stores.get_tag(12345) is None


@pytest.mark.integration
@pytest.mark.asyncio
class TestWorkflowStore:
    """Workflow and step reads."""

    async def test_implements_store_protocols(self, session) -> None:
        """One object satisfies every store protocol."""
        stores = SQLAlchemyWorkflowStores(session)

        for protocol in (WorkflowStore, EntityStore, TaskStore, CommunicationStore, TemplateStore, TagStore):
            assert isinstance(stores, protocol)

    async def test_steps_ordered(self, session) -> None:
        """Steps come back by step_order whatever the insert order."""
        workflow = await seed_workflow(session, EntityType.LEAD, [])
        session.add_all(
            [
                WorkflowStepModel(workflow_id=workflow.id, step_order=3, action_type="Add Tag"),
                WorkflowStepModel(workflow_id=workflow.id, step_order=1, action_type="Create Task"),
                WorkflowStepModel(workflow_id=workflow.id, step_order=2, action_type="Send SMS"),
            ]
        )
        await session.flush()
        stores = SQLAlchemyWorkflowStores(session)

        steps = await stores.get_steps(workflow.id)

        assert [step.step_order for step in steps] == [1, 2, 3]
        assert [step.action_type for step in steps] == ["Create Task", "Send SMS", "Add Tag"]
        assert (await stores.get_workflow(workflow.id)).trigger_entity == "Lead"

    async def test_list_active(self, session) -> None:
        """Only active workflows of the requested kind are listed."""
        active = await seed_workflow(session, EntityType.CONTACT, [], workflow_name="A")
        await seed_workflow(session, EntityType.CONTACT, [], workflow_name="B", is_active=False)
        await seed_workflow(session, EntityType.LEAD, [], workflow_name="C")
        stores = SQLAlchemyWorkflowStores(session)

        workflows = await stores.list_active(EntityType.CONTACT)

        assert [workflow.id for workflow in workflows] == [active.id]

    async def test_step_counts(self, session) -> None:
        """Step counts are grouped per workflow."""
        first = await seed_workflow(session, EntityType.LEAD, [{"action_type": "Create Task"}] * 2)
        second = await seed_workflow(session, EntityType.LEAD, [])

        counts = await WorkflowRepository(session=session).step_counts([first.id, second.id])

        assert counts == {first.id: 2}


@pytest.mark.integration
@pytest.mark.asyncio
class TestExecutorOnDatabase:
    """End-to-end executions against SQLite."""

    async def test_lead_welcome_workflow(self, session, fixed_now) -> None:
        """Task now, email tomorrow, tag now."""
        lead = LeadModel(first_name="Ada")
        tag = TagModel(tag_name="new-lead")
        template = CommunicationTemplateModel(template_name="Welcome", template_type="Email", body_content="Hi")
        session.add_all([lead, tag, template])
        await session.flush()
        workflow = await seed_workflow(
            session,
            EntityType.LEAD,
            [
                {"action_type": "Create Task", "action_details": {"task_title": "Call", "due_days": 1}},
                {"action_type": "Send Email", "action_details": {"template_id": template.id}, "delay_days": 1},
                {"action_type": "Add Tag", "action_details": {"tag_id": tag.id}},
            ],
        )
        steps = await SQLAlchemyWorkflowStores(session).get_steps(workflow.id)
        executor = WorkflowExecutor(SQLAlchemyWorkflowStores(session).as_stores(), clock=lambda: fixed_now)

        result = await executor.execute(workflow.id, "Lead", lead.id, acting_user_id=1)
        await session.commit()

        assert result.executed_step_ids == [steps[0].id, steps[2].id]
        assert [(i.step_id, i.due_time) for i in result.scheduled] == [(steps[1].id, fixed_now + timedelta(days=1))]

        tasks = await TaskRepository(session=session).list_for_step(steps[0].id)
        assert len(tasks) == 1
        assert tasks[0].related_lead_id == lead.id
        assert tasks[0].task_title == "Call"
        assert tasks[0].status == "Pending"
        assert tasks[0].due_date == fixed_now + timedelta(days=1)

        rows = (await session.execute(select(lead_tags))).all()
        assert [(row.lead_id, row.tag_id) for row in rows] == [(lead.id, tag.id)]
        assert await session.scalar(select(func.count()).select_from(CommunicationModel)) == 0

    async def test_scheduled_email_uses_template(self, session, fixed_now) -> None:
        """Re-entering a delayed email writes a templated communication."""
        contact = ContactModel(first_name="Grace")
        template = CommunicationTemplateModel(
            template_name="Follow up", template_type="Email", subject="Checking in", body_content="How are you?"
        )
        session.add_all([contact, template])
        await session.flush()
        workflow = await seed_workflow(
            session,
            EntityType.CONTACT,
            [{"action_type": "SendEmail", "action_details": {"template_id": template.id}, "delay_hours": 2}],
        )
        executor = WorkflowExecutor(SQLAlchemyWorkflowStores(session).as_stores(), clock=lambda: fixed_now)

        result = await executor.execute(workflow.id, "Contact", contact.id, acting_user_id=3)
        outcome = await executor.run_scheduled(result.scheduled[0])
        await session.commit()

        assert outcome.status == StepStatus.SUCCEEDED
        communication = await session.get(CommunicationModel, outcome.result["communication_id"])
        assert communication.contact_id == contact.id
        assert communication.lead_id is None
        assert communication.subject == "Checking in"
        assert communication.message_content == "How are you?"
        assert communication.template_id == template.id
        assert communication.status == "Scheduled"
        assert communication.direction == "Outbound"
        assert communication.user_id == 3

    async def test_transaction_steps(self, session, fixed_now) -> None:
        """Transactions get linked tasks, unlinked communications and no tags."""
        deal = TransactionModel(transaction_name="12 Elm St", transaction_type="Sale")
        tag = TagModel(tag_name="closing")
        session.add_all([deal, tag])
        await session.flush()
        workflow = await seed_workflow(
            session,
            EntityType.TRANSACTION,
            [
                {"action_type": "Create Task", "action_details": {"task_title": "Order inspection"}},
                {"action_type": "Send SMS", "action_details": {"message_content": "Closing soon"}},
                {"action_type": "Add Tag", "action_details": {"tag_id": tag.id}},
                {"action_type": "Update Field", "action_details": {"field_name": "notes", "field_value": "Auto"}},
            ],
        )
        executor = WorkflowExecutor(SQLAlchemyWorkflowStores(session).as_stores(), clock=lambda: fixed_now)

        result = await executor.execute(workflow.id, "Transaction", deal.id, acting_user_id=1)
        await session.commit()

        assert len(result.executed_step_ids) == 4
        task = await session.scalar(select(TaskModel))
        assert task.related_transaction_id == deal.id
        communication = await session.scalar(select(CommunicationModel))
        assert communication.lead_id is None
        assert communication.contact_id is None
        assert result.outcomes[2].result == {"tag_id": tag.id, "added": False}
        assert (await session.execute(select(contact_tags))).all() == []
        refreshed = await session.get(TransactionModel, deal.id)
        assert refreshed.notes == "Auto"

    async def test_update_field_on_unknown_column_fails_step(self, session, fixed_now) -> None:
        """A bad column fails only that step."""
        lead = LeadModel(first_name="Ada")
        session.add(lead)
        await session.flush()
        workflow = await seed_workflow(
            session,
            EntityType.LEAD,
            [
                {"action_type": "Update Field", "action_details": {"field_name": "id", "field_value": 5}},
                {"action_type": "Update Field", "action_details": {"field_name": "lead_score", "field_value": 0}},
            ],
        )
        executor = WorkflowExecutor(SQLAlchemyWorkflowStores(session).as_stores(), clock=lambda: fixed_now)

        result = await executor.execute(workflow.id, "Lead", lead.id, acting_user_id=1)

        assert len(result.failed) == 1
        assert len(result.executed_step_ids) == 1
        refreshed = await session.get(LeadModel, lead.id)
        assert refreshed.lead_score == 0

    async def test_flush_failure_rolls_back_only_that_step(self, session, fixed_now) -> None:
        """A write the database rejects undoes its own step and leaves the session usable."""
        deal = TransactionModel(transaction_name="3 Oak Ave", transaction_type="Sale")
        session.add(deal)
        await session.flush()
        deal_id = deal.id
        workflow = await seed_workflow(
            session,
            EntityType.TRANSACTION,
            [
                {"action_type": "Create Task", "action_details": {"task_title": "one"}},
                {
                    "action_type": "Update Field",
                    "action_details": {"field_name": "transaction_type", "field_value": None},
                },
                {"action_type": "Create Task", "action_details": {"task_title": "three"}},
            ],
        )
        workflow_id = workflow.id
        step_ids = (
            await session.scalars(
                select(WorkflowStepModel.id)
                .where(WorkflowStepModel.workflow_id == workflow_id)
                .order_by(WorkflowStepModel.step_order)
            )
        ).all()
        executor = WorkflowExecutor(SQLAlchemyWorkflowStores(session).as_stores(), clock=lambda: fixed_now)

        result = await executor.execute(workflow_id, "Transaction", deal_id, acting_user_id=1)
        await session.commit()

        assert result.executed_step_ids == [step_ids[0], step_ids[2]]
        assert [outcome.step_id for outcome in result.failed] == [step_ids[1]]
        assert "transaction_type" in result.failed[0].error
        titles = (await session.scalars(select(TaskModel.task_title).order_by(TaskModel.id))).all()
        assert titles == ["one", "three"]
        stored_type = await session.scalar(
            select(TransactionModel.transaction_type).where(TransactionModel.id == deal_id)
        )
        assert stored_type == "Sale"
