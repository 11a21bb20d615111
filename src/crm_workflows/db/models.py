"""SQLAlchemy models for the CRM records the workflow engine touches.

This module defines:
- WorkflowModel / WorkflowStepModel: workflow definitions and their ordered steps
- LeadModel, ContactModel, TransactionModel: the entities workflows run against
- TaskModel, CommunicationModel: records written by step actions
- CommunicationTemplateModel, TagModel: records read by step actions
- lead_tags / contact_tags: tag association tables

Users live outside this package, so user references are plain integer columns.
"""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any

from advanced_alchemy.base import BigIntAuditBase, BigIntBase
from advanced_alchemy.types import DateTimeUTC
from sqlalchemy import JSON, BigInteger, Column, Date, Enum, ForeignKey, Index, Numeric, String, Table, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from crm_workflows.core.types import EntityType

__all__ = [
    "ENTITY_MODELS",
    "TAG_ASSOCIATIONS",
    "CommunicationModel",
    "CommunicationTemplateModel",
    "ContactModel",
    "LeadModel",
    "TagModel",
    "TaskModel",
    "TransactionModel",
    "WorkflowModel",
    "WorkflowStepModel",
    "contact_tags",
    "lead_tags",
]


# Cross-database JSON type: uses JSONB for PostgreSQL, JSON for others (SQLite, MySQL, etc.)
JSONType = JSON().with_variant(JSONB, "postgresql")


class WorkflowModel(BigIntAuditBase):
    """An automation bound to one entity kind.

    Attributes:
        workflow_name: Display name.
        trigger_entity: Entity kind the workflow runs against.
        trigger_condition: Opaque condition text, evaluated by the caller.
        description: Free-form description.
        is_active: Whether automatic triggers consider this workflow.
        created_by_user_id: Author of the workflow.
        steps: The workflow's steps ordered by ``step_order``.
    """

    __tablename__ = "workflows"
    __table_args__ = (
        Index("ix_workflows_trigger_entity_active", "trigger_entity", "is_active"),
        Index("ix_workflows_created_by_user_id", "created_by_user_id"),
    )

    workflow_name: Mapped[str] = mapped_column(String(150))
    trigger_entity: Mapped[EntityType] = mapped_column(
        Enum(EntityType, native_enum=False, length=20, values_callable=lambda e: [m.value for m in e]),
    )
    trigger_condition: Mapped[str | None] = mapped_column(Text, nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(default=True)
    created_by_user_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)

    # Relationships
    steps: Mapped[list[WorkflowStepModel]] = relationship(
        back_populates="workflow",
        lazy="noload",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="WorkflowStepModel.step_order",
    )


class WorkflowStepModel(BigIntAuditBase):
    """One step of a workflow.

    ``step_order`` is 1-based and kept dense by
    :class:`~crm_workflows.db.service.WorkflowService`.

    Attributes:
        workflow_id: Owning workflow.
        step_order: Position within the workflow.
        action_type: Action display string, such as ``"Create Task"``.
        action_details: Action parameters.
        delay_days: Days to wait before running the step.
        delay_hours: Hours to wait before running the step.
        step_name: Optional display name.
    """

    __tablename__ = "workflow_steps"
    __table_args__ = (Index("ix_workflow_steps_workflow_id_step_order", "workflow_id", "step_order"),)

    workflow_id: Mapped[int] = mapped_column(BigInteger, ForeignKey("workflows.id", ondelete="CASCADE"))
    step_order: Mapped[int]
    action_type: Mapped[str] = mapped_column(String(50))
    action_details: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    delay_days: Mapped[int] = mapped_column(default=0)
    delay_hours: Mapped[int] = mapped_column(default=0)
    step_name: Mapped[str | None] = mapped_column(String(100), nullable=True)

    workflow: Mapped[WorkflowModel] = relationship(back_populates="steps", lazy="noload")


class LeadModel(BigIntAuditBase):
    """A prospective client."""

    __tablename__ = "leads"
    __table_args__ = (
        Index("ix_leads_email", "email"),
        Index("ix_leads_assigned_user_id", "assigned_user_id"),
    )

    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone_number: Mapped[str | None] = mapped_column(String(30), nullable=True)
    lead_source_id: Mapped[int | None] = mapped_column(nullable=True)
    pipeline_status_id: Mapped[int | None] = mapped_column(nullable=True)
    inquiry_details: Mapped[str | None] = mapped_column(Text, nullable=True)
    lead_score: Mapped[int | None] = mapped_column(nullable=True)
    assigned_user_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    converted_contact_id: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("contacts.id", ondelete="SET NULL"),
        nullable=True,
    )
    converted_at: Mapped[datetime | None] = mapped_column(DateTimeUTC(timezone=True), nullable=True)
    external_lead_id: Mapped[str | None] = mapped_column(String(100), nullable=True)


class ContactModel(BigIntAuditBase):
    """An established client record."""

    __tablename__ = "contacts"
    __table_args__ = (
        Index("ix_contacts_owner_user_id", "owner_user_id"),
        Index("ix_contacts_last_name_first_name", "last_name", "first_name"),
    )

    first_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    last_name: Mapped[str | None] = mapped_column(String(100), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    phone_primary: Mapped[str | None] = mapped_column(String(30), nullable=True)
    phone_secondary: Mapped[str | None] = mapped_column(String(30), nullable=True)
    address_street: Mapped[str | None] = mapped_column(String(255), nullable=True)
    address_city: Mapped[str | None] = mapped_column(String(100), nullable=True)
    address_state: Mapped[str | None] = mapped_column(String(50), nullable=True)
    address_zip: Mapped[str | None] = mapped_column(String(20), nullable=True)
    address_country: Mapped[str | None] = mapped_column(String(50), nullable=True)
    preferred_contact_method: Mapped[str | None] = mapped_column(String(50), nullable=True)
    relationship_notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    owner_user_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)


class TransactionModel(BigIntAuditBase):
    """A property deal.

    Property and status references point at tables outside this package and
    are stored as plain ids.
    """

    __tablename__ = "transactions"
    __table_args__ = (Index("ix_transactions_agent_user_id", "agent_user_id"),)

    transaction_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    transaction_type: Mapped[str] = mapped_column(String(20))
    property_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    transaction_status_id: Mapped[int | None] = mapped_column(nullable=True)
    estimated_close_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    actual_close_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    price: Mapped[Decimal | None] = mapped_column(Numeric(15, 2), nullable=True)
    commission_percentage: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)
    commission_amount: Mapped[Decimal | None] = mapped_column(Numeric(15, 2), nullable=True)
    agent_user_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)


class TaskModel(BigIntAuditBase):
    """A to-do item, optionally created by a workflow step.

    At most one of the ``related_*`` columns is set.
    """

    __tablename__ = "tasks"
    __table_args__ = (
        Index("ix_tasks_assigned_user_id", "assigned_user_id"),
        Index("ix_tasks_status", "status"),
        Index("ix_tasks_due_date", "due_date"),
    )

    task_title: Mapped[str] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    due_date: Mapped[datetime | None] = mapped_column(DateTimeUTC(timezone=True), nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="Pending")
    priority: Mapped[str | None] = mapped_column(String(20), default="Normal", nullable=True)
    assigned_user_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    created_by_user_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTimeUTC(timezone=True), nullable=True)
    related_lead_id: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("leads.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    related_contact_id: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("contacts.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    related_transaction_id: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("transactions.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    workflow_step_id: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("workflow_steps.id", ondelete="SET NULL"),
        nullable=True,
    )


class CommunicationTemplateModel(BigIntAuditBase):
    """Reusable subject and body for email and SMS actions."""

    __tablename__ = "communication_templates"
    __table_args__ = (Index("ix_communication_templates_type_name", "template_type", "template_name"),)

    template_name: Mapped[str] = mapped_column(String(150))
    template_type: Mapped[str] = mapped_column(String(20))
    subject: Mapped[str | None] = mapped_column(String(255), nullable=True)
    body_content: Mapped[str] = mapped_column(Text)
    is_active: Mapped[bool] = mapped_column(default=True)
    created_by_user_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)


class CommunicationModel(BigIntBase):
    """An inbound or outbound message.

    Workflow actions create outbound rows in ``Scheduled`` status; a delivery
    service picks them up from there.
    """

    __tablename__ = "communications"
    __table_args__ = (
        Index("ix_communications_lead_id", "lead_id"),
        Index("ix_communications_contact_id", "contact_id"),
        Index("ix_communications_status", "status"),
    )

    communication_type: Mapped[str] = mapped_column(String(20))
    direction: Mapped[str] = mapped_column(String(20))
    status: Mapped[str] = mapped_column(String(20))
    subject: Mapped[str | None] = mapped_column(String(255), nullable=True)
    message_content: Mapped[str | None] = mapped_column(Text, nullable=True)
    timestamp: Mapped[datetime | None] = mapped_column(DateTimeUTC(timezone=True), nullable=True)
    lead_id: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("leads.id", ondelete="CASCADE"),
        nullable=True,
    )
    contact_id: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("contacts.id", ondelete="CASCADE"),
        nullable=True,
    )
    user_id: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    template_id: Mapped[int | None] = mapped_column(
        BigInteger,
        ForeignKey("communication_templates.id", ondelete="SET NULL"),
        nullable=True,
    )
    external_message_id: Mapped[str | None] = mapped_column(String(100), nullable=True)
    scheduled_time: Mapped[datetime | None] = mapped_column(DateTimeUTC(timezone=True), nullable=True)


class TagModel(BigIntBase):
    """A label attached to leads and contacts."""

    __tablename__ = "tags"

    tag_name: Mapped[str] = mapped_column(String(50), unique=True)
    tag_color: Mapped[str | None] = mapped_column(String(7), nullable=True)


lead_tags = Table(
    "lead_tags",
    BigIntBase.metadata,
    Column("lead_id", BigInteger, ForeignKey("leads.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", BigInteger, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
)

contact_tags = Table(
    "contact_tags",
    BigIntBase.metadata,
    Column("contact_id", BigInteger, ForeignKey("contacts.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", BigInteger, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
)

ENTITY_MODELS: dict[EntityType, type[BigIntAuditBase]] = {
    EntityType.LEAD: LeadModel,
    EntityType.CONTACT: ContactModel,
    EntityType.TRANSACTION: TransactionModel,
}

# (association table, entity key column) per taggable entity kind
TAG_ASSOCIATIONS: dict[EntityType, tuple[Table, str]] = {
    EntityType.LEAD: (lead_tags, "lead_id"),
    EntityType.CONTACT: (contact_tags, "contact_id"),
}
