"""Initial CRM workflow tables.

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_initial"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

JSONType = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def _id() -> sa.Column:
    return sa.Column("id", sa.BigInteger().with_variant(sa.Integer(), "sqlite"), primary_key=True, autoincrement=True)


def _audit_columns() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    """Create the workflow and CRM tables."""
    op.create_table(
        "workflows",
        _id(),
        sa.Column("workflow_name", sa.String(length=150), nullable=False),
        sa.Column("trigger_entity", sa.String(length=20), nullable=False),
        sa.Column("trigger_condition", sa.Text(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_by_user_id", sa.BigInteger(), nullable=True),
        *_audit_columns(),
    )
    op.create_index("ix_workflows_trigger_entity_active", "workflows", ["trigger_entity", "is_active"])
    op.create_index("ix_workflows_created_by_user_id", "workflows", ["created_by_user_id"])

    op.create_table(
        "workflow_steps",
        _id(),
        sa.Column("workflow_id", sa.BigInteger(), nullable=False),
        sa.Column("step_order", sa.Integer(), nullable=False),
        sa.Column("action_type", sa.String(length=50), nullable=False),
        sa.Column("action_details", JSONType, nullable=True),
        sa.Column("delay_days", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("delay_hours", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("step_name", sa.String(length=100), nullable=True),
        *_audit_columns(),
        sa.ForeignKeyConstraint(["workflow_id"], ["workflows.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_workflow_steps_workflow_id_step_order", "workflow_steps", ["workflow_id", "step_order"])

    op.create_table(
        "contacts",
        _id(),
        sa.Column("first_name", sa.String(length=100), nullable=True),
        sa.Column("last_name", sa.String(length=100), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True, unique=True),
        sa.Column("phone_primary", sa.String(length=30), nullable=True),
        sa.Column("phone_secondary", sa.String(length=30), nullable=True),
        sa.Column("address_street", sa.String(length=255), nullable=True),
        sa.Column("address_city", sa.String(length=100), nullable=True),
        sa.Column("address_state", sa.String(length=50), nullable=True),
        sa.Column("address_zip", sa.String(length=20), nullable=True),
        sa.Column("address_country", sa.String(length=50), nullable=True),
        sa.Column("preferred_contact_method", sa.String(length=50), nullable=True),
        sa.Column("relationship_notes", sa.Text(), nullable=True),
        sa.Column("owner_user_id", sa.BigInteger(), nullable=True),
        *_audit_columns(),
    )
    op.create_index("ix_contacts_owner_user_id", "contacts", ["owner_user_id"])
    op.create_index("ix_contacts_last_name_first_name", "contacts", ["last_name", "first_name"])

    op.create_table(
        "leads",
        _id(),
        sa.Column("first_name", sa.String(length=100), nullable=True),
        sa.Column("last_name", sa.String(length=100), nullable=True),
        sa.Column("email", sa.String(length=255), nullable=True),
        sa.Column("phone_number", sa.String(length=30), nullable=True),
        sa.Column("lead_source_id", sa.Integer(), nullable=True),
        sa.Column("pipeline_status_id", sa.Integer(), nullable=True),
        sa.Column("inquiry_details", sa.Text(), nullable=True),
        sa.Column("lead_score", sa.Integer(), nullable=True),
        sa.Column("assigned_user_id", sa.BigInteger(), nullable=True),
        sa.Column("converted_contact_id", sa.BigInteger(), nullable=True),
        sa.Column("converted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("external_lead_id", sa.String(length=100), nullable=True),
        *_audit_columns(),
        sa.ForeignKeyConstraint(["converted_contact_id"], ["contacts.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_leads_email", "leads", ["email"])
    op.create_index("ix_leads_assigned_user_id", "leads", ["assigned_user_id"])

    op.create_table(
        "transactions",
        _id(),
        sa.Column("transaction_name", sa.String(length=255), nullable=True),
        sa.Column("transaction_type", sa.String(length=20), nullable=False),
        sa.Column("property_id", sa.BigInteger(), nullable=True),
        sa.Column("transaction_status_id", sa.Integer(), nullable=True),
        sa.Column("estimated_close_date", sa.Date(), nullable=True),
        sa.Column("actual_close_date", sa.Date(), nullable=True),
        sa.Column("price", sa.Numeric(15, 2), nullable=True),
        sa.Column("commission_percentage", sa.Numeric(5, 2), nullable=True),
        sa.Column("commission_amount", sa.Numeric(15, 2), nullable=True),
        sa.Column("agent_user_id", sa.BigInteger(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_audit_columns(),
    )
    op.create_index("ix_transactions_agent_user_id", "transactions", ["agent_user_id"])

    op.create_table(
        "tasks",
        _id(),
        sa.Column("task_title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="Pending"),
        sa.Column("priority", sa.String(length=20), nullable=True, server_default="Normal"),
        sa.Column("assigned_user_id", sa.BigInteger(), nullable=True),
        sa.Column("created_by_user_id", sa.BigInteger(), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("related_lead_id", sa.BigInteger(), nullable=True),
        sa.Column("related_contact_id", sa.BigInteger(), nullable=True),
        sa.Column("related_transaction_id", sa.BigInteger(), nullable=True),
        sa.Column("workflow_step_id", sa.BigInteger(), nullable=True),
        *_audit_columns(),
        sa.ForeignKeyConstraint(["related_lead_id"], ["leads.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["related_contact_id"], ["contacts.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["related_transaction_id"], ["transactions.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["workflow_step_id"], ["workflow_steps.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_tasks_assigned_user_id", "tasks", ["assigned_user_id"])
    op.create_index("ix_tasks_status", "tasks", ["status"])
    op.create_index("ix_tasks_due_date", "tasks", ["due_date"])
    op.create_index("ix_tasks_related_lead_id", "tasks", ["related_lead_id"])
    op.create_index("ix_tasks_related_contact_id", "tasks", ["related_contact_id"])
    op.create_index("ix_tasks_related_transaction_id", "tasks", ["related_transaction_id"])

    op.create_table(
        "communication_templates",
        _id(),
        sa.Column("template_name", sa.String(length=150), nullable=False),
        sa.Column("template_type", sa.String(length=20), nullable=False),
        sa.Column("subject", sa.String(length=255), nullable=True),
        sa.Column("body_content", sa.Text(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_by_user_id", sa.BigInteger(), nullable=True),
        *_audit_columns(),
    )
    op.create_index(
        "ix_communication_templates_type_name",
        "communication_templates",
        ["template_type", "template_name"],
    )

    op.create_table(
        "communications",
        _id(),
        sa.Column("communication_type", sa.String(length=20), nullable=False),
        sa.Column("direction", sa.String(length=20), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("subject", sa.String(length=255), nullable=True),
        sa.Column("message_content", sa.Text(), nullable=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=True),
        sa.Column("lead_id", sa.BigInteger(), nullable=True),
        sa.Column("contact_id", sa.BigInteger(), nullable=True),
        sa.Column("user_id", sa.BigInteger(), nullable=True),
        sa.Column("template_id", sa.BigInteger(), nullable=True),
        sa.Column("external_message_id", sa.String(length=100), nullable=True),
        sa.Column("scheduled_time", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["lead_id"], ["leads.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["contact_id"], ["contacts.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["template_id"], ["communication_templates.id"], ondelete="SET NULL"),
    )
    op.create_index("ix_communications_lead_id", "communications", ["lead_id"])
    op.create_index("ix_communications_contact_id", "communications", ["contact_id"])
    op.create_index("ix_communications_status", "communications", ["status"])

    op.create_table(
        "tags",
        _id(),
        sa.Column("tag_name", sa.String(length=50), nullable=False, unique=True),
        sa.Column("tag_color", sa.String(length=7), nullable=True),
    )

    op.create_table(
        "lead_tags",
        sa.Column("lead_id", sa.BigInteger(), nullable=False),
        sa.Column("tag_id", sa.BigInteger(), nullable=False),
        sa.ForeignKeyConstraint(["lead_id"], ["leads.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["tag_id"], ["tags.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("lead_id", "tag_id"),
    )
    op.create_table(
        "contact_tags",
        sa.Column("contact_id", sa.BigInteger(), nullable=False),
        sa.Column("tag_id", sa.BigInteger(), nullable=False),
        sa.ForeignKeyConstraint(["contact_id"], ["contacts.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["tag_id"], ["tags.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("contact_id", "tag_id"),
    )


def downgrade() -> None:
    """Drop the workflow and CRM tables."""
    op.drop_table("contact_tags")
    op.drop_table("lead_tags")
    op.drop_table("tags")
    op.drop_table("communications")
    op.drop_table("communication_templates")
    op.drop_table("tasks")
    op.drop_table("transactions")
    op.drop_table("leads")
    op.drop_table("contacts")
    op.drop_table("workflow_steps")
    op.drop_table("workflows")
