"""Minimal example of crm-workflows integration.

This example wires the WorkflowPlugin into a Litestar app backed by SQLite,
with a tiny lead endpoint so a workflow can be run end to end. The acting
user is taken from the ``X-User-Id`` header; a real app would use its
authentication middleware instead.

Run with:
    cd examples/minimal
    litestar run

Then:
    curl -X POST localhost:8000/leads -H 'content-type: application/json' -d '{"first_name": "Ada"}'
    curl -X POST localhost:8000/workflows -H 'X-User-Id: 1' -H 'content-type: application/json' \\
        -d '{"workflow_name": "Welcome", "trigger_entity": "Lead",
             "steps": [{"action_type": "Create Task", "action_details": {"task_title": "Call", "due_days": 1}}]}'
    curl -X POST localhost:8000/workflows/1/execute -H 'X-User-Id: 1' -H 'content-type: application/json' \\
        -d '{"entity_type": "Lead", "entity_id": 1}'
"""

from __future__ import annotations

from dataclasses import dataclass

from advanced_alchemy.extensions.litestar import SQLAlchemyAsyncConfig, SQLAlchemyPlugin
from litestar import Litestar, Request, post
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: TC002 - needed for DI

from crm_workflows import WorkflowPlugin, WorkflowPluginConfig
from crm_workflows.db.models import LeadModel, WorkflowModel


@dataclass
class CreateLeadDTO:
    """Fields accepted when creating a lead."""

    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None


@post("/leads")
async def create_lead(data: CreateLeadDTO, db_session: AsyncSession) -> dict[str, int]:
    """Create a lead to run workflows against."""
    lead = LeadModel(first_name=data.first_name, last_name=data.last_name, email=data.email)
    db_session.add(lead)
    await db_session.commit()
    return {"id": lead.id}


async def user_from_header(request: Request) -> None:
    """Put the ``X-User-Id`` header into the connection's user slot."""
    user_id = request.headers.get("x-user-id")
    if user_id:
        request.scope["user"] = int(user_id)


def create_app(connection_string: str = "sqlite+aiosqlite:///crm_workflows.db") -> Litestar:
    """Build the example application.

    Args:
        connection_string: SQLAlchemy URL of the database.

    Returns:
        The Litestar app.
    """
    db_config = SQLAlchemyAsyncConfig(
        connection_string=connection_string,
        metadata=WorkflowModel.metadata,
        create_all=True,
    )
    return Litestar(
        route_handlers=[create_lead],
        before_request=user_from_header,
        plugins=[
            SQLAlchemyPlugin(config=db_config),
            WorkflowPlugin(config=WorkflowPluginConfig(configure_logging=True)),
        ],
    )


app = create_app()
