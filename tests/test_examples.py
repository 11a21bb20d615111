"""Integration tests for the example application.

Runs the minimal example app against a temporary SQLite file using Litestar's
test client to verify the end-to-end flow.
"""

from __future__ import annotations

import logging

import pytest
import structlog
from litestar.testing import AsyncTestClient


@pytest.fixture(autouse=True)
def restore_logging():
    """The example app configures logging; undo it afterwards."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    structlog.reset_defaults()
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.mark.integration
@pytest.mark.asyncio
class TestMinimalExample:
    """Tests for examples/minimal/app.py."""

    @pytest.fixture
    def app(self, tmp_path):
        """Build the example app on a throwaway database."""
        from examples.minimal.app import create_app

        return create_app(f"sqlite+aiosqlite:///{tmp_path / 'crm.db'}")

    async def test_lead_workflow_end_to_end(self, app) -> None:
        """Create a lead and a workflow, then run it."""
        async with AsyncTestClient(app=app) as client:
            response = await client.post("/leads", json={"first_name": "Ada", "email": "ada@example.com"})
            assert response.status_code == 201
            lead_id = response.json()["id"]

            response = await client.post(
                "/workflows",
                headers={"X-User-Id": "1"},
                json={
                    "workflow_name": "Welcome",
                    "trigger_entity": "Lead",
                    "steps": [
                        {"action_type": "Create Task", "action_details": {"task_title": "Call", "due_days": 1}},
                        {"action_type": "Send SMS", "action_details": {"message_content": "Hi"}, "delay_hours": 2},
                    ],
                },
            )
            assert response.status_code == 201
            workflow = response.json()

            response = await client.post(
                f"/workflows/{workflow['id']}/execute",
                headers={"X-User-Id": "1"},
                json={"entity_type": "Lead", "entity_id": lead_id},
            )
            assert response.status_code == 200
            data = response.json()
            assert data["processed_steps"] == [workflow["steps"][0]["id"]]
            assert [item["step_id"] for item in data["scheduled_steps"]] == [workflow["steps"][1]["id"]]

    async def test_execute_without_user_header(self, app) -> None:
        """The example rejects executions without X-User-Id."""
        async with AsyncTestClient(app=app) as client:
            response = await client.post("/workflows/1/execute", json={"entity_type": "Lead", "entity_id": 1})

        assert response.status_code == 401

    async def test_module_level_app(self) -> None:
        """Importing the module builds a default app."""
        from examples.minimal import app as module

        assert module.app is not None
        assert any(route.path == "/workflows" for route in module.app.routes)
