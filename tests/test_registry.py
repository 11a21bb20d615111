"""Tests for ActionRegistry."""

from __future__ import annotations

from typing import Any

import pytest

from crm_workflows.actions import add_tag, create_task, send_email, send_sms, update_field
from crm_workflows.actions.registry import ActionRegistry, default_registry
from crm_workflows.core.types import ActionType


async def noop_handler(context: Any) -> dict[str, Any]:
    return {}


@pytest.mark.unit
class TestActionRegistry:
    """Tests for ActionRegistry."""

    def test_registry_starts_empty(self) -> None:
        """Test a new registry has no handlers."""
        registry = ActionRegistry()

        assert registry.list_action_types() == []
        assert not registry.has(ActionType.CREATE_TASK)

    def test_register_and_get(self) -> None:
        """Test registering a handler makes it retrievable."""
        registry = ActionRegistry()
        registry.register(ActionType.CREATE_TASK, noop_handler)

        assert registry.get(ActionType.CREATE_TASK) is noop_handler
        assert registry.has(ActionType.CREATE_TASK)

    @pytest.mark.parametrize("spelling", ["Create Task", "CreateTask", "create_task", "CREATE TASK"])
    def test_lookup_accepts_spellings(self, spelling: str) -> None:
        """Test display, compact and snake-case spellings resolve to the same handler."""
        registry = ActionRegistry()
        registry.register(ActionType.CREATE_TASK, noop_handler)

        assert registry.get(spelling) is noop_handler
        assert registry.has(spelling)

    def test_register_replaces_existing(self) -> None:
        """Test registering twice keeps the latest handler."""
        registry = ActionRegistry()
        registry.register("Send SMS", send_sms)
        registry.register("SendSMS", noop_handler)

        assert registry.get(ActionType.SEND_SMS) is noop_handler
        assert registry.list_action_types() == [ActionType.SEND_SMS]

    def test_register_unknown_type(self) -> None:
        """Test registering an unknown action type raises KeyError."""
        registry = ActionRegistry()

        with pytest.raises(KeyError, match="Unknown action type"):
            registry.register("Send Fax", noop_handler)

    def test_get_unregistered(self) -> None:
        """Test getting a known type without a handler raises KeyError."""
        registry = ActionRegistry()

        with pytest.raises(KeyError, match="No handler registered"):
            registry.get(ActionType.ADD_TAG)

    def test_has_unknown_type(self) -> None:
        """Test has() is False for unknown and empty types."""
        registry = default_registry()

        assert not registry.has("Send Fax")
        assert not registry.has("")

    def test_unregister(self) -> None:
        """Test removing a handler."""
        registry = default_registry()
        registry.unregister("Update Field")

        assert not registry.has(ActionType.UPDATE_FIELD)
        with pytest.raises(KeyError):
            registry.unregister("Update Field")


@pytest.mark.unit
class TestDefaultRegistry:
    """Tests for default_registry."""

    def test_all_builtin_handlers(self) -> None:
        """Test every action type maps to its built-in handler."""
        registry = default_registry()

        assert set(registry.list_action_types()) == set(ActionType)
        assert registry.get(ActionType.CREATE_TASK) is create_task
        assert registry.get(ActionType.SEND_EMAIL) is send_email
        assert registry.get(ActionType.SEND_SMS) is send_sms
        assert registry.get(ActionType.UPDATE_FIELD) is update_field
        assert registry.get(ActionType.ADD_TAG) is add_tag

    def test_independent_instances(self) -> None:
        """Test each call returns a fresh registry."""
        first = default_registry()
        second = default_registry()
        first.unregister(ActionType.ADD_TAG)

        assert second.has(ActionType.ADD_TAG)
