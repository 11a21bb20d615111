"""Action registry for dispatching workflow steps to handlers.

This module provides a registry mapping each :class:`ActionType` to the async
handler that performs it.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from crm_workflows.actions.communications import send_email, send_sms
from crm_workflows.actions.fields import update_field
from crm_workflows.actions.tags import add_tag
from crm_workflows.actions.tasks import create_task
from crm_workflows.core.types import ActionType

if TYPE_CHECKING:
    from crm_workflows.core.protocols import ActionHandler

__all__ = ["ActionRegistry", "default_registry"]


class ActionRegistry:
    """Registry for storing and retrieving step action handlers.

    Attributes:
        _handlers: Map of action types to their handlers.
    """

    def __init__(self) -> None:
        """Initialize an empty action registry."""
        self._handlers: dict[ActionType, ActionHandler] = {}

    def register(self, action_type: ActionType | str, handler: ActionHandler) -> None:
        """Register the handler for an action type, replacing any previous one.

        Args:
            action_type: The action type, as a member or any accepted spelling.
            handler: The async handler.

        Raises:
            KeyError: If the action type is not recognised.

        Example:
            >>> registry = ActionRegistry()
            >>> registry.register(ActionType.CREATE_TASK, create_task)
        """
        self._handlers[self._resolve(action_type)] = handler

    def get(self, action_type: ActionType | str) -> ActionHandler:
        """Retrieve the handler for an action type.

        Args:
            action_type: The action type, as a member or any accepted spelling.

        Returns:
            The registered handler.

        Raises:
            KeyError: If the action type is unknown or has no handler.
        """
        resolved = self._resolve(action_type)
        if resolved not in self._handlers:
            msg = f"No handler registered for action type '{resolved}'"
            raise KeyError(msg)
        return self._handlers[resolved]

    def has(self, action_type: ActionType | str) -> bool:
        """Check whether a handler is registered for an action type."""
        member = ActionType.parse(action_type)
        return member is not None and member in self._handlers

    def unregister(self, action_type: ActionType | str) -> None:
        """Remove the handler for an action type.

        Args:
            action_type: The action type.

        Raises:
            KeyError: If no handler is registered for it.
        """
        resolved = self._resolve(action_type)
        if resolved not in self._handlers:
            msg = f"No handler registered for action type '{resolved}'"
            raise KeyError(msg)
        del self._handlers[resolved]

    def list_action_types(self) -> list[ActionType]:
        """List the action types that have a handler."""
        return list(self._handlers)

    @staticmethod
    def _resolve(action_type: ActionType | str) -> ActionType:
        member = ActionType.parse(action_type)
        if member is None:
            msg = f"Unknown action type '{action_type}'"
            raise KeyError(msg)
        return member


def default_registry() -> ActionRegistry:
    """Build a registry with the built-in handler for every action type.

    Returns:
        A new registry; callers may register overrides on it.
    """
    registry = ActionRegistry()
    registry.register(ActionType.CREATE_TASK, create_task)
    registry.register(ActionType.SEND_EMAIL, send_email)
    registry.register(ActionType.SEND_SMS, send_sms)
    registry.register(ActionType.UPDATE_FIELD, update_field)
    registry.register(ActionType.ADD_TAG, add_tag)
    return registry
