"""Core type definitions for crm-workflows.

This module defines the enums shared by the executor, the action handlers and
the persistence layer.
"""

from __future__ import annotations

from enum import StrEnum, auto

__all__ = [
    "ActionType",
    "Channel",
    "EntityType",
    "StepStatus",
]


class EntityType(StrEnum):
    """CRM record kinds a workflow can be bound to.

    Attributes:
        LEAD: A prospective client.
        CONTACT: An established client record.
        TRANSACTION: A property deal.
    """

    LEAD = "Lead"
    CONTACT = "Contact"
    TRANSACTION = "Transaction"


class ActionType(StrEnum):
    """Action a workflow step performs.

    Values are the display strings stored in the ``workflow_steps`` table.

    Attributes:
        CREATE_TASK: Create a follow-up task.
        SEND_EMAIL: Queue an outbound email communication.
        SEND_SMS: Queue an outbound SMS communication.
        UPDATE_FIELD: Set one column on the target entity.
        ADD_TAG: Attach a tag to the target entity.
    """

    CREATE_TASK = "Create Task"
    SEND_EMAIL = "Send Email"
    SEND_SMS = "Send SMS"
    UPDATE_FIELD = "Update Field"
    ADD_TAG = "Add Tag"

    @classmethod
    def parse(cls, value: str | None) -> ActionType | None:
        """Resolve a stored action type, accepting compact spellings.

        ``"Create Task"``, ``"CreateTask"`` and ``"create_task"`` all resolve to
        :attr:`CREATE_TASK`.

        Args:
            value: The raw action type.

        Returns:
            The matching member, or None when the value is unknown.

        Example:
            >>> ActionType.parse("SendSMS")
            <ActionType.SEND_SMS: 'Send SMS'>
        """
        if not value:
            return None
        key = value.replace(" ", "").replace("_", "").lower()
        for member in cls:
            if member.value.replace(" ", "").lower() == key:
                return member
        return None


class Channel(StrEnum):
    """Communication channel written to ``communications.communication_type``."""

    EMAIL = "Email"
    SMS = "SMS"


class StepStatus(StrEnum):
    """Outcome of a single workflow step within one execution.

    Attributes:
        SUCCEEDED: The handler ran and returned.
        SCHEDULED: The step has a delay and was handed to the scheduler.
        SKIPPED: The action type has no registered handler.
        FAILED: The handler raised; the error is on the outcome.
    """

    SUCCEEDED = auto()
    SCHEDULED = auto()
    SKIPPED = auto()
    FAILED = auto()
