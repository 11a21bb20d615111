"""Create-task step action."""

from __future__ import annotations

from datetime import timedelta
from typing import TYPE_CHECKING, Any

from crm_workflows.core.types import EntityType
from crm_workflows.exceptions import WorkflowValidationError

if TYPE_CHECKING:
    from crm_workflows.core.context import StepContext

__all__ = ["TASK_RELATION_FIELDS", "create_task"]

TASK_RELATION_FIELDS: dict[EntityType, str] = {
    EntityType.LEAD: "related_lead_id",
    EntityType.CONTACT: "related_contact_id",
    EntityType.TRANSACTION: "related_transaction_id",
}


async def create_task(context: StepContext) -> dict[str, Any]:
    """Create a pending task linked to the target entity.

    Recognised ``action_details`` keys: ``task_title`` (required),
    ``description``, ``due_days``, ``priority`` and ``assigned_user_id``.

    Args:
        context: The step being run.

    Returns:
        ``{"task_id": ...}`` for the created task.

    Raises:
        WorkflowValidationError: If the title is missing or ``due_days`` is not an integer.
    """
    details = context.details
    title = details.get("task_title")
    if not title:
        raise WorkflowValidationError("Task title is required in action_details")

    due_date = None
    due_days = details.get("due_days")
    if due_days:
        try:
            days = int(due_days)
        except (TypeError, ValueError) as e:
            msg = f"due_days must be an integer, got {due_days!r}"
            raise WorkflowValidationError(msg) from e
        due_date = context.now + timedelta(days=days)

    fields: dict[str, Any] = {
        "task_title": title,
        "description": details.get("description") or "",
        "due_date": due_date,
        "status": "Pending",
        "priority": details.get("priority") or "Normal",
        "assigned_user_id": details.get("assigned_user_id") or context.acting_user_id,
        "created_by_user_id": context.acting_user_id,
        "workflow_step_id": context.step.id,
        TASK_RELATION_FIELDS[context.entity_type]: context.entity_id,
    }
    task_id = await context.stores.tasks.create_task(fields)
    return {"task_id": task_id}
