"""Update-field step action."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from crm_workflows.exceptions import WorkflowValidationError

if TYPE_CHECKING:
    from crm_workflows.core.context import StepContext

__all__ = ["update_field"]


async def update_field(context: StepContext) -> dict[str, Any]:
    """Set one column on the target entity.

    ``field_value`` only has to be present: null, empty string, zero and
    false are all written as given.

    Args:
        context: The step being run.

    Returns:
        The field name and the value written.

    Raises:
        WorkflowValidationError: If ``field_name`` is empty or ``field_value`` is absent.
    """
    details = context.details
    field_name = details.get("field_name")
    if not field_name or "field_value" not in details:
        raise WorkflowValidationError("field_name and field_value are required in action_details")

    value = details["field_value"]
    await context.stores.entities.update_field(
        context.entity_type,
        context.entity_id,
        field_name,
        value,
        context.now,
    )
    return {"field_name": field_name, "field_value": value}
