"""Add-tag step action."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from crm_workflows.core.types import EntityType
from crm_workflows.exceptions import TagNotFoundError, WorkflowValidationError

if TYPE_CHECKING:
    from crm_workflows.core.context import StepContext

__all__ = ["TAGGABLE_ENTITIES", "add_tag"]

TAGGABLE_ENTITIES = frozenset({EntityType.LEAD, EntityType.CONTACT})


async def add_tag(context: StepContext) -> dict[str, Any]:
    """Attach a tag to the target lead or contact.

    The tag must exist whatever the entity kind. Transactions carry no tags, so
    for them the action is a no-op. An existing association is left alone.

    Args:
        context: The step being run.

    Returns:
        The tag id and whether a new association row was written.

    Raises:
        WorkflowValidationError: If ``tag_id`` is missing.
        TagNotFoundError: If the tag does not exist.
    """
    tag_id = context.details.get("tag_id")
    if not tag_id:
        raise WorkflowValidationError("tag_id is required in action_details")

    tags = context.stores.tags
    if await tags.get_tag(tag_id) is None:
        raise TagNotFoundError(tag_id)

    if context.entity_type not in TAGGABLE_ENTITIES:
        return {"tag_id": tag_id, "added": False}

    if await tags.has_association(context.entity_type, context.entity_id, tag_id):
        return {"tag_id": tag_id, "added": False}

    await tags.add_association(context.entity_type, context.entity_id, tag_id)
    return {"tag_id": tag_id, "added": True}
