"""Send-email and send-SMS step actions.

Both actions queue an outbound communication record; delivery happens
elsewhere. A resolvable ``template_id`` overrides the literal subject and body.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from crm_workflows.core.types import Channel, EntityType
from crm_workflows.exceptions import WorkflowValidationError

if TYPE_CHECKING:
    from crm_workflows.core.context import StepContext

__all__ = ["COMMUNICATION_RELATION_FIELDS", "send_email", "send_sms"]

# Transactions have no communication link column.
COMMUNICATION_RELATION_FIELDS: dict[EntityType, str] = {
    EntityType.LEAD: "lead_id",
    EntityType.CONTACT: "contact_id",
}


async def send_email(context: StepContext) -> dict[str, Any]:
    """Queue an outbound email to the target entity."""
    return await _queue_communication(context, Channel.EMAIL)


async def send_sms(context: StepContext) -> dict[str, Any]:
    """Queue an outbound SMS to the target entity."""
    return await _queue_communication(context, Channel.SMS)


async def _queue_communication(context: StepContext, channel: Channel) -> dict[str, Any]:
    details = context.step.action_details
    if not isinstance(details, dict):
        raise WorkflowValidationError("action_details are required for communication actions")

    subject = details.get("subject") or ""
    message_content = details.get("message_content") or ""
    template_id = details.get("template_id")
    template = await context.stores.templates.get_template(template_id) if template_id else None

    if template is not None:
        if template.subject:
            subject = template.subject
        if template.body_content:
            message_content = template.body_content

    fields: dict[str, Any] = {
        "communication_type": channel.value,
        "direction": "Outbound",
        "status": "Scheduled",
        "subject": subject,
        "message_content": message_content,
        "timestamp": context.now,
        "scheduled_time": context.now,
        "user_id": context.acting_user_id,
        "template_id": template.id if template is not None else None,
    }
    relation_field = COMMUNICATION_RELATION_FIELDS.get(context.entity_type)
    if relation_field is not None:
        fields[relation_field] = context.entity_id

    communication_id = await context.stores.communications.create_communication(fields)
    return {"communication_id": communication_id, "communication_type": channel.value}
