"""Built-in step actions and the registry that dispatches to them."""

from __future__ import annotations

from crm_workflows.actions.communications import send_email, send_sms
from crm_workflows.actions.fields import update_field
from crm_workflows.actions.registry import ActionRegistry, default_registry
from crm_workflows.actions.tags import add_tag
from crm_workflows.actions.tasks import create_task

__all__ = [
    "ActionRegistry",
    "add_tag",
    "create_task",
    "default_registry",
    "send_email",
    "send_sms",
    "update_field",
]
