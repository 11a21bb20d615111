"""REST API for managing and running workflows."""

from __future__ import annotations

from crm_workflows.web.controllers import WorkflowController, WorkflowStepController
from crm_workflows.web.exceptions import EXCEPTION_HANDLERS

__all__ = ["EXCEPTION_HANDLERS", "WorkflowController", "WorkflowStepController"]
