"""Database persistence layer for crm-workflows.

This module provides SQLAlchemy models, repositories, the store
implementation the executor runs on, and the workflow definition service.
"""

from __future__ import annotations

from crm_workflows.db.models import (
    CommunicationModel,
    CommunicationTemplateModel,
    ContactModel,
    LeadModel,
    TagModel,
    TaskModel,
    TransactionModel,
    WorkflowModel,
    WorkflowStepModel,
    contact_tags,
    lead_tags,
)
from crm_workflows.db.repositories import (
    CommunicationRepository,
    CommunicationTemplateRepository,
    TagRepository,
    TaskRepository,
    WorkflowRepository,
    WorkflowStepRepository,
)
from crm_workflows.db.service import WorkflowService
from crm_workflows.db.stores import SQLAlchemyWorkflowStores

__all__ = [
    "CommunicationModel",
    "CommunicationRepository",
    "CommunicationTemplateModel",
    "CommunicationTemplateRepository",
    "ContactModel",
    "LeadModel",
    "SQLAlchemyWorkflowStores",
    "TagModel",
    "TagRepository",
    "TaskModel",
    "TaskRepository",
    "TransactionModel",
    "WorkflowModel",
    "WorkflowRepository",
    "WorkflowService",
    "WorkflowStepModel",
    "WorkflowStepRepository",
    "contact_tags",
    "lead_tags",
]
