"""Workflow execution engine and schedulers."""

from __future__ import annotations

from crm_workflows.engine.executor import TriggerMatcher, WorkflowExecutor
from crm_workflows.engine.scheduler import InMemoryScheduler, LoggingScheduler

__all__ = [
    "InMemoryScheduler",
    "LoggingScheduler",
    "TriggerMatcher",
    "WorkflowExecutor",
]
