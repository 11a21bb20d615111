"""Exception hierarchy for crm-workflows."""

from __future__ import annotations

__all__ = (
    "EntityNotFoundError",
    "HandlerError",
    "NotFoundError",
    "StepNotFoundError",
    "TagNotFoundError",
    "WorkflowNotFoundError",
    "WorkflowValidationError",
    "WorkflowsError",
)


class WorkflowsError(Exception):
    """Base exception for all crm-workflows errors.

    All exceptions raised by crm-workflows inherit from this class, so callers
    can catch every workflow-related error with a single except clause.
    """


class NotFoundError(WorkflowsError):
    """Raised when a record the engine depends on does not exist.

    The HTTP layer maps every subclass to a 404 response.
    """


class WorkflowNotFoundError(NotFoundError):
    """Raised when a workflow id does not resolve.

    Attributes:
        workflow_id: The id that was looked up.
    """

    def __init__(self, workflow_id: int) -> None:
        """Initialize the exception with the missing workflow id.

        Args:
            workflow_id: The id that was looked up.
        """
        self.workflow_id = workflow_id
        super().__init__("Workflow not found")


class StepNotFoundError(NotFoundError):
    """Raised when a workflow step id does not resolve.

    Attributes:
        step_id: The id that was looked up.
        workflow_id: The owning workflow, when the lookup was scoped to one.
    """

    def __init__(self, step_id: int, workflow_id: int | None = None) -> None:
        """Initialize the exception with step details.

        Args:
            step_id: The id that was looked up.
            workflow_id: The owning workflow, when the lookup was scoped to one.
        """
        self.step_id = step_id
        self.workflow_id = workflow_id
        msg = f"Workflow step with ID {step_id} not found"
        if workflow_id is not None:
            msg += f" in workflow {workflow_id}"
        super().__init__(msg)


class EntityNotFoundError(NotFoundError):
    """Raised when the target Lead, Contact or Transaction does not exist.

    Attributes:
        entity_type: The entity kind.
        entity_id: The id that was looked up.
    """

    def __init__(self, entity_type: str, entity_id: int) -> None:
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} with ID {entity_id} not found")


class TagNotFoundError(NotFoundError):
    """Raised by the add-tag action when the tag does not exist.

    Attributes:
        tag_id: The id that was looked up.
    """

    def __init__(self, tag_id: int) -> None:
        self.tag_id = tag_id
        super().__init__(f"Tag with ID {tag_id} not found")


class WorkflowValidationError(WorkflowsError):
    """Raised when a request or a step's parameters are invalid.

    Covers entity type mismatches, missing action parameters, workflows without
    steps and inconsistent step orders.

    Attributes:
        errors: List of validation error messages.
    """

    def __init__(self, *errors: str) -> None:
        """Initialize the exception with validation errors.

        Args:
            *errors: One or more validation error messages.
        """
        self.errors = list(errors)
        super().__init__("; ".join(errors))


class HandlerError(WorkflowsError):
    """Raised when a step's action handler fails.

    This wraps the underlying exception and is recorded on the step outcome
    instead of propagating out of the executor.

    Attributes:
        step_id: The id of the step that failed.
        cause: The underlying exception that caused the failure.
    """

    def __init__(self, step_id: int, cause: Exception | None = None) -> None:
        """Initialize the exception with step execution details.

        Args:
            step_id: The id of the step that failed.
            cause: The underlying exception that caused the failure, if any.
        """
        self.step_id = step_id
        self.cause = cause
        msg = f"Workflow step {step_id} failed"
        if cause:
            msg += f": {cause}"
        super().__init__(msg)
