"""Litestar plugin for workflow integration.

This module provides the WorkflowPlugin, which wires the workflow executor,
the definition service and the REST API into a Litestar application.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

from litestar.di import Provide
from litestar.plugins import InitPluginProtocol
from sqlalchemy.ext.asyncio import AsyncSession  # noqa: TC002 - needed for DI

from crm_workflows.actions.registry import ActionRegistry, default_registry
from crm_workflows.db.service import WorkflowService
from crm_workflows.db.stores import SQLAlchemyWorkflowStores
from crm_workflows.engine.executor import WorkflowExecutor
from crm_workflows.engine.scheduler import LoggingScheduler
from crm_workflows.log import configure_logging

if TYPE_CHECKING:
    from litestar.config.app import AppConfig

    from crm_workflows.core.protocols import Scheduler

__all__ = ["WorkflowPlugin", "WorkflowPluginConfig"]


@dataclass
class WorkflowPluginConfig:
    """Configuration for the WorkflowPlugin.

    The plugin expects the application to provide an ``AsyncSession`` under
    the ``db_session`` dependency key, as advanced-alchemy's
    ``SQLAlchemyPlugin`` does.

    Attributes:
        registry: Optional pre-configured ActionRegistry. If not provided,
            the built-in handlers are registered.
        scheduler: Receives delayed steps. Defaults to a LoggingScheduler.
        clock: Returns the current time. Defaults to UTC wall-clock time.
        enable_api: Whether to enable the REST API endpoints. Defaults to True.
        api_path_prefix: URL path prefix for all workflow API endpoints.
            Defaults to "/workflows".
        api_guards: List of Litestar guards to apply to all workflow API endpoints.
        api_tags: OpenAPI tags to apply to workflow API endpoints.
        include_api_in_schema: Whether to include API endpoints in OpenAPI schema.
            Defaults to True.
        configure_logging: Whether to set up structlog when the app initialises.
        log_level: Root log level used when ``configure_logging`` is set.
        json_logs: Render JSON log lines instead of console output.
    """

    registry: ActionRegistry | None = None
    scheduler: Scheduler | None = None
    clock: Callable[[], datetime] | None = None
    enable_api: bool = True
    api_path_prefix: str = "/workflows"
    api_guards: list[Any] = field(default_factory=list)
    api_tags: list[str] = field(default_factory=lambda: ["Workflows"])
    include_api_in_schema: bool = True
    configure_logging: bool = False
    log_level: str = "INFO"
    json_logs: bool = False


class WorkflowPlugin(InitPluginProtocol):
    """Litestar plugin for CRM workflow automation.

    Provides ``workflow_executor`` and ``workflow_service`` dependencies, both
    bound to the request's ``db_session``, and registers the REST API.

    Example:
        Basic usage with advanced-alchemy's SQLAlchemy plugin::

            from advanced_alchemy.extensions.litestar import SQLAlchemyAsyncConfig, SQLAlchemyPlugin
            from litestar import Litestar

            from crm_workflows import WorkflowPlugin, WorkflowPluginConfig

            app = Litestar(
                plugins=[
                    SQLAlchemyPlugin(config=SQLAlchemyAsyncConfig(connection_string="sqlite+aiosqlite:///crm.db")),
                    WorkflowPlugin(config=WorkflowPluginConfig(configure_logging=True)),
                ]
            )

        Running a workflow from your own route handler::

            @post("/leads/{lead_id:int}/welcome")
            async def welcome(lead_id: int, workflow_executor: WorkflowExecutor) -> dict:
                result = await workflow_executor.execute(7, "Lead", lead_id, acting_user_id=1)
                return {"processed_steps": result.executed_step_ids}
    """

    __slots__ = ("_config", "_registry", "_scheduler")

    def __init__(self, config: WorkflowPluginConfig | None = None) -> None:
        """Initialize the plugin.

        Args:
            config: Optional configuration for the plugin.
        """
        self._config = config or WorkflowPluginConfig()
        self._registry: ActionRegistry | None = None
        self._scheduler: Scheduler | None = None

    @property
    def registry(self) -> ActionRegistry:
        """Get the action registry.

        Raises:
            RuntimeError: If accessed before plugin initialization.
        """
        if self._registry is None:
            msg = "WorkflowPlugin has not been initialized. Access registry after app startup."
            raise RuntimeError(msg)
        return self._registry

    @property
    def scheduler(self) -> Scheduler:
        """Get the scheduler delayed steps are handed to.

        Raises:
            RuntimeError: If accessed before plugin initialization.
        """
        if self._scheduler is None:
            msg = "WorkflowPlugin has not been initialized. Access scheduler after app startup."
            raise RuntimeError(msg)
        return self._scheduler

    def create_executor(self, session: AsyncSession) -> WorkflowExecutor:
        """Build an executor over a session using the plugin's registry and scheduler."""
        return WorkflowExecutor(
            SQLAlchemyWorkflowStores(session).as_stores(),
            registry=self.registry,
            scheduler=self.scheduler,
            clock=self._config.clock,
        )

    def on_app_init(self, app_config: AppConfig) -> AppConfig:
        """Initialize the plugin when the Litestar app starts.

        This method:
        1. Optionally configures structlog
        2. Creates or uses the provided ActionRegistry and Scheduler
        3. Adds dependency providers to the app config
        4. Optionally registers REST API controllers and exception handlers

        Args:
            app_config: The Litestar application configuration.

        Returns:
            The modified application configuration.
        """
        if self._config.configure_logging:
            configure_logging(self._config.log_level, json_logs=self._config.json_logs)

        self._registry = self._config.registry or default_registry()
        self._scheduler = self._config.scheduler or LoggingScheduler()

        def provide_workflow_executor(db_session: AsyncSession) -> WorkflowExecutor:
            return self.create_executor(db_session)

        def provide_workflow_service(db_session: AsyncSession) -> WorkflowService:
            return WorkflowService(db_session)

        app_config.dependencies["workflow_executor"] = Provide(provide_workflow_executor, sync_to_thread=False)
        app_config.dependencies["workflow_service"] = Provide(provide_workflow_service, sync_to_thread=False)

        if self._config.enable_api:
            from litestar import Router

            from crm_workflows.web.controllers import WorkflowController, WorkflowStepController
            from crm_workflows.web.exceptions import EXCEPTION_HANDLERS

            workflow_router = Router(
                path=self._config.api_path_prefix,
                route_handlers=[WorkflowController, WorkflowStepController],
                guards=self._config.api_guards,
                tags=self._config.api_tags,
                include_in_schema=self._config.include_api_in_schema,
            )
            app_config.route_handlers.append(workflow_router)

            for exc_class, handler in EXCEPTION_HANDLERS.items():
                app_config.exception_handlers.setdefault(exc_class, handler)  # type: ignore[arg-type]

        return app_config
