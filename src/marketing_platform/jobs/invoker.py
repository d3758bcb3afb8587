"""
Workflow execution invokers.

Running a workflow's steps is the workflow engine's job; the core only hands
it a (workflow, contact) pair.
"""

from typing import Protocol

import httpx

from marketing_platform.config import Settings
from marketing_platform.shared.exceptions import AppError
from marketing_platform.shared.logging import get_logger

logger = get_logger(__name__)


class WorkflowInvocationError(AppError):
    """The workflow engine rejected or could not receive an execution."""

    def __init__(self, message: str, workflow_id: int, contact_id: int) -> None:
        super().__init__(message, "WORKFLOW_INVOCATION_FAILED")
        self.workflow_id = workflow_id
        self.contact_id = contact_id


class WorkflowInvoker(Protocol):
    """Protocol for starting a workflow execution."""

    async def execute(self, workflow_id: int, contact_id: int) -> None:
        """Run a workflow for a contact."""
        ...


class LoggingWorkflowInvoker:
    """Invoker used when no workflow engine is configured."""

    async def execute(self, workflow_id: int, contact_id: int) -> None:
        logger.info(
            "Workflow execution requested (no engine configured)",
            extra={"workflow_id": workflow_id, "contact_id": contact_id},
        )


class HttpWorkflowInvoker:
    """Posts executions to a workflow engine over HTTP."""

    def __init__(self, url: str, timeout: float = 10.0) -> None:
        """Initialize invoker.

        Args:
            url: Workflow engine execution endpoint.
            timeout: HTTP request timeout in seconds.
        """
        self._url = url
        self._timeout = timeout
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def execute(self, workflow_id: int, contact_id: int) -> None:
        """Request execution of a workflow for a contact.

        Raises:
            WorkflowInvocationError: If the engine is unreachable or answers
                with an error status.
        """
        client = await self._get_client()
        try:
            response = await client.post(
                self._url,
                json={"workflowId": workflow_id, "contactId": contact_id},
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise WorkflowInvocationError(
                f"Workflow engine returned {exc.response.status_code}",
                workflow_id=workflow_id,
                contact_id=contact_id,
            ) from exc
        except httpx.HTTPError as exc:
            raise WorkflowInvocationError(
                f"Workflow engine unreachable: {exc}",
                workflow_id=workflow_id,
                contact_id=contact_id,
            ) from exc

        logger.info(
            "Workflow execution dispatched",
            extra={"workflow_id": workflow_id, "contact_id": contact_id},
        )


def build_workflow_invoker(settings: Settings) -> WorkflowInvoker:
    """Pick the invoker for the configured engine."""
    if settings.workflow_engine_url:
        return HttpWorkflowInvoker(
            settings.workflow_engine_url,
            timeout=settings.workflow_engine_timeout_seconds,
        )
    return LoggingWorkflowInvoker()
