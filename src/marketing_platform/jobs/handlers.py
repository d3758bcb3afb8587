"""
Job handlers wired into the job queue at startup.
"""

from marketing_platform.jobs.invoker import WorkflowInvoker
from marketing_platform.jobs.queue import (
    JOB_EXECUTE_WORKFLOW,
    JOB_TRIGGER_EVENT,
    JobDescriptor,
    JobHandler,
    JobQueue,
)
from marketing_platform.shared.database import DatabaseManager
from marketing_platform.workflows.models import EventType
from marketing_platform.workflows.triggers import EventTriggerService


def build_job_handlers(
    queue: JobQueue,
    invoker: WorkflowInvoker,
    db: DatabaseManager,
) -> dict[str, JobHandler]:
    """Build the job name to handler mapping.

    Args:
        queue: Queue that triggered work is scheduled back onto.
        invoker: Workflow execution invoker.
        db: Database manager providing a session per job.
    """

    async def execute_workflow(job: JobDescriptor) -> None:
        await invoker.execute(
            int(job.payload["workflow_id"]),
            int(job.payload["contact_id"]),
        )

    async def trigger_event(job: JobDescriptor) -> None:
        async with db.session() as session:
            service = EventTriggerService(session=session, job_queue=queue)
            await service.trigger_event(
                EventType(job.payload["event_type"]),
                int(job.payload["contact_id"]),
                job.payload.get("event_data") or {},
            )

    return {
        JOB_EXECUTE_WORKFLOW: execute_workflow,
        JOB_TRIGGER_EVENT: trigger_event,
    }
