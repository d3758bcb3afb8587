"""
Background job queue and workflow execution.
"""

from marketing_platform.jobs.queue import (
    InProcessJobQueue,
    JobDescriptor,
    JobQueue,
    execute_workflow_job,
    trigger_event_job,
)

__all__ = [
    "InProcessJobQueue",
    "JobDescriptor",
    "JobQueue",
    "execute_workflow_job",
    "trigger_event_job",
]
