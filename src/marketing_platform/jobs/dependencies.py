"""
FastAPI dependencies for the job queue.
"""

from fastapi import Request

from marketing_platform.jobs.queue import JobQueue


def get_job_queue(request: Request) -> JobQueue:
    """Job queue created by the application lifespan."""
    queue = getattr(request.app.state, "job_queue", None)
    if queue is None:
        raise RuntimeError("Job queue not initialized")
    return queue
