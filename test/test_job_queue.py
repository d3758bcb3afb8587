"""
Tests for the in-process job queue and job handlers.
"""

import asyncio
import json
from contextlib import asynccontextmanager

import httpx
import pytest

from marketing_platform.config import Settings
from marketing_platform.jobs.handlers import build_job_handlers
from marketing_platform.jobs.invoker import (
    HttpWorkflowInvoker,
    LoggingWorkflowInvoker,
    WorkflowInvocationError,
    build_workflow_invoker,
)
from marketing_platform.jobs.queue import (
    JOB_EXECUTE_WORKFLOW,
    JOB_TRIGGER_EVENT,
    InProcessJobQueue,
    JobDescriptor,
    execute_workflow_job,
    trigger_event_job,
)
from marketing_platform.shared.exceptions import JobQueueFullError
from marketing_platform.workflows.models import EventType


class RecordingInvoker:
    def __init__(self) -> None:
        self.calls: list[tuple[int, int]] = []

    async def execute(self, workflow_id: int, contact_id: int) -> None:
        self.calls.append((workflow_id, contact_id))


class TestJobDescriptors:
    def test_execute_workflow_job(self) -> None:
        job = execute_workflow_job(7, 42)

        assert job.name == JOB_EXECUTE_WORKFLOW
        assert job.payload == {"workflow_id": 7, "contact_id": 42}
        assert job.job_id

    def test_trigger_event_job_copies_data(self) -> None:
        data = {"keyword": "JOIN"}

        job = trigger_event_job(EventType.KEYWORD_RECEIVED, 42, data)
        data["keyword"] = "changed"

        assert job.name == JOB_TRIGGER_EVENT
        assert job.payload["event_type"] == "KeywordReceived"
        assert job.payload["event_data"] == {"keyword": "JOIN"}


class TestInProcessJobQueue:
    """Tests for InProcessJobQueue."""

    @pytest.mark.asyncio
    async def test_runs_registered_handler(self) -> None:
        seen: list[JobDescriptor] = []

        async def handler(job: JobDescriptor) -> None:
            seen.append(job)

        queue = InProcessJobQueue({"demo": handler}, workers=2)
        await queue.start()
        try:
            await queue.enqueue(JobDescriptor(name="demo", payload={"n": 1}))
            await queue.enqueue(JobDescriptor(name="demo", payload={"n": 2}))
            await asyncio.wait_for(queue.join(), timeout=2)
        finally:
            await queue.stop()

        assert sorted(job.payload["n"] for job in seen) == [1, 2]
        assert queue.running is False

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_stop_workers(self) -> None:
        seen: list[int] = []

        async def handler(job: JobDescriptor) -> None:
            if job.payload["n"] == 1:
                raise RuntimeError("boom")
            seen.append(job.payload["n"])

        queue = InProcessJobQueue({"demo": handler}, workers=1)
        await queue.start()
        try:
            await queue.enqueue(JobDescriptor(name="demo", payload={"n": 1}))
            await queue.enqueue(JobDescriptor(name="demo", payload={"n": 2}))
            await asyncio.wait_for(queue.join(), timeout=2)
        finally:
            await queue.stop()

        assert seen == [2]

    @pytest.mark.asyncio
    async def test_unknown_job_is_dropped(self) -> None:
        queue = InProcessJobQueue(workers=1)
        await queue.start()
        try:
            await queue.enqueue(JobDescriptor(name="nobody.handles.this"))
            await asyncio.wait_for(queue.join(), timeout=2)
        finally:
            await queue.stop()

        assert queue.pending == 0

    @pytest.mark.asyncio
    async def test_full_queue_rejects(self) -> None:
        queue = InProcessJobQueue(maxsize=1)

        await queue.enqueue(JobDescriptor(name="demo"))
        with pytest.raises(JobQueueFullError) as exc_info:
            await queue.enqueue(JobDescriptor(name="demo"))

        assert exc_info.value.code == "JOB_QUEUE_FULL"
        assert queue.pending == 1

    @pytest.mark.asyncio
    async def test_enqueue_does_not_wait_for_handler(self) -> None:
        release = asyncio.Event()

        async def handler(job: JobDescriptor) -> None:
            await release.wait()

        queue = InProcessJobQueue({"slow": handler}, workers=1)
        await queue.start()
        try:
            await asyncio.wait_for(queue.enqueue(JobDescriptor(name="slow")), timeout=1)
            release.set()
            await asyncio.wait_for(queue.join(), timeout=2)
        finally:
            await queue.stop()


class TestJobHandlers:
    """Tests for build_job_handlers."""

    @pytest.mark.asyncio
    async def test_execute_workflow_calls_invoker(self, job_queue) -> None:
        invoker = RecordingInvoker()
        handlers = build_job_handlers(job_queue, invoker, db=None)  # type: ignore[arg-type]

        await handlers[JOB_EXECUTE_WORKFLOW](execute_workflow_job(7, 42))

        assert invoker.calls == [(7, 42)]

    @pytest.mark.asyncio
    async def test_trigger_event_resolves_workflows(
        self, job_queue, db_session, make_contact, make_workflow
    ) -> None:
        class SessionProvider:
            @asynccontextmanager
            async def session(self):
                yield db_session

        contact = await make_contact("tenant-a", phone_number="+1555")
        workflow = await make_workflow(
            "tenant-a", '{"eventType": "Custom", "customEventName": "x"}'
        )
        handlers = build_job_handlers(job_queue, RecordingInvoker(), SessionProvider())  # type: ignore[arg-type]

        await handlers[JOB_TRIGGER_EVENT](
            trigger_event_job(EventType.CUSTOM, contact.id, {"customEventName": "x"})
        )

        assert job_queue.executions() == [(workflow.id, contact.id)]


class TestWorkflowInvokers:
    """Tests for workflow invokers."""

    def test_build_without_engine_logs_only(self) -> None:
        assert isinstance(build_workflow_invoker(Settings(workflow_engine_url="")), LoggingWorkflowInvoker)

    def test_build_with_engine_url(self) -> None:
        invoker = build_workflow_invoker(Settings(workflow_engine_url="http://engine/execute"))

        assert isinstance(invoker, HttpWorkflowInvoker)

    @pytest.mark.asyncio
    async def test_http_invoker_posts_execution(self) -> None:
        requests: list[httpx.Request] = []

        def respond(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(202)

        invoker = HttpWorkflowInvoker("http://engine/execute")
        invoker._client = httpx.AsyncClient(transport=httpx.MockTransport(respond))
        try:
            await invoker.execute(7, 42)
        finally:
            await invoker.close()

        assert len(requests) == 1
        assert requests[0].url == "http://engine/execute"
        assert json.loads(requests[0].content) == {"workflowId": 7, "contactId": 42}

    @pytest.mark.asyncio
    async def test_http_invoker_wraps_error_status(self) -> None:
        invoker = HttpWorkflowInvoker("http://engine/execute")
        invoker._client = httpx.AsyncClient(
            transport=httpx.MockTransport(lambda request: httpx.Response(500))
        )
        try:
            with pytest.raises(WorkflowInvocationError) as exc_info:
                await invoker.execute(7, 42)
        finally:
            await invoker.close()

        assert exc_info.value.workflow_id == 7
        assert "500" in exc_info.value.message
