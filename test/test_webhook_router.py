"""
Tests for the webhook and event HTTP endpoints.
"""

from collections.abc import AsyncGenerator
from datetime import timedelta

import pytest
import pytest_asyncio
from fastapi import FastAPI
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from marketing_platform.config import Settings, get_settings
from marketing_platform.jobs.dependencies import get_job_queue
from marketing_platform.main import create_app
from marketing_platform.messages.models import MessageStatus
from marketing_platform.shared.database import get_db_session, utcnow
from marketing_platform.suppression.models import SuppressionRecord
from marketing_platform.webhooks import router as webhooks
from marketing_platform.webhooks.signature import compute_webhook_signature
from marketing_platform.workflows import router as events

TENANT_NUMBER = "+15005550006"


def _build_app(db_session: AsyncSession, job_queue, settings: Settings) -> FastAPI:
    app = FastAPI()
    app.include_router(webhooks.router)
    app.include_router(events.router)

    async def _session() -> AsyncGenerator[AsyncSession, None]:
        yield db_session

    app.dependency_overrides[get_db_session] = _session
    app.dependency_overrides[get_job_queue] = lambda: job_queue
    app.dependency_overrides[get_settings] = lambda: settings
    return app


@pytest_asyncio.fixture
async def client(db_session, job_queue, test_settings) -> AsyncGenerator[AsyncClient, None]:
    app = _build_app(db_session, job_queue, test_settings)
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
        yield c


class TestSmsWebhooks:
    """Tests for the Twilio-style SMS endpoints."""

    @pytest.mark.asyncio
    async def test_inbound_returns_empty_twiml(
        self, client, job_queue, make_phone_number, make_contact, make_workflow
    ) -> None:
        await make_phone_number(TENANT_NUMBER, "tenant-a")
        contact = await make_contact("tenant-a", phone_number="+15551230000")
        workflow = await make_workflow("tenant-a", '{"eventType": "KeywordReceived"}')

        resp = await client.post(
            "/webhooks/sms/inbound",
            data={"From": "+15551230000", "To": TENANT_NUMBER, "Body": "hi", "MessageSid": "SM1"},
        )

        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("application/xml")
        assert "<Response></Response>" in resp.text
        assert job_queue.executions() == [(workflow.id, contact.id)]

    @pytest.mark.asyncio
    async def test_inbound_bad_payload_is_acknowledged(self, client, job_queue) -> None:
        resp = await client.post("/webhooks/sms/inbound", data={"Body": "hi"})

        assert resp.status_code == 200
        assert job_queue.jobs == []

    @pytest.mark.asyncio
    async def test_status_callback(self, client, make_message) -> None:
        message = await make_message("tenant-a", "SM-9")

        resp = await client.post(
            "/webhooks/sms/status",
            data={"MessageSid": "SM-9", "MessageStatus": "delivered"},
        )

        assert resp.status_code == 200
        assert resp.json() == {"success": True}
        assert message.status == MessageStatus.DELIVERED

    @pytest.mark.asyncio
    async def test_status_for_unknown_message(self, client) -> None:
        resp = await client.post(
            "/webhooks/sms/status",
            data={"MessageSid": "nope", "MessageStatus": "delivered"},
        )

        assert resp.status_code == 200
        assert resp.json() == {"success": False}


class TestJsonWebhooks:
    """Tests for delivery and opt-out endpoints."""

    @pytest.mark.asyncio
    async def test_delivery_status(self, client, make_message) -> None:
        message = await make_message("tenant-a", "EXT-1")

        resp = await client.post(
            "/webhooks/delivery/EXT-1",
            json={"status": "failed", "errorMessage": "Unreachable"},
        )

        assert resp.json() == {"success": True}
        assert message.status == MessageStatus.FAILED
        assert message.error_message == "Unreachable"

    @pytest.mark.asyncio
    async def test_delivery_invalid_body(self, client) -> None:
        resp = await client.post("/webhooks/delivery/EXT-1", content=b"not json")

        assert resp.status_code == 200
        assert resp.json() == {"success": False}

    @pytest.mark.asyncio
    async def test_opt_out(self, client, db_session, make_contact) -> None:
        await make_contact("tenant-a", phone_number="+15550001")

        resp = await client.post(
            "/webhooks/opt-out",
            json={"phoneOrEmail": "+15550001", "source": "Carrier", "ownerId": "tenant-a"},
        )

        assert resp.json() == {"success": True}
        record = await db_session.scalar(select(SuppressionRecord))
        assert record.owner_id == "tenant-a"

    @pytest.mark.asyncio
    async def test_opt_out_unknown_identifier(self, client) -> None:
        resp = await client.post("/webhooks/opt-out", json={"phone_or_email": "x@example.com"})

        assert resp.status_code == 200
        assert resp.json() == {"success": False}


class TestWebhookSignature:
    """Tests for signature enforcement."""

    @pytest_asyncio.fixture
    async def signed_client(self, db_session, job_queue) -> AsyncGenerator[AsyncClient, None]:
        settings = Settings(webhook_secret="s3cret")
        app = _build_app(db_session, job_queue, settings)
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as c:
            yield c

    @pytest.mark.asyncio
    async def test_missing_signature_rejected(self, signed_client) -> None:
        resp = await signed_client.post(
            "/webhooks/sms/status",
            data={"MessageSid": "SM-1", "MessageStatus": "sent"},
        )

        assert resp.status_code == 403

    @pytest.mark.asyncio
    async def test_valid_signature_accepted(self, signed_client, make_message) -> None:
        await make_message("tenant-a", "SM-1")
        body = b"MessageSid=SM-1&MessageStatus=sent"

        resp = await signed_client.post(
            "/webhooks/sms/status",
            content=body,
            headers={
                "Content-Type": "application/x-www-form-urlencoded",
                "X-Webhook-Signature": compute_webhook_signature(body, "s3cret"),
            },
        )

        assert resp.status_code == 200
        assert resp.json() == {"success": True}


class TestEventEndpoints:
    """Tests for the /api/events endpoints."""

    @pytest.mark.asyncio
    async def test_trigger_queues_event(self, client, job_queue) -> None:
        resp = await client.post(
            "/api/events/trigger",
            json={"eventType": "TagAdded", "contactId": 5, "eventData": {"tagId": 3}},
        )

        assert resp.status_code == 202
        (job,) = job_queue.jobs
        assert job.payload == {
            "event_type": "TagAdded",
            "contact_id": 5,
            "event_data": {"tagId": 3},
        }

    @pytest.mark.asyncio
    async def test_trigger_rejects_unknown_event_type(self, client) -> None:
        resp = await client.post(
            "/api/events/trigger",
            json={"eventType": "Nonsense", "contactId": 5},
        )

        assert resp.status_code == 422

    @pytest.mark.asyncio
    async def test_custom_event(self, client, job_queue) -> None:
        resp = await client.post(
            "/api/events/custom",
            json={"eventName": "Purchased", "contactId": 5},
        )

        assert resp.status_code == 202
        assert job_queue.jobs[0].payload["event_data"] == {"customEventName": "Purchased"}

    @pytest.mark.asyncio
    async def test_keyword_endpoint(self, client, job_queue, make_contact, make_keyword) -> None:
        contact = await make_contact("tenant-a", phone_number="+1555")
        await make_keyword("tenant-a", "join")

        resp = await client.post(
            "/api/events/keyword",
            json={"keyword": "JOIN", "contactId": contact.id},
        )

        assert resp.status_code == 202
        assert len(job_queue.named("events.trigger")) == 1

    @pytest.mark.asyncio
    async def test_inactivity_check_reports_scheduled(
        self, client, make_contact, make_workflow
    ) -> None:
        await make_contact("tenant-a", phone_number="+1", updated_at=utcnow() - timedelta(days=3))
        await make_workflow("tenant-a", '{"eventType": "Inactivity", "inactiveDays": 2}')

        resp = await client.post("/api/events/inactivity-check")

        assert resp.status_code == 202
        assert resp.json() == {"accepted": True, "scheduled": 1}


def test_health() -> None:
    client = TestClient(create_app())

    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.json() == {"status": "healthy"}
