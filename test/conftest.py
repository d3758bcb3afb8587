"""
Pytest configuration and shared fixtures.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import datetime
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from marketing_platform.config import Settings
from marketing_platform.contacts.models import Contact, ContactGroup
from marketing_platform.jobs.queue import JobDescriptor
from marketing_platform.keywords.models import Keyword, KeywordActivity  # noqa: F401
from marketing_platform.messages.models import Message, MessageStatus
from marketing_platform.phone_numbers.models import PhoneNumber, PhoneNumberStatus
from marketing_platform.shared.database import Base
from marketing_platform.suppression.models import SuppressionRecord, SuppressionRule  # noqa: F401
from marketing_platform.workflows.models import TriggerType, Workflow

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


class RecordingJobQueue:
    """JobQueue fake that records every job instead of running it."""

    def __init__(self) -> None:
        self.jobs: list[JobDescriptor] = []

    async def enqueue(self, job: JobDescriptor) -> None:
        self.jobs.append(job)

    def named(self, name: str) -> list[JobDescriptor]:
        return [job for job in self.jobs if job.name == name]

    def executions(self) -> list[tuple[int, int]]:
        """(workflow_id, contact_id) pairs of queued workflow executions."""
        return [
            (job.payload["workflow_id"], job.payload["contact_id"])
            for job in self.named("workflows.execute")
        ]


@pytest.fixture
def test_settings() -> Settings:
    return Settings(
        database_url=TEST_DATABASE_URL,
        webhook_secret="",
        inactivity_batch_size=2,
    )


@pytest_asyncio.fixture
async def db_engine():
    """Create in-memory SQLite engine with the full schema."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a session against the in-memory database."""
    factory = async_sessionmaker(
        bind=db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with factory() as session:
        yield session


@pytest.fixture
def job_queue() -> RecordingJobQueue:
    return RecordingJobQueue()


@pytest.fixture
def make_contact(db_session: AsyncSession) -> Callable[..., Awaitable[Contact]]:
    async def _make(
        owner_id: str,
        phone_number: str | None = None,
        email: str | None = None,
        updated_at: datetime | None = None,
        **fields: Any,
    ) -> Contact:
        contact = Contact(owner_id=owner_id, phone_number=phone_number, email=email, **fields)
        if updated_at is not None:
            contact.updated_at = updated_at
        db_session.add(contact)
        await db_session.commit()
        return contact

    return _make


@pytest.fixture
def make_workflow(db_session: AsyncSession) -> Callable[..., Awaitable[Workflow]]:
    async def _make(
        owner_id: str,
        trigger_criteria: str | None,
        trigger_type: TriggerType = TriggerType.EVENT,
        workflow_id: int | None = None,
        **fields: Any,
    ) -> Workflow:
        workflow = Workflow(
            owner_id=owner_id,
            name=fields.pop("name", "Test workflow"),
            trigger_type=trigger_type,
            trigger_criteria=trigger_criteria,
            **fields,
        )
        if workflow_id is not None:
            workflow.id = workflow_id
        db_session.add(workflow)
        await db_session.commit()
        return workflow

    return _make


@pytest.fixture
def make_keyword(db_session: AsyncSession) -> Callable[..., Awaitable[Keyword]]:
    async def _make(owner_id: str, keyword_text: str, **fields: Any) -> Keyword:
        keyword = Keyword(owner_id=owner_id, keyword_text=keyword_text, **fields)
        db_session.add(keyword)
        await db_session.commit()
        return keyword

    return _make


@pytest.fixture
def make_group(db_session: AsyncSession) -> Callable[..., Awaitable[ContactGroup]]:
    async def _make(owner_id: str, name: str = "Group") -> ContactGroup:
        group = ContactGroup(owner_id=owner_id, name=name)
        db_session.add(group)
        await db_session.commit()
        return group

    return _make


@pytest.fixture
def make_phone_number(db_session: AsyncSession) -> Callable[..., Awaitable[PhoneNumber]]:
    async def _make(number: str, owner_id: str | None, **fields: Any) -> PhoneNumber:
        phone = PhoneNumber(
            number=number,
            assigned_owner_id=owner_id,
            status=PhoneNumberStatus.ACTIVE if owner_id else PhoneNumberStatus.AVAILABLE,
            **fields,
        )
        db_session.add(phone)
        await db_session.commit()
        return phone

    return _make


@pytest.fixture
def make_message(db_session: AsyncSession) -> Callable[..., Awaitable[Message]]:
    async def _make(
        owner_id: str,
        external_message_id: str,
        contact_id: int | None = None,
        **fields: Any,
    ) -> Message:
        message = Message(
            owner_id=owner_id,
            external_message_id=external_message_id,
            contact_id=contact_id,
            status=fields.pop("status", MessageStatus.SENDING),
            **fields,
        )
        db_session.add(message)
        await db_session.commit()
        return message

    return _make
