"""
Service layer for phone number provisioning.

Assignment decides which tenant an inbound message belongs to, so every
state change here also changes inbound routing. Callers own the
transaction: nothing here commits.
"""

from decimal import Decimal
from typing import Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from marketing_platform.phone_numbers.models import PhoneNumber, PhoneNumberStatus
from marketing_platform.phone_numbers.repository import PhoneNumberRepository
from marketing_platform.phone_numbers.schemas import (
    PhoneNumberCreate,
    PhoneNumberPurchase,
    PhoneNumberUpdate,
)
from marketing_platform.shared.database import utcnow
from marketing_platform.shared.exceptions import NotFoundError, ValidationError
from marketing_platform.shared.logging import get_logger

logger = get_logger(__name__)

PURCHASED_MONTHLY_RATE = Decimal("1.00")


class PhoneNumberService:
    """Service for the platform number pool and tenant assignment."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize service with database session.

        Args:
            session: Async database session.
        """
        self._session = session
        self._repository = PhoneNumberRepository(session)

    async def list_numbers(
        self,
        page: int = 1,
        page_size: int = 50,
        search: str | None = None,
    ) -> tuple[Sequence[PhoneNumber], int]:
        return await self._repository.list_page(page=page, page_size=page_size, search=search)

    async def list_for_owner(self, owner_id: str) -> Sequence[PhoneNumber]:
        return await self._repository.list_for_owner(owner_id)

    async def list_available(self) -> Sequence[PhoneNumber]:
        return await self._repository.list_available()

    async def get_number(self, phone_number_id: int) -> PhoneNumber:
        """Get a number by id.

        Raises:
            NotFoundError: If the number does not exist or was deleted.
        """
        phone = await self._repository.get_by_id(phone_number_id)
        if phone is None:
            raise NotFoundError("Phone number", phone_number_id)
        return phone

    async def _ensure_unused(self, number: str) -> None:
        if await self._repository.get_by_number(number) is not None:
            raise ValidationError(f"Phone number '{number}' already exists")

    async def create_number(self, request: PhoneNumberCreate) -> PhoneNumber:
        """Add an unassigned number to the pool.

        Raises:
            ValidationError: If a live row already holds the number.
        """
        await self._ensure_unused(request.number)

        phone = await self._repository.add(
            PhoneNumber(
                number=request.number,
                friendly_name=request.friendly_name,
                number_type=request.number_type,
                capabilities=request.capabilities,
                monthly_rate=request.monthly_rate,
                country=request.country,
                region=request.region,
                notes=request.notes,
                status=PhoneNumberStatus.AVAILABLE,
            )
        )
        logger.info(
            "Phone number created",
            extra={"phone_number_id": phone.id, "number": phone.number},
        )
        return phone

    async def update_number(self, phone_number_id: int, request: PhoneNumberUpdate) -> PhoneNumber:
        phone = await self.get_number(phone_number_id)

        if request.friendly_name is not None:
            phone.friendly_name = request.friendly_name
        if request.capabilities is not None:
            phone.capabilities = request.capabilities
        if request.notes is not None:
            phone.notes = request.notes

        await self._session.flush()
        return phone

    async def assign(self, phone_number_id: int, owner_id: str) -> PhoneNumber:
        """Assign a number to a tenant and activate it.

        Inbound messages to the number route to ``owner_id`` from now on.
        """
        phone = await self.get_number(phone_number_id)
        previous = phone.assigned_owner_id

        phone.assigned_owner_id = owner_id
        phone.assigned_at = utcnow()
        phone.status = PhoneNumberStatus.ACTIVE
        await self._session.flush()

        logger.info(
            "Phone number assigned",
            extra={
                "phone_number_id": phone.id,
                "owner_id": owner_id,
                "previous_owner_id": previous,
            },
        )
        return phone

    async def unassign(self, phone_number_id: int) -> PhoneNumber:
        """Return a number to the pool. Inbound messages to it stop routing."""
        phone = await self.get_number(phone_number_id)
        previous = phone.assigned_owner_id

        phone.assigned_owner_id = None
        phone.assigned_at = None
        phone.status = PhoneNumberStatus.AVAILABLE
        await self._session.flush()

        logger.info(
            "Phone number unassigned",
            extra={"phone_number_id": phone.id, "previous_owner_id": previous},
        )
        return phone

    async def purchase(self, request: PhoneNumberPurchase) -> PhoneNumber:
        """Buy a number straight into a tenant's account.

        Raises:
            ValidationError: If a live row already holds the number.
        """
        await self._ensure_unused(request.number)

        now = utcnow()
        phone = await self._repository.add(
            PhoneNumber(
                number=request.number,
                friendly_name=request.friendly_name,
                number_type=request.number_type,
                capabilities=request.capabilities,
                country=request.country,
                region=request.region,
                status=PhoneNumberStatus.ACTIVE,
                assigned_owner_id=request.owner_id,
                purchased_by_owner_id=request.owner_id,
                purchased_at=now,
                assigned_at=now,
                monthly_rate=PURCHASED_MONTHLY_RATE,
            )
        )
        logger.info(
            "Phone number purchased",
            extra={"phone_number_id": phone.id, "owner_id": request.owner_id},
        )
        return phone

    async def release(self, phone_number_id: int) -> bool:
        """Release a number back to the carrier.

        Returns:
            True if the number existed and was released.
        """
        phone = await self._repository.get_by_id(phone_number_id)
        if phone is None:
            return False

        previous = phone.assigned_owner_id
        phone.status = PhoneNumberStatus.RELEASED
        phone.assigned_owner_id = None
        phone.assigned_at = None
        await self._session.flush()

        logger.info(
            "Phone number released",
            extra={"phone_number_id": phone.id, "previous_owner_id": previous},
        )
        return True

    async def delete(self, phone_number_id: int) -> bool:
        phone = await self._repository.get_by_id(phone_number_id)
        if phone is None:
            return False

        phone.is_deleted = True
        await self._session.flush()
        return True
