"""
API router for phone number provisioning and tenant assignment.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from marketing_platform.phone_numbers.schemas import (
    PhoneNumberAssign,
    PhoneNumberCreate,
    PhoneNumberListResponse,
    PhoneNumberPurchase,
    PhoneNumberResponse,
    PhoneNumberUpdate,
)
from marketing_platform.phone_numbers.service import PhoneNumberService
from marketing_platform.shared.database import get_db_session
from marketing_platform.shared.exceptions import NotFoundError, ValidationError

router = APIRouter(prefix="/api/phone-numbers", tags=["phone-numbers"])


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Phone number not found")


def get_phone_number_service(
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> PhoneNumberService:
    """Dependency for phone number service."""
    return PhoneNumberService(session=session)


@router.get(
    "",
    response_model=PhoneNumberListResponse,
    summary="List phone numbers",
)
async def list_phone_numbers(
    service: Annotated[PhoneNumberService, Depends(get_phone_number_service)],
    page: Annotated[int, Query(ge=1, description="Page number")] = 1,
    page_size: Annotated[int, Query(ge=1, le=100, description="Items per page")] = 50,
    search: Annotated[str | None, Query(description="Match on number or friendly name")] = None,
) -> PhoneNumberListResponse:
    numbers, total = await service.list_numbers(page=page, page_size=page_size, search=search)

    return PhoneNumberListResponse(
        items=[PhoneNumberResponse.model_validate(n) for n in numbers],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=(total + page_size - 1) // page_size,
    )


@router.get(
    "/available",
    response_model=list[PhoneNumberResponse],
    summary="List unassigned numbers",
)
async def list_available_numbers(
    service: Annotated[PhoneNumberService, Depends(get_phone_number_service)],
) -> list[PhoneNumberResponse]:
    return [PhoneNumberResponse.model_validate(n) for n in await service.list_available()]


@router.get(
    "/owner/{owner_id}",
    response_model=list[PhoneNumberResponse],
    summary="List a tenant's numbers",
)
async def list_owner_numbers(
    owner_id: str,
    service: Annotated[PhoneNumberService, Depends(get_phone_number_service)],
) -> list[PhoneNumberResponse]:
    return [PhoneNumberResponse.model_validate(n) for n in await service.list_for_owner(owner_id)]


@router.post(
    "",
    response_model=PhoneNumberResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Add a number to the pool",
)
async def create_phone_number(
    request: PhoneNumberCreate,
    service: Annotated[PhoneNumberService, Depends(get_phone_number_service)],
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> PhoneNumberResponse:
    try:
        phone = await service.create_number(request)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)

    await session.commit()
    return PhoneNumberResponse.model_validate(phone)


@router.post(
    "/purchase",
    response_model=PhoneNumberResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Purchase a number for a tenant",
)
async def purchase_phone_number(
    request: PhoneNumberPurchase,
    service: Annotated[PhoneNumberService, Depends(get_phone_number_service)],
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> PhoneNumberResponse:
    try:
        phone = await service.purchase(request)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)

    await session.commit()
    return PhoneNumberResponse.model_validate(phone)


@router.get(
    "/{phone_number_id}",
    response_model=PhoneNumberResponse,
    summary="Get phone number",
)
async def get_phone_number(
    phone_number_id: int,
    service: Annotated[PhoneNumberService, Depends(get_phone_number_service)],
) -> PhoneNumberResponse:
    try:
        phone = await service.get_number(phone_number_id)
    except NotFoundError:
        raise _not_found()
    return PhoneNumberResponse.model_validate(phone)


@router.put(
    "/{phone_number_id}",
    response_model=PhoneNumberResponse,
    summary="Update phone number details",
)
async def update_phone_number(
    phone_number_id: int,
    request: PhoneNumberUpdate,
    service: Annotated[PhoneNumberService, Depends(get_phone_number_service)],
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> PhoneNumberResponse:
    try:
        phone = await service.update_number(phone_number_id, request)
    except NotFoundError:
        raise _not_found()

    await session.commit()
    return PhoneNumberResponse.model_validate(phone)


@router.post(
    "/{phone_number_id}/assign",
    response_model=PhoneNumberResponse,
    summary="Assign a number to a tenant",
    description="Inbound messages to the number are routed to the tenant.",
)
async def assign_phone_number(
    phone_number_id: int,
    request: PhoneNumberAssign,
    service: Annotated[PhoneNumberService, Depends(get_phone_number_service)],
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> PhoneNumberResponse:
    try:
        phone = await service.assign(phone_number_id, request.owner_id)
    except NotFoundError:
        raise _not_found()

    await session.commit()
    return PhoneNumberResponse.model_validate(phone)


@router.post(
    "/{phone_number_id}/unassign",
    response_model=PhoneNumberResponse,
    summary="Return a number to the pool",
)
async def unassign_phone_number(
    phone_number_id: int,
    service: Annotated[PhoneNumberService, Depends(get_phone_number_service)],
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> PhoneNumberResponse:
    try:
        phone = await service.unassign(phone_number_id)
    except NotFoundError:
        raise _not_found()

    await session.commit()
    return PhoneNumberResponse.model_validate(phone)


@router.post(
    "/{phone_number_id}/release",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Release a number",
)
async def release_phone_number(
    phone_number_id: int,
    service: Annotated[PhoneNumberService, Depends(get_phone_number_service)],
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> None:
    if not await service.release(phone_number_id):
        raise _not_found()
    await session.commit()


@router.delete(
    "/{phone_number_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a number",
)
async def delete_phone_number(
    phone_number_id: int,
    service: Annotated[PhoneNumberService, Depends(get_phone_number_service)],
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> None:
    if not await service.delete(phone_number_id):
        raise _not_found()
    await session.commit()
