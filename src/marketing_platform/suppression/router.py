"""
API router for tenant suppression rules and suppression list checks.

Every route is scoped by the tenant in the path.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from marketing_platform.shared.database import get_db_session
from marketing_platform.shared.exceptions import NotFoundError, ValidationError
from marketing_platform.shared.logging import get_logger
from marketing_platform.suppression.schemas import (
    SeedDefaultsResponse,
    SuppressionRuleCreate,
    SuppressionRuleListResponse,
    SuppressionRuleResponse,
    SuppressionRuleUpdate,
    SuppressionStatus,
)
from marketing_platform.suppression.service import SuppressionService

logger = get_logger(__name__)

router = APIRouter(prefix="/api/tenants/{owner_id}", tags=["suppression"])


def _rule_not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Suppression rule not found")


def get_suppression_service(
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> SuppressionService:
    """Dependency for suppression service."""
    return SuppressionService(session=session)


@router.get(
    "/suppression-rules",
    response_model=SuppressionRuleListResponse,
    summary="List suppression rules",
)
async def list_rules(
    owner_id: str,
    service: Annotated[SuppressionService, Depends(get_suppression_service)],
    page: Annotated[int, Query(ge=1, description="Page number")] = 1,
    page_size: Annotated[int, Query(ge=1, le=100, description="Items per page")] = 50,
    search: Annotated[str | None, Query(description="Match on rule name")] = None,
) -> SuppressionRuleListResponse:
    rules, total = await service.list_rules(owner_id, page=page, page_size=page_size, search=search)

    return SuppressionRuleListResponse(
        items=[SuppressionRuleResponse.model_validate(r) for r in rules],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=(total + page_size - 1) // page_size,
    )


@router.get(
    "/suppression-rules/active",
    response_model=list[SuppressionRuleResponse],
    summary="List active suppression rules by priority",
)
async def list_active_rules(
    owner_id: str,
    service: Annotated[SuppressionService, Depends(get_suppression_service)],
) -> list[SuppressionRuleResponse]:
    return [SuppressionRuleResponse.model_validate(r) for r in await service.list_active_rules(owner_id)]


@router.post(
    "/suppression-rules",
    response_model=SuppressionRuleResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create suppression rule",
)
async def create_rule(
    owner_id: str,
    request: SuppressionRuleCreate,
    service: Annotated[SuppressionService, Depends(get_suppression_service)],
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> SuppressionRuleResponse:
    rule = await service.create_rule(owner_id, request)
    await session.commit()
    return SuppressionRuleResponse.model_validate(rule)


@router.post(
    "/suppression-rules/seed-defaults",
    response_model=SeedDefaultsResponse,
    summary="Create the default system rules",
    description="Does nothing when the tenant already has system rules.",
)
async def seed_default_rules(
    owner_id: str,
    service: Annotated[SuppressionService, Depends(get_suppression_service)],
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> SeedDefaultsResponse:
    created = await service.seed_default_rules(owner_id)
    await session.commit()
    return SeedDefaultsResponse(created=len(created))


@router.get(
    "/suppression-rules/{rule_id}",
    response_model=SuppressionRuleResponse,
    summary="Get suppression rule",
)
async def get_rule(
    owner_id: str,
    rule_id: int,
    service: Annotated[SuppressionService, Depends(get_suppression_service)],
) -> SuppressionRuleResponse:
    try:
        rule = await service.get_rule(owner_id, rule_id)
    except NotFoundError:
        raise _rule_not_found()
    return SuppressionRuleResponse.model_validate(rule)


@router.put(
    "/suppression-rules/{rule_id}",
    response_model=SuppressionRuleResponse,
    summary="Update suppression rule",
)
async def update_rule(
    owner_id: str,
    rule_id: int,
    request: SuppressionRuleUpdate,
    service: Annotated[SuppressionService, Depends(get_suppression_service)],
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> SuppressionRuleResponse:
    try:
        rule = await service.update_rule(owner_id, rule_id, request)
    except NotFoundError:
        raise _rule_not_found()

    await session.commit()
    return SuppressionRuleResponse.model_validate(rule)


@router.post(
    "/suppression-rules/{rule_id}/toggle",
    response_model=SuppressionRuleResponse,
    summary="Enable or disable a suppression rule",
)
async def toggle_rule(
    owner_id: str,
    rule_id: int,
    service: Annotated[SuppressionService, Depends(get_suppression_service)],
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> SuppressionRuleResponse:
    try:
        rule = await service.toggle_rule(owner_id, rule_id)
    except NotFoundError:
        raise _rule_not_found()

    await session.commit()
    return SuppressionRuleResponse.model_validate(rule)


@router.delete(
    "/suppression-rules/{rule_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete suppression rule",
    description="System rules cannot be deleted, only disabled.",
)
async def delete_rule(
    owner_id: str,
    rule_id: int,
    service: Annotated[SuppressionService, Depends(get_suppression_service)],
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> None:
    try:
        deleted = await service.delete_rule(owner_id, rule_id)
    except ValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=e.message)
    if not deleted:
        raise _rule_not_found()

    await session.commit()
    logger.info(
        "Suppression rule deleted",
        extra={"owner_id": owner_id, "rule_id": rule_id},
    )


@router.get(
    "/suppressions/check",
    response_model=SuppressionStatus,
    summary="Check whether an identifier is suppressed",
)
async def check_suppression(
    owner_id: str,
    phone_or_email: Annotated[str, Query(min_length=1, description="Phone number or email")],
    service: Annotated[SuppressionService, Depends(get_suppression_service)],
) -> SuppressionStatus:
    suppressed = await service.is_suppressed(owner_id, phone_or_email)
    return SuppressionStatus(phone_or_email=phone_or_email, suppressed=suppressed)


@router.delete(
    "/suppressions",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Lift a suppression",
    description="Deactivates the tenant's suppression and restores the channel opt-in flags.",
)
async def lift_suppression(
    owner_id: str,
    phone_or_email: Annotated[str, Query(min_length=1, description="Phone number or email")],
    service: Annotated[SuppressionService, Depends(get_suppression_service)],
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> None:
    if not await service.lift(owner_id, phone_or_email):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No active suppression for identifier",
        )
    await session.commit()
