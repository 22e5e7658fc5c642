"""Routes exposing the group collection.

Reads are public. Writes need a signed-in session, but whether that session
may write is decided by the record store, not by these routes.
"""

import logging
from typing import TYPE_CHECKING, Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from hulugan.common import (
    GroupNotFoundError,
    InvalidGroupError,
    PaidWeeksOutOfRangeError,
    PermissionDeniedError,
    Session,
    StoreError,
)
from hulugan.metrics import compute_fund_stats, group_progress

from .models import (
    CreateGroupRequest,
    FundSummaryResponse,
    GroupResponse,
    UpdatePaidWeeksRequest,
)

if TYPE_CHECKING:
    from hulugan.auth import Validate

    from .queries import GroupQueries

LOGGER = logging.getLogger(__name__)

_STORE_ERROR_STATUS = {
    PermissionDeniedError: status.HTTP_403_FORBIDDEN,
    GroupNotFoundError: status.HTTP_404_NOT_FOUND,
    PaidWeeksOutOfRangeError: status.HTTP_422_UNPROCESSABLE_ENTITY,
    InvalidGroupError: status.HTTP_422_UNPROCESSABLE_ENTITY,
}


def _http_error(error: StoreError) -> HTTPException:
    """Translate a store rejection into the matching HTTP error."""
    status_code = _STORE_ERROR_STATUS.get(
        type(error),
        status.HTTP_400_BAD_REQUEST,
    )
    LOGGER.info("Store rejected request with %s: %s", status_code, error)
    return HTTPException(status_code=status_code, detail=str(error))


async def _update_paid_weeks(
    group_queries: "GroupQueries",
    group_id: str,
    request: UpdatePaidWeeksRequest,
    session: Session,
) -> GroupResponse:
    try:
        group = await group_queries.update_paid_weeks(
            session.user_id,
            group_id,
            request.paid_weeks,
        )
    except StoreError as e:
        raise _http_error(e) from e
    return GroupResponse.from_group(group)


async def _create_group(
    group_queries: "GroupQueries",
    request: CreateGroupRequest,
    session: Session,
) -> GroupResponse:
    try:
        group = await group_queries.create_group(
            session.user_id,
            request.name,
            request.weekly_amount,
            request.weeks_total,
            request.paid_weeks,
        )
    except StoreError as e:
        raise _http_error(e) from e
    return GroupResponse.from_group(group)


def configure_group_router(
    router: APIRouter,
    group_queries: "GroupQueries",
    validate: "Validate",
) -> APIRouter:
    """Configure the group router with necessary dependencies.

    :param router: The FastAPI APIRouter to configure
    :param group_queries: The record store for groups
    :param validate: The Validate instance resolving sessions
    :return: The configured APIRouter
    """

    @router.get("", response_model=list[GroupResponse])
    async def list_groups() -> list[GroupResponse]:
        groups = await group_queries.list_groups()
        return [GroupResponse.from_group(group) for group in groups]

    @router.get("/summary", response_model=FundSummaryResponse)
    async def fund_summary() -> FundSummaryResponse:
        groups = await group_queries.list_groups()
        return FundSummaryResponse.from_stats(
            compute_fund_stats(groups),
            [group_progress(group) for group in groups],
        )

    @router.post(
        "",
        response_model=GroupResponse,
        status_code=status.HTTP_201_CREATED,
    )
    async def create_group(
        request: CreateGroupRequest,
        session: Annotated[Session, Depends(validate.session)],
    ) -> GroupResponse:
        return await _create_group(group_queries, request, session)

    @router.patch("/{group_id}", response_model=GroupResponse)
    async def update_paid_weeks(
        group_id: str,
        request: UpdatePaidWeeksRequest,
        session: Annotated[Session, Depends(validate.session)],
    ) -> GroupResponse:
        return await _update_paid_weeks(group_queries, group_id, request, session)

    return router
