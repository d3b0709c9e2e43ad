from typing import Annotated, Optional
from datetime import datetime
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession
from app.core.config import settings
from app.core.db import get_db
from app.schemas.report import (
    MemberDuesReport,
    AnnualFinancialSummary,
    OwingMember,
    UnpaidMember,
    FinancialLog,
)
from app.schemas.common import DataResponse
from app.deps import CurrentUser
from app.services.ledger import (
    NotFoundError,
    report_timezone,
    load_member_dues_report,
    load_annual_financials,
    load_financial_log,
    load_owing_members,
    load_unpaid_members,
)

router = APIRouter(prefix="/reports", tags=["Reports"])


def _current_year() -> int:
    return datetime.now(report_timezone).year


def _report_year(year: Optional[int]) -> int:
    return year if year is not None else _current_year()


@router.get("/years", response_model=DataResponse[list[int]])
async def get_report_years(user: CurrentUser):
    """Years with reports, newest first."""
    return DataResponse(data=list(range(_current_year(), settings.FIRST_REPORT_YEAR - 1, -1)))


@router.get("/members/{member_id}/dues", response_model=DataResponse[MemberDuesReport])
async def get_member_dues(
    member_id: int,
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
    year: Optional[int] = Query(None, description="Defaults to the current year"),
):
    try:
        report = await load_member_dues_report(db, member_id, _report_year(year))
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return DataResponse(data=report)


@router.get("/annual", response_model=DataResponse[AnnualFinancialSummary])
async def get_annual_financials(
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
    year: Optional[int] = Query(None, description="Defaults to the current year"),
):
    return DataResponse(data=await load_annual_financials(db, _report_year(year)))


@router.get("/owing", response_model=DataResponse[list[OwingMember]])
async def get_owing_members(
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
    year: Optional[int] = Query(None, description="Defaults to the current year"),
):
    return DataResponse(data=await load_owing_members(db, _report_year(year)))


@router.get("/financial-log", response_model=DataResponse[FinancialLog])
async def get_financial_log(
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
    year: Optional[int] = Query(None, description="Defaults to the current year"),
):
    return DataResponse(data=await load_financial_log(db, _report_year(year)))


@router.get("/unpaid", response_model=DataResponse[list[UnpaidMember]])
async def get_unpaid_members(
    user: CurrentUser,
    db: Annotated[AsyncSession, Depends(get_db)],
    month: int = Query(..., ge=1, le=12),
    year: Optional[int] = Query(None, description="Defaults to the current year"),
):
    return DataResponse(data=await load_unpaid_members(db, _report_year(year), month))
