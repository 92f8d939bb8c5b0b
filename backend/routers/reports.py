import logging
from datetime import date
from typing import Optional, Literal

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from fastapi.encoders import jsonable_encoder
from sqlalchemy.orm import Session

from database import get_db
from models.goal import GoalStatus
from schemas.reports import CacheInvalidateRequest
from crud import reports as reports_crud
from crud import ledger
from utils.cache import report_cache, report_key, report_tags, tenant_tag, REPORT_TTLS
from utils.dates import calculate_date_range, today_local
from utils.tenancy import get_tenant_id

router = APIRouter(
    prefix="/reports",
    tags=["Reports"],
)
logger = logging.getLogger(__name__)

Period = Literal["week", "month", "quarter", "year", "custom"]


def _date_range(period: str, start_date: Optional[date], end_date: Optional[date]):
    try:
        return calculate_date_range(period, start_date, end_date)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


def _cached(response: Response, report_type: str, tenant_id: str, factory, **params):
    ttl = REPORT_TTLS[report_type]
    response.headers["Cache-Control"] = f"private, max-age={ttl}"
    return report_cache.remember(
        report_key(report_type, tenant_id, **params),
        lambda: jsonable_encoder(factory()),
        ttl=ttl,
        tags=report_tags(report_type, tenant_id)
    )


@router.get("/dashboard")
def get_dashboard(
    response: Response,
    period: Period = "month",
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id)
):
    start, end = _date_range(period, start_date, end_date)
    return _cached(
        response, "dashboard", tenant_id,
        lambda: reports_crud.get_dashboard(db, tenant_id, start, end, period),
        period=period, start=start, end=end
    )


@router.get("/cash-flow")
def get_cash_flow(
    response: Response,
    period: Period = "month",
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    account_id: Optional[int] = None,
    account_type: Optional[str] = None,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id)
):
    start, end = _date_range(period, start_date, end_date)
    return _cached(
        response, "cash-flow", tenant_id,
        lambda: reports_crud.get_cash_flow(db, tenant_id, start, end, period,
                                           account_id=account_id, account_type=account_type),
        period=period, start=start, end=end, account_id=account_id, account_type=account_type
    )


@router.get("/category-spending")
def get_category_spending(
    response: Response,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id)
):
    today = today_local()
    start = start_date or today.replace(day=1)
    end = end_date or today
    if start > end:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="start_date must be on or before end_date")
    return _cached(
        response, "category-spending", tenant_id,
        lambda: reports_crud.get_category_spending(db, tenant_id, start, end),
        start=start, end=end
    )


@router.get("/expenses")
def get_expenses(
    response: Response,
    period: Period = "month",
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    account_id: Optional[int] = None,
    account_type: Optional[str] = None,
    category: Optional[str] = None,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id)
):
    start, end = _date_range(period, start_date, end_date)
    return _cached(
        response, "expenses", tenant_id,
        lambda: reports_crud.get_expenses(db, tenant_id, start, end, period, account_id=account_id,
                                          account_type=account_type, category=category),
        period=period, start=start, end=end, account_id=account_id,
        account_type=account_type, category=category
    )


@router.get("/investments")
def get_investment_report(
    response: Response,
    type: Optional[str] = None,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id)
):
    return _cached(
        response, "investments", tenant_id,
        lambda: reports_crud.get_investment_report(db, tenant_id, investment_type=type),
        type=type
    )


@router.get("/goals")
def get_goals_report(
    response: Response,
    status_filter: Optional[GoalStatus] = Query(None, alias="status"),
    category: Optional[str] = None,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id)
):
    return _cached(
        response, "goals", tenant_id,
        lambda: reports_crud.get_goals_report(db, tenant_id, status=status_filter, category=category),
        status=status_filter.value if status_filter else None, category=category
    )


@router.get("/trial-balance")
def get_trial_balance(
    response: Response,
    as_of_date: Optional[date] = None,
    db: Session = Depends(get_db),
    tenant_id: str = Depends(get_tenant_id)
):
    return _cached(
        response, "trial-balance", tenant_id,
        lambda: ledger.get_trial_balance(db, tenant_id, as_of_date),
        as_of_date=as_of_date
    )


@router.post("/cache/invalidate")
def invalidate_cache(
    request: Optional[CacheInvalidateRequest] = None,
    tenant_id: str = Depends(get_tenant_id)
):
    if request and request.type:
        removed = report_cache.invalidate_by_pattern(f"*:reports:{request.type}:{tenant_id}:*")
    else:
        removed = report_cache.invalidate_by_tags([tenant_tag(tenant_id)])
    logger.info(f"Report cache invalidated for tenant '{tenant_id}': {removed} entries")
    return {"invalidated": removed, "type": request.type if request else None}


@router.get("/cache/stats")
def get_cache_stats(tenant_id: str = Depends(get_tenant_id)):
    return report_cache.stats()


@router.delete("/cache")
def clear_cache(tenant_id: str = Depends(get_tenant_id)):
    removed = report_cache.invalidate_by_tags([tenant_tag(tenant_id)])
    return {"cleared": removed}
