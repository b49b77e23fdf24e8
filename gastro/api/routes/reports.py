"""Financial reports and day closing."""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Query, Request, status

from gastro.core.config import settings
from gastro.core.rate_limit import limiter
from gastro.core.rbac import RequireAdmin
from gastro.core.responses import list_response
from gastro.db.session import DbSession
from gastro.schemas.restaurant import BarClosingResponse, DayCloseRequest
from gastro.services.realtime import notifier
from gastro.services.reporting_service import ReportingService

router = APIRouter()


@router.get("/revenue")
def revenue(
    db: DbSession,
    current_user: RequireAdmin,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    payment_method: Optional[str] = None,
    session_id: Optional[int] = None,
):
    """Closed-order revenue with a per-payment-method breakdown."""
    return ReportingService(db, current_user).revenue_summary(
        start=start, end=end, payment_method=payment_method, session_id=session_id
    )


@router.get("/waiters")
def sales_by_waiter(
    db: DbSession,
    current_user: RequireAdmin,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    session_id: Optional[int] = None,
):
    rows = ReportingService(db, current_user).sales_by_waiter(start=start, end=end, session_id=session_id)
    return list_response(rows)


@router.post("/close-day", response_model=BarClosingResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.rate_limit_write)
def close_day(
    request: Request,
    payload: DayCloseRequest,
    db: DbSession,
    current_user: RequireAdmin,
    background_tasks: BackgroundTasks,
):
    """Persist the day-end report. Refused with 409 while orders are open."""
    closing = ReportingService(db, current_user).close_day(notes=payload.notes)
    background_tasks.add_task(notifier.notify, current_user.restaurant_id, "bar_closings", "service_sessions")
    return closing


@router.get("/closings")
def list_closings(db: DbSession, current_user: RequireAdmin, limit: int = Query(30, ge=1, le=365)):
    closings = ReportingService(db, current_user).list_closings(limit=limit)
    return list_response([BarClosingResponse.model_validate(c).model_dump(mode="json") for c in closings])
