"""Service session routes."""

from fastapi import APIRouter, BackgroundTasks, Request, status

from gastro.core.config import settings
from gastro.core.rate_limit import limiter
from gastro.core.rbac import CurrentUser, RequireAdmin
from gastro.core.responses import list_response
from gastro.db.session import DbSession
from gastro.schemas.restaurant import ServiceSessionResponse
from gastro.services.realtime import notifier
from gastro.services.session_service import SessionService

router = APIRouter()


@router.get("")
def list_sessions(db: DbSession, current_user: CurrentUser):
    sessions = SessionService(db, current_user).list_sessions()
    return list_response([ServiceSessionResponse.model_validate(s).model_dump(mode="json") for s in sessions])


@router.get("/current")
def current_session(db: DbSession, current_user: CurrentUser):
    """The open session, or ``{"session": null}``."""
    session = SessionService(db, current_user).current()
    return {"session": ServiceSessionResponse.model_validate(session).model_dump(mode="json") if session else None}


@router.post("/open", response_model=ServiceSessionResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.rate_limit_write)
def open_session(
    request: Request,
    db: DbSession,
    current_user: RequireAdmin,
    background_tasks: BackgroundTasks,
):
    session = SessionService(db, current_user).open_session()
    background_tasks.add_task(notifier.notify, current_user.restaurant_id, "service_sessions")
    return session


@router.post("/close", response_model=ServiceSessionResponse)
@limiter.limit(settings.rate_limit_write)
def close_session(
    request: Request,
    db: DbSession,
    current_user: RequireAdmin,
    background_tasks: BackgroundTasks,
):
    session = SessionService(db, current_user).close_session()
    background_tasks.add_task(notifier.notify, current_user.restaurant_id, "service_sessions")
    return session
