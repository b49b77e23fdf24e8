"""Service sessions: the business day or shift orders are booked against."""

import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from gastro.core.rbac import TenantContext
from gastro.db.session import unit_of_work
from gastro.models.restaurant import ServiceSession, SessionStatus
from gastro.services.exceptions import OrderStateError

logger = logging.getLogger(__name__)


class SessionService:
    def __init__(self, db: Session, ctx: TenantContext):
        self.db = db
        self.ctx = ctx

    def current(self) -> Optional[ServiceSession]:
        """The open session, if any."""
        return self.db.execute(
            select(ServiceSession).where(
                ServiceSession.for_tenant(self.ctx.restaurant_id),
                ServiceSession.status == SessionStatus.OPEN.value,
            )
        ).scalar_one_or_none()

    def list_sessions(self, limit: int = 30) -> List[ServiceSession]:
        return list(
            self.db.execute(
                select(ServiceSession)
                .where(ServiceSession.for_tenant(self.ctx.restaurant_id))
                .order_by(ServiceSession.start_time.desc(), ServiceSession.id.desc())
                .limit(limit)
            ).scalars()
        )

    def open_session(self) -> ServiceSession:
        with unit_of_work(self.db):
            if self.current() is not None:
                raise OrderStateError("A service session is already open")
            session = ServiceSession(
                restaurant_id=self.ctx.restaurant_id,
                opened_by=self.ctx.actor_id,
                status=SessionStatus.OPEN.value,
            )
            self.db.add(session)
            self.db.flush()
        logger.info(f"Service session {session.id} opened by {self.ctx.actor_id}")
        return session

    def close_session(self) -> ServiceSession:
        with unit_of_work(self.db):
            session = self.close_current()
            if session is None:
                raise OrderStateError("No service session is open")
        return session

    def close_current(self) -> Optional[ServiceSession]:
        """Close the open session inside the caller's transaction, if there is one."""
        session = self.current()
        if session is None:
            return None
        session.status = SessionStatus.CLOSED.value
        session.closed_by = self.ctx.actor_id
        session.end_time = datetime.now(timezone.utc)
        self.db.flush()
        logger.info(f"Service session {session.id} closed by {self.ctx.actor_id}")
        return session
