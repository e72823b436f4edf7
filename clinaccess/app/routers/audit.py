"""Audit routes."""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session, select

from ..deps import db_session
from ..domain.models import AccessLog, AccessLogRead

router = APIRouter()


@router.get("/logs", response_model=List[AccessLogRead])
def audit_logs(
    actor_id: Optional[str] = Query(None),
    allowed: Optional[bool] = Query(None),
    limit: int = Query(100, ge=1, le=500),
    session: Session = Depends(db_session),
) -> List[AccessLogRead]:
    stmt = select(AccessLog).order_by(AccessLog.created_at.desc())
    if actor_id:
        stmt = stmt.where(AccessLog.actor_id == actor_id)
    if allowed is not None:
        stmt = stmt.where(AccessLog.allowed == allowed)
    return session.exec(stmt.limit(limit)).all()
