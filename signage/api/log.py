from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from signage.db import get_db
from signage.models.log import Log
from signage.models.user import User
from signage.schemas.common import LogLevel
from signage.schemas.log import LogOut
from signage.services.auth import get_current_user

router = APIRouter(prefix="/logs", tags=["logs"])


@router.get("", response_model=list[LogOut])
def list_logs(
    level: LogLevel | None = None,
    device_id: str | None = Query(None, alias="deviceId"),
    campaign_id: str | None = Query(None, alias="campaignId"),
    content_id: str | None = Query(None, alias="contentId"),
    offset: int = 0,
    limit: int = 100,
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    safe_offset = max(0, offset)
    safe_limit = max(1, min(limit, 500))

    query = db.query(Log)
    if level:
        query = query.filter(Log.level == level)
    if device_id:
        query = query.filter(Log.device_id == device_id)
    if campaign_id:
        query = query.filter(Log.campaign_id == campaign_id)
    if content_id:
        query = query.filter(Log.content_id == content_id)
    return (
        query.order_by(Log.created_at.desc(), Log.id.desc())
        .offset(safe_offset)
        .limit(safe_limit)
        .all()
    )
