from typing import Any

from sqlalchemy.orm import Session

from signage.models.log import Log


def record_log(
    db: Session,
    level: str,
    message: str,
    device_id: str | None = None,
    campaign_id: str | None = None,
    content_id: str | None = None,
    metadata: dict[str, Any] | None = None,
) -> Log:
    """Append an audit entry to the session; the caller's commit persists it."""
    entry = Log(
        level=level,
        message=message,
        device_id=device_id,
        campaign_id=campaign_id,
        content_id=content_id,
        meta=metadata or None,
    )
    db.add(entry)
    return entry
