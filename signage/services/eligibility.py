from datetime import datetime

from sqlalchemy.orm import Session, selectinload

from signage.models.campaign import Campaign, CampaignContent, CampaignTarget
from signage.models.device import Device
from signage.services.clock import as_naive_utc, utcnow


class DeviceNotFound(Exception):
    def __init__(self, device_id: str) -> None:
        super().__init__(f"Device not found: {device_id}")
        self.device_id = device_id


def active_campaigns_for(db: Session, device_id: str, now: datetime | None = None) -> list[Campaign]:
    """
    Campaigns deliverable to `device_id` at `now`.

    A campaign qualifies when it targets the device (exact identifier match),
    its status is "active" and `start_date <= now <= end_date`. Overlapping
    campaigns are all returned; no ordering is implied. Content is loaded
    eagerly so callers can serialise it without further queries.
    """
    device = db.query(Device).filter(Device.device_id == device_id).first()
    if device is None:
        raise DeviceNotFound(device_id)

    current = as_naive_utc(now) if now is not None else utcnow()
    return (
        db.query(Campaign)
        .join(CampaignTarget, CampaignTarget.campaign_id == Campaign.id)
        .filter(
            CampaignTarget.device_id == device_id,
            Campaign.status == "active",
            Campaign.start_date <= current,
            Campaign.end_date >= current,
        )
        .options(
            selectinload(Campaign.targets),
            selectinload(Campaign.content_links).joinedload(CampaignContent.content),
        )
        .distinct()
        .all()
    )
