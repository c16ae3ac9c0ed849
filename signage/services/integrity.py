"""
Cross-entity reference checks run before campaign writes and content deletes.

Nothing here commits; callers validate first and write afterwards, so a
failed check never leaves a partial campaign behind.
"""
import logging
from typing import Iterable, Sequence

from sqlalchemy.orm import Session

from signage.models.campaign import Campaign, CampaignContent
from signage.models.content import Content
from signage.models.device import Device

logger = logging.getLogger(__name__)


class InvalidReference(Exception):
    def __init__(self, device_id: str) -> None:
        super().__init__(f"Target device not found: {device_id}")
        self.device_id = device_id


class UnknownContent(Exception):
    def __init__(self, content_ids: Sequence[str]) -> None:
        super().__init__(f"Unknown content: {', '.join(content_ids)}")
        self.content_ids = list(content_ids)


class ContentInUse(Exception):
    def __init__(self, campaigns: Sequence[Campaign]) -> None:
        super().__init__("Cannot delete content that is used in campaigns")
        self.campaigns = [{"id": campaign.id, "name": campaign.name} for campaign in campaigns]

    @property
    def campaign_names(self) -> list[str]:
        return [item["name"] for item in self.campaigns]


def validate_target_devices(db: Session, device_ids: Iterable[str] | None) -> None:
    """
    Ensure every identifier names an existing device.

    An empty or missing list is not checked. The first identifier (in the
    given order) without a matching device is reported.
    """
    requested = list(device_ids or [])
    if not requested:
        return
    found = {
        row[0]
        for row in db.query(Device.device_id).filter(Device.device_id.in_(set(requested))).all()
    }
    for device_id in requested:
        if device_id not in found:
            logger.info("Rejected campaign target %r: no such device", device_id)
            raise InvalidReference(device_id)


def validate_content_refs(db: Session, content_ids: Iterable[str] | None) -> None:
    requested = list(content_ids or [])
    if not requested:
        return
    found = {
        row[0]
        for row in db.query(Content.id).filter(Content.id.in_(set(requested))).all()
    }
    missing = sorted(set(requested) - found)
    if missing:
        raise UnknownContent(missing)


def referencing_campaigns(db: Session, content_id: str) -> list[Campaign]:
    return (
        db.query(Campaign)
        .join(CampaignContent, CampaignContent.campaign_id == Campaign.id)
        .filter(CampaignContent.content_id == content_id)
        .distinct()
        .order_by(Campaign.name)
        .all()
    )


def assert_content_not_referenced(db: Session, content_id: str) -> None:
    campaigns = referencing_campaigns(db, content_id)
    if campaigns:
        raise ContentInUse(campaigns)
