import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from signage.db import Base
from signage.models.content import Content

CAMPAIGN_STATUSES = ("draft", "active", "paused", "completed")


class Campaign(Base):
    __tablename__ = "campaign"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String, nullable=False, default="draft", index=True)
    start_date = Column(DateTime, nullable=False, default=datetime.utcnow)
    end_date = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    targets = relationship(
        "CampaignTarget",
        cascade="all, delete-orphan",
        order_by="CampaignTarget.order",
    )
    content_links = relationship(
        "CampaignContent",
        cascade="all, delete-orphan",
        order_by="CampaignContent.order",
    )

    @property
    def target_devices(self) -> list[str]:
        return [target.device_id for target in self.targets]

    @property
    def content_ids(self) -> list[str]:
        return [link.content_id for link in self.content_links]

    @property
    def contents(self) -> list:
        return [link.content for link in self.content_links if link.content is not None]


class CampaignTarget(Base):
    __tablename__ = "campaign_target"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    campaign_id = Column(String(36), ForeignKey("campaign.id", ondelete="CASCADE"), nullable=False, index=True)
    # External device identifier, not a foreign key: targets outlive device rows.
    device_id = Column(String, nullable=False, index=True)
    order = Column(Integer, nullable=False)


class CampaignContent(Base):
    __tablename__ = "campaign_content"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    campaign_id = Column(String(36), ForeignKey("campaign.id", ondelete="CASCADE"), nullable=False, index=True)
    content_id = Column(String(36), ForeignKey("content.id"), nullable=False, index=True)
    order = Column(Integer, nullable=False)

    content = relationship(Content, lazy="joined")
