import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, JSON, Text
from signage.db import Base

LOG_LEVELS = ("info", "warn", "error")


class Log(Base):
    __tablename__ = "log"
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    level = Column(String(8), nullable=False, default="info", index=True)
    message = Column(Text, nullable=False)
    device_id = Column(String, nullable=True, index=True)
    campaign_id = Column(String(36), nullable=True, index=True)
    content_id = Column(String(36), nullable=True, index=True)
    # "metadata" is reserved on declarative classes.
    meta = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
