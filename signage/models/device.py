import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime
from signage.db import Base

DEVICE_STATUSES = ("online", "offline", "maintenance")
SCREEN_ORIENTATIONS = ("landscape", "portrait")


class Device(Base):
    __tablename__ = "device"
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    device_id = Column(String, nullable=False, unique=True, index=True)
    name = Column(String, nullable=False)
    location = Column(String, nullable=True)
    status = Column(String, nullable=False, default="offline")
    last_seen = Column(DateTime, default=datetime.utcnow)
    screen_orientation = Column(String, nullable=False, default="landscape")
    screen_resolution = Column(String, nullable=False, default="1920x1080")
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
