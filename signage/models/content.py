import uuid
from datetime import datetime
from sqlalchemy import Column, String, Integer, DateTime, Text
from signage.db import Base

CONTENT_TYPES = ("image", "video", "html", "url")
CONTENT_STATUSES = ("active", "inactive")
FILE_CONTENT_TYPES = {"image", "video"}


class Content(Base):
    __tablename__ = "content"
    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    content_type = Column(String, nullable=False)
    url = Column(String, nullable=False)
    duration = Column(Integer, nullable=False, default=10)
    status = Column(String, nullable=False, default="active")
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
