from datetime import datetime
from typing import Literal

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

from signage.services.clock import as_naive_utc

DeviceStatus = Literal["online", "offline", "maintenance"]
ScreenOrientation = Literal["landscape", "portrait"]
ContentType = Literal["image", "video", "html", "url"]
ContentStatus = Literal["active", "inactive"]
CampaignStatus = Literal["draft", "active", "paused", "completed"]
UserRole = Literal["admin", "user"]
LogLevel = Literal["info", "warn", "error"]


class CamelModel(BaseModel):
    """Base for payloads exchanged as camelCase JSON."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True
        str_strip_whitespace = True


def naive_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    return as_naive_utc(value)
