from datetime import datetime
from typing import Any
from pydantic import Field
from signage.schemas.common import CamelModel


class LogOut(CamelModel):
    id: str
    level: str
    message: str
    device_id: str | None = None
    campaign_id: str | None = None
    content_id: str | None = None
    metadata: dict[str, Any] | None = Field(None, validation_alias="meta")
    created_at: datetime | None = None
