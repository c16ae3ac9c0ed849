from datetime import datetime
from pydantic import Field
from signage.schemas.common import CamelModel, DeviceStatus, ScreenOrientation


class DeviceCreate(CamelModel):
    name: str = Field(..., min_length=1)
    device_id: str = Field(..., min_length=1)
    location: str = ""
    screen_orientation: ScreenOrientation = "landscape"
    screen_resolution: str = Field("1920x1080", pattern=r"^\d+x\d+$")


class DeviceUpdate(CamelModel):
    name: str | None = Field(None, min_length=1)
    location: str | None = None
    status: DeviceStatus | None = None
    screen_orientation: ScreenOrientation | None = None
    screen_resolution: str | None = Field(None, pattern=r"^\d+x\d+$")


class DeviceStatusUpdate(CamelModel):
    status: DeviceStatus = "online"


class DeviceOut(CamelModel):
    id: str
    device_id: str
    name: str
    location: str | None = None
    status: str
    last_seen: datetime | None = None
    screen_orientation: str
    screen_resolution: str
    created_at: datetime | None = None
    updated_at: datetime | None = None
