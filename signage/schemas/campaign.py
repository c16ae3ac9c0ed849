from datetime import datetime

from pydantic import Field, field_validator, model_validator

from signage.schemas.common import CamelModel, CampaignStatus, naive_utc
from signage.schemas.content import ContentOut


class CampaignCreate(CamelModel):
    name: str = Field(..., min_length=1)
    description: str | None = None
    status: CampaignStatus = "draft"
    start_date: datetime | None = None
    end_date: datetime
    target_devices: list[str] = Field(default_factory=list)
    contents: list[str] = Field(default_factory=list)

    @field_validator("start_date", "end_date")
    @classmethod
    def normalize_dates(cls, value):
        return naive_utc(value)

    @model_validator(mode="after")
    def check_window(self):
        if self.start_date is not None and self.end_date < self.start_date:
            raise ValueError("endDate must not be before startDate")
        return self


class CampaignUpdate(CamelModel):
    name: str | None = Field(None, min_length=1)
    description: str | None = None
    status: CampaignStatus | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None
    target_devices: list[str] | None = None
    contents: list[str] | None = None

    @field_validator("start_date", "end_date")
    @classmethod
    def normalize_dates(cls, value):
        return naive_utc(value)


class CampaignOut(CamelModel):
    id: str
    name: str
    description: str | None = None
    status: str
    start_date: datetime
    end_date: datetime
    target_devices: list[str]
    contents: list[ContentOut]
    created_at: datetime | None = None
    updated_at: datetime | None = None
