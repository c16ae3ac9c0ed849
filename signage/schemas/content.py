from datetime import datetime
from signage.schemas.common import CamelModel


class ContentOut(CamelModel):
    id: str
    title: str
    description: str | None = None
    content_type: str
    url: str
    duration: int
    status: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


class UploadOut(CamelModel):
    filename: str
    originalname: str
    mimetype: str
    size: int
    url: str
