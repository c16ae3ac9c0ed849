import base64
import os
from datetime import timedelta
from sqlalchemy.orm import Session
from signage.db import SessionLocal, init_schema
from signage.models.campaign import Campaign, CampaignContent, CampaignTarget
from signage.models.content import Content
from signage.models.device import Device
from signage.models.user import User
from signage.services.auth import hash_password
from signage.services.clock import utcnow
from signage.services.storage import UPLOAD_DIR, ensure_storage, upload_url

ADMIN_PASSWORD = os.getenv("SIGNAGE_ADMIN_PASSWORD", "adminpassword")


def seed() -> None:
    init_schema()
    ensure_storage()
    db: Session = SessionLocal()
    try:
        if db.query(User).filter(User.username == "admin").first() is None:
            db.add(
                User(
                    username="admin",
                    email="admin@adboard.com",
                    password=hash_password(ADMIN_PASSWORD),
                    role="admin",
                )
            )
            db.commit()

        device = db.query(Device).filter(Device.device_id == "Display-001").first()
        if device is None:
            device = Device(
                device_id="Display-001",
                name="Display-001",
                location="Reception",
                status="online",
                last_seen=utcnow(),
                screen_orientation="landscape",
                screen_resolution="1920x1080",
            )
            db.add(device)
            db.commit()

        png_bytes = base64.b64decode(
            "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAQAAAC1HAwCAAAAC0lEQVR4nGNgYAAAAAMAASsJTYQAAAAASUVORK5CYII="
        )
        filename = "welcome.png"
        with open(os.path.join(UPLOAD_DIR, filename), "wb") as f:
            f.write(png_bytes)
        content = Content(
            title="Welcome Message",
            content_type="image",
            url=upload_url(filename),
            duration=10,
            status="active",
        )
        db.add(content)
        db.commit()
        db.refresh(content)

        now = utcnow()
        campaign = Campaign(
            name="Welcome Campaign",
            description="Display welcome messages for visitors",
            status="active",
            start_date=now,
            end_date=now + timedelta(days=30),
        )
        campaign.targets = [CampaignTarget(device_id=device.device_id, order=0)]
        campaign.content_links = [CampaignContent(content_id=content.id, order=0)]
        db.add(campaign)
        db.commit()
    finally:
        db.close()


if __name__ == "__main__":
    seed()
