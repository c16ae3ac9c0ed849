import logging

from fastapi import APIRouter, BackgroundTasks, Depends, File, Form, HTTPException, UploadFile
from sqlalchemy.orm import Session

from signage.db import get_db
from signage.models.content import FILE_CONTENT_TYPES, Content
from signage.models.user import User
from signage.schemas.common import ContentStatus, ContentType
from signage.schemas.content import ContentOut
from signage.services.activity import record_log
from signage.services.auth import get_current_user
from signage.services.integrity import ContentInUse, assert_content_not_referenced
from signage.services.notifier import CONTENT_TOPIC, MqttNotifier, get_notifier
from signage.services.storage import (
    UnsupportedUpload,
    discard_upload,
    save_upload,
    stored_filename,
    upload_url,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/content", tags=["content"])


def _get_content(db: Session, content_id: str) -> Content:
    content = db.query(Content).get(content_id)
    if not content:
        raise HTTPException(status_code=404, detail="Content not found")
    return content


def _store_file(file: UploadFile) -> str:
    try:
        filename, _size = save_upload(file)
    except UnsupportedUpload as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return filename


def _clean(value: str | None) -> str | None:
    if value is None:
        return None
    return value.strip() or None


@router.get("", response_model=list[ContentOut])
def list_content(db: Session = Depends(get_db)):
    return db.query(Content).order_by(Content.created_at.desc()).all()


@router.get("/{content_id}", response_model=ContentOut)
def get_content(content_id: str, db: Session = Depends(get_db)):
    return _get_content(db, content_id)


@router.post("", response_model=ContentOut, status_code=201)
def create_content(
    background_tasks: BackgroundTasks,
    title: str = Form(..., min_length=1),
    content_type: ContentType = Form(..., alias="contentType"),
    description: str | None = Form(None),
    url: str | None = Form(None),
    duration: int | None = Form(None, ge=1),
    status: ContentStatus | None = Form(None),
    file: UploadFile | None = File(None),
    db: Session = Depends(get_db),
    notifier: MqttNotifier = Depends(get_notifier),
    _user: User = Depends(get_current_user),
):
    if file is None and content_type in FILE_CONTENT_TYPES:
        raise HTTPException(status_code=400, detail="File required for image or video content")

    filename = _store_file(file) if file is not None else None
    resolved_url = upload_url(filename) if filename else _clean(url)
    if not resolved_url:
        raise HTTPException(status_code=400, detail="URL required for html or url content")

    content = Content(
        title=title.strip(),
        description=_clean(description),
        content_type=content_type,
        url=resolved_url,
        duration=duration or 10,
        status=status or "active",
    )
    db.add(content)
    try:
        db.commit()
    except Exception:
        db.rollback()
        discard_upload(filename)
        raise
    db.refresh(content)
    background_tasks.add_task(
        notifier.publish_safely,
        CONTENT_TOPIC,
        {"event": "content_created", "contentId": content.id},
    )
    return content


@router.put("/{content_id}", response_model=ContentOut)
def update_content(
    content_id: str,
    background_tasks: BackgroundTasks,
    title: str | None = Form(None, min_length=1),
    content_type: ContentType | None = Form(None, alias="contentType"),
    description: str | None = Form(None),
    url: str | None = Form(None),
    duration: int | None = Form(None, ge=1),
    status: ContentStatus | None = Form(None),
    file: UploadFile | None = File(None),
    db: Session = Depends(get_db),
    notifier: MqttNotifier = Depends(get_notifier),
    _user: User = Depends(get_current_user),
):
    content = _get_content(db, content_id)

    replaced_file = None
    if file is not None:
        new_filename = _store_file(file)
        replaced_file = stored_filename(content.url)
        url = upload_url(new_filename)

    if _clean(title):
        content.title = title.strip()
    if _clean(description):
        content.description = description.strip()
    if content_type:
        content.content_type = content_type
    if _clean(url):
        content.url = url.strip()
    if duration:
        content.duration = duration
    if status:
        content.status = status
    db.commit()
    db.refresh(content)

    # Old file goes only after the new URL is persisted.
    discard_upload(replaced_file)
    background_tasks.add_task(
        notifier.publish_safely,
        CONTENT_TOPIC,
        {"event": "content_updated", "contentId": content.id},
    )
    return content


@router.delete("/{content_id}")
def delete_content(
    content_id: str,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    notifier: MqttNotifier = Depends(get_notifier),
    _user: User = Depends(get_current_user),
):
    content = _get_content(db, content_id)
    try:
        assert_content_not_referenced(db, content_id)
    except ContentInUse as exc:
        record_log(
            db,
            "warn",
            f"Blocked deletion of content {content.title}",
            content_id=content_id,
            metadata={"campaigns": exc.campaign_names},
        )
        db.commit()
        raise HTTPException(
            status_code=400,
            detail={"message": str(exc), "campaigns": exc.campaigns},
        ) from exc

    filename = stored_filename(content.url)
    db.delete(content)
    record_log(db, "info", f"Deleted content {content.title}", content_id=content_id)
    db.commit()
    discard_upload(filename)
    logger.info("Deleted content %s", content_id)
    background_tasks.add_task(
        notifier.publish_safely,
        CONTENT_TOPIC,
        {"event": "content_deleted", "contentId": content_id},
    )
    return {"message": "Content deleted successfully"}
