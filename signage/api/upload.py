import logging
import os

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from signage.models.user import User
from signage.schemas.content import UploadOut
from signage.services.auth import get_current_user
from signage.services.storage import UnsupportedUpload, delete_upload, save_upload, upload_url

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/uploads", tags=["uploads"])


@router.post("", response_model=UploadOut, status_code=201)
def upload_file(file: UploadFile = File(...), _user: User = Depends(get_current_user)):
    try:
        filename, size = save_upload(file)
    except UnsupportedUpload as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return UploadOut(
        filename=filename,
        originalname=os.path.basename(file.filename or ""),
        mimetype=file.content_type or "",
        size=size,
        url=upload_url(filename),
    )


@router.delete("/{filename}")
def remove_file(filename: str, _user: User = Depends(get_current_user)):
    try:
        delete_upload(filename)
    except (FileNotFoundError, IsADirectoryError) as exc:
        raise HTTPException(status_code=404, detail="File not found") from exc
    except OSError as exc:
        logger.warning("Could not delete file %s: %s", filename, exc)
        raise HTTPException(status_code=400, detail="File could not be deleted") from exc
    return {"message": "File deleted successfully"}
