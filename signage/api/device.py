import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from signage.db import get_db
from signage.models.device import Device
from signage.models.user import User
from signage.schemas.device import DeviceCreate, DeviceOut, DeviceStatusUpdate, DeviceUpdate
from signage.services.activity import record_log
from signage.services.auth import get_current_user
from signage.services.clock import utcnow
from signage.services.notifier import DEVICE_TOPIC, MqttNotifier, get_notifier

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/devices", tags=["devices"])


def _find_device(db: Session, device_id: str) -> Device:
    device = db.query(Device).filter(Device.device_id == device_id).first()
    if not device:
        raise HTTPException(status_code=404, detail="Device not found")
    return device


def _get_device(db: Session, id: str) -> Device:
    device = db.query(Device).get(id)
    if not device:
        raise HTTPException(status_code=404, detail="Device not found")
    return device


@router.get("", response_model=list[DeviceOut])
def list_devices(db: Session = Depends(get_db)):
    return db.query(Device).order_by(Device.created_at).all()


@router.get("/by-device-id/{device_id}", response_model=DeviceOut)
def get_device_by_device_id(device_id: str, db: Session = Depends(get_db)):
    return _find_device(db, device_id)


@router.get("/{id}", response_model=DeviceOut)
def get_device(id: str, db: Session = Depends(get_db)):
    return _get_device(db, id)


@router.post("", response_model=DeviceOut, status_code=201)
def create_device(
    payload: DeviceCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    notifier: MqttNotifier = Depends(get_notifier),
    _user: User = Depends(get_current_user),
):
    if db.query(Device).filter(Device.device_id == payload.device_id).first():
        raise HTTPException(status_code=400, detail="Device ID already exists")
    device = Device(
        device_id=payload.device_id,
        name=payload.name,
        location=payload.location,
        screen_orientation=payload.screen_orientation,
        screen_resolution=payload.screen_resolution,
        status="offline",
        last_seen=utcnow(),
    )
    db.add(device)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=400, detail="Device ID already exists")
    db.refresh(device)
    background_tasks.add_task(
        notifier.publish_safely,
        DEVICE_TOPIC,
        {"event": "device_created", "deviceId": device.device_id},
    )
    return device


@router.put("/status/{device_id}", response_model=DeviceOut)
def update_device_status(
    device_id: str,
    background_tasks: BackgroundTasks,
    payload: DeviceStatusUpdate | None = None,
    db: Session = Depends(get_db),
    notifier: MqttNotifier = Depends(get_notifier),
    _user: User = Depends(get_current_user),
):
    device = _find_device(db, device_id)
    status = payload.status if payload is not None else "online"
    previous = device.status
    device.status = status
    device.last_seen = utcnow()
    if previous != status:
        record_log(
            db,
            "info",
            f"Device {device_id} status changed from {previous} to {status}",
            device_id=device_id,
        )
    db.commit()
    db.refresh(device)
    background_tasks.add_task(
        notifier.publish_safely,
        DEVICE_TOPIC,
        {"event": "device_status", "deviceId": device_id, "status": status},
    )
    return device


@router.put("/{id}", response_model=DeviceOut)
def update_device(
    id: str,
    payload: DeviceUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    notifier: MqttNotifier = Depends(get_notifier),
    _user: User = Depends(get_current_user),
):
    device = _get_device(db, id)
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)
    for field, value in changes.items():
        setattr(device, field, value)
    if changes.get("status") == "online":
        device.last_seen = utcnow()
    db.commit()
    db.refresh(device)
    background_tasks.add_task(
        notifier.publish_safely,
        DEVICE_TOPIC,
        {"event": "device_updated", "deviceId": device.device_id},
    )
    return device


@router.delete("/{id}")
def delete_device(
    id: str,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    notifier: MqttNotifier = Depends(get_notifier),
    _user: User = Depends(get_current_user),
):
    device = _get_device(db, id)
    device_id = device.device_id
    # Campaign target lists keep the identifier; targets are checked only on campaign writes.
    db.delete(device)
    db.commit()
    logger.info("Deleted device %s", device_id)
    background_tasks.add_task(
        notifier.publish_safely,
        DEVICE_TOPIC,
        {"event": "device_deleted", "deviceId": device_id},
    )
    return {"message": "Device deleted successfully"}
