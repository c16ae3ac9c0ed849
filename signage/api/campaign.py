import logging

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException
from sqlalchemy.orm import Session, selectinload

from signage.db import get_db
from signage.models.campaign import Campaign, CampaignContent, CampaignTarget
from signage.models.user import User
from signage.schemas.campaign import CampaignCreate, CampaignOut, CampaignUpdate
from signage.services.activity import record_log
from signage.services.auth import get_current_user
from signage.services.clock import utcnow
from signage.services.eligibility import DeviceNotFound, active_campaigns_for
from signage.services.integrity import (
    InvalidReference,
    UnknownContent,
    validate_content_refs,
    validate_target_devices,
)
from signage.services.notifier import CAMPAIGN_TOPIC, MqttNotifier, get_notifier

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/campaigns", tags=["campaigns"])


def _campaign_query(db: Session):
    return db.query(Campaign).options(
        selectinload(Campaign.targets),
        selectinload(Campaign.content_links).joinedload(CampaignContent.content),
    )


def _get_campaign(db: Session, campaign_id: str) -> Campaign:
    campaign = _campaign_query(db).filter(Campaign.id == campaign_id).first()
    if not campaign:
        raise HTTPException(status_code=404, detail="Campaign not found")
    return campaign


def _unique(values: list[str]) -> list[str]:
    return list(dict.fromkeys(values))


def _check_references(db: Session, target_devices: list[str] | None, contents: list[str] | None) -> None:
    try:
        validate_target_devices(db, target_devices)
        validate_content_refs(db, contents)
    except InvalidReference as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except UnknownContent as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def _announce(background_tasks: BackgroundTasks, notifier: MqttNotifier, event: str, campaign: Campaign) -> None:
    background_tasks.add_task(
        notifier.publish_safely,
        CAMPAIGN_TOPIC,
        {
            "event": event,
            "campaignId": campaign.id,
            "status": campaign.status,
            "targetDevices": campaign.target_devices,
        },
    )


@router.get("", response_model=list[CampaignOut])
def list_campaigns(db: Session = Depends(get_db)):
    campaigns = _campaign_query(db).order_by(Campaign.created_at).all()
    return [CampaignOut.model_validate(campaign) for campaign in campaigns]


@router.get("/device/{device_id}", response_model=list[CampaignOut])
def list_device_campaigns(device_id: str, db: Session = Depends(get_db)):
    try:
        campaigns = active_campaigns_for(db, device_id)
    except DeviceNotFound as exc:
        raise HTTPException(status_code=404, detail="Device not found") from exc
    return [CampaignOut.model_validate(campaign) for campaign in campaigns]


@router.get("/{campaign_id}", response_model=CampaignOut)
def get_campaign(campaign_id: str, db: Session = Depends(get_db)):
    return CampaignOut.model_validate(_get_campaign(db, campaign_id))


@router.post("", response_model=CampaignOut, status_code=201)
def create_campaign(
    payload: CampaignCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    notifier: MqttNotifier = Depends(get_notifier),
    _user: User = Depends(get_current_user),
):
    target_devices = _unique(payload.target_devices)
    _check_references(db, target_devices, payload.contents)

    start_date = payload.start_date or utcnow()
    if payload.end_date < start_date:
        raise HTTPException(status_code=400, detail="endDate must not be before startDate")

    campaign = Campaign(
        name=payload.name,
        description=payload.description,
        status=payload.status,
        start_date=start_date,
        end_date=payload.end_date,
    )
    campaign.targets = [
        CampaignTarget(device_id=device_id, order=index)
        for index, device_id in enumerate(target_devices)
    ]
    campaign.content_links = [
        CampaignContent(content_id=content_id, order=index)
        for index, content_id in enumerate(payload.contents)
    ]
    db.add(campaign)
    db.flush()
    record_log(db, "info", f"Created campaign {campaign.name}", campaign_id=campaign.id)
    db.commit()

    campaign = _get_campaign(db, campaign.id)
    _announce(background_tasks, notifier, "campaign_created", campaign)
    return CampaignOut.model_validate(campaign)


@router.put("/{campaign_id}", response_model=CampaignOut)
def update_campaign(
    campaign_id: str,
    payload: CampaignUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    notifier: MqttNotifier = Depends(get_notifier),
    _user: User = Depends(get_current_user),
):
    campaign = _get_campaign(db, campaign_id)
    changes = payload.model_dump(exclude_unset=True, exclude_none=True)

    target_devices = changes.pop("target_devices", None)
    contents = changes.pop("contents", None)
    if target_devices is not None:
        target_devices = _unique(target_devices)
    _check_references(db, target_devices, contents)

    start_date = changes.get("start_date", campaign.start_date)
    end_date = changes.get("end_date", campaign.end_date)
    if end_date < start_date:
        raise HTTPException(status_code=400, detail="endDate must not be before startDate")

    for field, value in changes.items():
        setattr(campaign, field, value)
    if target_devices is not None:
        campaign.targets = [
            CampaignTarget(device_id=device_id, order=index)
            for index, device_id in enumerate(target_devices)
        ]
    if contents is not None:
        campaign.content_links = [
            CampaignContent(content_id=content_id, order=index)
            for index, content_id in enumerate(contents)
        ]
    record_log(
        db,
        "info",
        f"Updated campaign {campaign.name}",
        campaign_id=campaign.id,
        metadata={"fields": sorted(payload.model_dump(exclude_unset=True, exclude_none=True))},
    )
    db.commit()

    campaign = _get_campaign(db, campaign_id)
    _announce(background_tasks, notifier, "campaign_updated", campaign)
    return CampaignOut.model_validate(campaign)


@router.delete("/{campaign_id}")
def delete_campaign(
    campaign_id: str,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    notifier: MqttNotifier = Depends(get_notifier),
    _user: User = Depends(get_current_user),
):
    campaign = _get_campaign(db, campaign_id)
    _announce(background_tasks, notifier, "campaign_deleted", campaign)
    db.delete(campaign)
    record_log(db, "info", f"Deleted campaign {campaign.name}", campaign_id=campaign_id)
    db.commit()
    logger.info("Deleted campaign %s", campaign_id)
    return {"message": "Campaign deleted successfully"}
