import logging
import os
from datetime import datetime, timezone

from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from signage.api import auth, campaign, content, device, log, upload, user
from signage.db import init_schema
from signage.services.notifier import MqttNotifier, NotConnectedError
from signage.services.storage import UPLOAD_DIR, ensure_storage

LOG_LEVEL = os.getenv("SIGNAGE_LOG_LEVEL", "INFO").strip().upper() or "INFO"
QUIET_ACCESS_LOG = os.getenv("SIGNAGE_QUIET_ACCESS_LOG", "1").strip().lower() in {"1", "true", "yes", "on"}
API_VERSION = "1.0.0"

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("signage")

if QUIET_ACCESS_LOG:
    # Keep warning/error lines, suppress normal access noise (200/201 etc).
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

ensure_storage()

app = FastAPI(title="AdBoard API", version=API_VERSION)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.state.notifier = MqttNotifier.from_env()


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    body = exc.detail if isinstance(exc.detail, dict) else {"message": exc.detail}
    return JSONResponse(body, status_code=exc.status_code, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        {"message": "Validation error", "errors": jsonable_encoder(exc.errors())},
        status_code=400,
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse({"message": "Internal server error"}, status_code=500)


@app.get("/")
def root():
    return {"message": "Welcome to AdBoard Digital Signage Server API"}


@app.get("/healthz")
def healthz(request: Request):
    notifier: MqttNotifier = request.app.state.notifier
    return {
        "ok": True,
        "time_utc": datetime.now(timezone.utc).isoformat(),
        "mqtt": {
            "enabled": notifier.enabled,
            "connected": notifier.connected,
            "published": notifier.published,
        },
    }


api_router = APIRouter(prefix="/api")


@api_router.get("")
def api_index():
    return {
        "message": "AdBoard API",
        "version": API_VERSION,
        "endpoints": [
            "/api/auth",
            "/api/users",
            "/api/devices",
            "/api/content",
            "/api/campaigns",
            "/api/uploads",
            "/api/logs",
        ],
    }


api_router.include_router(auth.router)
api_router.include_router(user.router)
api_router.include_router(device.router)
api_router.include_router(content.router)
api_router.include_router(campaign.router)
api_router.include_router(upload.router)
api_router.include_router(log.router)
app.include_router(api_router)

app.mount("/uploads", StaticFiles(directory=UPLOAD_DIR), name="uploads")


@app.on_event("startup")
async def startup_events() -> None:
    init_schema()
    notifier: MqttNotifier = app.state.notifier
    if not notifier.enabled:
        logger.warning("SIGNAGE_MQTT_BROKER_URL is not set - MQTT notifications disabled")
        return
    try:
        await notifier.connect()
    except (NotConnectedError, OSError, ValueError) as exc:
        # paho keeps retrying in the background; the API serves regardless.
        logger.error("MQTT connect failed: %s", exc)


@app.on_event("shutdown")
async def shutdown_events() -> None:
    logger.info("Shutting down gracefully...")
    notifier: MqttNotifier = app.state.notifier
    if notifier.enabled:
        await notifier.disconnect()
