import asyncio
import json
import logging
import os
import uuid
from typing import Any, Callable
from urllib.parse import urlparse

import paho.mqtt.client as mqtt
from fastapi import Request

logger = logging.getLogger(__name__)

DEVICE_TOPIC = "adboard/devices"
CAMPAIGN_TOPIC = "adboard/campaigns"
CONTENT_TOPIC = "adboard/content"
INIT_TOPICS = (DEVICE_TOPIC, CAMPAIGN_TOPIC, CONTENT_TOPIC)
INIT_MESSAGE = "Initializing"
DEVICE_SUBSCRIPTION = f"{DEVICE_TOPIC}/#"

MQTT_BROKER_URL = (os.getenv("SIGNAGE_MQTT_BROKER_URL", "") or "").strip()
MQTT_USERNAME = (os.getenv("SIGNAGE_MQTT_USERNAME", "") or "").strip() or None
MQTT_PASSWORD = os.getenv("SIGNAGE_MQTT_PASSWORD") or None
MQTT_CLIENT_ID = (os.getenv("SIGNAGE_MQTT_CLIENT_ID", "") or "").strip() or None
MQTT_CONNECT_TIMEOUT_SEC = float(os.getenv("SIGNAGE_MQTT_CONNECT_TIMEOUT_SEC", "4"))
MQTT_PUBLISH_TIMEOUT_SEC = float(os.getenv("SIGNAGE_MQTT_PUBLISH_TIMEOUT_SEC", "5"))


class NotConnectedError(RuntimeError):
    pass


class PublishError(RuntimeError):
    pass


def parse_broker_url(url: str) -> tuple[str, int, bool]:
    """Split `mqtt://host:port` (or `mqtts://`) into host, port and TLS flag."""
    parsed = urlparse(url if "://" in url else f"mqtt://{url}")
    scheme = (parsed.scheme or "mqtt").lower()
    if scheme not in {"mqtt", "tcp", "mqtts", "ssl"}:
        raise ValueError(f"Unsupported MQTT URL scheme: {scheme}")
    if not parsed.hostname:
        raise ValueError(f"MQTT URL has no host: {url}")
    tls = scheme in {"mqtts", "ssl"}
    return parsed.hostname, parsed.port or (8883 if tls else 1883), tls


def _default_client_id() -> str:
    return f"adboard-server-{uuid.uuid4().hex[:8]}"


class MqttNotifier:
    """
    Owned MQTT connection used to announce entity changes.

    paho-mqtt runs its network loop on a background thread; connect and
    publish are exposed as coroutines that resolve once the broker has
    acknowledged them. paho's own reconnect handling stays enabled after the
    first successful connect.
    """

    def __init__(
        self,
        broker_url: str | None,
        username: str | None = None,
        password: str | None = None,
        client_id: str | None = None,
        connect_timeout: float = 4.0,
        publish_timeout: float = 5.0,
        client_factory: Callable[[str], Any] | None = None,
    ) -> None:
        self.broker_url = (broker_url or "").strip()
        self.username = username
        self.password = password
        self.client_id = client_id or _default_client_id()
        self.connect_timeout = connect_timeout
        self.publish_timeout = publish_timeout
        self._client_factory = client_factory or self._new_paho_client
        self._client: Any = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._connect_future: asyncio.Future | None = None
        self._published = 0

    @classmethod
    def from_env(cls) -> "MqttNotifier":
        return cls(
            MQTT_BROKER_URL,
            username=MQTT_USERNAME,
            password=MQTT_PASSWORD,
            client_id=MQTT_CLIENT_ID,
            connect_timeout=MQTT_CONNECT_TIMEOUT_SEC,
            publish_timeout=MQTT_PUBLISH_TIMEOUT_SEC,
        )

    @property
    def enabled(self) -> bool:
        return bool(self.broker_url)

    @property
    def connected(self) -> bool:
        return self._client is not None and self._client.is_connected()

    @property
    def published(self) -> int:
        return self._published

    @staticmethod
    def _new_paho_client(client_id: str):
        return mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=client_id, clean_session=True)

    async def connect(self) -> None:
        if not self.enabled:
            raise NotConnectedError("MQTT broker URL is not configured")
        if self.connected:
            return
        host, port, tls = parse_broker_url(self.broker_url)

        if self._client is not None:
            # An earlier attempt that timed out still has its network thread running.
            logger.info("Stopping previous MQTT client before reconnecting")
            await self._release_client()
        self._loop = asyncio.get_running_loop()
        self._connect_future = self._loop.create_future()
        client = self._client_factory(self.client_id)
        if self.username:
            client.username_pw_set(self.username, self.password)
        if tls:
            client.tls_set()
        client.reconnect_delay_set(min_delay=1, max_delay=30)
        client.on_connect = self._on_connect
        client.on_disconnect = self._on_disconnect
        client.on_message = self._on_message
        self._client = client

        client.connect_async(host, port, keepalive=60)
        client.loop_start()
        try:
            await asyncio.wait_for(asyncio.shield(self._connect_future), timeout=self.connect_timeout)
        except asyncio.TimeoutError as exc:
            logger.error("MQTT connection to %s timed out after %ss", self.broker_url, self.connect_timeout)
            raise NotConnectedError(f"Timed out connecting to {self.broker_url}") from exc

        for topic in INIT_TOPICS:
            await self.publish_safely(topic, INIT_MESSAGE, retain=True)

    def _resolve_connect(self, error: Exception | None) -> None:
        future = self._connect_future
        if future is None or future.done():
            return
        if error is None:
            future.set_result(True)
        else:
            future.set_exception(error)

    def _notify_loop(self, error: Exception | None) -> None:
        if self._loop is not None and not self._loop.is_closed():
            self._loop.call_soon_threadsafe(self._resolve_connect, error)

    def _on_connect(self, client, userdata, flags, reason_code, properties) -> None:
        if reason_code.is_failure:
            logger.error("MQTT connection refused: %s", reason_code)
            self._notify_loop(NotConnectedError(f"MQTT connection refused: {reason_code}"))
            return
        logger.info("Connected to MQTT broker: %s", self.broker_url)
        # Clean sessions drop subscriptions, so this runs on every reconnect.
        result, _ = client.subscribe(DEVICE_SUBSCRIPTION, qos=1)
        if result == mqtt.MQTT_ERR_SUCCESS:
            logger.info("Subscribed to device topics")
        else:
            logger.error("Error subscribing to device topics: %s", mqtt.error_string(result))
        self._notify_loop(None)

    def _on_disconnect(self, client, userdata, flags, reason_code, properties) -> None:
        if reason_code.is_failure:
            logger.warning("MQTT client offline (%s), reconnecting", reason_code)
        else:
            logger.info("MQTT client disconnected")

    def _on_message(self, client, userdata, message) -> None:
        parts = message.topic.split("/")
        if len(parts) == 4 and parts[3] == "status":
            device_id = parts[2]
            try:
                status = json.loads(message.payload.decode("utf-8"))
            except (UnicodeDecodeError, json.JSONDecodeError) as exc:
                logger.error("Error parsing status message from device %s: %s", device_id, exc)
                return
            state = status.get("state") if isinstance(status, dict) else status
            logger.info("Device %s reported status: %s", device_id, state)
            return
        logger.debug("MQTT message received on %s", message.topic)

    async def publish(self, topic: str, message: Any, qos: int = 1, retain: bool = False) -> None:
        if not self.connected:
            raise NotConnectedError("MQTT client not connected")
        payload = message if isinstance(message, (str, bytes)) else json.dumps(message, default=str)

        info = self._client.publish(topic, payload, qos=qos, retain=retain)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise PublishError(f"Error publishing to {topic}: {mqtt.error_string(info.rc)}")
        try:
            await asyncio.to_thread(info.wait_for_publish, self.publish_timeout)
        except (RuntimeError, ValueError) as exc:
            raise PublishError(f"Error publishing to {topic}: {exc}") from exc
        if not info.is_published():
            raise PublishError(f"Publish to {topic} was not acknowledged within {self.publish_timeout}s")
        self._published += 1
        logger.debug("Published to %s: %s", topic, payload)

    async def publish_safely(self, topic: str, message: Any, qos: int = 1, retain: bool = False) -> bool:
        """Publish without raising; failures are logged and dropped."""
        try:
            await self.publish(topic, message, qos=qos, retain=retain)
        except (NotConnectedError, PublishError) as exc:
            logger.error("Dropped MQTT message for %s: %s", topic, exc)
            return False
        return True

    async def _release_client(self) -> None:
        client, self._client = self._client, None
        client.disconnect()
        await asyncio.to_thread(client.loop_stop)

    async def disconnect(self) -> None:
        if self._client is None:
            logger.warning("MQTT client not connected, nothing to disconnect")
            return
        await self._release_client()
        logger.info("Disconnected from MQTT broker")


def get_notifier(request: Request) -> MqttNotifier:
    return request.app.state.notifier
