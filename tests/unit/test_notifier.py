"""
Unit tests for the MQTT notifier.

A fake paho client stands in for the network; it fires `on_connect` from
`loop_start` the way paho's network thread would after CONNACK.
"""
import json
from unittest.mock import MagicMock

import paho.mqtt.client as mqtt
import pytest

from signage.services.notifier import (
    CAMPAIGN_TOPIC,
    CONTENT_TOPIC,
    DEVICE_SUBSCRIPTION,
    DEVICE_TOPIC,
    INIT_MESSAGE,
    MqttNotifier,
    NotConnectedError,
    PublishError,
    parse_broker_url,
)

pytestmark = pytest.mark.unit


class FakeReasonCode:
    def __init__(self, failure: bool = False):
        self.is_failure = failure

    def __str__(self):
        return "Not authorized" if self.is_failure else "Success"


class FakeMessageInfo:
    def __init__(self, rc: int = mqtt.MQTT_ERR_SUCCESS, acknowledged: bool = True):
        self.rc = rc
        self._acknowledged = acknowledged

    def wait_for_publish(self, timeout=None):
        return None

    def is_published(self):
        return self._acknowledged


class FakePahoClient:
    def __init__(self, client_id, refuse=False, silent=False):
        self.client_id = client_id
        self.refuse = refuse
        self.silent = silent
        self.credentials = None
        self.tls = False
        self.connected_to = None
        self.subscriptions = []
        self.published = []
        self.publish_rc = mqtt.MQTT_ERR_SUCCESS
        self.acknowledge = True
        self.loop_stopped = False
        self._connected = False
        self.on_connect = None
        self.on_disconnect = None
        self.on_message = None

    def username_pw_set(self, username, password=None):
        self.credentials = (username, password)

    def tls_set(self):
        self.tls = True

    def reconnect_delay_set(self, min_delay=1, max_delay=120):
        self.reconnect_delay = (min_delay, max_delay)

    def connect_async(self, host, port, keepalive=60):
        self.connected_to = (host, port)

    def loop_start(self):
        if self.silent:
            return
        self._connected = not self.refuse
        self.on_connect(self, None, {}, FakeReasonCode(self.refuse), None)

    def loop_stop(self):
        self.loop_stopped = True
        self._connected = False

    def subscribe(self, topic, qos=0):
        self.subscriptions.append((topic, qos))
        return mqtt.MQTT_ERR_SUCCESS, 1

    def publish(self, topic, payload, qos=0, retain=False):
        self.published.append((topic, payload, qos, retain))
        return FakeMessageInfo(self.publish_rc, self.acknowledge)

    def is_connected(self):
        return self._connected

    def disconnect(self):
        self._connected = False


def build_notifier(url="mqtt://broker:1883", **client_options):
    clients = []

    def factory(client_id):
        client = FakePahoClient(client_id, **client_options)
        clients.append(client)
        return client

    notifier = MqttNotifier(
        url,
        username="server",
        password="pw",
        client_id="adboard-test",
        connect_timeout=0.2,
        client_factory=factory,
    )
    return notifier, clients


class TestParseBrokerUrl:
    @pytest.mark.parametrize(
        "url, expected",
        [
            ("mqtt://broker", ("broker", 1883, False)),
            ("mqtt://broker:1884", ("broker", 1884, False)),
            ("mqtts://broker", ("broker", 8883, True)),
            ("broker.local", ("broker.local", 1883, False)),
        ],
    )
    def test_valid_urls(self, url, expected):
        assert parse_broker_url(url) == expected

    @pytest.mark.parametrize("url", ["http://broker", "mqtt://"])
    def test_invalid_urls(self, url):
        with pytest.raises(ValueError):
            parse_broker_url(url)


class TestConnect:
    @pytest.mark.asyncio
    async def test_connect_subscribes_and_announces(self):
        """Connecting subscribes to device topics and publishes retained init messages."""
        notifier, clients = build_notifier()

        await notifier.connect()

        client = clients[0]
        assert notifier.connected
        assert client.connected_to == ("broker", 1883)
        assert client.credentials == ("server", "pw")
        assert client.subscriptions == [(DEVICE_SUBSCRIPTION, 1)]
        assert client.published == [
            (DEVICE_TOPIC, INIT_MESSAGE, 1, True),
            (CAMPAIGN_TOPIC, INIT_MESSAGE, 1, True),
            (CONTENT_TOPIC, INIT_MESSAGE, 1, True),
        ]
        assert notifier.published == 3

    @pytest.mark.asyncio
    async def test_tls_scheme_enables_tls(self):
        notifier, clients = build_notifier("mqtts://broker")

        await notifier.connect()

        assert clients[0].tls
        assert clients[0].connected_to == ("broker", 8883)

    @pytest.mark.asyncio
    async def test_refused_connection_raises(self):
        notifier, _ = build_notifier(refuse=True)

        with pytest.raises(NotConnectedError, match="refused"):
            await notifier.connect()

    @pytest.mark.asyncio
    async def test_silent_broker_times_out(self):
        notifier, _ = build_notifier(silent=True)

        with pytest.raises(NotConnectedError, match="Timed out"):
            await notifier.connect()

    @pytest.mark.asyncio
    async def test_retry_after_timeout_stops_previous_client(self):
        """A second connect attempt shuts down the client left over from a timed-out one."""
        notifier, clients = build_notifier(silent=True)
        with pytest.raises(NotConnectedError):
            await notifier.connect()

        with pytest.raises(NotConnectedError):
            await notifier.connect()

        assert len(clients) == 2
        assert clients[0].loop_stopped
        assert not clients[1].loop_stopped

    @pytest.mark.asyncio
    async def test_unconfigured_notifier_cannot_connect(self):
        notifier = MqttNotifier(None)

        assert not notifier.enabled
        with pytest.raises(NotConnectedError):
            await notifier.connect()


class TestPublish:
    @pytest.mark.asyncio
    async def test_dict_payload_is_json_encoded(self):
        notifier, clients = build_notifier()
        await notifier.connect()

        await notifier.publish(CAMPAIGN_TOPIC, {"event": "campaign_created", "campaignId": "c1"})

        topic, payload, qos, retain = clients[0].published[-1]
        assert topic == CAMPAIGN_TOPIC
        assert json.loads(payload) == {"event": "campaign_created", "campaignId": "c1"}
        assert (qos, retain) == (1, False)

    @pytest.mark.asyncio
    async def test_publish_before_connect_raises(self):
        notifier, _ = build_notifier()

        with pytest.raises(NotConnectedError):
            await notifier.publish(DEVICE_TOPIC, "hello")

    @pytest.mark.asyncio
    async def test_rejected_publish_raises(self):
        notifier, clients = build_notifier()
        await notifier.connect()
        clients[0].publish_rc = mqtt.MQTT_ERR_NO_CONN

        with pytest.raises(PublishError):
            await notifier.publish(DEVICE_TOPIC, "hello")

    @pytest.mark.asyncio
    async def test_unacknowledged_publish_raises(self):
        notifier, clients = build_notifier()
        await notifier.connect()
        clients[0].acknowledge = False

        with pytest.raises(PublishError, match="not acknowledged"):
            await notifier.publish(DEVICE_TOPIC, "hello")

    @pytest.mark.asyncio
    async def test_publish_safely_reports_failure(self, caplog):
        notifier, _ = build_notifier()

        assert await notifier.publish_safely(DEVICE_TOPIC, {"event": "device_created"}) is False
        assert "Dropped MQTT message" in caplog.text


class TestIncomingAndDisconnect:
    def test_device_status_message_is_logged(self, caplog):
        notifier, _ = build_notifier()
        message = MagicMock(topic="adboard/devices/disp-1/status", payload=b'{"state": "online"}')

        with caplog.at_level("INFO", logger="signage.services.notifier"):
            notifier._on_message(None, None, message)

        assert "Device disp-1 reported status: online" in caplog.text

    def test_malformed_status_message_is_logged_as_error(self, caplog):
        notifier, _ = build_notifier()
        message = MagicMock(topic="adboard/devices/disp-1/status", payload=b"{not json")

        notifier._on_message(None, None, message)

        assert "Error parsing status message from device disp-1" in caplog.text

    @pytest.mark.asyncio
    async def test_disconnect_stops_client(self):
        notifier, clients = build_notifier()
        await notifier.connect()

        await notifier.disconnect()

        assert not notifier.connected
        assert not clients[0].is_connected()

    @pytest.mark.asyncio
    async def test_disconnect_without_client_warns(self, caplog):
        notifier, _ = build_notifier()

        await notifier.disconnect()

        assert "nothing to disconnect" in caplog.text
