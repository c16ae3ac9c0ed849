"""HTTP tests for device registration and status reporting."""
import pytest

from signage.services.notifier import DEVICE_TOPIC
from tests.factories import add_device

pytestmark = pytest.mark.api


class TestCreateDevice:
    def test_create_device_defaults(self, client, auth_headers, notifier):
        response = client.post(
            "/api/devices",
            json={"name": "Lobby screen", "deviceId": "disp-1", "location": "Lobby"},
            headers=auth_headers,
        )

        assert response.status_code == 201
        body = response.json()
        assert body["deviceId"] == "disp-1"
        assert body["status"] == "offline"
        assert body["screenOrientation"] == "landscape"
        assert body["screenResolution"] == "1920x1080"
        assert body["lastSeen"] is not None
        assert notifier.events(DEVICE_TOPIC) == ["device_created"]

    def test_duplicate_device_id_is_rejected(self, client, db, auth_headers):
        add_device(db, "disp-1")

        response = client.post(
            "/api/devices",
            json={"name": "Again", "deviceId": "disp-1"},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json()["message"] == "Device ID already exists"

    def test_bad_resolution_is_a_validation_error(self, client, auth_headers):
        response = client.post(
            "/api/devices",
            json={"name": "Lobby", "deviceId": "disp-1", "screenResolution": "wide"},
            headers=auth_headers,
        )

        assert response.status_code == 400


class TestReadDevices:
    def test_list_and_lookups(self, client, db):
        device = add_device(db, "disp-1")
        add_device(db, "disp-2")

        listing = client.get("/api/devices")
        by_id = client.get(f"/api/devices/{device.id}")
        by_device_id = client.get("/api/devices/by-device-id/disp-1")

        assert sorted(d["deviceId"] for d in listing.json()) == ["disp-1", "disp-2"]
        assert by_id.json()["deviceId"] == "disp-1"
        assert by_device_id.json()["id"] == device.id

    def test_missing_device_is_404(self, client):
        response = client.get("/api/devices/nope")

        assert response.status_code == 404
        assert response.json()["message"] == "Device not found"


class TestDeviceStatus:
    def test_status_report_defaults_to_online(self, client, db, auth_headers, notifier):
        add_device(db, "disp-1")

        response = client.put("/api/devices/status/disp-1", headers=auth_headers)

        assert response.status_code == 200
        assert response.json()["status"] == "online"
        assert notifier.messages[-1] == (
            DEVICE_TOPIC,
            {"event": "device_status", "deviceId": "disp-1", "status": "online"},
        )

    def test_status_change_is_logged(self, client, db, auth_headers):
        add_device(db, "disp-1")

        client.put("/api/devices/status/disp-1", json={"status": "maintenance"}, headers=auth_headers)
        logs = client.get("/api/logs", params={"deviceId": "disp-1"}, headers=auth_headers).json()

        assert len(logs) == 1
        assert "from offline to maintenance" in logs[0]["message"]

    def test_unknown_device_status_is_404(self, client, auth_headers):
        response = client.put("/api/devices/status/ghost", headers=auth_headers)

        assert response.status_code == 404


class TestUpdateAndDelete:
    def test_partial_update_keeps_other_fields(self, client, db, auth_headers):
        device = add_device(db, "disp-1", name="Lobby")

        response = client.put(
            f"/api/devices/{device.id}",
            json={"screenOrientation": "portrait"},
            headers=auth_headers,
        )

        body = response.json()
        assert body["screenOrientation"] == "portrait"
        assert body["name"] == "Lobby"
        assert body["location"] == "Lobby"

    def test_delete_device(self, client, db, auth_headers, notifier):
        device = add_device(db, "disp-1")

        response = client.delete(f"/api/devices/{device.id}", headers=auth_headers)

        assert response.status_code == 200
        assert client.get(f"/api/devices/{device.id}").status_code == 404
        assert notifier.events(DEVICE_TOPIC) == ["device_deleted"]
