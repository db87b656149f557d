from datetime import datetime

import pytest
from sqlalchemy import select, update

from app.core.config import settings
from app.core.security import create_device_token, hash_device_secret, verify_token
from app.models import Device, SystemLog
from app.services import device_service
from tests.factories import auth_headers, create_device

HEARTBEAT = {"battery": 87, "signal": 64, "uptime": "3d 4h"}


# ----- Admin CRUD -----

@pytest.mark.asyncio
async def test_list_devices_is_tenant_scoped(client, school_world):
    response = await client.get("/api/devices", headers=auth_headers(school_world.admin))

    assert response.status_code == 200
    assert sorted(d["device_id"] for d in response.json()) == ["FP-A-01", "FP-ROAM-01"]


@pytest.mark.asyncio
async def test_platform_admin_lists_every_school(client, school_world):
    everything = await client.get("/api/devices", headers=auth_headers(school_world.platform_admin))
    one_school = await client.get(
        "/api/devices",
        params={"school_id": school_world.other_school.id},
        headers=auth_headers(school_world.platform_admin)
    )

    assert len(everything.json()) == 3
    assert [d["device_id"] for d in one_school.json()] == ["FP-RIV-01"]


@pytest.mark.asyncio
async def test_teacher_sees_only_devices_of_assigned_classrooms(client, school_world):
    response = await client.get("/api/devices", headers=auth_headers(school_world.teacher))

    assert [d["device_id"] for d in response.json()] == ["FP-A-01"]


@pytest.mark.asyncio
async def test_create_device(client, school_world):
    payload = {
        "device_id": "AQ-101",
        "name": "Room 101 sensor",
        "type": "AIR_QUALITY_SENSOR",
        "location": "Room 101",
        "classroom_id": school_world.classroom_b.id,
    }
    response = await client.post("/api/devices", json=payload, headers=auth_headers(school_world.admin))
    duplicate = await client.post("/api/devices", json=payload, headers=auth_headers(school_world.admin))

    assert response.status_code == 201
    body = response.json()
    assert body["status"] == "OFFLINE"
    assert body["school_id"] == school_world.school.id
    assert body["firmware_version"] == settings.DEVICE_DEFAULT_FIRMWARE
    assert body["is_provisioned"] is False
    assert duplicate.status_code == 400
    assert duplicate.json()["message"] == "Device ID already exists"


@pytest.mark.asyncio
async def test_create_device_rejects_foreign_classroom(client, school_world):
    response = await client.post(
        "/api/devices",
        json={
            "device_id": "AQ-102",
            "name": "Sensor",
            "type": "AIR_QUALITY_SENSOR",
            "classroom_id": school_world.other_classroom.id,
        },
        headers=auth_headers(school_world.admin)
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Classroom does not belong to the selected school"


@pytest.mark.asyncio
async def test_teacher_cannot_create_device(client, school_world):
    response = await client.post(
        "/api/devices",
        json={"device_id": "AQ-103", "name": "Sensor", "type": "MULTI_SENSOR"},
        headers=auth_headers(school_world.teacher)
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_platform_admin_create_needs_school(client, school_world):
    response = await client.post(
        "/api/devices",
        json={"device_id": "AQ-104", "name": "Sensor", "type": "MULTI_SENSOR"},
        headers=auth_headers(school_world.platform_admin)
    )

    assert response.status_code == 400
    assert response.json()["error_code"] == "SCHOOL_CONTEXT_REQUIRED"


@pytest.mark.asyncio
async def test_get_update_delete_device(client, school_world):
    url = f"/api/devices/{school_world.scanner.id}"
    headers = auth_headers(school_world.admin)

    detail = await client.get(url, headers=headers)
    updated = await client.put(url, json={"name": "Front door", "status": "MAINTENANCE"}, headers=headers)
    deleted = await client.delete(url, headers=headers)
    missing = await client.get(url, headers=headers)

    assert detail.status_code == 200
    assert detail.json()["classroom"]["name"] == "Grade 4A"
    assert detail.json()["recent_attendance"] == []
    assert detail.json()["recent_air_quality"] == []
    assert updated.json()["name"] == "Front door"
    assert updated.json()["status"] == "MAINTENANCE"
    assert deleted.json() == {"message": "Device deleted successfully"}
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_update_device_rejects_null_required_fields(client, school_world):
    url = f"/api/devices/{school_world.scanner.id}"
    headers = auth_headers(school_world.admin)

    no_name = await client.put(url, json={"name": None}, headers=headers)
    no_status = await client.put(url, json={"status": None}, headers=headers)
    cleared_location = await client.put(url, json={"location": None}, headers=headers)

    assert no_name.status_code == 400
    assert no_name.json()["error_code"] == "VALIDATION_ERROR"
    assert [f["field"] for f in no_name.json()["details"]["fields"]] == ["body.name"]
    assert no_status.status_code == 400
    assert cleared_location.status_code == 200
    assert cleared_location.json()["name"] == school_world.scanner.name


@pytest.mark.asyncio
async def test_get_device_of_other_school(client, school_world):
    response = await client.get(
        f"/api/devices/{school_world.other_scanner.id}", headers=auth_headers(school_world.admin)
    )

    assert response.status_code == 403
    assert response.json()["message"] == "Device belongs to another school"


# ----- Credentials -----

@pytest.mark.asyncio
async def test_register_issues_token_and_secret(client, school_world, session_factory):
    """
    Scenario: an admin registers a new scanner.
    Expectation: 201 with a device token for the hardware id, a one-time secret
    whose hash is stored, and an audit row; a repeat registration conflicts.
    """
    payload = {"device_id": "FP-NEW-01", "name": "Library scanner", "type": "FINGERPRINT_SCANNER"}

    response = await client.post("/api/devices/register", json=payload, headers=auth_headers(school_world.admin))
    again = await client.post("/api/devices/register", json=payload, headers=auth_headers(school_world.admin))

    assert response.status_code == 201
    body = response.json()
    assert body["device"]["is_provisioned"] is True
    claims = verify_token(body["token"], "device")
    assert claims["device_id"] == "FP-NEW-01"
    assert claims["school_id"] == school_world.school.id
    assert again.status_code == 409

    async with session_factory() as session:
        device = (await session.execute(select(Device).where(Device.device_id == "FP-NEW-01"))).scalar_one()
        logs = (await session.execute(select(SystemLog))).scalars().all()
    assert device.secret_hash == hash_device_secret(body["secret"])
    assert [log.action for log in logs] == ["DEVICE_REGISTERED"]


@pytest.mark.asyncio
async def test_connect_rotates_secret_and_remaps(client, school_world, db_session, session_factory):
    await create_device(db_session, school_world.school, "FP-OLD-01", secret="old-secret")

    response = await client.post(
        "/api/devices/connect",
        json={"device_id": "FP-OLD-01", "classroom_id": school_world.classroom_b.id, "name": "Hall"},
        headers=auth_headers(school_world.admin)
    )

    assert response.status_code == 200
    body = response.json()
    assert body["device"]["classroom_id"] == school_world.classroom_b.id
    assert body["device"]["name"] == "Hall"
    assert body["secret"]

    async with session_factory() as session:
        device = (await session.execute(select(Device).where(Device.device_id == "FP-OLD-01"))).scalar_one()
    assert device.secret_hash == hash_device_secret(body["secret"])
    assert device.secret_hash != hash_device_secret("old-secret")


@pytest.mark.asyncio
async def test_connect_unknown_device(client, school_world):
    response = await client.post(
        "/api/devices/connect", json={"device_id": "FP-NOPE"}, headers=auth_headers(school_world.admin)
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_provision_returns_token_only(client, school_world):
    response = await client.post(
        "/api/devices/provision",
        json={"device_id": school_world.scanner.device_id},
        headers=auth_headers(school_world.admin)
    )
    foreign = await client.post(
        "/api/devices/provision",
        json={"device_id": school_world.other_scanner.device_id},
        headers=auth_headers(school_world.admin)
    )

    assert response.status_code == 200
    assert response.json()["secret"] is None
    assert verify_token(response.json()["token"], "device")["device_id"] == "FP-A-01"
    assert foreign.status_code == 403


@pytest.mark.asyncio
async def test_provisioned_token_drives_the_queue(client, school_world):
    token = (await client.post(
        "/api/devices/provision",
        json={"device_id": school_world.scanner.device_id},
        headers=auth_headers(school_world.admin)
    )).json()["token"]

    response = await client.post("/api/fingerprint/device/next", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 200
    assert response.json() is None


# ----- Heartbeat -----

@pytest.mark.asyncio
async def test_heartbeat_from_unprovisioned_device(client, school_world):
    response = await client.post(
        "/api/devices/heartbeat",
        json=HEARTBEAT,
        headers={"X-Device-Id": school_world.scanner.device_id}
    )

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ONLINE"
    assert body["battery"] == 87
    assert body["signal"] == 64
    assert body["uptime"] == "3d 4h"
    assert body["last_seen"] is not None


@pytest.mark.asyncio
async def test_heartbeat_reads_device_id_from_body(client, school_world):
    response = await client.post(
        "/api/devices/heartbeat",
        json={**HEARTBEAT, "device_id": school_world.roaming_scanner.device_id}
    )

    assert response.status_code == 200
    assert response.json()["device_id"] == "FP-ROAM-01"


@pytest.mark.asyncio
async def test_heartbeat_requires_secret_once_provisioned(client, school_world, db_session):
    device = await create_device(db_session, school_world.school, "FP-SEC-01", secret="s3cret")

    missing = await client.post("/api/devices/heartbeat", json=HEARTBEAT, headers={"X-Device-Id": device.device_id})
    wrong = await client.post(
        "/api/devices/heartbeat",
        json=HEARTBEAT,
        headers={"X-Device-Id": device.device_id, "X-Device-Secret": "nope"}
    )
    right = await client.post(
        "/api/devices/heartbeat",
        json=HEARTBEAT,
        headers={"X-Device-Id": device.device_id, "X-Device-Secret": "s3cret"}
    )

    assert missing.status_code == 403
    assert missing.json()["message"] == "Invalid device credentials"
    assert wrong.status_code == 403
    assert right.status_code == 200


@pytest.mark.asyncio
async def test_heartbeat_without_identifier(client, school_world):
    response = await client.post("/api/devices/heartbeat", json=HEARTBEAT)

    assert response.status_code == 401
    assert response.json()["error_code"] == "DEVICE_ID_REQUIRED"


@pytest.mark.asyncio
async def test_heartbeat_from_unknown_device(client, school_world):
    response = await client.post("/api/devices/heartbeat", json=HEARTBEAT, headers={"X-Device-Id": "FP-GHOST"})

    assert response.status_code == 404
    assert response.json()["message"] == "Device not registered"


@pytest.mark.asyncio
async def test_heartbeat_validates_ranges(client, school_world):
    response = await client.post(
        "/api/devices/heartbeat",
        json={"battery": 140, "signal": 64},
        headers={"X-Device-Id": school_world.scanner.device_id}
    )

    assert response.status_code == 400
    assert response.json()["details"]["fields"][0]["field"] == "body.battery"


# ----- Status reports -----

@pytest.mark.asyncio
async def test_status_updates_known_device(client, school_world):
    response = await client.post(
        "/api/devices/status",
        json={**HEARTBEAT, "device_id": school_world.scanner.device_id, "status": "MAINTENANCE"}
    )

    assert response.status_code == 200
    assert response.json()["status"] == "MAINTENANCE"


@pytest.mark.asyncio
async def test_status_from_unknown_device_without_auto_registration(client, school_world):
    response = await client.post(
        "/api/devices/status",
        json={**HEARTBEAT, "device_id": "MS-NEW-01", "school_code": school_world.school.code}
    )

    assert response.status_code == 404
    assert response.json()["message"] == "Device not registered"


@pytest.mark.asyncio
async def test_status_auto_registers_within_hinted_school(client, school_world, session_factory, monkeypatch):
    """
    Scenario: auto-registration is on and an unknown sensor reports in with a school code.
    Expectation: 201, the device lands in that school, and an audit row is written.
    A second report refreshes last_seen on the same row.
    """
    monkeypatch.setattr(settings, "DEVICE_AUTO_REGISTRATION", True)
    stale = datetime(2020, 1, 1)

    response = await client.post(
        "/api/devices/status",
        json={**HEARTBEAT, "device_id": "MS-NEW-01", "school_code": school_world.other_school.code}
    )
    async with session_factory() as session:
        await session.execute(
            update(Device).where(Device.device_id == "MS-NEW-01").values(last_seen=stale)
        )
        await session.commit()
    repeat = await client.post(
        "/api/devices/status",
        json={**HEARTBEAT, "device_id": "MS-NEW-01", "school_code": school_world.other_school.code}
    )

    assert response.status_code == 201
    assert response.json()["school_id"] == school_world.other_school.id
    assert response.json()["type"] == "MULTI_SENSOR"
    assert response.json()["status"] == "ONLINE"
    assert repeat.status_code == 200

    async with session_factory() as session:
        devices = (await session.execute(select(Device).where(Device.device_id == "MS-NEW-01"))).scalars().all()
        logs = (await session.execute(select(SystemLog))).scalars().all()
    assert len(devices) == 1
    assert devices[0].last_seen.replace(tzinfo=None) > stale
    assert [(log.action, log.school_id) for log in logs] == [
        ("DEVICE_AUTO_REGISTERED", school_world.other_school.id)
    ]


@pytest.mark.asyncio
async def test_status_auto_registration_needs_school_hint(client, school_world, monkeypatch):
    monkeypatch.setattr(settings, "DEVICE_AUTO_REGISTRATION", True)

    no_hint = await client.post("/api/devices/status", json={**HEARTBEAT, "device_id": "MS-NEW-02"})
    bad_hint = await client.post(
        "/api/devices/status", json={**HEARTBEAT, "device_id": "MS-NEW-02", "school_code": "nowhere"}
    )

    assert no_hint.status_code == 400
    assert no_hint.json()["message"] == "School context is required for device registration"
    assert bad_hint.status_code == 404


@pytest.mark.asyncio
async def test_status_for_provisioned_device_requires_secret(client, school_world, db_session):
    device = await create_device(db_session, school_world.school, "FP-SEC-02", secret="s3cret")

    denied = await client.post("/api/devices/status", json={**HEARTBEAT, "device_id": device.device_id})
    allowed = await client.post(
        "/api/devices/status",
        json={**HEARTBEAT, "device_id": device.device_id},
        headers={"X-Device-Secret": "s3cret"}
    )

    assert denied.status_code == 403
    assert allowed.status_code == 200


@pytest.mark.asyncio
async def test_device_token_for_other_school_is_rejected(client, school_world):
    forged = create_device_token(school_world.scanner.device_id, school_world.other_school.id)
    response = await client.post("/api/fingerprint/device/next", headers={"Authorization": f"Bearer {forged}"})

    assert response.status_code == 403
    assert response.json()["message"] == "Invalid device token"



@pytest.mark.asyncio
async def test_status_auto_registration_unexplained_conflict(client, school_world, monkeypatch):
    """
    Scenario: the hardware id is taken but neither lookup can find the row.
    Expectation: a 500 DB_ERROR envelope rather than a raw integrity failure.
    """
    async def never_found(db, device_id):
        return None

    monkeypatch.setattr(settings, "DEVICE_AUTO_REGISTRATION", True)
    monkeypatch.setattr(device_service, "get_device_by_hardware_id", never_found)

    response = await client.post(
        "/api/devices/status",
        json={**HEARTBEAT, "device_id": "FP-A-01", "school_code": school_world.school.code}
    )

    assert response.status_code == 500
    assert response.json()["error_code"] == "DB_ERROR"
    assert response.json()["message"] == "Could not register device"
