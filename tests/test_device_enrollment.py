import base64

import pytest

from jamf_api_kit.device_enrollment import DeviceEnrollment
from jamf_api_kit.exceptions import NoSuchItemError

from conftest import FakeResponse

DEP_INSTANCE_RENEWED = {"id": "1", "name": "Apple Business Manager", "tokenExpirationDate": "2030-01-01"}


def test_devices_for_all_instances(cnx, dep):
    sns = DeviceEnrollment.device_sns(cnx=cnx)
    assert sns == ["C02AAA", "C02BBB", "DMPCCC"]


def test_devices_filtered_by_type(cnx, dep):
    assert DeviceEnrollment.device_sns(type="computers", cnx=cnx) == ["C02AAA", "C02BBB"]
    assert DeviceEnrollment.device_sns(type="mobiledevices", cnx=cnx) == ["DMPCCC"]
    with pytest.raises(ValueError):
        DeviceEnrollment.devices(type="watches", cnx=cnx)


def test_devices_are_cached_until_refresh(cnx, dep):
    DeviceEnrollment.devices(1, cnx=cnx)
    DeviceEnrollment.devices("Apple Business Manager", cnx=cnx)
    assert len(dep.calls_to("GET", "/api/v1/device-enrollments/1/devices")) == 1
    DeviceEnrollment.devices(1, refresh=True, cnx=cnx)
    assert len(dep.calls_to("GET", "/api/v1/device-enrollments/1/devices")) == 2


def test_device_lookup(cnx, dep):
    dev = DeviceEnrollment.device("c02bbb", cnx=cnx)
    assert dev.model == "Mac mini"
    assert dev.profileStatus == "EMPTY"
    assert DeviceEnrollment.device("NOPE", cnx=cnx) is None


def test_includes(cnx, dep):
    assert DeviceEnrollment.includes("dmpccc", cnx=cnx)
    assert not DeviceEnrollment.includes("DMPCCC", type="computers", cnx=cnx)
    instance = DeviceEnrollment.fetch(1, cnx=cnx)
    assert instance.includes("C02AAA")


def test_devices_with_status(cnx, dep):
    assigned = DeviceEnrollment.devices_with_status("ASSIGNED", cnx=cnx)
    assert [dev.serialNumber for dev in assigned] == ["C02AAA"]
    with pytest.raises(ValueError):
        DeviceEnrollment.devices_with_status("LOST", cnx=cnx)


def test_unknown_instance(cnx, dep):
    with pytest.raises(NoSuchItemError):
        DeviceEnrollment.devices("School Manager", cnx=cnx)


def test_instance_devices(cnx, dep):
    instance = DeviceEnrollment.fetch(1, cnx=cnx)
    assert instance.name == "Apple Business Manager"
    assert instance.device_sns(type="mobiledevices") == ["DMPCCC"]


def test_sync_history(cnx, dep):
    dep.jp(
        "GET",
        "v1/device-enrollments/1/syncs",
        FakeResponse(200, [{"syncState": "CONNECTION_ERROR", "instanceId": "1", "timestamp": "2024-01-01T00:00:00Z"}]),
    )
    dep.jp(
        "GET",
        "v1/device-enrollments/1/syncs/latest",
        FakeResponse(200, {"syncState": "SYNC_SUCCESS", "instanceId": "1", "timestamp": "2024-02-01T00:00:00Z"}),
    )
    dep.jp("GET", "v1/device-enrollments/syncs", FakeResponse(200, []))

    history = DeviceEnrollment.sync_history(1, cnx=cnx)
    assert history[0].syncState == "CONNECTION_ERROR"
    assert DeviceEnrollment.sync_history(1, latest=True, cnx=cnx).syncState == "SYNC_SUCCESS"
    assert DeviceEnrollment.fetch(1, cnx=cnx).latest_sync().syncState == "SYNC_SUCCESS"
    # latest only applies to a single instance
    assert DeviceEnrollment.sync_history(latest=True, cnx=cnx) == []


def test_disown(cnx, dep):
    dep.jp("POST", "v1/device-enrollments/1/disown", FakeResponse(200, {"devices": {"C02BBB": "SUCCESS"}}))
    DeviceEnrollment.devices(1, cnx=cnx)

    result = DeviceEnrollment.disown("c02bbb", from_instance=1, cnx=cnx)
    assert result == {"C02BBB": "SUCCESS"}
    assert dep.calls_to("POST", "/api/v1/device-enrollments/1/disown")[0].json_body == {"devices": ["C02BBB"]}

    # The device list is re-read afterwards
    DeviceEnrollment.devices(1, cnx=cnx)
    assert len(dep.calls_to("GET", "/api/v1/device-enrollments/1/devices")) == 2


def test_public_key(cnx, session):
    session.jp("GET", "v1/device-enrollments/public-key", FakeResponse(200, text="-----BEGIN CERTIFICATE-----\nMIIB"))
    assert DeviceEnrollment.public_key(cnx=cnx).startswith("-----BEGIN CERTIFICATE-----")


def test_create_from_token_file(cnx, dep, tmp_path):
    token_file = tmp_path / "server_token.p7m"
    token_file.write_bytes(b"token-bytes")
    dep.jp("POST", "v1/device-enrollments/upload-token", FakeResponse(201, {"id": "1", "href": "/v1/device-enrollments/1"}))

    instance = DeviceEnrollment.create(token_file=token_file, cnx=cnx)
    assert instance.id == "1"
    body = dep.calls_to("POST", "/api/v1/device-enrollments/upload-token")[0].json_body
    assert body == {"tokenFileName": "server_token.p7m", "encodedToken": base64.b64encode(b"token-bytes").decode("ascii")}


def test_create_needs_a_token(cnx):
    with pytest.raises(ValueError):
        DeviceEnrollment.create(cnx=cnx)


def test_renew_token(cnx, dep):
    dep.jp("PUT", "v1/device-enrollments/1/upload-token", FakeResponse(200, DEP_INSTANCE_RENEWED))
    instance = DeviceEnrollment.fetch(1, cnx=cnx)
    instance.renew_token(encoded_token="ZW5jb2RlZA==")
    body = dep.calls_to("PUT", "/api/v1/device-enrollments/1/upload-token")[0].json_body
    assert body == {"tokenFileName": None, "encodedToken": "ZW5jb2RlZA=="}
