import hashlib

import pytest

from jamf_api_kit.api_objects import APIClient, APIRole, InventoryPreloadRecord, JPackage
from jamf_api_kit.exceptions import InvalidDataError, MissingDataError, NoSuchItemError

from conftest import FakeResponse

PACKAGE = {
    "id": "5",
    "packageName": "Firefox",
    "fileName": "Firefox.pkg",
    "categoryId": "-1",
    "priority": 10,
    "fillUserTemplate": False,
    "rebootRequired": False,
    "osInstall": False,
    "suppressUpdates": False,
    "suppressFromDock": False,
    "suppressEula": False,
    "suppressRegistration": False,
    "hashType": "MD5",
    "hashValue": "abc",
}


def test_available_privileges(cnx, session):
    session.jp("GET", "v1/api-role-privileges", FakeResponse(200, {"privileges": ["Read Buildings", "Update Buildings"]}))
    assert APIRole.available_privileges(cnx=cnx) == ["Read Buildings", "Update Buildings"]


def test_api_role_create(cnx, session):
    session.jp("POST", "v1/api-roles", FakeResponse(201, {"id": "9", "href": "/v1/api-roles/9"}))
    role = APIRole.create(displayName="Auditors", privileges=["Read Buildings"], cnx=cnx)
    assert role.name == "Auditors"
    assert role.save() == "9"
    body = session.calls_to("POST", "/api/v1/api-roles")[0].json_body
    assert body == {"displayName": "Auditors", "privileges": ["Read Buildings"]}


def test_api_client_new_credentials(cnx, session):
    session.jp(
        "GET",
        "v1/api-integrations/3",
        FakeResponse(200, {"id": "3", "displayName": "CI", "enabled": True, "authorizationScopes": ["Auditors"], "clientId": "cid"}),
    )
    session.jp("POST", "v1/api-integrations/3/client-credentials", FakeResponse(200, {"clientId": "cid", "clientSecret": "s3cret"}))
    creds = APIClient.new_credentials(3, cnx=cnx)
    assert creds.clientId == "cid"
    assert creds.clientSecret == "s3cret"


def test_api_client_new_credentials_for_unknown_client(cnx, session):
    session.jp_list("v1/api-integrations", [])
    with pytest.raises(NoSuchItemError):
        APIClient.new_credentials(99, cnx=cnx)


def test_inventory_preload_extension_attributes(cnx, session):
    session.jp(
        "GET",
        "v2/inventory-preload/records/1",
        FakeResponse(
            200,
            {
                "id": "1",
                "serialNumber": "C02AAA",
                "deviceType": "Computer",
                "username": "jdoe",
                "extensionAttributes": [{"name": "Team", "value": "Platform"}],
            },
        ),
    )
    record = InventoryPreloadRecord.fetch(1, cnx=cnx)
    assert record.ext_attrs == {"Team": "Platform"}

    record.set_ext_attr("Team", "Security")
    record.set_ext_attr("Floor", "3")
    assert record.ext_attrs == {"Team": "Security", "Floor": "3"}
    record.remove_ext_attr("Floor")
    assert record.ext_attrs == {"Team": "Security"}
    assert "extensionAttributes" in record.unsaved_changes


def test_inventory_preload_clear(cnx, session):
    session.jp(
        "GET",
        "v2/inventory-preload/records/1",
        FakeResponse(
            200,
            {
                "id": "1",
                "serialNumber": "C02AAA",
                "deviceType": "Computer",
                "username": "jdoe",
                "extensionAttributes": [{"name": "Team", "value": "Platform"}],
            },
        ),
    )
    record = InventoryPreloadRecord.fetch(1, cnx=cnx)
    record.clear()
    assert record.username is None
    assert record.extensionAttributes == ()
    assert record.serialNumber == "C02AAA"


def test_inventory_preload_device_type_is_checked(cnx):
    record = InventoryPreloadRecord.create(serialNumber="C02AAA", cnx=cnx)
    with pytest.raises(InvalidDataError):
        record.deviceType = "Toaster"


def test_new_packages_get_defaults(cnx):
    pkg = JPackage.create(packageName="Chrome", fileName="Chrome.pkg", cnx=cnx)
    assert pkg.priority == 10
    assert pkg.categoryId == "-1"
    assert pkg.rebootRequired is False
    assert pkg.name == "Chrome"
    assert pkg.filename == "Chrome.pkg"


def test_calculate_checksum(tmp_path):
    local = tmp_path / "Tool.pkg"
    local.write_bytes(b"package contents")
    assert JPackage.calculate_checksum(local) == hashlib.sha512(b"package contents").hexdigest()
    assert JPackage.calculate_checksum(local, "MD5") == hashlib.md5(b"package contents").hexdigest()
    with pytest.raises(InvalidDataError):
        JPackage.calculate_checksum(local, "CRC32")


def test_upload(cnx, session, tmp_path):
    local = tmp_path / "Firefox-126.pkg"
    local.write_bytes(b"new build")
    session.jp("GET", "v1/packages/5", FakeResponse(200, PACKAGE))
    session.jp("PUT", "v1/packages/5", FakeResponse(200, PACKAGE))
    session.jp("POST", "v1/packages/5/upload", FakeResponse(201, {"id": "5", "href": "/v1/packages/5"}))

    pkg = JPackage.fetch(5, cnx=cnx)
    assert pkg.upload(local) == {"id": "5", "href": "/v1/packages/5"}

    put = session.calls_to("PUT", "/api/v1/packages/5")[0]
    assert put.json_body["fileName"] == "Firefox-126.pkg"
    assert put.json_body["hashType"] == "SHA_512"
    assert put.json_body["hashValue"] == hashlib.sha512(b"new build").hexdigest()

    upload = session.calls_to("POST", "/api/v1/packages/5/upload")[0]
    assert upload.kwargs["files"]["file"][0] == "Firefox-126.pkg"
    # The metadata is saved before the file goes up
    assert session.calls.index(put) < session.calls.index(upload)


def test_upload_needs_a_saved_package(cnx, tmp_path):
    local = tmp_path / "Tool.pkg"
    local.write_bytes(b"x")
    pkg = JPackage.create(packageName="Tool", fileName="Tool.pkg", cnx=cnx)
    with pytest.raises(MissingDataError):
        pkg.upload(local)


def test_upload_needs_a_local_file(cnx, session, tmp_path):
    session.jp("GET", "v1/packages/5", FakeResponse(200, PACKAGE))
    pkg = JPackage.fetch(5, cnx=cnx)
    with pytest.raises(NoSuchItemError):
        pkg.upload(tmp_path / "missing.pkg")
