import xml.etree.ElementTree as ET

import pytest

from jamf_api_kit.classic import APIObject, Category, Computer, Department
from jamf_api_kit.exceptions import (
    AlreadyExistsError,
    AmbiguousError,
    InvalidDataError,
    MissingDataError,
    NoSuchItemError,
    UnsupportedError,
)

from conftest import FakeResponse

CATEGORIES = {"categories": [{"id": 1, "name": "Utilities"}, {"id": 2, "name": "Browsers"}]}
COMPUTERS = {
    "computers": [
        {"id": 1, "name": "Lab Mac", "serial_number": "C02AAA", "udid": "UDID-1", "mac_address": "AA:BB:CC:00:00:01"},
        {"id": 2, "name": "Lab Mac", "serial_number": "C02BBB", "udid": "UDID-2", "mac_address": "AA:BB:CC:00:00:02"},
        {"id": 3, "name": "Front Desk", "serial_number": "C02CCC", "udid": "UDID-3", "mac_address": "AA:BB:CC:00:00:03"},
    ]
}
COMPUTER_1 = {
    "computer": {
        "general": {"id": 1, "name": "Lab Mac", "serial_number": "C02AAA", "udid": "UDID-1", "mac_address": "AA:BB:CC:00:00:01"},
        "hardware": {"model": "MacBook Pro (16-inch, 2023)", "os_version": "14.5"},
        "location": {"username": "jdoe"},
    }
}


@pytest.fixture
def categories(session):
    session.classic("GET", "categories", FakeResponse(200, CATEGORIES))
    session.classic("GET", "categories/id/1", FakeResponse(200, {"category": {"id": 1, "name": "Utilities", "priority": 9}}))
    return session


@pytest.fixture
def computers(session):
    session.classic("GET", "computers/subset/basic", FakeResponse(200, COMPUTERS))
    session.classic("GET", "computers/id/1", FakeResponse(200, COMPUTER_1))
    session.classic("GET", "computers/serialnumber/C02AAA", FakeResponse(200, COMPUTER_1))
    return session


def test_lists_are_cached(cnx, categories):
    assert Category.all_names(cnx=cnx) == ["Utilities", "Browsers"]
    assert Category.all_ids(cnx=cnx) == [1, 2]
    assert len(categories.calls_to("GET", "/JSSResource/categories")) == 1
    Category.all(refresh=True, cnx=cnx)
    assert len(categories.calls_to("GET", "/JSSResource/categories")) == 2


def test_valid_id(cnx, categories):
    assert Category.valid_id(2, cnx=cnx) == 2
    assert Category.valid_id("2", cnx=cnx) == 2
    assert Category.valid_id("browsers", cnx=cnx) == 2
    assert Category.valid_id("Games", cnx=cnx) is None
    assert Category.exists("Utilities", cnx=cnx)
    assert Category.category_id_from_name("Browsers", cnx=cnx) == 2
    assert Category.category_id_from_name(Category.NO_CATEGORY_NAME, cnx=cnx) == -1


def test_fetch(cnx, categories):
    cat = Category.fetch("Utilities", cnx=cnx)
    assert cat.id == 1
    assert cat.name == "Utilities"
    assert cat.priority == 9
    assert cat.in_jss
    assert cat.rest_rsrc == "categories/id/1"
    assert Category.fetch(id=1, cnx=cnx).name == "Utilities"


def test_fetch_by_id_given_as_a_string(cnx, categories):
    assert Category.fetch(id="1", cnx=cnx).id == 1
    assert Category.id_for_identifier("id", "2", cnx=cnx) == 2
    assert Category.id_for_identifier("id", "42", cnx=cnx) is None


def test_fetch_by_name_uses_the_name_resource(cnx, categories):
    categories.classic(
        "GET", "categories/name/utilities", FakeResponse(200, {"category": {"id": 1, "name": "Utilities", "priority": 9}})
    )
    assert Category.fetch(name="utilities", cnx=cnx).id == 1


def test_fetch_missing(cnx, categories):
    with pytest.raises(NoSuchItemError):
        Category.fetch("Games", cnx=cnx)
    with pytest.raises(NoSuchItemError):
        Category.fetch(id=42, cnx=cnx)


def test_fetch_argument_errors(cnx, categories):
    with pytest.raises(ValueError):
        Category.fetch(cnx=cnx)
    with pytest.raises(ValueError):
        Category.fetch(id=1, name="Utilities", cnx=cnx)
    with pytest.raises(ValueError):
        Category.fetch(serial_number="C02AAA", cnx=cnx)


def test_make_and_save(cnx, categories):
    categories.classic("POST", "categories/id/0", FakeResponse(201, text="<category><id>7</id></category>"))
    cat = Category.make(name="Games", cnx=cnx)
    assert cat.id == 0
    assert not cat.in_jss
    assert cat.priority == Category.DEFAULT_PRIORITY

    cat.priority = 3
    assert cat.save() == 7
    assert cat.in_jss

    sent = ET.fromstring(categories.calls_to("POST", "/JSSResource/categories/id/0")[0].text_body)
    assert sent.tag == "category"
    assert sent.findtext("name") == "Games"
    assert sent.findtext("priority") == "3"
    assert cnx.c_object_list_cache.get("categories") is None


def test_make_refuses_bad_input(cnx, categories):
    with pytest.raises(AlreadyExistsError):
        Category.make(name="utilities", cnx=cnx)
    with pytest.raises(MissingDataError):
        Category.make(cnx=cnx)
    with pytest.raises(ValueError):
        Category.make(name="Games", id=5, cnx=cnx)


def test_update(cnx, categories):
    categories.classic("PUT", "categories/id/1", FakeResponse(201, text="<category><id>1</id></category>"))
    cat = Category.fetch(id=1, cnx=cnx)
    assert cat.save() == 1
    assert not categories.calls_to("PUT", "/JSSResource/categories/id/1")

    cat.name = "Tools"
    assert cat.need_to_update
    cat.save()
    sent = ET.fromstring(categories.calls_to("PUT", "/JSSResource/categories/id/1")[0].text_body)
    assert sent.findtext("name") == "Tools"
    assert sent.findtext("priority") == "9"
    assert not cat.need_to_update


def test_invalid_priority(cnx, categories):
    cat = Category.fetch(id=1, cnx=cnx)
    with pytest.raises(InvalidDataError):
        cat.priority = 21
    with pytest.raises(InvalidDataError):
        cat.priority = "3"


def test_delete(cnx, categories):
    categories.classic("DELETE", "categories/id/1", FakeResponse(200, text="<category><id>1</id></category>"))
    assert Category.delete([1, 99], cnx=cnx) == [99]
    assert categories.calls_to("DELETE", "/JSSResource/categories/id/1")
    with pytest.raises(InvalidDataError):
        Category.delete("1", cnx=cnx)


def test_delete_self(cnx, categories):
    categories.classic("DELETE", "categories/id/1", FakeResponse(200, text="<category><id>1</id></category>"))
    cat = Category.fetch(id=1, cnx=cnx)
    cat.delete_self()
    assert not cat.in_jss
    assert cat.id == 0


def test_get_raw_xml(cnx, session):
    session.classic("GET", "departments/id/4", FakeResponse(200, text="<department><id>4</id><name>IT</name></department>"))
    raw = Department.get_raw(4, fmt="xml", cnx=cnx)
    assert raw.findtext("name") == "IT"


def test_post_raw(cnx, session):
    session.classic("POST", "departments/id/-1", FakeResponse(201, text="<department><id>8</id></department>"))
    element = ET.Element("department")
    ET.SubElement(element, "name").text = "Finance"
    assert Department.post_raw(element, cnx=cnx).findtext("id") == "8"
    assert "<name>Finance</name>" in session.calls[-1].text_body


def test_base_class_is_not_usable(cnx):
    with pytest.raises(UnsupportedError):
        APIObject.all(cnx=cnx)
    with pytest.raises(UnsupportedError):
        Category({"id": 1, "name": "Direct"}, cnx=cnx)


def test_lookup_keys():
    keys = Computer.lookup_keys()
    assert keys["sn"] == "serial_number"
    assert keys["guid"] == "udid"
    assert Computer.lookup_keys(no_aliases=True) == ["id", "name", "udid", "serial_number", "mac_address"]
    assert Computer.fetch_rsrc_key("macaddr") == "macaddress"
    with pytest.raises(ValueError):
        Computer.real_lookup_key("asset_tag")


def test_computer_fetch_by_serial(cnx, computers):
    comp = Computer.fetch(serial_number="C02AAA", cnx=cnx)
    assert comp.id == 1
    assert comp.udid == "UDID-1"
    assert comp.model == "MacBook Pro (16-inch, 2023)"
    assert comp.os_version == "14.5"
    assert comp.location["username"] == "jdoe"
    assert Computer.fetch(sn="C02AAA", cnx=cnx).serial_number == "C02AAA"


def test_computer_lookup_by_any_key(cnx, computers):
    assert Computer.valid_id("c02ccc", cnx=cnx) == 3
    assert Computer.valid_id("udid-2", cnx=cnx) == 2
    # Two computers share the name, so the name alone can't identify one
    assert Computer.valid_id("Lab Mac", cnx=cnx) is None
    assert Computer.duplicate_names(cnx=cnx) == {"Lab Mac": 2}
    with pytest.raises(AmbiguousError):
        Computer.fetch(name="Lab Mac", cnx=cnx)


def test_computers_are_read_only(cnx, computers):
    with pytest.raises(UnsupportedError):
        Computer.make(name="New Mac", cnx=cnx)
    comp = Computer.fetch(id=1, cnx=cnx)
    with pytest.raises(UnsupportedError):
        comp.name = "Renamed"
    with pytest.raises(UnsupportedError):
        Computer.delete(1, cnx=cnx)
