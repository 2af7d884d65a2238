import pytest

from jamf_api_kit.api_objects import Building, InventoryPreloadRecord
from jamf_api_kit.change_log import change_log_summary
from jamf_api_kit.exceptions import InvalidDataError, UnsupportedError

from conftest import FakeResponse

ENTRIES = [
    {"id": "2", "username": "admin", "date": "2024-03-02T10:00:00Z", "note": "Renamed", "details": "name changed"},
    {"id": "1", "username": "jdoe", "date": "2024-03-01T09:00:00Z", "note": "Created", "details": None},
]
HISTORY = "v1/buildings/1/history"


@pytest.fixture
def history(session):
    session.jp("GET", "v1/buildings/1", FakeResponse(200, {"id": "1", "name": "HQ"}))
    session.jp("GET", f"{HISTORY}?page-size=2000&page=0", FakeResponse(200, {"totalCount": 2, "results": ENTRIES}))
    return session


def test_history_paths():
    assert Building.history_path(1) == HISTORY
    assert Building.history_path() == "v1/buildings/history"
    assert InventoryPreloadRecord.history_path(1) == "v2/inventory-preload/history"


def test_full_change_log_is_cached(cnx, history):
    entries = Building.change_log(1, cnx=cnx)
    assert [entry.note for entry in entries] == ["Renamed", "Created"]
    Building.change_log(1, cnx=cnx)
    assert len(history.calls_to("GET", f"/api/{HISTORY}?page-size=2000&page=0")) == 1
    Building.change_log(1, refresh=True, cnx=cnx)
    assert len(history.calls_to("GET", f"/api/{HISTORY}?page-size=2000&page=0")) == 2


def test_full_change_log_reads_every_page(cnx, session):
    session.jp("GET", f"{HISTORY}?page-size=2000&page=0", FakeResponse(200, {"totalCount": 2, "results": ENTRIES[:1]}))
    session.jp("GET", f"{HISTORY}?page-size=2000&page=1", FakeResponse(200, {"totalCount": 2, "results": ENTRIES[1:]}))
    assert len(Building.change_log(1, cnx=cnx)) == 2


def test_paged_change_log(cnx, session):
    session.jp("GET", f"{HISTORY}?page-size=1&page=0", FakeResponse(200, {"totalCount": 2, "results": ENTRIES[:1]}))
    session.jp("GET", f"{HISTORY}?page-size=1&page=1", FakeResponse(200, {"totalCount": 2, "results": ENTRIES[1:]}))

    first = Building.change_log(1, page_size=1, cnx=cnx)
    assert [entry.id for entry in first] == ["2"]
    assert [entry.id for entry in Building.next_page_of_change_log()] == ["1"]
    assert Building.next_page_of_change_log() == []


def test_paged_change_log_rejects_bad_sizes(cnx):
    with pytest.raises(ValueError):
        Building.change_log(1, page_size=0, cnx=cnx)


def test_sorted_change_log(cnx, session):
    path = f"{HISTORY}?page-size=2000&sort=date%3Aasc&page=0"
    session.jp("GET", path, FakeResponse(200, {"totalCount": 2, "results": list(reversed(ENTRIES))}))
    entries = Building.change_log(1, sort="date:asc", cnx=cnx)
    assert [entry.id for entry in entries] == ["1", "2"]
    assert cnx.collection_cache.get((Building, "history", "1")) is None



def test_change_log_sort_and_filter_are_encoded_like_collection_queries(cnx, session):
    path = f"{HISTORY}?page-size=2000&sort=date%3Adesc%2Cusername%3Aasc&filter=username%3D%3Dadmin&page=0"
    session.jp("GET", path, FakeResponse(200, {"totalCount": 1, "results": ENTRIES[:1]}))
    entries = Building.change_log(1, sort=["date:desc", "username:asc"], filter="username==admin", cnx=cnx)
    assert [entry.username for entry in entries] == ["admin"]
    with pytest.raises(TypeError):
        Building.change_log(1, sort={"date": "asc"}, cnx=cnx)

def test_change_log_count(cnx, session):
    session.jp("GET", f"{HISTORY}?page=0&page-size=1", FakeResponse(200, {"totalCount": 42, "results": ENTRIES[:1]}))
    assert Building.change_log_count(1, cnx=cnx) == 42


def test_add_note(cnx, history):
    history.jp("POST", HISTORY, FakeResponse(201, {"id": "3", "username": "admin", "date": "2024-03-03T00:00:00Z", "note": "Audited"}))
    Building.change_log(1, cnx=cnx)

    entry = Building.add_change_log_note("Audited", 1, cnx=cnx)
    assert entry.id == "3"
    assert history.calls_to("POST", f"/api/{HISTORY}")[0].json_body == {"note": "Audited"}
    assert cnx.collection_cache.get((Building, "history", "1")) is None


def test_add_empty_note(cnx):
    with pytest.raises(InvalidDataError):
        Building.add_change_log_note("   ", 1, cnx=cnx)


def test_instance_change_log(cnx, history):
    bldg = Building.fetch(1, cnx=cnx)
    assert len(bldg.change_log()) == 2


def test_collection_wide_change_log(cnx, session):
    session.jp(
        "GET",
        "v2/inventory-preload/history?page-size=2000&page=0",
        FakeResponse(200, {"totalCount": 1, "results": ENTRIES[:1]}),
    )
    session.jp(
        "GET",
        "v2/inventory-preload/records/1",
        FakeResponse(200, {"id": "1", "serialNumber": "C02AAA", "deviceType": "Computer", "extensionAttributes": []}),
    )
    assert len(InventoryPreloadRecord.change_log(cnx=cnx)) == 1

    record = InventoryPreloadRecord.fetch(1, cnx=cnx)
    with pytest.raises(UnsupportedError):
        record.change_log()
    with pytest.raises(UnsupportedError):
        record.add_change_log_note("nope")


def test_change_log_summary(cnx, history):
    rows = change_log_summary(Building.change_log(1, cnx=cnx))
    assert rows[0] == {"date": "2024-03-02T10:00:00Z", "username": "admin", "note": "Renamed", "details": "name changed"}
    assert rows[1]["details"] is None
