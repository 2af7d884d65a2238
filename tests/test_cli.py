import json
import re

import pytest
from typer.testing import CliRunner

from jamf_api_kit import cli
from jamf_api_kit.config import Config, ConfigError
from jamf_api_kit.exceptions import MissingDataError

from conftest import FakeResponse, prestage_data, scope_data

runner = CliRunner()


@pytest.fixture
def connected(monkeypatch, cnx, session):
    monkeypatch.setattr(cli, "load_config", lambda config_file=None: Config())
    monkeypatch.setattr(cli, "_connect", lambda state: cnx)
    return session


def test_list_jamf_pro_kind(connected):
    connected.jp_list("v1/buildings", [{"id": "1", "name": "HQ"}, {"id": "2", "name": "Warehouse"}])
    result = runner.invoke(cli.app, ["list", "buildings"])
    assert result.exit_code == 0
    assert re.search(r"\|\s*ID\s*\|\s*Name\s*\|", result.stdout)
    assert "Warehouse" in result.stdout


def test_list_uses_the_display_name(connected):
    connected.jp_list("v1/api-roles", [{"id": "4", "displayName": "Auditors", "privileges": []}])
    result = runner.invoke(cli.app, ["list", "api-roles"])
    assert result.exit_code == 0
    assert "Auditors" in result.stdout


def test_list_classic_kind(connected):
    connected.classic("GET", "categories", FakeResponse(200, {"categories": [{"id": 1, "name": "Utilities"}]}))
    result = runner.invoke(cli.app, ["list", "categories"])
    assert result.exit_code == 0
    assert "Utilities" in result.stdout


def test_list_unknown_kind(connected):
    assert runner.invoke(cli.app, ["list", "printers"]).exit_code == 2


def test_classic_kinds_cannot_be_sorted(connected):
    assert runner.invoke(cli.app, ["list", "categories", "--sort", "name:asc"]).exit_code == 2


def test_show(connected):
    connected.jp("GET", "v1/buildings/1", FakeResponse(200, {"id": "1", "name": "HQ", "city": "Minneapolis"}))
    result = runner.invoke(cli.app, ["show", "buildings", "1"])
    assert result.exit_code == 0
    assert json.loads(result.stdout)["city"] == "Minneapolis"


def test_show_missing_object(connected):
    assert runner.invoke(cli.app, ["show", "buildings", "99"]).exit_code == 3


def test_change_log(connected):
    connected.jp("GET", "v1/buildings/1", FakeResponse(200, {"id": "1", "name": "HQ"}))
    connected.jp(
        "GET",
        "v1/buildings/1/history?page-size=2000&page=0",
        FakeResponse(200, {"totalCount": 1, "results": [{"id": "1", "username": "admin", "date": "2024-03-01", "note": "Created"}]}),
    )
    result = runner.invoke(cli.app, ["change-log", "buildings", "1"])
    assert result.exit_code == 0
    assert "Created" in result.stdout


def test_change_log_needs_a_kind_with_history(connected):
    assert runner.invoke(cli.app, ["change-log", "categories"]).exit_code == 2


def test_prestage_scope(connected):
    connected.jp("GET", "v3/computer-prestages/1", FakeResponse(200, prestage_data("1", "Staff Macs")))
    connected.jp("GET", "v2/computer-prestages/scope", FakeResponse(200, {"serialsByPrestageId": {"C02BBB": "1", "C02AAA": "1", "C02ZZZ": "2"}}))
    result = runner.invoke(cli.app, ["prestage-scope", "1"])
    assert result.exit_code == 0
    assert "C02AAA" in result.stdout
    assert "C02ZZZ" not in result.stdout
    assert "2 serial number(s) assigned" in result.stdout


def test_prestage_assign_needs_serials(connected):
    assert runner.invoke(cli.app, ["prestage-assign", "1"]).exit_code == 2


def test_prestage_unassign_from_file(connected, tmp_path):
    serials = tmp_path / "serials.txt"
    serials.write_text("c02aaa\n", encoding="utf-8")
    connected.jp("GET", "v3/computer-prestages/1", FakeResponse(200, prestage_data("1", "Staff Macs")))
    connected.jp("GET", "v2/computer-prestages/1/scope", FakeResponse(200, scope_data("1", ["C02AAA"], 3)))
    connected.jp("PUT", "v2/computer-prestages/1/scope", FakeResponse(200, scope_data("1", [], 4)))

    result = runner.invoke(cli.app, ["prestage-unassign", "1", "--serials-file", str(serials)])
    assert result.exit_code == 0
    assert connected.calls_to("PUT", "/api/v2/computer-prestages/1/scope")[0].json_body["serialNumbers"] == []
    assert "Version Lock" in result.stdout


def test_server_info(connected):
    result = runner.invoke(cli.app, ["server-info"])
    assert result.exit_code == 0
    assert "11.5.0" in result.stdout
    assert "https://jamf.example.com:8443" in result.stdout


def test_incomplete_connection_settings(monkeypatch):
    def fail(state):
        raise MissingDataError("No Jamf Pro server given")

    monkeypatch.setattr(cli, "load_config", lambda config_file=None: Config())
    monkeypatch.setattr(cli, "_connect", fail)
    assert runner.invoke(cli.app, ["server-info"]).exit_code == 2


def test_bad_config_file(monkeypatch):
    def fail(config_file=None):
        raise ConfigError("Invalid YAML")

    monkeypatch.setattr(cli, "load_config", fail)
    assert runner.invoke(cli.app, ["server-info"]).exit_code == 2
