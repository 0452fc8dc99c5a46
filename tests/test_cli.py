from __future__ import annotations

from pathlib import Path

import pytest
from click.testing import CliRunner

from conftest import read_json, write_json
from greb.cli import main


@pytest.fixture
def run(records_path: Path, issuers_path: Path):
    runner = CliRunner()

    def invoke(*args: str, input: str | None = None):
        return runner.invoke(
            main,
            ["--records", str(records_path), "--issuers", str(issuers_path), *args],
            input=input,
        )

    return invoke


def test_add_list_show_delete(run, records_path: Path) -> None:
    result = run("add", "1", "234", "2000-05-30", "Alana Beatriz Pereira")
    assert result.exit_code == 0, result.output
    assert "Saved: 2000-05-30  Reitoria no. 234/2000" in result.output
    assert "Reitoria|234|2000" in read_json(records_path)

    listed = run("list")
    assert "Alana Beatriz Pereira" in listed.output
    assert "1 record(s)." in listed.output

    shown = run("show", "reitoria", "234", "2000")
    assert shown.exit_code == 0
    assert "Reitoria no. 234/2000" in shown.output

    deleted = run("delete", "1", "234", "2000")
    assert deleted.exit_code == 0
    assert "Deleted:" in deleted.output
    assert read_json(records_path) == {}


def test_add_duplicate_exits_with_reason(run) -> None:
    run("add", "1", "234", "2000-05-30", "Alana")
    result = run("add", "1", "234", "2000-01-01", "Other")
    assert result.exit_code == 1
    assert "already exists" in result.output


def test_add_rejects_bad_date_and_unknown_issuer(run) -> None:
    bad_date = run("add", "1", "1", "30/05/2000", "Alana")
    assert bad_date.exit_code == 1
    assert "YYYY-MM-DD" in bad_date.output

    unknown = run("add", "999", "1", "2000-05-30", "Alana")
    assert unknown.exit_code == 1
    assert "No issuer with index 999" in unknown.output


def test_update_changes_subject(run, records_path: Path) -> None:
    run("add", "1", "234", "2000-05-30", "Alana")
    result = run("update", "1", "234", "2000-06-01", "Alana B. Pereira")
    assert result.exit_code == 0
    assert read_json(records_path)["Reitoria|234|2000"]["subject"] == "Alana B. Pereira"

    missing = run("update", "1", "235", "2000-06-01", "Nobody")
    assert missing.exit_code == 1


def test_show_missing_record(run) -> None:
    result = run("show", "Reitoria", "1", "1999")
    assert result.exit_code == 1
    assert "No record for Reitoria no. 1/1999" in result.output


def test_list_empty(run) -> None:
    assert "No records found." in run("list").output


def test_clear_with_and_without_confirmation(run, records_path: Path) -> None:
    run("add", "1", "1", "2000-01-01", "A")
    run("add", "1", "2", "2000-01-02", "B")

    declined = run("clear", input="n\n")
    assert declined.exit_code == 1
    assert len(read_json(records_path)) == 2

    result = run("clear", "--yes")
    assert result.exit_code == 0
    assert "Deleted 2 records." in result.output
    assert read_json(records_path) == {}


def test_search_criteria(run) -> None:
    run("add", "1", "234", "2000-05-30", "Alana Beatriz Pereira")
    run("add", "5", "12", "2005-09-12", "Bruno Lima")
    run("add", "18", "12", "2011-12-01", "Carla Souza")

    assert "2 record(s)." in run("search", "--issuer", "reitoria").output
    assert "1 record(s)." in run("search", "--issuer", "reitoria", "--strict").output
    assert "Carla Souza" in run("search", "--subject", "carla").output
    assert "2 record(s)." in run("search", "--serial", "12").output
    assert "Bruno Lima" in run("search", "--date", "2005-09-12").output
    assert "Carla Souza" in run("search", "--year", "2011").output

    period = run("search", "--from", "2000-01-01", "--to", "2005-12-31")
    assert "2 record(s)." in period.output
    assert "Carla Souza" not in period.output


def test_search_rejects_bad_criteria(run) -> None:
    none_given = run("search")
    assert none_given.exit_code == 1
    assert "exactly one search criterion" in none_given.output

    two_given = run("search", "--serial", "1", "--year", "2000")
    assert two_given.exit_code == 1

    inverted = run("search", "--from", "2005-01-01", "--to", "2000-01-01")
    assert inverted.exit_code == 1
    assert "is after end date" in inverted.output

    bad_date = run("search", "--date", "yesterday")
    assert bad_date.exit_code == 1


def test_check_reports_skipped_entries(run, records_path: Path) -> None:
    write_json(records_path, {
        "Reitoria|1|2000": {"issuer": "Reitoria", "serial": 1, "issueDate": "2000-01-01", "subject": "A"},
        "Reitoria|2|2000": {"issuer": "Reitoria", "serial": 2, "issueDate": "", "subject": "B"},
    })
    result = run("check")
    assert result.exit_code == 0
    assert "State: loaded" in result.output
    assert "Skipped entries:" in result.output
    assert "Reitoria|2|2000" in result.output


def test_issuer_commands(run, issuers_path: Path) -> None:
    listed = run("issuers", "list")
    assert "Reitoria" in listed.output
    assert "Campus União da Vitória (DG)" in listed.output

    added = run("issuers", "add", "Ouvidoria")
    assert added.exit_code == 0
    assert "added with index 34" in added.output
    assert read_json(issuers_path)[-1] == {"index": 34, "name": "Ouvidoria"}

    again = run("issuers", "add", "OUVIDORIA")
    assert again.exit_code == 1
    assert "already exists" in again.output

    shown = run("issuers", "show", "34")
    assert "34  Ouvidoria" in shown.output
    assert run("issuers", "show", "500").exit_code == 1
