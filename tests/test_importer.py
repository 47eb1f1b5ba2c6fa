from __future__ import annotations

import logging
import zipfile
from datetime import date, datetime
from pathlib import Path

import pytest

from nbi_sites import importer
from nbi_sites.dates import DateFormat
from nbi_sites.exporter import write_reports_csv
from nbi_sites.forms import report_from_form
from nbi_sites.importer import (
    EMPTY_FILE_MESSAGE,
    INVALID_FORMAT_MESSAGE,
    NO_DATA_ROWS_MESSAGE,
    NO_VALID_ROWS_MESSAGE,
    ImportPolicy,
    ImportSchemaError,
    ImportSession,
    ImportState,
    ImportStateError,
    MissingDatePolicy,
    coerce_date,
    reconcile,
)
from nbi_sites.models import REPORT_HEADERS, ProblemReport, ReportStatus
from nbi_sites.repository import ReportRepo
from nbi_sites.tables import Table, TableReadError, read_table, table_from_rows

HEADERS = list(REPORT_HEADERS)


def _row(site="New York HQ", ticket="TICK-1", status="UP", reason="", update="", issue="10/26/23", follow=""):
    return [site, ticket, status, reason, update, issue, follow]


def _existing() -> ReportRepo:
    return ReportRepo([ProblemReport(id="101", site_name="Old", ticket_id="T-0", status=ReportStatus.UP)])


def test_reconcile_builds_reports_with_batch_ids() -> None:
    table = table_from_rows([HEADERS, _row(status="up"), _row(site="London", ticket="TICK-2", status="Down")])
    staged = reconcile(table, batch_ts=1000)

    assert [r.id for r in staged.reports] == ["imported-1000-0", "imported-1000-1"]
    assert [r.status for r in staged.reports] == [ReportStatus.UP, ReportStatus.DOWN]
    assert staged.reports[0].issue_date == "2023-10-26"
    assert staged.reports[0].last_follow_up == ""
    assert staged.data_rows == 2
    assert staged.skipped == []


def test_missing_status_header_is_a_schema_error() -> None:
    headers = [h for h in HEADERS if h != "Status"]
    table = table_from_rows([headers, ["Site", "T-1", "", "", "01/01/25", ""]])
    with pytest.raises(ImportSchemaError) as exc:
        reconcile(table)
    assert str(exc.value) == INVALID_FORMAT_MESSAGE


def test_headers_match_case_insensitively_and_extra_columns_are_ignored() -> None:
    headers = ["notes", "site name", "TICKET ID", " Status ", "reason", "LAST UPDATE", "issue date", "Last follow up"]
    table = table_from_rows([headers, ["ignored", "Tokyo Branch", "TICK-9", "down", "Fiber cut", "", "01/02/25", ""]])
    report = reconcile(table).reports[0]

    assert report.site_name == "Tokyo Branch"
    assert report.ticket_id == "TICK-9"
    assert report.status is ReportStatus.DOWN
    assert report.reason == "Fiber cut"
    assert report.issue_date == "2025-01-02"


def test_invalid_status_row_is_dropped_and_logged(caplog: pytest.LogCaptureFixture) -> None:
    table = table_from_rows([HEADERS, _row(), _row(status="maybe"), _row(ticket="TICK-3", status="DOWN")])
    with caplog.at_level(logging.WARNING, logger="nbi_sites"):
        staged = reconcile(table, batch_ts=1)

    assert len(staged.reports) == staged.data_rows - 1
    assert [s.row_number for s in staged.skipped] == [3]
    assert 'invalid status "maybe"' in staged.skipped[0].reason
    assert "Skipping row 3" in caplog.text
    # ids keep the original row index
    assert [r.id for r in staged.reports] == ["imported-1-0", "imported-1-2"]


def test_rows_without_site_or_ticket_are_dropped() -> None:
    table = table_from_rows([HEADERS, _row(site=""), _row(ticket=None), _row(site="Keep", ticket="T-7")])
    staged = reconcile(table)
    assert [r.site_name for r in staged.reports] == ["Keep"]
    assert len(staged.skipped) == 2


def test_empty_sheet_header_only_and_no_valid_rows() -> None:
    with pytest.raises(ImportSchemaError, match=EMPTY_FILE_MESSAGE):
        reconcile(Table())
    with pytest.raises(ImportSchemaError, match=NO_DATA_ROWS_MESSAGE):
        reconcile(table_from_rows([HEADERS]))
    with pytest.raises(ImportSchemaError) as exc:
        reconcile(table_from_rows([HEADERS, _row(status="maybe"), _row(site="")]))
    assert str(exc.value) == NO_VALID_ROWS_MESSAGE


def test_date_cells_of_every_kind() -> None:
    fmt, empty = DateFormat.MDY_SHORT, MissingDatePolicy.EMPTY
    assert coerce_date(datetime(2025, 1, 21, 0, 0), fmt, empty) == "2025-01-21"
    assert coerce_date(date(2024, 2, 29), fmt, empty) == "2024-02-29"
    assert coerce_date("01/21/25", fmt, empty) == "2025-01-21"
    assert coerce_date("2025-01-21", fmt, empty) == "2025-01-21"
    assert coerce_date(45678, fmt, empty) == "2025-01-21"
    assert coerce_date(45678.0, fmt, empty) == "2025-01-21"


def test_unreadable_dates_follow_the_missing_date_policy() -> None:
    fmt = DateFormat.MDY_SHORT
    for value in ("02/30/24", "tomorrow", True, -4, None, ""):
        assert coerce_date(value, fmt, MissingDatePolicy.EMPTY) == ""
        assert coerce_date(value, fmt, MissingDatePolicy.TODAY) == date.today().isoformat()


def test_serial_date_row() -> None:
    table = table_from_rows([HEADERS, ["Site", 5821.0, "UP", None, None, 45678, None]])
    report = reconcile(table).reports[0]
    assert report.issue_date == "2025-01-21"
    assert report.ticket_id == "5821"
    assert report.reason == ""


def test_day_first_format_is_used_for_strings() -> None:
    table = table_from_rows([HEADERS, _row(issue="21/01/2025")])
    assert reconcile(table, fmt=DateFormat.DMY).reports[0].issue_date == "2025-01-21"


def test_export_then_reimport_gives_the_same_reports(tmp_path: Path) -> None:
    original = [
        ProblemReport(
            id="101",
            site_name="New York HQ",
            ticket_id="TICK-5821",
            status=ReportStatus.DOWN,
            reason='Network outage, "core" switch',
            last_update="Router rebooted\nwaiting on ISP",
            issue_date="2023-10-26",
            last_follow_up="2023-10-27",
        ),
        ProblemReport(id="102", site_name="London Office", ticket_id="TICK-5822", status=ReportStatus.UP),
    ]
    path = tmp_path / "daily_problem_report.csv"
    write_reports_csv(original, path)

    staged = reconcile(read_table(path), batch_ts=7)

    def strip_id(r: ProblemReport) -> dict:
        data = r.to_dict()
        data.pop("id")
        return data

    assert [strip_id(r) for r in staged.reports] == [strip_id(r) for r in original]
    assert {r.id for r in staged.reports} == {"imported-7-0", "imported-7-1"}


def test_export_then_reimport_keeps_dates_outside_2000s(tmp_path: Path) -> None:
    report = report_from_form(
        {
            "site_name": "Tokyo Branch",
            "ticket_id": "TICK-1999",
            "status": "UP",
            "issue_date": "05/01/1999",
            "last_follow_up": "01/02/2100",
        },
        report_id="7",
    )
    assert report.issue_date == "1999-05-01"

    path = tmp_path / "daily_problem_report.csv"
    write_reports_csv([report], path)
    staged = reconcile(read_table(path))

    assert staged.reports[0].issue_date == "1999-05-01"
    assert staged.reports[0].last_follow_up == "2100-01-02"


# ---------- ImportSession ----------


def _session(table: Table, **kwargs) -> ImportSession:
    return ImportSession(reader=lambda _path: table, **kwargs)


def test_session_walks_to_staged_and_replaces_on_apply() -> None:
    repo = _existing()
    session = _session(table_from_rows([HEADERS, _row(), _row(ticket="T-2")]))

    session.select(Path("reports.csv"))
    assert session.state is ImportState.FILE_SELECTED
    session.parse()
    assert session.state is ImportState.PARSED
    staged = session.stage(batch_ts=5)
    assert session.state is ImportState.STAGED
    assert session.busy
    assert staged.source == "reports.csv"
    # nothing changes until apply
    assert repo.ids() == ["101"]

    assert session.apply(repo) == 2
    assert session.state is ImportState.APPLIED
    assert not session.busy
    assert repo.ids() == ["imported-5-0", "imported-5-1"]


def test_session_append_policy_keeps_existing_reports() -> None:
    repo = _existing()
    session = _session(table_from_rows([HEADERS, _row()]), import_policy=ImportPolicy.APPEND)
    session.select(Path("a.csv"))
    session.parse()
    session.stage(batch_ts=9)
    session.apply(repo)
    assert repo.ids() == ["101", "imported-9-0"]


def test_cancel_discards_staged_reports() -> None:
    repo = _existing()
    version = repo.version
    session = _session(table_from_rows([HEADERS, _row()]))
    session.select(Path("a.csv"))
    session.parse()
    session.stage()
    session.cancel()

    assert session.state is ImportState.CANCELLED
    assert session.staged is None
    assert repo.ids() == ["101"]
    assert repo.version == version
    # a new import can start afterwards
    session.select(Path("b.csv"))
    assert session.state is ImportState.FILE_SELECTED


def test_only_one_import_at_a_time() -> None:
    session = _session(table_from_rows([HEADERS, _row()]))
    session.select(Path("a.csv"))
    session.parse()
    session.stage()
    with pytest.raises(ImportStateError):
        session.select(Path("b.csv"))


def test_steps_out_of_order_raise() -> None:
    session = _session(table_from_rows([HEADERS, _row()]))
    with pytest.raises(ImportStateError):
        session.parse()
    session.select(Path("a.csv"))
    with pytest.raises(ImportStateError):
        session.stage()
    with pytest.raises(ImportStateError):
        session.apply(ReportRepo())


def test_schema_error_returns_session_to_idle() -> None:
    session = _session(table_from_rows([["Site Name", "Ticket ID"], ["a", "b"]]))
    session.select(Path("bad.csv"))
    session.parse()
    with pytest.raises(ImportSchemaError):
        session.stage()
    assert session.state is ImportState.IDLE
    assert session.staged is None


def test_read_error_returns_session_to_idle() -> None:
    def broken(_path: Path) -> Table:
        raise TableReadError("corrupt")

    session = ImportSession(reader=broken)
    session.select(Path("bad.xlsx"))
    with pytest.raises(TableReadError):
        session.parse()
    assert session.state is ImportState.IDLE


def test_malformed_xlsx_leaves_the_session_usable(tmp_path: Path) -> None:
    path = tmp_path / "reports.xlsx"
    with zipfile.ZipFile(path, "w") as zf:
        zf.writestr("[Content_Types].xml", "<not xml")

    session = ImportSession()
    session.select(path)
    with pytest.raises(TableReadError):
        session.parse()
    assert session.state is ImportState.IDLE
    assert not session.busy

    good = tmp_path / "reports.csv"
    write_reports_csv(
        [ProblemReport(id="1", site_name="London Office", ticket_id="T-1", status=ReportStatus.UP)], good
    )
    session.select(good)
    session.parse()
    assert [r.site_name for r in session.stage().reports] == ["London Office"]


def test_unexpected_reader_error_is_reported_as_read_error() -> None:
    def broken(_path: Path) -> Table:
        raise RuntimeError("reader blew up")

    session = ImportSession(reader=broken)
    session.select(Path("bad.xls"))
    with pytest.raises(TableReadError, match="bad.xls"):
        session.parse()
    assert session.state is ImportState.IDLE


def test_stage_validates_headers_once(monkeypatch: pytest.MonkeyPatch) -> None:
    calls = []
    real = importer.validate_headers

    def counting(header_row):
        calls.append(header_row)
        return real(header_row)

    monkeypatch.setattr(importer, "validate_headers", counting)
    session = _session(table_from_rows([HEADERS, _row()]))
    session.select(Path("reports.csv"))
    session.parse()
    session.stage()
    assert len(calls) == 1
