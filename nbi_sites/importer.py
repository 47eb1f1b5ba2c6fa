"""
Design (importer.py)
- Purpose: Turn a parsed table into a staged set of ProblemReports and apply it to the
           report repository only after explicit confirmation.
- Inputs: Table (from tables.read_table), date format, missing-date and import policies.
- Outputs: StagedImport (reports + skipped-row diagnostics); applied count on confirm.
- Side effects: Logs skipped rows; ImportSession.apply() mutates the ReportRepo.
- Thread-safety: reconcile() is pure. ImportSession.parse() may run on a worker thread;
                 every other session call belongs on the UI thread.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from .dates import DateFormat, from_datetime, from_serial, to_iso
from .models import REPORT_HEADERS, ProblemReport, ReportStatus
from .repository import ReportRepo
from .tables import Table, TableReadError, read_table
from .utils import cell_text, now_millis

logger = logging.getLogger(__name__)

EMPTY_FILE_MESSAGE = "The imported file is empty."
NO_DATA_ROWS_MESSAGE = "The imported file contains no data rows."
NO_VALID_ROWS_MESSAGE = "No valid reports found in the file. Please check the data format."
INVALID_FORMAT_MESSAGE = f"Invalid file format. Expected headers: {', '.join(REPORT_HEADERS)}"


class ImportPolicy(str, Enum):
    REPLACE = "replace"
    APPEND = "append"


class MissingDatePolicy(str, Enum):
    EMPTY = "empty"
    TODAY = "today"


class ImportState(Enum):
    IDLE = "idle"
    FILE_SELECTED = "file_selected"
    PARSED = "parsed"
    HEADER_VALIDATED = "header_validated"
    ROWS_COERCED = "rows_coerced"
    STAGED = "staged"
    APPLIED = "applied"
    CANCELLED = "cancelled"


class ImportSchemaError(Exception):
    """The file as a whole cannot be imported (headers, empty file, no valid rows)."""


class ImportStateError(Exception):
    """An import step was called out of order."""


class RowError(ValueError):
    """A single data row was rejected; the rest of the batch continues."""


@dataclass(frozen=True)
class SkippedRow:
    row_number: int  # 1-based sheet row, header is row 1
    reason: str


@dataclass
class StagedImport:
    reports: List[ProblemReport]
    skipped: List[SkippedRow] = field(default_factory=list)
    data_rows: int = 0
    source: str = ""


def validate_headers(header_row: List[Any]) -> Dict[str, str]:
    """
    Purpose: Check the header row against REPORT_HEADERS (case-insensitive, trimmed).
    Outputs: {expected header -> header text as written in the file}.
    Raises: ImportSchemaError if any expected header is missing.
    """
    found: Dict[str, str] = {}
    for cell in header_row:
        text = cell_text(cell)
        if text:
            found.setdefault(text.lower(), text)

    mapping: Dict[str, str] = {}
    missing = []
    for expected in REPORT_HEADERS:
        actual = found.get(expected.lower())
        if actual is None:
            missing.append(expected)
        else:
            mapping[expected] = actual
    if missing:
        logger.warning("Import rejected, missing headers: %s", ", ".join(missing))
        raise ImportSchemaError(INVALID_FORMAT_MESSAGE)
    return mapping


def _fallback_date(policy: MissingDatePolicy) -> str:
    if policy is MissingDatePolicy.TODAY:
        return date.today().isoformat()
    return ""


def coerce_date(value: Any, fmt: DateFormat, policy: MissingDatePolicy, where: str = "") -> str:
    """
    Purpose: Turn one date cell into ISO (or the policy fallback).
    Order: native date value (UTC fields) -> string via to_iso -> positive number as a
           spreadsheet serial -> policy fallback.
    """
    if isinstance(value, date):
        return from_datetime(value)

    if isinstance(value, str):
        result = to_iso(value, fmt)
        if result.ok and result.iso:
            return result.iso
        if not result.ok:
            logger.warning("Could not parse date %r%s: %s", value, where, result.reason)
        return _fallback_date(policy)

    if isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0:
        iso = from_serial(value)
        if iso:
            return iso
        logger.warning("Invalid number for date %r%s", value, where)
        return _fallback_date(policy)

    if value is not None:
        logger.warning("Could not parse date %r%s", value, where)
    return _fallback_date(policy)


def coerce_row(
    values: Dict[str, Any],
    report_id: str,
    fmt: DateFormat,
    policy: MissingDatePolicy,
    row_number: int,
) -> ProblemReport:
    """
    Purpose: Build one ProblemReport from a row keyed by the expected headers.
    Raises: RowError for a bad status or a missing site name / ticket id.
    """
    raw_status = cell_text(values.get("Status"))
    status = raw_status.upper()
    if status not in (ReportStatus.UP.value, ReportStatus.DOWN.value):
        raise RowError(f'invalid status "{raw_status}"')

    where = f" on row {row_number}"
    report = ProblemReport(
        id=report_id,
        site_name=cell_text(values.get("Site Name")),
        ticket_id=cell_text(values.get("Ticket ID")),
        status=ReportStatus(status),
        reason=cell_text(values.get("Reason")),
        last_update=cell_text(values.get("Last Update")),
        issue_date=coerce_date(values.get("Issue Date"), fmt, policy, where),
        last_follow_up=coerce_date(values.get("Last Follow Up"), fmt, policy, where),
    )
    if not report.site_name or not report.ticket_id:
        raise RowError("missing site name or ticket id")
    return report


def reconcile(
    table: Table,
    fmt: DateFormat = DateFormat.MDY_SHORT,
    policy: MissingDatePolicy = MissingDatePolicy.EMPTY,
    batch_ts: Optional[int] = None,
    source: str = "",
    header_map: Optional[Dict[str, str]] = None,
) -> StagedImport:
    """
    Purpose: Validate headers, coerce every data row and collect the survivors.
    Inputs: header_map, when given, is a validate_headers() result for this table.
    Outputs: StagedImport with at least one report.
    Raises: ImportSchemaError (empty file, bad headers, no data rows, no valid rows).
    Notes: Bad rows are logged and skipped, never fatal to the batch.
    """
    if not table.header_rows:
        raise ImportSchemaError(EMPTY_FILE_MESSAGE)

    if header_map is None:
        header_map = validate_headers(table.header_rows[0])
    if not table.rows:
        raise ImportSchemaError(NO_DATA_ROWS_MESSAGE)

    if batch_ts is None:
        batch_ts = now_millis()

    staged = StagedImport(reports=[], data_rows=len(table.rows), source=source)
    for index, row in enumerate(table.rows):
        row_number = index + 2
        values = {expected: row.get(actual) for expected, actual in header_map.items()}
        try:
            report = coerce_row(values, f"imported-{batch_ts}-{index}", fmt, policy, row_number)
        except RowError as exc:
            logger.warning("Skipping row %d: %s", row_number, exc)
            staged.skipped.append(SkippedRow(row_number, str(exc)))
            continue
        staged.reports.append(report)

    if not staged.reports:
        raise ImportSchemaError(NO_VALID_ROWS_MESSAGE)

    logger.info(
        "Staged %d report(s) from %s (%d skipped)",
        len(staged.reports), source or "table", len(staged.skipped),
    )
    return staged


class ImportSession:
    """
    Design (ImportSession)
    - Purpose: One import at a time, walked through
               IDLE -> FILE_SELECTED -> PARSED -> HEADER_VALIDATED -> ROWS_COERCED -> STAGED
               -> APPLIED | CANCELLED -> IDLE.
    - State:
        state: ImportState
        path: selected file
        table: parsed Table (after parse())
        staged: StagedImport waiting for confirmation
    - Failures drop the session back to IDLE and re-raise. Any reader failure
      surfaces as TableReadError.
    """

    def __init__(
        self,
        fmt: DateFormat = DateFormat.MDY_SHORT,
        missing_date_policy: MissingDatePolicy = MissingDatePolicy.EMPTY,
        import_policy: ImportPolicy = ImportPolicy.REPLACE,
        reader: Callable[[Path], Table] = read_table,
    ) -> None:
        self.fmt = fmt
        self.missing_date_policy = missing_date_policy
        self.import_policy = import_policy
        self._reader = reader
        self.state = ImportState.IDLE
        self.path: Optional[Path] = None
        self.table: Optional[Table] = None
        self.staged: Optional[StagedImport] = None

    @property
    def busy(self) -> bool:
        """True while an import is selected, parsing or waiting for confirmation."""
        return self.state not in (ImportState.IDLE, ImportState.APPLIED, ImportState.CANCELLED)

    def _expect(self, *states: ImportState) -> None:
        if self.state not in states:
            raise ImportStateError(f"Import is {self.state.value}; expected {', '.join(s.value for s in states)}")

    def reset(self) -> None:
        self.state = ImportState.IDLE
        self.path = None
        self.table = None
        self.staged = None

    def select(self, path: Path) -> None:
        if self.busy:
            raise ImportStateError("Another import is already in progress")
        self.reset()
        self.path = Path(path)
        self.state = ImportState.FILE_SELECTED

    def parse(self) -> Table:
        self._expect(ImportState.FILE_SELECTED)
        path = self.path
        try:
            self.table = self._reader(path)
        except TableReadError:
            logger.exception("Error importing file %s", path)
            self.reset()
            raise
        except Exception as exc:
            logger.exception("Error importing file %s", path)
            self.reset()
            raise TableReadError(f"Could not read {path.name}: {exc}") from exc
        self.state = ImportState.PARSED
        return self.table

    def stage(self, batch_ts: Optional[int] = None) -> StagedImport:
        self._expect(ImportState.PARSED)
        table = self.table
        try:
            header_map = None
            if table.header_rows:
                header_map = validate_headers(table.header_rows[0])
                self.state = ImportState.HEADER_VALIDATED
            staged = reconcile(
                table,
                fmt=self.fmt,
                policy=self.missing_date_policy,
                batch_ts=batch_ts,
                source=self.path.name if self.path else "",
                header_map=header_map,
            )
        except Exception:
            self.reset()
            raise
        self.state = ImportState.ROWS_COERCED
        self.staged = staged
        self.state = ImportState.STAGED
        return staged

    def apply(self, repo: ReportRepo) -> int:
        """
        Purpose: Commit the staged reports according to import_policy.
        Outputs: Number of reports applied.
        Side effects: repo.replace_all() or repo.extend().
        """
        self._expect(ImportState.STAGED)
        reports = self.staged.reports
        if self.import_policy is ImportPolicy.APPEND:
            repo.extend(reports)
        else:
            repo.replace_all(reports)
        logger.info("Applied %d imported report(s) (%s)", len(reports), self.import_policy.value)
        self.table = None
        self.staged = None
        self.state = ImportState.APPLIED
        return len(reports)

    def cancel(self) -> None:
        """Discard whatever is staged; the repository is never touched."""
        if self.staged is not None:
            logger.info("Import cancelled, %d staged report(s) discarded", len(self.staged.reports))
        self.table = None
        self.staged = None
        self.path = None
        self.state = ImportState.CANCELLED
