"""
Design (tables.py)
- Purpose: Read a spreadsheet/CSV file into two plain views: an array-of-arrays view
           (header_rows, first row = headers) and a keyed-row view (rows keyed by header text).
- Inputs: Path to a .csv, .xlsx or .xls file.
- Outputs: Table. Cell values are whatever the format carries: str for CSV,
           str / int / float / datetime / None for workbooks.
- Side effects: Reads the file.
- Thread-safety: Stateless; safe to call from a worker thread.
"""

from __future__ import annotations

import csv
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List

import xlrd
from openpyxl import load_workbook

SUPPORTED_SUFFIXES = (".csv", ".xlsx", ".xls")


class TableReadError(Exception):
    """The file could not be read as a table."""


@dataclass
class Table:
    sheet_names: List[str] = field(default_factory=list)
    header_rows: List[List[Any]] = field(default_factory=list)
    rows: List[Dict[str, Any]] = field(default_factory=list)


def _is_blank(values: List[Any]) -> bool:
    return all(v is None or (isinstance(v, str) and not v.strip()) for v in values)


def table_from_rows(raw_rows: List[List[Any]], sheet_names: List[str] | None = None) -> Table:
    """
    Purpose: Build both views from raw rows. Blank rows are dropped; header cells are
             stringified and trimmed; cells under an empty header are ignored.
    """
    header_rows = [list(r) for r in raw_rows if not _is_blank(list(r))]
    table = Table(sheet_names=list(sheet_names or []), header_rows=header_rows)
    if not header_rows:
        return table

    headers = ["" if h is None else str(h).strip() for h in header_rows[0]]
    for values in header_rows[1:]:
        row: Dict[str, Any] = {}
        for name, value in zip(headers, values):
            if name and name not in row:
                row[name] = value
        table.rows.append(row)
    return table


def _read_csv(path: Path) -> Table:
    # utf-8-sig strips the BOM written by our own export
    with open(path, "r", encoding="utf-8-sig", newline="") as f:
        return table_from_rows(list(csv.reader(f)), [path.stem])


def _read_xlsx(path: Path) -> Table:
    wb = load_workbook(path, read_only=True, data_only=True)
    try:
        ws = wb.worksheets[0]
        raw_rows = [list(r) for r in ws.iter_rows(values_only=True)]
        return table_from_rows(raw_rows, list(wb.sheetnames))
    finally:
        wb.close()


def _xls_value(cell: xlrd.sheet.Cell, datemode: int) -> Any:
    if cell.ctype in (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK):
        return None
    if cell.ctype == xlrd.XL_CELL_DATE:
        try:
            return xlrd.xldate_as_datetime(cell.value, datemode)
        except (ValueError, OverflowError):
            # Leave the raw serial; the reconciler has its own serial fallback
            return cell.value
    return cell.value


def _read_xls(path: Path) -> Table:
    book = xlrd.open_workbook(str(path))
    sheet = book.sheet_by_index(0)
    raw_rows = [
        [_xls_value(sheet.cell(r, c), book.datemode) for c in range(sheet.ncols)]
        for r in range(sheet.nrows)
    ]
    return table_from_rows(raw_rows, book.sheet_names())


def read_table(path: Path) -> Table:
    """
    Purpose: Dispatch on file extension and read the first sheet.
    Outputs: Table.
    Raises: TableReadError for unsupported extensions or unreadable files.
    """
    path = Path(path)
    suffix = path.suffix.lower()
    if suffix not in SUPPORTED_SUFFIXES:
        raise TableReadError(f"Unsupported file type: {path.suffix or path.name}")
    try:
        if suffix == ".csv":
            return _read_csv(path)
        if suffix == ".xlsx":
            return _read_xlsx(path)
        return _read_xls(path)
    except Exception as exc:
        # openpyxl and xlrd raise many unrelated types for a damaged file
        raise TableReadError(f"Could not read {path.name}: {exc}") from exc
