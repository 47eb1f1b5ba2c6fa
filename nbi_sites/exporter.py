"""
Design (exporter.py)
- Purpose: Serialize the live collections for spreadsheets: reports as BOM-prefixed CSV,
           sites as a flattened .xlsx sheet.
- Inputs: Lists of ProblemReport / Site, display DateFormat, destination path.
- Outputs: CSV text (pure); files on disk for the write_* helpers.
- Side effects: write_* create/overwrite the destination file.
- Thread-safety: Stateless.
"""

import csv
import io
import logging
from pathlib import Path
from typing import Iterable, List

from openpyxl import Workbook

from .dates import DateFormat, to_display
from .models import REPORT_HEADERS, ProblemReport, Site

logger = logging.getLogger(__name__)

BOM = "\ufeff"

SITE_EXPORT_HEADERS = (
    "Site Location",
    "Device Name",
    "SDWAN Site ID",
    "LAN IP",
    "EL Info",
    "EL Capacity",
    "EL L2 IP",
    "Ilevant Info",
    "Ilevant Capacity",
    "Horizon Info",
    "Horizon Capacity",
    "Horizon L2 IP",
)


def report_row(report: ProblemReport, fmt: DateFormat = DateFormat.MDY_SHORT) -> List[str]:
    return [
        report.site_name,
        report.ticket_id,
        report.status.value,
        report.reason,
        report.last_update,
        to_display(report.issue_date, fmt),
        to_display(report.last_follow_up, fmt),
    ]


def reports_to_csv(reports: Iterable[ProblemReport], fmt: DateFormat = DateFormat.MDY_SHORT) -> str:
    """
    Purpose: Render reports as CSV text with a leading BOM.
    Notes: Standard quoting: fields holding a comma, quote or newline are quoted and
           inner quotes doubled. Rows end with CRLF.
    """
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow(REPORT_HEADERS)
    for report in reports:
        writer.writerow(report_row(report, fmt))
    return BOM + buf.getvalue()


def write_reports_csv(reports: Iterable[ProblemReport], path: Path, fmt: DateFormat = DateFormat.MDY_SHORT) -> None:
    """Save reports_to_csv() output as UTF-8. OSError propagates to the caller."""
    text = reports_to_csv(reports, fmt)
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(text)
    logger.info("Exported reports to %s", path)


def site_row(site: Site) -> List[str]:
    return [
        site.site_location_name,
        site.device_name,
        site.sdwan_site_id,
        site.lan_ip,
        site.el_info.info,
        site.el_info.capacity,
        site.el_info.l2_ip,
        site.ilevant_info.info,
        site.ilevant_info.capacity,
        site.horizon_info.info,
        site.horizon_info.capacity,
        site.horizon_info.l2_ip,
    ]


def write_sites_xlsx(sites: Iterable[Site], path: Path) -> None:
    """Save sites as one flattened 'Sites' sheet. OSError propagates to the caller."""
    wb = Workbook()
    ws = wb.active
    ws.title = "Sites"
    ws.append(list(SITE_EXPORT_HEADERS))
    for site in sites:
        ws.append(site_row(site))
    wb.save(path)
    logger.info("Exported sites to %s", path)
