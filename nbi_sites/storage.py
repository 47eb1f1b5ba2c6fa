"""
Design (storage.py)
- Purpose: Load and save reports, sites and the theme preference to/from disk (JSON).
- Inputs: Data dir (from get_data_dir()), lists of records / theme name for save.
- Outputs: list[ProblemReport], list[Site], theme str on load; None on save.
- Side effects: Reads/writes files. On load failure returns empty/default; on save failure logs.
- Thread-safety: Call from main thread only (e.g. after repo mutations).
"""

import json
import logging
import os
import sys
from pathlib import Path
from typing import Any, List, Optional

from .config import DEFAULT_THEME, REPORTS_FILENAME, SETTINGS_FILENAME, SITES_FILENAME
from .dates import is_iso, to_iso
from .models import IspInfo, ProblemReport, ReportStatus, Site

logger = logging.getLogger(__name__)

THEMES = ("light", "dark")


def get_data_dir() -> Path:
    """
    Resolve the directory holding the JSON files. Prefer app data dir so it works when installed
    (e.g. Program Files) and survives reinstalls. Fallback to a dot-dir in the home folder,
    then to the project dir.
    """
    if sys.platform == "win32":
        appdata = os.environ.get("APPDATA")
        if appdata:
            base = Path(appdata) / "NBI Site Management"
            try:
                base.mkdir(parents=True, exist_ok=True)
                return base
            except OSError:
                pass
    try:
        base = Path.home() / ".nbi_sites"
        base.mkdir(parents=True, exist_ok=True)
        return base
    except (OSError, RuntimeError):
        return Path(__file__).resolve().parent.parent


def _read_json(path: Path) -> Optional[Any]:
    if not path.exists():
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        logger.error("Error reading %s: %s", path, exc)
        return None


def _write_json(path: Path, data: Any) -> bool:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
    except OSError as exc:
        logger.error("Error saving %s: %s", path, exc)
        return False
    return True


def _valid_date(value: str) -> bool:
    return value == "" or (is_iso(value) and to_iso(value).ok)


def _report_from_dict(item: dict) -> Optional[ProblemReport]:
    report_id = str(item.get("id", "") or "")
    status = str(item.get("status", "")).upper()
    if not report_id or status not in (ReportStatus.UP.value, ReportStatus.DOWN.value):
        return None
    report = ProblemReport(
        id=report_id,
        site_name=str(item.get("site_name", "")),
        ticket_id=str(item.get("ticket_id", "")),
        status=ReportStatus(status),
        reason=str(item.get("reason", "")),
        last_update=str(item.get("last_update", "")),
        issue_date=str(item.get("issue_date", "")),
        last_follow_up=str(item.get("last_follow_up", "")),
    )
    if not (_valid_date(report.issue_date) and _valid_date(report.last_follow_up)):
        return None
    return report


def load_reports(path: Path) -> List[ProblemReport]:
    """
    Load reports from JSON file. Returns empty list on missing file or parse error.
    Records breaking the stored invariants (status, ISO dates, unique id) are dropped.
    """
    data = _read_json(path)
    if not isinstance(data, list):
        return []
    reports: List[ProblemReport] = []
    seen = set()
    for item in data:
        report = _report_from_dict(item) if isinstance(item, dict) else None
        if report is None or report.id in seen:
            logger.warning("Dropping invalid stored report: %r", item)
            continue
        seen.add(report.id)
        reports.append(report)
    return reports


def save_reports(reports: List[ProblemReport], path: Path) -> bool:
    """Save reports to JSON file. Logs and returns False on OSError (e.g. read-only location)."""
    return _write_json(path, [r.to_dict() for r in reports])


def _isp_from_dict(item: Any) -> IspInfo:
    if not isinstance(item, dict):
        return IspInfo()
    return IspInfo(
        info=str(item.get("info", "")),
        capacity=str(item.get("capacity", "")),
        l2_ip=str(item.get("l2_ip", "")),
    )


def load_sites(path: Path) -> List[Site]:
    """Load sites from JSON file. Returns empty list on missing file or parse error."""
    data = _read_json(path)
    if not isinstance(data, list):
        return []
    sites: List[Site] = []
    seen = set()
    for item in data:
        if not isinstance(item, dict) or not item.get("id") or str(item["id"]) in seen:
            logger.warning("Dropping invalid stored site: %r", item)
            continue
        site = Site(
            id=str(item["id"]),
            site_location_name=str(item.get("site_location_name", "")),
            device_name=str(item.get("device_name", "")),
            sdwan_site_id=str(item.get("sdwan_site_id", "")),
            lan_ip=str(item.get("lan_ip", "")),
            el_info=_isp_from_dict(item.get("el_info")),
            ilevant_info=_isp_from_dict(item.get("ilevant_info")),
            horizon_info=_isp_from_dict(item.get("horizon_info")),
        )
        seen.add(site.id)
        sites.append(site)
    return sites


def save_sites(sites: List[Site], path: Path) -> bool:
    """Save sites to JSON file. Logs and returns False on OSError."""
    return _write_json(path, [s.to_dict() for s in sites])


def load_theme(path: Path) -> str:
    """Theme from settings.json; anything missing or unknown means the default (dark)."""
    data = _read_json(path)
    if isinstance(data, dict) and data.get("theme") in THEMES:
        return data["theme"]
    return DEFAULT_THEME


def save_theme(theme: str, path: Path) -> bool:
    if theme not in THEMES:
        raise ValueError(f"Unknown theme: {theme}")
    return _write_json(path, {"theme": theme})


def reports_path(base: Path) -> Path:
    return base / REPORTS_FILENAME


def sites_path(base: Path) -> Path:
    return base / SITES_FILENAME


def settings_path(base: Path) -> Path:
    return base / SETTINGS_FILENAME
