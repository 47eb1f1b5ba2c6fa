"""
Design (forms.py)
- Purpose: Convert between the UI's plain string form fields and validated records.
- Inputs: Dicts of form field values (str), the display DateFormat, existing ids.
- Outputs: ProblemReport / Site, or the field dict used to pre-fill a form.
- Side effects: None.
- Thread-safety: Stateless.
"""

from typing import Container, Dict, Optional

from .dates import DateFormat, to_display, to_iso, today_display
from .models import IspInfo, ProblemReport, ReportStatus, Site
from .utils import new_id

REPORT_FIELDS = ("site_name", "ticket_id", "status", "reason", "last_update", "issue_date", "last_follow_up")

SITE_FIELDS = (
    "site_location_name", "device_name", "sdwan_site_id", "lan_ip",
    "el_info.info", "el_info.capacity", "el_info.l2_ip",
    "ilevant_info.info", "ilevant_info.capacity",
    "horizon_info.info", "horizon_info.capacity", "horizon_info.l2_ip",
)

SITE_REQUIRED = {
    "site_location_name": "Site Location Name",
    "device_name": "Device Name",
    "sdwan_site_id": "SDWAN Site ID",
    "lan_ip": "LAN IP",
}


class ValidationError(Exception):
    """User-facing problem with a submitted form; the message is shown as-is."""


def empty_report_form(fmt: DateFormat = DateFormat.MDY_SHORT) -> Dict[str, str]:
    """Fresh report form: status UP, both dates defaulting to today."""
    today = today_display(fmt)
    return {
        "site_name": "",
        "ticket_id": "",
        "status": ReportStatus.UP.value,
        "reason": "",
        "last_update": "",
        "issue_date": today,
        "last_follow_up": today,
    }


def report_to_form(report: ProblemReport, fmt: DateFormat = DateFormat.MDY_SHORT) -> Dict[str, str]:
    return {
        "site_name": report.site_name,
        "ticket_id": report.ticket_id,
        "status": report.status.value,
        "reason": report.reason,
        "last_update": report.last_update,
        "issue_date": to_display(report.issue_date, fmt),
        "last_follow_up": to_display(report.last_follow_up, fmt),
    }


def _form_date(fields: Dict[str, str], key: str, label: str, fmt: DateFormat) -> str:
    result = to_iso(fields.get(key, ""), fmt)
    if not result.ok:
        raise ValidationError(
            f'Invalid {label}: "{result.source.strip()}". Please use a valid {fmt.value} format.'
        )
    return result.iso


def report_from_form(
    fields: Dict[str, str],
    fmt: DateFormat = DateFormat.MDY_SHORT,
    report_id: Optional[str] = None,
    existing_ids: Container[str] = (),
) -> ProblemReport:
    """
    Purpose: Validate a submitted report form.
    Inputs: fields (REPORT_FIELDS), fmt, report_id (None = new report), existing ids.
    Outputs: ProblemReport with ISO dates. Editing keeps report_id.
    Raises: ValidationError with the message to show the user.
    """
    site_name = (fields.get("site_name") or "").strip()
    ticket_id = (fields.get("ticket_id") or "").strip()
    if not site_name:
        raise ValidationError("Site Name is required.")
    if not ticket_id:
        raise ValidationError("Ticket ID is required.")

    status = (fields.get("status") or "").strip().upper()
    if status not in (ReportStatus.UP.value, ReportStatus.DOWN.value):
        raise ValidationError(f'Invalid Status: "{fields.get("status", "")}". Use UP or DOWN.')

    issue_date = _form_date(fields, "issue_date", "Issue Date", fmt)
    last_follow_up = _form_date(fields, "last_follow_up", "Last Follow Up Date", fmt)

    return ProblemReport(
        id=report_id or new_id(existing_ids),
        site_name=site_name,
        ticket_id=ticket_id,
        status=ReportStatus(status),
        reason=(fields.get("reason") or "").strip(),
        last_update=(fields.get("last_update") or "").strip(),
        issue_date=issue_date,
        last_follow_up=last_follow_up,
    )


def empty_site_form() -> Dict[str, str]:
    return {key: "" for key in SITE_FIELDS}


def site_to_form(site: Site) -> Dict[str, str]:
    fields = {}
    for key in SITE_FIELDS:
        if "." in key:
            group, attr = key.split(".")
            fields[key] = getattr(getattr(site, group), attr)
        else:
            fields[key] = getattr(site, key)
    return fields


def site_from_form(
    fields: Dict[str, str],
    site_id: Optional[str] = None,
    existing_ids: Container[str] = (),
) -> Site:
    """
    Purpose: Validate a submitted site form (required fields only; ISP groups are free text).
    Raises: ValidationError naming the first missing required field.
    """
    values = {key: (fields.get(key) or "").strip() for key in SITE_FIELDS}
    for key, label in SITE_REQUIRED.items():
        if not values[key]:
            raise ValidationError(f"{label} is required.")

    def isp(group: str) -> IspInfo:
        return IspInfo(
            info=values[f"{group}.info"],
            capacity=values[f"{group}.capacity"],
            l2_ip=values.get(f"{group}.l2_ip", ""),
        )

    return Site(
        id=site_id or new_id(existing_ids),
        site_location_name=values["site_location_name"],
        device_name=values["device_name"],
        sdwan_site_id=values["sdwan_site_id"],
        lan_ip=values["lan_ip"],
        el_info=isp("el_info"),
        ilevant_info=isp("ilevant_info"),
        horizon_info=isp("horizon_info"),
    )
