"""
Design (models.py)
- Purpose: Define simple, typed data structures for domain entities (ProblemReport, Site).
- Inputs: Field values (str).
- Outputs: Dataclass instances; plain-dict conversion for JSON persistence.
- Side effects: None.
- Thread-safety: Dataclasses are plain containers; repositories protect concurrent access.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict


class ReportStatus(str, Enum):
    UP = "UP"
    DOWN = "DOWN"


class UserGroup(str, Enum):
    ADMIN = "Admin"
    NETWORK_TEAM = "Network Team"
    NOC_TEAM = "NOC Team"


# Column headers shared by CSV export and the import schema check (order matters for export)
REPORT_HEADERS = (
    "Site Name",
    "Ticket ID",
    "Status",
    "Reason",
    "Last Update",
    "Issue Date",
    "Last Follow Up",
)


def can_manage_sites(group: UserGroup) -> bool:
    """Cosmetic UI gate: only Admin and Network Team see the site editing controls."""
    return group in (UserGroup.ADMIN, UserGroup.NETWORK_TEAM)


@dataclass
class ProblemReport:
    """
    Design (ProblemReport)
    - Purpose: One daily problem report for a site.
    - Fields:
        id: opaque unique id (timestamp string, or imported-<batch>-<row>).
        site_name, ticket_id, reason, last_update: free text.
        status: ReportStatus (UP / DOWN).
        issue_date, last_follow_up: ISO yyyy-mm-dd or "" (never display format).
    """
    id: str
    site_name: str
    ticket_id: str
    status: ReportStatus = ReportStatus.UP
    reason: str = ""
    last_update: str = ""
    issue_date: str = ""
    last_follow_up: str = ""

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data


@dataclass
class IspInfo:
    """ISP details for one uplink. l2_ip stays empty for providers without one."""
    info: str = ""
    capacity: str = ""
    l2_ip: str = ""


@dataclass
class Site:
    """
    Design (Site)
    - Purpose: A network site with its device identity and three ISP uplinks.
    - Fields:
        id: opaque unique id.
        site_location_name, device_name, sdwan_site_id, lan_ip: required at submission.
        el_info, ilevant_info, horizon_info: IspInfo groups (free text).
    """
    id: str
    site_location_name: str
    device_name: str
    sdwan_site_id: str
    lan_ip: str
    el_info: IspInfo = field(default_factory=IspInfo)
    ilevant_info: IspInfo = field(default_factory=IspInfo)
    horizon_info: IspInfo = field(default_factory=IspInfo)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
