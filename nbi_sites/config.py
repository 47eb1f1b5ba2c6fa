"""
Design (config.py)
- Purpose: Centralize constants and configuration choices.
- Inputs: None.
- Outputs: Constants (titles, headers, file names, policies, UI limits).
- Side effects: None.
- Thread-safety: N/A (read-only constants).
"""

from .dates import DateFormat
from .importer import ImportPolicy, MissingDatePolicy
from .models import UserGroup

APP_TITLE = "NBI Site Management"

# Date format used by forms, tables and CSV export
DATE_FORMAT = DateFormat.MDY_SHORT

# A confirmed import replaces the whole report list (the confirm dialog says so)
IMPORT_POLICY = ImportPolicy.REPLACE

# What an imported date cell becomes when it cannot be read
MISSING_DATE_POLICY = MissingDatePolicy.EMPTY

# Cosmetic role gate: only Admin / Network Team get the site editing controls
CURRENT_USER_GROUP = UserGroup.NETWORK_TEAM

DEFAULT_THEME = "dark"

# Maximum number of log lines kept in the Logs panel (oldest trimmed)
LOG_MAX_LINES = 1000

NOTIFY_TIMEOUT_SEC = 5

# Persistence: file names inside the data dir (path resolved in storage module)
REPORTS_FILENAME = "reports.json"
SITES_FILENAME = "sites.json"
SETTINGS_FILENAME = "settings.json"

# Default names offered by the save dialogs
REPORTS_EXPORT_FILENAME = "daily_problem_report.csv"
SITES_EXPORT_FILENAME = "sites.xlsx"

IMPORT_FILETYPES = [
    ("Spreadsheets", "*.xlsx *.xls *.csv"),
    ("All files", "*.*"),
]
