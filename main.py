"""
Design (main.py)
- Purpose: Entry point. Wire logging, storage, repositories, the import session and the UI.
- Side effects: Reads persisted reports/sites/theme at startup; writes them on every change.
"""

import logging
import tkinter as tk

from nbi_sites.config import DATE_FORMAT, IMPORT_POLICY, MISSING_DATE_POLICY
from nbi_sites.importer import ImportSession
from nbi_sites.logs import setup_logging
from nbi_sites.repository import ReportRepo, SiteRepo
from nbi_sites.storage import (
    get_data_dir,
    load_reports,
    load_sites,
    load_theme,
    reports_path,
    save_reports,
    save_sites,
    save_theme,
    settings_path,
    sites_path,
)
from nbi_sites.ui import AppUI


def main() -> None:
    logger = setup_logging(logging.INFO)
    base = get_data_dir()
    logger.info("Data directory: %s", base)

    reports = ReportRepo(load_reports(reports_path(base)))
    sites = SiteRepo(load_sites(sites_path(base)))
    importer = ImportSession(
        fmt=DATE_FORMAT,
        missing_date_policy=MISSING_DATE_POLICY,
        import_policy=IMPORT_POLICY,
    )

    root = tk.Tk()
    root.geometry("1200x800")
    AppUI(
        root,
        reports,
        sites,
        importer,
        save_reports=lambda: save_reports(reports.snapshot(), reports_path(base)),
        save_sites=lambda: save_sites(sites.snapshot(), sites_path(base)),
        save_theme=lambda theme: save_theme(theme, settings_path(base)),
        theme=load_theme(settings_path(base)),
    )
    root.mainloop()


if __name__ == "__main__":
    main()
