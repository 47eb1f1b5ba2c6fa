"""
Design (ui.py)
- Purpose: Build and manage the Tkinter UI (header, Daily Report tab, Sites tab, Logs panel).
- Inputs: ReportRepo, SiteRepo, ImportSession, persistence callbacks, initial theme.
- Outputs: None (renders UI, writes to the repositories).
- Side effects: Creates windows and dialogs; reads/writes user-chosen import/export files;
                sends desktop notifications.
- Thread-safety: UI code runs on main thread; the import file read runs on a worker thread
                 and hands its result back with root.after().
"""

import logging
import threading
import tkinter as tk
from pathlib import Path
from tkinter import filedialog, messagebox, ttk
from typing import Callable, Dict, Optional, Union

from plyer import notification

from .config import (
    APP_TITLE,
    CURRENT_USER_GROUP,
    DATE_FORMAT,
    IMPORT_FILETYPES,
    LOG_MAX_LINES,
    NOTIFY_TIMEOUT_SEC,
    REPORTS_EXPORT_FILENAME,
    SITES_EXPORT_FILENAME,
)
from .dates import to_display
from .exporter import write_reports_csv, write_sites_xlsx
from .forms import (
    ValidationError,
    empty_report_form,
    empty_site_form,
    report_from_form,
    report_to_form,
    site_from_form,
    site_to_form,
)
from .importer import ImportPolicy, ImportSchemaError, ImportSession
from .logs import LOGGER_NAME, TextPanelHandler
from .models import ProblemReport, ReportStatus, can_manage_sites
from .repository import ReportRepo, SiteRepo
from .theme import apply_theme, style_text, toggled
from .utils import truncate

logger = logging.getLogger(__name__)

FormInput = Union[tk.StringVar, tk.Text]

REPORT_COLUMNS = ("site_name", "ticket_id", "status", "reason", "last_update", "issue_date", "last_follow_up")
REPORT_HEADINGS = {
    "site_name": "Site Name",
    "ticket_id": "Ticket ID",
    "status": "Status",
    "reason": "Reason",
    "last_update": "Last Update",
    "issue_date": "Issue Date",
    "last_follow_up": "Last Follow Up",
}

SITE_COLUMNS = ("site_location_name", "device_name", "sdwan_site_id", "lan_ip", "el", "ilevant", "horizon")
SITE_HEADINGS = {
    "site_location_name": "Site Location",
    "device_name": "Device Name",
    "sdwan_site_id": "SDWAN Site ID",
    "lan_ip": "LAN IP",
    "el": "EL ISP",
    "ilevant": "Ilevant ISP",
    "horizon": "Horizon ISP",
}


def _sort_key(report: ProblemReport, col: str) -> str:
    value = getattr(report, col)
    if isinstance(value, ReportStatus):
        value = value.value
    return value.lower()


class AppUI:
    """
    Design (AppUI)
    - Purpose: Encapsulate all UI creation and behavior.
    - Public attributes:
        enable_notifications (tk.BooleanVar): toggles desktop notifications after imports
        show_logs (tk.BooleanVar): toggles visibility of the logs panel
        theme (str): "light" / "dark"
    - Public methods:
        refresh_reports() / refresh_sites(): repaint the tables from repository snapshots
        toggle_theme(): switch palettes and persist the choice
    """

    def __init__(
        self,
        root: tk.Tk,
        reports: ReportRepo,
        sites: SiteRepo,
        importer: ImportSession,
        save_reports: Callable[[], None],
        save_sites: Callable[[], None],
        save_theme: Callable[[str], None],
        theme: str = "dark",
    ):
        self.root = root
        self.reports = reports
        self.sites = sites
        self.importer = importer
        self.save_reports = save_reports
        self.save_sites = save_sites
        self.save_theme = save_theme
        self.theme = theme

        # UI state variables
        self.enable_notifications = tk.BooleanVar(value=True)
        self.show_logs = tk.BooleanVar(value=False)
        self.search_term = tk.StringVar()
        self.editing_report_id: Optional[str] = None
        self.editing_site_id: Optional[str] = None
        self.sort_state = {"column": None, "order": None}
        self.can_manage_sites = can_manage_sites(CURRENT_USER_GROUP)

        # Window
        self.root.title(APP_TITLE)
        self.root.rowconfigure(1, weight=1)
        self.root.columnconfigure(0, weight=1)
        self.style = ttk.Style(self.root)

        self._build_header()

        self.notebook = ttk.Notebook(self.root)
        self.notebook.grid(row=1, column=0, sticky="nsew", padx=10, pady=(0, 5))
        report_tab = ttk.Frame(self.notebook)
        site_tab = ttk.Frame(self.notebook)
        self.notebook.add(report_tab, text="Daily Report")
        self.notebook.add(site_tab, text="Sites")
        self._build_report_tab(report_tab)
        self._build_site_tab(site_tab)

        # Logs panel (hidden by default)
        self.logs_box = tk.Text(self.root, height=8, wrap="none")
        self.logs_box.configure(state="disabled")
        self._panel_handler = TextPanelHandler(lambda line: self.root.after(0, self._append_log, line))
        logging.getLogger(LOGGER_NAME).addHandler(self._panel_handler)

        self._apply_theme()
        self.search_term.trace_add("write", lambda *_: self.refresh_sites())

        # Initial paint
        self.refresh_reports()
        self.refresh_sites()

    # ---------- layout ----------

    def _build_header(self) -> None:
        bar = ttk.Frame(self.root)
        bar.grid(row=0, column=0, sticky="ew", padx=10, pady=(10, 5))
        ttk.Label(bar, text=APP_TITLE, style="Header.TLabel").pack(side=tk.LEFT)

        self.theme_button = ttk.Button(bar, command=self.toggle_theme)
        self.theme_button.pack(side=tk.RIGHT, padx=5)
        ttk.Checkbutton(bar, text="Show Logs", variable=self.show_logs, command=self.toggle_logs).pack(side=tk.RIGHT, padx=5)
        ttk.Checkbutton(bar, text="Enable Notifications", variable=self.enable_notifications).pack(side=tk.RIGHT, padx=5)

    def _build_report_tab(self, tab: ttk.Frame) -> None:
        tab.rowconfigure(2, weight=1)
        tab.columnconfigure(0, weight=1)

        self.report_form = ttk.LabelFrame(tab, text="Add New Problem Report")
        self.report_form.grid(row=0, column=0, sticky="ew", padx=5, pady=5)
        form = self.report_form
        self.report_inputs: Dict[str, FormInput] = {}

        def entry(key: str, label: str, row: int, col: int) -> None:
            ttk.Label(form, text=label).grid(row=row, column=col, sticky="e", padx=5, pady=5)
            var = tk.StringVar()
            ttk.Entry(form, textvariable=var).grid(row=row, column=col + 1, sticky="ew", padx=5, pady=5)
            self.report_inputs[key] = var

        def text(key: str, label: str, row: int) -> None:
            ttk.Label(form, text=label).grid(row=row, column=0, sticky="ne", padx=5, pady=5)
            box = tk.Text(form, height=2, width=60)
            box.grid(row=row, column=1, columnspan=5, sticky="ew", padx=5, pady=5)
            self.report_inputs[key] = box

        entry("site_name", "Site Name", 0, 0)
        entry("ticket_id", "Ticket ID", 0, 2)
        ttk.Label(form, text="Status").grid(row=0, column=4, sticky="e", padx=5, pady=5)
        status_var = tk.StringVar(value=ReportStatus.UP.value)
        ttk.Combobox(
            form, textvariable=status_var, values=[s.value for s in ReportStatus], state="readonly", width=8
        ).grid(row=0, column=5, sticky="w", padx=5, pady=5)
        self.report_inputs["status"] = status_var
        text("reason", "Reason", 1)
        text("last_update", "Last Update", 2)
        entry("issue_date", "Issue Date", 3, 0)
        entry("last_follow_up", "Last Follow Up", 3, 2)
        ttk.Label(form, text=DATE_FORMAT.value, style="Muted.TLabel").grid(row=3, column=4, sticky="w", padx=5)
        for col in (1, 3):
            form.columnconfigure(col, weight=1)

        buttons = ttk.Frame(form)
        buttons.grid(row=4, column=0, columnspan=6, sticky="e", padx=5, pady=(0, 5))
        self.report_submit = ttk.Button(buttons, text="Add Report", command=self.submit_report)
        self.report_submit.pack(side=tk.RIGHT, padx=5)
        self.report_cancel = ttk.Button(buttons, text="Cancel", command=self.cancel_report_edit)

        toolbar = ttk.Frame(tab)
        toolbar.grid(row=1, column=0, sticky="ew", padx=5, pady=5)
        ttk.Label(toolbar, text="Current Reports", style="Header.TLabel").pack(side=tk.LEFT)
        ttk.Button(toolbar, text="Export to CSV", command=self.export_reports).pack(side=tk.RIGHT, padx=5)
        self.import_button = ttk.Button(toolbar, text="Import", command=self.import_reports)
        self.import_button.pack(side=tk.RIGHT, padx=5)
        ttk.Button(toolbar, text="Delete", command=self.delete_report).pack(side=tk.RIGHT, padx=5)
        ttk.Button(toolbar, text="Edit", command=self.edit_report).pack(side=tk.RIGHT, padx=5)

        self.report_tree = ttk.Treeview(tab, columns=REPORT_COLUMNS, show="headings")
        self.report_tree.grid(row=2, column=0, sticky="nsew", padx=5, pady=(0, 5))
        for col in REPORT_COLUMNS:
            self.report_tree.heading(col, text=REPORT_HEADINGS[col], command=lambda c=col: self.sort_by_column(c))
        self.report_tree.bind("<Double-1>", lambda _e: self.edit_report())

        self._fill_report_form(empty_report_form(DATE_FORMAT))

    def _build_site_tab(self, tab: ttk.Frame) -> None:
        tab.rowconfigure(2, weight=1)
        tab.columnconfigure(0, weight=1)

        self.site_form = ttk.LabelFrame(tab, text="Submit New Site")
        self.site_form.grid(row=0, column=0, sticky="ew", padx=5, pady=5)
        form = self.site_form
        self.site_inputs: Dict[str, tk.StringVar] = {key: tk.StringVar() for key in empty_site_form()}
        self._site_widgets = []

        def entry(parent, key: str, label: str, row: int, col: int) -> None:
            ttk.Label(parent, text=label).grid(row=row, column=col, sticky="e", padx=5, pady=3)
            widget = ttk.Entry(parent, textvariable=self.site_inputs[key])
            widget.grid(row=row, column=col + 1, sticky="ew", padx=5, pady=3)
            self._site_widgets.append(widget)

        entry(form, "site_location_name", "Site Location Name", 0, 0)
        entry(form, "device_name", "Device Name", 0, 2)
        entry(form, "sdwan_site_id", "SDWAN Site ID", 1, 0)
        entry(form, "lan_ip", "LAN IP", 1, 2)
        for col in (1, 3):
            form.columnconfigure(col, weight=1)

        groups = (
            ("el_info", "EL ISP Information", True),
            ("ilevant_info", "Ilevant ISP Information", False),
            ("horizon_info", "Horizon ISP Information", True),
        )
        isp_row = ttk.Frame(form)
        isp_row.grid(row=2, column=0, columnspan=4, sticky="ew")
        for group, title, has_l2 in groups:
            box = ttk.LabelFrame(isp_row, text=title)
            box.pack(side=tk.LEFT, fill=tk.BOTH, expand=True, padx=5, pady=5)
            box.columnconfigure(1, weight=1)
            entry(box, f"{group}.info", "ISP Details", 0, 0)
            entry(box, f"{group}.capacity", "Capacity", 1, 0)
            if has_l2:
                entry(box, f"{group}.l2_ip", "L2 IP", 2, 0)

        buttons = ttk.Frame(form)
        buttons.grid(row=3, column=0, columnspan=4, sticky="e", padx=5, pady=(0, 5))
        self.site_submit = ttk.Button(buttons, text="Add Site", command=self.submit_site)
        self.site_submit.pack(side=tk.RIGHT, padx=5)
        self.site_cancel = ttk.Button(buttons, text="Cancel", command=self.clear_site_form)
        self.site_cancel.pack(side=tk.RIGHT, padx=5)
        self._site_widgets.extend([self.site_submit, self.site_cancel])

        toolbar = ttk.Frame(tab)
        toolbar.grid(row=1, column=0, sticky="ew", padx=5, pady=5)
        ttk.Label(toolbar, text="Search").pack(side=tk.LEFT, padx=(0, 5))
        ttk.Entry(toolbar, textvariable=self.search_term, width=30).pack(side=tk.LEFT)
        ttk.Button(toolbar, text="Export to Excel", command=self.export_sites).pack(side=tk.RIGHT, padx=5)
        delete_button = ttk.Button(toolbar, text="Delete", command=self.delete_site)
        delete_button.pack(side=tk.RIGHT, padx=5)
        edit_button = ttk.Button(toolbar, text="Edit", command=self.edit_site)
        edit_button.pack(side=tk.RIGHT, padx=5)
        self._site_widgets.extend([delete_button, edit_button])

        self.site_tree = ttk.Treeview(tab, columns=SITE_COLUMNS, show="headings")
        self.site_tree.grid(row=2, column=0, sticky="nsew", padx=5, pady=(0, 5))
        for col in SITE_COLUMNS:
            self.site_tree.heading(col, text=SITE_HEADINGS[col])

        if not self.can_manage_sites:
            for widget in self._site_widgets:
                widget.state(["disabled"])

    # ---------- theme & logs ----------

    def _apply_theme(self) -> None:
        p = apply_theme(self.root, self.style, self.theme)
        for widget in (self.report_inputs["reason"], self.report_inputs["last_update"], self.logs_box):
            style_text(widget, self.theme)
        self.report_tree.tag_configure("up", foreground=p["up"])
        self.report_tree.tag_configure("down", foreground=p["down"])
        self.theme_button.configure(text="Light mode" if self.theme == "dark" else "Dark mode")

    def toggle_theme(self) -> None:
        """Switch light/dark, restyle, and persist the preference."""
        self.theme = toggled(self.theme)
        self._apply_theme()
        self.save_theme(self.theme)

    def toggle_logs(self) -> None:
        if self.show_logs.get():
            self.logs_box.grid(row=2, column=0, sticky="ew", padx=10, pady=(0, 10))
        else:
            self.logs_box.grid_remove()

    def _append_log(self, text: str) -> None:
        """
        Purpose: Append one line to the Logs panel and trim to LOG_MAX_LINES.
        Thread-safety: Main thread only (called via after()).
        """
        self.logs_box.configure(state="normal")
        self.logs_box.insert("end", text)
        self.logs_box.see("end")
        total_lines = int(self.logs_box.index("end-1c").split(".")[0])
        if total_lines > LOG_MAX_LINES:
            remove = total_lines - LOG_MAX_LINES
            self.logs_box.delete("1.0", f"{remove + 1}.0")
        self.logs_box.configure(state="disabled")

    def _notify(self, message: str) -> None:
        if not self.enable_notifications.get():
            return
        try:
            notification.notify(title=APP_TITLE, message=message, timeout=NOTIFY_TIMEOUT_SEC)
        except Exception:
            logger.warning("Desktop notification failed", exc_info=True)

    # ---------- reports: table ----------

    def refresh_reports(self) -> None:
        """
        Purpose: Rebuild the report rows from the repository snapshot and apply sorting.
        Side effects: Mutates Treeview items (UI only).
        """
        reports = self.reports.snapshot()
        col, order = self.sort_state["column"], self.sort_state["order"]
        if col:
            # Dates sort on their ISO value, not the display string
            reports.sort(key=lambda r: _sort_key(r, col), reverse=(order == "desc"))

        self.report_tree.delete(*self.report_tree.get_children())
        for r in reports:
            values = (
                r.site_name,
                r.ticket_id,
                r.status.value,
                truncate(r.reason),
                truncate(r.last_update),
                to_display(r.issue_date, DATE_FORMAT),
                to_display(r.last_follow_up, DATE_FORMAT),
            )
            tag = "down" if r.status is ReportStatus.DOWN else "up"
            self.report_tree.insert("", "end", iid=r.id, values=values, tags=(tag,))

    def sort_by_column(self, col: str) -> None:
        """Toggle header sort order (asc -> desc -> unsorted) and refresh."""
        order = "asc"
        if self.sort_state["column"] == col and self.sort_state["order"] == "asc":
            order = "desc"
        elif self.sort_state["column"] == col and self.sort_state["order"] == "desc":
            col, order = None, None
        self.sort_state["column"] = col
        self.sort_state["order"] = order
        self.refresh_reports()

    def _selected_report_id(self, title: str) -> Optional[str]:
        selected = self.report_tree.selection()
        if not selected:
            messagebox.showinfo(title, "Select a report first.")
            return None
        return selected[0]

    # ---------- reports: form ----------

    def _fill_report_form(self, fields: Dict[str, str]) -> None:
        for key, widget in self.report_inputs.items():
            if isinstance(widget, tk.Text):
                widget.delete("1.0", "end")
                widget.insert("1.0", fields.get(key, ""))
            else:
                widget.set(fields.get(key, ""))

    def _read_report_form(self) -> Dict[str, str]:
        fields = {}
        for key, widget in self.report_inputs.items():
            if isinstance(widget, tk.Text):
                fields[key] = widget.get("1.0", "end-1c")
            else:
                fields[key] = widget.get()
        return fields

    def _reset_report_form(self) -> None:
        self.editing_report_id = None
        self.report_form.configure(text="Add New Problem Report")
        self.report_submit.configure(text="Add Report")
        self.report_cancel.pack_forget()
        self._fill_report_form(empty_report_form(DATE_FORMAT))

    def submit_report(self) -> None:
        """
        Purpose: Validate the form and add a new report or update the one being edited.
        Side effects: Mutates ReportRepo; persists on success.
        """
        try:
            report = report_from_form(
                self._read_report_form(),
                DATE_FORMAT,
                report_id=self.editing_report_id,
                existing_ids=self.reports.ids(),
            )
            if self.editing_report_id:
                self.reports.update(report)
            else:
                self.reports.add(report)
        except ValidationError as exc:
            messagebox.showerror("Problem Report", str(exc))
            return
        except KeyError:
            messagebox.showerror("Problem Report", "The report being edited no longer exists.")
            self._reset_report_form()
            return
        self._reset_report_form()
        self.refresh_reports()
        self.save_reports()

    def edit_report(self) -> None:
        report_id = self._selected_report_id("Edit Report")
        if not report_id:
            return
        report = self.reports.get(report_id)
        if not report:
            return
        self.editing_report_id = report_id
        self._fill_report_form(report_to_form(report, DATE_FORMAT))
        self.report_form.configure(text="Edit Report")
        self.report_submit.configure(text="Update Report")
        self.report_cancel.pack(side=tk.RIGHT, padx=5)

    def cancel_report_edit(self) -> None:
        self._reset_report_form()

    def delete_report(self) -> None:
        report_id = self._selected_report_id("Delete Report")
        if not report_id:
            return
        report = self.reports.get(report_id)
        if not report:
            return
        if not messagebox.askyesno(
            "Delete Report",
            f'Are you sure you want to delete the report for site "{report.site_name}" '
            f'with ticket ID "{report.ticket_id}"?',
        ):
            return
        self.reports.remove(report_id)
        if self.editing_report_id == report_id:
            self._reset_report_form()
        self.refresh_reports()
        self.save_reports()

    # ---------- reports: import / export ----------

    def export_reports(self) -> None:
        path = filedialog.asksaveasfilename(
            defaultextension=".csv",
            initialfile=REPORTS_EXPORT_FILENAME,
            filetypes=[("CSV", "*.csv")],
        )
        if not path:
            return
        try:
            write_reports_csv(self.reports.snapshot(), Path(path), DATE_FORMAT)
        except OSError as exc:
            logger.error("Export failed: %s", exc)
            messagebox.showerror("Export to CSV", f"Could not save the file: {exc}")

    def import_reports(self) -> None:
        """
        Purpose: Pick a file and parse it on a worker thread; the Import button stays
                 disabled until the staged import is confirmed or cancelled.
        """
        if self.importer.busy:
            return
        path = filedialog.askopenfilename(filetypes=IMPORT_FILETYPES)
        if not path:
            return
        self.importer.select(Path(path))
        self.import_button.state(["disabled"])
        threading.Thread(target=self._parse_import, daemon=True).start()

    def _parse_import(self) -> None:
        """Worker thread: read the file, then continue on the main thread."""
        try:
            self.importer.parse()
        except Exception:
            # parse() has already logged and reset; the worker must always hand back
            self.root.after(0, self._import_failed, "There was an error processing the file.")
            return
        self.root.after(0, self._confirm_import)

    def _import_failed(self, message: str) -> None:
        messagebox.showerror("Import", message)
        self.import_button.state(["!disabled"])

    def _confirm_import(self) -> None:
        try:
            staged = self.importer.stage()
        except ImportSchemaError as exc:
            self._import_failed(str(exc))
            return
        except Exception:
            logger.exception("Import could not be staged")
            self._import_failed("There was an error processing the file.")
            return

        count = len(staged.reports)
        if self.importer.import_policy is ImportPolicy.APPEND:
            message = f"Importing this file will add {count} report(s) to the existing reports. Continue?"
        else:
            message = "Importing this file will replace all existing reports. Are you sure you want to continue?"
        if staged.skipped:
            message += f"\n\n{len(staged.skipped)} row(s) could not be read and will be skipped."

        try:
            if messagebox.askyesno("Confirm Data Import", message):
                applied = self.importer.apply(self.reports)
                self._reset_report_form()
                self.refresh_reports()
                self.save_reports()
                messagebox.showinfo("Import", f"{applied} reports imported successfully!")
                self._notify(f"{applied} reports imported successfully!")
            else:
                self.importer.cancel()
        except ValueError as exc:
            logger.error("Import could not be applied: %s", exc)
            self.importer.cancel()
            messagebox.showerror("Import", f"Import could not be applied: {exc}")
        finally:
            self.import_button.state(["!disabled"])

    # ---------- sites ----------

    def refresh_sites(self) -> None:
        self.site_tree.delete(*self.site_tree.get_children())
        for s in self.sites.search(self.search_term.get()):
            values = (
                s.site_location_name,
                s.device_name,
                s.sdwan_site_id,
                s.lan_ip,
                " / ".join(v for v in (s.el_info.info, s.el_info.capacity) if v),
                " / ".join(v for v in (s.ilevant_info.info, s.ilevant_info.capacity) if v),
                " / ".join(v for v in (s.horizon_info.info, s.horizon_info.capacity) if v),
            )
            self.site_tree.insert("", "end", iid=s.id, values=values)

    def clear_site_form(self) -> None:
        self.editing_site_id = None
        for var in self.site_inputs.values():
            var.set("")
        self.site_form.configure(text="Submit New Site")
        self.site_submit.configure(text="Add Site")

    def submit_site(self) -> None:
        if not self.can_manage_sites:
            return
        fields = {key: var.get() for key, var in self.site_inputs.items()}
        try:
            site = site_from_form(fields, site_id=self.editing_site_id, existing_ids=self.sites.ids())
            if self.editing_site_id:
                self.sites.update(site)
            else:
                self.sites.add(site)
        except ValidationError as exc:
            messagebox.showerror("Site", str(exc))
            return
        except KeyError:
            messagebox.showerror("Site", "The site being edited no longer exists.")
            self.clear_site_form()
            return
        self.clear_site_form()
        self.refresh_sites()
        self.save_sites()

    def edit_site(self) -> None:
        selected = self.site_tree.selection()
        if not selected:
            messagebox.showinfo("Edit Site", "Select a site first.")
            return
        site = self.sites.get(selected[0])
        if not site:
            return
        self.editing_site_id = site.id
        for key, value in site_to_form(site).items():
            self.site_inputs[key].set(value)
        self.site_form.configure(text="Edit Site")
        self.site_submit.configure(text="Update Site")

    def delete_site(self) -> None:
        selected = self.site_tree.selection()
        if not selected:
            messagebox.showinfo("Delete Site", "Select a site first.")
            return
        site = self.sites.get(selected[0])
        if not site:
            return
        if not messagebox.askyesno("Delete Site", f'Are you sure you want to delete the site "{site.site_location_name}"?'):
            return
        self.sites.remove(site.id)
        if self.editing_site_id == site.id:
            self.clear_site_form()
        self.refresh_sites()
        self.save_sites()

    def export_sites(self) -> None:
        path = filedialog.asksaveasfilename(
            defaultextension=".xlsx",
            initialfile=SITES_EXPORT_FILENAME,
            filetypes=[("Excel workbook", "*.xlsx")],
        )
        if not path:
            return
        try:
            write_sites_xlsx(self.sites.snapshot(), Path(path))
        except OSError as exc:
            logger.error("Export failed: %s", exc)
            messagebox.showerror("Export to Excel", f"Could not save the file: {exc}")
