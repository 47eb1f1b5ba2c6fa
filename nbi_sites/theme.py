"""
Design (theme.py)
- Purpose: Light/dark palettes and the ttk/Tk styling that applies them.
- Inputs: Theme name ("light" / "dark"), Tk root, ttk.Style.
- Outputs: Palette dicts; styled widgets.
- Side effects: Reconfigures ttk styles and the root background.
- Thread-safety: UI thread only.
"""

import tkinter as tk
from tkinter import ttk
from typing import Dict

PALETTES: Dict[str, Dict[str, str]] = {
    "dark": {
        "bg": "#1e1e1e",
        "panel": "#2b2b2b",
        "fg": "#f0f0f0",
        "muted": "gray",
        "heading_bg": "#1e1e1e",
        "heading_fg": "#ffffff",
        "selected": "#444",
        "up": "#7CFC00",
        "down": "#FF6A6A",
        "entry_bg": "#2b2b2b",
    },
    "light": {
        "bg": "#dfe6e9",
        "panel": "#ffffff",
        "fg": "#1f2937",
        "muted": "#6b7280",
        "heading_bg": "#f3f4f6",
        "heading_fg": "#111827",
        "selected": "#c7d2fe",
        "up": "#15803d",
        "down": "#b91c1c",
        "entry_bg": "#ffffff",
    },
}


def toggled(theme: str) -> str:
    return "dark" if theme == "light" else "light"


def palette(theme: str) -> Dict[str, str]:
    return PALETTES.get(theme, PALETTES["dark"])


def apply_theme(root: tk.Tk, style: ttk.Style, theme: str) -> Dict[str, str]:
    """
    Purpose: Restyle every ttk widget class we use for the given theme.
    Outputs: The palette applied (callers reuse it for plain Tk widgets and row tags).
    """
    p = palette(theme)
    style.theme_use("default")
    root.configure(bg=p["bg"])

    style.configure(".", background=p["bg"], foreground=p["fg"], fieldbackground=p["entry_bg"])
    style.configure("TFrame", background=p["bg"])
    style.configure("TLabel", background=p["bg"], foreground=p["fg"])
    style.configure("Muted.TLabel", background=p["bg"], foreground=p["muted"], font=("Segoe UI", 8))
    style.configure("Header.TLabel", background=p["bg"], foreground=p["fg"], font=("Segoe UI", 14, "bold"))
    style.configure("TLabelframe", background=p["bg"], foreground=p["fg"])
    style.configure("TLabelframe.Label", background=p["bg"], foreground=p["fg"])
    style.configure("TCheckbutton", background=p["bg"], foreground=p["fg"])
    style.configure("TNotebook", background=p["bg"])
    style.configure("TNotebook.Tab", background=p["panel"], foreground=p["fg"])
    style.map("TNotebook.Tab", background=[("selected", p["selected"])])
    style.configure("TEntry", fieldbackground=p["entry_bg"], foreground=p["fg"])
    style.configure("TCombobox", fieldbackground=p["entry_bg"], foreground=p["fg"])
    style.configure(
        "Treeview",
        background=p["panel"],
        foreground=p["fg"],
        fieldbackground=p["panel"],
        rowheight=24,
        font=("Segoe UI", 10),
    )
    style.configure(
        "Treeview.Heading",
        background=p["heading_bg"],
        foreground=p["heading_fg"],
        font=("Segoe UI", 10, "bold"),
    )
    style.map("Treeview", background=[("selected", p["selected"])], foreground=[])
    return p


def style_text(widget: tk.Text, theme: str) -> None:
    """Plain Tk Text widgets are not ttk-styled; color them directly."""
    p = palette(theme)
    widget.configure(bg=p["panel"], fg=p["fg"], insertbackground=p["fg"])
