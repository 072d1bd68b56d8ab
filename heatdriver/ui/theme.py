import tkinter as tk


PANEL_BG = "#D4D0C8"
CANVAS_BG = "#1E1E1E"
BUTTON_BG = "#ECE9D8"
ACCENT = "#003399"
TEXT = "#111111"
MESSAGE_FG = "#7A1A00"

FONT_UI = ("Tahoma", 10)
FONT_SECTION = ("Tahoma", 9, "bold")
FONT_TITLE = ("Tahoma", 14, "bold")
FONT_MONO = ("Consolas", 9)

# One tick per frame opportunity, roughly 60 Hz.
FRAME_INTERVAL_MS = 16
SINK_POLL_MS = 50


def apply_panel_theme(root: tk.Misc) -> None:
    root.configure(bg=PANEL_BG)
    root.option_add("*Font", FONT_UI)
    root.option_add("*Background", PANEL_BG)
    root.option_add("*Foreground", TEXT)
    root.option_add("*Button.Background", BUTTON_BG)
    root.option_add("*Button.Relief", "raised")
    root.option_add("*Entry.Background", "white")
    root.option_add("*Entry.Width", 14)
