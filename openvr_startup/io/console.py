"""Console surface for the foreground shell.

Human-facing output goes to stdout; structured logs go through `logging`.
"""

from __future__ import annotations

import logging
import sys
from typing import TextIO


logger = logging.getLogger(__name__)

SW_MINIMIZE = 6  # Minimizes and activates the next top-level window.

_ANSI_INFO = "\x1b[36m"
_ANSI_ERROR = "\x1b[31m"
_ANSI_RESET = "\x1b[0m"


def _use_color(stream: TextIO) -> bool:
    isatty = getattr(stream, "isatty", None)
    return bool(isatty and isatty())


def print_line(text: str, *, stream: TextIO | None = None) -> None:
    out = stream or sys.stdout
    out.write(f"{text}\n")
    out.flush()


def print_info(text: str, *, stream: TextIO | None = None) -> None:
    out = stream or sys.stdout
    print_line(f"{_ANSI_INFO}{text}{_ANSI_RESET}" if _use_color(out) else text, stream=out)


def print_error(text: str, *, stream: TextIO | None = None) -> None:
    out = stream or sys.stdout
    print_line(f"{_ANSI_ERROR}{text}{_ANSI_RESET}" if _use_color(out) else text, stream=out)


def read_line(prompt: str = "") -> str | None:
    """Block until the user presses Enter. Returns None when stdin is closed."""

    try:
        return input(prompt)
    except (EOFError, OSError):
        return None


def set_title(title: str) -> None:
    if sys.platform == "win32":
        import ctypes

        ctypes.windll.kernel32.SetConsoleTitleW(title)
    elif _use_color(sys.stdout):
        sys.stdout.write(f"\x1b]0;{title}\x07")
        sys.stdout.flush()


def minimize_window() -> bool:
    """Minimize the console window (Windows only). Returns True on success."""

    if sys.platform != "win32":
        return False

    import ctypes

    hwnd = ctypes.windll.kernel32.GetConsoleWindow()
    if not hwnd:
        logger.debug("console_window_missing")
        return False
    ctypes.windll.user32.ShowWindow(hwnd, SW_MINIMIZE)
    return True
