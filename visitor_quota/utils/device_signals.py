"""Low-entropy device signals used for fallback visitor ids.

These values are not unique per device; combined they are stable enough to
keep the same fallback id across runs when fingerprinting is unavailable.
"""

from __future__ import annotations

import hashlib
import locale
import os
import shutil
import sys
import time
from dataclasses import dataclass

FALLBACK_PREFIX = "fallback-"


@dataclass(frozen=True)
class DeviceSignals:
    """Locally observable device characteristics."""

    screen_width: int
    screen_height: int
    timezone: str
    language: str
    platform: str
    color_depth: int
    pixel_ratio: float

    def canonical(self) -> str:
        """Join the signals into the string that gets hashed.

        Example:
            >>> DeviceSignals(1920, 1080, "UTC", "en-US", "linux", 24, 1.0).canonical()
            '1920x1080-UTC-en-US-linux-24-1.0'
        """
        return (
            f"{self.screen_width}x{self.screen_height}-{self.timezone}-{self.language}"
            f"-{self.platform}-{self.color_depth}-{self.pixel_ratio}"
        )


def fallback_token(signals: DeviceSignals) -> str:
    """Derive the deterministic fallback id for a set of signals."""
    digest = hashlib.sha256(signals.canonical().encode("utf-8")).hexdigest()[:16]
    return f"{FALLBACK_PREFIX}{digest}"


def _color_depth() -> int:
    colorterm = os.environ.get("COLORTERM", "").lower()
    if colorterm in {"truecolor", "24bit"}:
        return 24
    if "256color" in os.environ.get("TERM", ""):
        return 8
    return 4


def _language() -> str:
    lang, _ = locale.getlocale()
    if not lang:
        lang = os.environ.get("LANG", "").split(".")[0]
    return (lang or "und").replace("_", "-")


def collect_local_signals() -> DeviceSignals:
    """Gather signals from the running process environment.

    The terminal size stands in for the screen and pixel ratio is always 1.0
    for a terminal client.
    """
    size = shutil.get_terminal_size(fallback=(80, 24))
    return DeviceSignals(
        screen_width=size.columns,
        screen_height=size.lines,
        timezone=os.environ.get("TZ") or time.tzname[0],
        language=_language(),
        platform=sys.platform,
        color_depth=_color_depth(),
        pixel_ratio=1.0,
    )
