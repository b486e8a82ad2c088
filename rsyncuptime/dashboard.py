"""State and rendering of the terminal uptime dashboard."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

UP_COLOR = "42"
DOWN_COLOR = "196"
PARTIAL_COLOR = "214"
HELP_COLOR = "241"
HIGHLIGHT_COLOR = "226"

BLOCK = "█"
NAME_WIDTH = 20
MIN_BAR_WIDTH = 10
MAX_BAR_WIDTH = 120
# Room kept for the name (20), uptime (17), status (12) and margins (3).
RESERVED_WIDTH = 20 + 17 + 12 + 3

_TIMESTAMP = re.compile(
    r"(\d{4})-(\d{2})-(\d{2})[Tt](\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?"
    r"(?:[Zz]|([+-])(\d{2}):(\d{2}))"
)


@dataclass
class CheckRecord:
    """One entry of a module's history as published by the status API."""

    is_up: bool
    message: str = ""
    rsync_exit_code: int = 0
    rsync_output: str = ""
    timestamp: datetime | None = None


def _parse_timestamp(text: str) -> datetime:
    match = _TIMESTAMP.fullmatch(text)
    if match is None:
        raise ValueError(f"invalid timestamp {text!r}")
    *fields, fraction, sign, off_h, off_m = match.groups()
    tz = timezone.utc
    if sign:
        offset = timedelta(hours=int(off_h), minutes=int(off_m))
        tz = timezone(-offset if sign == "-" else offset)
    micro = int((fraction or "")[:6].ljust(6, "0"))
    return datetime(*map(int, fields), micro, tzinfo=tz)


def _typed(entry: dict, key: str, kind: type, default: object) -> object:
    value = entry.get(key)
    if value is None:
        return default
    if not isinstance(value, kind) or (kind is int and isinstance(value, bool)):
        raise ValueError(f"field {key!r} has an unexpected type: {value!r}")
    return value


def parse_history(payload: object) -> list[CheckRecord]:
    """Turn the decoded JSON of a status endpoint into check records."""
    if payload is None:
        return []
    if not isinstance(payload, list):
        raise ValueError("expected a JSON array of check results")
    records = []
    for entry in payload:
        if entry is None:
            records.append(CheckRecord(is_up=False))
            continue
        if not isinstance(entry, dict):
            raise ValueError(f"expected a JSON object for a check result, got {entry!r}")
        stamp = _typed(entry, "timestamp", str, None)
        records.append(
            CheckRecord(
                is_up=_typed(entry, "is_up", bool, False),
                message=_typed(entry, "message", str, ""),
                rsync_exit_code=_typed(entry, "rsync_exit_code", int, 0),
                rsync_output=_typed(entry, "rsync_output", str, ""),
                timestamp=_parse_timestamp(stamp) if stamp is not None else None,
            )
        )
    return records


def style(text: str, color: str | None = None, bold: bool = False, italic: bool = False) -> str:
    """Wrap text in ANSI attributes using a 256-colour foreground."""
    codes = (["1"] if bold else []) + (["3"] if italic else [])
    if color:
        codes.append(f"38;5;{color}")
    return f"\x1b[{';'.join(codes)}m{text}\x1b[0m" if codes else text


def bar_width_for(terminal_width: int) -> int:
    """Width of the history bar for a terminal of the given width."""
    return min(MAX_BAR_WIDTH, max(MIN_BAR_WIDTH, terminal_width - RESERVED_WIDTH))


def render_history_bar(history: list[CheckRecord], width: int) -> str:
    """Draw the history oldest to newest, merging checks into buckets if needed."""
    if not history:
        return " " * width
    total = len(history)
    if total <= width:
        states = [record.is_up for record in history]
    else:
        size = total / width
        states = []
        for i in range(width):
            start, end = int(i * size), min(int((i + 1) * size), total)
            if start >= end:
                if start == 0:
                    continue
                start -= 1
            states.append(all(record.is_up for record in history[start:end]))
    blocks = "".join(style(BLOCK, UP_COLOR if up else DOWN_COLOR) for up in states)
    return blocks + " " * (width - len(states))


@dataclass
class Dashboard:
    """What the terminal client shows, and the state behind it."""

    statuses: dict[str, list[CheckRecord]] = field(default_factory=dict)
    error: BaseException | str | None = None
    quitting: bool = False
    refreshing: bool = False
    width: int = 80

    def apply_statuses(self, statuses: dict[str, list[CheckRecord]]) -> None:
        """Replace the shown histories after a successful fetch."""
        self.statuses = dict(statuses)
        self.error = None

    def apply_error(self, error: BaseException | str) -> None:
        """Remember a failed fetch; the last histories stay on screen."""
        self.error = error

    def view(self) -> str:
        """The full screen as text with ANSI styling."""
        if self.quitting:
            return "Bye!\n"
        if not self.statuses:
            if self.error is not None:
                return f"Error fetching data: {self.error}\n\n" + style(
                    "Press 'r' to retry, 'q' to quit.", HELP_COLOR
                )
            return "Fetching statuses...\n"

        bar_width = bar_width_for(self.width)
        parts = [
            "Rsync Server Status (Last 24h)\n",
            style("Oldest →" + "─" * (bar_width - 4) + "→ Recent", HELP_COLOR),
            "\n\n",
        ]
        parts.extend(_row(name, self.statuses[name], bar_width) for name in sorted(self.statuses))

        if self.refreshing:
            refresh = style("[r] refresh now", HIGHLIGHT_COLOR, bold=True)
        else:
            refresh = style("[r] refresh now", HELP_COLOR)
        parts.append(refresh + "  " + style("[q] quit", HELP_COLOR))
        if self.error is not None:
            parts.append(style(f"  Erro: {self.error}", HELP_COLOR, italic=True))
        return "".join(parts)


def _row(name: str, history: list[CheckRecord], bar_width: int) -> str:
    bar = render_history_bar(history, bar_width)
    latest = history[-1] if history else CheckRecord(is_up=True, message="Operational")
    uptime = sum(r.is_up for r in history) / len(history) * 100.0 if history else 0.0

    details = ""
    if not latest.is_up:
        status = style("Outage", DOWN_COLOR)
        code = f"Código rsync: {latest.rsync_exit_code}. " if latest.rsync_exit_code else ""
        first_line = (latest.rsync_output or latest.message).split("\n", 1)[0]
        if code or first_line:
            details = style(" Erro: " + code + first_line, HELP_COLOR, italic=True)
    elif DOWN_COLOR in bar:
        status = style("Partial Outage", PARTIAL_COLOR)
        details = style(" (Recent recovery)", HELP_COLOR, italic=True)
    else:
        status = style("Operational", UP_COLOR)

    uptime_text = style(f"{f'{uptime:.2f} %':<10} uptime", HELP_COLOR)
    return f"{style(name.ljust(NAME_WIDTH), bold=True)} {uptime_text} {bar} {status}{details}\n"