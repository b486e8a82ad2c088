"""Running rsync against modules and keeping a rolling history of results."""

from __future__ import annotations

import subprocess
import threading
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from http import HTTPStatus

from rsyncuptime.config import DEFAULT_POLLING_INTERVAL, DEFAULT_RSYNC_URL

UNKNOWN_ERROR = "Erro desconhecido do rsync"
UNKNOWN_MODULE_MARKER = "@ERROR: Unknown module"
DAY_NANOSECONDS = 24 * 60 * 60 * 10**9


def _now() -> datetime:
    return datetime.now(timezone.utc)


def format_timestamp(ts: datetime) -> str:
    """Format a timestamp as RFC 3339 with trailing fractional zeros removed."""
    if ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    text = f"{ts.year:04d}-{ts.month:02d}-{ts.day:02d}T{ts:%H:%M:%S}"
    fraction = f"{ts.microsecond:06d}".rstrip("0")
    if fraction:
        text += "." + fraction
    offset = ts.strftime("%z")
    if offset in ("", "+0000"):
        return text + "Z"
    return f"{text}{offset[:3]}:{offset[3:5]}"


@dataclass
class CheckResult:
    """Outcome of a single rsync probe."""

    is_up: bool
    message: str = ""
    error: str = ""
    http_status: int = HTTPStatus.OK
    rsync_exit_code: int = 0
    rsync_output: str = ""
    timestamp: datetime = field(default_factory=_now)

    def to_dict(self, path: str) -> dict[str, object]:
        """Return the JSON entry the status endpoint publishes for this result."""
        entry: dict[str, object] = {
            "is_up": self.is_up,
            "success": self.is_up,
            "http_status": int(self.http_status),
            "timestamp": format_timestamp(self.timestamp),
            "path": path,
            "code": 0 if self.is_up else self.rsync_exit_code,
        }
        if self.is_up:
            entry["message"] = self.message
        else:
            entry["error"] = self.error
            if self.rsync_exit_code != 0:
                entry["rsync_exit_code"] = self.rsync_exit_code
        if self.rsync_output:
            entry["rsync_output"] = self.rsync_output
        return entry


@dataclass(frozen=True)
class RsyncRun:
    """Combined output and exit status of one rsync invocation."""

    returncode: int
    output: str
    error: str = ""

    @property
    def ok(self) -> bool:
        return not self.error and self.returncode == 0

    @property
    def failure(self) -> str:
        return self.error or f"exit status {self.returncode}"


Runner = Callable[[str], RsyncRun]


class DiscoveryError(RuntimeError):
    """Raised when the module list cannot be fetched from the rsync server."""


def run_rsync(url: str) -> RsyncRun:
    """Run ``rsync <url>`` and capture stdout and stderr together."""
    try:
        completed = subprocess.run(
            ["rsync", url], stdout=subprocess.PIPE, stderr=subprocess.STDOUT, check=False
        )
    except OSError as exc:
        return RsyncRun(returncode=0, output="", error=str(exc))
    output = completed.stdout.decode("utf-8", "replace")
    code = completed.returncode
    if code == 0:
        return RsyncRun(0, output)
    if code < 0:
        return RsyncRun(-1, output, f"terminated by signal {-code}")
    return RsyncRun(code, output, f"exit status {code}")


def parse_module_list(output: str) -> list[str]:
    """Return the first word of every non-blank line of an rsync listing."""
    return [line.split()[0] for line in output.splitlines() if line.strip()]


def discover_modules(base_url: str, runner: Runner | None = None) -> list[str]:
    """List the modules the rsync server at ``base_url`` offers."""
    run = (runner or run_rsync)(base_url)
    if not run.ok:
        raise DiscoveryError(f"rsync command failed: {run.failure}\nOutput: {run.output}")
    return parse_module_list(run.output)


def max_results_for(interval: float) -> int:
    """Number of checks that fit in 24 hours at the given interval, at least one."""
    nanoseconds = round(interval * 1e9)
    if nanoseconds <= 0:
        raise ValueError(f"polling interval must be positive, got {interval!r}")
    return max(1, DAY_NANOSECONDS // nanoseconds)


def _result_from_run(run: RsyncRun) -> CheckResult:
    if run.ok:
        return CheckResult(is_up=True, message="Operational")
    first_line = next(
        (line.strip() for line in run.output.split("\n") if line.strip()), UNKNOWN_ERROR
    )
    not_found = UNKNOWN_MODULE_MARKER in run.output
    return CheckResult(
        is_up=False,
        error=first_line,
        http_status=HTTPStatus.NOT_FOUND if not_found else HTTPStatus.INTERNAL_SERVER_ERROR,
        rsync_exit_code=run.returncode,
        rsync_output=run.output.strip(),
    )


class StatusChecker:
    """Polls one rsync module and keeps the last 24 hours of results."""

    def __init__(
        self,
        module_name: str,
        base_url: str = DEFAULT_RSYNC_URL,
        interval: float = DEFAULT_POLLING_INTERVAL,
        runner: Runner | None = None,
    ) -> None:
        self.module_name = module_name
        self.path = f"/{module_name}/"
        self.base_url = base_url
        self.interval = interval
        self.runner = runner or run_rsync
        self.max_results = max_results_for(interval)
        self._results: deque[CheckResult] = deque(maxlen=self.max_results)
        self._lock = threading.Lock()

    def add_result(self, result: CheckResult) -> None:
        """Record a result, dropping the oldest once the history is full."""
        with self._lock:
            self._results.append(result)

    def history(self) -> list[CheckResult]:
        """A snapshot of the recorded results, oldest first."""
        with self._lock:
            return list(self._results)

    def perform_check(self) -> CheckResult:
        """Probe the module once, record the outcome and return it."""
        started = _now()
        result = _result_from_run(self.runner(self.base_url + self.module_name))
        result.timestamp = started
        self.add_result(result)
        return result

    def start_polling(self, stop_event: threading.Event | None = None) -> threading.Thread:
        """Check now and then every interval in a daemon thread until stopped."""
        stop = stop_event if stop_event is not None else threading.Event()

        def loop() -> None:
            self.perform_check()
            while not stop.wait(self.interval):
                self.perform_check()

        thread = threading.Thread(target=loop, name=f"poll-{self.module_name}", daemon=True)
        thread.start()
        return thread

    def render(self) -> tuple[int, list[dict[str, object]] | None]:
        """HTTP status of the latest result and the JSON history, or (200, None) if empty."""
        results = self.history()
        if not results:
            return int(HTTPStatus.OK), None
        return int(results[-1].http_status), [r.to_dict(self.path) for r in results]