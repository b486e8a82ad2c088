"""Terminal client that polls the status API and draws the dashboard."""

from __future__ import annotations

import argparse
import json
import logging
import os
import queue
import select
import shutil
import sys
import threading
import time
from collections.abc import Callable, Iterator
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from http.client import HTTPException
from urllib.error import HTTPError
from urllib.request import urlopen

from rsyncuptime.dashboard import CheckRecord, Dashboard, parse_history

DEFAULT_API_URL = "http://localhost:8080"
REFRESH_INTERVAL = 60.0
REFRESH_FLASH = 0.5
_FETCH_ERRORS = (OSError, ValueError, HTTPException)

logger = logging.getLogger(__name__)


class ApiClient:
    """Reads module histories from a running status server."""

    def __init__(self, base_url: str = DEFAULT_API_URL, timeout: float = 10.0) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def _get(self, path: str) -> bytes:
        try:
            with urlopen(self.base_url + path, timeout=self.timeout) as response:
                return response.read()
        except HTTPError as exc:
            try:
                return exc.read()
            finally:
                exc.close()

    def fetch_module_history(self, name: str) -> list[CheckRecord]:
        """The recorded history of one module, oldest first."""
        body = self._get(f"/status/{name}")
        try:
            return parse_history(json.loads(body))
        except ValueError as exc:
            raise ValueError(f"bad json from api for {name}: {exc}") from exc

    def fetch_statuses(self) -> dict[str, list[CheckRecord]]:
        """Histories of every monitored module, fetched concurrently.

        A module whose history cannot be read gets a single failed record
        carrying the error message.
        """
        payload = json.loads(self._get("/"))
        if payload is None:
            payload = {}
        if not isinstance(payload, dict):
            raise ValueError("unexpected response from api: expected a JSON object")
        modules = payload.get("monitored_modules") or {}
        if not isinstance(modules, dict) or not all(
            isinstance(endpoint, str) for endpoint in modules.values()
        ):
            raise ValueError("unexpected response from api: bad monitored_modules")
        if not modules:
            return {}

        def fetch_one(name: str) -> tuple[str, list[CheckRecord]]:
            try:
                return name, self.fetch_module_history(name)
            except _FETCH_ERRORS as exc:
                return name, [CheckRecord(is_up=False, message=str(exc))]

        with ThreadPoolExecutor(max_workers=min(16, len(modules))) as pool:
            return dict(pool.map(fetch_one, modules))


@contextmanager
def _terminal() -> Iterator[Callable[[float], str]]:
    # Imported here: these modules only exist on POSIX systems.
    import termios
    import tty

    fd = sys.stdin.fileno()
    saved = termios.tcgetattr(fd)
    tty.setcbreak(fd)
    sys.stdout.write("\x1b[?1049h\x1b[?25l")
    sys.stdout.flush()

    def read_keys(timeout: float) -> str:
        ready, _, _ = select.select([fd], [], [], timeout)
        return os.read(fd, 64).decode("utf-8", "ignore") if ready else ""

    try:
        yield read_keys
    finally:
        sys.stdout.write("\x1b[?25h\x1b[?1049l")
        sys.stdout.flush()
        termios.tcsetattr(fd, termios.TCSADRAIN, saved)


def _draw(text: str) -> None:
    sys.stdout.write("\x1b[H\x1b[2J" + text)
    sys.stdout.flush()


def _run(client: ApiClient) -> int:
    events: queue.Queue[tuple[str, object]] = queue.Queue()
    stop = threading.Event()

    def fetch() -> None:
        try:
            events.put(("statuses", client.fetch_statuses()))
        except _FETCH_ERRORS as exc:
            logger.debug("fetch failed: %s", exc)
            events.put(("error", exc))

    def ticker() -> None:
        while not stop.wait(REFRESH_INTERVAL):
            fetch()

    def flash() -> None:
        time.sleep(REFRESH_FLASH)
        events.put(("refresh_done", None))

    def spawn(target: Callable[[], None]) -> None:
        threading.Thread(target=target, daemon=True).start()

    dashboard = Dashboard(width=shutil.get_terminal_size().columns)
    spawn(fetch)
    spawn(ticker)

    with _terminal() as read_keys:
        dirty = True
        try:
            while True:
                width = shutil.get_terminal_size().columns
                if width != dashboard.width:
                    dashboard.width = width
                    dirty = True
                while True:
                    try:
                        kind, value = events.get_nowait()
                    except queue.Empty:
                        break
                    if kind == "statuses":
                        dashboard.apply_statuses(value)
                    elif kind == "error":
                        dashboard.apply_error(value)
                    else:
                        dashboard.refreshing = False
                    dirty = True
                if dirty:
                    _draw(dashboard.view())
                    dirty = False
                keys = read_keys(0.1)
                if "q" in keys or "\x03" in keys:
                    break
                if "r" in keys:
                    dashboard.refreshing = True
                    spawn(fetch)
                    spawn(flash)
                    dirty = True
        except KeyboardInterrupt:
            pass
        finally:
            stop.set()

    dashboard.quitting = True
    sys.stdout.write(dashboard.view())
    sys.stdout.flush()
    return 0


def main(argv: list[str] | None = None) -> int:
    """Show the live uptime dashboard until 'q' is pressed."""
    parser = argparse.ArgumentParser(
        prog="rsyncuptime-tui",
        description="Show the uptime of every monitored rsync module in the terminal.",
    )
    parser.add_argument(
        "--api-url", default=DEFAULT_API_URL, help="base URL of the status server"
    )
    args = parser.parse_args(argv)

    if "DEBUG" in os.environ:
        try:
            logging.basicConfig(
                filename="tui-debug.log",
                level=logging.DEBUG,
                format="%(asctime)s debug %(message)s",
            )
        except OSError as exc:
            print("fatal:", exc)
            return 1

    if not (sys.stdin.isatty() and sys.stdout.isatty()):
        print("Error running program: a terminal is required", file=sys.stderr)
        return 1
    return _run(ApiClient(args.api_url))