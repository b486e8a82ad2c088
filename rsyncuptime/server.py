"""HTTP API exposing the uptime history of every rsync module."""

from __future__ import annotations

import argparse
import json
import logging
import re
import threading
from collections.abc import Callable, Iterable, Mapping
from http import HTTPStatus
from socketserver import ThreadingMixIn
from wsgiref.simple_server import WSGIServer, make_server

from rsyncuptime.checker import (
    DiscoveryError,
    Runner,
    StatusChecker,
    discover_modules,
    parse_module_list,
    run_rsync,
)
from rsyncuptime.config import Settings, load_settings

STATUS_PREFIX = "/status/"
_MODULE_NAME = re.compile(r"[a-zA-Z0-9_.-]+")
_HTML_ESCAPES = {"<": "\\u003c", ">": "\\u003e", "&": "\\u0026",
                 "\u2028": "\\u2028", "\u2029": "\\u2029"}

logger = logging.getLogger(__name__)


def is_valid_module_path(module: str) -> bool:
    """True when the name holds only letters, digits, underscore, hyphen and dot."""
    return _MODULE_NAME.fullmatch(module) is not None


def error_body(status_code: int, message: str, path: str) -> dict[str, object]:
    """The JSON body used for every error response."""
    return {"path": path, "success": False, "error": message, "code": int(status_code)}


def _encode(payload: object) -> bytes:
    text = json.dumps(payload, sort_keys=True, ensure_ascii=False, separators=(",", ":"))
    for char, escaped in _HTML_ESCAPES.items():
        text = text.replace(char, escaped)
    return (text + "\n").encode("utf-8")


class StatusApp:
    """WSGI application serving the module index and per-module status."""

    def __init__(
        self,
        modules: Iterable[str],
        checkers: Mapping[str, StatusChecker],
        settings: Settings | None = None,
        runner: Runner | None = None,
    ) -> None:
        self.modules = list(modules)
        self.checkers = dict(checkers)
        self.settings = settings or Settings()
        self.runner = runner or run_rsync

    def handle(self, path: str) -> tuple[int, object]:
        """Route a request path to its HTTP status and JSON payload."""
        if path.startswith(STATUS_PREFIX):
            return self._status(path)
        if path != "/":
            return _error(HTTPStatus.NOT_FOUND,
                          "Endpoint not found. See / for available modules.", path)
        run = self.runner(self.settings.rsync_url)
        return HTTPStatus.OK, {
            "path": "/",
            "success": True,
            "message": "Monitoring all discovered modules. See endpoints below.",
            "monitored_modules": {m: f"/status/{m}" for m in self.modules},
            "polling_interval_s": float(self.settings.polling_interval),
            "rsync_directories": (parse_module_list(run.output) if run.ok else []) or None,
        }

    def _status(self, path: str) -> tuple[int, object]:
        module = path[len(STATUS_PREFIX):]
        if not module:
            return _error(HTTPStatus.BAD_REQUEST,
                          "Module name cannot be empty. Path should be /status/<module-name>.",
                          path)
        if not is_valid_module_path(module):
            return _error(
                HTTPStatus.BAD_REQUEST,
                f"Nome de módulo inválido: '{module}'. Permitidos apenas letras, números, "
                "hífen, underline e ponto. Exemplo válido: debian-archive. "
                "Consulte a documentação.",
                path,
            )
        checker = self.checkers.get(module)
        if checker is None:
            return _error(HTTPStatus.NOT_FOUND, f"Module '{module}' is not monitored.", path)
        return checker.render()

    def __call__(self, environ: dict, start_response: Callable[..., object]) -> list[bytes]:
        raw_path = environ.get("PATH_INFO") or "/"
        path = raw_path.encode("latin-1", "replace").decode("utf-8", "replace")
        status, payload = self.handle(path)
        body = _encode(payload)
        code = HTTPStatus(int(status))
        start_response(
            f"{code.value} {code.phrase}",
            [("Content-Type", "application/json"), ("Content-Length", str(len(body)))],
        )
        return [body]


def _error(status: HTTPStatus, message: str, path: str) -> tuple[int, object]:
    return status, error_body(status, message, path)


class _ThreadingWSGIServer(ThreadingMixIn, WSGIServer):
    daemon_threads = True


def main(argv: list[str] | None = None) -> int:
    """Discover modules, start polling them and serve the status API."""
    argparse.ArgumentParser(
        prog="rsyncuptime-server",
        description="Monitor rsync modules and serve their uptime as JSON. "
        "Configured through RSYNC_URL, POLLING_INTERVAL_SECONDS and PORT.",
    ).parse_args(argv)
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")

    settings = load_settings()
    logger.info("Discovering rsync modules...")
    try:
        modules = discover_modules(settings.rsync_url)
    except DiscoveryError as exc:
        logger.critical("FATAL: Could not discover modules to monitor. Exiting. Error: %s", exc)
        return 1
    logger.info("Discovered %d modules to monitor.", len(modules))

    stop = threading.Event()
    checkers = {}
    for module in modules:
        checkers[module] = StatusChecker(module, settings.rsync_url, settings.polling_interval)
        checkers[module].start_polling(stop)

    app = StatusApp(modules, checkers, settings)
    logger.info("Starting monitoring server on :%s using rsync URL '%s'",
                settings.port, settings.rsync_url)
    try:
        with make_server("", int(settings.port), app,
                         server_class=_ThreadingWSGIServer) as httpd:
            httpd.serve_forever()
    except (OSError, ValueError) as exc:
        logger.critical("Server failed to start: %s", exc)
        return 1
    except KeyboardInterrupt:
        pass
    finally:
        stop.set()
    return 0