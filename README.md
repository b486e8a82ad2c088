# rsyncuptime

Checks every module an rsync server offers and reports how each one has done
over the last 24 hours.

It has two commands:

- **`rsyncuptime-server`** lists the modules on an rsync server and checks
  each one on a fixed interval by running `rsync <url><module>`. It serves
  the results as JSON over HTTP.
- **`rsyncuptime-tui`** is a terminal dashboard. It reads that API and shows
  each module's uptime, a history bar and its current state.

The `rsync` command-line client must be installed and on `PATH`. The
package has no third-party dependencies.

## Installation

```
pip install .
```

## Running the monitor

```
rsyncuptime-server
```

On startup the server runs `rsync` against the configured URL and takes the
first word of each non-blank output line as a module name. If that command
fails, the server logs the error and exits with status 1. It then starts
one background thread per module. Each thread checks its module right away
and again on every polling interval. The server keeps as many results per
module as fit in 24 hours at that interval, with a minimum of one, and drops
the oldest first.

The server is configured only through environment variables:

| Variable                   | Meaning                               | Default                         |
|----------------------------|---------------------------------------|---------------------------------|
| `RSYNC_URL`                | Base rsync URL to monitor             | `rsync://sagres.c3sl.ufpr.br/`  |
| `POLLING_INTERVAL_SECONDS` | Seconds between checks of each module | `300`                           |
| `PORT`                     | HTTP port to listen on                | `8080`                          |

If `POLLING_INTERVAL_SECONDS` is not a positive integer, the server logs a
warning and uses the default. The module URL is `RSYNC_URL` followed
directly by the module name, so the base URL should end in `/`.

Example:

```
RSYNC_URL=rsync://mirror.example.com/ POLLING_INTERVAL_SECONDS=60 PORT=9000 rsyncuptime-server
```

### Endpoints

`GET /` returns an overview object:

- `path`: `"/"`
- `success`: `true`
- `message`: a short description
- `monitored_modules`: each module found at startup, mapped to its status path
- `polling_interval_s`: the polling interval in seconds
- `rsync_directories`: a fresh listing of the modules, taken from running
  `rsync` against the base URL on every request. It is `null` if that
  command fails or lists nothing.

`GET /status/<module>` returns the module's check history as a JSON list,
oldest first. Before the first check has finished, the body is `null`.
Each entry has these fields:

- `is_up` and `success`, both `true` when the check succeeded
- `message` (`"Operational"`) when the module is up, or `error` when it is
  down. `error` holds the first non-blank line of rsync's output.
- `http_status`
- `timestamp`: the time the check started, in RFC 3339 format, UTC
- `path`: `/<module>/`
- `code`: `0` when the module is up, otherwise rsync's exit code
- `rsync_output`: rsync's combined output, when a check failed and printed
  something
- `rsync_exit_code`: when a check failed with a non-zero exit code

The HTTP status of the response is the status of the most recent check:

- `200` when rsync succeeded
- `404` when rsync's output contains `@ERROR: Unknown module`
- `500` for any other rsync failure

Failed requests get a JSON body with `path`, `success: false`, `error` and
`code`:

- `400` for an empty or invalid module name. Module names may contain only
  letters, digits, `_`, `-` and `.`.
- `404` for a module that is not monitored, or any other path.

## The dashboard

Start the server, then run the dashboard:

```
rsyncuptime-tui
```

By default the dashboard reads the API at `http://localhost:8080`. Use
`--api-url` to point it at another server:

```
rsyncuptime-tui --api-url http://monitor.example.com:9000
```

The dashboard needs an interactive POSIX terminal. It fetches every module's
history when it starts, then again every minute.

Each module gets one line, sorted by name. The line shows the module's uptime
percentage over the stored history and a bar running from the oldest check
to the most recent one, green for up and red for down. The bar's width
follows the terminal width, from 10 to 120 columns. When a history is longer
than the bar, it is compressed into buckets, and a bucket is red if any
check in it failed. The line then shows the module's state:

- **Operational** when the module is up and the bar has no red.
- **Partial Outage** when the module is up now but the bar shows a recent
  failure.
- **Outage** when the module is down. The rsync exit code and the first line
  of the output are shown next to it.

If a fetch fails, the last data stays on screen and the error is shown at
the bottom.

Keys:

- `r` refreshes now.
- `q` or `Ctrl+C` quits.

If the `DEBUG` environment variable is set, the dashboard writes debug
messages to `tui-debug.log` in the current directory.

## Using it as a library

The same pieces are available from Python:

- `rsyncuptime.config.load_settings(environ)` reads the environment variables
  above into a `Settings` object.
- `rsyncuptime.checker.discover_modules(base_url, runner)` lists the modules
  and raises `DiscoveryError` on failure.
- `rsyncuptime.checker.StatusChecker` holds one module's history. Its methods
  are `perform_check()`, `add_result()`, `history()`, `start_polling()` and
  `render()`. Each method accepts a `runner` callable in place of the real
  `rsync`.
- `rsyncuptime.server.StatusApp` is a WSGI application. Its `handle(path)`
  method returns the status code and the JSON payload for a path.
- `rsyncuptime.tui.ApiClient` fetches histories from a running server.
- `rsyncuptime.dashboard.Dashboard` renders the dashboard screen as text.

## Limitations

- The server keeps results only in memory, so a restart loses the history.
- The server finds modules only at startup. A module added later is not
  monitored until the server restarts.
- The server has no authentication and no HTTPS.

## Running the tests

```
pip install .[test]
pytest
```