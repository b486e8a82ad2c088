import re
from datetime import datetime, timezone

import pytest

from rsyncuptime.checker import CheckResult
from rsyncuptime.dashboard import (
    BLOCK,
    DOWN_COLOR,
    UP_COLOR,
    CheckRecord,
    Dashboard,
    bar_width_for,
    parse_history,
    render_history_bar,
    style,
)

_ANSI = re.compile(r"\x1b\[[0-9;]*m")


def plain(text):
    return _ANSI.sub("", text)


def up():
    return CheckRecord(is_up=True, message="Operational")


def down(**kwargs):
    return CheckRecord(is_up=False, **kwargs)


def test_style_emits_256_colour_foreground():
    assert style("x", "42") == "\x1b[38;5;42mx\x1b[0m"


def test_style_without_attributes_is_plain():
    assert style("hello") == "hello"


def test_style_bold_italic_keeps_text():
    rendered = style("text", "241", bold=True, italic=True)
    assert plain(rendered) == "text"
    assert "38;5;241" in rendered


def test_bar_width_is_clamped():
    assert bar_width_for(0) == 10
    assert bar_width_for(10_000) == 120


def test_bar_width_grows_with_terminal():
    widths = [bar_width_for(w) for w in range(40, 200, 7)]
    assert widths == sorted(widths)


def test_empty_history_is_blank():
    assert render_history_bar([], 12) == " " * 12


def test_short_history_is_padded():
    history = [up(), down(), up()]
    bar = render_history_bar(history, 10)
    assert len(plain(bar)) == 10
    assert plain(bar).startswith(BLOCK * 3)
    assert bar.startswith(style(BLOCK, UP_COLOR) + style(BLOCK, DOWN_COLOR) + style(BLOCK, UP_COLOR))


def test_long_history_is_compressed_to_width():
    history = [up() for _ in range(30)] + [down()]
    bar = render_history_bar(history, 10)
    assert bar == style(BLOCK, UP_COLOR) * 9 + style(BLOCK, DOWN_COLOR)


def test_long_all_up_history_has_no_outage():
    bar = render_history_bar([up() for _ in range(500)], 25)
    assert plain(bar) == BLOCK * 25
    assert DOWN_COLOR not in bar


def test_parse_history_round_trips_server_entries():
    stamp = datetime(2024, 5, 6, 7, 8, 9, 250000, tzinfo=timezone.utc)
    results = [
        CheckResult(is_up=True, message="Operational", timestamp=stamp),
        CheckResult(
            is_up=False,
            error="@ERROR: chroot failed",
            http_status=500,
            rsync_exit_code=12,
            rsync_output="@ERROR: chroot failed",
            timestamp=stamp,
        ),
    ]
    records = parse_history([r.to_dict("/debian/") for r in results])
    assert records == [
        CheckRecord(is_up=True, message="Operational", timestamp=stamp),
        CheckRecord(
            is_up=False,
            rsync_exit_code=12,
            rsync_output="@ERROR: chroot failed",
            timestamp=stamp,
        ),
    ]


def test_parse_history_null_is_empty():
    assert parse_history(None) == []


def test_parse_history_rejects_objects():
    with pytest.raises(ValueError):
        parse_history({"path": "/status/x", "success": False, "error": "Module not found."})


def test_parse_history_rejects_bad_timestamp():
    with pytest.raises(ValueError):
        parse_history([{"is_up": True, "timestamp": "yesterday"}])


def test_parse_history_rejects_wrong_types():
    with pytest.raises(ValueError):
        parse_history([{"is_up": "yes"}])


def test_parse_history_truncates_nanoseconds():
    records = parse_history([{"is_up": True, "timestamp": "2024-01-02T03:04:05.123456789Z"}])
    assert records[0].timestamp == datetime(2024, 1, 2, 3, 4, 5, 123456, tzinfo=timezone.utc)


def test_view_when_quitting():
    assert Dashboard(quitting=True).view() == "Bye!\n"


def test_view_while_fetching():
    assert Dashboard().view() == "Fetching statuses...\n"


def test_view_error_without_data():
    board = Dashboard()
    board.apply_error(RuntimeError("boom"))
    text = board.view()
    assert text.startswith("Error fetching data: boom\n\n")
    assert "Press 'r' to retry, 'q' to quit." in text


def test_view_sorts_modules_and_reports_status():
    board = Dashboard()
    board.apply_statuses({"b": [up()], "a": [up(), down(message="gone")]})
    lines = plain(board.view()).split("\n")
    rows = [line for line in lines if line.startswith(("a ", "b "))]
    assert [row[0] for row in rows] == ["a", "b"]
    assert "Outage" in rows[0]
    assert "50.00 %" in rows[0]
    assert "Erro: gone" in rows[0]
    assert rows[1].rstrip().endswith("Operational")


def test_view_outage_shows_exit_code_and_first_line():
    board = Dashboard()
    board.apply_statuses(
        {"x": [down(rsync_exit_code=5, rsync_output="@ERROR: Unknown module 'x'\nmore")]}
    )
    text = plain(board.view())
    assert "Erro: Código rsync: 5. @ERROR: Unknown module 'x'" in text
    assert "more" not in text


def test_view_partial_outage_after_recovery():
    board = Dashboard()
    board.apply_statuses({"x": [down(), up()]})
    text = plain(board.view())
    assert "Partial Outage" in text
    assert "(Recent recovery)" in text


def test_header_follows_terminal_width():
    for width in (60, 100, 300):
        board = Dashboard(width=width, statuses={"x": [up()]})
        header = plain(board.view()).split("\n")[1]
        assert header == "Oldest →" + "─" * (bar_width_for(width) - 4) + "→ Recent"


def test_refresh_button_highlighted_while_refreshing():
    board = Dashboard(statuses={"x": [up()]})
    idle = board.view()
    board.refreshing = True
    busy = board.view()
    assert "38;5;226" in busy
    assert "38;5;226" not in idle
    assert plain(busy) == plain(idle)


def test_error_shown_inline_and_cleared_by_update():
    board = Dashboard(statuses={"x": [up()]})
    board.apply_error("boom")
    assert plain(board.view()).endswith("  Erro: boom")
    board.apply_statuses({"x": [up()]})
    assert board.error is None
    assert "Erro" not in plain(board.view())