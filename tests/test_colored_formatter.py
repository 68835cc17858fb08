"""Tests for ColoredFormatter."""

import logging
from io import StringIO

import pytest

from discord_queue_player.utils.logging import ColoredFormatter


class _TTY(StringIO):
    def isatty(self) -> bool:
        return True


def _record(level: int, message: str = "hello") -> logging.LogRecord:
    return logging.makeLogRecord(
        {"name": "test.logger", "levelno": level, "levelname": logging.getLevelName(level), "msg": message}
    )


@pytest.fixture(autouse=True)
def color_allowed(monkeypatch):
    monkeypatch.delenv("NO_COLOR", raising=False)


class TestColorDecision:
    """When colour codes are emitted."""

    def test_tty_stream_uses_color(self):
        assert ColoredFormatter(stream=_TTY()).use_color() is True

    def test_plain_stream_does_not(self):
        assert ColoredFormatter(stream=StringIO()).use_color() is False

    def test_no_color_env_wins(self, monkeypatch):
        monkeypatch.setenv("NO_COLOR", "")

        assert ColoredFormatter(stream=_TTY()).use_color() is False

    def test_stream_without_isatty(self):
        assert ColoredFormatter(stream=object()).use_color() is False


class TestFormat:
    """Tests for the formatted output."""

    @pytest.mark.parametrize("level", sorted(ColoredFormatter.LEVEL_COLORS))
    def test_level_name_is_wrapped(self, level):
        formatter = ColoredFormatter("%(levelname)s %(message)s", stream=_TTY())

        output = formatter.format(_record(level))

        color = ColoredFormatter.LEVEL_COLORS[level]
        expected = f"{color}{logging.getLevelName(level)}{ColoredFormatter.RESET} hello"
        assert output == expected

    def test_plain_output_has_no_escape_codes(self):
        formatter = ColoredFormatter("%(levelname)s | %(name)s | %(message)s", stream=StringIO())

        assert formatter.format(_record(logging.ERROR)) == "ERROR | test.logger | hello"

    def test_record_is_left_untouched(self):
        formatter = ColoredFormatter("%(levelname)s", stream=_TTY())
        record = _record(logging.WARNING)

        formatter.format(record)

        assert record.levelname == "WARNING"

    def test_brace_style(self):
        formatter = ColoredFormatter("{levelname}:{message}", style="{", stream=StringIO())

        assert formatter.format(_record(logging.INFO)) == "INFO:hello"
