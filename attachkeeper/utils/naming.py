"""Attachment base-name templates and moment-style date formatting."""

from __future__ import annotations

import re
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Callable, Iterator

from attachkeeper.utils.sanitize import sanitize_name

if TYPE_CHECKING:
    from attachkeeper.core.config import AttachmentsConfig

DEFAULT_NAME_FORMAT = "{notename}-{date}"
DEFAULT_DATE_FORMAT = "YYYYMMDDHHmmssSSS"

# Longest tokens first so "YYYY" wins over "YY" and "MM" over "M".
_DATE_TOKEN_RE = re.compile(r"\[[^\]]*\]|YYYY|YY|SSS|MM|DD|HH|hh|mm|ss|M|D|H|h|m|s|A|a")


def _twelve_hour(value: datetime) -> int:
    return value.hour % 12 or 12


_TOKEN_FORMATTERS: dict[str, Callable[[datetime], str]] = {
    "YYYY": lambda d: f"{d.year:04d}",
    "YY": lambda d: f"{d.year % 100:02d}",
    "MM": lambda d: f"{d.month:02d}",
    "M": lambda d: str(d.month),
    "DD": lambda d: f"{d.day:02d}",
    "D": lambda d: str(d.day),
    "HH": lambda d: f"{d.hour:02d}",
    "H": lambda d: str(d.hour),
    "hh": lambda d: f"{_twelve_hour(d):02d}",
    "h": lambda d: str(_twelve_hour(d)),
    "mm": lambda d: f"{d.minute:02d}",
    "m": lambda d: str(d.minute),
    "ss": lambda d: f"{d.second:02d}",
    "s": lambda d: str(d.second),
    "SSS": lambda d: f"{d.microsecond // 1000:03d}",
    "A": lambda d: "AM" if d.hour < 12 else "PM",
    "a": lambda d: "am" if d.hour < 12 else "pm",
}


def format_moment(value: datetime, fmt: str) -> str:
    """Format ``value`` with a moment.js style pattern such as ``YYYYMMDDHHmmssSSS``.

    Text wrapped in square brackets is emitted literally.
    """

    def replace(match: re.Match[str]) -> str:
        token = match.group(0)
        if token.startswith("["):
            return token[1:-1]
        return _TOKEN_FORMATTERS[token](value)

    return _DATE_TOKEN_RE.sub(replace, fmt)


def virtual_timestamps(base: datetime, step: timedelta = timedelta(minutes=1)) -> Iterator[datetime]:
    """Yield ``base + step``, ``base + 2*step``, ...

    Used to give every attachment of one batch its own strictly increasing
    timestamp, independent of how long each item takes to process.
    """
    current = base
    while True:
        current = current + step
        yield current


class NameResolver:
    """Builds base file names (without extension) for new attachments."""

    def __init__(self, settings: "AttachmentsConfig", clock: Callable[[], datetime] = datetime.now):
        self.settings = settings
        self.clock = clock

    def base_name_for(self, note_basename: str, timestamp: datetime | None = None) -> str:
        fmt = self.settings.name_format or DEFAULT_NAME_FORMAT
        date_fmt = self.settings.date_format or DEFAULT_DATE_FORMAT
        when = timestamp if timestamp is not None else self.clock()

        name = fmt.replace("{notename}", sanitize_name(note_basename))
        name = name.replace("{date}", format_moment(when, date_fmt))
        # The template itself may reintroduce reserved characters.
        return sanitize_name(name)

    def batch_timestamps(self) -> Iterator[datetime]:
        return virtual_timestamps(self.clock())
