"""Unicode (LDML) date patterns such as ``yyyy-MM-dd'T'HH:mm:ssZZZZZ``.

A pattern is compiled once into a regular expression for parsing and a list of
field renderers for formatting, so that a string produced by
:meth:`DatePattern.format` parses back to the same instant with
:meth:`DatePattern.parse`. Month and weekday names are English. Patterns
without a zone field are read and written in UTC.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from functools import lru_cache
from typing import Dict, List, Optional, Union

from dateutil import tz

MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)
WEEKDAY_NAMES = (
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
)

_TWO_DIGIT_FIELDS = {"d", "H", "h", "K", "k", "m", "s"}


@dataclass(frozen=True)
class PatternField:
    letter: str
    width: int

    @property
    def text(self) -> str:
        return self.letter * self.width


Token = Union[str, PatternField]


def tokenize(pattern: str) -> List[Token]:
    """Split ``pattern`` into literal strings and field runs."""
    tokens: List[Token] = []
    literal: List[str] = []
    index = 0
    length = len(pattern)

    def flush_literal() -> None:
        if literal:
            tokens.append("".join(literal))
            literal.clear()

    while index < length:
        char = pattern[index]
        if char == "'":
            if index + 1 < length and pattern[index + 1] == "'":
                literal.append("'")
                index += 2
                continue
            end = index + 1
            while True:
                if end >= length:
                    raise ValueError(f"Unterminated quote in date format {pattern!r}")
                if pattern[end] == "'":
                    if end + 1 < length and pattern[end + 1] == "'":
                        literal.append("'")
                        end += 2
                        continue
                    break
                literal.append(pattern[end])
                end += 1
            index = end + 1
            continue
        if char.isascii() and char.isalpha():
            run_end = index
            while run_end < length and pattern[run_end] == char:
                run_end += 1
            flush_literal()
            tokens.append(PatternField(char, run_end - index))
            index = run_end
            continue
        literal.append(char)
        index += 1

    flush_literal()
    return tokens


def _names_regex(names) -> str:
    return "|".join(re.escape(name) for name in names)


def _field_regex(field: PatternField) -> str:
    letter, width = field.letter, field.width
    if letter == "y":
        if width == 2:
            return r"\d{2}"
        return r"\d{%d,}" % width if width > 1 else r"\d{1,}"
    if letter in ("M", "L"):
        if width == 1:
            return r"\d{1,2}"
        if width == 2:
            return r"\d{2}"
        if width == 3:
            return _names_regex(name[:3] for name in MONTH_NAMES)
        if width == 4:
            return _names_regex(MONTH_NAMES)
    if letter in _TWO_DIGIT_FIELDS and width <= 2:
        return r"\d{1,2}" if width == 1 else r"\d{2}"
    if letter == "S":
        return r"\d{%d}" % width
    if letter == "a" and width <= 3:
        return "AM|PM"
    if letter == "E":
        if width <= 3:
            return _names_regex(name[:3] for name in WEEKDAY_NAMES)
        if width == 4:
            return _names_regex(WEEKDAY_NAMES)
    if letter == "Z":
        if width <= 3:
            return r"[+-]\d{4}"
        if width == 4:
            return r"GMT(?:[+-]\d{2}:\d{2})?"
        if width == 5:
            return r"Z|[+-]\d{2}:\d{2}"
    if letter in ("X", "x"):
        utc = "Z|" if letter == "X" else ""
        if width == 1:
            return utc + r"[+-]\d{2}(?:\d{2})?"
        if width == 2:
            return utc + r"[+-]\d{4}"
        if width == 3:
            return utc + r"[+-]\d{2}:\d{2}"
    raise ValueError(f"Unsupported date format field {field.text!r}")


def _parse_zone(text: str):
    upper = text.upper()
    if upper in ("Z", "GMT"):
        return tz.UTC
    if upper.startswith("GMT"):
        text = text[3:]
    sign = -1 if text[0] == "-" else 1
    digits = text[1:].replace(":", "")
    hours = int(digits[:2])
    minutes = int(digits[2:4] or 0)
    seconds = sign * (hours * 3600 + minutes * 60)
    if seconds == 0:
        return tz.UTC
    return tz.tzoffset(None, seconds)


def _format_zone(field: PatternField, offset: Optional[timedelta]) -> str:
    total = int(offset.total_seconds()) if offset else 0
    sign = "-" if total < 0 else "+"
    hours, remainder = divmod(abs(total), 3600)
    minutes = remainder // 60
    letter, width = field.letter, field.width

    if letter == "Z" and width <= 3:
        return f"{sign}{hours:02d}{minutes:02d}"
    if letter == "Z" and width == 4:
        return "GMT" if total == 0 else f"GMT{sign}{hours:02d}:{minutes:02d}"
    if letter in ("Z", "X") and total == 0:
        return "Z"
    if width == 1:
        suffix = f"{minutes:02d}" if minutes else ""
        return f"{sign}{hours:02d}{suffix}"
    if width == 2:
        return f"{sign}{hours:02d}{minutes:02d}"
    return f"{sign}{hours:02d}:{minutes:02d}"


class DatePattern:
    """A compiled LDML date pattern."""

    def __init__(self, pattern: str) -> None:
        self.pattern = pattern
        self.tokens = tokenize(pattern)
        self.has_zone = False
        self._groups: Dict[str, PatternField] = {}

        parts: List[str] = []
        for position, token in enumerate(self.tokens):
            if isinstance(token, str):
                parts.append(re.escape(token))
                continue
            group = f"f{position}"
            self._groups[group] = token
            parts.append(f"(?P<{group}>{_field_regex(token)})")
            if token.letter in ("Z", "X", "x"):
                self.has_zone = True
        self._regex = re.compile("".join(parts), re.IGNORECASE)

    def __repr__(self) -> str:
        return f"DatePattern({self.pattern!r})"

    def parse(self, text: str) -> datetime:
        """Parse ``text``; raises ``ValueError`` when it does not match."""
        match = self._regex.fullmatch(text.strip())
        if match is None:
            raise ValueError(f"{text!r} does not match date format {self.pattern!r}")

        year, month, day = 1970, 1, 1
        hour = minute = second = microsecond = 0
        twelve_hour: Optional[int] = None
        post_meridiem: Optional[bool] = None
        zone = tz.UTC

        for group, field in self._groups.items():
            value = match.group(group)
            letter = field.letter
            if letter == "y":
                year = int(value)
                if field.width == 2:
                    year += 2000 if year < 69 else 1900
            elif letter in ("M", "L"):
                if field.width >= 3:
                    names = [name.lower() for name in MONTH_NAMES]
                    if field.width == 3:
                        names = [name[:3] for name in names]
                    month = names.index(value.lower()) + 1
                else:
                    month = int(value)
            elif letter == "d":
                day = int(value)
            elif letter == "H":
                hour = int(value)
            elif letter == "k":
                hour = int(value) % 24
            elif letter in ("h", "K"):
                twelve_hour = int(value) % 12
            elif letter == "m":
                minute = int(value)
            elif letter == "s":
                second = int(value)
            elif letter == "S":
                microsecond = int(value.ljust(6, "0")[:6])
            elif letter == "a":
                post_meridiem = value.upper() == "PM"
            elif letter in ("Z", "X", "x"):
                zone = _parse_zone(value)

        if twelve_hour is not None:
            hour = twelve_hour + (12 if post_meridiem else 0)
        elif post_meridiem and hour < 12:
            hour += 12

        return datetime(
            year, month, day, hour, minute, second, microsecond, tzinfo=zone
        )

    def format(self, value: Union[datetime, date]) -> str:
        if not isinstance(value, datetime):
            value = datetime(value.year, value.month, value.day, tzinfo=tz.UTC)
        elif value.tzinfo is None:
            value = value.replace(tzinfo=tz.UTC)
        elif not self.has_zone:
            value = value.astimezone(tz.UTC)

        parts: List[str] = []
        for token in self.tokens:
            if isinstance(token, str):
                parts.append(token)
            else:
                parts.append(self._format_field(token, value))
        return "".join(parts)

    @staticmethod
    def _format_field(field: PatternField, value: datetime) -> str:
        letter, width = field.letter, field.width

        def number(n: int) -> str:
            return f"{n:0{width}d}"

        if letter == "y":
            return f"{value.year % 100:02d}" if width == 2 else number(value.year)
        if letter in ("M", "L"):
            if width == 3:
                return MONTH_NAMES[value.month - 1][:3]
            if width == 4:
                return MONTH_NAMES[value.month - 1]
            return number(value.month)
        if letter == "d":
            return number(value.day)
        if letter == "H":
            return number(value.hour)
        if letter == "k":
            return number(value.hour or 24)
        if letter == "h":
            return number(value.hour % 12 or 12)
        if letter == "K":
            return number(value.hour % 12)
        if letter == "m":
            return number(value.minute)
        if letter == "s":
            return number(value.second)
        if letter == "S":
            return (f"{value.microsecond:06d}" + "0" * width)[:width]
        if letter == "a":
            return "AM" if value.hour < 12 else "PM"
        if letter == "E":
            name = WEEKDAY_NAMES[value.weekday()]
            return name if width == 4 else name[:3]
        return _format_zone(field, value.utcoffset())


@lru_cache(maxsize=128)
def compile_pattern(pattern: str) -> DatePattern:
    return DatePattern(pattern)


def parse_date(text: str, pattern: str) -> datetime:
    return compile_pattern(pattern).parse(text)


def format_date(value: Union[datetime, date], pattern: str) -> str:
    return compile_pattern(pattern).format(value)
