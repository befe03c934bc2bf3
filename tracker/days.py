"""Helpers for working with day-of-week values and calendar dates."""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Optional, Sequence, Set

# Sunday-start index to canonical code.
WEEKDAY_CODES: tuple[str, ...] = ("sun", "mon", "tue", "wed", "thu", "fri", "sat")

DAY_ALIASES: dict[str, str] = {
    "sun": "sun",
    "sunday": "sun",
    "mon": "mon",
    "monday": "mon",
    "tue": "tue",
    "tues": "tue",
    "tuesday": "tue",
    "wed": "wed",
    "weds": "wed",
    "wednesday": "wed",
    "thu": "thu",
    "thur": "thu",
    "thurs": "thu",
    "thursday": "thu",
    "fri": "fri",
    "friday": "fri",
    "sat": "sat",
    "saturday": "sat",
}

_DAY_ORDER: dict[str, int] = {code: index for index, code in enumerate(WEEKDAY_CODES)}

_YMD_PATTERN = re.compile(r"^[0-9]{4}-[0-9]{2}-[0-9]{2}$")


@dataclass(frozen=True)
class DayDate:
    value: date
    weekday: str


def normalize_day_name(value: object) -> Optional[str]:
    """Map a day spelling ("Mon", "monday", "THURS") to its canonical code.

    Returns None for non-strings and for anything outside the alias table.
    """
    if not isinstance(value, str):
        return None
    return DAY_ALIASES.get(value.strip().lower())


def normalize_day_list(values: Sequence[str]) -> List[str]:
    """Normalize day names for storage, rejecting any unrecognized entry.

    The result is de-duplicated and ordered Sunday first.
    """
    codes: set[str] = set()
    unknown: list[str] = []
    for value in values:
        code = normalize_day_name(value)
        if code is None:
            unknown.append(repr(value))
        else:
            codes.add(code)
    if unknown:
        raise ValueError(f"Invalid day of week value(s): {', '.join(unknown)}")
    return sort_days(codes)


def decode_day_set(raw: Optional[Iterable[object]]) -> Set[str]:
    """Convert stored day values into a set of canonical codes.

    Entries that do not normalize are skipped so that legacy rows stay readable.
    """
    if not raw or isinstance(raw, str):
        return set()
    decoded: set[str] = set()
    for value in raw:
        code = normalize_day_name(value)
        if code is not None:
            decoded.add(code)
    return decoded


def sort_days(codes: Iterable[str]) -> List[str]:
    return sorted(codes, key=_DAY_ORDER.__getitem__)


def display_day(code: str) -> str:
    return code[:1].upper() + code[1:]


def display_day_list(codes: Iterable[str]) -> str:
    """Render codes as "Mon, Wed, Fri"."""
    return ", ".join(display_day(code) for code in sort_days(codes))


def weekday_code(value: date) -> str:
    return WEEKDAY_CODES[value.isoweekday() % 7]


def parse_day_date(value: object) -> Optional[DayDate]:
    """Parse a strict YYYY-MM-DD string into a date and its weekday code.

    Strings that match the pattern but name a non-existent day (2024-02-30)
    are rejected rather than rolled over.
    """
    if not isinstance(value, str):
        return None
    candidate = value.strip()
    if not _YMD_PATTERN.match(candidate):
        return None
    year, month, day = (int(part) for part in candidate.split("-"))
    try:
        parsed = date(year, month, day)
    except ValueError:
        return None
    return DayDate(value=parsed, weekday=weekday_code(parsed))


__all__ = [
    "DAY_ALIASES",
    "WEEKDAY_CODES",
    "DayDate",
    "decode_day_set",
    "display_day",
    "display_day_list",
    "normalize_day_list",
    "normalize_day_name",
    "parse_day_date",
    "sort_days",
    "weekday_code",
]
