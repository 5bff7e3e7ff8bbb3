"""Birth date parsing and JSON snapshot import/export."""

import json
import logging
from datetime import date
from pathlib import Path
import re

from models import Person

logger = logging.getLogger("clanscroll.parsing")

# Sort/compare value for empty or unparseable birth dates
UNKNOWN_BIRTH = date.min

MONTH_MAP = {
    "JAN": 1,
    "JANUARY": 1,
    "FEB": 2,
    "FEBRUARY": 2,
    "MAR": 3,
    "MARCH": 3,
    "APR": 4,
    "APRIL": 4,
    "MAY": 5,
    "JUN": 6,
    "JUNE": 6,
    "JUL": 7,
    "JULY": 7,
    "AUG": 8,
    "AUGUST": 8,
    "SEP": 9,
    "SEPT": 9,
    "SEPTEMBER": 9,
    "OCT": 10,
    "OCTOBER": 10,
    "NOV": 11,
    "NOVEMBER": 11,
    "DEC": 12,
    "DECEMBER": 12,
}

QUALIFIER_RE = re.compile(
    r"^(ABT\.?|ABOUT|BEF\.?|BEFORE|AFT\.?|AFTER|EST\.?|CAL\.?|CIRCA|CA\.?|AROUND):?\s*",
    flags=re.IGNORECASE,
)

# (regex, field order) -- fields are y/m/d for numbers, M for a month name
DATE_PATTERNS = [
    (re.compile(r"^(\d{4})[-/.](\d{1,2})[-/.](\d{1,2})$"), "ymd"),  # 1839-08-29, 1920/1/5
    (re.compile(r"^(\d{4})$"), "y"),  # 1698
    (re.compile(r"^(\d{4})[-/.](\d{1,2})$"), "ym"),  # 1905-03
    (re.compile(r"^(\d{1,2})[-/](\d{1,2})[-/](\d{4})$"), "mdy"),  # 01-27-1920, 5/15/1923
    (re.compile(r"^(\d{1,2})\s+([A-Za-z]+)\.?\s*(\d{4})$"), "dMy"),  # 25 NOV 1954, 02 May1838
    (re.compile(r"^([A-Za-z]+)\.?,?\s*(\d{4})$"), "My"),  # NOV 1954, May, 1837
    (re.compile(r"^([A-Za-z]+)\.?\s*(\d{1,2}),?\s*(\d{4})$"), "Mdy"),  # April 17, 1850
]


class SnapshotError(ValueError):
    """Raised when a member snapshot cannot be read."""


def parse_date_string(date_str: str | None) -> str | None:
    """
    Parse a free-form date string into ISO format (YYYY-MM-DD).
    Returns None if the date cannot be parsed.

    Handles formats like "1930-01-01", "1930", "NOV 1954", "25 Nov 1954",
    "April 17, 1850", "05/15/1923" and "about 1833". Missing month or day
    default to 1, and a zero month/day ("1746-00-00") is read as 1.
    """
    if not date_str:
        return None

    s = date_str.strip().strip("()").rstrip("?").strip()
    s = QUALIFIER_RE.sub("", s).strip()
    if not s:
        return None

    for pattern, order in DATE_PATTERNS:
        match = pattern.match(s)
        if not match:
            continue

        parts = dict(zip(order, match.groups()))
        year = int(parts["y"])
        if "M" in parts:
            month = MONTH_MAP.get(parts["M"].upper().rstrip("."))
            if month is None:
                return None
        else:
            month = int(parts.get("m", 1)) or 1
        day = int(parts.get("d", 1)) or 1

        try:
            return date(year, month, day).isoformat()
        except ValueError:
            return None

    return None


def parse_birth_date(date_str: str | None) -> date | None:
    """Parse a birth date string into a date, or None when it is empty or malformed."""
    iso = parse_date_string(date_str)
    if iso is None:
        return None
    return date.fromisoformat(iso)


def birth_sort_key(person: Person) -> date:
    """Comparison key for birth order. Unknown dates count as the earliest possible date."""
    return parse_birth_date(person.birth_date) or UNKNOWN_BIRTH


def is_born_before(a: Person, b: Person) -> bool:
    """True when `a` was born strictly earlier than `b`."""
    return birth_sort_key(a) < birth_sort_key(b)


def calculate_age(birth_date: str | None, today: date | None = None) -> int | None:
    """Age in completed years, or None when the birth date is unknown."""
    birth = parse_birth_date(birth_date)
    if birth is None:
        return None

    today = today or date.today()
    age = today.year - birth.year
    if (today.month, today.day) < (birth.month, birth.day):
        age -= 1
    return age


# ============================================================================
# JSON snapshots
# ============================================================================


def members_from_json(text: str) -> list[Person]:
    """Parse a JSON array of member records."""
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise SnapshotError(f"Snapshot is not valid JSON: {e}") from e

    if not isinstance(data, list):
        raise SnapshotError("Snapshot must be a JSON array of member records")

    members: list[Person] = []
    for i, record in enumerate(data):
        if not isinstance(record, dict):
            raise SnapshotError(f"Snapshot entry {i} is not an object")
        try:
            members.append(Person.from_record(record))
        except ValueError as e:
            raise SnapshotError(f"Snapshot entry {i}: {e}") from e

    return members


def members_to_json(members: list[Person]) -> str:
    return json.dumps([m.to_record() for m in members], ensure_ascii=False, indent=2)


def load_snapshot(path: Path) -> list[Person]:
    """Read members from a JSON snapshot file."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise SnapshotError(f"Cannot read snapshot {path}: {e}") from e

    members = members_from_json(text)
    logger.info(f"Loaded {len(members)} members from {path}")
    return members


def dump_snapshot(members: list[Person], path: Path) -> None:
    """Write members (including soft-deleted ones) to a JSON snapshot file."""
    Path(path).write_text(members_to_json(members), encoding="utf-8")
    logger.info(f"Wrote {len(members)} members to {path}")
