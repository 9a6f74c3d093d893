import calendar

from . import constants as bc


MONTH_NAMES = {
    1: "January",
    2: "February",
    3: "March",
    4: "April",
    5: "May",
    6: "June",
    7: "July",
    8: "August",
    9: "September",
    10: "October",
    11: "November",
    12: "December",
}

_MONTH_NUMBERS = {name.casefold(): month for month, name in MONTH_NAMES.items()}

# Any non-leap year works here: February always has 28 days in
# completeness estimates.
_REFERENCE_YEAR = 2001


def normalize_key(s: str) -> str:
    """Returns the normalized lookup key for a city or month name."""
    return s.strip().casefold()


def month_number(name: str) -> int:
    """Returns the month number (1-12) for the given English month name.

    Matching is exact on the trimmed, case-folded name: "june" and
    " June " match, "Jun" does not.

    Raises:
        ValueError if name is not a month name.
    """
    try:
        return _MONTH_NUMBERS[normalize_key(name)]
    except KeyError:
        raise ValueError(f"Not a month name: {name!r}") from None


def month_name(month: int) -> str:
    if month not in MONTH_NAMES:
        raise ValueError(f"Invalid month {month}")
    return MONTH_NAMES[month]


def days_in_month(month: int | str) -> int:
    """Returns the number of days in the given month, ignoring leap years.

    Args:
        month: the month number (1-12) or its English name.
    """
    if isinstance(month, str):
        month = month_number(month)
    if month not in MONTH_NAMES:
        raise ValueError(f"Invalid month {month}")
    return calendar.monthrange(_REFERENCE_YEAR, month)[1]


def hours_in_window(hour_start: int, hour_end: int) -> int:
    """Number of clock hours in the inclusive window [hour_start, hour_end]."""
    if not (0 <= hour_start <= hour_end < bc.HOURS_PER_DAY):
        raise ValueError(f"Invalid hour window [{hour_start}, {hour_end}]")
    return hour_end - hour_start + 1
