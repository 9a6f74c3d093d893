"""Data completeness: observed vs. calendar-expected number of hourly observations.

The expected counts use a fixed calendar: every year has 365 days and
February always has 28 days. Leap days therefore count as extra
observations. Completeness is based on row counts only; a row with some
missing measurements still counts as an observation.
"""

import pandas as pd

from service.explorer import models
from service.explorer.base import constants as bc
from service.explorer.base import dates
from service.explorer.data import constants as dc


def expected_count(fs: models.FilterState, num_years: int) -> int:
    """Returns the expected number of hourly observations of a single city.

    Args:
        fs: the filter state. Only the averaging mode, period and hour window
            are relevant.
        num_years: number of years spanned by the data set.
    """
    hours = dates.hours_in_window(fs.hour_start, fs.hour_end)
    if fs.averaging_mode == models.AveragingMode.ANNUAL:
        return bc.DAYS_PER_YEAR * hours
    if fs.averaging_mode == models.AveragingMode.MONTHLY:
        return dates.days_in_month(fs.month) * hours * num_years
    return bc.DAYS_PER_YEAR * hours * num_years


def percent_complete(observed: int, expected: int) -> float | None:
    """Returns 100 * observed / expected, rounded to one decimal.

    The result is not clamped; values above 100 indicate duplicate
    observations. Returns None if expected is not positive.
    """
    if expected <= 0:
        return None
    return round(100 * observed / expected, 1)


def completeness(
    df: pd.DataFrame, fs: models.FilterState, num_years: int
) -> models.Completeness:
    """Completeness of the single city observations df selected by fs.

    If no city is selected, the result is unavailable (percent is None).
    """
    if fs.selected_city is None:
        return models.Completeness()

    observed = len(df)
    expected = expected_count(fs, num_years)
    return models.Completeness(
        city=fs.selected_city,
        observed_count=observed,
        expected_count=expected,
        percent=percent_complete(observed, expected),
        duplicate_count=duplicate_timestamps(df),
    )


def duplicate_timestamps(df: pd.DataFrame) -> int:
    """Returns the number of rows that repeat an earlier (city, timestamp) pair."""
    return int(df.duplicated(subset=[dc.CITY, dc.TIMESTAMP]).sum())
