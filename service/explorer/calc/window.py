"""Selection of observations by averaging period, hour window and city."""

import pandas as pd

from service.explorer import models
from service.explorer.base.dates import normalize_key
from service.explorer.data import constants as dc


def time_fields(df: pd.DataFrame) -> pd.DataFrame:
    """Returns the year, month and hour of day of each observation.

    The fields are derived from the timestamp column, which holds local
    wall-clock times. The returned frame has the same index as df.
    """
    ts = df[dc.TIMESTAMP]
    return pd.DataFrame(
        {
            dc.DX_YEAR: ts.dt.year,
            dc.DX_MONTH: ts.dt.month,
            dc.DX_HOUR: ts.dt.hour,
        },
        index=df.index,
    )


def _period_mask(tf: pd.DataFrame, fs: models.FilterState) -> pd.Series:
    if fs.averaging_mode == models.AveragingMode.ANNUAL:
        return tf[dc.DX_YEAR] == fs.year
    if fs.averaging_mode == models.AveragingMode.MONTHLY:
        return tf[dc.DX_MONTH] == fs.month
    # MULTI_YEAR: all years and months.
    return pd.Series(True, index=tf.index)


def _hour_mask(tf: pd.DataFrame, fs: models.FilterState) -> pd.Series:
    hour = tf[dc.DX_HOUR]
    return (hour >= fs.hour_start) & (hour <= fs.hour_end)


def _city_mask(df: pd.DataFrame, city: str) -> pd.Series:
    key = normalize_key(city)
    return df[dc.CITY].str.strip().str.casefold() == key


def filter_observations(
    df: pd.DataFrame, fs: models.FilterState, scope: models.Scope
) -> pd.DataFrame:
    """Returns the observations selected by the filter state.

    Rows are kept if their hour of day is in [hour_start, hour_end]
    (both inclusive) and they belong to the selected year (ANNUAL) or
    month of any year (MONTHLY). For SINGLE_CITY scope, only rows of the
    selected city are kept; if no city is selected, the result is empty.

    Rows with missing measurements are kept. Consumers skip missing values
    per metric.
    """
    if scope == models.Scope.SINGLE_CITY:
        if fs.selected_city is None:
            return df.iloc[0:0]
        # Filter by city first, it is the most selective predicate.
        df = df[_city_mask(df, fs.selected_city)]

    tf = time_fields(df)
    mask = _hour_mask(tf, fs) & _period_mask(tf, fs)
    return df[mask]
