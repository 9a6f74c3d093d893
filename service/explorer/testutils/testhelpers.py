from typing import Any
import pandas as pd
from pandas.testing import assert_frame_equal, assert_series_equal
import unittest

from service.explorer.data import constants as dc


class PandasTestCase(unittest.TestCase):
    def assertSeriesValuesEqual(self, series: pd.Series, expected_values: list[Any]):
        """Check only the values of a Series (ignore index, dtype, name)."""
        self.assertEqual(series.tolist(), expected_values)

    def assertSeriesEqual(self, actual: pd.Series, expected: pd.Series, **kwargs):
        """Wrapper around assert_series_equal with relaxed defaults.

        If expected is a list, it will be converted to an unnamed pd.Series.
        """
        kwargs.setdefault("check_dtype", False)
        kwargs.setdefault("check_names", False)
        kwargs.setdefault("check_index_type", False)

        if isinstance(expected, list):
            expected = pd.Series(expected)
        assert_series_equal(actual, expected, **kwargs)

    def assertFrameEqual(self, actual: pd.DataFrame, expected: pd.DataFrame, **kwargs):
        """Wrapper around assert_frame_equal with relaxed defaults."""
        kwargs.setdefault("check_dtype", False)
        kwargs.setdefault("check_column_type", False)
        kwargs.setdefault("check_index_type", False)
        assert_frame_equal(actual, expected, **kwargs)

    def assertColumnNames(self, df: pd.DataFrame, expected_names):
        self.assertEqual(df.columns.to_list(), expected_names)


def make_observations(rows: list[dict]) -> pd.DataFrame:
    """Builds an observations DataFrame from partial row dicts.

    Each row needs "city" and "timestamp" (a string or datetime). All other
    columns default to NaN (measurements) or "Clear" (weather group).
    """
    full_rows = []
    for r in rows:
        row = {c: float("nan") for c in dc.MEASUREMENT_COLUMNS}
        row[dc.WEATHER_GROUP] = "Clear"
        row.update(r)
        full_rows.append(row)
    df = pd.DataFrame(full_rows, columns=dc.OBSERVATION_COLUMNS)
    df[dc.TIMESTAMP] = pd.to_datetime(df[dc.TIMESTAMP])
    for c in dc.MEASUREMENT_COLUMNS:
        df[c] = df[c].astype("float64")
    return df


def make_cities(names: list[str]) -> pd.DataFrame:
    """Builds city metadata with made-up coordinates, indexed by city."""
    return pd.DataFrame(
        {
            dc.CITY: names,
            dc.LATITUDE: [30.0 + i for i in range(len(names))],
            dc.LONGITUDE: [-100.0 - i for i in range(len(names))],
            dc.CLIMATE_LABEL: ["Temperate"] * len(names),
        }
    ).set_index(dc.CITY)
