"""Per-city means of the filtered observations and related summaries."""

import logging
import pandas as pd

from service.explorer import models
from service.explorer.data import constants as dc


logger = logging.getLogger("aggregate")


def _nn(f) -> float | None:
    if pd.isna(f):
        return None
    return float(f)


def city_means(df: pd.DataFrame) -> pd.DataFrame:
    """Returns the mean of each metric per city, ignoring missing values.

    The result is indexed by city and has the DX_MEAN_* columns plus
    DX_VALUE_COUNT (the number of rows per city). A city whose values are
    all missing for a metric has a NaN mean for that metric.
    """
    metric_cols = list(dc.DX_MEAN_COLUMN_MAP.keys())
    df = df.astype({c: "float64" for c in metric_cols})
    # Sort so that floating point sums don't depend on the input row order.
    df = df.sort_values([dc.CITY, dc.TIMESTAMP] + metric_cols, kind="mergesort")
    grouped = df.groupby(dc.CITY, sort=True)
    means = grouped[metric_cols].mean().rename(columns=dc.DX_MEAN_COLUMN_MAP)
    means[dc.DX_VALUE_COUNT] = grouped.size()
    return means


def city_aggregates(df: pd.DataFrame, cities: pd.DataFrame) -> models.CityAggregates:
    """Aggregates the (all cities) filtered observations per city.

    Args:
        df: filtered observations.
        cities: city metadata, indexed by city name.

    Returns:
        One AggregateRow per city that has at least one observation in df,
        sorted by city name. Cities without metadata are left out and
        reported in missing_metadata.
    """
    means = city_means(df)
    missing = sorted(c for c in means.index if c not in cities.index)
    if missing:
        logger.warning(
            "No metadata for %d cities, excluding them from aggregates: %s",
            len(missing),
            ", ".join(missing),
        )

    joined = means.join(cities, how="inner")
    rows = [
        models.AggregateRow(
            city=city,
            mean_temperature_f=_nn(r[dc.DX_MEAN_TEMP_F]),
            mean_ozone_ppb=_nn(r[dc.DX_MEAN_OZONE_PPB]),
            mean_no2_ppb=_nn(r[dc.DX_MEAN_NO2_PPB]),
            latitude=r[dc.LATITUDE],
            longitude=r[dc.LONGITUDE],
            climate_label=r[dc.CLIMATE_LABEL] if pd.notna(r[dc.CLIMATE_LABEL]) else None,
            value_count=int(r[dc.DX_VALUE_COUNT]),
        )
        for city, r in joined.iterrows()
    ]
    return models.CityAggregates(rows=rows, missing_metadata=missing)


def metric_by_weather_group(df: pd.DataFrame, metric: models.Metric) -> pd.DataFrame:
    """Returns long format (weather_group, value) data of the given metric.

    Rows with a missing value or weather group are dropped. This is the data
    for per-weather-group histograms of a single city.
    """
    data = df[[dc.WEATHER_GROUP, metric.column]].rename(
        columns={metric.column: "value"}
    )
    return data.dropna().reset_index(drop=True)


def weather_group_summary(
    df: pd.DataFrame, metric: models.Metric
) -> list[models.WeatherGroupStats]:
    """Count and mean of the metric for each weather group, in enum order."""
    data = metric_by_weather_group(df, metric)
    grouped = data.groupby(dc.WEATHER_GROUP)["value"]
    counts = grouped.size()
    means = grouped.mean()
    result = []
    for g in models.WeatherGroup:
        n = int(counts.get(g.value, 0))
        result.append(
            models.WeatherGroupStats(
                weather_group=g.value,
                value_count=n,
                mean_value=_nn(means.get(g.value)) if n > 0 else None,
            )
        )
    return result
