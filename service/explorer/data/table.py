"""Read-only holder of the observation and city metadata tables."""

import logging
import pandas as pd

from service.explorer import models
from service.explorer.base.dates import normalize_key
from service.explorer.base.errors import SchemaError

from . import constants as dc


logger = logging.getLogger("table")


def _verify_columns(df: pd.DataFrame, columns: list[str], name: str):
    missing = [c for c in columns if c not in df.columns]
    if missing:
        raise SchemaError(
            f"{name} table does not contain expected columns",
            missing_columns=missing,
        )


class ObservationTable:
    """Immutable pair of observations and city metadata.

    The observations DataFrame has one row per (city, hour) with the columns
    listed in constants.OBSERVATION_COLUMNS. Timestamps are local wall-clock
    times of the respective city. Year, month and hour are derived from the
    timestamp on demand and are not stored.

    Never modify the DataFrames of an existing instance. To change the data,
    create a new ObservationTable and swap it in.
    """

    def __init__(
        self,
        observations: pd.DataFrame,
        cities: pd.DataFrame,
        num_years: int | None = None,
    ):
        _verify_columns(observations, [dc.CITY, dc.TIMESTAMP], "observations")
        _verify_columns(cities, dc.CITY_COLUMNS[:-1], "cities")
        if not pd.api.types.is_datetime64_any_dtype(observations[dc.TIMESTAMP]):
            raise SchemaError(f"Column {dc.TIMESTAMP} must have a datetime dtype")
        if num_years is not None and num_years < 1:
            raise ValueError(f"num_years must be positive, got {num_years}")

        obs = observations.copy()
        # Missing measurement columns are treated as all-NaN.
        for c in dc.MEASUREMENT_COLUMNS:
            if c not in obs.columns:
                obs[c] = float("nan")
            else:
                obs[c] = obs[c].astype("float64")
        if dc.WEATHER_GROUP not in obs.columns:
            obs[dc.WEATHER_GROUP] = None

        meta = cities.copy()
        if dc.CLIMATE_LABEL not in meta.columns:
            meta[dc.CLIMATE_LABEL] = None
        meta[dc.CITY] = meta[dc.CITY].astype(str).str.strip()
        keys = meta[dc.CITY].map(normalize_key)
        if keys.duplicated().any():
            dups = sorted(meta.loc[keys.duplicated(), dc.CITY].unique())
            raise SchemaError(f"Duplicate cities in city metadata: {dups}")
        self._cities = meta.set_index(dc.CITY)[dc.CITY_COLUMNS[1:]]

        # Canonical city name by normalized key. The metadata spelling wins,
        # cities without metadata keep their first observed spelling.
        self._city_keys = dict(zip(keys, meta[dc.CITY]))
        names = obs[dc.CITY].astype(str).str.strip()
        for city in names.unique():
            self._city_keys.setdefault(normalize_key(city), city)
        obs[dc.CITY] = names.map(normalize_key).map(self._city_keys)
        self._observations = obs.reset_index(drop=True)

        self._years = sorted(
            int(y) for y in self._observations[dc.TIMESTAMP].dt.year.dropna().unique()
        )
        self._num_years = num_years
        logger.info(
            "Loaded %d observations for %d cities (%d with metadata), years %s",
            len(self._observations),
            self._observations[dc.CITY].nunique(),
            len(self._cities),
            self._years,
        )

    def __len__(self):
        return len(self._observations)

    @property
    def observations(self) -> pd.DataFrame:
        return self._observations

    @property
    def cities(self) -> pd.DataFrame:
        """City metadata, indexed by city name."""
        return self._cities

    @property
    def years(self) -> list[int]:
        """Sorted list of distinct years in the observations."""
        return self._years

    @property
    def num_years(self) -> int:
        """Number of years the data set spans, for completeness estimates.

        Uses the configured value if one was given, else the number of
        distinct years in the observations.
        """
        if self._num_years is not None:
            return self._num_years
        return len(self._years)

    def resolve_city(self, city: str | None) -> str | None:
        """Returns the canonical spelling of city, or None if it is unknown.

        Matching is exact on trimmed, case-folded names.
        """
        if city is None:
            return None
        return self._city_keys.get(normalize_key(city))

    def city_list(self) -> list[models.City]:
        return [
            models.City(
                city=name,
                latitude=row[dc.LATITUDE],
                longitude=row[dc.LONGITUDE],
                climate_label=(
                    row[dc.CLIMATE_LABEL] if pd.notna(row[dc.CLIMATE_LABEL]) else None
                ),
            )
            for name, row in self._cities.sort_index().iterrows()
        ]


def read_observations_csv(path: str, **kwargs) -> pd.DataFrame:
    """Reads the joined weather and air quality observations from a CSV file.

    Measurement columns are coerced to float; unparseable values become NaN.
    """
    df = pd.read_csv(path, parse_dates=[dc.TIMESTAMP], **kwargs)
    for c in dc.MEASUREMENT_COLUMNS:
        if c in df.columns:
            df[c] = pd.to_numeric(df[c], errors="coerce")
    return df


def read_cities_csv(path: str, **kwargs) -> pd.DataFrame:
    df = pd.read_csv(path, **kwargs)
    for c in [dc.LATITUDE, dc.LONGITUDE]:
        if c in df.columns:
            df[c] = pd.to_numeric(df[c], errors="coerce")
    return df
