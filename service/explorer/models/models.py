import datetime
from enum import Enum
from pydantic import BaseModel, ConfigDict, ValidationError, model_validator

from service.explorer.base import dates
from service.explorer.base.errors import InvalidFilterStateError
from service.explorer.data import constants as dc


class AveragingMode(str, Enum):
    MULTI_YEAR = "multi_year"
    ANNUAL = "annual"
    MONTHLY = "monthly"


class Metric(str, Enum):
    TEMPERATURE = "temperature"
    OZONE = "ozone"
    NO2 = "no2"

    @property
    def column(self) -> str:
        """The observation table column holding this metric."""
        return _METRIC_COLUMNS[self]

    @property
    def mean_column(self) -> str:
        return dc.DX_MEAN_COLUMN_MAP[self.column]


_METRIC_COLUMNS = {
    Metric.TEMPERATURE: dc.TEMP_F,
    Metric.OZONE: dc.OZONE_PPB,
    Metric.NO2: dc.NO2_PPB,
}


class WeatherGroup(str, Enum):
    CLEAR = "Clear"
    CLOUDY = "Cloudy"
    FOG = "Fog"
    RAIN = "Rain"
    SNOW = "Snow"


class Scope(str, Enum):
    ALL_CITIES = "all_cities"
    SINGLE_CITY = "single_city"


class FilterState(BaseModel):
    """The current user selection.

    period_value must be a year (int) for ANNUAL and a month name for
    MONTHLY. It is ignored, and normalized to None, for MULTI_YEAR.
    Month names are normalized to their canonical spelling ("june" -> "June").

    Instances are immutable and hashable, so they can be used as cache keys.
    """

    averaging_mode: AveragingMode = AveragingMode.MULTI_YEAR
    period_value: int | str | None = None
    hour_start: int = 0
    hour_end: int = 23
    selected_city: str | None = None
    selected_metric: Metric = Metric.TEMPERATURE

    model_config = ConfigDict(frozen=True)

    @model_validator(mode="after")
    def _check_consistency(self) -> "FilterState":
        if not (0 <= self.hour_start <= self.hour_end <= 23):
            raise ValueError(
                f"Invalid hour window [{self.hour_start}, {self.hour_end}]: "
                "need 0 <= hour_start <= hour_end <= 23"
            )

        period = self.period_value
        if self.averaging_mode == AveragingMode.MULTI_YEAR:
            period = None
        elif self.averaging_mode == AveragingMode.ANNUAL:
            if isinstance(period, str) and period.strip().isdigit():
                period = int(period)
            if not isinstance(period, int) or isinstance(period, bool):
                raise ValueError(f"Annual averaging needs a year, got {period!r}")
        elif self.averaging_mode == AveragingMode.MONTHLY:
            if not isinstance(period, str):
                raise ValueError(f"Monthly averaging needs a month name, got {period!r}")
            period = dates.month_name(dates.month_number(period))

        city = self.selected_city
        if city is not None:
            city = city.strip() or None

        # Frozen model: bypass __setattr__ for the normalized values.
        object.__setattr__(self, "period_value", period)
        object.__setattr__(self, "selected_city", city)
        return self

    @classmethod
    def create(cls, **kwargs) -> "FilterState":
        """Creates a FilterState, raising InvalidFilterStateError on bad input."""
        try:
            return cls(**kwargs)
        except ValidationError as e:
            raise InvalidFilterStateError(str(e)) from e

    @property
    def month(self) -> int | None:
        """The selected month number in MONTHLY mode, else None."""
        if self.averaging_mode != AveragingMode.MONTHLY:
            return None
        return dates.month_number(self.period_value)

    @property
    def year(self) -> int | None:
        """The selected year in ANNUAL mode, else None."""
        if self.averaging_mode != AveragingMode.ANNUAL:
            return None
        return self.period_value

    def with_city(self, city: str | None) -> "FilterState":
        # model_copy skips validation, so build a new instance.
        return FilterState(**{**self.model_dump(), "selected_city": city})

    def title(self) -> str:
        """A human readable description of the selected period and hours."""
        if self.averaging_mode == AveragingMode.ANNUAL:
            period = str(self.period_value)
        elif self.averaging_mode == AveragingMode.MONTHLY:
            period = f"{self.period_value} (all years)"
        else:
            period = "All years"
        return f"{period}, {self.hour_start:02d}:00-{self.hour_end:02d}:59"


################################################################
# Cities and aggregates
################################################################


class City(BaseModel):
    city: str
    latitude: float
    longitude: float
    climate_label: str | None = None


class AggregateRow(BaseModel):
    """Mean metrics of a single city over the filtered observations.

    A mean is None if all values of that metric were missing.
    """

    city: str
    mean_temperature_f: float | None = None
    mean_ozone_ppb: float | None = None
    mean_no2_ppb: float | None = None
    latitude: float
    longitude: float
    climate_label: str | None = None
    value_count: int = 0  # Number of observations (rows) the means are based on.

    def value(self, metric: Metric) -> float | None:
        return getattr(self, metric.mean_column)


class CityAggregates(BaseModel):
    rows: list[AggregateRow]
    # Cities with observations but no metadata. They have no row in rows.
    missing_metadata: list[str] = []

    def get(self, city: str) -> AggregateRow | None:
        key = dates.normalize_key(city)
        for r in self.rows:
            if dates.normalize_key(r.city) == key:
                return r
        return None


################################################################
# Completeness
################################################################


class Completeness(BaseModel):
    """Observed vs. calendar-expected observation counts.

    percent is None if no city is selected (or no expected count can be
    derived). It is not clamped to 100: values above 100 indicate duplicate
    observations in the source data.
    """

    city: str | None = None
    observed_count: int = 0
    expected_count: int = 0
    percent: float | None = None
    # Rows repeating an earlier timestamp of the same city (data quality issue).
    duplicate_count: int = 0

    @property
    def available(self) -> bool:
        return self.percent is not None


################################################################
# Histograms
################################################################

_COMPASS_POINTS_16 = [
    "N", "NNE", "NE", "ENE", "E", "ESE", "SE", "SSE",
    "S", "SSW", "SW", "WSW", "W", "WNW", "NW", "NNW",
]  # fmt: skip


class WindRoseCell(BaseModel):
    sector: int
    speed_bucket: int
    count: int


class WindRose(BaseModel):
    """Counts of (direction sector, speed bucket) pairs.

    counts[s][b] holds the count of sector s and speed bucket b. The grid is
    always complete (n_sectors x (len(speed_cut_points) + 1)), empty cells
    have a zero count. Directions are "from" directions, sector 0 is
    centered on North.
    """

    n_sectors: int
    speed_cut_points: list[float]
    counts: list[list[int]]
    total: int  # Number of observations with both direction and speed.

    model_config = ConfigDict(frozen=True)

    @property
    def n_buckets(self) -> int:
        return len(self.speed_cut_points) + 1

    @property
    def sector_width(self) -> float:
        return 360.0 / self.n_sectors

    def sector_center(self, sector: int) -> float:
        return sector * self.sector_width

    def sector_labels(self) -> list[str]:
        """Compass labels for 4, 8 and 16 sectors, center angles otherwise."""
        if self.n_sectors in (4, 8, 16):
            step = 16 // self.n_sectors
            return _COMPASS_POINTS_16[::step]
        return [f"{self.sector_center(s):g}°" for s in range(self.n_sectors)]

    def bucket_labels(self) -> list[str]:
        cuts = [f"{c:g}" for c in self.speed_cut_points]
        if not cuts:
            return ["all"]
        labels = [f"<{cuts[0]}"]
        labels.extend(f"{lo}-{hi}" for lo, hi in zip(cuts, cuts[1:]))
        labels.append(f"≥{cuts[-1]}")
        return labels

    def cells(self) -> list[WindRoseCell]:
        """All cells of the grid, including empty ones, in sector-major order."""
        return [
            WindRoseCell(sector=s, speed_bucket=b, count=self.counts[s][b])
            for s in range(self.n_sectors)
            for b in range(self.n_buckets)
        ]

    def percent(self) -> list[list[float]]:
        """Cell counts as percentages of total. All zero if total is zero."""
        if self.total == 0:
            return [[0.0] * self.n_buckets for _ in range(self.n_sectors)]
        return [[c / self.total * 100 for c in row] for row in self.counts]


class DensityCell(BaseModel):
    x_bin: int
    y_bin: int
    count: int


class DensityGrid(BaseModel):
    """A 2D histogram of two metrics.

    Bin i of an axis covers the half-open interval [edges[i], edges[i+1]);
    only the last bin of an axis also includes its upper edge. Only non-empty
    cells are listed.
    """

    x_metric: Metric
    y_metric: Metric
    x_edges: list[float]
    y_edges: list[float]
    cells: list[DensityCell]
    total: int

    model_config = ConfigDict(frozen=True)

    def count(self, x_bin: int, y_bin: int) -> int:
        for c in self.cells:
            if c.x_bin == x_bin and c.y_bin == y_bin:
                return c.count
        return 0


class WeatherGroupStats(BaseModel):
    weather_group: str
    value_count: int
    mean_value: float | None = None


################################################################
# Server Status
################################################################


class ServerOptions(BaseModel):
    base_dir: str
    start_time: datetime.datetime
    observations_file: str
    cities_file: str


class ServerStatus(BaseModel):
    current_time_utc: datetime.datetime
    options: ServerOptions
    observation_count: int
    city_count: int
    years: list[int]
