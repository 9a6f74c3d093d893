"""Recomputes all derived data of the explorer whenever the filter state changes.

Every derived output is a pure function of the (read-only) observation table
and the filter state. The Explorer only ties them together: it owns the
current table reference and the most recently published snapshot.
"""

import itertools
import logging
import threading
import pandas as pd
from pydantic import BaseModel, ConfigDict

from service.explorer import models
from service.explorer.base import constants as bc
from service.explorer.base.errors import InvalidFilterStateError
from service.explorer.calc import aggregate
from service.explorer.calc import binning
from service.explorer.calc import completeness as cmpl
from service.explorer.calc import window
from service.explorer.data.table import ObservationTable


logger = logging.getLogger("engine")


class BinningOptions(BaseModel):
    n_sectors: int = bc.DEFAULT_WIND_SECTORS
    speed_cut_points: tuple[float, ...] = bc.DEFAULT_SPEED_CUT_POINTS
    density_x: models.Metric = models.Metric.OZONE
    density_y: models.Metric = models.Metric.NO2
    density_bins: int | None = bc.DEFAULT_DENSITY_BINS
    density_bin_width: float | None = None

    model_config = ConfigDict(frozen=True)


class Snapshot(BaseModel):
    """All derived data for a single filter state."""

    generation: int
    filter_state: models.FilterState
    aggregates: models.CityAggregates
    city_row_count: int
    completeness: models.Completeness
    wind_rose: models.WindRose
    density: models.DensityGrid
    # The single city observations (empty if no city is selected).
    city_observations: pd.DataFrame

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)


def validate_filter_state(table: ObservationTable, fs: models.FilterState):
    """Checks fs against the data in table.

    Raises:
        InvalidFilterStateError if an annual period is not a year of the table.
    """
    if fs.averaging_mode == models.AveragingMode.ANNUAL and fs.year not in table.years:
        raise InvalidFilterStateError(
            f"No such year {fs.year} (available: {table.years})"
        )


def resolve_city(table: ObservationTable, fs: models.FilterState) -> models.FilterState:
    """Returns fs with selected_city replaced by its canonical spelling.

    Unknown cities are kept as they are: they simply match no observations.
    """
    canonical = table.resolve_city(fs.selected_city)
    if canonical is None or canonical == fs.selected_city:
        return fs
    return fs.with_city(canonical)


def compute_snapshot(
    table: ObservationTable,
    fs: models.FilterState,
    options: BinningOptions | None = None,
    generation: int = 0,
) -> Snapshot:
    options = options or BinningOptions()
    validate_filter_state(table, fs)
    fs = resolve_city(table, fs)

    df = table.observations
    df_all = window.filter_observations(df, fs, models.Scope.ALL_CITIES)
    df_city = window.filter_observations(df, fs, models.Scope.SINGLE_CITY)
    logger.debug(
        "Filter %s selected %d rows (%d for city %s)",
        fs.title(),
        len(df_all),
        len(df_city),
        fs.selected_city,
    )

    return Snapshot(
        generation=generation,
        filter_state=fs,
        aggregates=aggregate.city_aggregates(df_all, table.cities),
        city_row_count=len(df_city),
        completeness=cmpl.completeness(df_city, fs, table.num_years),
        wind_rose=binning.circular_histogram(
            df_city, options.n_sectors, options.speed_cut_points
        ),
        density=binning.density_histogram(
            df_city,
            options.density_x,
            options.density_y,
            bins=options.density_bins,
            bin_width=options.density_bin_width,
        ),
        city_observations=df_city,
    )


class Explorer:
    """Coordinates recomputation of derived data on filter state changes.

    Only the snapshot for the most recent filter state is ever published:
    results computed for a superseded filter state are dropped.
    """

    def __init__(self, table: ObservationTable, options: BinningOptions | None = None):
        self._table = table
        self._options = options or BinningOptions()
        self._generations = itertools.count(1)
        self._latest_generation = 0
        self._current: Snapshot | None = None
        self._lock = threading.Lock()

    @property
    def table(self) -> ObservationTable:
        return self._table

    @property
    def options(self) -> BinningOptions:
        return self._options

    @property
    def current(self) -> Snapshot | None:
        """The most recently published snapshot."""
        return self._current

    def reload(self, table: ObservationTable):
        """Replaces the observation table.

        Computations that already started keep using the table they started
        with. The current snapshot is dropped since it belongs to old data.
        """
        with self._lock:
            self._table = table
            self._current = None
            # Invalidate snapshots of computations still running on the old table.
            self._latest_generation = next(self._generations)
        logger.info("Reloaded observation table (%d rows)", len(table))

    def compute(self, fs: models.FilterState, **kwargs) -> Snapshot:
        """Computes a snapshot for fs without publishing it.

        Keyword arguments override the binning options for this call.
        """
        # Read the table reference once, so a concurrent reload can't mix tables.
        table = self._table
        options = self._options
        if kwargs:
            # model_copy would skip validation of the overrides.
            options = BinningOptions.model_validate(options.model_dump() | kwargs)
        return compute_snapshot(table, fs, options)

    def submit(self, fs: models.FilterState) -> int:
        """Registers fs as the latest filter state, returns its generation."""
        with self._lock:
            gen = next(self._generations)
            self._latest_generation = gen
        return gen

    def publish(self, snapshot: Snapshot) -> bool:
        """Publishes snapshot unless a newer filter state was submitted since.

        Returns True if the snapshot became the current one.
        """
        with self._lock:
            if snapshot.generation != self._latest_generation:
                logger.debug(
                    "Dropping stale snapshot %d (latest: %d)",
                    snapshot.generation,
                    self._latest_generation,
                )
                return False
            self._current = snapshot
            return True

    def update(self, fs: models.FilterState) -> Snapshot | None:
        """Submits fs, computes its snapshot and publishes it.

        Returns the current snapshot after publishing, which is the snapshot
        for fs unless another filter state was submitted in the meantime.

        Raises:
            InvalidFilterStateError if fs is not valid for the current table.
                The latest submitted filter state stays unchanged.
        """
        validate_filter_state(self._table, fs)
        gen = self.submit(fs)
        # Read the table after submitting: a reload from now on invalidates gen.
        table = self._table
        snapshot = compute_snapshot(table, fs, self._options, generation=gen)
        self.publish(snapshot)
        return self._current

