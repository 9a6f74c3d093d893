import pandas as pd
import pytest

from service.explorer import engine
from service.explorer import models
from service.explorer.base.errors import InvalidFilterStateError
from service.explorer.data import constants as dc
from service.explorer.data.table import ObservationTable
from service.explorer.testutils import make_cities, make_observations


def _observations(cities: list[str], years: list[int]) -> pd.DataFrame:
    rows = []
    for city_idx, city in enumerate(cities):
        for year in years:
            times = pd.date_range(f"{year}-02-01", periods=24 * 3, freq="h")
            for i, t in enumerate(times):
                rows.append(
                    {
                        dc.CITY: city,
                        dc.TIMESTAMP: t,
                        dc.TEMP_F: 30.0 + city_idx + (year - years[0]),
                        dc.OZONE_PPB: 20.0 + (i % 10),
                        dc.NO2_PPB: 10.0 + (i % 5),
                        dc.WIND_DIRECTION_DEG: (i * 15) % 360,
                        dc.WIND_SPEED: (i % 12) * 1.5,
                        dc.WEATHER_GROUP: "Cloudy",
                    }
                )
    return make_observations(rows)


@pytest.fixture
def table():
    return ObservationTable(
        _observations(["Denver", "Miami"], [2019, 2020]),
        make_cities(["Denver", "Miami"]).reset_index(),
    )


def test_compute_snapshot(table):
    fs = models.FilterState(
        averaging_mode="monthly",
        period_value="February",
        hour_start=0,
        hour_end=23,
        selected_city="denver",
    )
    snapshot = engine.compute_snapshot(table, fs)

    assert snapshot.filter_state.selected_city == "Denver"
    assert [r.city for r in snapshot.aggregates.rows] == ["Denver", "Miami"]
    assert snapshot.aggregates.get("Denver").mean_temperature_f == 30.5
    assert snapshot.city_row_count == 2 * 72
    assert snapshot.completeness.expected_count == 28 * 24 * 2
    assert snapshot.completeness.percent == round(100 * 144 / 1344, 1)
    assert snapshot.wind_rose.total == 144
    assert snapshot.density.total == 144
    assert snapshot.density.x_metric == models.Metric.OZONE
    assert len(snapshot.city_observations) == 144


def test_compute_snapshot_without_city(table):
    snapshot = engine.compute_snapshot(table, models.FilterState())
    assert len(snapshot.aggregates.rows) == 2
    assert snapshot.city_row_count == 0
    assert not snapshot.completeness.available
    assert snapshot.wind_rose.total == 0
    assert sum(map(sum, snapshot.wind_rose.counts)) == 0
    assert snapshot.density.cells == []


def test_compute_snapshot_unknown_city(table):
    fs = models.FilterState(selected_city="Springfield")
    snapshot = engine.compute_snapshot(table, fs)
    assert snapshot.city_row_count == 0
    assert snapshot.completeness.percent == 0.0


def test_annual_year_must_exist(table):
    fs = models.FilterState(averaging_mode="annual", period_value=1999)
    with pytest.raises(InvalidFilterStateError):
        engine.compute_snapshot(table, fs)


def test_compute_idempotent(table):
    fs = models.FilterState(selected_city="Miami", hour_start=3, hour_end=17)
    a = engine.compute_snapshot(table, fs)
    b = engine.compute_snapshot(table, fs)
    assert a.aggregates == b.aggregates
    assert a.completeness == b.completeness
    assert a.wind_rose == b.wind_rose
    assert a.density == b.density
    pd.testing.assert_frame_equal(a.city_observations, b.city_observations)


def test_binning_overrides(table):
    explorer = engine.Explorer(table)
    fs = models.FilterState(selected_city="Miami")
    snapshot = explorer.compute(fs, n_sectors=4, speed_cut_points=(5.0,))
    assert snapshot.wind_rose.n_sectors == 4
    assert len(snapshot.wind_rose.counts[0]) == 2
    # Options of the explorer itself are unchanged.
    assert explorer.options.n_sectors == 16


def test_update_publishes_latest(table):
    explorer = engine.Explorer(table)
    assert explorer.current is None

    fs = models.FilterState(selected_city="Denver")
    snapshot = explorer.update(fs)
    assert snapshot is explorer.current
    assert snapshot.filter_state.selected_city == "Denver"


def test_stale_snapshot_dropped(table):
    explorer = engine.Explorer(table)
    fs1 = models.FilterState(selected_city="Denver")
    fs2 = models.FilterState(selected_city="Miami")

    gen1 = explorer.submit(fs1)
    gen2 = explorer.submit(fs2)
    s1 = engine.compute_snapshot(table, fs1, generation=gen1)
    s2 = engine.compute_snapshot(table, fs2, generation=gen2)

    # Results arrive out of order: the older one must not win.
    assert explorer.publish(s2)
    assert not explorer.publish(s1)
    assert explorer.current.filter_state.selected_city == "Miami"


def test_reload_swaps_table(table):
    explorer = engine.Explorer(table)
    fs = models.FilterState(selected_city="Denver")
    gen = explorer.submit(fs)
    in_flight = engine.compute_snapshot(table, fs, generation=gen)

    new_table = ObservationTable(
        _observations(["Denver"], [2021]),
        make_cities(["Denver"]).reset_index(),
    )
    explorer.reload(new_table)

    assert explorer.table is new_table
    assert explorer.current is None
    # Computed on the old table: dropped.
    assert not explorer.publish(in_flight)

    snapshot = explorer.update(fs)
    assert snapshot.city_row_count == 72
    assert [r.city for r in snapshot.aggregates.rows] == ["Denver"]


def test_aggregates_match_metadata_case_insensitively():
    table = ObservationTable(
        _observations(["AUSTIN"], [2019]),
        make_cities(["Austin"]).reset_index(),
    )
    snapshot = engine.compute_snapshot(table, models.FilterState(selected_city="Austin"))
    assert snapshot.filter_state.selected_city == "Austin"
    assert [r.city for r in snapshot.aggregates.rows] == ["Austin"]
    assert snapshot.aggregates.missing_metadata == []
    assert snapshot.city_row_count == 72


def test_invalid_update_keeps_in_flight_snapshot(table):
    explorer = engine.Explorer(table)
    fs = models.FilterState(selected_city="Denver")
    gen = explorer.submit(fs)
    in_flight = engine.compute_snapshot(table, fs, generation=gen)

    with pytest.raises(InvalidFilterStateError):
        explorer.update(models.FilterState(averaging_mode="annual", period_value=1999))

    assert explorer.publish(in_flight)
    assert explorer.current is in_flight


def test_binning_overrides_validated(table):
    explorer = engine.Explorer(table)
    fs = models.FilterState(selected_city="Miami")
    with pytest.raises(ValueError):
        explorer.compute(fs, n_sectors="many")
    with pytest.raises(ValueError):
        explorer.compute(fs, density_bins=None, density_bin_width=1e-9)
