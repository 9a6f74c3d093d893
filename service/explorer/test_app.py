import datetime
import pandas as pd
import pytest
from fastapi.testclient import TestClient

from service.explorer import engine
from service.explorer import models
from service.explorer.app import app
from service.explorer.data import constants as dc
from service.explorer.data.table import ObservationTable
from service.explorer.testutils import make_cities, make_observations


@pytest.fixture
def client():
    times = pd.date_range("2019-06-01", periods=48, freq="h")
    obs = make_observations(
        [
            {
                dc.CITY: city,
                dc.TIMESTAMP: t,
                dc.TEMP_F: 70.0 + i % 3,
                dc.OZONE_PPB: 30.0 + i % 7,
                dc.NO2_PPB: 8.0 + i % 4,
                dc.WIND_DIRECTION_DEG: 0.0,
                dc.WIND_SPEED: 2.0,
                dc.WEATHER_GROUP: "Clear" if i % 2 else "Rain",
            }
            for city in ["Houston", "Portland", "Nowhere"]
            for i, t in enumerate(times)
        ]
    )
    table = ObservationTable(obs, make_cities(["Houston", "Portland"]).reset_index())
    app.state.explorer = engine.Explorer(table)
    app.state.server_options = models.ServerOptions(
        base_dir=".",
        observations_file="observations.csv",
        cities_file="cities.csv",
        start_time=datetime.datetime.now(tz=datetime.timezone.utc),
    )
    yield TestClient(app)
    app.state.explorer = None


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_status(client):
    resp = client.get("/status")
    assert resp.status_code == 200
    body = resp.json()
    assert body["observation_count"] == 3 * 48
    assert body["city_count"] == 2
    assert body["years"] == [2019]


def test_cities(client):
    resp = client.get("/cities")
    assert resp.status_code == 200
    assert [c["city"] for c in resp.json()["cities"]] == ["Houston", "Portland"]


def test_aggregates(client):
    resp = client.get("/aggregates", params={"mode": "monthly", "period": "june"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["filter"]["period_value"] == "June"
    aggregates = body["aggregates"]
    assert [r["city"] for r in aggregates["rows"]] == ["Houston", "Portland"]
    assert aggregates["missing_metadata"] == ["Nowhere"]


def test_aggregates_invalid_filter(client):
    resp = client.get("/aggregates", params={"hour_start": 10, "hour_end": 2})
    assert resp.status_code == 400
    resp = client.get("/aggregates", params={"mode": "annual", "period": "2000"})
    assert resp.status_code == 400
    resp = client.get("/aggregates", params={"mode": "monthly", "period": "Juneteenth"})
    assert resp.status_code == 400


def test_city_summary(client):
    resp = client.get(
        "/cities/houston/summary",
        params={"mode": "annual", "period": "2019", "hour_start": 0, "hour_end": 11},
    )
    assert resp.status_code == 200
    body = resp.json()
    assert body["row_count"] == 24
    assert body["completeness"]["expected_count"] == 365 * 12
    assert body["completeness"]["percent"] == round(100 * 24 / (365 * 12), 1)
    assert body["aggregate"]["city"] == "Houston"


def test_unknown_city(client):
    resp = client.get("/cities/Springfield/summary")
    assert resp.status_code == 404


def test_city_windrose(client):
    resp = client.get("/cities/Portland/windrose", params={"sectors": 8})
    assert resp.status_code == 200
    body = resp.json()
    rose = body["windrose"]
    assert rose["n_sectors"] == 8
    assert rose["total"] == 48
    # All wind from the north at 2 mph.
    assert rose["counts"][0][1] == 48
    assert body["sector_labels"][0] == "N"


def test_city_windrose_invalid_cut_points(client):
    resp = client.get("/cities/Portland/windrose", params={"cut_points": "5,1"})
    assert resp.status_code == 400


def test_city_density(client):
    resp = client.get(
        "/cities/Portland/density", params={"x": "temperature", "y": "ozone", "bins": 3}
    )
    assert resp.status_code == 200
    density = resp.json()["density"]
    assert density["x_metric"] == "temperature"
    assert density["x_edges"] == pytest.approx([70.0, 70.0 + 2 / 3, 70.0 + 4 / 3, 72.0])
    assert sum(c["count"] for c in density["cells"]) == 48


def test_city_density_invalid_metric(client):
    resp = client.get("/cities/Portland/density", params={"x": "pm25"})
    assert resp.status_code == 400


def test_city_distribution(client):
    resp = client.get("/cities/Houston/distribution", params={"metric": "ozone"})
    assert resp.status_code == 200
    body = resp.json()
    groups = {g["weather_group"]: g for g in body["groups"]}
    assert groups["Clear"]["value_count"] == 24
    assert groups["Rain"]["value_count"] == 24
    assert groups["Snow"]["value_count"] == 0
    assert len(body["values"]) == 48


def test_no_data_loaded():
    app.state.explorer = None
    resp = TestClient(app).get("/aggregates")
    assert resp.status_code == 404


def test_city_density_too_many_bins(client):
    resp = client.get("/cities/Portland/density", params={"bin_width": 1e-9})
    assert resp.status_code == 400
    resp = client.get("/cities/Portland/density", params={"bins": 10**6})
    assert resp.status_code == 400


def test_city_windrose_too_many_sectors(client):
    resp = client.get("/cities/Portland/windrose", params={"sectors": 10**6})
    assert resp.status_code == 400
