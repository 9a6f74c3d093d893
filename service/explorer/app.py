from contextlib import asynccontextmanager
import datetime
import logging
import os
from fastapi import FastAPI, Request, Response, status
from fastapi.responses import JSONResponse

from service.explorer.base import logging_config as _  # configure logging

from service.explorer import engine
from service.explorer import models
from service.explorer.base.errors import (
    CityNotFoundError,
    InvalidFilterStateError,
    NoDataError,
)
from service.explorer.calc import aggregate
from service.explorer.data.table import (
    ObservationTable,
    read_cities_csv,
    read_observations_csv,
)
from service.explorer.env import ExplorerOptions, parse_cut_points


logger = logging.getLogger("app")


def _load_explorer(options: ExplorerOptions) -> engine.Explorer | None:
    obs_path = options.observations_path()
    cities_path = options.cities_path()
    if not (os.path.isfile(obs_path) and os.path.isfile(cities_path)):
        logger.warning(
            "Data files %s and/or %s not found, starting without data",
            obs_path,
            cities_path,
        )
        return None

    logger.info("Reading observations from %s", obs_path)
    table = ObservationTable(
        read_observations_csv(obs_path),
        read_cities_csv(cities_path),
        num_years=options.num_years,
    )
    return engine.Explorer(
        table,
        engine.BinningOptions(
            n_sectors=options.wind_sectors,
            speed_cut_points=options.speed_cut_points,
            density_bins=options.density_bins,
        ),
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    options = ExplorerOptions.from_env()
    app.state.explorer = _load_explorer(options)
    app.state.server_options = models.ServerOptions(
        base_dir=options.base_dir,
        observations_file=options.observations_file,
        cities_file=options.cities_file,
        start_time=datetime.datetime.now(tz=datetime.timezone.utc),
    )

    yield

    logger.info("Shutting down")


# Always create the app, we're running this thing with uvicorn ONLY.
app = FastAPI(lifespan=lifespan)


def _explorer(request: Request) -> engine.Explorer:
    explorer = getattr(request.app.state, "explorer", None)
    if explorer is None:
        raise NoDataError("No observation data loaded")
    return explorer


def _filter_state(
    mode: str,
    period: str | None,
    hour_start: int,
    hour_end: int,
    metric: str,
    city: str | None = None,
) -> models.FilterState:
    return models.FilterState.create(
        averaging_mode=mode,
        period_value=period,
        hour_start=hour_start,
        hour_end=hour_end,
        selected_metric=metric,
        selected_city=city,
    )


def _city_filter_state(
    explorer: engine.Explorer, city: str, **kwargs
) -> models.FilterState:
    canonical = explorer.table.resolve_city(city)
    if canonical is None:
        raise CityNotFoundError(f"No such city: {city}")
    fs = _filter_state(city=canonical, **kwargs)
    engine.validate_filter_state(explorer.table, fs)
    return fs


@app.exception_handler(CityNotFoundError)
async def city_not_found_handler(request, exc: CityNotFoundError):
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"detail": str(exc)},
    )


@app.exception_handler(NoDataError)
async def no_data_error_handler(request, exc: NoDataError):
    return JSONResponse(
        status_code=status.HTTP_404_NOT_FOUND,
        content={"detail": str(exc)},
    )


@app.exception_handler(InvalidFilterStateError)
async def invalid_filter_handler(request, exc: InvalidFilterStateError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": str(exc)},
    )


@app.exception_handler(ValueError)
async def value_error_handler(request, exc: ValueError):
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": str(exc)},
    )


@app.get("/health")
def health():
    """Health check endpoint for cloud deployments."""
    return {"status": "ok"}


@app.get("/status")
def server_status(request: Request):
    """Returns status information for the running server."""
    explorer = _explorer(request)
    table = explorer.table
    return models.ServerStatus(
        current_time_utc=datetime.datetime.now(tz=datetime.timezone.utc),
        options=request.app.state.server_options,
        observation_count=len(table),
        city_count=len(table.cities),
        years=table.years,
    )


@app.get("/cities")
def list_cities(request: Request, response: Response):
    explorer = _explorer(request)
    # Cities only change on reload, use 1 hour TTL for caching.
    response.headers["Cache-Control"] = "public, max-age=3600"
    return {
        "cities": explorer.table.city_list(),
    }


@app.get("/aggregates")
def get_aggregates(
    request: Request,
    mode: str = models.AveragingMode.MULTI_YEAR.value,
    period: str | None = None,
    hour_start: int = 0,
    hour_end: int = 23,
    metric: str = models.Metric.TEMPERATURE.value,
):
    explorer = _explorer(request)
    fs = _filter_state(mode, period, hour_start, hour_end, metric)
    snapshot = explorer.compute(fs)
    return {
        "filter": fs,
        "title": fs.title(),
        "aggregates": snapshot.aggregates,
    }


@app.get("/cities/{city}/summary")
def get_city_summary(
    request: Request,
    city: str,
    mode: str = models.AveragingMode.MULTI_YEAR.value,
    period: str | None = None,
    hour_start: int = 0,
    hour_end: int = 23,
    metric: str = models.Metric.TEMPERATURE.value,
):
    explorer = _explorer(request)
    fs = _city_filter_state(
        explorer,
        city,
        mode=mode,
        period=period,
        hour_start=hour_start,
        hour_end=hour_end,
        metric=metric,
    )
    snapshot = explorer.compute(fs)
    return {
        "filter": fs,
        "title": fs.title(),
        "row_count": snapshot.city_row_count,
        "completeness": snapshot.completeness,
        "aggregate": snapshot.aggregates.get(fs.selected_city),
    }


@app.get("/cities/{city}/windrose")
def get_city_windrose(
    request: Request,
    city: str,
    mode: str = models.AveragingMode.MULTI_YEAR.value,
    period: str | None = None,
    hour_start: int = 0,
    hour_end: int = 23,
    sectors: int | None = None,
    cut_points: str | None = None,
):
    explorer = _explorer(request)
    fs = _city_filter_state(
        explorer,
        city,
        mode=mode,
        period=period,
        hour_start=hour_start,
        hour_end=hour_end,
        metric=models.Metric.TEMPERATURE.value,
    )
    overrides = {}
    if sectors is not None:
        overrides["n_sectors"] = sectors
    if cut_points is not None:
        overrides["speed_cut_points"] = parse_cut_points(cut_points)
    snapshot = explorer.compute(fs, **overrides)
    wind_rose = snapshot.wind_rose
    return {
        "filter": fs,
        "windrose": wind_rose,
        "sector_labels": wind_rose.sector_labels(),
        "bucket_labels": wind_rose.bucket_labels(),
    }


@app.get("/cities/{city}/density")
def get_city_density(
    request: Request,
    city: str,
    mode: str = models.AveragingMode.MULTI_YEAR.value,
    period: str | None = None,
    hour_start: int = 0,
    hour_end: int = 23,
    x: str = models.Metric.OZONE.value,
    y: str = models.Metric.NO2.value,
    bins: int | None = None,
    bin_width: float | None = None,
):
    explorer = _explorer(request)
    fs = _city_filter_state(
        explorer,
        city,
        mode=mode,
        period=period,
        hour_start=hour_start,
        hour_end=hour_end,
        metric=models.Metric.TEMPERATURE.value,
    )
    overrides = {"density_x": models.Metric(x), "density_y": models.Metric(y)}
    if bin_width is not None:
        overrides["density_bin_width"] = bin_width
    elif bins is not None:
        overrides["density_bins"] = bins
    snapshot = explorer.compute(fs, **overrides)
    return {
        "filter": fs,
        "density": snapshot.density,
    }


@app.get("/cities/{city}/distribution")
def get_city_distribution(
    request: Request,
    city: str,
    mode: str = models.AveragingMode.MULTI_YEAR.value,
    period: str | None = None,
    hour_start: int = 0,
    hour_end: int = 23,
    metric: str = models.Metric.TEMPERATURE.value,
):
    explorer = _explorer(request)
    fs = _city_filter_state(
        explorer,
        city,
        mode=mode,
        period=period,
        hour_start=hour_start,
        hour_end=hour_end,
        metric=metric,
    )
    df = explorer.compute(fs).city_observations
    data = aggregate.metric_by_weather_group(df, fs.selected_metric)
    return {
        "filter": fs,
        "groups": aggregate.weather_group_summary(df, fs.selected_metric),
        "values": data.to_dict(orient="records"),
    }
