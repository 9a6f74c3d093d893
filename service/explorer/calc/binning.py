"""Binning of single city observations for wind roses and density plots."""

from typing import Sequence
import numpy as np
import pandas as pd

from service.explorer import models
from service.explorer.base import constants as bc
from service.explorer.data import constants as dc


def direction_sectors(directions: np.ndarray, n_sectors: int) -> np.ndarray:
    """Returns the compass sector of each direction (in degrees).

    The compass is divided into n_sectors arcs of equal width. Sector 0 is
    centered on North, i.e. with 16 sectors it covers [348.75°, 11.25°).
    """
    if not 1 <= n_sectors <= bc.MAX_WIND_SECTORS:
        raise ValueError(
            f"n_sectors must be in [1, {bc.MAX_WIND_SECTORS}], got {n_sectors}"
        )
    width = 360.0 / n_sectors
    shifted = np.mod(directions + width / 2, 360.0)
    # np.mod can return 360.0 for tiny negative inputs: wrap to sector 0.
    return np.floor(shifted / width).astype(int) % n_sectors


def speed_buckets(speeds: np.ndarray, cut_points: Sequence[float]) -> np.ndarray:
    """Returns the number of cut points that are <= each speed.

    Bucket 0 holds speeds below the first cut point, bucket len(cut_points)
    holds speeds at or above the last one.
    """
    cuts = np.asarray(cut_points, dtype=float)
    if len(cuts) > 1 and not np.all(np.diff(cuts) > 0):
        raise ValueError(f"Speed cut points must be strictly ascending: {cut_points}")
    return np.searchsorted(cuts, speeds, side="right")


def circular_histogram(
    df: pd.DataFrame,
    n_sectors: int = bc.DEFAULT_WIND_SECTORS,
    speed_cut_points: Sequence[float] = bc.DEFAULT_SPEED_CUT_POINTS,
) -> models.WindRose:
    """Counts observations per (direction sector, speed bucket).

    Rows without a wind direction or without a wind speed are ignored.
    Directions are the direction the wind is coming from.
    """
    wind = df[[dc.WIND_DIRECTION_DEG, dc.WIND_SPEED]].astype(float).dropna()
    sectors = direction_sectors(wind[dc.WIND_DIRECTION_DEG].to_numpy(), n_sectors)
    buckets = speed_buckets(wind[dc.WIND_SPEED].to_numpy(), speed_cut_points)

    n_buckets = len(speed_cut_points) + 1
    grid = np.zeros((n_sectors, n_buckets), dtype=int)
    np.add.at(grid, (sectors, buckets), 1)

    return models.WindRose(
        n_sectors=n_sectors,
        speed_cut_points=[float(c) for c in speed_cut_points],
        counts=grid.tolist(),
        total=len(wind),
    )


def axis_edges(
    values: np.ndarray, bins: int | None = None, bin_width: float | None = None
) -> np.ndarray:
    """Returns the bin edges of a density histogram axis.

    The edges start at the minimum of values. Exactly one of bins (number
    of bins spanning [min, max]) or bin_width must be given. With bin_width,
    as many bins are used as needed to include the maximum in a half-open
    bin.

    Raises:
        ValueError if the axis would have more than MAX_DENSITY_BINS bins.
    """
    if (bins is None) == (bin_width is None):
        raise ValueError("Specify exactly one of bins and bin_width")
    if bins is not None and not 1 <= bins <= bc.MAX_DENSITY_BINS:
        raise ValueError(f"bins must be in [1, {bc.MAX_DENSITY_BINS}], got {bins}")
    if bin_width is not None and not bin_width > 0:
        raise ValueError(f"bin_width must be positive, got {bin_width}")
    if len(values) == 0:
        return np.array([], dtype=float)

    lo, hi = float(np.min(values)), float(np.max(values))
    if bins is not None:
        if hi == lo:
            # Degenerate axis: a single unit-width bin.
            return np.array([lo, lo + 1.0])
        return lo + (hi - lo) / bins * np.arange(bins + 1)

    span = (hi - lo) / bin_width
    # One more bin may be appended below when rounding leaves the maximum out.
    if not span <= bc.MAX_DENSITY_BINS - 2:
        raise ValueError(
            f"bin_width {bin_width} yields more than {bc.MAX_DENSITY_BINS} bins"
        )
    n = int(np.floor(span)) + 1
    edges = lo + bin_width * np.arange(n + 1)
    # Rounding may leave the maximum on or past the last edge.
    while edges[-1] <= hi:
        edges = np.append(edges, edges[-1] + bin_width)
    return edges


def bin_indices(values: np.ndarray, edges: np.ndarray) -> np.ndarray:
    """Returns the bin of each value, with bins [edges[i], edges[i+1]).

    A value equal to an inner edge falls into the higher bin. Values equal
    to the last edge fall into the last bin.
    """
    idx = np.searchsorted(edges, values, side="right") - 1
    return np.clip(idx, 0, len(edges) - 2)


def density_histogram(
    df: pd.DataFrame,
    x_metric: models.Metric,
    y_metric: models.Metric,
    bins: int | None = bc.DEFAULT_DENSITY_BINS,
    bin_width: float | tuple[float, float] | None = None,
) -> models.DensityGrid:
    """Counts observations in a 2D grid over two metrics.

    The axis ranges are the observed ranges of the metrics in df. Rows
    missing either metric are ignored.

    Args:
        df: the single city observations.
        x_metric, y_metric: the metrics on the x and y axis.
        bins: number of bins per axis. Ignored if bin_width is given.
        bin_width: the bin width of both axes, or an (x, y) pair of widths.
    """
    xy = df[[x_metric.column, y_metric.column]].astype(float).dropna()
    if x_metric == y_metric:
        x = y = xy.iloc[:, 0].to_numpy()
    else:
        x = xy[x_metric.column].to_numpy()
        y = xy[y_metric.column].to_numpy()

    if bin_width is not None:
        x_width, y_width = (
            bin_width if isinstance(bin_width, tuple) else (bin_width, bin_width)
        )
        x_edges = axis_edges(x, bin_width=x_width)
        y_edges = axis_edges(y, bin_width=y_width)
    else:
        x_edges = axis_edges(x, bins=bins)
        y_edges = axis_edges(y, bins=bins)

    cells = []
    if len(xy) > 0:
        counts = (
            pd.DataFrame(
                {
                    dc.DX_X_BIN: bin_indices(x, x_edges),
                    dc.DX_Y_BIN: bin_indices(y, y_edges),
                }
            )
            .groupby([dc.DX_X_BIN, dc.DX_Y_BIN])
            .size()
        )
        cells = [
            models.DensityCell(x_bin=int(i), y_bin=int(j), count=int(n))
            for (i, j), n in counts.items()
        ]

    return models.DensityGrid(
        x_metric=x_metric,
        y_metric=y_metric,
        x_edges=x_edges.tolist(),
        y_edges=y_edges.tolist(),
        cells=cells,
        total=len(xy),
    )
