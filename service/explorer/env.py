"""Helpers for dealing with environment variables.

All server parameters are provided as EXPLORER_* env vars.
"""

import os
from pydantic import BaseModel

from service.explorer.base import constants as bc


def _int_from_env(var: str) -> int | None:
    val = os.getenv(var)
    if not val:
        return None
    try:
        return int(val)
    except ValueError:
        raise ValueError(f"{var} must be an integer, got {val!r}") from None


def parse_cut_points(s: str) -> tuple[float, ...]:
    """Parses a comma-separated list of ascending numbers, e.g. "1,3,5"."""
    try:
        cuts = tuple(float(p) for p in s.split(",") if p.strip())
    except ValueError:
        raise ValueError(f"Invalid speed cut points: {s!r}") from None
    if any(a >= b for a, b in zip(cuts, cuts[1:])):
        raise ValueError(f"Speed cut points must be strictly ascending: {s!r}")
    return cuts


class ExplorerOptions(BaseModel):
    base_dir: str = "."
    observations_file: str = "observations.csv"
    cities_file: str = "cities.csv"
    num_years: int | None = None
    wind_sectors: int = bc.DEFAULT_WIND_SECTORS
    speed_cut_points: tuple[float, ...] = bc.DEFAULT_SPEED_CUT_POINTS
    density_bins: int = bc.DEFAULT_DENSITY_BINS

    @classmethod
    def from_env(cls):
        kwargs = {}
        for field, var in [
            ("base_dir", "EXPLORER_BASE_DIR"),
            ("observations_file", "EXPLORER_OBSERVATIONS_FILE"),
            ("cities_file", "EXPLORER_CITIES_FILE"),
        ]:
            if os.getenv(var):
                kwargs[field] = os.getenv(var)

        for field, var in [
            ("num_years", "EXPLORER_NUM_YEARS"),
            ("wind_sectors", "EXPLORER_WIND_SECTORS"),
            ("density_bins", "EXPLORER_DENSITY_BINS"),
        ]:
            n = _int_from_env(var)
            if n is not None:
                if n < 1:
                    raise ValueError(f"{var} must be positive, got {n}")
                kwargs[field] = n

        cut_points = os.getenv("EXPLORER_SPEED_CUT_POINTS")
        if cut_points:
            kwargs["speed_cut_points"] = parse_cut_points(cut_points)

        return cls(**kwargs)

    def observations_path(self) -> str:
        return os.path.join(self.base_dir, self.observations_file)

    def cities_path(self) -> str:
        return os.path.join(self.base_dir, self.cities_file)
