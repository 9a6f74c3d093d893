"""File for widely used constants."""

# Default number of compass sectors in a wind rose.
DEFAULT_WIND_SECTORS = 16

# Default wind speed thresholds (mph). Speeds below the first value
# fall into bucket 0, speeds at or above the last one into the final bucket.
DEFAULT_SPEED_CUT_POINTS = (1.0, 3.0, 5.0, 8.0, 12.0, 20.0, 50.0)

# Default number of bins per axis of a density histogram.
DEFAULT_DENSITY_BINS = 30

# Days used for a whole year in completeness estimates (leap days ignored).
DAYS_PER_YEAR = 365

HOURS_PER_DAY = 24

# Upper bounds of the binning resolution.
MAX_WIND_SECTORS = 360
MAX_DENSITY_BINS = 1000
