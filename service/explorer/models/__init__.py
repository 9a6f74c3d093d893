from .models import *

__all__ = [
    "AggregateRow",
    "AveragingMode",
    "City",
    "CityAggregates",
    "Completeness",
    "DensityCell",
    "DensityGrid",
    "FilterState",
    "Metric",
    "Scope",
    "ServerOptions",
    "ServerStatus",
    "WeatherGroup",
    "WeatherGroupStats",
    "WindRose",
    "WindRoseCell",
]
