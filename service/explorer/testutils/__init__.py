from .testhelpers import PandasTestCase, make_cities, make_observations

__all__ = [
    "PandasTestCase",
    "make_cities",
    "make_observations",
]
