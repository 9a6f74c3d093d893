import pytest

from . import dates


def test_days_in_month_fixed_calendar():
    assert dates.days_in_month("February") == 28
    for m in ["April", "June", "September", "November"]:
        assert dates.days_in_month(m) == 30
    for m in ["January", "March", "May", "July", "August", "October", "December"]:
        assert dates.days_in_month(m) == 31


def test_days_in_month_by_number():
    assert dates.days_in_month(2) == 28
    assert dates.days_in_month(12) == 31
    with pytest.raises(ValueError):
        dates.days_in_month(13)


def test_month_number_exact_match():
    assert dates.month_number("June") == 6
    assert dates.month_number("  june ") == 6
    assert dates.month_number("MAY") == 5
    # No prefix or substring matches.
    with pytest.raises(ValueError):
        dates.month_number("Jun")
    with pytest.raises(ValueError):
        dates.month_number("Mayday")


def test_month_name():
    assert dates.month_name(1) == "January"
    with pytest.raises(ValueError):
        dates.month_name(0)


def test_hours_in_window():
    assert dates.hours_in_window(0, 23) == 24
    assert dates.hours_in_window(7, 7) == 1
    with pytest.raises(ValueError):
        dates.hours_in_window(10, 9)
    with pytest.raises(ValueError):
        dates.hours_in_window(0, 24)
