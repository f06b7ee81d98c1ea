from app.domain.scheduling.duration import estimate_duration, estimate_duration_from_value
from app.models import Job


def test_one_day_per_two_thousand_rounded_down():
    assert estimate_duration(Job(value_estimated=8000, value_contracted=0)) == 4
    assert estimate_duration(Job(value_estimated=4000, value_contracted=0)) == 2
    assert estimate_duration(Job(value_estimated=3999, value_contracted=0)) == 1


def test_never_less_than_one_day():
    assert estimate_duration(Job(value_estimated=500, value_contracted=0)) == 1
    assert estimate_duration_from_value(0) == 1
    assert estimate_duration_from_value(None) == 1
    assert estimate_duration_from_value(-5000) == 1


def test_falls_back_to_contracted_value():
    assert estimate_duration(Job(value_estimated=0, value_contracted=10000)) == 5


def test_custom_rate():
    assert estimate_duration_from_value(9000, value_per_day=3000) == 3
