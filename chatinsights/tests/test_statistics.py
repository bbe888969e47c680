import pytest

from chatinsights.features.insights.statistics import (
    coefficient_of_variation,
    consistency_score,
    mean,
    percent_change,
    population_stddev,
    trend_slope,
)


def test_mean_and_population_stddev():
    values = [50] * 9 + [300]
    assert mean(values) == 75
    assert population_stddev(values) == pytest.approx(75)


def test_empty_series_is_zero():
    assert mean([]) == 0
    assert population_stddev([]) == 0
    assert trend_slope([]) == 0


def test_coefficient_of_variation_zero_mean():
    assert coefficient_of_variation([0, 0, 0]) == 0


def test_trend_slope():
    assert trend_slope([10, 10, 25]) == pytest.approx(7.5)
    assert trend_slope([5]) == 0
    assert trend_slope([3, 3, 3, 3]) == 0


def test_consistency_score_bounds():
    assert consistency_score([10, 0]) == 100
    assert consistency_score([20] * 7) == 100
    assert consistency_score([10, 0] * 5) == pytest.approx(40)
    assert consistency_score([0, 0, 0, 0, 0, 0, 500]) == 0


def test_percent_change():
    assert percent_change(25, 10) == pytest.approx(150)
    assert percent_change(5, 0) == 0
