import numpy as np
import pandas as pd
import pytest

from econ_forecaster_src.exceptions import DomainError
from econ_forecaster_src.series import TimeSeries
from econ_forecaster_src.transform_utils import (
    adf_select_D, adf_select_d, difference, difference_series, exp_transform,
    log_transform, undifference
)


def _monthly(values, start=(2020, 1)):
    return TimeSeries(values, start=start, frequency=12, name="y")


def test_first_difference_example():
    s = _monthly([100, 102, 101, 105, 107, 110, 108, 111])
    out = difference(s, lag=1)
    assert list(out.values) == [2, -1, 4, 2, 3, -2, 3]
    assert out.start == pd.Period("2020-02", freq="M")


@pytest.mark.parametrize("lag", [1, 4, 12])
def test_difference_of_constant_is_zero(lag):
    s = _monthly(np.full(30, 5.0))
    out = difference(s, lag=lag)
    assert len(out) == 30 - lag
    assert np.all(out.values == 0.0)


def test_repeated_difference_moves_start():
    s = _monthly(np.arange(20.0) ** 2)
    out = difference(s, lag=1, order=2)
    assert len(out) == 18
    assert np.allclose(out.values, 2.0)
    assert out.start == s.start + 2


@pytest.mark.parametrize("lag,order", [(0, 1), (1, 0), (-1, 1)])
def test_difference_rejects_bad_arguments(lag, order):
    with pytest.raises(ValueError):
        difference(_monthly(np.arange(10.0)), lag=lag, order=order)


def test_difference_rejects_short_series():
    with pytest.raises(ValueError, match="too short"):
        difference(_monthly([1.0, 2.0, 3.0]), lag=3)


@pytest.mark.parametrize("lag", [1, 4])
def test_undifference_reconstructs(lag):
    rng = np.random.default_rng(3)
    s = _monthly(rng.normal(50.0, 5.0, 24))
    rebuilt = undifference(difference(s, lag=lag), s.values[:lag], lag=lag)
    np.testing.assert_allclose(rebuilt.values, s.values)
    assert rebuilt.start == s.start


def test_log_exp_round_trip():
    s = _monthly([1.0, 10.0, 123.4, 0.5])
    np.testing.assert_allclose(exp_transform(log_transform(s)).values, s.values, rtol=1e-12)


def test_log_of_non_positive_raises():
    s = _monthly([3.0, 0.0, -1.0, 2.0])
    with pytest.raises(DomainError, match="2 non-positive") as excinfo:
        log_transform(s)
    assert "2020-02" in str(excinfo.value)


def test_difference_series_orders_non_seasonal_first():
    s = TimeSeries(np.arange(16.0) ** 2, start=(2000, 1), frequency=4)
    out = difference_series(s, d=1, D=1, s=4)
    expected = difference(difference(s, lag=1), lag=4)
    np.testing.assert_allclose(out.values, expected.values)
    assert len(out) == 16 - 1 - 4
    assert out.start == s.start + 5


def test_difference_series_requires_seasonal_period():
    s = TimeSeries(np.arange(16.0), start=(2000, 1), frequency=4)
    with pytest.raises(ValueError):
        difference_series(s, D=1, s=1)


def test_adf_heuristics():
    rng = np.random.default_rng(5)
    white = TimeSeries(rng.normal(size=200), start=(2000, 1), frequency=12)
    walk = TimeSeries(np.cumsum(1.0 + rng.normal(size=200)) + 50.0, start=(2000, 1), frequency=12)
    assert adf_select_d(white) == 0
    assert adf_select_d(walk) == 1
    # Too short for a seasonal test
    assert adf_select_D(TimeSeries(np.arange(20.0), start=(2000, 1), frequency=12), 12) == 0
