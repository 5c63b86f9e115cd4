import pytest

from econ_forecaster_src.exceptions import InvalidOrderError
from econ_forecaster_src.parsing_utils import (
    parse_candidate, parse_candidates, parse_intervals_arg, validate_log_level
)
from econ_forecaster_src.series import ModelSpec


def test_parse_seasonal_candidate():
    spec = parse_candidate("0,1,1:0,1,1", s=12)
    assert spec == ModelSpec(p=0, d=1, q=1, P=0, D=1, Q=1, s=12)
    assert spec.label == "ARIMA(0,1,1)(0,1,1)[12]"


def test_parse_candidate_tolerates_spaces_and_no_seasonal_part():
    assert parse_candidate(" 2, 1 ,0 ", s=4) == ModelSpec(p=2, d=1, q=0, s=4)


def test_seasonal_orders_dropped_without_period(caplog):
    spec = parse_candidate("1,1,0:1,1,0", s=1)
    assert (spec.P, spec.D, spec.Q) == (0, 0, 0)
    assert "Ignoring seasonal orders" in caplog.text


@pytest.mark.parametrize("text", ["", "1,1", "a,b,c", "1,1,1:1,1", "-1,0,0", "1;1;1"])
def test_bad_candidate_strings(text):
    with pytest.raises(InvalidOrderError):
        parse_candidate(text, s=12)


def test_parse_candidates_dedupes_in_order():
    specs = parse_candidates(["0,1,1:0,1,1", "1,1,0", "0,1,1:0,1,1"], s=12)
    assert [sp.label for sp in specs] == [
        "ARIMA(0,1,1)(0,1,1)[12]",
        "ARIMA(1,1,0)(0,0,0)[12] with drift",
    ]


def test_parse_intervals_arg():
    assert parse_intervals_arg("95,80") == [80, 95]
    assert parse_intervals_arg("50,150") == [50]
    assert parse_intervals_arg("junk") == [80, 95]
    assert parse_intervals_arg(None) == [80, 95]


def test_validate_log_level():
    assert validate_log_level("debug") == "DEBUG"
    with pytest.raises(ValueError):
        validate_log_level("verbose")
