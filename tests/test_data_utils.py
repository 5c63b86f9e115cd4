from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from conftest import write_bls_table
from econ_forecaster_src.data_utils import available_series_ids, load_series_frame, load_series_table
from econ_forecaster_src.exceptions import DataFormatError
from econ_forecaster_src.series import TimeSeries


def _frame(rows, columns=("series_id", "year", "period", "value")):
    return pd.DataFrame(list(rows), columns=list(columns)).astype(str)


def test_load_bls_table_excludes_annual_average(tmp_path: Path):
    series = TimeSeries(np.linspace(100.0, 112.0, 24), start=(2018, 1), frequency=12, name="CUUR0000SA0")
    # M13 rows hold annual averages and must be dropped
    path = write_bls_table(
        tmp_path / "cu.data.tsv", series,
        extra_rows=[("CUUR0000SA0      ", 2018, "M13", "   106.000", ""),
                    ("CUUR0000AA0      ", 2018, "M01", "   50.000", "")],
    )

    out = load_series_table(path, "CUUR0000SA0")

    assert out.frequency == 12
    assert len(out) == 24
    assert out.start == pd.Period("2018-01", freq="M")
    assert out.name == "CUUR0000SA0"
    np.testing.assert_allclose(out.values, np.round(series.values, 3))


def test_rows_are_ordered_chronologically():
    df = _frame([
        ("X", "2020", "Q03", "3"),
        ("X", "2020", "Q01", "1"),
        ("X", "2020", "Q04", "4"),
        ("X", "2020", "Q02", "2"),
        ("X", "2020", "Q05", "2.5"),
    ])
    out = load_series_frame(df, "X")
    assert out.frequency == 4
    assert list(out.values) == [1.0, 2.0, 3.0, 4.0]
    assert out.start == pd.Period("2020Q1", freq="Q")


def test_periods_with_embedded_year():
    df = _frame([("X", "2019M11", "1"), ("X", "2019-M12", "2"), ("X", "2020M01", "3")],
                columns=("series_id", "period", "value"))
    out = load_series_frame(df, "X")
    assert list(out.values) == [1.0, 2.0, 3.0]
    assert out.start == pd.Period("2019-11", freq="M")


def test_gap_raises():
    df = _frame([("X", "2020", "M01", "1"), ("X", "2020", "M02", "2"), ("X", "2020", "M04", "4")])
    with pytest.raises(DataFormatError, match="not contiguous"):
        load_series_frame(df, "X")


def test_duplicate_period_raises():
    df = _frame([("X", "2020", "M01", "1"), ("X", "2020", "M01", "1.5"), ("X", "2020", "M02", "2")])
    with pytest.raises(DataFormatError, match="Duplicated"):
        load_series_frame(df, "X")


def test_missing_series_raises_with_id():
    df = _frame([("X", "2020", "M01", "1")])
    with pytest.raises(DataFormatError) as excinfo:
        load_series_frame(df, "Y")
    assert excinfo.value.series_id == "Y"


def test_missing_columns_raise():
    df = pd.DataFrame({"series_id": ["X"], "period": ["M01"]})
    with pytest.raises(DataFormatError, match="missing required columns"):
        load_series_frame(df, "X")


def test_non_numeric_value_raises():
    df = _frame([("X", "2020", "M01", "1"), ("X", "2020", "M02", "-")])
    with pytest.raises(DataFormatError, match="Non-numeric"):
        load_series_frame(df, "X")


def test_mixed_frequencies_raise():
    df = _frame([("X", "2020", "M01", "1"), ("X", "2020", "Q01", "2")])
    with pytest.raises(DataFormatError, match="Mixed"):
        load_series_frame(df, "X")


def test_bad_period_code_raises():
    df = _frame([("X", "2020", "S01", "1")])
    with pytest.raises(DataFormatError, match="Unrecognised period"):
        load_series_frame(df, "X")


def test_comma_and_whitespace_tables(tmp_path: Path):
    csv_path = tmp_path / "data.csv"
    csv_path.write_text("series_id,year,period,value\nX,2020,Q01,1.5\nX,2020,Q02,2.5\n", encoding="utf-8")
    ws_path = tmp_path / "data.txt"
    ws_path.write_text("series_id year period value\nX 2020 Q01 1.5\nX 2020 Q02 2.5\n", encoding="utf-8")

    for path in (csv_path, ws_path):
        out = load_series_table(path, "X")
        assert list(out.values) == [1.5, 2.5]


def test_missing_file_raises(tmp_path: Path):
    with pytest.raises(DataFormatError, match="not found"):
        load_series_table(tmp_path / "nope.tsv", "X")


def test_available_series_ids():
    df = pd.DataFrame({"series_id ": [" B ", "A", "B"], "value": [1, 2, 3]})
    assert available_series_ids(df) == ["A", "B"]
