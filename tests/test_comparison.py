import itertools

import pytest

from conftest import make_fitted
from econ_forecaster_src.comparison_utils import COMPARISON_COLUMNS, best_model, compare_models, differencing_groups
from econ_forecaster_src.series import ModelSpec


@pytest.fixture
def models():
    return [
        make_fitted(ModelSpec(p=0, d=1, q=1, P=0, D=1, Q=1, s=12), aic=-410.0),
        make_fitted(ModelSpec(p=1, d=1, q=0, P=1, D=1, Q=0, s=12), aic=-395.5),
        make_fitted(ModelSpec(p=1, d=1, q=1, P=0, D=1, Q=1, s=12), aic=-409.0),
        make_fitted(ModelSpec(p=2, d=1, q=0, P=0, D=1, Q=1, s=12), aic=-402.0),
    ]


def test_columns_and_content(models):
    table = compare_models(models)
    assert list(table.columns) == COMPARISON_COLUMNS
    assert len(table) == len(models)
    first = table.iloc[0]
    assert first["model"] == "ARIMA(0,1,1)(0,1,1)[12]"
    assert first["order"] == (0, 1, 1)
    assert first["seasonal_order"] == (0, 1, 1)
    assert first["k"] == 3


def test_sorted_by_aicc_for_every_permutation(models):
    for perm in itertools.permutations(models):
        table = compare_models(perm)
        assert table["AICc"].is_monotonic_increasing
        assert table.iloc[0]["model"] == "ARIMA(0,1,1)(0,1,1)[12]"


def test_ties_keep_input_order():
    a = make_fitted(ModelSpec(p=1, d=1, q=0), aic=10.0)
    b = make_fitted(ModelSpec(p=0, d=1, q=1), aic=10.0)
    assert a.aicc == b.aicc
    assert list(compare_models([a, b])["model"]) == [a.label, b.label]
    assert list(compare_models([b, a])["model"]) == [b.label, a.label]
    assert best_model([b, a]) is b


def test_empty_input():
    table = compare_models([])
    assert table.empty
    assert list(table.columns) == COMPARISON_COLUMNS
    with pytest.raises(ValueError):
        best_model([])


def test_inputs_are_not_modified(models):
    before = [(m.aicc, m.label) for m in models]
    compare_models(models)
    assert [(m.aicc, m.label) for m in models] == before


def test_best_model_within_differencing_group():
    seasonal = make_fitted(ModelSpec(p=0, d=1, q=1, P=0, D=1, Q=1, s=12), aic=10.0)
    plain = make_fitted(ModelSpec(p=1, d=1, q=0, s=12), aic=-50.0)
    other = make_fitted(ModelSpec(p=1, d=1, q=1, P=0, D=1, Q=1, s=12), aic=12.0)
    models = [seasonal, plain, other]

    assert differencing_groups(models) == [(1, 1), (1, 0)]
    assert best_model(models) is plain
    assert best_model(models, differencing=(1, 1)) is seasonal
    with pytest.raises(ValueError):
        best_model(models, differencing=(2, 1))
