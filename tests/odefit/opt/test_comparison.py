########################################################################################
##
##                                  TESTS FOR
##                        'opt/comparison.py' and 'reporting.py'
##
########################################################################################

# IMPORTS ==============================================================================

import numpy as np
import pandas as pd
import pytest

from odefit.errors import ConfigurationError, FitFailure, IntegrationFailure
from odefit.models import exponential_growth, logistic_growth
from odefit.opt import (
    ComparisonResult,
    FitConfig,
    FitEngine,
    FitResult,
    ModelSpec,
    Trajectory,
    compare_datasets,
    compare_models,
    compare_models_dict,
    fit_datasets,
    fit_three_datasets,
    select_best,
)
from odefit.reporting import predictions_path


# ═══════════════════════════════════════════════════════════════════════════
# Helpers / Fixtures
# ═══════════════════════════════════════════════════════════════════════════

T = np.linspace(0.0, 5.0, 6)
Y = 2.0 * np.exp(0.3 * T)


def _result(label, params, bic, ssr=1.0, n=7):
    t = np.linspace(0.0, 5.0, n)
    return FitResult(
        params=np.asarray(params, dtype=float),
        bic=bic,
        ssr=ssr,
        trajectory=Trajectory(t, np.exp(t)),
        label=label,
    )


class _StubEngine(FitEngine):
    """FitEngine whose unit fits return canned BIC values without optimizing."""

    def __init__(self, bics, fail=(), n_points=None):
        super().__init__(FitConfig())
        self.bics = bics
        self.fail = set(fail)
        self.n_points = n_points or {}
        self.calls = []
        self.solvers = {}

    def run_single_fit(self, spec, data, *, label=None, default_solver=None, show_stats=False):
        self.calls.append(label)
        self.solvers[label] = spec.solver or default_solver or self.config.solver
        if label in self.fail:
            raise FitFailure(label, IntegrationFailure("diverged"))
        return _result(label, spec.initial_guess, self.bics[label], n=self.n_points.get(label, 7))


def _spec(guess=(0.1,), model=exponential_growth, **kwargs):
    return ModelSpec(model, list(guess), bounds=[(0.0, 1.0)] * len(guess), **kwargs)


# ═══════════════════════════════════════════════════════════════════════════
# select_best tests
# ═══════════════════════════════════════════════════════════════════════════

class TestSelectBest:

    def test_minimum_bic(self):
        fits = {"a": _result("a", [1], 5.0), "b": _result("b", [1], -2.0)}
        assert select_best(fits) == "b"

    def test_tie_goes_to_first(self):
        fits = {"x": _result("x", [1], 3.0), "y": _result("y", [1], 3.0)}
        assert select_best(fits) == "x"

    def test_empty(self):
        assert select_best({}) is None


# ═══════════════════════════════════════════════════════════════════════════
# Model vs model
# ═══════════════════════════════════════════════════════════════════════════

class TestCompareModels:

    def test_lower_bic_wins(self):
        engine = _StubEngine({"m1": 10.0, "m2": 12.0})
        res = compare_models((T, Y), "m1", _spec(), "m2", _spec(), engine=engine)
        assert res.best == "m1"
        assert res.best_fit is res["m1"]
        assert list(res) == ["m1", "m2"]

    def test_second_model_can_win(self):
        engine = _StubEngine({"m1": 12.0, "m2": 10.0})
        res = compare_models((T, Y), "m1", _spec(), "m2", _spec(), engine=engine)
        assert res.best == "m2"

    @pytest.mark.parametrize("first, second", [("m1", "m2"), ("m2", "m1")])
    def test_tie_goes_to_first_argument(self, first, second):
        engine = _StubEngine({"m1": 10.0, "m2": 10.0})
        res = compare_models((T, Y), first, _spec(), second, _spec(), engine=engine)
        assert res.best == first

    def test_failure_is_raised(self):
        engine = _StubEngine({"m1": 1.0, "m2": 2.0}, fail={"m2"})
        with pytest.raises(FitFailure):
            compare_models((T, Y), "m1", _spec(), "m2", _spec(), engine=engine)

    def test_bad_fixed_index_fails_before_fitting(self):
        engine = _StubEngine({"m1": 1.0, "m2": 2.0})
        bad = _spec(fixed_params={7: 1.0})
        with pytest.raises(ConfigurationError):
            compare_models((T, Y), "m1", _spec(), "m2", bad, engine=engine)
        assert engine.calls == []

    def test_duplicate_names_raise(self):
        with pytest.raises(ConfigurationError):
            compare_models((T, Y), "m", _spec(), "m", _spec(), engine=_StubEngine({}))

    def test_engine_and_config_conflict(self):
        with pytest.raises(ConfigurationError):
            compare_models(
                (T, Y), "a", _spec(), "b", _spec(),
                engine=_StubEngine({}), config=FitConfig(),
            )

    def test_writes_summary_csv(self, tmp_path):
        engine = _StubEngine({"m1": 10.0, "m2": 12.0})
        out = tmp_path / "model_comparison.csv"
        compare_models((T, Y), "m1", _spec(), "m2", _spec(), engine=engine, output_csv=out)

        df = pd.read_csv(out)
        assert list(df.columns) == ["Model", "Params", "BIC", "SSR"]
        assert list(df["Model"]) == ["m1", "m2"]
        assert list(df["BIC"]) == [10.0, 12.0]

    def test_show_stats_prints_each_model(self, capsys):
        engine = _StubEngine({"m1": 10.0, "m2": 12.0})
        compare_models((T, Y), "m1", _spec(), "m2", _spec(), engine=engine, show_stats=True)
        out = capsys.readouterr().out
        assert "=== m1 ===" in out
        assert "=== m2 ===" in out
        assert out.index("=== m1 ===") < out.index("=== m2 ===")


# ═══════════════════════════════════════════════════════════════════════════
# Dataset vs dataset
# ═══════════════════════════════════════════════════════════════════════════

class TestCompareDatasets:

    def test_side_by_side_without_winner(self, tmp_path):
        engine = _StubEngine({"d1": 1.0, "d2": 0.5})
        out = tmp_path / "dataset_comparison.csv"
        res = compare_datasets(
            (T, Y), "d1", _spec(), (T, 2 * Y), "d2", engine=engine, output_csv=out
        )
        assert res.best is None
        assert res.label_column == "Dataset"
        assert set(res) == {"d1", "d2"}
        assert list(pd.read_csv(out).columns) == ["Dataset", "Params", "BIC", "SSR"]

    def test_second_spec_defaults_to_first(self):
        engine = _StubEngine({"d1": 1.0, "d2": 2.0})
        res = compare_datasets((T, Y), "d1", _spec([0.2]), (T, Y), "d2", engine=engine)
        np.testing.assert_array_equal(res["d2"].params, [0.2])

    def test_malformed_dataset_raises(self):
        with pytest.raises(ConfigurationError):
            compare_datasets(
                (T, Y), "d1", _spec(), ([0, 1], [1, 2, 3]), "d2", engine=_StubEngine({"d1": 1.0})
            )


# ═══════════════════════════════════════════════════════════════════════════
# Named collection
# ═══════════════════════════════════════════════════════════════════════════

class TestCompareModelsDict:

    def test_two_rows_and_prediction_count(self):
        engine = _StubEngine({"A": 3.0, "B": 1.0}, n_points={"A": 5, "B": 9})
        specs = {"B": _spec(), "A": _spec()}
        res = compare_models_dict((T, Y), specs, engine=engine)

        table = res.summary_table()
        assert len(table) == 2
        assert set(table["Model"]) == {"A", "B"}

        preds = res.predictions_table()
        assert list(preds.columns) == ["Model", "Time", "Prediction"]
        assert len(preds) == sum(len(res[k].trajectory) for k in ("A", "B"))
        assert len(preds) == 14
        assert res.best == "B"

    def test_order_is_deterministic(self):
        engine = _StubEngine({"a": 1.0, "b": 1.0, "c": 1.0})
        res = compare_models_dict((T, Y), {"c": _spec(), "a": _spec(), "b": _spec()}, engine=engine)
        assert engine.calls == ["a", "b", "c"]
        assert list(res.summary_table()["Model"]) == ["a", "b", "c"]
        assert res.best == "a"

    def test_failure_is_isolated(self):
        engine = _StubEngine({"A": 3.0, "B": 1.0}, fail={"B"})
        res = compare_models_dict((T, Y), {"A": _spec(), "B": _spec()}, engine=engine)
        assert list(res) == ["A"]
        assert list(res.failures) == ["B"]
        assert res.best == "A"

    def test_all_failing(self):
        engine = _StubEngine({}, fail={"A", "B"})
        res = compare_models_dict((T, Y), {"A": _spec(), "B": _spec()}, engine=engine)
        assert len(res) == 0
        assert res.best is None
        assert res.best_fit is None
        assert len(res.summary_table()) == 0

    def test_solver_override(self):
        engine = _StubEngine({"A": 1.0, "B": 2.0})
        specs = {"A": _spec(solver="Radau"), "B": _spec()}
        compare_models_dict((T, Y), specs, engine=engine, default_solver="BDF")
        assert engine.solvers == {"A": "Radau", "B": "BDF"}

    def test_writes_summary_and_predictions(self, tmp_path):
        engine = _StubEngine({"A": 3.0, "B": 1.0})
        out = tmp_path / "all_models_comparison.csv"
        compare_models_dict((T, Y), {"A": _spec(), "B": _spec()}, engine=engine, output_csv=out)

        assert out.exists()
        pred_file = tmp_path / "all_models_comparison_predictions.csv"
        assert pred_file.exists()
        assert len(pd.read_csv(pred_file)) == 14

    def test_empty_specs_raise(self):
        with pytest.raises(ConfigurationError):
            compare_models_dict((T, Y), {}, engine=_StubEngine({}))

    def test_non_spec_entry_raises(self):
        with pytest.raises(ConfigurationError, match="ModelSpec"):
            compare_models_dict((T, Y), {"A": (exponential_growth, [0.1])}, engine=_StubEngine({}))


# ═══════════════════════════════════════════════════════════════════════════
# N datasets, one model
# ═══════════════════════════════════════════════════════════════════════════

class TestFitDatasets:

    def test_forced_failure_excluded_from_statistics(self):
        engine = _StubEngine({"d1": 1.0, "d3": 3.0}, fail={"d2"})
        res, summary = fit_datasets(
            [(T, Y)] * 3, _spec([0.4]), names=["d1", "d2", "d3"], engine=engine
        )
        assert summary.n_successful == 2
        assert summary.n_total == 3
        np.testing.assert_allclose(summary.mean_params, [0.4])
        assert res.best is None
        assert set(res) == {"d1", "d3"}
        assert list(res.failures) == ["d2"]

    def test_three_dataset_wrapper(self, tmp_path):
        engine = _StubEngine({"x": 1.0, "y": 2.0, "z": 3.0})
        out = tmp_path / "three_datasets_comparison.csv"
        res, summary = fit_three_datasets(
            (T, Y), "x", (T, Y), "y", (T, Y), "z", _spec(), engine=engine, output_csv=out
        )
        assert engine.calls == ["x", "y", "z"]
        assert summary.n_successful == 3
        assert list(pd.read_csv(out)["Dataset"]) == ["x", "y", "z"]

    def test_invalid_spec_fails_fast(self):
        engine = _StubEngine({})
        with pytest.raises(ConfigurationError):
            fit_datasets([(T, Y)], _spec(fixed_params={0: 1.0}), engine=engine)
        assert engine.calls == []


# ═══════════════════════════════════════════════════════════════════════════
# Reporting helpers
# ═══════════════════════════════════════════════════════════════════════════

class TestReporting:

    def test_predictions_path(self, tmp_path):
        assert predictions_path("out/results.csv").name == "results_predictions.csv"
        assert predictions_path("results").name == "results_predictions.csv"

    def test_comparison_mapping_behaviour(self):
        res = ComparisonResult({"a": _result("a", [1.0], 2.0)}, best="a")
        assert "a" in res
        assert len(res) == 1
        assert res["a"].bic == 2.0


# ═══════════════════════════════════════════════════════════════════════════
# End-to-end comparison with the real engine
# ═══════════════════════════════════════════════════════════════════════════

class TestEndToEndComparison:

    def test_exponential_beats_logistic_on_exponential_data(self):
        t = np.linspace(0.0, 8.0, 12)
        y = 2.0 * np.exp(0.25 * t)
        cfg = FitConfig(max_time=30.0, max_iterations=60, popsize=8, seed=3,
                        search_rtol=1e-8, search_atol=1e-10, n_dense=100)

        res = compare_models(
            (t, y),
            "exponential", ModelSpec(exponential_growth, [0.1], bounds=[(0.0, 1.0)]),
            "logistic", ModelSpec(logistic_growth, [0.1, 50.0], bounds=[(0.0, 1.0), (1.0, 1e4)]),
            config=cfg,
        )
        assert res["exponential"].params[0] == pytest.approx(0.25, rel=0.05)
        assert res["exponential"].ssr < 1e-3
        assert len(res["logistic"].trajectory) == 100
