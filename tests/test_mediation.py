from __future__ import annotations

import json

import numpy as np
import pandas as pd
import pytest

from conftest import closed_form_paths
from repmed import BootstrapConfig, MediationAnalysis, run_mediation
from repmed.errors import InvalidInputError, SingularDesignError
from repmed.statistical.intervals import METHODS

COLS = ("M1", "M2", "Y1", "Y2")


def small_config(**kwargs) -> BootstrapConfig:
    params = dict(replications=400, seed=2024, block_size=100)
    params.update(kwargs)
    return BootstrapConfig(**params)


class TestWorkedExample:
    def test_basic_interval(self, worked_frame, worked_raw):
        result = run_mediation(
            worked_frame, *COLS, replications=10000, confidence_levels=[0.95], methods=["basic"], seed=42
        )
        a, b = closed_form_paths(worked_raw)
        assert round(result.estimate, 6) == round(a * b, 6)
        assert result.a == pytest.approx(a)
        assert result.b == pytest.approx(b)
        ci = result.interval("basic", 0.95)
        assert ci.lower < ci.upper
        # the interval reaches the side of zero the estimate lies on
        assert result.estimate > 0
        assert ci.upper > 0
        assert ci.estimate == result.estimate
        assert result.n_subjects == 10
        assert result.replications_used + result.discarded == 10000


class TestMediationAnalysis:
    def test_all_methods(self, synthetic_frame):
        cfg = small_config(variance_estimator="sobel")
        result = MediationAnalysis(cfg).run(synthetic_frame, *COLS, methods=list(METHODS))
        assert result.errors == {}
        assert sorted(ci.method for ci in result.intervals) == sorted(METHODS)
        assert result.estimate > 0
        for ci in result.intervals:
            assert ci.lower < ci.upper

    def test_same_seed_same_intervals(self, synthetic_frame):
        cfg = small_config(max_workers=1)
        first = MediationAnalysis(cfg).run(synthetic_frame, *COLS, methods=["percentile", "bca"])
        cfg = small_config(max_workers=4)
        second = MediationAnalysis(cfg).run(synthetic_frame, *COLS, methods=["percentile", "bca"])
        assert [ci.to_dict() for ci in first.intervals] == [ci.to_dict() for ci in second.intervals]

    def test_three_levels_nested(self, synthetic_frame):
        result = MediationAnalysis(small_config()).run(
            synthetic_frame, *COLS, confidence_levels=[0.99, 0.8, 0.9], methods=["percentile"]
        )
        assert len(result.intervals) == 3
        rows = sorted(result.intervals, key=lambda ci: ci.level)
        for inner, outer in zip(rows, rows[1:]):
            assert outer.lower < inner.lower
            assert inner.upper < outer.upper

    def test_studentized_without_estimator_is_reported(self, synthetic_frame):
        result = MediationAnalysis(small_config()).run(
            synthetic_frame, *COLS, methods=["basic", "studentized"]
        )
        assert "UnsupportedMethodError" in result.errors["studentized"]
        assert [ci.method for ci in result.intervals] == ["basic"]
        with pytest.raises(KeyError):
            result.interval("studentized", 0.95)

    def test_method_names_are_normalised(self, synthetic_frame):
        result = MediationAnalysis(small_config()).run(
            synthetic_frame, *COLS, methods=["Basic", "basic", " NORMAL "]
        )
        assert [ci.method for ci in result.intervals] == ["basic", "normal"]

    def test_deadline_marks_result_truncated(self, synthetic_frame):
        cfg = small_config(replications=50, block_size=10, max_workers=1, deadline_seconds=0)
        result = MediationAnalysis(cfg).run(synthetic_frame, *COLS)
        assert result.truncated
        assert result.replications_used == 10
        assert result.replications_requested == 50

    def test_singular_full_sample(self):
        frame = pd.DataFrame({"M1": [1.0, 2.0, 3.0, 4.0], "M2": [2.0, 3.0, 4.0, 5.0],
                              "Y1": [0.0, 1.0, 0.5, 2.0], "Y2": [1.0, 1.5, 2.0, 2.5]})
        with pytest.raises(SingularDesignError):
            MediationAnalysis(small_config()).run(frame, *COLS)

    def test_result_serialisation(self, synthetic_frame):
        result = MediationAnalysis(small_config()).run(
            synthetic_frame, *COLS, methods=["basic", "normal"], confidence_levels=[0.9, 0.95]
        )
        frame = result.to_frame()
        assert list(frame.columns) == ["method", "level", "lower", "upper", "estimate"]
        assert len(frame) == 4
        payload = json.loads(json.dumps(result.to_dict()))
        assert payload["seed"] == 2024
        assert payload["intervals"][0]["method"] == "basic"


class TestValidation:
    @pytest.mark.parametrize(
        "kwargs",
        [
            {"replications": 0},
            {"replications": 2.5},
            {"confidence_levels": [1.2]},
            {"confidence_levels": [0.0]},
            {"methods": ["jackknife"]},
            {"methods": []},
        ],
    )
    def test_bad_options(self, synthetic_frame, kwargs):
        with pytest.raises(InvalidInputError):
            MediationAnalysis(small_config()).run(synthetic_frame, *COLS, **kwargs)

    @pytest.mark.parametrize("seed", [-5, 1.5, "7"])
    def test_bad_seed(self, synthetic_frame, seed):
        with pytest.raises(InvalidInputError, match="seed"):
            MediationAnalysis(small_config()).run(synthetic_frame, *COLS, seed=seed)

    def test_bad_config(self, synthetic_frame):
        with pytest.raises(InvalidInputError):
            MediationAnalysis(small_config(singular_policy="ignore")).run(synthetic_frame, *COLS)
        with pytest.raises(InvalidInputError):
            MediationAnalysis(small_config(variance_estimator="delta2")).run(synthetic_frame, *COLS)

    def test_missing_column(self, synthetic_frame):
        with pytest.raises(InvalidInputError):
            MediationAnalysis(small_config()).run(synthetic_frame, "M1", "M2", "Y1", "Y3")

    def test_missing_values(self, synthetic_frame):
        frame = synthetic_frame.copy()
        frame.loc[4, "Y1"] = np.nan
        with pytest.raises(InvalidInputError):
            MediationAnalysis(small_config()).run(frame, *COLS)

    def test_unknown_override(self, synthetic_frame):
        with pytest.raises(InvalidInputError):
            run_mediation(synthetic_frame, *COLS, config=small_config(), n_jobs=3)

    def test_config_override(self, synthetic_frame):
        result = run_mediation(
            synthetic_frame, *COLS, config=small_config(), replications=120, block_size=30
        )
        assert result.replications_requested == 120
