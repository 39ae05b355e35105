"""Tests for ciel.engines.bifurcation

Sweeps here use a handful of samples and short windows; the full-size
defaults are only exercised through the CLI.
"""

import numpy as np
import pandas as pd
import pytest

from ciel.core.definitions import ATTRACTORS_DICT, ActionDef, AttractorDefinition, BifurcationSpec, ParamDef
from ciel.engines.bifurcation import (
    BifurcationPoint,
    bifurcation_to_dataframe,
    compute_bifurcation,
    plot_bifurcation,
)

SMALL = dict(steps=8, warmup=400, collect=600)


def _runaway(x, y, z, p):
    return p["k"] * x * x, p["k"] * y * y, p["k"] * z * z


RUNAWAY = AttractorDefinition(
    id="runaway",
    name="Runaway",
    params=[ParamDef(key="k", symbol="k", min=0, max=1, step=0.1, default=0.5)],
    actions=[ActionDef(id="reset", label="Reset")],
    derivative=_runaway,
    scale=1,
    center=(1, 1, 1),
    dt=0.1,
    bifurcation=BifurcationSpec(param_key="k", range=(0, 1), component=0),
)


def test_sweep_is_deterministic_for_a_seed():
    a = compute_bifurcation("lorenz", seed=123, **SMALL)
    b = compute_bifurcation("lorenz", seed=123, **SMALL)
    assert a == b
    assert len(a) > 0


def test_points_are_ordered_by_sample_and_on_the_grid():
    points = compute_bifurcation("lorenz", seed=1, **SMALL)
    assert all(isinstance(p, BifurcationPoint) for p in points)
    params = [p.param for p in points]
    assert params == sorted(params)
    grid = 0 + np.arange(SMALL["steps"] + 1) * (200 / SMALL["steps"])
    assert set(params) <= set(grid.tolist())
    assert all(np.isfinite(p.value) for p in points)


def test_stable_fixed_point_produces_no_maxima():
    """Below ρ = 1 every Lorenz trajectory decays to the origin: no strict peaks."""
    defn = ATTRACTORS_DICT["lorenz"].model_copy(
        update={"bifurcation": BifurcationSpec(param_key="rho", range=(0.1, 0.5), component=2)}
    )
    assert compute_bifurcation(defn, seed=0, **SMALL) == []


def test_diverged_samples_are_skipped():
    assert compute_bifurcation(RUNAWAY, steps=10, warmup=200, collect=50, seed=0) == []


def test_external_generator_is_used():
    rng = np.random.default_rng(5)
    a = compute_bifurcation("thomas", rng=rng, steps=4, warmup=200, collect=400)
    b = compute_bifurcation("thomas", rng=np.random.default_rng(5), steps=4, warmup=200, collect=400)
    assert a == b


def test_unknown_attractor():
    with pytest.raises(KeyError):
        compute_bifurcation("gravity", steps=2)


def test_dataframe_and_plot(tmp_path):
    points = compute_bifurcation("aizawa", seed=2, steps=4, warmup=300, collect=600)
    df = bifurcation_to_dataframe(points)
    assert isinstance(df, pd.DataFrame)
    assert list(df.columns) == ["param", "value"]
    assert len(df) == len(points)

    path = plot_bifurcation(points, "aizawa", tmp_path / "plots" / "aizawa.png", current_value=0.95)
    assert path.exists()
    assert path.stat().st_size > 0


def test_empty_sweep_is_rejected():
    with pytest.raises(ValueError):
        compute_bifurcation("lorenz", steps=0)
