# src/ciel/engines/bifurcation.py
"""
Bifurcation sweep for the chaotic attractors.

For each of ``steps + 1`` evenly spaced values of the attractor's sweep
parameter a trajectory is seeded near the attractor center, warmed up, then
followed while every strict local maximum of one coordinate is recorded.
Plotting (parameter, maximum) pairs gives the familiar period-doubling tree.

All samples are integrated together as one ``(n_samples, 3)`` batch with the
swept parameter passed as an array. The sweep never touches engine state and
is reproducible for a fixed seed.
"""

from __future__ import annotations

import time
from pathlib import Path
from typing import List, NamedTuple, Optional, Sequence, Union

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from ciel.core.definitions import ATTRACTORS_DICT, AttractorDefinition, get_default_params
from ciel.core.integrators import rk4_step
from ciel.core.logging import logger
from ciel.core.utils import make_rng

STEPS = 800
WARMUP = 2000
COLLECT = 2000
SEED_SPREAD = 0.1


class BifurcationPoint(NamedTuple):
    param: float
    value: float


def _resolve(attractor: Union[str, AttractorDefinition]) -> AttractorDefinition:
    if isinstance(attractor, AttractorDefinition):
        return attractor
    try:
        return ATTRACTORS_DICT[str(attractor)]
    except KeyError:
        raise KeyError(f"Unknown attractor '{attractor}'. Known: {sorted(ATTRACTORS_DICT)}") from None


def compute_bifurcation(
    attractor: Union[str, AttractorDefinition],
    *,
    steps: int = STEPS,
    warmup: int = WARMUP,
    collect: int = COLLECT,
    seed=None,
    rng: Optional[np.random.Generator] = None,
) -> List[BifurcationPoint]:
    """Sweep the attractor's bifurcation parameter and collect local maxima.

    Args:
        attractor: An ``AttractorDefinition`` or its id.
        steps: Number of intervals; ``steps + 1`` parameter values are sampled.
        warmup: RK4 steps discarded before collecting. Samples that become
            non-finite here are dropped entirely.
        collect: Length of the collection window (``collect - 2`` candidate
            maxima per sample). A sample stops at its first non-finite state.
        seed: Seed for a fresh generator (ignored when ``rng`` is given).
        rng: Generator used for the initial jitter.

    Returns:
        Points ordered by sample, then by time within a sample.

    Raises:
        KeyError: If the attractor id is unknown.
        ValueError: If the sweep has no interval or the window is too short.
    """
    defn = _resolve(attractor)
    if steps < 1 or collect < 3:
        raise ValueError(f"Need steps >= 1 and collect >= 3, got steps={steps}, collect={collect}")
    rng = rng if rng is not None else make_rng(seed)
    sweep = defn.bifurcation
    p_min, p_max = sweep.range
    component = sweep.component

    t0 = time.time()
    n = int(steps) + 1
    param_values = p_min + np.arange(n) * ((p_max - p_min) / steps)
    params = get_default_params(defn)
    params[sweep.param_key] = param_values

    jitter = (rng.random((n, 3)) - 0.5) * SEED_SPREAD
    state = np.asarray(defn.center, dtype=np.float64) + jitter

    with np.errstate(over="ignore", invalid="ignore"):
        # --- Warm-up ---
        alive = np.ones(n, dtype=bool)
        for _ in range(warmup):
            state = rk4_step(defn.derivative, state, params, defn.dt)
            alive &= np.isfinite(state).all(axis=1)

        # --- Collection ---
        sample_chunks = []
        value_chunks = []
        active = alive.copy()
        prev2 = state[:, component].copy()
        state = rk4_step(defn.derivative, state, params, defn.dt)
        prev1 = state[:, component].copy()

        for _ in range(2, collect):
            state = rk4_step(defn.derivative, state, params, defn.dt)
            active &= np.isfinite(state).all(axis=1)
            if not active.any():
                break
            v = state[:, component]
            peak = active & (prev1 > prev2) & (prev1 > v)
            if peak.any():
                idx = np.flatnonzero(peak)
                sample_chunks.append(idx)
                value_chunks.append(prev1[idx])
            prev2 = prev1
            prev1 = v.copy()

    if sample_chunks:
        samples = np.concatenate(sample_chunks)
        values = np.concatenate(value_chunks)
        order = np.argsort(samples, kind="stable")
        samples, values = samples[order], values[order]
    else:
        samples = np.empty(0, dtype=np.int64)
        values = np.empty(0, dtype=np.float64)

    points = [BifurcationPoint(float(param_values[s]), float(v)) for s, v in zip(samples, values)]
    logger.info(
        f"Bifurcation '{defn.id}': {n} samples over {sweep.param_key} ∈ [{p_min}, {p_max}], "
        f"{int(n - alive.sum())} diverged, {len(points)} maxima in {time.time() - t0:.2f}s"
    )
    return points


def bifurcation_to_dataframe(points: Sequence[BifurcationPoint]) -> pd.DataFrame:
    """Points as a two-column frame (``param``, ``value``), order preserved."""
    return pd.DataFrame(list(points), columns=list(BifurcationPoint._fields))


def plot_bifurcation(
    points: Sequence[BifurcationPoint],
    attractor: Union[str, AttractorDefinition],
    path: Union[str, Path],
    current_value: Optional[float] = None,
) -> Path:
    """Scatter the diagram to ``path``; optionally mark the current parameter value."""
    defn = _resolve(attractor)
    sweep = defn.bifurcation
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    df = bifurcation_to_dataframe(points)
    plt.style.use('seaborn-v0_8-whitegrid')
    fig, ax = plt.subplots(figsize=(12, 8))

    if not df.empty:
        ax.scatter(df['param'], df['value'], s=0.5, color='black', alpha=0.07, linewidths=0)
    if current_value is not None:
        ax.axvline(current_value, color='tab:red', linestyle='--', linewidth=1, label=f'{sweep.param_key} = {current_value:g}')
        ax.legend(fontsize=11)

    symbol = next(p.symbol for p in defn.params if p.key == sweep.param_key)
    ax.set_xlim(*sweep.range)
    ax.set_xlabel(f'{symbol} ({sweep.param_key})', fontsize=12)
    ax.set_ylabel(f'local maxima of {"xyz"[sweep.component]}', fontsize=12)
    ax.set_title(f'{defn.name} Bifurcation Diagram', fontsize=14)

    fig.savefig(path, dpi=300, bbox_inches='tight', facecolor='white')
    plt.close(fig)
    return path


__all__ = [
    "BifurcationPoint",
    "compute_bifurcation",
    "bifurcation_to_dataframe",
    "plot_bifurcation",
]
