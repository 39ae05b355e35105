# src/ciel/core/integrators.py
"""
Fixed-step integrators and gravity kernels shared by the engines.

- ``rk4_step``: classical 4th-order Runge-Kutta for first-order 3D flows,
  vectorized over any leading batch shape (``state[..., 3]``).
- ``velocity_verlet_step``: symplectic update for massive bodies.
- ``semi_implicit_euler_step``: cheap update for massless tracers.
- ``explicit_euler_step``: naive reference integrator (energy drifts).

The pairwise loops are JIT-compiled with Numba; the RK4 path stays in numpy
because the vector fields are plain Python callables.
"""

from __future__ import annotations

from typing import Callable, Mapping, Tuple, Union

import numpy as np
from numba import njit

ArrayLike = Union[float, np.ndarray]
Derivative = Callable[[ArrayLike, ArrayLike, ArrayLike, Mapping[str, ArrayLike]], Tuple[ArrayLike, ArrayLike, ArrayLike]]

__all__ = [
    "evaluate_field",
    "rk4_step",
    "is_diverged",
    "pairwise_accelerations",
    "field_accelerations",
    "velocity_verlet_step",
    "semi_implicit_euler_step",
    "explicit_euler_step",
    "total_energy",
]

# =============================================================================
# FIRST-ORDER FLOWS (RK4)
# =============================================================================

def evaluate_field(derivative: Derivative, state: np.ndarray, params: Mapping[str, ArrayLike]) -> np.ndarray:
    """Evaluate a vector field on ``state[..., 3]`` and stack the result."""
    dx, dy, dz = derivative(state[..., 0], state[..., 1], state[..., 2], params)
    return np.stack(np.broadcast_arrays(dx, dy, dz), axis=-1)


def rk4_step(derivative: Derivative, state: np.ndarray, params: Mapping[str, ArrayLike], dt: float) -> np.ndarray:
    """Advance ``state`` by one RK4 step of size ``dt`` and return the new state.

    Parameter values may be scalars or arrays broadcastable against
    ``state[..., 0]`` (one value per batch entry).
    """
    k1 = evaluate_field(derivative, state, params)
    k2 = evaluate_field(derivative, state + k1 * (dt * 0.5), params)
    k3 = evaluate_field(derivative, state + k2 * (dt * 0.5), params)
    k4 = evaluate_field(derivative, state + k3 * dt, params)
    return state + (dt / 6.0) * (k1 + 2.0 * k2 + 2.0 * k3 + k4)


def is_diverged(state: np.ndarray, limit: float = np.inf) -> np.ndarray:
    """Boolean mask over the batch: any coordinate non-finite or beyond ``limit``."""
    with np.errstate(invalid="ignore"):
        bad = ~np.isfinite(state) | (np.abs(state) > limit)
    return bad.any(axis=-1)

# =============================================================================
# GRAVITY KERNELS (JIT-COMPILED)
# =============================================================================

@njit(cache=True)
def pairwise_accelerations(pos: np.ndarray, masses: np.ndarray, G: float, eps2: float, out: np.ndarray) -> np.ndarray:
    """Softened Newtonian acceleration on every body from every other body.

    a_i = Σ_{j≠i} G m_j (r_j - r_i) / (|r_j - r_i|² + ε²)^{3/2}
    """
    n = pos.shape[0]
    for i in range(n):
        ax = 0.0
        ay = 0.0
        for j in range(n):
            if j == i:
                continue
            dx = pos[j, 0] - pos[i, 0]
            dy = pos[j, 1] - pos[i, 1]
            r2 = dx * dx + dy * dy + eps2
            inv_r3 = G * masses[j] / (r2 * np.sqrt(r2))
            ax += dx * inv_r3
            ay += dy * inv_r3
        out[i, 0] = ax
        out[i, 1] = ay
    return out


@njit(cache=True)
def field_accelerations(points: np.ndarray, body_pos: np.ndarray, masses: np.ndarray,
                        G: float, eps2: float, out: np.ndarray) -> np.ndarray:
    """Acceleration of massless test points in the field of the bodies (no back-reaction)."""
    n_points = points.shape[0]
    n_bodies = body_pos.shape[0]
    for d in range(n_points):
        ax = 0.0
        ay = 0.0
        for j in range(n_bodies):
            dx = body_pos[j, 0] - points[d, 0]
            dy = body_pos[j, 1] - points[d, 1]
            r2 = dx * dx + dy * dy + eps2
            inv_r3 = G * masses[j] / (r2 * np.sqrt(r2))
            ax += dx * inv_r3
            ay += dy * inv_r3
        out[d, 0] = ax
        out[d, 1] = ay
    return out


def velocity_verlet_step(pos: np.ndarray, vel: np.ndarray, acc: np.ndarray, masses: np.ndarray,
                         G: float, eps2: float, dt: float) -> None:
    """In-place velocity-Verlet step; ``acc`` must hold the accelerations at ``pos``.

    On return ``acc`` holds the accelerations at the new positions.
    """
    # 1. Full position step from current velocity and acceleration.
    pos += vel * dt + 0.5 * acc * dt * dt
    # 2. Acceleration at the new positions.
    old_acc = acc.copy()
    pairwise_accelerations(pos, masses, G, eps2, acc)
    # 3. Velocity step with the average of old and new accelerations.
    vel += 0.5 * (old_acc + acc) * dt


def semi_implicit_euler_step(pos: np.ndarray, vel: np.ndarray, acc: np.ndarray, dt: float) -> None:
    """In-place symplectic Euler: velocity first, then position with the new velocity."""
    vel += acc * dt
    pos += vel * dt


def explicit_euler_step(pos: np.ndarray, vel: np.ndarray, masses: np.ndarray,
                        G: float, eps2: float, dt: float) -> None:
    """In-place forward Euler. Kept as the non-symplectic baseline."""
    acc = pairwise_accelerations(pos, masses, G, eps2, np.empty_like(pos))
    pos += vel * dt
    vel += acc * dt


@njit(cache=True)
def _potential_energy(pos: np.ndarray, masses: np.ndarray, G: float, eps2: float) -> float:
    n = pos.shape[0]
    energy = 0.0
    for i in range(n):
        for j in range(i + 1, n):
            dx = pos[j, 0] - pos[i, 0]
            dy = pos[j, 1] - pos[i, 1]
            energy -= G * masses[i] * masses[j] / np.sqrt(dx * dx + dy * dy + eps2)
    return energy


def total_energy(pos: np.ndarray, vel: np.ndarray, masses: np.ndarray, G: float, eps2: float) -> float:
    """Kinetic plus softened potential energy of the body set."""
    kinetic = 0.5 * float(np.sum(masses * np.sum(vel * vel, axis=1)))
    return kinetic + float(_potential_energy(pos, masses, G, eps2))
