"""Tests for ciel.engines.gravity"""

import numpy as np
import pytest

from ciel.core.integrators import pairwise_accelerations
from ciel.engines.gravity import MAX_BODIES, Body, GravityEngine


@pytest.fixture
def engine(surface, driver):
    return GravityEngine(surface, scheduler=driver, seed=3, dust_count=100)


def test_initial_three_body_configuration(engine):
    """Three equal masses on a circle of radius 0.18·min(w, h) around the center."""
    bodies = engine.bodies
    assert len(bodies) == 3
    assert all(isinstance(b, Body) for b in bodies)
    assert all(b.mass == 200.0 for b in bodies)

    center = np.array([80.0, 60.0])
    radius = 0.18 * 120
    for b in bodies:
        assert np.hypot(b.x - center[0], b.y - center[1]) == pytest.approx(radius)
    np.testing.assert_allclose(engine.center_of_mass(), center, atol=1e-9)
    # Tangential velocities cancel: zero net momentum
    np.testing.assert_allclose((engine.vel * engine.mass[:, None]).sum(axis=0), 0.0, atol=1e-9)

    assert (engine.camera.x, engine.camera.y, engine.camera.scale) == (80.0, 60.0, 1.0)


def test_bodies_snapshot_is_immutable(engine):
    body = engine.bodies[0]
    with pytest.raises(AttributeError):
        body.x = 0.0


def test_momentum_is_conserved_over_frames(engine, driver):
    engine.start()
    driver.run(50)
    momentum = (engine.vel * engine.mass[:, None]).sum(axis=0)
    np.testing.assert_allclose(momentum, 0.0, atol=1e-6)
    assert np.isfinite(engine.pos).all()


def test_camera_never_zooms_in_past_native_scale(engine):
    for _ in range(100):
        engine.step()
        assert 0 < engine.camera.scale <= 1.0


def test_far_dust_respawns_inside_view(engine):
    engine.dust_pos[0] = [1e6, 1e6]
    engine.step()
    cam = engine.camera
    view_extent = max(engine.width, engine.height) / cam.scale
    dist = np.hypot(*(engine.dust_pos[0] - (cam.x, cam.y)))
    assert dist < view_extent
    assert np.abs(engine.dust_vel[0]).max() <= 0.15


def test_add_body_is_bounded(engine):
    for _ in range(MAX_BODIES + 5):
        assert engine.action("addBody") is None
    assert len(engine.bodies) == MAX_BODIES
    assert len(engine.colors) == MAX_BODIES
    # Accelerations were recomputed for the new set
    assert engine.acc.shape == (MAX_BODIES, 2)
    assert np.abs(engine.acc).sum() > 0


def test_add_body_mass_and_distance(engine):
    engine.action("addBody")
    new = engine.bodies[-1]
    assert 100.0 <= new.mass < 300.0
    dist = np.hypot(new.x - engine.camera.x, new.y - engine.camera.y)
    assert 0.1 * 120 <= dist <= 0.25 * 120


def test_perturb_adds_velocity_noise(engine):
    before = engine.vel.copy()
    engine.action("perturb")
    delta = engine.vel - before
    assert np.any(delta != 0)
    assert np.abs(delta).max() <= 1.5


def test_reset_restores_initial_configuration(engine):
    initial = engine.pos.copy()
    engine.action("addBody")
    engine.update_params({"G": 2.0})
    for _ in range(10):
        engine.step()
    assert engine.action("reset") == {"G": 6.0, "softening": 12.0}
    np.testing.assert_allclose(engine.pos, initial)
    assert len(engine.bodies) == 3


def test_update_params_drops_unknown_keys(engine):
    engine.update_params({"G": 2.0, "mass": 5.0})
    assert engine.params == {"G": 2.0, "softening": 12.0}


def test_total_energy_matches_direct_sum(engine):
    G, eps2 = engine.params["G"], engine.params["softening"] ** 2
    kinetic = 0.5 * sum(b.mass * (b.vx ** 2 + b.vy ** 2) for b in engine.bodies)
    potential = 0.0
    bodies = engine.bodies
    for i in range(len(bodies)):
        for j in range(i + 1, len(bodies)):
            r2 = (bodies[i].x - bodies[j].x) ** 2 + (bodies[i].y - bodies[j].y) ** 2
            potential -= G * bodies[i].mass * bodies[j].mass / np.sqrt(r2 + eps2)
    assert engine.total_energy() == pytest.approx(kinetic + potential)


def test_accelerations_point_at_centroid_after_one_step(engine):
    """The symmetric triangle stays symmetric: every pull aims at the centroid."""
    engine.step()
    com = engine.center_of_mass()
    for a, p in zip(engine.acc, engine.pos):
        to_com = com - p
        cos = a @ to_com / (np.linalg.norm(a) * np.linalg.norm(to_com))
        assert cos == pytest.approx(1.0, abs=1e-9)


def test_update_params_refreshes_accelerations(engine):
    """Stored accelerations follow G and softening as soon as they change."""
    engine.update_params({"G": 12.0, "softening": 6.0})
    expected = pairwise_accelerations(engine.pos, engine.mass, 12.0, 36.0, np.empty_like(engine.pos))
    np.testing.assert_allclose(engine.acc, expected)
