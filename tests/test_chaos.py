"""Tests for ciel.engines.chaos

Small clouds and short warm-ups keep these fast; the behaviour under test
does not depend on the particle count.
"""

import numpy as np
import pytest

from ciel.core.definitions import get_default_params, get_definition
from ciel.engines.chaos import DIVERGENCE_LIMIT, TRACER_TRAIL, ChaosEngine, TracerPair, project_points


def _engine(surface, driver, attractor="lorenz", **kwargs):
    kwargs.setdefault("particle_count", 200)
    kwargs.setdefault("warmup_steps", 50)
    return ChaosEngine(surface, attractor=attractor, scheduler=driver, seed=7, **kwargs)


def test_construction_warms_up_a_valid_cloud(surface, driver):
    engine = _engine(surface, driver)
    assert engine.ready
    assert engine.cloud.shape == (200, 3)
    assert np.isfinite(engine.cloud).all()
    assert np.abs(engine.cloud).max() <= DIVERGENCE_LIMIT
    assert engine.params == get_default_params(get_definition("lorenz"))


def test_diverged_particles_respawn_near_center(surface, driver):
    engine = _engine(surface, driver)
    engine.cloud[0] = [1e6, 0.0, 0.0]
    engine.cloud[1] = [np.nan, 0.0, 0.0]
    engine.step()
    assert np.isfinite(engine.cloud).all()
    assert np.abs(engine.cloud).max() <= DIVERGENCE_LIMIT
    # Respawned within the jitter box (plus one RK4 step) around (0, 0, 25)
    assert np.abs(engine.cloud[:2] - np.array([0.0, 0.0, 25.0])).max() < 5.0


def test_wild_parameters_never_leave_invalid_particles(surface, driver):
    engine = _engine(surface, driver)
    engine.update_params({"sigma": 50.0, "rho": 5000.0, "beta": 0.0})
    for _ in range(30):
        engine.step()
        assert np.isfinite(engine.cloud).all()
        assert np.abs(engine.cloud).max() <= DIVERGENCE_LIMIT


def test_lorenz_cloud_occupies_both_lobes(surface, driver):
    """At default parameters the cloud settles onto both wings of the attractor."""
    engine = _engine(surface, driver, particle_count=500, warmup_steps=500)
    for _ in range(200):
        engine.step()
    positive_x = np.mean(engine.cloud[:, 0] > 0)
    assert 0.2 < positive_x < 0.8
    assert engine.cloud[:, 2].std() > 2.0


def test_projection_center_and_rotation():
    center = (0.0, 0.0, 25.0)
    screen, depth = project_points(np.array([center]), center, 0.3, 8.0, 200, 100)
    np.testing.assert_allclose(screen[0], [100.0, 50.0])
    assert depth[0] == pytest.approx(1.0)

    # A quarter turn about y maps +x onto +z (away from the viewer)
    screen, depth = project_points(np.array([[1.0, 0.0, 25.0]]), center, np.pi / 2, 8.0, 200, 100)
    assert screen[0, 0] == pytest.approx(100.0, abs=1e-9)
    assert depth[0] < 1.0


def test_frames_rotate_camera_and_draw(surface, driver):
    engine = _engine(surface, driver)
    engine.start()
    driver.run(10)
    assert engine.frame_count == 10
    assert engine.rotation_angle == pytest.approx(10 * 0.002)
    assert surface.pixels.max() > 0


def test_perturb_changes_one_parameter_slightly(surface, driver):
    engine = _engine(surface, driver)
    before = dict(engine.params)
    after = engine.action("perturb")
    assert after == engine.params
    changed = [k for k in before if after[k] != before[k]]
    assert len(changed) == 1
    assert abs(after[changed[0]] - before[changed[0]]) <= 0.01


def test_reset_restores_defaults(surface, driver):
    engine = _engine(surface, driver)
    engine.update_params({"rho": 99.0})
    engine.action("launchTracers")
    result = engine.action("reset")
    assert result == get_default_params(get_definition("lorenz"))
    assert engine.params == result
    assert engine.tracers is None


def test_tracers_start_close_and_keep_bounded_trails(surface, driver):
    engine = _engine(surface, driver)
    assert engine.tracer_separation is None
    assert engine.action("launchTracers") is None
    assert engine.tracer_separation == pytest.approx(1e-6, rel=1e-3)

    for _ in range(1000):
        engine.step()
    engine.draw()
    assert engine.tracers.active
    assert all(len(t) == TRACER_TRAIL for t in engine.tracers.trails)
    # Sensitivity to initial conditions: the pair has separated measurably
    assert engine.tracer_separation > 1e-6


def test_diverging_tracers_deactivate_and_keep_history():
    defn = get_definition("lorenz")
    pair = TracerPair.launch([900.0, 900.0, 900.0])
    assert pair.advance(defn, get_default_params(defn)) is False
    assert not pair.active
    assert all(len(t) == 1 for t in pair.trails)
    assert pair.advance(defn, get_default_params(defn)) is False


def test_set_attractor_switches_flow(surface, driver):
    engine = _engine(surface, driver)
    engine.action("launchTracers")
    engine.tick()
    params = engine.set_attractor("thomas", {"b": 0.2})
    assert engine.attractor.id == "thomas"
    assert params == {"b": 0.2}
    assert engine.rotation_angle == 0.0
    assert engine.tracers is None
    assert np.isfinite(engine.cloud).all()


def test_unknown_attractor_raises(surface, driver):
    with pytest.raises(KeyError):
        ChaosEngine(surface, attractor="rossler", scheduler=driver)


@pytest.mark.parametrize("attractor", ["aizawa", "thomas"])
def test_other_attractors_run(surface, driver, attractor):
    engine = _engine(surface, driver, attractor=attractor)
    engine.start()
    driver.run(5)
    assert engine.frame_count == 5
    assert np.isfinite(engine.cloud).all()
