"""Tests for ciel.engines.lensing"""

import numpy as np
import pytest

from ciel.core.surface import POINTER_ENTER, POINTER_LEAVE, POINTER_MOVE
from ciel.engines.lensing import LERP_FACTOR, LensingEngine, lens_images
from ciel.render.raster import RasterSurface


@pytest.fixture
def engine(surface, driver):
    return LensingEngine(surface, scheduler=driver, seed=11, star_count=300)


def test_far_source_is_barely_magnified():
    """A source at β = 10·θ_E has a primary magnification within 1% of unity."""
    theta_p, theta_m, mu_p, mu_m = lens_images(800.0, 80.0)
    assert mu_p == pytest.approx(1.0, rel=0.01)
    assert theta_p > 800.0
    assert mu_m < 0.05  # secondary image suppressed


def test_near_source_gives_two_bright_images():
    theta_p, theta_m, mu_p, mu_m = lens_images(5.0, 80.0)
    assert theta_p == pytest.approx((5.0 + np.sqrt(25.0 + 4 * 6400.0)) / 2)
    assert theta_m < 0
    # Images straddle the Einstein ring
    assert theta_p > 80.0 > abs(theta_m)
    assert mu_p > 10 and mu_m > 10


def test_image_radii_multiply_to_einstein_radius_squared():
    beta = np.array([0.5, 3.0, 40.0, 500.0])
    theta_p, theta_m, _, _ = lens_images(beta, 60.0)
    np.testing.assert_allclose(theta_p * theta_m, -3600.0)
    np.testing.assert_allclose(theta_p + theta_m, beta)


def test_star_field_distribution(engine):
    w, h = engine.width, engine.height
    assert engine.star_pos.shape == (300, 2)
    assert engine.star_pos[:, 0].min() >= -250 and engine.star_pos[:, 0].max() < w + 250
    assert engine.star_pos[:, 1].min() >= -250 and engine.star_pos[:, 1].max() < h + 250
    assert engine.star_size.min() >= 0.4 and engine.star_size.max() < 2.6
    assert engine.star_bright.min() >= 0.2 and engine.star_bright.max() < 1.0


def test_lens_starts_at_center(engine):
    assert (engine.lens.x, engine.lens.y) == (80.0, 60.0)
    assert not engine.lens.pointer_inside


def test_listeners_registered_and_removed(surface, engine):
    for event in (POINTER_MOVE, POINTER_ENTER, POINTER_LEAVE):
        assert surface.listener_count(event) == 1
    engine.destroy()
    assert surface.listener_count() == 0


def test_pointer_moves_lens_smoothly(surface, engine):
    surface.dispatch(POINTER_MOVE, 20.0, 30.0)
    assert engine.lens.pointer_inside
    engine.step()
    assert engine.lens.x == pytest.approx(80.0 + (20.0 - 80.0) * LERP_FACTOR)
    assert engine.lens.y == pytest.approx(60.0 + (30.0 - 60.0) * LERP_FACTOR)
    assert engine.lens.idle_time == 0


def test_idle_path_resumes_after_pointer_leaves(surface, engine):
    surface.dispatch(POINTER_ENTER)
    engine.step()
    assert engine.lens.idle_time == 0
    surface.dispatch(POINTER_LEAVE)
    engine.step()
    engine.step()
    assert engine.lens.idle_time == 2
    t = engine.lens.idle_time
    assert engine.lens.target_x == pytest.approx(80.0 + np.sin(t * 0.0004) * 160 * 0.2)


def test_reset_regenerates_stars_only(surface, engine):
    surface.dispatch(POINTER_MOVE, 10.0, 10.0)
    engine.step()
    lens_before = (engine.lens.x, engine.lens.y)
    stars_before = engine.star_pos.copy()
    assert engine.action("reset") == {"einsteinRadius": 80.0, "intensity": 1.5}
    assert (engine.lens.x, engine.lens.y) == lens_before
    assert not np.array_equal(engine.star_pos, stars_before)


def test_draw_renders_shadow_at_lens(surface, engine, driver):
    engine.start()
    driver.run(3)
    assert surface.pixels.max() > 0
    cx, cy = int(round(engine.lens.x)), int(round(engine.lens.y))
    # The shadow disk is opaque black at its center
    assert surface.pixels[cy, cx].max() == pytest.approx(0.0, abs=1e-6)


def test_source_just_outside_skip_radius_has_a_finite_distinct_image():
    theta_p, theta_m, mu_p, mu_m = lens_images(np.array([0.5, 5.0]), 80.0)
    assert np.isfinite([theta_p, theta_m, mu_p, mu_m]).all()
    # θ_E = 80, β = 5: the primary image is pushed out past the Einstein ring
    assert theta_p[1] == pytest.approx(82.539, abs=1e-3)
    assert abs(theta_p[1] - 5.0) > 70


def test_engine_draws_primary_image_outside_einstein_ring(driver):
    """A star 5px below the lens shows up ~82.54px below it, and its twin above."""
    surface = RasterSurface(400, 300)
    engine = LensingEngine(surface, scheduler=driver, seed=0, star_count=1)
    assert (engine.lens.x, engine.lens.y) == (200.0, 150.0)
    engine.star_pos = np.array([[200.0, 155.0]])
    engine.star_size = np.array([1.0])
    engine.star_bright = np.array([0.9])
    engine.draw()

    # Only the two star images are brighter than the faint ring glow.
    ys, xs = np.nonzero(surface.pixels.max(axis=2) > 0.5)
    below, above = ys > 150, ys < 150
    assert below.any() and above.any()
    primary = np.hypot(xs[below].mean() - 200.0, ys[below].mean() - 150.0)
    secondary = np.hypot(xs[above].mean() - 200.0, ys[above].mean() - 150.0)
    assert np.isfinite(primary)
    assert primary == pytest.approx(82.54, abs=1.0)
    assert secondary == pytest.approx(77.54, abs=1.0)
