import pytest

from ciel.core.loop import ManualFrameDriver
from ciel.render.raster import RasterSurface


@pytest.fixture
def surface():
    """Small raster so drawing stays cheap."""
    return RasterSurface(160, 120)


@pytest.fixture
def driver():
    return ManualFrameDriver()
