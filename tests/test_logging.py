"""Tests for ciel.core.logging"""

import subprocess
import sys
import textwrap

from loguru import logger

from ciel.core.logging import configure_console, setup_logfile
from ciel.core.loop import ManualFrameDriver
from ciel.engines.hypercube import HypercubeEngine
from ciel.render.raster import RasterSurface


def test_import_keeps_host_sinks():
    """A sink the host added before importing ciel still receives its records."""
    script = textwrap.dedent("""
        from loguru import logger
        received = []
        logger.add(received.append, level="INFO")
        import ciel.core.logging
        import ciel.engines
        logger.info("host message")
        print(len(received))
    """)
    result = subprocess.run([sys.executable, "-c", script], capture_output=True, text=True, check=True)
    assert result.stdout.strip() == "1"


def test_configure_console_keeps_other_sinks_and_enables_ciel():
    received = []
    sink_id = logger.add(lambda m: received.append(m.record["message"]), level="DEBUG")
    try:
        configure_console("WARNING")
        configure_console("WARNING")
        engine = HypercubeEngine(RasterSurface(32, 24), scheduler=ManualFrameDriver())
        engine.start()
        logger.info("host message")
    finally:
        logger.remove(sink_id)
    assert "host message" in received
    assert "dimensions: started" in received


def test_logfile_receives_engine_records(tmp_path):
    log_path = tmp_path / "run.log"
    sink_id = setup_logfile(str(log_path), level="DEBUG")
    try:
        engine = HypercubeEngine(RasterSurface(32, 24), scheduler=ManualFrameDriver())
        engine.destroy()
    finally:
        logger.remove(sink_id)
    text = log_path.read_text()
    assert "dimensions: destroyed" in text
