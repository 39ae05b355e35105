"""
Ciel: real-time simulation engines for chaotic attractors, N-body gravity,
gravitational lensing and 4D geometry.
"""

from loguru import logger

__version__ = "0.3.0"

# Library records stay silent until the host opts in with logger.enable("ciel").
logger.disable("ciel")
