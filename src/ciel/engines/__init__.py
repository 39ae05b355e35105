from ciel.engines.bifurcation import BifurcationPoint, compute_bifurcation
from ciel.engines.chaos import ChaosEngine, TracerPair
from ciel.engines.factory import create_engine, engine_type
from ciel.engines.gravity import GravityEngine
from ciel.engines.hypercube import HypercubeEngine
from ciel.engines.lensing import LensingEngine, lens_images

__all__ = [
    "BifurcationPoint",
    "compute_bifurcation",
    "ChaosEngine",
    "TracerPair",
    "GravityEngine",
    "LensingEngine",
    "lens_images",
    "HypercubeEngine",
    "create_engine",
    "engine_type",
]
