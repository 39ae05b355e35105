from .raster import RasterSurface

__all__ = ["RasterSurface"]
