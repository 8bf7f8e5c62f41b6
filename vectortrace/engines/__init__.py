"""Default clustering and curve fitting engines.

The pipeline only depends on the protocols in ``base``; these are the
implementations used when no engine is passed in.
"""

from .color_clusters import ColorClusterEngine
from .fitting import CurveFitter

__all__ = ["ColorClusterEngine", "CurveFitter"]
