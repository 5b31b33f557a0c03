"""Geometry module for shape primitives.

Components:
    sphere: Analytic spheres, the only primitive the tracer supports

Scenes hold few enough objects that a linear scan over all spheres is used
instead of a spatial acceleration structure.
"""

from .sphere import (
    INTERSECTION_BIAS,
    NO_HIT,
    Sphere,
    intersection_distance,
    outward_normal,
)

__all__ = [
    "Sphere",
    "intersection_distance",
    "outward_normal",
    "INTERSECTION_BIAS",
    "NO_HIT",
]
