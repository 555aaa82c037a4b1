"""Geometry module for shape primitives and spatial acceleration.

This module provides geometric primitives and intersection algorithms:

Components:
    hit_record: HitRecord shared by every primitive
    sphere: Sphere primitive with robust ray-sphere intersection
    plane: Infinite plane primitive
    triangle: Triangle primitive (Moller-Trumbore) with smooth shading
    aabb: Axis-aligned bounding box slab test
    bvh: Bounding Volume Hierarchy over triangles

All intersection routines are Taichi functions (@ti.func) sharing one
signature so the scene can dispatch over primitive types:

    record = hit_shape(ray_origin, ray_direction, shape, t_min, t_max)
"""

from .aabb import hit_aabb, safe_inverse_direction
from .bvh import BVHBuildResult, build_bvh, clear_bvh, upload_bvh
from .hit_record import HitRecord, make_miss_record, orient_normal
from .plane import PLANE_EPSILON, Plane, hit_plane
from .sphere import Sphere, hit_sphere, make_sphere
from .triangle import (
    Triangle,
    hit_triangle,
    make_flat_triangle,
    triangle_barycentric,
)

__all__ = [
    "HitRecord",
    "make_miss_record",
    "orient_normal",
    "Sphere",
    "hit_sphere",
    "make_sphere",
    "Plane",
    "hit_plane",
    "PLANE_EPSILON",
    "Triangle",
    "hit_triangle",
    "make_flat_triangle",
    "triangle_barycentric",
    "hit_aabb",
    "safe_inverse_direction",
    "BVHBuildResult",
    "build_bvh",
    "upload_bvh",
    "clear_bvh",
]
