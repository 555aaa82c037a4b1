"""Core rendering module.

This module contains the fundamental building blocks for ray tracing:

Components:
    ray: Ray data structure and vector algebra
    sampler: Deterministic hash-based random numbers and sub-pixel patterns
    integrator: Whitted-style recursive shading and the framebuffer kernels
    renderer: Tiled rendering driver with progress reporting and export

All compute-intensive operations use Taichi kernels.
"""

from .ray import (
    Ray,
    cross,
    dot,
    length,
    length_squared,
    make_ray,
    near_zero,
    normalize,
    ray_at,
    reflect,
    refract,
    schlick_fresnel,
    vec3,
)
from .sampler import (
    SAMPLING_JITTER,
    SAMPLING_METHODS,
    SAMPLING_UNIFORM,
    init_sample_state,
    next_float,
    pcg_hash,
    sample_unit_disk,
    sampling_method_index,
    stratified_offset,
)

# Note: integrator and renderer are NOT imported here to avoid circular imports.
# Import directly from src.whitted.core.integrator or src.whitted.core.renderer.

__all__ = [
    "Ray",
    "ray_at",
    "make_ray",
    "vec3",
    "length",
    "length_squared",
    "normalize",
    "dot",
    "cross",
    "reflect",
    "refract",
    "schlick_fresnel",
    "near_zero",
    "SAMPLING_UNIFORM",
    "SAMPLING_JITTER",
    "SAMPLING_METHODS",
    "sampling_method_index",
    "pcg_hash",
    "init_sample_state",
    "next_float",
    "stratified_offset",
    "sample_unit_disk",
]
