"""Axis-aligned bounding box slab test."""

import taichi as ti
import taichi.math as tm

vec3 = tm.vec3

# Direction components smaller than this are clamped before inversion
_MIN_DIRECTION_COMPONENT = 1e-12


@ti.func
def safe_inverse_direction(direction: vec3) -> vec3:
    """Component-wise reciprocal of a direction, avoiding division by zero."""
    inv = vec3(0.0, 0.0, 0.0)
    for k in ti.static(range(3)):
        d = direction[k]
        if ti.abs(d) < _MIN_DIRECTION_COMPONENT:
            d = ti.select(d < 0.0, -_MIN_DIRECTION_COMPONENT, _MIN_DIRECTION_COMPONENT)
        inv[k] = 1.0 / d
    return inv


@ti.func
def hit_aabb(
    ray_origin: vec3,
    inv_direction: vec3,
    box_min: vec3,
    box_max: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
) -> ti.i32:
    """Slab test of a ray against an axis-aligned box.

    Args:
        ray_origin: The starting point of the ray.
        inv_direction: Reciprocal of the ray direction, see
            safe_inverse_direction().
        box_min: Minimum corner of the box.
        box_max: Maximum corner of the box.
        t_min: Lower bound of the ray interval.
        t_max: Upper bound of the ray interval.

    Returns:
        1 if the ray interval overlaps the box, 0 otherwise.
    """
    t0 = (box_min - ray_origin) * inv_direction
    t1 = (box_max - ray_origin) * inv_direction
    t_near = tm.min(t0, t1)
    t_far = tm.max(t0, t1)
    enter = tm.max(tm.max(t_near.x, t_near.y), tm.max(t_near.z, t_min))
    leave = tm.min(tm.min(t_far.x, t_far.y), tm.min(t_far.z, t_max))
    result = 0
    if enter <= leave:
        result = 1
    return result
