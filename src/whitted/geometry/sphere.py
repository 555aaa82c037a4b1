"""Sphere primitive with robust ray-sphere intersection.

This module provides a Sphere dataclass and intersection function using the
robust quadratic formula from Ray Tracing Gems to avoid floating-point artifacts.

The robust quadratic formula avoids catastrophic cancellation when b^2 is
nearly equal to 4ac by using a reformulated calculation that maintains
numerical stability.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.whitted.geometry.sphere import Sphere, hit_sphere
    >>> sphere = Sphere(center=ti.math.vec3(0, 0, -1), radius=0.5)
    >>> # Use hit_sphere within a Taichi kernel
"""

import taichi as ti
import taichi.math as tm

from src.whitted.geometry.hit_record import HitRecord, make_miss_record, orient_normal

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Ray directions with a squared length below this are treated as degenerate
MIN_DIRECTION_LENGTH_SQUARED = 1e-12


@ti.dataclass
class Sphere:
    """A sphere defined by center point and radius.

    Attributes:
        center: The center point of the sphere (vec3).
        radius: The radius of the sphere. Non-positive radii never report
            a hit.
    """

    center: vec3
    radius: ti.f32


@ti.func
def _solve_quadratic_robust(h: ti.f32, a: ti.f32, c: ti.f32, sqrt_d: ti.f32):
    """Solve a*t^2 + 2*h*t + c = 0 without catastrophic cancellation.

    Returns:
        Tuple of (t0, t1) where t0 <= t1.
    """
    sign_h = ti.select(h < 0.0, -1.0, 1.0)
    q = -(h + sign_h * sqrt_d)

    t0 = 0.0
    t1 = 0.0

    if ti.abs(q) < 1e-10:
        # Tangent ray through the center line; fall back to the textbook form
        t0 = (-h - sqrt_d) / a
        t1 = (-h + sqrt_d) / a
    else:
        t0 = q / a
        t1 = c / q

    if t0 > t1:
        temp = t0
        t0 = t1
        t1 = temp

    return t0, t1


@ti.func
def hit_sphere(
    ray_origin: vec3,
    ray_direction: vec3,
    sphere: Sphere,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Test for ray-sphere intersection using robust quadratic formula.

    The intersection is found by solving

        |ray_origin + t * ray_direction - center|^2 = radius^2

    which expands to a*t^2 + 2*h*t + c = 0 with

        a = dot(direction, direction)
        h = dot(direction, origin - center)
        c = dot(origin - center, origin - center) - radius^2

    The smaller root inside (t_min, t_max) wins; if it falls outside the
    interval the larger root is tried.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray (need not be normalized).
        sphere: The sphere to test intersection against.
        t_min: Exclusive lower bound for a valid hit.
        t_max: Exclusive upper bound for a valid hit.

    Returns:
        A HitRecord whose normal is (point - center) / radius, flipped to
        face against the ray. Degenerate spheres and zero directions miss.
    """
    result = make_miss_record()

    a = tm.dot(ray_direction, ray_direction)
    if sphere.radius > 0.0 and a > MIN_DIRECTION_LENGTH_SQUARED:
        oc = ray_origin - sphere.center
        h = tm.dot(ray_direction, oc)
        c = tm.dot(oc, oc) - sphere.radius * sphere.radius
        discriminant = h * h - a * c

        if discriminant >= 0.0:
            sqrt_d = ti.sqrt(discriminant)
            t0, t1 = _solve_quadratic_robust(h, a, c, sqrt_d)

            t = t0
            valid = (t > t_min) and (t < t_max)
            if not valid:
                t = t1
                valid = (t > t_min) and (t < t_max)

            if valid:
                point = ray_origin + t * ray_direction
                outward_normal = (point - sphere.center) / sphere.radius
                normal, front_face = orient_normal(ray_direction, outward_normal)
                result = HitRecord(
                    hit=1,
                    t=t,
                    point=point,
                    normal=normal,
                    front_face=front_face,
                    u=0.0,
                    v=0.0,
                )

    return result


@ti.func
def make_sphere(center: vec3, radius: ti.f32) -> Sphere:
    """Create a sphere from center and radius."""
    return Sphere(center=center, radius=radius)
