"""Ray data structure and vector algebra used throughout the tracer.

This module provides the Ray dataclass and the small set of vector helpers
that the intersection routines, the camera and the integrator share:
dot/cross products, normalization, mirror reflection, Snell refraction and
Schlick's Fresnel approximation. Everything here is a Taichi function and is
meant to be called from inside kernels.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> @ti.kernel
    ... def probe() -> ti.f32:
    ...     ray = make_ray(vec3(0.0, 0.0, 0.0), vec3(0.0, 0.0, -1.0))
    ...     return ray_at(ray, 5.0).z
    >>> probe()
    -5.0
"""

import taichi as ti
import taichi.math as tm

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3

# Components below this magnitude are treated as zero
NEAR_ZERO_EPSILON = 1e-8


@ti.dataclass
class Ray:
    """A ray with an origin point and direction vector.

    Attributes:
        origin: The starting point of the ray (vec3).
        direction: The direction vector of the ray (vec3). Camera, reflection
            and refraction rays are unit length; callers that build rays by
            hand are responsible for normalizing when they need distances.
    """

    origin: vec3
    direction: vec3


@ti.func
def ray_at(ray: Ray, t: ti.f32) -> vec3:
    """Compute the point along the ray at parameter t.

    Args:
        ray: The ray to evaluate.
        t: The parameter value. Positive values are in front of the origin.

    Returns:
        The point ray.origin + t * ray.direction.
    """
    return ray.origin + t * ray.direction


@ti.func
def make_ray(origin: vec3, direction: vec3) -> Ray:
    """Create a ray from origin and direction."""
    return Ray(origin=origin, direction=direction)


# =============================================================================
# Vector Utility Functions
# =============================================================================


@ti.func
def length(v: vec3) -> ti.f32:
    """Euclidean length of a vector."""
    return tm.length(v)


@ti.func
def length_squared(v: vec3) -> ti.f32:
    """Squared length of a vector, avoiding the square root."""
    return tm.dot(v, v)


@ti.func
def normalize(v: vec3) -> vec3:
    """Normalize a vector to unit length.

    The result is undefined for a zero-length input; guard with near_zero()
    where the vector can degenerate.
    """
    return tm.normalize(v)


@ti.func
def dot(a: vec3, b: vec3) -> ti.f32:
    return tm.dot(a, b)


@ti.func
def cross(a: vec3, b: vec3) -> vec3:
    return tm.cross(a, b)


@ti.func
def reflect(incident: vec3, normal: vec3) -> vec3:
    """Mirror an incident direction about a unit normal.

    Computes D - 2 * dot(D, N) * N. The result has the same length as the
    incident vector.

    Args:
        incident: The incoming direction (pointing toward the surface).
        normal: The unit surface normal.

    Returns:
        The reflected direction.
    """
    return incident - 2.0 * tm.dot(incident, normal) * normal


@ti.func
def refract(incident: vec3, normal: vec3, eta: ti.f32) -> vec3:
    """Refract a unit direction through a surface using Snell's law.

    Args:
        incident: The incoming unit direction.
        normal: The unit normal, oriented against the incoming direction.
        eta: Ratio of refractive indices (n_incident / n_transmitted).

    Returns:
        The refracted unit direction, or a zero vector on total internal
        reflection.
    """
    cos_i = tm.min(-tm.dot(incident, normal), 1.0)
    sin2_t = eta * eta * (1.0 - cos_i * cos_i)
    result = vec3(0.0, 0.0, 0.0)
    if sin2_t <= 1.0:
        cos_t = ti.sqrt(1.0 - sin2_t)
        result = eta * incident + (eta * cos_i - cos_t) * normal
    return result


@ti.func
def schlick_fresnel(cosine: ti.f32, ref_idx: ti.f32) -> ti.f32:
    """Approximate Fresnel reflectance with Schlick's polynomial.

    Args:
        cosine: Cosine of the angle between the incident direction and normal.
        ref_idx: Ratio of refractive indices.

    Returns:
        The reflected fraction in [0, 1].
    """
    r0 = ((1.0 - ref_idx) / (1.0 + ref_idx)) ** 2
    return r0 + (1.0 - r0) * ((1.0 - cosine) ** 5)


@ti.func
def near_zero(v: vec3) -> ti.i32:
    """Return 1 if every component of v is below NEAR_ZERO_EPSILON."""
    s = NEAR_ZERO_EPSILON
    result = 0
    if ti.abs(v.x) < s and ti.abs(v.y) < s and ti.abs(v.z) < s:
        result = 1
    return result
