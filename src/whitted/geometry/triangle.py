"""Triangle primitive with Moller-Trumbore intersection.

Triangles are the only mesh primitive: meshes are ingested face by face and
every face must already be a triangle. Each triangle may carry per-vertex
normals; when smooth is set the shading normal is interpolated from them
with the barycentric weights of the hit, otherwise the flat face normal
normalize(cross(v1 - v0, v2 - v0)) is used.

Example:
    >>> @ti.kernel
    ... def probe() -> ti.f32:
    ...     tri = make_flat_triangle(vec3(0, 0, 0), vec3(1, 0, 0), vec3(0, 1, 0))
    ...     rec = hit_triangle(vec3(0.2, 0.2, 1.0), vec3(0, 0, -1), tri, 1e-4, 1e10)
    ...     return rec.t
    >>> probe()
    1.0
"""

import taichi as ti
import taichi.math as tm

from src.whitted.geometry.hit_record import HitRecord, make_miss_record, orient_normal

vec3 = tm.vec3

# Determinants below this mark the ray as parallel to (or the triangle as
# degenerate with respect to) the triangle's plane
TRIANGLE_EPSILON = 1e-9


@ti.dataclass
class Triangle:
    """A triangle with optional per-vertex normals.

    Attributes:
        v0: First vertex.
        v1: Second vertex.
        v2: Third vertex.
        n0: Normal at v0 (used only when smooth == 1).
        n1: Normal at v1 (used only when smooth == 1).
        n2: Normal at v2 (used only when smooth == 1).
        smooth: 1 to interpolate vertex normals, 0 for flat shading.
    """

    v0: vec3
    v1: vec3
    v2: vec3
    n0: vec3
    n1: vec3
    n2: vec3
    smooth: ti.i32


@ti.func
def make_flat_triangle(v0: vec3, v1: vec3, v2: vec3) -> Triangle:
    """Create a flat-shaded triangle."""
    zero = vec3(0.0, 0.0, 0.0)
    return Triangle(v0=v0, v1=v1, v2=v2, n0=zero, n1=zero, n2=zero, smooth=0)


@ti.func
def triangle_barycentric(p: vec3, tri: Triangle) -> vec3:
    """Barycentric weights of a point with respect to a triangle.

    The point is projected onto the triangle's plane first.

    Args:
        p: The query point.
        tri: The triangle.

    Returns:
        Weights (w0, w1, w2) for (v0, v1, v2), summing to 1. A zero vector
        is returned for degenerate triangles.
    """
    e1 = tri.v1 - tri.v0
    e2 = tri.v2 - tri.v0
    vp = p - tri.v0
    d00 = tm.dot(e1, e1)
    d01 = tm.dot(e1, e2)
    d11 = tm.dot(e2, e2)
    d20 = tm.dot(vp, e1)
    d21 = tm.dot(vp, e2)
    denom = d00 * d11 - d01 * d01

    weights = vec3(0.0, 0.0, 0.0)
    if ti.abs(denom) > TRIANGLE_EPSILON:
        w1 = (d11 * d20 - d01 * d21) / denom
        w2 = (d00 * d21 - d01 * d20) / denom
        weights = vec3(1.0 - w1 - w2, w1, w2)
    return weights


@ti.func
def hit_triangle(
    ray_origin: vec3,
    ray_direction: vec3,
    tri: Triangle,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Test for ray-triangle intersection (Moller-Trumbore).

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray.
        tri: The triangle to test.
        t_min: Exclusive lower bound for a valid hit.
        t_max: Exclusive upper bound for a valid hit.

    Returns:
        A HitRecord with u, v set to the barycentric weights of v1 and v2.
        front_face is decided by the geometric normal; the reported normal
        (flat or interpolated) is flipped to face the ray. Zero-area
        triangles and rays in the triangle's plane miss.
    """
    result = make_miss_record()

    e1 = tri.v1 - tri.v0
    e2 = tri.v2 - tri.v0
    pvec = tm.cross(ray_direction, e2)
    det = tm.dot(e1, pvec)

    if ti.abs(det) > TRIANGLE_EPSILON:
        inv_det = 1.0 / det
        tvec = ray_origin - tri.v0
        u = tm.dot(tvec, pvec) * inv_det
        if u >= 0.0 and u <= 1.0:
            qvec = tm.cross(tvec, e1)
            v = tm.dot(ray_direction, qvec) * inv_det
            if v >= 0.0 and u + v <= 1.0:
                t = tm.dot(e2, qvec) * inv_det
                if t > t_min and t < t_max:
                    geometric_normal = tm.normalize(tm.cross(e1, e2))
                    facing_normal, front_face = orient_normal(ray_direction, geometric_normal)

                    normal = facing_normal
                    if tri.smooth == 1:
                        w = 1.0 - u - v
                        interpolated = w * tri.n0 + u * tri.n1 + v * tri.n2
                        if tm.dot(interpolated, interpolated) > 1e-12:
                            shading_normal, _shading_front = orient_normal(
                                ray_direction, tm.normalize(interpolated)
                            )
                            normal = shading_normal

                    result = HitRecord(
                        hit=1,
                        t=t,
                        point=ray_origin + t * ray_direction,
                        normal=normal,
                        front_face=front_face,
                        u=u,
                        v=v,
                    )

    return result
