"""Hit record shared by every primitive intersection routine.

All primitives report intersections through the same HitRecord layout so
the scene can dispatch over primitive types and keep the closest result
without caring which shape produced it.
"""

import taichi as ti
import taichi.math as tm

vec3 = tm.vec3


@ti.dataclass
class HitRecord:
    """Record of a ray-primitive intersection.

    Attributes:
        hit: Whether the ray intersected the primitive (1 if hit, 0 if miss).
        t: The parameter value along the ray where intersection occurred.
            Only valid if hit == 1.
        point: The 3D point where the ray intersected the surface.
            Only valid if hit == 1.
        normal: The unit surface normal at the intersection point, flipped
            so that it always opposes the incoming ray.
            Only valid if hit == 1.
        front_face: 1 if the geometric (outward) normal already opposed the
            ray, 0 if the ray hit the back side. Only valid if hit == 1.
        u: Barycentric weight of the second triangle vertex (0 for
            non-triangle primitives).
        v: Barycentric weight of the third triangle vertex (0 for
            non-triangle primitives).
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    front_face: ti.i32
    u: ti.f32
    v: ti.f32


@ti.func
def make_miss_record() -> HitRecord:
    """HitRecord with hit == 0 and zeroed payload."""
    return HitRecord(
        hit=0,
        t=0.0,
        point=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        front_face=0,
        u=0.0,
        v=0.0,
    )


@ti.func
def orient_normal(ray_direction: vec3, outward_normal: vec3):
    """Flip a geometric normal so it faces against the ray.

    Args:
        ray_direction: Direction of the incoming ray.
        outward_normal: The unit geometric normal of the surface.

    Returns:
        A tuple (normal, front_face) where normal opposes ray_direction and
        front_face is 1 if no flip was needed.
    """
    normal = outward_normal
    front_face = 1
    if tm.dot(ray_direction, outward_normal) > 0.0:
        normal = -outward_normal
        front_face = 0
    return normal, front_face
