"""Infinite plane primitive.

A plane is stored as a point on the plane and a unit normal. The ray
parameter of the intersection is

    t = dot(point - ray_origin, normal) / dot(ray_direction, normal)

Rays whose direction is (nearly) perpendicular to the normal run parallel
to the plane and never report a hit. The tolerance for that test is
PLANE_EPSILON.
"""

import taichi as ti
import taichi.math as tm

from src.whitted.geometry.hit_record import HitRecord, make_miss_record, orient_normal

vec3 = tm.vec3

# |dot(D, N)| below this is treated as a ray parallel to the plane
PLANE_EPSILON = 1e-6


@ti.dataclass
class Plane:
    """An infinite plane.

    Attributes:
        point: Any point on the plane.
        normal: Unit normal of the plane. Its direction defines the front
            side for front_face reporting.
    """

    point: vec3
    normal: vec3


@ti.func
def hit_plane(
    ray_origin: vec3,
    ray_direction: vec3,
    plane: Plane,
    t_min: ti.f32,
    t_max: ti.f32,
) -> HitRecord:
    """Test for ray-plane intersection.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray.
        plane: The plane to test against.
        t_min: Exclusive lower bound for a valid hit.
        t_max: Exclusive upper bound for a valid hit.

    Returns:
        A HitRecord with the plane normal flipped to face the ray. Parallel
        rays and zero-length normals miss.
    """
    result = make_miss_record()

    denom = tm.dot(ray_direction, plane.normal)
    if ti.abs(denom) >= PLANE_EPSILON:
        t = tm.dot(plane.point - ray_origin, plane.normal) / denom
        if t > t_min and t < t_max:
            point = ray_origin + t * ray_direction
            normal, front_face = orient_normal(ray_direction, plane.normal)
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
