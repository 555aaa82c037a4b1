"""Refraction helpers for transparent materials.

Key physics:
    - Snell's law for refraction: n1 * sin(theta1) = n2 * sin(theta2)
    - Schlick's approximation for Fresnel reflectance
    - Total internal reflection when sin(theta_t) > 1

The surrounding medium is assumed to be air (n = 1). A ray hitting the front
face of a transparent surface enters the material and uses the ratio
1 / ior; a ray hitting the back face leaves it and uses ior.

Unlike a path tracer, the Whitted integrator does not pick between
reflection and refraction at random: it follows both rays and weights them,
so these helpers are all deterministic.
"""

import taichi as ti
import taichi.math as tm

from src.whitted.core.ray import refract, schlick_fresnel

vec3 = tm.vec3


@ti.func
def refraction_ratio(ior: ti.f32, front_face: ti.i32) -> ti.f32:
    """n_incident / n_transmitted for a ray entering or leaving the material."""
    ratio = 1.0 / ior
    if front_face == 0:
        ratio = ior
    return ratio


@ti.func
def will_reflect(
    ior: ti.f32,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
) -> ti.i32:
    """Determine if total internal reflection will occur.

    Args:
        ior: Index of refraction of the material.
        incident_direction: The incoming ray direction (should be normalized).
        normal: The surface normal, oriented against the incoming ray.
        front_face: 1 if the ray is entering the material, 0 if leaving.

    Returns:
        1 if no refracted ray exists, 0 otherwise.
    """
    eta = refraction_ratio(ior, front_face)
    cos_theta = tm.min(-tm.dot(incident_direction, normal), 1.0)
    sin_theta = tm.sqrt(tm.max(1.0 - cos_theta * cos_theta, 0.0))

    result = 0
    if eta * sin_theta > 1.0:
        result = 1
    return result


@ti.func
def fresnel_reflectance(
    ior: ti.f32,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
) -> ti.f32:
    """Reflected fraction at a dielectric boundary (Schlick).

    Returns:
        The Fresnel reflectance in [0, 1]; 1 under total internal reflection.
    """
    eta = refraction_ratio(ior, front_face)
    cos_theta = tm.min(-tm.dot(incident_direction, normal), 1.0)
    result = schlick_fresnel(cos_theta, eta)
    if will_reflect(ior, incident_direction, normal, front_face) == 1:
        result = 1.0
    return result


@ti.func
def refract_direction(
    ior: ti.f32,
    incident_direction: vec3,
    normal: vec3,
    front_face: ti.i32,
):
    """Refracted direction through a dielectric boundary.

    Args:
        ior: Index of refraction of the material.
        incident_direction: The incoming unit direction.
        normal: The unit normal, oriented against the incoming ray.
        front_face: 1 if the ray is entering the material, 0 if leaving.

    Returns:
        A tuple (direction, total_internal_reflection). The direction is
        unit length when refraction is possible and a zero vector when
        total_internal_reflection is 1.
    """
    tir = will_reflect(ior, incident_direction, normal, front_face)
    direction = vec3(0.0, 0.0, 0.0)
    if tir == 0:
        eta = refraction_ratio(ior, front_face)
        refracted = refract(incident_direction, normal, eta)
        if tm.dot(refracted, refracted) > 0.0:
            direction = tm.normalize(refracted)
        else:
            tir = 1
    return direction, tir
