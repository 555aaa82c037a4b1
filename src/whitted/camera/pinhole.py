"""Pinhole camera model with optional thin-lens depth of field.

This module implements the camera that generates primary rays for rendering.
The camera supports:
- Look-at positioning (lookfrom, lookat, vup)
- Vertical field of view specification
- Arbitrary aspect ratios
- Stratified sub-pixel sampling (uniform or jittered grid) for anti-aliasing
- A thin lens (aperture > 0) focused at focus_dist for depth of field

The camera builds an orthonormal basis (u, v, w) from the view parameters:
- w: points from lookat toward lookfrom (opposite view direction)
- u: points right in the image plane
- v: points up in the image plane

The basis is derived once by setup_camera() and stored in Taichi fields;
ray generation then only reads those fields.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.whitted.camera.pinhole import PinholeCamera, setup_camera, get_ray
    >>>
    >>> camera = PinholeCamera(
    ...     lookfrom=(0.0, 0.0, 3.0),
    ...     lookat=(0.0, 0.0, 0.0),
    ...     vup=(0.0, 1.0, 0.0),
    ...     vfov=60.0,
    ...     aspect_ratio=16.0/9.0
    ... )
    >>> setup_camera(camera)
    >>>
    >>> @ti.kernel
    ... def render():
    ...     ray = get_ray(0.5, 0.5)  # Ray through image center
"""

import logging
import math
from dataclasses import dataclass

import numpy as np
import taichi as ti
import taichi.math as tm

from src.whitted.core.ray import Ray, make_ray, vec3
from src.whitted.core.sampler import sample_unit_disk, stratified_offset

logger = logging.getLogger(__name__)

# Cross products shorter than this mean vup is parallel to the view direction
_MIN_BASIS_LENGTH = 1e-8

# =============================================================================
# Camera Data Structures
# =============================================================================


@dataclass
class PinholeCamera:
    """Configuration for a perspective camera.

    With aperture == 0 this is an ideal pinhole and everything is in focus.
    With aperture > 0 ray origins are spread over a lens disk and only
    points at focus_dist from the camera are sharp.

    Attributes:
        lookfrom: Camera position in world space (x, y, z).
        lookat: Point the camera is looking at in world space (x, y, z).
        vup: Up direction vector for camera orientation (typically (0, 1, 0)).
        vfov: Vertical field of view in degrees, in (0, 180).
        aspect_ratio: Width divided by height of the output image.
        aperture: Lens diameter; 0 for a pinhole.
        focus_dist: Distance to the plane in focus. Defaults to
            |lookfrom - lookat| when None.
    """

    lookfrom: tuple[float, float, float]
    lookat: tuple[float, float, float]
    vup: tuple[float, float, float]
    vfov: float
    aspect_ratio: float
    aperture: float = 0.0
    focus_dist: float | None = None


# =============================================================================
# Taichi Fields for Camera State
# =============================================================================

_camera_origin = ti.Vector.field(3, dtype=ti.f32, shape=())

# Orthonormal basis vectors
_camera_u = ti.Vector.field(3, dtype=ti.f32, shape=())  # Right
_camera_v = ti.Vector.field(3, dtype=ti.f32, shape=())  # Up
_camera_w = ti.Vector.field(3, dtype=ti.f32, shape=())  # Backward (opposite view)

# Viewport vectors, placed on the focus plane
_viewport_horizontal = ti.Vector.field(3, dtype=ti.f32, shape=())
_viewport_vertical = ti.Vector.field(3, dtype=ti.f32, shape=())
_lower_left_corner = ti.Vector.field(3, dtype=ti.f32, shape=())

_lens_radius = ti.field(dtype=ti.f32, shape=())
_focus_dist = ti.field(dtype=ti.f32, shape=())
_camera_initialized = ti.field(dtype=ti.i32, shape=())


# =============================================================================
# Camera Setup (Python-side, called once per camera configuration)
# =============================================================================


def _validate_camera(camera: PinholeCamera) -> None:
    if not 0.0 < camera.vfov < 180.0:
        raise ValueError(f"vfov = {camera.vfov} must be in (0, 180) degrees")
    if camera.aspect_ratio <= 0.0:
        raise ValueError(f"aspect_ratio = {camera.aspect_ratio} must be positive")
    if camera.aperture < 0.0:
        raise ValueError(f"aperture = {camera.aperture} must be non-negative")
    if camera.focus_dist is not None and camera.focus_dist <= 0.0:
        raise ValueError(f"focus_dist = {camera.focus_dist} must be positive")


def setup_camera(camera: PinholeCamera) -> None:
    """Initialize camera state from configuration.

    Computes the camera's orthonormal basis (u, v, w) and viewport geometry
    from the provided camera parameters. This must be called before rendering.

    The viewport is placed on the focus plane, so ray directions are found by
    interpolating across it. For a pinhole the plane sits at unit distance
    unless focus_dist is given, which does not change the rays.

    Args:
        camera: Camera configuration with position, orientation, and FOV.

    Raises:
        ValueError: If lookfrom and lookat coincide, vup is parallel to the
            view direction, or a scalar parameter is out of range.
    """
    _validate_camera(camera)

    theta = math.radians(camera.vfov)
    h = math.tan(theta / 2.0)
    viewport_height = 2.0 * h
    viewport_width = camera.aspect_ratio * viewport_height

    lookfrom = np.array(camera.lookfrom, dtype=np.float64)
    lookat = np.array(camera.lookat, dtype=np.float64)
    vup = np.array(camera.vup, dtype=np.float64)

    # w points from lookat toward lookfrom (backward)
    view = lookfrom - lookat
    view_length = float(np.linalg.norm(view))
    if view_length < _MIN_BASIS_LENGTH:
        raise ValueError("Camera lookfrom and lookat must be distinct points")
    w = view / view_length

    u = np.cross(vup, w)
    u_length = float(np.linalg.norm(u))
    if u_length < _MIN_BASIS_LENGTH:
        raise ValueError("Camera vup must not be zero or parallel to the view direction")
    u = u / u_length
    v = np.cross(w, u)

    if camera.focus_dist is not None:
        focus = float(camera.focus_dist)
    elif camera.aperture > 0.0:
        focus = view_length
    else:
        focus = 1.0

    horizontal = focus * viewport_width * u
    vertical = focus * viewport_height * v
    lower_left = lookfrom - focus * w - horizontal / 2.0 - vertical / 2.0

    _camera_origin[None] = lookfrom.tolist()
    _camera_u[None] = u.tolist()
    _camera_v[None] = v.tolist()
    _camera_w[None] = w.tolist()
    _viewport_horizontal[None] = horizontal.tolist()
    _viewport_vertical[None] = vertical.tolist()
    _lower_left_corner[None] = lower_left.tolist()
    _lens_radius[None] = camera.aperture / 2.0
    _focus_dist[None] = focus
    _camera_initialized[None] = 1

    logger.debug(
        "Camera at %s looking at %s (vfov=%.1f, aperture=%.3f, focus=%.3f)",
        tuple(camera.lookfrom),
        tuple(camera.lookat),
        camera.vfov,
        camera.aperture,
        focus,
    )


def is_camera_initialized() -> bool:
    return bool(_camera_initialized[None])


def reset_camera() -> None:
    """Mark the camera as not set up."""
    _camera_initialized[None] = 0


# =============================================================================
# Ray Generation (Taichi-compatible)
# =============================================================================


@ti.func
def get_ray(u: ti.f32, v: ti.f32) -> Ray:
    """Generate a ray from the lens center through image coordinates (u, v).

    Coordinates are normalized: u runs 0 -> 1 left to right and v runs
    0 -> 1 bottom to top.

    Args:
        u: Horizontal coordinate in [0, 1].
        v: Vertical coordinate in [0, 1].

    Returns:
        A Ray with a unit direction.
    """
    point_on_viewport = (
        _lower_left_corner[None] + u * _viewport_horizontal[None] + v * _viewport_vertical[None]
    )
    origin = _camera_origin[None]
    direction = tm.normalize(point_on_viewport - origin)
    return make_ray(origin, direction)


@ti.func
def generate_ray(
    pixel_i: ti.i32,
    pixel_j: ti.i32,
    sample_index: ti.i32,
    width: ti.i32,
    height: ti.i32,
    samples_per_pixel: ti.i32,
    sampling_method: ti.i32,
    state: ti.u32,
):
    """Generate the primary ray for one sample of a pixel.

    The sample position inside the pixel footprint comes from
    stratified_offset(); when the lens radius is positive the origin is
    moved to a point on the lens disk and the ray aimed at the same point
    on the focus plane.

    Args:
        pixel_i: Pixel x-coordinate (0 = left).
        pixel_j: Pixel y-coordinate (0 = bottom).
        sample_index: Index of the sample within the pixel.
        width: Image width in pixels.
        height: Image height in pixels.
        samples_per_pixel: Total samples per pixel.
        sampling_method: SAMPLING_UNIFORM or SAMPLING_JITTER.
        state: Random state for this sample.

    Returns:
        A tuple (ray, new_state); ray.direction is unit length.
    """
    dx, dy, rng = stratified_offset(sample_index, samples_per_pixel, sampling_method, state)
    s = (ti.cast(pixel_i, ti.f32) + dx) / ti.cast(width, ti.f32)
    t = (ti.cast(pixel_j, ti.f32) + dy) / ti.cast(height, ti.f32)

    target = _lower_left_corner[None] + s * _viewport_horizontal[None] + t * _viewport_vertical[None]
    origin = _camera_origin[None]

    lens_radius = _lens_radius[None]
    if lens_radius > 0.0:
        disk, rng = sample_unit_disk(rng)
        origin += lens_radius * (disk.x * _camera_u[None] + disk.y * _camera_v[None])

    return make_ray(origin, tm.normalize(target - origin)), rng


@ti.func
def get_camera_origin() -> vec3:
    """Get the camera position in world space."""
    return _camera_origin[None]


@ti.func
def get_camera_basis():
    """Get the camera's orthonormal basis vectors.

    Returns:
        A tuple (u, v, w) where:
        - u: Right direction in world space
        - v: Up direction in world space
        - w: Backward direction (opposite view direction)
    """
    return _camera_u[None], _camera_v[None], _camera_w[None]


# =============================================================================
# Utility Functions
# =============================================================================


def _as_tuple(vec) -> tuple[float, float, float]:
    return (float(vec[0]), float(vec[1]), float(vec[2]))


def get_camera_info() -> dict[str, tuple[float, float, float] | float]:
    """Get current camera state for debugging.

    Returns:
        Dictionary with origin, u, v, w, horizontal, vertical, lower_left,
        lens_radius and focus_dist.
    """
    return {
        "origin": _as_tuple(_camera_origin[None]),
        "u": _as_tuple(_camera_u[None]),
        "v": _as_tuple(_camera_v[None]),
        "w": _as_tuple(_camera_w[None]),
        "horizontal": _as_tuple(_viewport_horizontal[None]),
        "vertical": _as_tuple(_viewport_vertical[None]),
        "lower_left": _as_tuple(_lower_left_corner[None]),
        "lens_radius": float(_lens_radius[None]),
        "focus_dist": float(_focus_dist[None]),
    }
