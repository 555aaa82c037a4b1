"""Whitted-style recursive ray tracing integrator.

This module implements the shading core of the renderer. For every camera
sample it traces the primary ray into the scene and, at each hit:

    1. Computes local illumination: the ambient term plus, for each point
       light that is not blocked (binary shadow ray), Lambertian diffuse
       and Phong specular terms.
    2. Spawns a mirror reflection ray weighted by the material's
       reflectivity.
    3. Spawns a refraction ray weighted by the material's transparency
       (optionally split with the reflection by Schlick's Fresnel term).
       Under total internal reflection the transparent share follows the
       reflected ray instead.

A ray that misses everything, or that is reached with no depth left,
returns the background color. Reflection/refraction children carry
depth - 1, so the configured maximum depth bounds the number of scene
intersection queries along any chain of bounces. There is no Russian
roulette and no renormalization of reflectivity + transparency.

Taichi functions cannot recurse, so the recursion is unrolled into an
explicit stack of (origin, direction, weight, depth) entries. Each entry's
local color is added to the pixel scaled by the product of coefficients
along its chain, which is exactly what the recursive formulation computes.

The render target is a preallocated framebuffer. Kernels render a band of
rows at a time; each pixel is averaged over its samples, gamma corrected,
clamped to [0, 1] and written exactly once.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.whitted.core.integrator import setup_render_target, render_rows
    >>> setup_render_target(320, 240)
    >>> render_rows(0, 240, samples_per_pixel=4, max_depth=5)
"""

import taichi as ti
import taichi.math as tm

from src.whitted.camera.pinhole import generate_ray, is_camera_initialized
from src.whitted.core.ray import reflect
from src.whitted.core.sampler import SAMPLING_JITTER, init_sample_state
from src.whitted.materials.dielectric import fresnel_reflectance, refract_direction
from src.whitted.materials.phong import (
    PhongMaterial,
    get_material,
    phong_ambient,
    phong_light_contribution,
)
from src.whitted.scene.intersection import intersect_scene, intersect_scene_any
from src.whitted.scene.lighting import (
    get_ambient_light,
    get_background_color,
    get_light_position,
    get_light_radiance,
    num_lights,
)

# Type alias for 3D vectors
vec3 = tm.vec3

# =============================================================================
# Rendering Constants
# =============================================================================

# Upper bound for the configurable recursion depth
MAX_TRACE_DEPTH = 8

# Each popped entry pushes at most two children one level deeper, so the
# stack never holds more than depth + 1 entries
STACK_SIZE = MAX_TRACE_DEPTH + 2

# Ray offset epsilon to avoid self-intersection
RAY_EPSILON = 1e-4

# t_min and t_max for ray intersection
T_MIN = 1e-4
T_MAX = 1e10

# =============================================================================
# Render Target (Image Buffer)
# =============================================================================

# Maximum supported image dimensions (preallocated to avoid kernel recompilation)
MAX_IMAGE_WIDTH = 2048
MAX_IMAGE_HEIGHT = 2048

_image_width = ti.field(dtype=ti.i32, shape=())
_image_height = ti.field(dtype=ti.i32, shape=())

# Final display-ready colors, indexed [x, y] with y = 0 at the bottom
_framebuffer = ti.Vector.field(3, dtype=ti.f32, shape=(MAX_IMAGE_WIDTH, MAX_IMAGE_HEIGHT))

_render_target_initialized = ti.field(dtype=ti.i32, shape=())

# Single-ray diagnostics
_debug_color = ti.Vector.field(3, dtype=ti.f32, shape=())
_debug_rays = ti.field(dtype=ti.i32, shape=())


def setup_render_target(width: int, height: int) -> None:
    """Initialize the render target.

    The framebuffer is preallocated to MAX_IMAGE_WIDTH x MAX_IMAGE_HEIGHT;
    this only sets the active region and clears it.

    Args:
        width: Image width in pixels (max MAX_IMAGE_WIDTH).
        height: Image height in pixels (max MAX_IMAGE_HEIGHT).

    Raises:
        ValueError: If a dimension is not positive or exceeds the maximum.
    """
    if width <= 0 or height <= 0:
        raise ValueError(f"Image dimensions must be positive, got {width}x{height}")
    if width > MAX_IMAGE_WIDTH or height > MAX_IMAGE_HEIGHT:
        raise ValueError(
            f"Image dimensions ({width}x{height}) exceed maximum supported "
            f"({MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT})"
        )

    _image_width[None] = width
    _image_height[None] = height
    _render_target_initialized[None] = 1
    clear_render_target()


def clear_render_target() -> None:
    """Clear the framebuffer to zero."""
    _framebuffer.fill(0.0)


def get_image_dimensions() -> tuple[int, int]:
    """Get the current render target dimensions as (width, height)."""
    return int(_image_width[None]), int(_image_height[None])


def _check_render_target_initialized() -> None:
    """Check if render target is initialized and raise if not."""
    if _render_target_initialized[None] == 0:
        raise RuntimeError("Render target not set up. Call setup_render_target() first.")


# =============================================================================
# Shading
# =============================================================================


@ti.func
def _offset_ray_origin(point: vec3, normal: vec3, direction: vec3) -> vec3:
    """Offset ray origin to avoid self-intersection.

    Pushes the point slightly along the normal to the side the new ray
    travels into: above the surface for reflection and shadow rays, below
    it for refraction.
    """
    offset_dir = normal
    if tm.dot(direction, normal) < 0.0:
        offset_dir = -normal
    return point + RAY_EPSILON * offset_dir


@ti.func
def shade_local(point: vec3, normal: vec3, to_viewer: vec3, material: PhongMaterial) -> vec3:
    """Ambient plus per-light diffuse and specular with hard shadows.

    Args:
        point: The shaded surface point.
        normal: Unit normal at the point, oriented toward the viewer.
        to_viewer: Unit direction from the point back along the incoming ray.
        material: Material of the surface.

    Returns:
        The locally reflected color.
    """
    color = phong_ambient(material, get_ambient_light())

    for light_idx in range(num_lights[None]):
        light_pos = get_light_position(light_idx)
        to_light = light_pos - point
        dist = tm.length(to_light)
        if dist > RAY_EPSILON:
            light_dir = to_light / dist
            if tm.dot(normal, light_dir) > 0.0:
                shadow_origin = _offset_ray_origin(point, normal, light_dir)
                shadow_t_max = tm.length(light_pos - shadow_origin) - RAY_EPSILON
                occluded = 0
                if shadow_t_max > T_MIN:
                    occluded = intersect_scene_any(shadow_origin, light_dir, T_MIN, shadow_t_max)
                if occluded == 0:
                    color += phong_light_contribution(
                        material, normal, light_dir, to_viewer, get_light_radiance(light_idx)
                    )

    return color


@ti.func
def trace_ray(origin: vec3, direction: vec3, max_depth: ti.i32):
    """Trace one ray with bounded reflection/refraction recursion.

    Args:
        origin: Ray origin.
        direction: Unit ray direction.
        max_depth: Remaining recursion depth for this ray. At 0 the
            background color is returned without touching the scene.

    Returns:
        A tuple (color, rays_traced) where rays_traced counts closest-hit
        scene queries (shadow rays excluded).
    """
    stack_origin = ti.Matrix.zero(ti.f32, STACK_SIZE, 3)
    stack_direction = ti.Matrix.zero(ti.f32, STACK_SIZE, 3)
    stack_weight = ti.Matrix.zero(ti.f32, STACK_SIZE, 3)
    stack_depth = ti.Vector.zero(ti.i32, STACK_SIZE)

    for c in ti.static(range(3)):
        stack_origin[0, c] = origin[c]
        stack_direction[0, c] = direction[c]
        stack_weight[0, c] = 1.0
    stack_depth[0] = max_depth
    stack_ptr = 1

    color = vec3(0.0, 0.0, 0.0)
    rays_traced = 0
    background = get_background_color()

    while stack_ptr > 0:
        stack_ptr -= 1
        ray_origin = vec3(0.0, 0.0, 0.0)
        ray_direction = vec3(0.0, 0.0, 0.0)
        weight = vec3(0.0, 0.0, 0.0)
        for c in ti.static(range(3)):
            ray_origin[c] = stack_origin[stack_ptr, c]
            ray_direction[c] = stack_direction[stack_ptr, c]
            weight[c] = stack_weight[stack_ptr, c]
        depth = stack_depth[stack_ptr]

        if depth <= 0:
            color += weight * background
        else:
            rec = intersect_scene(ray_origin, ray_direction, T_MIN, T_MAX)
            rays_traced += 1

            if rec.hit == 0:
                color += weight * background
            else:
                material = get_material(rec.material_id)
                color += weight * shade_local(rec.point, rec.normal, -ray_direction, material)

                reflect_weight = material.reflectivity
                refract_weight = 0.0
                refracted = vec3(0.0, 0.0, 0.0)
                if material.transparency > 0.0:
                    refracted, tir = refract_direction(
                        material.ior, ray_direction, rec.normal, rec.front_face
                    )
                    if tir == 1:
                        reflect_weight += material.transparency
                    else:
                        kr = 0.0
                        if material.fresnel == 1:
                            kr = fresnel_reflectance(
                                material.ior, ray_direction, rec.normal, rec.front_face
                            )
                        reflect_weight += material.transparency * kr
                        refract_weight = material.transparency * (1.0 - kr)

                if reflect_weight > 0.0 and stack_ptr < STACK_SIZE:
                    reflected = tm.normalize(reflect(ray_direction, rec.normal))
                    child_origin = _offset_ray_origin(rec.point, rec.normal, reflected)
                    child_weight = weight * reflect_weight
                    for c in ti.static(range(3)):
                        stack_origin[stack_ptr, c] = child_origin[c]
                        stack_direction[stack_ptr, c] = reflected[c]
                        stack_weight[stack_ptr, c] = child_weight[c]
                    stack_depth[stack_ptr] = depth - 1
                    stack_ptr += 1

                if refract_weight > 0.0 and stack_ptr < STACK_SIZE:
                    child_origin = _offset_ray_origin(rec.point, rec.normal, refracted)
                    child_weight = weight * refract_weight
                    for c in ti.static(range(3)):
                        stack_origin[stack_ptr, c] = child_origin[c]
                        stack_direction[stack_ptr, c] = refracted[c]
                        stack_weight[stack_ptr, c] = child_weight[c]
                    stack_depth[stack_ptr] = depth - 1
                    stack_ptr += 1

    return color, rays_traced


@ti.func
def _tonemap(color: vec3, inv_gamma: ti.f32) -> vec3:
    """Gamma correct and clamp a linear color to [0, 1].

    Non-finite components become 0.
    """
    result = vec3(0.0, 0.0, 0.0)
    for c in ti.static(range(3)):
        value = color[c]
        if tm.isnan(value) or tm.isinf(value):
            value = 0.0
        value = tm.max(value, 0.0)
        if inv_gamma != 1.0:
            value = value**inv_gamma
        result[c] = tm.min(value, 1.0)
    return result


@ti.func
def render_pixel(
    pixel_i: ti.i32,
    pixel_j: ti.i32,
    width: ti.i32,
    height: ti.i32,
    samples_per_pixel: ti.i32,
    max_depth: ti.i32,
    sampling_method: ti.i32,
    seed: ti.i32,
) -> vec3:
    """Average traced color over all samples of one pixel (linear)."""
    accum = vec3(0.0, 0.0, 0.0)
    for s in range(samples_per_pixel):
        state = init_sample_state(seed, pixel_i, pixel_j, s)
        ray, state = generate_ray(
            pixel_i, pixel_j, s, width, height, samples_per_pixel, sampling_method, state
        )
        color, _rays = trace_ray(ray.origin, ray.direction, max_depth)
        accum += color
    return accum / ti.cast(samples_per_pixel, ti.f32)


# =============================================================================
# Rendering Kernels
# =============================================================================


@ti.kernel
def _render_rows(
    row_start: ti.i32,
    row_end: ti.i32,
    width: ti.i32,
    height: ti.i32,
    samples_per_pixel: ti.i32,
    max_depth: ti.i32,
    sampling_method: ti.i32,
    seed: ti.i32,
    inv_gamma: ti.f32,
):
    """Render rows [row_start, row_end) into the framebuffer.

    The outermost loop is parallelized by Taichi; every (i, j) is handled by
    exactly one thread, so pixels are written without synchronization.
    """
    for i, j in ti.ndrange(width, (row_start, row_end)):
        color = render_pixel(i, j, width, height, samples_per_pixel, max_depth, sampling_method, seed)
        _framebuffer[i, j] = _tonemap(color, inv_gamma)


@ti.kernel
def _trace_single_ray(
    ox: ti.f32,
    oy: ti.f32,
    oz: ti.f32,
    dx: ti.f32,
    dy: ti.f32,
    dz: ti.f32,
    max_depth: ti.i32,
):
    color, rays = trace_ray(vec3(ox, oy, oz), tm.normalize(vec3(dx, dy, dz)), max_depth)
    _debug_color[None] = color
    _debug_rays[None] = rays


@ti.kernel
def _shade_point(
    px: ti.f32,
    py: ti.f32,
    pz: ti.f32,
    nx: ti.f32,
    ny: ti.f32,
    nz: ti.f32,
    vx: ti.f32,
    vy: ti.f32,
    vz: ti.f32,
    material_id: ti.i32,
):
    _debug_color[None] = shade_local(
        vec3(px, py, pz),
        tm.normalize(vec3(nx, ny, nz)),
        tm.normalize(vec3(vx, vy, vz)),
        get_material(material_id),
    )


# =============================================================================
# Public Rendering API
# =============================================================================


def validate_max_depth(max_depth: int) -> None:
    """Raise ValueError unless 0 <= max_depth <= MAX_TRACE_DEPTH."""
    if not 0 <= max_depth <= MAX_TRACE_DEPTH:
        raise ValueError(f"max_depth = {max_depth} must be in [0, {MAX_TRACE_DEPTH}]")


def render_rows(
    row_start: int,
    row_end: int,
    samples_per_pixel: int = 1,
    max_depth: int = 5,
    sampling_method: int = SAMPLING_JITTER,
    seed: int = 0,
    gamma: float = 2.0,
) -> None:
    """Render a band of rows into the framebuffer.

    Rows are counted from the bottom of the image.

    Args:
        row_start: First row (inclusive).
        row_end: Last row (exclusive).
        samples_per_pixel: Camera samples averaged per pixel.
        max_depth: Recursion depth for primary rays.
        sampling_method: SAMPLING_UNIFORM or SAMPLING_JITTER.
        seed: Seed for the per-sample random numbers.
        gamma: Output gamma; colors are raised to 1 / gamma (2.0 is the
            square-root tonemap).

    Raises:
        RuntimeError: If the render target or camera has not been set up.
        ValueError: If the row range or a parameter is invalid.
    """
    _check_render_target_initialized()
    if not is_camera_initialized():
        raise RuntimeError("Camera not set up. Call setup_camera() first.")
    width, height = get_image_dimensions()
    if not 0 <= row_start <= row_end <= height:
        raise ValueError(f"Invalid row range [{row_start}, {row_end}) for height {height}")
    if samples_per_pixel < 1:
        raise ValueError(f"samples_per_pixel = {samples_per_pixel} must be at least 1")
    if gamma <= 0.0:
        raise ValueError(f"gamma = {gamma} must be positive")
    validate_max_depth(max_depth)

    if row_start == row_end:
        return
    _render_rows(
        row_start,
        row_end,
        width,
        height,
        samples_per_pixel,
        max_depth,
        sampling_method,
        seed,
        1.0 / gamma,
    )


def trace_single_ray(
    origin: tuple[float, float, float],
    direction: tuple[float, float, float],
    max_depth: int,
) -> tuple[tuple[float, float, float], int]:
    """Trace one ray from Python, for diagnostics and tests.

    Args:
        origin: Ray origin.
        direction: Ray direction (normalized before tracing).
        max_depth: Recursion depth.

    Returns:
        A tuple ((r, g, b), rays_traced) with the linear, unclamped color.
    """
    validate_max_depth(max_depth)
    _trace_single_ray(
        origin[0], origin[1], origin[2], direction[0], direction[1], direction[2], max_depth
    )
    c = _debug_color[None]
    return (float(c[0]), float(c[1]), float(c[2])), int(_debug_rays[None])


def shade_point(
    point: tuple[float, float, float],
    normal: tuple[float, float, float],
    to_viewer: tuple[float, float, float],
    material_id: int,
) -> tuple[float, float, float]:
    """Evaluate local illumination (ambient + shadowed point lights) at a point.

    Returns:
        The linear (r, g, b) color.
    """
    _shade_point(
        point[0], point[1], point[2],
        normal[0], normal[1], normal[2],
        to_viewer[0], to_viewer[1], to_viewer[2],
        material_id,
    )
    c = _debug_color[None]
    return (float(c[0]), float(c[1]), float(c[2]))


def get_normalized_image_numpy():
    """Get the rendered image as a NumPy array.

    The array has shape (height, width, 3), dtype float32, values in
    [0, 1] and row 0 at the top of the image.

    Raises:
        RuntimeError: If render target has not been set up.
    """
    import numpy as np

    _check_render_target_initialized()

    width, height = get_image_dimensions()
    full_image = _framebuffer.to_numpy()
    image = full_image[:width, :height, :]

    # Transpose from (width, height, 3) to (height, width, 3) for standard image format
    image = np.transpose(image, (1, 0, 2))

    # Flip vertically (Taichi uses bottom-left origin, images use top-left)
    image = np.flipud(image)

    return np.ascontiguousarray(image, dtype=np.float32)
