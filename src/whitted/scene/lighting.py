"""Point lights, ambient light and background color.

Lights are stored like primitives: preallocated Taichi fields filled from
Python before rendering and only read by kernels. A point light contributes
color * intensity to every point that can see it; the ambient light is a
single scene-wide color scaled per material by its ambient coefficient. Rays
that leave the scene, or that run out of recursion depth, return the
background color.
"""

import taichi as ti
import taichi.math as tm

vec3 = tm.vec3

MAX_LIGHTS = 64

light_positions = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LIGHTS)
light_colors = ti.Vector.field(3, dtype=ti.f32, shape=MAX_LIGHTS)
light_intensities = ti.field(dtype=ti.f32, shape=MAX_LIGHTS)
num_lights = ti.field(dtype=ti.i32, shape=())

_ambient_light = ti.Vector.field(3, dtype=ti.f32, shape=())
_background_color = ti.Vector.field(3, dtype=ti.f32, shape=())


def _check_color(name: str, color: tuple[float, float, float]) -> None:
    if len(color) != 3:
        raise ValueError(f"{name} must have 3 components, got {len(color)}")
    if any(c < 0.0 for c in color):
        raise ValueError(f"{name} components must be non-negative, got {tuple(color)}")


def clear_lights() -> None:
    """Remove all point lights and reset ambient light and background to black."""
    num_lights[None] = 0
    _ambient_light[None] = vec3(0.0, 0.0, 0.0)
    _background_color[None] = vec3(0.0, 0.0, 0.0)


def add_point_light(
    position: tuple[float, float, float],
    color: tuple[float, float, float] = (1.0, 1.0, 1.0),
    intensity: float = 1.0,
) -> int:
    """Add a point light.

    Args:
        position: Light position in world space.
        color: Light color (RGB, non-negative).
        intensity: Scalar multiplier applied to the color (non-negative).

    Returns:
        The index of the added light.

    Raises:
        RuntimeError: If the maximum number of lights is exceeded.
        ValueError: If the color or intensity is negative.
    """
    _check_color("Light color", color)
    if intensity < 0.0:
        raise ValueError(f"Light intensity = {intensity} must be non-negative")

    idx = num_lights[None]
    if idx >= MAX_LIGHTS:
        raise RuntimeError(f"Maximum number of lights ({MAX_LIGHTS}) exceeded")
    light_positions[idx] = vec3(position[0], position[1], position[2])
    light_colors[idx] = vec3(color[0], color[1], color[2])
    light_intensities[idx] = intensity
    num_lights[None] = idx + 1
    return idx


def set_ambient_light(color: tuple[float, float, float]) -> None:
    """Set the scene-wide ambient light color.

    Raises:
        ValueError: If any component is negative.
    """
    _check_color("Ambient light", color)
    _ambient_light[None] = vec3(color[0], color[1], color[2])


def set_background_color(color: tuple[float, float, float]) -> None:
    """Set the color returned by rays that miss every primitive.

    Raises:
        ValueError: If any component is negative.
    """
    _check_color("Background color", color)
    _background_color[None] = vec3(color[0], color[1], color[2])


def get_light_count() -> int:
    """Get the number of point lights."""
    return int(num_lights[None])


def get_ambient_light_python() -> tuple[float, float, float]:
    c = _ambient_light[None]
    return (float(c[0]), float(c[1]), float(c[2]))


def get_background_color_python() -> tuple[float, float, float]:
    c = _background_color[None]
    return (float(c[0]), float(c[1]), float(c[2]))


@ti.func
def get_light_position(light_idx: ti.i32) -> vec3:
    return light_positions[light_idx]


@ti.func
def get_light_radiance(light_idx: ti.i32) -> vec3:
    """Light color scaled by its intensity."""
    return light_colors[light_idx] * light_intensities[light_idx]


@ti.func
def get_ambient_light() -> vec3:
    return _ambient_light[None]


@ti.func
def get_background_color() -> vec3:
    return _background_color[None]
