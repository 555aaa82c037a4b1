"""Phong surface material and the material registry.

Every primitive references one material by integer id. A material combines
a base color (albedo) with the classic Phong coefficients and the
parameters that drive recursive reflection and refraction:

    ambient:      scales albedo * scene ambient light
    diffuse:      scales albedo * max(0, N.L) * light
    specular:     scales max(0, R.V)^shininess * light (white highlight)
    reflectivity: weight of the mirror-reflected ray in [0, 1]
    transparency: weight of the refracted ray in [0, 1]
    ior:          index of refraction used for transparent materials
    fresnel:      split the transparent share between reflection and
                  refraction with Schlick's term instead of refracting all of it

Reflectivity and transparency are used as configured; their sum may exceed
1 and is not renormalized.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.whitted.materials.phong import add_material
    >>> red = add_material(color=(0.8, 0.1, 0.1), specular=0.5, shininess=64.0)
    >>> glass = add_material(color=(1, 1, 1), transparency=0.9, ior=1.5, fresnel=True)
"""

import taichi as ti
import taichi.math as tm

vec3 = tm.vec3


@ti.dataclass
class PhongMaterial:
    """Material parameters as seen by the integrator.

    Attributes:
        color: Albedo (RGB in [0, 1]).
        ambient: Ambient coefficient.
        diffuse: Diffuse coefficient.
        specular: Specular coefficient.
        shininess: Phong exponent.
        reflectivity: Mirror reflection weight.
        transparency: Refraction weight.
        ior: Index of refraction.
        fresnel: 1 to weight refraction by Schlick's term.
    """

    color: vec3
    ambient: ti.f32
    diffuse: ti.f32
    specular: ti.f32
    shininess: ti.f32
    reflectivity: ti.f32
    transparency: ti.f32
    ior: ti.f32
    fresnel: ti.i32


@ti.func
def phong_light_contribution(
    material: PhongMaterial,
    normal: vec3,
    to_light: vec3,
    to_viewer: vec3,
    light_radiance: vec3,
) -> vec3:
    """Diffuse plus specular response to one unoccluded light.

    Args:
        material: The surface material.
        normal: Unit shading normal, oriented toward the viewer.
        to_light: Unit direction from the surface point to the light.
        to_viewer: Unit direction from the surface point to the viewer.
        light_radiance: Light color scaled by its intensity.

    Returns:
        The reflected color. Zero when the light is behind the surface.
    """
    result = vec3(0.0, 0.0, 0.0)
    n_dot_l = tm.dot(normal, to_light)
    if n_dot_l > 0.0:
        result += material.color * material.diffuse * n_dot_l * light_radiance
        if material.specular > 0.0:
            reflected = 2.0 * n_dot_l * normal - to_light
            r_dot_v = tm.max(tm.dot(reflected, to_viewer), 0.0)
            result += material.specular * (r_dot_v**material.shininess) * light_radiance
    return result


@ti.func
def phong_ambient(material: PhongMaterial, ambient_light: vec3) -> vec3:
    """Ambient term albedo * ambient * ambient_light."""
    return material.color * material.ambient * ambient_light


# =============================================================================
# Material Field Storage
# =============================================================================

MAX_MATERIALS = 1024

material_colors = ti.Vector.field(3, dtype=ti.f32, shape=MAX_MATERIALS)
material_ambient = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
material_diffuse = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
material_specular = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
material_shininess = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
material_reflectivity = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
material_transparency = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
material_ior = ti.field(dtype=ti.f32, shape=MAX_MATERIALS)
material_fresnel = ti.field(dtype=ti.i32, shape=MAX_MATERIALS)
num_materials = ti.field(dtype=ti.i32, shape=())


def clear_materials() -> None:
    """Reset the registry. Stale entries are overwritten by later adds."""
    num_materials[None] = 0


def _check_unit_interval(name: str, value: float) -> None:
    if not 0.0 <= value <= 1.0:
        raise ValueError(f"{name} = {value} is outside [0, 1]")


def _check_non_negative(name: str, value: float) -> None:
    if value < 0.0:
        raise ValueError(f"{name} = {value} must be non-negative")


def validate_material_params(
    color: tuple[float, float, float],
    ambient: float,
    diffuse: float,
    specular: float,
    shininess: float,
    reflectivity: float,
    transparency: float,
    ior: float,
) -> None:
    """Validate material parameters.

    Raises:
        ValueError: If the color is not an RGB triple in [0, 1], a
            coefficient is negative, shininess is not positive, reflectivity
            or transparency is outside [0, 1], or ior is below 1.0.
    """
    if len(color) != 3:
        raise ValueError(f"color must have 3 components, got {len(color)}")
    for i, component in enumerate(color):
        _check_unit_interval(f"color[{i}]", component)
    _check_non_negative("ambient", ambient)
    _check_non_negative("diffuse", diffuse)
    _check_non_negative("specular", specular)
    if shininess <= 0.0:
        raise ValueError(f"shininess = {shininess} must be positive")
    _check_unit_interval("reflectivity", reflectivity)
    _check_unit_interval("transparency", transparency)
    if ior < 1.0:
        raise ValueError(
            f"Index of refraction = {ior} is less than 1.0. "
            "IOR must be >= 1.0 for physically meaningful materials."
        )


def add_material(
    color: tuple[float, float, float],
    ambient: float = 0.1,
    diffuse: float = 0.9,
    specular: float = 0.0,
    shininess: float = 32.0,
    reflectivity: float = 0.0,
    transparency: float = 0.0,
    ior: float = 1.0,
    fresnel: bool = False,
) -> int:
    """Add a material to the registry.

    Args:
        color: Albedo as (R, G, B), each component in [0, 1].
        ambient: Ambient coefficient (>= 0).
        diffuse: Diffuse coefficient (>= 0).
        specular: Specular coefficient (>= 0).
        shininess: Phong exponent (> 0).
        reflectivity: Mirror reflection weight in [0, 1].
        transparency: Refraction weight in [0, 1].
        ior: Index of refraction (>= 1.0).
        fresnel: Weight refraction by Schlick's Fresnel term.

    Returns:
        The material id.

    Raises:
        RuntimeError: If the maximum number of materials is exceeded.
        ValueError: If any parameter is invalid.
    """
    validate_material_params(
        color, ambient, diffuse, specular, shininess, reflectivity, transparency, ior
    )

    idx = num_materials[None]
    if idx >= MAX_MATERIALS:
        raise RuntimeError(f"Maximum number of materials ({MAX_MATERIALS}) exceeded")

    material_colors[idx] = vec3(color[0], color[1], color[2])
    material_ambient[idx] = ambient
    material_diffuse[idx] = diffuse
    material_specular[idx] = specular
    material_shininess[idx] = shininess
    material_reflectivity[idx] = reflectivity
    material_transparency[idx] = transparency
    material_ior[idx] = ior
    material_fresnel[idx] = 1 if fresnel else 0
    num_materials[None] = idx + 1
    return idx


def get_material_count() -> int:
    """Get the number of materials in the registry."""
    return int(num_materials[None])


@ti.func
def get_material(material_id: ti.i32) -> PhongMaterial:
    """Look up a material by id inside a kernel."""
    return PhongMaterial(
        color=material_colors[material_id],
        ambient=material_ambient[material_id],
        diffuse=material_diffuse[material_id],
        specular=material_specular[material_id],
        shininess=material_shininess[material_id],
        reflectivity=material_reflectivity[material_id],
        transparency=material_transparency[material_id],
        ior=material_ior[material_id],
        fresnel=material_fresnel[material_id],
    )
