"""Materials module for Phong shading and refraction.

Components:
    phong: Phong material, material registry and local illumination terms
    dielectric: Refraction ratio, total internal reflection and Fresnel
        helpers for transparent materials

All shading computations are Taichi functions for execution inside kernels.
"""

from .dielectric import (
    fresnel_reflectance,
    refract_direction,
    refraction_ratio,
    will_reflect,
)
from .phong import (
    MAX_MATERIALS,
    PhongMaterial,
    add_material,
    clear_materials,
    get_material,
    get_material_count,
    phong_ambient,
    phong_light_contribution,
    validate_material_params,
)

__all__ = [
    # Phong
    "PhongMaterial",
    "MAX_MATERIALS",
    "add_material",
    "clear_materials",
    "get_material",
    "get_material_count",
    "phong_ambient",
    "phong_light_contribution",
    "validate_material_params",
    # Dielectric
    "fresnel_reflectance",
    "refract_direction",
    "refraction_ratio",
    "will_reflect",
]
