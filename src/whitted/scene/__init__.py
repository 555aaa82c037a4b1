"""Scene module for scene management and ray-scene queries.

Components:
    intersection: Primitive storage and closest/any-hit scene queries
    lighting: Point lights, ambient light and background color
    manager: Scene builder with validation, mesh ingestion and serialization
    presets: Ready-made mirror box and showcase scenes

Scene data is organized for efficient GPU access:
    - Structure-of-Arrays layout for geometric data
    - Contiguous material ID arrays
    - A flattened BVH over triangles, built when the scene is finalized
"""

from .intersection import (
    MAX_PLANES,
    MAX_SPHERES,
    MAX_TRIANGLES,
    SceneHitRecord,
    add_plane,
    add_sphere,
    add_triangle,
    clear_scene,
    get_plane_count,
    get_sphere_count,
    get_triangle_count,
    intersect_scene,
    intersect_scene_any,
)
from .lighting import (
    MAX_LIGHTS,
    add_point_light,
    clear_lights,
    get_light_count,
    set_ambient_light,
    set_background_color,
)
from .manager import (
    LightInfo,
    MaterialInfo,
    MeshInfo,
    PlaneInfo,
    SceneConfig,
    SceneManager,
    SphereInfo,
    TriangleInfo,
)
from .presets import create_mirror_box_scene, create_showcase_scene

__all__ = [
    # Intersection module
    "SceneHitRecord",
    "add_sphere",
    "add_plane",
    "add_triangle",
    "clear_scene",
    "get_sphere_count",
    "get_plane_count",
    "get_triangle_count",
    "intersect_scene",
    "intersect_scene_any",
    "MAX_SPHERES",
    "MAX_PLANES",
    "MAX_TRIANGLES",
    # Lighting module
    "add_point_light",
    "clear_lights",
    "get_light_count",
    "set_ambient_light",
    "set_background_color",
    "MAX_LIGHTS",
    # Manager module
    "SceneManager",
    "SceneConfig",
    "MaterialInfo",
    "SphereInfo",
    "PlaneInfo",
    "TriangleInfo",
    "MeshInfo",
    "LightInfo",
    # Presets
    "create_mirror_box_scene",
    "create_showcase_scene",
]
