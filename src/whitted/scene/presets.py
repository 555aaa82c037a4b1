"""Ready-made scenes.

This module provides factory functions for two scenes:

- A closed mirror box: six inward-facing, perfectly reflective planes with
  the camera inside. Every ray keeps bouncing until the depth limit, which
  makes it the standard scene for checking recursion termination.
- A showcase scene exercising every primitive and material feature:
  matte, shiny, mirror and glass spheres, a ground plane, a small
  triangle mesh (a pyramid), two point lights and ambient light.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.whitted.scene.presets import create_showcase_scene
    >>> from src.whitted.camera.pinhole import setup_camera
    >>>
    >>> scene, camera = create_showcase_scene()
    >>> setup_camera(camera)
    >>> # Now render using the scene and camera
"""

from src.whitted.camera.pinhole import PinholeCamera
from src.whitted.scene.manager import SceneManager

# =============================================================================
# Mirror Box Constants
# =============================================================================

MIRROR_BOX_HALF_SIZE = 1.0

# Perfect mirror: no local shading at all, every hit spawns one reflection
MIRROR_COLOR = (1.0, 1.0, 1.0)

# =============================================================================
# Showcase Constants
# =============================================================================

GROUND_COLOR = (0.75, 0.75, 0.7)
MATTE_COLOR = (0.8, 0.25, 0.2)
SHINY_COLOR = (0.2, 0.35, 0.8)
MIRROR_SPHERE_COLOR = (0.9, 0.9, 0.9)
GLASS_COLOR = (1.0, 1.0, 1.0)
PYRAMID_COLOR = (0.85, 0.7, 0.2)

GLASS_IOR = 1.5

SKY_COLOR = (0.5, 0.7, 1.0)
AMBIENT_LIGHT = (0.2, 0.2, 0.2)


# =============================================================================
# Mirror Box
# =============================================================================


def create_mirror_box_scene(
    half_size: float = MIRROR_BOX_HALF_SIZE,
    finalize: bool = True,
) -> tuple[SceneManager, PinholeCamera]:
    """Create a closed box of perfect mirrors with the camera at its center.

    All six walls share one material with reflectivity 1 and no ambient,
    diffuse or specular response. The scene has no lights and a black
    background, so every pixel renders black; the interesting quantity is
    the number of rays traced.

    Args:
        half_size: Half the edge length of the box, centered at the origin.
        finalize: Whether to finalize the scene before returning.

    Returns:
        A tuple of (SceneManager, PinholeCamera).

    Raises:
        ValueError: If half_size is not positive.
    """
    if half_size <= 0.0:
        raise ValueError(f"half_size = {half_size} must be positive")

    scene = SceneManager()
    mirror = scene.add_material(
        color=MIRROR_COLOR,
        ambient=0.0,
        diffuse=0.0,
        specular=0.0,
        reflectivity=1.0,
    )

    s = half_size
    # Normals point into the box
    walls = [
        ((-s, 0.0, 0.0), (1.0, 0.0, 0.0)),
        ((s, 0.0, 0.0), (-1.0, 0.0, 0.0)),
        ((0.0, -s, 0.0), (0.0, 1.0, 0.0)),
        ((0.0, s, 0.0), (0.0, -1.0, 0.0)),
        ((0.0, 0.0, -s), (0.0, 0.0, 1.0)),
        ((0.0, 0.0, s), (0.0, 0.0, -1.0)),
    ]
    for point, normal in walls:
        scene.add_plane(point=point, normal=normal, material_id=mirror)

    if finalize:
        scene.finalize()

    camera = PinholeCamera(
        lookfrom=(0.0, 0.0, 0.0),
        lookat=(0.3, 0.2, -1.0),
        vup=(0.0, 1.0, 0.0),
        vfov=60.0,
        aspect_ratio=1.0,
    )
    return scene, camera


# =============================================================================
# Showcase
# =============================================================================


def _add_pyramid(scene: SceneManager, material_id: int) -> None:
    """Add a square pyramid resting on the ground as a triangle mesh."""
    cx, cz = 1.6, -1.2
    half = 0.45
    height = 0.9
    vertices = [
        (cx - half, 0.0, cz - half),
        (cx + half, 0.0, cz - half),
        (cx + half, 0.0, cz + half),
        (cx - half, 0.0, cz + half),
        (cx, height, cz),
    ]
    faces = [
        (0, 1, 4),
        (1, 2, 4),
        (2, 3, 4),
        (3, 0, 4),
        (0, 2, 1),
        (0, 3, 2),
    ]
    scene.add_mesh(vertices, faces, material_id)


def create_showcase_scene(
    aspect_ratio: float = 4.0 / 3.0,
    finalize: bool = True,
) -> tuple[SceneManager, PinholeCamera]:
    """Create a scene exercising every primitive and material feature.

    Contents:
    - Ground plane (matte, slightly reflective)
    - Matte red sphere, shiny blue sphere with Phong highlight
    - Mirror sphere
    - Glass sphere with Fresnel-weighted reflection and refraction
    - Golden pyramid built from a triangle mesh
    - Two point lights, ambient light and a sky-colored background

    Args:
        aspect_ratio: Aspect ratio for the returned camera.
        finalize: Whether to finalize the scene (builds the BVH).

    Returns:
        A tuple of (SceneManager, PinholeCamera).

    Example:
        >>> scene, camera = create_showcase_scene()
        >>> scene.get_sphere_count()
        4
    """
    scene = SceneManager()

    # =========================================================================
    # Materials
    # =========================================================================

    ground = scene.add_material(color=GROUND_COLOR, diffuse=0.8, reflectivity=0.1)
    matte = scene.add_material(color=MATTE_COLOR, diffuse=0.9)
    shiny = scene.add_material(color=SHINY_COLOR, diffuse=0.7, specular=0.6, shininess=64.0)
    mirror = scene.add_material(
        color=MIRROR_SPHERE_COLOR,
        ambient=0.0,
        diffuse=0.05,
        specular=0.8,
        shininess=256.0,
        reflectivity=0.9,
    )
    glass = scene.add_material(
        color=GLASS_COLOR,
        ambient=0.0,
        diffuse=0.0,
        specular=0.9,
        shininess=256.0,
        reflectivity=1.0,
        transparency=1.0,
        ior=GLASS_IOR,
        fresnel=True,
    )
    gold = scene.add_material(color=PYRAMID_COLOR, diffuse=0.8, specular=0.3, shininess=16.0)

    # =========================================================================
    # Geometry
    # =========================================================================

    scene.add_plane(point=(0.0, 0.0, 0.0), normal=(0.0, 1.0, 0.0), material_id=ground)

    scene.add_sphere(center=(-1.6, 0.6, -1.0), radius=0.6, material_id=matte)
    scene.add_sphere(center=(-0.3, 0.5, -2.2), radius=0.5, material_id=shiny)
    scene.add_sphere(center=(0.4, 0.7, -0.6), radius=0.7, material_id=glass)
    scene.add_sphere(center=(0.8, 0.8, -3.2), radius=0.8, material_id=mirror)

    _add_pyramid(scene, gold)

    # =========================================================================
    # Lights
    # =========================================================================

    scene.add_point_light(position=(-3.0, 5.0, 2.0), color=(1.0, 0.95, 0.9), intensity=0.8)
    scene.add_point_light(position=(4.0, 3.0, 1.0), color=(0.8, 0.85, 1.0), intensity=0.4)
    scene.set_ambient_light(AMBIENT_LIGHT)
    scene.set_background(SKY_COLOR)

    if finalize:
        scene.finalize()

    camera = PinholeCamera(
        lookfrom=(0.0, 1.6, 3.5),
        lookat=(0.0, 0.6, -1.5),
        vup=(0.0, 1.0, 0.0),
        vfov=50.0,
        aspect_ratio=aspect_ratio,
    )
    return scene, camera
