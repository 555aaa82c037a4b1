"""Unified scene manager coordinating primitives, materials and lights.

This module provides a high-level scene building API on top of the
field-level storage in src.whitted.scene.intersection,
src.whitted.materials.phong and src.whitted.scene.lighting. It validates
input at construction time so an invalid scene never reaches the renderer.

A scene has two phases:
    - Construction: materials, primitives, meshes and lights are added.
      Invalid input (unknown material id, non-triangular mesh face,
      non-positive radius, zero plane normal, ...) raises ValueError.
    - Finalized: finalize() builds the triangle BVH and freezes the scene.
      Kernels only ever read it from here on, so any further mutation
      raises RuntimeError until clear() is called.

The SceneManager maintains:
- Python-side records mirroring everything stored in Taichi fields
- Mesh ingestion for triangulated meshes (faces with exactly 3 vertices)
- Scene serialization/configuration support

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.whitted.scene.manager import SceneManager
    >>> scene = SceneManager()
    >>> red = scene.add_material(color=(0.8, 0.3, 0.3), specular=0.4)
    >>> scene.add_sphere(center=(0, 0, -1), radius=0.5, material_id=red)
    >>> scene.add_point_light(position=(2, 4, 2), intensity=1.0)
    >>> scene.finalize()
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

import numpy as np
import numpy.typing as npt
import taichi.math as tm

from src.whitted.geometry.bvh import build_bvh, get_bvh_node_count, upload_bvh
from src.whitted.materials.phong import (
    MAX_MATERIALS,
    add_material,
    clear_materials,
    get_material_count,
)
from src.whitted.scene.intersection import (
    MAX_PLANES,
    MAX_SPHERES,
    MAX_TRIANGLES,
    add_plane,
    add_sphere,
    add_triangle,
    clear_scene,
    get_plane_count,
    get_sphere_count,
    get_triangle_count,
    get_triangle_vertices_numpy,
)
from src.whitted.scene.lighting import (
    MAX_LIGHTS,
    add_point_light,
    clear_lights,
    set_ambient_light,
    set_background_color,
)

logger = logging.getLogger(__name__)

# Type alias for 3D vectors
vec3 = tm.vec3

Vec3Tuple = tuple[float, float, float]

# Faces whose doubled area falls below this are skipped as degenerate
DEGENERATE_AREA_EPSILON = 1e-12


def _to_vec3_tuple(values: Sequence[float], name: str) -> Vec3Tuple:
    if len(values) != 3:
        raise ValueError(f"{name} must have 3 components, got {len(values)}")
    return (float(values[0]), float(values[1]), float(values[2]))


@dataclass
class MaterialInfo:
    """Information about a registered material.

    Attributes:
        material_id: The material ID.
        params: The material parameters as provided during creation.
    """

    material_id: int
    params: dict[str, Any]


@dataclass
class SphereInfo:
    """Information about a sphere in the scene."""

    sphere_index: int
    center: Vec3Tuple
    radius: float
    material_id: int


@dataclass
class PlaneInfo:
    """Information about a plane in the scene."""

    plane_index: int
    point: Vec3Tuple
    normal: Vec3Tuple
    material_id: int


@dataclass
class TriangleInfo:
    """Information about a triangle in the scene.

    Attributes:
        triangle_index: The index in the triangle storage arrays.
        vertices: The three corners.
        normals: Per-vertex normals for smooth shading, or None.
        material_id: The material ID assigned to the triangle.
    """

    triangle_index: int
    vertices: tuple[Vec3Tuple, Vec3Tuple, Vec3Tuple]
    normals: tuple[Vec3Tuple, Vec3Tuple, Vec3Tuple] | None
    material_id: int


@dataclass
class MeshInfo:
    """Summary of an ingested mesh.

    All faces of a mesh share one material.

    Attributes:
        first_triangle: Index of the mesh's first triangle in storage.
        triangle_count: Number of triangles added.
        skipped_faces: Number of zero-area faces that were dropped.
        material_id: The material ID shared by every face.
    """

    first_triangle: int
    triangle_count: int
    skipped_faces: int
    material_id: int


@dataclass
class LightInfo:
    """Information about a point light."""

    light_index: int
    position: Vec3Tuple
    color: Vec3Tuple
    intensity: float


@dataclass
class SceneConfig:
    """Configuration for scene serialization.

    Attributes:
        materials: List of material configurations.
        spheres: List of sphere configurations.
        planes: List of plane configurations.
        triangles: List of triangle configurations (mesh faces included).
        lights: List of point light configurations.
        ambient_light: Scene-wide ambient light color.
        background: Color of rays that miss the scene.
    """

    materials: list[dict[str, Any]] = field(default_factory=list)
    spheres: list[dict[str, Any]] = field(default_factory=list)
    planes: list[dict[str, Any]] = field(default_factory=list)
    triangles: list[dict[str, Any]] = field(default_factory=list)
    lights: list[dict[str, Any]] = field(default_factory=list)
    ambient_light: list[float] = field(default_factory=lambda: [0.0, 0.0, 0.0])
    background: list[float] = field(default_factory=lambda: [0.0, 0.0, 0.0])


class SceneManager:
    """Scene builder with construction-time validation.

    Attributes:
        materials: MaterialInfo for all registered materials.
        spheres: SphereInfo for all spheres in the scene.
        planes: PlaneInfo for all planes in the scene.
        triangles: TriangleInfo for all triangles, mesh faces included.
        meshes: MeshInfo for every mesh added with add_mesh().
        lights: LightInfo for all point lights.
        ambient_light: Current ambient light color.
        background: Current background color.

    Example:
        >>> scene = SceneManager()
        >>> mirror = scene.add_material(color=(1, 1, 1), reflectivity=0.9)
        >>> glass = scene.add_material(color=(1, 1, 1), transparency=0.9, ior=1.5)
        >>> scene.add_sphere((0, 0, -1), 0.5, mirror)
        >>> scene.add_mesh(vertices, faces, glass)
        >>> scene.finalize()
    """

    def __init__(self) -> None:
        """Initialize an empty scene."""
        self.materials: list[MaterialInfo] = []
        self.spheres: list[SphereInfo] = []
        self.planes: list[PlaneInfo] = []
        self.triangles: list[TriangleInfo] = []
        self.meshes: list[MeshInfo] = []
        self.lights: list[LightInfo] = []
        self.ambient_light: Vec3Tuple = (0.0, 0.0, 0.0)
        self.background: Vec3Tuple = (0.0, 0.0, 0.0)
        self._finalized = False
        self._clear_all()

    def _clear_all(self) -> None:
        """Clear all scene data including Taichi fields."""
        clear_scene()
        clear_materials()
        clear_lights()
        self.materials.clear()
        self.spheres.clear()
        self.planes.clear()
        self.triangles.clear()
        self.meshes.clear()
        self.lights.clear()
        self.ambient_light = (0.0, 0.0, 0.0)
        self.background = (0.0, 0.0, 0.0)
        self._finalized = False

    def clear(self) -> None:
        """Clear the entire scene and return to the construction phase."""
        self._clear_all()

    @property
    def is_finalized(self) -> bool:
        return self._finalized

    def _check_mutable(self) -> None:
        if self._finalized:
            raise RuntimeError("Scene is finalized; call clear() before modifying it")

    def _check_material_id(self, material_id: int) -> None:
        if not 0 <= material_id < get_material_count():
            raise ValueError(f"Invalid material_id: {material_id}")

    # =========================================================================
    # Material Management
    # =========================================================================

    def add_material(
        self,
        color: Sequence[float],
        ambient: float = 0.1,
        diffuse: float = 0.9,
        specular: float = 0.0,
        shininess: float = 32.0,
        reflectivity: float = 0.0,
        transparency: float = 0.0,
        ior: float = 1.0,
        fresnel: bool = False,
    ) -> int:
        """Add a Phong material to the scene.

        See src.whitted.materials.phong.add_material for the meaning of
        each parameter.

        Returns:
            The material ID.

        Raises:
            RuntimeError: If the scene is finalized or the maximum number
                of materials is exceeded.
            ValueError: If any parameter is invalid.
        """
        self._check_mutable()
        rgb = _to_vec3_tuple(color, "color")
        material_id = add_material(
            rgb,
            ambient=ambient,
            diffuse=diffuse,
            specular=specular,
            shininess=shininess,
            reflectivity=reflectivity,
            transparency=transparency,
            ior=ior,
            fresnel=fresnel,
        )
        self.materials.append(
            MaterialInfo(
                material_id=material_id,
                params={
                    "color": rgb,
                    "ambient": ambient,
                    "diffuse": diffuse,
                    "specular": specular,
                    "shininess": shininess,
                    "reflectivity": reflectivity,
                    "transparency": transparency,
                    "ior": ior,
                    "fresnel": bool(fresnel),
                },
            )
        )
        return material_id

    def get_material_count(self) -> int:
        """Get the total number of materials in the scene."""
        return get_material_count()

    def get_material_info(self, material_id: int) -> MaterialInfo | None:
        """Get information about a material by ID, or None if not found."""
        if 0 <= material_id < len(self.materials):
            return self.materials[material_id]
        return None

    # =========================================================================
    # Primitive Management
    # =========================================================================

    def add_sphere(
        self,
        center: Sequence[float],
        radius: float,
        material_id: int,
    ) -> int:
        """Add a sphere to the scene.

        Returns:
            The index of the added sphere.

        Raises:
            RuntimeError: If the scene is finalized or full.
            ValueError: If radius is not positive or material_id is invalid.
        """
        self._check_mutable()
        self._check_material_id(material_id)
        if radius <= 0.0:
            raise ValueError(f"Sphere radius = {radius} must be positive")
        c = _to_vec3_tuple(center, "center")

        sphere_index = add_sphere(vec3(c[0], c[1], c[2]), radius, material_id)
        self.spheres.append(
            SphereInfo(sphere_index=sphere_index, center=c, radius=float(radius), material_id=material_id)
        )
        return sphere_index

    def add_plane(
        self,
        point: Sequence[float],
        normal: Sequence[float],
        material_id: int,
    ) -> int:
        """Add an infinite plane to the scene.

        Returns:
            The index of the added plane.

        Raises:
            RuntimeError: If the scene is finalized or full.
            ValueError: If the normal is zero or material_id is invalid.
        """
        self._check_mutable()
        self._check_material_id(material_id)
        p = _to_vec3_tuple(point, "point")
        n = _to_vec3_tuple(normal, "normal")

        plane_index = add_plane(vec3(p[0], p[1], p[2]), vec3(n[0], n[1], n[2]), material_id)
        self.planes.append(PlaneInfo(plane_index=plane_index, point=p, normal=n, material_id=material_id))
        return plane_index

    def add_triangle(
        self,
        v0: Sequence[float],
        v1: Sequence[float],
        v2: Sequence[float],
        material_id: int,
        normals: Sequence[Sequence[float]] | None = None,
    ) -> int:
        """Add a single triangle to the scene.

        Args:
            v0: First vertex.
            v1: Second vertex.
            v2: Third vertex.
            material_id: The material ID to assign.
            normals: Optional per-vertex normals (n0, n1, n2) for smooth
                shading.

        Returns:
            The index of the added triangle.

        Raises:
            RuntimeError: If the scene is finalized or full.
            ValueError: If the triangle has zero area or material_id is invalid.
        """
        self._check_mutable()
        self._check_material_id(material_id)
        verts = (
            _to_vec3_tuple(v0, "v0"),
            _to_vec3_tuple(v1, "v1"),
            _to_vec3_tuple(v2, "v2"),
        )
        if _is_degenerate(np.asarray(verts, dtype=np.float64)):
            raise ValueError(f"Triangle {verts} has zero area")
        vertex_normals = None
        if normals is not None:
            if len(normals) != 3:
                raise ValueError(f"Expected 3 vertex normals, got {len(normals)}")
            vertex_normals = tuple(_to_vec3_tuple(n, "normal") for n in normals)
        return self._store_triangle(verts, vertex_normals, material_id)

    def _store_triangle(
        self,
        verts: tuple[Vec3Tuple, Vec3Tuple, Vec3Tuple],
        normals: tuple[Vec3Tuple, Vec3Tuple, Vec3Tuple] | None,
        material_id: int,
    ) -> int:
        taichi_normals = None
        if normals is not None:
            taichi_normals = tuple(vec3(n[0], n[1], n[2]) for n in normals)
        triangle_index = add_triangle(
            vec3(*verts[0]),
            vec3(*verts[1]),
            vec3(*verts[2]),
            material_id,
            normals=taichi_normals,
        )
        self.triangles.append(
            TriangleInfo(
                triangle_index=triangle_index,
                vertices=verts,
                normals=normals,
                material_id=material_id,
            )
        )
        return triangle_index

    def add_mesh(
        self,
        vertices: npt.ArrayLike,
        faces: Sequence[Sequence[int]],
        material_id: int,
        normals: npt.ArrayLike | None = None,
        normal_indices: Sequence[Sequence[int]] | None = None,
    ) -> MeshInfo:
        """Add a triangulated mesh whose faces all share one material.

        The whole mesh is validated before anything is stored, so a bad
        face leaves the scene unchanged.

        Args:
            vertices: Vertex positions, shape (V, 3).
            faces: Vertex indices per face. Every face must have exactly 3.
            material_id: The material ID shared by all faces.
            normals: Optional vertex normals, shape (N, 3). When given,
                faces are smooth shaded.
            normal_indices: Normal indices per face. Defaults to the
                vertex indices, which requires len(normals) == len(vertices).

        Returns:
            A MeshInfo describing the stored triangles.

        Raises:
            RuntimeError: If the scene is finalized or the mesh does not fit.
            ValueError: If a face is not a triangle, an index is out of
                range, the arrays are malformed or material_id is invalid.
        """
        self._check_mutable()
        self._check_material_id(material_id)

        verts = np.asarray(vertices, dtype=np.float64)
        if verts.ndim != 2 or verts.shape[1] != 3:
            raise ValueError(f"Mesh vertices must have shape (V, 3), got {verts.shape}")

        face_array = _validate_faces(faces, verts.shape[0], "Face")

        normal_array = None
        normal_face_array = None
        if normals is not None:
            normal_array = np.asarray(normals, dtype=np.float64)
            if normal_array.ndim != 2 or normal_array.shape[1] != 3:
                raise ValueError(f"Mesh normals must have shape (N, 3), got {normal_array.shape}")
            if normal_indices is None:
                if normal_array.shape[0] != verts.shape[0]:
                    raise ValueError(
                        "normal_indices are required when the number of normals "
                        f"({normal_array.shape[0]}) differs from the number of vertices "
                        f"({verts.shape[0]})"
                    )
                normal_face_array = face_array
            else:
                if len(normal_indices) != len(face_array):
                    raise ValueError(
                        f"Got {len(normal_indices)} normal index faces for {len(face_array)} faces"
                    )
                normal_face_array = _validate_faces(
                    normal_indices, normal_array.shape[0], "Normal face"
                )
        elif normal_indices is not None:
            raise ValueError("normal_indices given without normals")

        corners = verts[face_array] if len(face_array) else np.zeros((0, 3, 3))
        keep = [k for k in range(len(face_array)) if not _is_degenerate(corners[k])]
        skipped = len(face_array) - len(keep)

        if get_triangle_count() + len(keep) > MAX_TRIANGLES:
            raise RuntimeError(
                f"Mesh with {len(keep)} triangles exceeds the triangle capacity ({MAX_TRIANGLES})"
            )
        if skipped:
            logger.warning("Skipped %d zero-area face(s) while adding mesh", skipped)

        first_triangle = get_triangle_count()
        for k in keep:
            tri = tuple(_to_vec3_tuple(corners[k][c], "vertex") for c in range(3))
            tri_normals = None
            if normal_array is not None:
                tri_normals = tuple(
                    _to_vec3_tuple(normal_array[normal_face_array[k][c]], "normal") for c in range(3)
                )
            self._store_triangle(tri, tri_normals, material_id)

        info = MeshInfo(
            first_triangle=first_triangle,
            triangle_count=len(keep),
            skipped_faces=skipped,
            material_id=material_id,
        )
        self.meshes.append(info)
        logger.debug("Added mesh with %d triangles (material %d)", len(keep), material_id)
        return info

    # =========================================================================
    # Lights and Environment
    # =========================================================================

    def add_point_light(
        self,
        position: Sequence[float],
        color: Sequence[float] = (1.0, 1.0, 1.0),
        intensity: float = 1.0,
    ) -> int:
        """Add a point light.

        Returns:
            The index of the added light.

        Raises:
            RuntimeError: If the scene is finalized or full.
            ValueError: If color or intensity is negative.
        """
        self._check_mutable()
        pos = _to_vec3_tuple(position, "position")
        rgb = _to_vec3_tuple(color, "color")
        light_index = add_point_light(pos, rgb, intensity)
        self.lights.append(
            LightInfo(light_index=light_index, position=pos, color=rgb, intensity=float(intensity))
        )
        return light_index

    def set_ambient_light(self, color: Sequence[float]) -> None:
        """Set the scene-wide ambient light color."""
        self._check_mutable()
        rgb = _to_vec3_tuple(color, "ambient_light")
        set_ambient_light(rgb)
        self.ambient_light = rgb

    def set_background(self, color: Sequence[float]) -> None:
        """Set the color returned by rays that miss the scene."""
        self._check_mutable()
        rgb = _to_vec3_tuple(color, "background")
        set_background_color(rgb)
        self.background = rgb

    # =========================================================================
    # Finalization
    # =========================================================================

    def finalize(self, use_bvh: bool = True) -> None:
        """Build acceleration data and freeze the scene for rendering.

        Args:
            use_bvh: Build a BVH over the triangles. Without it triangles
                are scanned linearly; the rendered image is the same.

        Raises:
            RuntimeError: If the scene is already finalized.
        """
        self._check_mutable()
        if use_bvh and get_triangle_count() > 0:
            result = build_bvh(get_triangle_vertices_numpy())
            upload_bvh(result)
            logger.info(
                "Built BVH with %d nodes (depth %d) over %d triangles",
                result.num_nodes,
                result.depth,
                get_triangle_count(),
            )
        self._finalized = True
        logger.info(
            "Scene finalized: %d spheres, %d planes, %d triangles, %d materials, %d lights",
            get_sphere_count(),
            get_plane_count(),
            get_triangle_count(),
            get_material_count(),
            len(self.lights),
        )

    # =========================================================================
    # Scene Queries
    # =========================================================================

    def get_sphere_count(self) -> int:
        return get_sphere_count()

    def get_plane_count(self) -> int:
        return get_plane_count()

    def get_triangle_count(self) -> int:
        return get_triangle_count()

    def get_primitive_count(self) -> int:
        """Get the total number of primitives in the scene."""
        return self.get_sphere_count() + self.get_plane_count() + self.get_triangle_count()

    def has_bvh(self) -> bool:
        """Whether triangle queries currently go through a BVH."""
        return get_bvh_node_count() > 0

    # =========================================================================
    # Scene Serialization
    # =========================================================================

    def to_config(self) -> SceneConfig:
        """Export the scene to a configuration object."""
        config = SceneConfig(
            ambient_light=list(self.ambient_light),
            background=list(self.background),
        )

        for mat in self.materials:
            params = dict(mat.params)
            params["color"] = list(params["color"])
            config.materials.append(params)

        for sphere in self.spheres:
            config.spheres.append(
                {
                    "center": list(sphere.center),
                    "radius": sphere.radius,
                    "material_id": sphere.material_id,
                }
            )

        for plane in self.planes:
            config.planes.append(
                {
                    "point": list(plane.point),
                    "normal": list(plane.normal),
                    "material_id": plane.material_id,
                }
            )

        for tri in self.triangles:
            tri_config: dict[str, Any] = {
                "vertices": [list(v) for v in tri.vertices],
                "material_id": tri.material_id,
            }
            if tri.normals is not None:
                tri_config["normals"] = [list(n) for n in tri.normals]
            config.triangles.append(tri_config)

        for light in self.lights:
            config.lights.append(
                {
                    "position": list(light.position),
                    "color": list(light.color),
                    "intensity": light.intensity,
                }
            )

        return config

    def from_config(self, config: SceneConfig) -> None:
        """Load a scene from a configuration object.

        Clears the current scene and loads the configuration. The loaded
        scene is left in the construction phase.

        Raises:
            ValueError: If the configuration contains invalid data.
        """
        self.clear()

        for mat_config in config.materials:
            params = dict(mat_config)
            color = params.pop("color", [0.5, 0.5, 0.5])
            self.add_material(color, **params)

        for sphere_config in config.spheres:
            self.add_sphere(
                sphere_config.get("center", [0.0, 0.0, 0.0]),
                sphere_config.get("radius", 1.0),
                sphere_config.get("material_id", 0),
            )

        for plane_config in config.planes:
            self.add_plane(
                plane_config.get("point", [0.0, 0.0, 0.0]),
                plane_config.get("normal", [0.0, 1.0, 0.0]),
                plane_config.get("material_id", 0),
            )

        for tri_config in config.triangles:
            vertices = tri_config.get("vertices")
            if vertices is None or len(vertices) != 3:
                raise ValueError(f"Triangle config needs exactly 3 vertices: {tri_config}")
            self.add_triangle(
                vertices[0],
                vertices[1],
                vertices[2],
                tri_config.get("material_id", 0),
                normals=tri_config.get("normals"),
            )

        for light_config in config.lights:
            self.add_point_light(
                light_config.get("position", [0.0, 0.0, 0.0]),
                light_config.get("color", [1.0, 1.0, 1.0]),
                light_config.get("intensity", 1.0),
            )

        self.set_ambient_light(config.ambient_light)
        self.set_background(config.background)

    def to_dict(self) -> dict[str, Any]:
        """Export the scene to a dictionary (for JSON serialization)."""
        config = self.to_config()
        return {
            "materials": config.materials,
            "spheres": config.spheres,
            "planes": config.planes,
            "triangles": config.triangles,
            "lights": config.lights,
            "ambient_light": config.ambient_light,
            "background": config.background,
        }

    def from_dict(self, data: dict[str, Any]) -> None:
        """Load a scene from a dictionary produced by to_dict()."""
        config = SceneConfig(
            materials=data.get("materials", []),
            spheres=data.get("spheres", []),
            planes=data.get("planes", []),
            triangles=data.get("triangles", []),
            lights=data.get("lights", []),
            ambient_light=data.get("ambient_light", [0.0, 0.0, 0.0]),
            background=data.get("background", [0.0, 0.0, 0.0]),
        )
        self.from_config(config)

    # =========================================================================
    # Capacity Information
    # =========================================================================

    @staticmethod
    def get_max_spheres() -> int:
        return MAX_SPHERES

    @staticmethod
    def get_max_planes() -> int:
        return MAX_PLANES

    @staticmethod
    def get_max_triangles() -> int:
        return MAX_TRIANGLES

    @staticmethod
    def get_max_materials() -> int:
        return MAX_MATERIALS

    @staticmethod
    def get_max_lights() -> int:
        return MAX_LIGHTS


def _validate_faces(faces: Sequence[Sequence[int]], count: int, label: str) -> np.ndarray:
    """Check that every face is a triangle with in-range indices.

    Returns:
        Face indices as an int array of shape (F, 3).

    Raises:
        ValueError: On a face that does not have exactly 3 indices or that
            references an index outside [0, count).
    """
    for k, face in enumerate(faces):
        if len(face) != 3:
            raise ValueError(
                f"{label} {k} has {len(face)} vertices; meshes must be triangulated"
            )
    face_array = np.asarray(faces, dtype=np.int64).reshape(-1, 3)
    if face_array.size and (face_array.min() < 0 or face_array.max() >= count):
        bad = int(np.argmax((face_array < 0).any(axis=1) | (face_array >= count).any(axis=1)))
        raise ValueError(
            f"{label} {bad} references an index outside [0, {count}): {face_array[bad].tolist()}"
        )
    return face_array


def _is_degenerate(corners: np.ndarray) -> bool:
    """Whether three corners span (almost) no area."""
    doubled_area = np.linalg.norm(np.cross(corners[1] - corners[0], corners[2] - corners[0]))
    return bool(doubled_area < DEGENERATE_AREA_EPSILON)
