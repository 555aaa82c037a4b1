"""Scene-level primitive storage and ray queries.

Primitives live in preallocated Taichi fields (Structure of Arrays layout),
one group of fields per primitive type. The primitive set is closed:
spheres, planes and triangles. Each query dispatches over the three groups
and keeps the closest hit together with the material id of the primitive
that produced it.

Two queries are provided:
    intersect_scene: closest hit in (t_min, t_max), for shading
    intersect_scene_any: whether anything lies in (t_min, t_max), for
        shadow rays; stops at the first hit found

Triangles are found through the BVH in src.whitted.geometry.bvh when one
has been uploaded, and by a linear scan otherwise. Spheres and planes are
always scanned linearly.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.whitted.scene.intersection import add_sphere, add_plane, clear_scene
    >>> clear_scene()
    >>> add_sphere(vec3(0, 0, -1), 0.5, material_id=0)
    >>> add_plane(vec3(0, -0.5, 0), vec3(0, 1, 0), material_id=1)
    >>> # Use intersect_scene within a Taichi kernel
"""

import math

import taichi as ti
import taichi.math as tm

from src.whitted.geometry.aabb import hit_aabb, safe_inverse_direction
from src.whitted.geometry.bvh import (
    BVH_STACK_SIZE,
    MAX_BVH_TRIANGLES,
    bvh_node_count,
    bvh_node_first,
    bvh_node_left,
    bvh_node_max,
    bvh_node_min,
    bvh_node_right,
    bvh_num_nodes,
    bvh_triangle_order,
    clear_bvh,
)
from src.whitted.geometry.hit_record import HitRecord
from src.whitted.geometry.plane import Plane, hit_plane
from src.whitted.geometry.sphere import Sphere, hit_sphere
from src.whitted.geometry.triangle import Triangle, hit_triangle

# Type alias for 3D vectors using Taichi's math module
vec3 = tm.vec3


@ti.dataclass
class SceneHitRecord:
    """Record of a ray-scene intersection with material information.

    Attributes:
        hit: Whether the ray intersected any primitive (1 if hit, 0 if miss).
        t: Ray parameter of the closest intersection.
        point: The 3D point where the ray intersected the surface.
        normal: Unit surface normal, oriented against the incoming ray.
        front_face: Whether the ray hit the front face (1) or back face (0).
        material_id: Material of the hit primitive, -1 on a miss.
    """

    hit: ti.i32
    t: ti.f32
    point: vec3
    normal: vec3
    front_face: ti.i32
    material_id: ti.i32


# Maximum number of primitives supported in the scene
MAX_SPHERES = 1024
MAX_PLANES = 256
MAX_TRIANGLES = MAX_BVH_TRIANGLES

# Sphere storage
sphere_centers = ti.Vector.field(3, dtype=ti.f32, shape=MAX_SPHERES)
sphere_radii = ti.field(dtype=ti.f32, shape=MAX_SPHERES)
sphere_material_ids = ti.field(dtype=ti.i32, shape=MAX_SPHERES)
num_spheres = ti.field(dtype=ti.i32, shape=())

# Plane storage (normals are unit length)
plane_points = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PLANES)
plane_normals = ti.Vector.field(3, dtype=ti.f32, shape=MAX_PLANES)
plane_material_ids = ti.field(dtype=ti.i32, shape=MAX_PLANES)
num_planes = ti.field(dtype=ti.i32, shape=())

# Triangle storage
triangle_v0 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
triangle_v1 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
triangle_v2 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
triangle_n0 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
triangle_n1 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
triangle_n2 = ti.Vector.field(3, dtype=ti.f32, shape=MAX_TRIANGLES)
triangle_smooth = ti.field(dtype=ti.i32, shape=MAX_TRIANGLES)
triangle_material_ids = ti.field(dtype=ti.i32, shape=MAX_TRIANGLES)
num_triangles = ti.field(dtype=ti.i32, shape=())


def clear_scene() -> None:
    """Clear all primitives from the scene and drop the triangle BVH.

    Resets the primitive counts to zero. The actual field data is not
    cleared but will be overwritten when new primitives are added.
    """
    num_spheres[None] = 0
    num_planes[None] = 0
    num_triangles[None] = 0
    clear_bvh()


def add_sphere(center: vec3, radius: float, material_id: int = 0) -> int:
    """Add a sphere to the scene.

    Args:
        center: The center point of the sphere.
        radius: The radius of the sphere (should be positive).
        material_id: The material ID to associate with this sphere.

    Returns:
        The index of the added sphere.

    Raises:
        RuntimeError: If the maximum number of spheres is exceeded.
    """
    idx = num_spheres[None]
    if idx >= MAX_SPHERES:
        raise RuntimeError(f"Maximum number of spheres ({MAX_SPHERES}) exceeded")
    sphere_centers[idx] = center
    sphere_radii[idx] = radius
    sphere_material_ids[idx] = material_id
    num_spheres[None] = idx + 1
    return idx


def add_plane(point: vec3, normal: vec3, material_id: int = 0) -> int:
    """Add an infinite plane to the scene.

    Args:
        point: Any point on the plane.
        normal: The plane normal; it is normalized before storage.
        material_id: The material ID to associate with this plane.

    Returns:
        The index of the added plane.

    Raises:
        RuntimeError: If the maximum number of planes is exceeded.
        ValueError: If the normal has zero length.
    """
    n = (float(normal[0]), float(normal[1]), float(normal[2]))
    norm = math.sqrt(n[0] * n[0] + n[1] * n[1] + n[2] * n[2])
    if norm < 1e-12:
        raise ValueError("Plane normal must have non-zero length")

    idx = num_planes[None]
    if idx >= MAX_PLANES:
        raise RuntimeError(f"Maximum number of planes ({MAX_PLANES}) exceeded")
    plane_points[idx] = point
    plane_normals[idx] = vec3(n[0] / norm, n[1] / norm, n[2] / norm)
    plane_material_ids[idx] = material_id
    num_planes[None] = idx + 1
    return idx


def add_triangle(
    v0: vec3,
    v1: vec3,
    v2: vec3,
    material_id: int = 0,
    normals: tuple[vec3, vec3, vec3] | None = None,
) -> int:
    """Add a triangle to the scene.

    Adding a triangle invalidates any uploaded BVH; rebuild it afterwards.

    Args:
        v0: First vertex.
        v1: Second vertex.
        v2: Third vertex.
        material_id: The material ID to associate with this triangle.
        normals: Optional per-vertex normals (n0, n1, n2). When given, the
            triangle is smooth shaded.

    Returns:
        The index of the added triangle.

    Raises:
        RuntimeError: If the maximum number of triangles is exceeded.
    """
    idx = num_triangles[None]
    if idx >= MAX_TRIANGLES:
        raise RuntimeError(f"Maximum number of triangles ({MAX_TRIANGLES}) exceeded")
    triangle_v0[idx] = v0
    triangle_v1[idx] = v1
    triangle_v2[idx] = v2
    if normals is None:
        zero = vec3(0.0, 0.0, 0.0)
        triangle_n0[idx] = zero
        triangle_n1[idx] = zero
        triangle_n2[idx] = zero
        triangle_smooth[idx] = 0
    else:
        triangle_n0[idx] = normals[0]
        triangle_n1[idx] = normals[1]
        triangle_n2[idx] = normals[2]
        triangle_smooth[idx] = 1
    triangle_material_ids[idx] = material_id
    num_triangles[None] = idx + 1
    clear_bvh()
    return idx


def get_sphere_count() -> int:
    """Get the number of spheres in the scene."""
    return int(num_spheres[None])


def get_plane_count() -> int:
    """Get the number of planes in the scene."""
    return int(num_planes[None])


def get_triangle_count() -> int:
    """Get the number of triangles in the scene."""
    return int(num_triangles[None])


def get_triangle_vertices_numpy():
    """Vertices of all triangles as an array of shape (N, 3, 3).

    Used to build the BVH on the Python side.
    """
    import numpy as np

    n = get_triangle_count()
    vertices = np.empty((n, 3, 3), dtype=np.float32)
    vertices[:, 0, :] = triangle_v0.to_numpy()[:n]
    vertices[:, 1, :] = triangle_v1.to_numpy()[:n]
    vertices[:, 2, :] = triangle_v2.to_numpy()[:n]
    return vertices


# =============================================================================
# Primitive Fetch
# =============================================================================


@ti.func
def _get_sphere(i: ti.i32) -> Sphere:
    return Sphere(center=sphere_centers[i], radius=sphere_radii[i])


@ti.func
def _get_plane(i: ti.i32) -> Plane:
    return Plane(point=plane_points[i], normal=plane_normals[i])


@ti.func
def _get_triangle(i: ti.i32) -> Triangle:
    return Triangle(
        v0=triangle_v0[i],
        v1=triangle_v1[i],
        v2=triangle_v2[i],
        n0=triangle_n0[i],
        n1=triangle_n1[i],
        n2=triangle_n2[i],
        smooth=triangle_smooth[i],
    )


@ti.func
def _hit_record_to_scene_hit_record(rec: HitRecord, material_id: ti.i32) -> SceneHitRecord:
    """Attach a material id to a primitive hit record."""
    return SceneHitRecord(
        hit=rec.hit,
        t=rec.t,
        point=rec.point,
        normal=rec.normal,
        front_face=rec.front_face,
        material_id=material_id,
    )


@ti.func
def _make_miss_record() -> SceneHitRecord:
    """SceneHitRecord with hit=0 and material_id=-1."""
    return SceneHitRecord(
        hit=0,
        t=0.0,
        point=vec3(0.0, 0.0, 0.0),
        normal=vec3(0.0, 0.0, 0.0),
        front_face=0,
        material_id=-1,
    )


# =============================================================================
# Triangle Queries (BVH or linear scan)
# =============================================================================


@ti.func
def _intersect_triangles_bvh(
    ray_origin: vec3,
    ray_direction: vec3,
    t_min: ti.f32,
    closest_t: ti.f32,
    result: SceneHitRecord,
    any_hit: ti.template(),
):
    """Walk the BVH, updating the closest triangle hit.

    When any_hit is True the walk stops at the first hit found.

    Returns:
        A tuple (result, closest_t).
    """
    best = result
    best_t = closest_t
    inv_direction = safe_inverse_direction(ray_direction)
    stack = ti.Vector([0 for _ in range(BVH_STACK_SIZE)], dt=ti.i32)
    stack_ptr = 1
    done = 0

    while stack_ptr > 0 and done == 0:
        stack_ptr -= 1
        node = stack[stack_ptr]
        if hit_aabb(ray_origin, inv_direction, bvh_node_min[node], bvh_node_max[node], t_min, best_t):
            count = bvh_node_count[node]
            if count > 0:
                first = bvh_node_first[node]
                for k in range(count):
                    if done == 0:
                        tri_index = bvh_triangle_order[first + k]
                        rec = hit_triangle(
                            ray_origin, ray_direction, _get_triangle(tri_index), t_min, best_t
                        )
                        if rec.hit == 1:
                            best_t = rec.t
                            best = _hit_record_to_scene_hit_record(
                                rec, triangle_material_ids[tri_index]
                            )
                            if ti.static(any_hit):
                                done = 1
            else:
                if stack_ptr + 2 <= BVH_STACK_SIZE:
                    stack[stack_ptr] = bvh_node_right[node]
                    stack[stack_ptr + 1] = bvh_node_left[node]
                    stack_ptr += 2

    return best, best_t


@ti.func
def _intersect_triangles(
    ray_origin: vec3,
    ray_direction: vec3,
    t_min: ti.f32,
    closest_t: ti.f32,
    result: SceneHitRecord,
    any_hit: ti.template(),
):
    """Closest (or any) triangle hit; returns (result, closest_t)."""
    best = result
    best_t = closest_t
    if bvh_num_nodes[None] > 0:
        best, best_t = _intersect_triangles_bvh(
            ray_origin, ray_direction, t_min, closest_t, result, any_hit
        )
    else:
        done = 0
        for i in range(num_triangles[None]):
            if done == 0:
                rec = hit_triangle(ray_origin, ray_direction, _get_triangle(i), t_min, best_t)
                if rec.hit == 1:
                    best_t = rec.t
                    best = _hit_record_to_scene_hit_record(rec, triangle_material_ids[i])
                    if ti.static(any_hit):
                        done = 1
    return best, best_t


# =============================================================================
# Scene Queries
# =============================================================================


@ti.func
def intersect_scene(
    ray_origin: vec3,
    ray_direction: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
) -> SceneHitRecord:
    """Closest intersection of a ray with the scene.

    Tests spheres, then planes, then triangles. Each test is bounded by the
    closest t found so far, so later primitives only replace a hit when they
    are strictly closer; ties go to the primitive scanned first.

    Args:
        ray_origin: The starting point of the ray.
        ray_direction: The direction vector of the ray.
        t_min: Exclusive lower bound for a valid hit.
        t_max: Exclusive upper bound for a valid hit.

    Returns:
        A SceneHitRecord containing the closest intersection, or a miss
        record if no intersection was found.
    """
    closest_t = t_max
    result = _make_miss_record()

    for i in range(num_spheres[None]):
        rec = hit_sphere(ray_origin, ray_direction, _get_sphere(i), t_min, closest_t)
        if rec.hit == 1:
            closest_t = rec.t
            result = _hit_record_to_scene_hit_record(rec, sphere_material_ids[i])

    for i in range(num_planes[None]):
        rec = hit_plane(ray_origin, ray_direction, _get_plane(i), t_min, closest_t)
        if rec.hit == 1:
            closest_t = rec.t
            result = _hit_record_to_scene_hit_record(rec, plane_material_ids[i])

    result, _closest_t = _intersect_triangles(
        ray_origin, ray_direction, t_min, closest_t, result, False
    )

    return result


@ti.func
def intersect_scene_any(
    ray_origin: vec3,
    ray_direction: vec3,
    t_min: ti.f32,
    t_max: ti.f32,
) -> ti.i32:
    """Test if anything lies on the ray within (t_min, t_max).

    Used for shadow rays, where only occlusion matters and not which
    primitive causes it. Scanning stops at the first hit.

    Returns:
        1 if any primitive was hit, 0 otherwise.
    """
    hit_any = 0

    for i in range(num_spheres[None]):
        if hit_any == 0:
            rec = hit_sphere(ray_origin, ray_direction, _get_sphere(i), t_min, t_max)
            if rec.hit == 1:
                hit_any = 1

    for i in range(num_planes[None]):
        if hit_any == 0:
            rec = hit_plane(ray_origin, ray_direction, _get_plane(i), t_min, t_max)
            if rec.hit == 1:
                hit_any = 1

    if hit_any == 0:
        result, _closest_t = _intersect_triangles(
            ray_origin, ray_direction, t_min, t_max, _make_miss_record(), True
        )
        hit_any = result.hit

    return hit_any
