"""Bounding volume hierarchy over the scene's triangles.

The hierarchy is built once on the Python side with NumPy after all
triangles have been added, then flattened into Taichi fields that kernels
traverse read-only. Building it is optional: it only changes how quickly
the closest triangle is found, never which one.

Build strategy:
    - Each node stores the bounds of its triangles.
    - A node with at most MAX_LEAF_SIZE triangles becomes a leaf.
    - Otherwise its triangles are sorted along the longest axis of their
      centroid bounds and split at the median, which keeps the tree
      balanced and its depth logarithmic in the triangle count.

Leaves reference a contiguous range of bvh_triangle_order, which maps back
to triangle indices in the scene storage.

Example:
    >>> result = build_bvh(vertices)  # vertices: (N, 3, 3) float array
    >>> upload_bvh(result)
"""

import logging
from dataclasses import dataclass

import numpy as np
import numpy.typing as npt
import taichi as ti

logger = logging.getLogger(__name__)

# Maximum number of triangles the hierarchy can index
MAX_BVH_TRIANGLES = 65536

# A median-split tree over N primitives has fewer than 2N nodes
MAX_BVH_NODES = 2 * MAX_BVH_TRIANGLES

MAX_LEAF_SIZE = 4

# Traversal stack depth; a balanced tree over MAX_BVH_TRIANGLES needs far less
BVH_STACK_SIZE = 32

# =============================================================================
# Flattened Node Storage
# =============================================================================

bvh_node_min = ti.Vector.field(3, dtype=ti.f32, shape=MAX_BVH_NODES)
bvh_node_max = ti.Vector.field(3, dtype=ti.f32, shape=MAX_BVH_NODES)
# Child indices; -1 for leaves
bvh_node_left = ti.field(dtype=ti.i32, shape=MAX_BVH_NODES)
bvh_node_right = ti.field(dtype=ti.i32, shape=MAX_BVH_NODES)
# Leaf triangle range in bvh_triangle_order; count is 0 for interior nodes
bvh_node_first = ti.field(dtype=ti.i32, shape=MAX_BVH_NODES)
bvh_node_count = ti.field(dtype=ti.i32, shape=MAX_BVH_NODES)
bvh_triangle_order = ti.field(dtype=ti.i32, shape=MAX_BVH_TRIANGLES)
bvh_num_nodes = ti.field(dtype=ti.i32, shape=())


@dataclass
class BVHBuildResult:
    """Flattened hierarchy produced by build_bvh().

    Attributes:
        node_min: Minimum corner per node, shape (num_nodes, 3).
        node_max: Maximum corner per node, shape (num_nodes, 3).
        left: Left child per node, -1 for leaves.
        right: Right child per node, -1 for leaves.
        first: First index into triangle_order for leaves.
        count: Number of triangles for leaves, 0 for interior nodes.
        triangle_order: Permutation of triangle indices referenced by leaves.
        depth: Number of levels in the tree.
    """

    node_min: npt.NDArray[np.float32]
    node_max: npt.NDArray[np.float32]
    left: npt.NDArray[np.int32]
    right: npt.NDArray[np.int32]
    first: npt.NDArray[np.int32]
    count: npt.NDArray[np.int32]
    triangle_order: npt.NDArray[np.int32]
    depth: int

    @property
    def num_nodes(self) -> int:
        return int(self.left.shape[0])


def build_bvh(vertices: npt.ArrayLike, max_leaf_size: int = MAX_LEAF_SIZE) -> BVHBuildResult:
    """Build a median-split hierarchy over triangles.

    Args:
        vertices: Triangle corners, shape (N, 3, 3).
        max_leaf_size: Largest number of triangles stored in one leaf.

    Returns:
        The flattened hierarchy. An empty input yields a hierarchy with no
        nodes.

    Raises:
        ValueError: If vertices does not have shape (N, 3, 3), N exceeds
            MAX_BVH_TRIANGLES, or max_leaf_size is less than 1.
    """
    tris = np.asarray(vertices, dtype=np.float32)
    if tris.ndim != 3 or tris.shape[1:] != (3, 3):
        raise ValueError(f"Expected triangle vertices of shape (N, 3, 3), got {tris.shape}")
    if tris.shape[0] > MAX_BVH_TRIANGLES:
        raise ValueError(
            f"Cannot build BVH over {tris.shape[0]} triangles (max {MAX_BVH_TRIANGLES})"
        )
    if max_leaf_size < 1:
        raise ValueError(f"max_leaf_size must be at least 1, got {max_leaf_size}")

    num_tris = tris.shape[0]
    if num_tris == 0:
        empty_vec = np.zeros((0, 3), dtype=np.float32)
        empty_idx = np.zeros(0, dtype=np.int32)
        return BVHBuildResult(
            node_min=empty_vec,
            node_max=empty_vec.copy(),
            left=empty_idx,
            right=empty_idx.copy(),
            first=empty_idx.copy(),
            count=empty_idx.copy(),
            triangle_order=empty_idx.copy(),
            depth=0,
        )

    tri_min = tris.min(axis=1)
    tri_max = tris.max(axis=1)
    centroids = tris.mean(axis=1)
    order = np.arange(num_tris, dtype=np.int32)

    node_min: list[np.ndarray] = []
    node_max: list[np.ndarray] = []
    left: list[int] = []
    right: list[int] = []
    first: list[int] = []
    count: list[int] = []

    def allocate_node() -> int:
        node_min.append(np.zeros(3, dtype=np.float32))
        node_max.append(np.zeros(3, dtype=np.float32))
        left.append(-1)
        right.append(-1)
        first.append(0)
        count.append(0)
        return len(left) - 1

    max_depth = 0
    pending = [(allocate_node(), 0, num_tris, 1)]
    while pending:
        node, start, end, depth = pending.pop()
        max_depth = max(max_depth, depth)
        members = order[start:end]
        node_min[node] = tri_min[members].min(axis=0)
        node_max[node] = tri_max[members].max(axis=0)

        size = end - start
        if size <= max_leaf_size:
            first[node] = start
            count[node] = size
            continue

        member_centroids = centroids[members]
        extent = member_centroids.max(axis=0) - member_centroids.min(axis=0)
        axis = int(np.argmax(extent))
        order[start:end] = members[np.argsort(member_centroids[:, axis], kind="stable")]

        mid = start + size // 2
        left_child = allocate_node()
        right_child = allocate_node()
        left[node] = left_child
        right[node] = right_child
        pending.append((right_child, mid, end, depth + 1))
        pending.append((left_child, start, mid, depth + 1))

    result = BVHBuildResult(
        node_min=np.asarray(node_min, dtype=np.float32),
        node_max=np.asarray(node_max, dtype=np.float32),
        left=np.asarray(left, dtype=np.int32),
        right=np.asarray(right, dtype=np.int32),
        first=np.asarray(first, dtype=np.int32),
        count=np.asarray(count, dtype=np.int32),
        triangle_order=order,
        depth=max_depth,
    )
    logger.debug(
        "Built BVH with %d nodes over %d triangles (depth %d)",
        result.num_nodes,
        num_tris,
        max_depth,
    )
    return result


def _pad(array: np.ndarray, size: int) -> np.ndarray:
    padded = np.zeros((size,) + array.shape[1:], dtype=array.dtype)
    padded[: array.shape[0]] = array
    return padded


def upload_bvh(result: BVHBuildResult) -> None:
    """Copy a built hierarchy into the Taichi node fields.

    Raises:
        ValueError: If the tree is deeper than the traversal stack allows.
    """
    if result.depth >= BVH_STACK_SIZE:
        raise ValueError(
            f"BVH depth {result.depth} exceeds traversal stack size {BVH_STACK_SIZE}"
        )
    bvh_node_min.from_numpy(_pad(result.node_min, MAX_BVH_NODES))
    bvh_node_max.from_numpy(_pad(result.node_max, MAX_BVH_NODES))
    bvh_node_left.from_numpy(_pad(result.left, MAX_BVH_NODES))
    bvh_node_right.from_numpy(_pad(result.right, MAX_BVH_NODES))
    bvh_node_first.from_numpy(_pad(result.first, MAX_BVH_NODES))
    bvh_node_count.from_numpy(_pad(result.count, MAX_BVH_NODES))
    bvh_triangle_order.from_numpy(_pad(result.triangle_order, MAX_BVH_TRIANGLES))
    bvh_num_nodes[None] = result.num_nodes


def clear_bvh() -> None:
    """Disable the hierarchy; triangle queries fall back to a linear scan."""
    bvh_num_nodes[None] = 0


def get_bvh_node_count() -> int:
    return int(bvh_num_nodes[None])
