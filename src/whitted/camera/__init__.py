"""Camera module for view setup and primary ray generation.

Components:
    pinhole: Perspective camera with an optional thin lens

Camera responsibilities:
    - Derive an orthonormal basis once from look-at parameters
    - Map (pixel, sample) pairs to stratified sub-pixel positions
    - Spread ray origins over the lens disk for depth of field

Ray generation uses normalized image coordinates:
    u in [0, 1]: left to right across image
    v in [0, 1]: bottom to top across image
"""

from .pinhole import (
    PinholeCamera,
    generate_ray,
    get_camera_basis,
    get_camera_info,
    get_camera_origin,
    get_ray,
    is_camera_initialized,
    reset_camera,
    setup_camera,
)

__all__ = [
    "PinholeCamera",
    "setup_camera",
    "generate_ray",
    "get_ray",
    "get_camera_origin",
    "get_camera_basis",
    "get_camera_info",
    "is_camera_initialized",
    "reset_camera",
]
