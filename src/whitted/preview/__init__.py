"""Preview module for rendered output.

Components:
    export: 8-bit conversion and PNG export via Pillow

Example:
    >>> from src.whitted.preview import save_png
    >>> renderer.render()
    >>> save_png(renderer, "output.png")
"""

from src.whitted.preview.export import (
    compute_rmse,
    image_to_uint8,
    save_png,
    save_png_from_array,
)

__all__ = [
    "save_png",
    "save_png_from_array",
    "image_to_uint8",
    "compute_rmse",
]
