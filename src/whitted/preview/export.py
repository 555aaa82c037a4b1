"""Image export utilities for rendered images.

The renderer already applies gamma correction and clamping, so export only
quantizes the display-ready float image to 8 bits and hands it to Pillow.

Supported formats:
    - PNG (8-bit RGB via Pillow); other formats follow the file extension

Example:
    >>> from src.whitted.preview.export import save_png_from_array
    >>> image = renderer.render()
    >>> save_png_from_array(image, "output.png")
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np
import numpy.typing as npt
from PIL import Image as PILImage

if TYPE_CHECKING:
    from src.whitted.core.renderer import Renderer

logger = logging.getLogger(__name__)


def image_to_uint8(image: npt.NDArray[np.floating]) -> npt.NDArray[np.uint8]:
    """Convert a display-ready float image in [0, 1] to uint8.

    Values are clipped to [0, 1] and rounded to the nearest integer level.

    Args:
        image: Array of shape (H, W, 3).

    Returns:
        8-bit image array of shape (H, W, 3).

    Raises:
        ValueError: If the array is not (H, W, 3).
    """
    if image.ndim != 3 or image.shape[2] != 3:
        raise ValueError(f"Expected an image of shape (H, W, 3), got {image.shape}")
    clipped = np.clip(image, 0.0, 1.0)
    return np.round(clipped * 255.0).astype(np.uint8)


def save_png_from_array(image: npt.NDArray[np.floating], filepath: str | Path) -> Path:
    """Save a display-ready float image to a file.

    Args:
        image: Array of shape (H, W, 3) in [0, 1].
        filepath: Output file path (should end in .png).

    Returns:
        The path written.
    """
    path = Path(filepath)
    pil_image = PILImage.fromarray(image_to_uint8(image))
    pil_image.save(path)
    logger.info("Saved %dx%d image to %s", image.shape[1], image.shape[0], path)
    return path


def save_png(renderer: Renderer, filepath: str | Path) -> Path:
    """Save the renderer's current image.

    Args:
        renderer: The Renderer whose framebuffer to save.
        filepath: Output file path.

    Returns:
        The path written.
    """
    return save_png_from_array(renderer.get_image_numpy(), filepath)


def compute_rmse(
    image_a: npt.NDArray[np.floating],
    image_b: npt.NDArray[np.floating],
) -> float:
    """Compute root mean squared error between two images.

    Raises:
        ValueError: If image shapes don't match.
    """
    if image_a.shape != image_b.shape:
        raise ValueError(
            f"Image shapes must match: {image_a.shape} vs {image_b.shape}"
        )

    diff = image_a.astype(np.float64) - image_b.astype(np.float64)
    return float(np.sqrt(np.mean(diff**2)))
