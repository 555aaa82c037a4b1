"""Tiled renderer driving the integrator kernels.

This module provides a convenient wrapper around the core integrator that supports:
- A validated render configuration (resolution, samples, depth, sampling)
- Rendering in bands of rows ("tiles"), one parallel kernel launch each
- Progress callbacks or a generator that yields after every tile
- NumPy / 8-bit access to the finished image and PNG export

Every pixel is a pure function of the scene, the camera and the config, so
tiles can be rendered in any order and repeated renders are byte-identical.
Cancellation is only possible between tiles, by abandoning the generator.

Example:
    >>> import taichi as ti
    >>> ti.init(arch=ti.cpu)
    >>> from src.whitted.core.renderer import RenderConfig, Renderer
    >>> from src.whitted.scene.presets import create_showcase_scene
    >>> from src.whitted.camera.pinhole import setup_camera
    >>>
    >>> scene, camera = create_showcase_scene()
    >>> setup_camera(camera)
    >>>
    >>> renderer = Renderer(RenderConfig(width=320, height=240, samples_per_pixel=4))
    >>> image = renderer.render()
"""

import logging
import time
from collections.abc import Callable, Generator
from dataclasses import dataclass
from typing import Literal

import numpy as np
import numpy.typing as npt

from src.whitted.core.integrator import (
    MAX_IMAGE_HEIGHT,
    MAX_IMAGE_WIDTH,
    MAX_TRACE_DEPTH,
    get_normalized_image_numpy,
    render_rows,
    setup_render_target,
)
from src.whitted.core.sampler import SAMPLING_METHODS, sampling_method_index

logger = logging.getLogger(__name__)

# Type alias for progress callback
# Callback receives (rows_done, rows_total)
ProgressCallback = Callable[[int, int], None]

SamplingMethod = Literal["uniform", "jitter"]


@dataclass
class RenderConfig:
    """Render configuration.

    Attributes:
        width: Image width in pixels.
        height: Image height in pixels.
        samples_per_pixel: Camera samples averaged per pixel.
        max_depth: Recursion depth for primary rays, in [0, MAX_TRACE_DEPTH].
            A depth of 1 shades primary hits without secondary rays.
        sampling: "uniform" places samples at grid cell centers, "jitter"
            at random points inside the cells.
        seed: Seed for jittered sampling and lens sampling, in [0, 2**31).
        gamma: Output gamma; 2.0 is the square-root tonemap.
        tile_rows: Number of rows rendered per kernel launch.
    """

    width: int
    height: int
    samples_per_pixel: int = 1
    max_depth: int = 5
    sampling: SamplingMethod = "jitter"
    seed: int = 0
    gamma: float = 2.0
    tile_rows: int = 32

    def validate(self) -> None:
        """Check every field.

        Raises:
            ValueError: If any field is out of range.
        """
        if not 0 < self.width <= MAX_IMAGE_WIDTH or not 0 < self.height <= MAX_IMAGE_HEIGHT:
            raise ValueError(
                f"Image dimensions ({self.width}x{self.height}) must be positive and at most "
                f"{MAX_IMAGE_WIDTH}x{MAX_IMAGE_HEIGHT}"
            )
        if self.samples_per_pixel < 1:
            raise ValueError(f"samples_per_pixel = {self.samples_per_pixel} must be at least 1")
        if not 0 <= self.max_depth <= MAX_TRACE_DEPTH:
            raise ValueError(f"max_depth = {self.max_depth} must be in [0, {MAX_TRACE_DEPTH}]")
        if self.sampling not in SAMPLING_METHODS:
            raise ValueError(
                f"Unknown sampling method '{self.sampling}'. "
                f"Expected one of {sorted(SAMPLING_METHODS)}"
            )
        if self.gamma <= 0.0:
            raise ValueError(f"gamma = {self.gamma} must be positive")
        if self.tile_rows < 1:
            raise ValueError(f"tile_rows = {self.tile_rows} must be at least 1")
        if not 0 <= self.seed < 2**31:
            raise ValueError(f"seed = {self.seed} must be in [0, 2**31)")

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height


class Renderer:
    """Renders the current scene and camera into the shared framebuffer.

    The framebuffer itself is a module-level Taichi field in the integrator;
    the renderer owns it for the duration of a render and hands out copies.

    Attributes:
        config: The validated render configuration.
    """

    def __init__(self, config: RenderConfig) -> None:
        """Initialize the renderer.

        Raises:
            ValueError: If the configuration is invalid.
        """
        config.validate()
        self.config = config
        self._rows_done = 0
        setup_render_target(config.width, config.height)

    @property
    def width(self) -> int:
        return self.config.width

    @property
    def height(self) -> int:
        return self.config.height

    @property
    def is_complete(self) -> bool:
        """Whether every row of the current render has been written."""
        return self._rows_done >= self.config.height

    def _render_tile(self, row_start: int, row_end: int) -> None:
        cfg = self.config
        render_rows(
            row_start,
            row_end,
            samples_per_pixel=cfg.samples_per_pixel,
            max_depth=cfg.max_depth,
            sampling_method=sampling_method_index(cfg.sampling),
            seed=cfg.seed,
            gamma=cfg.gamma,
        )

    def render_tiles(self) -> Generator[tuple[int, int], None, None]:
        """Render tile by tile, yielding progress after each one.

        Yields:
            Tuple of (rows_done, rows_total).

        Example:
            >>> for done, total in renderer.render_tiles():
            ...     print(f"{done}/{total} rows")
        """
        cfg = self.config
        setup_render_target(cfg.width, cfg.height)
        self._rows_done = 0

        logger.info(
            "Rendering %dx%d, %d spp, depth %d, %s sampling",
            cfg.width,
            cfg.height,
            cfg.samples_per_pixel,
            cfg.max_depth,
            cfg.sampling,
        )
        start = time.perf_counter()

        for row_start in range(0, cfg.height, cfg.tile_rows):
            row_end = min(row_start + cfg.tile_rows, cfg.height)
            self._render_tile(row_start, row_end)
            self._rows_done = row_end
            logger.debug("Rendered rows %d-%d of %d", row_start, row_end, cfg.height)
            yield (row_end, cfg.height)

        logger.info("Render finished in %.3f s", time.perf_counter() - start)

    def render(self, callback: ProgressCallback | None = None) -> npt.NDArray[np.float32]:
        """Render the whole image.

        Args:
            callback: Optional function called after each tile with
                (rows_done, rows_total).

        Returns:
            The image as a (height, width, 3) float32 array in [0, 1].
        """
        for done, total in self.render_tiles():
            if callback is not None:
                callback(done, total)
        return self.get_image_numpy()

    def get_image_numpy(self) -> npt.NDArray[np.float32]:
        """Get the rendered image as a NumPy array.

        Returns:
            Array of shape (height, width, 3), dtype float32, top row first.
        """
        return get_normalized_image_numpy()

    def get_image_uint8(self) -> npt.NDArray[np.uint8]:
        """Get the rendered image as 8-bit RGB, rounded to nearest."""
        from src.whitted.preview.export import image_to_uint8

        return image_to_uint8(self.get_image_numpy())

    def save_image(self, filepath: str) -> None:
        """Save the rendered image as a PNG (or any format Pillow infers)."""
        from src.whitted.preview.export import save_png_from_array

        save_png_from_array(self.get_image_numpy(), filepath)

    def __repr__(self) -> str:
        """Return a string representation of the renderer state."""
        return (
            f"Renderer(width={self.width}, height={self.height}, "
            f"spp={self.config.samples_per_pixel}, depth={self.config.max_depth})"
        )
