#!/usr/bin/env python3
"""Render the showcase scene.

This script demonstrates end-to-end rendering with the Whitted ray tracer.
It builds the showcase scene (spheres, ground plane, a triangle mesh, glass
and mirrors), sets up the camera, renders tile by tile and saves a PNG.

Usage:
    python -m examples.render_showcase [options]

Options:
    --width WIDTH       Image width in pixels (default: 640)
    --height HEIGHT     Image height in pixels (default: 480)
    --samples SAMPLES   Samples per pixel (default: 4)
    --depth DEPTH       Maximum recursion depth (default: 5)
    --sampling METHOD   "uniform" or "jitter" (default: jitter)
    --seed SEED         Sampling seed (default: 0)
    --scene NAME        "showcase" or "mirror-box" (default: showcase)
    --output OUTPUT     Output file path (default: showcase.png)
    --quiet             Suppress progress output

Example:
    python -m examples.render_showcase --width 320 --height 240 --samples 16
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

import taichi as ti

logger = logging.getLogger(__name__)


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render the showcase scene.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--width", type=int, default=640, help="Image width in pixels (default: 640)")
    parser.add_argument("--height", type=int, default=480, help="Image height in pixels (default: 480)")
    parser.add_argument("--samples", type=int, default=4, help="Samples per pixel (default: 4)")
    parser.add_argument("--depth", type=int, default=5, help="Maximum recursion depth (default: 5)")
    parser.add_argument(
        "--sampling",
        choices=["uniform", "jitter"],
        default="jitter",
        help="Sub-pixel sampling pattern (default: jitter)",
    )
    parser.add_argument("--seed", type=int, default=0, help="Sampling seed (default: 0)")
    parser.add_argument(
        "--scene",
        choices=["showcase", "mirror-box"],
        default="showcase",
        help="Scene to render (default: showcase)",
    )
    parser.add_argument(
        "--output",
        type=str,
        default="showcase.png",
        help="Output file path (default: showcase.png)",
    )
    parser.add_argument("--quiet", action="store_true", help="Suppress progress output")
    return parser.parse_args()


def render_showcase(
    width: int = 640,
    height: int = 480,
    samples_per_pixel: int = 4,
    max_depth: int = 5,
    sampling: str = "jitter",
    seed: int = 0,
    scene_name: str = "showcase",
    output_path: str = "showcase.png",
    quiet: bool = False,
) -> Path:
    """Render a preset scene and save it to file.

    Returns:
        Path to the saved image file.
    """
    # Lazy imports to allow Taichi initialization first
    from src.whitted.camera.pinhole import setup_camera
    from src.whitted.core.renderer import RenderConfig, Renderer
    from src.whitted.preview.export import save_png
    from src.whitted.scene.presets import create_mirror_box_scene, create_showcase_scene

    config = RenderConfig(
        width=width,
        height=height,
        samples_per_pixel=samples_per_pixel,
        max_depth=max_depth,
        sampling=sampling,
        seed=seed,
    )

    if scene_name == "mirror-box":
        _scene, camera = create_mirror_box_scene()
        camera.aspect_ratio = config.aspect_ratio
    else:
        _scene, camera = create_showcase_scene(aspect_ratio=config.aspect_ratio)
    setup_camera(camera)

    renderer = Renderer(config)
    start_time = time.time()

    def progress_callback(done: int, total: int) -> None:
        if not quiet:
            print(f"\r  Progress: {done}/{total} rows ({100.0 * done / total:.1f}%)", end="", flush=True)

    renderer.render(callback=progress_callback)
    if not quiet:
        print()  # Newline after progress

    output_file = save_png(renderer, Path(output_path))

    if not quiet:
        print(f"Saved to: {output_file.absolute()}")
        print(f"Total time: {time.time() - start_time:.2f}s")
    return output_file


def main() -> int:
    """Main entry point."""
    args = parse_args()
    logging.basicConfig(
        level=logging.WARNING if args.quiet else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    ti.init(arch=ti.cpu)

    try:
        render_showcase(
            width=args.width,
            height=args.height,
            samples_per_pixel=args.samples,
            max_depth=args.depth,
            sampling=args.sampling,
            seed=args.seed,
            scene_name=args.scene,
            output_path=args.output,
            quiet=args.quiet,
        )
        return 0
    except (ValueError, RuntimeError) as e:
        logger.error("Render failed: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
