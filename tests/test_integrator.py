"""Tests for the Whitted integrator.

This module tests the core shading functionality including:
- Render target setup and argument validation
- Recursion depth bounding the number of traced rays
- Hard shadows from point lights
- Reflection and refraction weighting

Note: Imports are done inside test methods to avoid Taichi initialization issues.
The conftest.py fixture initializes Taichi before tests run, so module-level
imports of modules containing ti.field() declarations would fail.
"""

import pytest


def _setup_camera():
    from src.whitted.camera.pinhole import PinholeCamera, setup_camera

    setup_camera(
        PinholeCamera(
            lookfrom=(0.0, 0.0, 3.0),
            lookat=(0.0, 0.0, 0.0),
            vup=(0.0, 1.0, 0.0),
            vfov=60.0,
            aspect_ratio=1.0,
        )
    )


class TestRenderTargetSetup:
    """Test render target initialization and argument checks."""

    def test_setup_render_target_sets_dimensions(self):
        from src.whitted.core.integrator import get_image_dimensions, setup_render_target

        setup_render_target(64, 48)
        assert get_image_dimensions() == (64, 48)

    @pytest.mark.parametrize("width, height", [(0, 10), (10, -1), (4096, 10)])
    def test_setup_render_target_rejects_bad_size(self, width, height):
        from src.whitted.core.integrator import setup_render_target

        with pytest.raises(ValueError):
            setup_render_target(width, height)

    def test_render_rows_requires_camera(self):
        from src.whitted.core.integrator import render_rows, setup_render_target

        setup_render_target(4, 4)
        with pytest.raises(RuntimeError, match="Camera not set up"):
            render_rows(0, 4)

    def test_render_rows_validates_arguments(self):
        from src.whitted.core.integrator import render_rows, setup_render_target

        setup_render_target(4, 4)
        _setup_camera()
        with pytest.raises(ValueError, match="row range"):
            render_rows(2, 5)
        with pytest.raises(ValueError, match="samples_per_pixel"):
            render_rows(0, 4, samples_per_pixel=0)
        with pytest.raises(ValueError, match="max_depth"):
            render_rows(0, 4, max_depth=9)
        with pytest.raises(ValueError, match="gamma"):
            render_rows(0, 4, gamma=0.0)

    def test_empty_row_range_is_noop(self):
        import numpy as np

        from src.whitted.core.integrator import (
            get_normalized_image_numpy,
            render_rows,
            setup_render_target,
        )
        from src.whitted.scene.lighting import set_background_color

        setup_render_target(4, 4)
        _setup_camera()
        set_background_color((1.0, 1.0, 1.0))
        render_rows(2, 2)
        assert np.all(get_normalized_image_numpy() == 0.0)


class TestRecursionDepth:
    """The depth limit bounds the number of closest-hit queries."""

    @pytest.mark.parametrize("max_depth", [1, 2, 5, 8])
    def test_mirror_box_traces_exactly_depth_rays(self, max_depth):
        from src.whitted.core.integrator import trace_single_ray
        from src.whitted.scene.presets import create_mirror_box_scene

        scene, _camera = create_mirror_box_scene()
        color, rays = trace_single_ray((0.0, 0.0, 0.0), (0.3, 0.2, -1.0), max_depth)

        assert rays == max_depth
        # Perfect mirrors, no lights, black background
        assert color == (0.0, 0.0, 0.0)

    def test_mirror_chain_ends_in_background(self):
        from src.whitted.core.integrator import trace_single_ray
        from src.whitted.scene.presets import create_mirror_box_scene

        scene, _camera = create_mirror_box_scene(finalize=False)
        scene.set_background((0.2, 0.4, 0.6))
        scene.finalize()

        color, rays = trace_single_ray((0.0, 0.0, 0.0), (1.0, 0.5, 0.25), 4)
        assert rays == 4
        assert color == pytest.approx((0.2, 0.4, 0.6), abs=1e-6)

    def test_partial_mirror_attenuates_per_bounce(self):
        from src.whitted.core.integrator import trace_single_ray
        from src.whitted.scene.manager import SceneManager

        scene = SceneManager()
        half = scene.add_material(
            color=(1.0, 1.0, 1.0), ambient=0.0, diffuse=0.0, reflectivity=0.5
        )
        scene.add_sphere((0.0, 0.0, 0.0), 2.0, half)
        scene.set_background((1.0, 1.0, 1.0))
        scene.finalize()

        color, rays = trace_single_ray((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), 3)
        assert rays == 3
        assert color == pytest.approx((0.125, 0.125, 0.125), abs=1e-6)

    def test_depth_zero_returns_background(self):
        from src.whitted.core.integrator import trace_single_ray
        from src.whitted.scene.presets import create_mirror_box_scene

        scene, _camera = create_mirror_box_scene(finalize=False)
        scene.set_background((0.3, 0.3, 0.3))
        scene.finalize()

        color, rays = trace_single_ray((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), 0)
        assert rays == 0
        assert color == pytest.approx((0.3, 0.3, 0.3), abs=1e-6)

    def test_miss_returns_background(self):
        from src.whitted.core.integrator import trace_single_ray
        from src.whitted.scene.lighting import set_background_color

        set_background_color((0.1, 0.2, 0.3))
        color, rays = trace_single_ray((0.0, 0.0, 0.0), (0.0, 1.0, 0.0), 5)
        assert rays == 1
        assert color == pytest.approx((0.1, 0.2, 0.3), abs=1e-6)

    def test_invalid_depth_raises(self):
        from src.whitted.core.integrator import trace_single_ray

        with pytest.raises(ValueError, match="max_depth"):
            trace_single_ray((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), -1)


class TestShadows:
    """Point lights are binary: visible or fully blocked."""

    def _diffuse_material(self):
        from src.whitted.materials.phong import add_material

        return add_material((1.0, 1.0, 1.0), ambient=0.0, diffuse=1.0, specular=0.0)

    def test_unblocked_light_gives_lambert_term(self):
        from src.whitted.core.integrator import shade_point
        from src.whitted.scene.lighting import add_point_light

        mat = self._diffuse_material()
        add_point_light((0.0, 4.0, 0.0), intensity=0.5)

        color = shade_point((0.0, 0.0, 0.0), (0.0, 1.0, 0.0), (0.0, 1.0, 0.0), mat)
        assert color == pytest.approx((0.5, 0.5, 0.5), abs=1e-5)

    def test_occluded_light_contributes_exactly_zero(self):
        import taichi as ti

        from src.whitted.core.integrator import shade_point
        from src.whitted.scene.intersection import add_sphere
        from src.whitted.scene.lighting import add_point_light

        mat = self._diffuse_material()
        add_point_light((0.0, 4.0, 0.0))
        add_sphere(ti.math.vec3(0.0, 2.0, 0.0), 0.5, mat)

        color = shade_point((0.0, 0.0, 0.0), (0.0, 1.0, 0.0), (0.0, 1.0, 0.0), mat)
        assert color == (0.0, 0.0, 0.0)

    def test_blocker_behind_light_does_not_shadow(self):
        import taichi as ti

        from src.whitted.core.integrator import shade_point
        from src.whitted.scene.intersection import add_sphere
        from src.whitted.scene.lighting import add_point_light

        mat = self._diffuse_material()
        add_point_light((0.0, 4.0, 0.0))
        add_sphere(ti.math.vec3(0.0, 6.0, 0.0), 0.5, mat)

        color = shade_point((0.0, 0.0, 0.0), (0.0, 1.0, 0.0), (0.0, 1.0, 0.0), mat)
        assert color[0] > 0.9

    def test_ambient_survives_shadow(self):
        import taichi as ti

        from src.whitted.core.integrator import shade_point
        from src.whitted.materials.phong import add_material
        from src.whitted.scene.intersection import add_sphere
        from src.whitted.scene.lighting import add_point_light, set_ambient_light

        mat = add_material((0.5, 1.0, 1.0), ambient=0.4, diffuse=1.0)
        set_ambient_light((1.0, 1.0, 0.5))
        add_point_light((0.0, 4.0, 0.0))
        add_sphere(ti.math.vec3(0.0, 2.0, 0.0), 0.5, mat)

        color = shade_point((0.0, 0.0, 0.0), (0.0, 1.0, 0.0), (0.0, 1.0, 0.0), mat)
        assert color == pytest.approx((0.2, 0.4, 0.2), abs=1e-6)


class TestRefraction:
    """Transparent surfaces spawn refraction rays."""

    def test_index_matched_sphere_is_invisible(self):
        """With ior 1 a clear sphere passes the ray straight through."""
        from src.whitted.core.integrator import trace_single_ray
        from src.whitted.scene.manager import SceneManager

        scene = SceneManager()
        clear = scene.add_material(
            color=(1.0, 1.0, 1.0), ambient=0.0, diffuse=0.0, transparency=1.0, ior=1.0
        )
        scene.add_sphere((0.0, 0.0, -3.0), 1.0, clear)
        scene.set_background((0.25, 0.5, 0.75))
        scene.finalize()

        color, rays = trace_single_ray((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), 5)
        # Enter, exit, then miss
        assert rays == 3
        assert color == pytest.approx((0.25, 0.5, 0.75), abs=1e-5)

    def test_depth_limit_stops_refraction_chain(self):
        from src.whitted.core.integrator import trace_single_ray
        from src.whitted.scene.manager import SceneManager

        scene = SceneManager()
        clear = scene.add_material(
            color=(1.0, 1.0, 1.0), ambient=0.0, diffuse=0.0, transparency=1.0, ior=1.0
        )
        scene.add_sphere((0.0, 0.0, -3.0), 1.0, clear)
        scene.set_background((1.0, 1.0, 1.0))
        scene.finalize()

        color, rays = trace_single_ray((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), 2)
        assert rays == 2
        # The exit ray has no depth left, so it returns the background
        assert color == pytest.approx((1.0, 1.0, 1.0), abs=1e-5)

    def test_fresnel_splits_energy(self):
        """Reflected and refracted shares of a clear glass sphere sum to one."""
        from src.whitted.core.integrator import trace_single_ray
        from src.whitted.scene.manager import SceneManager

        scene = SceneManager()
        glass = scene.add_material(
            color=(1.0, 1.0, 1.0),
            ambient=0.0,
            diffuse=0.0,
            transparency=1.0,
            ior=1.5,
            fresnel=True,
        )
        scene.add_sphere((0.0, 0.0, -3.0), 1.0, glass)
        scene.set_background((1.0, 1.0, 1.0))
        scene.finalize()

        color, rays = trace_single_ray((0.0, 0.0, 0.0), (0.0, 0.0, -1.0), 8)
        assert rays > 3
        # Every branch ends in the white background with its share of weight
        assert color == pytest.approx((1.0, 1.0, 1.0), abs=1e-3)

    def test_total_internal_reflection_keeps_transparent_share(self):
        """A grazing ray inside a glass slab bounces between its faces."""
        from src.whitted.core.integrator import trace_single_ray
        from src.whitted.scene.manager import SceneManager

        scene = SceneManager()
        glass = scene.add_material(
            color=(1.0, 1.0, 1.0), ambient=0.0, diffuse=0.0, transparency=0.6, ior=1.5
        )
        # Slab between y = 0 and y = 1 with outward facing normals
        scene.add_plane((0.0, 1.0, 0.0), (0.0, 1.0, 0.0), glass)
        scene.add_plane((0.0, 0.0, 0.0), (0.0, -1.0, 0.0), glass)
        scene.set_background((1.0, 1.0, 1.0))
        scene.finalize()

        # About 79 degrees from the normal, past the 41.8 degree critical angle
        norm = (1.0 + 0.2**2) ** 0.5
        grazing = (1.0 / norm, 0.2 / norm, 0.0)
        color, rays = trace_single_ray((0.0, 0.5, 0.0), grazing, 3)
        assert rays == 3
        # Each bounce passes on the whole transparency as reflection
        assert color == pytest.approx((0.6**3, 0.6**3, 0.6**3), abs=1e-4)

        # A steep ray refracts out of the top face and reaches the sky
        steep = (0.2 / norm, 1.0 / norm, 0.0)
        color, rays = trace_single_ray((0.0, 0.5, 0.0), steep, 3)
        assert rays == 2
        assert color == pytest.approx((0.6, 0.6, 0.6), abs=1e-4)
