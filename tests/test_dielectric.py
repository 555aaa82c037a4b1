"""Unit tests for dielectric boundary helpers.

Tests cover:
- Refraction ratio for entering and leaving rays
- Total internal reflection detection
- Fresnel reflectance (Schlick)
- Refracted direction with TIR reporting
"""

import math

import taichi as ti


class TestRefractionRatio:
    """Tests for refraction_ratio()."""

    def test_entering_and_leaving(self):
        from src.whitted.materials.dielectric import refraction_ratio

        result = ti.field(dtype=ti.f32, shape=2)

        @ti.kernel
        def test_kernel():
            result[0] = refraction_ratio(1.5, 1)
            result[1] = refraction_ratio(1.5, 0)

        test_kernel()
        assert abs(result[0] - 1.0 / 1.5) < 1e-6
        assert abs(result[1] - 1.5) < 1e-6


class TestTotalInternalReflection:
    """Tests for total internal reflection (TIR)."""

    def test_tir_critical_angle_exceeded(self):
        """Test TIR when critical angle is exceeded."""
        from src.whitted.materials.dielectric import will_reflect

        result = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel():
            ior = 1.5
            # Critical angle for glass is arcsin(1/1.5) = 41.8 degrees
            # 60 degree incident angle (well beyond critical)
            incident = ti.math.normalize(ti.math.vec3(0.866, -0.5, 0.0))
            normal = ti.math.vec3(0.0, 1.0, 0.0)
            front_face = 0  # Inside glass, hitting boundary

            result[None] = will_reflect(ior, incident, normal, front_face)

        test_kernel()
        # Should have TIR (will_reflect = 1)
        assert result[None] == 1

    def test_tir_below_critical_angle(self):
        """Test no TIR when below critical angle."""
        from src.whitted.materials.dielectric import will_reflect

        result = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel():
            ior = 1.5
            # 20 degree incident angle (below critical angle of 41.8)
            incident = ti.math.normalize(ti.math.vec3(0.342, -0.940, 0.0))
            normal = ti.math.vec3(0.0, 1.0, 0.0)
            front_face = 0  # Inside glass

            result[None] = will_reflect(ior, incident, normal, front_face)

        test_kernel()
        # Should not have TIR (will_reflect = 0)
        assert result[None] == 0

    def test_tir_only_from_denser_medium(self):
        """Test that TIR only occurs when going from denser to less dense medium."""
        from src.whitted.materials.dielectric import will_reflect

        result_front = ti.field(dtype=ti.i32, shape=())
        result_back = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel():
            ior = 1.5
            # Same steep angle
            incident = ti.math.normalize(ti.math.vec3(0.866, -0.5, 0.0))
            normal = ti.math.vec3(0.0, 1.0, 0.0)

            # From outside (air to glass) - no TIR possible
            result_front[None] = will_reflect(ior, incident, normal, 1)

            # From inside (glass to air) - TIR possible
            result_back[None] = will_reflect(ior, incident, normal, 0)

        test_kernel()
        # No TIR from air to glass
        assert result_front[None] == 0
        # TIR from glass to air at steep angle
        assert result_back[None] == 1


class TestFresnelReflectance:
    """Tests for fresnel_reflectance()."""

    def test_normal_incidence_is_r0(self):
        from src.whitted.materials.dielectric import fresnel_reflectance

        result = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            result[None] = fresnel_reflectance(
                1.5, ti.math.vec3(0.0, -1.0, 0.0), ti.math.vec3(0.0, 1.0, 0.0), 1
            )

        test_kernel()
        # ((1 - 1/1.5) / (1 + 1/1.5))^2 = 0.04
        assert abs(result[None] - 0.04) < 1e-5

    def test_grazing_incidence_approaches_one(self):
        from src.whitted.materials.dielectric import fresnel_reflectance

        result = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            incident = ti.math.normalize(ti.math.vec3(1.0, -0.01, 0.0))
            result[None] = fresnel_reflectance(1.5, incident, ti.math.vec3(0.0, 1.0, 0.0), 1)

        test_kernel()
        assert result[None] > 0.9

    def test_total_internal_reflection_is_one(self):
        from src.whitted.materials.dielectric import fresnel_reflectance

        result = ti.field(dtype=ti.f32, shape=())

        @ti.kernel
        def test_kernel():
            incident = ti.math.normalize(ti.math.vec3(0.866, -0.5, 0.0))
            result[None] = fresnel_reflectance(1.5, incident, ti.math.vec3(0.0, 1.0, 0.0), 0)

        test_kernel()
        assert result[None] == 1.0


class TestRefractDirection:
    """Tests for refract_direction()."""

    def test_refracted_direction_is_unit_and_bends_toward_normal(self):
        from src.whitted.materials.dielectric import refract_direction

        direction = ti.field(dtype=ti.math.vec3, shape=())
        tir = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel():
            incident = ti.math.normalize(ti.math.vec3(1.0, -1.0, 0.0))
            d, t = refract_direction(1.5, incident, ti.math.vec3(0.0, 1.0, 0.0), 1)
            direction[None] = d
            tir[None] = t

        test_kernel()
        d = direction[None]
        assert tir[None] == 0
        assert abs(math.sqrt(d[0] ** 2 + d[1] ** 2 + d[2] ** 2) - 1.0) < 1e-5
        # sin(theta_t) = sin(45 deg) / 1.5
        assert abs(d[0] - math.sin(math.radians(45.0)) / 1.5) < 1e-5
        assert d[1] < 0.0

    def test_tir_reports_zero_direction(self):
        from src.whitted.materials.dielectric import refract_direction

        direction = ti.field(dtype=ti.math.vec3, shape=())
        tir = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel():
            incident = ti.math.normalize(ti.math.vec3(0.866, -0.5, 0.0))
            d, t = refract_direction(1.5, incident, ti.math.vec3(0.0, 1.0, 0.0), 0)
            direction[None] = d
            tir[None] = t

        test_kernel()
        assert tir[None] == 1
        d = direction[None]
        assert d[0] == 0.0 and d[1] == 0.0 and d[2] == 0.0
