"""Unit tests for the Phong material model and material registry.

Tests cover:
- Registry add/lookup and validation
- Ambient term
- Diffuse and specular response to a single light
"""

import pytest
import taichi as ti


class TestMaterialRegistry:
    """Tests for add_material() and lookups."""

    def test_add_material_returns_sequential_ids(self):
        from src.whitted.materials.phong import add_material, get_material_count

        first = add_material((0.5, 0.5, 0.5))
        second = add_material((1.0, 0.0, 0.0), reflectivity=0.5)
        assert (first, second) == (0, 1)
        assert get_material_count() == 2

    def test_material_fields_round_trip_to_kernel(self):
        from src.whitted.materials.phong import add_material, get_material

        mat_id = add_material(
            (0.2, 0.4, 0.6),
            ambient=0.3,
            diffuse=0.7,
            specular=0.5,
            shininess=10.0,
            reflectivity=0.25,
            transparency=0.5,
            ior=1.33,
            fresnel=True,
        )

        color = ti.field(dtype=ti.math.vec3, shape=())
        scalars = ti.field(dtype=ti.f32, shape=7)
        fresnel = ti.field(dtype=ti.i32, shape=())

        @ti.kernel
        def test_kernel():
            m = get_material(mat_id)
            color[None] = m.color
            scalars[0] = m.ambient
            scalars[1] = m.diffuse
            scalars[2] = m.specular
            scalars[3] = m.shininess
            scalars[4] = m.reflectivity
            scalars[5] = m.transparency
            scalars[6] = m.ior
            fresnel[None] = m.fresnel

        test_kernel()
        c = color[None]
        assert abs(c[0] - 0.2) < 1e-6 and abs(c[1] - 0.4) < 1e-6 and abs(c[2] - 0.6) < 1e-6
        expected = [0.3, 0.7, 0.5, 10.0, 0.25, 0.5, 1.33]
        for value, want in zip(scalars.to_numpy().tolist(), expected):
            assert abs(value - want) < 1e-6
        assert fresnel[None] == 1

    @pytest.mark.parametrize(
        "kwargs, match",
        [
            ({"color": (1.2, 0.0, 0.0)}, "color"),
            ({"color": (0.5, 0.5)}, "3 components"),
            ({"ambient": -0.1}, "ambient"),
            ({"diffuse": -1.0}, "diffuse"),
            ({"specular": -0.5}, "specular"),
            ({"shininess": 0.0}, "shininess"),
            ({"reflectivity": 1.5}, "reflectivity"),
            ({"transparency": -0.2}, "transparency"),
            ({"ior": 0.9}, "Index of refraction"),
        ],
    )
    def test_invalid_parameters_raise(self, kwargs, match):
        from src.whitted.materials.phong import add_material, get_material_count

        params = {"color": (0.5, 0.5, 0.5)}
        params.update(kwargs)
        with pytest.raises(ValueError, match=match):
            add_material(**params)
        assert get_material_count() == 0


class TestPhongShading:
    """Tests for the local Phong terms."""

    def test_ambient_term(self):
        from src.whitted.materials.phong import PhongMaterial, phong_ambient, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            m = PhongMaterial(
                color=vec3(0.5, 1.0, 0.25),
                ambient=0.4,
                diffuse=0.0,
                specular=0.0,
                shininess=1.0,
                reflectivity=0.0,
                transparency=0.0,
                ior=1.0,
                fresnel=0,
            )
            result[None] = phong_ambient(m, vec3(1.0, 0.5, 1.0))

        test_kernel()
        r = result[None]
        assert abs(r[0] - 0.2) < 1e-6
        assert abs(r[1] - 0.2) < 1e-6
        assert abs(r[2] - 0.1) < 1e-6

    def test_diffuse_follows_cosine(self):
        import math

        from src.whitted.materials.phong import PhongMaterial, phong_light_contribution, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            m = PhongMaterial(
                color=vec3(1.0, 1.0, 1.0),
                ambient=0.0,
                diffuse=0.8,
                specular=0.0,
                shininess=1.0,
                reflectivity=0.0,
                transparency=0.0,
                ior=1.0,
                fresnel=0,
            )
            n = vec3(0.0, 1.0, 0.0)
            to_light = ti.math.normalize(vec3(1.0, 1.0, 0.0))
            result[None] = phong_light_contribution(m, n, to_light, n, vec3(1.0, 1.0, 1.0))

        test_kernel()
        expected = 0.8 * math.cos(math.radians(45.0))
        assert abs(result[None][0] - expected) < 1e-5

    def test_light_behind_surface_contributes_nothing(self):
        from src.whitted.materials.phong import PhongMaterial, phong_light_contribution, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            m = PhongMaterial(
                color=vec3(1.0, 1.0, 1.0),
                ambient=0.0,
                diffuse=1.0,
                specular=1.0,
                shininess=8.0,
                reflectivity=0.0,
                transparency=0.0,
                ior=1.0,
                fresnel=0,
            )
            n = vec3(0.0, 1.0, 0.0)
            result[None] = phong_light_contribution(
                m, n, vec3(0.0, -1.0, 0.0), n, vec3(1.0, 1.0, 1.0)
            )

        test_kernel()
        r = result[None]
        assert r[0] == 0.0 and r[1] == 0.0 and r[2] == 0.0

    def test_specular_highlight_is_white(self):
        """Mirror configuration: R == V, so the specular term is the full coefficient."""
        from src.whitted.materials.phong import PhongMaterial, phong_light_contribution, vec3

        result = ti.field(dtype=ti.math.vec3, shape=())

        @ti.kernel
        def test_kernel():
            m = PhongMaterial(
                color=vec3(1.0, 0.0, 0.0),
                ambient=0.0,
                diffuse=0.0,
                specular=0.5,
                shininess=50.0,
                reflectivity=0.0,
                transparency=0.0,
                ior=1.0,
                fresnel=0,
            )
            n = vec3(0.0, 1.0, 0.0)
            result[None] = phong_light_contribution(m, n, n, n, vec3(1.0, 1.0, 1.0))

        test_kernel()
        r = result[None]
        # Specular does not take the albedo's hue
        for k in range(3):
            assert abs(r[k] - 0.5) < 1e-5
