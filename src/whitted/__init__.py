"""Taichi implementation of a Whitted-style recursive ray tracer.

This package renders static scenes made of spheres, planes and triangle
meshes lit by point lights, with Phong shading, hard shadows and recursive
mirror reflection and refraction. All per-ray work runs inside Taichi kernels.

Subpackages:
    core: Ray and vector utilities, deterministic sampling, the integrator
        and the tiled renderer
    geometry: Shape primitives, bounding boxes and the triangle BVH
    materials: Phong material registry and dielectric helpers
    scene: Primitive storage, lights, scene construction and presets
    camera: Pinhole / thin-lens camera with stratified ray generation
    preview: Image export utilities
"""

__version__ = "0.1.0"
