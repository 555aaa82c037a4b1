"""Deterministic per-sample random numbers and sub-pixel sampling patterns.

Taichi's built-in ti.random() draws from per-thread streams, so the value a
given pixel receives depends on how the runtime schedules work. Renders must
be a pure function of (scene, camera, config), so every random number the
tracer uses comes from a PCG hash of (seed, pixel_i, pixel_j, sample_index)
instead. The state is a plain ti.u32 that is threaded through calls.

Two supersampling patterns are supported. Square sample counts use an
m x m grid; other counts use one sample per row and column strip (see
stratified_offset):

    SAMPLING_UNIFORM: each sample sits at the center of its cell
    SAMPLING_JITTER: each sample sits at a random point inside its cell

Example:
    >>> @ti.kernel
    ... def offsets(i: ti.i32, j: ti.i32):
    ...     state = init_sample_state(0, i, j, 0)
    ...     dx, dy, state = stratified_offset(0, 4, SAMPLING_JITTER, state)
"""

import taichi as ti
import taichi.math as tm

vec3 = tm.vec3

SAMPLING_UNIFORM = 0
SAMPLING_JITTER = 1

SAMPLING_METHODS = {
    "uniform": SAMPLING_UNIFORM,
    "jitter": SAMPLING_JITTER,
}

# PCG-RXS-M-XS constants
_PCG_MULTIPLIER = 747796405
_PCG_INCREMENT = 2891336453
_PCG_OUTPUT_MULTIPLIER = 277803737

# 2^24, the number of distinct floats produced by next_float()
_FLOAT_SCALE = 16777216.0


def sampling_method_index(name: str) -> int:
    """Translate a sampling method name into its kernel constant.

    Raises:
        ValueError: If the name is not one of SAMPLING_METHODS.
    """
    try:
        return SAMPLING_METHODS[name]
    except KeyError:
        raise ValueError(
            f"Unknown sampling method '{name}'. Expected one of {sorted(SAMPLING_METHODS)}"
        ) from None


@ti.func
def pcg_hash(value: ti.u32) -> ti.u32:
    """Hash a 32-bit value with the PCG-RXS-M-XS output permutation."""
    state = value * ti.u32(_PCG_MULTIPLIER) + ti.u32(_PCG_INCREMENT)
    shift = ti.bit_shr(state, ti.u32(28)) + ti.u32(4)
    word = (ti.bit_shr(state, shift) ^ state) * ti.u32(_PCG_OUTPUT_MULTIPLIER)
    return ti.bit_shr(word, ti.u32(22)) ^ word


@ti.func
def init_sample_state(seed: ti.i32, pixel_i: ti.i32, pixel_j: ti.i32, sample_index: ti.i32) -> ti.u32:
    """Derive the initial random state for one camera sample.

    Args:
        seed: Render-wide seed.
        pixel_i: Pixel column.
        pixel_j: Pixel row.
        sample_index: Index of the sample within the pixel.

    Returns:
        A hashed state unique to the four inputs.
    """
    h = pcg_hash(ti.cast(sample_index, ti.u32))
    h = pcg_hash(ti.cast(pixel_j, ti.u32) ^ h)
    h = pcg_hash(ti.cast(pixel_i, ti.u32) ^ h)
    return pcg_hash(ti.cast(seed, ti.u32) ^ h)


@ti.func
def next_float(state: ti.u32):
    """Advance the state and draw a float in [0, 1).

    Returns:
        A tuple of (value, new_state).
    """
    new_state = pcg_hash(state)
    value = ti.cast(ti.bit_shr(new_state, ti.u32(8)), ti.f32) / _FLOAT_SCALE
    return value, new_state


@ti.func
def grid_resolution(samples_per_pixel: ti.i32) -> ti.i32:
    """Side length of the square sample grid for a given sample count."""
    m = ti.cast(ti.ceil(ti.sqrt(ti.cast(samples_per_pixel, ti.f32)) - 1e-4), ti.i32)
    return ti.max(m, 1)


@ti.func
def stratified_offset(sample_index: ti.i32, samples_per_pixel: ti.i32, method: ti.i32, state: ti.u32):
    """Sub-pixel offset in [0, 1)^2 for one sample of a pixel.

    When spp is a perfect square m * m, sample k occupies grid cell
    (k % m, k // m). Otherwise the pixel is cut into spp strips along each
    axis and sample k takes x strip k and y strip (k + spp // 2) % spp, so
    every strip on both axes holds exactly one sample and the samples
    average to the pixel center.

    With SAMPLING_UNIFORM the offset is the cell center; with
    SAMPLING_JITTER it is a random point inside the cell.

    Args:
        sample_index: Index of the sample within the pixel.
        samples_per_pixel: Total samples taken for the pixel.
        method: SAMPLING_UNIFORM or SAMPLING_JITTER.
        state: Current random state.

    Returns:
        A tuple of (dx, dy, new_state).
    """
    m = grid_resolution(samples_per_pixel)
    cx = 0.0
    cy = 0.0
    inv_cells = 1.0
    if m * m == samples_per_pixel:
        cell = sample_index % samples_per_pixel
        cx = ti.cast(cell % m, ti.f32)
        cy = ti.cast(cell // m, ti.f32)
        inv_cells = 1.0 / ti.cast(m, ti.f32)
    else:
        k = sample_index % samples_per_pixel
        cx = ti.cast(k, ti.f32)
        cy = ti.cast((k + samples_per_pixel // 2) % samples_per_pixel, ti.f32)
        inv_cells = 1.0 / ti.cast(samples_per_pixel, ti.f32)

    rng = state
    jx = 0.5
    jy = 0.5
    if method == SAMPLING_JITTER:
        jx, rng = next_float(rng)
        jy, rng = next_float(rng)

    return (cx + jx) * inv_cells, (cy + jy) * inv_cells, rng


@ti.func
def sample_unit_disk(state: ti.u32):
    """Uniform point on the unit disk in the xy-plane, for lens sampling.

    Returns:
        A tuple of (point, new_state) where point.z is 0.
    """
    u1, rng = next_float(state)
    u2, rng = next_float(rng)
    r = ti.sqrt(u1)
    theta = 2.0 * tm.pi * u2
    return vec3(r * ti.cos(theta), r * ti.sin(theta), 0.0), rng
