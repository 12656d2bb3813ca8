"""Warps from the unit interval/square onto planar and 1D domains.

Each warp comes as a triple of Taichi functions: the forward mapping from
uniform variates, its exact inverse, and the density of the forward mapping
with respect to area (2D) or length (1D). Densities are zero outside the
target domain.

Samples are expected in [0, 1). The disk and triangle warps clamp their
input to [0, 1] so that variates pushed slightly out of range by upstream
round-off still map onto the domain; the other warps leave out-of-range
input undefined.

Example:
    >>> import taichi as ti
    >>> from src.sampling.warp.planar import square_to_uniform_disk_concentric
    >>> @ti.kernel
    ... def center() -> ti.math.vec2:
    ...     return square_to_uniform_disk_concentric(ti.math.vec2(0.5, 0.5))
"""

import taichi as ti
import taichi.math as tm

from src.sampling.core.math import (
    INV_PI,
    INV_TWO_PI,
    angle_to_unit,
    clamp01,
    copysign,
    lerp,
    mulsign,
    safe_div,
    safe_sqrt,
    vec2,
)

# =============================================================================
# Disks
# =============================================================================


@ti.func
def square_to_uniform_disk(sample: vec2) -> vec2:
    """Uniformly sample a point on the unit disk (polar mapping).

    The radius is ``sqrt(sample.y)`` and the angle ``2 * pi * sample.x``.
    This mapping distorts areas near the center; prefer the concentric
    variant when stratification matters.
    """
    s = clamp01(sample)
    r = ti.sqrt(s.y)
    phi = 2.0 * tm.pi * s.x
    return vec2(ti.cos(phi) * r, ti.sin(phi) * r)


@ti.func
def uniform_disk_to_square(p: vec2) -> vec2:
    """Inverse of ``square_to_uniform_disk``."""
    phi = ti.atan2(p.y, p.x)
    return vec2(angle_to_unit(phi), p.x * p.x + p.y * p.y)


@ti.func
def square_to_uniform_disk_pdf(p: vec2) -> float:
    """Density of ``square_to_uniform_disk`` per unit area."""
    pdf = 0.0
    if p.x * p.x + p.y * p.y <= 1.0:
        pdf = INV_PI
    return pdf


@ti.func
def square_to_uniform_disk_concentric(sample: vec2) -> vec2:
    """Low-distortion concentric square-to-disk mapping (Shirley and Chiu).

    Uses the branch-reduced formulation by Dave Cline. Each concentric
    square ring of the input maps onto a ring of the disk, which keeps
    stratified point sets well distributed.
    """
    s = clamp01(sample)
    x = 2.0 * s.x - 1.0
    y = 2.0 * s.y - 1.0

    quadrant_1_or_3 = ti.abs(x) < ti.abs(y)
    r = ti.select(quadrant_1_or_3, y, x)
    rp = ti.select(quadrant_1_or_3, x, y)

    phi = 0.0
    if x != 0.0 or y != 0.0:
        phi = 0.25 * tm.pi * rp / r
        if quadrant_1_or_3:
            phi = 0.5 * tm.pi - phi

    return vec2(r * ti.cos(phi), r * ti.sin(phi))


@ti.func
def uniform_disk_to_square_concentric(p: vec2) -> vec2:
    """Inverse of ``square_to_uniform_disk_concentric``."""
    quadrant_0_or_2 = ti.abs(p.x) > ti.abs(p.y)
    r_sign = ti.select(quadrant_0_or_2, p.x, p.y)
    r = copysign(tm.length(p), r_sign)

    phi = ti.atan2(mulsign(p.y, r_sign), mulsign(p.x, r_sign))

    t = 4.0 / tm.pi * phi
    t = ti.select(quadrant_0_or_2, t, 2.0 - t) * r

    a = ti.select(quadrant_0_or_2, r, t)
    b = ti.select(quadrant_0_or_2, t, r)
    return vec2((a + 1.0) * 0.5, (b + 1.0) * 0.5)


@ti.func
def square_to_uniform_disk_concentric_pdf(p: vec2) -> float:
    """Density of ``square_to_uniform_disk_concentric`` per unit area."""
    return square_to_uniform_disk_pdf(p)


# =============================================================================
# Triangle
# =============================================================================


@ti.func
def square_to_uniform_triangle(sample: vec2) -> vec2:
    """Uniformly sample the triangle (0, 0), (1, 0), (0, 1).

    Returns barycentric-style coordinates; the point is
    ``(1 - sqrt(1 - u), v * sqrt(1 - u))``.
    """
    s = clamp01(sample)
    t = safe_sqrt(1.0 - s.x)
    return vec2(1.0 - t, t * s.y)


@ti.func
def uniform_triangle_to_square(p: vec2) -> vec2:
    """Inverse of ``square_to_uniform_triangle``."""
    t = 1.0 - p.x
    return vec2(1.0 - t * t, safe_div(p.y, t))


@ti.func
def square_to_uniform_triangle_pdf(p: vec2) -> float:
    """Density of ``square_to_uniform_triangle`` per unit area."""
    pdf = 0.0
    if p.x >= 0.0 and p.y >= 0.0 and p.x + p.y <= 1.0:
        pdf = 2.0
    return pdf


# =============================================================================
# Tent distributions
# =============================================================================


@ti.func
def interval_to_tent(sample: float) -> float:
    """Warp a uniform sample on [0, 1] to the tent density on [-1, 1].

    The tent density is ``1 - |x|``; ``0.5`` maps to the peak at 0.
    """
    result = 0.0
    if sample < 0.5:
        result = safe_sqrt(2.0 * sample) - 1.0
    else:
        result = 1.0 - safe_sqrt(2.0 - 2.0 * sample)
    return result


@ti.func
def tent_to_interval(x: float) -> float:
    """Inverse of ``interval_to_tent``."""
    result = 0.0
    if x < 0.0:
        result = 0.5 * (1.0 + x) * (1.0 + x)
    else:
        result = 1.0 - 0.5 * (1.0 - x) * (1.0 - x)
    return result


@ti.func
def interval_to_tent_pdf(x: float) -> float:
    """Density of ``interval_to_tent`` per unit length."""
    return ti.max(1.0 - ti.abs(x), 0.0)


@ti.func
def square_to_tent(sample: vec2) -> vec2:
    """Warp a uniform square sample to the separable 2D tent on [-1, 1]^2."""
    return vec2(interval_to_tent(sample.x), interval_to_tent(sample.y))


@ti.func
def tent_to_square(p: vec2) -> vec2:
    """Inverse of ``square_to_tent``."""
    return vec2(tent_to_interval(p.x), tent_to_interval(p.y))


@ti.func
def square_to_tent_pdf(p: vec2) -> float:
    """Density of ``square_to_tent`` per unit area."""
    return interval_to_tent_pdf(p.x) * interval_to_tent_pdf(p.y)


@ti.func
def interval_to_nonuniform_tent(sample: float, a: float, b: float, c: float) -> float:
    """Warp a uniform sample to a tent with nodes ``a <= b <= c``.

    The density rises linearly from zero at ``a`` to its peak at ``b`` and
    falls back to zero at ``c``. This is the exact inverse CDF, so the
    mapping is monotonic.
    """
    width = c - a
    result = 0.0
    if sample * width < b - a:
        result = a + safe_sqrt(sample * width * (b - a))
    else:
        result = c - safe_sqrt((1.0 - sample) * width * (c - b))
    return result


@ti.func
def nonuniform_tent_to_interval(x: float, a: float, b: float, c: float) -> float:
    """Inverse of ``interval_to_nonuniform_tent``."""
    width = c - a
    result = 0.0
    if x < b:
        result = safe_div((x - a) * (x - a), width * (b - a))
    else:
        result = 1.0 - safe_div((c - x) * (c - x), width * (c - b))
    return result


@ti.func
def interval_to_nonuniform_tent_pdf(x: float, a: float, b: float, c: float) -> float:
    """Density of ``interval_to_nonuniform_tent`` per unit length."""
    pdf = 0.0
    if x >= a and x <= c:
        if x < b:
            pdf = safe_div(2.0 * (x - a), (c - a) * (b - a))
        else:
            pdf = safe_div(2.0 * (c - x), (c - a) * (c - b))
    return pdf


# =============================================================================
# Standard normal
# =============================================================================


@ti.func
def square_to_std_normal(sample: vec2) -> vec2:
    """Sample the 2D standard normal distribution (Box-Muller transform)."""
    r = ti.sqrt(-2.0 * ti.log(1.0 - sample.x))
    phi = 2.0 * tm.pi * sample.y
    return vec2(ti.cos(phi) * r, ti.sin(phi) * r)


@ti.func
def std_normal_to_square(p: vec2) -> vec2:
    """Inverse of ``square_to_std_normal``."""
    r2 = p.x * p.x + p.y * p.y
    return vec2(1.0 - ti.exp(-0.5 * r2), angle_to_unit(ti.atan2(p.y, p.x)))


@ti.func
def square_to_std_normal_pdf(p: vec2) -> float:
    """Density of ``square_to_std_normal`` per unit area."""
    return INV_TWO_PI * ti.exp(-0.5 * (p.x * p.x + p.y * p.y))


# =============================================================================
# Linear and bilinear densities
# =============================================================================


@ti.func
def interval_to_linear(sample: float, v0: float, v1: float) -> float:
    """Sample the linear density on [0, 1] through ``v0`` (at 0) and ``v1`` (at 1).

    Uses the rationalized root of the quadratic CDF, which stays accurate
    when ``v0`` and ``v1`` are nearly equal.
    """
    result = sample
    if v0 + v1 > 0.0:
        root = safe_sqrt(lerp(sample, v0 * v0, v1 * v1))
        result = safe_div(sample * (v0 + v1), v0 + root)
    return result


@ti.func
def linear_to_interval(x: float, v0: float, v1: float) -> float:
    """Inverse of ``interval_to_linear``."""
    result = x
    if v0 + v1 > 0.0:
        result = x * (2.0 * v0 + x * (v1 - v0)) / (v0 + v1)
    return result


@ti.func
def interval_to_linear_pdf(x: float, v0: float, v1: float) -> float:
    """Density of ``interval_to_linear`` per unit length."""
    pdf = 0.0
    if x >= 0.0 and x <= 1.0:
        pdf = safe_div(2.0 * lerp(x, v0, v1), v0 + v1)
    return pdf


@ti.func
def square_to_bilinear(sample: vec2, v00: float, v10: float, v01: float, v11: float):
    """Sample the bilinear density on [0, 1]^2 given its four corner values.

    ``v00`` is the value at (0, 0), ``v10`` at (1, 0), ``v01`` at (0, 1) and
    ``v11`` at (1, 1). The marginal in y is inverted first, then the linear
    conditional in x.

    Returns:
        A tuple of (point, pdf).
    """
    r0 = v00 + v10
    r1 = v01 + v11
    y = interval_to_linear(sample.y, r0, r1)

    c0 = lerp(y, v00, v01)
    c1 = lerp(y, v10, v11)
    x = interval_to_linear(sample.x, c0, c1)

    pdf = safe_div(4.0 * lerp(x, c0, c1), r0 + r1)
    return vec2(x, y), pdf


@ti.func
def bilinear_to_square(p: vec2, v00: float, v10: float, v01: float, v11: float):
    """Inverse of ``square_to_bilinear``.

    Returns:
        A tuple of (sample, pdf).
    """
    r0 = v00 + v10
    r1 = v01 + v11
    c0 = lerp(p.y, v00, v01)
    c1 = lerp(p.y, v10, v11)

    pdf = safe_div(4.0 * lerp(p.x, c0, c1), r0 + r1)
    return vec2(linear_to_interval(p.x, c0, c1), linear_to_interval(p.y, r0, r1)), pdf


@ti.func
def square_to_bilinear_pdf(p: vec2, v00: float, v10: float, v01: float, v11: float) -> float:
    """Density of ``square_to_bilinear`` per unit area."""
    pdf = 0.0
    if p.x >= 0.0 and p.x <= 1.0 and p.y >= 0.0 and p.y <= 1.0:
        value = lerp(p.y, lerp(p.x, v00, v10), lerp(p.x, v01, v11))
        pdf = safe_div(4.0 * value, v00 + v10 + v01 + v11)
    return pdf
