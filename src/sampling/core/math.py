"""Scalar and vector helpers shared by the Taichi-scope warps.

All functions are Taichi functions and can only be called from inside
kernels or other Taichi functions.
"""

import taichi as ti
import taichi.math as tm

# Type aliases for vectors using Taichi's math module
vec2 = tm.vec2
vec3 = tm.vec3
vec4 = tm.vec4

INV_PI = 1.0 / tm.pi
INV_TWO_PI = 0.5 / tm.pi
INV_FOUR_PI = 0.25 / tm.pi


@ti.func
def safe_sqrt(x: float) -> float:
    """Square root that maps slightly negative round-off to zero."""
    return ti.sqrt(ti.max(x, 0.0))


@ti.func
def mulsign(value: float, sign_source: float) -> float:
    """Return ``value`` negated if ``sign_source`` is negative."""
    return ti.select(sign_source < 0.0, -value, value)


@ti.func
def copysign(value: float, sign_source: float) -> float:
    """Return the magnitude of ``value`` with the sign of ``sign_source``."""
    return ti.select(sign_source < 0.0, -ti.abs(value), ti.abs(value))


@ti.func
def lerp(t: float, a: float, b: float) -> float:
    """Linear interpolation ``(1 - t) * a + t * b``."""
    return (1.0 - t) * a + t * b


@ti.func
def squared_norm2(v: vec2) -> float:
    """Squared length of a 2D vector."""
    return tm.dot(v, v)


@ti.func
def squared_norm3(v: vec3) -> float:
    """Squared length of a 3D vector."""
    return tm.dot(v, v)


@ti.func
def safe_div(a: float, b: float) -> float:
    """Division that returns zero when the denominator is zero."""
    result = 0.0
    if b != 0.0:
        result = a / b
    return result


@ti.func
def clamp01(v: vec2) -> vec2:
    """Clamp both components of a sample into [0, 1]."""
    return tm.clamp(v, 0.0, 1.0)


@ti.func
def angle_to_unit(phi: float) -> float:
    """Map an angle from ``atan2`` to the unit interval.

    ``atan2`` returns values in (-pi, pi]; negative angles wrap around so
    that the result is the fraction of a full turn in [0, 1).
    """
    t = phi * INV_TWO_PI
    if t < 0.0:
        t += 1.0
    return t


@ti.func
def on_unit_sphere(v: vec3, epsilon: float) -> ti.i32:
    """Check if a vector has unit length up to ``epsilon``.

    Returns:
        1 if ``abs(|v|^2 - 1) < epsilon``, 0 otherwise.
    """
    return ti.abs(squared_norm3(v) - 1.0) < epsilon
