"""Warps from the unit square onto the sphere and its subsets.

Densities are measured per unit solid angle and vanish for vectors that do
not lie on the unit sphere (up to ``DOMAIN_EPSILON``) or that fall outside
the warp's subset of it. Directions are expressed in a local frame whose
z-axis is the hemisphere/cone/lobe axis.

Most warps are built on the concentric disk mapping, which keeps
neighbouring samples neighbours on the sphere and makes the inverse
mappings cheap.
"""

import taichi as ti
import taichi.math as tm

from src.sampling.core.config import DOMAIN_EPSILON
from src.sampling.core.math import (
    INV_FOUR_PI,
    INV_PI,
    INV_TWO_PI,
    angle_to_unit,
    on_unit_sphere,
    safe_div,
    safe_sqrt,
    squared_norm2,
    vec2,
    vec3,
)
from src.sampling.warp.planar import (
    square_to_uniform_disk_concentric,
    uniform_disk_to_square_concentric,
)


@ti.func
def square_to_uniform_sphere(sample: vec2) -> vec3:
    """Uniformly sample a direction on the unit sphere."""
    z = 1.0 - 2.0 * sample.y
    r = safe_sqrt(1.0 - z * z)
    phi = 2.0 * tm.pi * sample.x
    return vec3(r * ti.cos(phi), r * ti.sin(phi), z)


@ti.func
def uniform_sphere_to_square(v: vec3) -> vec2:
    """Inverse of ``square_to_uniform_sphere``."""
    phi = ti.atan2(v.y, v.x)
    return vec2(angle_to_unit(phi), 0.5 * (1.0 - v.z))


@ti.func
def square_to_uniform_sphere_pdf(v: vec3) -> float:
    """Density of ``square_to_uniform_sphere`` per unit solid angle."""
    pdf = 0.0
    if on_unit_sphere(v, DOMAIN_EPSILON):
        pdf = INV_FOUR_PI
    return pdf


@ti.func
def square_to_uniform_hemisphere(sample: vec2) -> vec3:
    """Uniformly sample a direction on the upper (z >= 0) hemisphere."""
    p = square_to_uniform_disk_concentric(sample)
    z = 1.0 - squared_norm2(p)
    p = p * ti.sqrt(z + 1.0)
    return vec3(p.x, p.y, z)


@ti.func
def uniform_hemisphere_to_square(v: vec3) -> vec2:
    """Inverse of ``square_to_uniform_hemisphere``."""
    p = vec2(v.x, v.y) / ti.sqrt(ti.max(v.z + 1.0, 1e-30))
    return uniform_disk_to_square_concentric(p)


@ti.func
def square_to_uniform_hemisphere_pdf(v: vec3) -> float:
    """Density of ``square_to_uniform_hemisphere`` per unit solid angle."""
    pdf = 0.0
    if on_unit_sphere(v, DOMAIN_EPSILON) and v.z >= 0.0:
        pdf = INV_TWO_PI
    return pdf


@ti.func
def square_to_cosine_hemisphere(sample: vec2) -> vec3:
    """Sample a cosine-weighted direction on the upper hemisphere.

    Projects a concentric disk sample up onto the hemisphere (Malley's
    method), which yields density ``cos(theta) / pi``.
    """
    p = square_to_uniform_disk_concentric(sample)
    z = safe_sqrt(1.0 - squared_norm2(p))
    return vec3(p.x, p.y, z)


@ti.func
def cosine_hemisphere_to_square(v: vec3) -> vec2:
    """Inverse of ``square_to_cosine_hemisphere``."""
    return uniform_disk_to_square_concentric(vec2(v.x, v.y))


@ti.func
def square_to_cosine_hemisphere_pdf(v: vec3) -> float:
    """Density of ``square_to_cosine_hemisphere`` per unit solid angle."""
    pdf = 0.0
    if on_unit_sphere(v, DOMAIN_EPSILON) and v.z >= 0.0:
        pdf = INV_PI * v.z
    return pdf


@ti.func
def square_to_uniform_cone(sample: vec2, cos_cutoff: float) -> vec3:
    """Uniformly sample a direction inside a cone around the z-axis.

    Args:
        sample: Uniform sample on [0, 1]^2.
        cos_cutoff: Cosine of the cone's half-angle, in [-1, 1].

    Returns:
        A unit vector with ``z >= cos_cutoff``.
    """
    p = square_to_uniform_disk_concentric(sample)
    one_minus_cos_cutoff = 1.0 - cos_cutoff
    cos_theta = 1.0 - one_minus_cos_cutoff * squared_norm2(p)
    p = p * safe_sqrt((1.0 + cos_theta) * one_minus_cos_cutoff)
    return vec3(p.x, p.y, cos_theta)


@ti.func
def uniform_cone_to_square(v: vec3, cos_cutoff: float) -> vec2:
    """Inverse of ``square_to_uniform_cone``."""
    p = vec2(v.x, v.y)
    scale = safe_div(1.0 - v.z, squared_norm2(p) * (1.0 - cos_cutoff))
    return uniform_disk_to_square_concentric(p * safe_sqrt(scale))


@ti.func
def square_to_uniform_cone_pdf(v: vec3, cos_cutoff: float) -> float:
    """Density of ``square_to_uniform_cone`` per unit solid angle.

    Degenerates to infinity for ``cos_cutoff == 1``, where the cone
    collapses to a single direction.
    """
    pdf = 0.0
    if on_unit_sphere(v, DOMAIN_EPSILON) and v.z >= cos_cutoff:
        pdf = INV_TWO_PI / (1.0 - cos_cutoff)
    return pdf


@ti.func
def square_to_beckmann(sample: vec2, alpha: float) -> vec3:
    """Sample a microfacet normal from the Beckmann distribution.

    Sampling is proportional to ``D(m) * cos(theta_m)``, the projected
    microfacet area.

    Args:
        sample: Uniform sample on [0, 1]^2.
        alpha: Roughness (RMS slope) of the surface, > 0.
    """
    p = square_to_uniform_disk_concentric(sample)
    r2 = squared_norm2(p)

    tan_theta_m_sqr = -alpha * alpha * ti.log(1.0 - r2)
    cos_theta_m = 1.0 / ti.sqrt(1.0 + tan_theta_m_sqr)
    p = p * safe_sqrt(safe_div(1.0 - cos_theta_m * cos_theta_m, r2))
    return vec3(p.x, p.y, cos_theta_m)


@ti.func
def beckmann_to_square(v: vec3, alpha: float) -> vec2:
    """Inverse of ``square_to_beckmann``."""
    p = vec2(v.x, v.y)
    tan_theta_m_sqr = 1.0 / (v.z * v.z) - 1.0
    r2 = 1.0 - ti.exp(-tan_theta_m_sqr / (alpha * alpha))
    p = p * safe_sqrt(safe_div(r2, 1.0 - v.z * v.z))
    return uniform_disk_to_square_concentric(p)


@ti.func
def square_to_beckmann_pdf(m: vec3, alpha: float) -> float:
    """Density of ``square_to_beckmann`` per unit solid angle.

    Equals the Beckmann normal distribution function times ``cos(theta_m)``.
    """
    pdf = 0.0
    cos_theta = m.z
    if on_unit_sphere(m, DOMAIN_EPSILON) and cos_theta > 1e-9:
        cos2 = cos_theta * cos_theta
        tan2 = (1.0 - cos2) / cos2
        pdf = ti.exp(-tan2 / (alpha * alpha)) / (tm.pi * alpha * alpha * cos2 * cos_theta)
    return pdf


@ti.func
def square_to_von_mises_fisher(sample: vec2, kappa: float) -> vec3:
    """Sample the von Mises-Fisher distribution around the z-axis.

    Args:
        sample: Uniform sample on [0, 1]^2.
        kappa: Concentration parameter, >= 0. Zero gives the uniform sphere.
    """
    p = square_to_uniform_disk_concentric(sample)
    r2 = squared_norm2(p)
    sy = ti.max(1.0 - r2, 1e-6)

    cos_theta = 2.0 * sy - 1.0
    if kappa > 0.0:
        cos_theta = 1.0 + ti.log(sy + (1.0 - sy) * ti.exp(-2.0 * kappa)) / kappa

    p = p * safe_sqrt(safe_div(1.0 - cos_theta * cos_theta, r2))
    return vec3(p.x, p.y, cos_theta)


@ti.func
def von_mises_fisher_to_square(v: vec3, kappa: float) -> vec2:
    """Inverse of ``square_to_von_mises_fisher``."""
    p = vec2(v.x, v.y)
    sy = 0.5 * (v.z + 1.0)
    if kappa > 0.0:
        expm2k = ti.exp(-2.0 * kappa)
        t = ti.exp((v.z - 1.0) * kappa)
        sy = (expm2k - t) / (expm2k - 1.0)
    r2 = 1.0 - sy
    p = p * safe_sqrt(safe_div(r2, squared_norm2(p)))
    return uniform_disk_to_square_concentric(p)


@ti.func
def square_to_von_mises_fisher_pdf(v: vec3, kappa: float) -> float:
    """Density of ``square_to_von_mises_fisher`` per unit solid angle."""
    pdf = 0.0
    if on_unit_sphere(v, DOMAIN_EPSILON):
        pdf = INV_FOUR_PI
        if kappa > 0.0:
            pdf = ti.exp(kappa * (v.z - 1.0)) * kappa / (2.0 * tm.pi * (1.0 - ti.exp(-2.0 * kappa)))
    return pdf
