"""Python-scope entry points for the analytic warps.

Each function accepts a single point (a float for 1D warps) or an (N, d)
NumPy batch and returns results in the same layout. The generic
``sample_warp``/``invert_warp``/``warp_pdf`` functions dispatch through the
registry; the named wrappers mirror the Taichi functions of the same name
in ``planar`` and ``spherical`` for use from plain Python.

Example:
    >>> import numpy as np
    >>> from src.sampling.warp.api import square_to_cosine_hemisphere
    >>> square_to_cosine_hemisphere(np.random.rand(1024, 2)).shape
    (1024, 3)
"""

from __future__ import annotations

from typing import Any

import numpy.typing as npt

from src.sampling.core.batch import run_map
from src.sampling.warp.adapters import WarpKind, get_warp_info


def sample_warp(kind: WarpKind | int, sample: npt.ArrayLike, *params: float) -> Any:
    """Apply the forward mapping of a warp.

    Args:
        kind: Warp to apply.
        sample: Uniform sample(s) with ``sample_dim`` components.
        *params: Positional shape parameters of the warp.

    Raises:
        ParameterError: If the shape parameters are invalid.
    """
    info = get_warp_info(kind)
    info.validate(params)
    return run_map(info.forward, sample, info.sample_dim, info.value_dim, params, "sample")


def invert_warp(kind: WarpKind | int, value: npt.ArrayLike, *params: float) -> Any:
    """Map points of a warp's domain back to uniform samples."""
    info = get_warp_info(kind)
    info.validate(params)
    return run_map(info.inverse, value, info.value_dim, info.sample_dim, params, "value")


def warp_pdf(kind: WarpKind | int, value: npt.ArrayLike, *params: float) -> Any:
    """Evaluate the density of a warp at points of its domain."""
    info = get_warp_info(kind)
    info.validate(params)
    return run_map(info.pdf, value, info.value_dim, 1, params, "value")


# Planar and 1D warps


def square_to_uniform_disk(sample: npt.ArrayLike) -> Any:
    """Uniformly sample the unit disk with the polar mapping."""
    return sample_warp(WarpKind.UNIFORM_DISK, sample)


def uniform_disk_to_square(p: npt.ArrayLike) -> Any:
    return invert_warp(WarpKind.UNIFORM_DISK, p)


def square_to_uniform_disk_pdf(p: npt.ArrayLike) -> Any:
    return warp_pdf(WarpKind.UNIFORM_DISK, p)


def square_to_uniform_disk_concentric(sample: npt.ArrayLike) -> Any:
    """Uniformly sample the unit disk with the concentric mapping.

    Preferred over ``square_to_uniform_disk`` for stratified input, since
    it keeps neighboring samples close together.
    """
    return sample_warp(WarpKind.UNIFORM_DISK_CONCENTRIC, sample)


def uniform_disk_to_square_concentric(p: npt.ArrayLike) -> Any:
    return invert_warp(WarpKind.UNIFORM_DISK_CONCENTRIC, p)


def square_to_uniform_disk_concentric_pdf(p: npt.ArrayLike) -> Any:
    return warp_pdf(WarpKind.UNIFORM_DISK_CONCENTRIC, p)


def square_to_uniform_triangle(sample: npt.ArrayLike) -> Any:
    """Uniformly sample the triangle (0, 0), (1, 0), (0, 1)."""
    return sample_warp(WarpKind.UNIFORM_TRIANGLE, sample)


def uniform_triangle_to_square(p: npt.ArrayLike) -> Any:
    return invert_warp(WarpKind.UNIFORM_TRIANGLE, p)


def square_to_uniform_triangle_pdf(p: npt.ArrayLike) -> Any:
    return warp_pdf(WarpKind.UNIFORM_TRIANGLE, p)


def interval_to_tent(sample: npt.ArrayLike) -> Any:
    """Sample the tent function on [-1, 1]."""
    return sample_warp(WarpKind.TENT, sample)


def tent_to_interval(x: npt.ArrayLike) -> Any:
    return invert_warp(WarpKind.TENT, x)


def interval_to_tent_pdf(x: npt.ArrayLike) -> Any:
    return warp_pdf(WarpKind.TENT, x)


def square_to_tent(sample: npt.ArrayLike) -> Any:
    """Sample the separable 2D tent on [-1, 1]^2."""
    return sample_warp(WarpKind.SQUARE_TENT, sample)


def tent_to_square(p: npt.ArrayLike) -> Any:
    return invert_warp(WarpKind.SQUARE_TENT, p)


def square_to_tent_pdf(p: npt.ArrayLike) -> Any:
    return warp_pdf(WarpKind.SQUARE_TENT, p)


def interval_to_nonuniform_tent(sample: npt.ArrayLike, a: float, b: float, c: float) -> Any:
    """Sample a tent with nodes ``a <= b <= c``.

    Args:
        sample: Uniform sample(s) in [0, 1].
        a: Left end of the support.
        b: Location of the peak.
        c: Right end of the support.
    """
    return sample_warp(WarpKind.NONUNIFORM_TENT, sample, a, b, c)


def nonuniform_tent_to_interval(x: npt.ArrayLike, a: float, b: float, c: float) -> Any:
    return invert_warp(WarpKind.NONUNIFORM_TENT, x, a, b, c)


def interval_to_nonuniform_tent_pdf(x: npt.ArrayLike, a: float, b: float, c: float) -> Any:
    return warp_pdf(WarpKind.NONUNIFORM_TENT, x, a, b, c)


def square_to_std_normal(sample: npt.ArrayLike) -> Any:
    """Sample the 2D standard normal distribution (Box-Muller)."""
    return sample_warp(WarpKind.STD_NORMAL, sample)


def std_normal_to_square(p: npt.ArrayLike) -> Any:
    return invert_warp(WarpKind.STD_NORMAL, p)


def square_to_std_normal_pdf(p: npt.ArrayLike) -> Any:
    return warp_pdf(WarpKind.STD_NORMAL, p)


def interval_to_linear(sample: npt.ArrayLike, v0: float, v1: float) -> Any:
    """Sample the linear density through ``v0`` and ``v1`` on [0, 1]."""
    return sample_warp(WarpKind.LINEAR, sample, v0, v1)


def linear_to_interval(x: npt.ArrayLike, v0: float, v1: float) -> Any:
    return invert_warp(WarpKind.LINEAR, x, v0, v1)


def interval_to_linear_pdf(x: npt.ArrayLike, v0: float, v1: float) -> Any:
    return warp_pdf(WarpKind.LINEAR, x, v0, v1)


def square_to_bilinear(
    sample: npt.ArrayLike, v00: float, v10: float, v01: float, v11: float
) -> tuple[Any, Any]:
    """Sample the bilinear density given its corner values.

    Args:
        sample: Uniform sample(s) in [0, 1]^2.
        v00: Density at (0, 0).
        v10: Density at (1, 0).
        v01: Density at (0, 1).
        v11: Density at (1, 1).

    Returns:
        Tuple of (point, pdf), matching the Taichi function.
    """
    p = sample_warp(WarpKind.BILINEAR, sample, v00, v10, v01, v11)
    return p, warp_pdf(WarpKind.BILINEAR, p, v00, v10, v01, v11)


def bilinear_to_square(
    p: npt.ArrayLike, v00: float, v10: float, v01: float, v11: float
) -> tuple[Any, Any]:
    """Inverse of ``square_to_bilinear``. Returns (sample, pdf at ``p``)."""
    u = invert_warp(WarpKind.BILINEAR, p, v00, v10, v01, v11)
    return u, warp_pdf(WarpKind.BILINEAR, p, v00, v10, v01, v11)


def square_to_bilinear_pdf(p: npt.ArrayLike, v00: float, v10: float, v01: float, v11: float) -> Any:
    return warp_pdf(WarpKind.BILINEAR, p, v00, v10, v01, v11)


# Spherical warps


def square_to_uniform_sphere(sample: npt.ArrayLike) -> Any:
    return sample_warp(WarpKind.UNIFORM_SPHERE, sample)


def uniform_sphere_to_square(v: npt.ArrayLike) -> Any:
    return invert_warp(WarpKind.UNIFORM_SPHERE, v)


def square_to_uniform_sphere_pdf(v: npt.ArrayLike) -> Any:
    """Density of uniform sphere sampling, ``1 / (4 pi)`` on the sphere."""
    return warp_pdf(WarpKind.UNIFORM_SPHERE, v)


def square_to_uniform_hemisphere(sample: npt.ArrayLike) -> Any:
    """Uniformly sample the hemisphere around +z."""
    return sample_warp(WarpKind.UNIFORM_HEMISPHERE, sample)


def uniform_hemisphere_to_square(v: npt.ArrayLike) -> Any:
    return invert_warp(WarpKind.UNIFORM_HEMISPHERE, v)


def square_to_uniform_hemisphere_pdf(v: npt.ArrayLike) -> Any:
    return warp_pdf(WarpKind.UNIFORM_HEMISPHERE, v)


def square_to_cosine_hemisphere(sample: npt.ArrayLike) -> Any:
    """Sample the hemisphere around +z proportionally to ``cos(theta)``."""
    return sample_warp(WarpKind.COSINE_HEMISPHERE, sample)


def cosine_hemisphere_to_square(v: npt.ArrayLike) -> Any:
    return invert_warp(WarpKind.COSINE_HEMISPHERE, v)


def square_to_cosine_hemisphere_pdf(v: npt.ArrayLike) -> Any:
    return warp_pdf(WarpKind.COSINE_HEMISPHERE, v)


def square_to_uniform_cone(sample: npt.ArrayLike, cos_cutoff: float) -> Any:
    """Sample a cone around +z.

    Raises:
        ParameterError: If ``cos_cutoff`` is outside [-1, 1].
    """
    return sample_warp(WarpKind.UNIFORM_CONE, sample, cos_cutoff)


def uniform_cone_to_square(v: npt.ArrayLike, cos_cutoff: float) -> Any:
    return invert_warp(WarpKind.UNIFORM_CONE, v, cos_cutoff)


def square_to_uniform_cone_pdf(v: npt.ArrayLike, cos_cutoff: float) -> Any:
    return warp_pdf(WarpKind.UNIFORM_CONE, v, cos_cutoff)


def square_to_beckmann(sample: npt.ArrayLike, alpha: float) -> Any:
    """Sample Beckmann microfacet normals.

    Raises:
        ParameterError: If ``alpha`` is not positive.
    """
    return sample_warp(WarpKind.BECKMANN, sample, alpha)


def beckmann_to_square(v: npt.ArrayLike, alpha: float) -> Any:
    return invert_warp(WarpKind.BECKMANN, v, alpha)


def square_to_beckmann_pdf(v: npt.ArrayLike, alpha: float) -> Any:
    """Density of ``square_to_beckmann`` per unit solid angle."""
    return warp_pdf(WarpKind.BECKMANN, v, alpha)


def square_to_von_mises_fisher(sample: npt.ArrayLike, kappa: float) -> Any:
    """Sample the von Mises-Fisher distribution around +z.

    ``kappa = 0`` degenerates to uniform sphere sampling.
    """
    return sample_warp(WarpKind.VON_MISES_FISHER, sample, kappa)


def von_mises_fisher_to_square(v: npt.ArrayLike, kappa: float) -> Any:
    return invert_warp(WarpKind.VON_MISES_FISHER, v, kappa)


def square_to_von_mises_fisher_pdf(v: npt.ArrayLike, kappa: float) -> Any:
    return warp_pdf(WarpKind.VON_MISES_FISHER, v, kappa)
