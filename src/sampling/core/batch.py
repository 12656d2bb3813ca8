"""Batched execution of Taichi-scope functions over NumPy arrays.

Every Python-scope operation in this package funnels through the helpers in
this module. Input arrays are laid out as structure-of-arrays batches of
shape (N, dim); each kernel launch runs one independent loop iteration per
row, so a single sample is simply a batch of one and batch size never
influences an individual result.

Example:
    >>> u, single = as_batch([0.5, 0.5], 2)
    >>> u.shape
    (1, 2)
"""

from collections.abc import Callable
from functools import lru_cache
from typing import Any

import numpy as np
import numpy.typing as npt
import taichi as ti

from src.sampling.core.config import float_dtype

# Number of scalar shape parameters every warp adapter receives
MAX_WARP_PARAMS = 4


def as_batch(values: npt.ArrayLike, dim: int, name: str = "values") -> tuple[np.ndarray, bool]:
    """Convert user input into a contiguous (N, dim) array.

    Accepted layouts are a single point (shape ``(dim,)``, or a scalar when
    ``dim == 1``) and a batch (shape ``(N, dim)``, or ``(N,)`` when
    ``dim == 1``).

    Args:
        values: Input samples or points.
        dim: Number of components per point.
        name: Argument name used in error messages.

    Returns:
        Tuple of (batch array, single) where ``single`` records whether the
        input was a single point so results can be unwrapped again.

    Raises:
        ValueError: If the array shape does not match ``dim``.
    """
    array = np.asarray(values, dtype=float_dtype())
    single = False
    if dim == 1:
        if array.ndim == 0:
            array = array.reshape(1, 1)
            single = True
        elif array.ndim == 1:
            array = array.reshape(-1, 1)
        elif not (array.ndim == 2 and array.shape[1] == 1):
            raise ValueError(f"{name} must be a scalar or have shape (N,), got {array.shape}")
    else:
        if array.ndim == 1 and array.shape[0] == dim:
            array = array.reshape(1, dim)
            single = True
        elif not (array.ndim == 2 and array.shape[1] == dim):
            raise ValueError(f"{name} must have shape ({dim},) or (N, {dim}), got {array.shape}")
    return np.ascontiguousarray(array), single


def unbatch(result: np.ndarray, single: bool) -> Any:
    """Undo ``as_batch`` on a kernel result.

    Results with a trailing dimension of 1 (densities, 1D warps) lose that
    dimension; single-point results lose the batch dimension, and scalar
    single results are returned as Python floats.
    """
    if result.ndim == 2 and result.shape[1] == 1:
        result = result[:, 0]
    if single:
        result = result[0]
        if np.ndim(result) == 0:
            return float(result)
    return result


def pack_params(params: tuple[float, ...]) -> np.ndarray:
    """Pad warp shape parameters to the fixed adapter parameter vector."""
    if len(params) > MAX_WARP_PARAMS:
        raise ValueError(f"At most {MAX_WARP_PARAMS} warp parameters are supported, got {len(params)}")
    packed = np.zeros(MAX_WARP_PARAMS, dtype=float_dtype())
    packed[: len(params)] = params
    return packed


@lru_cache(maxsize=None)
def map_kernel(func: Callable[..., Any], in_dim: int, out_dim: int) -> Callable[..., None]:
    """Create (once) a kernel that applies a warp adapter to every row.

    The adapter must have the signature ``func(x, params) -> y`` where ``x``
    is a vector of ``in_dim`` components, ``params`` a vec4 of shape
    parameters and ``y`` a vector of ``out_dim`` components. The adapter is
    bound when the kernel is created, so no dispatch happens per sample.

    Args:
        func: Taichi function adapter.
        in_dim: Components per input row.
        out_dim: Components per output row.

    Returns:
        A kernel ``kernel(values, params, out)`` operating on NumPy arrays of
        shapes (N, in_dim), (MAX_WARP_PARAMS,) and (N, out_dim).
    """

    @ti.kernel
    def _kernel(values: ti.types.ndarray(), params: ti.types.ndarray(), out: ti.types.ndarray()):
        for i in range(values.shape[0]):
            x = ti.Vector.zero(float, in_dim)
            for j in ti.static(range(in_dim)):
                x[j] = values[i, j]
            p = ti.math.vec4(params[0], params[1], params[2], params[3])
            y = func(x, p)
            for j in ti.static(range(out_dim)):
                out[i, j] = y[j]

    return _kernel


def run_map(
    func: Callable[..., Any],
    values: npt.ArrayLike,
    in_dim: int,
    out_dim: int,
    params: tuple[float, ...] = (),
    name: str = "values",
) -> Any:
    """Apply a warp adapter to a single point or a batch of points.

    Args:
        func: Taichi function adapter (see ``map_kernel``).
        values: Single point or (N, in_dim) batch.
        in_dim: Components per input point.
        out_dim: Components per output point.
        params: Scalar shape parameters, shared by the whole batch.
        name: Argument name used in error messages.

    Returns:
        NumPy array of shape (N, out_dim) (trailing 1 dropped), or a single
        point / float for single-point input.
    """
    batch, single = as_batch(values, in_dim, name)
    out = np.zeros((batch.shape[0], out_dim), dtype=batch.dtype)
    if batch.shape[0] > 0:
        map_kernel(func, in_dim, out_dim)(batch, pack_params(params), out)
    return unbatch(out, single)
