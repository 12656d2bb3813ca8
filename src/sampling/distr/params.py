"""Multilinear interpolation across the parameter axes of a Grid.

With ``K`` parameter axes, a parameter vector falls into one cell of the
K-dimensional lattice of slices. The slice data used for sampling is the
weighted sum of that cell's ``2^K`` corner slices, with the usual
multilinear weights. The number of axes and their sizes are compile-time
constants of the generated Taichi code; the node positions live in a field.
"""

import numpy as np
import taichi as ti
import taichi.math as tm

from src.sampling.core.config import float_dtype
from src.sampling.distr.grid import Grid


@ti.data_oriented
class ParamInterpolator:
    """Slice selection and blending for a grid's parameter axes.

    Attributes:
        count: Number of parameter axes (K).
        slots: Length of the parameter vectors passed to Taichi functions,
            ``max(K, 1)``.
        sizes: Number of nodes per axis.
        strides: Flat slice index stride of each axis (row-major).
        corner_count: Number of blended slices, ``2^K``.
    """

    def __init__(self, grid: Grid):
        self.count = grid.param_count
        self.slots = max(self.count, 1)
        self.sizes = tuple(int(n) for n in grid.param_shape)
        self.strides = tuple(int(np.prod(self.sizes[k + 1 :], dtype=np.int64)) for k in range(self.count))
        self.corner_count = 2**self.count

        max_size = max(self.sizes, default=1)
        axes = np.zeros((self.slots, max_size), dtype=np.float64)
        for k, axis in enumerate(grid.param_values):
            axes[k, : axis.size] = axis
            axes[k, axis.size :] = axis[-1]

        self._axes = ti.field(dtype=float, shape=(self.slots, max_size))
        self._axes.from_numpy(axes.astype(float_dtype()))

    @ti.func
    def weights(self, param):
        """Select the corner slices and their weights for a parameter vector.

        Parameters outside an axis' node range are clamped to it.

        Args:
            param: Vector of ``slots`` parameter values.

        Returns:
            Tuple of (slice indices, weights), both vectors of
            ``corner_count`` entries. The weights sum to one.
        """
        pos = ti.Vector.zero(ti.i32, self.slots)
        frac = ti.Vector.zero(float, self.slots)
        for k in ti.static(range(self.count)):
            n = ti.static(self.sizes[k])
            if ti.static(n > 1):
                p = tm.clamp(param[k], self._axes[k, 0], self._axes[k, n - 1])
                lo = 0
                hi = n - 2
                while lo < hi:
                    mid = (lo + hi + 1) // 2
                    if self._axes[k, mid] <= p:
                        lo = mid
                    else:
                        hi = mid - 1
                pos[k] = lo
                a0 = self._axes[k, lo]
                a1 = self._axes[k, lo + 1]
                frac[k] = tm.clamp((p - a0) / (a1 - a0), 0.0, 1.0)

        idx = ti.Vector.zero(ti.i32, self.corner_count)
        w = ti.Vector.zero(float, self.corner_count)
        for c in ti.static(range(self.corner_count)):
            flat = 0
            weight = 1.0
            for k in ti.static(range(self.count)):
                # Axes with a single node never step; their upper corner gets zero weight
                bit = ti.static((c >> k) & 1)
                step = ti.static(bit if self.sizes[k] > 1 else 0)
                flat += (pos[k] + step) * ti.static(self.strides[k])
                if ti.static(bit == 1):
                    weight *= frac[k]
                else:
                    weight *= 1.0 - frac[k]
            idx[c] = flat
            w[c] = weight
        return idx, w

    @ti.func
    def blend(self, values: ti.template(), j, idx, w):
        """Blend entry ``j`` of the selected slices of a (slices, n) field."""
        result = 0.0
        for c in ti.static(range(self.corner_count)):
            result += w[c] * values[idx[c], j]
        return result

    def prepare(self, param, n: int) -> np.ndarray:
        """Convert Python-scope parameters to an (n, slots) array.

        Args:
            param: None (only without parameter axes), a vector of K values
                shared by all samples, or an (n, K) array.
            n: Batch size.

        Raises:
            ValueError: If the parameters are missing or have the wrong shape.
        """
        out = np.zeros((n, self.slots), dtype=float_dtype())
        if self.count == 0:
            if param is not None and np.size(param) != 0:
                raise ValueError("This distribution has no parameter axes")
            return out
        if param is None:
            raise ValueError(f"This distribution needs {self.count} parameter value(s) per sample")
        array = np.asarray(param, dtype=np.float64)
        if array.ndim <= 1 and array.size == self.count:
            out[:] = array.reshape(1, self.count)
        elif array.shape == (n, self.count):
            out[:] = array
        else:
            raise ValueError(f"param must have shape ({self.count},) or ({n}, {self.count}), got {array.shape}")
        return out
