"""Hierarchical sample warping of tabulated 2D densities.

The grid is turned into a pyramid of block sums (a MIP map of the density):
level 0 holds one value per cell, and each further level sums 2x2 blocks of
the one below, until a single root entry holds the total mass. Sampling
walks down the pyramid from the root, picking one of four children per
level and rescaling the uniform sample after each choice so that it can be
reused for the next one. The leaf choice plus the leftover sample give the
final point.

Because each step only rescales the sample, the mapping is continuous within
each leaf and exactly invertible by walking back up.

Example:
    >>> import numpy as np
    >>> from src.sampling.distr import Grid, Hierarchical2D
    >>> distr = Hierarchical2D(Grid(np.random.rand(64, 128)))
    >>> points, pdf = distr.sample(np.random.rand(1000, 2))
"""

import numpy as np
import taichi as ti

from src.sampling.core.config import float_dtype
from src.sampling.core.math import lerp, safe_div, vec2
from src.sampling.distr.base import Distribution2D
from src.sampling.distr.grid import Grid, Reconstruction
from src.sampling.warp.planar import bilinear_to_square, square_to_bilinear


def level_shapes(width: int, height: int) -> list[tuple[int, int]]:
    """Shapes (width, height) of all pyramid levels, finest first."""
    shapes = [(width, height)]
    while shapes[-1] != (1, 1):
        w, h = shapes[-1]
        shapes.append(((w + 1) // 2, (h + 1) // 2))
    return shapes


def build_pyramid(cells: np.ndarray) -> list[np.ndarray]:
    """Build the block-sum pyramid of a stack of cell tables.

    Args:
        cells: Array of shape (slices, h, w).

    Returns:
        List of arrays of shape (slices, h_l, w_l), finest first. Blocks
        that reach past an odd edge sum only their existing children.
    """
    levels = [cells]
    while levels[-1].shape[1:] != (1, 1):
        level = levels[-1]
        s, h, w = level.shape
        padded = np.zeros((s, h + h % 2, w + w % 2), dtype=level.dtype)
        padded[:, :h, :w] = level
        levels.append(padded[:, 0::2, 0::2] + padded[:, 0::2, 1::2] + padded[:, 1::2, 0::2] + padded[:, 1::2, 1::2])
    return levels


@ti.data_oriented
class Hierarchical2D(Distribution2D):
    """Importance sampling of a 2D grid by hierarchical warping.

    In constant mode the sampled density equals the normalized cell value;
    in bilinear mode the grid values are vertices, each pyramid leaf holds
    the sum of its four corners and the point inside the leaf is drawn with
    the bilinear warp.

    Args:
        grid: Density table.
        reconstruction: "constant" or "bilinear".

    Raises:
        ConstructionError: If the grid is degenerate.
    """

    def __init__(self, grid: Grid, reconstruction: Reconstruction = "constant"):
        super().__init__(grid, reconstruction)

    def _allocate(self) -> None:
        self._shapes = tuple(level_shapes(self._cells_x, self._cells_y))
        offsets = [0]
        for w, h in self._shapes[:-1]:
            offsets.append(offsets[-1] + w * h)
        self._offsets = tuple(offsets)
        self._level_count = len(self._shapes)
        total = offsets[-1] + 1

        slices = self.grid.slice_count
        self._levels = ti.field(dtype=float, shape=(slices, total))
        self._vertex_width = self.grid.width
        self._vertices = None
        if self._bilinear:
            self._vertices = ti.field(dtype=float, shape=(slices, self.grid.width * self.grid.height))

    def _load(self, slices: np.ndarray) -> None:
        if self._bilinear:
            cells = slices[:, :-1, :-1] + slices[:, :-1, 1:] + slices[:, 1:, :-1] + slices[:, 1:, 1:]
            self._vertices.from_numpy(slices.reshape(slices.shape[0], -1).astype(float_dtype()))
        else:
            cells = slices
        levels = build_pyramid(cells)
        flat = np.concatenate([level.reshape(level.shape[0], -1) for level in levels], axis=1)
        self._levels.from_numpy(flat.astype(float_dtype()))

    @ti.func
    def _fetch(self, offset, w, h, x, y, idx, wt):
        value = 0.0
        if x < w and y < h:
            value = self._params.blend(self._levels, offset + y * w + x, idx, wt)
        return value

    @ti.func
    def _vertex(self, x, y, idx, wt):
        return self._params.blend(self._vertices, y * self._vertex_width + x, idx, wt)

    @ti.func
    def _leaf_density(self, ox, oy, f, idx, wt):
        """Normalized density at in-cell offset ``f`` of leaf (ox, oy)."""
        value = 0.0
        if ti.static(self._bilinear):
            v00 = self._vertex(ox, oy, idx, wt)
            v10 = self._vertex(ox + 1, oy, idx, wt)
            v01 = self._vertex(ox, oy + 1, idx, wt)
            v11 = self._vertex(ox + 1, oy + 1, idx, wt)
            value = lerp(f.y, lerp(f.x, v00, v10), lerp(f.x, v01, v11))
        else:
            value = self._fetch(0, self._cells_x, self._cells_y, ox, oy, idx, wt)
        return value

    @ti.func
    def _sample_unit(self, u, idx, wt):
        sy = u[0]
        sx = u[1]
        ox = 0
        oy = 0
        for l in ti.static(range(self._level_count - 2, -1, -1)):
            offset = ti.static(self._offsets[l])
            w = ti.static(self._shapes[l][0])
            h = ti.static(self._shapes[l][1])
            ox *= 2
            oy *= 2

            v00 = self._fetch(offset, w, h, ox, oy, idx, wt)
            v10 = self._fetch(offset, w, h, ox + 1, oy, idx, wt)
            v01 = self._fetch(offset, w, h, ox, oy + 1, idx, wt)
            v11 = self._fetch(offset, w, h, ox + 1, oy + 1, idx, wt)

            # Row choice
            r0 = v00 + v10
            r1 = v01 + v11
            scaled = sy * (r0 + r1)
            c0 = v00
            c1 = v10
            if scaled > r0 or r0 <= 0.0:
                sy = (scaled - r0) / r1
                oy += 1
                c0 = v01
                c1 = v11
            else:
                sy = scaled / r0

            # Column choice within the row
            scaled = sx * (c0 + c1)
            if scaled > c0 or c0 <= 0.0:
                sx = (scaled - c0) / c1
                ox += 1
            else:
                sx = scaled / c0

            sx = ti.math.clamp(sx, 0.0, 1.0)
            sy = ti.math.clamp(sy, 0.0, 1.0)

        f = vec2(sx, sy)
        if ti.static(self._bilinear):
            v00 = self._vertex(ox, oy, idx, wt)
            v10 = self._vertex(ox + 1, oy, idx, wt)
            v01 = self._vertex(ox, oy + 1, idx, wt)
            v11 = self._vertex(ox + 1, oy + 1, idx, wt)
            f, _ = square_to_bilinear(vec2(sx, sy), v00, v10, v01, v11)

        p = vec2((ox + f.x) / self._cells_x, (oy + f.y) / self._cells_y)
        return p, self._leaf_density(ox, oy, f, idx, wt)

    @ti.func
    def _leaf_cell(self, p):
        ox = ti.min(ti.cast(p.x * self._cells_x, ti.i32), self._cells_x - 1)
        oy = ti.min(ti.cast(p.y * self._cells_y, ti.i32), self._cells_y - 1)
        f = vec2(p.x * self._cells_x - ox, p.y * self._cells_y - oy)
        return ox, oy, ti.math.clamp(f, 0.0, 1.0)

    @ti.func
    def _invert_unit(self, p, idx, wt):
        ox, oy, f = self._leaf_cell(p)
        pdf = self._leaf_density(ox, oy, f, idx, wt)

        s = f
        if ti.static(self._bilinear):
            v00 = self._vertex(ox, oy, idx, wt)
            v10 = self._vertex(ox + 1, oy, idx, wt)
            v01 = self._vertex(ox, oy + 1, idx, wt)
            v11 = self._vertex(ox + 1, oy + 1, idx, wt)
            s, _ = bilinear_to_square(f, v00, v10, v01, v11)
        sx = s.x
        sy = s.y

        for l in ti.static(range(self._level_count - 1)):
            offset = ti.static(self._offsets[l])
            w = ti.static(self._shapes[l][0])
            h = ti.static(self._shapes[l][1])
            bx = ox - (ox & 1)
            by = oy - (oy & 1)

            v00 = self._fetch(offset, w, h, bx, by, idx, wt)
            v10 = self._fetch(offset, w, h, bx + 1, by, idx, wt)
            v01 = self._fetch(offset, w, h, bx, by + 1, idx, wt)
            v11 = self._fetch(offset, w, h, bx + 1, by + 1, idx, wt)
            r0 = v00 + v10
            r1 = v01 + v11

            c0 = v00
            c1 = v10
            if (oy & 1) == 1:
                c0 = v01
                c1 = v11
            if (ox & 1) == 1:
                sx = safe_div(c0 + sx * c1, c0 + c1)
            else:
                sx = safe_div(sx * c0, c0 + c1)
            if (oy & 1) == 1:
                sy = safe_div(r0 + sy * r1, r0 + r1)
            else:
                sy = safe_div(sy * r0, r0 + r1)

            ox = ox >> 1
            oy = oy >> 1

        return vec2(sy, sx), pdf

    @ti.func
    def _eval_unit(self, p, idx, wt):
        ox, oy, f = self._leaf_cell(p)
        return self._leaf_density(ox, oy, f, idx, wt)
