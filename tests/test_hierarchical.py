"""Tests for the Hierarchical2D distribution.

Tests cover:
- Pyramid construction
- Sample/eval consistency and invertibility in both reconstruction modes
- Zero cells are never sampled
- Parameter axis interpolation, bounds and in-place updates
- Use of the Taichi functions from a user kernel
"""

import numpy as np
import pytest
import taichi as ti


def integrate(distr, param=None, res=256):
    (x0, y0), (x1, y1) = distr.grid.bounds
    xs = x0 + (np.arange(res) + 0.5) / res * (x1 - x0)
    ys = y0 + (np.arange(res) + 0.5) / res * (y1 - y0)
    x, y = np.meshgrid(xs, ys, indexing="xy")
    pdf = distr.eval(np.stack([x.ravel(), y.ravel()], axis=1), param)
    return pdf.sum() * (x1 - x0) * (y1 - y0) / res**2


class TestPyramid:
    """Tests for the block-sum pyramid helpers."""

    def test_level_shapes(self):
        from src.sampling.distr.hierarchical import level_shapes

        assert level_shapes(1, 1) == [(1, 1)]
        assert level_shapes(5, 3) == [(5, 3), (3, 2), (2, 1), (1, 1)]

    def test_levels_sum_to_total(self, rng):
        from src.sampling.distr.hierarchical import build_pyramid

        cells = rng.random((2, 7, 3))
        levels = build_pyramid(cells)
        assert levels[-1].shape == (2, 1, 1)
        for level in levels:
            assert np.allclose(level.sum(axis=(1, 2)), cells.sum(axis=(1, 2)))


@pytest.mark.parametrize("reconstruction", ["constant", "bilinear"])
class TestSampling:
    """Tests shared by both reconstruction modes."""

    def test_pdf_matches_eval(self, reconstruction, rng):
        from src.sampling.distr import Grid, Hierarchical2D

        distr = Hierarchical2D(Grid(rng.random((7, 3)) + 0.05), reconstruction)
        points, pdf = distr.sample(rng.random((1000, 2)))
        assert np.allclose(pdf, distr.eval(points), rtol=1e-6)

    def test_invert_round_trip(self, reconstruction, rng):
        from src.sampling.distr import Grid, Hierarchical2D

        distr = Hierarchical2D(Grid(rng.random((13, 22)) + 0.05), reconstruction)
        u = rng.random((10_000, 2))
        points, pdf = distr.sample(u)
        u2, pdf2 = distr.invert(points)
        assert np.allclose(u2, u, atol=1e-4)
        assert np.allclose(pdf2, pdf, rtol=1e-6)

    def test_normalization(self, reconstruction, rng):
        from src.sampling.distr import Grid, Hierarchical2D

        distr = Hierarchical2D(Grid(rng.random((9, 12)) + 0.05), reconstruction)
        assert abs(integrate(distr) - 1.0) < 1e-2

    def test_zero_cells_never_sampled(self, reconstruction, rng):
        from src.sampling.distr import Grid, Hierarchical2D

        values = rng.random((8, 8)) + 0.1
        values[:, :3] = 0.0
        values[5:, :] = 0.0
        distr = Hierarchical2D(Grid(values), reconstruction)
        points, pdf = distr.sample(rng.random((5000, 2)))
        assert np.all(pdf > 0.0)
        assert np.all(distr.eval(points) > 0.0)

    def test_outside_bounds(self, reconstruction):
        from src.sampling.distr import Grid, Hierarchical2D

        distr = Hierarchical2D(Grid(np.ones((4, 4))), reconstruction)
        assert distr.eval([1.5, 0.5]) == 0.0
        assert distr.invert([-0.5, 0.5])[1] == 0.0


class TestConstantReconstruction:
    """Tests specific to piecewise-constant cells."""

    def test_pdf_is_normalized_cell_value(self):
        from src.sampling.distr import Grid, Hierarchical2D

        values = np.array([[1.0, 3.0], [0.0, 4.0]])
        distr = Hierarchical2D(Grid(values))
        centers = np.array([[0.25, 0.25], [0.75, 0.25], [0.25, 0.75], [0.75, 0.75]])
        assert np.allclose(distr.eval(centers), values.ravel() / values.mean())

    def test_single_cell(self):
        from src.sampling.distr import Grid, Hierarchical2D

        distr = Hierarchical2D(Grid(np.array([[2.0]])))
        points, pdf = distr.sample(np.array([[0.2, 0.7]]))
        assert np.allclose(points, [[0.7, 0.2]])
        assert np.allclose(pdf, 1.0)

    def test_first_variate_selects_row(self):
        """Test that u[0] picks the row (y) and u[1] the column (x)."""
        from src.sampling.distr import Grid, Hierarchical2D

        distr = Hierarchical2D(Grid(np.ones((2, 2))))
        point, _ = distr.sample([0.1, 0.9])
        assert point[1] < 0.5 < point[0]

    def test_bounds_scale_points_and_density(self, rng):
        from src.sampling.distr import Grid, Hierarchical2D

        values = rng.random((4, 6)) + 0.1
        unit = Hierarchical2D(Grid(values))
        scaled = Hierarchical2D(Grid(values, bounds=((-2.0, 1.0), (2.0, 3.0))))
        u = rng.random((100, 2))
        p0, pdf0 = unit.sample(u)
        p1, pdf1 = scaled.sample(u)
        assert np.allclose(p1, np.array([-2.0, 1.0]) + p0 * np.array([4.0, 2.0]))
        assert np.allclose(pdf1, pdf0 / 8.0)


class TestParameterAxes:
    """Tests for interpolation across extra parameter axes."""

    def test_single_axis_interpolation(self, rng):
        from src.sampling.distr import Grid, Hierarchical2D

        a = rng.random((4, 4)) + 0.1
        b = rng.random((4, 4)) + 0.1
        values = np.stack([a, b])
        distr = Hierarchical2D(Grid(values, param_values=([0.0, 2.0],)))

        x = rng.random((50, 2))
        expected = 0.75 * a / a.mean() + 0.25 * b / b.mean()
        cells = np.minimum((x * 4).astype(int), 3)
        assert np.allclose(distr.eval(x, [0.5]), expected[cells[:, 1], cells[:, 0]])

    def test_parameters_are_clamped(self, rng):
        from src.sampling.distr import Grid, Hierarchical2D

        values = rng.random((3, 5, 5)) + 0.1
        distr = Hierarchical2D(Grid(values, param_values=([0.0, 1.0, 2.0],)))
        x = rng.random((20, 2))
        assert np.allclose(distr.eval(x, [-4.0]), distr.eval(x, [0.0]))
        assert np.allclose(distr.eval(x, [9.0]), distr.eval(x, [2.0]))

    def test_two_axes(self, rng):
        from src.sampling.distr import Grid, Hierarchical2D

        values = rng.random((2, 3, 6, 5)) + 0.1
        distr = Hierarchical2D(Grid(values, param_values=([0.0, 1.0], [0.0, 1.0, 2.0])))
        u = rng.random((2000, 2))
        params = np.column_stack([rng.random(2000), 2.0 * rng.random(2000)])
        points, pdf = distr.sample(u, params)
        assert np.allclose(pdf, distr.eval(points, params), rtol=1e-6)
        assert np.allclose(distr.invert(points, params)[0], u, atol=1e-4)

    def test_node_parameter_selects_slice(self, rng):
        from src.sampling.distr import Grid, Hierarchical2D

        values = rng.random((2, 3, 6, 5)) + 0.1
        distr = Hierarchical2D(Grid(values, param_values=([0.0, 1.0], [0.0, 1.0, 2.0])))
        single = Hierarchical2D(Grid(values[1, 2]))
        x = rng.random((20, 2))
        assert np.allclose(distr.eval(x, [1.0, 2.0]), single.eval(x))

    def test_missing_parameter_raises(self):
        from src.sampling.distr import Grid, Hierarchical2D

        distr = Hierarchical2D(Grid(np.ones((2, 3, 3)), param_values=([0.0, 1.0],)))
        with pytest.raises(ValueError):
            distr.sample([0.5, 0.5])
        with pytest.raises(ValueError):
            distr.sample([0.5, 0.5], [0.1, 0.2])


class TestUpdate:
    """Tests for rebuilding a distribution in place."""

    def test_update_changes_density(self):
        from src.sampling.distr import Grid, Hierarchical2D

        distr = Hierarchical2D(Grid(np.ones((2, 2))))
        distr.update(np.array([[1.0, 0.0], [0.0, 0.0]]))
        points, pdf = distr.sample(np.random.default_rng(1).random((100, 2)))
        assert np.all(points < 0.5)
        assert np.allclose(pdf, 4.0)

    def test_update_validates(self):
        from src.sampling.core.errors import ConstructionError
        from src.sampling.distr import Grid, Hierarchical2D

        distr = Hierarchical2D(Grid(np.ones((2, 2))))
        with pytest.raises(ConstructionError):
            distr.update(np.ones((3, 3)))
        with pytest.raises(ConstructionError):
            distr.update(np.zeros((2, 2)))


class TestTaichiScope:
    """Tests calling the distribution's Taichi functions from a kernel."""

    def test_sample_func_in_kernel(self, rng):
        from src.sampling.distr import Grid, Hierarchical2D

        distr = Hierarchical2D(Grid(rng.random((5, 9)) + 0.1))
        result = ti.field(dtype=float, shape=(64,))

        @ti.kernel
        def test_kernel():
            for i in range(64):
                u = ti.math.vec2((i + 0.5) / 64.0, ti.random())
                param = ti.Vector([0.0])
                p, pdf = distr.sample_func(u, param)
                result[i] = pdf - distr.eval_func(p, param)

        test_kernel()
        assert np.allclose(result.to_numpy(), 0.0, atol=1e-9)
