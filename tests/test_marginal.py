"""Tests for the Marginal2D distribution."""

import numpy as np
import pytest
import taichi as ti


class TestTables:
    """Tests for the cumulative table builders."""

    def test_conditional_constant(self):
        from src.sampling.distr.marginal import conditional_cdfs

        cdf = conditional_cdfs(np.array([[[1.0, 2.0, 3.0]]]), bilinear=False)
        assert np.allclose(cdf, [[[0.0, 1.0, 3.0, 6.0]]])

    def test_conditional_bilinear(self):
        from src.sampling.distr.marginal import conditional_cdfs

        cdf = conditional_cdfs(np.array([[[1.0, 3.0, 3.0]]]), bilinear=True)
        assert np.allclose(cdf, [[[0.0, 2.0, 5.0]]])

    def test_marginal(self):
        from src.sampling.distr.marginal import marginal_cdf

        assert np.allclose(marginal_cdf(np.array([[2.0, 4.0]]), bilinear=False), [[0.0, 2.0, 6.0]])
        assert np.allclose(marginal_cdf(np.array([[2.0, 4.0]]), bilinear=True), [[0.0, 3.0]])


@pytest.mark.parametrize("reconstruction", ["constant", "bilinear"])
class TestSampling:
    """Tests shared by both reconstruction modes."""

    def test_random_grid(self, reconstruction):
        """Sample, evaluate and invert a small random grid."""
        from src.sampling.distr import Grid, Marginal2D

        rng = np.random.default_rng(7)
        distr = Marginal2D(Grid(rng.random((7, 3))), reconstruction)
        u = rng.random((1000, 2))
        points, pdf = distr.sample(u)
        assert np.all((points >= 0.0) & (points <= 1.0))
        assert np.allclose(pdf, distr.eval(points), rtol=1e-6)
        u2, pdf2 = distr.invert(points)
        assert np.allclose(u2, u, atol=1e-4)
        assert np.allclose(pdf2, pdf, rtol=1e-6)

    def test_invert_round_trip(self, reconstruction, rng):
        from src.sampling.distr import Grid, Marginal2D

        distr = Marginal2D(Grid(rng.random((16, 11)) + 0.05), reconstruction)
        u = rng.random((10_000, 2))
        points, _ = distr.sample(u)
        assert np.allclose(distr.invert(points)[0], u, atol=1e-4)

    def test_matches_hierarchical_density(self, reconstruction, rng):
        from src.sampling.distr import Grid, Hierarchical2D, Marginal2D

        grid = Grid(rng.random((9, 6)) + 0.1, bounds=((0.0, -1.0), (3.0, 1.0)))
        x = np.column_stack([3.0 * rng.random(500), -1.0 + 2.0 * rng.random(500)])
        marginal = Marginal2D(grid, reconstruction).eval(x)
        hierarchical = Hierarchical2D(grid, reconstruction).eval(x)
        assert np.allclose(marginal, hierarchical, rtol=1e-9)

    def test_zero_rows_and_columns_never_sampled(self, reconstruction, rng):
        from src.sampling.distr import Grid, Marginal2D

        values = rng.random((10, 10)) + 0.1
        values[:4, :] = 0.0
        values[:, 7:] = 0.0
        distr = Marginal2D(Grid(values), reconstruction)
        points, pdf = distr.sample(rng.random((5000, 2)))
        assert np.all(pdf > 0.0)
        assert np.all(distr.eval(points) > 0.0)


class TestConstantReconstruction:
    """Tests specific to piecewise-constant cells."""

    def test_extreme_variates_skip_empty_rows(self):
        from src.sampling.distr import Grid, Marginal2D

        values = np.ones((4, 4))
        values[0, :] = 0.0
        values[-1, :] = 0.0
        distr = Marginal2D(Grid(values))
        points, pdf = distr.sample(np.array([[0.0, 0.0], [1.0, 1.0]]))
        assert np.all((points[:, 1] >= 0.25) & (points[:, 1] <= 0.75))
        assert np.allclose(pdf, 2.0)

    def test_uniform_grid_is_identity(self, rng):
        from src.sampling.distr import Grid, Marginal2D

        distr = Marginal2D(Grid(np.ones((5, 8))))
        u = rng.random((100, 2))
        points, pdf = distr.sample(u)
        assert np.allclose(points, u[:, ::-1])
        assert np.allclose(pdf, 1.0)

    def test_row_selection(self):
        from src.sampling.distr import Grid, Marginal2D

        values = np.array([[1.0, 1.0], [3.0, 3.0]])
        distr = Marginal2D(Grid(values))
        point, pdf = distr.sample([0.3, 0.5])
        assert point[1] > 0.5
        assert np.isclose(pdf, 1.5)


class TestParameterAxes:
    """Tests for parameterized marginal tables."""

    def test_interpolated_slice(self, rng):
        from src.sampling.distr import Grid, Marginal2D

        a = rng.random((5, 5)) + 0.1
        b = rng.random((5, 5)) + 0.1
        distr = Marginal2D(Grid(np.stack([a, b]), param_values=([1.0, 3.0],)))
        x = rng.random((50, 2))
        expected = 0.5 * a / a.mean() + 0.5 * b / b.mean()
        cells = np.minimum((x * 5).astype(int), 4)
        assert np.allclose(distr.eval(x, [2.0]), expected[cells[:, 1], cells[:, 0]])

    @pytest.mark.parametrize("reconstruction", ["constant", "bilinear"])
    def test_per_sample_parameters(self, reconstruction, rng):
        from src.sampling.distr import Grid, Marginal2D

        values = rng.random((4, 6, 7)) + 0.1
        distr = Marginal2D(Grid(values, param_values=([0.0, 0.1, 0.5, 1.0],)), reconstruction)
        u = rng.random((2000, 2))
        params = rng.random((2000, 1))
        points, pdf = distr.sample(u, params)
        assert np.allclose(pdf, distr.eval(points, params), rtol=1e-6)
        assert np.allclose(distr.invert(points, params)[0], u, atol=1e-4)

    def test_parameter_on_unparameterized_grid_raises(self):
        from src.sampling.distr import Grid, Marginal2D

        distr = Marginal2D(Grid(np.ones((3, 3))))
        with pytest.raises(ValueError):
            distr.sample([0.5, 0.5], [0.3])


class TestConstruction:
    """Tests for construction errors."""

    def test_bilinear_too_small(self):
        from src.sampling.core.errors import ConstructionError
        from src.sampling.distr import Grid, Marginal2D

        with pytest.raises(ConstructionError):
            Marginal2D(Grid(np.ones((1, 4))), "bilinear")

    def test_unknown_reconstruction(self):
        from src.sampling.distr import Grid, Marginal2D

        with pytest.raises(ValueError):
            Marginal2D(Grid(np.ones((3, 3))), "bicubic")

    def test_update(self, rng):
        from src.sampling.distr import Grid, Marginal2D

        distr = Marginal2D(Grid(np.ones((2, 2))))
        distr.update(np.array([[0.0, 0.0], [0.0, 1.0]]))
        points, _ = distr.sample(rng.random((100, 2)))
        assert np.all(points > 0.5)


class TestTaichiScope:
    """Tests calling the distribution's Taichi functions from a kernel."""

    def test_invert_func_in_kernel(self, rng):
        from src.sampling.distr import Grid, Marginal2D

        distr = Marginal2D(Grid(rng.random((6, 4)) + 0.1), "bilinear")
        result = ti.field(dtype=float, shape=(32, 2))

        @ti.kernel
        def test_kernel():
            for i in range(32):
                u = ti.math.vec2((i + 0.5) / 32.0, 0.6)
                param = ti.Vector([0.0])
                p, _ = distr.sample_func(u, param)
                u2, _ = distr.invert_func(p, param)
                result[i, 0] = u2[0] - u[0]
                result[i, 1] = u2[1] - u[1]

        test_kernel()
        assert np.allclose(result.to_numpy(), 0.0, atol=1e-6)
