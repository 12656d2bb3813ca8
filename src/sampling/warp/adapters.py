"""Registry of all analytic warps as a closed set of tagged variants.

Tools that need to treat warps generically (the batch layer, the chi-square
harness, the example CLIs) look a warp up by its ``WarpKind`` and receive a
``WarpInfo`` record with its metadata and three adapter functions. The
adapters give every warp the same Taichi signature

    adapter(x: vector(n), params: vec4) -> vector(m)

so one kernel factory can run any of them. The adapter is bound when a
kernel is compiled, so sampling never dispatches at runtime.

Example:
    >>> from src.sampling.warp.adapters import WarpKind, get_warp_info
    >>> info = get_warp_info(WarpKind.UNIFORM_CONE)
    >>> info.bind(cos_cutoff=0.3)
    (0.3,)
"""

from collections.abc import Callable
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Literal

import taichi as ti

from src.sampling.core.errors import ParameterError
from src.sampling.warp import planar, spherical

DomainType = Literal["line", "plane", "sphere"]


class WarpKind(IntEnum):
    """Enumeration of the available analytic warps."""

    UNIFORM_DISK = 0
    UNIFORM_DISK_CONCENTRIC = 1
    UNIFORM_TRIANGLE = 2
    TENT = 3
    SQUARE_TENT = 4
    NONUNIFORM_TENT = 5
    UNIFORM_SPHERE = 6
    UNIFORM_HEMISPHERE = 7
    COSINE_HEMISPHERE = 8
    UNIFORM_CONE = 9
    STD_NORMAL = 10
    BECKMANN = 11
    VON_MISES_FISHER = 12
    LINEAR = 13
    BILINEAR = 14


@dataclass(frozen=True)
class WarpArgument:
    """Description of a scalar shape parameter of a warp.

    Attributes:
        name: Keyword name of the parameter.
        min_value: Smallest valid value.
        max_value: Largest valid value.
        default: Value used when the caller does not supply one.
        description: Human-readable description.
        checked: If True, values outside [min_value, max_value] raise
            ParameterError. Otherwise the range is advisory.
        exclusive_min: If True, ``min_value`` itself is invalid.
    """

    name: str
    min_value: float
    max_value: float
    default: float
    description: str = ""
    checked: bool = False
    exclusive_min: bool = False

    def map(self, t: float) -> float:
        """Map ``t`` in [0, 1] linearly onto the argument's range."""
        return self.min_value + t * (self.max_value - self.min_value)

    def clamp(self, value: float) -> float:
        """Clamp ``value`` to the argument's range."""
        return min(max(value, self.min_value), self.max_value)

    def is_valid(self, value: float) -> bool:
        """Check whether ``value`` lies in the argument's range."""
        if self.exclusive_min and value <= self.min_value:
            return False
        return self.min_value <= value <= self.max_value


@dataclass(frozen=True)
class WarpInfo:
    """Metadata and adapter functions of one analytic warp.

    Attributes:
        kind: Tag of the warp.
        name: Human-readable name.
        domain: Shape of the output domain ("line", "plane" or "sphere").
        sample_dim: Dimension of the uniform input sample (1 or 2).
        value_dim: Dimension of the warped output (1, 2 or 3).
        bbox: (min, max) corners of the output domain's bounding box.
        arguments: Shape parameters in positional order.
        forward: Adapter of the forward mapping.
        inverse: Adapter of the inverse mapping.
        pdf: Adapter of the density.
        unbounded: The density has support outside ``bbox``.
    """

    kind: WarpKind
    name: str
    domain: DomainType
    sample_dim: int
    value_dim: int
    bbox: tuple[tuple[float, ...], tuple[float, ...]]
    arguments: tuple[WarpArgument, ...]
    forward: Callable[..., Any]
    inverse: Callable[..., Any]
    pdf: Callable[..., Any]
    unbounded: bool = False

    def validate(self, params: tuple[float, ...]) -> None:
        """Check positional shape parameters.

        Raises:
            ParameterError: If the wrong number of parameters is given or a
                checked parameter is out of range.
        """
        if len(params) != len(self.arguments):
            raise ParameterError(
                f"{self.name} expects {len(self.arguments)} parameter(s), got {len(params)}"
            )
        for argument, value in zip(self.arguments, params):
            if argument.checked and not argument.is_valid(value):
                raise ParameterError(
                    f"{self.name}: {argument.name} = {value} is outside "
                    f"[{argument.min_value}, {argument.max_value}]"
                )

    def bind(self, **kwargs: float) -> tuple[float, ...]:
        """Order keyword parameters positionally, filling in defaults.

        Raises:
            ParameterError: If an unknown keyword is given or a checked
                parameter is out of range.
        """
        names = {argument.name for argument in self.arguments}
        unknown = set(kwargs) - names
        if unknown:
            raise ParameterError(f"{self.name} has no parameter(s) {sorted(unknown)}")
        params = tuple(float(kwargs.get(a.name, a.default)) for a in self.arguments)
        self.validate(params)
        return params


# =============================================================================
# Adapters (uniform Taichi signature for every warp)
# =============================================================================


@ti.func
def _disk_forward(x, params):
    return planar.square_to_uniform_disk(x)


@ti.func
def _disk_inverse(x, params):
    return planar.uniform_disk_to_square(x)


@ti.func
def _disk_pdf(x, params):
    return ti.Vector([planar.square_to_uniform_disk_pdf(x)])


@ti.func
def _concentric_forward(x, params):
    return planar.square_to_uniform_disk_concentric(x)


@ti.func
def _concentric_inverse(x, params):
    return planar.uniform_disk_to_square_concentric(x)


@ti.func
def _concentric_pdf(x, params):
    return ti.Vector([planar.square_to_uniform_disk_concentric_pdf(x)])


@ti.func
def _triangle_forward(x, params):
    return planar.square_to_uniform_triangle(x)


@ti.func
def _triangle_inverse(x, params):
    return planar.uniform_triangle_to_square(x)


@ti.func
def _triangle_pdf(x, params):
    return ti.Vector([planar.square_to_uniform_triangle_pdf(x)])


@ti.func
def _tent_forward(x, params):
    return ti.Vector([planar.interval_to_tent(x[0])])


@ti.func
def _tent_inverse(x, params):
    return ti.Vector([planar.tent_to_interval(x[0])])


@ti.func
def _tent_pdf(x, params):
    return ti.Vector([planar.interval_to_tent_pdf(x[0])])


@ti.func
def _square_tent_forward(x, params):
    return planar.square_to_tent(x)


@ti.func
def _square_tent_inverse(x, params):
    return planar.tent_to_square(x)


@ti.func
def _square_tent_pdf(x, params):
    return ti.Vector([planar.square_to_tent_pdf(x)])


@ti.func
def _nonuniform_tent_forward(x, params):
    return ti.Vector([planar.interval_to_nonuniform_tent(x[0], params[0], params[1], params[2])])


@ti.func
def _nonuniform_tent_inverse(x, params):
    return ti.Vector([planar.nonuniform_tent_to_interval(x[0], params[0], params[1], params[2])])


@ti.func
def _nonuniform_tent_pdf(x, params):
    return ti.Vector([planar.interval_to_nonuniform_tent_pdf(x[0], params[0], params[1], params[2])])


@ti.func
def _sphere_forward(x, params):
    return spherical.square_to_uniform_sphere(x)


@ti.func
def _sphere_inverse(x, params):
    return spherical.uniform_sphere_to_square(x)


@ti.func
def _sphere_pdf(x, params):
    return ti.Vector([spherical.square_to_uniform_sphere_pdf(x)])


@ti.func
def _hemisphere_forward(x, params):
    return spherical.square_to_uniform_hemisphere(x)


@ti.func
def _hemisphere_inverse(x, params):
    return spherical.uniform_hemisphere_to_square(x)


@ti.func
def _hemisphere_pdf(x, params):
    return ti.Vector([spherical.square_to_uniform_hemisphere_pdf(x)])


@ti.func
def _cosine_forward(x, params):
    return spherical.square_to_cosine_hemisphere(x)


@ti.func
def _cosine_inverse(x, params):
    return spherical.cosine_hemisphere_to_square(x)


@ti.func
def _cosine_pdf(x, params):
    return ti.Vector([spherical.square_to_cosine_hemisphere_pdf(x)])


@ti.func
def _cone_forward(x, params):
    return spherical.square_to_uniform_cone(x, params[0])


@ti.func
def _cone_inverse(x, params):
    return spherical.uniform_cone_to_square(x, params[0])


@ti.func
def _cone_pdf(x, params):
    return ti.Vector([spherical.square_to_uniform_cone_pdf(x, params[0])])


@ti.func
def _std_normal_forward(x, params):
    return planar.square_to_std_normal(x)


@ti.func
def _std_normal_inverse(x, params):
    return planar.std_normal_to_square(x)


@ti.func
def _std_normal_pdf(x, params):
    return ti.Vector([planar.square_to_std_normal_pdf(x)])


@ti.func
def _beckmann_forward(x, params):
    return spherical.square_to_beckmann(x, params[0])


@ti.func
def _beckmann_inverse(x, params):
    return spherical.beckmann_to_square(x, params[0])


@ti.func
def _beckmann_pdf(x, params):
    return ti.Vector([spherical.square_to_beckmann_pdf(x, params[0])])


@ti.func
def _vmf_forward(x, params):
    return spherical.square_to_von_mises_fisher(x, params[0])


@ti.func
def _vmf_inverse(x, params):
    return spherical.von_mises_fisher_to_square(x, params[0])


@ti.func
def _vmf_pdf(x, params):
    return ti.Vector([spherical.square_to_von_mises_fisher_pdf(x, params[0])])


@ti.func
def _linear_forward(x, params):
    return ti.Vector([planar.interval_to_linear(x[0], params[0], params[1])])


@ti.func
def _linear_inverse(x, params):
    return ti.Vector([planar.linear_to_interval(x[0], params[0], params[1])])


@ti.func
def _linear_pdf(x, params):
    return ti.Vector([planar.interval_to_linear_pdf(x[0], params[0], params[1])])


@ti.func
def _bilinear_forward(x, params):
    p, _ = planar.square_to_bilinear(x, params[0], params[1], params[2], params[3])
    return p


@ti.func
def _bilinear_inverse(x, params):
    u, _ = planar.bilinear_to_square(x, params[0], params[1], params[2], params[3])
    return u


@ti.func
def _bilinear_pdf(x, params):
    return ti.Vector([planar.square_to_bilinear_pdf(x, params[0], params[1], params[2], params[3])])


# =============================================================================
# Registry
# =============================================================================

_UNIT_SQUARE = ((0.0, 0.0), (1.0, 1.0))
_CENTERED_SQUARE = ((-1.0, -1.0), (1.0, 1.0))
_UNIT_CUBE = ((-1.0, -1.0, -1.0), (1.0, 1.0, 1.0))

_CORNER_ARGUMENTS = tuple(
    WarpArgument(name, 0.0, 10.0, 1.0, f"Density at corner {corner}")
    for name, corner in (("v00", "(0, 0)"), ("v10", "(1, 0)"), ("v01", "(0, 1)"), ("v11", "(1, 1)"))
)

WARPS: dict[WarpKind, WarpInfo] = {
    info.kind: info
    for info in (
        WarpInfo(
            WarpKind.UNIFORM_DISK, "Square to uniform disk", "plane", 2, 2,
            _CENTERED_SQUARE, (), _disk_forward, _disk_inverse, _disk_pdf,
        ),
        WarpInfo(
            WarpKind.UNIFORM_DISK_CONCENTRIC, "Square to uniform disk (concentric)", "plane", 2, 2,
            _CENTERED_SQUARE, (), _concentric_forward, _concentric_inverse, _concentric_pdf,
        ),
        WarpInfo(
            WarpKind.UNIFORM_TRIANGLE, "Square to uniform triangle", "plane", 2, 2,
            _UNIT_SQUARE, (), _triangle_forward, _triangle_inverse, _triangle_pdf,
        ),
        WarpInfo(
            WarpKind.TENT, "Interval to tent", "line", 1, 1,
            ((-1.0,), (1.0,)), (), _tent_forward, _tent_inverse, _tent_pdf,
        ),
        WarpInfo(
            WarpKind.SQUARE_TENT, "Square to tent", "plane", 2, 2,
            _CENTERED_SQUARE, (), _square_tent_forward, _square_tent_inverse, _square_tent_pdf,
        ),
        WarpInfo(
            WarpKind.NONUNIFORM_TENT, "Interval to nonuniform tent", "line", 1, 1,
            ((0.0,), (1.0,)),
            (
                WarpArgument("a", 0.0, 1.0, 0.0, "Left node"),
                WarpArgument("b", 0.0, 1.0, 0.3, "Peak node"),
                WarpArgument("c", 0.0, 1.0, 1.0, "Right node"),
            ),
            _nonuniform_tent_forward, _nonuniform_tent_inverse, _nonuniform_tent_pdf,
        ),
        WarpInfo(
            WarpKind.UNIFORM_SPHERE, "Square to uniform sphere", "sphere", 2, 3,
            _UNIT_CUBE, (), _sphere_forward, _sphere_inverse, _sphere_pdf,
        ),
        WarpInfo(
            WarpKind.UNIFORM_HEMISPHERE, "Square to uniform hemisphere", "sphere", 2, 3,
            _UNIT_CUBE, (), _hemisphere_forward, _hemisphere_inverse, _hemisphere_pdf,
        ),
        WarpInfo(
            WarpKind.COSINE_HEMISPHERE, "Square to cosine hemisphere", "sphere", 2, 3,
            _UNIT_CUBE, (), _cosine_forward, _cosine_inverse, _cosine_pdf,
        ),
        WarpInfo(
            WarpKind.UNIFORM_CONE, "Square to uniform cone", "sphere", 2, 3,
            _UNIT_CUBE,
            (WarpArgument("cos_cutoff", -1.0, 1.0, 0.5, "Cosine of the cutoff angle", checked=True),),
            _cone_forward, _cone_inverse, _cone_pdf,
        ),
        WarpInfo(
            WarpKind.STD_NORMAL, "Square to 2D standard normal", "plane", 2, 2,
            ((-5.0, -5.0), (5.0, 5.0)), (), _std_normal_forward, _std_normal_inverse, _std_normal_pdf,
            unbounded=True,
        ),
        WarpInfo(
            WarpKind.BECKMANN, "Square to Beckmann", "sphere", 2, 3,
            _UNIT_CUBE,
            (
                WarpArgument(
                    "alpha", 0.0, float("inf"), 0.5, "Surface roughness",
                    checked=True, exclusive_min=True,
                ),
            ),
            _beckmann_forward, _beckmann_inverse, _beckmann_pdf,
        ),
        WarpInfo(
            WarpKind.VON_MISES_FISHER, "Square to von Mises-Fisher", "sphere", 2, 3,
            _UNIT_CUBE,
            (WarpArgument("kappa", 0.0, 100.0, 10.0, "Concentration"),),
            _vmf_forward, _vmf_inverse, _vmf_pdf,
        ),
        WarpInfo(
            WarpKind.LINEAR, "Interval to linear", "line", 1, 1,
            ((0.0,), (1.0,)),
            (
                WarpArgument("v0", 0.0, 10.0, 1.0, "Density at 0"),
                WarpArgument("v1", 0.0, 10.0, 2.0, "Density at 1"),
            ),
            _linear_forward, _linear_inverse, _linear_pdf,
        ),
        WarpInfo(
            WarpKind.BILINEAR, "Square to bilinear", "plane", 2, 2,
            _UNIT_SQUARE, _CORNER_ARGUMENTS, _bilinear_forward, _bilinear_inverse, _bilinear_pdf,
        ),
    )
}


def get_warp_info(kind: WarpKind | int) -> WarpInfo:
    """Look up the registry record of a warp.

    Raises:
        ValueError: If ``kind`` is not a known warp.
    """
    return WARPS[WarpKind(kind)]
