"""Analytic curves followed by helix axes, and their discretization."""

from __future__ import annotations

from .base import Curve, CurveBounds
from .bezier import BezierEndCoordinates, CubicBezier, CubicBezierConstructor, PiecewiseBezier
from .discretization import InstantiatedCurve, discretize
from .instantiator import instantiate_bezier_ends
from .revolution import (
    ChebyshevCoeffs,
    EllipseProfile,
    InterpolatedChebyshev,
    InterpolatedChebyshevDescriptor,
    PointsValues,
    Revolution,
    RevolutionDescriptor,
)
from .spirals import (
    SphereLikeSpiral,
    SphereLikeSpiralDescriptor,
    SphereOrientation,
    TubeSpiral,
    TubeSpiralDescriptor,
)
from .torus import Torus, TorusDescriptor, TwistedTorus, TwistedTorusDescriptor
from .twist import SuperTwist, SuperTwistDescriptor, Twist, TwistDescriptor
from .descriptor import (
    BezierEnd,
    CurveDescriptor,
    PiecewiseBezierDescriptor,
    build_curve,
    curve_descriptor_from_payload,
    curve_descriptor_to_payload,
    set_t_max,
    set_t_min,
)

__all__ = [
    "Curve",
    "CurveBounds",
    "BezierEndCoordinates",
    "CubicBezier",
    "CubicBezierConstructor",
    "PiecewiseBezier",
    "InstantiatedCurve",
    "discretize",
    "instantiate_bezier_ends",
    "ChebyshevCoeffs",
    "EllipseProfile",
    "InterpolatedChebyshev",
    "InterpolatedChebyshevDescriptor",
    "PointsValues",
    "Revolution",
    "RevolutionDescriptor",
    "SphereLikeSpiral",
    "SphereLikeSpiralDescriptor",
    "SphereOrientation",
    "TubeSpiral",
    "TubeSpiralDescriptor",
    "Torus",
    "TorusDescriptor",
    "TwistedTorus",
    "TwistedTorusDescriptor",
    "SuperTwist",
    "SuperTwistDescriptor",
    "Twist",
    "TwistDescriptor",
    "BezierEnd",
    "CurveDescriptor",
    "PiecewiseBezierDescriptor",
    "build_curve",
    "curve_descriptor_from_payload",
    "curve_descriptor_to_payload",
    "set_t_max",
    "set_t_min",
]
