"""Error hierarchy raised by design operations."""

from __future__ import annotations

from enum import Enum
from typing import Any


class DesignError(Exception):
    """Base error for every recoverable failure of the design engine."""


class OperationError(DesignError):
    """Raised when an operation cannot be applied; the input design is left untouched."""


class NotEnoughHelices(OperationError):
    def __init__(self, actual: int, needed: int) -> None:
        super().__init__(f"Not enough helices to make a grid: got {actual}, need at least {needed}")
        self.actual = actual
        self.needed = needed


class GridPositionAlreadyUsed(OperationError):
    def __init__(self, position: Any = None, helix_id: int | None = None) -> None:
        message = "Grid position is already used"
        if position is not None:
            message = f"Grid position {position} is already used by helix {helix_id}"
        super().__init__(message)
        self.position = position
        self.helix_id = helix_id


class HelixDoesNotExist(OperationError):
    def __init__(self, helix_id: int) -> None:
        super().__init__(f"Helix {helix_id} does not exist")
        self.helix_id = helix_id


class StrandDoesNotExist(OperationError):
    def __init__(self, strand_id: int) -> None:
        super().__init__(f"Strand {strand_id} does not exist")
        self.strand_id = strand_id


class HelixNotEmpty(OperationError):
    def __init__(self, helix_id: int) -> None:
        super().__init__(f"Helix {helix_id} still carries strands")
        self.helix_id = helix_id


class NuclNotOnStrand(OperationError):
    def __init__(self, nucl: Any) -> None:
        super().__init__(f"No strand goes through {nucl}")
        self.nucl = nucl


class GridDoesNotExist(OperationError):
    def __init__(self, grid_id: Any) -> None:
        super().__init__(f"Grid {grid_id} does not exist")
        self.grid_id = grid_id


class GridIsNotEmpty(OperationError):
    def __init__(self, grid_id: Any, helices: Any) -> None:
        super().__init__(f"Grid {grid_id} still carries helices {sorted(helices)}")
        self.grid_id = grid_id
        self.helices = tuple(sorted(helices))


class HelixCollisionDuringTranslation(OperationError):
    def __init__(self, helix_id: int | None = None, other: int | None = None) -> None:
        message = "Helix collision during translation"
        if helix_id is not None:
            message = f"Helix {helix_id} would collide with helix {other}"
        super().__init__(message)
        self.helix_id = helix_id
        self.other = other


class InsufficientBezierPoints(OperationError):
    def __init__(self, index: int | None = None, available: int | None = None) -> None:
        message = "Not enough bezier points"
        if index is not None:
            message = f"Bezier point {index} out of range ({available} points)"
        super().__init__(message)
        self.index = index
        self.available = available


class HelixIsNotPiecewiseBezier(OperationError):
    def __init__(self, helix_id: int | None = None) -> None:
        super().__init__(f"Helix {helix_id} is not a piecewise bezier curve")
        self.helix_id = helix_id


class CouldNotGetPath(OperationError):
    def __init__(self, path_id: int) -> None:
        super().__init__(f"Could not get bezier path {path_id}")
        self.path_id = path_id


class CouldNotGetVertex(OperationError):
    def __init__(self, vertex_id: Any) -> None:
        super().__init__(f"Could not get bezier vertex {vertex_id}")
        self.vertex_id = vertex_id


class CouldNotGetPlane(OperationError):
    def __init__(self, plane_id: int) -> None:
        super().__init__(f"Could not get bezier plane {plane_id}")
        self.plane_id = plane_id


class InsufficientVertices(OperationError):
    """Raised when a piecewise bezier is instantiated from an empty vertex list."""

    def __init__(self) -> None:
        super().__init__("A piecewise bezier curve needs at least one vertex")


class DiscretizationFailure(str, Enum):
    EMPTY_INTERVAL = "EmptyInterval"
    DEGENERATE_SPEED = "DegenerateSpeed"
    NUMERIC_OVERFLOW = "NumericOverflow"


class CurveDiscretizationFailed(OperationError):
    def __init__(self, reason: DiscretizationFailure, detail: str = "") -> None:
        message = f"Curve discretization failed: {reason.value}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
        self.reason = reason


class InvariantViolation(RuntimeError):
    """Base error for internal invariant violations (bugs, never user errors)."""


class JunctionIdMismatch(InvariantViolation):
    """Raised when a strand junction disagrees with the cross-over id generator."""


class AdjacentJunctionMismatch(InvariantViolation):
    """Raised when an Adjacent junction joins nucleotides that are not neighbours."""


class GridCollision(InvariantViolation):
    """Raised when two helices are pinned to the same grid position."""


class MalformedDomain(InvariantViolation):
    """Raised when a helical domain has start > end."""


class SerializationError(ValueError):
    """Raised when a design payload cannot be decoded."""


class ConfigError(ValueError):
    """Raised when engine configuration or parameter files are invalid."""


__all__ = [
    "DesignError",
    "OperationError",
    "NotEnoughHelices",
    "GridPositionAlreadyUsed",
    "HelixDoesNotExist",
    "StrandDoesNotExist",
    "HelixNotEmpty",
    "NuclNotOnStrand",
    "GridDoesNotExist",
    "GridIsNotEmpty",
    "HelixCollisionDuringTranslation",
    "InsufficientBezierPoints",
    "HelixIsNotPiecewiseBezier",
    "CouldNotGetPath",
    "CouldNotGetVertex",
    "CouldNotGetPlane",
    "InsufficientVertices",
    "DiscretizationFailure",
    "CurveDiscretizationFailed",
    "InvariantViolation",
    "JunctionIdMismatch",
    "AdjacentJunctionMismatch",
    "GridCollision",
    "MalformedDomain",
    "SerializationError",
    "ConfigError",
]
