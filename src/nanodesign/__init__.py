"""nanodesign: design model and geometry engine for DNA nanostructures."""

from importlib import metadata

from . import curves, grid
from .errors import DesignError, InvariantViolation, OperationError, SerializationError
from .parameters import DEFAULT, GEARY_2014_DNA, GEARY_2014_RNA, OLD_ENSNANO, Parameters
from .linalg import Rotor
from .nucl import Nucl
from .config import EngineConfig, load_engine_config, load_parameters
from .bezier_plane import BezierPath, BezierPlane, BezierVertex
from .grid.model import Grid
from .helices import Helix
from .strands import DomainJunction, HelixDomain, Insertion, Strand
from .xover_ids import XoverIds
from .collection import Mutator, SharedMap
from .design import Design, assert_invariants, validate_design
from . import operations
from .serialization import dumps, from_payload, load_design, loads, save_design, to_payload

try:  # pragma: no cover - metadata only at runtime
    __version__ = metadata.version("nanodesign")
except metadata.PackageNotFoundError:  # pragma: no cover - source tree / editable installs
    __version__ = "0.0.0"

__all__ = [
    "curves",
    "grid",
    "operations",
    "DesignError",
    "InvariantViolation",
    "OperationError",
    "SerializationError",
    "DEFAULT",
    "GEARY_2014_DNA",
    "GEARY_2014_RNA",
    "OLD_ENSNANO",
    "Parameters",
    "Rotor",
    "Nucl",
    "EngineConfig",
    "load_engine_config",
    "load_parameters",
    "BezierPath",
    "BezierPlane",
    "BezierVertex",
    "Grid",
    "Helix",
    "DomainJunction",
    "HelixDomain",
    "Insertion",
    "Strand",
    "XoverIds",
    "Mutator",
    "SharedMap",
    "Design",
    "assert_invariants",
    "validate_design",
    "dumps",
    "from_payload",
    "load_design",
    "loads",
    "save_design",
    "to_payload",
    "__version__",
]
