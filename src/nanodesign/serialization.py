"""JSON form of designs."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Mapping, TypeVar

from .bezier_plane import BezierPath, BezierPlane
from .collection import SharedMap
from .design import Design
from .errors import SerializationError
from .grid.model import Grid
from .helices import Helix
from .nucl import Nucl
from .parameters import DEFAULT, Parameters
from .strands import Strand

LOGGER = logging.getLogger(__name__)

FORMAT_VERSION = "1"

T = TypeVar("T")


def _map_to_payload(items: Mapping[int, Any]) -> Dict[str, Any]:
    return {str(key): value.to_payload() for key, value in items.items()}


def _map_from_payload(raw: Any, decode: Callable[[Any], T], what: str) -> Dict[int, T]:
    """Decode a map keyed by ids. Lists, as written by older versions, are keyed by index."""
    if raw is None:
        return {}
    if isinstance(raw, list):
        items = enumerate(raw)
    elif isinstance(raw, Mapping):
        items = raw.items()
    else:
        raise SerializationError(f"{what} must be a mapping or a list")
    ret: Dict[int, T] = {}
    for key, value in items:
        try:
            ret[int(key)] = decode(value)
        except SerializationError:
            raise
        except (KeyError, TypeError, ValueError) as exc:
            raise SerializationError(f"Invalid {what} entry {key!r}: {exc}") from exc
    return ret


def _strands_from_payload(raw: Any) -> Dict[int, Strand]:
    if isinstance(raw, list) and all(isinstance(r, Mapping) and "id" in r for r in raw):
        ret = {}
        for record in raw:
            s_id = int(record["id"])
            if s_id in ret:
                raise SerializationError(f"Strand id {s_id} appears twice")
            ret[s_id] = Strand.from_payload(record)
        return ret
    return _map_from_payload(raw, Strand.from_payload, "strands")


def _next_ids(payload: Mapping[str, Any]) -> Dict[str, int]:
    raw = payload.get("next_ids") or {}
    if not isinstance(raw, Mapping):
        raise SerializationError("next_ids must be a mapping")
    return {str(key): int(value) for key, value in raw.items()}


def to_payload(design: Design) -> Dict[str, Any]:
    return {
        "version": FORMAT_VERSION,
        "parameters": design.parameters.to_payload(),
        "helices": _map_to_payload(design.helices),
        "strands": [{"id": s_id, **strand.to_payload()} for s_id, strand in design.strands.items()],
        "free_grids": _map_to_payload(design.free_grids),
        "bezier_planes": _map_to_payload(design.bezier_planes),
        "bezier_paths": _map_to_payload(design.bezier_paths),
        "groups": {str(key): value for key, value in design.groups.items()},
        "anchors": [nucl.to_payload() for nucl in sorted(design.anchors)],
        "scaffold_id": design.scaffold_id,
        "scaffold_sequence": design.scaffold_sequence,
        "scaffold_shift": design.scaffold_shift,
        "no_phantoms": sorted(design.no_phantoms),
        "small_spheres": sorted(design.small_spheres),
        "checked_xovers": sorted(design.checked_xovers),
        "next_ids": {
            "helices": design.helices.next_id,
            "strands": design.strands.next_id,
            "free_grids": design.free_grids.next_id,
            "bezier_planes": design.bezier_planes.next_id,
            "bezier_paths": design.bezier_paths.next_id,
        },
    }


def from_payload(payload: Mapping[str, Any]) -> Design:
    """
    Rebuild a design. Cross-over ids stored in the strand junctions are kept; junctions that
    disagree with their domains are recomputed.
    """
    if not isinstance(payload, Mapping):
        raise SerializationError("A design must be a JSON object")
    version = str(payload.get("version", FORMAT_VERSION))
    if version != FORMAT_VERSION:
        LOGGER.warning("Reading design format version %s as version %s", version, FORMAT_VERSION)
    next_ids = _next_ids(payload)
    raw_parameters = payload.get("parameters")
    try:
        parameters = DEFAULT if raw_parameters is None else Parameters.from_payload(raw_parameters)
        anchors = frozenset(Nucl.from_payload(n) for n in payload.get("anchors") or ())
        groups = {int(key): bool(value) for key, value in (payload.get("groups") or {}).items()}
        scaffold_id = payload.get("scaffold_id")
        scaffold_shift = payload.get("scaffold_shift")
        design = Design(
            helices=SharedMap(
                _map_from_payload(payload.get("helices"), Helix.from_payload, "helices"),
                next_id=next_ids.get("helices", 0),
            ),
            strands=SharedMap(_strands_from_payload(payload.get("strands")), next_id=next_ids.get("strands", 0)),
            free_grids=SharedMap(
                _map_from_payload(payload.get("free_grids", payload.get("grids")), Grid.from_payload, "free_grids"),
                next_id=next_ids.get("free_grids", 0),
            ),
            bezier_planes=SharedMap(
                _map_from_payload(payload.get("bezier_planes"), BezierPlane.from_payload, "bezier_planes"),
                next_id=next_ids.get("bezier_planes", 0),
            ),
            bezier_paths=SharedMap(
                _map_from_payload(payload.get("bezier_paths"), BezierPath.from_payload, "bezier_paths"),
                next_id=next_ids.get("bezier_paths", 0),
            ),
            parameters=parameters,
            groups=SharedMap(groups),
            anchors=anchors,
            scaffold_id=None if scaffold_id is None else int(scaffold_id),
            scaffold_sequence=payload.get("scaffold_sequence"),
            scaffold_shift=None if scaffold_shift is None else int(scaffold_shift),
            no_phantoms=frozenset(int(h) for h in payload.get("no_phantoms") or ()),
            small_spheres=frozenset(int(h) for h in payload.get("small_spheres") or ()),
            checked_xovers=frozenset(int(x) for x in payload.get("checked_xovers") or ()),
        )
    except SerializationError:
        raise
    except (KeyError, TypeError, ValueError, AttributeError) as exc:
        raise SerializationError(f"Invalid design: {exc}") from exc
    design.reconcile_strands()
    LOGGER.debug("loaded design %s", design.summary())
    return design


def dumps(design: Design, indent: int | None = 2) -> str:
    return json.dumps(to_payload(design), indent=indent)


def loads(text: str) -> Design:
    try:
        payload = json.loads(text)
    except json.JSONDecodeError as exc:
        raise SerializationError(f"Invalid JSON: {exc}") from exc
    return from_payload(payload)


def save_design(design: Design, path: Path) -> Path:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    out.write_text(dumps(design) + "\n", encoding="utf-8")
    return out


def load_design(path: Path) -> Design:
    source = Path(path)
    if not source.exists():
        raise SerializationError(f"Design file '{source}' not found.")
    return loads(source.read_text(encoding="utf-8"))


__all__ = ["FORMAT_VERSION", "to_payload", "from_payload", "dumps", "loads", "save_design", "load_design"]
