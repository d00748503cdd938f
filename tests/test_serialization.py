import json

import pytest

from nanodesign import operations as ops
from nanodesign.bezier_plane import BezierPlane, BezierVertex
from nanodesign.design import Design
from nanodesign.errors import SerializationError
from nanodesign.grid import FreeGridId, Grid, HelixGridPosition, SquareGrid
from nanodesign.helices import Helix
from nanodesign.linalg import Rotor
from nanodesign.nucl import Nucl
from nanodesign.parameters import OLD_ENSNANO
from nanodesign.serialization import FORMAT_VERSION, dumps, load_design, loads, save_design, to_payload
from nanodesign.strands import DomainJunction, HelixDomain, Strand

DOMAIN = {"HelixDomain": {"helix": 0, "start": 0, "end": 4, "forward": True}}


def sample_design() -> Design:
    design, g_id = ops.add_grid(Design(parameters=OLD_ENSNANO), Grid((0.0, 0.0, 0.0), Rotor.identity(), SquareGrid()))
    for x in range(3):
        design, _ = ops.add_helix(design, Helix(grid_position=HelixGridPosition(FreeGridId(g_id), x, 0, roll=0.25)))
    design, _ = ops.add_strand(
        design, Strand.from_domains([HelixDomain(0, 0, 12, True), HelixDomain(1, 0, 12, False)], color=0xFF0000)
    )
    design, scaffold = ops.add_strand(
        design, Strand.from_domains([HelixDomain(2, 0, 8, True), HelixDomain(1, 12, 20, False)])
    )
    design, _ = ops.add_strand(design, Strand.init(0, 30, True))
    design = ops.rm_strand(design, 2)
    design = ops.set_scaffold(design, scaffold)
    design = ops.set_scaffold_sequence(design, "ACGTTGCA", shift=3)
    design = ops.add_anchor(design, Nucl(0, 3, True))
    design, plane = ops.add_bezier_plane(design, BezierPlane((0.0, 0.0, 0.0), Rotor.identity()))
    design, _ = ops.create_bezier_path(design, [BezierVertex(plane, (1.0, 2.0))])
    return design


def test_round_trip_keeps_the_design():
    design = sample_design()
    loaded = loads(dumps(design))
    assert loaded.helices == design.helices
    assert loaded.strands == design.strands
    assert loaded.free_grids == design.free_grids
    assert loaded.bezier_planes == design.bezier_planes
    assert loaded.bezier_paths == design.bezier_paths
    assert loaded.parameters == OLD_ENSNANO
    assert loaded.anchors == design.anchors
    assert (loaded.scaffold_id, loaded.scaffold_sequence, loaded.scaffold_shift) == (1, "ACGTTGCA", 3)
    assert loaded.xover_ids == design.xover_ids
    assert loaded.strands.next_id == 3


def test_payload_layout():
    payload = to_payload(sample_design())
    assert payload["version"] == FORMAT_VERSION
    assert [s["id"] for s in payload["strands"]] == [0, 1]
    assert payload["next_ids"]["strands"] == 3
    assert payload["helices"]["0"]["grid_position"]["grid"] == {"FreeGrid": 0}
    assert payload["strands"][0]["junctions"][0] == {"IdentifiedXover": 0}
    json.dumps(payload)


def test_stored_xover_ids_are_kept():
    design = sample_design()
    payload = to_payload(design)
    payload["strands"][0]["junctions"][0] = {"IdentifiedXover": 7}
    loaded = loads(json.dumps(payload))
    assert loaded.strands[0].junctions[0] == DomainJunction.identified(7)
    assert loaded.xover_ids.get_pair(7) == (Nucl(0, 11, True), Nucl(1, 11, False))


def test_legacy_payload():
    payload = {
        "helices": [
            {"position": [0.0, 0.0, 0.0], "grid_position": {"grid": 0, "x": 0, "y": 1}},
            {"position": [0.0, 2.65, 0.0]},
        ],
        "grids": [{"position": [0.0, 0.0, 0.0], "orientation": [1.0, 0.0, 0.0, 0.0], "grid_type": "Square"}],
        "strands": {"3": {"domains": [{"HelixDomain": {"helix": 0, "start": 0, "end": 4, "forward": True}}]}},
    }
    design = loads(json.dumps(payload))
    assert design.helices[0].grid_position.grid == FreeGridId(0)
    assert design.free_grids[0].grid_type == SquareGrid()
    assert design.strands[3].junctions == (DomainJunction.prime3(),)
    assert design.strands.next_id == 4
    assert design.helices.next_id == 2
    # placement is left to update_curves
    assert design.helices[0].position == (0.0, 0.0, 0.0)


@pytest.mark.parametrize(
    "text",
    [
        "{not json",
        "[]",
        json.dumps({"helices": {"0": {"orientation": [1.0, "x", 0.0, 0.0]}}}),
        json.dumps({"strands": {"0": {"domains": [{"Loop": {}}]}}}),
        json.dumps({"free_grids": {"0": {"position": [0, 0, 0]}}}),
        json.dumps({"strands": [{"id": 0, "domains": [DOMAIN]}, {"id": 0, "domains": [DOMAIN]}]}),
    ],
)
def test_invalid_documents(text):
    with pytest.raises(SerializationError):
        loads(text)


def test_files(tmp_path):
    design = sample_design()
    out = save_design(design, tmp_path / "nested" / "design.json")
    assert out.exists()
    assert load_design(out).strands == design.strands
    with pytest.raises(SerializationError):
        load_design(tmp_path / "missing.json")
