import json
import os
import subprocess
import sys
from pathlib import Path

from nanodesign import operations as ops
from nanodesign.design import Design
from nanodesign.grid import HoneycombGrid, Grid
from nanodesign.helices import Helix
from nanodesign.linalg import Rotor
from nanodesign.parameters import DEFAULT
from nanodesign.serialization import load_design, save_design, to_payload
from nanodesign.strands import HelixDomain, Strand

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"


def run_cli(*args: str, check: bool = True) -> subprocess.CompletedProcess[str]:
    env = os.environ.copy()
    existing = env.get("PYTHONPATH", "")
    path_entries = [str(SRC)]
    if existing:
        path_entries.append(existing)
    env["PYTHONPATH"] = os.pathsep.join(path_entries)
    result = subprocess.run(
        [sys.executable, "-m", "nanodesign.cli", *args],
        cwd=ROOT,
        capture_output=True,
        text=True,
        env=env,
    )
    if check and result.returncode != 0:
        raise AssertionError(f"Command failed: {result.stderr}")
    return result


def write_design(tmp_path: Path) -> Path:
    lattice = Grid((0.0, 0.0, 0.0), Rotor.identity(), HoneycombGrid())
    coords = [(0, 0), (1, 0), (0, 1), (1, 1)]
    design = Design(helices={i: Helix.new(lattice.position_helix(DEFAULT, x, y)) for i, (x, y) in enumerate(coords)})
    design, s_id = ops.add_strand(design, Strand.from_domains([HelixDomain(0, 0, 16, True), HelixDomain(1, 0, 16, False)]))
    design = ops.set_scaffold(design, s_id)
    return save_design(design, tmp_path / "design.json")


def test_cli_discretize_sphere_json():
    result = run_cli("discretize", "--curve", "sphere", "--radius", "10", "--json")
    report = json.loads(result.stdout)
    assert report["curve"] == "sphere"
    assert report["points"] > 100
    assert abs(report["chord_mean"] - report["z_step"]) < 0.01 * report["z_step"]


def test_cli_discretize_writes_report(tmp_path: Path):
    out = tmp_path / "reports" / "tube.json"
    result = run_cli("discretize", "--curve", "tube", "--radius", "5", "--height", "10", "--output", str(out))
    assert "Report saved" in result.stdout
    assert json.loads(out.read_text(encoding="utf-8"))["curve"] == "tube"


def test_cli_discretize_text_with_parameters(tmp_path: Path):
    params = tmp_path / "params.yaml"
    params.write_text("preset: old_ensnano\n", encoding="utf-8")
    result = run_cli("discretize", "--parameters", str(params))
    assert "Curve: sphere (radius 10.0)" in result.stdout
    assert "Points:" in result.stdout


def test_cli_info_and_validate(tmp_path: Path):
    path = write_design(tmp_path)
    info = run_cli("info", str(path))
    assert "Helices: 4" in info.stdout
    assert "Scaffold: strand 0 (32 nt)" in info.stdout
    summary = json.loads(run_cli("info", str(path), "--json").stdout)
    assert summary["xovers"] == 1
    validate = run_cli("validate", str(path))
    assert f"{path}: OK" in validate.stdout


def test_cli_validate_reports_problems(tmp_path: Path):
    path = write_design(tmp_path)
    payload = to_payload(load_design(path))
    spot = {"grid": {"FreeGrid": 0}, "x": 0, "y": 0}
    payload["helices"]["0"]["grid_position"] = spot
    payload["helices"]["1"]["grid_position"] = spot
    path.write_text(json.dumps(payload), encoding="utf-8")
    result = run_cli("validate", str(path), check=False)
    assert result.returncode == 1
    assert "GridCollision" in result.stdout


def test_cli_make_grid(tmp_path: Path):
    path = write_design(tmp_path)
    out = tmp_path / "with_grid.json"
    result = run_cli("make-grid", str(path), "--helices", "0", "1", "2", "3", "--out", str(out))
    assert "Grid 0 added (Honeycomb)." in result.stdout
    assert "Pinned helices: 0, 1, 2, 3" in result.stdout
    assert len(load_design(out).free_grids) == 1


def test_cli_reports_errors(tmp_path: Path):
    result = run_cli("info", str(tmp_path / "missing.json"), check=False)
    assert result.returncode == 2
    assert "not found" in result.stderr
    path = write_design(tmp_path)
    result = run_cli("make-grid", str(path), "--helices", "0", "1", check=False)
    assert result.returncode == 2


def test_cli_info_lists_strand_domains(tmp_path: Path):
    design_path = write_design(tmp_path)
    result = run_cli("info", str(design_path), "--strands")
    assert "Strand 0:" in result.stdout
    assert "[H0: 0 -> 15] [x]" in result.stdout
    assert "[H1: 0 <- 15] [3']" in result.stdout

    summary = json.loads(run_cli("info", str(design_path), "--json", "--strands").stdout)
    assert summary["strand_domains"]["0"] == "[H0: 0 -> 15] [x]\n[H1: 0 <- 15] [3']\n"
