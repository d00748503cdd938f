"""Command-line entry points for inspecting and editing designs."""

from __future__ import annotations

import argparse
import json
import logging
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

import numpy as np

from .config import load_engine_config, load_parameters, resolve_log_level
from .curves.descriptor import build_curve
from .curves.discretization import discretize
from .curves.spirals import SphereLikeSpiralDescriptor, TubeSpiralDescriptor
from .design import validate_design
from .errors import DesignError
from .grid.positions import FreeGridId
from .operations import make_grid_from_helices
from .parameters import DEFAULT, Parameters
from .serialization import load_design, save_design

LOGGER = logging.getLogger(__name__)


def _parameters_arg(path: Optional[Path]) -> Parameters:
    return DEFAULT if path is None else load_parameters(path)


def _write_json_output(payload: Dict[str, Any], output_path: Optional[Path]) -> None:
    text = json.dumps(payload, indent=2)
    if output_path:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(text + "\n", encoding="utf-8")
        print(f"Report saved to {output_path}.")
    else:
        print(text)


def command_info(args: argparse.Namespace) -> None:
    design = load_design(args.design)
    summary = design.summary()
    if args.strands:
        summary["strand_domains"] = {str(s_id): s.formatted_domains() for s_id, s in design.strands.items()}
    if args.json:
        _write_json_output(summary, None)
        return
    print(f"Design: {args.design}")
    print(f"Helices: {summary['helices']}")
    print(f"Strands: {summary['strands']}")
    print(f"Free grids: {summary['free_grids']}")
    print(f"Bezier paths: {summary['bezier_paths']} on {summary['bezier_planes']} planes")
    print(f"Cross-overs: {summary['xovers']}")
    if design.scaffold_id is None:
        print("Scaffold: none")
    else:
        print(f"Scaffold: strand {design.scaffold_id} ({summary['scaffold_length']} nt)")
        if design.scaffold_sequence:
            print(f"Scaffold sequence: {len(design.scaffold_sequence)} nt, shift {design.scaffold_shift or 0}")
    print("Parameters:")
    print(design.parameters.formatted_string(), end="")
    if args.strands:
        for s_id, strand in design.strands.items():
            print(f"Strand {s_id}:")
            print(strand.formatted_domains(), end="")


def command_validate(args: argparse.Namespace) -> None:
    design = load_design(args.design)
    problems = validate_design(design)
    if not problems:
        print(f"{args.design}: OK")
        return
    for problem in problems:
        print(f"{args.design}: {problem}")
    raise SystemExit(1)


def command_discretize(args: argparse.Namespace) -> None:
    parameters = _parameters_arg(args.parameters)
    if args.curve == "sphere":
        descriptor = SphereLikeSpiralDescriptor(theta_0=args.theta0, radius=args.radius)
    else:
        descriptor = TubeSpiralDescriptor(theta_0=args.theta0, radius=args.radius, height=args.height)
    config = load_engine_config()
    instantiated = discretize(build_curve(descriptor, parameters), parameters, config, source=descriptor)
    chords = np.linalg.norm(np.diff(instantiated.positions, axis=0), axis=1)
    report: Dict[str, Any] = {
        "curve": args.curve,
        "points": instantiated.nb_points(),
        "length": instantiated.length(),
        "z_step": parameters.z_step,
    }
    if chords.size:
        report["chord_min"] = float(chords.min())
        report["chord_max"] = float(chords.max())
        report["chord_mean"] = float(chords.mean())
    if args.json or args.output:
        _write_json_output(report, args.output)
        return
    print(f"Curve: {args.curve} (radius {args.radius})")
    print(f"Points: {report['points']}")
    print(f"Length: {report['length']:.3f} nm")
    if chords.size:
        print(
            f"Chords: min={report['chord_min']:.4f} max={report['chord_max']:.4f} "
            f"mean={report['chord_mean']:.4f} (z_step {parameters.z_step:.4f})"
        )


def command_make_grid(args: argparse.Namespace) -> None:
    design = load_design(args.design)
    design, grid_id = make_grid_from_helices(design, args.helices)
    pinned = design.helices_on_grid(FreeGridId(grid_id))
    out = save_design(design, args.out or args.design)
    print(f"Grid {grid_id} added ({design.free_grids[grid_id].grid_type.tag}).")
    if pinned:
        print(f"Pinned helices: {', '.join(map(str, pinned))}")
    print(f"Design saved to {out}.")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="nanodesign: DNA nanostructure design model and geometry engine.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--log-level", help="Logging level (default: $NANODESIGN_LOG_LEVEL or WARNING).")
    subparsers = parser.add_subparsers(dest="command", required=True)

    info = subparsers.add_parser("info", help="Summarize a design file.")
    info.add_argument("design", type=Path, help="Design JSON file.")
    info.add_argument("--json", action="store_true", help="Print the summary as JSON.")
    info.add_argument("--strands", action="store_true", help="List the domains and junctions of every strand.")
    info.set_defaults(func=command_info)

    validate = subparsers.add_parser("validate", help="Check the invariants of a design file.")
    validate.add_argument("design", type=Path, help="Design JSON file.")
    validate.set_defaults(func=command_validate)

    disc = subparsers.add_parser("discretize", help="Sample an analytic curve and report chord statistics.")
    disc.add_argument("--curve", choices=["sphere", "tube"], default="sphere", help="Curve family (default: sphere).")
    disc.add_argument("--radius", type=float, default=10.0, help="Curve radius in nm (default: 10).")
    disc.add_argument("--theta0", type=float, default=0.0, help="Initial angle in radians (default: 0).")
    disc.add_argument("--height", type=float, default=20.0, help="Tube height in nm (default: 20).")
    disc.add_argument("--parameters", type=Path, help="YAML parameter file (preset and/or fields).")
    disc.add_argument("--json", action="store_true", help="Print the report as JSON.")
    disc.add_argument("--output", type=Path, help="Write the JSON report to this file.")
    disc.set_defaults(func=command_discretize)

    make_grid = subparsers.add_parser("make-grid", help="Fit a grid to helices and pin them to it.")
    make_grid.add_argument("design", type=Path, help="Design JSON file.")
    make_grid.add_argument("--helices", type=int, nargs="+", required=True, help="Helix ids; the first one leads.")
    make_grid.add_argument("--out", type=Path, help="Output file (default: overwrite the input).")
    make_grid.set_defaults(func=command_make_grid)

    return parser


def main(argv: Sequence[str] | None = None) -> None:
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
        logging.basicConfig(level=resolve_log_level(args.log_level), format="%(levelname)s %(name)s: %(message)s")
        args.func(args)
    except (ValueError, DesignError) as exc:
        parser.error(str(exc))


if __name__ == "__main__":  # pragma: no cover - manual invocation path
    main()
