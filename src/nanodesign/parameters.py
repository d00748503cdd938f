"""DNA geometric parameters."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, replace
from typing import Any, Dict, Mapping

INTER_CENTER_GAP = 2.65


@dataclass(frozen=True)
class Parameters:
    """
    Geometric constants of a double helix, in nanometers and radians.

    ``groove_angle`` is the angle between the two nucleotides of a base pair around the
    axis (the minor groove). ``inclination`` is the axial shift of the backward strand's
    nucleotides relative to the forward strand.
    """

    z_step: float
    helix_radius: float
    bases_per_turn: float
    groove_angle: float
    inter_helix_gap: float
    inclination: float = 0.0

    @property
    def inter_center_gap(self) -> float:
        return 2.0 * self.helix_radius + self.inter_helix_gap

    def dist_ac2(self) -> float:
        """Distance between two consecutive nucleotides projected on the base-pair plane."""
        angle = 2.0 * math.pi / self.bases_per_turn
        return math.sqrt(2.0) * math.sqrt(1.0 - math.cos(angle)) * self.helix_radius

    def dist_ac(self) -> float:
        """Distance between two consecutive nucleotides of the same strand."""
        return math.hypot(self.dist_ac2(), self.z_step)

    def with_changes(self, **changes: float) -> "Parameters":
        return replace(self, **changes)

    def formatted_string(self) -> str:
        lines = [
            f"  Radius: {self.helix_radius:.3f} nm",
            f"  Rise: {self.z_step:.3f} nm",
            f"  Inclination {self.inclination:.3f} nm",
            f"  Helicity: {self.bases_per_turn:.2f} bp",
            f"  Axis: {math.degrees(self.groove_angle):.1f}°",
            f"  Inter helix gap: {self.inter_helix_gap:.2f} nm",
            f" Expected xover length: {self.dist_ac():.2f} nm",
        ]
        return "\n".join(lines) + "\n"

    def to_payload(self) -> Dict[str, float]:
        return asdict(self)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Parameters":
        base = DEFAULT
        return cls(
            z_step=float(payload.get("z_step", base.z_step)),
            helix_radius=float(payload.get("helix_radius", base.helix_radius)),
            bases_per_turn=float(payload.get("bases_per_turn", base.bases_per_turn)),
            groove_angle=float(payload.get("groove_angle", base.groove_angle)),
            inter_helix_gap=float(payload.get("inter_helix_gap", base.inter_helix_gap)),
            inclination=float(payload.get("inclination", 0.0)),
        )


# Values used by designs created before inclination was modelled (Woo & Rothemund, Wikipedia).
OLD_ENSNANO = Parameters(
    z_step=0.332,
    helix_radius=1.0,
    bases_per_turn=10.44,
    groove_angle=2.0 * math.pi * 12.0 / 34.0,
    inter_helix_gap=0.65,
    inclination=0.0,
)

# Geary & Andersen 2014, "Design principles for single-stranded RNA origami structures".
GEARY_2014_DNA = Parameters(
    z_step=0.332,
    helix_radius=0.93,
    bases_per_turn=10.44,
    groove_angle=170.4 / 180.0 * math.pi,
    inter_helix_gap=INTER_CENTER_GAP - 2.0 * 0.93,
    inclination=0.375,
)

GEARY_2014_RNA = Parameters(
    z_step=0.281,
    helix_radius=0.87,
    bases_per_turn=11.0,
    groove_angle=139.9 / 180.0 * math.pi,
    inter_helix_gap=INTER_CENTER_GAP - 2.0 * 0.87,
    inclination=-0.745,
)

DEFAULT = GEARY_2014_DNA

PRESETS: Dict[str, Parameters] = {
    "geary_2014_dna": GEARY_2014_DNA,
    "geary_2014_rna": GEARY_2014_RNA,
    "old_ensnano": OLD_ENSNANO,
}


__all__ = [
    "Parameters",
    "INTER_CENTER_GAP",
    "OLD_ENSNANO",
    "GEARY_2014_DNA",
    "GEARY_2014_RNA",
    "DEFAULT",
    "PRESETS",
]
