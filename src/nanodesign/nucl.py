"""Nucleotide addresses."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any, Dict, Mapping


@dataclass(frozen=True, order=True)
class Nucl:
    """A nucleotide, identified by its helix, its position along the axis and its strand direction."""

    helix: int
    position: int
    forward: bool

    def left(self) -> "Nucl":
        return replace(self, position=self.position - 1)

    def right(self) -> "Nucl":
        return replace(self, position=self.position + 1)

    def prime3(self) -> "Nucl":
        return replace(self, position=self.position + 1 if self.forward else self.position - 1)

    def prime5(self) -> "Nucl":
        return replace(self, position=self.position - 1 if self.forward else self.position + 1)

    def compl(self) -> "Nucl":
        return replace(self, forward=not self.forward)

    def is_neighbour(self, other: "Nucl") -> bool:
        return (
            self.helix == other.helix
            and self.forward == other.forward
            and abs(self.position - other.position) == 1
        )

    def to_payload(self) -> Dict[str, Any]:
        return {"helix": self.helix, "position": self.position, "forward": self.forward}

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Nucl":
        return cls(int(payload["helix"]), int(payload["position"]), bool(payload["forward"]))

    def __str__(self) -> str:
        return f"({self.helix}, {self.position}, {self.forward})"


__all__ = ["Nucl"]
