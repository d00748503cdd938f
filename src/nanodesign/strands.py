"""Strands, their domains and the junctions between consecutive domains."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

from .errors import SerializationError
from .linalg import Vec3, as_vec3
from .nucl import Nucl

LOGGER = logging.getLogger(__name__)

XoverPair = Tuple[Nucl, Nucl]


@dataclass(frozen=True)
class HelixDomain:
    """
    Nucleotides ``start <= position < end`` of one strand direction of a helix.

    Forward domains run 5' to 3' from ``start`` to ``end - 1``, backward domains from
    ``end - 1`` down to ``start``.
    """

    helix: int
    start: int
    end: int
    forward: bool
    sequence: Optional[str] = None

    @property
    def length(self) -> int:
        return max(self.end - self.start, 0)

    def prime5(self) -> Nucl:
        return Nucl(self.helix, self.start if self.forward else self.end - 1, self.forward)

    def prime3(self) -> Nucl:
        return Nucl(self.helix, self.end - 1 if self.forward else self.start, self.forward)

    def iter_positions(self) -> Iterator[int]:
        if self.forward:
            return iter(range(self.start, self.end))
        return iter(range(self.end - 1, self.start - 1, -1))

    def iter_nucls(self) -> Iterator[Nucl]:
        for position in self.iter_positions():
            yield Nucl(self.helix, position, self.forward)

    def has_nucl(self, nucl: Nucl) -> Optional[int]:
        """Index of ``nucl`` counted from the domain's 5' end."""
        if nucl.helix != self.helix or nucl.forward != self.forward:
            return None
        if not self.start <= nucl.position < self.end:
            return None
        if self.forward:
            return nucl.position - self.start
        return self.end - 1 - nucl.position

    def can_merge(self, other: "HelixDomain") -> bool:
        """True when ``other`` continues self on the same helix without a gap."""
        if self.helix != other.helix or self.forward != other.forward:
            return False
        if self.forward:
            return self.end == other.start
        return self.start == other.end

    def merged(self, other: "HelixDomain") -> "HelixDomain":
        sequence = None
        if self.sequence is not None and other.sequence is not None:
            sequence = self.sequence + other.sequence
        return replace(self, start=min(self.start, other.start), end=max(self.end, other.end), sequence=sequence)

    def intersect(self, other: "HelixDomain") -> bool:
        return (
            self.helix == other.helix
            and self.forward == other.forward
            and self.start < other.end
            and other.start < self.end
        )

    def split(self, n: int) -> Optional[Tuple["HelixDomain", "HelixDomain"]]:
        """Split after the ``n``-th nucleotide from the 5' end; returns (5' part, 3' part)."""
        if not 0 <= n < self.length - 1:
            return None
        seq5 = seq3 = None
        if self.sequence is not None:
            seq5, seq3 = self.sequence[: n + 1], self.sequence[n + 1 :]
        if self.forward:
            cut = self.start + n + 1
            return (
                replace(self, end=cut, sequence=seq5),
                replace(self, start=cut, sequence=seq3),
            )
        cut = self.end - 1 - n
        return (
            replace(self, start=cut, sequence=seq5),
            replace(self, end=cut, sequence=seq3),
        )

    def __str__(self) -> str:
        arrow = "->" if self.forward else "<-"
        return f"[H{self.helix}: {self.start} {arrow} {self.end - 1}]"

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "helix": self.helix,
            "start": self.start,
            "end": self.end,
            "forward": self.forward,
        }
        if self.sequence is not None:
            payload["sequence"] = self.sequence
        return payload

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "HelixDomain":
        sequence = payload.get("sequence")
        return cls(
            helix=int(payload["helix"]),
            start=int(payload["start"]),
            end=int(payload["end"]),
            forward=bool(payload["forward"]),
            sequence=None if sequence is None else str(sequence),
        )


@dataclass(frozen=True)
class Insertion:
    """
    Unpaired nucleotides looping out between two helical domains.

    ``instantiation`` holds their 3D positions and ``ends`` the positions of the flanking
    nucleotides they were computed from.
    """

    nb_nucl: int
    instantiation: Optional[Tuple[Vec3, ...]] = None
    sequence: Optional[str] = None
    ends: Optional[Tuple[Vec3, Vec3]] = field(default=None, compare=False, repr=False)

    @property
    def length(self) -> int:
        return self.nb_nucl

    def __str__(self) -> str:
        return f"[@{self.nb_nucl}]"

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"nb_nucl": self.nb_nucl}
        if self.instantiation is not None:
            payload["instantiation"] = [list(p) for p in self.instantiation]
        if self.sequence is not None:
            payload["sequence"] = self.sequence
        return payload

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Insertion":
        instantiation = payload.get("instantiation")
        sequence = payload.get("sequence")
        return cls(
            nb_nucl=int(payload["nb_nucl"]),
            instantiation=None if instantiation is None else tuple(as_vec3(p) for p in instantiation),
            sequence=None if sequence is None else str(sequence),
        )


Domain = Union[HelixDomain, Insertion]


def domain_to_payload(domain: Domain) -> Dict[str, Any]:
    if isinstance(domain, HelixDomain):
        return {"HelixDomain": domain.to_payload()}
    return {"Insertion": domain.to_payload()}


def domain_from_payload(payload: Mapping[str, Any]) -> Domain:
    if not isinstance(payload, Mapping) or len(payload) != 1:
        raise SerializationError(f"A domain must be a single-key mapping, got {payload!r}")
    (tag, body), = payload.items()
    try:
        if tag == "HelixDomain":
            return HelixDomain.from_payload(body)
        if tag == "Insertion":
            return Insertion.from_payload(body)
    except (KeyError, TypeError, ValueError) as exc:
        raise SerializationError(f"Invalid {tag} domain: {exc}") from exc
    raise SerializationError(f"Unknown domain {tag!r}")


class JunctionKind(str, Enum):
    PRIME3 = "Prime3"
    ADJACENT = "Adjacent"
    UNIDENTIFIED_XOVER = "UnidentifiedXover"
    IDENTIFIED_XOVER = "IdentifiedXover"


@dataclass(frozen=True)
class DomainJunction:
    """How a domain connects to its successor."""

    kind: JunctionKind
    xover_id: Optional[int] = None

    @classmethod
    def prime3(cls) -> "DomainJunction":
        return cls(JunctionKind.PRIME3)

    @classmethod
    def adjacent(cls) -> "DomainJunction":
        return cls(JunctionKind.ADJACENT)

    @classmethod
    def unidentified(cls) -> "DomainJunction":
        return cls(JunctionKind.UNIDENTIFIED_XOVER)

    @classmethod
    def identified(cls, xover_id: int) -> "DomainJunction":
        return cls(JunctionKind.IDENTIFIED_XOVER, xover_id)

    @property
    def is_xover(self) -> bool:
        return self.kind in (JunctionKind.UNIDENTIFIED_XOVER, JunctionKind.IDENTIFIED_XOVER)

    def anonymous(self) -> str:
        """Short form without the cross-over id."""
        if self.kind is JunctionKind.PRIME3:
            return "[3']"
        if self.kind is JunctionKind.ADJACENT:
            return "[->]"
        return "[x]"

    def to_payload(self) -> Any:
        if self.kind is JunctionKind.IDENTIFIED_XOVER:
            return {self.kind.value: self.xover_id}
        return self.kind.value

    @classmethod
    def from_payload(cls, payload: Any) -> "DomainJunction":
        if isinstance(payload, str):
            try:
                kind = JunctionKind(payload)
            except ValueError as exc:
                raise SerializationError(f"Unknown junction {payload!r}") from exc
            if kind is JunctionKind.IDENTIFIED_XOVER:
                raise SerializationError("IdentifiedXover junctions need an id")
            return cls(kind)
        if isinstance(payload, Mapping) and set(payload) == {JunctionKind.IDENTIFIED_XOVER.value}:
            return cls.identified(int(payload[JunctionKind.IDENTIFIED_XOVER.value]))
        raise SerializationError(f"Invalid junction {payload!r}")


class Extremity(str, Enum):
    NO = "No"
    PRIME5 = "Prime5"
    PRIME3 = "Prime3"

    @property
    def is_end(self) -> bool:
        return self is not Extremity.NO


def sanitize_domains(domains: Sequence[Domain], cyclic: bool) -> Tuple[Domain, ...]:
    """
    Drop empty domains, merge touching helical domains and successive insertions.

    Non-cyclic strands lose their leading and trailing insertions. On cyclic strands a
    leading insertion is moved to the end, where it joins the trailing one.
    """
    cleaned: List[Domain] = []
    for domain in domains:
        if isinstance(domain, HelixDomain):
            if domain.start > domain.end:
                raise ValueError(f"Helix domain with start > end: {domain}")
            if domain.length == 0:
                LOGGER.debug("sanitize dropping empty domain %s", domain)
                continue
        elif domain.nb_nucl <= 0:
            continue
        previous = cleaned[-1] if cleaned else None
        if isinstance(domain, Insertion) and isinstance(previous, Insertion):
            cleaned[-1] = _merge_insertions(previous, domain)
        elif (
            isinstance(domain, HelixDomain)
            and isinstance(previous, HelixDomain)
            and previous.can_merge(domain)
        ):
            cleaned[-1] = previous.merged(domain)
        else:
            cleaned.append(domain)
    if not cyclic:
        while cleaned and isinstance(cleaned[0], Insertion):
            cleaned.pop(0)
        while cleaned and isinstance(cleaned[-1], Insertion):
            cleaned.pop()
    elif len(cleaned) > 1 and isinstance(cleaned[0], Insertion):
        first = cleaned.pop(0)
        if isinstance(cleaned[-1], Insertion):
            cleaned[-1] = _merge_insertions(cleaned[-1], first)
        else:
            cleaned.append(first)
    return tuple(cleaned)


def _merge_insertions(a: Insertion, b: Insertion) -> Insertion:
    sequence = None
    if a.sequence is not None or b.sequence is not None:
        sequence = (a.sequence or "") + (b.sequence or "")
    instantiation = None
    if a.instantiation is not None and b.instantiation is not None:
        instantiation = a.instantiation + b.instantiation
    return Insertion(a.nb_nucl + b.nb_nucl, instantiation, sequence)


def junction_pair(prime5: Domain, prime3: Domain) -> Optional[XoverPair]:
    """The (3' end, 5' end) nucleotides joined by a junction between two helical domains."""
    if isinstance(prime5, HelixDomain) and isinstance(prime3, HelixDomain):
        return (prime5.prime3(), prime3.prime5())
    return None


def classify_junction(prime5: Domain, prime3: Domain) -> DomainJunction:
    """Adjacent or unidentified cross-over, from the domains alone."""
    pair = junction_pair(prime5, prime3)
    if pair is None or pair[0].is_neighbour(pair[1]):
        return DomainJunction.adjacent()
    return DomainJunction.unidentified()


def infer_junctions(domains: Sequence[Domain], cyclic: bool) -> Tuple[DomainJunction, ...]:
    if not domains:
        return ()
    junctions = [classify_junction(a, b) for a, b in zip(domains[:-1], domains[1:])]
    if cyclic:
        junctions.append(classify_junction(domains[-1], domains[0]))
    else:
        junctions.append(DomainJunction.prime3())
    return tuple(junctions)


@dataclass(frozen=True)
class Strand:
    """
    An ordered chain of domains. ``junctions[k]`` joins ``domains[k]`` to its successor, which
    wraps to ``domains[0]`` on cyclic strands.
    """

    domains: Tuple[Domain, ...]
    junctions: Tuple[DomainJunction, ...] = ()
    cyclic: bool = False
    color: Optional[int] = None
    sequence: Optional[str] = None
    name: Optional[str] = None

    @classmethod
    def init(cls, helix: int, position: int, forward: bool, color: Optional[int] = None) -> "Strand":
        """A one nucleotide strand."""
        domains = (HelixDomain(helix, position, position + 1, forward),)
        return cls(domains, infer_junctions(domains, False), color=color)

    @classmethod
    def from_domains(cls, domains: Sequence[Domain], cyclic: bool = False, **kwargs: Any) -> "Strand":
        domains = sanitize_domains(domains, cyclic)
        return cls(domains, infer_junctions(domains, cyclic), cyclic=cyclic, **kwargs)

    def sanitized(self, known: Optional[Mapping[XoverPair, int]] = None) -> "Strand":
        """
        Sanitized domains and junctions recomputed from them. A cross-over that existed before
        keeps its id; ``known`` overrides the ids read from the current junctions.
        """
        if known is None:
            known = dict(self.identified_xovers())
        domains = sanitize_domains(self.domains, self.cyclic)
        junctions = []
        for k, junction in enumerate(infer_junctions(domains, self.cyclic)):
            if junction.kind is JunctionKind.UNIDENTIFIED_XOVER:
                pair = self.junction_pair(k, domains)
                if pair in known:
                    junction = DomainJunction.identified(known[pair])
            junctions.append(junction)
        return replace(self, domains=domains, junctions=tuple(junctions))

    def junction_pair(self, k: int, domains: Optional[Sequence[Domain]] = None) -> Optional[XoverPair]:
        domains = self.domains if domains is None else domains
        if k < len(domains) - 1:
            return junction_pair(domains[k], domains[k + 1])
        if self.cyclic and k == len(domains) - 1 and domains:
            return junction_pair(domains[k], domains[0])
        return None

    def identified_xovers(self) -> List[Tuple[XoverPair, int]]:
        ret = []
        for k, junction in enumerate(self.junctions):
            if junction.kind is JunctionKind.IDENTIFIED_XOVER and k < len(self.domains):
                pair = self.junction_pair(k)
                if pair is not None:
                    ret.append((pair, junction.xover_id))
        return ret

    def with_junctions(self, junctions: Sequence[DomainJunction]) -> "Strand":
        return replace(self, junctions=tuple(junctions))

    def length(self) -> int:
        return sum(d.length for d in self.domains)

    def prime5(self) -> Optional[Nucl]:
        """5' end of a linear strand; None for cyclic strands."""
        if self.cyclic:
            return None
        for domain in self.domains:
            if isinstance(domain, HelixDomain):
                return domain.prime5()
        return None

    def prime3(self) -> Optional[Nucl]:
        if self.cyclic:
            return None
        for domain in reversed(self.domains):
            if isinstance(domain, HelixDomain):
                return domain.prime3()
        return None

    def helix_domains(self) -> Iterator[HelixDomain]:
        for domain in self.domains:
            if isinstance(domain, HelixDomain):
                yield domain

    def iter_nucls(self) -> Iterator[Nucl]:
        for domain in self.helix_domains():
            yield from domain.iter_nucls()

    def has_nucl(self, nucl: Nucl) -> bool:
        return any(d.has_nucl(nucl) is not None for d in self.helix_domains())

    def find_nucl(self, nucl: Nucl) -> Optional[int]:
        """Index of ``nucl`` along the strand, insertions included."""
        seen = 0
        for domain in self.domains:
            if isinstance(domain, HelixDomain):
                n = domain.has_nucl(nucl)
                if n is not None:
                    return seen + n
            seen += domain.length
        return None

    def get_nth_nucl(self, n: int) -> Optional[Nucl]:
        """The ``n``-th nucleotide from the 5' end; None when it lies in an insertion."""
        seen = 0
        for domain in self.domains:
            if seen + domain.length > n:
                if isinstance(domain, HelixDomain):
                    position = domain.start + (n - seen) if domain.forward else domain.end - 1 - (n - seen)
                    return Nucl(domain.helix, position, domain.forward)
                return None
            seen += domain.length
        return None

    def xovers(self) -> List[XoverPair]:
        """Every cross-over of the strand, as (5' side, 3' side) pairs."""
        ret = []
        n = len(self.domains)
        last = n if self.cyclic else n - 1
        for k in range(max(last, 0)):
            pair = self.junction_pair(k)
            if pair is not None and not pair[0].is_neighbour(pair[1]):
                ret.append(pair)
        return ret

    def intersect_domains(self, domains: Sequence[Domain]) -> bool:
        for mine in self.helix_domains():
            for other in domains:
                if isinstance(other, HelixDomain) and mine.intersect(other):
                    return True
        return False

    def insertion_points(self) -> List[Tuple[Optional[Nucl], Optional[Nucl], int]]:
        """For each insertion: the nucleotides before and after it, and its length."""
        ret = []
        n = len(self.domains)
        for k, domain in enumerate(self.domains):
            if not isinstance(domain, Insertion):
                continue
            before = self.domains[k - 1] if k > 0 or self.cyclic else None
            after = self.domains[(k + 1) % n] if k < n - 1 or self.cyclic else None
            ret.append(
                (
                    before.prime3() if isinstance(before, HelixDomain) else None,
                    after.prime5() if isinstance(after, HelixDomain) else None,
                    domain.nb_nucl,
                )
            )
        return ret

    def domain_ends(self) -> List[Nucl]:
        ret = []
        for domain in self.helix_domains():
            ret.append(domain.prime5())
            ret.append(domain.prime3())
        return ret

    def domain_lengths(self) -> List[int]:
        return [d.length for d in self.domains]

    def formatted_domains(self) -> str:
        """
        One line per domain, followed by the junction to its successor::

            [H0: 0 -> 9] [->]
            [@4] [->]
            [H1: 0 <- 9] [3']

        Cyclic strands end with a ``[cycle]`` line.
        """
        lines = []
        for k, domain in enumerate(self.domains):
            junction = self.junctions[k].anonymous() if k < len(self.junctions) else "[?]"
            lines.append(f"{domain} {junction}")
        if self.cyclic:
            lines.append("[cycle]")
        return "".join(line + "\n" for line in lines)

    def formatted_anonymous_junctions(self) -> str:
        return " ".join(j.anonymous() for j in self.junctions)

    def split_at(self, nucl: Nucl) -> Tuple[Optional["Strand"], Optional["Strand"]]:
        """
        Cut the strand after ``nucl``. Returns the 5' part (ending on ``nucl``) and the 3' part;
        either is None when empty. A cyclic strand is opened instead and comes back as the
        first element.
        """
        for k, domain in enumerate(self.domains):
            if not isinstance(domain, HelixDomain):
                continue
            n = domain.has_nucl(nucl)
            if n is None:
                continue
            if n == domain.length - 1:
                left_domains, right_domains = self.domains[: k + 1], self.domains[k + 1 :]
            else:
                d5, d3 = domain.split(n)
                left_domains = self.domains[:k] + (d5,)
                right_domains = (d3,) + self.domains[k + 1 :]
            known = dict(self.identified_xovers())
            if self.cyclic:
                opened = replace(self, cyclic=False, domains=right_domains + left_domains)
                return opened.sanitized(known), None
            left = replace(self, domains=left_domains).sanitized(known) if left_domains else None
            right = replace(self, domains=right_domains, name=None).sanitized(known) if right_domains else None
            return _non_empty(left), _non_empty(right)
        raise ValueError(f"{nucl} is not on the strand")

    def can_merge(self, other: "Strand") -> bool:
        return not self.cyclic and not other.cyclic and bool(self.domains) and bool(other.domains)

    def merge(self, other: "Strand") -> "Strand":
        """Self followed by ``other``; the 3' end of self joins the 5' end of ``other``."""
        if not self.can_merge(other):
            raise ValueError("Only two linear, non-empty strands can be merged")
        known = dict(self.identified_xovers())
        known.update(other.identified_xovers())
        merged = replace(self, domains=self.domains + other.domains, sequence=None)
        return merged.sanitized(known)

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "domains": [domain_to_payload(d) for d in self.domains],
            "junctions": [j.to_payload() for j in self.junctions],
            "cyclic": self.cyclic,
        }
        if self.color is not None:
            payload["color"] = self.color
        if self.sequence is not None:
            payload["sequence"] = self.sequence
        if self.name is not None:
            payload["name"] = self.name
        return payload

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "Strand":
        try:
            domains = tuple(domain_from_payload(d) for d in payload["domains"])
            cyclic = bool(payload.get("cyclic", False))
            raw_junctions = payload.get("junctions")
            if raw_junctions is None:
                junctions = infer_junctions(domains, cyclic)
            else:
                junctions = tuple(DomainJunction.from_payload(j) for j in raw_junctions)
            color = payload.get("color")
            return cls(
                domains=domains,
                junctions=junctions,
                cyclic=cyclic,
                color=None if color is None else int(color),
                sequence=payload.get("sequence"),
                name=payload.get("name"),
            )
        except (KeyError, TypeError, ValueError) as exc:
            if isinstance(exc, SerializationError):
                raise
            raise SerializationError(f"Invalid strand: {exc}") from exc


def _non_empty(strand: Optional[Strand]) -> Optional[Strand]:
    if strand is None or not strand.domains:
        return None
    return strand


def set_sequence(strands: Mapping[int, Strand], scaffold_id: int, sequence: str, shift: int = 0) -> Dict[Nucl, str]:
    """
    Bases of every nucleotide once the scaffold carries ``sequence`` read from ``shift``.

    Scaffold nucleotides take the sequence in strand order; their complements take the
    complementary base. Insertions consume bases without binding them.
    """
    scaffold = strands.get(scaffold_id)
    if scaffold is None or not sequence:
        return {}
    bases: Dict[Nucl, str] = {}
    idx = 0
    for domain in scaffold.domains:
        if isinstance(domain, Insertion):
            idx += domain.nb_nucl
            continue
        for nucl in domain.iter_nucls():
            base = sequence[(idx + shift) % len(sequence)].upper()
            bases[nucl] = base
            bases[nucl.compl()] = _COMPLEMENT.get(base, "N")
            idx += 1
    return bases


_COMPLEMENT = {"A": "T", "T": "A", "G": "C", "C": "G", "U": "A", "N": "N"}


def get_xovers(strands: Mapping[int, Strand]) -> List[XoverPair]:
    ret = []
    for s_id in sorted(strands):
        ret.extend(strands[s_id].xovers())
    return ret


def get_strand_nucl(strands: Mapping[int, Strand], nucl: Nucl) -> Optional[int]:
    for s_id in sorted(strands):
        if strands[s_id].has_nucl(nucl):
            return s_id
    return None


def is_strand_end(strands: Mapping[int, Strand], nucl: Nucl) -> Extremity:
    for strand in strands.values():
        if strand.prime5() == nucl:
            return Extremity.PRIME5
        if strand.prime3() == nucl:
            return Extremity.PRIME3
    return Extremity.NO


def is_domain_end(strands: Mapping[int, Strand], nucl: Nucl) -> Extremity:
    for strand in strands.values():
        for domain in strand.helix_domains():
            if domain.has_nucl(nucl) is None:
                continue
            if domain.prime5() == nucl:
                return Extremity.PRIME5
            if domain.prime3() == nucl:
                return Extremity.PRIME3
            return Extremity.NO
    return Extremity.NO


def uses_helix(strands: Mapping[int, Strand], helix: int) -> bool:
    return any(d.helix == helix for s in strands.values() for d in s.helix_domains())


__all__ = [
    "XoverPair",
    "HelixDomain",
    "Insertion",
    "Domain",
    "domain_to_payload",
    "domain_from_payload",
    "JunctionKind",
    "DomainJunction",
    "Extremity",
    "sanitize_domains",
    "junction_pair",
    "classify_junction",
    "infer_junctions",
    "Strand",
    "set_sequence",
    "get_xovers",
    "get_strand_nucl",
    "is_strand_end",
    "is_domain_end",
    "uses_helix",
]
