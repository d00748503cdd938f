"""Stable identifiers for cross-overs."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, Iterator, List, Mapping, Optional, Set, Tuple

from .errors import JunctionIdMismatch
from .strands import DomainJunction, JunctionKind, Strand, XoverPair, infer_junctions

LOGGER = logging.getLogger(__name__)


class XoverIds:
    """
    Bijection between cross-overs, as (5' side, 3' side) nucleotide pairs, and small integers.

    New pairs get the smallest id not in use. Ids only become available again once their
    pair is removed.
    """

    def __init__(self) -> None:
        self._by_id: Dict[int, XoverPair] = {}
        self._by_pair: Dict[XoverPair, int] = {}
        self._lowest_free = 0

    def __len__(self) -> int:
        return len(self._by_id)

    def __contains__(self, pair: object) -> bool:
        return pair in self._by_pair

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, XoverIds):
            return NotImplemented
        return self is other or self._by_id == other._by_id

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        return f"XoverIds({self._by_id!r})"

    def copy(self) -> "XoverIds":
        clone = XoverIds()
        clone._by_id = dict(self._by_id)
        clone._by_pair = dict(self._by_pair)
        clone._lowest_free = self._lowest_free
        return clone

    def get_id(self, pair: XoverPair) -> Optional[int]:
        return self._by_pair.get(pair)

    def get_pair(self, xover_id: int) -> Optional[XoverPair]:
        return self._by_id.get(xover_id)

    def iter(self) -> Iterator[Tuple[int, XoverPair]]:
        for xover_id in sorted(self._by_id):
            yield xover_id, self._by_id[xover_id]

    def ids(self) -> Set[int]:
        return set(self._by_id)

    def _allocate(self) -> int:
        xover_id = self._lowest_free
        while xover_id in self._by_id:
            xover_id += 1
        self._lowest_free = xover_id + 1
        return xover_id

    def get_or_allocate(self, pair: XoverPair) -> int:
        existing = self._by_pair.get(pair)
        if existing is not None:
            return existing
        xover_id = self._allocate()
        self._by_id[xover_id] = pair
        self._by_pair[pair] = xover_id
        LOGGER.debug("xover id %s allocated for %s -> %s", xover_id, pair[0], pair[1])
        return xover_id

    def insert_at(self, pair: XoverPair, xover_id: int) -> bool:
        """Bind ``pair`` to ``xover_id``; False when either is already bound elsewhere."""
        current = self._by_id.get(xover_id)
        if current == pair:
            return True
        if current is not None or pair in self._by_pair:
            return False
        self._by_id[xover_id] = pair
        self._by_pair[pair] = xover_id
        return True

    def import_existing(self, entries: Iterable[Tuple[int, XoverPair]]) -> None:
        for xover_id, pair in entries:
            if xover_id in self._by_id or pair in self._by_pair:
                raise JunctionIdMismatch(f"Duplicate cross-over id {xover_id} for {pair}")
            self._by_id[xover_id] = pair
            self._by_pair[pair] = xover_id

    def remove(self, xover_id: int) -> Optional[XoverPair]:
        pair = self._by_id.pop(xover_id, None)
        if pair is not None:
            del self._by_pair[pair]
            self._lowest_free = min(self._lowest_free, xover_id)
            LOGGER.debug("xover id %s removed", xover_id)
        return pair

    def update(self, old_pair: XoverPair, new_pair: XoverPair) -> Optional[int]:
        """Move the id of ``old_pair`` to ``new_pair``."""
        xover_id = self._by_pair.pop(old_pair, None)
        if xover_id is None:
            return None
        if new_pair in self._by_pair:
            self._by_pair[old_pair] = xover_id
            raise JunctionIdMismatch(f"{new_pair} already has id {self._by_pair[new_pair]}")
        self._by_id[xover_id] = new_pair
        self._by_pair[new_pair] = xover_id
        return xover_id


def reconcile_xover_ids(strands: Mapping[int, Strand], ids: XoverIds) -> Dict[int, Strand]:
    """
    Recompute every junction and make ``ids`` agree with them. ``ids`` is modified in place.

    Ids stored on junctions are restored first so that they survive a save and load. Cross-
    overs still unidentified then get the id of their pair, or a new one. Ids no junction
    refers to are dropped last.
    """
    current_pairs = {pair for strand in strands.values() for pair in strand.xovers()}
    for xover_id, pair in list(ids.iter()):
        if pair not in current_pairs:
            ids.remove(xover_id)

    recomputed: Dict[int, List[DomainJunction]] = {}
    for s_id in sorted(strands):
        strand = strands[s_id]
        expected = list(infer_junctions(strand.domains, strand.cyclic))
        stored = strand.junctions
        for k, junction in enumerate(expected):
            previous = stored[k] if k < len(stored) else None
            if not junction.is_xover:
                if previous is not None and previous.is_xover:
                    LOGGER.warning("strand %s junction %s reclassified from %s to %s", s_id, k, previous.kind.value, junction.kind.value)
                continue
            pair = strand.junction_pair(k)
            if previous is not None and previous.kind is JunctionKind.IDENTIFIED_XOVER:
                if ids.insert_at(pair, previous.xover_id):
                    expected[k] = previous
                else:
                    LOGGER.warning(
                        "strand %s junction %s: id %s conflicts with %s, reallocating",
                        s_id,
                        k,
                        previous.xover_id,
                        ids.get_pair(previous.xover_id),
                    )
            elif previous is not None and not previous.is_xover:
                LOGGER.warning("strand %s junction %s reclassified from %s to cross-over", s_id, k, previous.kind.value)
        recomputed[s_id] = expected

    used: Set[int] = set()
    result: Dict[int, Strand] = {}
    for s_id, junctions in recomputed.items():
        strand = strands[s_id]
        for k, junction in enumerate(junctions):
            if junction.kind is JunctionKind.UNIDENTIFIED_XOVER:
                junctions[k] = DomainJunction.identified(ids.get_or_allocate(strand.junction_pair(k)))
            if junctions[k].kind is JunctionKind.IDENTIFIED_XOVER:
                used.add(junctions[k].xover_id)
        junctions_tuple = tuple(junctions)
        result[s_id] = strand if junctions_tuple == strand.junctions else strand.with_junctions(junctions_tuple)

    for xover_id in sorted(ids.ids() - used):
        ids.remove(xover_id)
    return result


def check_xover_ids(strands: Mapping[int, Strand], ids: XoverIds) -> None:
    """Raise ``JunctionIdMismatch`` when a junction and ``ids`` disagree."""
    referenced: Set[int] = set()
    for s_id in sorted(strands):
        strand = strands[s_id]
        for k, junction in enumerate(strand.junctions):
            if junction.kind is not JunctionKind.IDENTIFIED_XOVER:
                continue
            pair = strand.junction_pair(k)
            if pair is None or ids.get_pair(junction.xover_id) != pair:
                raise JunctionIdMismatch(
                    f"strand {s_id} junction {k} has id {junction.xover_id} "
                    f"but the generator maps it to {ids.get_pair(junction.xover_id)}"
                )
            if junction.xover_id in referenced:
                raise JunctionIdMismatch(f"cross-over id {junction.xover_id} is used twice")
            referenced.add(junction.xover_id)


__all__ = ["XoverIds", "reconcile_xover_ids", "check_xover_ids"]
