"""
READONCE - Peer Links

Carry the one-bit "I have collapsed" signal between cells.

Links only ever read the collapse bits cells published at the start of the
tick, never a state committed during it. A collapse committed in tick N
therefore reaches a direct neighbour in tick N+1 and a neighbour two hops
away in tick N+2.

Classes:
    PeerLink: Bidirectional pairwise line
    BroadcastLine: Shared OR line, every member hears every other member
"""

from __future__ import annotations


class PeerLink:
    """Pairwise collapse line between two cell ids."""

    def __init__(self, a: str, b: str):
        if a == b:
            raise ValueError(f"Cannot link cell {a!r} to itself")
        self.a = a
        self.b = b

    @property
    def members(self) -> tuple:
        return (self.a, self.b)

    def drive(self, published: dict[str, bool], target: str) -> bool:
        """Return the peer_collapsed level seen by target.

        Args:
            published: cell_id -> pre-tick collapsed bit
            target: Cell reading the line
        """
        if target == self.a:
            return bool(published[self.b])
        if target == self.b:
            return bool(published[self.a])
        return False

    def __repr__(self) -> str:
        return f"PeerLink({self.a!r} <-> {self.b!r})"


class BroadcastLine:
    """OR-tree over a set of cells.

    Each member sees the OR of every other member's published bit, so a
    member's own collapse never feeds back into itself.
    """

    def __init__(self, members):
        members = tuple(members)
        if len(set(members)) != len(members):
            raise ValueError(f"Duplicate members on broadcast line: {members}")
        if len(members) < 2:
            raise ValueError("A broadcast line needs at least two members")
        self.members = members

    def drive(self, published: dict[str, bool], target: str) -> bool:
        if target not in self.members:
            return False
        return any(published[m] for m in self.members if m != target)

    def __repr__(self) -> str:
        return f"BroadcastLine({list(self.members)})"


def peer_levels(links: list, published: dict[str, bool]) -> dict[str, bool]:
    """OR together every line driving each published cell.

    Returns:
        cell_id -> peer_collapsed level for this tick
    """
    levels = {cell_id: False for cell_id in published}
    for link in links:
        for member in link.members:
            if link.drive(published, member):
                levels[member] = True
    return levels
