"""
READONCE - Cell Group Orchestrator

Composes cells, peer links and matching relays into one addressable unit
driven by a single global tick.

PER TICK:
    0. every cell publishes its pre-tick collapse bit and basis tag
    1. links and relays compute from the published values only; every
       cell evaluates its outputs and pending next state
    2. every cell commits; every obfuscation feed advances

No cell can see another cell's post-tick state inside the same tick,
which is what gives peer propagation its one-hop-per-tick delay.

Functions:
    alice_bob_pair: Two relayed cells behind one MatchingRelay
    entangled_pair: One shared store with two read ports
    linked_chain: Peer cells linked in a line
    broadcast_group: Peer cells on one OR line
"""

from __future__ import annotations

from .cell import CollapseCell, EntangledPairCell
from .core import DEFAULT_SEED, RULE_PEER_COLLAPSE, StopRule, emit_receipt
from .peer_link import BroadcastLine, PeerLink, peer_levels
from .relay import MatchingRelay
from .trace import Trace

SHARED_KEY = "*"


class CellGroupOrchestrator:
    """Owns references to its cells and the topology between them.

    tick() inputs map cell_id -> per-cell input dict. The SHARED_KEY entry
    is merged into every cell's inputs, which is how a shared read strobe
    or a group-wide line is driven.
    """

    def __init__(self, group_id: str = "group"):
        self.group_id = group_id
        self.cells: dict[str, CollapseCell] = {}
        self.links: list = []
        self.relays: list[MatchingRelay] = []
        self.tick_count = 0
        self.trace = Trace()

    # ------------------------------------------------------------------
    # wiring
    # ------------------------------------------------------------------
    def _stop(self, rule_name: str, message: str, context: dict) -> StopRule:
        emit_receipt("anomaly", {
            "group_id": self.group_id,
            "rule": rule_name,
            "message": message,
            **context,
        })
        return StopRule(rule_name, message, context)

    def _require(self, cell_id: str) -> CollapseCell:
        if cell_id not in self.cells:
            raise self._stop("unknown_cell", f"No cell {cell_id!r} in group", {"cell_id": cell_id})
        return self.cells[cell_id]

    def add_cell(self, cell: CollapseCell) -> CollapseCell:
        if cell.cell_id in self.cells or cell.cell_id == SHARED_KEY:
            raise self._stop("duplicate_cell", f"Cell id {cell.cell_id!r} taken", {"cell_id": cell.cell_id})
        self.cells[cell.cell_id] = cell
        return cell

    def add(self, cell_id: str, variant: str = "basis", seed: int = DEFAULT_SEED) -> CollapseCell:
        return self.add_cell(CollapseCell(cell_id, variant, seed))

    def _require_peer(self, cell_id: str) -> None:
        cell = self._require(cell_id)
        if not cell.variant.peer_linked:
            raise self._stop(
                "peer_unsupported",
                f"Cell {cell_id!r} ({cell.variant.name}) has no peer_collapsed input",
                {"cell_id": cell_id},
            )

    def link(self, a: str, b: str) -> PeerLink:
        self._require_peer(a)
        self._require_peer(b)
        line = PeerLink(a, b)
        self.links.append(line)
        return line

    def broadcast(self, members) -> BroadcastLine:
        members = list(members)
        for m in members:
            self._require_peer(m)
        line = BroadcastLine(members)
        self.links.append(line)
        return line

    def relay(self, relay_id: str, a: str, b: str) -> MatchingRelay:
        self._require(a)
        self._require(b)
        unit = MatchingRelay(relay_id, a, b)
        self.relays.append(unit)
        return unit

    # ------------------------------------------------------------------
    # lock-step tick
    # ------------------------------------------------------------------
    def tick(self, inputs: dict | None = None, reset: bool = False) -> dict:
        """Advance every cell by one tick.

        Args:
            inputs: cell_id -> input dict; SHARED_KEY applies to all cells
            reset: Broadcast reset to every cell

        Returns:
            cell_id -> outputs
        """
        inputs = dict(inputs or {})
        shared = inputs.pop(SHARED_KEY, {})
        for cell_id in inputs:
            self._require(cell_id)

        # phase 0
        published = {cid: cell.publish() for cid, cell in self.cells.items()}
        levels = peer_levels(self.links, {cid: p["collapsed"] for cid, p in published.items()})
        grants: dict[str, bool] = {}
        relay_grants = []
        for unit in self.relays:
            grant = unit.evaluate(published)
            relay_grants.append((unit, grant))
            for cid in (unit.cell_a, unit.cell_b):
                grants[cid] = grants.get(cid, True) and grant

        # phase 1
        outputs = {}
        strobes = {}
        for cid, cell in self.cells.items():
            cell_in = {**shared, **inputs.get(cid, {})}
            strobes[cid] = bool(cell_in.get("read"))
            if reset:
                cell_in["reset"] = True
            if cell.variant.peer_linked and not isinstance(cell, EntangledPairCell):
                cell_in["peer_collapsed"] = levels[cid] or bool(cell_in.get("peer_collapsed"))
            if cid in grants:
                creds = dict(cell_in.get("credentials") or {})
                creds["allow_read"] = grants[cid]
                cell_in["credentials"] = creds
            outputs[cid] = cell.evaluate(cell_in)

        # phase 2
        states = {cid: cell.commit() for cid, cell in self.cells.items()}

        self._after_commit(published, relay_grants, strobes, reset)
        self.trace.record(self._channels(outputs), states, reset)
        self.tick_count += 1
        return outputs

    def _channels(self, outputs: dict) -> dict:
        channels = {}
        for cid, out in outputs.items():
            if isinstance(self.cells[cid], EntangledPairCell):
                channels[f"{cid}.a"] = {**out["a"], "fuse_fire": out["fuse_fire"]}
                channels[f"{cid}.b"] = {**out["b"], "fuse_fire": out["fuse_fire"]}
            else:
                channels[cid] = out
        return channels

    def _after_commit(self, published, relay_grants, strobes, reset) -> None:
        for cid, cell in self.cells.items():
            if cell.last_rule == RULE_PEER_COLLAPSE:
                sources = [
                    m for line in self.links if cid in line.members
                    for m in line.members if m != cid and published[m]["collapsed"]
                ]
                emit_receipt("peer_propagation", {
                    "group_id": self.group_id,
                    "cell_id": cid,
                    "tick": self.tick_count,
                    "sources": sorted(set(sources)),
                })
        if reset:
            return
        for unit, grant in relay_grants:
            if strobes[unit.cell_a] or strobes[unit.cell_b]:
                unit.record(self.tick_count, grant)

    def run(self, schedule: list) -> Trace:
        """Drive a list of per-tick input dicts.

        A step may carry {"reset": True} under SHARED_KEY to reset the group.
        """
        for step in schedule:
            step = dict(step or {})
            shared = dict(step.get(SHARED_KEY, {}))
            reset = bool(shared.pop("reset", False))
            if shared:
                step[SHARED_KEY] = shared
            else:
                step.pop(SHARED_KEY, None)
            self.tick(step, reset=reset)
        return self.trace

    def reset(self) -> dict:
        return self.tick(reset=True)

    def snapshot(self) -> dict:
        """Exposed (non-secret) state of every cell."""
        return {
            cid: {
                "alive": cell.alive,
                "collapsed": cell.collapsed,
                "fused": cell.fused,
                "basis_tag": cell.state.metadata.basis,
                "disclosures": cell.disclosures,
            }
            for cid, cell in self.cells.items()
        }


def alice_bob_pair(seed_a: int = DEFAULT_SEED, seed_b: int = DEFAULT_SEED) -> CellGroupOrchestrator:
    """Two relayed cells sharing one read strobe and one MatchingRelay."""
    group = CellGroupOrchestrator("alice_bob")
    group.add("alice", "relayed", seed_a)
    group.add("bob", "relayed", seed_b)
    group.relay("relay", "alice", "bob")
    return group


def entangled_pair(seed: int = DEFAULT_SEED) -> CellGroupOrchestrator:
    group = CellGroupOrchestrator("entangled")
    group.add_cell(EntangledPairCell("pair", seed))
    return group


def linked_chain(n: int, seed: int = DEFAULT_SEED) -> CellGroupOrchestrator:
    """n peer cells c0..c{n-1}, each linked to the next."""
    if n < 2:
        raise ValueError("A chain needs at least two cells")
    group = CellGroupOrchestrator("chain")
    for i in range(n):
        group.add(f"c{i}", "peer", seed)
    for i in range(n - 1):
        group.link(f"c{i}", f"c{i + 1}")
    return group


def broadcast_group(n: int, seed: int = DEFAULT_SEED) -> CellGroupOrchestrator:
    """n peer cells g0..g{n-1} on a single OR broadcast line."""
    group = CellGroupOrchestrator("broadcast")
    for i in range(n):
        group.add(f"g{i}", "peer", seed)
    group.broadcast(group.cells)
    return group
