"""
READONCE - Collapse Cell

The read-once register FSM shared by every variant.

TRANSITION PRIORITY (first match wins):
    1. reset          clear everything, reseed the feed
    2. fuse_blow      fused + collapsed, latched until reset
       battery_drop   scrub secret, latches untouched, falls through
    3. peer_collapse  linked variants: collapse on a peer's published bit
    4. init           load secret + metadata, clear collapsed, never fused
    5. read           alive, not collapsed, not fused: collapse, fuse, scrub,
                      pulse fuse_fire. Whether or not the reader matched.
                      A re-armed fused cell ignores reads.

SAME-TICK OUTPUT:
    Computed from the start-of-tick state before anything commits.
    A logical grant becomes a disclosure only when the cell is unfused and
    the state committed this tick has both latches set, so the single
    disclosure and the kill land in the same tick.

Each tick runs in two phases: evaluate() computes outputs and the pending
next state without touching self.state; commit() applies it and advances
the obfuscation feed.

Classes:
    CellState: Frozen register contents
    CollapseCell: One register with one read port
    EntangledPairCell: One shared store with read ports A and B
"""

from __future__ import annotations

from dataclasses import dataclass, replace

from .core import (
    DEFAULT_SEED,
    RULE_FUSE_BLOW,
    RULE_IDLE,
    RULE_INIT,
    RULE_PEER_COLLAPSE,
    RULE_READ,
    RULE_RESET,
    check_field,
    emit_receipt,
)
from .obfuscation import ObfuscationSource
from .predicates import (
    DEFAULT_METADATA,
    CellMetadata,
    metadata_from_payload,
    metadata_from_sample,
)
from .tamper import TamperController
from .variants import Variant, get_variant


@dataclass(frozen=True)
class CellState:
    """Register contents at a tick boundary."""
    secret: int = 0
    metadata: CellMetadata = DEFAULT_METADATA
    alive: bool = False
    collapsed: bool = False
    fused: bool = False


RESET_STATE = CellState()


def _inert_port(sample: int) -> dict:
    return {"value_out": sample, "output_enable": False, "pad_enable": False, "granted": False}


DEFAULT_INPUTS = {
    "reset": False,
    "init": False,
    "payload": None,
    "read": False,
    "credentials": None,
    "fuse_blow": False,
    "battery_drop": False,
    "peer_collapsed": False,
}


def normalize_inputs(inputs: dict | None, defaults: dict = DEFAULT_INPUTS) -> dict:
    """Fill defaults for a per-tick input dict.

    Raises:
        ValueError: On an unknown input line
    """
    inputs = inputs or {}
    unknown = set(inputs) - set(defaults)
    if unknown:
        raise ValueError(f"Unknown cell inputs: {sorted(unknown)}")
    merged = {**defaults, **inputs}
    for key, default in defaults.items():
        if isinstance(default, bool):
            merged[key] = bool(merged[key])
    return merged


def transition(
    state: CellState,
    variant: Variant,
    tamper: TamperController,
    inputs: dict,
    sample: int,
    read: bool,
) -> tuple[CellState, str, bool]:
    """Apply the fixed-priority rule table to one start-of-tick state.

    Args:
        state: Start-of-tick state (not mutated)
        variant: Variant switches
        tamper: Tamper controller for this cell
        inputs: Normalized inputs
        sample: Current obfuscation sample
        read: Combined read strobe (one port, or A or B)

    Returns:
        (next_state, rule, fuse_fire)
    """
    if inputs["reset"]:
        return RESET_STATE, RULE_RESET, False

    edits = tamper.evaluate(inputs["fuse_blow"], inputs["battery_drop"], sample)
    if edits["rule"] is not None:
        return replace(state, **edits["changes"]), edits["rule"], False
    if edits["scrub"]:
        state = replace(state, **edits["changes"])

    if variant.peer_linked and inputs["peer_collapsed"] and not state.collapsed:
        collapsed = replace(state, collapsed=True, fused=True, alive=False, secret=sample)
        return collapsed, RULE_PEER_COLLAPSE, False

    if inputs["init"] and not (variant.init_requires_unfused and state.fused):
        if variant.payload_init:
            payload = inputs["payload"]
            if not payload or "secret" not in payload:
                raise ValueError(f"init on variant {variant.name!r} needs a payload with a secret")
            secret = check_field("secret", payload["secret"], 8)
            metadata = metadata_from_payload(payload)
        else:
            secret = sample
            metadata = metadata_from_sample(sample)
        loaded = replace(state, secret=secret, metadata=metadata, collapsed=False, alive=True)
        return loaded, RULE_INIT, False

    if read and state.alive and not state.collapsed and not state.fused:
        killed = replace(
            state,
            collapsed=True,
            fused=True,
            alive=False,
            secret=sample,
            metadata=state.metadata.bump_use(),
        )
        return killed, RULE_READ, True

    return state, RULE_IDLE, False


class CollapseCell:
    """A single read-once register.

    Attributes:
        cell_id: Identity used in receipts and by the orchestrator
        variant: Variant switches
        predicate: AuthorizationPredicate for the read port
        source: Owned obfuscation feed
        tamper: Embedded tamper controller
        state: Committed CellState
    """

    def __init__(self, cell_id: str, variant: str | Variant = "basis", seed: int = DEFAULT_SEED):
        self.cell_id = cell_id
        self.variant = get_variant(variant) if isinstance(variant, str) else variant
        self.predicate = self.variant.make_predicate()
        self.source = ObfuscationSource(seed)
        self.tamper = TamperController(cell_id, self.variant.battery_drop)
        self.state = RESET_STATE
        self.ticks = 0
        self.disclosures = 0
        self.last_rule = RULE_IDLE
        self._pending = None

    # ------------------------------------------------------------------
    # exposed, read-only
    # ------------------------------------------------------------------
    @property
    def alive(self) -> bool:
        return self.state.alive

    @property
    def collapsed(self) -> bool:
        return self.state.collapsed

    @property
    def fused(self) -> bool:
        return self.state.fused

    def publish(self) -> dict:
        """Pre-tick signals other components may read this tick."""
        return {
            "cell_id": self.cell_id,
            "collapsed": self.state.collapsed,
            "basis_tag": self.state.metadata.basis,
        }

    # ------------------------------------------------------------------
    # two-phase tick
    # ------------------------------------------------------------------
    def _credentials(self, credentials: dict | None, peer_collapsed: bool) -> dict:
        creds = dict(credentials or {})
        if self.variant.peer_linked:
            creds["peer_collapsed"] = peer_collapsed
        return creds

    def _port(self, read: bool, credentials: dict, nxt: CellState, sample: int) -> dict:
        state = self.state
        granted = bool(read and state.alive and self.predicate.evaluate(state.metadata, credentials))
        disclose = granted and not state.fused and nxt.collapsed and nxt.fused
        return {
            "value_out": state.secret if disclose else sample,
            "output_enable": disclose,
            "pad_enable": disclose,
            "granted": granted,
        }

    def evaluate(self, inputs: dict | None = None) -> dict:
        """Phase 1: outputs and pending next state from the current snapshot."""
        inputs = normalize_inputs(inputs)
        sample = self.source.sample()
        nxt, rule, fuse_fire = transition(
            self.state, self.variant, self.tamper, inputs, sample, inputs["read"]
        )

        if rule == RULE_RESET:
            port = _inert_port(sample)
        else:
            creds = self._credentials(inputs["credentials"], inputs["peer_collapsed"])
            port = self._port(inputs["read"], creds, nxt, sample)

        outputs = {
            **port,
            "fuse_fire": fuse_fire,
            "collapsed": self.state.collapsed,
            "basis_tag": self.state.metadata.basis,
        }
        self._pending = (nxt, rule, inputs, [port["output_enable"]])
        return outputs

    def commit(self) -> CellState:
        """Phase 2: apply the pending next state and advance the feed."""
        if self._pending is None:
            self.evaluate(None)
        nxt, rule, inputs, disclosed = self._pending
        self._pending = None
        prev = self.state

        self.tamper.record(inputs["fuse_blow"], inputs["battery_drop"])
        self.state = nxt
        if rule == RULE_RESET:
            self.source.reseed()
        else:
            self.source.advance()

        self.disclosures += sum(disclosed)
        self.last_rule = rule
        self._emit(rule, prev, nxt, disclosed)
        self.ticks += 1
        return nxt

    def tick(self, inputs: dict | None = None) -> dict:
        """Evaluate and commit in one call (standalone use)."""
        outputs = self.evaluate(inputs)
        self.commit()
        return outputs

    def _emit(self, rule: str, prev: CellState, nxt: CellState, disclosed: list) -> None:
        base = {"cell_id": self.cell_id, "variant": self.variant.name, "tick": self.ticks}
        if rule == RULE_RESET:
            emit_receipt("cell_reset", base)
        elif rule == RULE_INIT:
            emit_receipt("cell_init", {
                **base,
                "muted": nxt.fused,
            })
        elif rule == RULE_FUSE_BLOW:
            emit_receipt("fuse_blow", {**base, "was_fused": prev.fused})
        elif rule in (RULE_PEER_COLLAPSE, RULE_READ):
            emit_receipt("cell_collapse", {**base, "rule": rule})

        for port, hit in zip(self._port_names(), disclosed):
            if hit:
                emit_receipt("disclosure", {**base, "port": port})

    def _port_names(self) -> tuple:
        return ("main",)

    def __repr__(self) -> str:
        s = self.state
        return (
            f"CollapseCell({self.cell_id!r}, {self.variant.name}, alive={s.alive}, "
            f"collapsed={s.collapsed}, fused={s.fused})"
        )


PAIR_INPUTS = {
    "reset": False,
    "init": False,
    "payload": None,
    "read_a": False,
    "read_b": False,
    "credentials_a": None,
    "credentials_b": None,
    "fuse_blow": False,
    "battery_drop": False,
    "peer_collapsed": False,
}


class EntangledPairCell(CollapseCell):
    """One shared secret/basis store behind two independent read ports.

    A read on either port collapses the shared store; both ports see the
    shared collapse state in the same tick with no link delay.
    """

    def __init__(self, cell_id: str, seed: int = DEFAULT_SEED):
        super().__init__(cell_id, "basis", seed)

    def evaluate(self, inputs: dict | None = None) -> dict:
        inputs = normalize_inputs(inputs, PAIR_INPUTS)
        sample = self.source.sample()
        read = inputs["read_a"] or inputs["read_b"]
        nxt, rule, fuse_fire = transition(
            self.state, self.variant, self.tamper, inputs, sample, read
        )

        ports = {}
        for name in self._port_names():
            if rule == RULE_RESET:
                ports[name] = _inert_port(sample)
            else:
                creds = self._credentials(inputs[f"credentials_{name}"], False)
                ports[name] = self._port(inputs[f"read_{name}"], creds, nxt, sample)

        outputs = {
            "a": ports["a"],
            "b": ports["b"],
            "fuse_fire": fuse_fire,
            "collapsed": self.state.collapsed,
            "basis_tag": self.state.metadata.basis,
        }
        disclosed = [ports[name]["output_enable"] for name in self._port_names()]
        self._pending = (nxt, rule, inputs, disclosed)
        return outputs

    def _port_names(self) -> tuple:
        return ("a", "b")
