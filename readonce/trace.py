"""
READONCE - Tick Trace

Per-tick record of every output channel and every cell's committed
latches, exposed as numpy arrays so run-level properties are one
vectorised expression each.

Channels are named after the cell id, or "<cell_id>.<port>" for the two
ports of an entangled pair. Latch rows are recorded after commit: entry N
is the state every component observes at the start of tick N+1.

Functions on Trace:
    signal / latch: Raw arrays
    disclosures: Count of disclosing ticks on a channel
    collapse_tick: First tick whose commit set collapsed
    check_read_once: Per channel, at most one disclosing tick
    check_disclosure_then_kill: Disclosure commits the kill and is never repeated
    root: Merkle root over the per-tick rows, value_out excluded
"""

from __future__ import annotations

import numpy as np

from .core import merkle

SIGNAL_FIELDS = ("value_out", "output_enable", "pad_enable", "fuse_fire", "granted")
LATCH_FIELDS = ("alive", "collapsed", "fused")


def channel_cell(channel: str) -> str:
    return channel.split(".", 1)[0]


class Trace:
    """Append-only tick trace for one orchestrated group."""

    def __init__(self):
        self.ticks = 0
        self._signals: dict[str, dict[str, list]] = {}
        self._latches: dict[str, dict[str, list]] = {}
        self._resets: list[bool] = []

    def record(self, channels: dict[str, dict], states: dict, reset: bool = False) -> None:
        """Record one tick.

        Args:
            channels: channel -> output dict from phase 1
            states: cell_id -> CellState committed in phase 2
            reset: Group reset asserted this tick
        """
        self._resets.append(bool(reset))
        for channel, outputs in channels.items():
            rows = self._signals.setdefault(
                channel, {f: [0] * self.ticks for f in SIGNAL_FIELDS}
            )
            for f in SIGNAL_FIELDS:
                rows[f].append(int(outputs[f]))
        for cell_id, state in states.items():
            rows = self._latches.setdefault(
                cell_id, {f: [False] * self.ticks for f in LATCH_FIELDS}
            )
            for f in LATCH_FIELDS:
                rows[f].append(bool(getattr(state, f)))
        self.ticks += 1

    @property
    def channels(self) -> list[str]:
        return list(self._signals)

    def signal(self, channel: str, field: str) -> np.ndarray:
        dtype = np.uint8 if field == "value_out" else bool
        return np.asarray(self._signals[channel][field], dtype=dtype)

    def latch(self, cell_id: str, field: str) -> np.ndarray:
        return np.asarray(self._latches[cell_id][field], dtype=bool)

    def disclosures(self, channel: str) -> int:
        return int(np.count_nonzero(self.signal(channel, "pad_enable")))

    def disclosure_ticks(self, channel: str) -> list[int]:
        return [int(t) for t in np.flatnonzero(self.signal(channel, "pad_enable"))]

    def collapse_tick(self, cell_id: str) -> int | None:
        hits = np.flatnonzero(self.latch(cell_id, "collapsed"))
        return int(hits[0]) if hits.size else None

    def check_read_once(self) -> dict[str, bool]:
        """Per channel, at most one disclosing tick in each reset epoch."""
        edges = np.flatnonzero(np.asarray(self._resets, dtype=bool))
        results = {}
        for ch in self._signals:
            epochs = np.split(self.signal(ch, "pad_enable"), edges)
            results[ch] = all(int(np.count_nonzero(e)) <= 1 for e in epochs)
        return results

    def check_disclosure_then_kill(self) -> dict[str, bool]:
        resets = np.flatnonzero(np.asarray(self._resets, dtype=bool))
        results = {}
        for ch in self._signals:
            pad = self.signal(ch, "pad_enable")
            collapsed = self.latch(channel_cell(ch), "collapsed")
            fused = self.latch(channel_cell(ch), "fused")
            ok = True
            for t in np.flatnonzero(pad):
                later = resets[resets > t]
                end = int(later[0]) if later.size else self.ticks
                if not (collapsed[t] and fused[t]) or pad[t + 1:end].any():
                    ok = False
            results[ch] = ok
        return results

    def rows(self) -> list[dict]:
        """One dict per tick with every enable, pulse and latch."""
        rows = []
        for t in range(self.ticks):
            row = {"tick": t, "reset": self._resets[t]}
            for ch, sig in self._signals.items():
                row[ch] = {f: sig[f][t] for f in SIGNAL_FIELDS if f != "value_out"}
            for cid, lat in self._latches.items():
                row[f"{cid}@latch"] = {f: lat[f][t] for f in LATCH_FIELDS}
            rows.append(row)
        return rows

    def root(self) -> str:
        return merkle(self.rows())

    def summary(self) -> dict:
        return {
            "ticks": self.ticks,
            "disclosures": {ch: self.disclosures(ch) for ch in self._signals},
            "collapse_tick": {cid: self.collapse_tick(cid) for cid in self._latches},
            "read_once": all(self.check_read_once().values()),
            "disclosure_then_kill": all(self.check_disclosure_then_kill().values()),
            "root": self.root(),
        }
