"""
READONCE - Tamper Controller

Fuse/kill latch logic embedded in every cell.

    fuse_blow     latching. Sets fused and collapsed; both persist until reset.
    battery_drop  non-latching, symbolic variant only. Scrubs the secret with
                  the current obfuscation sample on every tick it is held,
                  leaves the latches alone and does not block lower rules.
"""

from __future__ import annotations

from .core import RULE_FUSE_BLOW, StopRule


class TamperController:
    """Evaluates the tamper request lines for one cell.

    evaluate() is pure; the owning cell applies the returned edits in its
    commit phase. The controller only counts what it has seen.
    """

    def __init__(self, cell_id: str, battery_drop_supported: bool = False):
        self.cell_id = cell_id
        self.battery_drop_supported = battery_drop_supported
        self.fuse_blow_count = 0
        self.battery_drop_ticks = 0

    def validate(self, fuse_blow: bool, battery_drop: bool) -> None:
        if battery_drop and not self.battery_drop_supported:
            raise StopRule(
                "battery_drop_unsupported",
                f"Cell {self.cell_id} has no battery_drop line",
                {"cell_id": self.cell_id},
            )

    def evaluate(self, fuse_blow: bool, battery_drop: bool, sample: int) -> dict:
        """Return the tamper edits for this tick.

        Returns:
            Dict with 'rule' (RULE_FUSE_BLOW or None), 'changes' (state field
            overrides) and 'scrub' (True when battery_drop overwrote the
            secret without matching a rule)
        """
        self.validate(fuse_blow, battery_drop)

        if fuse_blow:
            return {
                "rule": RULE_FUSE_BLOW,
                "changes": {
                    "fused": True,
                    "collapsed": True,
                    "alive": False,
                    "secret": sample,
                },
                "scrub": False,
            }

        if battery_drop:
            return {"rule": None, "changes": {"secret": sample}, "scrub": True}

        return {"rule": None, "changes": {}, "scrub": False}

    def record(self, fuse_blow: bool, battery_drop: bool) -> None:
        if fuse_blow:
            self.fuse_blow_count += 1
        if battery_drop:
            self.battery_drop_ticks += 1
