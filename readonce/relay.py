"""
READONCE - Matching Relay

Untrusted two-party comparator. Sees only the basis tags two cells expose
and returns a single grant bit that is fed back to both cells as their
allow_read credential. It never receives or derives a secret.
"""

from __future__ import annotations

from .core import emit_receipt


class MatchingRelay:
    """Stateless equality comparator between two exposed basis tags.

    The only state kept is a comparison count for the receipts ledger.
    """

    def __init__(self, relay_id: str, cell_a: str, cell_b: str):
        if cell_a == cell_b:
            raise ValueError(f"Relay {relay_id} needs two distinct cells")
        self.relay_id = relay_id
        self.cell_a = cell_a
        self.cell_b = cell_b
        self.comparisons = 0

    @staticmethod
    def grant(basis_a: int, basis_b: int) -> bool:
        return basis_a == basis_b

    def evaluate(self, published: dict[str, dict]) -> bool:
        """Compare the two cells' published basis tags for this tick."""
        self.comparisons += 1
        return self.grant(
            published[self.cell_a]["basis_tag"],
            published[self.cell_b]["basis_tag"],
        )

    def record(self, tick: int, grant_read: bool) -> dict:
        return emit_receipt("relay_grant", {
            "relay_id": self.relay_id,
            "cells": [self.cell_a, self.cell_b],
            "tick": tick,
            "grant_read": grant_read,
        })

    def __repr__(self) -> str:
        return f"MatchingRelay({self.relay_id!r}, {self.cell_a!r}, {self.cell_b!r})"
