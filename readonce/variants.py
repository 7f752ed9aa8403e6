"""
READONCE - Register Variants

Each variant is one authorization predicate plus a handful of lifecycle
switches. The transition function in cell.py is shared by all of them.
"""

from __future__ import annotations

from .core import StopRule
from .predicates import AuthorizationPredicate, get_predicate


class Variant:
    """Static description of a register variant.

    Attributes:
        name: Registry key
        predicate: Predicate name (see predicates.PREDICATES)
        battery_drop: Accepts the non-latching battery_drop tamper line
        peer_linked: Honours an incoming peer_collapsed signal
        payload_init: Init loads from the payload; otherwise from the feed
        init_requires_unfused: Init is ignored once the fuse latch is set
    """

    def __init__(
        self,
        name: str,
        predicate: str,
        battery_drop: bool = False,
        peer_linked: bool = False,
        payload_init: bool = True,
        init_requires_unfused: bool = False,
    ):
        self.name = name
        self.predicate = predicate
        self.battery_drop = battery_drop
        self.peer_linked = peer_linked
        self.payload_init = payload_init
        self.init_requires_unfused = init_requires_unfused

    def make_predicate(self) -> AuthorizationPredicate:
        return get_predicate(self.predicate)

    def __repr__(self) -> str:
        return f"Variant({self.name!r}, predicate={self.predicate!r})"


VARIANTS = {
    v.name: v
    for v in (
        Variant("plain", "trivial"),
        Variant("basis", "basis_match"),
        Variant("metadata", "metadata4"),
        Variant("peer", "basis_plus_peer_live", peer_linked=True),
        Variant("relayed", "relayed_grant"),
        Variant("key_fragment", "policy_role", init_requires_unfused=True),
        Variant("symbolic", "trivial", battery_drop=True, payload_init=False),
    )
}


def get_variant(name: str) -> Variant:
    """Look up a variant by name.

    Raises:
        StopRule: If the variant is unknown
    """
    if name not in VARIANTS:
        raise StopRule(
            "unknown_variant",
            f"No register variant named {name!r}",
            {"known": sorted(VARIANTS)},
        )
    return VARIANTS[name]
