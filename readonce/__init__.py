"""
READONCE v1.0 - Read-Once Collapse Cell Simulator

Lock-step model of a register family that discloses its secret on exactly
one authorized access and then irreversibly self-disables, logically and
physically, whether or not the triggering access was authorized.

THE SPLIT:
    collapsed is the logical latch: init may clear it.
    fused is the physical latch: only reset clears it, and the output pad
    is dead while it is set.
"""

from .core import (
    StopRule,
    dual_hash,
    emit_receipt,
    load_receipts,
    merkle,
    # Constants
    DEFAULT_SEED,
    LFSR_TAPS,
    LFSR_PERIOD,
    BYTE_MASK,
)
from .obfuscation import ObfuscationSource, byte_entropy, lfsr_step, period, stream
from .predicates import (
    AuthorizationPredicate,
    BasisMatch,
    BasisPlusPeerLive,
    CellMetadata,
    Metadata4,
    PolicyRole,
    RelayedGrant,
    Role,
    Trivial,
    get_predicate,
)
from .variants import VARIANTS, Variant, get_variant
from .tamper import TamperController
from .cell import CellState, CollapseCell, EntangledPairCell, transition
from .peer_link import BroadcastLine, PeerLink
from .relay import MatchingRelay
from .trace import Trace
from .orchestrator import (
    CellGroupOrchestrator,
    alice_bob_pair,
    broadcast_group,
    entangled_pair,
    linked_chain,
)

__version__ = "1.0.0"
__all__ = [
    "StopRule",
    "dual_hash",
    "emit_receipt",
    "load_receipts",
    "merkle",
    "ObfuscationSource",
    "stream",
    "period",
    "byte_entropy",
    "lfsr_step",
    "AuthorizationPredicate",
    "Trivial",
    "BasisMatch",
    "BasisPlusPeerLive",
    "Metadata4",
    "PolicyRole",
    "RelayedGrant",
    "Role",
    "CellMetadata",
    "get_predicate",
    "Variant",
    "VARIANTS",
    "get_variant",
    "TamperController",
    "CellState",
    "CollapseCell",
    "EntangledPairCell",
    "transition",
    "PeerLink",
    "BroadcastLine",
    "MatchingRelay",
    "Trace",
    "CellGroupOrchestrator",
    "alice_bob_pair",
    "entangled_pair",
    "linked_chain",
    "broadcast_group",
]
