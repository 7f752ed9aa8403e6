"""
READONCE - Authorization Predicates

Pure per-variant gates mapping cell metadata plus the reader's per-tick
credentials to a single grant bit. Predicates never mutate either input
and never see the secret.

A missing credential is a failed match. There is no error path: an
unauthorized reader simply receives the obfuscation sample.

Classes:
    CellMetadata: Frozen metadata tuple held by a cell
    Trivial, BasisMatch, BasisPlusPeerLive, Metadata4, PolicyRole, RelayedGrant

Functions:
    metadata_from_payload: Validate an init payload into CellMetadata
    get_predicate: Look up a predicate by name
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, replace
from enum import IntEnum

from .core import (
    BASIS_BITS,
    BYTE_MASK,
    DEVICE_ID_BITS,
    IDENTITY_BITS,
    PHASE_BITS,
    TIME_BITS,
    StopRule,
    check_field,
)


class Role(IntEnum):
    """Reader role ordinals for the policy gate. Higher dominates lower."""
    GUEST = 0
    READER = 1
    OPERATOR = 2
    ADMIN = 3


@dataclass(frozen=True)
class CellMetadata:
    """Variant metadata loaded alongside the secret.

    Fields a variant does not use stay at their defaults. use_count is the
    first-use counter: cleared by init, bumped by every collapsing read.
    """
    basis: int = 0
    phase: int = 0
    identity: int = 0
    window_start: int = 0
    window_end: int = 0
    device_id: int = 0
    required_role: int = Role.GUEST
    use_count: int = 0

    def bump_use(self) -> "CellMetadata":
        return replace(self, use_count=self.use_count + 1)


DEFAULT_METADATA = CellMetadata()

_FIELD_WIDTHS = {
    "basis": BASIS_BITS,
    "phase": PHASE_BITS,
    "identity": IDENTITY_BITS,
    "window_start": TIME_BITS,
    "window_end": TIME_BITS,
    "device_id": DEVICE_ID_BITS,
    "required_role": 2,
}


def metadata_from_payload(payload: dict) -> CellMetadata:
    """Build CellMetadata from an init payload.

    Unknown keys other than 'secret' are rejected so a typo cannot silently
    leave a gate at its default.

    Raises:
        ValueError: On an unknown key or an out-of-range field
    """
    fields = {}
    for key, value in payload.items():
        if key == "secret":
            continue
        if key not in _FIELD_WIDTHS:
            raise ValueError(f"Unknown metadata field: {key}")
        fields[key] = check_field(key, value, _FIELD_WIDTHS[key])
    meta = CellMetadata(**fields)
    if meta.window_start > meta.window_end:
        raise ValueError(
            f"window_start {meta.window_start} exceeds window_end {meta.window_end}"
        )
    return meta


def metadata_from_sample(sample: int) -> CellMetadata:
    """Derive metadata for payload-less variants from an obfuscation byte."""
    sample &= BYTE_MASK
    return CellMetadata(
        basis=sample & 0b11,
        phase=(sample >> 2) & 0b11,
        identity=(sample >> 4) & 0b1111,
    )


def _in_window(meta: CellMetadata, t) -> bool:
    return t is not None and meta.window_start <= t <= meta.window_end


class AuthorizationPredicate(ABC):
    """Capability interface: one pure evaluate method."""

    name = "abstract"

    @abstractmethod
    def evaluate(self, metadata: CellMetadata, credentials: dict) -> bool:
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class Trivial(AuthorizationPredicate):
    """Any reader of a live cell is authorized."""

    name = "trivial"

    def evaluate(self, metadata, credentials):
        return True


class BasisMatch(AuthorizationPredicate):
    name = "basis_match"

    def evaluate(self, metadata, credentials):
        return credentials.get("basis") == metadata.basis


class BasisPlusPeerLive(AuthorizationPredicate):
    """Basis match, and only while the linked peer has not collapsed."""

    name = "basis_plus_peer_live"

    def evaluate(self, metadata, credentials):
        if "peer_collapsed" not in credentials:
            return False
        return (
            credentials.get("basis") == metadata.basis
            and not credentials["peer_collapsed"]
        )


class Metadata4(AuthorizationPredicate):
    """Basis, phase and identity equal; reader time inside the window."""

    name = "metadata4"

    def evaluate(self, metadata, credentials):
        return (
            credentials.get("basis") == metadata.basis
            and credentials.get("phase") == metadata.phase
            and credentials.get("identity") == metadata.identity
            and _in_window(metadata, credentials.get("time"))
        )


class PolicyRole(AuthorizationPredicate):
    """Device id exact, role at least required, basis, time window, first use.

    Roles compare by ordinal, so ADMIN satisfies an OPERATOR requirement.
    """

    name = "policy_role"

    def evaluate(self, metadata, credentials):
        role = credentials.get("role")
        if role is None:
            return False
        return (
            credentials.get("device_id") == metadata.device_id
            and int(role) >= metadata.required_role
            and credentials.get("basis") == metadata.basis
            and _in_window(metadata, credentials.get("time"))
            and metadata.use_count == 0
        )


class RelayedGrant(AuthorizationPredicate):
    """Grant computed outside the cell by a MatchingRelay."""

    name = "relayed_grant"

    def evaluate(self, metadata, credentials):
        return bool(credentials.get("allow_read", False))


PREDICATES = {
    cls.name: cls
    for cls in (Trivial, BasisMatch, BasisPlusPeerLive, Metadata4, PolicyRole, RelayedGrant)
}


def get_predicate(name: str) -> AuthorizationPredicate:
    """Return a fresh predicate instance by name.

    Raises:
        StopRule: If no predicate has that name
    """
    if name not in PREDICATES:
        raise StopRule(
            "unknown_predicate",
            f"No authorization predicate named {name!r}",
            {"known": sorted(PREDICATES)},
        )
    return PREDICATES[name]()
