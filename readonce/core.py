"""
READONCE - Core Primitives

Shared constants, the stoprule exception and the receipts ledger.
Every lifecycle event of every cell lands in the ledger as a receipt.
Receipts never carry a secret.

Functions:
    dual_hash: SHA256:BLAKE3 digest of bytes or text
    emit_receipt: Append a hashed receipt to the ledger
    load_receipts: Read the ledger back
    merkle: Merkle root over a list of receipts
    check_field: Validate a bounded register field
"""

from __future__ import annotations

import hashlib
import json
import os
from datetime import datetime, timezone
from pathlib import Path

import blake3

# ============================================
# REGISTER WIDTHS
# ============================================
BYTE_MASK = 0xFF                # secret and obfuscation sample width
BASIS_BITS = 2                  # basis tag
PHASE_BITS = 2                  # phase tag
IDENTITY_BITS = 4               # reader identity
TIME_BITS = 8                   # time-window bounds
DEVICE_ID_BITS = 8              # policy device id

# ============================================
# OBFUSCATION FEED
# ============================================
DEFAULT_SEED = 0xA5             # reset value of every LFSR
LFSR_TAPS = (7, 5, 4, 3)        # x^8 + x^4 + x^3 + x^2 + 1, maximal length
LFSR_PERIOD = 255

# ============================================
# TRANSITION RULES (priority order)
# ============================================
RULE_RESET = "reset"
RULE_FUSE_BLOW = "fuse_blow"
RULE_PEER_COLLAPSE = "peer_collapse"
RULE_INIT = "init"
RULE_READ = "read"
RULE_IDLE = "idle"
RULE_PRIORITY = (RULE_RESET, RULE_FUSE_BLOW, RULE_PEER_COLLAPSE, RULE_INIT, RULE_READ)


class StopRule(Exception):
    """Raised on wiring or configuration failures outside the in-band channel."""

    def __init__(self, rule_name: str, message: str, context: dict | None = None):
        self.rule_name = rule_name
        self.context = context or {}
        super().__init__(f"STOPRULE[{rule_name}]: {message}")


def _get_receipts_path() -> Path:
    """Get path for receipts ledger."""
    override = os.environ.get("READONCE_RECEIPTS")
    if override:
        return Path(override)
    base = Path(os.environ.get("READONCE_BASE", Path.home() / "readonce"))
    return base / "receipts.jsonl"


def _emit_enabled() -> bool:
    return os.environ.get("READONCE_EMIT", "1") != "0"


def dual_hash(data: bytes | str) -> str:
    """Compute SHA256:BLAKE3 hash."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    sha256_hex = hashlib.sha256(data).hexdigest()
    blake3_hex = blake3.blake3(data).hexdigest()
    return f"{sha256_hex}:{blake3_hex}"


def emit_receipt(receipt_type: str, data: dict) -> dict:
    """Emit a receipt to the receipts ledger.

    SCHEMA: {type, ts, hash, **data}

    The receipt is always built and returned. It is only appended to the
    ledger when READONCE_EMIT is not "0".

    Args:
        receipt_type: Type identifier for the receipt
        data: Receipt payload data

    Returns:
        Complete receipt dict with hash and timestamp

    Raises:
        StopRule: If the ledger cannot be written
    """
    receipt = {
        "type": receipt_type,
        "ts": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
        **data,
    }
    receipt["hash"] = dual_hash(
        json.dumps({k: v for k, v in receipt.items() if k != "hash"}, sort_keys=True)
    )

    if not _emit_enabled():
        return receipt

    try:
        receipts_path = _get_receipts_path()
        receipts_path.parent.mkdir(parents=True, exist_ok=True)
        with open(receipts_path, "a") as f:
            f.write(json.dumps(receipt) + "\n")
    except OSError as e:
        raise StopRule(
            "receipt_emission",
            f"Failed to emit receipt: {e}",
            {"receipt_type": receipt_type},
        )

    return receipt


def load_receipts(receipt_type: str | None = None) -> list[dict]:
    """Read receipts from the ledger, optionally filtered by type."""
    receipts_path = _get_receipts_path()
    if not receipts_path.exists():
        return []
    receipts = []
    with open(receipts_path, "r") as f:
        for line in f:
            if not line.strip():
                continue
            try:
                receipt = json.loads(line)
            except json.JSONDecodeError:
                continue
            if receipt_type is None or receipt.get("type") == receipt_type:
                receipts.append(receipt)
    return receipts


def merkle(items: list) -> str:
    """Compute merkle root hash of items.

    Args:
        items: List of items to hash (strings, bytes, or dicts)

    Returns:
        Dual hash (SHA256:BLAKE3) of the merkle root
    """
    if not items:
        return dual_hash(b"empty")

    hashes = []
    for item in items:
        if isinstance(item, dict):
            item = json.dumps(item, sort_keys=True)
        if isinstance(item, str):
            item = item.encode("utf-8")
        hashes.append(dual_hash(item))

    while len(hashes) > 1:
        if len(hashes) % 2 == 1:
            hashes.append(hashes[-1])  # Duplicate last if odd
        new_hashes = []
        for i in range(0, len(hashes), 2):
            combined = f"{hashes[i]}|{hashes[i + 1]}"
            new_hashes.append(dual_hash(combined))
        hashes = new_hashes

    return hashes[0]


def check_field(name: str, value: int, bits: int) -> int:
    """Return value if it fits in an unsigned field of the given width.

    Raises:
        ValueError: If value is negative or too wide
    """
    limit = (1 << bits) - 1
    if not isinstance(value, int) or value < 0 or value > limit:
        raise ValueError(f"{name} must be an integer in [0, {limit}], got {value!r}")
    return value


if __name__ == "__main__":
    print("READONCE - Core Primitives")
    print(f"Default seed: 0x{DEFAULT_SEED:02X}")
    print(f"LFSR taps: {LFSR_TAPS}")
    print(f"Receipts: {_get_receipts_path()}")
