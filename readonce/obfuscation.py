"""
READONCE - Obfuscation Feed

Deterministic 8-bit LFSR that supplies the byte shown on every
non-disclosing tick and the byte that overwrites a secret on collapse.

THE FEEDBACK:
    new bit0 = b7 ^ b5 ^ b4 ^ b3, register shifted left by one.
    Recurrence polynomial x^8 + x^4 + x^3 + x^2 + 1 is primitive, so any
    nonzero seed walks all 255 nonzero states. Zero is a fixed point and
    is rejected at construction.

    This is a placeholder stream, not an entropy source.

Functions:
    lfsr_step: Next LFSR state from the current one
    stream: numpy array of consecutive samples
    period: Cycle length from a seed
    byte_entropy: Shannon entropy of a sample histogram
"""

from __future__ import annotations

import numpy as np

from .core import (
    BYTE_MASK,
    DEFAULT_SEED,
    LFSR_TAPS,
    LFSR_PERIOD,
    StopRule,
)


def lfsr_step(state: int) -> int:
    """Return the LFSR state after one shift."""
    feedback = 0
    for tap in LFSR_TAPS:
        feedback ^= (state >> tap) & 1
    return ((state << 1) | feedback) & BYTE_MASK


class ObfuscationSource:
    """Per-cell pseudorandom byte feed, advanced every tick.

    sample() is read during phase 1 of a tick; advance() is called during
    phase 2 regardless of what the owning cell did.
    """

    def __init__(self, seed: int = DEFAULT_SEED):
        if not isinstance(seed, int) or seed & BYTE_MASK != seed:
            raise ValueError(f"seed must be a byte, got {seed!r}")
        if seed == 0:
            raise StopRule(
                "zero_seed",
                "LFSR seed 0 is an absorbing state",
                {"seed": seed},
            )
        self.seed = seed
        self.state = seed
        self.steps = 0

    def sample(self) -> int:
        return self.state

    def advance(self) -> int:
        self.state = lfsr_step(self.state)
        self.steps += 1
        return self.state

    def reseed(self) -> None:
        self.state = self.seed
        self.steps = 0


def stream(seed: int = DEFAULT_SEED, n: int = LFSR_PERIOD) -> np.ndarray:
    """Return n consecutive samples starting at the seed.

    Args:
        seed: Nonzero starting state
        n: Number of samples

    Returns:
        uint8 array of length n, element 0 equal to the seed
    """
    source = ObfuscationSource(seed)
    out = np.empty(n, dtype=np.uint8)
    for i in range(n):
        out[i] = source.sample()
        source.advance()
    return out


def period(seed: int = DEFAULT_SEED) -> int:
    """Return the number of advances until the seed state recurs."""
    source = ObfuscationSource(seed)
    for i in range(1, BYTE_MASK + 2):
        if source.advance() == seed:
            return i
    # Unreachable for a nonzero byte seed
    raise StopRule("lfsr_no_cycle", "LFSR failed to return to seed", {"seed": seed})


def byte_entropy(samples: np.ndarray) -> float:
    """Shannon entropy in bits of the byte histogram of samples."""
    samples = np.asarray(samples, dtype=np.uint8)
    if samples.size == 0:
        return 0.0
    counts = np.bincount(samples, minlength=BYTE_MASK + 1)
    probs = counts[counts > 0] / samples.size
    return float(-(probs * np.log2(probs)).sum())


if __name__ == "__main__":
    print("READONCE - Obfuscation Feed")
    print(f"Seed: 0x{DEFAULT_SEED:02X}")
    print(f"Period: {period()}")
    samples = stream()
    print(f"Zero reached: {bool((samples == 0).any())}")
    print(f"Entropy: {byte_entropy(samples):.4f} bits")
