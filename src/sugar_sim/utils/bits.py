"""Helpers for the fixed-width boolean vectors used by culture tags and immunity."""
from __future__ import annotations

import random
from typing import Sequence


def random_bits(rng: random.Random, length: int) -> list[bool]:
    return [rng.random() < 0.5 for _ in range(length)]


def hamming(a: Sequence[bool], b: Sequence[bool]) -> int:
    assert len(a) == len(b), "bit vectors must have equal length"
    return sum(1 for x, y in zip(a, b) if x != y)


def is_subsequence(needle: Sequence[bool], haystack: Sequence[bool]) -> bool:
    """True when ``needle`` appears as a contiguous run inside ``haystack``."""
    n, m = len(needle), len(haystack)
    if n == 0:
        return True
    if n > m:
        return False
    needle = list(needle)
    return any(list(haystack[i:i + n]) == needle for i in range(m - n + 1))


def closest_windows(needle: Sequence[bool], haystack: Sequence[bool]) -> list[int]:
    """Start offsets of every window of ``haystack`` at minimum Hamming distance to ``needle``."""
    n, m = len(needle), len(haystack)
    assert 0 < n <= m, "needle must be non-empty and fit inside haystack"
    distances = [hamming(needle, haystack[i:i + n]) for i in range(m - n + 1)]
    best = min(distances)
    return [i for i, d in enumerate(distances) if d == best]


def flip_toward(
    rng: random.Random, target: Sequence[bool], bits: list[bool]
) -> int | None:
    """Flip one bit of ``bits`` so the closest window moves one step toward ``target``.

    Picks a window at minimum Hamming distance (seeded choice among ties), then a
    differing position inside it (seeded choice). Returns the flipped index, or
    None when ``target`` is already covered.
    """
    start = rng.choice(closest_windows(target, bits))
    differing = [
        start + j for j, wanted in enumerate(target) if bits[start + j] != wanted
    ]
    if not differing:
        return None
    idx = rng.choice(differing)
    bits[idx] = target[idx - start]
    return idx


def crossover(rng: random.Random, a: Sequence[bool], b: Sequence[bool]) -> list[bool]:
    """Uniform crossover: each position taken from either parent with equal odds."""
    assert len(a) == len(b), "parents must carry vectors of equal length"
    return [x if rng.random() < 0.5 else y for x, y in zip(a, b)]


def majority(bits: Sequence[bool], tie: bool) -> bool:
    ones = sum(1 for b in bits if b)
    zeros = len(bits) - ones
    if ones == zeros:
        return tie
    return ones > zeros
