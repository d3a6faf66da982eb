"""
rng.py — Deterministic ordering for the auto-fill solver

mulberry32 seeded from a 31-multiplier string hash of the fiscal-year id.
Used only so the same fiscal year always yields the same processing order
(preview and commit agree, runs are auditable). Not for anything
security-sensitive.
"""

from typing import Callable, List, Sequence, TypeVar

T = TypeVar("T")

_MASK32 = 0xFFFFFFFF
_TWO_32 = 4294967296

Rng = Callable[[], float]


def _to_int32(value: int) -> int:
    value &= _MASK32
    return value - _TWO_32 if value >= 0x80000000 else value


def _imul(a: int, b: int) -> int:
    return (a * b) & _MASK32


def hash_string_to_seed(value: str) -> int:
    """Signed 32-bit hash: h = h*31 + code, per character."""
    h = 0
    for ch in value:
        h = (h * 31 + ord(ch)) & _MASK32
    return _to_int32(h)


def create_seeded_rng(seed: int) -> Rng:
    """Return a mulberry32 generator emitting floats in [0, 1)."""
    state = seed & _MASK32

    def rng() -> float:
        nonlocal state
        state = (state + 0x6D2B79F5) & _MASK32
        t = _imul(state ^ (state >> 15), 1 | state)
        t = ((t + _imul(t ^ (t >> 7), 61 | t)) & _MASK32) ^ t
        return ((t ^ (t >> 14)) & _MASK32) / _TWO_32

    return rng


def seeded_shuffle(items: Sequence[T], rng: Rng) -> List[T]:
    """Fisher–Yates shuffle of a copy of items; items is left untouched."""
    result = list(items)
    for i in range(len(result) - 1, 0, -1):
        j = int(rng() * (i + 1))
        result[i], result[j] = result[j], result[i]
    return result
