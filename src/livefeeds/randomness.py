from __future__ import annotations

import random
from typing import Iterable, Optional, Protocol, Sequence

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


class RandomSource(Protocol):
    def random(self) -> float: ...

    def uniform(self, a: float, b: float) -> float: ...


def seeded(seed: Optional[int] = None) -> random.Random:
    return random.Random(seed)


class SequenceRandom:
    """Replay a fixed list of draws in [0, 1), cycling when exhausted."""

    def __init__(self, draws: Iterable[float]) -> None:
        self._draws: Sequence[float] = tuple(draws)
        if not self._draws:
            raise ValueError("SequenceRandom needs at least one draw.")
        for draw in self._draws:
            if not 0.0 <= draw < 1.0:
                raise ValueError(f"Draws must be in [0, 1); received {draw!r}.")
        self._index = 0
        self.calls = 0

    def random(self) -> float:
        draw = self._draws[self._index]
        self._index = (self._index + 1) % len(self._draws)
        self.calls += 1
        return draw

    def uniform(self, a: float, b: float) -> float:
        return a + (b - a) * self.random()


def make_record_id(prefix: str, now: float, sequence: int) -> str:
    """Build ``{prefix}_{epoch_ms}_{suffix}``; ``sequence`` keeps ids unique per engine."""
    value = sequence
    digits = []
    while True:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36[remainder])
        if not value:
            break
    suffix = "".join(reversed(digits)).rjust(9, "0")
    return f"{prefix}_{int(now * 1000)}_{suffix}"
