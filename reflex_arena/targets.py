from __future__ import annotations

import random
from collections.abc import Iterable

DEFAULT_MAX_ATTEMPTS = 40
NARROW_LAYOUT_MAX_WIDTH_PX = 540


def grid_for_width(width_px: int) -> tuple[int, int]:
    """Return (cols, rows): 4x4 on narrow windows, 5x5 otherwise."""

    if width_px <= NARROW_LAYOUT_MAX_WIDTH_PX:
        return (4, 4)
    return (5, 5)


class TargetSelector:
    """Seeded picker for the active and hazard tiles.

    Uses bounded rejection sampling rather than sampling from the allowed
    set directly. After max_attempts rejected draws it gives back `previous`,
    which keeps a one-cell grid from looping forever.
    """

    def __init__(self, *, seed: int, max_attempts: int = DEFAULT_MAX_ATTEMPTS) -> None:
        if max_attempts <= 0:
            raise ValueError("max_attempts must be > 0")
        self._rng = random.Random(int(seed))
        self._max_attempts = int(max_attempts)

    def pick(self, previous: int, excluded: Iterable[int], cell_count: int) -> int:
        if cell_count <= 0:
            raise ValueError("cell_count must be > 0")
        disallow = {previous, *excluded}
        nxt = previous
        for _ in range(self._max_attempts):
            nxt = self._rng.randrange(cell_count)
            if nxt not in disallow:
                return nxt
        if 0 <= previous < cell_count:
            return previous
        # previous is -1 before the first spawn; the last draw is still in range.
        return nxt

    def spawn(self, previous: int, cell_count: int, hazard_chance: float) -> tuple[int, int | None]:
        """Pick the next active tile and, with probability hazard_chance, a hazard tile."""

        active = self.pick(previous, (), cell_count)
        hazard: int | None = None
        if hazard_chance > 0.0 and self._rng.random() < hazard_chance:
            hazard = self.pick(active, (active,), cell_count)
            if hazard == active:
                hazard = None
        return active, hazard
