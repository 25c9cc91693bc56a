"""Scene range normalization.

Maps any integer scene request into ``[1, count]`` according to the
configured :class:`~pySceneSwitcher.enums.CycleMode`:

* ``circular``: one-based modulo, so ``0`` becomes ``count`` and
  ``count + 1`` becomes ``1`` (negative requests wrap as well).
* ``linear`` / ``linearReversing``: clamp to the nearest end.  Flipping
  the direction of a reversing auto-cycle is the caller's job.
"""

from __future__ import annotations

from pySceneSwitcher.enums import CycleMode


def normalize(requested: int, mode: CycleMode, count: int) -> int:
    """Return *requested* mapped into ``[1, count]`` under *mode*."""
    if count <= 1:
        return 1
    if mode == CycleMode.CIRCULAR:
        # Python's % is already non-negative for a positive divisor.
        return ((requested - 1) % count) + 1
    return max(1, min(count, requested))


def out_of_bounds(scene: int, count: int) -> bool:
    """Return ``True`` if *scene* lies outside ``[1, count]``."""
    return scene < 1 or scene > count
