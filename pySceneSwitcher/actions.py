"""Inbound action tokens.

Raw tokens are parsed once into an :class:`Action`: a closed variant
over :class:`~pySceneSwitcher.enums.ActionKind`.  Named tokens map to
their kind.  Signed decimal integers are the numeric fallback:
``"3"`` activates scene 3 (``SCENE``), ``"-3"`` presets scene 3
(``PRESET``).  Anything else is unrecognized and yields ``None``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Dict, Optional, Union

from pySceneSwitcher.enums import ActionKind, Direction

_NUMERIC_TOKEN = re.compile(r"^[+-]?\d+$")

_TOKENS: Dict[str, ActionKind] = {
    kind.value: kind
    for kind in ActionKind
    if kind not in (ActionKind.SCENE, ActionKind.PRESET)
}

#: Actions naming a specific destination scene.  They use the targeted
#: side-effect window.
TARGETED_KINDS = frozenset({
    ActionKind.FIRST,
    ActionKind.LAST,
    ActionKind.DEFAULT,
    ActionKind.SCENE,
})

#: Step size of the relative actions.
RELATIVE_STEPS: Dict[ActionKind, int] = {
    ActionKind.NEXT: 1,
    ActionKind.PREVIOUS: -1,
    ActionKind.NEXT2: 2,
    ActionKind.PREVIOUS2: -2,
}

#: Direction of the auto-cycle start actions.
AUTOCYCLE_DIRECTIONS: Dict[ActionKind, int] = {
    ActionKind.AUTO_FORWARDS: Direction.FORWARD,
    ActionKind.AUTO_BACKWARDS: Direction.BACKWARD,
    ActionKind.AUTO_RANDOM: Direction.RANDOM,
}

#: Taps registered by the multi-tap actions.
TAP_COUNTS: Dict[ActionKind, int] = {
    ActionKind.TAP: 1,
    ActionKind.DOUBLE_TAP: 2,
}


@dataclass(frozen=True)
class Action:
    """A parsed inbound action.

    ``value`` is only meaningful for ``SCENE`` (the scene number, which
    may be out of range) and ``PRESET`` (the absolute scene number).
    """

    kind: ActionKind
    value: Optional[int] = None

    @property
    def is_targeted(self) -> bool:
        return self.kind in TARGETED_KINDS

    def __str__(self) -> str:
        if self.kind == ActionKind.SCENE:
            return str(self.value)
        if self.kind == ActionKind.PRESET:
            return f"-{self.value}"
        return self.kind.value


def parse_action(token: Union[str, int, Action]) -> Optional[Action]:
    """Parse a raw token.  Returns ``None`` for unrecognized tokens."""
    if isinstance(token, Action):
        return token
    if isinstance(token, bool):
        return None
    if isinstance(token, int):
        return _numeric(token)

    text = str(token).strip()
    kind = _TOKENS.get(text)
    if kind is not None:
        return Action(kind)
    if _NUMERIC_TOKEN.match(text):
        return _numeric(int(text))
    return None


def _numeric(number: int) -> Action:
    if number < 0:
        return Action(ActionKind.PRESET, -number)
    return Action(ActionKind.SCENE, number)
