from typing import List

from worldtick.engine.interfaces import ISystem, TickContext
from worldtick.server.state import TrajectoryModifier, WorldState


class TrajectorySystem(ISystem):
    """
    Ages timed trajectory modifiers.

    Each modifier loses one week; those reaching zero are dropped silently (no effect).
    Modifiers installed by this week's resolutions are appended afterwards at full
    duration: they start counting down next tick.
    """

    @property
    def id(self) -> str:
        return "base.trajectory"

    @property
    def dependencies(self) -> List[str]:
        # The ledger sums modifiers before they are aged; operations may stage new ones.
        return ["base.ledger", "base.operations"]

    def update(self, state: WorldState, tick: TickContext) -> None:
        kept: List[TrajectoryModifier] = []
        for mod in state.trajectory_modifiers:
            mod.remaining_weeks -= 1
            if mod.remaining_weeks > 0:
                kept.append(mod)

        kept.extend(tick.staged_modifiers)
        tick.staged_modifiers = []
        state.trajectory_modifiers = kept
