from typing import List

from worldtick.engine.interfaces import ISystem, TickContext
from worldtick.engine.mathutil import clamp, round_half_up
from worldtick.server.state import WorldState

RELATION_DECAY = 0.995


class RelationsSystem(ISystem):
    """
    Passive drift of every relation edge towards neutrality.
    Runs last, so event-driven pushes from this week's resolutions decay too.
    """

    @property
    def id(self) -> str:
        return "base.relations"

    @property
    def dependencies(self) -> List[str]:
        return ["base.operations"]

    def update(self, state: WorldState, tick: TickContext) -> None:
        for edge in state.relations.values():
            edge.value = int(clamp(round_half_up(edge.value * RELATION_DECAY), -100, 100))
