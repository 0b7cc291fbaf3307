import copy
from dataclasses import dataclass
from typing import List, Optional, Sequence

from worldtick.engine.interfaces import EngineContext, ISystem, TickContext
from worldtick.engine.rng import Mulberry32, tick_seed
from worldtick.server.state import WorldState
from worldtick.shared.events import ActionEffect


@dataclass
class TickResult:
    next_state: WorldState
    effects: List[ActionEffect]


class Engine:
    """
    The deterministic core of the simulation.

    Design Philosophy:
        The Engine is 'Functional' in nature.
        Input: State + Context (turn index, seed)
        Output: New State + Effect log

        It is completely decoupled from loading, saving and presentation.
        The caller's snapshot is deep-copied before anything runs, so the
        input is never mutated and a failed attempt leaves nothing behind.
    """

    def __init__(self, systems: Optional[Sequence[ISystem]] = None):
        if systems is None:
            from modules.base.registration import register
            systems = register()
        self.systems: List[ISystem] = list(systems)
        self._check_order(self.systems)

    @staticmethod
    def _check_order(systems: Sequence[ISystem]) -> None:
        """
        Stage order is fixed by registration. Each system may only depend on
        systems that run before it; anything else is a wiring error.
        """
        seen = set()
        for system in systems:
            if system.id in seen:
                raise ValueError(f"System '{system.id}' is registered twice.")
            missing = [dep for dep in system.dependencies if dep not in seen]
            if missing:
                raise ValueError(f"System '{system.id}' runs before its dependencies: {missing}")
            seen.add(system.id)

    def tick_week(self, state: WorldState, ctx: EngineContext) -> TickResult:
        """
        Advances the world by exactly one week.

        Args:
            state: The caller's snapshot. Left untouched.
            ctx: Turn index and seed; the RNG is derived from these alone.
        """
        # 1. Value semantics: work on a private copy.
        next_state = copy.deepcopy(state)

        # 2. One RNG stream for the whole tick.
        rng = Mulberry32(tick_seed(ctx.turn_seed, ctx.turn_index))

        if not next_state.player_nation_id and next_state.nations:
            next_state.player_nation_id = next_state.sorted_nation_ids()[0]

        tick = TickContext(ctx=ctx, rng=rng, player_nation_id=next_state.player_nation_id)

        # 3. Stages, in registration order.
        for system in self.systems:
            system.update(next_state, tick)

        # 4. Update Meta-State
        next_state.turn_index += 1

        return TickResult(next_state=next_state, effects=tick.effects)


_default_engine: Optional[Engine] = None


def tick_week(state: WorldState, ctx: EngineContext) -> TickResult:
    """Runs one tick with the base module's systems."""
    global _default_engine
    if _default_engine is None:
        _default_engine = Engine()
    return _default_engine.tick_week(state, ctx)
