import polars as pl
from typing import List, Optional, Tuple

from worldtick.engine.interfaces import EngineContext
from worldtick.engine.simulator import Engine
from worldtick.server.io.exporter import DataExporter
from worldtick.server.io.loader import ScenarioLoader
from worldtick.server.state import Operation, WorldState
from worldtick.shared.config import GameConfig
from worldtick.shared.events import ActionEffect

class GameSession:
    """
    The 'Host' of a running world. It manages the lifecycle of the simulation.

    Responsibilities:
    1. Ownership: Holds the current snapshot; each tick replaces it wholesale.
    2. Loop: Serializes ticks so no two ever run against the same snapshot.
    3. Intake: Buffers operations from the action layer until the next tick.
    4. History: Keeps every effect, tagged with the turn that produced it.
    """
    def __init__(self, state: WorldState, now: str = "", engine: Optional[Engine] = None):
        self.state = state
        self.now = now
        self.engine = engine or Engine()

        # We buffer operations received from the action layer and enqueue them
        # all at once right before the next tick.
        self.operation_queue: List[Operation] = []
        self.history: List[Tuple[int, ActionEffect]] = []

    @classmethod
    def from_scenario(cls, config: GameConfig, name: str) -> "GameSession":
        scenario = ScenarioLoader(config).load(name)
        return cls(scenario.state, now=scenario.start_date)

    def receive_operation(self, operation: Operation):
        """
        Endpoint for the upstream action layer. The engine trusts that the
        operation is already well-formed.
        """
        self.operation_queue.append(operation)

    def tick(self) -> List[ActionEffect]:
        """Advances the world by one week and returns that week's effects."""
        if self.operation_queue:
            self.state.operations = [*self.state.operations, *self.operation_queue]
            self.operation_queue.clear()

        turn = self.state.turn_index
        ctx = EngineContext(turn_index=turn, turn_seed=self.state.turn_seed, now=self.now)
        result = self.engine.tick_week(self.state, ctx)

        self.state = result.next_state
        self.history.extend((turn, effect) for effect in result.effects)
        return result.effects

    def advance(self, weeks: int = 1) -> List[ActionEffect]:
        """Runs several ticks back to back. Returns the effects of all of them."""
        if weeks < 1:
            raise ValueError(f"Cannot advance by {weeks} weeks; expected at least 1.")

        produced: List[ActionEffect] = []
        for _ in range(weeks):
            produced.extend(self.tick())
        print(f"[GameSession] Advanced {weeks} week(s); now at turn {self.state.turn_index}.")
        return produced

    def get_state_snapshot(self) -> WorldState:
        """Returns the current snapshot (by reference; treat it as read-only)."""
        return self.state

    def effects_frame(self) -> pl.DataFrame:
        return DataExporter.effects_frame(self.history)
