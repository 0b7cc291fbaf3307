from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from worldtick.engine.rng import Mulberry32
from worldtick.server.state import TrajectoryModifier, WorldState
from worldtick.shared.events import ActionEffect


@dataclass
class EngineContext:
    """
    Caller-supplied inputs of one tick besides the state itself.
    'now' is an opaque calendar label; the engine carries it but never reads the clock.
    """
    turn_index: int
    turn_seed: int
    now: str = ""


@dataclass
class TickContext:
    """
    Scratchpad shared by all systems during a single tick.

    Holds the tick's only RNG stream and the effect list. Modifiers installed
    by operation resolutions are staged here and merged by the trajectory
    system, so they are not aged in the week they were created.
    """
    ctx: EngineContext
    rng: Mulberry32
    player_nation_id: str
    effects: List[ActionEffect] = field(default_factory=list)
    staged_modifiers: List[TrajectoryModifier] = field(default_factory=list)

    def emit(self, effect_type: str, delta: Dict[str, Any], audit: Optional[Dict[str, Any]] = None) -> ActionEffect:
        effect = ActionEffect(effect_type=effect_type, delta=delta, audit=audit or {})
        self.effects.append(effect)
        return effect


class ISystem(ABC):
    """
    One stage of the weekly tick.

    Systems run in the order the module registers them. A system may only
    declare dependencies on systems registered before it; the Engine refuses
    to start otherwise.
    """

    @property
    @abstractmethod
    def id(self) -> str:
        ...

    @property
    def dependencies(self) -> List[str]:
        return []

    @abstractmethod
    def update(self, state: WorldState, tick: TickContext) -> None:
        """Mutates the tick's working copy of the world in place."""
        ...
