"""Small factories for hand-built worlds used by tests and ad-hoc experiments."""

from typing import Any, Optional

from worldtick.engine.interfaces import EngineContext
from worldtick.server.state import NationState, Operation, ProvinceState, WorldState
from worldtick.shared.operations import params_from_meta


def make_nation(nation_id: str, **overrides: Any) -> NationState:
    values = dict(
        gdp=4_000_000,
        tax_rate=0.3,
        tax_capacity=0.6,
        compliance=0.7,
        treasury=80_000,
        debt=100_000,
        stability=55,
        legitimacy=50,
        population=3_000_000,
        literacy=0.25,
        admin_capacity=30,
        corruption=0.3,
        manpower_pool=30_000,
        force_size=12,
        readiness=0.35,
        supply=0.6,
        war_exhaustion=8,
        tech_level_mil=25,
    )
    values.update(overrides)
    return NationState(nation_id=nation_id, **values)


def make_province(province_id: str, nation_id: str, **overrides: Any) -> ProvinceState:
    values = dict(
        population=100_000,
        productivity=1.0,
        infrastructure=1.0,
        unrest=5,
        compliance_local=0.8,
        garrison=200,
    )
    values.update(overrides)
    return ProvinceState(province_id=province_id, nation_id=nation_id, **values)


def make_operation(
    operation_id: str,
    kind: str,
    nation_id: str,
    remaining_weeks: int = 1,
    target_nation_id: Optional[str] = None,
    meta: Optional[dict] = None,
    **budget: Any,
) -> Operation:
    return Operation(
        operation_id=operation_id,
        nation_id=nation_id,
        remaining_weeks=remaining_weeks,
        params=params_from_meta(kind, meta or {}),
        target_nation_id=target_nation_id,
        **budget,
    )


def make_world(*nations: NationState, player: Optional[str] = None, seed: int = 123, turn: int = 0) -> WorldState:
    world = WorldState(turn_index=turn, turn_seed=seed)
    for nation in nations:
        world.nations[nation.nation_id] = nation
    world.player_nation_id = player if player is not None else (nations[0].nation_id if nations else "")
    return world


def context_for(world: WorldState, now: str = "1492-08-01") -> EngineContext:
    return EngineContext(turn_index=world.turn_index, turn_seed=world.turn_seed, now=now)
