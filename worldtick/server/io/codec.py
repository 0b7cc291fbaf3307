import dataclasses
import hashlib
from typing import Any, Dict, List, Type, TypeVar

import orjson

from worldtick.server.state import (
    TRAJECTORY_METRICS,
    AppointmentState,
    DebtInstrument,
    NationState,
    NationTrajectory,
    Operation,
    ProvinceState,
    RelationEdge,
    TrajectoryModifier,
    WorldState,
)
from worldtick.shared.events import ActionEffect
from worldtick.shared.operations import params_from_meta

T = TypeVar("T")

# Field names used by upstream exports that differ from ours.
_PROVINCE_ALIASES = {"geo_region_id": "province_id", "geo_region_key": "region_key"}


def _build(cls: Type[T], data: Dict[str, Any]) -> T:
    """Instantiates a dataclass from a dict, ignoring keys the class does not declare."""
    known = {f.name for f in dataclasses.fields(cls)}
    return cls(**{k: v for k, v in data.items() if k in known})


# =========================================================================
# SECTION: ENCODING (WorldState -> plain data)
# =========================================================================

def operation_to_dict(op: Operation) -> Dict[str, Any]:
    row: Dict[str, Any] = {
        "operation_id": op.operation_id,
        "type": op.type,
        "nation_id": op.nation_id,
        "remaining_weeks": op.remaining_weeks,
        "meta": op.params.to_meta(),
    }
    for key in ("target_nation_id", "budget_weekly", "budget_total", "remaining_budget"):
        value = getattr(op, key)
        if value is not None:
            row[key] = value
    return row


def state_to_dict(state: WorldState) -> Dict[str, Any]:
    """
    Converts a WorldState into JSON/TOML-friendly primitives.
    Relations become a list of edges; operations carry their tag in 'type' and
    their parameters in 'meta'.
    """
    return {
        "turn_index": state.turn_index,
        "turn_seed": state.turn_seed,
        "player_nation_id": state.player_nation_id,
        "nations": {nid: dataclasses.asdict(n) for nid, n in state.nations.items()},
        "provinces": {pid: dataclasses.asdict(p) for pid, p in state.provinces.items()},
        "relations": [dataclasses.asdict(edge) for edge in state.relations.values()],
        "operations": [operation_to_dict(op) for op in state.operations],
        "nation_trajectories": {
            nid: {k: v for k, v in dataclasses.asdict(traj).items() if v is not None}
            for nid, traj in state.nation_trajectories.items()
        },
        "trajectory_modifiers": [dataclasses.asdict(mod) for mod in state.trajectory_modifiers],
        "appointments": [dataclasses.asdict(a) for a in state.appointments],
        "debt_instruments": [dataclasses.asdict(d) for d in state.debt_instruments],
    }


def effect_to_dict(effect: ActionEffect) -> Dict[str, Any]:
    return dataclasses.asdict(effect)


# =========================================================================
# SECTION: DECODING (plain data -> WorldState)
# =========================================================================

def operation_from_dict(data: Dict[str, Any]) -> Operation:
    kind = data.get("type", "")
    try:
        params = params_from_meta(kind, data.get("meta"))
    except ValueError as e:
        raise ValueError(f"Operation '{data.get('operation_id')}': {e}") from e

    return Operation(
        operation_id=data["operation_id"],
        nation_id=data["nation_id"],
        remaining_weeks=data["remaining_weeks"],
        params=params,
        target_nation_id=data.get("target_nation_id"),
        budget_weekly=data.get("budget_weekly"),
        budget_total=data.get("budget_total"),
        remaining_budget=data.get("remaining_budget"),
    )


def _province_from_dict(province_id: str, data: Dict[str, Any]) -> ProvinceState:
    row = {_PROVINCE_ALIASES.get(k, k): v for k, v in data.items()}
    row.setdefault("province_id", province_id)
    return _build(ProvinceState, row)


def _modifier_from_dict(data: Dict[str, Any]) -> TrajectoryModifier:
    mod = _build(TrajectoryModifier, data)
    if mod.metric not in TRAJECTORY_METRICS:
        raise ValueError(f"Trajectory modifier '{mod.modifier_id}' has unknown metric '{mod.metric}'")
    return mod


def _trajectory_from_dict(nation_id: str, data: Dict[str, Any]) -> NationTrajectory:
    unknown = [k for k in data if k not in TRAJECTORY_METRICS]
    if unknown:
        raise ValueError(f"Trajectory for '{nation_id}' has unknown metrics: {unknown}")
    return _build(NationTrajectory, data)


def state_from_dict(data: Dict[str, Any]) -> WorldState:
    """
    Rebuilds a WorldState from primitives produced by state_to_dict (or a scenario file).

    Missing collections default to empty. A nation or province entry without an
    explicit id takes its mapping key. Duplicate relation edges collapse to the
    last one listed.
    """
    nations = {}
    for nid, row in (data.get("nations") or {}).items():
        row = dict(row)
        row.setdefault("nation_id", nid)
        nations[nid] = _build(NationState, row)

    provinces = {pid: _province_from_dict(pid, row) for pid, row in (data.get("provinces") or {}).items()}

    relations = {}
    for row in data.get("relations") or []:
        edge = _build(RelationEdge, row)
        relations[edge.key] = edge

    return WorldState(
        turn_index=int(data.get("turn_index", 0)),
        turn_seed=int(data.get("turn_seed", 0)),
        player_nation_id=data.get("player_nation_id", ""),
        nations=nations,
        provinces=provinces,
        relations=relations,
        operations=[operation_from_dict(row) for row in data.get("operations") or []],
        nation_trajectories={
            nid: _trajectory_from_dict(nid, row) for nid, row in (data.get("nation_trajectories") or {}).items()
        },
        trajectory_modifiers=[_modifier_from_dict(row) for row in data.get("trajectory_modifiers") or []],
        appointments=[_build(AppointmentState, row) for row in data.get("appointments") or []],
        debt_instruments=[_build(DebtInstrument, row) for row in data.get("debt_instruments") or []],
    )


# =========================================================================
# SECTION: CANONICAL BYTES
# =========================================================================

def dumps_state(state: WorldState, indent: bool = False) -> bytes:
    option = orjson.OPT_SORT_KEYS
    if indent:
        option |= orjson.OPT_INDENT_2
    return orjson.dumps(state_to_dict(state), option=option)


def loads_state(raw: bytes) -> WorldState:
    return state_from_dict(orjson.loads(raw))


def state_fingerprint(state: WorldState) -> str:
    """
    Stable digest of a snapshot. Two states with equal fingerprints are
    field-for-field identical, which is how replays are checked.
    """
    return hashlib.sha256(dumps_state(state)).hexdigest()


def effects_fingerprint(effects: List[ActionEffect]) -> str:
    payload = orjson.dumps([effect_to_dict(e) for e in effects], option=orjson.OPT_SORT_KEYS)
    return hashlib.sha256(payload).hexdigest()
