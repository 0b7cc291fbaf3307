from pathlib import Path

import orjson
import pytest

from worldtick.engine.simulator import tick_week
from worldtick.server.io.codec import (
    dumps_state,
    loads_state,
    operation_from_dict,
    state_fingerprint,
    state_from_dict,
    state_to_dict,
)
from worldtick.server.io.loader import ScenarioLoader
from worldtick.server.state import AppointmentState, TrajectoryModifier
from worldtick.shared.config import GameConfig
from worldtick.shared.operations import FundProject, SpyOperation
from worldtick.testing.builders import context_for, make_nation, make_operation, make_province, make_world

PROJECT_ROOT = Path(__file__).resolve().parent.parent

MINIMAL_SCENARIO = """
[scenario]
name = "Two Courts"
start_date = "1500-01-01"
turn_seed = 7
player_nation_id = "north"

[nations.north]
gdp = 1000000
tax_rate = 0.3
tax_capacity = 0.6
compliance = 0.7

[nations.south]
gdp = 800000

[provinces.hills]
nation_id = "south"
unrest = 12

[[operations]]
operation_id = "op-1"
type = "fortify"
nation_id = "south"
remaining_weeks = 2
meta = { province_id = "hills", level_increase = 2 }
"""


# --- Codec ---

def test_state_survives_a_json_round_trip():
    world = make_world(make_nation("A", laws=["salic"]), make_nation("B"), seed=55, turn=9)
    world.provinces["p1"] = make_province("p1", "A", region_key="iberia-3", resources=["wool"])
    world.relation("A", "B").value = -12
    world.operations = [
        make_operation("op-1", "fund_project", "A", remaining_weeks=2, remaining_budget=400,
                       meta={"project_type": "schools", "province_id": "p1"}),
        make_operation("op-2", "spy_operation", "A", target_nation_id="B", meta={"objective": "court"}),
    ]
    world.trajectory_modifiers.append(TrajectoryModifier("m", "B", "gdp_growth_decade", 0.1, 4, source="event"))
    world.appointments.append(AppointmentState("chancellor", "ch-7", start_turn=3))

    restored = loads_state(dumps_state(world))

    assert restored == world
    assert state_fingerprint(restored) == state_fingerprint(world)


def test_operation_kind_is_carried_by_type_and_meta():
    world = make_world(make_nation("A"))
    world.operations = [make_operation("op-1", "fund_project", "A", meta={"province_id": "p1"})]
    [row] = state_to_dict(world)["operations"]

    assert row["type"] == "fund_project"
    assert row["meta"] == {"project_type": "infrastructure", "province_id": "p1"}
    assert "budget_total" not in row


def test_unknown_meta_keys_are_dropped_and_defaults_filled():
    op = operation_from_dict({
        "operation_id": "op-1",
        "type": "fund_project",
        "nation_id": "A",
        "remaining_weeks": 1,
        "meta": {"province_id": "p1", "sponsor": "guild"},
    })
    assert op.params == FundProject(project_type="infrastructure", province_id="p1")


def test_unknown_operation_type_is_rejected_with_its_id():
    with pytest.raises(ValueError, match="op-9"):
        operation_from_dict({"operation_id": "op-9", "type": "coronation", "nation_id": "A", "remaining_weeks": 1})


def test_unknown_trajectory_metric_is_rejected():
    with pytest.raises(ValueError):
        state_from_dict({"nation_trajectories": {"A": {"happiness_decade": 0.1}}})
    with pytest.raises(ValueError):
        state_from_dict({
            "trajectory_modifiers": [
                {"modifier_id": "m", "nation_id": "A", "metric": "happiness", "delta": 1, "remaining_weeks": 2}
            ]
        })


def test_duplicate_relation_edges_keep_the_last():
    state = state_from_dict({
        "relations": [
            {"from_nation_id": "A", "to_nation_id": "B", "value": 10},
            {"from_nation_id": "A", "to_nation_id": "B", "value": -40},
        ]
    })
    assert len(state.relations) == 1
    assert state.relations[("A", "B")].value == -40


def test_upstream_province_aliases_are_accepted():
    state = state_from_dict({
        "provinces": {"x": {"geo_region_id": "castilla", "geo_region_key": "es-cl", "nation_id": "A"}}
    })
    province = state.provinces["x"]
    assert province.province_id == "castilla"
    assert province.region_key == "es-cl"


def test_canonical_bytes_are_key_sorted():
    raw = dumps_state(make_world(make_nation("A")))
    data = orjson.loads(raw)
    assert list(data) == sorted(data)


def test_fingerprint_changes_with_any_field():
    world = make_world(make_nation("A"))
    other = make_world(make_nation("A", treasury=80_001))
    assert state_fingerprint(world) != state_fingerprint(other)


# --- Loader ---

def test_compile_reads_header_and_tables():
    scenario = ScenarioLoader(GameConfig(PROJECT_ROOT)).compile(
        {
            "scenario": {"name": "Test", "turn_seed": 11, "player_nation_id": "A", "start_date": "1500-01-01"},
            "nations": {"A": {"gdp": 1000}},
        }
    )
    assert scenario.name == "Test"
    assert scenario.start_date == "1500-01-01"
    assert scenario.state.turn_seed == 11
    assert scenario.state.player_nation_id == "A"
    assert scenario.state.nations["A"].nation_id == "A"


def test_compile_rejects_a_world_without_nations():
    with pytest.raises(ValueError):
        ScenarioLoader(GameConfig(PROJECT_ROOT)).compile({"scenario": {"name": "Empty"}})


def test_load_file_parses_toml(tmp_path):
    path = tmp_path / "two_courts.toml"
    path.write_text(MINIMAL_SCENARIO, encoding="utf-8")

    scenario = ScenarioLoader(GameConfig(tmp_path)).load_file(path)

    state = scenario.state
    assert scenario.name == "Two Courts"
    assert state.turn_seed == 7
    assert sorted(state.nations) == ["north", "south"]
    assert state.provinces["hills"].unrest == 12
    [op] = state.operations
    assert op.type == "fortify"
    assert op.params.level_increase == 2


def test_load_file_reports_malformed_toml(tmp_path):
    path = tmp_path / "broken.toml"
    path.write_text("[nations.a\ngdp = ", encoding="utf-8")
    with pytest.raises(ValueError):
        ScenarioLoader(GameConfig(tmp_path)).load_file(path)


def test_missing_scenario_raises_file_not_found(tmp_path):
    loader = ScenarioLoader(GameConfig(tmp_path))
    with pytest.raises(FileNotFoundError):
        loader.load("does_not_exist")
    with pytest.raises(FileNotFoundError):
        loader.load_file(tmp_path / "nope.toml")


def test_bundled_scenario_loads_and_ticks():
    config = GameConfig(PROJECT_ROOT)
    assert "europe_1492" in config.list_scenarios()

    scenario = ScenarioLoader(config).load("europe_1492")
    state = scenario.state

    assert state.player_nation_id == "castile"
    assert state.turn_seed == 1492
    assert {"castile", "portugal", "france"} <= set(state.nations)
    assert isinstance(state.operations[0].params, SpyOperation)

    result = tick_week(state, context_for(state))
    assert result.next_state.turn_index == state.turn_index + 1


# --- Config ---

def _write_mod(root, mod, scenario_name, body):
    scenarios = root / "modules" / mod / "data" / "scenarios"
    scenarios.mkdir(parents=True, exist_ok=True)
    (scenarios / f"{scenario_name}.toml").write_text(body, encoding="utf-8")


def test_later_mods_override_earlier_scenarios(tmp_path):
    _write_mod(tmp_path, "base", "shared", '[nations.a]\ngdp = 1\n')
    _write_mod(tmp_path, "extra", "shared", '[nations.b]\ngdp = 2\n')
    _write_mod(tmp_path, "extra", "only_extra", '[nations.c]\ngdp = 3\n')
    (tmp_path / "mods.json").write_text('{"active_mods": ["base", "extra"]}', encoding="utf-8")

    config = GameConfig(tmp_path)

    assert config.active_mods == ["base", "extra"]
    assert config.get_scenario_path("shared") == tmp_path / "modules" / "extra" / "data" / "scenarios" / "shared.toml"
    assert config.list_scenarios() == ["only_extra", "shared"]


def test_bad_mods_manifest_keeps_default_order(tmp_path, capsys):
    (tmp_path / "mods.json").write_text("{not json", encoding="utf-8")

    config = GameConfig(tmp_path)

    assert config.active_mods == ["base"]
    assert "[Config] Warning" in capsys.readouterr().out


def test_output_dir_is_created_on_demand(tmp_path):
    config = GameConfig(tmp_path)
    assert not config.output_dir.exists()
    assert config.get_output_dir().is_dir()
