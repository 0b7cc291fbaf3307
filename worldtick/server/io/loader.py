import rtoml
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

from worldtick.server.io.codec import state_from_dict
from worldtick.server.state import WorldState
from worldtick.shared.config import GameConfig

@dataclass
class Scenario:
    name: str
    state: WorldState
    start_date: str = ""
    description: str = ""


class ScenarioLoader:
    """
    Acts as a 'Compiler' that transforms a human-readable scenario (TOML)
    into the engine's WorldState.

    File layout:
        [scenario]                 name, description, start_date, turn_index, turn_seed, player_nation_id
        [nations.<id>]             one table per nation
        [provinces.<id>]           one table per province
        [nation_trajectories.<id>] decade-scale growth biases
        [[relations]] [[operations]] [[trajectory_modifiers]] [[debt_instruments]] [[appointments]]

    The file is parsed with 'rtoml'. Field-level validation belongs to the
    upstream schema layer; this loader only rejects files it cannot turn
    into a world at all.
    """

    def __init__(self, config: GameConfig):
        self.config = config

    def load(self, name: str) -> Scenario:
        """Loads a scenario by name, honouring the mod load order."""
        path = self.config.get_scenario_path(name)
        if path is None:
            raise FileNotFoundError(f"Scenario '{name}' not found in {self.config.get_data_dirs()}")
        return self.load_file(path)

    def load_file(self, path: Path) -> Scenario:
        if not path.exists():
            raise FileNotFoundError(f"Scenario file not found: {path}")

        print(f"[ScenarioLoader] Compiling scenario from {path}...")
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = rtoml.load(f)
        except rtoml.TomlParsingError as e:
            print(f"[ScenarioLoader] Critical error reading {path}: {e}")
            raise ValueError(f"Malformed scenario file {path}: {e}") from e

        scenario = self.compile(data, default_name=path.stem)
        print(
            f"[ScenarioLoader] Compilation complete. "
            f"{len(scenario.state.nations)} nations, {len(scenario.state.provinces)} provinces, "
            f"{len(scenario.state.operations)} operations."
        )
        return scenario

    def compile(self, data: Dict[str, Any], default_name: str = "scenario") -> Scenario:
        """Turns parsed TOML content into a Scenario."""
        data = dict(data)
        header = data.pop("scenario", {}) or {}

        if not data.get("nations"):
            raise ValueError(f"Scenario '{header.get('name', default_name)}' defines no nations.")

        # The header carries the world-level scalars.
        for key in ("turn_index", "turn_seed", "player_nation_id"):
            if key in header:
                data.setdefault(key, header[key])

        return Scenario(
            name=header.get("name", default_name),
            state=state_from_dict(data),
            start_date=str(header.get("start_date", "")),
            description=header.get("description", ""),
        )
