import json
from pathlib import Path
from typing import List, Optional

class GameConfig:
    """
    Central configuration handler for the project.

    Responsibilities:
    1. Resolve file paths (removing hardcoded strings from other files).
    2. Manage the list of active modules (read from mods.json).
    3. Define where to read scenarios from (Load Order) and where to write outputs.
    """
    def __init__(self, project_root: Path):
        self.project_root = project_root

        # Standard directory structure
        self.modules_dir = project_root / "modules"
        self.cache_dir = project_root / ".cache"
        self.output_dir = project_root / "user_data" / "output"
        self.mods_file = project_root / "mods.json"

        # Default load order (can be overridden by mods.json)
        self.active_mods: List[str] = ["base"]
        self._load_mods_manifest()

    def _load_mods_manifest(self):
        """Attempts to read the load order from mods.json."""
        if not self.mods_file.exists():
            return

        try:
            with open(self.mods_file, 'r', encoding='utf-8') as f:
                data = json.load(f)
                # Expected format: {"active_mods": ["base", "my_mod"]}
                if "active_mods" in data and isinstance(data["active_mods"], list):
                    self.active_mods = data["active_mods"]
                    print(f"[Config] Loaded mod order: {self.active_mods}")
        except (OSError, ValueError) as e:
            print(f"[Config] Warning: Failed to parse mods.json: {e}")

    def get_data_dirs(self) -> List[Path]:
        """
        Returns a list of data directories for all active mods, in load order.
        """
        paths = []
        for mod in self.active_mods:
            p = self.modules_dir / mod / "data"
            if p.exists():
                paths.append(p)
        return paths

    def get_scenario_path(self, name: str) -> Optional[Path]:
        """
        Finds a scenario file by name (without extension).
        Searches in reverse order so later mods override earlier ones.
        """
        for data_dir in reversed(self.get_data_dirs()):
            candidate = data_dir / "scenarios" / f"{name}.toml"
            if candidate.exists():
                return candidate
        return None

    def list_scenarios(self) -> List[str]:
        names = set()
        for data_dir in self.get_data_dirs():
            scenarios_dir = data_dir / "scenarios"
            if scenarios_dir.exists():
                names.update(p.stem for p in scenarios_dir.glob("*.toml"))
        return sorted(names)

    def get_output_dir(self) -> Path:
        """Directory for effect logs and exported tables. Created on demand."""
        self.output_dir.mkdir(parents=True, exist_ok=True)
        return self.output_dir
