import argparse
from pathlib import Path

import polars as pl

from worldtick.server.io.exporter import DataExporter
from worldtick.server.session import GameSession
from worldtick.shared.config import GameConfig

PROJECT_ROOT = Path(__file__).parent

def main():
    parser = argparse.ArgumentParser(description="Headless weekly world-tick runner")
    parser.add_argument("scenario", nargs="?", default="europe_1492", help="Scenario name (without .toml)")
    parser.add_argument("--weeks", type=int, default=4, help="Number of weeks to simulate")
    parser.add_argument("--effects-out", default=None, help="Write the effect log (e.g. effects.parquet or effects.tsv)")
    args = parser.parse_args()

    config = GameConfig(PROJECT_ROOT)
    print(f"[Main] Available scenarios: {config.list_scenarios()}")

    session = GameSession.from_scenario(config, args.scenario)
    session.advance(args.weeks)

    with pl.Config(tbl_cols=-1, tbl_rows=50):
        print(DataExporter.nations_frame(session.get_state_snapshot()).select(
            ["nation_id", "gdp", "treasury", "debt", "stability", "legitimacy", "literacy", "compliance"]
        ))
        print(DataExporter.finance_summary(session.effects_frame()))

    if args.effects_out:
        DataExporter(config.get_output_dir()).save_effects(session.history, args.effects_out)

if __name__ == "__main__":
    main()
