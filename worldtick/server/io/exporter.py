import dataclasses
import orjson
import polars as pl
from pathlib import Path
from typing import Iterable, List, Tuple

from worldtick.server.state import NationState, WorldState
from worldtick.shared.events import ActionEffect

# Scalar nation columns, in display order. Mapping-like fields (laws, mixes) are left out.
NATION_COLUMNS = [
    f.name for f in dataclasses.fields(NationState)
    if f.name not in ("laws", "institutions", "culture_mix", "religion_mix")
]

EFFECT_SCHEMA = {
    "turn_index": pl.Int64,
    "seq": pl.Int64,
    "effect_type": pl.Utf8,
    "nation_id": pl.Utf8,
    "operation_id": pl.Utf8,
    "delta": pl.Utf8,
    "audit": pl.Utf8,
}


class DataExporter:
    """
    Flattens engine output into Polars DataFrames and writes them to disk.

    The effect log is the engine's only output besides the next state, so it is
    the natural thing to diff between two replays. Payloads are kept as canonical
    JSON strings (orjson, sorted keys) so a frame can be compared row by row
    regardless of the effect type.
    """
    def __init__(self, output_dir: Path):
        self.output_dir = output_dir

    @staticmethod
    def effects_frame(tagged_effects: Iterable[Tuple[int, ActionEffect]]) -> pl.DataFrame:
        """
        Builds one row per effect.
        'tagged_effects' pairs each effect with the turn that produced it.
        """
        rows = []
        for seq, (turn_index, effect) in enumerate(tagged_effects):
            rows.append({
                "turn_index": turn_index,
                "seq": seq,
                "effect_type": effect.effect_type,
                "nation_id": effect.delta.get("nation_id"),
                "operation_id": effect.delta.get("operation_id"),
                "delta": orjson.dumps(effect.delta, option=orjson.OPT_SORT_KEYS).decode(),
                "audit": orjson.dumps(effect.audit, option=orjson.OPT_SORT_KEYS).decode(),
            })
        return pl.DataFrame(rows, schema=EFFECT_SCHEMA)

    @staticmethod
    def nations_frame(state: WorldState) -> pl.DataFrame:
        """Scalar columns of every nation, sorted by id."""
        # Cast to float so int/float mixes across nations share one dtype.
        rows = [
            {"nation_id": nid, **{col: float(getattr(state.nations[nid], col)) for col in NATION_COLUMNS[1:]}}
            for nid in state.sorted_nation_ids()
        ]
        if not rows:
            return pl.DataFrame()
        return pl.from_dicts(rows).with_columns(pl.lit(state.turn_index).alias("turn_index"))

    @staticmethod
    def finance_summary(effects_df: pl.DataFrame) -> pl.DataFrame:
        """
        Per-nation totals of the 'nation.weekly_finance' rows of an effect frame.
        """
        finance = effects_df.filter(pl.col("effect_type") == "nation.weekly_finance")
        if finance.is_empty():
            return pl.DataFrame()

        decoded = finance.with_columns([
            pl.col("delta").str.json_path_match(f"$.{key}").cast(pl.Float64).alias(key)
            for key in ("revenue", "spending", "balance")
        ])
        return (
            decoded.group_by("nation_id")
            .agg([
                pl.col("revenue").sum(),
                pl.col("spending").sum(),
                pl.col("balance").sum(),
                pl.len().alias("weeks"),
            ])
            .sort("nation_id")
        )

    def save_frame(self, df: pl.DataFrame, file_name: str) -> Path:
        """
        Writes a frame next to the other outputs. The format follows the extension:
        '.parquet' for archives, anything else as TSV for humans.
        """
        self.output_dir.mkdir(parents=True, exist_ok=True)
        target_path = self.output_dir / file_name
        if target_path.suffix == ".parquet":
            df.write_parquet(target_path)
        else:
            df.write_csv(target_path, separator="\t")
        print(f"[DataExporter] Saved {len(df)} rows to {target_path}")
        return target_path

    def save_effects(self, tagged_effects: List[Tuple[int, ActionEffect]], file_name: str = "effects.parquet") -> Path:
        return self.save_frame(self.effects_frame(tagged_effects), file_name)
