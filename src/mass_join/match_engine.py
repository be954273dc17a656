from __future__ import annotations

import time
from dataclasses import asdict, dataclass
from typing import Optional, Tuple

import numpy as np
import pandas as pd

from .join import JOIN_TYPES, JoinResult, join
from .lcms_utils import SchemaConfig, normalize_schema, sort_by_key


@dataclass
class JoinConfig:
    """Configuration for joining two feature tables on one numeric key."""

    key: str = "MZ"
    # Absolute tolerance in key units, plus an optional relative part in ppm.
    tolerance: float = 0.0
    ppm: float = 0.0
    how: str = "outer"  # "outer" | "left" | "right" | "inner"
    id_col: Optional[str] = None
    suffixes: Tuple[str, str] = ("_1", "_2")
    nomatch: int = -1


@dataclass
class TableJoinResult:
    """Container for table join results."""

    joined: pd.DataFrame
    how: str
    execution_time: float
    parameters: dict[str, object]
    metrics: dict[str, float]


class JoinEngine:
    """Join feature tables by walking their sorted key columns."""

    def join_tables(
        self,
        ds1: pd.DataFrame,
        ds2: pd.DataFrame,
        config: Optional[JoinConfig] = None,
    ) -> TableJoinResult:
        """
        Join two tables on `config.key` within tolerance.

        Parameters:
        -----------
        ds1, ds2 : pd.DataFrame
            Input tables; need not be sorted, rows are sorted by key internally.
        config : JoinConfig

        Returns:
        --------
        TableJoinResult whose `joined` table has one row per join record with
        columns id1, id2, <key>_1, <key>_2, diff, ppm_diff and the remaining
        columns of both tables (suffixed on collision).
        """
        cfg = config or JoinConfig()
        if cfg.how not in JOIN_TYPES:
            raise ValueError(f"Unsupported join type {cfg.how!r}; expected one of {JOIN_TYPES}")
        self._validate_input(ds1, ds2, cfg.key)

        schema = SchemaConfig(key_col=cfg.key, id_col=cfg.id_col)
        t1 = sort_by_key(normalize_schema(ds1, schema))
        t2 = sort_by_key(normalize_schema(ds2, schema))

        start_time = time.time()
        res = join(
            t1["key"].to_numpy(dtype=float),
            t2["key"].to_numpy(dtype=float),
            tolerance=cfg.tolerance,
            ppm=cfg.ppm,
            how=cfg.how,
            nomatch=cfg.nomatch,
            check=False,
        )
        execution_time = time.time() - start_time

        joined = self._assemble(t1, t2, res, cfg)
        metrics = self._calculate_metrics(joined, ds1, ds2)

        return TableJoinResult(
            joined=joined,
            how=cfg.how,
            execution_time=execution_time,
            parameters=asdict(cfg),
            metrics=metrics,
        )

    def _validate_input(self, ds1: pd.DataFrame, ds2: pd.DataFrame, key: str) -> None:
        """Validate input tables."""
        for i, ds in enumerate([ds1, ds2], 1):
            if key not in ds.columns:
                raise ValueError(f"Dataset {i} missing key column: {key!r}")
            if pd.to_numeric(ds[key], errors="coerce").isna().any():
                raise ValueError(f"Dataset {i} contains missing or non-numeric values in {key!r}")

    def _assemble(
        self, t1: pd.DataFrame, t2: pd.DataFrame, res: JoinResult, cfg: JoinConfig
    ) -> pd.DataFrame:
        pos1 = _positions(res.x, cfg.nomatch)
        pos2 = _positions(res.y, cfg.nomatch)

        side1 = _take(t1, pos1)
        side2 = _take(t2, pos2)
        s1, s2 = cfg.suffixes

        out = pd.DataFrame(
            {
                "id1": side1["id"].array,
                "id2": side2["id"].array,
                f"{cfg.key}{s1}": side1["key"].to_numpy(dtype=float),
                f"{cfg.key}{s2}": side2["key"].to_numpy(dtype=float),
            }
        )
        k1 = out[f"{cfg.key}{s1}"].to_numpy(dtype=float)
        k2 = out[f"{cfg.key}{s2}"].to_numpy(dtype=float)
        out["diff"] = np.abs(k1 - k2)
        with np.errstate(divide="ignore", invalid="ignore"):
            out["ppm_diff"] = out["diff"].to_numpy() / k1 * 1e6

        drop = sorted({"id", "key", cfg.key})
        rest1 = side1.drop(columns=drop)
        rest2 = side2.drop(columns=drop)
        # Suffix columns shared by both tables or clashing with the join columns.
        reserved = set(out.columns)
        shared = set(rest1.columns) & set(rest2.columns)
        rest1 = rest1.rename(columns={c: f"{c}{s1}" for c in rest1.columns if c in shared | reserved})
        rest2 = rest2.rename(columns={c: f"{c}{s2}" for c in rest2.columns if c in shared | reserved})
        return pd.concat([out, rest1, rest2], axis=1)

    def _calculate_metrics(
        self, joined: pd.DataFrame, ds1: pd.DataFrame, ds2: pd.DataFrame
    ) -> dict[str, float]:
        """Calculate join summary metrics."""
        matched = joined["id1"].notna() & joined["id2"].notna()
        n_matched = int(matched.sum())
        return {
            "n_rows": int(len(joined)),
            "n_matched": n_matched,
            "coverage_ds1": n_matched / len(ds1) if len(ds1) > 0 else 0.0,
            "coverage_ds2": n_matched / len(ds2) if len(ds2) > 0 else 0.0,
            "mean_diff": float(joined.loc[matched, "diff"].mean()) if n_matched else np.nan,
        }


def _positions(values, nomatch: int) -> np.ndarray:
    """Join indices as int64 with -1 for no match."""
    if isinstance(values, pd.api.extensions.ExtensionArray):
        return np.asarray(values.fillna(-1), dtype=np.int64)
    values = np.asarray(values, dtype=np.int64)
    return np.where(values == nomatch, -1, values)


def _take(table: pd.DataFrame, pos: np.ndarray) -> pd.DataFrame:
    """Rows at `pos`; -1 yields an all-missing row."""
    taken = table.reindex(pos).reset_index(drop=True)
    taken["id"] = taken["id"].convert_dtypes()
    return taken


def load_table(
    file_path: str,
    key_col: str = "MZ",
    **read_csv_kwargs: object,
) -> pd.DataFrame:
    """
    Load a feature table and drop rows without a join key.

    Parameters:
    -----------
    file_path : str
        Path to input file (.csv, or .tsv read tab-separated)
    key_col : str
        Column name of the join key; rows without a key are dropped
    **read_csv_kwargs : additional arguments for pd.read_csv
    """
    if str(file_path).endswith(".tsv") and "sep" not in read_csv_kwargs:
        read_csv_kwargs["sep"] = "\t"
    df = pd.read_csv(file_path, **read_csv_kwargs)
    if key_col not in df.columns:
        raise ValueError(f"{file_path}: missing key column {key_col!r}")
    return df.dropna(subset=[key_col]).reset_index(drop=True)


# Convenience function for direct usage
def quick_join(
    ds1: pd.DataFrame,
    ds2: pd.DataFrame,
    **kwargs: object,
) -> pd.DataFrame:
    """
    Quick table join with keyword arguments forwarded to `JoinConfig`.
    """
    engine = JoinEngine()
    return engine.join_tables(ds1, ds2, JoinConfig(**kwargs)).joined
