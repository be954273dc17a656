from __future__ import annotations

import warnings
from dataclasses import dataclass
from typing import Optional, Union

import numpy as np
import pandas as pd


ArrayLike = Union[float, int, np.ndarray, pd.Series, list, tuple]

TOLERANCE_LENGTH_MSG = "'tolerance' has to be of length 1 or length equal to 'length(x)'"


def ppm(x: ArrayLike, ppm: float) -> np.ndarray:
    """Parts-per-million of `x` (e.g. an m/z dependent tolerance)."""
    return np.asarray(x, dtype=float) * float(ppm) / 1e6


def as_float_array(values: ArrayLike, name: str = "x") -> np.ndarray:
    arr = np.asarray(values, dtype=float)
    if arr.ndim == 0:
        arr = arr.reshape(1)
    if arr.ndim != 1:
        raise ValueError(f"'{name}' must be a 1D numeric sequence.")
    return arr


def as_tolerance(x: ArrayLike, tolerance: ArrayLike, ppm_tol: float = 0.0) -> np.ndarray:
    """Return a per-element tolerance array aligned to `x`.

    A scalar (or length-1) tolerance is broadcast to ``len(x)``. An array must
    already have one value per element of `x`. The m/z dependent part
    ``ppm(x, ppm_tol)`` is added on top.
    """
    x = as_float_array(x, "x")
    tol = np.asarray(tolerance, dtype=float)
    if tol.ndim == 0 or tol.size == 1:
        tol = np.full(x.size, float(tol.reshape(-1)[0]))
    elif tol.ndim != 1 or tol.size != x.size:
        raise ValueError(TOLERANCE_LENGTH_MSG)
    else:
        tol = tol.astype(float, copy=True)

    if ppm_tol:
        tol = tol + ppm(x, ppm_tol)

    if tol.size and np.any(tol < 0):
        warnings.warn(
            "Negative tolerance values can never produce a match.",
            RuntimeWarning,
            stacklevel=2,
        )
    return tol


def is_sorted_increasingly(values: np.ndarray) -> bool:
    values = np.asarray(values, dtype=float)
    if values.size < 2:
        return True
    return bool(np.all(np.diff(values) >= 0))


def check_sorted(x: np.ndarray, y: np.ndarray) -> None:
    """Raise if `x` or `y` contains NaN or is not sorted increasingly."""
    for name, values in (("x", x), ("y", y)):
        values = np.asarray(values, dtype=float)
        if np.isnan(values).any() or not is_sorted_increasingly(values):
            raise ValueError(
                f"'{name}' has to be sorted increasingly and is not allowed to "
                "contain missing values."
            )


@dataclass(frozen=True)
class SchemaConfig:
    key_col: str = "MZ"
    id_col: Optional[str] = None


def normalize_schema(
    ds: pd.DataFrame,
    cfg: SchemaConfig,
) -> pd.DataFrame:
    """Return a copy with the join key under the canonical `key` column.

    Rows keep their original index labels; the `id` column carries either
    `cfg.id_col` or the index so positions can be mapped back after sorting.
    """
    df = ds.copy()
    key_src = cfg.key_col
    if key_src not in df.columns:
        raise ValueError(f"Input dataset must contain the key column {key_src!r}.")

    df["key"] = pd.to_numeric(df[key_src], errors="coerce").astype(float)
    if cfg.id_col and cfg.id_col in df.columns:
        df["id"] = df[cfg.id_col]
    else:
        df["id"] = df.index
    return df


def sort_by_key(df: pd.DataFrame) -> pd.DataFrame:
    """Stable sort on `key` with a fresh positional index."""
    order = np.argsort(df["key"].to_numpy(dtype=float), kind="stable")
    return df.iloc[order].reset_index(drop=True)
