"""Closest-match lookup with duplicate resolution.

For every element of a sorted `x` the nearest element of a sorted `y` is looked
up by binary search and accepted when it lies within the per-element tolerance.
Several x positions can end up claiming the same y position; the `duplicates`
policy decides who keeps it.
"""
from __future__ import annotations

from typing import Tuple

import numpy as np

from .lcms_utils import ArrayLike, as_float_array, as_tolerance


DUPLICATE_POLICIES = ("keep", "closest", "remove")


def nearest(x: np.ndarray, y: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """Index of the nearest `y` for each `x` and the absolute difference.

    Ties (equidistant left and right neighbours) resolve to the lower index.
    `y` must be non-empty.
    """
    pos = np.searchsorted(y, x, side="left")
    right = np.clip(pos, 0, y.size - 1)
    left = np.clip(pos - 1, 0, y.size - 1)
    d_right = np.abs(y[right] - x)
    d_left = np.abs(x - y[left])
    idx = np.where(d_right < d_left, right, left)
    return idx.astype(np.int64), np.minimum(d_left, d_right)


def closest(
    x: ArrayLike,
    y: ArrayLike,
    tolerance: ArrayLike = 0.0,
    nomatch: int = -1,
    duplicates: str = "keep",
) -> np.ndarray:
    """
    Match each element of `x` to its closest element of `y` within tolerance.

    Parameters:
    -----------
    x, y : array-like
        Increasingly sorted numeric sequences without missing values.
    tolerance : float or array-like
        Maximal accepted absolute difference, scalar or one value per `x`.
    nomatch : int
        Value reported for `x` elements without a match.
    duplicates : {"keep", "closest", "remove"}
        "keep" lets several `x` share one `y`; "closest" keeps the shared `y`
        only for the closest `x` (lowest index on ties); "remove" drops the
        match for every `x` that shares its `y`.

    Returns:
    --------
    np.ndarray of int64 with one `y` index (or `nomatch`) per `x` element.
    """
    if duplicates not in DUPLICATE_POLICIES:
        raise ValueError(
            f"Unsupported duplicates policy {duplicates!r}; expected one of {DUPLICATE_POLICIES}"
        )
    x = as_float_array(x, "x")
    y = as_float_array(y, "y")
    tol = as_tolerance(x, tolerance)

    res = np.full(x.size, int(nomatch), dtype=np.int64)
    if x.size == 0 or y.size == 0:
        return res

    idx, diff = nearest(x, y)
    matched = np.flatnonzero(diff <= tol)
    if matched.size == 0:
        return res
    res[matched] = idx[matched]

    if duplicates == "keep":
        return res

    claimed = idx[matched]
    if duplicates == "remove":
        counts = np.bincount(claimed, minlength=y.size)
        res[matched[counts[claimed] > 1]] = nomatch
        return res

    # "closest": order by (y index, difference, x index); the first per y wins
    order = np.lexsort((matched, diff[matched], claimed))
    ranked = matched[order]
    ranked_y = claimed[order]
    first = np.ones(ranked.size, dtype=bool)
    first[1:] = ranked_y[1:] != ranked_y[:-1]
    res[ranked[~first]] = nomatch
    return res
