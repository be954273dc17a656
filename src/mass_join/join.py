"""Tolerance-aware joins of two increasingly sorted numeric sequences.

The outer and left joins walk both sequences with one cursor each. Whenever the
current pair lies within tolerance the walk looks one step ahead on both sides
and only commits the pair if neither neighbour is closer. The closest-match
joins instead ask `closest()` for the best `y` per `x`.

Outer and left joins report missing partners as ``pd.NA`` in nullable
``Int64`` arrays. The closest-match joins use a caller-chosen integer `nomatch`
in plain ``int64`` arrays. The two conventions are independent.
"""
from __future__ import annotations

import enum
import math
from dataclasses import dataclass
from typing import List, Optional, Union

import numpy as np
import pandas as pd

from .closest import closest
from .lcms_utils import ArrayLike, as_float_array, as_tolerance, check_sorted


JOIN_TYPES = ("outer", "left", "right", "inner")


@dataclass
class JoinResult:
    """Two parallel index arrays: row `i` pairs ``x[i]`` with ``y[i]``."""

    x: Union[np.ndarray, pd.arrays.IntegerArray]
    y: Union[np.ndarray, pd.arrays.IntegerArray]
    how: str
    # Integer sentinel of the closest-match and diagonal joins; None means pd.NA.
    nomatch: Optional[int] = None

    def __post_init__(self) -> None:
        if len(self.x) != len(self.y):
            raise ValueError("x and y index arrays must have the same length.")

    def __len__(self) -> int:
        return len(self.x)

    def matched_mask(self, nomatch: Optional[int] = None) -> np.ndarray:
        """Rows where both sides point to a valid index."""
        if nomatch is None:
            nomatch = self.nomatch
        return ~(_missing(self.x, nomatch) | _missing(self.y, nomatch))

    def n_matched(self, nomatch: Optional[int] = None) -> int:
        return int(self.matched_mask(nomatch).sum())

    def to_frame(self) -> pd.DataFrame:
        return pd.DataFrame({"x": self.x, "y": self.y})


def _missing(values, nomatch: Optional[int]) -> np.ndarray:
    if isinstance(values, pd.api.extensions.ExtensionArray):
        return np.asarray(pd.isna(values))
    values = np.asarray(values)
    if nomatch is None:
        return np.zeros(values.shape, dtype=bool)
    return values == nomatch


def _index_array(values: List[Optional[int]]) -> pd.arrays.IntegerArray:
    return pd.array(values, dtype="Int64")


class _Lone(enum.Enum):
    """Which side the last emitted record holds on its own after a lookahead step."""

    NONE = 0
    X = 1
    Y = 2


def outer_join(x: ArrayLike, y: ArrayLike, tolerance: ArrayLike) -> JoinResult:
    """
    Outer join of two increasingly sorted arrays.

    Every position of `x` and of `y` appears exactly once in the result, paired
    with its match or with ``pd.NA``. Indices are 0-based.

    Parameters:
    -----------
    x, y : array-like
        Sorted increasingly, no missing values. Not validated.
    tolerance : float or array-like
        Accepted absolute difference, scalar or one value per `x` element.
    """
    x = as_float_array(x, "x")
    y = as_float_array(y, "y")
    tol = as_tolerance(x, tolerance)
    lx, ly = x.size, y.size

    rx: List[Optional[int]] = []
    ry: List[Optional[int]] = []
    xi = yi = 0
    lone = _Lone.NONE

    while xi < lx or yi < ly:
        if xi >= lx:
            rx.append(None)
            ry.append(yi)
            yi += 1
            continue
        if yi >= ly:
            rx.append(xi)
            ry.append(None)
            xi += 1
            continue

        idiff = abs(x[xi] - y[yi])
        if idiff <= tol[xi]:
            # Candidate pair: only commit when neither neighbour is closer.
            xdiff = abs(x[xi + 1] - y[yi]) if xi + 1 < lx else math.inf
            ydiff = abs(x[xi] - y[yi + 1]) if yi + 1 < ly else math.inf
            if xdiff < idiff or ydiff < idiff:
                if xdiff < ydiff:
                    if lone is _Lone.Y:
                        # y[j-1] was skipped for x[i]; x[i] goes to y[j-1] instead
                        rx[-1] = xi
                        lone = _Lone.NONE
                    else:
                        rx.append(xi)
                        ry.append(None)
                        lone = _Lone.X
                    xi += 1
                else:
                    if lone is _Lone.X:
                        ry[-1] = yi
                        lone = _Lone.NONE
                    else:
                        rx.append(None)
                        ry.append(yi)
                        lone = _Lone.Y
                    yi += 1
            else:
                rx.append(xi)
                ry.append(yi)
                lone = _Lone.NONE
                xi += 1
                yi += 1
        else:
            lone = _Lone.NONE
            if x[xi] <= y[yi]:
                rx.append(xi)
                ry.append(None)
                xi += 1
            else:
                rx.append(None)
                ry.append(yi)
                yi += 1

    return JoinResult(x=_index_array(rx), y=_index_array(ry), how="outer")


def left_join(x: ArrayLike, y: ArrayLike, tolerance: ArrayLike) -> JoinResult:
    """
    Left join optimized for increasingly ordered arrays.

    Returns exactly one row per `x` element. A `y` element is kept by at most
    one `x`: if a later `x` also matches an already used `y`, the earlier row
    loses it unless only `y` is about to advance.
    """
    x = as_float_array(x, "x")
    y = as_float_array(y, "y")
    tol = as_tolerance(x, tolerance)
    lx, ly = x.size, y.size

    ry: List[Optional[int]] = [None] * lx
    xi = yi = 0
    xi_last_used = yi_last_used = -1

    while xi < lx:
        if yi >= ly:
            # y exhausted, the rest of x stays unmatched
            xi += 1
            continue

        idiff = abs(x[xi] - y[yi])
        xdiff = abs(x[xi + 1] - y[yi]) if xi + 1 < lx else math.inf
        ydiff = abs(x[xi] - y[yi + 1]) if yi + 1 < ly else math.inf

        step_x = step_y = True
        if xdiff < idiff or ydiff < idiff:
            step_x = xdiff < ydiff
            step_y = not step_x

        if idiff <= tol[xi]:
            ry[xi] = yi
            # A Y-only step revisits x[xi] with the next y, so the earlier row
            # keeps y[yi]; any other step leaves y[yi] with x[xi].
            if yi == yi_last_used and xi > xi_last_used and step_x:
                ry[xi_last_used] = None
            xi_last_used, yi_last_used = xi, yi
        else:
            ry[xi] = None

        if step_x:
            xi += 1
        if step_y:
            yi += 1

    return JoinResult(
        x=_index_array(list(range(lx))), y=_index_array(ry), how="left"
    )


def outer_join_diagonal(
    x: ArrayLike, y: ArrayLike, tolerance: ArrayLike, nomatch: int = -1
) -> JoinResult:
    """Outer join that also compares against the diagonal neighbour pair.

    A single side only advances when its next element is closer than both the
    current pair and ``(x[i+1], y[j+1])``. One record is emitted per step.
    """
    x = as_float_array(x, "x")
    y = as_float_array(y, "y")
    tol = as_tolerance(x, tolerance)
    nx, ny = x.size, y.size

    rx = np.empty(nx + ny, dtype=np.int64)
    ry = np.empty(nx + ny, dtype=np.int64)
    i = ix = iy = 0

    while ix < nx or iy < ny:
        if ix >= nx:
            rx[i], ry[i] = nomatch, iy
            iy += 1
        elif iy >= ny:
            rx[i], ry[i] = ix, nomatch
            ix += 1
        else:
            diff = abs(x[ix] - y[iy])
            if diff <= tol[ix]:
                nxt_x = abs(x[ix + 1] - y[iy]) if ix + 1 < nx else math.inf
                nxt_y = abs(x[ix] - y[iy + 1]) if iy + 1 < ny else math.inf
                nxt_xy = (
                    abs(x[ix + 1] - y[iy + 1])
                    if ix + 1 < nx and iy + 1 < ny
                    else math.inf
                )
                if (nxt_x < diff and nxt_x < nxt_xy) or (nxt_y < diff and nxt_y < nxt_xy):
                    if nxt_x < nxt_y:
                        rx[i], ry[i] = ix, nomatch
                        ix += 1
                    else:
                        rx[i], ry[i] = nomatch, iy
                        iy += 1
                else:
                    rx[i], ry[i] = ix, iy
                    ix += 1
                    iy += 1
            elif x[ix] < y[iy]:
                rx[i], ry[i] = ix, nomatch
                ix += 1
            else:
                rx[i], ry[i] = nomatch, iy
                iy += 1
        i += 1

    return JoinResult(x=rx[:i].copy(), y=ry[:i].copy(), how="outer", nomatch=nomatch)


def left_join_closest(
    x: ArrayLike,
    y: ArrayLike,
    tolerance: ArrayLike,
    nomatch: int = -1,
    duplicates: str = "closest",
) -> JoinResult:
    """Left join using the closest `y` for each `x` (duplicates resolved)."""
    ry = closest(x, y, tolerance, nomatch=nomatch, duplicates=duplicates)
    return JoinResult(
        x=np.arange(ry.size, dtype=np.int64), y=ry, how="left", nomatch=nomatch
    )


def inner_join_closest(
    x: ArrayLike,
    y: ArrayLike,
    tolerance: ArrayLike,
    nomatch: int = -1,
    duplicates: str = "closest",
) -> JoinResult:
    """Inner join using the closest `y` for each `x`; unmatched rows are dropped."""
    ry = closest(x, y, tolerance, nomatch=nomatch, duplicates=duplicates)
    keep = np.flatnonzero(ry != nomatch).astype(np.int64)
    return JoinResult(x=keep, y=ry[keep], how="inner", nomatch=nomatch)


def join(
    x: ArrayLike,
    y: ArrayLike,
    tolerance: ArrayLike = 0.0,
    ppm: float = 0.0,
    how: str = "outer",
    nomatch: int = -1,
    check: bool = True,
) -> JoinResult:
    """
    Join two increasingly sorted numeric sequences within a tolerance.

    Parameters:
    -----------
    x, y : array-like
        Increasingly sorted values without missing values.
    tolerance : float or array-like
        Accepted absolute difference; scalar or one value per element of the
        left table (`x`, or `y` for ``how="right"``).
    ppm : float
        Additional m/z relative tolerance in parts-per-million of the left values.
    how : {"outer", "left", "right", "inner"}
    nomatch : int
        Sentinel for the inner join; outer/left/right use ``pd.NA``.
    check : bool
        Validate sortedness and absence of missing values first.
    """
    if how not in JOIN_TYPES:
        raise ValueError(f"Unsupported join type {how!r}; expected one of {JOIN_TYPES}")
    x = as_float_array(x, "x")
    y = as_float_array(y, "y")
    if check:
        check_sorted(x, y)

    if how == "right":
        res = left_join(y, x, as_tolerance(y, tolerance, ppm))
        return JoinResult(x=res.y, y=res.x, how="right")

    tol = as_tolerance(x, tolerance, ppm)
    if how == "outer":
        return outer_join(x, y, tol)
    if how == "left":
        return left_join(x, y, tol)
    return inner_join_closest(x, y, tol, nomatch=nomatch)
