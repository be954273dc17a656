import warnings

import numpy as np
import pandas as pd
import pytest

from mass_join import join, ppm
from mass_join.lcms_utils import as_tolerance, check_sorted


def _idx(values) -> list:
    return [None if pd.isna(v) else int(v) for v in values]


def test_join_outer_is_default():
    res = join([1.0, 2.0, 3.0], [1.1, 2.9], tolerance=0.2)
    assert res.how == "outer"
    assert list(zip(_idx(res.x), _idx(res.y))) == [(0, 0), (1, None), (2, 1)]


def test_join_left_and_inner():
    left = join([1.0, 2.0, 3.0], [1.1, 2.9], tolerance=0.2, how="left")
    assert _idx(left.y) == [0, None, 1]

    inner = join([1.0, 2.0, 3.0], [1.1, 2.9], tolerance=0.2, how="inner")
    assert inner.x.tolist() == [0, 2]
    assert inner.y.tolist() == [0, 1]


def test_join_right_returns_one_row_per_y():
    res = join([1.0, 2.0], [1.05], tolerance=0.1, how="right")
    assert res.how == "right"
    assert _idx(res.x) == [0]
    assert _idx(res.y) == [0]

    res = join([1.0, 2.0], [0.5, 1.05, 3.0], tolerance=0.1, how="right")
    assert _idx(res.y) == [0, 1, 2]
    assert _idx(res.x) == [None, 0, None]


def test_join_ppm_widens_tolerance():
    res = join([100.0], [100.0005], tolerance=0.0, ppm=10.0)
    assert list(zip(_idx(res.x), _idx(res.y))) == [(0, 0)]

    res = join([100.0], [100.0005], tolerance=0.0, ppm=1.0)
    assert len(res) == 2
    assert res.n_matched() == 0


def test_join_rejects_unsorted_or_missing_input():
    with pytest.raises(ValueError, match="sorted increasingly"):
        join([2.0, 1.0], [1.0], tolerance=0.1)
    with pytest.raises(ValueError, match="sorted increasingly"):
        join([1.0], [1.0, np.nan], tolerance=0.1)


def test_join_check_can_be_disabled():
    res = join([2.0, 1.0], [1.0], tolerance=0.1, check=False)
    assert len(res) >= 2


def test_join_rejects_unknown_type():
    with pytest.raises(ValueError, match="join type"):
        join([1.0], [1.0], how="cross")


def test_ppm_helper():
    assert np.allclose(ppm([100.0, 1000.0], 5.0), [0.0005, 0.005])


def test_as_tolerance_broadcasts_and_adds_ppm():
    tol = as_tolerance([100.0, 200.0], 0.01, 10.0)
    assert np.allclose(tol, [0.011, 0.012])
    assert np.allclose(as_tolerance([1.0, 2.0], [0.3]), [0.3, 0.3])


def test_as_tolerance_warns_on_negative_values():
    with pytest.warns(RuntimeWarning, match="Negative tolerance"):
        as_tolerance([1.0, 2.0], [-0.1, 0.1])


def test_as_tolerance_is_silent_for_valid_values():
    with warnings.catch_warnings():
        warnings.simplefilter("error")
        as_tolerance([1.0, 2.0], 0.0)


def test_check_sorted_accepts_ties_and_empty():
    check_sorted(np.array([1.0, 1.0, 2.0]), np.array([]))
