import numpy as np
import pandas as pd
import pytest

from mass_join import JoinConfig, JoinEngine
from mass_join.match_engine import load_table, quick_join


def _toy_tables() -> tuple[pd.DataFrame, pd.DataFrame]:
    study_a = pd.DataFrame(
        {
            "MZ": [100.0, 200.0, 300.0],
            "RT": [1.0, 2.0, 3.0],
            "Intensity": [1000.0, 2000.0, 3000.0],
        }
    )
    # Unsorted on purpose; row labels must survive the internal sort.
    study_b = pd.DataFrame(
        {
            "MZ": [300.005, 100.002, 250.0],
            "RT": [3.1, 1.1, 2.5],
        }
    )
    return study_a, study_b


def test_join_tables_outer_maps_back_to_row_labels():
    study_a, study_b = _toy_tables()
    res = JoinEngine().join_tables(study_a, study_b, JoinConfig(tolerance=0.01))
    joined = res.joined

    assert len(joined) == 4
    pairs = joined.dropna(subset=["id1", "id2"])
    assert sorted(zip(pairs["id1"].astype(int), pairs["id2"].astype(int))) == [(0, 1), (2, 0)]
    assert {"MZ_1", "MZ_2", "RT_1", "RT_2", "Intensity", "diff", "ppm_diff"} <= set(joined.columns)
    assert np.allclose(pairs["diff"].to_numpy(dtype=float), [0.002, 0.005])

    assert res.metrics["n_matched"] == 2
    assert res.metrics["coverage_ds1"] == pytest.approx(2 / 3)
    assert res.parameters["tolerance"] == 0.01
    assert res.how == "outer"


def test_join_tables_left_has_one_row_per_ds1_row():
    study_a, study_b = _toy_tables()
    res = JoinEngine().join_tables(study_a, study_b, JoinConfig(tolerance=0.01, how="left"))
    assert len(res.joined) == len(study_a)
    assert res.joined["id1"].tolist() == [0, 1, 2]
    assert res.joined["id2"].isna().tolist() == [False, True, False]


def test_join_tables_right_has_one_row_per_ds2_row():
    study_a, study_b = _toy_tables()
    res = JoinEngine().join_tables(study_a, study_b, JoinConfig(tolerance=0.01, how="right"))
    joined = res.joined

    # ds2 sorted by MZ: 100.002 (row 1), 250.0 (row 2), 300.005 (row 0).
    assert len(joined) == len(study_b)
    assert joined["id2"].tolist() == [1, 2, 0]
    assert joined["id1"].isna().tolist() == [False, True, False]
    assert res.metrics["coverage_ds2"] == pytest.approx(2 / 3)


def test_join_tables_suffixes_columns_clashing_with_join_columns():
    study_a, study_b = _toy_tables()
    study_a["diff"] = [0.1, 0.2, 0.3]
    study_b["id2"] = ["p", "q", "r"]
    joined = JoinEngine().join_tables(study_a, study_b, JoinConfig(tolerance=0.01)).joined

    assert joined.columns.is_unique
    assert {"diff", "diff_1", "id2", "id2_2"} <= set(joined.columns)
    pairs = joined.dropna(subset=["id1", "id2"])
    assert np.allclose(pairs["diff"].to_numpy(dtype=float), [0.002, 0.005])


def test_join_tables_inner_and_ppm():
    study_a, study_b = _toy_tables()
    res = JoinEngine().join_tables(study_a, study_b, JoinConfig(ppm=25.0, how="inner"))
    # 25 ppm: 0.0025 Da at m/z 100 and 0.0075 Da at m/z 300.
    assert len(res.joined) == 2
    assert res.metrics["n_matched"] == 2


def test_join_tables_uses_id_column():
    study_a, study_b = _toy_tables()
    study_a["feature_id"] = ["a1", "a2", "a3"]
    study_b["feature_id"] = ["b1", "b2", "b3"]
    res = JoinEngine().join_tables(
        study_a, study_b, JoinConfig(tolerance=0.01, how="inner", id_col="feature_id")
    )
    assert list(zip(res.joined["id1"], res.joined["id2"])) == [("a1", "b2"), ("a3", "b1")]


def test_join_tables_validates_key_column():
    study_a, study_b = _toy_tables()
    with pytest.raises(ValueError, match="missing key column"):
        JoinEngine().join_tables(study_a, study_b.drop(columns=["MZ"]))

    study_b.loc[0, "MZ"] = np.nan
    with pytest.raises(ValueError, match="missing or non-numeric"):
        JoinEngine().join_tables(study_a, study_b)


def test_join_tables_rejects_unknown_type():
    study_a, study_b = _toy_tables()
    with pytest.raises(ValueError, match="join type"):
        JoinEngine().join_tables(study_a, study_b, JoinConfig(how="full"))


def test_quick_join_on_retention_time():
    study_a, study_b = _toy_tables()
    joined = quick_join(study_a, study_b, key="RT", tolerance=0.15, how="inner")
    assert joined["id1"].tolist() == [0, 2]
    assert joined["id2"].tolist() == [1, 0]


def test_load_table_reads_tsv_and_drops_missing_keys(tmp_path):
    path = tmp_path / "features.tsv"
    path.write_text("MZ\tRT\n100.0\t1.0\n\t2.0\n300.0\t3.0\n", encoding="utf-8")
    df = load_table(str(path))
    assert df["MZ"].tolist() == [100.0, 300.0]

    with pytest.raises(ValueError, match="missing key column"):
        load_table(str(path), key_col="mz")
