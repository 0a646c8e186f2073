import numpy as np
import pandas as pd
import pytest

from survey_seam.core.patching import (
    find_empty_cells, donor_cell, patch_empty_cells, PatchError,
)


def _cells(n, boundary=()):
    ids = list(range(1, n + 1))
    return pd.DataFrame({
        "cell_id": ids,
        "boundary": [i in boundary for i in ids],
        "depth": [100.0] * n,
        "area": [1.0] * n,
    })


def test_ten_cell_scenario():
    cells = _cells(10)
    props = pd.Series(
        [0.05, 0.10, 0.20, 0.15, np.nan, 0.10, 0.10, 0.10, 0.10, 0.10],
        index=pd.Index(range(1, 11), name="cell_id"),
    )
    res = patch_empty_cells(cells, props)
    out = res.proportions
    assert res.patched_cells == [5]
    assert res.floor == pytest.approx(0.05)
    assert res.donor == 3
    assert out[5] == pytest.approx(0.05)
    assert out[3] == pytest.approx(0.15)
    assert out.sum() == pytest.approx(1.0)
    assert (out > 0).all()
    # input untouched
    assert np.isnan(props[5])


def test_boundary_cells_not_patched():
    cells = _cells(4, boundary={4})
    props = pd.Series([0.6, np.nan, 0.4, np.nan], index=[1, 2, 3, 4])
    res = patch_empty_cells(cells, props)
    assert res.patched_cells == [2]
    assert res.proportions[4] == 0.0
    assert res.proportions.sum() == pytest.approx(1.0)


def test_tie_break_lowest_cell_id():
    props = pd.Series([0.1, 0.4, 0.1, 0.4], index=[7, 3, 9, 5])
    assert donor_cell(props) == 3


def test_cells_missing_from_vector_count_as_empty():
    cells = _cells(3)
    props = pd.DataFrame({"cell_id": [1, 2], "proportion": [0.25, 0.75]})
    assert find_empty_cells(cells, props) == [3]
    res = patch_empty_cells(cells, props)
    assert res.proportions.tolist() == pytest.approx([0.25, 0.5, 0.25])


def test_zero_proportion_is_patched():
    cells = _cells(3)
    props = pd.Series([0.0, 0.3, 0.7], index=[1, 2, 3])
    res = patch_empty_cells(cells, props)
    assert res.proportions[1] == pytest.approx(0.3)
    assert res.proportions[3] == pytest.approx(0.4)


def test_nothing_to_patch():
    cells = _cells(2)
    res = patch_empty_cells(cells, pd.Series([0.4, 0.6], index=[1, 2]))
    assert res.n_patched == 0
    assert res.donor is None


def test_no_positive_proportion_raises():
    cells = _cells(3)
    with pytest.raises(PatchError):
        patch_empty_cells(cells, pd.Series([np.nan, np.nan, np.nan], index=[1, 2, 3]))


def test_floor_capped_when_donor_too_small():
    # two floors of 0.5 cannot come out of a 0.5 donor
    cells = _cells(4)
    res = patch_empty_cells(cells, pd.Series([0.5, 0.5, np.nan, np.nan], index=[1, 2, 3, 4]))
    out = res.proportions
    assert res.capped
    assert res.donor == 1
    assert res.floor == pytest.approx(0.5 / 3)
    assert out[[1, 3, 4]].tolist() == pytest.approx([0.5 / 3] * 3)
    assert out[2] == pytest.approx(0.5)
    assert out.sum() == pytest.approx(1.0)
    assert (out > 0).all()
