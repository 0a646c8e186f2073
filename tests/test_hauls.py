import numpy as np
import pandas as pd

from survey_seam.core.keys import TaxonKey
from survey_seam.core.hauls import zero_fill, drop_unlocated, normalize_hauls


def test_zero_fill_is_complete(world):
    out = normalize_hauls(world["hauls"], world["catch"], TaxonKey("POL", "A"))
    located = world["hauls"].dropna(subset=["lat", "lon", "depth"])
    # exactly one record per located master haul, no duplicates
    assert len(out) == len(located) == 8
    assert not out.duplicated(subset=["survey", "haul_id"]).any()
    assert set(out["haul_id"]) == set(located["haul_id"])
    # D4 had no POL record -> true zero
    assert out.set_index("haul_id").loc["D4", "cpue"] == 0.0


def test_zero_fill_keeps_unlocated_until_dropped(world):
    filled = zero_fill(world["hauls"], world["catch"], TaxonKey("POL", "A"))
    assert len(filled) == len(world["hauls"])
    assert filled["lat"].isna().sum() == 1
    assert len(drop_unlocated(filled)) == len(filled) - 1


def test_whole_taxon_key_matches_missing_stage(world):
    out = normalize_hauls(world["hauls"], world["catch"], TaxonKey("ATF"))
    by_haul = out.set_index("haul_id")["cpue"]
    assert by_haul["A1"] == 6.0
    assert by_haul["D3"] == 2.0
    assert by_haul["D1"] == 0.0
    assert out["stage"].isna().all()


def test_duplicate_catch_rows_summed_and_orphans_dropped():
    hauls = pd.DataFrame({
        "survey": ["AFSC", "AFSC"],
        "haul_id": [1, 2],
        "year": [2020, 2020],
        "lat": [54.0, 54.1],
        "lon": [-133.0, -133.0],
        "depth": [100.0, 100.0],
    })
    catch = pd.DataFrame({
        "survey": ["AFSC", "AFSC", "AFSC"],
        "haul_id": [1, 1, 99],
        "taxon": ["POL", "POL", "POL"],
        "stage": ["A", "A", "A"],
        "cpue": [3.0, 4.0, 50.0],
    })
    out = normalize_hauls(hauls, catch, TaxonKey("POL", "A"))
    assert len(out) == 2
    assert out.set_index("haul_id")["cpue"].to_dict() == {"1": 7.0, "2": 0.0}


def test_inputs_not_mutated(world):
    before_h = world["hauls"].copy()
    before_c = world["catch"].copy()
    normalize_hauls(world["hauls"], world["catch"], TaxonKey("POL", "A"))
    pd.testing.assert_frame_equal(world["hauls"], before_h)
    pd.testing.assert_frame_equal(world["catch"], before_c)


def test_other_stage_not_mixed_in(world):
    out = normalize_hauls(world["hauls"], world["catch"], TaxonKey("POL", "J"))
    assert len(out) == 8
    assert np.allclose(out["cpue"], 0.0)
