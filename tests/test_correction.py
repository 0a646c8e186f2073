import numpy as np
import pandas as pd
import pytest

from survey_seam.core.keys import TaxonKey
from survey_seam.core.bias import CorrectionFactors
from survey_seam.core.correction import (
    cell_origin, corrected_density, apply_correction, stitch_uncorrected,
    compute_proportions, DegenerateFactorError,
)

POL = TaxonKey("POL", "A")


def _cells(ids, depths, boundary=None, area=1.0):
    return pd.DataFrame({
        "cell_id": ids,
        "boundary": boundary or [False] * len(ids),
        "depth": depths,
        "area": [area] * len(ids),
    })


def _dens(ids, survey, values, key=POL):
    return pd.DataFrame({
        "cell_id": ids,
        "survey": [survey] * len(ids),
        "taxon": [key.taxon] * len(ids),
        "stage": [key.stage] * len(ids),
        "density": values,
    })


def test_scenario_corrected_biomass_and_proportions():
    cells = _cells([92, 93, 94], [50.0, 150.0, 300.0])
    dens = _dens([92, 93, 94], "DFO", [10.0, 20.0, 5.0])
    out = apply_correction(cells, dens, POL, CorrectionFactors(1.5, 2.0))
    assert out["biomass"].tolist() == pytest.approx([15.0, 30.0, 10.0])
    assert out["proportion"].tolist() == pytest.approx([0.273, 0.545, 0.182], abs=5e-4)
    assert out["proportion"].sum() == pytest.approx(1.0)


def test_cell_origin_threshold():
    assert cell_origin(91) == "AFSC"
    assert cell_origin(92) == "DFO"
    assert cell_origin(5, min_id=5, reference="US", corrected="CA") == "CA"


def test_corrected_density_quadrants():
    f = CorrectionFactors(1.5, 2.0)
    # reference coverage, either stratum: untouched
    assert corrected_density(10, 100.0, 4.0, f) == 4.0
    assert corrected_density(10, 400.0, 4.0, f) == 4.0
    # corrected coverage: factor chosen by the cell's own depth
    assert corrected_density(100, 100.0, 4.0, f) == 6.0
    assert corrected_density(100, 400.0, 4.0, f) == 8.0
    # missing density stays missing
    assert np.isnan(corrected_density(100, 100.0, np.nan, f))


def test_corrected_density_without_factor_raises():
    f = CorrectionFactors(float("inf"), 2.0)
    with pytest.raises(DegenerateFactorError):
        corrected_density(100, 100.0, 4.0, f)
    with pytest.raises(DegenerateFactorError):
        corrected_density(100, 400.0, 4.0, None)
    # the deep quadrant is still fine
    assert corrected_density(100, 400.0, 4.0, f) == 8.0


def test_apply_correction_refuses_degenerate_factors():
    cells = _cells([92], [50.0])
    dens = _dens([92], "DFO", [1.0])
    with pytest.raises(DegenerateFactorError):
        apply_correction(cells, dens, POL, CorrectionFactors(0.0, 2.0))


def test_missing_and_boundary_cells_excluded():
    cells = _cells([10, 11, 92, 93], [100.0, 100.0, 100.0, 100.0], boundary=[False, True, False, False])
    dens = pd.concat([
        _dens([10, 11], "AFSC", [1.0, 50.0]),
        _dens([92], "DFO", [1.0]),
    ])
    out = apply_correction(cells, dens, POL, CorrectionFactors(3.0, 2.0)).set_index("cell_id")
    assert np.isnan(out.loc[11, "proportion"])   # boundary
    assert np.isnan(out.loc[93, "proportion"])   # no DFO estimate
    assert out.loc[10, "proportion"] == pytest.approx(0.25)
    assert out.loc[92, "proportion"] == pytest.approx(0.75)


def test_stitch_uses_native_survey_only():
    cells = _cells([10, 92], [100.0, 100.0])
    dens = pd.concat([
        _dens([10, 92], "AFSC", [1.0, 100.0]),
        _dens([10, 92], "DFO", [100.0, 3.0]),
    ])
    out = stitch_uncorrected(cells, dens, POL).set_index("cell_id")
    assert out.loc[10, "density"] == 1.0
    assert out.loc[92, "density"] == 3.0
    assert out["proportion"].sum() == pytest.approx(1.0)


def test_no_densities_for_key():
    cells = _cells([10], [100.0])
    with pytest.raises(KeyError):
        stitch_uncorrected(cells, _dens([10], "AFSC", [1.0]), TaxonKey("XYZ"))


def test_zero_total_biomass_rejected():
    with pytest.raises(ValueError):
        compute_proportions(pd.Series([0.0, np.nan]))
