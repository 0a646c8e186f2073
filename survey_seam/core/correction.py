# survey_seam/core/correction.py
"""
Per-cell density stitching and correction.

Each model cell is native to exactly one survey, decided by its id. Cells
native to the corrected survey have their density multiplied by the factor
of their own depth stratum; reference cells are left as they are. Biomass is
density x area and proportions are biomass over the domain total, with
cells lacking a density left out of both. Boundary cells never get a density.
"""
from __future__ import annotations
import logging

import numpy as np
import pandas as pd

from survey_seam.config import (
    CORRECTED_CELL_MIN_ID, DEPTH_BREAK_M, REFERENCE_SURVEY, CORRECTED_SURVEY,
)
from survey_seam.core.bias import CorrectionFactors, depth_stratum
from survey_seam.core.keys import TaxonKey

log = logging.getLogger(__name__)

OUT_COLS = ["cell_id", "survey", "density", "biomass", "proportion"]


class DegenerateFactorError(ValueError):
    """A correction was requested for a stratum whose factor is unusable."""


def cell_origin(
    cell_id: int,
    min_id: int = CORRECTED_CELL_MIN_ID,
    reference: str = REFERENCE_SURVEY,
    corrected: str = CORRECTED_SURVEY,
) -> str:
    """Survey whose native coverage holds this cell."""
    return corrected if int(cell_id) >= min_id else reference


def corrected_density(
    cell_id: int,
    depth: float,
    density: float,
    factors: CorrectionFactors | None,
    min_id: int = CORRECTED_CELL_MIN_ID,
    breakpoint: float = DEPTH_BREAK_M,
) -> float:
    """
    Density of one cell after correction.

    Quadrants: (shallow | deep) x (reference | corrected coverage). Reference
    cells pass through whatever the factors; corrected cells need a usable
    factor for their own stratum or DegenerateFactorError is raised.
    """
    if density is None or pd.isna(density):
        return np.nan
    stratum = depth_stratum(depth, breakpoint)
    native_corrected = int(cell_id) >= min_id

    if not native_corrected and stratum == "shallow":
        return float(density)
    if not native_corrected and stratum == "deep":
        return float(density)
    if factors is None or not factors.ok(stratum):
        raise DegenerateFactorError(
            f"cell {cell_id}: no usable {stratum} correction factor"
        )
    if stratum == "shallow":
        return float(density) * factors.shallow
    return float(density) * factors.deep


def stitch_densities(
    cells: pd.DataFrame,
    densities: pd.DataFrame,
    key: TaxonKey,
    min_id: int = CORRECTED_CELL_MIN_ID,
    reference: str = REFERENCE_SURVEY,
    corrected: str = CORRECTED_SURVEY,
) -> pd.DataFrame:
    """
    One row per model cell with the density from the cell's native survey
    (NaN where that survey has no estimate for the cell).
    """
    out = cells[["cell_id", "boundary", "depth", "area"]].copy()
    out["survey"] = pd.Series(
        [cell_origin(c, min_id, reference, corrected) for c in out["cell_id"]],
        index=out.index,
        dtype="string",
    )

    sub = key.select(densities)
    if sub.empty:
        raise KeyError(f"{key.label}: no density estimates in either survey")
    sub = sub.assign(survey=sub["survey"].astype("string"))
    sub = sub.groupby(["cell_id", "survey"], as_index=False)["density"].mean()

    out = out.merge(sub, on=["cell_id", "survey"], how="left")
    # boundary cells carry no interior biomass
    out.loc[out["boundary"], "density"] = np.nan
    return out.sort_values("cell_id").reset_index(drop=True)


def compute_proportions(biomass: pd.Series) -> pd.Series:
    """biomass / total over cells with data; cells without data stay NaN."""
    total = biomass.sum(min_count=1)
    if pd.isna(total) or total <= 0:
        raise ValueError("Total biomass is zero or missing; proportions undefined")
    return biomass / total


def _finish(df: pd.DataFrame) -> pd.DataFrame:
    df["biomass"] = df["density"] * df["area"]
    df["proportion"] = compute_proportions(df["biomass"])
    return df


def apply_correction(
    cells: pd.DataFrame,
    densities: pd.DataFrame,
    key: TaxonKey,
    factors: CorrectionFactors,
    min_id: int = CORRECTED_CELL_MIN_ID,
    breakpoint: float = DEPTH_BREAK_M,
    reference: str = REFERENCE_SURVEY,
    corrected: str = CORRECTED_SURVEY,
) -> pd.DataFrame:
    """Corrected per-cell density, biomass and proportion for one taxon/stage."""
    if not factors.usable:
        raise DegenerateFactorError(
            f"{key.label}: factors not usable (shallow={factors.shallow}, deep={factors.deep})"
        )
    df = stitch_densities(cells, densities, key, min_id, reference, corrected)
    df["density"] = [
        corrected_density(c, d, x, factors, min_id, breakpoint)
        for c, d, x in zip(df["cell_id"], df["depth"], df["density"])
    ]
    df = _finish(df)
    log.debug(f"{key.label}: corrected {int(df['density'].notna().sum())} cells")
    return df[OUT_COLS + ["boundary"]]


def stitch_uncorrected(
    cells: pd.DataFrame,
    densities: pd.DataFrame,
    key: TaxonKey,
    min_id: int = CORRECTED_CELL_MIN_ID,
    reference: str = REFERENCE_SURVEY,
    corrected: str = CORRECTED_SURVEY,
) -> pd.DataFrame:
    """Same output as apply_correction, with each survey's density taken as-is."""
    df = _finish(stitch_densities(cells, densities, key, min_id, reference, corrected))
    return df[OUT_COLS + ["boundary"]]
