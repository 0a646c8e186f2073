# survey_seam/core/bias.py
"""
Overlap-zone bias estimation.

Hauls from both surveys are restricted to the latitude band where their
coverage meets, split into shallow/deep at a fixed depth break, and the
correction factor per stratum is the ratio of mean CPUE:

    factor = mean(reference survey) / mean(corrected survey)

Years are pooled. A single shallow/deep split is the finest resolution the
overlap samples support. No uncertainty is propagated into the factor; the
standard errors are reported for inspection only.
"""
from __future__ import annotations
from dataclasses import dataclass, field
import logging
import math

import numpy as np
import pandas as pd

from survey_seam.config import (
    OVERLAP_LAT_BAND, DEPTH_BREAK_M, STRATA, REFERENCE_SURVEY, CORRECTED_SURVEY,
)
from survey_seam.core.keys import TaxonKey

log = logging.getLogger(__name__)

STAT_COLS = ["stratum", "survey", "mean_cpue", "se_cpue", "n_hauls"]


def depth_stratum(depth: float, breakpoint: float = DEPTH_BREAK_M) -> str:
    """'shallow' above the break, 'deep' at or below it. Sign of depth is ignored."""
    if depth is None or pd.isna(depth):
        raise ValueError("Depth is missing; cannot assign a stratum")
    return "shallow" if abs(depth) < breakpoint else "deep"


def assign_strata(depths: pd.Series, breakpoint: float = DEPTH_BREAK_M) -> pd.Series:
    return pd.Series(
        np.where(depths.abs() < breakpoint, "shallow", "deep"),
        index=depths.index,
        name="stratum",
    )


def in_overlap(df: pd.DataFrame, lat_band: tuple[float, float] = OVERLAP_LAT_BAND) -> pd.DataFrame:
    lo, hi = lat_band
    return df[(df["lat"] >= lo) & (df["lat"] <= hi)].copy()


def overlap_stats(
    normalized: pd.DataFrame,
    lat_band: tuple[float, float] = OVERLAP_LAT_BAND,
    breakpoint: float = DEPTH_BREAK_M,
    surveys: tuple[str, str] = (REFERENCE_SURVEY, CORRECTED_SURVEY),
) -> pd.DataFrame:
    """
    Mean CPUE, standard error and haul count per stratum and survey inside the
    overlap band. Every (stratum, survey) pair is present; empty cells carry
    n_hauls=0 and NaN statistics.
    """
    band = in_overlap(normalized, lat_band)
    band["stratum"] = assign_strata(band["depth"], breakpoint)
    band = band[band["survey"].isin(surveys)]

    gp = (
        band.groupby(["stratum", "survey"])["cpue"]
            .agg(mean_cpue="mean", sd_cpue="std", n_hauls="count")
    )
    full = pd.MultiIndex.from_product([list(STRATA), list(surveys)], names=["stratum", "survey"])
    gp = gp.reindex(full)
    gp["n_hauls"] = gp["n_hauls"].fillna(0).astype(int)
    gp["se_cpue"] = gp["sd_cpue"] / np.sqrt(gp["n_hauls"].where(gp["n_hauls"] > 0))
    return gp.reset_index()[STAT_COLS]


def is_usable_factor(x) -> bool:
    """A factor is usable when it is a finite, strictly positive number."""
    try:
        x = float(x)
    except (TypeError, ValueError):
        return False
    return math.isfinite(x) and x > 0


@dataclass(frozen=True)
class CorrectionFactors:
    shallow: float
    deep: float
    stats: pd.DataFrame = field(default=None, compare=False, repr=False)

    @property
    def shallow_ok(self) -> bool:
        return is_usable_factor(self.shallow)

    @property
    def deep_ok(self) -> bool:
        return is_usable_factor(self.deep)

    @property
    def usable(self) -> bool:
        return self.shallow_ok and self.deep_ok

    def ok(self, stratum: str) -> bool:
        return is_usable_factor(self.for_stratum(stratum))

    def for_stratum(self, stratum: str) -> float:
        if stratum == "shallow":
            return self.shallow
        if stratum == "deep":
            return self.deep
        raise ValueError(f"Unknown depth stratum: {stratum!r}")


def _ratio(num: float, den: float) -> float:
    # keep degenerate ratios visible (inf / 0 / nan) instead of raising
    with np.errstate(divide="ignore", invalid="ignore"):
        return float(np.divide(np.float64(num), np.float64(den)))


def estimate_factors(
    normalized: pd.DataFrame,
    lat_band: tuple[float, float] = OVERLAP_LAT_BAND,
    breakpoint: float = DEPTH_BREAK_M,
    reference: str = REFERENCE_SURVEY,
    corrected: str = CORRECTED_SURVEY,
    key: TaxonKey | None = None,
) -> CorrectionFactors:
    """Ratio-of-means correction factor per depth stratum."""
    stats = overlap_stats(normalized, lat_band, breakpoint, surveys=(reference, corrected))
    means = stats.set_index(["stratum", "survey"])["mean_cpue"]

    factors = {
        s: _ratio(means.loc[(s, reference)], means.loc[(s, corrected)])
        for s in STRATA
    }
    out = CorrectionFactors(shallow=factors["shallow"], deep=factors["deep"], stats=stats)

    label = key.label if key else "taxon"
    for s in STRATA:
        log.debug(f"{label} {s}: factor={factors[s]:.4g}")
        if not out.ok(s):
            log.warning(f"{label}: degenerate {s} correction factor ({factors[s]})")
    return out


def factor_row(key: TaxonKey, factors: CorrectionFactors) -> dict:
    """Flat record for the correction-factor table."""
    row = {
        "taxon": key.taxon,
        "stage": key.stage,
        "shallow_factor": factors.shallow,
        "deep_factor": factors.deep,
        "shallow_ok": factors.shallow_ok,
        "deep_ok": factors.deep_ok,
    }
    if factors.stats is not None:
        for r in factors.stats.itertuples(index=False):
            tag = f"{r.stratum}_{r.survey.lower()}"
            row[f"mean_{tag}"] = r.mean_cpue
            row[f"se_{tag}"] = r.se_cpue
            row[f"n_{tag}"] = r.n_hauls
    return row


def factor_table(rows: list[dict]) -> pd.DataFrame:
    if not rows:
        return pd.DataFrame(columns=["taxon", "stage", "shallow_factor", "deep_factor", "shallow_ok", "deep_ok"])
    return pd.DataFrame(rows).sort_values(["taxon", "stage"], na_position="first").reset_index(drop=True)
