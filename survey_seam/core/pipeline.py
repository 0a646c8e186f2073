# survey_seam/core/pipeline.py
"""
Per-taxon orchestration: normalize -> estimate -> correct or stitch -> patch,
then one merge into the wide output tables.

Taxa share only read-only inputs, so they run independently (optionally in
parallel through joblib). A failure for one taxon becomes a `skipped` entry
in the run report; only malformed shared inputs stop the run.
"""
from __future__ import annotations
from dataclasses import dataclass, field
import logging
from typing import Optional

import pandas as pd
from joblib import Parallel, delayed

from survey_seam import config
from survey_seam.cleaning import prepare_table
from survey_seam.validators.schema import validate_frame, validate_prepared
from survey_seam.core.keys import TaxonKey, keys_in
from survey_seam.core.hauls import normalize_hauls
from survey_seam.core.bias import CorrectionFactors, estimate_factors, factor_row, factor_table
from survey_seam.core.correction import apply_correction, stitch_uncorrected
from survey_seam.core.patching import PatchResult, patch_empty_cells
from survey_seam.core.assembly import assemble_table, split_by_class, check_column_sums

log = logging.getLogger(__name__)

CORRECTED = "corrected"
STITCHED = "stitched"
SKIPPED = "skipped"
PATCH_CAPPED = "patch_capped"

REPORT_COLS = [
    "taxon", "stage", "status", "reason", "shallow_factor", "deep_factor", "n_patched",
]


@dataclass(frozen=True)
class RunSettings:
    lat_band: tuple[float, float] = config.OVERLAP_LAT_BAND
    breakpoint: float = config.DEPTH_BREAK_M
    min_cell_id: int = config.CORRECTED_CELL_MIN_ID
    reference: str = config.REFERENCE_SURVEY
    corrected: str = config.CORRECTED_SURVEY
    slots: tuple[str, ...] = config.SLOT_LABELS
    skill_threshold: float = config.SKILL_THRESHOLD
    sum_tol: float = config.SUM_TOL


@dataclass(frozen=True)
class SurveyInputs:
    """Cleaned, validated shared inputs; treated as read-only for a run."""
    hauls: pd.DataFrame
    catch: pd.DataFrame
    cells: pd.DataFrame
    densities: pd.DataFrame
    groups: pd.DataFrame
    skill: Optional[pd.DataFrame] = None


@dataclass
class TaxonResult:
    key: TaxonKey
    status: str
    reason: str = ""
    factors: Optional[CorrectionFactors] = None
    cells: Optional[pd.DataFrame] = None
    patch: Optional[PatchResult] = None

    @property
    def proportions(self) -> Optional[pd.Series]:
        return None if self.patch is None else self.patch.proportions

    def report_row(self) -> dict:
        return {
            "taxon": self.key.taxon,
            "stage": self.key.stage,
            "status": self.status,
            "reason": self.reason,
            "shallow_factor": None if self.factors is None else self.factors.shallow,
            "deep_factor": None if self.factors is None else self.factors.deep,
            "n_patched": 0 if self.patch is None else self.patch.n_patched,
        }


@dataclass
class RunResult:
    results: list[TaxonResult]
    factors: pd.DataFrame
    table: pd.DataFrame
    by_class: dict[str, pd.DataFrame] = field(default_factory=dict)

    def report(self) -> pd.DataFrame:
        if not self.results:
            return pd.DataFrame(columns=REPORT_COLS)
        return pd.DataFrame([r.report_row() for r in self.results], columns=REPORT_COLS)

    def counts(self) -> dict[str, int]:
        rep = self.report()
        return {s: int((rep["status"] == s).sum()) for s in (CORRECTED, STITCHED, SKIPPED)}


def build_inputs(
    hauls: pd.DataFrame,
    catch: pd.DataFrame,
    cells: pd.DataFrame,
    densities: pd.DataFrame,
    groups: pd.DataFrame,
    skill: pd.DataFrame | None = None,
) -> SurveyInputs:
    """Validate then clean every shared table. Raises InputMismatchError on bad input."""
    tables = {"hauls": hauls, "catch": catch, "cells": cells, "densities": densities, "groups": groups}
    if skill is not None:
        tables["skill"] = skill
    out = {}
    for kind, df in tables.items():
        validate_frame(df, kind)
        out[kind] = prepare_table(df, kind)
        validate_prepared(out[kind], kind)
    return SurveyInputs(**out)


def is_eligible(key: TaxonKey, skill: pd.DataFrame | None, threshold: float = config.SKILL_THRESHOLD) -> bool:
    """
    Gate from the model-skill table. No table means every taxon is eligible;
    a taxon missing from the table is not. Rows without a stage apply to all
    stages of the taxon.
    """
    if skill is None:
        return True
    rows = skill[skill["taxon"] == key.taxon]
    if key.stage is not None:
        staged = rows[rows["stage"] == key.stage]
        rows = staged if not staged.empty else rows[rows["stage"].isna()]
    else:
        rows = rows[rows["stage"].isna()]
    if rows.empty:
        return False
    if "eligible" in rows.columns:
        return bool(rows["eligible"].astype(bool).all())
    return bool((rows["skill"] >= threshold).all())


def taxon_keys(catch: pd.DataFrame, densities: pd.DataFrame) -> list[TaxonKey]:
    """Keys with both catch records and cell densities."""
    return sorted(keys_in(catch) & keys_in(densities), key=TaxonKey.sort_key)


def _stitch_reason(eligible: bool, factors: CorrectionFactors) -> str:
    if not eligible:
        return "not_eligible"
    bad = [s for s in ("shallow", "deep") if not factors.ok(s)]
    return "degenerate_" + "_".join(bad)


def process_taxon(
    key: TaxonKey,
    inputs: SurveyInputs,
    settings: RunSettings = RunSettings(),
) -> TaxonResult:
    """Run one taxon/stage end to end. Per-taxon errors are returned, not raised."""
    factors = None
    try:
        norm = normalize_hauls(inputs.hauls, inputs.catch, key)
        factors = estimate_factors(
            norm,
            lat_band=settings.lat_band,
            breakpoint=settings.breakpoint,
            reference=settings.reference,
            corrected=settings.corrected,
            key=key,
        )
        eligible = is_eligible(key, inputs.skill, settings.skill_threshold)

        if eligible and factors.usable:
            status, reason = CORRECTED, ""
            cells = apply_correction(
                inputs.cells, inputs.densities, key, factors,
                min_id=settings.min_cell_id,
                breakpoint=settings.breakpoint,
                reference=settings.reference,
                corrected=settings.corrected,
            )
        else:
            status, reason = STITCHED, _stitch_reason(eligible, factors)
            cells = stitch_uncorrected(
                inputs.cells, inputs.densities, key,
                min_id=settings.min_cell_id,
                reference=settings.reference,
                corrected=settings.corrected,
            )

        patch = patch_empty_cells(inputs.cells, cells)
        if patch.capped:
            reason = f"{reason};{PATCH_CAPPED}" if reason else PATCH_CAPPED
    except (ValueError, KeyError) as exc:
        msg = exc.args[0] if isinstance(exc, KeyError) and exc.args else str(exc)
        log.warning(f"{key.label}: skipped ({type(exc).__name__}: {msg})")
        return TaxonResult(key, SKIPPED, reason=str(msg), factors=factors)

    log.info(f"{key.label}: {status}{' (' + reason + ')' if reason else ''}, {patch.n_patched} cells patched")
    return TaxonResult(key, status, reason, factors, cells, patch)


def run_pipeline(
    inputs: SurveyInputs,
    keys: list[TaxonKey] | None = None,
    n_jobs: int = 1,
    settings: RunSettings = RunSettings(),
) -> RunResult:
    if keys is None:
        keys = taxon_keys(inputs.catch, inputs.densities)
    log.info(f"Processing {len(keys)} taxon/stage keys (n_jobs={n_jobs})")

    if n_jobs == 1:
        results = [process_taxon(k, inputs, settings) for k in keys]
    else:
        results = Parallel(n_jobs=n_jobs)(delayed(process_taxon)(k, inputs, settings) for k in keys)

    vectors = {r.key: r.proportions for r in results if r.status != SKIPPED}
    table = assemble_table(inputs.cells, vectors, inputs.groups, settings.slots, keys)
    by_class = split_by_class(table, inputs.groups, settings.slots, keys)

    bad = check_column_sums(table, settings.sum_tol)
    if not bad.empty:
        log.warning(f"{len(bad)} columns do not sum to 1: {bad.round(6).to_dict()}")

    factors = factor_table([factor_row(r.key, r.factors) for r in results if r.factors is not None])
    return RunResult(results, factors, table, by_class)
