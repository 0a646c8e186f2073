# survey_seam/etl/run_pipeline.py
"""
Build bias-corrected spatial proportion tables from the two trawl surveys.

Usage examples:
  # 1) All taxa present in both the catch and density tables:
  python -m survey_seam.etl.run_pipeline \
    --hauls data/raw/afsc_hauls.csv data/raw/dfo_hauls.csv \
    --catch data/raw/afsc_catch.csv data/raw/dfo_catch.csv \
    --cells data/raw/model_cells.csv \
    --densities data/processed/cell_densities.parquet \
    --groups data/raw/groups.csv \
    --skill data/raw/model_skill.csv \
    --outdir data/output --jobs 4

  # 2) Only a few taxa:
  python -m survey_seam.etl.run_pipeline ... --taxa ATF POL_A POL_J

Notes:
- Outputs written to --outdir:
    correction_factors.csv
    proportions_vertebrate.csv, proportions_invertebrate.csv
    run_report.csv
- Taxa are given as TAXON or TAXON_STAGE; '*' selects all.
"""

from __future__ import annotations
import argparse
import logging
from pathlib import Path
from typing import Dict, List

from survey_seam import config
from survey_seam.io import read_table, read_tables, write_table
from survey_seam.core.keys import TaxonKey
from survey_seam.core.pipeline import (
    RunResult, RunSettings, SurveyInputs, build_inputs, run_pipeline, taxon_keys,
)


def _setup_logging(verbose: bool):
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(message)s",
        datefmt="%H:%M:%S",
    )


def load_inputs(args: argparse.Namespace) -> SurveyInputs:
    hauls = read_tables(args.hauls, "hauls")
    catch = read_tables(args.catch, "catch")
    cells = read_table(args.cells, "cells")
    densities = read_table(args.densities, "densities")
    groups = read_table(args.groups, "groups")
    skill = read_table(args.skill, "skill") if args.skill else None
    return build_inputs(hauls, catch, cells, densities, groups, skill)


def select_keys(available: List[TaxonKey], requested: List[str] | None) -> List[TaxonKey]:
    """Filter keys by TAXON or TAXON_STAGE labels (case-insensitive)."""
    if not requested or requested == ["*"]:
        return available
    wanted = {r.lower() for r in requested}
    out = [k for k in available if k.label.lower() in wanted or k.taxon.lower() in wanted]
    found = {k.label.lower() for k in out} | {k.taxon.lower() for k in out}
    missing = sorted(wanted - found)
    if missing:
        logging.warning(f"Some requested taxa not found in both catch and densities: {missing}")
    return out


def write_outputs(result: RunResult, outdir: Path) -> Dict[str, Path]:
    outdir.mkdir(parents=True, exist_ok=True)
    written = {
        "factors": write_table(result.factors, outdir / "correction_factors.csv"),
        "report": write_table(result.report(), outdir / "run_report.csv"),
    }
    for cls, table in result.by_class.items():
        written[cls] = write_table(table, outdir / f"proportions_{cls}.csv")
    return written


def summarize(result: RunResult) -> dict:
    counts = result.counts()
    return {
        "keys": len(result.results),
        **counts,
        "cells": int(len(result.table)),
        "columns": int(len(result.table.columns) - 1),
        "patched_cells": int(sum(r.patch.n_patched for r in result.results if r.patch is not None)),
    }


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Bias-correct and stitch trawl-survey spatial distributions.")
    parser.add_argument("--hauls", type=Path, nargs="+", required=True, help="Master haul lists (one per survey)")
    parser.add_argument("--catch", type=Path, nargs="+", required=True, help="Catch-by-haul tables (one per survey)")
    parser.add_argument("--cells", type=Path, required=True, help="Model cell table (id, boundary, depth, area)")
    parser.add_argument("--densities", type=Path, required=True, help="Per-cell density by taxon and survey")
    parser.add_argument("--groups", type=Path, required=True, help="Taxon list with vertebrate/invertebrate class")
    parser.add_argument("--skill", type=Path, default=None, help="Model-skill table gating correction (optional)")
    parser.add_argument("--outdir", type=Path, default=config.OUT_DIR, help="Destination directory for outputs")
    parser.add_argument("--taxa", nargs="+", help="TAXON or TAXON_STAGE labels to process; '*' for all")

    parser.add_argument("--lat-band", type=float, nargs=2, metavar=("LO", "HI"), default=config.OVERLAP_LAT_BAND)
    parser.add_argument("--depth-break", type=float, default=config.DEPTH_BREAK_M)
    parser.add_argument("--cell-threshold", type=int, default=config.CORRECTED_CELL_MIN_ID,
                        help="Cells with id >= this are native to the corrected survey")
    parser.add_argument("--reference", default=config.REFERENCE_SURVEY)
    parser.add_argument("--corrected", default=config.CORRECTED_SURVEY)
    parser.add_argument("--jobs", type=int, default=1, help="Parallel workers (joblib n_jobs)")
    parser.add_argument("--verbose", action="store_true")
    return parser


def main(argv: List[str] | None = None) -> RunResult:
    args = build_parser().parse_args(argv)
    _setup_logging(args.verbose)

    logging.info("Reading inputs…")
    inputs = load_inputs(args)
    logging.info(
        f"Hauls: {len(inputs.hauls):,} | catch rows: {len(inputs.catch):,} | "
        f"cells: {len(inputs.cells):,} | density rows: {len(inputs.densities):,}"
    )

    settings = RunSettings(
        lat_band=tuple(args.lat_band),
        breakpoint=args.depth_break,
        min_cell_id=args.cell_threshold,
        reference=args.reference.upper(),
        corrected=args.corrected.upper(),
    )

    keys = select_keys(taxon_keys(inputs.catch, inputs.densities), args.taxa)
    if not keys:
        logging.warning("No taxon/stage keys selected. Check --taxa labels and input tables.")

    result = run_pipeline(inputs, keys, n_jobs=args.jobs, settings=settings)
    written = write_outputs(result, args.outdir)

    logging.info(f"[Summary] {summarize(result)}")
    for name, path in written.items():
        logging.info(f"[Summary] {name} -> {path}")
    skipped = result.report().query("status == 'skipped'")
    for row in skipped.itertuples(index=False):
        logging.warning(f"[Skipped] {TaxonKey.of(row.taxon, row.stage).label}: {row.reason}")
    return result


if __name__ == "__main__":
    main()
