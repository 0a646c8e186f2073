# scripts/build_factor_table.py
"""Estimate correction factors only (no cell tables) and write them to CSV."""
from pathlib import Path
import argparse
import logging
import sys

# --- ensure imports like `from survey_seam...` work when run as a script ---
ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from survey_seam import config
from survey_seam.cleaning import prepare_table
from survey_seam.io import read_tables, write_table
from survey_seam.validators.schema import validate_frame, validate_prepared
from survey_seam.core.keys import keys_in, TaxonKey
from survey_seam.core.hauls import normalize_hauls
from survey_seam.core.bias import estimate_factors, factor_row, factor_table


def main():
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--hauls", type=Path, nargs="+", required=True)
    parser.add_argument("--catch", type=Path, nargs="+", required=True)
    parser.add_argument("--out", type=Path, default=config.OUT_DIR / "correction_factors.csv")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)-8s | %(message)s", datefmt="%H:%M:%S")

    hauls, catch = read_tables(args.hauls, "hauls"), read_tables(args.catch, "catch")
    validate_frame(hauls, "hauls")
    validate_frame(catch, "catch")
    hauls, catch = prepare_table(hauls, "hauls"), prepare_table(catch, "catch")
    validate_prepared(hauls, "hauls")

    rows = []
    for key in sorted(keys_in(catch), key=TaxonKey.sort_key):
        factors = estimate_factors(normalize_hauls(hauls, catch, key), key=key)
        rows.append(factor_row(key, factors))
    table = factor_table(rows)
    write_table(table, args.out)

    bad = (~(table["shallow_ok"] & table["deep_ok"])).sum()
    print(f"Saved {len(table):,} factor rows to {args.out}")
    if bad:
        print(f"⚠️  {bad} taxa have a degenerate factor; they will be stitched uncorrected.")


if __name__ == "__main__":
    main()
