from __future__ import annotations
import pandas as pd

from survey_seam.config import (
    HAUL_COLS, CATCH_COLS, CELL_COLS, DENSITY_COLS, SKILL_COLS, GROUP_COLS, GROUP_CLASSES,
)


class InputMismatchError(ValueError):
    """An input table is missing columns or carries values the core cannot use."""


REQUIRED = {
    "hauls": HAUL_COLS,
    "catch": [c for c in CATCH_COLS if c != "stage"],
    "cells": CELL_COLS,
    "densities": [c for c in DENSITY_COLS if c != "stage"],
    "skill": [c for c in SKILL_COLS if c != "stage"],
    "groups": GROUP_COLS,
}


def require_columns(df: pd.DataFrame, kind: str) -> None:
    miss = set(REQUIRED[kind]) - set(df.columns)
    if miss:
        raise InputMismatchError(f"{kind}: missing expected columns: {sorted(miss)}")


def _no_negatives(df: pd.DataFrame, kind: str, cols: list[str]) -> None:
    for c in cols:
        if (df[c].dropna() < 0).any():
            raise InputMismatchError(f"{kind}: negative values in {c}")


def _numeric(df: pd.DataFrame, kind: str, cols: list[str]) -> None:
    for c in cols:
        # allow NaN but ensure numeric coercion would work
        try:
            pd.to_numeric(df[c], errors="raise")
        except (ValueError, TypeError) as exc:
            raise InputMismatchError(f"{kind}: non-numeric values in {c}") from exc


def require_unique_hauls(df: pd.DataFrame) -> None:
    dup = df.duplicated(subset=["survey", "haul_id"], keep=False)
    if dup.any():
        bad = df.loc[dup, "haul_id"].astype(str).unique().tolist()[:10]
        raise InputMismatchError(f"hauls: duplicate haul ids in master list: {bad}")


def require_unique_cells(df: pd.DataFrame) -> None:
    dup = df["cell_id"].duplicated()
    if dup.any():
        bad = df.loc[dup, "cell_id"].tolist()[:10]
        raise InputMismatchError(f"cells: duplicate cell ids: {bad}")


def validate_hauls(df: pd.DataFrame) -> None:
    require_columns(df, "hauls")
    _numeric(df, "hauls", ["lat", "lon", "depth"])
    require_unique_hauls(df)
    lat = pd.to_numeric(df["lat"], errors="coerce").dropna()
    if not lat.between(-90, 90).all():
        raise InputMismatchError("hauls: latitude outside [-90, 90]")


def validate_catch(df: pd.DataFrame) -> None:
    require_columns(df, "catch")
    _numeric(df, "catch", ["cpue"])
    _no_negatives(df, "catch", ["cpue"])


def validate_cells(df: pd.DataFrame) -> None:
    require_columns(df, "cells")
    _numeric(df, "cells", ["cell_id", "depth", "area"])
    if df["cell_id"].isna().any():
        raise InputMismatchError("cells: missing cell ids")
    if df["depth"].isna().any():
        raise InputMismatchError("cells: missing bottom depth")
    require_unique_cells(df)
    _no_negatives(df, "cells", ["area"])


def validate_densities(df: pd.DataFrame) -> None:
    require_columns(df, "densities")
    _numeric(df, "densities", ["cell_id", "density"])
    _no_negatives(df, "densities", ["density"])


def validate_skill(df: pd.DataFrame) -> None:
    require_columns(df, "skill")
    if "eligible" not in df.columns and "skill" not in df.columns:
        raise InputMismatchError("skill: needs an 'eligible' or a 'skill' column")


def validate_groups(df: pd.DataFrame) -> None:
    require_columns(df, "groups")
    classes = set(df["group_class"].dropna().astype(str).str.strip().str.lower())
    classes -= {"vert", "invert"}
    unknown = classes - set(GROUP_CLASSES)
    if unknown:
        raise InputMismatchError(f"groups: unknown group_class values: {sorted(unknown)}")
    if df["taxon"].duplicated().any():
        raise InputMismatchError("groups: duplicate taxa")


VALIDATORS = {
    "hauls": validate_hauls,
    "catch": validate_catch,
    "cells": validate_cells,
    "densities": validate_densities,
    "skill": validate_skill,
    "groups": validate_groups,
}


def validate_frame(df: pd.DataFrame, kind: str) -> None:
    VALIDATORS[kind](df)


# Keys that can only collide once labels are normalized ('afsc' vs 'AFSC', '101' vs '101.0').
PREPARED_CHECKS = {
    "hauls": require_unique_hauls,
    "cells": require_unique_cells,
}


def validate_prepared(df: pd.DataFrame, kind: str) -> None:
    check = PREPARED_CHECKS.get(kind)
    if check is not None:
        check(df)
