# survey_seam/cleaning.py
from __future__ import annotations
import pandas as pd

STAGE_MAP = {
    "ADULT": "A",
    "ADULTS": "A",
    "A": "A",
    "JUVENILE": "J",
    "JUVENILES": "J",
    "JUV": "J",
    "J": "J",
}

TRUTHY = {"true", "t", "yes", "y", "1", "1.0"}


def _str_col(s: pd.Series) -> pd.Series:
    return s.astype("string").str.strip().str.replace(r"\s+", " ", regex=True)


def _id_col(s: pd.Series) -> pd.Series:
    """Haul ids as strings; numeric ids lose any float suffix (123.0 -> '123')."""
    if pd.api.types.is_numeric_dtype(s):
        s = pd.to_numeric(s, errors="coerce").astype("Int64")
    # mixed frames stacked from several files carry '101' next to '101.0'
    return _str_col(s).str.replace(r"^(\d+)\.0+$", r"\1", regex=True)


def normalize_stage(s: pd.Series) -> pd.Series:
    """
    Map life-stage labels to short codes (A/J). Unknown labels are kept
    upper-cased; blanks become <NA> (whole-taxon key).
    """
    out = _str_col(s).str.upper()
    out = out.map(lambda v: STAGE_MAP.get(v, v) if isinstance(v, str) and v else pd.NA)
    return out.astype("string")


def to_bool(s: pd.Series) -> pd.Series:
    if pd.api.types.is_bool_dtype(s):
        return s.fillna(False).astype(bool)
    return s.astype("string").str.strip().str.lower().isin(TRUTHY).fillna(False).astype(bool)


def clean_hauls(df: pd.DataFrame) -> pd.DataFrame:
    out = df.copy()
    out["survey"] = _str_col(out["survey"]).str.upper()
    out["haul_id"] = _id_col(out["haul_id"])
    out["year"] = pd.to_numeric(out["year"], errors="coerce").astype("Int64")
    for c in ("lat", "lon", "depth"):
        out[c] = pd.to_numeric(out[c], errors="coerce")
    return out


def clean_catch(df: pd.DataFrame) -> pd.DataFrame:
    out = df.copy()
    if "stage" not in out.columns:
        out["stage"] = pd.NA
    out["survey"] = _str_col(out["survey"]).str.upper()
    out["haul_id"] = _id_col(out["haul_id"])
    out["taxon"] = _str_col(out["taxon"])
    out["stage"] = normalize_stage(out["stage"])
    out["cpue"] = pd.to_numeric(out["cpue"], errors="coerce")
    return out


def clean_cells(df: pd.DataFrame) -> pd.DataFrame:
    out = df.copy()
    out["cell_id"] = pd.to_numeric(out["cell_id"], errors="coerce").astype("Int64")
    out["boundary"] = to_bool(out["boundary"])
    for c in ("depth", "area", "lat", "lon"):
        if c in out.columns:
            out[c] = pd.to_numeric(out[c], errors="coerce")
    return out


def clean_densities(df: pd.DataFrame) -> pd.DataFrame:
    out = df.copy()
    if "stage" not in out.columns:
        out["stage"] = pd.NA
    out["cell_id"] = pd.to_numeric(out["cell_id"], errors="coerce").astype("Int64")
    out["survey"] = _str_col(out["survey"]).str.upper()
    out["taxon"] = _str_col(out["taxon"])
    out["stage"] = normalize_stage(out["stage"])
    out["density"] = pd.to_numeric(out["density"], errors="coerce")
    return out


def clean_skill(df: pd.DataFrame) -> pd.DataFrame:
    out = df.copy()
    if "stage" not in out.columns:
        out["stage"] = pd.NA
    out["taxon"] = _str_col(out["taxon"])
    out["stage"] = normalize_stage(out["stage"])
    if "eligible" in out.columns:
        out["eligible"] = to_bool(out["eligible"])
    if "skill" in out.columns:
        out["skill"] = pd.to_numeric(out["skill"], errors="coerce")
    return out


def clean_groups(df: pd.DataFrame) -> pd.DataFrame:
    out = df.copy()
    out["taxon"] = _str_col(out["taxon"])
    out["group_class"] = _str_col(out["group_class"]).str.lower()
    # "invert"/"vert" shorthands used in some group files
    out["group_class"] = out["group_class"].replace({"vert": "vertebrate", "invert": "invertebrate"})
    if "stages" in out.columns:
        out["stages"] = _str_col(out["stages"])
    return out


PREPARERS = {
    "hauls": clean_hauls,
    "catch": clean_catch,
    "cells": clean_cells,
    "densities": clean_densities,
    "skill": clean_skill,
    "groups": clean_groups,
}


def prepare_table(df: pd.DataFrame, kind: str) -> pd.DataFrame:
    """Type coercion and label normalization for one input table."""
    return PREPARERS[kind](df)
