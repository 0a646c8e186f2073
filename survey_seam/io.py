from __future__ import annotations
from pathlib import Path
import logging
import itertools

import pandas as pd

log = logging.getLogger(__name__)

READERS = {
    ".parquet": pd.read_parquet,
    ".feather": pd.read_feather,
    ".csv": pd.read_csv,
    ".xlsx": pd.read_excel,
}

# canonical name -> accepted source headers, per input table
ALIASES: dict[str, dict[str, list[str]]] = {
    "hauls": {
        "survey": ["survey", "survey_name", "source"],
        "haul_id": ["haul_id", "hauljoin", "haul", "trip_set", "fishing_event_id"],
        "year": ["year", "survey_year"],
        "lat": ["lat", "latitude", "start_latitude", "lat_dd"],
        "lon": ["lon", "longitude", "start_longitude", "lon_dd"],
        "depth": ["depth", "bottom_depth", "depth_m", "botz"],
    },
    "catch": {
        "survey": ["survey", "survey_name", "source"],
        "haul_id": ["haul_id", "hauljoin", "haul", "trip_set", "fishing_event_id"],
        "taxon": ["taxon", "species_code", "group", "code"],
        "stage": ["stage", "life_stage", "lifestage"],
        "cpue": ["cpue", "cpue_kgkm2", "cpue_kg_km2", "catch"],
    },
    "cells": {
        "cell_id": ["cell_id", "box_id", "box", ".bx0"],
        "boundary": ["boundary", "boundary_box", "is_boundary"],
        "depth": ["depth", "botz", "bottom_depth"],
        "area": ["area", "area_km2"],
        "lat": ["lat", "latitude", "inside_lat"],
        "lon": ["lon", "longitude", "inside_lon"],
    },
    "densities": {
        "cell_id": ["cell_id", "box_id", "box", ".bx0"],
        "survey": ["survey", "survey_name", "source"],
        "taxon": ["taxon", "species_code", "group", "code"],
        "stage": ["stage", "life_stage", "lifestage"],
        "density": ["density", "mean_density", "biomass_density", "cpue"],
    },
    "skill": {
        "taxon": ["taxon", "species_code", "group", "code"],
        "stage": ["stage", "life_stage", "lifestage"],
        "eligible": ["eligible", "use_correction", "correct"],
        "skill": ["skill", "r2", "score"],
    },
    "groups": {
        "taxon": ["taxon", "code", "group", "species_code"],
        "group_class": ["group_class", "class", "invert_or_vert"],
        "stages": ["stages", "life_stages"],
    },
}


def _pick_col(df: pd.DataFrame, candidates: list[str]) -> str | None:
    # exact first, then case-insensitive
    for c in candidates:
        if c in df.columns:
            return c
    lower = {str(c).lower(): c for c in df.columns}
    for c in candidates:
        if c.lower() in lower:
            return lower[c.lower()]
    return None


def _standardize(df: pd.DataFrame, kind: str) -> pd.DataFrame:
    """
    Rename known header variants to the canonical names used by the core.
    Unknown columns are kept as-is; missing ones are left for the
    validators to report.
    """
    if kind not in ALIASES:
        raise ValueError(f"Unknown table kind: {kind!r}")
    rename = {}
    for canon, candidates in ALIASES[kind].items():
        col = _pick_col(df, candidates)
        if col is not None and col != canon:
            rename[col] = canon
    return df.rename(columns=rename)


def read_table(path: str | Path, kind: str) -> pd.DataFrame:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")
    reader = READERS.get(path.suffix.lower())
    if reader is None:
        raise ValueError(f"Unsupported file type {path.suffix!r} for {path.name}")
    df = _standardize(reader(path), kind)
    log.info(f"Read {kind} <- {path} ({len(df):,} rows)")
    return df


def read_tables(paths: list[str | Path], kind: str) -> pd.DataFrame:
    """Read several files of one kind (e.g. one haul list per survey) and stack them."""
    if not paths:
        raise FileNotFoundError(f"No {kind} files given")
    dfs = [read_table(p, kind) for p in paths]

    # align columns across different sources
    all_cols = list(dict.fromkeys(itertools.chain.from_iterable(d.columns for d in dfs)))
    dfs = [d.reindex(columns=all_cols) for d in dfs]
    return pd.concat(dfs, ignore_index=True)


def write_table(df: pd.DataFrame, path: str | Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    if path.suffix.lower() == ".parquet":
        df.to_parquet(path, index=False)
    elif path.suffix.lower() == ".xlsx":
        df.to_excel(path, index=False)
    else:
        df.to_csv(path, index=False)
    log.info(f"Wrote {path} ({len(df):,} rows)")
    return path
