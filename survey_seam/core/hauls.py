# survey_seam/core/hauls.py
"""
Haul normalization: one record per master-list haul for a taxon/stage.

A haul with no catch record for a taxon is taken to be a true zero catch,
not missing data. Hauls without position or depth cannot be stratified
and are dropped after zero-fill rather than imputed.
"""
from __future__ import annotations
import logging

import pandas as pd

from survey_seam.core.keys import TaxonKey

log = logging.getLogger(__name__)

HAUL_FIELDS = ["survey", "haul_id", "year", "lat", "lon", "depth"]


def _with_str_keys(df: pd.DataFrame) -> pd.DataFrame:
    return df.assign(
        survey=df["survey"].astype("string"),
        haul_id=df["haul_id"].astype("string"),
    )


def zero_fill(hauls: pd.DataFrame, catch: pd.DataFrame, key: TaxonKey) -> pd.DataFrame:
    """
    Left-join the master haul list to the catch records of `key`.
    Duplicate catch rows for one haul are summed; hauls with no catch get cpue 0.
    """
    hauls = _with_str_keys(hauls)
    sub = _with_str_keys(key.select(catch))
    sub = (
        sub.groupby(["survey", "haul_id"], as_index=False, dropna=False)["cpue"]
           .sum(min_count=1)
    )

    known = hauls[["survey", "haul_id"]].drop_duplicates()
    orphans = sub.merge(known, on=["survey", "haul_id"], how="left", indicator=True)
    n_orphan = int((orphans["_merge"] == "left_only").sum())
    if n_orphan:
        log.warning(f"{key.label}: {n_orphan} catch records have no matching haul in the master list; dropped")

    out = hauls[HAUL_FIELDS].merge(sub, on=["survey", "haul_id"], how="left")
    out["cpue"] = out["cpue"].fillna(0.0).astype(float)
    out["taxon"] = key.taxon
    out["stage"] = key.stage
    return out


def drop_unlocated(df: pd.DataFrame) -> pd.DataFrame:
    """Drop hauls missing latitude, longitude or depth."""
    keep = df[["lat", "lon", "depth"]].notna().all(axis=1)
    return df.loc[keep].reset_index(drop=True)


def normalize_hauls(hauls: pd.DataFrame, catch: pd.DataFrame, key: TaxonKey) -> pd.DataFrame:
    filled = zero_fill(hauls, catch, key)
    out = drop_unlocated(filled)
    log.debug(
        f"{key.label}: {len(out):,} hauls after zero-fill "
        f"({len(filled) - len(out):,} without position/depth dropped)"
    )
    return out
