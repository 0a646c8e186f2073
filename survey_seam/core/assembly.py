# survey_seam/core/assembly.py
from __future__ import annotations
import logging
from typing import Iterable

import pandas as pd

from survey_seam.config import SLOT_LABELS, DEFAULT_STAGES, GROUP_CLASSES, SUM_TOL
from survey_seam.core.keys import TaxonKey

log = logging.getLogger(__name__)

INDEX_COLS = ["column", "taxon", "stage", "slot", "group_class"]
NO_STAGE = {"none", "-", "na"}


def column_name(taxon: str, stage: str | None, slot: str) -> str:
    return f"{taxon}_{slot}" if not stage else f"{taxon}_{stage}_{slot}"


def _stages_of(value, key_stages: set | None = None) -> list[str | None]:
    if value is None or pd.isna(value) or str(value).strip() == "":
        # unspecified: a taxon only ever run without a stage keeps its stage-less columns
        if key_stages == {None}:
            return [None]
        return list(DEFAULT_STAGES)
    if str(value).strip().lower() in NO_STAGE:
        return [None]
    return [s.strip().upper() for s in str(value).split(";") if s.strip()]


def column_index(
    groups: pd.DataFrame,
    slots: Iterable[str] = SLOT_LABELS,
    keys: Iterable[TaxonKey] | None = None,
) -> pd.DataFrame:
    """
    One row per output column the downstream consumer expects:
    taxon x stage x slot, tagged with the taxon's group class.
    `keys` (the keys of a run) only matter for taxa whose stages are blank.
    """
    seen: dict[str, set] = {}
    for k in keys or ():
        seen.setdefault(k.taxon, set()).add(k.stage)
    rows = []
    has_stages = "stages" in groups.columns
    for g in groups.sort_values("taxon").itertuples(index=False):
        stages = _stages_of(g.stages if has_stages else None, seen.get(g.taxon))
        for stage in stages:
            for slot in slots:
                rows.append((column_name(g.taxon, stage, slot), g.taxon, stage, slot, g.group_class))
    return pd.DataFrame(rows, columns=INDEX_COLS)


def expected_columns(
    groups: pd.DataFrame,
    slots: Iterable[str] = SLOT_LABELS,
    keys: Iterable[TaxonKey] | None = None,
) -> list[str]:
    return column_index(groups, slots, keys)["column"].tolist()


def assemble_table(
    cells: pd.DataFrame,
    vectors: dict[TaxonKey, pd.Series],
    groups: pd.DataFrame,
    slots: Iterable[str] = SLOT_LABELS,
    keys: Iterable[TaxonKey] | None = None,
) -> pd.DataFrame:
    """
    Wide proportion table: one row per cell, one column per taxon x stage x slot.
    Every expected column is present; combinations with no vector are all zero.
    Each processed vector is written into all of its slot columns.
    `keys` defaults to the keys of `vectors`.
    """
    slots = list(slots)
    keys = list(vectors) if keys is None else list(keys)
    cell_ids = pd.Index(sorted(cells["cell_id"].tolist()), name="cell_id")
    expected = expected_columns(groups, slots, keys)

    data: dict[str, pd.Series] = {c: pd.Series(0.0, index=cell_ids) for c in expected}
    extras = []
    for key in sorted(vectors, key=TaxonKey.sort_key):
        vec = vectors[key].astype(float).reindex(cell_ids).fillna(0.0)
        for slot in slots:
            col = column_name(key.taxon, key.stage, slot)
            if col not in data:
                extras.append(col)
            data[col] = vec
    if extras:
        log.warning(f"{len(extras)} processed columns not expected downstream: {extras[:8]}")

    table = pd.DataFrame(data, index=cell_ids).reset_index()
    return table


def split_by_class(
    table: pd.DataFrame,
    groups: pd.DataFrame,
    slots: Iterable[str] = SLOT_LABELS,
    keys: Iterable[TaxonKey] | None = None,
) -> dict[str, pd.DataFrame]:
    """Separate vertebrate and invertebrate columns; each part keeps cell_id."""
    idx = column_index(groups, slots, keys)
    out = {}
    for cls in GROUP_CLASSES:
        cols = [c for c in idx.loc[idx["group_class"] == cls, "column"] if c in table.columns]
        out[cls] = table[["cell_id", *cols]].copy()

    placed = set(idx["column"])
    orphans = [c for c in table.columns if c != "cell_id" and c not in placed]
    if orphans:
        log.warning(f"Columns with no group class left out of the class tables: {orphans[:8]}")
    return out


def check_column_sums(table: pd.DataFrame, tol: float = SUM_TOL) -> pd.Series:
    """Column sums of populated columns that are not within `tol` of 1."""
    sums = table.drop(columns=["cell_id"]).sum()
    populated = sums[sums > 0]
    return populated[(populated - 1.0).abs() > tol]
