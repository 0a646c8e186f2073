from __future__ import annotations
from typing import Iterable, List
import streamlit as st


def multiselect_with_all(
    label: str,
    options: Iterable[str],
    *,
    default: Iterable[str] | None = None,
    key: str | None = None,
    help: str | None = None,
    all_label: str = "All taxa",
) -> List[str]:
    """
    Pick output columns (taxon[_stage]_slot) for the review tabs.
    `all_label` stands for every column; an empty pick means the same.
    """
    columns = sorted({str(o).strip() for o in options if str(o).strip()})
    default = list(default) if default else []
    start = [all_label] if columns and set(default) == set(columns) else default

    picked = st.multiselect(label, [all_label, *columns], default=start, key=key, help=help)
    if not picked or all_label in picked:
        return columns
    return [c for c in picked if c != all_label]
