# survey_seam/debug.py
from __future__ import annotations
import numpy as np
import pandas as pd
import streamlit as st

from survey_seam.core.assembly import check_column_sums


def proportion_doctor(table: pd.DataFrame, cells: pd.DataFrame | None = None, tol: float = 1e-6):
    """Sum-to-one and empty-interior-cell checks for a wide proportion table."""
    with st.expander("🩺 Debug: Proportion sums"):
        if table.empty or "cell_id" not in table.columns:
            st.info("No proportion table loaded.")
            return

        values = table.drop(columns=["cell_id"])
        sums = values.sum()
        populated = sums[sums > 0]
        c1, c2, c3 = st.columns(3)
        c1.write(f"Columns: **{len(sums)}**")
        c2.write(f"Populated: **{len(populated)}**")
        c3.write(f"All-zero: **{int((sums == 0).sum())}**")

        bad = check_column_sums(table, tol)
        if bad.empty:
            st.success(f"Every populated column sums to 1 (tol {tol:g}).")
        else:
            st.error(f"⚠️ {len(bad)} columns do not sum to 1.")
            st.dataframe(bad.rename("sum").to_frame(), use_container_width=True)

        negs = int((values < 0).sum().sum())
        if negs:
            st.error(f"⚠️ {negs} negative proportions.")

        if cells is not None and "boundary" in cells.columns:
            interior = cells.loc[~cells["boundary"].astype(bool), "cell_id"]
            inner = table[table["cell_id"].isin(interior)].set_index("cell_id")[populated.index]
            zero_cells = inner.index[np.any(inner.to_numpy() <= 0, axis=1)].tolist()
            st.write(f"Interior cells with a zero in some populated column: **{len(zero_cells)}**")
            if zero_cells:
                st.write(zero_cells[:50])
