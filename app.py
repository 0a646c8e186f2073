# app.py
from __future__ import annotations

import streamlit as st
import pandas as pd
from pathlib import Path
import plotly.express as px

from survey_seam.config import OUT_DIR, GEO_PATH, RAW_DIR
from survey_seam.cleaning import prepare_table
from survey_seam.debug import proportion_doctor
from survey_seam.io import read_table
from survey_seam.ui.controls import multiselect_with_all
from survey_seam.viz.charts import factor_bars, proportion_bars
from survey_seam.viz.maps import load_geojson, render_proportion_map

# -----------------------------------------------------------------------------
# Page config (must be first Streamlit call)
# -----------------------------------------------------------------------------
st.set_page_config(page_title="Survey Seam Review", layout="wide")

CELLS_PATH = RAW_DIR / "model_cells.csv"


# -----------------------------------------------------------------------------
# Data loading
# -----------------------------------------------------------------------------
@st.cache_data(show_spinner=False)
def load_outputs(out_dir: Path) -> dict[str, pd.DataFrame]:
    """Load whatever pipeline outputs exist in out_dir."""
    names = {
        "factors": "correction_factors.csv",
        "report": "run_report.csv",
        "vertebrate": "proportions_vertebrate.csv",
        "invertebrate": "proportions_invertebrate.csv",
    }
    out = {}
    for key, name in names.items():
        p = out_dir / name
        out[key] = pd.read_csv(p) if p.exists() else pd.DataFrame()
    return out


@st.cache_data(show_spinner=False)
def load_cells(path: Path) -> pd.DataFrame | None:
    if not path.exists():
        return None
    return prepare_table(read_table(path, "cells"), "cells")


outputs = load_outputs(OUT_DIR)
cells = load_cells(CELLS_PATH)

st.title("Survey Seam: cross-survey correction review")

if all(df.empty for df in outputs.values()):
    st.warning(f"No pipeline outputs found in {OUT_DIR}/. Run `python -m survey_seam.etl.run_pipeline` first.")
    st.stop()

tabs = st.tabs(["Factors", "Proportions", "Report"])

# -----------------------------------------------------------------------------
# Factors Tab
# -----------------------------------------------------------------------------
with tabs[0]:
    st.subheader("Correction factors (reference ÷ corrected mean CPUE)")
    factors = outputs["factors"]
    if factors.empty:
        st.info("No factor table.")
    else:
        st.altair_chart(factor_bars(factors), use_container_width=True)

        usable = factors[factors["shallow_ok"] & factors["deep_ok"]]
        if not usable.empty:
            scatter = px.scatter(
                usable,
                x="shallow_factor",
                y="deep_factor",
                hover_data=["taxon", "stage"],
                log_x=True,
                log_y=True,
                title="Shallow vs deep factor (usable taxa)",
            )
            st.plotly_chart(scatter, use_container_width=True)
        st.dataframe(factors, use_container_width=True)

# -----------------------------------------------------------------------------
# Proportions Tab
# -----------------------------------------------------------------------------
with tabs[1]:
    st.subheader("Spatial proportions")
    cls = st.radio("Table", ["vertebrate", "invertebrate"], horizontal=True)
    table = outputs[cls]
    if table.empty:
        st.info(f"No {cls} table.")
    else:
        columns = [c for c in table.columns if c != "cell_id"]
        populated = [c for c in columns if table[c].sum() > 0]
        chosen = multiselect_with_all("Columns", populated, default=populated[:1], all_label="All populated")
        col = st.selectbox("Column to map", chosen or populated or columns)

        st.altair_chart(proportion_bars(table, col), use_container_width=True)

        try:
            gjson = load_geojson(GEO_PATH)
        except FileNotFoundError:
            st.info(f"No cell GeoJSON at {GEO_PATH}; map skipped.")
        else:
            deck = render_proportion_map(table, col, gjson, cells)
            st.pydeck_chart(deck, use_container_width=True)
            with st.expander("Debug: Map join details"):
                dbg = getattr(deck, "_seam_debug", {})
                st.write("Cell prop used:", dbg.get("cell_prop_used"))
                st.write("Matched features:", dbg.get("matched_features"))
                st.write("Unmatched features:", dbg.get("unmatched_features"))

        proportion_doctor(table, cells)

# -----------------------------------------------------------------------------
# Report Tab
# -----------------------------------------------------------------------------
with tabs[2]:
    st.subheader("Run report")
    report = outputs["report"]
    if report.empty:
        st.info("No run report.")
    else:
        c1, c2, c3 = st.columns(3)
        counts = report["status"].value_counts()
        c1.metric("Corrected", int(counts.get("corrected", 0)))
        c2.metric("Stitched", int(counts.get("stitched", 0)))
        c3.metric("Skipped", int(counts.get("skipped", 0)))

        st.markdown(
            """
**Status legend**
- **corrected**: eligible taxon with usable shallow and deep factors
- **stitched**: surveys joined without correction (not eligible or degenerate factor)
- **skipped**: per-taxon input problem; see `reason`
            """
        )
        st.dataframe(report, use_container_width=True)
