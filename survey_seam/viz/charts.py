# survey_seam/viz/charts.py
from __future__ import annotations
import altair as alt
import pandas as pd


def _empty(note: str = "No data") -> alt.Chart:
    return alt.Chart(pd.DataFrame({"note": [note]})).mark_text(size=16).encode(text="note")


def factor_bars(factors: pd.DataFrame) -> alt.Chart:
    """Shallow/deep correction factor per taxon/stage; unusable factors drawn in gray."""
    if factors.empty:
        return _empty()
    f = factors.copy()
    f["key"] = f["taxon"].astype(str) + f["stage"].map(lambda s: "" if pd.isna(s) else f"_{s}")
    long = pd.concat(
        [
            f[["key"]].assign(stratum=s, factor=f[f"{s}_factor"], usable=f[f"{s}_ok"])
            for s in ("shallow", "deep")
        ],
        ignore_index=True,
    )
    # inf/nan cannot be drawn; keep the row so the gap is visible
    long["factor"] = pd.to_numeric(long["factor"], errors="coerce").where(long["usable"])
    return (
        alt.Chart(long)
        .mark_bar()
        .encode(
            x=alt.X("key:N", title="Taxon / stage", sort=None),
            xOffset="stratum:N",
            y=alt.Y("factor:Q", title="Correction factor"),
            color=alt.Color("stratum:N", legend=alt.Legend(title="Depth stratum")),
            opacity=alt.condition("datum.usable", alt.value(1.0), alt.value(0.3)),
            tooltip=["key:N", "stratum:N", alt.Tooltip("factor:Q", format=".3f"), "usable:N"],
        )
        .properties(height=280, title="Cross-survey correction factors")
    )


def overlap_cpue_points(stats: pd.DataFrame) -> alt.Chart:
    """Mean CPUE +/- SE per survey and stratum in the overlap band."""
    if stats.empty or stats["n_hauls"].sum() == 0:
        return _empty("No overlap hauls")
    s = stats.copy()
    s["lo"] = s["mean_cpue"] - s["se_cpue"].fillna(0)
    s["hi"] = s["mean_cpue"] + s["se_cpue"].fillna(0)
    base = alt.Chart(s).encode(
        x=alt.X("stratum:N", title="Depth stratum", sort=["shallow", "deep"]),
        xOffset="survey:N",
        color=alt.Color("survey:N", legend=alt.Legend(title="Survey")),
    )
    points = base.mark_point(filled=True, size=80).encode(
        y=alt.Y("mean_cpue:Q", title="Mean CPUE"),
        tooltip=["survey:N", "stratum:N", alt.Tooltip("mean_cpue:Q", format=",.2f"), "n_hauls:Q"],
    )
    bars = base.mark_rule().encode(y="lo:Q", y2="hi:Q")
    return (bars + points).properties(height=260, title="Overlap-zone CPUE by stratum")


def proportion_bars(table: pd.DataFrame, column: str, top_n: int = 25) -> alt.Chart:
    """Largest per-cell proportions for one output column."""
    if column not in table.columns:
        return _empty(f"No column {column}")
    df = table[["cell_id", column]].rename(columns={column: "proportion"})
    df = df[df["proportion"] > 0].sort_values("proportion", ascending=False).head(top_n)
    if df.empty:
        return _empty()
    return (
        alt.Chart(df)
        .mark_bar()
        .encode(
            x=alt.X("cell_id:O", title="Cell", sort="-y"),
            y=alt.Y("proportion:Q", title="Proportion of biomass"),
            tooltip=["cell_id:O", alt.Tooltip("proportion:Q", format=".4f")],
        )
        .properties(height=280, title=f"{column}: top {top_n} cells")
    )
