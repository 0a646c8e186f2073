from __future__ import annotations
import json
from pathlib import Path

import numpy as np
import pandas as pd
import pydeck as pdk


def load_geojson(path: str | Path) -> dict:
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)


def _detect_cell_prop(geojson: dict) -> str | None:
    """Heuristic to find which property holds the cell identifier."""
    feats = geojson.get("features", [])
    common = ["cell_id", "box_id", "BOX_ID", "CELL_ID", ".bx0", "box", "id"]
    for k in common:
        for f in feats[:50]:
            if k in (f.get("properties") or {}):
                return k
    # otherwise the first integer-valued property
    for f in feats[:50]:
        for k, v in (f.get("properties") or {}).items():
            if isinstance(v, int) and not isinstance(v, bool):
                return k
    return None


def _normalize_cell_value(val) -> int | None:
    if val is None:
        return None
    try:
        return int(float(str(val).strip()))
    except ValueError:
        return None


def _ramp(p: float, pmax: float) -> list[int]:
    """White-to-navy ramp on sqrt scale so small shares stay visible."""
    t = float(np.sqrt(p / pmax)) if pmax > 0 else 0.0
    lo, hi = np.array([237, 248, 251]), np.array([8, 48, 107])
    r, g, b = (lo + (hi - lo) * t).round().astype(int).tolist()
    return [r, g, b, 200]


def render_proportion_map(
    table: pd.DataFrame,
    column: str,
    geojson: dict,
    cells: pd.DataFrame | None = None,
    cell_prop: str | None = None,
):
    """Choropleth of one proportion column over the model cells."""
    props_by_cell = dict(zip(table["cell_id"].astype(int), table[column].astype(float)))
    boundary = set()
    if cells is not None and "boundary" in cells.columns:
        boundary = set(cells.loc[cells["boundary"].astype(bool), "cell_id"].astype(int))
    pmax = max([v for v in props_by_cell.values() if v > 0], default=0.0)

    cprop = cell_prop or _detect_cell_prop(geojson) or "cell_id"

    COLOR = {
        "boundary": [150, 150, 150, 90],
        "no_data":  [200, 200, 200, 120],
    }

    geojson = json.loads(json.dumps(geojson))  # leave the caller's dict untouched
    matched = unmatched = 0
    for feat in geojson.get("features", []):
        props = (feat.get("properties") or {}).copy()
        cid = _normalize_cell_value(props.get(cprop))
        props["cell_label"] = f"Cell {cid}" if cid is not None else "Unknown"

        value = props_by_cell.get(cid) if cid is not None else None
        if cid in boundary:
            matched += 1
            props["status"] = "boundary"
            props["prop_label"] = "boundary"
            props["fill_color"] = COLOR["boundary"]
        elif value is not None and value > 0:
            matched += 1
            props["status"] = "data"
            props["prop_label"] = f"{value:.4f}"
            props["fill_color"] = _ramp(value, pmax)
        else:
            unmatched += 1
            props["status"] = "no_data"
            props["prop_label"] = "0"
            props["fill_color"] = COLOR["no_data"]
        feat["properties"] = props

    layer = pdk.Layer(
        "GeoJsonLayer",
        geojson,
        opacity=0.75,
        stroked=True,
        filled=True,
        get_fill_color="properties.fill_color",
        get_line_color=[40, 40, 40, 200],
        line_width_min_pixels=0.5,
        pickable=True,
    )

    view_state = pdk.ViewState(latitude=56.0, longitude=-145.0, zoom=4.0)
    tooltip = {
        "html": "<b>{cell_label}</b><br/><b>Proportion:</b> {prop_label}<br/><b>Status:</b> {status}",
        "style": {"backgroundColor": "rgba(30,30,30,0.9)", "color": "white"},
    }

    deck = pdk.Deck(layers=[layer], initial_view_state=view_state, tooltip=tooltip, map_style=None)
    deck._seam_debug = {"cell_prop_used": cprop, "matched_features": matched, "unmatched_features": unmatched}
    return deck
