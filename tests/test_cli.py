from pathlib import Path

import pandas as pd
import pytest

from survey_seam.etl.run_pipeline import main, select_keys
from survey_seam.core.keys import TaxonKey


def _write_world(world, tmp_path: Path) -> list[str]:
    hauls, catch = world["hauls"], world["catch"]
    paths = {}
    for survey in ("AFSC", "DFO"):
        paths[f"hauls_{survey}"] = tmp_path / f"{survey.lower()}_hauls.csv"
        # source-style headers on one side to exercise header aliases
        h = hauls[hauls["survey"] == survey]
        if survey == "DFO":
            h = h.rename(columns={"haul_id": "fishing_event_id", "lat": "latitude", "lon": "longitude"})
        h.to_csv(paths[f"hauls_{survey}"], index=False)
        paths[f"catch_{survey}"] = tmp_path / f"{survey.lower()}_catch.csv"
        catch[catch["survey"] == survey].to_csv(paths[f"catch_{survey}"], index=False)

    world["cells"].rename(columns={"cell_id": "box_id", "depth": "botz"}).to_csv(tmp_path / "cells.csv", index=False)
    world["densities"].to_parquet(tmp_path / "densities.parquet", index=False)
    world["groups"].to_csv(tmp_path / "groups.csv", index=False)

    return [
        "--hauls", str(paths["hauls_AFSC"]), str(paths["hauls_DFO"]),
        "--catch", str(paths["catch_AFSC"]), str(paths["catch_DFO"]),
        "--cells", str(tmp_path / "cells.csv"),
        "--densities", str(tmp_path / "densities.parquet"),
        "--groups", str(tmp_path / "groups.csv"),
        "--outdir", str(tmp_path / "out"),
    ]


def test_cli_end_to_end(world, tmp_path: Path):
    args = _write_world(world, tmp_path)
    main(args)
    out = tmp_path / "out"
    for name in ("correction_factors.csv", "run_report.csv",
                 "proportions_vertebrate.csv", "proportions_invertebrate.csv"):
        assert (out / name).exists(), name

    report = pd.read_csv(out / "run_report.csv")
    assert dict(zip(report["taxon"], report["status"])) == {"ATF": "stitched", "POL": "corrected"}

    vert = pd.read_csv(out / "proportions_vertebrate.csv")
    assert vert["POL_A_S1"].sum() == pytest.approx(1.0)
    assert vert["ATF_S4"].sum() == pytest.approx(1.0)

    factors = pd.read_csv(out / "correction_factors.csv").set_index("taxon")
    assert factors.loc["POL", "shallow_factor"] == pytest.approx(1.5)
    assert factors.loc["POL", "deep_factor"] == pytest.approx(2.0)


def test_cli_taxa_subset_and_threshold(world, tmp_path: Path):
    args = _write_world(world, tmp_path) + ["--taxa", "POL_A", "--cell-threshold", "200"]
    result = main(args)
    report = result.report()
    assert report["taxon"].tolist() == ["POL"]
    # every cell is AFSC-native: nothing is rescaled and cell 92 takes the AFSC estimate
    props = result.results[0].proportions
    assert props[92] > props[91]


def test_select_keys():
    keys = [TaxonKey("ATF"), TaxonKey("POL", "A"), TaxonKey("POL", "J")]
    assert select_keys(keys, None) == keys
    assert select_keys(keys, ["*"]) == keys
    assert select_keys(keys, ["pol"]) == keys[1:]
    assert select_keys(keys, ["POL_J", "nope"]) == [keys[2]]
