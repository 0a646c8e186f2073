import numpy as np
import pandas as pd
import pytest


@pytest.fixture
def world():
    """
    Two surveys meeting inside the default overlap band (53.5-55.5 N).

    POL adults: shallow 10,20 (AFSC) vs 5,15 (DFO) -> 1.5; deep 8 vs 4 -> 2.0.
    ATF (no stage): DFO never catches it shallow -> degenerate shallow factor.
    Cells 90-91 are AFSC, 92-95 DFO (threshold 92); 94 is a boundary cell and
    95 has no density for either taxon's POL estimate.
    """
    hauls = pd.DataFrame({
        "survey":  ["AFSC", "AFSC", "AFSC", "AFSC", "AFSC", "DFO", "DFO", "DFO", "DFO"],
        "haul_id": ["A1", "A2", "A3", "A4", "A5", "D1", "D2", "D3", "D4"],
        "year":    [2019, 2019, 2021, 2021, 2021, 2019, 2021, 2021, 2021],
        "lat":     [54.0, 54.2, 54.5, 60.0, np.nan, 54.1, 54.3, 54.6, 52.0],
        "lon":     [-133.0, -133.0, -134.0, -150.0, -133.0, -132.0, -132.0, -133.0, -130.0],
        "depth":   [100.0, 120.0, 300.0, 100.0, 150.0, 90.0, 110.0, 350.0, 100.0],
    })
    catch = pd.DataFrame({
        "survey":  ["AFSC", "AFSC", "AFSC", "AFSC", "DFO", "DFO", "DFO",
                    "AFSC", "AFSC", "DFO"],
        "haul_id": ["A1", "A2", "A3", "A4", "D1", "D2", "D3",
                    "A1", "A3", "D3"],
        "taxon":   ["POL"] * 7 + ["ATF"] * 3,
        "stage":   ["A"] * 7 + [np.nan] * 3,
        "cpue":    [10.0, 20.0, 8.0, 100.0, 5.0, 15.0, 4.0,
                    6.0, 4.0, 2.0],
    })
    cells = pd.DataFrame({
        "cell_id":  [90, 91, 92, 93, 94, 95],
        "boundary": [False, False, False, False, True, False],
        "depth":    [100.0, 300.0, 150.0, 400.0, 50.0, 120.0],
        "area":     [2.0, 2.0, 2.0, 2.0, 2.0, 2.0],
    })
    densities = pd.DataFrame({
        "cell_id": [90, 91, 92, 93, 94, 92,
                    90, 91, 92, 93, 95],
        "survey":  ["AFSC", "AFSC", "DFO", "DFO", "DFO", "AFSC",
                    "AFSC", "AFSC", "DFO", "DFO", "DFO"],
        "taxon":   ["POL"] * 6 + ["ATF"] * 5,
        "stage":   ["A"] * 6 + [np.nan] * 5,
        "density": [1.0, 2.0, 10.0, 5.0, 7.0, 99.0,
                    3.0, 1.0, 2.0, 2.0, 4.0],
    })
    groups = pd.DataFrame({
        "taxon":       ["POL", "ATF", "KCR"],
        "group_class": ["vertebrate", "vertebrate", "invertebrate"],
        "stages":      ["A;J", "-", np.nan],
    })
    return {
        "hauls": hauls,
        "catch": catch,
        "cells": cells,
        "densities": densities,
        "groups": groups,
    }
