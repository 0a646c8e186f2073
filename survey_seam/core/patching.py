# survey_seam/core/patching.py
"""
Empty-cell patching.

Interior cells that end up with no proportion get a small floor equal to the
smallest positive proportion in the same vector, and the total added is
taken off the cell holding the largest proportion so the vector still sums
to one. This is a heuristic floor, not an imputation: downstream a true zero
reads as "taxon absent from this cell", which is worse than a negligible
nonzero share where the surveys simply had no data.
"""
from __future__ import annotations
from dataclasses import dataclass, field
import logging

import pandas as pd

log = logging.getLogger(__name__)


class PatchError(ValueError):
    """The vector has no positive proportion to patch from."""


@dataclass
class PatchResult:
    proportions: pd.Series          # indexed by cell_id
    patched_cells: list = field(default_factory=list)
    floor: float = 0.0
    donor: int | None = None
    deduction: float = 0.0
    capped: bool = False

    @property
    def n_patched(self) -> int:
        return len(self.patched_cells)


def _as_series(cells: pd.DataFrame, proportions: pd.Series | pd.DataFrame) -> pd.Series:
    if isinstance(proportions, pd.DataFrame):
        proportions = proportions.set_index("cell_id")["proportion"]
    s = proportions.astype(float)
    # align to the full cell list so cells absent from the vector read as empty
    return s.reindex(pd.Index(cells["cell_id"], name="cell_id"))


def find_empty_cells(cells: pd.DataFrame, proportions: pd.Series) -> list:
    """Interior (non-boundary) cells whose proportion is missing or not positive."""
    s = _as_series(cells, proportions)
    interior = pd.Series(~cells["boundary"].astype(bool).to_numpy(), index=s.index)
    empty = interior & (s.isna() | (s <= 0))
    return sorted(s.index[empty.to_numpy()].tolist())


def donor_cell(proportions: pd.Series) -> int:
    """Cell with the largest proportion; ties go to the lowest cell id."""
    s = proportions.dropna()
    if s.empty:
        raise PatchError("No cell holds a proportion")
    top = s.max()
    return min(s.index[s == top].tolist())


def patch_empty_cells(cells: pd.DataFrame, proportions: pd.Series | pd.DataFrame) -> PatchResult:
    """
    Fill interior empty cells with the minimum positive proportion and deduct
    the same total from the max-proportion cell. Boundary cells without a value
    are set to 0. The input is not modified.

    When the donor cannot give n x floor and stay positive, the floor is
    capped at donor / (n + 1) so the donor ends level with the patched cells
    (`capped=True` on the result).
    """
    s = _as_series(cells, proportions).copy()
    empty = find_empty_cells(cells, s)

    if empty:
        positive = s[s > 0]
        if positive.empty:
            raise PatchError("No positive proportion to use as a floor")
        floor = float(positive.min())
        donor = donor_cell(s)
        capped = bool(s.loc[donor] - floor * len(empty) <= 0)
        if capped:
            capped_floor = float(s.loc[donor]) / (len(empty) + 1)
            log.warning(
                f"Floor {floor:.3g} x {len(empty)} empty cells exceeds donor cell {donor} "
                f"({s.loc[donor]:.3g}); floor capped at {capped_floor:.3g}"
            )
            floor = capped_floor
        deduction = floor * len(empty)
        s.loc[empty] = floor
        s.loc[donor] = s.loc[donor] - deduction
        log.debug(f"Patched {len(empty)} cells with floor {floor:.3g}; donor cell {donor}")
        result = PatchResult(s, empty, floor, donor, deduction, capped)
    else:
        result = PatchResult(s)

    result.proportions = result.proportions.fillna(0.0)
    return result
