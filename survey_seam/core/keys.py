from __future__ import annotations
from dataclasses import dataclass
from typing import Optional

import pandas as pd


@dataclass(frozen=True)
class TaxonKey:
    """A taxon code plus an optional life stage; the unit of correction and output."""

    taxon: str
    stage: Optional[str] = None

    @property
    def label(self) -> str:
        return self.taxon if not self.stage else f"{self.taxon}_{self.stage}"

    @classmethod
    def of(cls, taxon, stage=None) -> "TaxonKey":
        stage = None if stage is None or pd.isna(stage) or str(stage).strip() == "" else str(stage).strip()
        return cls(str(taxon).strip(), stage)

    def sort_key(self) -> tuple[str, str]:
        return (self.taxon, self.stage or "")

    def mask(self, df: pd.DataFrame) -> pd.Series:
        """Rows of a long table (with taxon/stage columns) that belong to this key."""
        m = df["taxon"] == self.taxon
        if self.stage is None:
            m &= df["stage"].isna()
        else:
            m &= df["stage"] == self.stage
        return m.fillna(False).astype(bool)

    def select(self, df: pd.DataFrame) -> pd.DataFrame:
        return df.loc[self.mask(df)].copy()


def keys_in(df: pd.DataFrame) -> set[TaxonKey]:
    pairs = df[["taxon", "stage"]].drop_duplicates()
    return {TaxonKey.of(t, s) for t, s in pairs.itertuples(index=False) if pd.notna(t)}
