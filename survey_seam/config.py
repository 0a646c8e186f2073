from pathlib import Path

# Root-relative data directories
DATA_DIR = Path("data")
RAW_DIR = DATA_DIR / "raw"
OUT_DIR = DATA_DIR / "output"
GEO_PATH = DATA_DIR / "geo" / "model_cells.geojson"

# Survey identifiers as they appear in the `survey` column
REFERENCE_SURVEY = "AFSC"   # US bottom trawl, left untouched
CORRECTED_SURVEY = "DFO"    # Canadian synoptic trawl, rescaled to AFSC

# Overlap zone: inclusive latitude band around the shared border
OVERLAP_LAT_BAND = (53.5, 55.5)

# Depth split (m); sign of the input depth is ignored
DEPTH_BREAK_M = 200.0
STRATA = ("shallow", "deep")

# Model cells with id >= this threshold are native to CORRECTED_SURVEY
CORRECTED_CELL_MIN_ID = 92

# Slot labels the downstream consumer expects per taxon/stage column
SLOT_LABELS = ("S1", "S2", "S3", "S4")
DEFAULT_STAGES = ("A", "J")
GROUP_CLASSES = ("vertebrate", "invertebrate")

# Minimum skill for a taxon to be eligible for correction
SKILL_THRESHOLD = 0.0

# Tolerance for sum-to-one checks on output columns
SUM_TOL = 1e-6

# Columns we expect in each input table (after standardization)
HAUL_COLS = ["survey", "haul_id", "year", "lat", "lon", "depth"]
CATCH_COLS = ["survey", "haul_id", "taxon", "stage", "cpue"]
CELL_COLS = ["cell_id", "boundary", "depth", "area"]
DENSITY_COLS = ["cell_id", "survey", "taxon", "stage", "density"]
SKILL_COLS = ["taxon", "stage"]
GROUP_COLS = ["taxon", "group_class"]
