from .keys import TaxonKey
from .hauls import normalize_hauls
from .bias import CorrectionFactors, estimate_factors, overlap_stats
from .correction import apply_correction, stitch_uncorrected, DegenerateFactorError
from .patching import patch_empty_cells, PatchError
from .assembly import assemble_table, split_by_class
from .pipeline import build_inputs, process_taxon, run_pipeline, RunSettings, SurveyInputs

__all__ = [
    "TaxonKey", "normalize_hauls", "CorrectionFactors", "estimate_factors", "overlap_stats",
    "apply_correction", "stitch_uncorrected", "DegenerateFactorError",
    "patch_empty_cells", "PatchError", "assemble_table", "split_by_class",
    "build_inputs", "process_taxon", "run_pipeline", "RunSettings", "SurveyInputs",
]
