from .resources import Resources, HRResources
from .options import (
    AnalysisOptions,
    DensityOptions,
    EmbeddingOptions,
    ExemplarOptions,
    load_params,
    override,
    options_from_dict,
)

__all__ = [
    "Resources",
    "HRResources",
    "AnalysisOptions",
    "DensityOptions",
    "EmbeddingOptions",
    "ExemplarOptions",
    "load_params",
    "override",
    "options_from_dict",
]
