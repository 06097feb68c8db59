from .attrition import (
    STATUS_CLUSTERED,
    STATUS_NOISE,
    align_records,
    attrition_flags,
    cluster_profiles,
    join_results,
    summarize_attrition,
)

__all__ = [
    "STATUS_CLUSTERED",
    "STATUS_NOISE",
    "align_records",
    "attrition_flags",
    "cluster_profiles",
    "join_results",
    "summarize_attrition",
]
