from .base import NOISE_LABEL, ClusterAssignment, ClusteringAlgorithm, check_matrix
from .exemplar import AffinityPropagationClustering, cluster_exemplar
from .density import DBSCANClustering, cluster_density
from hrclust.errors import ConfigurationError


CLUSTERING_ALGORITHMS = {
    'exemplar': AffinityPropagationClustering,
    'density': DBSCANClustering,
}


def get_algorithm(name: str, **params) -> ClusteringAlgorithm:
    """Instantiate a registered clustering strategy by name."""
    if name not in CLUSTERING_ALGORITHMS:
        raise ConfigurationError(f"unknown clustering algorithm: {name}", stage='config',
                                 context={'choices': sorted(CLUSTERING_ALGORITHMS)})
    return CLUSTERING_ALGORITHMS[name](**params)


__all__ = [
    "NOISE_LABEL",
    "ClusterAssignment",
    "ClusteringAlgorithm",
    "check_matrix",
    "AffinityPropagationClustering",
    "DBSCANClustering",
    "CLUSTERING_ALGORITHMS",
    "cluster_exemplar",
    "cluster_density",
    "get_algorithm",
]
