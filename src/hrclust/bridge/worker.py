"""Machine-learning side of the bridge: decode features, fit, encode results."""
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import asdict
from typing import Any

import numpy as np

from hrclust.bridge.schema import decode_features, encode_results
from hrclust.clustering import get_algorithm
from hrclust.configs.options import AnalysisOptions, EmbeddingOptions
from hrclust.embedding import get_embedder
from hrclust.utils.logging import get_logger

logger = get_logger(__name__)


def build_request(options: AnalysisOptions, embed: bool = True) -> dict[str, Any]:
    """Plain-dict description of the fits to run; must stay picklable."""
    return {
        'algorithms': {
            'exemplar': asdict(options.exemplar),
            'density': {'min_samples': options.density.min_samples, 'eps': options.density.eps},
        },
        'embedding': asdict(options.embedding) if embed else None,
        'parallel': bool(options.parallel),
    }


def _branch_copy(X: np.ndarray) -> np.ndarray:
    # Each branch gets its own buffer; nothing is shared between threads
    return np.array(X, dtype=np.float64, copy=True)


def compute(payload: bytes, request: dict[str, Any]) -> bytes:
    features = decode_features(payload)
    X = features.matrix
    logger.info(f"[+] Worker received matrix rows={X.shape[0]}, cols={X.shape[1]}")

    strategies = {name: get_algorithm(name, **params) for name, params in request['algorithms'].items()}
    embedder = None
    if request.get('embedding') is not None:
        emb_opts = EmbeddingOptions(**request['embedding'])
        embedder = get_embedder(emb_opts.method, options=emb_opts)

    # Every row-count check runs before the first fit starts
    for strategy in list(strategies.values()) + ([embedder] if embedder is not None else []):
        strategy.validate(X)

    tasks = {name: (algorithm.fit_label, _branch_copy(X)) for name, algorithm in strategies.items()}
    if embedder is not None:
        tasks['__embedding__'] = (embedder.fit_embed, _branch_copy(X))

    results = {}
    if request.get('parallel', False) and len(tasks) > 1:
        logger.debug(f"[+] Running {len(tasks)} fits in parallel")
        with ThreadPoolExecutor(max_workers=len(tasks)) as executor:
            future_to_task = {executor.submit(fn, data): key for key, (fn, data) in tasks.items()}
            for future in as_completed(future_to_task):
                key = future_to_task[future]
                # Re-raises the branch's own exception
                results[key] = future.result()
                logger.debug(f"[+] Finished {key}")
    else:
        for key, (fn, data) in tasks.items():
            results[key] = fn(data)

    embedding = results.pop('__embedding__', None)
    # Keep request order regardless of completion order
    assignments = {name: results[name] for name in request['algorithms']}
    return encode_results(features.ids, assignments, embedding)
