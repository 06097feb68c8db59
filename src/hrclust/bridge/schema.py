"""Arrow schemas for the data exchanged across the analysis boundary.

Feature payload: ``row_id`` + ``f_0 .. f_{k-1}`` (float64).
Result payload:  ``row_id`` + ``label_<algorithm>`` (int64) + ``embed_x`` / ``embed_y`` (float64).

Both carry a JSON document under the ``hrclust`` schema-metadata key with the
declared shape, so truncation or padding is detected on decode.
"""
import json
from dataclasses import dataclass, field
from typing import Mapping, Optional, Sequence

import numpy as np
import pyarrow as pa

from hrclust.clustering.base import ClusterAssignment
from hrclust.embedding.base import Embedding2D
from hrclust.errors import DataIntegrityError
from hrclust.utils.logging import get_logger

logger = get_logger(__name__)

ROW_ID = 'row_id'
FEATURE_PREFIX = 'f_'
LABEL_PREFIX = 'label_'
EMBED_X = 'embed_x'
EMBED_Y = 'embed_y'
META_KEY = b'hrclust'


@dataclass
class FeaturePayload:
    matrix: np.ndarray
    ids: list
    feature_names: list[str] = field(default_factory=list)


@dataclass
class ResultPayload:
    ids: list
    assignments: dict[str, ClusterAssignment]
    embedding: Optional[Embedding2D] = None

    @property
    def warnings(self) -> list[str]:
        return [w for a in self.assignments.values() for w in a.warnings]


def _fail(message: str, **context) -> DataIntegrityError:
    return DataIntegrityError(message, stage='bridge', context=context)


def _id_array(ids: Sequence) -> pa.Array:
    try:
        return pa.array(list(ids))
    except (pa.ArrowInvalid, pa.ArrowTypeError) as e:
        raise _fail(f"identifiers cannot be serialized: {e}") from e


def _to_ipc(table: pa.Table) -> bytes:
    sink = pa.BufferOutputStream()
    with pa.ipc.new_stream(sink, table.schema) as writer:
        writer.write_table(table)
    return sink.getvalue().to_pybytes()


def _from_ipc(data: bytes) -> tuple[pa.Table, dict]:
    try:
        with pa.ipc.open_stream(pa.py_buffer(data)) as reader:
            table = reader.read_all()
    except (pa.ArrowInvalid, OSError) as e:
        raise _fail(f"payload is not a valid Arrow stream: {e}") from e
    raw = (table.schema.metadata or {}).get(META_KEY)
    if raw is None:
        raise _fail("payload carries no hrclust metadata")
    return table, json.loads(raw.decode('utf-8'))


def _require_columns(table: pa.Table, columns: Sequence[str], kind: str) -> None:
    missing = [c for c in columns if c not in table.column_names]
    if missing:
        raise _fail(f"{kind} payload lacks columns {missing}", kind=kind, missing=missing)


def _check_rows(table: pa.Table, meta: dict, kind: str) -> int:
    if meta.get('kind') != kind:
        raise _fail(f"expected a {kind} payload, got {meta.get('kind')!r}")
    _require_columns(table, [ROW_ID], kind)
    declared = int(meta['n_rows'])
    if table.num_rows != declared:
        raise _fail(f"{kind} payload declares {declared} rows but holds {table.num_rows}",
                    declared=declared, actual=table.num_rows)
    return declared


def encode_features(matrix: np.ndarray, ids: Sequence, feature_names: Optional[Sequence[str]] = None) -> bytes:
    X = np.asarray(matrix, dtype=np.float64)
    if X.ndim != 2:
        raise _fail(f"feature matrix must be 2-D, got shape {X.shape}")
    if len(ids) != X.shape[0]:
        raise _fail(f"identifier count {len(ids)} != matrix rows {X.shape[0]}",
                    ids=len(ids), rows=int(X.shape[0]))
    names = list(feature_names) if feature_names is not None else [f"{FEATURE_PREFIX}{j}" for j in range(X.shape[1])]
    if len(names) != X.shape[1]:
        raise _fail(f"feature name count {len(names)} != matrix columns {X.shape[1]}",
                    names=len(names), cols=int(X.shape[1]))

    columns = {ROW_ID: _id_array(ids)}
    for j in range(X.shape[1]):
        columns[f"{FEATURE_PREFIX}{j}"] = pa.array(X[:, j], type=pa.float64())
    meta = {'kind': 'features', 'n_rows': int(X.shape[0]), 'n_cols': int(X.shape[1]), 'feature_names': names}
    table = pa.table(columns).replace_schema_metadata({META_KEY: json.dumps(meta).encode('utf-8')})
    return _to_ipc(table)


def decode_features(data: bytes) -> FeaturePayload:
    table, meta = _from_ipc(data)
    n_rows = _check_rows(table, meta, 'features')
    n_cols = int(meta['n_cols'])
    feat_cols = [c for c in table.column_names if c.startswith(FEATURE_PREFIX)]
    if len(feat_cols) != n_cols:
        raise _fail(f"feature payload declares {n_cols} columns but holds {len(feat_cols)}",
                    declared=n_cols, actual=len(feat_cols))
    _require_columns(table, [f"{FEATURE_PREFIX}{j}" for j in range(n_cols)], 'features')
    if n_cols:
        matrix = np.column_stack([table.column(f"{FEATURE_PREFIX}{j}").to_numpy() for j in range(n_cols)])
    else:
        matrix = np.empty((n_rows, 0), dtype=np.float64)
    return FeaturePayload(matrix=np.ascontiguousarray(matrix, dtype=np.float64),
                          ids=table.column(ROW_ID).to_pylist(),
                          feature_names=list(meta.get('feature_names', [])))


def encode_results(ids: Sequence, assignments: Mapping[str, ClusterAssignment],
                   embedding: Optional[Embedding2D] = None) -> bytes:
    n = len(ids)
    columns = {ROW_ID: _id_array(ids)}
    info = {}
    for name, assignment in assignments.items():
        if len(assignment) != n:
            raise _fail(f"assignment '{name}' has {len(assignment)} labels for {n} rows",
                        assignment=name, labels=len(assignment), rows=n)
        columns[f"{LABEL_PREFIX}{name}"] = pa.array(assignment.labels, type=pa.int64())
        info[name] = {
            'algorithm': assignment.algorithm,
            'params': assignment.params,
            'exemplars': [int(i) for i in assignment.exemplars],
            'warnings': list(assignment.warnings),
            'allows_noise': bool(assignment.allows_noise),
        }
    emb_info = None
    if embedding is not None:
        if len(embedding) != n:
            raise _fail(f"embedding has {len(embedding)} rows for {n} identifiers", rows=len(embedding), ids=n)
        columns[EMBED_X] = pa.array(embedding.x, type=pa.float64())
        columns[EMBED_Y] = pa.array(embedding.y, type=pa.float64())
        emb_info = {'method': embedding.method, 'seed': int(embedding.seed), 'params': embedding.params}
    meta = {'kind': 'results', 'n_rows': n, 'assignments': info, 'embedding': emb_info}
    table = pa.table(columns).replace_schema_metadata({META_KEY: json.dumps(meta).encode('utf-8')})
    return _to_ipc(table)


def decode_results(data: bytes, expected_ids: Optional[Sequence] = None) -> ResultPayload:
    table, meta = _from_ipc(data)
    n_rows = _check_rows(table, meta, 'results')
    ids = table.column(ROW_ID).to_pylist()
    if expected_ids is not None:
        expected = list(expected_ids)
        if len(expected) != n_rows:
            raise _fail(f"sent {len(expected)} rows but received {n_rows}", sent=len(expected), received=n_rows)
        if ids != expected:
            first = next(i for i, (a, b) in enumerate(zip(ids, expected)) if a != b)
            raise _fail("row order changed across the boundary", row=first,
                        expected=expected[first], received=ids[first])

    assignments = {}
    for name, info in meta['assignments'].items():
        col = f"{LABEL_PREFIX}{name}"
        if col not in table.column_names:
            raise _fail(f"result payload lacks column {col}", assignment=name)
        assignments[name] = ClusterAssignment(
            algorithm=info['algorithm'],
            labels=table.column(col).to_numpy(),
            params=info.get('params', {}),
            exemplars=info.get('exemplars', []),
            warnings=info.get('warnings', []),
            allows_noise=bool(info.get('allows_noise', False)),
        )

    embedding = None
    emb_info = meta.get('embedding')
    if emb_info is not None:
        _require_columns(table, [EMBED_X, EMBED_Y], 'results')
        coords = np.column_stack([table.column(EMBED_X).to_numpy(), table.column(EMBED_Y).to_numpy()])
        embedding = Embedding2D(coords=coords, method=emb_info['method'], seed=int(emb_info['seed']),
                                params=emb_info.get('params', {}))
    return ResultPayload(ids=ids, assignments=assignments, embedding=embedding)
