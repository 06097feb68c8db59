from typing import Mapping, Optional, Sequence, Union

import numpy as np
import pandas as pd

from hrclust.clustering.base import NOISE_LABEL, ClusterAssignment
from hrclust.configs.resources import HRResources
from hrclust.embedding.base import Embedding2D
from hrclust.errors import ConfigurationError, DataIntegrityError
from hrclust.utils.logging import get_logger

logger = get_logger(__name__)

STATUS_CLUSTERED = 'clustered'
STATUS_NOISE = 'noise'

SUMMARY_COLUMNS = ['cluster', 'member_count', 'terminated_count', 'attrition_rate']

_TRUE_TOKENS = {'1', '1.0', 'true', 't', 'yes', 'y', 'terminated'}
_FALSE_TOKENS = {'0', '0.0', 'false', 'f', 'no', 'n', 'active'}

_OCCURRENCE = '__occurrence'


def attrition_flags(values: pd.Series, column: str = HRResources.ATTRITION_COLUMN) -> np.ndarray:
    """Boolean attrition flag per row; missing or unrecognized values are integrity errors."""
    if values.isnull().any():
        rows = np.where(values.isnull())[0][:5].tolist()
        raise DataIntegrityError(f"attrition column '{column}' has missing values", stage='aggregate',
                                 context={'column': column, 'rows': rows})
    if pd.api.types.is_bool_dtype(values):
        return values.to_numpy(dtype=bool)
    if pd.api.types.is_numeric_dtype(values):
        bad = ~values.isin([0, 1])
        if bad.any():
            raise DataIntegrityError(f"attrition column '{column}' must be 0/1, got {sorted(values[bad].unique())[:5]}",
                                     stage='aggregate', context={'column': column})
        return values.to_numpy() == 1
    tokens = values.astype(str).str.strip().str.lower()
    unknown = ~tokens.isin(_TRUE_TOKENS | _FALSE_TOKENS)
    if unknown.any():
        raise DataIntegrityError(f"attrition column '{column}' has unrecognized values {sorted(tokens[unknown].unique())[:5]}",
                                 stage='aggregate', context={'column': column})
    return tokens.isin(_TRUE_TOKENS).to_numpy()


def align_records(records: pd.DataFrame, ids: Sequence, id_column: str = HRResources.ID_COLUMN) -> pd.DataFrame:
    """Return one record per identifier, in identifier order.

    The k-th occurrence of an identifier matches the k-th record carrying it, so
    duplicated identifiers are fine as long as both sides hold the same number of
    them.
    """
    if id_column not in records.columns:
        raise ConfigurationError(f"identifier column '{id_column}' not in records", stage='join',
                                 context={'column': id_column})
    left = pd.DataFrame({id_column: list(ids)})
    left[_OCCURRENCE] = left.groupby(id_column, sort=False).cumcount()
    right = records[records[id_column].notnull()].copy()
    right[_OCCURRENCE] = right.groupby(id_column, sort=False).cumcount()

    need = left[id_column].value_counts(sort=False)
    have = right[id_column].value_counts(sort=False)
    missing = [i for i in need.index if i not in have.index]
    if missing:
        raise DataIntegrityError(f"{len(missing)} identifier(s) have no matching record: {missing[:10]}",
                                 stage='join', context={'ids': missing[:10]})
    mismatched = [i for i in need.index if have[i] != need[i]]
    if mismatched:
        detail = {i: {'ids': int(need[i]), 'records': int(have[i])} for i in mismatched[:10]}
        raise DataIntegrityError(f"identifier occurrences disagree between identifier list and records: {detail}",
                                 stage='join', context={'ids': mismatched[:10]})

    merged = left.merge(right, on=[id_column, _OCCURRENCE], how='left', validate='one_to_one')
    if len(merged) != len(left):
        raise DataIntegrityError(f"join produced {len(merged)} rows for {len(left)} identifiers", stage='join')
    return merged.drop(columns=[_OCCURRENCE])


def _labels_of(assignment: Union[ClusterAssignment, Sequence[int]]) -> np.ndarray:
    if isinstance(assignment, ClusterAssignment):
        return assignment.labels
    return np.asarray(assignment, dtype=np.int64)


def summarize_attrition(records: pd.DataFrame, assignment: Union[ClusterAssignment, Sequence[int]],
                        ids: Optional[Sequence] = None, id_column: str = HRResources.ID_COLUMN,
                        attrition_column: str = HRResources.ATTRITION_COLUMN) -> pd.DataFrame:
    """Attrition rate and member count per non-noise cluster.

    Without ``ids`` the records must already be row-aligned with the labels.
    Sorted by rate (desc), member count (desc), then label (asc).
    """
    labels = _labels_of(assignment)
    if ids is not None:
        if len(ids) != len(labels):
            raise DataIntegrityError(f"{len(labels)} labels for {len(ids)} identifiers", stage='aggregate',
                                     context={'labels': len(labels), 'ids': len(ids)})
        aligned = align_records(records, ids, id_column)
    else:
        if len(records) != len(labels):
            raise DataIntegrityError(f"{len(labels)} labels for {len(records)} records", stage='aggregate',
                                     context={'labels': len(labels), 'records': len(records)})
        aligned = records.reset_index(drop=True)
    if attrition_column not in aligned.columns:
        raise ConfigurationError(f"attrition column '{attrition_column}' not in records", stage='aggregate',
                                 context={'column': attrition_column})

    frame = pd.DataFrame({'cluster': labels, 'terminated': attrition_flags(aligned[attrition_column], attrition_column)})
    frame = frame[frame['cluster'] != NOISE_LABEL]
    if frame.empty:
        logger.warning("[!] No clustered rows, attrition summary is empty")
        return pd.DataFrame({c: pd.Series(dtype='float64' if c == 'attrition_rate' else 'int64')
                             for c in SUMMARY_COLUMNS})

    summary = frame.groupby('cluster')['terminated'].agg(member_count='size', terminated_count='sum').reset_index()
    summary['member_count'] = summary['member_count'].astype(np.int64)
    summary['terminated_count'] = summary['terminated_count'].astype(np.int64)
    summary['cluster'] = summary['cluster'].astype(np.int64)
    summary['attrition_rate'] = summary['terminated_count'] / summary['member_count']
    summary = summary.sort_values(['attrition_rate', 'member_count', 'cluster'],
                                  ascending=[False, False, True]).reset_index(drop=True)
    return summary[SUMMARY_COLUMNS]


def _default_summary_key(assignments: Mapping[str, ClusterAssignment]) -> str:
    for name, a in assignments.items():
        if a.allows_noise:
            return name
    return next(iter(assignments))


def join_results(records: pd.DataFrame, assignments: Mapping[str, ClusterAssignment],
                 embedding: Optional[Embedding2D], ids: Sequence, id_column: str = HRResources.ID_COLUMN,
                 attrition_column: str = HRResources.ATTRITION_COLUMN,
                 summary_by: Optional[str] = None) -> pd.DataFrame:
    """Join labels, coordinates and per-cluster attrition back onto the records.

    One output row per identifier, in identifier order. ``summary_by`` names the
    assignment whose cluster attrition is looked up (defaults to the first one
    that can emit noise, i.e. density clustering).
    """
    if not isinstance(assignments, Mapping):
        assignments = {a.algorithm: a for a in assignments}
    if not assignments:
        raise ConfigurationError("at least one cluster assignment is required", stage='join')
    n = len(ids)
    for name, a in assignments.items():
        if len(a) != n:
            raise DataIntegrityError(f"assignment '{name}' has {len(a)} labels for {n} identifiers",
                                     stage='join', context={'assignment': name})
    if embedding is not None and len(embedding) != n:
        raise DataIntegrityError(f"embedding has {len(embedding)} rows for {n} identifiers", stage='join')

    key = summary_by if summary_by is not None else _default_summary_key(assignments)
    if key not in assignments:
        raise ConfigurationError(f"cannot summarize by '{key}', available: {list(assignments)}", stage='join',
                                 context={'summary_by': key})

    table = align_records(records, ids, id_column)
    for name, a in assignments.items():
        table[f"{name}_cluster"] = a.labels
        table[f"{name}_status"] = np.where(a.noise_mask, STATUS_NOISE, STATUS_CLUSTERED)
    if embedding is not None:
        table['embed_x'] = embedding.x
        table['embed_y'] = embedding.y

    summary = summarize_attrition(table, assignments[key], attrition_column=attrition_column).set_index('cluster')
    cluster_col = table[f"{key}_cluster"]
    table['cluster_member_count'] = cluster_col.map(summary['member_count']).astype('float64')
    table['cluster_attrition_rate'] = cluster_col.map(summary['attrition_rate']).astype('float64')
    table.attrs['summary_by'] = key
    logger.info(f"[+] Result table: rows={len(table)}, summary_by={key}, "
                f"noise rows={int(assignments[key].noise_mask.sum())}")
    return table


def cluster_profiles(table: pd.DataFrame, cluster_column: str, columns: Sequence[str],
                     attrition_column: Optional[str] = None, reason_column: Optional[str] = None) -> pd.DataFrame:
    """Per-cluster means of numeric attributes and the most frequent termination reason."""
    clustered = table[table[cluster_column] != NOISE_LABEL]
    numeric = [c for c in columns if c in clustered.columns and pd.api.types.is_numeric_dtype(clustered[c])]
    grouped = clustered.groupby(cluster_column)
    profile = grouped[numeric].mean() if numeric else pd.DataFrame(index=grouped.size().index)
    profile.insert(0, 'member_count', grouped.size().astype(np.int64))

    if reason_column is not None and reason_column in clustered.columns:
        leavers = clustered
        if attrition_column is not None and attrition_column in clustered.columns:
            leavers = clustered[attrition_flags(clustered[attrition_column], attrition_column)]
        reasons = leavers[leavers[reason_column].notnull()].groupby(cluster_column)[reason_column]
        top = reasons.agg(lambda s: s.value_counts().index[0])
        profile['top_reason'] = profile.index.map(top)
    return profile.reset_index().rename(columns={cluster_column: 'cluster'})
