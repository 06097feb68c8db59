"""Per-run analysis context.

An ``AnalysisSession`` owns the intermediate artifacts of exactly one run
(feature matrix, identifier list, bridge results). They are discarded when the
run completes or fails; only the returned ``AnalysisOutput`` survives.
"""
from dataclasses import dataclass, field
from typing import Optional

import pandas as pd

from hrclust.aggregation import cluster_profiles, join_results, summarize_attrition
from hrclust.bridge import Bridge, Transport, build_request, get_transport
from hrclust.clustering import ClusterAssignment
from hrclust.configs.options import AnalysisOptions
from hrclust.embedding import Embedding2D
from hrclust.errors import ConfigurationError, PipelineError
from hrclust.preprocessing import EmployeePreprocessor, derive_features
from hrclust.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class AnalysisOutput:
    table: pd.DataFrame
    summary: pd.DataFrame
    assignments: dict[str, ClusterAssignment]
    embedding: Optional[Embedding2D]
    summary_by: str
    attrition_column: str
    feature_names: list[str] = field(default_factory=list)
    dropped_rows: int = 0
    dropped_ids: list = field(default_factory=list)
    profile_columns: list[str] = field(default_factory=list)
    reason_column: Optional[str] = None

    @property
    def warnings(self) -> list[str]:
        return [w for a in self.assignments.values() for w in a.warnings]

    def summarize_by(self, name: str) -> pd.DataFrame:
        """Attrition summary for another assignment of the same run."""
        if name not in self.assignments:
            raise ConfigurationError(f"no assignment named '{name}'", stage='aggregate',
                                     context={'available': list(self.assignments)})
        return summarize_attrition(self.table, self.assignments[name], attrition_column=self.attrition_column)

    def profiles(self, name: Optional[str] = None) -> pd.DataFrame:
        """Per-cluster attribute means and top termination reason, in attrition-rank order."""
        key = name or self.summary_by
        if key not in self.assignments:
            raise ConfigurationError(f"no assignment named '{key}'", stage='aggregate',
                                     context={'available': list(self.assignments)})
        profile = cluster_profiles(self.table, f"{key}_cluster", self.profile_columns,
                                   attrition_column=self.attrition_column, reason_column=self.reason_column)
        ranking = self.summarize_by(key)[['cluster', 'attrition_rate']]
        return ranking.merge(profile, on='cluster', how='left')


class AnalysisSession:
    def __init__(self, records: pd.DataFrame, options: Optional[AnalysisOptions] = None,
                 transport: Optional[Transport] = None, reference_date=None):
        self.options = options if options is not None else AnalysisOptions()
        self.options.validate()
        self.records = records
        self.transport = transport if transport is not None else get_transport(self.options.transport)
        self.reference_date = reference_date
        self.state: dict = {}
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False

    def close(self) -> None:
        self.state.clear()
        self.records = None
        self.closed = True

    def _preprocess(self, records: pd.DataFrame):
        opts = self.options
        pre = EmployeePreprocessor(opts.selected_columns, id_column=opts.id_column,
                                   categorical_columns=opts.categorical_columns)
        result = pre.fit_transform(records)
        self.state['features'] = result
        return result

    def run(self) -> AnalysisOutput:
        if self.closed:
            raise ConfigurationError("analysis session is closed; create a new one per run", stage='session')
        opts = self.options
        try:
            records = self.records
            if opts.derive_dates:
                records = derive_features(records, reference_date=self.reference_date)
            features = self._preprocess(records)

            bridge = Bridge(self.transport)
            result = bridge.run(features.matrix, features.ids, build_request(opts), features.feature_names)
            self.state['result'] = result
            for w in result.warnings:
                logger.warning(f"[!] {w}")

            table = join_results(records, result.assignments, result.embedding, features.ids,
                                 id_column=opts.id_column, attrition_column=opts.attrition_column,
                                 summary_by=opts.summary_by)
            summary = summarize_attrition(table, result.assignments[opts.summary_by],
                                          attrition_column=opts.attrition_column)
            output = AnalysisOutput(
                table=table,
                summary=summary,
                assignments=result.assignments,
                embedding=result.embedding,
                summary_by=opts.summary_by,
                attrition_column=opts.attrition_column,
                feature_names=features.feature_names,
                dropped_rows=features.dropped_rows,
                dropped_ids=features.dropped_ids,
                profile_columns=list(opts.continuous_columns),
                reason_column=opts.reason_column,
            )
        except PipelineError as e:
            logger.error(f"[-] Analysis failed at stage '{e.stage}': {e.message}")
            raise
        finally:
            self.close()
        logger.info(f"[+] Analysis done: {len(output.table)} employees, {len(output.summary)} clusters "
                    f"by {output.summary_by}")
        return output


def run_analysis(records: pd.DataFrame, options: Optional[AnalysisOptions] = None, **kwargs) -> AnalysisOutput:
    with AnalysisSession(records, options, **kwargs) as session:
        return session.run()
