import os
from dataclasses import replace

from hrclust.argparsers import BaseParser
from hrclust.configs import AnalysisOptions, HRResources, load_params
from hrclust.dataservice import DataService
from hrclust.errors import PipelineError
from hrclust.eval.cluster_report import save_attrition_bar_png, save_cluster_scatter_png
from hrclust.session import AnalysisSession
from hrclust.utils.logging import get_logger, setup_logging

logger = get_logger(__name__)


def build_parser() -> BaseParser:
    parser = BaseParser(prog='hrclust-analyze',
                        description="Cluster employee records (affinity propagation + DBSCAN), embed them in 2-D "
                                    "and rank clusters by attrition rate")
    parser.add_argument('--input', '-i', type=str, required=True, help='Employee records CSV')
    parser.add_argument('--params', type=str, default=None, help='JSON params file overriding the defaults')
    parser.add_argument('--id-column', type=str, default=None)
    parser.add_argument('--attrition-column', type=str, default=None)
    parser.add_argument('--reason-column', type=str, default=None, help='Termination reason column for cluster profiles')
    parser.add_argument('--continuous', type=str, nargs='+', default=None, help='Continuous feature columns')
    parser.add_argument('--categorical', type=str, nargs='*', default=None, help='Categorical feature columns')
    parser.add_argument('--no-derive-dates', action='store_true', help='Do not derive Age/TenureYears from dates')
    parser.add_argument('--reference-date', type=str, default=None, help='Date used for Age/TenureYears (default today)')
    parser.add_argument('--min-samples', type=int, default=None, help='DBSCAN minimum neighbor count')
    parser.add_argument('--eps', type=float, default=None, help='DBSCAN neighborhood radius')
    parser.add_argument('--damping', type=float, default=None, help='Affinity propagation damping')
    parser.add_argument('--max-iter', type=int, default=None, help='Affinity propagation iteration cap')
    parser.add_argument('--seed', type=int, default=None, help='Seed for affinity propagation and the embedding')
    parser.add_argument('--embedding', type=str, default=None, choices=['tsne', 'umap'])
    parser.add_argument('--perplexity', type=float, default=None)
    parser.add_argument('--summary-by', type=str, default=None, choices=['density', 'exemplar'])
    parser.add_argument('--transport', type=str, default=None, choices=['inprocess', 'process'])
    parser.add_argument('--sequential', action='store_true', help='Run the fits one after another')
    parser.add_argument('--output', '-o', type=str, default=None, help='Result table path (.csv or .parquet)')
    parser.add_argument('--summary-out', type=str, default=None, help='Attrition summary CSV path')
    parser.add_argument('--profiles-out', type=str, default=None, help='Cluster profile CSV path')
    parser.add_argument('--save-png', type=str, default=None, help='Directory for scatter/attrition PNGs')
    return parser


def options_from_args(args) -> AnalysisOptions:
    opts = load_params(args.params) if args.params else AnalysisOptions()
    top = {}
    if args.id_column is not None:
        top['id_column'] = args.id_column
    if args.attrition_column is not None:
        top['attrition_column'] = args.attrition_column
    if args.reason_column is not None:
        top['reason_column'] = args.reason_column
    if args.continuous is not None:
        top['continuous_columns'] = list(args.continuous)
    if args.categorical is not None:
        top['categorical_columns'] = list(args.categorical)
    if args.no_derive_dates:
        top['derive_dates'] = False
    if args.summary_by is not None:
        top['summary_by'] = args.summary_by
    if args.transport is not None:
        top['transport'] = args.transport
    if args.sequential:
        top['parallel'] = False

    density = {}
    if args.min_samples is not None:
        density['min_samples'] = args.min_samples
    if args.eps is not None:
        density['eps'] = args.eps
    exemplar = {}
    if args.damping is not None:
        exemplar['damping'] = args.damping
    if args.max_iter is not None:
        exemplar['max_iter'] = args.max_iter
    embedding = {}
    if args.embedding is not None:
        embedding['method'] = args.embedding
    if args.perplexity is not None:
        embedding['perplexity'] = args.perplexity
    if args.seed is not None:
        exemplar['random_state'] = args.seed
        embedding['seed'] = args.seed

    return replace(
        opts,
        density=replace(opts.density, **density),
        exemplar=replace(opts.exemplar, **exemplar),
        embedding=replace(opts.embedding, **embedding),
        **top,
    )


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    try:
        options = options_from_args(args)
        records = DataService.load_records(args.input, id_column=options.id_column)
        DataService.info_dataset(records, options.attrition_column)
        present = [c for c in options.selected_columns if c in records.columns]
        missing = DataService.missing_summary(records, present)
        logger.debug(f"[+] Missing values per selected column:\n{missing.to_string(index=False)}")

        with AnalysisSession(records, options, reference_date=args.reference_date) as session:
            output = session.run()
    except PipelineError as e:
        logger.error(f"[-] {e}")
        if e.context:
            logger.error(f"[-] context: {e.context}")
        return 1

    logger.info(f"[+] Attrition by {output.summary_by} cluster:\n{output.summary.to_string(index=False)}")
    if output.dropped_rows:
        logger.info(f"[+] {output.dropped_rows} records dropped for missing values")
    for w in output.warnings:
        logger.warning(f"[!] {w}")

    output_path = args.output or HRResources.result_table_path()
    DataService.export_data(output.table, output_path)
    summary_path = args.summary_out or HRResources.summary_path()
    DataService.export_data(output.summary, summary_path)
    profiles_path = args.profiles_out or HRResources.profiles_path()
    DataService.export_data(output.profiles(), profiles_path)

    if args.save_png:
        cluster_col = f"{output.summary_by}_cluster"
        save_cluster_scatter_png(output.table, cluster_col, os.path.join(args.save_png, f"scatter_{output.summary_by}.png"))
        save_attrition_bar_png(output.summary, os.path.join(args.save_png, f"attrition_{output.summary_by}.png"))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
