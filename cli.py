#!/usr/bin/env python3
"""
densecluster CLI

Command-line interface for fitting, saving and querying clustering models.

Usage:
    python cli.py fit data.csv --eps 0.5 --min-pts 5       # Fit DBSCAN
    python cli.py fit data.csv -a kmeans --n-clusters 3     # Fit K-Means
    python cli.py fit data.csv --eps 0.5 --save model.bin   # Fit and save
    python cli.py predict model.bin 1.0 2.5                 # Label a record
    python cli.py info model.bin                            # Model summary
"""

import argparse
import json
import sys
from typing import Any, Dict, List, Optional

import numpy as np

from densecluster.config.settings_loader import ConfigManager
from densecluster.core.clustering_engine import ClusteringEngine, config_from_settings
from densecluster.storage.model_storage import load_model_from_path, save_model_to_path
from densecluster.utils.advanced_logging import configure_logging, get_logger, log_exceptions, timed
from densecluster.utils.error_handling import DenseClusterError

logger = get_logger(__name__)


@timed(operation="load_matrix")
def load_matrix(path: str, delimiter: str = ",", skip_header: int = 0) -> np.ndarray:
    """
    Load a numeric matrix from a delimited text file.

    Empty fields are read as NaN so the model reports them instead of
    silently dropping rows.
    """
    return np.genfromtxt(path, delimiter=delimiter, skip_header=skip_header, ndmin=2)


def print_json(data: Any, indent: int = 2):
    """Pretty print JSON."""
    print(json.dumps(data, indent=indent, default=str))


def build_params(args: argparse.Namespace, params: Dict[str, Any]) -> Dict[str, Any]:
    """Overlay command line parameters on the configured ones."""
    params = dict(params)
    if args.eps is not None:
        params["eps"] = args.eps
    if args.min_pts is not None:
        params["min_pts"] = args.min_pts
    if args.n_clusters is not None:
        params["n_clusters"] = args.n_clusters
    if args.n_jobs is not None:
        params["n_jobs"] = args.n_jobs
    return params


def cmd_fit(args: argparse.Namespace) -> None:
    settings = ConfigManager.load_config(args.config) if args.config else None

    if settings is not None:
        # explicit command line flags win over the settings file
        configure_logging(
            log_level=args.log_level or settings.logging.level,
            log_format=args.log_format or settings.logging.format,
            log_file=settings.logging.file,
        )
        algorithm, params, options = config_from_settings(settings, args.algorithm)
    else:
        algorithm, params, options = args.algorithm or "dbscan", {}, {}

    params = build_params(args, params)
    if args.metric:
        options["metric"] = args.metric
    if args.scale:
        options["scale"] = True
    if args.seed is not None:
        options["seed"] = args.seed
    if args.verbose:
        options["verbose"] = True

    data = load_matrix(args.data, delimiter=args.delimiter, skip_header=args.skip_header)

    engine = ClusteringEngine()
    with log_exceptions(logger=logger, operation="fit"):
        result = engine.cluster(data, algorithm, params, **options)

    model = result.model
    summary = model.model_summary().model_dump(mode="json")
    summary["quality_metrics"] = result.quality_metrics
    summary["labels"] = result.labels.tolist()

    if args.save:
        path = save_model_to_path(model, args.save)
        summary["saved_to"] = str(path)

    print_json(summary)


def cmd_predict(args: argparse.Namespace) -> None:
    model = load_model_from_path(args.model)
    records: List[List[float]] = [args.values]
    labels = model.predict_many(records)
    print(int(labels[0]))


def cmd_info(args: argparse.Namespace) -> None:
    model = load_model_from_path(args.model)
    print_json(model.model_summary().model_dump(mode="json"))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="densecluster command line interface",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--log-level", default=None, help="Log level (default WARNING, or the settings file level)")
    parser.add_argument("--log-format", default=None, choices=["console", "json"], help="Log format (default console)")

    subparsers = parser.add_subparsers(dest="command", required=True)

    fit = subparsers.add_parser("fit", help="Fit a model on a delimited numeric file")
    fit.add_argument("data", help="Path to the data file (one record per line)")
    fit.add_argument("--algorithm", "-a", default=None, help="Algorithm (dbscan/kmeans)")
    fit.add_argument("--config", help="Settings YAML providing default parameters")
    fit.add_argument("--eps", type=float, help="Neighborhood radius (DBSCAN)")
    fit.add_argument("--min-pts", type=int, help="Minimum neighborhood size (DBSCAN)")
    fit.add_argument("--n-clusters", type=int, help="Number of clusters (K-Means)")
    fit.add_argument("--n-jobs", type=int, help="Worker threads for the neighborhood search")
    fit.add_argument("--metric", help="Separability metric (euclidean/manhattan/cosine/gaussian)")
    fit.add_argument("--scale", action="store_true", help="Normalize columns before clustering")
    fit.add_argument("--seed", type=int, help="Random seed")
    fit.add_argument("--delimiter", default=",", help="Field delimiter")
    fit.add_argument("--skip-header", type=int, default=0, help="Header lines to skip")
    fit.add_argument("--save", help="Write the fitted model to this path")
    fit.add_argument("--verbose", "-v", action="store_true", help="Emit model log events")
    fit.set_defaults(handler=cmd_fit)

    predict = subparsers.add_parser("predict", help="Label one record with a saved model")
    predict.add_argument("model", help="Path to a saved model")
    predict.add_argument("values", type=float, nargs="+", help="Record values")
    predict.set_defaults(handler=cmd_predict)

    info = subparsers.add_parser("info", help="Print a saved model's summary")
    info.add_argument("model", help="Path to a saved model")
    info.set_defaults(handler=cmd_info)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(log_level=args.log_level or "WARNING", log_format=args.log_format or "console")

    try:
        args.handler(args)
    except DenseClusterError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        return 1
    except (FileNotFoundError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
