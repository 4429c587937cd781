"""
__main__.py — Command-Line Entry Point
=======================================

Runs one Generate → Train → Detect cycle and prints the result:

    python -m backend.soil_ml --points 300 --intensity 0.5 --threshold 0.02
    python -m backend.soil_ml --csv readings.csv --export anomalies

Exit status is 0 on success and 1 when a pipeline precondition is not
met (the specific reason is printed).
"""

import argparse
import logging
import sys

from . import config
from .errors import SoilMLError
from .pipeline import SoilAnomalyPipeline
from .reports import (
    build_anomaly_report_csv,
    build_performance_summary_csv,
    export_model_summary_json,
)
from .utils import setup_logging

logger = logging.getLogger("soil_ml.cli")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Soil moisture anomaly detection")
    parser.add_argument("--points", type=int, default=config.NUM_POINTS,
                        help="Synthetic series length")
    parser.add_argument("--intensity", type=float, default=config.ANOMALY_INTENSITY,
                        help="Anomaly magnitude knob in [0, 1]")
    parser.add_argument("--threshold", type=float, default=config.ANOMALY_THRESHOLD,
                        help="Reconstruction error threshold")
    parser.add_argument("--epochs", type=int, default=config.EPOCHS)
    parser.add_argument("--batch-size", type=int, default=config.BATCH_SIZE)
    parser.add_argument("--window-size", type=int, default=config.WINDOW_SIZE)
    parser.add_argument("--seed", type=int, default=config.RANDOM_STATE)
    parser.add_argument("--csv", default=None,
                        help="Import this CSV instead of generating data")
    parser.add_argument("--export", choices=["anomalies", "performance", "model"],
                        default=None, help="Print an export instead of the summary")
    parser.add_argument("--log-level", default=config.LOG_LEVEL)
    return parser.parse_args(argv)


def run(args: argparse.Namespace) -> int:
    setup_logging(args.log_level)

    try:
        session = SoilAnomalyPipeline(window_size=args.window_size, seed=args.seed)
        if args.csv:
            with open(args.csv, encoding="utf-8") as fh:
                series = session.load_csv(fh.read())
        else:
            series = session.generate(args.points, args.intensity)

        def progress(epoch, loss, percent):
            if percent % 10 == 0 or epoch == 1:
                logger.info(f"Training {percent:3d}% (epoch {epoch}) loss={loss:.6f}")

        session.train(epochs=args.epochs, batch_size=args.batch_size, on_epoch_end=progress)
        report = session.detect(args.threshold)
    except SoilMLError as e:
        logger.error(str(e))
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if args.export == "anomalies":
        print(build_anomaly_report_csv(report.detections, series), end="")
        return 0
    if args.export == "performance":
        print(build_performance_summary_csv(report.metrics), end="")
        return 0
    if args.export == "model":
        print(export_model_summary_json(report.model_info))
        return 0

    print(f"{len(series)} timesteps, {report.anomaly_count}/{len(report.detections)} "
          f"windows flagged at threshold {report.threshold}")
    if not report.metrics.verified:
        print("UNVERIFIED: imported data has no ground-truth labels; "
              "the scores below are not a measure of detection quality.")
    print(build_performance_summary_csv(report.metrics), end="")
    print()
    for insight in report.insights:
        print(f"[{insight.severity.upper():8s}] {insight.icon} {insight.message}")
    return 0


def main(argv=None) -> int:
    return run(parse_args(argv))


if __name__ == "__main__":
    sys.exit(main())
