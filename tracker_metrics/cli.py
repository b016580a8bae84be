"""Command line interface for producing a metrics snapshot from a CSV export."""

from __future__ import annotations

import argparse
import logging
from dataclasses import asdict
from pathlib import Path

import pandas as pd

from tracker_metrics.core.config import ASSIGNEE_COLUMNS, FUNCTION_COLUMNS, SETTINGS
from tracker_metrics.core.loader import ReportInputError, read_report_csv
from tracker_metrics.core.service import MetricsReport, MetricsService
from tracker_metrics.core.thresholds import ThresholdsError, load_thresholds

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Compute per-person and per-function performance metrics")
    parser.add_argument("report", type=Path, help="Path to the exported ticket CSV")
    parser.add_argument("--thresholds", type=Path, default=None, help="YAML file with threshold overrides")
    parser.add_argument("--roster", type=Path, default=None, help="Text file listing valid assignees, one per line")
    parser.add_argument("--output-dir", type=Path, default=Path("metrics_out"), help="Directory for output CSVs")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser


def _flags_text(flags) -> str:
    return ", ".join(sorted(flags))


def report_frames(report: MetricsReport) -> dict[str, pd.DataFrame]:
    assignees = pd.DataFrame([asdict(m) for m in report.assignees], columns=list(ASSIGNEE_COLUMNS))
    functions = pd.DataFrame([asdict(f) for f in report.functions], columns=list(FUNCTION_COLUMNS))
    for frame in (assignees, functions):
        frame["flags"] = frame["flags"].map(_flags_text)
    return {
        "assignees": assignees,
        "functions": functions,
        "features": pd.DataFrame([asdict(f) for f in report.features]),
        "alerts": pd.DataFrame([asdict(a) for a in report.alerts]),
    }


def write_report(report: MetricsReport, output_dir: Path) -> list[Path]:
    output_dir.mkdir(parents=True, exist_ok=True)
    written: list[Path] = []
    for name, frame in report_frames(report).items():
        path = output_dir / f"{name}.csv"
        frame.to_csv(
            path,
            index=False,
            encoding=SETTINGS.output_encoding,
            float_format=f"%.{SETTINGS.float_precision}f",
        )
        written.append(path)
    return written


def _read_roster(path: Path | None) -> list[str] | None:
    if path is None:
        return None
    names = [line.strip() for line in path.read_text(encoding="utf-8").splitlines()]
    return [n for n in names if n]


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=args.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    try:
        thresholds = load_thresholds(args.thresholds)
        rows = read_report_csv(args.report)
        roster = _read_roster(args.roster)
    except (ThresholdsError, ReportInputError, OSError) as exc:
        logger.error("%s", exc)
        return 2
    service = MetricsService(thresholds, roster=roster)
    report = service.run(rows)
    written = write_report(report, args.output_dir)
    print(
        f"{len(report.tickets)} tickets, {len(report.assignees)} assignees, "
        f"{len(report.functions)} functions, {len(report.alerts)} alerts -> "
        + ", ".join(str(p) for p in written)
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
