from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import replace
from pathlib import Path
from typing import List, Optional, Tuple

import pandas as pd
from dateutil import parser as dateparser

from . import engine
from .engine import UnscheduledInitiativesError
from .io_utils import (
    capacity_frame,
    capacity_records_from_df,
    ensure_directory,
    fill_capacity_horizon,
    load_capacity,
    load_config,
    load_initiatives,
    write_csv,
)
from .models import PlanningConfig
from .warnings_report import WarningReport


def _parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Capacity-aware roadmap scheduler (CSV in/out, no UI)."
    )
    parser.add_argument(
        "--project-dir",
        help="Project directory containing input/ and output/ subfolders",
    )
    parser.add_argument("--initiatives", help="Path to initiatives CSV input (overrides project-dir default)")
    parser.add_argument("--capacity", help="Path to capacity CSV or JSON input (overrides project-dir default)")
    parser.add_argument("--config", help="Path to configuration JSON file (overrides project-dir default)")
    parser.add_argument(
        "--outdir",
        default=None,
        help="Output directory for generated files (default: <project-dir>/output or ./out)",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail if any initiative is unscheduled or misses its deadline",
    )
    parser.add_argument(
        "--start",
        help="Override config.planning_start (ISO date or YYYY-MM)",
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Schedule and print summary without writing output files",
    )
    return parser.parse_args(argv)


def _resolve_io_paths(args: argparse.Namespace) -> Tuple[Path, Path, Path, Path]:
    project_dir = Path(args.project_dir).resolve() if args.project_dir else None
    if project_dir and not project_dir.exists():
        raise ValueError(f"project directory not found: {project_dir}")
    input_dir = project_dir / "input" if project_dir else None

    def _pick(path_value: Optional[str], default_name: str) -> Optional[Path]:
        if path_value:
            return Path(path_value)
        if input_dir:
            return input_dir / default_name
        return None

    initiatives_path = _pick(args.initiatives, "initiatives.csv")
    capacity_path = _pick(args.capacity, "capacity.csv")
    config_path = _pick(args.config, "config.json")

    missing = [
        name
        for name, value in (
            ("initiatives", initiatives_path),
            ("capacity", capacity_path),
            ("config", config_path),
        )
        if value is None
    ]
    if missing:
        joined = ", ".join(f"--{name}" for name in missing)
        raise ValueError(f"missing required input paths: {joined} (or provide --project-dir)")

    for label, path in (("initiatives", initiatives_path), ("capacity", capacity_path), ("config", config_path)):
        if not path.exists():
            raise ValueError(f"{label} file not found at {path}")

    if args.outdir:
        outdir = Path(args.outdir)
    elif project_dir:
        outdir = project_dir / "output"
    else:
        outdir = Path("out")

    return initiatives_path, capacity_path, config_path, outdir


def _configure_logging(level_name: str) -> None:
    level = getattr(logging, level_name.upper(), logging.INFO)
    logging.basicConfig(level=level, format="%(levelname)s %(message)s")


def _apply_overrides(cfg: PlanningConfig, args: argparse.Namespace) -> PlanningConfig:
    if args.start:
        try:
            start = dateparser.isoparse(args.start).date()
        except ValueError as exc:
            raise ValueError(f"invalid --start value: {args.start}") from exc
        cfg = replace(cfg, planning_start=start)
    return cfg


def _print_dry_run_summary(roadmap: pd.DataFrame, report: WarningReport) -> None:
    if roadmap.empty:
        print("No initiatives to schedule.")
        return
    print("Roadmap:")
    for row in roadmap.itertuples(index=False):
        arrow = "→"
        if row.completion_month is None or pd.isna(row.completion_month):
            window = "unscheduled" if row.status == "unscheduled" else "not placed"
        elif row.start_month == row.completion_month:
            window = str(row.completion_month)
        else:
            window = f"{row.start_month} {arrow} {row.completion_month}"
        flag = " (deadline missed)" if row.deadline_missed else ""
        print(f"- {row.id} {row.name}: {window}{flag}")
    if report.capacity_warnings:
        print("\nOver-capacity months:")
        for warning in report.capacity_warnings:
            print(f"- {warning.month}: {warning.total_load:.1f} planned vs {warning.available_days:g} available")
    else:
        print("\nOver-capacity months: none")


def main(argv: Optional[List[str]] = None) -> None:
    args = _parse_args(argv)
    try:
        initiatives_path, capacity_path, config_path, outdir = _resolve_io_paths(args)
        initiatives_df = load_initiatives(initiatives_path)
        recorded_df = load_capacity(capacity_path)
        cfg = _apply_overrides(load_config(config_path), args)
    except ValueError as exc:
        print(str(exc), file=sys.stderr)
        sys.exit(2)

    _configure_logging(cfg.logging_level)
    horizon = fill_capacity_horizon(
        capacity_records_from_df(recorded_df),
        cfg.first_month(),
        cfg.horizon_months,
        cfg.default_days_per_month,
    )
    try:
        roadmap_df, load_df, result = engine.plan(
            initiatives_df, capacity_frame(horizon), cfg, strict=args.strict
        )
    except UnscheduledInitiativesError as exc:
        print(str(exc), file=sys.stderr)
        sys.exit(1)

    report = WarningReport(result.scheduled, load_df.attrs["monthly_load"])
    report.analyze()

    if args.dry_run:
        _print_dry_run_summary(roadmap_df, report)
        return

    outdir_path = ensure_directory(outdir)
    roadmap_path = Path(outdir_path) / "roadmap.csv"
    load_path = Path(outdir_path) / "monthly_load.csv"
    warnings_path = Path(outdir_path) / "capacity_warnings.md"
    write_csv(roadmap_df, roadmap_path)
    write_csv(load_df, load_path)
    warnings_path.write_text(report.to_markdown())
    print(f"Wrote {roadmap_path}")
    print(f"Wrote {load_path}")
    print(f"Wrote {warnings_path}")


if __name__ == "__main__":
    main()
