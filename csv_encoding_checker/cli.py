# -*- coding: utf-8 -*-
"""
コマンドライン入口。

引数なしで起動した場合は GUI、CSV ファイルを指定した場合はヘッドレスで
検査を実行して結果を表示（-o 指定時はCSV保存）する。
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Callable, List, Optional

from .events import Event, Failed, Finished, ProgressNote, ResultProduced, Started
from .export import export_results
from .preflight import DEFAULT_ENCODINGS, StartRunCoordinator
from .probe import DependencyProbe
from .records import OUTPUT_HEADERS, ResultRecord
from .worker import DEFAULT_SCRIPT_TIMEOUT_SEC, EncodingCheckWorker


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="csv-encoding-checker",
        description="Measure CSV row/column/cell counts under several encodings with R and Python scripts.",
    )
    p.add_argument("csv_file", nargs="?", help="CSV file to check. Omit to launch the GUI.")
    p.add_argument(
        "-e", "--encodings",
        default=",".join(DEFAULT_ENCODINGS),
        help="Comma separated encodings to try (default: %(default)s).",
    )
    p.add_argument("--rscript", help="Path to the Rscript executable (default: search PATH).")
    p.add_argument("--python", dest="python_exe", help="Path to the Python interpreter that runs the Python script.")
    p.add_argument("--r-script", default="", help="R analysis script (default: bundled check_csv.R).")
    p.add_argument("--python-script", default="", help="Python analysis script (default: bundled check_csv.py).")
    p.add_argument(
        "--timeout",
        type=int,
        default=DEFAULT_SCRIPT_TIMEOUT_SEC,
        help="Timeout per script run in seconds, 0 disables (default: %(default)s).",
    )
    p.add_argument("-o", "--output", help="Write the final results to this CSV file.")
    return p


def _print_event(event: Event) -> None:
    if isinstance(event, Started):
        print("[INFO] Processing started.")
    elif isinstance(event, ProgressNote):
        stream = sys.stderr if event.kind == "ERROR" else sys.stdout
        print(f"[{event.kind}] {event.text}", file=stream)
    elif isinstance(event, ResultProduced):
        r = event.record
        print(f"[RESULT] {r.tool} / {r.encoding_tested}: {r.status}")
    elif isinstance(event, Finished):
        print("[DONE] All checks finished.")
    elif isinstance(event, Failed):
        print(f"[ERROR] {event.message}", file=sys.stderr)


def format_table(records: List[ResultRecord]) -> str:
    rows = [OUTPUT_HEADERS] + [[r.to_row()[h] for h in OUTPUT_HEADERS] for r in records]
    widths = [max(len(row[i]) for row in rows) for i in range(len(OUTPUT_HEADERS))]
    lines = ["  ".join(cell.ljust(widths[i]) for i, cell in enumerate(row)).rstrip() for row in rows]
    lines.insert(1, "  ".join("-" * w for w in widths))
    return "\n".join(lines)


def run_headless(args: argparse.Namespace, probe: DependencyProbe) -> int:
    report = probe.probe()
    for line in report.summary_lines():
        print(f"[INFO] [DEPS] {line}")

    coordinator = StartRunCoordinator(dependency_report=report)
    ok, err_msg, plan = coordinator.prepare(
        csv_path_str=args.csv_file,
        encodings_text=args.encodings,
        r_script_str=args.r_script,
        python_script_str=args.python_script,
        timeout_sec=args.timeout,
    )
    if not ok or plan is None:
        print(f"[ERROR] {err_msg}", file=sys.stderr)
        return 1
    print(f"[INFO] {plan.startup_log_message}")

    outcome: list[Event] = []

    def emit(event: Event) -> None:
        _print_event(event)
        if isinstance(event, (Finished, Failed)):
            outcome.append(event)

    EncodingCheckWorker(emit=emit).run(plan.run_config)

    final = outcome[-1] if outcome else None
    if not isinstance(final, Finished):
        return 1

    records = list(final.records)
    print()
    print(format_table(records))
    if args.output:
        try:
            out = export_results(Path(args.output), records)
        except OSError as e:
            print(f"[ERROR] Failed to save {args.output}: {e}", file=sys.stderr)
            return 1
        print(f"[INFO] Results saved to: {out.resolve()}")
    return 0


def main(
    argv: Optional[List[str]] = None,
    probe_factory: Callable[..., DependencyProbe] = DependencyProbe,
) -> int:
    args = build_parser().parse_args(argv)
    probe = probe_factory(rscript=args.rscript, python=args.python_exe)

    if args.csv_file is None:
        try:
            from .app import run_gui
        except SystemExit as e:
            print(f"GUI failed to start: {e}", file=sys.stderr)
            print("Try command-line mode instead: csv-encoding-checker your_file.csv", file=sys.stderr)
            return 1
        run_gui(probe)
        return 0

    return run_headless(args, probe)
