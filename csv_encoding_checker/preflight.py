# -*- coding: utf-8 -*-
"""実行開始前のチェック（入力 / 依存関係 / スクリプト所在）と RunConfig の生成。"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .probe import DependencyReport
from .worker import DEFAULT_SCRIPT_TIMEOUT_SEC, RunConfig

SCRIPTS_DIR = Path(__file__).resolve().parent / "scripts"
DEFAULT_R_SCRIPT = SCRIPTS_DIR / "check_csv.R"
DEFAULT_PYTHON_SCRIPT = SCRIPTS_DIR / "check_csv.py"
DEFAULT_ENCODINGS = ("UTF-8", "BIG5")


def parse_encodings(text: str) -> tuple[str, ...]:
    """カンマ/改行区切りのエンコーディング指定を分解する。重複は残す。"""
    parts = re.split(r"[,\r\n]+", text or "")
    return tuple(p.strip() for p in parts if p.strip())


@dataclass(frozen=True)
class StartRunPlan:
    run_config: RunConfig
    startup_log_message: str


class StartRunCoordinator:
    """on_run の事前準備をまとめる。ワーカー側では依存関係を再確認しない。"""

    def __init__(self, *, dependency_report: DependencyReport) -> None:
        self._report = dependency_report

    @property
    def dependency_report(self) -> DependencyReport:
        return self._report

    def prepare(
        self,
        *,
        csv_path_str: str,
        encodings_text: str,
        r_script_str: str = "",
        python_script_str: str = "",
        timeout_sec: int = DEFAULT_SCRIPT_TIMEOUT_SEC,
    ) -> tuple[bool, str, Optional[StartRunPlan]]:
        csv_path_str = (csv_path_str or "").strip()
        if not csv_path_str:
            return False, "Select a CSV file first.", None

        encodings = parse_encodings(encodings_text)
        if not encodings:
            return False, "Enter at least one encoding.", None

        if not self._report.all_ok():
            return False, "Dependencies are not satisfied:\n" + "\n".join(self._report.problems()), None

        r_script = Path(r_script_str.strip()) if (r_script_str or "").strip() else DEFAULT_R_SCRIPT
        python_script = Path(python_script_str.strip()) if (python_script_str or "").strip() else DEFAULT_PYTHON_SCRIPT
        missing = [str(p) for p in (r_script, python_script) if not p.is_file()]
        if missing:
            return False, "Script file not found:\n" + "\n".join(missing), None

        if timeout_sec < 0:
            return False, "Timeout must be 0 (disabled) or a positive number of seconds.", None

        run_config = RunConfig(
            csv_path=Path(csv_path_str),
            encodings=encodings,
            r_executable=self._report.r_executable or "",
            python_executable=self._report.python_executable or "",
            r_script=r_script,
            python_script=python_script,
            timeout_sec=int(timeout_sec),
        )
        startup_log_message = (
            f"Run: {Path(csv_path_str).name} / {len(encodings)} encoding(s) x 2 tools "
            f"(Rscript: {run_config.r_executable} / Python: {run_config.python_executable})"
        )
        return True, "", StartRunPlan(run_config=run_config, startup_log_message=startup_log_message)
