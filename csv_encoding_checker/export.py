# -*- coding: utf-8 -*-
"""検査結果のCSV出力（スクリプト出力CSVと同じ列構成、Excel向けに BOM 付き）。"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Iterable, Optional

from .records import ResultRecord, write_script_output

EXPORT_PREFIX = "encoding_check"


def make_export_path(folder: Path, source_name: str = "", now: Optional[datetime] = None) -> Path:
    """保存先の既定ファイル名。入力CSV名と時刻を含め、既存ファイルとは重ならない。"""
    ts = (now or datetime.now()).strftime("%Y%m%d_%H%M%S")
    stem = f"{EXPORT_PREFIX}_{Path(source_name).stem}_{ts}" if source_name else f"{EXPORT_PREFIX}_{ts}"
    candidate = Path(folder) / f"{stem}.csv"
    n = 0
    while candidate.exists():
        n += 1
        candidate = Path(folder) / f"{stem}_{n:03d}.csv"
    return candidate


def export_results(csv_path: Path, records: Iterable[ResultRecord]) -> Path:
    csv_path = Path(csv_path)
    write_script_output(csv_path, records, encoding="utf-8-sig")
    return csv_path
