# -*- coding: utf-8 -*-
"""
結果レコードとスクリプト出力CSVの読み書き。

外部スクリプト（R / Python）は次のヘッダを持つCSVを出力する:
    tool,file_path,encoding_tested,status,rows,cols,cells,error_message

- 列の並びは自由（ヘッダ名で対応付け）
- rows / cols / cells / error_message は空欄可（空欄 -> None）
- 0バイトのファイルは「出力行なし」として正常扱い
"""

from __future__ import annotations

import csv
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Optional

OUTPUT_HEADERS = [
    "tool",
    "file_path",
    "encoding_tested",
    "status",
    "rows",
    "cols",
    "cells",
    "error_message",
]
REQUIRED_COLUMNS = ("tool", "file_path", "encoding_tested", "status")
COUNT_COLUMNS = ("rows", "cols", "cells")

# オーケストレータ側で付与するステータス
STATUS_EXECUTION_ERROR = "ExecutionError"
STATUS_EXECUTION_FAILURE = "ExecutionFailure"
STATUS_OUTPUT_PARSE_FAILURE = "OutputParseFailure"
STATUS_EXECUTION_TIMEOUT = "ExecutionTimeout"


class Tool(Enum):
    """外部ツールの種別。label は表示名、failure_tag は合成レコード用の tool 値。"""

    R = ("R", "R_Overall")
    PYTHON = ("Python", "Python_Orchestrator")

    def __init__(self, label: str, failure_tag: str) -> None:
        self.label = label
        self.failure_tag = failure_tag


@dataclass(frozen=True)
class ResultRecord:
    tool: str
    file_path: str
    encoding_tested: str
    status: str
    rows: Optional[int] = None
    cols: Optional[int] = None
    cells: Optional[int] = None
    error_message: Optional[str] = None

    @classmethod
    def failure(cls, tool: Tool, file_path: str, encoding: str, status: str, message: str) -> "ResultRecord":
        return cls(
            tool=tool.failure_tag,
            file_path=file_path,
            encoding_tested=encoding,
            status=status,
            error_message=message,
        )

    def to_row(self) -> dict[str, str]:
        return {
            "tool": self.tool,
            "file_path": self.file_path,
            "encoding_tested": self.encoding_tested,
            "status": self.status,
            "rows": "" if self.rows is None else str(self.rows),
            "cols": "" if self.cols is None else str(self.cols),
            "cells": "" if self.cells is None else str(self.cells),
            "error_message": self.error_message or "",
        }


class ScriptOutputError(RuntimeError):
    """スクリプト出力CSVの読み取り失敗の基底クラス。"""


class OutputNotFound(ScriptOutputError):
    pass


class OutputIoError(ScriptOutputError):
    pass


class MalformedRow(ScriptOutputError):
    pass


def _optional_text(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    # 空白だけの欄は空扱い。値そのものは前後の空白も含めて保持する
    return value if value.strip() else None


def _optional_int(value: Optional[str], column: str, line_no: int) -> Optional[int]:
    text = _optional_text(value)
    if text is None:
        return None
    try:
        return int(text)
    except ValueError:
        raise MalformedRow(f"line {line_no}: {column} is not an integer: {text!r}")


def _record_from_row(row: dict, line_no: int) -> ResultRecord:
    if None in row:
        raise MalformedRow(f"line {line_no}: more fields than the header")

    required: dict[str, str] = {}
    for col in REQUIRED_COLUMNS:
        value = _optional_text(row.get(col))
        if value is None:
            raise MalformedRow(f"line {line_no}: required column {col} is blank")
        required[col] = value

    counts = {col: _optional_int(row.get(col), col, line_no) for col in COUNT_COLUMNS}
    return ResultRecord(
        tool=required["tool"],
        file_path=required["file_path"],
        encoding_tested=required["encoding_tested"],
        status=required["status"],
        error_message=_optional_text(row.get("error_message")),
        **counts,
    )


def parse_script_output(path: Path) -> List[ResultRecord]:
    """スクリプト出力CSVを読み、ファイル順のレコード列を返す。

    0バイトのファイルとヘッダのみのファイルはどちらも空リストを返す。
    """
    path = Path(path)
    if not path.exists():
        raise OutputNotFound(f"output file not found: {path}")
    try:
        if path.stat().st_size == 0:
            return []
        with path.open("r", newline="", encoding="utf-8-sig") as f:
            reader = csv.DictReader(f)
            header = reader.fieldnames
            if not header:
                return []
            missing = [c for c in REQUIRED_COLUMNS if c not in header]
            if missing:
                raise MalformedRow(f"header is missing required column(s): {', '.join(missing)}")
            records: List[ResultRecord] = []
            for row in reader:
                records.append(_record_from_row(row, reader.line_num))
            return records
    except ScriptOutputError:
        raise
    except csv.Error as e:
        raise MalformedRow(f"CSV syntax error: {e}")
    except UnicodeDecodeError as e:
        raise MalformedRow(f"output is not valid UTF-8: {e}")
    except OSError as e:
        raise OutputIoError(f"cannot read output file: {e}")


def write_script_output(path: Path, records: Iterable[ResultRecord], encoding: str = "utf-8") -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", newline="", encoding=encoding) as f:
        w = csv.DictWriter(f, fieldnames=OUTPUT_HEADERS)
        w.writeheader()
        for record in records:
            w.writerow(record.to_row())
