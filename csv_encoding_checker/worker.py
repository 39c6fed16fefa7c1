# -*- coding: utf-8 -*-
"""
エンコーディング検査のバックグラウンド処理。

エンコーディング x {R, Python} を順番に（並列化しない）外部スクリプトへ渡し、
出力CSVを読み取って結果レコードをイベントとして流す。
1組の失敗はレコードとして記録し、バッチ全体は止めない。
"""

from __future__ import annotations

import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional

from .events import Event, Failed, Finished, ProgressNote, ResultProduced, Started
from .records import (
    STATUS_EXECUTION_ERROR,
    STATUS_EXECUTION_FAILURE,
    STATUS_EXECUTION_TIMEOUT,
    STATUS_OUTPUT_PARSE_FAILURE,
    ResultRecord,
    ScriptOutputError,
    Tool,
    parse_script_output,
)
from .runner import ScriptRunner, ScriptStopRequested, ScriptTimeout, format_cmd_for_log

DEFAULT_SCRIPT_TIMEOUT_SEC = 30 * 60
OUTPUT_SNIPPET_CHARS = 500


@dataclass(frozen=True)
class RunConfig:
    csv_path: Path
    encodings: tuple[str, ...]
    r_executable: str
    python_executable: str
    r_script: Path
    python_script: Path
    timeout_sec: int = DEFAULT_SCRIPT_TIMEOUT_SEC

    def tools(self) -> tuple[tuple[Tool, str, Path], ...]:
        # R -> Python の順は固定
        return (
            (Tool.R, self.r_executable, self.r_script),
            (Tool.PYTHON, self.python_executable, self.python_script),
        )


def _snippet(text: str, limit: int = OUTPUT_SNIPPET_CHARS) -> str:
    text = (text or "").strip()
    return (text[:limit] + "...") if len(text) > limit else text


class EncodingCheckWorker:
    """1回の実行分の処理。実行ごとに新しく生成し、使い回さない。"""

    def __init__(
        self,
        *,
        emit: Callable[[Event], None],
        runner: Optional[ScriptRunner] = None,
        is_stop_requested: Optional[Callable[[], bool]] = None,
    ) -> None:
        self._emit = emit
        self._is_stop_requested = is_stop_requested or (lambda: False)
        self._runner = runner or ScriptRunner(is_stop_requested=self._is_stop_requested)

    def _note(self, text: str, kind: str = "INFO") -> None:
        self._emit(ProgressNote(text=text, kind=kind))

    def run(self, config: RunConfig) -> None:
        self._emit(Started())

        try:
            csv_abs = Path(config.csv_path).resolve(strict=True)
        except (OSError, RuntimeError):
            self._emit(Failed(f"Input CSV not found: {config.csv_path}"))
            return
        if not csv_abs.is_file():
            self._emit(Failed(f"Input path is not a regular file: {csv_abs}"))
            return

        display_name = csv_abs.name
        results: List[ResultRecord] = []
        self._note(f"Input: {csv_abs} / encodings: {', '.join(config.encodings)}")

        stopped = False
        for encoding in config.encodings:
            for tool, executable, script in config.tools():
                if self._is_stop_requested():
                    stopped = True
                    break
                try:
                    records = self.check_one(
                        tool=tool,
                        executable=executable,
                        script=script,
                        csv_abs=csv_abs,
                        display_name=display_name,
                        encoding=encoding,
                        timeout_sec=config.timeout_sec,
                    )
                except ScriptStopRequested as e:
                    self._note(f"[STOPPED] {tool.label} / {encoding}: {e}", "WARN")
                    stopped = True
                    break
                results.extend(records)
            if stopped:
                break

        if stopped:
            self._note("Stop requested: remaining checks were skipped.", "WARN")
        self._emit(Finished(tuple(results)))

    def check_one(
        self,
        *,
        tool: Tool,
        executable: str,
        script: Path,
        csv_abs: Path,
        display_name: str,
        encoding: str,
        timeout_sec: int,
    ) -> List[ResultRecord]:
        """1組 (tool, encoding) を実行し、追加すべきレコードを返す。

        停止要求以外の例外はすべて ExecutionError のレコードに変換する。
        """
        out_path: Optional[Path] = None
        try:
            fd, tmp_name = tempfile.mkstemp(prefix="encoding_check_", suffix=".csv")
            os.close(fd)
            out_path = Path(tmp_name)

            self._note(f"[RUN] {tool.label} / {encoding}: {display_name}")
            cmd = self._runner.build_cmd(executable, script, csv_abs, out_path, encoding)
            self._note("[CMD] " + format_cmd_for_log(cmd))

            try:
                rc, output = self._runner.run(cmd, timeout_sec=timeout_sec)
            except ScriptTimeout as e:
                self._note(f"[TIMEOUT] {tool.label} / {encoding}: {e}", "ERROR")
                return [ResultRecord.failure(tool, display_name, encoding, STATUS_EXECUTION_TIMEOUT, str(e))]
            except OSError as e:
                msg = f"cannot launch {tool.label}: {e}"
                self._note(f"[ERROR] {msg}", "ERROR")
                return [ResultRecord.failure(tool, display_name, encoding, STATUS_EXECUTION_ERROR, msg)]

            if rc != 0:
                detail = output.strip() or f"exit code {rc}"
                self._note(f"[FAIL] {tool.label} / {encoding} (code={rc}) {_snippet(detail)}", "ERROR")
                return [ResultRecord.failure(tool, display_name, encoding, STATUS_EXECUTION_FAILURE, detail)]

            try:
                records = parse_script_output(out_path)
            except ScriptOutputError as e:
                msg = f"{e} / output: {_snippet(output) or '(none)'}"
                self._note(f"[PARSE-ERROR] {tool.label} / {encoding}: {e}", "ERROR")
                return [ResultRecord.failure(tool, display_name, encoding, STATUS_OUTPUT_PARSE_FAILURE, msg)]

            if not records:
                # 0バイト出力は「結果なし」として何も追加しない
                self._note(f"[EMPTY] {tool.label} / {encoding}: script wrote no output rows", "WARN")
                return []

            for record in records:
                self._emit(ResultProduced(record))
            self._note(f"[DONE] {tool.label} / {encoding}: {len(records)} record(s)", "DONE")
            return records
        except ScriptStopRequested:
            raise
        except Exception as e:
            msg = f"{tool.label} / {encoding}: {type(e).__name__}: {e}"
            self._note(f"[ERROR] {msg}", "ERROR")
            return [ResultRecord.failure(tool, display_name, encoding, STATUS_EXECUTION_ERROR, msg)]
        finally:
            if out_path is not None:
                try:
                    out_path.unlink()
                except FileNotFoundError:
                    pass
                except OSError as e:
                    self._note(f"[WARN] temporary output not removed: {out_path} ({e})", "WARN")
