# -*- coding: utf-8 -*-
"""外部スクリプト1回分の起動・待機（停止要求/タイムアウト対応）。"""

from __future__ import annotations

import os
import shlex
import signal
import subprocess
import time
from pathlib import Path
from typing import Any, Callable, Optional

POLL_INTERVAL_SEC = 0.1
TERMINATE_GRACE_SEC = 3.0


class ScriptStopRequested(RuntimeError):
    """停止要求により外部スクリプト実行を中断したことを表す例外。"""


class ScriptTimeout(RuntimeError):
    """外部スクリプトが制限時間内に終了しなかったことを表す例外。"""


def format_cmd_for_log(cmd: list[str]) -> str:
    """ログ表示用に、そのままシェルへ貼り付けられる形でコマンドを整形する。"""
    if os.name == "nt":
        return subprocess.list2cmdline(cmd)
    return shlex.join(cmd)


def _signal_process(proc: Any, forceful: bool) -> None:
    if os.name == "nt":
        if forceful:
            proc.kill()
        else:
            proc.terminate()
        return
    # start_new_session で起動しているので、孫プロセスごとグループで止める
    sig = signal.SIGKILL if forceful else signal.SIGTERM
    try:
        os.killpg(proc.pid, sig)
    except ProcessLookupError:
        pass
    except PermissionError:
        proc.send_signal(sig)


def terminate_process(proc: Any, grace_sec: float = TERMINATE_GRACE_SEC) -> None:
    """SIGTERM -> 猶予待ち -> SIGKILL の順で子プロセスを止める。"""
    for forceful in (False, True):
        if proc.poll() is not None:
            return
        try:
            _signal_process(proc, forceful)
        except OSError:
            pass
        try:
            proc.wait(timeout=grace_sec)
            return
        except subprocess.TimeoutExpired:
            continue


class ScriptRunner:
    """`<executable> <script> <csv> <out> <encoding>` 形式の外部スクリプトを実行する。"""

    def __init__(
        self,
        *,
        is_stop_requested: Optional[Callable[[], bool]] = None,
        poll_interval: float = POLL_INTERVAL_SEC,
    ) -> None:
        self._is_stop_requested = is_stop_requested or (lambda: False)
        self._poll_interval = poll_interval

    @staticmethod
    def build_cmd(executable: str, script: Path, csv_path: Path, out_path: Path, encoding: str) -> list[str]:
        return [str(executable), str(script), str(csv_path), str(out_path), encoding]

    def run(self, cmd: list[str], timeout_sec: int = 0) -> tuple[int, str]:
        """子プロセスを起動して終了まで待ち、(終了コード, 標準出力+標準エラー) を返す。

        起動自体の失敗は OSError をそのまま送出する。
        """
        popen_kwargs: dict[str, Any] = dict(
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            encoding="utf-8",
            errors="replace",
        )
        if os.name == "nt":
            creationflags = getattr(subprocess, "CREATE_NEW_PROCESS_GROUP", 0)
            if creationflags:
                popen_kwargs["creationflags"] = creationflags
        else:
            popen_kwargs["start_new_session"] = True

        proc = subprocess.Popen(cmd, **popen_kwargs)
        started = time.monotonic()

        while True:
            if self._is_stop_requested():
                terminate_process(proc)
                self._drain(proc)
                raise ScriptStopRequested("script interrupted by stop request")

            # パイプ詰まりを避けるため、短いタイムアウト付き communicate で待つ
            try:
                output, _ = proc.communicate(timeout=self._poll_interval)
                return proc.returncode, (output or "")
            except subprocess.TimeoutExpired:
                pass

            if timeout_sec > 0 and (time.monotonic() - started) > timeout_sec:
                terminate_process(proc)
                self._drain(proc)
                raise ScriptTimeout(f"script timed out (>{timeout_sec}s)")

    @staticmethod
    def _drain(proc: Any) -> None:
        try:
            proc.communicate(timeout=2)
        except (subprocess.TimeoutExpired, ValueError, OSError):
            pass
