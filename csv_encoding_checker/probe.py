# -*- coding: utf-8 -*-
"""
実行環境（Rscript / Python とその必要パッケージ）の確認。

起動時に1回だけ DependencyProbe.probe() を呼び、得られた DependencyReport を
必要なコンポーネントへ渡す（グローバルなキャッシュは持たない）。
GUI では BackgroundDependencyCheck で別スレッドから呼び、Tk スレッドを止めない。
"""

from __future__ import annotations

import queue
import shutil
import subprocess
import sys
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

R_PACKAGES = ("readr", "stringi")
PYTHON_PACKAGES = ("pandas", "chardet")
PROBE_TIMEOUT_SEC = 15

R_CANDIDATES = ("Rscript",)
PYTHON_CANDIDATES = ("python3", "python")


class DependencyState(Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    PACKAGE_MISSING = "package_missing"
    ERROR = "error"


@dataclass(frozen=True)
class DependencyStatus:
    state: DependencyState
    detail: str = ""  # OK: 解決済みパス / PACKAGE_MISSING: パッケージ名 / ERROR: メッセージ

    @classmethod
    def ok(cls, resolved_path: str) -> "DependencyStatus":
        return cls(DependencyState.OK, resolved_path)

    @classmethod
    def not_found(cls) -> "DependencyStatus":
        return cls(DependencyState.NOT_FOUND)

    @classmethod
    def package_missing(cls, name: str) -> "DependencyStatus":
        return cls(DependencyState.PACKAGE_MISSING, name)

    @classmethod
    def error(cls, message: str) -> "DependencyStatus":
        return cls(DependencyState.ERROR, message)

    @property
    def is_ok(self) -> bool:
        return self.state is DependencyState.OK

    def describe(self) -> str:
        if self.state is DependencyState.OK:
            return f"OK ({self.detail})"
        if self.state is DependencyState.NOT_FOUND:
            return "not found"
        if self.state is DependencyState.PACKAGE_MISSING:
            return f"package missing: {self.detail}"
        return f"error: {self.detail}"


@dataclass(frozen=True)
class DependencyReport:
    entries: tuple[tuple[str, DependencyStatus], ...]
    r_executable: Optional[str] = None
    python_executable: Optional[str] = None
    r_version: str = ""
    python_version: str = ""

    def all_ok(self) -> bool:
        return all(status.is_ok for _, status in self.entries)

    def status_of(self, label: str) -> Optional[DependencyStatus]:
        for name, status in self.entries:
            if name == label:
                return status
        return None

    def problems(self) -> list[str]:
        return [f"- {name}: {status.describe()}" for name, status in self.entries if not status.is_ok]

    def summary_lines(self) -> list[str]:
        lines = [f"{name}: {status.describe()}" for name, status in self.entries]
        if self.r_version:
            lines.append(f"R version: {self.r_version}")
        if self.python_version:
            lines.append(f"Python version: {self.python_version}")
        return lines


def _first_line(text: str) -> str:
    for line in (text or "").splitlines():
        line = line.strip()
        if line:
            return line
    return ""


class DependencyProbe:
    """Rscript / Python の所在・バージョン・必要パッケージを確認する。"""

    def __init__(
        self,
        *,
        rscript: Optional[str] = None,
        python: Optional[str] = None,
        r_packages: tuple[str, ...] = R_PACKAGES,
        python_packages: tuple[str, ...] = PYTHON_PACKAGES,
        which: Callable[[str], Optional[str]] = shutil.which,
        run_command: Callable[..., Any] = subprocess.run,
        timeout_sec: int = PROBE_TIMEOUT_SEC,
    ) -> None:
        self._rscript = rscript
        self._python = python
        self._r_packages = tuple(r_packages)
        self._python_packages = tuple(python_packages)
        self._which = which
        self._run_command = run_command
        self._timeout_sec = timeout_sec

    def _resolve(self, configured: Optional[str], candidates: tuple[str, ...], fallback: Optional[str] = None) -> Optional[str]:
        if configured:
            return self._which(configured)
        for name in candidates:
            hit = self._which(name)
            if hit:
                return hit
        return fallback

    def _run(self, cmd: list[str]) -> tuple[int, str]:
        cp = self._run_command(
            cmd,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=self._timeout_sec,
        )
        return cp.returncode, ((cp.stdout or "") + "\n" + (cp.stderr or "")).strip()

    def _check_runtime(self, executable: Optional[str], version_cmd: list[str]) -> tuple[DependencyStatus, str]:
        if not executable:
            return DependencyStatus.not_found(), ""
        try:
            rc, text = self._run(version_cmd)
        except (OSError, subprocess.SubprocessError) as e:
            return DependencyStatus.error(str(e)), ""
        if rc != 0:
            return DependencyStatus.error(_first_line(text) or f"returncode={rc}"), ""
        return DependencyStatus.ok(executable), _first_line(text)

    def _check_package(self, name: str, cmd: list[str]) -> DependencyStatus:
        try:
            rc, text = self._run(cmd)
        except (OSError, subprocess.SubprocessError) as e:
            return DependencyStatus.error(str(e))
        if rc != 0:
            return DependencyStatus.package_missing(name)
        return DependencyStatus.ok(name)

    def probe(self) -> DependencyReport:
        entries: list[tuple[str, DependencyStatus]] = []

        rscript = self._resolve(self._rscript, R_CANDIDATES)
        r_status, r_version = self._check_runtime(rscript, [rscript or "", "--version"])
        entries.append(("Rscript", r_status))
        for pkg in self._r_packages:
            if not r_status.is_ok:
                entries.append((f"R package {pkg}", DependencyStatus.error("Rscript unavailable")))
                continue
            expr = f"if (!requireNamespace('{pkg}', quietly = TRUE)) quit(status = 1)"
            entries.append((f"R package {pkg}", self._check_package(pkg, [rscript, "-e", expr])))

        python = self._resolve(self._python, PYTHON_CANDIDATES, fallback=sys.executable)
        py_status, py_version = self._check_runtime(python, [python or "", "--version"])
        entries.append(("Python", py_status))
        for pkg in self._python_packages:
            if not py_status.is_ok:
                entries.append((f"Python package {pkg}", DependencyStatus.error("Python unavailable")))
                continue
            entries.append((f"Python package {pkg}", self._check_package(pkg, [python, "-c", f"import {pkg}"])))

        return DependencyReport(
            entries=tuple(entries),
            r_executable=rscript if r_status.is_ok else None,
            python_executable=python if py_status.is_ok else None,
            r_version=r_version,
            python_version=py_version,
        )


class BackgroundDependencyCheck:
    """DependencyProbe.probe() をデーモンスレッドで1回だけ実行し、結果を poll() で受け取る。"""

    def __init__(self, probe: DependencyProbe) -> None:
        self._checker = probe
        self._q: "queue.Queue[DependencyReport]" = queue.Queue()
        self._thread: Optional[threading.Thread] = None

    def start(self) -> None:
        if self._thread is not None:
            return
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def _run(self) -> None:
        try:
            report = self._checker.probe()
        except Exception as e:
            report = DependencyReport(
                entries=(("Dependency check", DependencyStatus.error(f"{type(e).__name__}: {e}")),)
            )
        self._q.put(report)

    def poll(self) -> Optional[DependencyReport]:
        try:
            return self._q.get_nowait()
        except queue.Empty:
            return None
