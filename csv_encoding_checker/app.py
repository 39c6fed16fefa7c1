# -*- coding: utf-8 -*-
"""
CSV エンコーディング検査 GUI（Tkinter）

- CSV ファイルと候補エンコーディングを指定して実行
- 実行はバックグラウンドスレッド、結果はイベントキュー経由で受け取る
- UI は毎フレーム（約16ms）キューを1件だけ読み、表示状態へ反映する
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Optional

try:
    import tkinter as tk
    from tkinter import ttk, filedialog, messagebox
except Exception as e:  # pragma: no cover
    raise SystemExit(f"Failed to load Tkinter: {e}")

from .events import EventChannel, PresentationState
from .export import export_results, make_export_path
from .preflight import (
    DEFAULT_ENCODINGS,
    DEFAULT_PYTHON_SCRIPT,
    DEFAULT_R_SCRIPT,
    StartRunCoordinator,
    StartRunPlan,
)
from .probe import BackgroundDependencyCheck, DependencyProbe, DependencyReport
from .records import OUTPUT_HEADERS
from .worker import DEFAULT_SCRIPT_TIMEOUT_SEC, EncodingCheckWorker

APP_TITLE = "CSV Encoding Checker (R / Python)"
FRAME_INTERVAL_MS = 16
PREFERRED_THEMES = ("vista", "aqua", "clam")

_COLUMN_WIDTHS = {
    "tool": 140,
    "file_path": 180,
    "encoding_tested": 110,
    "status": 130,
    "rows": 70,
    "cols": 60,
    "cells": 80,
    "error_message": 360,
}


class EncodingCheckerApp:
    def __init__(self, root: tk.Tk, probe: DependencyProbe) -> None:
        self.root = root
        self.root.title(APP_TITLE)
        self.root.geometry("1100x760")

        self._dependency_check: Optional[BackgroundDependencyCheck] = BackgroundDependencyCheck(probe)
        self._start_run_coordinator: Optional[StartRunCoordinator] = None
        self.state = PresentationState()
        self._channel: Optional[EventChannel] = None
        self._stop_event: Optional[threading.Event] = None
        self.worker_thread: Optional[threading.Thread] = None
        self._rendered_log_count = 0
        self._rendered_results_version = -1
        self._input_widgets: list[ttk.Widget] = []

        # Variables
        self.csv_var = tk.StringVar()
        self.encodings_var = tk.StringVar(value=", ".join(DEFAULT_ENCODINGS))
        self.r_script_var = tk.StringVar(value=str(DEFAULT_R_SCRIPT))
        self.python_script_var = tk.StringVar(value=str(DEFAULT_PYTHON_SCRIPT))
        self.timeout_var = tk.StringVar(value=str(DEFAULT_SCRIPT_TIMEOUT_SEC))
        self.status_var = tk.StringVar(value=self.state.status)

        self._build_ui()
        self._log("INFO", "Checking dependencies (Rscript / Python)...")
        self.btn_run.configure(state="disabled")
        self._dependency_check.start()
        self.root.after(FRAME_INTERVAL_MS, self._on_frame)

    # -------------------- UI --------------------
    def _input(self, widget: ttk.Widget) -> ttk.Widget:
        # 実行中は無効化する入力欄として登録
        self._input_widgets.append(widget)
        return widget

    def _build_ui(self) -> None:
        pad = {"padx": 8, "pady": 6}

        frm_top = ttk.Frame(self.root)
        frm_top.pack(fill="x", **pad)

        ttk.Label(frm_top, text="CSV file:").grid(row=0, column=0, sticky="w")
        self._input(ttk.Entry(frm_top, textvariable=self.csv_var)).grid(row=0, column=1, sticky="ew", padx=(6, 6))
        self._input(ttk.Button(frm_top, text="Browse...", command=self.on_browse_csv)).grid(row=0, column=2, sticky="e")

        ttk.Label(frm_top, text="Encodings:").grid(row=1, column=0, sticky="w", pady=(6, 0))
        self._input(ttk.Entry(frm_top, textvariable=self.encodings_var)).grid(row=1, column=1, sticky="ew", padx=(6, 6), pady=(6, 0))
        ttk.Label(frm_top, text="(comma separated)").grid(row=1, column=2, sticky="w", pady=(6, 0))
        frm_top.columnconfigure(1, weight=1)

        frm_opts = ttk.LabelFrame(self.root, text="Scripts")
        frm_opts.pack(fill="x", **pad)

        ttk.Label(frm_opts, text="R script:").grid(row=0, column=0, sticky="e", padx=(8, 4), pady=4)
        self._input(ttk.Entry(frm_opts, textvariable=self.r_script_var)).grid(row=0, column=1, sticky="ew", pady=4)
        self._input(ttk.Button(frm_opts, text="...", width=3, command=lambda: self._browse_script(self.r_script_var))).grid(
            row=0, column=2, padx=(4, 8), pady=4
        )
        ttk.Label(frm_opts, text="Python script:").grid(row=1, column=0, sticky="e", padx=(8, 4), pady=4)
        self._input(ttk.Entry(frm_opts, textvariable=self.python_script_var)).grid(row=1, column=1, sticky="ew", pady=4)
        self._input(ttk.Button(frm_opts, text="...", width=3, command=lambda: self._browse_script(self.python_script_var))).grid(
            row=1, column=2, padx=(4, 8), pady=4
        )
        ttk.Label(frm_opts, text="Timeout per script (s, 0 = none):").grid(row=2, column=0, sticky="e", padx=(8, 4), pady=4)
        self._input(ttk.Entry(frm_opts, width=10, textvariable=self.timeout_var)).grid(row=2, column=1, sticky="w", pady=4)
        frm_opts.columnconfigure(1, weight=1)

        frm_buttons = ttk.Frame(self.root)
        frm_buttons.pack(fill="x", **pad)
        self.btn_run = ttk.Button(frm_buttons, text="Run", command=self.on_run)
        self.btn_run.pack(side="left", padx=(0, 6))
        self.btn_stop = ttk.Button(frm_buttons, text="Stop", command=self.on_stop, state="disabled")
        self.btn_stop.pack(side="left")
        self.btn_save = ttk.Button(frm_buttons, text="Save CSV...", command=self.on_save, state="disabled")
        self.btn_save.pack(side="left", padx=(12, 0))
        ttk.Button(frm_buttons, text="Clear log", command=self.clear_log).pack(side="left", padx=(12, 0))
        ttk.Label(frm_buttons, textvariable=self.status_var).pack(side="right")

        frm_results = ttk.LabelFrame(self.root, text="Results")
        frm_results.pack(fill="both", expand=True, **pad)
        self.tree = ttk.Treeview(frm_results, columns=OUTPUT_HEADERS, show="headings", height=10)
        for col in OUTPUT_HEADERS:
            self.tree.heading(col, text=col)
            self.tree.column(col, width=_COLUMN_WIDTHS.get(col, 100), anchor="w", stretch=(col == "error_message"))
        self.tree.pack(side="left", fill="both", expand=True)
        tsb = ttk.Scrollbar(frm_results, orient="vertical", command=self.tree.yview)
        tsb.pack(side="right", fill="y")
        self.tree.configure(yscrollcommand=tsb.set)

        frm_log = ttk.LabelFrame(self.root, text="Log")
        frm_log.pack(fill="both", expand=True, **pad)
        self.txt_log = tk.Text(frm_log, height=14, wrap="none")
        self.txt_log.pack(side="left", fill="both", expand=True)
        ysb = ttk.Scrollbar(frm_log, orient="vertical", command=self.txt_log.yview)
        ysb.pack(side="right", fill="y")
        self.txt_log.configure(yscrollcommand=ysb.set)

        self.txt_log.tag_configure("INFO", foreground="#000000")
        self.txt_log.tag_configure("WARN", foreground="#b36b00")
        self.txt_log.tag_configure("ERROR", foreground="#b00020")
        self.txt_log.tag_configure("DONE", foreground="#006400")

    def on_browse_csv(self) -> None:
        f = filedialog.askopenfilename(
            title="Select CSV file",
            filetypes=[("CSV, TSV, Text", "*.csv *.tsv *.txt"), ("All files", "*.*")],
        )
        if f:
            self.csv_var.set(f)

    def _browse_script(self, var: tk.StringVar) -> None:
        f = filedialog.askopenfilename(title="Select script", filetypes=[("Scripts", "*.R *.r *.py"), ("All files", "*.*")])
        if f:
            var.set(f)

    def clear_log(self) -> None:
        self.txt_log.delete("1.0", "end")

    def on_stop(self) -> None:
        if self._stop_event is not None:
            self._stop_event.set()
            self._log("WARN", "Stop requested (the running script will be terminated).")

    def on_save(self) -> None:
        if not self.state.results:
            return
        csv_text = self.csv_var.get().strip()
        folder = Path(csv_text).parent if csv_text else Path.cwd()
        initial = make_export_path(folder, Path(csv_text).name if csv_text else "")
        f = filedialog.asksaveasfilename(
            title="Save results",
            defaultextension=".csv",
            initialdir=str(initial.parent),
            initialfile=initial.name,
            filetypes=[("CSV files", "*.csv"), ("All files", "*.*")],
        )
        if not f:
            return
        try:
            out = export_results(Path(f), self.state.results)
        except OSError as e:
            self._log("ERROR", f"[SAVE-ERROR] {e}")
            messagebox.showerror(APP_TITLE, f"Failed to save results:\n{e}")
            return
        self._log("DONE", f"[SAVE] {out}")

    def on_run(self) -> None:
        if self.worker_thread and self.worker_thread.is_alive():
            messagebox.showinfo(APP_TITLE, "A run is in progress. Wait for it to finish or stop it.")
            return
        if self._start_run_coordinator is None:
            messagebox.showinfo(APP_TITLE, "The dependency check has not finished yet.")
            return

        plan = self._prepare_start_run_plan()
        if plan is None:
            return
        self._begin_run(plan)

    def _prepare_start_run_plan(self) -> Optional[StartRunPlan]:
        try:
            timeout_sec = int(self.timeout_var.get().strip() or "0")
        except ValueError:
            messagebox.showerror(APP_TITLE, "Timeout must be an integer.")
            return None

        ok, err_msg, plan = self._start_run_coordinator.prepare(
            csv_path_str=self.csv_var.get(),
            encodings_text=self.encodings_var.get(),
            r_script_str=self.r_script_var.get(),
            python_script_str=self.python_script_var.get(),
            timeout_sec=timeout_sec,
        )
        if not ok or plan is None:
            messagebox.showerror(APP_TITLE, err_msg or "Pre-run check failed.")
            return None
        return plan

    def _begin_run(self, plan: StartRunPlan) -> None:
        channel = EventChannel()
        stop_event = threading.Event()
        worker = EncodingCheckWorker(emit=channel.put, is_stop_requested=stop_event.is_set)

        self._channel = channel
        self._stop_event = stop_event
        self.state.reset_for_run()
        self._log("INFO", plan.startup_log_message)
        self._set_running_ui(True)

        self.worker_thread = threading.Thread(target=worker.run, args=(plan.run_config,), daemon=True)
        self.worker_thread.start()

    # -------------------- frame loop --------------------
    def _on_frame(self) -> None:
        if self._dependency_check is not None:
            report = self._dependency_check.poll()
            if report is not None:
                self._dependency_check = None
                self._on_dependency_report(report)
        if self._channel is not None:
            event = self._channel.poll()
            if event is not None:
                self.state.apply(event)
                if not self.state.running:
                    # Finished / Failed を受けたらこの実行のキューは破棄
                    self._channel = None
                    self._stop_event = None
                    self._set_running_ui(False)
        self._render()
        self.root.after(FRAME_INTERVAL_MS, self._on_frame)

    def _render(self) -> None:
        if self.status_var.get() != self.state.status:
            self.status_var.set(self.state.status)

        new_lines = self.state.log[self._rendered_log_count:]
        if new_lines:
            for kind, msg in new_lines:
                self.txt_log.insert("end", msg + "\n", kind)
            self.txt_log.see("end")
            self._rendered_log_count = len(self.state.log)

        if self._rendered_results_version != self.state.results_version:
            self.tree.delete(*self.tree.get_children())
            for record in self.state.results:
                row = record.to_row()
                self.tree.insert("", "end", values=[row[h] for h in OUTPUT_HEADERS])
            self._rendered_results_version = self.state.results_version

    def _log(self, kind: str, msg: str) -> None:
        self.state.add_log(kind, msg)

    def _set_running_ui(self, running: bool) -> None:
        self.btn_run.configure(state="disabled" if running else "normal")
        self.btn_stop.configure(state="normal" if running else "disabled")
        self.btn_save.configure(state="disabled" if running or not self.state.results else "normal")
        flag = "disabled" if running else "!disabled"
        for widget in self._input_widgets:
            widget.state([flag])

    # -------------------- Dependency --------------------
    def _on_dependency_report(self, report: DependencyReport) -> None:
        self._start_run_coordinator = StartRunCoordinator(dependency_report=report)
        if not self.state.running:
            self.btn_run.configure(state="normal")
        for line in report.summary_lines():
            self._log("INFO", f"[DEPS] {line}")
        if report.all_ok():
            self._log("DONE", "Dependency check: OK")
        else:
            self._log("WARN", "Dependency check: some requirements are missing")
            messagebox.showwarning(
                APP_TITLE,
                "Required runtimes or packages may be missing.\n\n"
                + "\n".join(report.problems())
                + "\n\nInstall them and restart the application.",
            )


def run_gui(probe: DependencyProbe) -> None:
    root = tk.Tk()
    style = ttk.Style(root)
    available = set(style.theme_names())
    # OS ネイティブのテーマを優先し、無ければ clam
    for theme in PREFERRED_THEMES:
        if theme in available:
            style.theme_use(theme)
            break

    EncodingCheckerApp(root, probe)
    root.mainloop()
