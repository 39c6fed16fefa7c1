# -*- coding: utf-8 -*-
"""ワーカー -> UI のイベント定義とイベントキュー、UI表示状態への反映。"""

from __future__ import annotations

import queue
from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

from .records import ResultRecord

STATUS_IDLE = "Idle"
STATUS_PROCESSING = "Processing…"
STATUS_DONE = "Done"


@dataclass(frozen=True)
class Started:
    pass


@dataclass(frozen=True)
class ResultProduced:
    record: ResultRecord


@dataclass(frozen=True)
class Finished:
    records: Tuple[ResultRecord, ...]


@dataclass(frozen=True)
class Failed:
    message: str


@dataclass(frozen=True)
class ProgressNote:
    text: str
    kind: str = "INFO"  # INFO / WARN / ERROR / DONE


Event = Union[Started, ResultProduced, Finished, Failed, ProgressNote]


class EventChannel:
    """FIFO のイベントキュー。送信はどのスレッドからでも可、受信は UI スレッドのみ。"""

    def __init__(self) -> None:
        self.q: "queue.Queue[Event]" = queue.Queue()

    def put(self, event: Event) -> None:
        self.q.put(event)

    def poll(self) -> Optional[Event]:
        try:
            return self.q.get_nowait()
        except queue.Empty:
            return None


@dataclass
class PresentationState:
    """UI に表示する状態。Tk に依存しないのでテストから直接扱える。"""

    status: str = STATUS_IDLE
    log: list[tuple[str, str]] = field(default_factory=list)
    results: list[ResultRecord] = field(default_factory=list)
    running: bool = False
    results_version: int = 0

    def add_log(self, kind: str, text: str) -> None:
        self.log.append((kind, text))

    def apply(self, event: Event) -> None:
        if isinstance(event, Started):
            self.running = True
            self.status = STATUS_PROCESSING
            self.add_log("INFO", "Processing started.")
        elif isinstance(event, ResultProduced):
            self.results.append(event.record)
            self.results_version += 1
        elif isinstance(event, Finished):
            # 確定結果で置き換える（途中結果と二重計上しない）
            self.running = False
            self.status = STATUS_DONE
            self.results = list(event.records)
            self.results_version += 1
            self.add_log("DONE", "All checks finished.")
        elif isinstance(event, Failed):
            self.running = False
            self.status = f"Error: {event.message}"
            self.add_log("ERROR", f"ERROR: {event.message}")
        elif isinstance(event, ProgressNote):
            self.add_log(event.kind, event.text)
        else:
            raise TypeError(f"unknown event: {event!r}")

    def reset_for_run(self) -> None:
        self.results = []
        self.results_version += 1
        self.running = True
