from csv_encoding_checker.events import (
    STATUS_DONE,
    STATUS_PROCESSING,
    EventChannel,
    Failed,
    Finished,
    PresentationState,
    ProgressNote,
    ResultProduced,
    Started,
)
from csv_encoding_checker.records import ResultRecord


def _record(enc):
    return ResultRecord("R", "d.csv", enc, "Success", 1, 1, 1)


def test_channel_is_fifo_and_non_blocking():
    ch = EventChannel()
    assert ch.poll() is None
    events = [Started(), ProgressNote("a"), ResultProduced(_record("UTF-8")), Finished(())]
    for e in events:
        ch.put(e)
    assert [ch.poll() for _ in events] == events
    assert ch.poll() is None


def test_started_sets_processing_status_and_log():
    state = PresentationState()
    state.apply(Started())
    assert state.status == STATUS_PROCESSING
    assert state.log[-1] == ("INFO", "Processing started.")
    assert state.running


def test_finished_replaces_live_results():
    state = PresentationState()
    state.apply(Started())
    state.apply(ResultProduced(_record("UTF-8")))
    state.apply(ResultProduced(_record("BIG5")))
    final = (_record("UTF-8"), _record("BIG5"))
    state.apply(Finished(final))
    assert state.results == list(final)
    assert state.status == STATUS_DONE
    assert state.log[-1][1] == "All checks finished."
    assert not state.running


def test_failed_sets_error_status():
    state = PresentationState()
    state.apply(Started())
    state.apply(Failed("Input CSV not found: x.csv"))
    assert state.status == "Error: Input CSV not found: x.csv"
    assert state.log[-1] == ("ERROR", "ERROR: Input CSV not found: x.csv")
    assert not state.running


def test_progress_note_appends_with_kind():
    state = PresentationState()
    state.apply(ProgressNote("[RUN] R / UTF-8", "INFO"))
    state.apply(ProgressNote("[FAIL] R / UTF-8", "ERROR"))
    assert state.log == [("INFO", "[RUN] R / UTF-8"), ("ERROR", "[FAIL] R / UTF-8")]


def test_results_version_changes_on_result_events():
    state = PresentationState()
    v0 = state.results_version
    state.apply(ResultProduced(_record("UTF-8")))
    assert state.results_version > v0
    v1 = state.results_version
    state.apply(ProgressNote("x"))
    assert state.results_version == v1
