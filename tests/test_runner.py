import os
import signal
import subprocess
import sys
import time
from pathlib import Path

import pytest

from csv_encoding_checker.runner import ScriptRunner, ScriptStopRequested, ScriptTimeout, format_cmd_for_log, terminate_process


def test_build_cmd_argument_order():
    cmd = ScriptRunner.build_cmd("Rscript", Path("s.R"), Path("/data/in.csv"), Path("/tmp/out.csv"), "BIG5")
    assert cmd == ["Rscript", "s.R", str(Path("/data/in.csv")), str(Path("/tmp/out.csv")), "BIG5"]


def test_run_returns_exit_code_and_combined_output():
    code = "import sys; print('to-stdout'); print('to-stderr', file=sys.stderr); sys.exit(3)"
    rc, output = ScriptRunner().run([sys.executable, "-c", code])
    assert rc == 3
    assert "to-stdout" in output
    assert "to-stderr" in output


def test_run_success():
    rc, output = ScriptRunner().run([sys.executable, "-c", "print('hello')"])
    assert rc == 0
    assert output.strip() == "hello"


def test_launch_failure_raises_oserror(tmp_path):
    with pytest.raises(OSError):
        ScriptRunner().run([str(tmp_path / "no-such-executable")])


def test_timeout_terminates_child():
    started = time.monotonic()
    with pytest.raises(ScriptTimeout):
        ScriptRunner().run([sys.executable, "-c", "import time; time.sleep(30)"], timeout_sec=1)
    assert time.monotonic() - started < 20


def test_stop_request_terminates_child():
    runner = ScriptRunner(is_stop_requested=lambda: True)
    with pytest.raises(ScriptStopRequested):
        runner.run([sys.executable, "-c", "import time; time.sleep(30)"])


@pytest.mark.skipif(os.name == "nt", reason="POSIX shell quoting")
def test_format_cmd_for_log_quotes_for_shell():
    cmd = ["Rscript", "my script.R", "/data/in.csv", "", "BIG5"]
    assert format_cmd_for_log(cmd) == "Rscript 'my script.R' /data/in.csv '' BIG5"


def test_terminate_process_is_noop_for_finished_process():
    proc = subprocess.Popen([sys.executable, "-c", "pass"])
    proc.wait()
    terminate_process(proc, grace_sec=0.1)
    assert proc.returncode == 0


@pytest.mark.skipif(os.name == "nt", reason="SIGTERM handling is POSIX-only")
def test_terminate_process_escalates_when_sigterm_is_ignored():
    code = "import signal, sys, time; signal.signal(signal.SIGTERM, signal.SIG_IGN); print('ready', flush=True); time.sleep(60)"
    proc = subprocess.Popen([sys.executable, "-c", code], stdout=subprocess.PIPE, text=True, start_new_session=True)
    try:
        assert proc.stdout.readline().strip() == "ready"
        terminate_process(proc, grace_sec=0.5)
        assert proc.poll() is not None
        assert proc.returncode == -signal.SIGKILL
    finally:
        proc.stdout.close()
        if proc.poll() is None:
            proc.kill()
            proc.wait()
