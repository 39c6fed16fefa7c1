import sys
import textwrap
from pathlib import Path

import pytest

from csv_encoding_checker.worker import RunConfig

HEADER = "tool,file_path,encoding_tested,status,rows,cols,cells,error_message"


def write_tool(folder: Path, name: str, body: str) -> Path:
    """argv = [csv, out, encoding] を受け取る偽ツールスクリプトを書き出す。"""
    script = folder / f"{name}.py"
    prelude = textwrap.dedent(
        """
        import os, sys
        csv_path, out_path, encoding = sys.argv[1:4]
        log = os.environ.get("FAKE_TOOL_LOG")
        if log:
            with open(log, "a", encoding="utf-8") as f:
                f.write(out_path + "\\n")
        """
    )
    script.write_text(prelude + textwrap.dedent(body), encoding="utf-8")
    return script


def ok_body(tool: str, rows: int = 3, cols: int = 2) -> str:
    return f"""
    with open(out_path, "w", encoding="utf-8", newline="") as f:
        f.write("{HEADER}\\n")
        f.write("{tool}," + os.path.basename(csv_path) + "," + encoding + ",Success,{rows},{cols},{rows * cols},\\n")
    print("{tool} ok")
    """


@pytest.fixture
def sample_csv(tmp_path):
    p = tmp_path / "data.csv"
    p.write_text("a,b\n1,2\n3,4\n5,6\n", encoding="utf-8")
    return p


@pytest.fixture
def tool_log(tmp_path, monkeypatch):
    log = tmp_path / "tool_calls.log"
    monkeypatch.setenv("FAKE_TOOL_LOG", str(log))
    return log


@pytest.fixture
def make_config(sample_csv):
    def _make(r_script, python_script, encodings=("UTF-8",), csv_path=None, r_executable=None, timeout_sec=30):
        return RunConfig(
            csv_path=csv_path or sample_csv,
            encodings=tuple(encodings),
            r_executable=r_executable or sys.executable,
            python_executable=sys.executable,
            r_script=r_script,
            python_script=python_script,
            timeout_sec=timeout_sec,
        )

    return _make
