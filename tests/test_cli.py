import sys

import pytest

from csv_encoding_checker.cli import build_parser, format_table, main
from csv_encoding_checker.probe import DependencyReport, DependencyStatus
from csv_encoding_checker.records import ResultRecord, parse_script_output

from conftest import ok_body, write_tool


class FakeProbe:
    def __init__(self, all_ok=True, **kwargs):
        self.kwargs = kwargs
        self._all_ok = all_ok

    def probe(self):
        r_status = DependencyStatus.ok(sys.executable) if self._all_ok else DependencyStatus.not_found()
        return DependencyReport(
            entries=(("Rscript", r_status), ("Python", DependencyStatus.ok(sys.executable))),
            r_executable=sys.executable if self._all_ok else None,
            python_executable=sys.executable,
        )


@pytest.fixture
def tools(tmp_path):
    return write_tool(tmp_path, "fake_r", ok_body("RTool")), write_tool(tmp_path, "fake_py", ok_body("PyTool"))


def test_parser_defaults():
    args = build_parser().parse_args(["in.csv"])
    assert args.csv_file == "in.csv"
    assert args.encodings == "UTF-8,BIG5"
    assert args.output is None


def test_headless_run_writes_results(tmp_path, sample_csv, tools, capsys):
    r, py = tools
    out = tmp_path / "results.csv"
    rc = main(
        [str(sample_csv), "-e", "UTF-8,BIG5", "--r-script", str(r), "--python-script", str(py), "-o", str(out)],
        probe_factory=FakeProbe,
    )
    assert rc == 0
    records = parse_script_output(out)
    assert [(x.encoding_tested, x.tool) for x in records] == [
        ("UTF-8", "RTool"),
        ("UTF-8", "PyTool"),
        ("BIG5", "RTool"),
        ("BIG5", "PyTool"),
    ]
    stdout = capsys.readouterr().out
    assert "[INFO] Processing started." in stdout
    assert "[DONE] All checks finished." in stdout


def test_headless_missing_input_returns_error(tmp_path, tools, capsys):
    r, py = tools
    rc = main(
        [str(tmp_path / "gone.csv"), "--r-script", str(r), "--python-script", str(py)],
        probe_factory=FakeProbe,
    )
    assert rc == 1
    assert "Input CSV not found" in capsys.readouterr().err


def test_headless_unmet_dependencies_blocks_run(sample_csv, tools, capsys):
    r, py = tools
    rc = main(
        [str(sample_csv), "--r-script", str(r), "--python-script", str(py)],
        probe_factory=lambda **kw: FakeProbe(all_ok=False, **kw),
    )
    assert rc == 1
    err = capsys.readouterr().err
    assert "Dependencies are not satisfied" in err


def test_executable_overrides_reach_probe(sample_csv, tools):
    created = []

    def factory(**kwargs):
        probe = FakeProbe(**kwargs)
        created.append(probe)
        return probe

    r, py = tools
    main(
        [str(sample_csv), "--rscript", "/opt/R/Rscript", "--python", "/venv/python", "--r-script", str(r), "--python-script", str(py)],
        probe_factory=factory,
    )
    assert created[0].kwargs == {"rscript": "/opt/R/Rscript", "python": "/venv/python"}


def test_format_table_aligns_columns():
    table = format_table([ResultRecord("R_Overall", "d.csv", "UTF-8", "ExecutionError", error_message="boom")])
    lines = table.splitlines()
    assert lines[0].startswith("tool")
    assert set(lines[1].replace(" ", "")) == {"-"}
    assert lines[2].startswith("R_Overall")
    assert lines[2].endswith("boom")
