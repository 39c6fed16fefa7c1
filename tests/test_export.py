from datetime import datetime

from csv_encoding_checker.export import export_results, make_export_path
from csv_encoding_checker.records import ResultRecord, parse_script_output

FIXED_NOW = datetime(2024, 5, 1, 9, 30, 0)


def test_make_export_path_includes_source_name_and_timestamp(tmp_path):
    path = make_export_path(tmp_path, "sales data.csv", now=FIXED_NOW)
    assert path == tmp_path / "encoding_check_sales data_20240501_093000.csv"


def test_make_export_path_without_source_name(tmp_path):
    assert make_export_path(tmp_path, now=FIXED_NOW).name == "encoding_check_20240501_093000.csv"


def test_make_export_path_avoids_collisions(tmp_path):
    first = make_export_path(tmp_path, "d.csv", now=FIXED_NOW)
    first.write_text("", encoding="utf-8")
    second = make_export_path(tmp_path, "d.csv", now=FIXED_NOW)
    assert second.name == "encoding_check_d_20240501_093000_001.csv"
    second.write_text("", encoding="utf-8")
    assert make_export_path(tmp_path, "d.csv", now=FIXED_NOW).name.endswith("_002.csv")


def test_export_writes_bom_and_is_parseable(tmp_path):
    records = [
        ResultRecord("R_readr", "d.csv", "UTF-8", "Success", 2, 3, 6),
        ResultRecord("Python_Orchestrator", "d.csv", "BIG5", "ExecutionFailure", error_message="exit code 1"),
    ]
    out = export_results(tmp_path / "sub" / "results.csv", records)
    assert out.read_bytes().startswith(b"\xef\xbb\xbf")
    assert parse_script_output(out) == records
