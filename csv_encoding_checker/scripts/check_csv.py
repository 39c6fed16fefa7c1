#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
CSV 行/列/セル数の計測（Python 版ツール）

使い方:
    python check_csv.py <input_csv> <output_csv> <encoding>

指定エンコーディングで読めた場合は status=Success、読めない場合は
status=ReadError の1行を出力して終了コード0で終わる。引数不正は終了コード2。
"""

import csv
import os
import sys

import chardet
import pandas as pd

HEADERS = ["tool", "file_path", "encoding_tested", "status", "rows", "cols", "cells", "error_message"]
TOOL_NAME = "Python_pandas"


def detect_hint(path, n_bytes=65536):
    try:
        with open(path, "rb") as f:
            result = chardet.detect(f.read(n_bytes))
    except OSError:
        return ""
    if not result.get("encoding"):
        return ""
    return f" (chardet guess: {result['encoding']}, confidence {result.get('confidence', 0.0):.2f})"


def measure(input_csv, encoding):
    row = {
        "tool": TOOL_NAME,
        "file_path": os.path.basename(input_csv),
        "encoding_tested": encoding,
        "status": "",
        "rows": "",
        "cols": "",
        "cells": "",
        "error_message": "",
    }
    try:
        df = pd.read_csv(input_csv, encoding=encoding, dtype=str, keep_default_na=False)
    except (UnicodeDecodeError, LookupError, pd.errors.ParserError, pd.errors.EmptyDataError, ValueError) as e:
        row["status"] = "ReadError"
        row["error_message"] = f"{type(e).__name__}: {e}{detect_hint(input_csv)}"
        return row

    rows, cols = df.shape
    row["status"] = "Success"
    row["rows"] = rows
    row["cols"] = cols
    row["cells"] = rows * cols
    return row


def main(argv):
    if len(argv) != 3:
        print("usage: check_csv.py <input_csv> <output_csv> <encoding>", file=sys.stderr)
        return 2
    input_csv, output_csv, encoding = argv
    row = measure(input_csv, encoding)
    with open(output_csv, "w", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=HEADERS)
        w.writeheader()
        w.writerow(row)
    print(f"{TOOL_NAME}: {row['status']} ({encoding})")
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
