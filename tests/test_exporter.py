"""
Tests for CSV and JSON export.
"""

import json
from datetime import date

import pandas as pd

from exporter import COLUMNS, export_to_csv, export_to_json, sanitize_cell
from extractor import CommentRecord


def record(record_id="c1", text="hello", author="Ann"):
    return CommentRecord(
        id=record_id,
        author=author,
        text=text,
        source_ref="https://youtu.be/dQw4w9WgXcQ",
        source_title="Video",
        published_at=date(2024, 1, 2),
        like_count=5,
    )


class TestSanitizeCell:

    def test_formula_prefixes_are_neutralised(self):
        for value in ("=SUM(A1)", "+1", "-1", "@cmd", "\tx", "\rx"):
            assert sanitize_cell(value) == "'" + value

    def test_plain_values_untouched(self):
        assert sanitize_cell("hello = world") == "hello = world"
        assert sanitize_cell(42) == 42


class TestExport:

    def test_csv(self, tmp_path):
        path = tmp_path / "out.csv"
        export_to_csv([record(), record("c2", text="=HYPERLINK(\"x\")", author="@bob")], str(path))

        df = pd.read_csv(path, encoding="utf-8-sig", dtype=str)
        assert list(df.columns) == COLUMNS
        assert df["text"].tolist() == ["hello", "'=HYPERLINK(\"x\")"]
        assert df["author"].tolist() == ["Ann", "'@bob"]
        assert df["publishedAt"].tolist() == ["2024-01-02", "2024-01-02"]
        assert df["likeCount"].tolist() == ["5", "5"]

    def test_csv_empty(self, tmp_path):
        path = tmp_path / "empty.csv"
        export_to_csv([], str(path))
        assert list(pd.read_csv(path, encoding="utf-8-sig").columns) == COLUMNS

    def test_json(self, tmp_path):
        path = tmp_path / "out.json"
        export_to_json([record()], str(path))

        data = json.loads(path.read_text(encoding="utf-8"))
        assert data == [{
            "id": "c1",
            "author": "Ann",
            "text": "hello",
            "videoUrl": "https://youtu.be/dQw4w9WgXcQ",
            "videoTitle": "Video",
            "publishedAt": "2024-01-02",
            "likeCount": 5,
        }]
        assert list(tmp_path.iterdir()) == [path]
