"""
Writers for extracted comments.

CSV output is meant to be opened in a spreadsheet, so cells that a spreadsheet
would read as a formula are neutralised first. JSON output is written
atomically so an interrupted run never leaves a half-written file.
"""

import json
import os
import re
import tempfile

import pandas as pd

COLUMNS = ["id", "author", "text", "videoUrl", "videoTitle", "publishedAt", "likeCount"]

# =, +, -, @, tab and carriage return start a formula in Excel/Sheets
FORMULA_PREFIX = re.compile(r'^[=+\-@\t\r]')


def sanitize_cell(value):
    """Prefix a single quote to string values a spreadsheet would evaluate."""
    if isinstance(value, str) and FORMULA_PREFIX.match(value):
        return "'" + value
    return value


def records_to_rows(records):
    return [record.to_dict() for record in records]


def atomic_write_json(file_path, data):
    """
    Atomically write JSON data to a file using a temporary file and os.replace().

    Parameters:
        file_path (str): The target file path to write to
        data (list or dict): The data to serialize as JSON
    """
    # Temp file in the target directory keeps os.replace() on one filesystem
    dir_path = os.path.dirname(os.path.abspath(file_path))

    with tempfile.NamedTemporaryFile(mode='w', encoding='utf-8', dir=dir_path, delete=False) as temp_file:
        temp_path = temp_file.name
        try:
            json.dump(data, temp_file, ensure_ascii=False, indent=2)
            temp_file.flush()
            os.fsync(temp_file.fileno())
        except Exception:
            temp_file.close()
            os.unlink(temp_path)
            raise

    os.replace(temp_path, file_path)


def export_to_json(records, file_path):
    atomic_write_json(file_path, records_to_rows(records))
    return file_path


def export_to_csv(records, file_path):
    """
    Write records to a spreadsheet-friendly CSV file.

    Returns:
        str: The path written
    """
    df = pd.DataFrame(records_to_rows(records), columns=COLUMNS)
    for column in COLUMNS:
        if column != "likeCount":
            df[column] = df[column].map(sanitize_cell)
    # utf-8-sig so Excel detects the encoding
    df.to_csv(file_path, index=False, encoding="utf-8-sig")
    return file_path
