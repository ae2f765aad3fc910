"""
Bulk test-case import.

Reads a CSV or XLSX sheet of test cases into row dicts keyed by the
test-case attribute names. Headers are matched case-insensitively against
either the column names (``test_number``) or the report headings
(``Test Number``).

Tolerance rules:
  - A missing column defaults to ``""`` for every row; it never fails the
    import.
  - Unknown columns are ignored.
  - Fully blank rows are skipped.
  - Values are not validated here; each row goes through the normal save
    path, which rejects a bad status per row.

Only a file with no recognisable header at all is refused.
"""

import csv
import io
import logging

from openpyxl import load_workbook

from uat_tracker.core.exceptions import ImportFormatError
from uat_tracker.services.report_service import TEST_CASE_COLUMNS

logger = logging.getLogger(__name__)

IMPORT_FIELDS = tuple(attr for _, attr in TEST_CASE_COLUMNS)

CSV_TEMPLATE_EXAMPLE = [
    "TC-001", "Login", "Tester", "Sign in with a demo account",
    "Demo account exists", "1. Open login page\n2. Enter credentials",
    "Dashboard is shown", "", "", "",
]


def _header_key(raw) -> str:
    return str(raw or "").strip().lower().replace(" ", "_")


_HEADER_ALIASES = {_header_key(title): attr for title, attr in TEST_CASE_COLUMNS}
_HEADER_ALIASES.update({attr: attr for attr in IMPORT_FIELDS})


def generate_csv_template() -> str:
    """CSV header row plus one example row."""
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(IMPORT_FIELDS)
    writer.writerow(CSV_TEMPLATE_EXAMPLE)
    return output.getvalue()


def _resolve_headers(headers) -> dict[int, str]:
    """Map column position → attribute for every recognised header."""
    resolved = {}
    for pos, raw in enumerate(headers):
        attr = _HEADER_ALIASES.get(_header_key(raw))
        if attr and attr not in resolved.values():
            resolved[pos] = attr
    if not resolved:
        raise ImportFormatError(
            "No recognised test case columns. "
            f"Expected any of: {', '.join(IMPORT_FIELDS)}"
        )
    return resolved


def _rows_from_matrix(matrix) -> list[dict]:
    """Turn [header, row, row, ...] into attribute-keyed dicts."""
    if not matrix:
        return []
    positions = _resolve_headers(matrix[0])
    missing = [f for f in IMPORT_FIELDS if f not in positions.values()]
    if missing:
        logger.info("Test case import: columns missing, defaulting to empty: %s", ", ".join(missing))

    rows = []
    for row_num, values in enumerate(matrix[1:], start=2):  # header is row 1
        cells = ["" if v is None else str(v).strip() for v in values]
        if not any(cells):
            continue
        record = {field: "" for field in IMPORT_FIELDS}
        for pos, attr in positions.items():
            if pos < len(cells):
                record[attr] = cells[pos]
        record["row_num"] = row_num
        rows.append(record)
    return rows


def parse_test_case_csv(file_content: str | bytes) -> list[dict]:
    """Parse CSV content into test-case row dicts (see module docstring)."""
    if isinstance(file_content, bytes):
        try:
            file_content = file_content.decode("utf-8-sig")  # Handle BOM
        except UnicodeDecodeError as exc:
            raise ImportFormatError("CSV must be UTF-8 encoded.") from exc
    reader = csv.reader(io.StringIO(file_content))
    try:
        matrix = [row for row in reader]
    except csv.Error as exc:
        raise ImportFormatError(f"CSV could not be parsed (line {reader.line_num}): {exc}") from exc
    return _rows_from_matrix(matrix)


def parse_test_case_xlsx(file_content: bytes) -> list[dict]:
    """Parse the first worksheet of an XLSX workbook."""
    try:
        wb = load_workbook(io.BytesIO(file_content), read_only=True, data_only=True)
    except Exception as exc:
        raise ImportFormatError("File is not a readable .xlsx workbook.") from exc
    try:
        ws = wb.worksheets[0]
        matrix = [list(row) for row in ws.iter_rows(values_only=True)]
    finally:
        wb.close()
    return _rows_from_matrix(matrix)


def parse_test_case_file(filename: str, file_content: bytes) -> list[dict]:
    """Dispatch on the file extension; anything that is not .xlsx is read as CSV."""
    if (filename or "").lower().endswith(".xlsx"):
        return parse_test_case_xlsx(file_content)
    return parse_test_case_csv(file_content)
