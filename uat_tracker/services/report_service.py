"""
UAT final report export.

Builds the consolidated report for one project in two formats:

    build_report_html  : single self-contained HTML document (inline CSS,
                         no external resources), directly openable or
                         printable to PDF from the browser.
    build_report_xlsx  : the same five sections as an Excel workbook.

Both render the five sections in a fixed order:

    1. Project Information
    2. Participant List
    3. Test Case Table
    4. Results Summary
    5. Approval Sign-Off

Rows are emitted in the order received (the store already sorts them).
An empty collection renders a single placeholder row. Every value is
inserted as escaped literal text; status is not turned into styling.
"""

import io
import logging
from datetime import datetime, timezone

from markupsafe import escape
from openpyxl import Workbook
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side
from openpyxl.utils import get_column_letter

from uat_tracker.services.results_summary import ResultsSummary, format_percent

logger = logging.getLogger(__name__)

SECTION_TITLES = (
    "Project Information",
    "Participant List",
    "Test Case Table",
    "Results Summary",
    "Approval Sign-Off",
)

PARTICIPANT_COLUMNS = (
    ("Demo Account", "demo_account"),
    ("Role", "role"),
    ("Name", "name"),
    ("Email", "email"),
    ("Participant Type", "participant_type"),
)

TEST_CASE_COLUMNS = (
    ("Test Number", "test_number"),
    ("Category", "category"),
    ("Role", "role"),
    ("Test Scenario", "test_scenario"),
    ("Preconditions", "preconditions"),
    ("Test Steps", "test_steps"),
    ("Expected Results", "expected_results"),
    ("Actual Results", "actual_results"),
    ("Status", "status"),
    ("Remarks", "remarks"),
)

APPROVAL_COLUMNS = (
    ("Role", "role"),
    ("Name", "name"),
    ("Unit", "unit"),
    ("Date", "date"),
    ("Signature File Path", "signature_file_path"),
    ("Verified By", "verified_by"),
    ("Remarks", "remarks"),
    ("Month", "month"),
)

EMPTY_PARTICIPANTS = "No participants recorded."
EMPTY_TEST_CASES = "No test cases recorded."
EMPTY_APPROVALS = "No sign-offs recorded."


def report_filename(project_name: str, extension: str = "html") -> str:
    """Suggested download name. Invalid filename characters are left to the caller."""
    return f"uat-report-{project_name}.{extension}"


def _summary_rows(summary: ResultsSummary) -> list[tuple[str, str]]:
    return [
        ("Total Task", str(summary.total)),
        ("Pass", str(summary.pass_)),
        ("Partial", str(summary.partial)),
        ("Fail", str(summary.fail)),
        ("Inapplicable", str(summary.inapplicable)),
        ("Result %", format_percent(summary.result_percent)),
    ]


# ══════════════════════════════════════════════════════════════════════════════
# HTML
# ══════════════════════════════════════════════════════════════════════════════

_STYLES = """
    body { font-family: 'Segoe UI', Arial, sans-serif; color: #0f172a; margin: 24px; background: #f8fafc; }
    h1, h2 { margin: 0 0 8px; }
    h1 { font-size: 22px; }
    h2 { font-size: 16px; }
    .meta { color: #64748b; font-size: 12px; margin-bottom: 16px; }
    .section { margin-bottom: 24px; padding: 12px; background: #fff; border: 1px solid #e2e8f0; border-radius: 12px; }
    table { width: 100%; border-collapse: collapse; margin-top: 8px; }
    th, td { border: 1px solid #cbd5e1; padding: 10px; text-align: left; vertical-align: top; font-size: 12px; white-space: pre-wrap; }
    th { background: #e2e8f0; }
    tbody tr:nth-child(odd) { background: #f8fafc; }
    @media print { body { margin: 12px; background: #fff; } }
"""


def _table_html(columns, records, empty_text: str) -> str:
    head = "".join(f"<th>{escape(title)}</th>" for title, _ in columns)
    body = ""
    for record in records:
        cells = "".join(f"<td>{escape(getattr(record, attr, ''))}</td>" for _, attr in columns)
        body += f"\n          <tr>{cells}</tr>"
    if not body:
        body = f'\n          <tr><td colspan="{len(columns)}">{escape(empty_text)}</td></tr>'
    return f"""<table>
        <thead><tr>{head}</tr></thead>
        <tbody>{body}
        </tbody>
      </table>"""


def build_report_html(*, project, participants, test_cases, summary: ResultsSummary, approvals) -> str:
    """
    Render the consolidated UAT report.

    Returns a complete HTML document string; the caller decides how to
    deliver it (download, e-mail attachment, file on disk).
    """
    name = escape(project.name)
    summary_body = "".join(
        f"\n          <tr><th>{escape(label)}</th><td>{escape(value)}</td></tr>"
        for label, value in _summary_rows(summary)
    )
    generated = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")

    html = f"""<!DOCTYPE html>
<html>
  <head>
    <meta charset="utf-8">
    <title>UAT Report - {name}</title>
    <style>{_STYLES}</style>
  </head>
  <body>
    <h1>UAT Final Report</h1>
    <p class="meta">Generated {generated}</p>

    <div class="section">
      <h2>{SECTION_TITLES[0]}</h2>
      <p><strong>Name:</strong> {name}</p>
      <p><strong>Test Version:</strong> {escape(project.test_version)}</p>
      <p><strong>Month:</strong> {escape(project.month)}</p>
    </div>

    <div class="section">
      <h2>{SECTION_TITLES[1]}</h2>
      {_table_html(PARTICIPANT_COLUMNS, participants, EMPTY_PARTICIPANTS)}
    </div>

    <div class="section">
      <h2>{SECTION_TITLES[2]}</h2>
      {_table_html(TEST_CASE_COLUMNS, test_cases, EMPTY_TEST_CASES)}
    </div>

    <div class="section">
      <h2>{SECTION_TITLES[3]}</h2>
      <table>
        <tbody>{summary_body}
        </tbody>
      </table>
    </div>

    <div class="section">
      <h2>{SECTION_TITLES[4]}</h2>
      {_table_html(APPROVAL_COLUMNS, approvals, EMPTY_APPROVALS)}
    </div>
  </body>
</html>
"""
    return html


# ══════════════════════════════════════════════════════════════════════════════
# Excel
# ══════════════════════════════════════════════════════════════════════════════

HEADER_FILL = PatternFill(start_color="354A5F", end_color="354A5F", fill_type="solid")
HEADER_FONT = Font(color="FFFFFF", bold=True, size=11)
THIN_BORDER = Border(
    left=Side(style="thin"),
    right=Side(style="thin"),
    top=Side(style="thin"),
    bottom=Side(style="thin"),
)
_MAX_COL_WIDTH = 60


def _apply_header_style(ws, row: int, col_count: int) -> None:
    for col in range(1, col_count + 1):
        cell = ws.cell(row=row, column=col)
        cell.fill = HEADER_FILL
        cell.font = HEADER_FONT
        cell.border = THIN_BORDER
        cell.alignment = Alignment(vertical="top", wrap_text=True)


def _auto_width(ws) -> None:
    for column_cells in ws.columns:
        length = max((len(str(c.value)) for c in column_cells if c.value is not None), default=8)
        letter = get_column_letter(column_cells[0].column)
        ws.column_dimensions[letter].width = min(length + 2, _MAX_COL_WIDTH)


def _write_table_sheet(ws, columns, records, empty_text: str) -> None:
    for col, (title, _) in enumerate(columns, 1):
        ws.cell(row=1, column=col, value=title)
    _apply_header_style(ws, 1, len(columns))

    row = 1
    for record in records:
        row += 1
        for col, (_, attr) in enumerate(columns, 1):
            cell = ws.cell(row=row, column=col, value=getattr(record, attr, ""))
            cell.border = THIN_BORDER
            cell.alignment = Alignment(vertical="top", wrap_text=True)
    if row == 1:
        ws.cell(row=2, column=1, value=empty_text)
    ws.freeze_panes = "A2"
    _auto_width(ws)


def build_report_xlsx(*, project, participants, test_cases, summary: ResultsSummary, approvals) -> bytes:
    """Render the report as a five-sheet workbook and return the file bytes."""
    wb = Workbook()

    # ── Sheet 1: Project Information ──────────────────────────────────
    ws = wb.active
    ws.title = SECTION_TITLES[0]
    ws["A1"] = "UAT Final Report"
    ws["A1"].font = Font(size=16, bold=True)
    for row, (label, value) in enumerate(
        (("Name", project.name), ("Test Version", project.test_version), ("Month", project.month)),
        start=3,
    ):
        ws.cell(row=row, column=1, value=label).font = Font(bold=True)
        ws.cell(row=row, column=2, value=value)
    _auto_width(ws)

    # ── Sheets 2-3: participants, test cases ──────────────────────────
    _write_table_sheet(wb.create_sheet(SECTION_TITLES[1]), PARTICIPANT_COLUMNS, participants, EMPTY_PARTICIPANTS)
    _write_table_sheet(wb.create_sheet(SECTION_TITLES[2]), TEST_CASE_COLUMNS, test_cases, EMPTY_TEST_CASES)

    # ── Sheet 4: Results Summary ──────────────────────────────────────
    ws = wb.create_sheet(SECTION_TITLES[3])
    for row, (label, value) in enumerate(_summary_rows(summary), start=1):
        ws.cell(row=row, column=1, value=label).font = Font(bold=True)
        ws.cell(row=row, column=1).border = THIN_BORDER
        ws.cell(row=row, column=2, value=value).border = THIN_BORDER
    _auto_width(ws)

    # ── Sheet 5: Approval Sign-Off ────────────────────────────────────
    _write_table_sheet(wb.create_sheet(SECTION_TITLES[4]), APPROVAL_COLUMNS, approvals, EMPTY_APPROVALS)

    buf = io.BytesIO()
    wb.save(buf)
    logger.info("UAT report workbook built", extra={"project_id": project.id})
    return buf.getvalue()
