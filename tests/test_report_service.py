"""
Report export tests.

Covers:
  - five section headings in fixed order
  - every test number appears in the test case table section
  - markup in user data is escaped
  - placeholders for empty collections
  - summary figures and result % formatting
  - download filename
  - XLSX workbook sheets and rows
"""

import io

from openpyxl import load_workbook

from uat_tracker.models.records import ApprovalSignoff, Participant, Project, TestCase
from uat_tracker.services.report_service import (
    EMPTY_APPROVALS,
    EMPTY_PARTICIPANTS,
    EMPTY_TEST_CASES,
    SECTION_TITLES,
    build_report_html,
    build_report_xlsx,
    report_filename,
)
from uat_tracker.services.results_summary import summarize


PROJECT = Project(id="p-1", name="Release 4.2", test_version="4.2.0", month="2026-10")


def _inputs(test_cases=(), participants=(), approvals=()):
    return {
        "project": PROJECT,
        "participants": list(participants),
        "test_cases": list(test_cases),
        "summary": summarize(test_cases),
        "approvals": list(approvals),
    }


def _cases():
    return [
        TestCase(id="t1", project_id="p-1", test_number="TC-001", status="Pass"),
        TestCase(id="t2", project_id="p-1", test_number="TC-002", status="Pass"),
        TestCase(id="t3", project_id="p-1", test_number="TC-003", status="Fail"),
        TestCase(id="t4", project_id="p-1", test_number="TC-004", status="Inapplicable"),
    ]


# ── HTML ───────────────────────────────────────────────────────────────────


def test_sections_appear_in_order():
    html = build_report_html(**_inputs(_cases()))
    positions = [html.index(f"<h2>{title}</h2>") for title in SECTION_TITLES]
    assert positions == sorted(positions)
    assert html.count("<h2>") == 5


def _section(html, index):
    start = html.index(f"<h2>{SECTION_TITLES[index]}</h2>")
    end = html.index(f"<h2>{SECTION_TITLES[index + 1]}</h2>")
    return html[start:end]


def test_every_test_number_is_in_test_case_table():
    html = build_report_html(**_inputs(_cases()))
    table = _section(html, 2)
    for tc in _cases():
        assert tc.test_number in table


def test_user_markup_is_escaped():
    tc = TestCase(id="t1", project_id="p-1", test_number="TC-1", remarks="<script>alert(1)</script>")
    pa = Participant(id="a1", project_id="p-1", name='Jane "JJ" <b>Doe</b>')
    html = build_report_html(**_inputs([tc], [pa]))
    assert "<script>" not in html
    assert "&lt;script&gt;alert(1)&lt;/script&gt;" in html
    assert "<b>Doe</b>" not in html


def test_empty_collections_render_placeholders():
    html = build_report_html(**_inputs())
    assert EMPTY_PARTICIPANTS in html
    assert EMPTY_TEST_CASES in html
    assert EMPTY_APPROVALS in html


def test_summary_values():
    html = build_report_html(**_inputs(_cases()))
    assert "<th>Total Task</th><td>4</td>" in html
    assert "<th>Pass</th><td>2</td>" in html
    assert "<th>Fail</th><td>1</td>" in html
    assert "<th>Result %</th><td>66.7%</td>" in html


def test_project_information():
    html = build_report_html(**_inputs())
    assert "Release 4.2" in html
    assert "4.2.0" in html
    assert "2026-10" in html
    assert html.startswith("<!DOCTYPE html>")


def test_rows_keep_given_order():
    cases = list(reversed(_cases()))
    html = build_report_html(**_inputs(cases))
    assert html.index("TC-004") < html.index("TC-001")


def test_report_filename():
    assert report_filename("Release 4.2") == "uat-report-Release 4.2.html"
    assert report_filename("R1", "xlsx") == "uat-report-R1.xlsx"


# ── Excel ──────────────────────────────────────────────────────────────────


def test_xlsx_has_five_sheets():
    content = build_report_xlsx(**_inputs(_cases()))
    wb = load_workbook(io.BytesIO(content))
    assert wb.sheetnames == list(SECTION_TITLES)


def test_xlsx_test_case_rows():
    content = build_report_xlsx(**_inputs(_cases()))
    ws = load_workbook(io.BytesIO(content))["Test Case Table"]
    assert ws.cell(row=1, column=1).value == "Test Number"
    numbers = [ws.cell(row=r, column=1).value for r in range(2, 6)]
    assert numbers == ["TC-001", "TC-002", "TC-003", "TC-004"]


def test_xlsx_summary_and_placeholders():
    approvals = [ApprovalSignoff(id="s1", project_id="p-1", role="QA Lead", name="Kim")]
    wb = load_workbook(io.BytesIO(build_report_xlsx(**_inputs(_cases(), approvals=approvals))))

    summary = {row[0]: row[1] for row in wb["Results Summary"].iter_rows(values_only=True)}
    assert summary["Total Task"] == "4"
    assert summary["Result %"] == "66.7%"

    assert wb["Participant List"].cell(row=2, column=1).value == EMPTY_PARTICIPANTS
    assert wb["Approval Sign-Off"].cell(row=2, column=2).value == "Kim"
