"""
Persistence mapping tests.

Covers:
  - NULL / absent columns take the field default
  - map → unmap returns the original row
  - datetime columns come back as ISO strings
  - payload coercion for API / import input
  - tracked / display field tables
"""

from datetime import datetime, timezone

from uat_tracker.models.records import Participant, TestCase
from uat_tracker.services.mappers import (
    PARTICIPANT_FIELDS,
    TEST_CASE_FIELDS,
    TRACKED_FIELDS,
    map_approval,
    map_change,
    map_participant,
    map_project,
    map_test_case,
    record_from_payload,
    unmap_approval,
    unmap_change,
    unmap_participant,
    unmap_project,
    unmap_test_case,
)


def _full_test_case_row():
    return {
        "id": "tc-1",
        "project_id": "p-1",
        "test_number": "TC-001",
        "category": "Login",
        "role": "Tester",
        "test_scenario": "Sign in",
        "preconditions": "Account exists",
        "test_steps": "1. Open\n2. Submit",
        "expected_results": "Dashboard",
        "actual_results": "Dashboard",
        "status": "Pass",
        "remarks": "ok",
    }


def test_test_case_round_trip():
    row = _full_test_case_row()
    assert unmap_test_case(map_test_case(row)) == row


def test_participant_round_trip():
    row = {
        "id": "pa-1",
        "project_id": "p-1",
        "demo_account": "demo01",
        "role": "Approver",
        "name": "Jane",
        "email": "jane@northwind-traders.com",
        "participant_type": "vendor",
    }
    assert unmap_participant(map_participant(row)) == row


def test_project_round_trip():
    row = {
        "id": "p-1",
        "name": "Release 4.2",
        "test_version": "4.2.0",
        "month": "2026-10",
        "created_at": "2026-10-01T08:00:00+00:00",
    }
    assert unmap_project(map_project(row)) == row


def test_approval_round_trip():
    row = {
        "id": "ap-1",
        "project_id": "p-1",
        "role": "QA Lead",
        "name": "Kim",
        "unit": "Quality",
        "date": "2026-10-30",
        "signature_file_path": "signatures/kim.png",
        "verified_by": "PMO",
        "remarks": "approved",
        "month": "2026-10",
    }
    assert unmap_approval(map_approval(row)) == row


def test_change_round_trip():
    row = {
        "id": "c-1",
        "project_id": "p-1",
        "entity": "test_case",
        "entity_id": "tc-1",
        "field": "status",
        "old_value": "Fail",
        "new_value": "Pass",
        "user_name": "Internal Employee",
        "created_at": "2026-10-17T09:30:00+00:00",
    }
    assert unmap_change(map_change(row)) == row


def test_null_columns_take_defaults():
    tc = map_test_case({"id": "tc-1", "project_id": "p-1", "remarks": None})
    assert tc.remarks == ""
    assert tc.status == ""
    assert tc.test_scenario == ""


def test_participant_type_defaults_to_external():
    pa = map_participant({"id": "pa-1", "project_id": "p-1", "participant_type": None})
    assert pa.participant_type == "external"


def test_change_log_user_defaults_to_unknown_and_keeps_null_values():
    entry = map_change({
        "id": "c-1",
        "project_id": "p-1",
        "entity": "test_case",
        "entity_id": "tc-1",
        "field": "remarks",
        "old_value": None,
        "new_value": "x",
        "user_name": None,
        "created_at": None,
    })
    assert entry.user_name == "Unknown"
    assert entry.old_value is None
    assert entry.created_at  # filled with "now"


def test_datetime_column_is_iso_string():
    ts = datetime(2026, 10, 17, 9, 30, tzinfo=timezone.utc)
    project = map_project({"id": "p-1", "name": "R1", "created_at": ts})
    assert project.created_at == ts.isoformat()


def test_record_from_payload_defaults_and_stringifies():
    tc = record_from_payload(
        TestCase, TEST_CASE_FIELDS, {"test_number": 7, "unknown": "ignored"},
        id="tc-9", project_id="p-1",
    )
    assert tc.test_number == "7"
    assert tc.remarks == ""
    assert tc.id == "tc-9"


def test_record_from_payload_overrides_win():
    pa = record_from_payload(
        Participant, PARTICIPANT_FIELDS, {"project_id": "other", "name": "Jane"},
        id="pa-1", project_id="p-1",
    )
    assert pa.project_id == "p-1"
    assert pa.participant_type == "external"


def test_tracked_fields_exclude_keys():
    for fields in TRACKED_FIELDS.values():
        assert "id" not in fields
        assert "project_id" not in fields
        assert "created_at" not in fields
    assert TRACKED_FIELDS["test_case"][0] == "test_number"
    assert "status" in TRACKED_FIELDS["test_case"]
