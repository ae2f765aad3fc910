"""
Persistence mapping between store rows and entity records.

Every entity has one explicit, ordered field table of
``FieldSpec(attr, column, default)`` entries. ``map_*`` builds a record
from a column-keyed mapping (absent or NULL columns take the default);
``unmap_*`` produces the column-keyed mapping for a write.

For any row whose mapped columns are all present and non-NULL,
``unmap_x(map_x(row)) == row``.

The same tables define which fields the change tracker compares
(``TRACKED_FIELDS``) and which value identifies a deleted row in the
history (``DISPLAY_FIELDS``).
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from uat_tracker.models.records import (
    DEFAULT_PARTICIPANT_TYPE,
    ApprovalSignoff,
    ChangeLogEntry,
    Participant,
    Project,
    TestCase,
    utc_now_iso,
)


@dataclass(frozen=True)
class FieldSpec:
    attr: str
    column: str
    default: Any = ""


_NOW = object()  # sentinel: default to the current timestamp


PROJECT_FIELDS = (
    FieldSpec("id", "id", None),
    FieldSpec("name", "name"),
    FieldSpec("test_version", "test_version"),
    FieldSpec("month", "month"),
    FieldSpec("created_at", "created_at", _NOW),
)

TEST_CASE_FIELDS = (
    FieldSpec("id", "id", None),
    FieldSpec("project_id", "project_id", None),
    FieldSpec("test_number", "test_number"),
    FieldSpec("category", "category"),
    FieldSpec("role", "role"),
    FieldSpec("test_scenario", "test_scenario"),
    FieldSpec("preconditions", "preconditions"),
    FieldSpec("test_steps", "test_steps"),
    FieldSpec("expected_results", "expected_results"),
    FieldSpec("actual_results", "actual_results"),
    FieldSpec("status", "status"),
    FieldSpec("remarks", "remarks"),
)

PARTICIPANT_FIELDS = (
    FieldSpec("id", "id", None),
    FieldSpec("project_id", "project_id", None),
    FieldSpec("demo_account", "demo_account"),
    FieldSpec("role", "role"),
    FieldSpec("name", "name"),
    FieldSpec("email", "email"),
    FieldSpec("participant_type", "participant_type", DEFAULT_PARTICIPANT_TYPE),
)

APPROVAL_FIELDS = (
    FieldSpec("id", "id", None),
    FieldSpec("project_id", "project_id", None),
    FieldSpec("role", "role"),
    FieldSpec("name", "name"),
    FieldSpec("unit", "unit"),
    FieldSpec("date", "date"),
    FieldSpec("signature_file_path", "signature_file_path"),
    FieldSpec("verified_by", "verified_by"),
    FieldSpec("remarks", "remarks"),
    FieldSpec("month", "month"),
)

CHANGE_LOG_FIELDS = (
    FieldSpec("id", "id", None),
    FieldSpec("project_id", "project_id", None),
    FieldSpec("entity", "entity", None),
    FieldSpec("entity_id", "entity_id", None),
    FieldSpec("field", "field", None),
    FieldSpec("old_value", "old_value", None),
    FieldSpec("new_value", "new_value", None),
    FieldSpec("user_name", "user_name", "Unknown"),
    FieldSpec("created_at", "created_at", _NOW),
)

# Key and bookkeeping attributes are never diffed.
_UNTRACKED = {"id", "project_id", "created_at"}


def _tracked(fields) -> tuple[str, ...]:
    return tuple(s.attr for s in fields if s.attr not in _UNTRACKED)


TRACKED_FIELDS = {
    "project": _tracked(PROJECT_FIELDS),
    "test_case": _tracked(TEST_CASE_FIELDS),
    "participant": _tracked(PARTICIPANT_FIELDS),
    "approval_signoff": _tracked(APPROVAL_FIELDS),
}

DISPLAY_FIELDS = {
    "project": "name",
    "test_case": "test_scenario",
    "participant": "name",
    "approval_signoff": "name",
}


# ── Generic helpers ──────────────────────────────────────────────────────────


def _read(row: Mapping, field: FieldSpec):
    value = row.get(field.column)
    if value is None:
        if field.default is _NOW:
            return utc_now_iso()
        return field.default
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _map(cls, fields, row: Mapping):
    return cls(**{s.attr: _read(row, s) for s in fields})


def _unmap(fields, record) -> dict:
    return {s.column: getattr(record, s.attr) for s in fields}


def columns_of(model_obj) -> dict:
    """Return a SQLAlchemy model instance as a column-keyed dict."""
    return {c.name: getattr(model_obj, c.key) for c in model_obj.__table__.columns}


# ── Per-entity mappers ───────────────────────────────────────────────────────


def map_project(row: Mapping) -> Project:
    return _map(Project, PROJECT_FIELDS, row)


def unmap_project(project: Project) -> dict:
    return _unmap(PROJECT_FIELDS, project)


def map_test_case(row: Mapping) -> TestCase:
    return _map(TestCase, TEST_CASE_FIELDS, row)


def unmap_test_case(test_case: TestCase) -> dict:
    return _unmap(TEST_CASE_FIELDS, test_case)


def map_participant(row: Mapping) -> Participant:
    return _map(Participant, PARTICIPANT_FIELDS, row)


def unmap_participant(participant: Participant) -> dict:
    return _unmap(PARTICIPANT_FIELDS, participant)


def map_approval(row: Mapping) -> ApprovalSignoff:
    return _map(ApprovalSignoff, APPROVAL_FIELDS, row)


def unmap_approval(approval: ApprovalSignoff) -> dict:
    return _unmap(APPROVAL_FIELDS, approval)


def map_change(row: Mapping) -> ChangeLogEntry:
    return _map(ChangeLogEntry, CHANGE_LOG_FIELDS, row)


def unmap_change(entry: ChangeLogEntry) -> dict:
    return _unmap(CHANGE_LOG_FIELDS, entry)


# ── Payload coercion (HTTP / import input) ───────────────────────────────────


def record_from_payload(cls, fields, data: Mapping, **overrides):
    """Build a record from loosely-typed input keyed by attribute name.

    Unknown keys are ignored, absent keys take the field default and
    non-string scalars are stringified. ``overrides`` win over ``data``.
    """
    values = {}
    for field in fields:
        if field.attr in overrides:
            values[field.attr] = overrides[field.attr]
            continue
        raw = data.get(field.attr)
        if raw is None:
            values[field.attr] = utc_now_iso() if field.default is _NOW else field.default
        else:
            values[field.attr] = raw if isinstance(raw, str) else str(raw)
    return cls(**values)
