"""
Persistence gateway tests.

Covers:
  - per-collection ordering
  - project scoping of every list
  - upsert create vs overwrite
  - write validation (status, participant type, email, missing project)
  - read failures degrade to an empty list
  - change log is append-only and newest-first
  - history and projects are never deleted
"""

from sqlalchemy.exc import OperationalError

from uat_tracker.models import db
from uat_tracker.models.records import ApprovalSignoff, ChangeLogEntry, Participant, TestCase, new_id
from uat_tracker.services import uat_store


# ── Projects ─────────────────────────────────────────────────────────────────


def test_create_project_assigns_id_and_timestamp():
    proj, err = uat_store.create_project("R1", "1.0", "2026-01")
    assert err is None
    assert len(proj.id) == 36
    assert proj.created_at
    assert uat_store.get_project(proj.id).name == "R1"


def test_create_project_requires_name():
    proj, err = uat_store.create_project("   ")
    assert proj is None
    assert err["status"] == 400


def test_projects_newest_first():
    first, _ = uat_store.create_project("First")
    second, _ = uat_store.create_project("Second")
    ids = [p.id for p in uat_store.list_projects()]
    assert ids == [second.id, first.id]


def test_update_project_overwrites_fields(project):
    project.month = "2026-11"
    saved, err = uat_store.update_project(project)
    assert err is None
    assert saved.month == "2026-11"
    assert saved.created_at == project.created_at


def test_update_missing_project_is_404():
    from uat_tracker.models.records import Project

    _, err = uat_store.update_project(Project(id=new_id(), name="Ghost"))
    assert err["status"] == 404


def test_get_unknown_project_returns_none():
    assert uat_store.get_project("nope") is None


# ── Test cases ───────────────────────────────────────────────────────────────


def test_test_cases_sorted_by_number(project, make_test_case):
    make_test_case(project.id, test_number="TC-003")
    make_test_case(project.id, test_number="TC-001")
    make_test_case(project.id, test_number="TC-002")
    numbers = [tc.test_number for tc in uat_store.list_test_cases(project.id)]
    assert numbers == ["TC-001", "TC-002", "TC-003"]


def test_lists_are_project_scoped(project, make_test_case):
    other, _ = uat_store.create_project("Other")
    make_test_case(project.id, test_number="A")
    make_test_case(other.id, test_number="B")
    assert [tc.test_number for tc in uat_store.list_test_cases(project.id)] == ["A"]
    assert uat_store.list_test_cases("unknown-project") == []


def test_upsert_overwrites_existing_row(project, make_test_case):
    tc = make_test_case(project.id, test_number="TC-1", remarks="first")
    tc.remarks = "second"
    saved, err = uat_store.upsert_test_case(tc)
    assert err is None
    rows = uat_store.list_test_cases(project.id)
    assert len(rows) == 1
    assert rows[0].remarks == "second"
    assert saved == rows[0]


def test_invalid_status_is_rejected(project):
    tc = TestCase(id=new_id(), project_id=project.id, status="Blocked")
    saved, err = uat_store.upsert_test_case(tc)
    assert saved is None
    assert err["status"] == 400
    assert uat_store.list_test_cases(project.id) == []


def test_child_of_missing_project_is_rejected():
    tc = TestCase(id=new_id(), project_id="missing")
    _, err = uat_store.upsert_test_case(tc)
    assert err["status"] == 404


def test_delete_absent_test_case_is_not_an_error():
    ok, err = uat_store.delete_test_case("never-existed")
    assert ok is True
    assert err is None


# ── Participants / approvals ─────────────────────────────────────────────────


def test_participants_keep_insertion_order(project):
    for name in ("Zed", "Amy", "Bob"):
        uat_store.upsert_participant(Participant(id=new_id(), project_id=project.id, name=name))
    assert [p.name for p in uat_store.list_participants(project.id)] == ["Zed", "Amy", "Bob"]


def test_participant_type_is_validated(project):
    pa = Participant(id=new_id(), project_id=project.id, participant_type="contractor")
    _, err = uat_store.upsert_participant(pa)
    assert err["status"] == 400


def test_participant_email_is_validated(project):
    pa = Participant(id=new_id(), project_id=project.id, email="not-an-email")
    _, err = uat_store.upsert_participant(pa)
    assert err["status"] == 400
    assert "email" in err["error"].lower()


def test_participant_blank_email_is_allowed(project):
    pa = Participant(id=new_id(), project_id=project.id, name="No Mail")
    saved, err = uat_store.upsert_participant(pa)
    assert err is None
    assert saved.email == ""


def test_approvals_round_trip(project):
    ap = ApprovalSignoff(
        id=new_id(), project_id=project.id, role="QA Lead", name="Kim",
        unit="QA", date="2026-10-30", verified_by="PMO", month="2026-10",
    )
    saved, err = uat_store.upsert_approval(ap)
    assert err is None
    assert uat_store.list_approvals(project.id) == [saved]


# ── Change log ───────────────────────────────────────────────────────────────


def _entry(project_id, field, **kw):
    return ChangeLogEntry(
        id=new_id(), project_id=project_id, entity="test_case",
        entity_id="tc-1", field=field, old_value=kw.get("old"), new_value=kw.get("new"),
        user_name="Tester",
    )


def test_change_log_newest_first(project):
    uat_store.append_change_log(_entry(project.id, "status", new="Pass"))
    uat_store.append_change_log(_entry(project.id, "remarks", new="done"))
    fields = [e.field for e in uat_store.list_change_log(project.id)]
    assert fields == ["remarks", "status"]


def test_change_log_keeps_null_values(project):
    saved, err = uat_store.append_change_log(_entry(project.id, "remarks", old=None, new=""))
    assert err is None
    assert saved.old_value is None
    assert saved.new_value == ""


def test_change_log_rejects_unknown_entity(project):
    entry = _entry(project.id, "x")
    entry.entity = "widget"
    _, err = uat_store.append_change_log(entry)
    assert err["status"] == 400


# ── Error policy ─────────────────────────────────────────────────────────────


class _FailingSession:
    """Delegates to the real session but raises on one method."""

    def __init__(self, real, fail_on):
        self._real = real
        self._fail_on = fail_on

    def __getattr__(self, name):
        if name == self._fail_on:
            def _boom(*args, **kwargs):
                raise OperationalError(name.upper(), {}, Exception("db down"))
            return _boom
        return getattr(self._real, name)


def test_read_failure_returns_empty_list(project, make_test_case, monkeypatch):
    make_test_case(project.id, test_number="TC-1")
    monkeypatch.setattr(db, "session", _FailingSession(db.session, "execute"))
    assert uat_store.list_test_cases(project.id) == []
    assert uat_store.list_projects() == []


def test_write_failure_returns_error_tuple(project, monkeypatch):
    monkeypatch.setattr(db, "session", _FailingSession(db.session, "commit"))
    saved, err = uat_store.upsert_test_case(TestCase(id=new_id(), project_id=project.id))
    assert saved is None
    assert err["status"] == 500


# ── Retention ────────────────────────────────────────────────────────────────


def test_history_survives_record_delete(project, make_test_case):
    tc = make_test_case(project.id, test_number="TC-1")
    uat_store.append_change_log(_entry(project.id, "status", new="Pass"))

    ok, err = uat_store.delete_test_case(tc.id)
    assert ok is True and err is None
    assert uat_store.get_project(project.id) is not None
    assert [e.field for e in uat_store.list_change_log(project.id)] == ["status"]


def test_no_delete_for_projects_or_history():
    assert not hasattr(uat_store, "delete_project")
    assert not hasattr(uat_store, "delete_change_log")
