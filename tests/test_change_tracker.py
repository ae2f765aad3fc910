"""
Change tracker tests.

Uses an in-memory stand-in for the store so the diff rules can be checked
without a database; one test at the end goes through the real store.
"""

from uat_tracker.models.records import ChangeLogEntry, Participant, TestCase
from uat_tracker.services import uat_store
from uat_tracker.services.change_tracker import (
    DELETED_FIELD,
    diff_fields,
    track_changes,
    track_deletion,
)
from uat_tracker.services.mappers import TRACKED_FIELDS


class RecordingStore:
    """Collects appended entries; optionally rejects some fields."""

    def __init__(self, reject_fields=()):
        self.entries: list[ChangeLogEntry] = []
        self.reject_fields = set(reject_fields)

    def append_change_log(self, entry):
        if entry.field in self.reject_fields:
            return None, {"error": "boom", "status": 500}
        self.entries.append(entry)
        return entry, None


def _tc(**kw):
    return TestCase(id="tc-1", project_id="p-1", **kw)


# ── diff_fields ────────────────────────────────────────────────────────────


def test_single_field_change_yields_one_entry():
    diff = diff_fields(_tc(remarks="old"), _tc(remarks="new"), TRACKED_FIELDS["test_case"])
    assert diff == [("remarks", "old", "new")]


def test_identical_snapshots_yield_nothing():
    assert diff_fields(_tc(remarks="x"), _tc(remarks="x"), TRACKED_FIELDS["test_case"]) == []


def test_none_and_empty_string_differ():
    class Snap:
        remarks = None

    diff = diff_fields(Snap(), _tc(remarks=""), ["remarks"])
    assert diff == [("remarks", None, "")]


def test_creation_compares_against_none():
    diff = diff_fields(None, _tc(test_number="TC-1"), TRACKED_FIELDS["test_case"])
    fields = [name for name, _, _ in diff]
    # every tracked field has a non-None value on a fresh record
    assert fields == list(TRACKED_FIELDS["test_case"])
    assert diff[0] == ("test_number", None, "TC-1")


def test_diff_follows_field_order():
    diff = diff_fields(
        _tc(status="", remarks="a", test_number="1"),
        _tc(status="Pass", remarks="b", test_number="2"),
        TRACKED_FIELDS["test_case"],
    )
    assert [d[0] for d in diff] == ["test_number", "status", "remarks"]


# ── track_changes / track_deletion ─────────────────────────────────────────


def test_track_changes_writes_entries_with_user_and_project():
    store = RecordingStore()
    written = track_changes(
        store,
        entity="test_case",
        previous=_tc(remarks="old"),
        next_=_tc(remarks="new"),
        fields=TRACKED_FIELDS["test_case"],
        user_name="Internal Employee",
    )
    assert len(written) == 1
    entry = store.entries[0]
    assert entry.entity == "test_case"
    assert entry.entity_id == "tc-1"
    assert entry.project_id == "p-1"
    assert entry.old_value == "old"
    assert entry.new_value == "new"
    assert entry.user_name == "Internal Employee"


def test_failed_entry_does_not_stop_the_rest():
    store = RecordingStore(reject_fields={"status"})
    written = track_changes(
        store,
        entity="test_case",
        previous=_tc(status="", remarks="a"),
        next_=_tc(status="Fail", remarks="b"),
        fields=TRACKED_FIELDS["test_case"],
        user_name="u",
    )
    assert [e.field for e in written] == ["remarks"]


def test_project_entries_are_filed_under_the_project_itself():
    from uat_tracker.models.records import Project

    store = RecordingStore()
    track_changes(
        store,
        entity="project",
        previous=Project(id="p-9", name="Old"),
        next_=Project(id="p-9", name="New"),
        fields=TRACKED_FIELDS["project"],
        user_name="u",
    )
    assert store.entries[0].project_id == "p-9"


def test_track_deletion_records_display_value():
    store = RecordingStore()
    entry = track_deletion(
        store,
        entity="participant",
        project_id="p-1",
        entity_id="pa-1",
        display_value="Jane",
        user_name="u",
    )
    assert entry.field == DELETED_FIELD
    assert entry.old_value == "Jane"
    assert entry.new_value is None


def test_track_deletion_returns_none_on_store_failure():
    store = RecordingStore(reject_fields={DELETED_FIELD})
    assert track_deletion(
        store, entity="participant", project_id="p-1",
        entity_id="pa-1", display_value="Jane", user_name="u",
    ) is None


# ── Against the real store ─────────────────────────────────────────────────


def test_entries_persist_in_change_log(project):
    participant = Participant(id="pa-1", project_id=project.id, name="Jane")
    track_changes(
        uat_store,
        entity="participant",
        previous=None,
        next_=participant,
        fields=TRACKED_FIELDS["participant"],
        user_name="Internal Employee",
    )
    log = uat_store.list_change_log(project.id)
    assert {e.field for e in log} == set(TRACKED_FIELDS["participant"])
    assert all(e.entity_id == "pa-1" for e in log)
